# voice_relay/tests/test_health.py
from unittest.mock import MagicMock

import pytest

from voice_relay.main import app
from voice_relay.services.transcriber import Transcriber

pytestmark = pytest.mark.asyncio


async def test_health_without_credentials(async_client):
    r = await async_client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "ok"
    assert data["tts"] is False
    assert data["ajusteTexto"] is False
    assert data["stt"] is False


async def test_health_reports_capabilities(async_client, make_settings, make_pipeline, fake_provider):
    settings = make_settings(OPENAI_API_KEY="sk-test")
    app.state.tts_pipeline = make_pipeline(settings, [fake_provider()])
    app.state.transcriber = Transcriber(settings, client=MagicMock())

    r = await async_client.get("/health")

    data = r.json()
    assert data["tts"] is True
    assert data["storage"] is True
    assert data["stt"] is True
