# voice_relay/tests/conftest.py
"""
Fixtures y helpers para pruebas con FastAPI + pytest-asyncio.
Ningún test sale a la red: proveedores, R2 y OpenAI se reemplazan por dobles.
"""
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
import requests
from httpx import AsyncClient, ASGITransport
from asgi_lifespan import LifespanManager

# ---- sin credenciales reales (debe setearse ANTES de importar voice_relay.main) ----
for _var in (
    "OPENAI_API_KEY", "ELEVENLABS_API_KEY", "ELEVENLABS_VOICE_ID", "ELEVENLABS_VOICE_ID_ROBERTA",
    "R2_BUCKET", "R2_PUBLIC_BASE_URL", "R2_ACCESS_KEY_ID", "R2_SECRET_ACCESS_KEY",
    "R2_ACCOUNT_ID", "R2_ENDPOINT_URL",
):
    os.environ[_var] = ""
os.environ["TELEMETRY_ENABLED"] = "false"

# ---- asegurar imports absolutos 'voice_relay.*' ----
ROOT_DIR = Path(__file__).resolve().parents[1]   # .../voice_relay
sys.path.insert(0, str(ROOT_DIR.parent))

from voice_relay.main import app  # noqa
from voice_relay.core.config import Settings  # noqa
from voice_relay.models.speech import SynthesizedAudio  # noqa
from voice_relay.services.audio_postprocess import AudioPostProcessor  # noqa
from voice_relay.services.object_store import ObjectStore  # noqa
from voice_relay.services.text_normalizer import TextNormalizer  # noqa
from voice_relay.services.tts_pipeline import TTSPipeline  # noqa
from voice_relay.services.voice_synthesizer import SynthesisProvider, VoiceSynthesizer  # noqa

FIXED_NOW = datetime(2024, 3, 5, 12, 0, 0, 123000, tzinfo=timezone.utc)
FIXED_EPOCH_MS = 1709640000123


@pytest_asyncio.fixture
async def async_client():
    async with LifespanManager(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            yield client
    app.dependency_overrides.clear()


# -------- Dobles --------
class FakeProvider(SynthesisProvider):
    def __init__(self, name="fake", audio=None, error=None, configured=True):
        self.name = name
        self.audio = audio
        self.error = error
        self.configured = configured
        self.calls = []

    def is_configured(self):
        return self.configured

    def synthesize(self, text):
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        if self.audio is not None:
            return self.audio
        return SynthesizedAudio(
            data=b"ID3-fake-mp3-frames",
            content_type="audio/mpeg",
            extension="mp3",
            provider=self.name,
        )


class FakeResponse:
    """Imita lo mínimo de requests.Response que usan los servicios."""

    def __init__(self, status_code=200, content=b"", headers=None, chunks=None):
        self.status_code = status_code
        self.content = content
        self.headers = headers or {}
        self._chunks = chunks if chunks is not None else ([content] if content else [])

    @property
    def ok(self):
        return self.status_code < 400

    @property
    def text(self):
        return self.content.decode("utf-8", errors="replace")

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)

    def iter_content(self, chunk_size=1):
        yield from self._chunks

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


@pytest.fixture
def fake_provider():
    return FakeProvider


@pytest.fixture
def fake_response():
    return FakeResponse


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def make_settings():
    def _make(**overrides) -> Settings:
        base = dict(
            OPENAI_API_KEY="",
            ELEVENLABS_API_KEY="el-test-key",
            ELEVENLABS_VOICE_ID="voice-test",
            R2_BUCKET="audios-test",
            R2_PUBLIC_BASE_URL="https://pub-test.r2.dev",
            R2_ACCOUNT_ID="acc-test",
            R2_ENDPOINT_URL="",
            TTS_FALLBACK="none",
            TTS_SILENCE_MS=800,
            TTS_PCM_AS_WAV=True,
            TTS_RETURN_PROCESSED_TEXT=False,
            HTTP_TIMEOUT_SECONDS=30.0,
        )
        base.update(overrides)
        return Settings(**base)
    return _make


@pytest.fixture
def make_pipeline(fixed_clock):
    def _make(settings: Settings, providers, s3=None) -> TTSPipeline:
        return TTSPipeline(
            normalizer=TextNormalizer(settings),
            synthesizer=VoiceSynthesizer(providers),
            postprocessor=AudioPostProcessor(settings.TTS_SILENCE_MS),
            store=ObjectStore(settings, client=s3 if s3 is not None else MagicMock(), clock=fixed_clock),
            pcm_as_wav=settings.TTS_PCM_AS_WAV,
        )
    return _make
