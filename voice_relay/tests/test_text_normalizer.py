# voice_relay/tests/test_text_normalizer.py
import logging
from types import SimpleNamespace
from unittest.mock import MagicMock

from voice_relay.services.text_normalizer import TextNormalizer


def _chat_reply(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def test_without_key_is_passthrough(make_settings):
    normalizer = TextNormalizer(make_settings(OPENAI_API_KEY=""))
    texto = "  oi!! tudo bem??  "
    assert normalizer.enabled is False
    assert normalizer.normalize(texto) == texto


def test_rewrites_with_chat_model(make_settings):
    client = MagicMock()
    client.chat.completions.create.return_value = _chat_reply("  Olá! Tudo bem?  ")

    out = TextNormalizer(make_settings(), client=client).normalize("oi tudo bem")

    assert out == "Olá! Tudo bem?"
    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "gpt-4o-mini"
    assert kwargs["temperature"] == 0.3
    roles = [m["role"] for m in kwargs["messages"]]
    assert roles == ["system", "user"]
    assert '"""oi tudo bem"""' in kwargs["messages"][1]["content"]


def test_upstream_error_falls_back_to_original(make_settings, caplog):
    client = MagicMock()
    client.chat.completions.create.side_effect = RuntimeError("502 bad gateway")

    with caplog.at_level(logging.WARNING, logger="voice_relay.normalizer"):
        out = TextNormalizer(make_settings(), client=client).normalize("texto original")

    assert out == "texto original"
    assert "502 bad gateway" in caplog.text


def test_empty_or_malformed_reply_falls_back(make_settings):
    client = MagicMock()
    client.chat.completions.create.return_value = _chat_reply("   ")
    assert TextNormalizer(make_settings(), client=client).normalize("abc") == "abc"

    client.chat.completions.create.return_value = SimpleNamespace(choices=[])
    assert TextNormalizer(make_settings(), client=client).normalize("abc") == "abc"
