"""
Síntesis de voz con fallback acotado.
- Proveedor principal: ElevenLabs (perfil de calidad configurado).
- Segundo intento (opcional): ElevenLabs con perfil conservador u OpenAI speech.
- Solo se reintenta ante 422 (validación) o fallo de red. Máximo 2 intentos.
"""
import json
import logging
from abc import ABC, abstractmethod
from typing import Optional

import requests
from openai import APIConnectionError, APIStatusError, OpenAI, OpenAIError
from pydantic import BaseModel, ConfigDict

from ..core.config import Settings
from ..core.errors import SynthesisError
from ..models.speech import SynthesizedAudio
from .audio_postprocess import extension_from_fmt, mime_from_fmt, parse_output_format

log = logging.getLogger("voice_relay.tts")

ELEVENLABS_URL = "https://api.elevenlabs.io/v1/text-to-speech/{voice_id}"
OPENAI_PCM_RATE = 24000
MAX_ATTEMPTS = 2
FALLBACK_STATUSES = {422}
LOG_BODY_PREFIX = 200


class VoiceProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    model_id: str
    stability: float
    similarity_boost: float
    style: float
    speed: float
    use_speaker_boost: bool = True
    output_format: str = "mp3_44100_128"


def _upstream_message(raw: str) -> Optional[str]:
    """
    Extrae el mensaje legible de un cuerpo de error JSON (ElevenLabs u OpenAI).
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        return None
    if not isinstance(data, dict):
        return None
    err = data.get("error")
    if isinstance(err, dict) and err.get("message"):
        return str(err["message"])
    detail = data.get("detail")
    if isinstance(detail, dict) and detail.get("message"):
        return str(detail["message"])
    if isinstance(detail, list) and detail and isinstance(detail[0], dict) and detail[0].get("msg"):
        return str(detail[0]["msg"])
    if isinstance(detail, str):
        return detail
    return None


def should_fallback(err: SynthesisError) -> bool:
    return err.network or err.upstream_status in FALLBACK_STATUSES


class SynthesisProvider(ABC):
    name = "provider"

    @abstractmethod
    def is_configured(self) -> bool:
        ...

    @abstractmethod
    def synthesize(self, text: str) -> SynthesizedAudio:
        """Devuelve audio no vacío o lanza SynthesisError."""


class ElevenLabsProvider(SynthesisProvider):
    def __init__(
        self,
        *,
        api_key: str,
        voice_id: str,
        profile: VoiceProfile,
        language_code: str = "pt-BR",
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
        name: str = "elevenlabs",
    ) -> None:
        self.api_key = api_key
        self.voice_id = voice_id
        self.profile = profile
        self.language_code = language_code
        self.timeout = timeout
        # Sin sesión inyectada se usa requests.post/get: una sesión por llamada, seguro entre hilos
        self.http = session or requests
        self.name = name

    def is_configured(self) -> bool:
        return bool(self.api_key and self.voice_id)

    def _payload(self, text: str) -> dict:
        p = self.profile
        return {
            "text": text,
            "model_id": p.model_id,
            "language_code": self.language_code,
            "voice_settings": {
                "stability": p.stability,
                "similarity_boost": p.similarity_boost,
                "style": p.style,
                "speed": p.speed,
                "use_speaker_boost": p.use_speaker_boost,
            },
            "apply_text_normalization": "auto",
            "apply_language_text_normalization": True,
        }

    def synthesize(self, text: str) -> SynthesizedAudio:
        if not self.is_configured():
            raise SynthesisError("ELEVENLABS_API_KEY o ELEVENLABS_VOICE_ID no configurada")

        codec, rate = parse_output_format(self.profile.output_format)
        try:
            r = self.http.post(
                ELEVENLABS_URL.format(voice_id=self.voice_id),
                json=self._payload(text),
                headers={
                    "xi-api-key": self.api_key,
                    "Content-Type": "application/json",
                    "Accept": "audio/mpeg" if codec == "mp3" else "*/*",
                },
                params={"output_format": self.profile.output_format},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise SynthesisError(f"Falla de red con TTS ({self.name}): {e}", network=True) from e

        if not r.ok:
            msg = _upstream_message(r.text)
            raise SynthesisError(
                f"TTS: {msg}" if msg else f"Falla al llamar TTS ({self.name})",
                upstream_status=r.status_code,
                body=r.text,
            )
        if not r.content:
            raise SynthesisError(f"TTS ({self.name}) devolvió audio vacío", upstream_status=r.status_code)

        return SynthesizedAudio(
            data=r.content,
            content_type=mime_from_fmt(codec, rate),
            extension=extension_from_fmt(codec),
            sample_rate=rate if codec == "pcm" else None,
            provider=self.name,
        )


class OpenAISpeechProvider(SynthesisProvider):
    def __init__(
        self,
        *,
        client: Optional[OpenAI],
        model: str = "tts-1",
        voice: str = "alloy",
        response_format: str = "opus",
        name: str = "openai",
    ) -> None:
        self.client = client
        self.model = model
        self.voice = voice
        self.response_format = response_format.lower()
        self.name = name

    def is_configured(self) -> bool:
        return self.client is not None

    def synthesize(self, text: str) -> SynthesizedAudio:
        if self.client is None:
            raise SynthesisError("OPENAI_API_KEY no configurada")
        fmt = self.response_format
        try:
            speech = self.client.audio.speech.create(
                model=self.model,
                voice=self.voice,
                input=text,
                response_format=fmt,
            )
            raw = speech.read() if hasattr(speech, "read") else getattr(speech, "content", b"")
        except APIStatusError as e:
            raise SynthesisError(f"TTS: {e.message}", upstream_status=e.status_code, body=e.response.text) from e
        except APIConnectionError as e:
            raise SynthesisError(f"Falla de red con TTS ({self.name}): {e}", network=True) from e
        except OpenAIError as e:
            raise SynthesisError(f"Falla al llamar TTS ({self.name}): {e}") from e

        if not raw:
            raise SynthesisError(f"TTS ({self.name}) devolvió audio vacío")

        rate = OPENAI_PCM_RATE if fmt == "pcm" else None
        return SynthesizedAudio(
            data=raw,
            content_type=mime_from_fmt(fmt, rate),
            extension=extension_from_fmt(fmt),
            sample_rate=rate,
            provider=self.name,
        )


class VoiceSynthesizer:
    """
    Recorre la lista ordenada de proveedores: principal y, como mucho, un fallback.
    """

    def __init__(self, providers: list[SynthesisProvider]) -> None:
        self.providers = list(providers)[:MAX_ATTEMPTS]

    @property
    def enabled(self) -> bool:
        return bool(self.providers) and self.providers[0].is_configured()

    def synthesize(self, text: str) -> SynthesizedAudio:
        if not self.enabled:
            raise SynthesisError("TTS principal no configurado (ELEVENLABS_API_KEY / ELEVENLABS_VOICE_ID)")

        last_err: Optional[SynthesisError] = None
        for attempt, provider in enumerate(self.providers, start=1):
            if attempt > 1 and not provider.is_configured():
                break
            try:
                audio = provider.synthesize(text)
                if attempt > 1:
                    log.info(f"[tts] fallback ok provider={provider.name} bytes={audio.size}")
                return audio
            except SynthesisError as e:
                log.error(
                    f"[tts] provider={provider.name} attempt={attempt} "
                    f"status={e.upstream_status} body={e.body[:LOG_BODY_PREFIX]!r}"
                )
                last_err = e
                if not should_fallback(e):
                    break
        raise last_err

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session: Optional[requests.Session] = None,
        openai_client: Optional[OpenAI] = None,
    ) -> "VoiceSynthesizer":
        primary = ElevenLabsProvider(
            api_key=settings.ELEVENLABS_API_KEY,
            voice_id=settings.ELEVENLABS_VOICE_ID,
            language_code=settings.ELEVENLABS_LANGUAGE_CODE,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
            session=session,
            profile=VoiceProfile(
                model_id=settings.ELEVENLABS_MODEL_ID,
                stability=settings.ELEVENLABS_STABILITY,
                similarity_boost=settings.ELEVENLABS_SIMILARITY,
                style=settings.ELEVENLABS_STYLE,
                speed=settings.ELEVENLABS_SPEED,
                use_speaker_boost=settings.ELEVENLABS_SPEAKER_BOOST,
                output_format=settings.ELEVENLABS_OUTPUT_FORMAT,
            ),
        )
        providers: list[SynthesisProvider] = [primary]

        if settings.TTS_FALLBACK == "elevenlabs":
            providers.append(ElevenLabsProvider(
                api_key=settings.ELEVENLABS_API_KEY,
                voice_id=settings.ELEVENLABS_VOICE_ID,
                language_code=settings.ELEVENLABS_LANGUAGE_CODE,
                timeout=settings.HTTP_TIMEOUT_SECONDS,
                session=session,
                name="elevenlabs-fallback",
                profile=VoiceProfile(
                    model_id=settings.ELEVENLABS_FALLBACK_MODEL_ID,
                    stability=settings.ELEVENLABS_FALLBACK_STABILITY,
                    similarity_boost=settings.ELEVENLABS_FALLBACK_SIMILARITY,
                    style=settings.ELEVENLABS_FALLBACK_STYLE,
                    speed=settings.ELEVENLABS_FALLBACK_SPEED,
                    use_speaker_boost=False,
                    output_format=settings.ELEVENLABS_FALLBACK_OUTPUT_FORMAT,
                ),
            ))
        elif settings.TTS_FALLBACK == "openai":
            if openai_client is None and settings.OPENAI_API_KEY:
                openai_client = OpenAI(
                    api_key=settings.OPENAI_API_KEY,
                    timeout=settings.HTTP_TIMEOUT_SECONDS,
                    max_retries=0,
                )
            providers.append(OpenAISpeechProvider(
                client=openai_client,
                model=settings.OPENAI_TTS_MODEL,
                voice=settings.OPENAI_TTS_VOICE,
                response_format=settings.OPENAI_TTS_FORMAT,
            ))
        elif settings.TTS_FALLBACK != "none":
            log.warning(f"[tts] TTS_FALLBACK desconocido: {settings.TTS_FALLBACK!r}; sin fallback")

        return cls(providers)
