"""
STT (audio -> texto) con Whisper (OpenAI).
1) Descarga el audio desde la URL (con límite de tamaño).
2) Lo envía como multipart a la API de transcripción.
Sin reintentos ni resultados parciales.
"""
import logging
import posixpath
from typing import Optional
from urllib.parse import urlparse

import requests
from openai import OpenAI, OpenAIError

from ..core.config import Settings
from ..core.errors import ConfigError, TranscriptionError

log = logging.getLogger("voice_relay.stt")

DEFAULT_FILENAME = "audio.ogg"
_KNOWN_EXT = {"ogg", "oga", "mp3", "mp4", "m4a", "wav", "webm", "mpeg", "mpga", "flac", "opus"}
CHUNK_SIZE = 64 * 1024


def filename_from_url(audio_url: str) -> str:
    ext = posixpath.splitext(urlparse(audio_url).path)[1].lstrip(".").lower()
    if ext in _KNOWN_EXT:
        return f"audio.{ext}"
    return DEFAULT_FILENAME


class Transcriber:
    def __init__(
        self,
        settings: Settings,
        client: Optional[OpenAI] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.model = settings.OPENAI_STT_MODEL
        self.language = settings.STT_LANGUAGE
        self.max_bytes = settings.STT_MAX_DOWNLOAD_BYTES
        self.timeout = settings.HTTP_TIMEOUT_SECONDS
        # Sin sesión inyectada se usa requests.post/get: una sesión por llamada, seguro entre hilos
        self.http = session or requests
        self.client = client
        if self.client is None and settings.OPENAI_API_KEY:
            self.client = OpenAI(
                api_key=settings.OPENAI_API_KEY,
                timeout=settings.HTTP_TIMEOUT_SECONDS,
                max_retries=0,
            )

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def download(self, audio_url: str) -> bytes:
        try:
            with self.http.get(audio_url, stream=True, timeout=self.timeout) as r:
                r.raise_for_status()
                declared = r.headers.get("Content-Length")
                if declared and declared.isdigit() and int(declared) > self.max_bytes:
                    raise TranscriptionError(
                        f"Audio de {declared} bytes excede el límite de {self.max_bytes}"
                    )
                buf = bytearray()
                for chunk in r.iter_content(chunk_size=CHUNK_SIZE):
                    buf.extend(chunk)
                    if len(buf) > self.max_bytes:
                        raise TranscriptionError(f"Audio excede el límite de {self.max_bytes} bytes")
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise TranscriptionError("No se pudo descargar el audio", upstream_status=status) from e
        except requests.RequestException as e:
            raise TranscriptionError("No se pudo descargar el audio", body=str(e), network=True) from e

        if not buf:
            raise TranscriptionError("El audio descargado está vacío")
        return bytes(buf)

    def transcribe(self, audio_url: str) -> str:
        if self.client is None:
            raise ConfigError("OPENAI_API_KEY no configurada")

        audio = self.download(audio_url)
        log.info(f"[stt] descargado bytes={len(audio)} url={audio_url}")
        try:
            result = self.client.audio.transcriptions.create(
                model=self.model,
                file=(filename_from_url(audio_url), audio),
                language=self.language,
            )
        except OpenAIError as e:
            status = getattr(e, "status_code", None)
            raise TranscriptionError("Error al transcribir audio", upstream_status=status, body=str(e)) from e

        return (getattr(result, "text", None) or "").strip()
