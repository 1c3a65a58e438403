"""
Configuración central de la app (fuente única de verdad).
Lee variables de entorno y expone un objeto Settings tipado e inmutable.
Los servicios lo reciben en su constructor; ninguno lee os.environ directamente.
"""
import os
from pydantic import BaseModel, ConfigDict, Field


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: str) -> list[str]:
    return [v.strip() for v in os.getenv(name, default).split(",") if v.strip()]


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    # ---- OpenAI (ajuste de texto, fallback TTS y Whisper) ----
    OPENAI_API_KEY: str = Field(default_factory=lambda: os.getenv("OPENAI_API_KEY", ""))
    OPENAI_TEXT_MODEL: str = Field(default_factory=lambda: os.getenv("OPENAI_TEXT_MODEL", "gpt-4o-mini"))
    OPENAI_TEXT_TEMPERATURE: float = Field(default_factory=lambda: float(os.getenv("OPENAI_TEXT_TEMPERATURE", "0.3")))
    OPENAI_TTS_MODEL: str = Field(default_factory=lambda: os.getenv("OPENAI_TTS_MODEL", "tts-1"))
    OPENAI_TTS_VOICE: str = Field(default_factory=lambda: os.getenv("OPENAI_TTS_VOICE", "alloy"))
    OPENAI_TTS_FORMAT: str = Field(default_factory=lambda: os.getenv("OPENAI_TTS_FORMAT", "opus"))
    OPENAI_STT_MODEL: str = Field(default_factory=lambda: os.getenv("OPENAI_STT_MODEL", "whisper-1"))
    STT_LANGUAGE: str = Field(default_factory=lambda: os.getenv("STT_LANGUAGE", "pt"))
    STT_MAX_DOWNLOAD_BYTES: int = Field(default_factory=lambda: int(os.getenv("STT_MAX_DOWNLOAD_BYTES", str(25 * 1024 * 1024))))

    # ---- ElevenLabs (voz principal) ----
    ELEVENLABS_API_KEY: str = Field(default_factory=lambda: os.getenv("ELEVENLABS_API_KEY", ""))
    ELEVENLABS_VOICE_ID: str = Field(default_factory=lambda: (
        os.getenv("ELEVENLABS_VOICE_ID_ROBERTA") or os.getenv("ELEVENLABS_VOICE_ID", "")
    ))
    ELEVENLABS_MODEL_ID: str = Field(default_factory=lambda: os.getenv("ELEVENLABS_MODEL_ID", "eleven_turbo_v2_5"))
    ELEVENLABS_LANGUAGE_CODE: str = Field(default_factory=lambda: os.getenv("ELEVENLABS_LANGUAGE_CODE", "pt-BR"))
    ELEVENLABS_STABILITY: float = Field(default_factory=lambda: float(os.getenv("ELEVENLABS_STABILITY", "0.7")))
    ELEVENLABS_SIMILARITY: float = Field(default_factory=lambda: float(os.getenv("ELEVENLABS_SIMILARITY", "0.9")))
    ELEVENLABS_STYLE: float = Field(default_factory=lambda: float(os.getenv("ELEVENLABS_STYLE", "0.3")))
    ELEVENLABS_SPEED: float = Field(default_factory=lambda: float(os.getenv("ELEVENLABS_SPEED", "0.95")))
    ELEVENLABS_SPEAKER_BOOST: bool = Field(default_factory=lambda: _env_bool("ELEVENLABS_SPEAKER_BOOST", "true"))
    ELEVENLABS_OUTPUT_FORMAT: str = Field(default_factory=lambda: os.getenv("ELEVENLABS_OUTPUT_FORMAT", "mp3_44100_128"))

    # Perfil conservador para el segundo intento
    ELEVENLABS_FALLBACK_MODEL_ID: str = Field(default_factory=lambda: os.getenv("ELEVENLABS_FALLBACK_MODEL_ID", "eleven_multilingual_v2"))
    ELEVENLABS_FALLBACK_STABILITY: float = Field(default_factory=lambda: float(os.getenv("ELEVENLABS_FALLBACK_STABILITY", "0.85")))
    ELEVENLABS_FALLBACK_SIMILARITY: float = Field(default_factory=lambda: float(os.getenv("ELEVENLABS_FALLBACK_SIMILARITY", "0.75")))
    ELEVENLABS_FALLBACK_STYLE: float = Field(default_factory=lambda: float(os.getenv("ELEVENLABS_FALLBACK_STYLE", "0.0")))
    ELEVENLABS_FALLBACK_SPEED: float = Field(default_factory=lambda: float(os.getenv("ELEVENLABS_FALLBACK_SPEED", "1.0")))
    ELEVENLABS_FALLBACK_OUTPUT_FORMAT: str = Field(default_factory=lambda: os.getenv("ELEVENLABS_FALLBACK_OUTPUT_FORMAT", "pcm_16000"))

    # ---- Pipeline TTS ----
    TTS_FALLBACK: str = Field(default_factory=lambda: os.getenv("TTS_FALLBACK", "elevenlabs").strip().lower())  # elevenlabs | openai | none
    TTS_SILENCE_MS: int = Field(default_factory=lambda: int(os.getenv("TTS_SILENCE_MS", "800")))
    TTS_PCM_AS_WAV: bool = Field(default_factory=lambda: _env_bool("TTS_PCM_AS_WAV", "true"))
    TTS_RETURN_PROCESSED_TEXT: bool = Field(default_factory=lambda: _env_bool("TTS_RETURN_PROCESSED_TEXT", "false"))

    # ---- Cloudflare R2 (S3 compatible) ----
    R2_ACCOUNT_ID: str = Field(default_factory=lambda: os.getenv("R2_ACCOUNT_ID", ""))
    R2_ACCESS_KEY_ID: str = Field(default_factory=lambda: os.getenv("R2_ACCESS_KEY_ID", ""))
    R2_SECRET_ACCESS_KEY: str = Field(default_factory=lambda: os.getenv("R2_SECRET_ACCESS_KEY", ""))
    R2_BUCKET: str = Field(default_factory=lambda: os.getenv("R2_BUCKET", ""))
    R2_PUBLIC_BASE_URL: str = Field(default_factory=lambda: os.getenv("R2_PUBLIC_BASE_URL", ""))  # ej.: https://pub-xxxx.r2.dev
    R2_ENDPOINT_URL: str = Field(default_factory=lambda: os.getenv("R2_ENDPOINT_URL", ""))
    STORAGE_MAX_UPLOAD_BYTES: int = Field(default_factory=lambda: int(os.getenv("STORAGE_MAX_UPLOAD_BYTES", str(50 * 1024 * 1024))))

    # ---- Servidor ----
    HTTP_TIMEOUT_SECONDS: float = Field(default_factory=lambda: float(os.getenv("HTTP_TIMEOUT_SECONDS", "30")))
    HOST: str = Field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    PORT: int = Field(default_factory=lambda: int(os.getenv("PORT", "3000")))
    CORS_ORIGINS: list[str] = Field(default_factory=lambda: _env_list("CORS_ORIGINS", "*"))
    LOG_LEVEL: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())
    TELEMETRY_ENABLED: bool = Field(default_factory=lambda: _env_bool("TELEMETRY_ENABLED", "false"))
    OTEL_EXPORTER_OTLP_ENDPOINT: str = Field(default_factory=lambda: os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", ""))

    @property
    def r2_endpoint(self) -> str:
        if self.R2_ENDPOINT_URL:
            return self.R2_ENDPOINT_URL
        return f"https://{self.R2_ACCOUNT_ID}.r2.cloudflarestorage.com"

    @property
    def r2_endpoint_configured(self) -> bool:
        return bool(self.R2_ENDPOINT_URL or self.R2_ACCOUNT_ID)

    @property
    def rewrite_enabled(self) -> bool:
        return bool(self.OPENAI_API_KEY)

    @property
    def tts_enabled(self) -> bool:
        return bool(self.ELEVENLABS_API_KEY and self.ELEVENLABS_VOICE_ID)

    @property
    def storage_enabled(self) -> bool:
        return bool(self.R2_BUCKET and self.R2_PUBLIC_BASE_URL and self.r2_endpoint_configured)

    @property
    def stt_enabled(self) -> bool:
        return bool(self.OPENAI_API_KEY)

settings = Settings()
