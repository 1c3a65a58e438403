"""
Modelos del pipeline de voz.
Las peticiones usan los nombres de campo del contrato público (texto, userId, audioUrl).
"""
from typing import Optional, Union
from pydantic import BaseModel, Field

DEFAULT_USER_ID = "anonimo"


# ---------- Entrada HTTP ----------
class SpeechRequest(BaseModel):
    # Opcionales a nivel de schema: la ausencia se responde con 400, no 422
    texto: Optional[str] = None
    userId: Optional[Union[str, int]] = None

    @property
    def user_id(self) -> str:
        if self.userId is None or self.userId == "":
            return DEFAULT_USER_ID
        return str(self.userId)


class TranscriptionRequest(BaseModel):
    audioUrl: Optional[str] = None


# ---------- Internos ----------
class SynthesizedAudio(BaseModel):
    data: bytes
    content_type: str
    extension: str
    sample_rate: Optional[int] = None  # solo para PCM crudo
    provider: str = ""

    @property
    def size(self) -> int:
        return len(self.data)


class StoredAudioRef(BaseModel):
    uri: str
    size: int
    content_type: str
    key: str


class SpeechResult(BaseModel):
    ref: StoredAudioRef
    processed_text: str


# ---------- Salida HTTP ----------
class SpeechOut(BaseModel):
    uri: str
    type: str
    size: int
    textoProcessado: Optional[str] = None


class TranscriptionOut(BaseModel):
    texto: str


class HealthOut(BaseModel):
    status: str = "ok"
    tts: bool
    ajusteTexto: bool
    stt: bool
    storage: bool = Field(default=False)
