# voice_relay/routes/speech.py
# Router FastAPI de voz: /tts (texto -> audio en R2) y /stt (audio por URL -> texto)
import logging
from fastapi import APIRouter, Depends

from ..core.config import Settings
from ..core.deps import get_settings, get_transcriber, get_tts_pipeline
from ..core.errors import TranscriptionError, ValidationError
from ..models.speech import SpeechOut, SpeechRequest, TranscriptionOut, TranscriptionRequest
from ..services.transcriber import Transcriber
from ..services.tts_pipeline import TTSPipeline

router = APIRouter()
log = logging.getLogger("voice_relay.routes")


@router.post("/tts", response_model=SpeechOut, response_model_exclude_none=True, summary="Texto -> audio (URL pública)")
def tts(
    payload: SpeechRequest,
    pipeline: TTSPipeline = Depends(get_tts_pipeline),
    settings: Settings = Depends(get_settings),
):
    """
    body: { texto: str, userId?: str }
    Devuelve { uri, type, size } (+ textoProcessado si TTS_RETURN_PROCESSED_TEXT=true).
    """
    if not (payload.texto or "").strip():
        raise ValidationError('Campo "texto" es obligatorio')

    result = pipeline.run(payload)
    return SpeechOut(
        uri=result.ref.uri,
        type=result.ref.content_type,
        size=result.ref.size,
        textoProcessado=result.processed_text if settings.TTS_RETURN_PROCESSED_TEXT else None,
    )


@router.post("/stt", response_model=TranscriptionOut, summary="Audio (URL) -> texto")
def stt(
    payload: TranscriptionRequest,
    transcriber: Transcriber = Depends(get_transcriber),
):
    """body: { audioUrl: str }"""
    audio_url = (payload.audioUrl or "").strip()
    if not audio_url:
        raise ValidationError('Campo "audioUrl" es obligatorio')

    try:
        texto = transcriber.transcribe(audio_url)
    except TranscriptionError as e:
        log.error(f"[stt] {e.message} status={e.upstream_status} body={e.body[:200]!r}")
        raise TranscriptionError("Error al transcribir audio") from e
    return TranscriptionOut(texto=texto)
