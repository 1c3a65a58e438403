"""
Dependencias comunes para FastAPI:
- build_services: arma el grafo de servicios una vez (lifespan).
- get_tts_pipeline / get_transcriber: los leen de app.state.
"""
from fastapi import Request

from .config import Settings
from ..services.audio_postprocess import AudioPostProcessor
from ..services.object_store import ObjectStore
from ..services.text_normalizer import TextNormalizer
from ..services.transcriber import Transcriber
from ..services.tts_pipeline import TTSPipeline
from ..services.voice_synthesizer import VoiceSynthesizer


def build_services(settings: Settings) -> dict:
    pipeline = TTSPipeline(
        normalizer=TextNormalizer(settings),
        synthesizer=VoiceSynthesizer.from_settings(settings),
        postprocessor=AudioPostProcessor(silence_ms=settings.TTS_SILENCE_MS),
        store=ObjectStore(settings),
        pcm_as_wav=settings.TTS_PCM_AS_WAV,
    )
    return {"tts_pipeline": pipeline, "transcriber": Transcriber(settings)}


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_tts_pipeline(request: Request) -> TTSPipeline:
    return request.app.state.tts_pipeline


def get_transcriber(request: Request) -> Transcriber:
    return request.app.state.transcriber
