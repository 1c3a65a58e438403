"""
Orquestación texto -> voz:
ajuste de texto -> síntesis (con fallback) -> post-proceso -> WAV opcional -> R2 -> referencia pública.
Secuencial; sin resultados parciales.
"""
import logging

from ..core.errors import SynthesisError, ValidationError
from ..models.speech import SpeechRequest, SpeechResult
from .audio_postprocess import AudioPostProcessor, wrap_pcm_as_wav
from .object_store import ObjectStore
from .text_normalizer import TextNormalizer
from .voice_synthesizer import VoiceSynthesizer

log = logging.getLogger("voice_relay.pipeline")


class TTSPipeline:
    def __init__(
        self,
        normalizer: TextNormalizer,
        synthesizer: VoiceSynthesizer,
        postprocessor: AudioPostProcessor,
        store: ObjectStore,
        pcm_as_wav: bool = False,
    ) -> None:
        self.normalizer = normalizer
        self.synthesizer = synthesizer
        self.postprocessor = postprocessor
        self.store = store
        self.pcm_as_wav = pcm_as_wav

    def run(self, req: SpeechRequest) -> SpeechResult:
        texto = req.texto or ""
        if not texto.strip():
            raise ValidationError('Campo "texto" es obligatorio')

        ajustado = self.normalizer.normalize(texto)
        log.info(f"[pipeline] texto original={texto!r}")
        log.info(f"[pipeline] texto ajustado={ajustado!r}")

        audio = self.synthesizer.synthesize(ajustado)
        audio = self.postprocessor.process(audio)
        if self.pcm_as_wav:
            audio = wrap_pcm_as_wav(audio)
        if not audio.data:
            raise SynthesisError("El TTS devolvió audio vacío")

        ref = self.store.store(audio.data, req.user_id, audio.extension, audio.content_type)
        return SpeechResult(ref=ref, processed_text=ajustado)
