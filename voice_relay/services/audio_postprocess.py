"""
Post-proceso de audio sintetizado.
- Silencio inicial para PCM crudo (prepara el dispositivo antes de que empiece la voz).
- Empaquetado de PCM en WAV (paso aparte del pipeline) para que la URL pública sea reproducible.
- Formatos comprimidos (mp3/ogg/...) pasan sin tocar.
"""
import io
import logging
import wave
from typing import Optional, Tuple

from ..models.speech import SynthesizedAudio

log = logging.getLogger("voice_relay.audio")

PCM_SAMPLE_RATE = 16000
PCM_SAMPLE_WIDTH = 2  # 16-bit
PCM_CHANNELS = 1

# ---------- Helpers de formato ----------
_MIME = {
    "mp3": "audio/mpeg",
    "aac": "audio/aac",
    "flac": "audio/flac",
    "wav": "audio/wav",
    "pcm": "audio/L16",
    "opus": "audio/ogg",   # opus viene en contenedor OGG
    "ulaw": "audio/basic",
}
_EXT = {"opus": "ogg"}


def mime_from_fmt(fmt: str, sample_rate: Optional[int] = None) -> str:
    fmt = (fmt or "mp3").lower()
    mime = _MIME.get(fmt, "application/octet-stream")
    if fmt == "pcm" and sample_rate:
        mime = f"{mime};rate={sample_rate}"
    return mime


def extension_from_fmt(fmt: str) -> str:
    fmt = (fmt or "mp3").lower()
    return _EXT.get(fmt, fmt)


def parse_output_format(output_format: str) -> Tuple[str, Optional[int]]:
    """
    'mp3_44100_128' -> ('mp3', 44100); 'pcm_16000' -> ('pcm', 16000); 'opus' -> ('opus', None)
    """
    parts = (output_format or "mp3").lower().split("_")
    codec = parts[0]
    rate = None
    if len(parts) > 1 and parts[1].isdigit():
        rate = int(parts[1])
    return codec, rate


def is_raw_pcm(content_type: str) -> bool:
    return (content_type or "").lower().startswith("audio/l16")


# ---------- Transformaciones ----------
def pad_silence(
    data: bytes,
    duration_ms: int,
    sample_rate: int = PCM_SAMPLE_RATE,
    sample_width: int = PCM_SAMPLE_WIDTH,
    channels: int = PCM_CHANNELS,
) -> bytes:
    """
    Antepone duration_ms de muestras en cero. Los bytes originales quedan intactos al final.
    """
    if duration_ms <= 0:
        return data
    n_samples = sample_rate * duration_ms // 1000
    return b"\x00" * (n_samples * sample_width * channels) + data


def pcm_to_wav(
    data: bytes,
    sample_rate: int = PCM_SAMPLE_RATE,
    sample_width: int = PCM_SAMPLE_WIDTH,
    channels: int = PCM_CHANNELS,
) -> bytes:
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(sample_width)
        wf.setframerate(sample_rate)
        wf.writeframes(data)
    return buf.getvalue()


def wrap_pcm_as_wav(audio: SynthesizedAudio) -> SynthesizedAudio:
    """
    Empaqueta PCM crudo en WAV para que la URL pública sea reproducible.
    Formatos comprimidos pasan sin tocar.
    """
    if not is_raw_pcm(audio.content_type):
        return audio
    rate = audio.sample_rate or PCM_SAMPLE_RATE
    return audio.model_copy(update={
        "data": pcm_to_wav(audio.data, sample_rate=rate),
        "content_type": mime_from_fmt("wav"),
        "extension": "wav",
    })


class AudioPostProcessor:
    """Silencio inicial para PCM crudo; con silence_ms <= 0 no hace nada."""

    def __init__(self, silence_ms: int = 0) -> None:
        self.silence_ms = silence_ms

    def process(self, audio: SynthesizedAudio) -> SynthesizedAudio:
        if self.silence_ms <= 0 or not is_raw_pcm(audio.content_type):
            return audio
        rate = audio.sample_rate or PCM_SAMPLE_RATE
        try:
            return audio.model_copy(update={"data": pad_silence(audio.data, self.silence_ms, sample_rate=rate)})
        except Exception as e:
            log.warning(f"[postprocess] se devuelve el audio sin cambios: {e}")
            return audio
