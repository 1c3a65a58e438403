"""
Ajuste de texto para fala (OpenAI chat).
Política fail-open: cualquier error se registra y se devuelve el texto original.
Sin OPENAI_API_KEY el paso es un passthrough.
"""
import logging
from typing import Optional

from openai import OpenAI

from ..ai.chains.speech_rewrite import build_messages
from ..core.config import Settings

log = logging.getLogger("voice_relay.normalizer")


class TextNormalizer:
    def __init__(self, settings: Settings, client: Optional[OpenAI] = None) -> None:
        self.model = settings.OPENAI_TEXT_MODEL
        self.temperature = settings.OPENAI_TEXT_TEMPERATURE
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

    def normalize(self, text: str) -> str:
        rewritten = self._rewrite(text)
        return rewritten if rewritten else text

    def _rewrite(self, text: str) -> Optional[str]:
        """
        Devuelve el texto reescrito o None si hay que usar el original.
        """
        if self.client is None:
            return None
        try:
            chat = self.client.chat.completions.create(
                model=self.model,
                temperature=self.temperature,
                messages=build_messages(text),
            )
            out = (chat.choices[0].message.content or "").strip()
            return out or None
        except Exception as e:
            log.warning(f"[normalize] fallback al texto original por error: {e}")
            return None
