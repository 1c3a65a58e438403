"""
Cadena de ajuste de texto para fala (TTS).
- Carga prompt de sistema y plantilla desde /ai/prompts.
- Construye los mensajes para chat completions; la llamada vive en services/text_normalizer.
"""
from pathlib import Path

PROMPTS_DIR = Path(__file__).resolve().parents[1] / "prompts"

def _load(path: Path) -> str:
    return path.read_text(encoding="utf-8").strip() if path.exists() else ""

SYSTEM = _load(PROMPTS_DIR / "system_ajuste_fala.txt")
TEMPLATE = _load(PROMPTS_DIR / "ajuste_fala.txt")

def build_messages(texto: str) -> list[dict]:
    user_prompt = TEMPLATE.format(texto=texto) if TEMPLATE else texto
    messages = []
    if SYSTEM:
        messages.append({"role": "system", "content": SYSTEM})
    messages.append({"role": "user", "content": user_prompt})
    return messages
