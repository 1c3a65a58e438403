"""
Configuración de logging.
- Nivel INFO por defecto (LOG_LEVEL).
- Formato con timestamps y nombre del logger.
- Integra con Uvicorn (mismo nivel) para no duplicar.
"""
import logging
from typing import Optional

from ..core.config import settings

def setup_logging(level: Optional[str] = None) -> None:
    level = (level or settings.LOG_LEVEL).upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    # Ajusta loggers de uvicorn para no duplicar formato
    for uv_logger in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(uv_logger).setLevel(level)
    # El cliente de OpenAI/httpx y botocore son muy verbosos en DEBUG
    for noisy in ("httpx", "botocore", "urllib3"):
        logging.getLogger(noisy).setLevel("INFO" if level == "DEBUG" else level)
