"""
Taxonomía de errores del relay.
Cada error sabe qué status HTTP le corresponde; main.py los traduce a {"error": ...}.
"""
from typing import Optional

BODY_LIMIT = 300


def truncate_body(body: Optional[str], limit: int = BODY_LIMIT) -> str:
    if not body:
        return ""
    body = body.strip()
    return body if len(body) <= limit else body[:limit] + "..."


class RelayError(Exception):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def http_status(self) -> int:
        return self.status_code


class ValidationError(RelayError):
    """Falta un campo obligatorio en la petición."""
    status_code = 400


class ConfigError(RelayError):
    """Falta una credencial o ajuste requerido por el endpoint."""


class StorageConfigError(ConfigError):
    pass


class UpstreamError(RelayError):
    """
    Fallo de una API de terceros (no-2xx o red).
    - upstream_status: status devuelto por el proveedor (None si nunca respondió).
    - body: prefijo del cuerpo de error, para diagnóstico.
    - network: True si el fallo fue de red/timeout.
    """
    forward_status = False

    def __init__(
        self,
        message: str,
        *,
        upstream_status: Optional[int] = None,
        body: Optional[str] = None,
        network: bool = False,
    ) -> None:
        super().__init__(message)
        self.upstream_status = upstream_status
        self.body = truncate_body(body)
        self.network = network

    def http_status(self) -> int:
        if self.forward_status and self.upstream_status and 400 <= self.upstream_status < 600:
            return self.upstream_status
        return self.status_code


class SynthesisError(UpstreamError):
    forward_status = True


class StorageError(UpstreamError):
    pass


class TranscriptionError(UpstreamError):
    pass
