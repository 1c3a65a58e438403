"""
Almacenamiento de audios en Cloudflare R2 (API S3 vía boto3).
Clave: audios/<YYYY>/<MM>/<DD>/<userId saneado>_<epoch ms>.<ext>
Un solo intento por subida; el llamador decide si reintenta.
"""
import logging
import re
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import boto3.session
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..core.config import Settings
from ..core.errors import StorageConfigError, StorageError
from ..models.speech import DEFAULT_USER_ID, StoredAudioRef

log = logging.getLogger("voice_relay.storage")

_UNSAFE = re.compile(r"[^A-Za-z0-9_.@-]")


def sanitize_user_id(user_id: Any) -> str:
    if user_id is None or user_id == "":
        user_id = DEFAULT_USER_ID
    return _UNSAFE.sub("_", str(user_id))


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def epoch_millis(now: datetime) -> int:
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    delta = now - _EPOCH
    return (delta.days * 86400 + delta.seconds) * 1000 + delta.microseconds // 1000


def build_object_key(user_id: Any, extension: str, now: datetime) -> str:
    epoch_ms = epoch_millis(now)
    return (
        f"audios/{now.year:04d}/{now.month:02d}/{now.day:02d}/"
        f"{sanitize_user_id(user_id)}_{epoch_ms}.{extension.lstrip('.')}"
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ObjectStore:
    def __init__(
        self,
        settings: Settings,
        client: Optional[Any] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.settings = settings
        self.bucket = settings.R2_BUCKET
        self.public_base_url = settings.R2_PUBLIC_BASE_URL.rstrip("/")
        self.max_bytes = settings.STORAGE_MAX_UPLOAD_BYTES
        self.clock = clock
        self._client = client
        self._client_error: Optional[str] = None
        # El cliente se arma una sola vez, fuera del camino de la petición
        if self._client is None and self.enabled:
            self._client = self._build_client()

    @property
    def enabled(self) -> bool:
        return bool(self.bucket and self.public_base_url and self.settings.r2_endpoint_configured)

    def _build_client(self):
        s = self.settings
        try:
            session = boto3.session.Session(
                aws_access_key_id=s.R2_ACCESS_KEY_ID or None,
                aws_secret_access_key=s.R2_SECRET_ACCESS_KEY or None,
            )
            return session.client(
                "s3",
                region_name="auto",
                endpoint_url=s.r2_endpoint,
                config=Config(
                    connect_timeout=s.HTTP_TIMEOUT_SECONDS,
                    read_timeout=s.HTTP_TIMEOUT_SECONDS,
                    retries={"total_max_attempts": 1},
                ),
            )
        except (ValueError, BotoCoreError) as e:
            log.error(f"[storage] no se pudo crear el cliente S3 endpoint={s.r2_endpoint}: {e}")
            self._client_error = str(e)
            return None

    def store(self, data: bytes, user_id: Any, extension: str, content_type: str) -> StoredAudioRef:
        if not self.enabled:
            raise StorageConfigError(
                "Config R2 faltante (R2_BUCKET, R2_PUBLIC_BASE_URL o R2_ACCOUNT_ID/R2_ENDPOINT_URL)"
            )
        if self._client is None:
            raise StorageError("Cliente R2 inválido", body=self._client_error)
        if not data:
            raise StorageError("No se puede subir un audio vacío")
        if len(data) > self.max_bytes:
            raise StorageError(f"Audio de {len(data)} bytes excede el límite de {self.max_bytes}")

        key = build_object_key(user_id, extension, self.clock())
        try:
            self._client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except ClientError as e:
            status = e.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
            log.error(f"[storage] put_object falló key={key} status={status}: {e}")
            raise StorageError("Error al guardar el audio", upstream_status=status, body=str(e)) from e
        except BotoCoreError as e:
            log.error(f"[storage] put_object falló key={key}: {e}")
            raise StorageError("Error al guardar el audio", body=str(e), network=True) from e

        log.info(f"[storage] subido key={key} bytes={len(data)} type={content_type}")
        return StoredAudioRef(
            uri=f"{self.public_base_url}/{key}",
            size=len(data),
            content_type=content_type,
            key=key,
        )
