# voice_relay/tests/test_object_store.py
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from voice_relay.core.errors import StorageConfigError, StorageError
from voice_relay.services.object_store import ObjectStore, build_object_key, sanitize_user_id

NOW = datetime(2024, 3, 5, 12, 0, 0, 123000, tzinfo=timezone.utc)


def test_sanitize_user_id():
    assert sanitize_user_id("user@x.y!!") == "user@x.y__"
    assert sanitize_user_id("joão silva/1") == "jo_o_silva_1"
    assert sanitize_user_id("ok_A-9.@") == "ok_A-9.@"
    assert sanitize_user_id(None) == "anonimo"
    assert sanitize_user_id(5511999) == "5511999"


def test_object_key_layout():
    assert build_object_key("user@x.y!!", "mp3", NOW) == "audios/2024/03/05/user@x.y___1709640000123.mp3"


def test_keys_differ_by_millisecond():
    a = build_object_key("u1", "mp3", NOW)
    b = build_object_key("u1", "mp3", NOW + timedelta(milliseconds=1))
    assert a != b


def test_store_uploads_once_and_returns_public_ref(make_settings, fixed_clock):
    s3 = MagicMock()
    store = ObjectStore(make_settings(R2_PUBLIC_BASE_URL="https://pub-test.r2.dev/"), client=s3, clock=fixed_clock)

    ref = store.store(b"ID3data", "5511@c.us", "mp3", "audio/mpeg")

    key = "audios/2024/03/05/5511@c.us_1709640000123.mp3"
    s3.put_object.assert_called_once_with(
        Bucket="audios-test", Key=key, Body=b"ID3data", ContentType="audio/mpeg"
    )
    assert ref.uri == f"https://pub-test.r2.dev/{key}"
    assert ref.size == 7
    assert ref.content_type == "audio/mpeg"
    assert ref.key == key


def test_store_without_bucket_fails_before_upload(make_settings):
    s3 = MagicMock()
    store = ObjectStore(make_settings(R2_BUCKET=""), client=s3)
    with pytest.raises(StorageConfigError):
        store.store(b"data", "u", "mp3", "audio/mpeg")
    s3.put_object.assert_not_called()


def test_store_without_public_url_fails(make_settings):
    store = ObjectStore(make_settings(R2_PUBLIC_BASE_URL=""), client=MagicMock())
    with pytest.raises(StorageConfigError):
        store.store(b"data", "u", "mp3", "audio/mpeg")


def test_store_client_error_is_not_retried(make_settings):
    s3 = MagicMock()
    s3.put_object.side_effect = ClientError(
        {"Error": {"Code": "AccessDenied", "Message": "denied"}, "ResponseMetadata": {"HTTPStatusCode": 403}},
        "PutObject",
    )
    store = ObjectStore(make_settings(), client=s3)
    with pytest.raises(StorageError) as exc:
        store.store(b"data", "u", "mp3", "audio/mpeg")
    assert s3.put_object.call_count == 1
    assert exc.value.upstream_status == 403
    assert exc.value.http_status() == 500


def test_store_network_error(make_settings):
    s3 = MagicMock()
    s3.put_object.side_effect = EndpointConnectionError(endpoint_url="https://acc.r2.cloudflarestorage.com")
    store = ObjectStore(make_settings(), client=s3)
    with pytest.raises(StorageError) as exc:
        store.store(b"data", "u", "mp3", "audio/mpeg")
    assert exc.value.network is True


def test_store_rejects_empty_and_oversized(make_settings):
    s3 = MagicMock()
    store = ObjectStore(make_settings(STORAGE_MAX_UPLOAD_BYTES=4), client=s3)
    with pytest.raises(StorageError):
        store.store(b"", "u", "mp3", "audio/mpeg")
    with pytest.raises(StorageError):
        store.store(b"12345", "u", "mp3", "audio/mpeg")
    s3.put_object.assert_not_called()


def test_store_without_endpoint_is_config_error(make_settings):
    store = ObjectStore(make_settings(R2_ACCOUNT_ID="", R2_ENDPOINT_URL=""))
    assert store.enabled is False
    with pytest.raises(StorageConfigError):
        store.store(b"data", "u", "mp3", "audio/mpeg")


def test_invalid_endpoint_is_storage_error(make_settings):
    store = ObjectStore(make_settings(R2_ENDPOINT_URL="no-es-una-url"))
    with pytest.raises(StorageError) as exc:
        store.store(b"data", "u", "mp3", "audio/mpeg")
    assert exc.value.message == "Cliente R2 inválido"
    assert exc.value.http_status() == 500


def test_client_is_built_once_at_startup(make_settings):
    settings = make_settings(R2_ACCESS_KEY_ID="ak", R2_SECRET_ACCESS_KEY="sk")
    store = ObjectStore(settings)
    client = store._client
    assert client is not None
    assert client.meta.endpoint_url == "https://acc-test.r2.cloudflarestorage.com"
    assert client.meta.config.retries["total_max_attempts"] == 1
