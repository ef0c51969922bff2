from __future__ import annotations

from pathlib import Path
from urllib.parse import parse_qs, urlparse

import boto3
import pytest
from botocore.client import Config
from botocore.exceptions import ClientError

from vidingest.core.config import get_settings
from vidingest.core.storage import LocalObjectStore, S3ObjectStore, get_object_store
from vidingest.ingest.errors import StoreError


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def s3_client():
    return boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="AKIDEXAMPLE",
        aws_secret_access_key="secret",
        config=Config(signature_version="s3v4"),
    )


def test_default_backend_is_local():
    settings = get_settings()
    store = get_object_store(settings)
    assert isinstance(store, LocalObjectStore)


def test_selecting_s3_returns_s3_store(monkeypatch):
    monkeypatch.setenv("VIDINGEST_STORAGE_BACKEND", "s3")
    monkeypatch.setenv("VIDINGEST_S3_BUCKET", "videos")
    monkeypatch.setenv("VIDINGEST_S3_REGION", "us-east-1")
    store = get_object_store(get_settings())
    assert isinstance(store, S3ObjectStore)
    assert store.bucket == "videos"


def test_s3_backend_requires_bucket(monkeypatch):
    monkeypatch.setenv("VIDINGEST_STORAGE_BACKEND", "s3")
    monkeypatch.delenv("VIDINGEST_S3_BUCKET", raising=False)
    with pytest.raises(ValueError):
        get_settings()


def test_local_put_overwrites_by_key(tmp_path: Path):
    store = LocalObjectStore(tmp_path / "bucket")
    first = tmp_path / "first.mp4"
    first.write_bytes(b"one")
    second = tmp_path / "second.mp4"
    second.write_bytes(b"two")

    store.put("landscape/abc.mp4", first, "video/mp4")
    store.put("landscape/abc.mp4", second, "video/mp4")

    assert (tmp_path / "bucket" / "landscape" / "abc.mp4").read_bytes() == b"two"


def test_local_sign_embeds_expiry(tmp_path: Path):
    store = LocalObjectStore(tmp_path / "bucket")
    url = store.sign("portrait/abc.mp4", 360)

    parsed = urlparse(url)
    assert parsed.scheme == "file"
    assert parsed.path.endswith("/bucket/portrait/abc.mp4")
    assert int(parse_qs(parsed.query)["expires"][0]) > 0
    assert not (tmp_path / "bucket" / "portrait").exists()


def test_local_rejects_escaping_keys(tmp_path: Path):
    store = LocalObjectStore(tmp_path / "bucket")
    source = tmp_path / "x.mp4"
    source.write_bytes(b"x")
    with pytest.raises(StoreError):
        store.put("../outside.mp4", source, "video/mp4")


def test_local_put_missing_source_is_store_error(tmp_path: Path):
    store = LocalObjectStore(tmp_path / "bucket")
    with pytest.raises(StoreError):
        store.put("other/abc.mp4", tmp_path / "missing.mp4", "video/mp4")


def test_s3_sign_produces_presigned_get(s3_client):
    store = S3ObjectStore("videos", client=s3_client)

    url = store.sign("landscape/abc.mp4", 360)

    parsed = urlparse(url)
    query = parse_qs(parsed.query)
    assert "landscape/abc.mp4" in parsed.path or parsed.netloc.startswith("videos.")
    assert query["X-Amz-Expires"] == ["360"]
    assert "X-Amz-Signature" in query


def test_s3_put_passes_content_type(s3_client, monkeypatch, tmp_path: Path):
    calls = []
    monkeypatch.setattr(s3_client, "upload_file", lambda *args, **kwargs: calls.append((args, kwargs)))
    source = tmp_path / "abc.mp4.processed"
    source.write_bytes(b"x")

    S3ObjectStore("videos", client=s3_client).put("other/abc.mp4", source, "video/mp4")

    assert calls == [((str(source), "videos", "other/abc.mp4"), {"ExtraArgs": {"ContentType": "video/mp4"}})]


def test_s3_put_failure_is_store_error(s3_client, monkeypatch, tmp_path: Path):
    def _fail(*args, **kwargs):
        raise ClientError({"Error": {"Code": "NoSuchBucket", "Message": "bucket missing"}}, "PutObject")

    monkeypatch.setattr(s3_client, "upload_file", _fail)
    source = tmp_path / "abc.mp4.processed"
    source.write_bytes(b"x")

    with pytest.raises(StoreError) as excinfo:
        S3ObjectStore("videos", client=s3_client).put("other/abc.mp4", source, "video/mp4")
    assert "NoSuchBucket" in str(excinfo.value)
