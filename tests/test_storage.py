import io
from datetime import datetime, timezone

import pytest
from botocore.exceptions import ClientError

from notion_blog_sync.config import Settings
from notion_blog_sync.storage import (
    LocalObjectStore,
    S3ObjectStore,
    build_store,
    infer_content_type,
)


class FakeS3Client:
    """In-memory stand-in for the subset of the boto3 S3 client we call."""

    def __init__(self):
        self.objects = {}
        self.put_calls = []

    def put_object(self, **params):
        self.put_calls.append(params)
        self.objects[params["Key"]] = params

    def get_object(self, Bucket, Key):
        if Key not in self.objects:
            raise ClientError(
                {"Error": {"Code": "NoSuchKey", "Message": "missing"}}, "GetObject"
            )
        stored = self.objects[Key]
        response = {"Body": io.BytesIO(stored["Body"]), "ContentType": stored["ContentType"]}
        if "CacheControl" in stored:
            response["CacheControl"] = stored["CacheControl"]
        return response

    def list_objects_v2(self, Bucket, MaxKeys, Prefix=""):
        keys = sorted(k for k in self.objects if k.startswith(Prefix))
        return {
            "Contents": [
                {
                    "Key": key,
                    "Size": len(self.objects[key]["Body"]),
                    "LastModified": datetime(2025, 1, 1, tzinfo=timezone.utc),
                }
                for key in keys[:MaxKeys]
            ],
            "IsTruncated": len(keys) > MaxKeys,
        }


def test_infer_content_type():
    assert infer_content_type("notes/a.txt") == "text/plain"
    assert infer_content_type("blog-data.json") == "application/json"
    assert infer_content_type("blob") == "application/octet-stream"
    assert infer_content_type("notes/a.txt", "text/markdown") == "text/markdown"


def test_s3_store_round_trip_and_metadata():
    client = FakeS3Client()
    store = S3ObjectStore(client, "blog-bucket")

    store.put("blog-data.json", b"{}", content_type="application/json", cache_control="max-age=3600")
    stored = store.get("blog-data.json")

    assert client.put_calls[0]["Bucket"] == "blog-bucket"
    assert client.put_calls[0]["CacheControl"] == "max-age=3600"
    assert stored.body == b"{}"
    assert stored.content_type == "application/json"
    assert stored.cache_control == "max-age=3600"
    assert store.get("missing.json") is None


def test_s3_store_reraises_other_errors():
    class Denied(FakeS3Client):
        def get_object(self, Bucket, Key):
            raise ClientError({"Error": {"Code": "AccessDenied"}}, "GetObject")

    with pytest.raises(ClientError):
        S3ObjectStore(Denied(), "b").get("x")


def test_s3_store_list_reports_truncation():
    client = FakeS3Client()
    store = S3ObjectStore(client, "b")
    for key in ("backups/a.json", "backups/b.json", "blog-data.json"):
        store.put(key, b"x")

    listing = store.list(prefix="backups/", limit=1)

    assert [o.key for o in listing.objects] == ["backups/a.json"]
    assert listing.truncated is True
    assert listing.objects[0].uploaded.startswith("2025-01-01")


def test_local_store_round_trip(tmp_path):
    store = LocalObjectStore(tmp_path)
    store.put("notes/a.txt", b"hello")

    stored = store.get("notes/a.txt")
    assert stored.body == b"hello"
    assert stored.content_type == "text/plain"
    assert stored.cache_control is None
    assert (tmp_path / "notes" / "a.txt").read_bytes() == b"hello"
    assert store.get("notes/missing.txt") is None


def test_local_store_keeps_declared_metadata(tmp_path):
    store = LocalObjectStore(tmp_path)
    store.put("data", b"[]", content_type="application/json", cache_control="max-age=60")

    stored = store.get("data")
    assert stored.content_type == "application/json"
    assert stored.cache_control == "max-age=60"


def test_local_store_list_hides_metadata(tmp_path):
    store = LocalObjectStore(tmp_path)
    for key in ("b.json", "a.json", "backups/c.json"):
        store.put(key, b"{}")

    listing = store.list()
    assert [o.key for o in listing.objects] == ["a.json", "b.json", "backups/c.json"]
    assert listing.truncated is False

    limited = store.list(limit=2)
    assert len(limited.objects) == 2
    assert limited.truncated is True

    assert [o.key for o in store.list(prefix="backups/").objects] == ["backups/c.json"]


@pytest.mark.parametrize("key", ["../escape.txt", "", "dir/", ".metadata/x.json"])
def test_local_store_rejects_bad_keys(tmp_path, key):
    with pytest.raises(ValueError):
        LocalObjectStore(tmp_path / "root").put(key, b"x")


def test_local_store_rejects_key_prefix_collisions(tmp_path):
    store = LocalObjectStore(tmp_path)
    store.put("notes/a.txt", b"a")
    with pytest.raises(ValueError, match="other objects are stored under it"):
        store.put("notes", b"x")

    store.put("drafts", b"d")
    with pytest.raises(ValueError, match="'drafts' occupies its prefix"):
        store.put("drafts/b.txt", b"x")

    assert store.get("notes/a.txt").body == b"a"
    assert store.get("drafts").body == b"d"


def test_build_store_selection(tmp_path, monkeypatch):
    monkeypatch.setattr(
        "notion_blog_sync.storage.create_s3_client", lambda settings: FakeS3Client()
    )
    nothing = Settings(_env_file=None, r2_bucket=None, local_store_dir=None)
    local = Settings(_env_file=None, r2_bucket=None, local_store_dir=str(tmp_path))
    both = Settings(_env_file=None, r2_bucket="blog", local_store_dir=str(tmp_path))

    assert build_store(nothing) is None
    assert isinstance(build_store(local), LocalObjectStore)
    assert isinstance(build_store(both), S3ObjectStore)
    assert isinstance(build_store(both, "local"), LocalObjectStore)
    assert build_store(local, "r2") is None
    with pytest.raises(ValueError):
        build_store(local, "ftp")


def test_r2_endpoint_derived_from_account():
    settings = Settings(_env_file=None, r2_account_id="abc123", r2_endpoint_url=None)
    assert settings.resolved_r2_endpoint() == "https://abc123.r2.cloudflarestorage.com"
