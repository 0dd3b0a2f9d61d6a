"""Object store backends: Cloudflare R2 (S3 API via boto3) and a local directory.

Both expose the same three operations so the pipeline and the HTTP gateway
never depend on where objects live.
"""

from __future__ import annotations

import json
import mimetypes
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from .config import Settings
from .file_lock import locked_path
from .models import ObjectListing, ObjectSummary, StoredObject

DEFAULT_CONTENT_TYPE = "application/octet-stream"
_METADATA_DIR = ".metadata"


def infer_content_type(key: str, declared: Optional[str] = None) -> str:
    """Use the declared type if present, else guess from the key's extension."""
    if declared:
        return declared
    guessed, _ = mimetypes.guess_type(key)
    return guessed or DEFAULT_CONTENT_TYPE


class ObjectStore(ABC):
    """Key-addressed byte storage."""

    name = "store"

    @abstractmethod
    def put(
        self,
        key: str,
        body: bytes,
        *,
        content_type: Optional[str] = None,
        cache_control: Optional[str] = None,
    ) -> None:
        ...

    @abstractmethod
    def get(self, key: str) -> Optional[StoredObject]:
        ...

    @abstractmethod
    def list(self, prefix: str = "", limit: int = 1000) -> ObjectListing:
        ...


class S3ObjectStore(ObjectStore):
    """Bucket on any S3-compatible service (Cloudflare R2 in production)."""

    name = "r2"

    def __init__(self, client: Any, bucket: str) -> None:
        self._client = client
        self.bucket = bucket

    def put(self, key, body, *, content_type=None, cache_control=None):
        params: dict[str, Any] = {
            "Bucket": self.bucket,
            "Key": key,
            "Body": body,
            "ContentType": infer_content_type(key, content_type),
        }
        if cache_control:
            params["CacheControl"] = cache_control
        self._client.put_object(**params)

    def get(self, key):
        from botocore.exceptions import ClientError

        try:
            response = self._client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            if code in {"NoSuchKey", "404", "NotFound"}:
                return None
            raise
        body = response["Body"].read()
        return StoredObject(
            key=key,
            body=body,
            content_type=response.get("ContentType") or infer_content_type(key),
            cache_control=response.get("CacheControl"),
        )

    def list(self, prefix="", limit=1000):
        params: dict[str, Any] = {"Bucket": self.bucket, "MaxKeys": limit}
        if prefix:
            params["Prefix"] = prefix
        response = self._client.list_objects_v2(**params)
        objects = []
        for item in response.get("Contents") or []:
            modified = item.get("LastModified")
            objects.append(
                ObjectSummary(
                    key=item["Key"],
                    size=int(item.get("Size") or 0),
                    uploaded=modified.isoformat() if modified else None,
                )
            )
        return ObjectListing(objects=objects, truncated=bool(response.get("IsTruncated")))


class LocalObjectStore(ObjectStore):
    """Objects as files under a root directory, metadata in JSON sidecars."""

    name = "local"

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).expanduser().resolve()

    def _path_for(self, key: str) -> Path:
        if not key or key.endswith("/"):
            raise ValueError(f"Invalid object key: {key!r}")
        path = (self.root / key).resolve()
        if self.root not in path.parents:
            raise ValueError(f"Object key escapes the store root: {key!r}")
        if _METADATA_DIR in path.relative_to(self.root).parts:
            raise ValueError(f"Object key uses a reserved path: {key!r}")
        return path

    def _metadata_path(self, key: str) -> Path:
        return self.root / _METADATA_DIR / f"{key}.json"

    def _reject_collisions(self, key: str, path: Path) -> None:
        # A directory tree cannot hold both "notes" and "notes/a.txt"; R2 can.
        if path.is_dir():
            raise ValueError(
                f"Local store cannot hold {key!r}: other objects are stored under it."
            )
        for parent in path.parents:
            if parent == self.root:
                break
            if parent.is_file():
                existing = parent.relative_to(self.root).as_posix()
                raise ValueError(
                    f"Local store cannot hold {key!r}: object {existing!r} occupies its prefix."
                )

    def put(self, key, body, *, content_type=None, cache_control=None):
        path = self._path_for(key)
        metadata = {
            "contentType": infer_content_type(key, content_type),
            "cacheControl": cache_control,
        }
        meta_path = self._metadata_path(key)
        with locked_path(path):
            self._reject_collisions(key, path)
            path.parent.mkdir(parents=True, exist_ok=True)
            meta_path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(body)
            meta_path.write_text(json.dumps(metadata), encoding="utf-8")

    def get(self, key):
        path = self._path_for(key)
        with locked_path(path):
            if not path.is_file():
                return None
            body = path.read_bytes()
            meta_path = self._metadata_path(key)
            metadata = (
                json.loads(meta_path.read_text(encoding="utf-8"))
                if meta_path.exists()
                else {}
            )
        return StoredObject(
            key=key,
            body=body,
            content_type=metadata.get("contentType") or infer_content_type(key),
            cache_control=metadata.get("cacheControl"),
        )

    def list(self, prefix="", limit=1000):
        if not self.root.exists():
            return ObjectListing()
        keys = sorted(
            path.relative_to(self.root).as_posix()
            for path in self.root.rglob("*")
            if path.is_file() and path.relative_to(self.root).parts[0] != _METADATA_DIR
        )
        matching = [key for key in keys if key.startswith(prefix)]
        objects = []
        for key in matching[:limit]:
            stat = (self.root / key).stat()
            uploaded = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
            objects.append(
                ObjectSummary(key=key, size=stat.st_size, uploaded=uploaded.isoformat())
            )
        return ObjectListing(objects=objects, truncated=len(matching) > limit)


def create_s3_client(settings: Settings) -> Any:
    """Create a boto3 S3 client pointed at the configured R2 endpoint."""
    import boto3

    session = boto3.session.Session()
    return session.client(
        "s3",
        endpoint_url=settings.resolved_r2_endpoint(),
        aws_access_key_id=settings.r2_access_key_id,
        aws_secret_access_key=settings.r2_secret_access_key,
        region_name="auto",
    )


def build_store(settings: Settings, sink: str = "auto") -> Optional[ObjectStore]:
    """Pick the store for ``sink`` ("auto", "r2" or "local"); None when unbound."""
    if sink not in {"auto", "r2", "local"}:
        raise ValueError("sink must be 'auto', 'r2' or 'local'.")
    if sink in {"auto", "r2"} and settings.r2_bucket:
        return S3ObjectStore(create_s3_client(settings), settings.r2_bucket)
    if sink in {"auto", "local"} and settings.local_store_dir:
        return LocalObjectStore(settings.local_store_dir)
    return None
