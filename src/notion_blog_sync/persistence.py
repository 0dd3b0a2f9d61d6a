"""Write the sync artifact and its timestamped backup to an object store."""

from __future__ import annotations

import json
import logging
import posixpath
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from .errors import PersistenceError
from .storage import ObjectStore
from .timestamps import key_safe_timestamp, utcnow

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"


@dataclass
class PersistResult:
    primary_key: str
    size_bytes: int
    backup_key: Optional[str] = None
    backup_error: Optional[str] = None


def serialize_document(document: Any) -> bytes:
    """Pretty-printed JSON; keys keep the order the document was built in."""
    return json.dumps(document, indent=2, ensure_ascii=False).encode("utf-8")


def cache_directive(max_age: int) -> str:
    return f"max-age={max_age}"


def backup_key_for(artifact_key: str, completed_at: datetime, prefix: str = "backups/") -> str:
    """``backups/blog-data-2025-01-01T00-00-00-000Z.json`` for ``blog-data.json``."""
    stem, ext = posixpath.splitext(posixpath.basename(artifact_key))
    prefix = prefix if not prefix or prefix.endswith("/") else f"{prefix}/"
    return f"{prefix}{stem}-{key_safe_timestamp(completed_at)}{ext or '.json'}"


def persist_document(
    store: ObjectStore,
    document: Any,
    *,
    artifact_key: str = "blog-data.json",
    backup_prefix: str = "backups/",
    cache_max_age: int = 3600,
    completed_at: Optional[datetime] = None,
) -> PersistResult:
    """Write ``document`` to ``artifact_key``, then a best-effort backup copy.

    A failed primary write raises PersistenceError and skips the backup. A
    failed backup write is logged and reported on the result only.
    """
    payload = serialize_document(document)
    cache_control = cache_directive(cache_max_age)

    try:
        store.put(
            artifact_key,
            payload,
            content_type=JSON_CONTENT_TYPE,
            cache_control=cache_control,
        )
    except Exception as exc:
        raise PersistenceError(
            f"Failed to write {artifact_key} to the {store.name} store: {exc}"
        ) from exc
    logger.info(
        "Uploaded %s (%.2f KB) to the %s store",
        artifact_key,
        len(payload) / 1024,
        store.name,
    )

    result = PersistResult(primary_key=artifact_key, size_bytes=len(payload))
    backup_key = backup_key_for(artifact_key, completed_at or utcnow(), backup_prefix)
    try:
        store.put(
            backup_key,
            payload,
            content_type=JSON_CONTENT_TYPE,
            cache_control=cache_control,
        )
    except Exception as exc:  # noqa: BLE001
        logger.error("Backup write to %s failed: %s", backup_key, exc)
        result.backup_error = str(exc)
        return result

    logger.info("Created backup at %s", backup_key)
    result.backup_key = backup_key
    return result
