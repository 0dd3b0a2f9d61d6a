"""One sync run: Notion database -> normalized blog document -> object store.

Two modes share the same fetch and persistence path:
- ``posts``: published pages, newest first, normalized and enriched with
  their rendered Markdown body (the document the blog front end reads).
- ``raw``: every page of the database, written exactly as Notion returned it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from functools import partial
from typing import Any, Dict, Optional

from .config import Settings
from .enricher import enrich_posts
from .errors import ConfigurationError, PersistenceError
from .markdown import render_page_markdown
from .models import BatchResult, DatabaseQuery, PaginationResult
from .normalizer import normalize_posts
from .notion import NotionClient, database_title
from .paginator import fetch_all_pages
from .persistence import PersistResult, persist_document
from .schema import validate_blog_document
from .storage import ObjectStore, build_store
from .timestamps import iso_timestamp, utcnow

logger = logging.getLogger(__name__)

SYNC_MODES = ("posts", "raw")


@dataclass
class SyncResult:
    mode: str
    pagination: PaginationResult
    persisted: PersistResult
    batch: Optional[BatchResult] = None


def _require_settings(settings: Settings) -> tuple[str, str]:
    missing = [
        name
        for name, value in (
            ("NOTION_API_KEY", settings.notion_api_key),
            ("NOTION_DATABASE_ID", settings.notion_database_id),
        )
        if not value
    ]
    if missing:
        raise ConfigurationError(
            f"{', '.join(missing)} must be set in the environment or .env file."
        )
    return str(settings.notion_api_key), str(settings.notion_database_id)


def build_query(settings: Settings, database_id: str, mode: str) -> DatabaseQuery:
    if mode == "raw":
        return DatabaseQuery(database_id=database_id, page_size=settings.page_size)
    return DatabaseQuery(
        database_id=database_id,
        filter={
            "property": settings.published_property,
            "checkbox": {"equals": True},
        },
        sorts=[{"property": settings.sort_property, "direction": "descending"}],
        page_size=settings.page_size,
    )


def run_sync(
    settings: Settings,
    *,
    store: Optional[ObjectStore] = None,
    client: Optional[NotionClient] = None,
    mode: str = "posts",
    now: Optional[datetime] = None,
) -> SyncResult:
    """Fetch, build and persist one artifact. Raises on any fatal failure."""
    if mode not in SYNC_MODES:
        raise ValueError(f"mode must be one of {', '.join(SYNC_MODES)}.")
    api_key, database_id = _require_settings(settings)
    if store is None:
        store = build_store(settings)
    if store is None:
        raise ConfigurationError(
            "No object store is bound; set R2_BUCKET or LOCAL_STORE_DIR."
        )

    owns_client = client is None
    if client is None:
        client = NotionClient(
            api_key, base_url=settings.notion_base_url, timeout=settings.notion_timeout
        )

    logger.info("Starting Notion data fetch (%s mode)...", mode)
    try:
        database = client.retrieve_database(database_id)
        logger.info("Database title: %s", database_title(database))

        query = build_query(settings, database_id, mode)
        pagination = fetch_all_pages(client.query_database, query)

        batch: Optional[BatchResult] = None
        if mode == "posts":
            posts = enrich_posts(
                normalize_posts(pagination.results, now),
                partial(render_page_markdown, client),
            )
            completed_at = now or utcnow()
            batch = BatchResult.from_posts(posts, iso_timestamp(completed_at))
            document: Any = batch.to_document()
            try:
                validate_blog_document(document)
            except ValueError as exc:
                raise PersistenceError(str(exc)) from exc
        else:
            completed_at = now or utcnow()
            document = pagination.results

        persisted = persist_document(
            store,
            document,
            artifact_key=settings.artifact_key,
            backup_prefix=settings.backup_prefix,
            cache_max_age=settings.cache_max_age,
            completed_at=completed_at,
        )
    except Exception as exc:
        logger.error("Error fetching Notion data or uploading to the store: %s", exc)
        raise
    finally:
        if owns_client:
            client.close()

    logger.info(
        "Success! Uploaded %d %s to %s",
        batch.total_posts if batch is not None else pagination.record_count,
        "posts" if batch is not None else "records",
        persisted.primary_key,
    )
    return SyncResult(mode=mode, pagination=pagination, persisted=persisted, batch=batch)


def run_sync_logged(settings: Settings, **kwargs: Any) -> Optional[SyncResult]:
    """Run a sync from a detached trigger; failures are logged, never raised."""
    try:
        return run_sync(settings, **kwargs)
    except Exception:  # noqa: BLE001
        logger.exception("Background sync failed")
        return None
