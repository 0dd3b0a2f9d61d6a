"""Minimal Notion REST client built on httpx.

Only the three calls the sync needs are exposed: database query, database
retrieve and block children listing. Each call is attempted once; transport
errors, non-2xx responses and unreadable bodies raise SourceQueryError.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from .errors import SourceQueryError

logger = logging.getLogger(__name__)

NOTION_VERSION = "2022-06-28"
DEFAULT_BASE_URL = "https://api.notion.com/v1"


class NotionClient:
    """Synchronous Notion API client."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Notion-Version": NOTION_VERSION,
                "Content-Type": "application/json",
            },
        )

    def __enter__(self) -> "NotionClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def query_database(
        self, database_id: str, body: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """POST /databases/{id}/query; returns results, has_more and next_cursor."""
        payload = self._request(
            "POST", f"/databases/{database_id}/query", json=body or {}
        )
        if not isinstance(payload.get("results"), list):
            raise SourceQueryError("Database query response has no results list.")
        return payload

    def retrieve_database(self, database_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/databases/{database_id}")

    def list_block_children(
        self, block_id: str, start_cursor: Optional[str] = None, page_size: int = 100
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {"page_size": page_size}
        if start_cursor:
            params["start_cursor"] = start_cursor
        return self._request("GET", f"/blocks/{block_id}/children", params=params)

    def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise SourceQueryError(
                f"Notion request {method} {path} failed: {exc}"
            ) from exc

        logger.debug("Notion %s %s -> %s", method, path, response.status_code)
        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.is_error:
            code = None
            message = response.text or response.reason_phrase
            if isinstance(payload, dict):
                code = payload.get("code")
                message = payload.get("message") or message
            raise SourceQueryError(message, code=code, status=response.status_code)

        if not isinstance(payload, dict):
            raise SourceQueryError(
                f"Notion returned a non-JSON body for {method} {path}.",
                status=response.status_code,
            )
        return payload


def database_title(database: Dict[str, Any]) -> str:
    """Plain-text title of a database object, or "Unnamed Database"."""
    runs = database.get("title") or []
    if runs and isinstance(runs[0], dict) and runs[0].get("plain_text"):
        return runs[0]["plain_text"]
    return "Unnamed Database"
