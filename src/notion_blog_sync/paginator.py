"""Cursor-driven pagination over a Notion database query."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from .errors import SourceQueryError
from .models import DatabaseQuery, PaginationResult

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100

QueryPage = Callable[[str, Dict[str, Any]], Dict[str, Any]]


def fetch_all_pages(query_page: QueryPage, query: DatabaseQuery) -> PaginationResult:
    """Fetch every page of ``query`` and concatenate the results in source order.

    ``query_page(database_id, body)`` performs one request. The loop ends only
    when a response reports ``has_more`` as false; any failing request aborts
    the whole fetch.
    """
    if not 1 <= query.page_size <= MAX_PAGE_SIZE:
        raise ValueError(f"page_size must be between 1 and {MAX_PAGE_SIZE}.")

    logger.info(
        "Starting pagination for database %s...", query.database_id[:8]
    )
    results: List[Dict[str, Any]] = []
    cursor: Optional[str] = None
    page_count = 0
    has_more = True

    while has_more:
        page_count += 1
        try:
            response = query_page(query.database_id, query.body(cursor))
        except SourceQueryError as exc:
            if exc.code:
                logger.error("Notion API error on page %d: %s", page_count, exc)
            else:
                logger.error("Notion database query failed on page %d: %s", page_count, exc)
            raise

        page_results = response.get("results") or []
        results.extend(page_results)
        has_more = bool(response.get("has_more"))
        cursor = response.get("next_cursor")
        logger.info(
            "Page %d: retrieved %d records (total so far: %d)",
            page_count,
            len(page_results),
            len(results),
        )
        if has_more and not cursor:
            raise SourceQueryError(
                f"Notion reported more results after page {page_count} but sent no cursor."
            )

    logger.info(
        "Pagination complete: %d pages fetched, %d records retrieved",
        page_count,
        len(results),
    )
    return PaginationResult(results=results, page_count=page_count)
