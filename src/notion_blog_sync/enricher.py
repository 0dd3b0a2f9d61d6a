"""Attach rendered page bodies to normalized posts."""

from __future__ import annotations

import logging
from typing import Callable, Iterable, List

from .models import CONTENT_ERROR, NormalizedPost

logger = logging.getLogger(__name__)

RenderFn = Callable[[str], str]


def enrich_post(post: NormalizedPost, render: RenderFn) -> NormalizedPost:
    """Return a copy of ``post`` with ``content`` filled in.

    A failure for this post is logged and replaced by the error sentinel so the
    rest of the batch can continue.
    """
    try:
        content = render(post.id)
    except Exception as exc:  # noqa: BLE001
        logger.error("Error getting content for %s: %s", post.title, exc)
        content = CONTENT_ERROR
    return post.model_copy(update={"content": content})


def enrich_posts(posts: Iterable[NormalizedPost], render: RenderFn) -> List[NormalizedPost]:
    """Render each post's body one at a time, in input order."""
    enriched = [enrich_post(post, render) for post in posts]
    failures = sum(1 for post in enriched if post.content == CONTENT_ERROR)
    if failures:
        logger.warning("Content enrichment failed for %d of %d posts", failures, len(enriched))
    return enriched
