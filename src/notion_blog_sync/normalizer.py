"""Map raw Notion database pages onto the NormalizedPost model.

Every property lookup goes through ``get_path`` so that a missing property,
a missing nested object or an unexpected type falls through to the field's
default instead of raising.
"""

from __future__ import annotations

import math
import re
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

from .models import NormalizedPost
from .timestamps import iso_timestamp, parse_timestamp, utcnow

DEFAULT_TITLE = "Untitled"
DEFAULT_CATEGORY = "Uncategorized"
DEFAULT_IMAGE_URL = "/images/blog-placeholder.jpg"
DEFAULT_MIN_READ = "2 Min Read"
NO_DATE = "No date"

_DAY_SECONDS = 60 * 60 * 24
_MONTH_SECONDS = _DAY_SECONDS * 30
_WHITESPACE = re.compile(r"\s+")


def get_path(obj: Any, *keys: str) -> Any:
    """Walk nested mappings, returning None as soon as a level is missing."""
    current = obj
    for key in keys:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
        if current is None:
            return None
    return current


def get_text_or_default(runs: Any, default: str) -> str:
    """Join the ``plain_text`` of a rich-text array; empty or absent -> default."""
    if not isinstance(runs, list):
        return default
    text = "".join(
        str(run.get("plain_text") or "") for run in runs if isinstance(run, dict)
    )
    return text or default


def get_string_or_default(value: Any, default: str) -> str:
    if isinstance(value, str) and value:
        return value
    return default


def get_number_or_default(value: Any, default: int = 0) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if isinstance(value, float) and not math.isfinite(value):
        return default
    return int(value) or default


def slugify(title: str) -> str:
    return _WHITESPACE.sub("-", title.lower())


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit if count == 1 else unit + 's'} ago"


def format_relative_date(when: datetime, now: Optional[datetime] = None) -> str:
    """Render a human label such as "Today", "5 days ago" or "2 years ago".

    Months are counted as 30 days; years as 12 such months.
    """
    now = now or utcnow()
    elapsed = (now - when).total_seconds()
    months = elapsed / _MONTH_SECONDS
    if months < 1:
        days = math.floor(elapsed / _DAY_SECONDS)
        return "Today" if days <= 1 else f"{days} days ago"
    if months < 12:
        return _plural(math.floor(months), "month")
    return _plural(math.floor(months / 12), "year")


def normalize_post(page: Dict[str, Any], now: Optional[datetime] = None) -> NormalizedPost:
    """Build a NormalizedPost from one Notion page object."""
    page_id = page.get("id") if isinstance(page, dict) else None
    if not page_id:
        raise ValueError("Notion page is missing an id.")
    props = get_path(page, "properties") or {}

    title = get_text_or_default(get_path(props, "Title", "title"), DEFAULT_TITLE)

    date_label = NO_DATE
    iso_date = None
    published = parse_timestamp(get_path(props, "Date", "date", "start"))
    if published is not None:
        iso_date = iso_timestamp(published)
        date_label = format_relative_date(published, now)

    return NormalizedPost(
        id=str(page_id),
        title=title,
        date=date_label,
        iso_date=iso_date,
        summary=get_text_or_default(get_path(props, "Summary", "rich_text"), ""),
        category=get_string_or_default(
            get_path(props, "Category", "select", "name"), DEFAULT_CATEGORY
        ),
        slug=get_text_or_default(get_path(props, "Slug", "rich_text"), slugify(title)),
        image_url=get_string_or_default(
            get_path(props, "R2ImageUrl", "url"), DEFAULT_IMAGE_URL
        ),
        min_read=get_text_or_default(
            get_path(props, "MinRead", "rich_text"), DEFAULT_MIN_READ
        ),
        likes=get_number_or_default(get_path(props, "Likes", "number")),
        comments=get_number_or_default(get_path(props, "Comments", "number")),
    )


def normalize_posts(
    pages: Iterable[Dict[str, Any]], now: Optional[datetime] = None
) -> list[NormalizedPost]:
    now = now or utcnow()
    return [normalize_post(page, now) for page in pages]
