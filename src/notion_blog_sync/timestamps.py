"""Timestamp parsing and formatting shared by the pipeline."""

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(raw: Optional[str | datetime | date]) -> Optional[datetime]:
    """Parse an ISO-8601 date or datetime into an aware UTC datetime.

    Date-only values resolve to midnight UTC and naive datetimes are taken as
    UTC. Returns None for empty or unparseable input.
    """
    if raw is None:
        return None
    if isinstance(raw, datetime):
        parsed = raw
    elif isinstance(raw, date):
        parsed = datetime(raw.year, raw.month, raw.day)
    else:
        txt = str(raw).strip()
        if not txt:
            return None

        # Accept RFC3339 variants such as a trailing "Z" or offsets like "+0000".
        if txt.endswith(("Z", "z")):
            txt = f"{txt[:-1]}+00:00"
        else:
            txt = re.sub(r"([+-]\d{2})(\d{2})$", r"\1:\2", txt)

        try:
            parsed = datetime.fromisoformat(txt)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def iso_timestamp(moment: datetime) -> str:
    """Format as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def key_safe_timestamp(moment: datetime) -> str:
    """ISO timestamp with ``:`` and ``.`` replaced so it can sit in an object key."""
    return re.sub(r"[:.]", "-", iso_timestamp(moment))
