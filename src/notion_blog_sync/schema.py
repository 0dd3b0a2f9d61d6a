"""JSON schema check for the blog document, run before anything is published."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from jsonschema import Draft202012Validator, FormatChecker
from jsonschema.exceptions import ValidationError

BLOG_SCHEMA_PATH = Path(__file__).resolve().parent / "schemas" / "blog_data.schema.json"


@lru_cache(maxsize=None)
def load_schema() -> Dict[str, Any]:
    return json.loads(BLOG_SCHEMA_PATH.read_text(encoding="utf-8"))


def _describe(err: ValidationError, document: Any) -> str:
    path = list(err.absolute_path)
    # Errors inside a post name the post so the offending Notion page can be found.
    if len(path) >= 2 and path[0] == "posts" and isinstance(path[1], int):
        post = document["posts"][path[1]]
        page_id = post.get("id") if isinstance(post, dict) else None
        field = ".".join(str(piece) for piece in path[2:]) or "<post>"
        return f"post {path[1]} ({page_id or 'no id'}) {field}: {err.message}"
    field = ".".join(str(piece) for piece in path) or "<document>"
    return f"{field}: {err.message}"


def validate_blog_document(
    document: Dict[str, Any], schema: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Validate a serialized blog document before it is published.

    Raises ValueError listing every violation, document-level ones first.
    """
    validator = Draft202012Validator(
        schema or load_schema(), format_checker=FormatChecker()
    )
    errors = sorted(
        validator.iter_errors(document),
        key=lambda err: [str(piece) for piece in err.absolute_path],
    )
    if errors:
        problems = "; ".join(_describe(err, document) for err in errors)
        raise ValueError(f"Blog document is invalid: {problems}")
    return document
