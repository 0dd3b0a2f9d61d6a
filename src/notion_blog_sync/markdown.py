"""Render a Notion page's block tree as Markdown text."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from .errors import EnrichmentError, SourceQueryError
from .notion import NotionClient

_LIST_TYPES = {"bulleted_list_item", "numbered_list_item", "to_do"}
_INDENT = "  "


def rich_text_to_markdown(runs: Optional[List[Dict[str, Any]]]) -> str:
    """Join rich-text runs, applying inline annotations and links."""
    parts: list[str] = []
    for run in runs or []:
        text = run.get("plain_text") or ""
        if not text:
            continue
        annotations = run.get("annotations") or {}
        if annotations.get("code"):
            text = f"`{text}`"
        if annotations.get("bold"):
            text = f"**{text}**"
        if annotations.get("italic"):
            text = f"_{text}_"
        if annotations.get("strikethrough"):
            text = f"~~{text}~~"
        href = run.get("href")
        if href:
            text = f"[{text}]({href})"
        parts.append(text)
    return "".join(parts)


def _file_url(data: Dict[str, Any]) -> str:
    source = data.get(data.get("type") or "") or {}
    return source.get("url") or ""


def render_block(block: Dict[str, Any], index: int = 1) -> Optional[str]:
    """Markdown for a single block, without its children. None when unsupported."""
    block_type = block.get("type") or ""
    data = block.get(block_type) or {}
    text = rich_text_to_markdown(data.get("rich_text"))

    if block_type == "paragraph":
        return text
    if block_type in {"heading_1", "heading_2", "heading_3"}:
        return f"{'#' * int(block_type[-1])} {text}"
    if block_type == "bulleted_list_item":
        return f"- {text}"
    if block_type == "numbered_list_item":
        return f"{index}. {text}"
    if block_type == "to_do":
        mark = "x" if data.get("checked") else " "
        return f"- [{mark}] {text}"
    if block_type == "quote":
        return f"> {text}"
    if block_type == "callout":
        icon = (data.get("icon") or {}).get("emoji") or ""
        return f"> {icon} {text}".rstrip() if icon else f"> {text}"
    if block_type == "toggle":
        return f"<details><summary>{text}</summary></details>"
    if block_type == "code":
        language = data.get("language") or ""
        return f"```{language}\n{rich_text_to_markdown(data.get('rich_text'))}\n```"
    if block_type == "divider":
        return "---"
    if block_type in {"image", "video", "file", "pdf"}:
        caption = rich_text_to_markdown(data.get("caption")) or block_type
        url = _file_url(data)
        prefix = "!" if block_type == "image" else ""
        return f"{prefix}[{caption}]({url})"
    if block_type in {"bookmark", "embed", "link_preview"}:
        url = data.get("url") or ""
        caption = rich_text_to_markdown(data.get("caption")) or url
        return f"[{caption}]({url})"
    if block_type == "child_page":
        return f"## {data.get('title') or ''}".rstrip()
    if block_type == "equation":
        return f"$$\n{data.get('expression') or ''}\n$$"
    return None


def _render_table(client: NotionClient, block: Dict[str, Any]) -> str:
    rows = fetch_children(client, block["id"])
    lines: list[str] = []
    for position, row in enumerate(rows):
        cells = (row.get("table_row") or {}).get("cells") or []
        lines.append("| " + " | ".join(rich_text_to_markdown(c) for c in cells) + " |")
        if position == 0:
            lines.append("|" + " --- |" * len(cells))
    return "\n".join(lines)


def _render_toggle(client: NotionClient, block: Dict[str, Any], depth: int) -> str:
    """A collapsible section; child blocks sit between the summary and the closing tag."""
    indent = _INDENT * depth
    summary = rich_text_to_markdown((block.get("toggle") or {}).get("rich_text"))
    lines = [f"{indent}<details>", f"{indent}<summary>{summary}</summary>"]
    if block.get("has_children"):
        children = render_blocks(client, fetch_children(client, block["id"]), depth)
        if children:
            lines.extend(["", *children, ""])
    lines.append(f"{indent}</details>")
    return "\n".join(lines)


def fetch_children(client: NotionClient, block_id: str) -> List[Dict[str, Any]]:
    """All child blocks of ``block_id``, following the children cursor."""
    blocks: List[Dict[str, Any]] = []
    cursor: Optional[str] = None
    while True:
        response = client.list_block_children(block_id, start_cursor=cursor)
        blocks.extend(response.get("results") or [])
        if not response.get("has_more"):
            return blocks
        cursor = response.get("next_cursor")
        if not cursor:
            raise SourceQueryError(
                f"Notion reported more children of block {block_id} but sent no cursor."
            )


def render_blocks(
    client: NotionClient, blocks: List[Dict[str, Any]], depth: int = 0
) -> List[str]:
    """Render sibling blocks; nested children are indented under their parent."""
    chunks: list[tuple[bool, str]] = []
    numbered = 0
    indent = _INDENT * depth
    for block in blocks:
        block_type = block.get("type")
        numbered = numbered + 1 if block_type == "numbered_list_item" else 0

        if block_type == "table":
            chunks.append((False, _render_table(client, block)))
            continue
        if block_type == "toggle":
            chunks.append((False, _render_toggle(client, block, depth)))
            continue

        rendered = render_block(block, index=numbered)
        if rendered is None:
            continue
        lines = [indent + line if line else line for line in rendered.split("\n")]
        chunk = "\n".join(lines)

        if block.get("has_children") and block_type not in {"child_page", "child_database"}:
            children = render_blocks(client, fetch_children(client, block["id"]), depth + 1)
            if children:
                chunk = chunk + "\n" + "\n".join(children)
        chunks.append((block_type in _LIST_TYPES, chunk))
    return _join_chunks(chunks)


def _join_chunks(chunks: list[tuple[bool, str]]) -> List[str]:
    """Keep consecutive list items together; separate everything else by a blank line."""
    output: list[str] = []
    previous_list = False
    for is_list, text in chunks:
        if output and not (is_list and previous_list):
            output.append("")
        output.append(text)
        previous_list = is_list
    return output


def render_page_markdown(client: NotionClient, page_id: str) -> str:
    """Fetch and render the body of one page."""
    try:
        blocks = fetch_children(client, page_id)
        return "\n".join(render_blocks(client, blocks)).strip("\n")
    except SourceQueryError as exc:
        raise EnrichmentError(f"Could not load content for page {page_id}: {exc}") from exc
