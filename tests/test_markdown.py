import pytest

from notion_blog_sync.errors import EnrichmentError, SourceQueryError
from notion_blog_sync.markdown import (
    render_block,
    render_page_markdown,
    rich_text_to_markdown,
)


def _text(content, **annotations):
    return {"plain_text": content, "annotations": annotations, "href": None}


def _block(block_id, block_type, has_children=False, **data):
    return {"id": block_id, "type": block_type, "has_children": has_children, block_type: data}


class _FakeBlocks:
    """Serves block children keyed by parent id, split into pages of ``page``."""

    def __init__(self, tree, page=100, fail_for=None):
        self.tree = tree
        self.page = page
        self.fail_for = fail_for
        self.requests = []

    def list_block_children(self, block_id, start_cursor=None, page_size=100):
        self.requests.append((block_id, start_cursor))
        if block_id == self.fail_for:
            raise SourceQueryError("object not found", code="object_not_found", status=404)
        children = self.tree.get(block_id, [])
        start = int(start_cursor or 0)
        end = start + self.page
        has_more = end < len(children)
        return {
            "results": children[start:end],
            "has_more": has_more,
            "next_cursor": str(end) if has_more else None,
        }


def test_rich_text_annotations_and_links():
    runs = [
        _text("bold", bold=True),
        _text(" and "),
        _text("code", code=True),
        {"plain_text": "link", "annotations": {}, "href": "https://example.com"},
    ]
    assert rich_text_to_markdown(runs) == "**bold** and `code`[link](https://example.com)"


def test_render_block_variants():
    assert render_block(_block("h", "heading_2", rich_text=[_text("Title")])) == "## Title"
    assert render_block(_block("t", "to_do", rich_text=[_text("Ship")], checked=True)) == "- [x] Ship"
    assert render_block(_block("q", "quote", rich_text=[_text("Said")])) == "> Said"
    assert render_block(_block("d", "divider")) == "---"
    assert (
        render_block(_block("c", "code", rich_text=[_text("print(1)")], language="python"))
        == "```python\nprint(1)\n```"
    )
    image = _block(
        "i", "image", type="external", external={"url": "https://img/x.png"}, caption=[]
    )
    assert render_block(image) == "![image](https://img/x.png)"
    assert render_block(_block("u", "unsupported")) is None


def test_render_page_joins_blocks_and_nests_children():
    tree = {
        "page-1": [
            _block("b1", "heading_1", rich_text=[_text("Intro")]),
            _block("b2", "paragraph", rich_text=[_text("First paragraph.")]),
            _block("b3", "numbered_list_item", rich_text=[_text("one")]),
            _block("b4", "numbered_list_item", has_children=True, rich_text=[_text("two")]),
            _block("b5", "paragraph", rich_text=[_text("After list.")]),
        ],
        "b4": [_block("b4a", "bulleted_list_item", rich_text=[_text("nested")])],
    }
    markdown = render_page_markdown(_FakeBlocks(tree), "page-1")

    assert markdown == (
        "# Intro\n"
        "\n"
        "First paragraph.\n"
        "\n"
        "1. one\n"
        "2. two\n"
        "  - nested\n"
        "\n"
        "After list."
    )


def test_render_page_follows_children_cursor():
    tree = {
        "page-1": [
            _block(f"p{i}", "paragraph", rich_text=[_text(f"para {i}")]) for i in range(5)
        ]
    }
    fake = _FakeBlocks(tree, page=2)
    markdown = render_page_markdown(fake, "page-1")

    assert markdown.count("para") == 5
    assert [cursor for _, cursor in fake.requests] == [None, "2", "4"]


def test_render_table():
    def row(*cells):
        return _block("r", "table_row", cells=[[_text(c)] for c in cells])

    tree = {
        "page-1": [_block("tbl", "table", has_children=True, table_width=2)],
        "tbl": [row("a", "b"), row("1", "2")],
    }
    assert render_page_markdown(_FakeBlocks(tree), "page-1") == (
        "| a | b |\n| --- | --- |\n| 1 | 2 |"
    )


def test_source_failure_becomes_enrichment_error():
    with pytest.raises(EnrichmentError):
        render_page_markdown(_FakeBlocks({}, fail_for="page-1"), "page-1")


def test_toggle_children_render_inside_details():
    tree = {
        "page-1": [
            _block("t1", "toggle", has_children=True, rich_text=[_text("More")]),
            _block("p1", "paragraph", rich_text=[_text("After.")]),
        ],
        "t1": [
            _block("c1", "paragraph", rich_text=[_text("Hidden one.")]),
            _block("c2", "bulleted_list_item", rich_text=[_text("item")]),
        ],
    }
    assert render_page_markdown(_FakeBlocks(tree), "page-1") == (
        "<details>\n"
        "<summary>More</summary>\n"
        "\n"
        "Hidden one.\n"
        "\n"
        "- item\n"
        "\n"
        "</details>\n"
        "\n"
        "After."
    )


def test_children_without_cursor_is_an_enrichment_error():
    class _Truncating(_FakeBlocks):
        def list_block_children(self, block_id, start_cursor=None, page_size=100):
            response = super().list_block_children(block_id, start_cursor, page_size)
            response["next_cursor"] = None
            return response

    tree = {"page-1": [_block(f"p{i}", "paragraph", rich_text=[_text("x")]) for i in range(3)]}
    fake = _Truncating(tree, page=2)
    with pytest.raises(EnrichmentError):
        render_page_markdown(fake, "page-1")
    assert len(fake.requests) == 1
