import pytest

from notion_blog_sync.errors import SourceQueryError
from notion_blog_sync.models import DatabaseQuery
from notion_blog_sync.paginator import fetch_all_pages


class _FakeSource:
    """Serves pre-built pages and records every request body."""

    def __init__(self, page_sizes, fail_on=None):
        self.pages = []
        counter = 0
        for index, size in enumerate(page_sizes):
            items = [{"id": f"rec-{counter + i}"} for i in range(size)]
            counter += size
            last = index == len(page_sizes) - 1
            self.pages.append(
                {
                    "results": items,
                    "has_more": not last,
                    "next_cursor": None if last else f"cursor-{index + 1}",
                }
            )
        self.fail_on = fail_on
        self.calls = []

    def __call__(self, database_id, body):
        self.calls.append((database_id, dict(body)))
        index = len(self.calls) - 1
        if self.fail_on is not None and index == self.fail_on:
            raise SourceQueryError("rate limited", code="rate_limited", status=429)
        return self.pages[index]


def test_two_pages_are_concatenated_in_order():
    source = _FakeSource([100, 37])
    result = fetch_all_pages(source, DatabaseQuery(database_id="db-1"))

    assert result.page_count == 2
    assert result.record_count == 137
    assert [r["id"] for r in result.results] == [f"rec-{i}" for i in range(137)]
    assert len(source.calls) == 2


def test_cursor_is_threaded_between_requests():
    source = _FakeSource([2, 2, 1])
    query = DatabaseQuery(
        database_id="db-1",
        filter={"property": "Published", "checkbox": {"equals": True}},
        sorts=[{"property": "Date", "direction": "descending"}],
        page_size=2,
    )
    fetch_all_pages(source, query)

    bodies = [body for _, body in source.calls]
    assert "start_cursor" not in bodies[0]
    assert bodies[1]["start_cursor"] == "cursor-1"
    assert bodies[2]["start_cursor"] == "cursor-2"
    assert all(body["page_size"] == 2 for body in bodies)
    assert all(body["filter"]["property"] == "Published" for body in bodies)
    assert all(db == "db-1" for db, _ in source.calls)


def test_single_empty_page():
    result = fetch_all_pages(_FakeSource([0]), DatabaseQuery(database_id="db-1"))
    assert result.page_count == 1
    assert result.results == []


def test_page_failure_propagates_with_code():
    source = _FakeSource([100, 100, 5], fail_on=1)
    with pytest.raises(SourceQueryError) as excinfo:
        fetch_all_pages(source, DatabaseQuery(database_id="db-1"))
    assert excinfo.value.code == "rate_limited"
    assert excinfo.value.status == 429
    assert len(source.calls) == 2


def test_has_more_without_cursor_is_an_error():
    def broken(database_id, body):
        return {"results": [{"id": "x"}], "has_more": True, "next_cursor": None}

    with pytest.raises(SourceQueryError):
        fetch_all_pages(broken, DatabaseQuery(database_id="db-1"))


@pytest.mark.parametrize("size", [0, 101])
def test_page_size_is_bounded(size):
    with pytest.raises(ValueError):
        fetch_all_pages(_FakeSource([1]), DatabaseQuery(database_id="db-1", page_size=size))


def test_many_pages_accumulate_without_touching_responses():
    source = _FakeSource([3] * 250)
    result = fetch_all_pages(source, DatabaseQuery(database_id="db-1", page_size=3))

    assert result.page_count == 250
    assert [item["id"] for item in result.results] == [f"rec-{i}" for i in range(750)]
    assert all(len(page["results"]) == 3 for page in source.pages)
