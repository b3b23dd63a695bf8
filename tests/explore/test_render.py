from __future__ import annotations

import io
import json

from pgweb_cli.explore import render, schema_tree
from pgweb_cli.explore.types import PaginationState, QueryStats, ResultSet, SortState, StatementChunk


class StubLogger:
    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    def info(self, message: str) -> None:
        self.messages.append(("info", message))

    def warning(self, message: str) -> None:
        self.messages.append(("warning", message))

    def debug(self, message: str) -> None:
        self.messages.append(("debug", message))

    def error(self, message: str) -> None:
        self.messages.append(("error", message))

    def success(self, message: str) -> None:
        self.messages.append(("success", message))


def test_render_result_csv_writes_empty_for_null() -> None:
    buffer = io.StringIO()
    result = ResultSet(columns=("id", "email"), rows=[(1, None), (2, "b@example.com")])

    render.render_result(result, output_format="csv", logger=StubLogger(), stream=buffer)

    lines = buffer.getvalue().strip().splitlines()
    assert lines == ["id,email", "1,", "2,b@example.com"]


def test_render_result_json() -> None:
    buffer = io.StringIO()
    result = ResultSet(columns=("id", "tags"), rows=[(1, ["a", "b"])])

    render.render_result(result, output_format="json", logger=StubLogger(), stream=buffer)

    assert json.loads(buffer.getvalue()) == [{"id": 1, "tags": ["a", "b"]}]


def test_render_result_table_escapes_markup() -> None:
    buffer = io.StringIO()
    logger = StubLogger()
    result = ResultSet(
        columns=("note",),
        rows=[("[bold]not markup[/bold]",), (None,)],
        stats=QueryStats(rows_count=2, query_duration_ms=1.5),
    )

    render.render_result(result, output_format="table", logger=logger, stream=buffer)

    output = buffer.getvalue()
    assert "[bold]not markup[/bold]" in output
    assert "NULL" in output
    assert ("info", "2 rows in 1.5 ms") in logger.messages


def test_render_result_error_goes_to_logger() -> None:
    buffer = io.StringIO()
    logger = StubLogger()

    render.render_result(ResultSet.failure("Query timeout after 300s"), output_format="table", logger=logger, stream=buffer)

    assert buffer.getvalue() == ""
    assert logger.messages == [("error", "Error: Query timeout after 300s")]


def test_render_empty_result_notes_no_rows() -> None:
    logger = StubLogger()
    render.render_result(ResultSet(columns=("id",), rows=[]), output_format="table", logger=logger, stream=io.StringIO())
    assert ("info", "No rows.") in logger.messages


def test_render_pagination_summary() -> None:
    logger = StubLogger()
    render.render_pagination(
        PaginationState(page=2, page_size=100, total_rows=250, total_pages=3),
        logger=logger,
        sort=SortState("id", "DESC"),
        where="age > '30'",
    )
    assert logger.messages == [
        ("info", "Page 2 of 3 · 250 rows · 100 per page · sorted by id DESC · where age > '30'")
    ]


def test_render_schema_tree_json() -> None:
    tree = schema_tree.build(["public"], {"public": {"table": ["users"]}})
    buffer = io.StringIO()

    render.render_schema_tree(tree, output_format="json", logger=StubLogger(), stream=buffer)

    payload = json.loads(buffer.getvalue())
    assert payload["public"]["table"] == [{"name": "users", "id": "public.users"}]
    assert payload["public"]["sequence"] == []


def test_render_schema_tree_collapses_other_schemas() -> None:
    tree = schema_tree.build(["public", "audit"], {"public": {"table": ["users"]}, "audit": {"table": ["log"]}})
    buffer = io.StringIO()

    render.render_schema_tree(tree, output_format="table", logger=StubLogger(), stream=buffer)

    output = buffer.getvalue()
    assert "users" in output
    assert "audit (1)" in output
    assert "log" not in output.replace("audit", "")


def test_render_statement_reports_highlight() -> None:
    logger = StubLogger()
    render.render_statement("select 2;", StatementChunk("select 2;", 2, 3), logger=logger)
    assert logger.messages == [("debug", "Running rows 3-3: select 2;")]
