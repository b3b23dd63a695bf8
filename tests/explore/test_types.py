from __future__ import annotations

import pytest

from pgweb_cli.explore.session import SessionContext
from pgweb_cli.explore.types import ObjectRef, QueryStats, ResultSet


def test_result_set_from_payload() -> None:
    result = ResultSet.from_payload(
        {
            "columns": ["id", "name"],
            "rows": [[1, "ann"], [2, None]],
            "stats": {"rows_count": 2, "query_duration_ms": 0.8},
        }
    )
    assert not result.is_error
    assert result.columns == ("id", "name")
    assert result.rows == [(1, "ann"), (2, None)]
    assert result.stats == QueryStats(rows_count=2, query_duration_ms=0.8)
    assert result.rows_count == 2


def test_error_payload_becomes_failure() -> None:
    result = ResultSet.from_payload({"error": "permission denied for table users"})
    assert result.is_error
    assert result.error == "permission denied for table users"
    assert result.rows == ()


@pytest.mark.parametrize(
    "payload",
    [
        ["not", "an", "object"],
        "plain text",
        {"columns": "id", "rows": []},
        {"columns": [1, 2], "rows": []},
        {"columns": ["id"], "rows": [1, 2]},
        {"columns": ["id"], "rows": [[1, 2]]},
        {"columns": ["id"], "rows": [[1]], "stats": "fast"},
        {"columns": ["id"], "rows": [[1]], "pagination": {"rows_count": "lots"}},
    ],
)
def test_malformed_payloads_become_failures(payload) -> None:
    result = ResultSet.from_payload(payload)
    assert result.is_error
    assert result.error.startswith("Malformed response")


@pytest.mark.parametrize(
    "pagination",
    [
        {"rows_count": -1, "page": 1, "pages_count": 1, "per_page": 100},
        {"rows_count": 10, "page": -2, "per_page": 100},
        {"rows_count": 10, "pages_count": -1},
        {"rows_count": 10, "per_page": 0},
    ],
)
def test_out_of_range_pagination_is_malformed(pagination) -> None:
    result = ResultSet.from_payload({"columns": ["id"], "rows": [], "pagination": pagination})
    assert result.is_error
    assert result.error.startswith("Malformed response: pagination")


def test_out_of_range_pagination_leaves_session_untouched() -> None:
    session = SessionContext(session_id="s-1")
    session.select_object(ObjectRef(name="public.users", kind="table"))
    before = session.pagination

    session.apply_result(
        ResultSet.from_payload(
            {
                "columns": ["id"],
                "rows": [],
                "pagination": {"rows_count": -1, "page": 1, "pages_count": 1, "per_page": 100},
            }
        )
    )

    assert session.pagination == before


def test_rows_count_prefers_pagination() -> None:
    result = ResultSet.from_payload(
        {"columns": ["id"], "rows": [[1]], "pagination": {"rows_count": 250, "page": 1}}
    )
    assert result.rows_count == 250


def test_object_ref_identity() -> None:
    assert ObjectRef(name="public.users", kind="table").identity == "public.users"
    assert ObjectRef(name="public.add", kind="function", id="16401").identity == "16401"


def test_object_ref_validation() -> None:
    with pytest.raises(ValueError):
        ObjectRef(name="public.users", kind="index")
    with pytest.raises(ValueError):
        ObjectRef(name="", kind="table")
