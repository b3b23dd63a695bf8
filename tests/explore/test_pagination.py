from __future__ import annotations

import pytest

from pgweb_cli.explore import pagination
from pgweb_cli.explore.types import PaginationState


@pytest.mark.parametrize(
    "rows, size, expected",
    [(0, 100, 1), (1, 100, 1), (100, 100, 1), (101, 100, 2), (250, 100, 3)],
)
def test_pages_count(rows: int, size: int, expected: int) -> None:
    assert pagination.pages_count(rows, size) == expected


def test_pages_count_rejects_bad_size() -> None:
    with pytest.raises(ValueError):
        pagination.pages_count(10, 0)


def test_navigation_respects_bounds() -> None:
    state = pagination.with_total_rows(pagination.initial_state(100), 250)
    assert state == PaginationState(page=1, page_size=100, total_rows=250, total_pages=3)
    assert pagination.offset(state) == 0
    assert not pagination.has_prev(state)
    assert pagination.prev_page(state) == state

    state = pagination.next_page(state)
    assert state.page == 2
    assert pagination.offset(state) == 100

    state = pagination.go_to(state, 99)
    assert state.page == 3
    assert not pagination.has_next(state)
    assert pagination.next_page(state) == state


def test_shrinking_total_clamps_page() -> None:
    state = PaginationState(page=3, page_size=10, total_rows=30, total_pages=3)
    assert pagination.with_total_rows(state, 5).page == 1


def test_with_page_size_resets_to_first_page() -> None:
    state = PaginationState(page=2, page_size=10, total_rows=30, total_pages=3)
    resized = pagination.with_page_size(state, 25)
    assert resized == PaginationState(page=1, page_size=25, total_rows=30, total_pages=2)


def test_from_backend_uses_reported_values() -> None:
    fallback = pagination.initial_state(100)
    state = pagination.from_backend(
        {"rows_count": 250, "page": 2, "pages_count": 3, "per_page": 100}, fallback
    )
    assert state == PaginationState(page=2, page_size=100, total_rows=250, total_pages=3)


def test_state_rejects_out_of_range_page() -> None:
    with pytest.raises(ValueError):
        PaginationState(page=4, page_size=10, total_rows=30, total_pages=3)
