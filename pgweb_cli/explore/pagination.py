"""Pure pagination helpers over :class:`PaginationState`.

Nothing here issues requests; callers re-fetch after updating the state.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import replace

from .types import PaginationState


def offset(state: PaginationState) -> int:
    return (state.page - 1) * state.page_size


def pages_count(rows_count: int, page_size: int) -> int:
    if page_size < 1:
        raise ValueError("page_size must be at least 1.")
    if rows_count <= 0:
        return 1
    return math.ceil(rows_count / page_size)


def initial_state(page_size: int) -> PaginationState:
    return PaginationState(page=1, page_size=page_size, total_rows=0, total_pages=1)


def with_total_rows(state: PaginationState, total_rows: int) -> PaginationState:
    """Recompute the page count for a new row total, clamping the current page."""
    total_rows = max(0, int(total_rows))
    total_pages = pages_count(total_rows, state.page_size)
    return PaginationState(
        page=_clamp(state.page, total_pages),
        page_size=state.page_size,
        total_rows=total_rows,
        total_pages=total_pages,
    )


def with_page_size(state: PaginationState, page_size: int) -> PaginationState:
    """Change the page size and go back to the first page."""
    total_pages = pages_count(state.total_rows, page_size)
    return PaginationState(page=1, page_size=page_size, total_rows=state.total_rows, total_pages=total_pages)


def go_to(state: PaginationState, page: int) -> PaginationState:
    return replace(state, page=_clamp(page, state.total_pages))


def has_next(state: PaginationState) -> bool:
    return state.page < state.total_pages


def has_prev(state: PaginationState) -> bool:
    return state.page > 1


def next_page(state: PaginationState) -> PaginationState:
    """Advance one page; at the last page the same state is returned."""
    return go_to(state, state.page + 1)


def prev_page(state: PaginationState) -> PaginationState:
    """Go back one page; at the first page the same state is returned."""
    return go_to(state, state.page - 1)


def from_backend(pagination: Mapping[str, int], fallback: PaginationState) -> PaginationState:
    """Build a state from the backend's ``{rows_count, page, pages_count, per_page}`` object."""
    page_size = int(pagination.get("per_page") or fallback.page_size)
    total_rows = int(pagination.get("rows_count", fallback.total_rows))
    total_pages = pages_count(total_rows, page_size)
    page = int(pagination.get("page") or fallback.page)
    return PaginationState(
        page=_clamp(page, total_pages),
        page_size=page_size,
        total_rows=total_rows,
        total_pages=total_pages,
    )


def _clamp(page: int, total_pages: int) -> int:
    return min(max(1, page), max(1, total_pages))
