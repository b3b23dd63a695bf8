"""Per-session browsing state: selected object, pagination, sort and filter."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pgweb_cli.shared.exceptions import ValidationError

from . import filters
from . import pagination as paging
from .commands import (
    ClearFilter,
    ClearSort,
    Command,
    GoToPage,
    NextPage,
    PrevPage,
    SelectObject,
    SetFilter,
    SetRowsLimit,
    SetSort,
)
from .types import SORT_ASC, SORT_DESC, FilterState, ObjectRef, PaginationState, ResultSet, SortState

DEFAULT_ROWS_LIMIT = 100


@dataclass(slots=True)
class SessionContext:
    """Mutable state owned by one controller; every transition is one method call."""

    session_id: str
    rows_limit: int = DEFAULT_ROWS_LIMIT
    current_object: ObjectRef | None = None
    pagination: PaginationState = field(default_factory=lambda: paging.initial_state(DEFAULT_ROWS_LIMIT))
    sort: SortState | None = None
    filter: FilterState | None = None

    def __post_init__(self) -> None:
        if self.rows_limit < 1:
            raise ValidationError("Rows limit must be at least 1.")
        if self.pagination.page_size != self.rows_limit:
            self.pagination = paging.initial_state(self.rows_limit)

    def select_object(self, ref: ObjectRef) -> None:
        self.current_object = ref
        self.pagination = paging.initial_state(self.rows_limit)
        self.sort = None
        self.filter = None

    def reset(self) -> None:
        """Forget the selected object and everything derived from it."""
        self.current_object = None
        self.pagination = paging.initial_state(self.rows_limit)
        self.sort = None
        self.filter = None

    def set_sort(self, column: str) -> SortState:
        """Sort by ``column``; selecting the sorted column again flips the order."""
        if not column:
            raise ValidationError("Sort column is required.")
        if self.sort is not None and self.sort.column == column:
            order = SORT_DESC if self.sort.order == SORT_ASC else SORT_ASC
            self.sort = SortState(column=column, order=order)
        else:
            self.sort = SortState(column=column, order=SORT_ASC)
        return self.sort

    def clear_sort(self) -> None:
        self.sort = None

    def set_filter(self, column: str, operator: str, value: str = "") -> FilterState:
        filters.validate(column, operator, value)
        self.filter = FilterState(column=column, operator=operator, value=value or "")
        self.pagination = paging.go_to(self.pagination, 1)
        return self.filter

    def clear_filter(self) -> None:
        self.filter = None

    def next_page(self) -> bool:
        """Move forward one page. Returns False at the last page."""
        if not paging.has_next(self.pagination):
            return False
        self.pagination = paging.next_page(self.pagination)
        return True

    def prev_page(self) -> bool:
        """Move back one page. Returns False at the first page."""
        if not paging.has_prev(self.pagination):
            return False
        self.pagination = paging.prev_page(self.pagination)
        return True

    def go_to_page(self, page: int) -> bool:
        moved = paging.go_to(self.pagination, page)
        changed = moved.page != self.pagination.page
        self.pagination = moved
        return changed

    def set_rows_limit(self, limit: int) -> None:
        if limit < 1:
            raise ValidationError("Rows limit must be at least 1.")
        self.rows_limit = int(limit)
        self.pagination = paging.with_page_size(self.pagination, self.rows_limit)

    def apply_result(self, result: ResultSet) -> None:
        """Fold a rows response into the pagination state."""
        if result.is_error:
            return
        if result.pagination:
            self.pagination = paging.from_backend(result.pagination, self.pagination)
        else:
            self.pagination = paging.with_total_rows(self.pagination, result.rows_count)

    def where_clause(self) -> str | None:
        if self.filter is None:
            return None
        return filters.build(self.filter.column, self.filter.operator, self.filter.value)

    def rows_params(self) -> dict[str, Any]:
        """Query parameters for the rows endpoint of the current object."""
        params: dict[str, Any] = {
            "limit": self.pagination.page_size,
            "offset": paging.offset(self.pagination),
        }
        if self.sort is not None:
            params["sort_column"] = self.sort.column
            params["sort_order"] = self.sort.order
        where = self.where_clause()
        if where:
            params["where"] = where
        return params

    def dispatch(self, command: Command) -> Any:
        """Apply one intent. Returns whatever the underlying operation returns."""
        if isinstance(command, SelectObject):
            return self.select_object(command.ref)
        if isinstance(command, SetSort):
            return self.set_sort(command.column)
        if isinstance(command, ClearSort):
            return self.clear_sort()
        if isinstance(command, SetFilter):
            return self.set_filter(command.column, command.operator, command.value)
        if isinstance(command, ClearFilter):
            return self.clear_filter()
        if isinstance(command, NextPage):
            return self.next_page()
        if isinstance(command, PrevPage):
            return self.prev_page()
        if isinstance(command, GoToPage):
            return self.go_to_page(command.page)
        if isinstance(command, SetRowsLimit):
            return self.set_rows_limit(command.limit)
        raise ValidationError(f"Unsupported command: {command!r}")
