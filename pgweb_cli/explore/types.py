"""Value types shared across the explore modules."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

OBJECT_KINDS = ("table", "view", "materialized_view", "function", "sequence")
RELATION_KINDS = ("table", "view", "materialized_view")
AUTOCOMPLETE_KINDS = ("table", "view", "materialized_view", "function")

SORT_ASC = "ASC"
SORT_DESC = "DESC"


@dataclass(frozen=True, slots=True)
class ObjectRef:
    """The database object currently selected for browsing.

    ``name`` is the display identity (``schema.name`` for relations). Functions
    additionally carry the backend-assigned ``id`` because overloads share a name.
    """

    name: str
    kind: str
    id: str | None = None

    def __post_init__(self) -> None:
        if self.kind not in OBJECT_KINDS:
            raise ValueError(f"Unknown object kind '{self.kind}'.")
        if not self.name:
            raise ValueError("Object name must not be empty.")

    @property
    def identity(self) -> str:
        """Value used in request paths for this object."""
        return self.id or self.name


@dataclass(frozen=True, slots=True)
class PaginationState:
    """Page position within a browsed result set."""

    page: int = 1
    page_size: int = 100
    total_rows: int = 0
    total_pages: int = 1

    def __post_init__(self) -> None:
        if self.page_size < 1:
            raise ValueError("page_size must be at least 1.")
        if self.total_rows < 0:
            raise ValueError("total_rows must not be negative.")
        if self.total_pages < 1:
            raise ValueError("total_pages must be at least 1.")
        if not 1 <= self.page <= self.total_pages:
            raise ValueError(f"page {self.page} outside [1, {self.total_pages}].")


@dataclass(frozen=True, slots=True)
class SortState:
    column: str
    order: str = SORT_ASC


@dataclass(frozen=True, slots=True)
class FilterState:
    column: str
    operator: str
    value: str = ""


@dataclass(frozen=True, slots=True)
class QueryStats:
    rows_count: int
    query_duration_ms: float | None = None


@dataclass(frozen=True, slots=True)
class ResultSet:
    """Normalized tabular response.

    When ``error`` is set the rows and columns carry no display meaning.
    """

    columns: tuple[str, ...] = ()
    rows: Sequence[tuple[Any, ...]] = ()
    error: str | None = None
    stats: QueryStats | None = None
    pagination: Mapping[str, int] | None = None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @property
    def rows_count(self) -> int:
        """Total row count reported by the backend, falling back to the page size."""
        if self.pagination and "rows_count" in self.pagination:
            return int(self.pagination["rows_count"])
        if self.stats is not None:
            return self.stats.rows_count
        return len(self.rows)

    @classmethod
    def failure(cls, message: str) -> ResultSet:
        return cls(error=message)

    @classmethod
    def from_payload(cls, payload: Any) -> ResultSet:
        """Validate a decoded backend body and build a ResultSet.

        Malformed bodies produce an error ResultSet instead of raising so later
        state is never built from a half-understood response.
        """
        if not isinstance(payload, Mapping):
            return cls.failure(f"Malformed response: expected an object, got {type(payload).__name__}")
        if payload.get("error"):
            return cls.failure(str(payload["error"]))

        columns = payload.get("columns") or []
        rows = payload.get("rows") or []
        if not isinstance(columns, list) or not all(isinstance(col, str) for col in columns):
            return cls.failure("Malformed response: 'columns' must be a list of strings")
        if not isinstance(rows, list) or not all(isinstance(row, list) for row in rows):
            return cls.failure("Malformed response: 'rows' must be a list of lists")
        if any(len(row) != len(columns) for row in rows):
            return cls.failure("Malformed response: row width does not match column count")

        try:
            stats = _parse_stats(payload.get("stats"))
            pagination = _parse_pagination(payload.get("pagination"))
        except (TypeError, ValueError) as exc:
            return cls.failure(f"Malformed response: {exc}")

        return cls(
            columns=tuple(columns),
            rows=[tuple(row) for row in rows],
            stats=stats,
            pagination=pagination,
        )


@dataclass(frozen=True, slots=True)
class SchemaObject:
    name: str
    id: str
    kind: str


@dataclass(frozen=True, slots=True)
class AutocompleteItem:
    label: str
    kind: str


@dataclass(frozen=True, slots=True)
class SchemaTree:
    """Gap-filled schema -> kind -> objects mapping plus display metadata."""

    schemas: Mapping[str, Mapping[str, tuple[SchemaObject, ...]]]
    autocomplete: tuple[AutocompleteItem, ...] = ()
    expanded_schemas: frozenset[str] = field(default_factory=frozenset)
    expanded_groups: frozenset[tuple[str, str]] = field(default_factory=frozenset)

    def objects(self, schema: str, kind: str) -> tuple[SchemaObject, ...]:
        return tuple(self.schemas.get(schema, {}).get(kind, ()))

    def find(self, identity: str) -> SchemaObject | None:
        """Locate an object by its id (``schema.name`` or function id)."""
        for groups in self.schemas.values():
            for entries in groups.values():
                for entry in entries:
                    if entry.id == identity:
                        return entry
        return None


@dataclass(frozen=True, slots=True)
class StatementChunk:
    """A run of consecutive non-blank editor lines, rows ``[start_row, end_row)``."""

    text: str
    start_row: int
    end_row: int


@dataclass(frozen=True, slots=True)
class ResolvedStatement:
    """Text to execute and, for multi-chunk buffers, the range to highlight."""

    text: str
    highlight: StatementChunk | None = None


def _parse_stats(raw: Any) -> QueryStats | None:
    if raw is None:
        return None
    if not isinstance(raw, Mapping):
        raise TypeError("'stats' must be an object")
    duration = raw.get("query_duration_ms")
    return QueryStats(
        rows_count=int(raw.get("rows_count", 0)),
        query_duration_ms=float(duration) if duration is not None else None,
    )


def _parse_pagination(raw: Any) -> dict[str, int] | None:
    if raw is None:
        return None
    if not isinstance(raw, Mapping):
        raise TypeError("'pagination' must be an object")
    parsed: dict[str, int] = {}
    for key in ("rows_count", "page", "pages_count", "per_page"):
        if key in raw:
            parsed[key] = int(raw[key])
    for key in ("rows_count", "page", "pages_count"):
        if parsed.get(key, 0) < 0:
            raise ValueError(f"pagination '{key}' must not be negative")
    if "per_page" in parsed and parsed["per_page"] < 1:
        raise ValueError("pagination 'per_page' must be at least 1")
    return parsed
