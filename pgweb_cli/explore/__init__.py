"""Public exports for the pgweb-explore package."""

from .actions import ActionSpec, CapabilityTable
from .controller import ExplorerController, QueryOutcome
from .gateway import RequestGateway
from .session import SessionContext
from .types import (
    FilterState,
    ObjectRef,
    PaginationState,
    ResolvedStatement,
    ResultSet,
    SchemaObject,
    SchemaTree,
    SortState,
    StatementChunk,
)

__all__ = [
    "ActionSpec",
    "CapabilityTable",
    "ExplorerController",
    "FilterState",
    "ObjectRef",
    "PaginationState",
    "QueryOutcome",
    "RequestGateway",
    "ResolvedStatement",
    "ResultSet",
    "SchemaObject",
    "SchemaTree",
    "SessionContext",
    "SortState",
    "StatementChunk",
]
