"""Capability table mapping ``(object kind, action)`` to a backend request."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

from pgweb_cli.shared.exceptions import UnsupportedActionError

from .types import ObjectRef

ACTIONS = ("rows", "structure", "indexes", "constraints", "info", "definition")


@dataclass(frozen=True, slots=True)
class ActionSpec:
    """How to fetch one view of an object. ``{id}`` in the path is the object identity."""

    action: str
    title: str
    path: str
    method: str = "GET"
    params: Mapping[str, Any] = field(default_factory=dict)
    paginated: bool = False

    def request_path(self, ref: ObjectRef) -> str:
        return self.path.format(id=quote(ref.identity, safe=""))


_ROWS = ActionSpec("rows", "Rows", "/tables/{id}/rows", paginated=True)
_STRUCTURE = ActionSpec("structure", "Structure", "/tables/{id}")
_INDEXES = ActionSpec("indexes", "Indexes", "/tables/{id}/indexes")
_CONSTRAINTS = ActionSpec("constraints", "Constraints", "/tables/{id}/constraints")
_INFO = ActionSpec("info", "Info", "/tables/{id}/info")

_CAPABILITIES: Sequence[tuple[str, ActionSpec]] = (
    ("table", _ROWS),
    ("table", _STRUCTURE),
    ("table", _INDEXES),
    ("table", _CONSTRAINTS),
    ("table", _INFO),
    ("view", _ROWS),
    ("view", _STRUCTURE),
    ("view", _INFO),
    ("materialized_view", _ROWS),
    (
        "materialized_view",
        ActionSpec("structure", "Structure", "/tables/{id}", params={"type": "materialized_view"}),
    ),
    ("materialized_view", _INDEXES),
    ("materialized_view", _INFO),
    ("sequence", _ROWS),
    ("sequence", _STRUCTURE),
    ("function", ActionSpec("definition", "Definition", "/functions/{id}")),
)


class CapabilityTable:
    """Explicit lookup of what can be done with each kind of object."""

    def __init__(self, entries: Sequence[tuple[str, ActionSpec]] = _CAPABILITIES) -> None:
        self._entries: dict[tuple[str, str], ActionSpec] = {}
        for kind, spec in entries:
            self.register(kind, spec)

    def register(self, kind: str, spec: ActionSpec) -> None:
        self._entries[(kind, spec.action)] = spec

    def lookup(self, kind: str, action: str) -> ActionSpec:
        spec = self._entries.get((kind, action))
        if spec is None:
            available = ", ".join(self.actions_for(kind)) or "none"
            raise UnsupportedActionError(
                f"Action '{action}' is not available for {kind} objects. Available: {available}."
            )
        return spec

    def actions_for(self, kind: str) -> list[str]:
        return [action for (entry_kind, action) in self._entries if entry_kind == kind]

    def supports(self, kind: str, action: str) -> bool:
        return (kind, action) in self._entries


DEFAULT_CAPABILITIES = CapabilityTable()
