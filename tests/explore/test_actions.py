from __future__ import annotations

import pytest

from pgweb_cli.explore.actions import DEFAULT_CAPABILITIES, ActionSpec, CapabilityTable
from pgweb_cli.explore.types import ObjectRef
from pgweb_cli.shared.exceptions import UnsupportedActionError


@pytest.mark.parametrize(
    "kind, actions",
    [
        ("table", ["rows", "structure", "indexes", "constraints", "info"]),
        ("view", ["rows", "structure", "info"]),
        ("materialized_view", ["rows", "structure", "indexes", "info"]),
        ("sequence", ["rows", "structure"]),
        ("function", ["definition"]),
    ],
)
def test_default_capabilities(kind: str, actions: list[str]) -> None:
    assert DEFAULT_CAPABILITIES.actions_for(kind) == actions


def test_unsupported_action_raises() -> None:
    with pytest.raises(UnsupportedActionError) as excinfo:
        DEFAULT_CAPABILITIES.lookup("view", "indexes")
    assert "rows, structure, info" in str(excinfo.value)
    assert not DEFAULT_CAPABILITIES.supports("function", "rows")


def test_request_path_uses_identity() -> None:
    table = ObjectRef(name="public.users", kind="table")
    function = ObjectRef(name="public.add", kind="function", id="16401")

    assert DEFAULT_CAPABILITIES.lookup("table", "rows").request_path(table) == "/tables/public.users/rows"
    assert DEFAULT_CAPABILITIES.lookup("function", "definition").request_path(function) == "/functions/16401"


def test_request_path_escapes_identity() -> None:
    odd = ObjectRef(name="my schema.a/b", kind="table")
    spec = DEFAULT_CAPABILITIES.lookup("table", "structure")
    assert spec.request_path(odd) == "/tables/my%20schema.a%2Fb"


def test_materialized_view_structure_sends_type() -> None:
    spec = DEFAULT_CAPABILITIES.lookup("materialized_view", "structure")
    assert spec.params == {"type": "materialized_view"}


def test_register_extends_table() -> None:
    table = CapabilityTable(entries=())
    table.register("view", ActionSpec("definition", "Definition", "/tables/{id}/definition"))
    assert table.actions_for("view") == ["definition"]
    assert table.actions_for("table") == []
