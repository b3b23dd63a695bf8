"""Normalize the backend's schema and object listings into a display-ready tree."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from pgweb_cli.shared.exceptions import ResponseShapeError

from .types import (
    AUTOCOMPLETE_KINDS,
    OBJECT_KINDS,
    AutocompleteItem,
    ResultSet,
    SchemaObject,
    SchemaTree,
)

DEFAULT_EXPANDED_SCHEMA = "public"
DEFAULT_EXPANDED_KIND = "table"


def build(
    schema_names: Iterable[str],
    raw_objects_by_schema: Mapping[str, Mapping[str, Any]],
) -> SchemaTree:
    """Build a gap-filled :class:`SchemaTree`.

    Every schema in ``schema_names`` appears even when the objects listing
    omitted it. Schemas present only in the objects listing are kept too.
    """
    ordered: list[str] = []
    for name in schema_names:
        if name not in ordered:
            ordered.append(name)
    for name in sorted(raw_objects_by_schema):
        if name not in ordered:
            ordered.append(name)

    schemas: dict[str, dict[str, tuple[SchemaObject, ...]]] = {}
    autocomplete: list[AutocompleteItem] = []
    for schema in ordered:
        raw_groups = raw_objects_by_schema.get(schema) or {}
        if not isinstance(raw_groups, Mapping):
            raise ResponseShapeError(f"Objects for schema '{schema}' must be an object.")
        groups: dict[str, tuple[SchemaObject, ...]] = {}
        for kind in OBJECT_KINDS:
            groups[kind] = tuple(_normalise_entry(schema, kind, entry) for entry in raw_groups.get(kind) or ())
            if kind in AUTOCOMPLETE_KINDS:
                autocomplete.extend(AutocompleteItem(label=obj.name, kind=kind) for obj in groups[kind])
        schemas[schema] = groups

    expanded_schemas: set[str] = set()
    expanded_groups: set[tuple[str, str]] = set()
    if DEFAULT_EXPANDED_SCHEMA in schemas:
        expanded_schemas.add(DEFAULT_EXPANDED_SCHEMA)
        expanded_groups.add((DEFAULT_EXPANDED_SCHEMA, DEFAULT_EXPANDED_KIND))
    if len(schemas) == 1:
        expanded_schemas.update(schemas)

    return SchemaTree(
        schemas=schemas,
        autocomplete=tuple(autocomplete),
        expanded_schemas=frozenset(expanded_schemas),
        expanded_groups=frozenset(expanded_groups),
    )


def objects_from_rows(result: ResultSet) -> dict[str, dict[str, list[Any]]]:
    """Group a ``schema, name, type`` row listing by schema and kind.

    Columns are matched by name; an ``oid`` column, when present, carries the
    backend id functions need. Other columns (``owner``, ...) are ignored.
    """
    try:
        schema_idx = result.columns.index("schema")
        name_idx = result.columns.index("name")
        kind_idx = result.columns.index("type")
    except ValueError as exc:
        raise ResponseShapeError("Object rows must carry schema, name and type columns.") from exc
    oid_idx = result.columns.index("oid") if "oid" in result.columns else None

    objects: dict[str, dict[str, list[Any]]] = {}
    for row in result.rows:
        schema, name, kind = str(row[schema_idx]), str(row[name_idx]), str(row[kind_idx])
        groups = objects.setdefault(schema, {kind_name: [] for kind_name in OBJECT_KINDS})
        if kind not in groups:
            continue
        if oid_idx is not None and row[oid_idx] is not None:
            groups[kind].append({"name": name, "oid": str(row[oid_idx])})
        else:
            groups[kind].append(name)
    return objects


def build_from_payloads(schemas_payload: Any, objects_payload: Any) -> SchemaTree:
    """Validate raw ``/schemas`` and ``/objects`` bodies and build the tree."""
    schema_names = _schema_names(schemas_payload)

    if isinstance(objects_payload, Mapping) and "columns" in objects_payload and "rows" in objects_payload:
        result = ResultSet.from_payload(objects_payload)
        if result.is_error:
            raise ResponseShapeError(result.error or "Malformed objects listing")
        raw_objects: Mapping[str, Any] = objects_from_rows(result)
    elif isinstance(objects_payload, Mapping):
        raw_objects = objects_payload
    else:
        raise ResponseShapeError("Objects listing must be an object keyed by schema.")
    return build(schema_names, raw_objects)


def _schema_names(payload: Any) -> list[str]:
    # Either a plain list of names or a single-column result set.
    if isinstance(payload, list):
        return [str(name) for name in payload]
    if isinstance(payload, Mapping) and "rows" in payload:
        rows: Sequence[Any] = payload.get("rows") or []
        return [str(row[0]) for row in rows if row]
    raise ResponseShapeError("Schema listing must be a list of names.")


def _normalise_entry(schema: str, kind: str, entry: Any) -> SchemaObject:
    if isinstance(entry, str):
        name, backend_id = entry, None
    elif isinstance(entry, Mapping) and entry.get("name"):
        name = str(entry["name"])
        raw_id = entry.get("oid", entry.get("id"))
        backend_id = str(raw_id) if raw_id is not None else None
    else:
        raise ResponseShapeError(f"Unrecognised {kind} entry in schema '{schema}': {entry!r}")

    if kind == "function":
        # Overloaded functions share a name, only the backend id is unique.
        if backend_id is None:
            raise ResponseShapeError(f"Function '{schema}.{name}' is missing its backend id.")
        return SchemaObject(name=name, id=backend_id, kind=kind)
    return SchemaObject(name=name, id=f"{schema}.{name}", kind=kind)
