"""Controller tying the session state to the request gateway.

The controller owns exactly one :class:`SessionContext` and one
:class:`RequestGateway`. UI intents become method calls here; each call updates
state, issues at most a couple of requests and hands back normalized values.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import httpx

from pgweb_cli.shared.config import AppConfig
from pgweb_cli.shared.exceptions import BackendError, ResponseShapeError, ValidationError
from pgweb_cli.shared.preferences import TABS, StateStore, new_session_id

from . import schema_tree, statements
from .actions import DEFAULT_CAPABILITIES, CapabilityTable
from .gateway import RequestGateway
from .session import SessionContext
from .types import ObjectRef, ResolvedStatement, ResultSet, SchemaTree

logger = logging.getLogger(__name__)

QUERY_MODES = {"query": "/query", "explain": "/explain", "analyze": "/analyze"}
EXPORT_FORMATS = ("csv", "json", "xml")

# Statements after which the object listing may be stale.
_SCHEMA_CHANGE_PATTERN = re.compile(r"^\s*(create|drop|alter|rename|truncate)\b", re.IGNORECASE | re.MULTILINE)


@dataclass(frozen=True, slots=True)
class QueryOutcome:
    """Result of running a statement together with what was actually sent."""

    statement: ResolvedStatement
    result: ResultSet
    schema_refreshed: bool = False


class ExplorerController:
    """Entry point for every browsing and querying operation."""

    def __init__(
        self,
        gateway: RequestGateway,
        session: SessionContext,
        *,
        store: StateStore | None = None,
        capabilities: CapabilityTable = DEFAULT_CAPABILITIES,
    ) -> None:
        self.gateway = gateway
        self.session = session
        self.store = store
        self.capabilities = capabilities
        self.schema_tree: SchemaTree | None = None
        self._query_in_flight = False

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        store: StateStore,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> ExplorerController:
        state = store.load()
        session_id = store.session_id()
        gateway = RequestGateway(
            config.server.base_url,
            session_id,
            timeout=config.server.timeout_seconds,
            transport=transport,
        )
        session = SessionContext(session_id=session_id, rows_limit=state.rows_limit)
        return cls(gateway, session, store=store)

    async def __aenter__(self) -> ExplorerController:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.gateway.close()

    # -- schema ----------------------------------------------------------------------

    async def load_schema_tree(self) -> SchemaTree:
        schemas_payload = _raise_for_error(await self.gateway.call("GET", "/schemas"))
        objects_payload = _raise_for_error(await self.gateway.call("GET", "/objects"))
        self.schema_tree = schema_tree.build_from_payloads(schemas_payload, objects_payload)
        return self.schema_tree

    async def locate(self, identity: str) -> ObjectRef:
        """Find an object by ``schema.name`` (or function id) in the schema tree."""
        tree = self.schema_tree or await self.load_schema_tree()
        found = tree.find(identity)
        if found is None:
            raise ValidationError(f"Object '{identity}' was not found in the schema tree.")
        if found.kind == "function":
            return ObjectRef(name=found.name, kind=found.kind, id=found.id)
        return ObjectRef(name=found.id, kind=found.kind)

    # -- browsing --------------------------------------------------------------------

    def select_object(self, ref: ObjectRef) -> None:
        self.session.select_object(ref)
        self._remember_tab("rows")

    async def open_object(self, ref: ObjectRef) -> ResultSet:
        self.select_object(ref)
        return await self.browse()

    async def browse(self) -> ResultSet:
        """Fetch the current page of the selected object."""
        ref = self._require_object()
        spec = self.capabilities.lookup(ref.kind, "rows")
        payload = await self.gateway.call(spec.method, spec.request_path(ref), self.session.rows_params())
        result = ResultSet.from_payload(payload)
        self.session.apply_result(result)
        return result

    async def next_page(self) -> ResultSet | None:
        """Fetch the next page, or return None when already on the last one."""
        if not self.session.next_page():
            return None
        return await self.browse()

    async def prev_page(self) -> ResultSet | None:
        if not self.session.prev_page():
            return None
        return await self.browse()

    async def go_to_page(self, page: int) -> ResultSet:
        self.session.go_to_page(page)
        return await self.browse()

    async def sort_by(self, column: str) -> ResultSet:
        self.session.set_sort(column)
        return await self.browse()

    async def filter_by(self, column: str, operator: str, value: str = "") -> ResultSet:
        # Validation happens before anything is sent.
        self.session.set_filter(column, operator, value)
        return await self.browse()

    async def clear_filter(self) -> ResultSet:
        self.session.clear_filter()
        return await self.browse()

    def set_rows_limit(self, limit: int) -> None:
        self.session.set_rows_limit(limit)
        if self.store is not None:
            self.store.set_rows_limit(limit)

    async def perform(self, ref: ObjectRef, action: str) -> ResultSet:
        """Run one capability-table action against ``ref``."""
        spec = self.capabilities.lookup(ref.kind, action)
        if spec.paginated:
            if self.session.current_object != ref:
                self.select_object(ref)
            return await self.browse()
        payload = await self.gateway.call(spec.method, spec.request_path(ref), dict(spec.params))
        if action in TABS:
            self._remember_tab(action)
        if isinstance(payload, Mapping) and "columns" not in payload and "error" not in payload:
            return records_result(payload)
        return ResultSet.from_payload(payload)

    # -- queries ---------------------------------------------------------------------

    async def run_query(
        self,
        buffer: str,
        *,
        selection: str | None = None,
        cursor_row: int = 0,
        mode: str = "query",
    ) -> QueryOutcome:
        """Resolve the statement under the cursor and execute it.

        Only one execution may be outstanding per controller.
        """
        path = QUERY_MODES.get(mode)
        if path is None:
            raise ValidationError(f"Unknown query mode '{mode}'.")
        if self._query_in_flight:
            raise ValidationError("A query is already running.")

        statement = statements.resolve(buffer, selection=selection, cursor_row=cursor_row)
        if self.store is not None:
            self.store.set_last_query_text(buffer)
            self.store.set_last_selected_tab("query")

        self._query_in_flight = True
        try:
            payload = await self.gateway.call("POST", path, {"query": statement.text})
        finally:
            self._query_in_flight = False
        result = ResultSet.from_payload(payload)

        refreshed = False
        if mode == "query" and _SCHEMA_CHANGE_PATTERN.search(statement.text):
            # Refresh even on error: the statement may have partially applied.
            refreshed = await self._refresh_schema_tree()
        return QueryOutcome(statement=statement, result=result, schema_refreshed=refreshed)

    async def export(self, query: str, fmt: str) -> str | ResultSet:
        """Fetch a query result in an export format (csv, json or xml)."""
        if fmt not in EXPORT_FORMATS:
            raise ValidationError(f"Unsupported export format '{fmt}'.")
        if not query.strip():
            raise ValidationError("Query text must not be empty.")
        payload = await self.gateway.call("GET", "/query", {"query": query, "format": fmt})
        if isinstance(payload, Mapping) and "error" in payload:
            return ResultSet.failure(str(payload["error"]))
        if isinstance(payload, str):
            return payload
        return json.dumps(payload, indent=2)

    # -- listings --------------------------------------------------------------------

    async def history(self) -> ResultSet:
        payload = await self.gateway.call("GET", "/history")
        if isinstance(payload, Mapping):
            return ResultSet.from_payload(payload)
        if not isinstance(payload, list):
            return ResultSet.failure("Malformed response: history must be a list")
        rows: list[tuple[Any, ...]] = []
        for index, entry in enumerate(payload, start=1):
            if isinstance(entry, Mapping):
                rows.append((index, entry.get("query", ""), entry.get("timestamp", "")))
            else:
                rows.append((index, str(entry), ""))
        rows.reverse()
        return ResultSet(columns=("id", "query", "timestamp"), rows=rows)

    async def bookmarks(self) -> ResultSet:
        payload = await self.gateway.call("GET", "/bookmarks")
        return records_result(payload, key_column="id")

    async def activity(self) -> ResultSet:
        return ResultSet.from_payload(await self.gateway.call("GET", "/activity"))

    async def connection_info(self) -> ResultSet:
        return records_result(await self.gateway.call("GET", "/connection"))

    async def databases(self) -> ResultSet:
        payload = await self.gateway.call("GET", "/databases")
        if isinstance(payload, list):
            return ResultSet(columns=("name",), rows=[(str(name),) for name in payload])
        return ResultSet.from_payload(payload)

    # -- connection lifecycle --------------------------------------------------------

    async def connect(
        self,
        *,
        url: str | None = None,
        bookmark_id: str | None = None,
        ssh: Mapping[str, str] | None = None,
    ) -> str:
        """Connect the backend session; returns the current database name."""
        if not url and not bookmark_id:
            raise ValidationError("Either a connection URL or a bookmark id is required.")
        params: dict[str, Any] = {"url": url, "bookmark_id": bookmark_id}
        for key, value in (ssh or {}).items():
            params[f"ssh_{key}"] = value
        payload = await self.gateway.call("POST", "/connect", params)
        database = _current_database(payload)
        self._reset_browsing()
        return database

    async def switch_db(self, database: str) -> str:
        if not database:
            raise ValidationError("Database name is required.")
        payload = await self.gateway.call("POST", "/switchdb", {"db": database})
        current = _current_database(payload)
        self._reset_browsing()
        return current

    async def disconnect(self) -> None:
        _raise_for_error(await self.gateway.call("POST", "/disconnect"))
        self._reset_browsing()

    def reset_session(self) -> str:
        """Start a new backend session id; browsing state is reset as well."""
        session_id = self.store.reset_session_id() if self.store is not None else new_session_id()
        self.gateway.session_id = session_id
        self.session.session_id = session_id
        self._reset_browsing()
        return session_id

    # -- cancellation ----------------------------------------------------------------

    async def cancel_backend(self, pid: int) -> ResultSet:
        """Ask the server to cancel a backend process.

        This is an ordinary new query; any local call waiting on that backend keeps
        waiting until it completes or times out.
        """
        if int(pid) <= 0:
            raise ValidationError("Process id must be a positive integer.")
        payload = await self.gateway.call("POST", "/query", {"query": f"SELECT pg_cancel_backend({int(pid)})"})
        return ResultSet.from_payload(payload)

    async def cancel_running(self, query_text: str | None = None) -> list[int]:
        """Cancel active backends, optionally only those running ``query_text``."""
        listing = await self.activity()
        if listing.is_error:
            raise BackendError(listing.error or "Unable to list activity")
        try:
            pid_idx = listing.columns.index("pid")
            query_idx = listing.columns.index("query")
        except ValueError as exc:
            raise ResponseShapeError("Activity listing lacks pid/query columns") from exc
        state_idx = listing.columns.index("state") if "state" in listing.columns else None

        wanted = query_text.strip() if query_text else None
        cancelled: list[int] = []
        for row in listing.rows:
            running = str(row[query_idx] or "")
            if "pg_stat_activity" in running:
                continue
            if state_idx is not None and row[state_idx] != "active":
                continue
            if wanted is not None and running.strip() != wanted:
                continue
            result = await self.cancel_backend(int(row[pid_idx]))
            if result.is_error:
                logger.warning("Failed to cancel backend %s: %s", row[pid_idx], result.error)
                continue
            cancelled.append(int(row[pid_idx]))
        return cancelled

    # -- internals -------------------------------------------------------------------

    def _require_object(self) -> ObjectRef:
        if self.session.current_object is None:
            raise ValidationError("No object selected.")
        return self.session.current_object

    def _reset_browsing(self) -> None:
        self.session.reset()
        self.schema_tree = None

    def _remember_tab(self, tab: str) -> None:
        if self.store is not None:
            self.store.set_last_selected_tab(tab)

    async def _refresh_schema_tree(self) -> bool:
        try:
            await self.load_schema_tree()
        except (BackendError, ResponseShapeError) as exc:
            logger.warning("Schema refresh failed: %s", exc)
            return False
        return True


def records_result(payload: Any, *, key_column: str | None = None) -> ResultSet:
    """Turn a mapping or list of mappings into a two-dimensional ResultSet.

    A flat mapping becomes ``name``/``value`` rows; a mapping of mappings keeps
    its keys in ``key_column``.
    """
    if isinstance(payload, Mapping) and "error" in payload:
        return ResultSet.failure(str(payload["error"]))

    records: list[Mapping[str, Any]]
    if isinstance(payload, Mapping):
        if payload and all(isinstance(value, Mapping) for value in payload.values()):
            records = [{key_column or "key": key, **value} for key, value in payload.items()]
        else:
            return ResultSet(
                columns=("name", "value"),
                rows=[(str(key), value) for key, value in payload.items()],
            )
    elif isinstance(payload, Sequence) and not isinstance(payload, str):
        if not all(isinstance(item, Mapping) for item in payload):
            return ResultSet.failure("Malformed response: expected a list of objects")
        records = list(payload)
    else:
        return ResultSet.failure(f"Malformed response: unexpected {type(payload).__name__}")

    columns: list[str] = []
    for record in records:
        for key in record:
            if key not in columns:
                columns.append(key)
    rows = [tuple(record.get(column) for column in columns) for record in records]
    return ResultSet(columns=tuple(columns), rows=rows)


def _raise_for_error(payload: Any) -> Any:
    if isinstance(payload, Mapping) and payload.get("error"):
        raise BackendError(str(payload["error"]))
    return payload


def _current_database(payload: Any) -> str:
    _raise_for_error(payload)
    if isinstance(payload, Mapping) and payload.get("current_database"):
        return str(payload["current_database"])
    raise ResponseShapeError("Connection response lacks 'current_database'.")


