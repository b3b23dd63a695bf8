"""Durable client state with write-through, atomic file handling.

Holds the handful of values that survive between invocations: the session id
sent with every request, the rows-per-page limit, the last query text and the
last selected tab. State is stored in ~/.pgweb-cli/state.json; every change is
written through immediately and reads fall back to defaults.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from . import paths
from .exceptions import StateStoreError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_ROWS_LIMIT = 100
DEFAULT_TAB = "rows"
TABS = ("rows", "structure", "indexes", "constraints", "query", "history", "activity", "connection")

# Keys as written to disk
SESSION_ID_KEY = "sessionId"
ROWS_LIMIT_KEY = "rowsLimit"
LAST_QUERY_KEY = "lastQueryText"
LAST_TAB_KEY = "lastSelectedTab"


def new_session_id() -> str:
    """Return a fresh opaque session identifier."""
    return str(uuid.uuid4())


@dataclass(frozen=True, slots=True)
class ClientState:
    """Snapshot of the persisted client values."""

    session_id: str | None = None
    rows_limit: int = DEFAULT_ROWS_LIMIT
    last_query_text: str = ""
    last_selected_tab: str = DEFAULT_TAB

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        data: dict[str, Any] = {
            ROWS_LIMIT_KEY: self.rows_limit,
            LAST_QUERY_KEY: self.last_query_text,
            LAST_TAB_KEY: self.last_selected_tab,
        }
        if self.session_id:
            data[SESSION_ID_KEY] = self.session_id
        return data


class StateStore:
    """Write-through store for :class:`ClientState`."""

    def __init__(
        self,
        path: str | Path | None = None,
        *,
        default_rows_limit: int = DEFAULT_ROWS_LIMIT,
        default_tab: str = DEFAULT_TAB,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self.path = paths.resolve_path(path) if path else paths.default_state_path(env=env)
        self._defaults = ClientState(
            rows_limit=max(1, int(default_rows_limit)),
            last_selected_tab=default_tab if default_tab in TABS else DEFAULT_TAB,
        )

    def load(self) -> ClientState:
        """Read state from disk, falling back to defaults for anything missing."""
        if not self.path.exists():
            logger.debug("State file not found at %s; using defaults.", self.path)
            return self._defaults

        try:
            with self.path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Failed to read client state from %s: %s; using defaults.", self.path, exc)
            return self._defaults

        if not isinstance(data, Mapping):
            logger.warning("Client state at %s is not a JSON object; using defaults.", self.path)
            return self._defaults
        return self._parse(data)

    def save(self, state: ClientState) -> Path:
        """Write state atomically (temp file in the same directory, then rename)."""
        parent = self.path.parent
        if not parent.exists():
            parent.mkdir(parents=True, exist_ok=True, mode=0o700)
            logger.info("Created state directory: %s", parent)

        json_content = json.dumps(state.to_dict(), indent=2)
        try:
            fd, temp_path = tempfile.mkstemp(suffix=".tmp", prefix=".state_", dir=parent)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(json_content)
                    handle.write("\n")
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(temp_path, self.path)
            except Exception:
                if os.path.exists(temp_path):
                    os.unlink(temp_path)
                raise
        except OSError as exc:
            logger.error("Failed to save client state to %s: %s", self.path, exc)
            raise StateStoreError(f"Unable to write client state to {self.path}: {exc}") from exc

        logger.debug("Saved client state to %s", self.path)
        return self.path

    def clear(self) -> None:
        """Forget everything; subsequent reads return defaults."""
        if self.path.exists():
            self.path.unlink()

    # -- keyed accessors -------------------------------------------------------------

    def session_id(self) -> str:
        """Return the persisted session id, creating and storing one on first use."""
        state = self.load()
        if state.session_id:
            return state.session_id
        session_id = new_session_id()
        self.save(replace(state, session_id=session_id))
        return session_id

    def reset_session_id(self) -> str:
        session_id = new_session_id()
        self.save(replace(self.load(), session_id=session_id))
        return session_id

    def rows_limit(self) -> int:
        return self.load().rows_limit

    def set_rows_limit(self, limit: int) -> None:
        if limit < 1:
            raise ValidationError("Rows limit must be at least 1.")
        self.save(replace(self.load(), rows_limit=int(limit)))

    def last_query_text(self) -> str:
        return self.load().last_query_text

    def set_last_query_text(self, text: str) -> None:
        self.save(replace(self.load(), last_query_text=text))

    def last_selected_tab(self) -> str:
        return self.load().last_selected_tab

    def set_last_selected_tab(self, tab: str) -> None:
        if tab not in TABS:
            raise ValidationError(f"Unknown tab '{tab}'. Expected one of: {', '.join(TABS)}.")
        self.save(replace(self.load(), last_selected_tab=tab))

    def _parse(self, data: Mapping[str, Any]) -> ClientState:
        defaults = self._defaults

        session_id = data.get(SESSION_ID_KEY)
        if not isinstance(session_id, str) or not session_id:
            session_id = None

        try:
            rows_limit = int(data.get(ROWS_LIMIT_KEY, defaults.rows_limit))
        except (TypeError, ValueError):
            rows_limit = defaults.rows_limit
        if rows_limit < 1:
            rows_limit = defaults.rows_limit

        last_query = data.get(LAST_QUERY_KEY, defaults.last_query_text)
        if not isinstance(last_query, str):
            last_query = defaults.last_query_text

        tab = data.get(LAST_TAB_KEY, defaults.last_selected_tab)
        if tab not in TABS:
            tab = defaults.last_selected_tab

        return ClientState(
            session_id=session_id,
            rows_limit=rows_limit,
            last_query_text=last_query,
            last_selected_tab=tab,
        )
