"""Tests for the durable client state store with safe file handling."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from pgweb_cli.shared import paths
from pgweb_cli.shared.exceptions import StateStoreError, ValidationError
from pgweb_cli.shared.preferences import ClientState, StateStore


@pytest.fixture
def state_path(tmp_path: Path) -> Path:
    """Return path to a temp state file inside a fresh directory."""
    state_dir = tmp_path / ".pgweb-cli"
    state_dir.mkdir(parents=True)
    return state_dir / "state.json"


@pytest.fixture
def store(state_path: Path) -> StateStore:
    return StateStore(state_path)


class TestStatePath:
    """Tests for locating the state file."""

    def test_default_path(self, tmp_path: Path) -> None:
        """Default path should sit in the config dir."""
        store = StateStore(env={paths.CONFIG_DIR_ENV: str(tmp_path)})
        assert store.path == tmp_path / "state.json"

    def test_env_override(self, tmp_path: Path) -> None:
        """Environment variable should override the default."""
        custom = tmp_path / "custom" / "client.json"
        store = StateStore(env={paths.STATE_PATH_ENV: str(custom)})
        assert store.path == custom


class TestLoad:
    """Tests for StateStore.load."""

    def test_missing_file_returns_defaults(
        self, store: StateStore, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Missing file should return defaults."""
        caplog.set_level(logging.DEBUG, logger="pgweb_cli")
        state = store.load()
        assert state == ClientState()
        assert "not found" in caplog.text.lower()

    def test_configured_defaults_apply(self, state_path: Path) -> None:
        store = StateStore(state_path, default_rows_limit=25, default_tab="query")
        assert store.rows_limit() == 25
        assert store.last_selected_tab() == "query"

    def test_load_existing_file(self, store: StateStore, state_path: Path) -> None:
        state_path.write_text(
            json.dumps(
                {
                    "sessionId": "abc-123",
                    "rowsLimit": 50,
                    "lastQueryText": "select 1",
                    "lastSelectedTab": "history",
                }
            )
        )
        state = store.load()
        assert state.session_id == "abc-123"
        assert state.rows_limit == 50
        assert state.last_query_text == "select 1"
        assert state.last_selected_tab == "history"

    def test_corrupted_file_returns_defaults(
        self, store: StateStore, state_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Corrupted file should return defaults with a warning."""
        state_path.write_text("not valid json {{{")
        state = store.load()
        assert state == ClientState()
        assert "failed to read" in caplog.text.lower()

    def test_non_object_root_returns_defaults(self, store: StateStore, state_path: Path) -> None:
        state_path.write_text("[1, 2, 3]")
        assert store.load() == ClientState()

    def test_invalid_values_fall_back(self, store: StateStore, state_path: Path) -> None:
        state_path.write_text(
            json.dumps(
                {
                    "sessionId": 42,
                    "rowsLimit": "many",
                    "lastQueryText": ["select"],
                    "lastSelectedTab": "nowhere",
                }
            )
        )
        state = store.load()
        assert state == ClientState()

    def test_zero_rows_limit_falls_back(self, store: StateStore, state_path: Path) -> None:
        state_path.write_text(json.dumps({"rowsLimit": 0}))
        assert store.rows_limit() == 100


class TestSave:
    """Tests for atomic writes."""

    def test_save_creates_directory(self, tmp_path: Path) -> None:
        """Should create parent directory if missing."""
        state_path = tmp_path / "new_dir" / "subdir" / "state.json"
        assert not state_path.parent.exists()

        StateStore(state_path).save(ClientState(rows_limit=10))

        assert state_path.exists()
        assert json.loads(state_path.read_text())["rowsLimit"] == 10

    def test_save_leaves_no_temp_files(self, store: StateStore, state_path: Path) -> None:
        store.save(ClientState(session_id="s-1", last_query_text="select now()"))

        assert list(state_path.parent.glob(".state_*.tmp")) == []
        data = json.loads(state_path.read_text())
        assert data == {
            "sessionId": "s-1",
            "rowsLimit": 100,
            "lastQueryText": "select now()",
            "lastSelectedTab": "rows",
        }

    def test_save_omits_missing_session_id(self, store: StateStore, state_path: Path) -> None:
        store.save(ClientState())
        assert "sessionId" not in json.loads(state_path.read_text())

    def test_save_failure_raises(
        self, store: StateStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def boom(*args, **kwargs):
            raise OSError("disk full")

        monkeypatch.setattr("pgweb_cli.shared.preferences.tempfile.mkstemp", boom)
        with pytest.raises(StateStoreError):
            store.save(ClientState())


class TestAccessors:
    """Tests for the keyed read/write helpers."""

    def test_session_id_created_once(self, store: StateStore) -> None:
        first = store.session_id()
        assert first
        assert store.session_id() == first

    def test_reset_session_id(self, store: StateStore) -> None:
        first = store.session_id()
        second = store.reset_session_id()
        assert second != first
        assert store.session_id() == second

    def test_writes_are_visible_to_new_store(self, state_path: Path) -> None:
        writer = StateStore(state_path)
        writer.set_rows_limit(40)
        writer.set_last_query_text("select * from users")
        writer.set_last_selected_tab("query")

        reader = StateStore(state_path)
        assert reader.rows_limit() == 40
        assert reader.last_query_text() == "select * from users"
        assert reader.last_selected_tab() == "query"

    def test_updates_preserve_other_keys(self, store: StateStore) -> None:
        session_id = store.session_id()
        store.set_rows_limit(5)
        assert store.session_id() == session_id

    def test_invalid_rows_limit_rejected(self, store: StateStore) -> None:
        with pytest.raises(ValidationError):
            store.set_rows_limit(0)

    def test_unknown_tab_rejected(self, store: StateStore) -> None:
        with pytest.raises(ValidationError):
            store.set_last_selected_tab("charts")

    def test_clear_restores_defaults(self, store: StateStore, state_path: Path) -> None:
        store.set_rows_limit(7)
        store.clear()
        assert not state_path.exists()
        assert store.rows_limit() == 100
