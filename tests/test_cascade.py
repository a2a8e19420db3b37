"""Tests for the backlink cascade and snapshot persistence."""

import json
import logging
from unittest.mock import MagicMock

import pytest

from tasktree.cascade import BacklinkCascade, SnapshotStore
from tasktree.config import Settings
from tasktree.errors import DocumentNotFound


CHAIN = {
    "sub.md": "- [x] S1\n- [x] S2\n",
    "main.md": "- [ ] Sub [[sub]]\n",
    "top.md": "- [ ] Main [[main]]\n",
}


def _cascade(vault, **settings):
    return BacklinkCascade(vault, Settings(**settings))


def test_cascade_walks_backlinks(memory_vault):
    vault = memory_vault(CHAIN)
    result = _cascade(vault).on_document_changed("sub.md")

    assert result.visited == ["sub.md", "main.md", "top.md"]
    assert result.rewritten == ["main.md", "top.md"]
    assert result.unchanged == ["sub.md"]
    assert result.errors == []
    assert vault.docs["main.md"] == "- [x] Sub [[sub]]\n"
    assert vault.docs["top.md"] == "- [x] Main [[main]]\n"
    assert vault.refreshed == ["main.md", "top.md"]


def test_cascade_records_snapshots(memory_vault):
    vault = memory_vault(CHAIN)
    cascade = _cascade(vault)
    cascade.on_document_changed("sub.md")

    assert cascade.snapshots.get("sub.md") == {0: True, 1: True}
    assert cascade.snapshots.get("main.md") == {0: True}
    assert cascade.snapshots.get("top.md") == {0: True}


def test_second_cascade_changes_nothing(memory_vault):
    vault = memory_vault(CHAIN)
    cascade = _cascade(vault)
    cascade.on_document_changed("sub.md")
    vault.writes.clear()

    result = cascade.on_document_changed("sub.md")

    assert result.rewritten == []
    assert vault.writes == []


def test_unchecking_leaf_unchecks_ancestors(memory_vault):
    vault = memory_vault(CHAIN)
    cascade = _cascade(vault)
    cascade.on_document_changed("sub.md")

    vault.docs["sub.md"] = "- [x] S1\n- [ ] S2\n"
    result = cascade.on_document_changed("sub.md")

    assert result.rewritten == ["main.md", "top.md"]
    assert vault.docs["top.md"] == "- [ ] Main [[main]]\n"


def test_cycle_terminates(memory_vault):
    vault = memory_vault({
        "a.md": "- [ ] B [[b]]\n",
        "b.md": "- [x] B1\n- [ ] A [[a]]\n",
    })
    result = _cascade(vault).on_document_changed("a.md")

    assert result.visited == ["a.md", "b.md"]
    assert result.rewritten == []


def test_disabled_auto_propagate_does_nothing(memory_vault):
    vault = memory_vault(CHAIN)
    result = _cascade(vault, auto_propagate=False).on_document_changed("sub.md")

    assert result.visited == []
    assert vault.writes == []


def test_missing_start_document(memory_vault):
    with pytest.raises(DocumentNotFound):
        _cascade(memory_vault(CHAIN)).on_document_changed("gone.md")


def test_refresh_failure_is_logged(memory_vault, caplog):
    vault = memory_vault(CHAIN)
    vault.refresh_open_view = MagicMock(side_effect=RuntimeError("view closed"))

    with caplog.at_level(logging.WARNING, logger="tasktree.cascade"):
        result = _cascade(vault).on_document_changed("sub.md")

    assert result.rewritten == ["main.md", "top.md"]
    assert vault.refresh_open_view.call_count == 2
    assert "view closed" in caplog.text


class _ReadOnly:
    """Mixin refusing writes to a set of documents."""

    locked: set = set()

    def write_document(self, path, text):
        if path in self.locked:
            raise PermissionError(f"read-only: {path}")
        super().write_document(path, text)


def test_failure_in_backlink_is_recorded(memory_vault):
    class Vault(_ReadOnly, memory_vault):
        locked = {"locked.md"}

    vault = Vault({**CHAIN, "locked.md": "- [ ] Also sub [[sub]]\n"})
    result = _cascade(vault).on_document_changed("sub.md")

    assert len(result.errors) == 1
    assert "locked.md" in result.errors[0]
    assert "main.md" in result.rewritten
    assert vault.docs["locked.md"] == "- [ ] Also sub [[sub]]\n"


def test_failure_on_start_document_raises(memory_vault):
    class Vault(_ReadOnly, memory_vault):
        locked = {"main.md"}

    vault = Vault(CHAIN)
    with pytest.raises(PermissionError):
        _cascade(vault).on_document_changed("main.md")


class TestSnapshotStore:
    def test_save_and_load(self, tmp_path):
        store = SnapshotStore()
        store.put("notes/a.md", {0: True, 3: False})
        path = tmp_path / "state.json"
        store.save(path)

        assert json.loads(path.read_text()) == {"notes/a.md": {"0": True, "3": False}}
        loaded = SnapshotStore.load(path)
        assert loaded.get("notes/a.md") == {0: True, 3: False}

    def test_missing_file_is_empty(self, tmp_path):
        store = SnapshotStore.load(tmp_path / "none.json")
        assert store.get("a.md") is None

    def test_put_copies(self):
        store = SnapshotStore()
        snapshot = {0: False}
        store.put("a.md", snapshot)
        snapshot[0] = True
        assert store.get("a.md") == {0: False}
