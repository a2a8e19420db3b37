"""Shared fixtures: on-disk vaults under tmp_path and an in-memory vault."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from tasktree.config import ENV_VARS
from tasktree.errors import PathOutsideRoot
from tasktree.links import normalize_vault_path
from tasktree.vault import FileVault, build_backlink_index


class MemoryVault:
    """Vault double keeping documents in a dict and recording side effects."""

    root = "/vault"

    def __init__(self, docs: dict[str, str] | None = None) -> None:
        self.docs: dict[str, str] = dict(docs or {})
        self.writes: list[str] = []
        self.refreshed: list[str] = []

    def to_vault_path(self, path) -> str:
        raw = os.fspath(path)
        if raw.startswith(self.root + "/"):
            raw = raw[len(self.root) + 1:]
        norm = normalize_vault_path(raw)
        if norm is None:
            raise PathOutsideRoot(raw, self.root)
        return norm

    def read_document(self, path: str) -> str:
        if path not in self.docs:
            raise FileNotFoundError(path)
        return self.docs[path]

    def write_document(self, path: str, text: str) -> None:
        self.docs[path] = text
        self.writes.append(path)

    def document_exists(self, path: str) -> bool:
        return path in self.docs

    def list_documents(self) -> list[str]:
        return sorted(self.docs)

    def get_backlinks(self, path: str) -> set[str]:
        return build_backlink_index(self).get(path, set())

    def refresh_open_view(self, path: str) -> None:
        self.refreshed.append(path)


def write_files(root: Path, files: dict[str, str]) -> None:
    for name, content in files.items():
        p = root / name
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(content, encoding="utf-8")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for var in ENV_VARS.values():
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def make_vault(tmp_path: Path):
    """Build a FileVault rooted at ``tmp_path / "vault"`` from a name -> text map."""

    def _make(files: dict[str, str]) -> FileVault:
        root = tmp_path / "vault"
        root.mkdir(exist_ok=True)
        write_files(root, files)
        return FileVault(root)

    return _make


@pytest.fixture
def memory_vault():
    return MemoryVault
