"""Access to the documents of a note vault."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, Protocol

from .errors import PathOutsideRoot
from .links import document_dir, iter_link_targets, normalize_vault_path, resolve_link

logger = logging.getLogger(__name__)

MARKDOWN_GLOB = "*.md"


class Vault(Protocol):
    """What the engine needs from the host environment.

    Every path is vault-relative POSIX (``projects/launch.md``).
    """

    root: str

    def to_vault_path(self, path: str | os.PathLike) -> str: ...

    def read_document(self, path: str) -> str: ...

    def write_document(self, path: str, text: str) -> None: ...

    def document_exists(self, path: str) -> bool: ...

    def list_documents(self) -> Iterable[str]: ...

    def get_backlinks(self, path: str) -> set[str]: ...

    def refresh_open_view(self, path: str) -> None: ...


def build_backlink_index(vault: Vault) -> dict[str, set[str]]:
    """Map each linked document to the set of documents linking to it."""
    index: dict[str, set[str]] = {}
    for source in vault.list_documents():
        try:
            text = vault.read_document(source)
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Skipping unreadable document %s: %s", source, e)
            continue
        base = document_dir(source)
        for target in iter_link_targets(text):
            resolved = resolve_link(base, target)
            if resolved is None or resolved == source:
                continue
            index.setdefault(resolved, set()).add(source)
    return index


class FileVault:
    """A vault stored as a directory of markdown files."""

    def __init__(self, root: str | os.PathLike) -> None:
        self._root = Path(os.path.abspath(root))
        self.root = str(self._root)
        self._backlinks: dict[str, set[str]] | None = None

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def to_vault_path(self, path: str | os.PathLike) -> str:
        """Turn an absolute or vault-relative path into a normalized vault path."""
        raw = os.fspath(path)
        if os.path.isabs(raw):
            rel = os.path.relpath(os.path.normpath(raw), self.root)
        else:
            rel = raw
        norm = normalize_vault_path(rel.replace(os.sep, "/"))
        if norm is None:
            raise PathOutsideRoot(raw, self.root)
        return norm

    def _disk_path(self, path: str) -> Path:
        return self._root.joinpath(*path.split("/"))

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def read_document(self, path: str) -> str:
        # newline="" keeps \r\n intact so rewrites are byte-identical elsewhere
        with open(self._disk_path(path), encoding="utf-8", newline="") as f:
            return f.read()

    def write_document(self, path: str, text: str) -> None:
        with open(self._disk_path(path), "w", encoding="utf-8", newline="") as f:
            f.write(text)
        self._backlinks = None

    def document_exists(self, path: str) -> bool:
        return self._disk_path(path).is_file()

    def list_documents(self) -> list[str]:
        docs: list[str] = []
        for p in self._root.rglob(MARKDOWN_GLOB):
            rel = p.relative_to(self._root)
            if any(part.startswith(".") for part in rel.parts):
                continue
            if p.is_file():
                docs.append(rel.as_posix())
        return sorted(docs)

    # ------------------------------------------------------------------
    # Link index
    # ------------------------------------------------------------------

    def get_backlinks(self, path: str) -> set[str]:
        if self._backlinks is None:
            self._backlinks = build_backlink_index(self)
            logger.debug("Indexed backlinks for %d documents", len(self._backlinks))
        return set(self._backlinks.get(path, set()))

    def refresh_open_view(self, path: str) -> None:
        logger.debug("No open views to refresh for %s", path)
