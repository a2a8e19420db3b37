"""Cascade engine: re-propagates every document linking to a changed one."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from .config import Settings
from .errors import DocumentNotFound, TaskTreeError
from .propagate import propagate
from .vault import Vault

logger = logging.getLogger(__name__)


class SnapshotStore:
    """Per-document completion snapshots kept between propagation runs."""

    def __init__(self, snapshots: dict[str, dict[int, bool]] | None = None) -> None:
        self._snapshots: dict[str, dict[int, bool]] = dict(snapshots or {})

    def get(self, path: str) -> dict[int, bool] | None:
        return self._snapshots.get(path)

    def put(self, path: str, snapshot: dict[int, bool]) -> None:
        self._snapshots[path] = dict(snapshot)

    @classmethod
    def load(cls, path: str | Path) -> SnapshotStore:
        """Load snapshots saved with :meth:`save`; a missing file is empty."""
        p = Path(path)
        if not p.is_file():
            return cls()
        raw = json.loads(p.read_text(encoding="utf-8"))
        return cls({
            doc: {int(line): bool(done) for line, done in lines.items()}
            for doc, lines in raw.items()
        })

    def save(self, path: str | Path) -> None:
        out = {
            doc: {str(line): done for line, done in sorted(lines.items())}
            for doc, lines in sorted(self._snapshots.items())
        }
        Path(path).write_text(json.dumps(out, indent=2), encoding="utf-8")


@dataclass
class CascadeResult:
    """Summary of what one cascade did."""

    visited: list[str] = field(default_factory=list)
    rewritten: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


class BacklinkCascade:
    """Propagates a changed document, then every document that links to it."""

    def __init__(
        self,
        vault: Vault,
        settings: Settings,
        snapshots: SnapshotStore | None = None,
    ) -> None:
        self.vault = vault
        self.settings = settings
        self.snapshots = snapshots if snapshots is not None else SnapshotStore()

    def propagate_document(self, path: str) -> bool:
        """Propagate one document and write it back. Returns True if rewritten."""
        text = self.vault.read_document(path)
        result = propagate(
            text,
            self.snapshots.get(path),
            path,
            self.vault,
            self.settings.ignore_tag,
        )
        self.snapshots.put(path, result.snapshot)
        if result.text == text:
            return False

        self.vault.write_document(path, result.text)
        logger.info("Updated %d parent task(s) in %s", len(result.changed_lines), path)
        self._refresh(path)
        return True

    def on_document_changed(self, path: str) -> CascadeResult:
        """Run the cascade starting at ``path``.

        Errors on ``path`` itself propagate. A failure in a backlinking
        document is recorded in the result and the cascade moves on.
        """
        result = CascadeResult()
        if not self.settings.auto_propagate:
            logger.debug("[CASCADE] auto-propagation disabled; skipping %s", path)
            return result

        start = self.vault.to_vault_path(path)
        if not self.vault.document_exists(start):
            raise DocumentNotFound(start)
        visited: set[str] = {start}
        pending: list[str] = [start]
        while pending:
            doc = pending.pop()
            result.visited.append(doc)
            logger.debug("[CASCADE] propagating %s", doc)
            try:
                rewritten = self.propagate_document(doc)
            except (TaskTreeError, OSError, UnicodeDecodeError) as e:
                if doc == start:
                    raise
                msg = f"Failed to propagate '{doc}': {e}"
                logger.error(msg)
                result.errors.append(msg)
                continue
            (result.rewritten if rewritten else result.unchanged).append(doc)

            for source in sorted(self.vault.get_backlinks(doc), reverse=True):
                if source not in visited:
                    visited.add(source)
                    pending.append(source)

        return result

    def _refresh(self, path: str) -> None:
        try:
            self.vault.refresh_open_view(path)
        except Exception as e:
            logger.warning("Could not refresh open view of %s: %s", path, e)
