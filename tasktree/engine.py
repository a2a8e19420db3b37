"""Entry points used by hosts and the CLI."""

from __future__ import annotations

import os

from . import aggregate
from .cascade import BacklinkCascade, CascadeResult, SnapshotStore
from .config import Settings
from .errors import DocumentNotFound
from .inline import render_inline_fields
from .models import PropagationResult, TaskCounts, TaskForest
from .parser import TaskForestParser
from .propagate import parse_task_infos, propagate
from .vault import FileVault, Vault


class ProgressEngine:
    """Progress reporting and parent auto-propagation over one vault."""

    def __init__(
        self,
        settings: Settings,
        vault: Vault | None = None,
        snapshots: SnapshotStore | None = None,
    ) -> None:
        self.settings = settings
        self.vault = vault if vault is not None else FileVault(settings.vault_root)
        self.snapshots = snapshots if snapshots is not None else SnapshotStore()

    @property
    def parser(self) -> TaskForestParser:
        return TaskForestParser(self.vault, self.settings.ignore_tag)

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    def build_forest(self, path: str | os.PathLike) -> TaskForest:
        return self.parser.build_forest(path)

    def get_counts(self, path: str | os.PathLike) -> TaskCounts:
        return aggregate.get_counts(self.build_forest(path))

    def get_completion_string(self, path: str | os.PathLike) -> str:
        return aggregate.get_completion_string(self.build_forest(path), self.settings.template)

    def get_page_progress_percent(self, path: str | os.PathLike) -> int:
        return aggregate.completion_percent(self.get_counts(path))

    def format_progress(self, path: str | os.PathLike) -> str:
        """Progress of ``path`` through the configured display template."""
        counts = self.get_counts(path)
        if counts.total == 0:
            return aggregate.NO_TASKS
        return aggregate.format_progress(counts, self.settings.template)

    def require_document(self, path: str | os.PathLike) -> str:
        """Vault path of an existing document; raises on a bad or missing path."""
        doc = self.vault.to_vault_path(path)
        if not self.vault.document_exists(doc):
            raise DocumentNotFound(doc)
        return doc

    def render_inline_fields(self, path: str | os.PathLike) -> str:
        doc = self.require_document(path)
        return render_inline_fields(
            self.vault.read_document(doc),
            doc,
            self.parser,
            self.settings.inline_field,
            self.settings.template,
        )

    # ------------------------------------------------------------------
    # Auto-propagation
    # ------------------------------------------------------------------

    def propagate(
        self,
        text: str,
        path: str | os.PathLike,
        previous_snapshot: dict[int, bool] | None = None,
    ) -> PropagationResult:
        """Propagate ``text`` as the content of ``path`` without writing it."""
        if not self.settings.auto_propagate:
            snapshot = {t.line: t.completed for t in parse_task_infos(text.split("\n"))}
            return PropagationResult(text=text, snapshot=snapshot)
        return propagate(text, previous_snapshot, path, self.vault, self.settings.ignore_tag)

    def on_document_changed(self, path: str | os.PathLike) -> CascadeResult:
        cascade = BacklinkCascade(self.vault, self.settings, self.snapshots)
        return cascade.on_document_changed(os.fspath(path))
