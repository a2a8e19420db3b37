"""Parser turning vault documents into task forests."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field

from .errors import DocumentNotFound
from .links import document_dir, first_link_target, resolve_link
from .models import TaskForest, TaskNode
from .tags import contains_tag
from .vault import Vault

logger = logging.getLogger(__name__)

DEFAULT_IGNORE_TAG = "ignoretasktree"
TAB_WIDTH = 4

# Regex patterns
RE_CHECKBOX = re.compile(r"^(\s*)- \[([ xX])\](.*)$")
RE_LIST_ITEM = re.compile(r"^(\s*)- (.*)$")


def expand_tabs(line: str) -> str:
    return line.replace("\t", " " * TAB_WIDTH)


@dataclass
class TraversalContext:
    """State shared by every recursive step of one top-level call.

    ``ancestors`` holds the documents currently being parsed, outermost
    first; a link back into it is a cycle. ``opened`` holds every document
    read so far, so no document is expanded twice.
    """

    ancestors: list[str] = field(default_factory=list)
    opened: set[str] = field(default_factory=set)
    cyclic: bool = False

    @classmethod
    def rooted_at(cls, path: str) -> TraversalContext:
        return cls(ancestors=[path], opened={path})


class TaskForestParser:
    """Builds task forests, splicing in the tasks of linked documents."""

    def __init__(self, vault: Vault, ignore_tag: str = DEFAULT_IGNORE_TAG) -> None:
        self.vault = vault
        self.ignore_tag = ignore_tag

    def build_forest(self, path: str | os.PathLike) -> TaskForest:
        """Parse a document and everything it links to.

        Raises:
            PathOutsideRoot: ``path`` is not inside the vault.
            DocumentNotFound: ``path`` does not exist.
        """
        doc = self.vault.to_vault_path(path)
        if not self.vault.document_exists(doc):
            raise DocumentNotFound(doc)

        context = TraversalContext()
        roots = self._parse_document(doc, context)
        if context.cyclic:
            logger.debug("Link cycle detected while parsing %s", doc)
        return TaskForest(roots=roots, cyclic=context.cyclic, source=doc)

    def is_ignored(self, text: str) -> bool:
        return contains_tag(text, self.ignore_tag)

    def parse_lines(
        self,
        lines: list[str],
        current_dir: str = "",
        context: TraversalContext | None = None,
        source: str | None = None,
    ) -> list[TaskNode]:
        """Parse checklist lines into root nodes, resolving links under ``current_dir``."""
        if context is None:
            context = TraversalContext()
        roots: list[TaskNode] = []
        stack: list[tuple[int, list[TaskNode]]] = [(-1, roots)]
        linked_here: set[str] = set()

        for lineno, raw in enumerate(lines):
            line = expand_tabs(raw)

            # Checkbox item: - [ ] / - [x]
            m = RE_CHECKBOX.match(line)
            if m:
                indent = len(m.group(1))
                text = m.group(3).strip()
                node = TaskNode(
                    completed=m.group(2).lower() == "x",
                    text=text,
                    line=lineno,
                    source=source,
                )
                node.children.extend(
                    self._expand_first_link(text, current_dir, context, linked_here)
                )
                pop_frames(stack, indent)
                stack[-1][1].append(node)
                stack.append((indent, node.children))
                continue

            # Plain list item: linked tasks become siblings at this level, and
            # anything indented below attaches to the enclosing list, not to
            # the task that happened to precede this line.
            m = RE_LIST_ITEM.match(line)
            if m:
                indent = len(m.group(1))
                pop_frames(stack, indent)
                siblings = stack[-1][1]
                siblings.extend(
                    self._expand_first_link(m.group(2), current_dir, context, linked_here)
                )
                stack.append((indent, siblings))

        return roots

    # ------------------------------------------------------------------
    # Link handling
    # ------------------------------------------------------------------

    def admit_link(
        self,
        current_dir: str,
        target: str,
        context: TraversalContext,
        linked_here: set[str],
    ) -> str | None:
        """Return the vault path to expand for ``target``, or None to skip it."""
        path = resolve_link(current_dir, target)
        if path is None:
            logger.debug("Link [[%s]] escapes the vault root; skipped", target)
            return None
        if path in context.ancestors:
            context.cyclic = True
            logger.debug("Link [[%s]] closes a cycle through %s", target, path)
            return None
        if path in linked_here:
            logger.debug("Duplicate link [[%s]] in the same document; skipped", target)
            return None
        linked_here.add(path)
        if path in context.opened:
            logger.debug("%s was already expanded in this pass; skipped", path)
            return None
        if not self.vault.document_exists(path):
            logger.debug("Link [[%s]] points to a missing document %s", target, path)
            return None
        return path

    def linked_roots(
        self,
        current_dir: str,
        target: str,
        context: TraversalContext,
        linked_here: set[str],
    ) -> list[TaskNode] | None:
        """Parse the document behind one link; None if the link was not followed."""
        path = self.admit_link(current_dir, target, context, linked_here)
        if path is None:
            return None
        try:
            return self._parse_document(path, context)
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Could not read linked document %s: %s", path, e)
            return None

    def _expand_first_link(
        self,
        text: str,
        current_dir: str,
        context: TraversalContext,
        linked_here: set[str],
    ) -> list[TaskNode]:
        target = first_link_target(text)
        if target is None:
            return []
        return self.linked_roots(current_dir, target, context, linked_here) or []

    def _parse_document(self, path: str, context: TraversalContext) -> list[TaskNode]:
        context.opened.add(path)
        text = self.vault.read_document(path)
        if self.is_ignored(text):
            logger.debug("%s carries #%s; contributing no tasks", path, self.ignore_tag)
            return []

        context.ancestors.append(path)
        try:
            return self.parse_lines(text.splitlines(), document_dir(path), context, source=path)
        finally:
            context.ancestors.pop()


def pop_frames(stack: list, indent: int) -> None:
    while len(stack) > 1 and stack[-1][0] >= indent:
        stack.pop()
