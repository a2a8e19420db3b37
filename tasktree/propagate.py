"""Rewrite parent checkboxes so they agree with their subtasks and linked pages."""

from __future__ import annotations

import logging
import os
import re
from typing import Callable, Optional

from .aggregate import get_counts
from .links import document_dir, iter_link_targets
from .models import ParsedTaskInfo, PropagationResult
from .parser import (
    DEFAULT_IGNORE_TAG,
    RE_CHECKBOX,
    RE_LIST_ITEM,
    TaskForestParser,
    TraversalContext,
    expand_tabs,
    pop_frames,
)
from .vault import Vault

logger = logging.getLogger(__name__)

RE_MARK = re.compile(r"^(\s*- \[)([ xX])(\])")

LinkState = Callable[[str], Optional[bool]]


class LinkCompletion:
    """Summarizes the linked documents on one line of a document.

    Returns None when no link on the line reaches a document with tasks,
    otherwise whether every such document is fully complete. Links follow
    the same cycle, duplicate and ignore-tag rules as the forest parser.
    Each link is expanded with its own opened set, so a page reached through
    an earlier link still reports its state; only repeated links in this
    document are skipped.
    """

    def __init__(self, parser: TaskForestParser, doc_path: str) -> None:
        self.parser = parser
        self.doc_path = doc_path
        self.current_dir = document_dir(doc_path)
        self.linked_here: set[str] = set()

    def __call__(self, text: str) -> bool | None:
        state: bool | None = None
        for target in iter_link_targets(text):
            roots = self.parser.linked_roots(
                self.current_dir,
                target,
                TraversalContext.rooted_at(self.doc_path),
                self.linked_here,
            )
            if not roots:
                continue
            counts = get_counts(roots)
            if counts.total == 0:
                continue
            complete = counts.is_complete
            state = complete if state is None else (state and complete)
        return state


def _combine(current: bool | None, incoming: bool | None) -> bool | None:
    if incoming is None:
        return current
    if current is None:
        return incoming
    return current and incoming


def parse_task_infos(
    lines: list[str],
    link_state: LinkState | None = None,
) -> list[ParsedTaskInfo]:
    """Parse checklist lines into tasks linked to their parents.

    A plain list item does not create a task. Deeper items attach to the
    task enclosing the list item, and any link it carries is folded into
    that task's linked-page state.
    """
    tasks: list[ParsedTaskInfo] = []
    stack: list[tuple[int, ParsedTaskInfo | None]] = [(-1, None)]

    for lineno, raw in enumerate(lines):
        line = expand_tabs(raw)

        m = RE_CHECKBOX.match(line)
        if m:
            indent = len(m.group(1))
            task = ParsedTaskInfo(
                line=lineno,
                indent=indent,
                completed=m.group(2).lower() == "x",
            )
            if link_state is not None:
                task.link_children_complete = link_state(m.group(3))
            pop_frames(stack, indent)
            parent = stack[-1][1]
            if parent is not None:
                task.parent = parent
                parent.children.append(task)
            tasks.append(task)
            stack.append((indent, task))
            continue

        m = RE_LIST_ITEM.match(line)
        if m:
            indent = len(m.group(1))
            pop_frames(stack, indent)
            enclosing = stack[-1][1]
            if link_state is not None:
                state = link_state(m.group(2))
                if enclosing is not None:
                    enclosing.link_children_complete = _combine(
                        enclosing.link_children_complete, state
                    )
            stack.append((indent, enclosing))

    return tasks


def propagate(
    text: str,
    previous_snapshot: dict[int, bool] | None = None,
    document_path: str | os.PathLike | None = None,
    vault: Vault | None = None,
    ignore_tag: str = DEFAULT_IGNORE_TAG,
) -> PropagationResult:
    """Check or uncheck every parent task to match its subtasks and links.

    Args:
        text: Current document text.
        previous_snapshot: Line -> completed map returned by the previous run
            on this document. Tasks on lines missing from it are treated as
            newly added: their own links do not auto-check them. None means
            the document has not been observed before.
        document_path: Path of the document, used to resolve wiki-links.
            Links are ignored when it or ``vault`` is not given.
        vault: Vault holding linked documents.
        ignore_tag: Linked documents tagged with it contribute nothing.

    Returns:
        The rewritten text, the new snapshot and the lines that changed.

    Raises:
        PathOutsideRoot: ``document_path`` is outside the vault.
    """
    lines = text.split("\n")
    link_state: LinkState | None = None
    if document_path is not None and vault is not None:
        doc = vault.to_vault_path(document_path)
        link_state = LinkCompletion(TaskForestParser(vault, ignore_tag), doc)

    tasks = parse_task_infos(lines, link_state)
    if previous_snapshot is None:
        new_lines: set[int] = set()
    else:
        new_lines = {t.line for t in tasks if t.line not in previous_snapshot}

    changed: list[int] = []
    held: set[int] = set()
    for task in tasks:
        if task.parent is None:
            _settle(task, lines, new_lines, changed, held)

    snapshot = {t.line: t.completed for t in tasks if t.line not in held}
    return PropagationResult(text="\n".join(lines), snapshot=snapshot, changed_lines=sorted(changed))


def _settle(
    task: ParsedTaskInfo,
    lines: list[str],
    new_lines: set[int],
    changed: list[int],
    held: set[int],
) -> None:
    """Settle ``task``'s subtree, children first.

    A new task without subtasks is never checked by its links alone; its
    line goes into ``held`` instead.
    """
    for child in task.children:
        _settle(child, lines, new_lines, changed, held)

    if not task.is_managed:
        return

    link = task.link_children_complete
    want = all(c.completed for c in task.children) and (True if link is None else link)
    if want == task.completed:
        return
    if want and not task.children and task.line in new_lines:
        held.add(task.line)
        logger.debug("[PROPAGATE] line %d is new; not checking it from its links", task.line)
        return

    mark = "x" if want else " "
    lines[task.line] = RE_MARK.sub(
        lambda m: f"{m.group(1)}{mark}{m.group(3)}", lines[task.line], count=1
    )
    task.completed = want
    changed.append(task.line)
    logger.debug("[PROPAGATE] line %d -> [%s]", task.line, mark)