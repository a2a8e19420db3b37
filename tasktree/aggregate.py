"""Completion counts and status strings for task forests."""

from __future__ import annotations

from typing import Iterable, Union

from .errors import ParentNotFound
from .models import TaskCounts, TaskForest, TaskNode

NO_TASKS = "No tasks"
WARNING_MARKER = "❗"
DEFAULT_TEMPLATE = "Complete {percentage}% ({completed}/{total})"

ForestLike = Union[TaskForest, Iterable[TaskNode]]


def _roots(forest: ForestLike) -> Iterable[TaskNode]:
    return forest.roots if isinstance(forest, TaskForest) else forest


def _count(node: TaskNode, malformed: list[TaskNode]) -> TaskCounts:
    if node.is_leaf:
        return TaskCounts(total=1, completed=1 if node.completed else 0)
    counts = TaskCounts()
    for child in node.children:
        counts = counts + _count(child, malformed)
    if node.completed != counts.is_complete:
        malformed.append(node)
    return counts


def _tally(forest: ForestLike) -> tuple[TaskCounts, list[TaskNode]]:
    malformed: list[TaskNode] = []
    counts = TaskCounts()
    for root in _roots(forest):
        counts = counts + _count(root, malformed)
    return counts, malformed


def get_counts(forest: ForestLike) -> TaskCounts:
    """Count leaf tasks; a parent's own mark never contributes."""
    return _tally(forest)[0]


def malformed_nodes(forest: ForestLike) -> list[TaskNode]:
    """Parents whose mark disagrees with the state of their subtree."""
    return _tally(forest)[1]


def is_malformed(forest: ForestLike) -> bool:
    if isinstance(forest, TaskForest) and forest.cyclic:
        return True
    return bool(malformed_nodes(forest))


def completion_percent(counts: TaskCounts) -> int:
    """Percentage rounded half up; 0 when there are no tasks."""
    if counts.total == 0:
        return 0
    return (200 * counts.completed + counts.total) // (2 * counts.total)


def format_progress(counts: TaskCounts, template: str = DEFAULT_TEMPLATE) -> str:
    """Fill ``{completed}``, ``{total}`` and ``{percentage}`` in ``template``."""
    return (
        template.replace("{completed}", str(counts.completed))
        .replace("{total}", str(counts.total))
        .replace("{percentage}", str(completion_percent(counts)))
    )


def get_completion_string(forest: ForestLike, template: str = DEFAULT_TEMPLATE) -> str:
    """Human-readable status, e.g. ``Complete 67% (2/3)``.

    A trailing warning marker flags a cycle or a parent whose checkbox
    disagrees with its children.
    """
    counts, malformed = _tally(forest)
    text = NO_TASKS if counts.total == 0 else format_progress(counts, template)
    cyclic = isinstance(forest, TaskForest) and forest.cyclic
    if cyclic or malformed:
        text = f"{text} {WARNING_MARKER}"
    return text


def add_subtask(forest: ForestLike, parent: TaskNode, subtask: TaskNode) -> None:
    """Attach ``subtask`` under ``parent``, which must already be in ``forest``."""
    stack = list(_roots(forest))
    while stack:
        node = stack.pop()
        if node is parent:
            node.children.append(subtask)
            return
        stack.extend(node.children)
    raise ParentNotFound()
