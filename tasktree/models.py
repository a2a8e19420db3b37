"""Data models for task trees parsed from vault documents."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator


@dataclass
class TaskNode:
    """A single checklist item in a task forest.

    ``completed`` is the mark as written. For a node with children it is not
    counted, only compared against the state derived from the children.
    """

    completed: bool = False
    children: list[TaskNode] = field(default_factory=list)
    text: str = ""
    line: int | None = None
    source: str | None = None

    @property
    def is_leaf(self) -> bool:
        return not self.children


@dataclass
class TaskForest:
    """The root task nodes of one document, with links already spliced in."""

    roots: list[TaskNode] = field(default_factory=list)
    cyclic: bool = False
    source: str | None = None

    def __iter__(self) -> Iterator[TaskNode]:
        return iter(self.roots)

    def __len__(self) -> int:
        return len(self.roots)


@dataclass(frozen=True)
class TaskCounts:
    """Total and completed leaf tasks below some point in a forest."""

    total: int = 0
    completed: int = 0

    def __add__(self, other: TaskCounts) -> TaskCounts:
        return TaskCounts(
            total=self.total + other.total,
            completed=self.completed + other.completed,
        )

    @property
    def is_complete(self) -> bool:
        return self.total > 0 and self.completed == self.total


@dataclass
class ParsedTaskInfo:
    """A checklist line as seen by the propagation engine."""

    line: int
    indent: int
    completed: bool
    children: list[ParsedTaskInfo] = field(default_factory=list)
    parent: ParsedTaskInfo | None = field(default=None, repr=False, compare=False)
    # None: no link on the line resolved to a document with tasks.
    link_children_complete: bool | None = None

    @property
    def is_managed(self) -> bool:
        return bool(self.children) or self.link_children_complete is not None


@dataclass
class PropagationResult:
    """Output of one propagation run over a document."""

    text: str
    snapshot: dict[int, bool] = field(default_factory=dict)
    changed_lines: list[int] = field(default_factory=list)

    @property
    def modified(self) -> bool:
        return bool(self.changed_lines)
