"""Exceptions raised by the task-tree engine."""

from __future__ import annotations


class TaskTreeError(Exception):
    """Base class for every error the engine raises on purpose."""


class DocumentNotFound(TaskTreeError):
    """The document a top-level call was asked to process does not exist."""

    def __init__(self, path: str) -> None:
        super().__init__(f"File not found: {path}")
        self.path = path


class PathOutsideRoot(TaskTreeError):
    """A document path resolves outside the vault root."""

    def __init__(self, path: str, root: str) -> None:
        super().__init__(f"Path {path!r} is outside the vault root {root!r}")
        self.path = path
        self.root = root


class ParentNotFound(TaskTreeError):
    """A subtask was attached under a node that is not part of the forest."""

    def __init__(self) -> None:
        super().__init__("Parent task not found")


class ConfigError(TaskTreeError):
    """A configuration file could not be used."""
