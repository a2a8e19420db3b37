"""Task-tree progress and auto-propagation for linked markdown checklists."""

__version__ = "0.1.0"
