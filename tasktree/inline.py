"""Render ``FIELD:[[target]]`` inline progress fields as text."""

from __future__ import annotations

import logging
import re

from .aggregate import NO_TASKS, format_progress, get_counts
from .errors import TaskTreeError
from .links import document_dir, resolve_link
from .parser import TaskForestParser

logger = logging.getLogger(__name__)


def inline_field_pattern(field_name: str) -> re.Pattern[str]:
    """Match ``FIELD:[[target]]``; the target may be empty."""
    return re.compile(rf"{re.escape(field_name)}:\[\[([^\]]*)\]\]")


def render_inline_fields(
    text: str,
    document_path: str,
    parser: TaskForestParser,
    field_name: str,
    template: str,
) -> str:
    """Replace each inline field with the progress of the document it names.

    ``FIELD:[[]]`` refers to ``document_path`` itself. Targets that cannot be
    resolved render as ``No tasks``.
    """
    pattern = inline_field_pattern(field_name)
    rendered: dict[str, str] = {}

    def _render(m: re.Match[str]) -> str:
        target = m.group(1).split("|", 1)[0].strip()
        if target in rendered:
            return rendered[target]
        if target:
            path = resolve_link(document_dir(document_path), target)
        else:
            path = document_path
        value = NO_TASKS
        if path is not None:
            try:
                counts = get_counts(parser.build_forest(path))
            except TaskTreeError as e:
                logger.debug("Inline field %s: %s", m.group(0), e)
            else:
                if counts.total:
                    value = format_progress(counts, template)
        rendered[target] = value
        return value

    return pattern.sub(_render, text)
