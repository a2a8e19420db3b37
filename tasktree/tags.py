"""Detect whether a document carries a given tag outside of code."""

from __future__ import annotations

import logging
import re

import yaml

logger = logging.getLogger(__name__)

RE_FRONTMATTER = re.compile(r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)
RE_FENCED_CODE = re.compile(r"```.*?```", re.DOTALL)
RE_INLINE_CODE = re.compile(r"`[^`]*`")
RE_TAG_SPLIT = re.compile(r"[,\s]+")


def split_frontmatter(text: str) -> tuple[str | None, str]:
    """Return ``(frontmatter, body)``; frontmatter is None when absent."""
    m = RE_FRONTMATTER.match(text)
    if not m:
        return None, text
    return m.group(1), text[m.end():]


def frontmatter_tags(frontmatter: str) -> list[str]:
    """Tags declared in a YAML front-matter block, lowercased, without ``#``.

    Accepts a flow list (``tags: [a, b]``), a block list, or a scalar
    (``tags: a, b`` or ``tags: a b``).
    """
    try:
        data = yaml.safe_load(frontmatter) or {}
    except yaml.YAMLError as e:
        logger.debug("Ignoring unparseable front matter: %s", e)
        return []
    if not isinstance(data, dict):
        return []

    raw = data.get("tags", data.get("tag"))
    if raw is None:
        return []
    if isinstance(raw, (list, tuple)):
        values = [str(v) for v in raw if v is not None]
    else:
        values = [v for v in RE_TAG_SPLIT.split(str(raw)) if v]
    return [v.strip().lstrip("#").lower() for v in values if v.strip()]


def strip_code(text: str) -> str:
    """Remove fenced code blocks, then inline code spans."""
    text = RE_FENCED_CODE.sub("", text)
    return RE_INLINE_CODE.sub("", text)


def contains_tag(text: str, tag: str) -> bool:
    """True if ``#tag`` appears in the body outside code, or in front matter."""
    frontmatter, body = split_frontmatter(text)
    if frontmatter is not None and tag.lower() in frontmatter_tags(frontmatter):
        return True

    pattern = re.compile(rf"#{re.escape(tag)}(?:\s|$)", re.IGNORECASE)
    return pattern.search(strip_code(body)) is not None
