"""Wiki-link extraction and vault-relative path resolution.

Vault paths are POSIX strings relative to the vault root (``notes/a.md``).
The root itself is the empty directory ``""``. Any path that normalizes to
something starting with ``..`` or to an absolute path is outside the vault.
"""

from __future__ import annotations

import posixpath
import re
from typing import Iterator

RE_WIKILINK = re.compile(r"\[\[([^\]]*)\]\]")

MARKDOWN_SUFFIX = ".md"


def iter_link_targets(text: str) -> Iterator[str]:
    """Yield the target of every wiki-link in ``text``, alias removed."""
    for m in RE_WIKILINK.finditer(text):
        target = m.group(1).split("|", 1)[0].strip()
        if target:
            yield target


def first_link_target(text: str) -> str | None:
    return next(iter_link_targets(text), None)


def normalize_vault_path(path: str) -> str | None:
    """Normalize a vault-relative path, or return None if it leaves the vault."""
    if not path or path.startswith("/"):
        return None
    norm = posixpath.normpath(path)
    if norm == "." or norm == ".." or norm.startswith("../"):
        return None
    return norm


def resolve_link(current_dir: str, target: str) -> str | None:
    """Resolve a link target relative to ``current_dir`` inside the vault.

    The ``.md`` suffix is added when missing. Returns None when the result
    would escape the vault root.
    """
    if not target.lower().endswith(MARKDOWN_SUFFIX):
        target = f"{target}{MARKDOWN_SUFFIX}"
    if target.startswith("/"):
        return None
    return normalize_vault_path(posixpath.join(current_dir, target))


def document_dir(path: str) -> str:
    return posixpath.dirname(path)
