"""Utility helpers for working with files."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Iterator

IGNORED_DIRS = frozenset({".git", ".obsidian", ".trash", ".vaultchat"})


def iter_markdown_paths(root: Path, *, ignore_dirs: Iterable[str] = IGNORED_DIRS) -> Iterator[Path]:
    """Yield Markdown files under ``root`` in sorted order, skipping tool directories."""
    ignored = set(ignore_dirs)
    for path in sorted(root.rglob("*.md")):
        relative = path.relative_to(root)
        if any(part in ignored for part in relative.parts[:-1]):
            continue
        if path.is_file():
            yield path


def compute_staleness_key(path: Path) -> str:
    """Modification signal for a file: nanosecond mtime and size."""
    stat = path.stat()
    return f"{stat.st_mtime_ns}:{stat.st_size}"
