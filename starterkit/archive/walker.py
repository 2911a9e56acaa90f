"""Base template traversal.

Directories are excluded by *name* at any depth, so a nested
``packages/api/node_modules`` is skipped exactly like a top-level one.
File exclusions accept plain names or ``fnmatch`` patterns (``*.log``).
"""

from __future__ import annotations

import fnmatch
import os
from pathlib import Path
from typing import Iterable


def is_excluded_file(name: str, patterns: Iterable[str]) -> bool:
    """Return True when the file *name* matches any exclusion pattern."""
    return any(fnmatch.fnmatchcase(name, pattern) for pattern in patterns)


def walk_template(
    root: Path,
    excluded_dirs: Iterable[str] = (),
    excluded_files: Iterable[str] = (),
) -> list[tuple[str, Path]]:
    """Collect every regular file under *root*.

    Args:
        root: Directory to walk.
        excluded_dirs: Directory names pruned wherever they appear.
        excluded_files: File names or glob patterns to skip.

    Returns:
        ``(relative_posix_path, absolute_path)`` pairs sorted by relative
        path, so repeated walks of the same tree yield the same order.

    Raises:
        NotADirectoryError: If *root* is not a directory.
    """
    root = Path(root)
    if not root.is_dir():
        raise NotADirectoryError(f"Template directory not found: {root}")

    skip_dirs = set(excluded_dirs)
    skip_files = list(excluded_files)
    found: list[tuple[str, Path]] = []

    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in skip_dirs)
        current = Path(dirpath)
        for filename in filenames:
            if is_excluded_file(filename, skip_files):
                continue
            path = current / filename
            if not path.is_file():
                continue
            found.append((path.relative_to(root).as_posix(), path))

    found.sort(key=lambda item: item[0])
    return found
