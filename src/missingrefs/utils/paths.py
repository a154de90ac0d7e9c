from __future__ import annotations

"""
Project Path Utilities.

Helpers for classifying and decomposing storage paths. Paths produced by
storage backends use forward slashes, but both separators are accepted.
"""

import ntpath
import os
import posixpath
import re
from typing import List

_SEPARATORS_RX = re.compile(r"[\\/]")


def is_project_relative(path: str) -> bool:
    """
    Return True when the path is addressed relative to the project root.

    Rejects POSIX absolute paths, Windows drive or UNC paths, paths that
    climb out through a '..' segment and empty input.
    """
    if not path:
        return False
    if posixpath.isabs(path) or ntpath.isabs(path) or ntpath.splitdrive(path)[0]:
        return False
    return ".." not in _SEPARATORS_RX.split(path)


def split_directories(path: str) -> List[str]:
    """
    Split a storage path into its ordered directory segments.

    The final (item-name) segment is dropped, as are empty segments and
    current-directory markers.
    """
    parts = [p for p in _SEPARATORS_RX.split(path) if p and p != "."]
    return parts[:-1]


def display_name(path: str) -> str:
    """Return the item name of a path without its extension."""
    base = _SEPARATORS_RX.split(path)[-1]
    stem, _ = posixpath.splitext(base)
    return stem or base


def to_project_path(abs_path: str, project_root: str) -> str:
    """Express an absolute filesystem path relative to the project root, with '/'."""
    rel = os.path.relpath(abs_path, project_root)
    return rel.replace(os.sep, "/")
