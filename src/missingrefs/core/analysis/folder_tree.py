from __future__ import annotations

"""
Folder Aggregator.

Builds a hierarchical folder model over scan results. Each Folder holds
subfolders keyed by name (iterated in lexicographic order), the plain
and composite results stored directly in it, the number of results in
its subtree and a visibility flag for the report foldouts.
"""

import bisect
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from missingrefs.core.analysis.containers import AssetContainer, CompositeContainer
from missingrefs.core.analysis.tree_renderer import render_folder
from missingrefs.utils.paths import split_directories

ScanResult = Union[AssetContainer, CompositeContainer]


class Folder:
    """One directory level of the result aggregate."""

    def __init__(self) -> None:
        self._subfolders: Dict[str, Folder] = {}
        self._names: List[str] = []
        self.assets: List[AssetContainer] = []
        self.composites: List[CompositeContainer] = []
        self.count = 0
        self.visible = False

    # ==========================================================================
    # STRUCTURE
    # ==========================================================================

    @property
    def subfolder_names(self) -> List[str]:
        return list(self._names)

    def iter_subfolders(self) -> Iterator[Tuple[str, Folder]]:
        for name in self._names:
            yield name, self._subfolders[name]

    def subfolder(self, name: str) -> Optional[Folder]:
        return self._subfolders.get(name)

    def find(self, path: str) -> Optional[Folder]:
        """
        Return the folder at a '/'-separated directory path below this one.

        Every segment is treated as a directory. The empty path returns self.
        """
        folder: Optional[Folder] = self
        for name in (s for s in path.replace("\\", "/").split("/") if s):
            folder = folder.subfolder(name) if folder is not None else None
        return folder

    def iter_folders(self, prefix: str = "") -> Iterator[Tuple[str, Folder]]:
        """Yield (path, folder) for this folder and every descendant, depth-first in name order."""
        yield prefix, self
        for name, sub in self.iter_subfolders():
            yield from sub.iter_folders(f"{prefix}/{name}" if prefix else name)

    @property
    def is_empty(self) -> bool:
        return not (self._subfolders or self.assets or self.composites)

    # ==========================================================================
    # MUTATION
    # ==========================================================================

    def insert(self, path: str, result: ScanResult) -> Folder:
        """
        Place a result under the folder chain derived from its path.

        The count of every folder on the chain, this one included, is
        incremented once. Missing folders are created on the way down.

        Args:
            path: Project-relative path of the item ('/' or '\\' separated).
            result: The kept scan result for that item.

        Returns:
            Folder: The terminal folder that now holds the result.
        """
        if not isinstance(result, (AssetContainer, CompositeContainer)):
            raise TypeError(f"Unsupported scan result type: {type(result).__name__}")

        folder = self
        for name in split_directories(path):
            folder.count += 1
            sub = folder._subfolders.get(name)
            if sub is None:
                sub = Folder()
                folder._subfolders[name] = sub
                bisect.insort(folder._names, name)
            folder = sub

        if isinstance(result, CompositeContainer):
            folder.composites.append(result)
        else:
            folder.assets.append(result)
        folder.count += 1
        return folder

    def clear(self) -> None:
        """Drop all subfolders and results and reset the count. Visibility is kept."""
        self._subfolders.clear()
        self._names.clear()
        self.assets.clear()
        self.composites.clear()
        self.count = 0

    def sort_recursively(self) -> None:
        """Sort assets and composites by name, here and in every subfolder."""
        self.assets.sort(key=lambda a: a.name)
        self.composites.sort(key=lambda c: c.name)
        for sub in self._subfolders.values():
            sub.sort_recursively()

    def set_visible_recursively(self, visible: bool) -> None:
        """Set the visibility of this folder, its composites and every descendant."""
        self.visible = visible
        for composite in self.composites:
            composite.set_visible_recursively(visible)
        for sub in self._subfolders.values():
            sub.set_visible_recursively(visible)

    def toggle(self, visible: bool, apply_to_descendants: bool = False) -> None:
        """
        Change this folder's foldout state.

        Args:
            visible: The new state.
            apply_to_descendants: Cascade the new state to the whole subtree.
        """
        if apply_to_descendants:
            self.set_visible_recursively(visible)
        else:
            self.visible = visible

    # ==========================================================================
    # PRESENTATION
    # ==========================================================================

    def draw(self, label: str, lines: Optional[List[str]] = None) -> List[str]:
        """
        Render this folder as '<label>: <count>' followed by its expanded contents.

        Args:
            label: Name shown on the header line.
            lines: Optional accumulator to append to.

        Returns:
            List[str]: The accumulated report lines.
        """
        lines = [] if lines is None else lines
        render_folder(self, label, lines)
        return lines

    def to_dict(self, name: str = "") -> Dict[str, Any]:
        return {
            "name": name,
            "count": self.count,
            "folders": [sub.to_dict(n) for n, sub in self.iter_subfolders()],
            "composites": [c.to_dict() for c in self.composites],
            "assets": [a.to_dict() for a in self.assets],
        }
