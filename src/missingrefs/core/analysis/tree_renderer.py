from __future__ import annotations

"""
Report Tree Renderer.

Converts the folder aggregate into an indented text report using the
standard connectors (├──, └──). Folders, composites and composite nodes
are foldouts: a collapsed entry renders its header line only. Asset
entries always list their broken properties when their folder is open.
"""

from typing import TYPE_CHECKING, List, Sequence

from missingrefs.domain.reference_models import PropertyReference

if TYPE_CHECKING:
    from missingrefs.core.analysis.containers import AssetContainer, CompositeContainer, NodeContainer
    from missingrefs.core.analysis.folder_tree import Folder

FOLD_OPEN = "[-]"
FOLD_CLOSED = "[+]"

# -----------------------------------------------------------------------------
# PUBLIC API
# -----------------------------------------------------------------------------

def render_folder(folder: "Folder", label: str, lines: List[str], prefix: str = "", connector: str = "") -> None:
    """
    Render a folder header and, when expanded, its subfolders, composites and assets.

    Args:
        folder: Folder node to render.
        label: Name shown for the folder.
        lines: Accumulator list for output strings.
        prefix: Indentation prefix for the current recursion level.
        connector: Connector drawn before the header ('' for the root).
    """
    lines.append(f"{prefix}{connector}{_fold(folder.visible)} {label}: {folder.count}")
    if not folder.visible:
        return

    child_prefix = prefix + _continuation(connector)
    subfolders = list(folder.iter_subfolders())
    total = len(subfolders) + len(folder.composites) + len(folder.assets)
    index = 0

    for name, sub in subfolders:
        render_folder(sub, name, lines, child_prefix, _connector(index, total))
        index += 1
    for composite in folder.composites:
        render_composite(composite, lines, child_prefix, _connector(index, total))
        index += 1
    for asset in folder.assets:
        render_asset(asset, lines, child_prefix, _connector(index, total))
        index += 1


def render_asset(asset: "AssetContainer", lines: List[str], prefix: str = "", connector: str = "") -> None:
    lines.append(f"{prefix}{connector}{asset.path} ({asset.count} missing)")
    _render_properties(asset.broken_properties, lines, prefix + _continuation(connector))


def render_composite(composite: "CompositeContainer", lines: List[str], prefix: str = "", connector: str = "") -> None:
    lines.append(f"{prefix}{connector}{_fold(composite.visible)} {composite.path} ({composite.count} missing)")
    if not composite.visible or composite.root is None:
        return
    render_node(composite.root, lines, prefix + _continuation(connector), "└── ")


def render_node(node: "NodeContainer", lines: List[str], prefix: str = "", connector: str = "") -> None:
    """Render a composite node. Subtrees without findings are omitted."""
    lines.append(f"{prefix}{connector}{_fold(node.visible)} {node.name}")
    if not node.visible:
        return

    child_prefix = prefix + _continuation(connector)
    children = [c for c in node.children if c.count > 0]
    total = len(node.broken_properties) + len(children)

    for i, prop in enumerate(node.broken_properties):
        lines.append(f"{child_prefix}{_connector(i, total)}{prop.describe()}")
    offset = len(node.broken_properties)
    for i, child in enumerate(children):
        render_node(child, lines, child_prefix, _connector(offset + i, total))

# -----------------------------------------------------------------------------
# INTERNAL HELPERS
# -----------------------------------------------------------------------------

def _render_properties(props: Sequence[PropertyReference], lines: List[str], prefix: str) -> None:
    for i, prop in enumerate(props):
        lines.append(f"{prefix}{_connector(i, len(props))}{prop.describe()}")


def _fold(visible: bool) -> str:
    return FOLD_OPEN if visible else FOLD_CLOSED


def _connector(index: int, total: int) -> str:
    return "└── " if index == total - 1 else "├── "


def _continuation(connector: str) -> str:
    if not connector:
        return ""
    return "    " if connector.startswith("└") else "│   "
