from __future__ import annotations

"""
Scan Result Containers.

An AssetContainer wraps one plain item and the broken slots of its main
object. A CompositeContainer wraps a hierarchy-bearing item: one
NodeContainer per node keeps the broken slots of every object the node
owns. Both walk their item on construction; the caller decides
whether to keep the container based on emptiness.
"""

from typing import Any, Dict, Iterator, List, Optional

from missingrefs.core.analysis.tree_renderer import render_asset, render_composite
from missingrefs.core.analysis.walker import SerializedFieldWalker
from missingrefs.domain.reference_models import CompositeNode, PropertyReference, StorageItem

# -----------------------------------------------------------------------------
# PLAIN ITEMS
# -----------------------------------------------------------------------------

class AssetContainer:
    """
    Container for the scan results of one plain item.

    Args:
        item: The loaded storage item.
        walker: Walker used to inspect the item's main object.
    """

    def __init__(self, item: StorageItem, walker: SerializedFieldWalker) -> None:
        self.item = item
        self.broken_properties: List[PropertyReference] = walker.find_missing_references(item.main_object)

    @property
    def name(self) -> str:
        return self.item.name

    @property
    def path(self) -> str:
        return self.item.path

    @property
    def count(self) -> int:
        return len(self.broken_properties)

    @property
    def has_findings(self) -> bool:
        return bool(self.broken_properties)

    def draw(self, lines: Optional[List[str]] = None, prefix: str = "", connector: str = "") -> List[str]:
        lines = [] if lines is None else lines
        render_asset(self, lines, prefix, connector)
        return lines

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "name": self.name,
            "count": self.count,
            "properties": [p.to_dict() for p in self.broken_properties],
        }

# -----------------------------------------------------------------------------
# COMPOSITE ITEMS
# -----------------------------------------------------------------------------

class NodeContainer:
    """Broken slots of one composite node (its objects) and the total of its subtree."""

    def __init__(self, node: CompositeNode, walker: SerializedFieldWalker, path: str) -> None:
        self.node = node
        self.path = path
        self.visible = False
        self.children: List[NodeContainer] = []

        self.broken_properties: List[PropertyReference] = []
        for obj in node.objects:
            self.broken_properties.extend(walker.find_missing_references(obj))
        self.count = len(self.broken_properties)

    @property
    def name(self) -> str:
        return self.node.name

    def iter_nodes(self) -> Iterator["NodeContainer"]:
        stack: List[NodeContainer] = [self]
        while stack:
            current = stack.pop()
            yield current
            stack.extend(reversed(current.children))

    def set_visible_recursively(self, visible: bool) -> None:
        for node in self.iter_nodes():
            node.visible = visible


def build_node_tree(root: CompositeNode, walker: SerializedFieldWalker) -> NodeContainer:
    """Walk every node of a hierarchy and link the per-node results into a tree."""
    built: Dict[CompositeNode, NodeContainer] = {}
    order: List[NodeContainer] = []
    for path, node in root.walk():
        container = NodeContainer(node, walker, path)
        built[node] = container
        order.append(container)

    # Reverse pre-order visits children before parents
    for container in reversed(order):
        container.children = [built[child] for child in container.node.children]
        container.count += sum(child.count for child in container.children)
    return built[root]


class CompositeContainer:
    """
    Container for the scan results of a hierarchy-bearing item.

    Walks the root node and every descendant node on construction.

    Args:
        item: The loaded composite item.
        walker: Walker used to inspect each node's objects.
    """

    def __init__(self, item: StorageItem, walker: SerializedFieldWalker) -> None:
        self.item = item
        self.visible = False
        self.root: Optional[NodeContainer] = None
        if item.root is not None:
            self.root = build_node_tree(item.root, walker)

    @property
    def name(self) -> str:
        return self.item.name

    @property
    def path(self) -> str:
        return self.item.path

    @property
    def count(self) -> int:
        """Total broken slots across all nodes."""
        return self.root.count if self.root is not None else 0

    @property
    def has_findings(self) -> bool:
        return self.count > 0

    def iter_nodes(self) -> Iterator[NodeContainer]:
        if self.root is not None:
            yield from self.root.iter_nodes()

    def broken_properties_by_node(self) -> Dict[CompositeNode, List[PropertyReference]]:
        """Map every node of the hierarchy to its own (possibly empty) list of broken slots."""
        return {n.node: n.broken_properties for n in self.iter_nodes()}

    def set_visible_recursively(self, visible: bool) -> None:
        self.visible = visible
        if self.root is not None:
            self.root.set_visible_recursively(visible)

    def draw(self, lines: Optional[List[str]] = None, prefix: str = "", connector: str = "") -> List[str]:
        lines = [] if lines is None else lines
        render_composite(self, lines, prefix, connector)
        return lines

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "name": self.name,
            "count": self.count,
            "nodes": [
                {"path": n.path, "properties": [p.to_dict() for p in n.broken_properties]}
                for n in self.iter_nodes() if n.broken_properties
            ],
        }
