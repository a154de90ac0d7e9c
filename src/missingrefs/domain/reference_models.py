from __future__ import annotations

"""
Reference Integrity Domain Data Models.

Defines the loaded representation of stored content items (plain assets
and hierarchy-bearing composites), the serialized objects they contain,
and the immutable record describing one confirmed-broken serialized slot.
"""

import posixpath
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from missingrefs.domain.constants import GAME_OBJECT_FIELD, KIND_LABELS, NAME_FIELD
from missingrefs.utils.paths import display_name
from missingrefs.utils.unity_yaml import as_file_id, is_reference

# -----------------------------------------------------------------------------
# ERRORS
# -----------------------------------------------------------------------------

class ItemLoadError(Exception):
    """Raised by a storage backend when an enumerated path cannot be loaded."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Cannot load '{path}': {reason}")
        self.path = path
        self.reason = reason

# -----------------------------------------------------------------------------
# CLASSIFICATION ENUMS
# -----------------------------------------------------------------------------

class BrokenLinkKind(Enum):
    """Category of an unresolvable serialized slot."""
    MISSING_OBJECT = "MISSING_OBJECT"
    MISSING_TYPE = "MISSING_TYPE"
    MISSING_CALLBACK_TARGET = "MISSING_CALLBACK_TARGET"
    MISSING_METHOD = "MISSING_METHOD"

    @property
    def label(self) -> str:
        return KIND_LABELS[self.value]


class ItemKind(Enum):
    ASSET = "ASSET"
    COMPOSITE = "COMPOSITE"

# -----------------------------------------------------------------------------
# SERIALIZED CONTENT
# -----------------------------------------------------------------------------

@dataclass(eq=False)
class SerializedObject:
    """
    One serialized document inside a stored item.

    Attributes:
        file_id: Local identifier of the object within its item.
        class_id: Native class identifier from the document header.
        type_name: Root key of the document (e.g. 'MonoBehaviour').
        fields: Parsed field mapping of the document body.
        stripped: True for placeholders of objects owned by a source prefab.
        table: Shared lookup of every object in the same item, by file id.
    """
    file_id: int
    class_id: int
    type_name: str
    fields: Dict[str, Any] = field(default_factory=dict)
    stripped: bool = False
    table: Dict[int, "SerializedObject"] = field(default_factory=dict, repr=False)

    @property
    def name(self) -> str:
        """Object name, the owning game object's name for components, else the type name."""
        value = self.fields.get(NAME_FIELD)
        if isinstance(value, str) and value:
            return value
        owner_ref = self.fields.get(GAME_OBJECT_FIELD)
        if is_reference(owner_ref):
            owner = self.table.get(as_file_id(owner_ref["fileID"]))
            if owner is not None and owner is not self:
                return owner.name
        return self.type_name

    def sibling(self, file_id: int) -> Optional["SerializedObject"]:
        return self.table.get(file_id)


@dataclass(eq=False)
class CompositeNode:
    """
    A named sub-object of a composite item and the objects attached to it.

    For a nested prefab instance, game_object is the instance document and
    components hold its stripped placeholders plus any objects added on top.
    """
    game_object: SerializedObject
    components: List[SerializedObject] = field(default_factory=list)
    children: List["CompositeNode"] = field(default_factory=list)
    label: str = ""

    @property
    def name(self) -> str:
        return self.label or self.game_object.name

    @property
    def objects(self) -> List[SerializedObject]:
        """Every serialized object owned by this node, head object first."""
        return [self.game_object, *self.components]

    def walk(self, parent_path: str = "") -> Iterator[Tuple[str, "CompositeNode"]]:
        """Yield (hierarchy_path, node) for this node and all descendants, depth-first."""
        stack: List[Tuple[str, CompositeNode]] = [(parent_path, self)]
        while stack:
            parent, node = stack.pop()
            path = f"{parent}/{node.name}" if parent else node.name
            yield path, node
            stack.extend((path, child) for child in reversed(node.children))


@dataclass(eq=False)
class StorageItem:
    """
    An addressable unit of persisted content within the project.

    Attributes:
        path: Project-relative path using forward slashes.
        guid: Stable identifier read from the sidecar metadata.
        importer: Name of the importer that produced the item.
        kind: Plain asset or hierarchy-bearing composite.
        objects: Serialized objects of the item, keyed by file id.
        main_file_id: File id of the main object, if known.
        root: Root node of the hierarchy for composite items.
    """
    path: str
    guid: str = ""
    importer: str = ""
    kind: ItemKind = ItemKind.ASSET
    objects: Dict[int, SerializedObject] = field(default_factory=dict)
    main_file_id: Optional[int] = None
    root: Optional[CompositeNode] = None

    @property
    def name(self) -> str:
        return display_name(self.path)

    @property
    def extension(self) -> str:
        return posixpath.splitext(self.path)[1].lower()

    @property
    def is_composite(self) -> bool:
        return self.kind is ItemKind.COMPOSITE

    @property
    def main_object(self) -> Optional[SerializedObject]:
        if self.main_file_id is not None and self.main_file_id in self.objects:
            return self.objects[self.main_file_id]
        for obj in self.objects.values():
            return obj
        return None

# -----------------------------------------------------------------------------
# FINDINGS
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class PropertyReference:
    """
    Immutable record of one confirmed-broken serialized slot.

    Attributes:
        owner_file_id: File id of the object holding the slot.
        owner_type: Serialized type name of the owning object.
        owner_name: Display name of the owning object.
        property_path: Dotted path of the slot inside the owner's fields.
        kind: Category of the broken link.
        detail: Unresolved identifier (GUID, file id or method name).
    """
    owner_file_id: int
    owner_type: str
    owner_name: str
    property_path: str
    kind: BrokenLinkKind
    detail: str = ""

    def describe(self) -> str:
        text = f"{self.owner_type} '{self.owner_name}' {self.property_path}: {self.kind.label}"
        return f"{text} ({self.detail})" if self.detail else text

    def to_dict(self) -> Dict[str, Any]:
        return {
            "owner_file_id": self.owner_file_id,
            "owner_type": self.owner_type,
            "owner_name": self.owner_name,
            "property_path": self.property_path,
            "kind": self.kind.value,
            "detail": self.detail,
        }
