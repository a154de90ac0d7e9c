from __future__ import annotations

"""
Persisted-Object Storage Services.

Defines the collaborator interfaces consumed by the scanner (enumerating
stored paths, loading items, resolving GUIDs and script types) and
provides two backends:

- InMemoryStorage: items and GUIDs registered programmatically.
- UnityProjectStorage: a Unity-style project on disk, i.e. text-serialized
  YAML assets next to '.meta' sidecars that carry stable GUIDs.
"""

import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

import yaml

from missingrefs.core.services.type_catalog import ScriptType, TypeCatalog, parse_script_source
from missingrefs.domain.constants import (
    CHILDREN_FIELD,
    CLASS_ID_GAME_OBJECT,
    CLASS_ID_PREFAB_INSTANCE,
    COMPONENT_LIST_FIELD,
    DEFAULT_COMPOSITE_EXTENSIONS,
    DEFAULT_EXCLUDED_COMPOSITE_EXTENSIONS,
    DEFAULT_EXCLUDED_COMPOSITE_IMPORTERS,
    DEFAULT_INDEX_ROOTS,
    DEFAULT_SCAN_ROOTS,
    DEFAULT_SERIALIZED_EXTENSIONS,
    FATHER_FIELD,
    GAME_OBJECT_FIELD,
    META_EXTENSION,
    MODIFICATION_FIELD,
    MODIFICATIONS_FIELD,
    NAME_FIELD,
    NULL_FILE_ID,
    PREFAB_INSTANCE_FIELD,
    SCRIPT_EXTENSIONS,
    TRANSFORM_CLASS_IDS,
    TRANSFORM_PARENT_FIELD,
    UNATTACHED_NODE_LABEL,
)
from missingrefs.domain.reference_models import (
    CompositeNode,
    ItemKind,
    ItemLoadError,
    SerializedObject,
    StorageItem,
)
from missingrefs.utils.paths import to_project_path
from missingrefs.utils.unity_yaml import YAML_HEADER, as_file_id, is_reference, iter_documents, read_meta

logger = logging.getLogger(__name__)

# ==============================================================================
# COLLABORATOR INTERFACES
# ==============================================================================

class StorageIndex(ABC):
    """Enumerates and loads the stored content items of a project."""

    @abstractmethod
    def list_all_item_paths(self) -> List[str]:
        """Return every stored path. Paths outside the project may be included."""

    @abstractmethod
    def load_item(self, path: str) -> Optional[StorageItem]:
        """
        Load one item.

        Returns:
            Optional[StorageItem]: The item, or None when nothing loadable exists.

        Raises:
            ItemLoadError: When the item exists but cannot be read or parsed.
        """


class ReferenceResolver(ABC):
    """Answers existence questions about reference targets and script types."""

    @abstractmethod
    def has_guid(self, guid: str) -> bool:
        """Return True if an item with this GUID exists."""

    @abstractmethod
    def script_type(self, guid: str) -> Optional[ScriptType]:
        """Return the script type declared by the item with this GUID, if any."""

    @abstractmethod
    def find_type(self, name: str) -> Optional[ScriptType]:
        """Return a script type by (assembly-qualified, full or short) name."""

    @abstractmethod
    def has_method(self, script_type: ScriptType, method_name: str) -> Optional[bool]:
        """Return whether a member resolves on the type, or None if undecidable."""

# ==============================================================================
# IN-MEMORY BACKEND
# ==============================================================================

class InMemoryStorage(StorageIndex, ReferenceResolver):
    """Storage backed by programmatically registered items and GUIDs."""

    def __init__(self, catalog: Optional[TypeCatalog] = None) -> None:
        self._items: Dict[str, Optional[StorageItem]] = {}
        self._failures: Dict[str, str] = {}
        self._guids: Set[str] = set()
        self.catalog = catalog or TypeCatalog()

    def add_item(self, item: StorageItem) -> StorageItem:
        self._items[item.path] = item
        if item.guid:
            self._guids.add(item.guid)
        return item

    def add_unloadable(self, path: str, reason: str = "") -> None:
        """Register a path that loads as nothing, or raises ItemLoadError when a reason is given."""
        self._items[path] = None
        if reason:
            self._failures[path] = reason

    def add_guid(self, guid: str) -> None:
        self._guids.add(guid)

    def list_all_item_paths(self) -> List[str]:
        return list(self._items)

    def load_item(self, path: str) -> Optional[StorageItem]:
        if path in self._failures:
            raise ItemLoadError(path, self._failures[path])
        return self._items.get(path)

    def has_guid(self, guid: str) -> bool:
        return guid in self._guids

    def script_type(self, guid: str) -> Optional[ScriptType]:
        return self.catalog.script_type(guid)

    def find_type(self, name: str) -> Optional[ScriptType]:
        return self.catalog.find_type(name)

    def has_method(self, script_type: ScriptType, method_name: str) -> Optional[bool]:
        return self.catalog.has_method(script_type, method_name)

# ==============================================================================
# UNITY PROJECT BACKEND
# ==============================================================================

class UnityProjectStorage(StorageIndex, ReferenceResolver):
    """
    Storage over a Unity-style project directory.

    The GUID index and the script catalog are built lazily, on first use,
    from the '.meta' files found under the index roots.
    """

    def __init__(
            self,
            project_path: str,
            scan_roots: Optional[Iterable[str]] = None,
            index_roots: Optional[Iterable[str]] = None,
            serialized_extensions: Optional[Iterable[str]] = None,
            composite_extensions: Optional[Iterable[str]] = None,
            model_extensions: Optional[Iterable[str]] = None,
            model_importers: Optional[Iterable[str]] = None,
    ) -> None:
        self.project_path = os.path.abspath(project_path)
        self.scan_roots = list(scan_roots if scan_roots is not None else DEFAULT_SCAN_ROOTS)
        self.index_roots = list(index_roots if index_roots is not None else DEFAULT_INDEX_ROOTS)
        self.serialized_extensions = _lower_set(serialized_extensions, DEFAULT_SERIALIZED_EXTENSIONS)
        self.composite_extensions = _lower_set(composite_extensions, DEFAULT_COMPOSITE_EXTENSIONS)
        self.model_extensions = _lower_set(model_extensions, DEFAULT_EXCLUDED_COMPOSITE_EXTENSIONS)
        self.model_importers = frozenset(
            model_importers if model_importers is not None else DEFAULT_EXCLUDED_COMPOSITE_IMPORTERS
        )

        self._guid_index: Optional[Dict[str, str]] = None
        self._catalog = TypeCatalog()

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "UnityProjectStorage":
        return cls(
            config["project_path"],
            scan_roots=config.get("scan_roots"),
            index_roots=config.get("index_roots"),
            serialized_extensions=config.get("serialized_extensions"),
            composite_extensions=config.get("composite_extensions"),
            model_extensions=config.get("excluded_composite_extensions"),
            model_importers=config.get("excluded_composite_importers"),
        )

    # --- StorageIndex -------------------------------------------------------

    def list_all_item_paths(self) -> List[str]:
        paths: List[str] = []
        for root in self.scan_roots:
            for abs_path in self._walk_files(root):
                if not abs_path.endswith(META_EXTENSION):
                    paths.append(to_project_path(abs_path, self.project_path))
        return paths

    def load_item(self, path: str) -> Optional[StorageItem]:
        abs_path = os.path.join(self.project_path, path)
        if not os.path.isfile(abs_path):
            return None

        guid, importer, main_file_id = self._read_sidecar(abs_path)
        item = StorageItem(path=path, guid=guid, importer=importer, main_file_id=main_file_id)
        ext = item.extension

        if ext in self.model_extensions or importer in self.model_importers:
            # Imported model hierarchies are generated, their objects are not on disk
            item.kind = ItemKind.COMPOSITE
            return item

        if ext not in self.serialized_extensions:
            return item

        try:
            with open(abs_path, "r", encoding="utf-8") as f:
                text = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise ItemLoadError(path, str(e)) from e

        if not text.startswith(YAML_HEADER):
            raise ItemLoadError(path, "binary serialization is not supported")

        try:
            item.objects = parse_objects(text)
        except yaml.YAMLError as e:
            raise ItemLoadError(path, f"malformed document: {e}") from e

        if ext in self.composite_extensions:
            item.root = build_hierarchy(item.objects)
            if item.root is not None:
                item.kind = ItemKind.COMPOSITE

        return item

    # --- ReferenceResolver --------------------------------------------------

    @property
    def guid_index(self) -> Dict[str, str]:
        if self._guid_index is None:
            self._guid_index = self._build_index()
        return self._guid_index

    @property
    def catalog(self) -> TypeCatalog:
        if self._guid_index is None:
            self._guid_index = self._build_index()
        return self._catalog

    def has_guid(self, guid: str) -> bool:
        return guid in self.guid_index

    def script_type(self, guid: str) -> Optional[ScriptType]:
        return self.catalog.script_type(guid)

    def find_type(self, name: str) -> Optional[ScriptType]:
        return self.catalog.find_type(name)

    def has_method(self, script_type: ScriptType, method_name: str) -> Optional[bool]:
        return self.catalog.has_method(script_type, method_name)

    # --- Internals ----------------------------------------------------------

    def _walk_files(self, root: str) -> Iterable[str]:
        """Yield files under a project root in sorted order, skipping hidden and '~' entries."""
        base = os.path.join(self.project_path, root)
        if not os.path.isdir(base):
            return
        for dir_path, dirs, files in os.walk(base):
            dirs[:] = sorted(d for d in dirs if not _is_ignored(d))
            for file_name in sorted(files):
                if not _is_ignored(file_name):
                    yield os.path.join(dir_path, file_name)

    def _build_index(self) -> Dict[str, str]:
        index: Dict[str, str] = {}
        for root in self.index_roots:
            for abs_path in self._walk_files(root):
                if not abs_path.endswith(META_EXTENSION):
                    continue
                asset_path = abs_path[: -len(META_EXTENSION)]
                try:
                    with open(abs_path, "r", encoding="utf-8") as f:
                        guid, _, _ = read_meta(f.read())
                except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
                    logger.debug(f"Unreadable sidecar '{abs_path}': {e}")
                    continue
                if not guid:
                    continue

                index[guid] = to_project_path(asset_path, self.project_path)
                if os.path.splitext(asset_path)[1].lower() in SCRIPT_EXTENSIONS:
                    self._register_script(guid, asset_path)

        logger.info(f"Indexed {len(index)} GUIDs and {len(self._catalog)} script types.")
        return index

    def _register_script(self, guid: str, abs_path: str) -> None:
        try:
            with open(abs_path, "r", encoding="utf-8-sig") as f:
                source = f.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.debug(f"Unreadable script '{abs_path}': {e}")
            return

        stem = os.path.splitext(os.path.basename(abs_path))[0]
        script_type = parse_script_source(source, stem, to_project_path(abs_path, self.project_path))
        if script_type is not None:
            self._catalog.register(guid, script_type)

    def _read_sidecar(self, abs_path: str) -> Tuple[str, str, Optional[int]]:
        meta_path = abs_path + META_EXTENSION
        if not os.path.isfile(meta_path):
            return "", "", None
        try:
            with open(meta_path, "r", encoding="utf-8") as f:
                return read_meta(f.read())
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
            logger.debug(f"Unreadable sidecar '{meta_path}': {e}")
            return "", "", None

# ==============================================================================
# PARSING HELPERS
# ==============================================================================

def parse_objects(text: str) -> Dict[int, SerializedObject]:
    """Parse a Unity YAML stream into objects sharing one lookup table."""
    table: Dict[int, SerializedObject] = {}
    for class_id, file_id, stripped, type_name, fields in iter_documents(text):
        table[file_id] = SerializedObject(
            file_id=file_id,
            class_id=class_id,
            type_name=type_name,
            fields=fields,
            stripped=stripped,
            table=table,
        )
    return table


def build_hierarchy(objects: Dict[int, SerializedObject]) -> Optional[CompositeNode]:
    """
    Rebuild the game object tree of a composite.

    Every game object and every nested prefab instance becomes a node.
    Stripped placeholders belong to the instance named by their
    'm_PrefabInstance', so components and children attached to a
    placeholder land on that instance's node. Parents come from
    'm_Father' for transforms and from 'm_TransformParent' for instances.
    Nodes no path from the root reaches are attached under the root, and
    objects no node owns are gathered in one extra node, so every object
    of the item is part of exactly one node.

    Returns:
        Optional[CompositeNode]: The root node, or None if the item holds
        neither game objects nor prefab instances.
    """
    owners: Dict[int, CompositeNode] = {}
    nodes: List[CompositeNode] = []
    transforms: Dict[CompositeNode, List[int]] = {}

    def claim(obj: SerializedObject, node: CompositeNode) -> None:
        owners[obj.file_id] = node
        if obj.class_id in TRANSFORM_CLASS_IDS:
            transforms.setdefault(node, []).append(obj.file_id)

    # Heads: real game objects with their listed components, and instances
    for obj in objects.values():
        if obj.class_id == CLASS_ID_PREFAB_INSTANCE:
            node = CompositeNode(game_object=obj, label=_instance_name(obj))
        elif obj.class_id == CLASS_ID_GAME_OBJECT and not obj.stripped:
            node = CompositeNode(game_object=obj)
        else:
            continue
        owners[obj.file_id] = node
        nodes.append(node)

    if not nodes:
        return None

    for node in nodes:
        for entry in node.game_object.fields.get(COMPONENT_LIST_FIELD) or []:
            ref = entry.get("component") if isinstance(entry, dict) else None
            component = objects.get(_ref_id(ref))
            if component is not None and component.file_id not in owners:
                node.components.append(component)
                claim(component, node)

    # Placeholders stand for the instance that owns them
    for obj in objects.values():
        if obj.stripped and obj.file_id not in owners:
            instance = owners.get(_ref_id(obj.fields.get(PREFAB_INSTANCE_FIELD)))
            if instance is not None and instance.game_object.class_id == CLASS_ID_PREFAB_INSTANCE:
                instance.components.append(obj)
                claim(obj, instance)

    # Objects attached to a head or placeholder without being listed by it
    for obj in objects.values():
        if obj.file_id not in owners:
            owner = owners.get(_ref_id(obj.fields.get(GAME_OBJECT_FIELD)))
            if owner is not None:
                owner.components.append(obj)
                claim(obj, owner)

    root = _link_nodes(nodes, owners, transforms, objects)

    leftovers = [obj for obj in objects.values() if obj.file_id not in owners]
    if leftovers:
        logger.debug(f"{len(leftovers)} objects are not attached to any game object")
        root.children.append(CompositeNode(
            game_object=leftovers[0],
            components=leftovers[1:],
            label=UNATTACHED_NODE_LABEL,
        ))
    return root


def _link_nodes(
        nodes: List[CompositeNode],
        owners: Dict[int, CompositeNode],
        transforms: Dict[CompositeNode, List[int]],
        objects: Dict[int, SerializedObject],
) -> CompositeNode:
    """Wire parent/child links, pick the root and hang unreachable nodes below it."""
    parents: Dict[CompositeNode, CompositeNode] = {}
    declared_roots: List[CompositeNode] = []

    for node in nodes:
        parent_id = _parent_ref(node, transforms, objects)
        parent = owners.get(parent_id) if parent_id else None
        if parent is not None and parent is not node:
            parents[node] = parent
            parent.children.append(node)
        elif parent_id == NULL_FILE_ID:
            declared_roots.append(node)

    for node in nodes:
        if node.children:
            order = _child_order(node, transforms, objects)
            node.children.sort(key=lambda c: min(
                (order[t] for t in transforms.get(c, []) if t in order), default=len(order)
            ))

    root = declared_roots[0] if declared_roots else next((n for n in nodes if n not in parents), nodes[0])
    parent = parents.pop(root, None)
    if parent is not None:
        parent.children.remove(root)

    reached = _reachable(root)
    for node in nodes:
        if node in reached:
            continue
        parent = parents.pop(node, None)
        if parent is not None:
            parent.children.remove(node)
        root.children.append(node)
        reached.update(_reachable(node, reached))
    return root


def _parent_ref(
        node: CompositeNode,
        transforms: Dict[CompositeNode, List[int]],
        objects: Dict[int, SerializedObject],
) -> Optional[int]:
    """Parent file id of a node, 0 for a declared root or None when nothing says."""
    head = node.game_object
    if head.class_id == CLASS_ID_PREFAB_INSTANCE:
        modification = head.fields.get(MODIFICATION_FIELD)
        if isinstance(modification, dict):
            return _ref_id(modification.get(TRANSFORM_PARENT_FIELD))
        return None
    for file_id in transforms.get(node, []):
        transform = objects[file_id]
        if not transform.stripped:
            return _ref_id(transform.fields.get(FATHER_FIELD))
    return None


def _child_order(
        node: CompositeNode,
        transforms: Dict[CompositeNode, List[int]],
        objects: Dict[int, SerializedObject],
) -> Dict[int, int]:
    """Position of each child transform in the node's 'm_Children' list."""
    order: Dict[int, int] = {}
    for file_id in transforms.get(node, []):
        for child_ref in objects[file_id].fields.get(CHILDREN_FIELD) or []:
            order.setdefault(_ref_id(child_ref), len(order))
    return order


def _reachable(start: CompositeNode, seen: Optional[Set[CompositeNode]] = None) -> Set[CompositeNode]:
    """Collect the subtree of a node without recursion, ignoring already seen nodes."""
    seen = seen or set()
    found: Set[CompositeNode] = set()
    stack = [start]
    while stack:
        node = stack.pop()
        if node in found or node in seen:
            continue
        found.add(node)
        stack.extend(node.children)
    return found


def _instance_name(instance: SerializedObject) -> str:
    """Name a nested instance by its 'm_Name' override, else by its type."""
    modification = instance.fields.get(MODIFICATION_FIELD)
    entries = modification.get(MODIFICATIONS_FIELD) if isinstance(modification, dict) else None
    for entry in entries or []:
        if isinstance(entry, dict) and entry.get("propertyPath") == NAME_FIELD:
            value = entry.get("value")
            if isinstance(value, str) and value:
                return value
    return instance.type_name


def _ref_id(value: Any) -> int:
    if not is_reference(value):
        return NULL_FILE_ID
    file_id = as_file_id(value["fileID"])
    return NULL_FILE_ID if file_id is None else file_id


def _lower_set(values: Optional[Iterable[str]], fallback: List[str]) -> frozenset:
    return frozenset(v.lower() for v in (values if values is not None else fallback))


def _is_ignored(name: str) -> bool:
    return name.startswith(".") or name.endswith("~")
