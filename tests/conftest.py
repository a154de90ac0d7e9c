from __future__ import annotations

"""
Global Pytest Configuration and Fixtures.

This module sets up the testing environment, including:
1. Path manipulation to ensure the 'src' directory is importable.
2. Factories for serialized objects, composite hierarchies and items.
3. A builder that lays out a Unity-style project on disk under tmp_path.
"""

import os
import sys
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest

# -----------------------------------------------------------------------------
# Path Configuration
# -----------------------------------------------------------------------------
_SRC_PATH = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))
if _SRC_PATH not in sys.path:
    sys.path.insert(0, _SRC_PATH)

from missingrefs.core.services.storage import InMemoryStorage  # noqa: E402
from missingrefs.core.services.type_catalog import ScriptType, TypeCatalog  # noqa: E402
from missingrefs.domain.reference_models import (  # noqa: E402
    CompositeNode,
    ItemKind,
    SerializedObject,
    StorageItem,
)

PLAYER_GUID = "a1b2c3d4e5f60718293a4b5c6d7e8f90"
DEAD_GUID = "deadbeefdeadbeefdeadbeefdeadbeef"


# -----------------------------------------------------------------------------
# Object Factories
# -----------------------------------------------------------------------------
class ObjectFactory:
    """Creates serialized objects that share one lookup table per item."""

    def __init__(self) -> None:
        self.table: Dict[int, SerializedObject] = {}

    def obj(self, file_id: int, type_name: str = "MonoBehaviour", class_id: int = 114,
            **fields: Any) -> SerializedObject:
        o = SerializedObject(file_id=file_id, class_id=class_id, type_name=type_name,
                             fields=dict(fields), table=self.table)
        self.table[file_id] = o
        return o

    def game_object(self, file_id: int, name: str) -> SerializedObject:
        return self.obj(file_id, "GameObject", 1, m_Name=name)

    def behaviour(self, file_id: int, owner: SerializedObject, script_guid: Optional[str] = PLAYER_GUID,
                  **fields: Any) -> SerializedObject:
        script = {"fileID": "11500000", "guid": script_guid, "type": "3"} if script_guid else {"fileID": "0"}
        return self.obj(file_id, "MonoBehaviour", 114,
                        m_GameObject={"fileID": str(owner.file_id)}, m_Script=script, **fields)


@pytest.fixture
def objects() -> ObjectFactory:
    return ObjectFactory()


def make_asset(path: str, *fields_list: Dict[str, Any], type_name: str = "MonoBehaviour") -> StorageItem:
    """Build a plain item whose first object carries the given fields."""
    factory = ObjectFactory()
    for i, fields in enumerate(fields_list, start=1):
        factory.obj(11400000 + i, type_name, 114, **fields)
    return StorageItem(path=path, guid=uuid.uuid4().hex, objects=factory.table)


def make_prefab(path: str, broken_per_node: List[int]) -> StorageItem:
    """
    Build a composite item with one node per entry of broken_per_node.

    The first node is the root, the others are its children. Each node
    receives the requested number of dangling object references.
    """
    factory = ObjectFactory()
    nodes: List[CompositeNode] = []
    for i, broken in enumerate(broken_per_node):
        go = factory.game_object(100 + i, f"Node{i}")
        fields = {f"m_Ref{j}": {"fileID": "4242", "guid": DEAD_GUID, "type": "2"} for j in range(broken)}
        component = factory.behaviour(200 + i, go, **fields)
        nodes.append(CompositeNode(game_object=go, components=[component]))

    root = nodes[0]
    root.children.extend(nodes[1:])
    return StorageItem(path=path, guid=uuid.uuid4().hex, importer="PrefabImporter",
                       kind=ItemKind.COMPOSITE, objects=factory.table, root=root)


@pytest.fixture
def asset_factory() -> Callable[..., StorageItem]:
    return make_asset


@pytest.fixture
def prefab_factory() -> Callable[..., StorageItem]:
    return make_prefab


@pytest.fixture
def catalog() -> TypeCatalog:
    """Catalog with a 'Game.Player' behaviour exposing Fire() and a Speed property."""
    c = TypeCatalog()
    c.register(PLAYER_GUID, ScriptType(
        name="Player",
        namespace="Game",
        base_name="MonoBehaviour",
        methods=frozenset({"Fire", "get_Speed", "set_Speed"}),
        path="Assets/Scripts/Player.cs",
    ))
    return c


@pytest.fixture
def memory_storage(catalog: TypeCatalog) -> InMemoryStorage:
    storage = InMemoryStorage(catalog)
    storage.add_guid(PLAYER_GUID)
    return storage


# -----------------------------------------------------------------------------
# On-disk Project Builder
# -----------------------------------------------------------------------------
YAML_PREAMBLE = "%YAML 1.1\n%TAG !u! tag:unity3d.com,2011:\n"


class UnityProjectBuilder:
    """Writes assets with '.meta' sidecars into a temporary project."""

    def __init__(self, root: Path) -> None:
        self.root = root
        (root / "Assets").mkdir(parents=True, exist_ok=True)

    def write(self, rel_path: str, content: str, guid: Optional[str] = None,
              importer: str = "DefaultImporter", main_file_id: Optional[int] = None) -> str:
        guid = guid or uuid.uuid4().hex
        target = self.root / rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")

        meta = f"fileFormatVersion: 2\nguid: {guid}\n{importer}:\n"
        if main_file_id is not None:
            meta += f"  mainObjectFileID: {main_file_id}\n"
        meta += "  userData: \n"
        (self.root / (rel_path + ".meta")).write_text(meta, encoding="utf-8")
        return guid

    def asset(self, rel_path: str, documents: str, **kwargs: Any) -> str:
        kwargs.setdefault("importer", "NativeFormatImporter")
        return self.write(rel_path, YAML_PREAMBLE + documents, **kwargs)

    def script(self, rel_path: str, source: str, guid: Optional[str] = None) -> str:
        return self.write(rel_path, source, guid=guid, importer="MonoImporter")


@pytest.fixture
def unity_project(tmp_path: Path) -> UnityProjectBuilder:
    return UnityProjectBuilder(tmp_path / "Project")
