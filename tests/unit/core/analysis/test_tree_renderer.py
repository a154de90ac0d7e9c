from __future__ import annotations

"""
Unit tests for the report renderer.

Checks header formatting, connector layout and foldout behaviour of
folders, composites and composite nodes.
"""

from missingrefs.core.analysis.containers import AssetContainer, CompositeContainer
from missingrefs.core.analysis.folder_tree import Folder
from missingrefs.core.analysis.tree_renderer import FOLD_CLOSED, FOLD_OPEN
from missingrefs.core.analysis.walker import SerializedFieldWalker


def _build_tree(memory_storage, asset_factory, prefab_factory) -> Folder:
    walker = SerializedFieldWalker(memory_storage)
    root = Folder()
    asset = AssetContainer(
        asset_factory("Data/cfg.asset", {"m_Icon": {"fileID": "9", "guid": "ab" * 16, "type": "2"}}),
        walker,
    )
    prefab = CompositeContainer(prefab_factory("Models/char.prefab", [0, 1]), walker)
    root.insert(asset.path, asset)
    root.insert(prefab.path, prefab)
    root.sort_recursively()
    return root


def test_collapsed_root_renders_header_only(memory_storage, asset_factory, prefab_factory) -> None:
    root = _build_tree(memory_storage, asset_factory, prefab_factory)
    assert root.draw("Project") == [f"{FOLD_CLOSED} Project: 2"]


def test_expanded_tree_layout(memory_storage, asset_factory, prefab_factory) -> None:
    root = _build_tree(memory_storage, asset_factory, prefab_factory)
    root.set_visible_recursively(True)

    lines = root.draw("Project")

    assert lines[0] == f"{FOLD_OPEN} Project: 2"
    assert lines[1] == f"├── {FOLD_OPEN} Data: 1"
    assert lines[2] == "│   └── Data/cfg.asset (1 missing)"
    assert lines[3].startswith("│       └── MonoBehaviour ")
    assert "m_Icon: missing object" in lines[3]
    assert lines[4] == f"└── {FOLD_OPEN} Models: 1"
    assert lines[5] == f"    └── {FOLD_OPEN} Models/char.prefab (1 missing)"
    assert lines[6] == f"        └── {FOLD_OPEN} Node0"
    assert lines[7] == f"            └── {FOLD_OPEN} Node1"
    assert lines[8].startswith("                └── MonoBehaviour 'Node1' m_Ref0: missing object")
    assert len(lines) == 9


def test_collapsed_composite_hides_nodes(memory_storage, asset_factory, prefab_factory) -> None:
    root = _build_tree(memory_storage, asset_factory, prefab_factory)
    root.set_visible_recursively(True)
    models = root.find("Models")
    models.composites[0].visible = False

    lines = root.draw("Project")

    assert lines[-1] == f"    └── {FOLD_CLOSED} Models/char.prefab (1 missing)"


def test_draw_appends_to_existing_lines(memory_storage, asset_factory, prefab_factory) -> None:
    root = _build_tree(memory_storage, asset_factory, prefab_factory)
    lines = ["header"]
    out = root.draw("Project", lines)
    assert out is lines
    assert lines == ["header", f"{FOLD_CLOSED} Project: 2"]
