from __future__ import annotations

"""
Domain Constants and Static Data Structures.

Centralizes the serialization vocabulary of Unity-style projects (class
identifiers, reserved GUIDs, file extensions) together with the labels
used by the presentation layer.
"""

from typing import Dict, FrozenSet, List

CURRENT_CONFIG_VERSION = "1.0.0"
PROJECT_FOLDER_NAME = "Project"

# -----------------------------------------------------------------------------
# SERIALIZATION VOCABULARY
# -----------------------------------------------------------------------------

CLASS_ID_GAME_OBJECT = 1
CLASS_ID_TRANSFORM = 4
CLASS_ID_MONO_BEHAVIOUR = 114
CLASS_ID_RECT_TRANSFORM = 224
CLASS_ID_PREFAB_INSTANCE = 1001

TRANSFORM_CLASS_IDS: FrozenSet[int] = frozenset({CLASS_ID_TRANSFORM, CLASS_ID_RECT_TRANSFORM})

# GUIDs that address engine resources shipped outside the project
BUILTIN_GUIDS: FrozenSet[str] = frozenset({
    "0000000000000000e000000000000000",
    "0000000000000000f000000000000000",
    "0000000000000000d000000000000000",
})

GUID_LENGTH = 32
NULL_FILE_ID = 0

SCRIPT_FIELD = "m_Script"
NAME_FIELD = "m_Name"
GAME_OBJECT_FIELD = "m_GameObject"
COMPONENT_LIST_FIELD = "m_Component"
FATHER_FIELD = "m_Father"
CHILDREN_FIELD = "m_Children"
PREFAB_INSTANCE_FIELD = "m_PrefabInstance"
MODIFICATION_FIELD = "m_Modification"
TRANSFORM_PARENT_FIELD = "m_TransformParent"
MODIFICATIONS_FIELD = "m_Modifications"
PERSISTENT_CALLS_FIELD = "m_PersistentCalls"

# -----------------------------------------------------------------------------
# FILE TYPES
# -----------------------------------------------------------------------------

DEFAULT_SCAN_ROOTS: List[str] = ["Assets", "Packages"]
DEFAULT_INDEX_ROOTS: List[str] = ["Assets", "Packages", "Library/PackageCache"]

DEFAULT_SERIALIZED_EXTENSIONS: List[str] = [
    ".prefab", ".asset", ".mat", ".controller", ".overrideController",
    ".anim", ".mask", ".playable", ".physicMaterial", ".physicsMaterial2D",
    ".renderTexture", ".mixer", ".guiskin", ".fontsettings", ".lighting",
    ".preset", ".spriteatlas", ".signal", ".terrainlayer", ".brush",
]

DEFAULT_COMPOSITE_EXTENSIONS: List[str] = [".prefab"]

DEFAULT_EXCLUDED_COMPOSITE_IMPORTERS: List[str] = [
    "ModelImporter", "SketchUpImporter", "SpeedTreeImporter",
]

DEFAULT_EXCLUDED_COMPOSITE_EXTENSIONS: List[str] = [
    ".fbx", ".obj", ".blend", ".dae", ".3ds", ".max", ".ma", ".mb", ".skp", ".spm",
]

SCRIPT_EXTENSIONS: List[str] = [".cs"]
META_EXTENSION = ".meta"

# Engine base classes whose members are not visible in project sources
ENGINE_BASE_TYPES: FrozenSet[str] = frozenset({
    "MonoBehaviour", "ScriptableObject", "Behaviour", "Component", "Object",
})

ENGINE_BASE_METHODS: FrozenSet[str] = frozenset({
    "SendMessage", "SendMessageUpwards", "BroadcastMessage",
    "CancelInvoke", "StopAllCoroutines", "StopCoroutine", "StartCoroutine",
    "Invoke", "InvokeRepeating", "CompareTag",
    "set_enabled", "set_name", "set_tag", "set_hideFlags", "set_useGUILayout",
})

# -----------------------------------------------------------------------------
# PRESENTATION LABELS
# -----------------------------------------------------------------------------

INSTRUCTIONS = (
    "Run a scan to check your project for missing references. WARNING: "
    "this loads every asset in the project. For large projects this may take "
    "a long time and use a lot of memory."
)
NO_MISSING_REFERENCES = "No missing references in project"
UNATTACHED_NODE_LABEL = "(unattached objects)"

KIND_LABELS: Dict[str, str] = {
    "MISSING_OBJECT": "missing object",
    "MISSING_TYPE": "missing script type",
    "MISSING_CALLBACK_TARGET": "missing callback target",
    "MISSING_METHOD": "unresolvable method",
}
