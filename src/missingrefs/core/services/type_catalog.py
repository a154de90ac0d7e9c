from __future__ import annotations

"""
Script Type Catalog.

Maps script GUIDs to lightweight type descriptions extracted from C#
sources (name, namespace, base type, callable member names). The walker
uses the catalog to decide whether a callback's method name can still be
resolved on its target type.

Extraction is lexical: comments are removed and declarations are matched
with regular expressions. Members declared in a file are attributed to
the type the file defines.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Optional, Set

from missingrefs.domain.constants import ENGINE_BASE_METHODS, ENGINE_BASE_TYPES

logger = logging.getLogger(__name__)

_COMMENT_RX = re.compile(r"//[^\n]*|/\*.*?\*/", re.DOTALL)
_NAMESPACE_RX = re.compile(r"\bnamespace\s+([\w.]+)")
_CLASS_RX = re.compile(r"\bclass\s+(\w+)(?:\s*<[^>{]*>)?(?:\s*:\s*([\w.]+))?")
_METHOD_RX = re.compile(
    r"^[ \t]*(?:\[[^\]\n]*\]\s*)*"
    r"(?:(?:public|private|protected|internal|static|virtual|override|abstract|"
    r"async|sealed|new|unsafe|extern|partial)\s+)*"
    r"[\w.]+(?:<[^>()\n]*>)?(?:\[\])?\??\s+(\w+)\s*(?:<[^>()\n]*>)?\s*\(",
    re.MULTILINE,
)
_PROPERTY_RX = re.compile(
    r"^[ \t]*(?:(?:public|private|protected|internal|static|virtual|override|abstract|new)\s+)+"
    r"[\w.]+(?:<[^>()\n]*>)?(?:\[\])?\??\s+(\w+)\s*(?:\{|=>)",
    re.MULTILINE,
)

# Statement keywords that the method pattern can pick up as names
_NOT_MEMBER_NAMES: FrozenSet[str] = frozenset({
    "if", "for", "foreach", "while", "switch", "using", "lock", "catch",
    "return", "new", "typeof", "nameof", "sizeof", "default", "when",
})


@dataclass(frozen=True)
class ScriptType:
    """
    Description of a script type declared in project sources.

    Attributes:
        name: Short type name.
        namespace: Enclosing namespace, empty for the global namespace.
        base_name: Declared base type (short or qualified), empty if none.
        methods: Member names callable from a serialized callback.
        path: Project path of the declaring source file.
    """
    name: str
    namespace: str = ""
    base_name: str = ""
    methods: FrozenSet[str] = field(default_factory=frozenset)
    path: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.namespace}.{self.name}" if self.namespace else self.name


def parse_script_source(source: str, file_stem: str, path: str = "") -> Optional[ScriptType]:
    """
    Extract the type declared by a C# source file.

    The type whose name matches the file name wins; otherwise the first
    declared class is used.

    Returns:
        Optional[ScriptType]: The declared type, or None if no class is found.
    """
    code = _COMMENT_RX.sub("", source)

    classes = _CLASS_RX.findall(code)
    if not classes:
        return None

    name, base = classes[0]
    for candidate, candidate_base in classes:
        if candidate == file_stem:
            name, base = candidate, candidate_base
            break

    ns_match = _NAMESPACE_RX.search(code)
    methods: Set[str] = {
        m for m in _METHOD_RX.findall(code) if m not in _NOT_MEMBER_NAMES
    }
    for prop in _PROPERTY_RX.findall(code):
        methods.add(f"get_{prop}")
        methods.add(f"set_{prop}")

    return ScriptType(
        name=name,
        namespace=ns_match.group(1) if ns_match else "",
        base_name=base or "",
        methods=frozenset(methods),
        path=path,
    )


class TypeCatalog:
    """Registry of script types by GUID and by (full or short) type name."""

    def __init__(self) -> None:
        self._by_guid: Dict[str, ScriptType] = {}
        self._by_name: Dict[str, ScriptType] = {}

    def __len__(self) -> int:
        return len(self._by_guid)

    def register(self, guid: str, script_type: ScriptType) -> None:
        self._by_guid[guid] = script_type
        self._by_name[script_type.full_name] = script_type
        self._by_name.setdefault(script_type.name, script_type)

    def script_type(self, guid: str) -> Optional[ScriptType]:
        return self._by_guid.get(guid)

    def find_type(self, name: str) -> Optional[ScriptType]:
        """
        Look up a type by name.

        Accepts assembly-qualified names ('Ns.Type, Assembly-CSharp'),
        full names and short names.
        """
        type_name = name.split(",", 1)[0].strip()
        if not type_name:
            return None
        found = self._by_name.get(type_name)
        if found is None and "." in type_name:
            found = self._by_name.get(type_name.rsplit(".", 1)[1])
        return found

    def resolve_methods(self, script_type: ScriptType) -> Optional[FrozenSet[str]]:
        """
        Collect member names of a type and its base chain.

        Returns:
            Optional[FrozenSet[str]]: All member names, or None when the chain
                                      reaches a base type outside the project
                                      that is not a known engine base.
        """
        methods: Set[str] = set()
        seen: Set[str] = set()
        current: Optional[ScriptType] = script_type

        while current is not None:
            if current.full_name in seen:
                break
            seen.add(current.full_name)
            methods.update(current.methods)

            base = current.base_name
            if not base:
                break
            short_base = base.rsplit(".", 1)[-1]
            if short_base in ENGINE_BASE_TYPES:
                methods.update(ENGINE_BASE_METHODS)
                break

            current = self.find_type(base)
            if current is None:
                logger.debug(f"Base type '{base}' of '{script_type.full_name}' is not in the catalog.")
                return None

        return frozenset(methods)

    def has_method(self, script_type: ScriptType, method_name: str) -> Optional[bool]:
        """Return whether the method resolves, or None when it cannot be decided."""
        methods = self.resolve_methods(script_type)
        if methods is None:
            return None
        return method_name in methods
