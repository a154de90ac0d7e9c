from __future__ import annotations

"""
Serialized-Field Walker.

Visits the serialized surface of one object and reports every slot whose
target can no longer be resolved. The walk is schema-driven: reference
slots are recognised by their '{fileID, guid}' shape, behaviour script
slots by the 'm_Script' field and callback lists by 'm_PersistentCalls'.

A reference with a null file id is an intentionally empty slot and is
never reported, except for a behaviour's script slot and for a callback
that still names a method.
"""

import logging
from typing import Any, Iterable, List, Mapping, Optional

from missingrefs.core.services.storage import ReferenceResolver
from missingrefs.core.services.type_catalog import ScriptType
from missingrefs.domain.constants import (
    BUILTIN_GUIDS,
    CLASS_ID_MONO_BEHAVIOUR,
    NULL_FILE_ID,
    PERSISTENT_CALLS_FIELD,
    SCRIPT_FIELD,
)
from missingrefs.domain.reference_models import BrokenLinkKind, PropertyReference, SerializedObject
from missingrefs.utils.unity_yaml import as_file_id, as_guid, is_reference

logger = logging.getLogger(__name__)

_BEHAVIOUR_TYPES = frozenset({"MonoBehaviour"})


class SerializedFieldWalker:
    """
    Finds broken serialized links on single objects.

    Args:
        resolver: Answers whether GUIDs, script types and methods exist.
        known_external_guids: GUIDs that always resolve (assets living
                              outside the indexed project roots).
    """

    def __init__(self, resolver: ReferenceResolver, known_external_guids: Iterable[str] = ()) -> None:
        self.resolver = resolver
        self.known_guids = frozenset(BUILTIN_GUIDS) | frozenset(g.lower() for g in known_external_guids)

    # ==========================================================================
    # PUBLIC API
    # ==========================================================================

    def find_missing_references(self, obj: Optional[SerializedObject]) -> List[PropertyReference]:
        """
        Return the broken serialized slots of an object, in field order.

        Args:
            obj: The object to inspect. None yields no findings.

        Returns:
            List[PropertyReference]: One record per broken slot.
        """
        found: List[PropertyReference] = []
        if obj is None:
            return found
        self._visit_mapping(obj, "", obj.fields, found)
        return found

    # ==========================================================================
    # TRAVERSAL
    # ==========================================================================

    def _visit_mapping(
            self,
            owner: SerializedObject,
            prefix: str,
            mapping: Mapping[str, Any],
            found: List[PropertyReference],
    ) -> None:
        for key, value in mapping.items():
            path = f"{prefix}.{key}" if prefix else str(key)

            if not prefix and key == SCRIPT_FIELD and _is_behaviour(owner):
                self._check_script_slot(owner, path, value, found)
            elif key == PERSISTENT_CALLS_FIELD and isinstance(value, dict):
                self._visit_callbacks(owner, path, value, found)
            else:
                self._visit(owner, path, value, found)

    def _visit(self, owner: SerializedObject, path: str, value: Any, found: List[PropertyReference]) -> None:
        if is_reference(value):
            detail = self._unresolved(owner, value)
            if detail:
                found.append(_record(owner, path, BrokenLinkKind.MISSING_OBJECT, detail))
        elif isinstance(value, dict):
            self._visit_mapping(owner, path, value, found)
        elif isinstance(value, list):
            for i, item in enumerate(value):
                self._visit(owner, f"{path}[{i}]", item, found)

    # ==========================================================================
    # SLOT CHECKS
    # ==========================================================================

    def _check_script_slot(self, owner: SerializedObject, path: str, value: Any, found: List[PropertyReference]) -> None:
        """An empty or dangling script slot means the behaviour's type is gone."""
        if not is_reference(value) or as_file_id(value["fileID"]) == NULL_FILE_ID:
            found.append(_record(owner, path, BrokenLinkKind.MISSING_TYPE, "no script assigned"))
            return

        detail = self._unresolved(owner, value)
        if detail:
            found.append(_record(owner, path, BrokenLinkKind.MISSING_TYPE, detail))

    def _visit_callbacks(self, owner: SerializedObject, path: str, value: Mapping[str, Any], found: List[PropertyReference]) -> None:
        calls = value.get("m_Calls") or []
        if not isinstance(calls, list):
            return

        for i, call in enumerate(calls):
            if not isinstance(call, dict):
                continue
            call_path = f"{path}.m_Calls[{i}]"
            method = str(call.get("m_MethodName") or "").strip()
            target = call.get("m_Target")
            target_id = (as_file_id(target["fileID"]) if is_reference(target) else None) or NULL_FILE_ID

            if target_id == NULL_FILE_ID:
                if method:
                    found.append(_record(owner, f"{call_path}.m_Target", BrokenLinkKind.MISSING_CALLBACK_TARGET, "None"))
            else:
                detail = self._unresolved(owner, target)
                if detail:
                    found.append(_record(owner, f"{call_path}.m_Target", BrokenLinkKind.MISSING_CALLBACK_TARGET, detail))
                elif method:
                    self._check_callback_method(owner, call_path, call, method, found)

            self._visit(owner, f"{call_path}.m_Arguments", call.get("m_Arguments"), found)

    def _check_callback_method(
            self,
            owner: SerializedObject,
            call_path: str,
            call: Mapping[str, Any],
            method: str,
            found: List[PropertyReference],
    ) -> None:
        script_type = self._callback_target_type(owner, call)
        if script_type is None:
            return

        if self.resolver.has_method(script_type, method) is False:
            found.append(_record(
                owner,
                f"{call_path}.m_MethodName",
                BrokenLinkKind.MISSING_METHOD,
                f"{script_type.full_name}.{method}",
            ))

    # ==========================================================================
    # RESOLUTION
    # ==========================================================================

    def _unresolved(self, owner: SerializedObject, ref: Mapping[str, Any]) -> str:
        """Return a description of the unresolved target, or '' if it resolves or is empty."""
        file_id = as_file_id(ref.get("fileID"))
        if file_id is None or file_id == NULL_FILE_ID:
            return ""

        guid = as_guid(ref.get("guid"))
        if guid:
            if guid in self.known_guids or self.resolver.has_guid(guid):
                return ""
            return f"guid {guid}"

        if owner.sibling(file_id) is None:
            return f"fileID {file_id}"
        return ""

    def _callback_target_type(self, owner: SerializedObject, call: Mapping[str, Any]) -> Optional[ScriptType]:
        """Resolve the script type a callback targets from the local target or its recorded type name."""
        target = call["m_Target"]
        if not as_guid(target.get("guid")):
            target_obj = owner.sibling(as_file_id(target["fileID"]))
            if target_obj is not None and _is_behaviour(target_obj):
                script = target_obj.fields.get(SCRIPT_FIELD)
                script_guid = as_guid(script.get("guid")) if is_reference(script) else None
                if script_guid:
                    script_type = self.resolver.script_type(script_guid)
                    if script_type is not None:
                        return script_type

        type_name = str(call.get("m_TargetAssemblyTypeName") or "").strip()
        if type_name:
            return self.resolver.find_type(type_name)
        return None


def _is_behaviour(obj: SerializedObject) -> bool:
    return obj.class_id == CLASS_ID_MONO_BEHAVIOUR or obj.type_name in _BEHAVIOUR_TYPES


def _record(owner: SerializedObject, path: str, kind: BrokenLinkKind, detail: str) -> PropertyReference:
    logger.debug(f"{kind.value} at {owner.type_name}({owner.file_id}).{path}: {detail}")
    return PropertyReference(
        owner_file_id=owner.file_id,
        owner_type=owner.type_name,
        owner_name=owner.name,
        property_path=path,
        kind=kind,
        detail=detail,
    )
