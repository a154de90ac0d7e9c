from __future__ import annotations

"""
Configuration Validation Service.

Gatekeeper between untrusted configuration sources (persisted JSON, CLI
overrides) and the scanner. Coerces types, injects defaults and
normalizes extension and GUID lists.
"""

import logging
import re
from typing import Any, Dict, List, Tuple

from missingrefs.domain.config import get_default_config
from missingrefs.domain.constants import GUID_LENGTH

logger = logging.getLogger(__name__)

_GUID_RX = re.compile(r"^[0-9a-fA-F]{%d}$" % GUID_LENGTH)

# -----------------------------------------------------------------------------
# PUBLIC API
# -----------------------------------------------------------------------------

def validate_config(
        config: Any,
        *,
        strict: bool = False,
) -> Tuple[Dict[str, Any], List[str]]:
    """
    Validate and normalize a scan configuration dictionary.

    Args:
        config: Raw configuration data.
        strict: Raise on invalid values instead of coercing them.

    Returns:
        Tuple[Dict[str, Any], List[str]]: The normalized configuration and
                                          the list of warnings produced.
    """
    warnings: List[str] = []
    defaults = get_default_config()

    if not isinstance(config, dict):
        msg = f"Invalid config type: expected dict, received {type(config).__name__}."
        if strict:
            raise TypeError(msg)
        warnings.append(f"{msg} Using defaults.")
        logger.warning(msg)
        return defaults, warnings

    merged: Dict[str, Any] = dict(defaults)
    merged.update(config)

    string_fields = ["project_path"]
    bool_fields = ["expand_results", "save_log"]
    list_fields = [
        "scan_roots", "index_roots",
        "serialized_extensions", "composite_extensions",
        "excluded_composite_importers", "excluded_composite_extensions",
        "known_external_guids",
    ]

    for field in string_fields:
        merged[field] = _as_str(merged.get(field), defaults[field], field, warnings, strict)

    for field in bool_fields:
        merged[field] = _as_bool(merged.get(field), defaults[field], field, warnings, strict)

    for field in list_fields:
        merged[field] = _as_list_str(merged.get(field), defaults[field], field, warnings, strict)

    for field in ("serialized_extensions", "composite_extensions", "excluded_composite_extensions"):
        merged[field] = _normalize_extensions(merged[field], warnings, strict)

    merged["scan_roots"] = [r.strip("/\\") for r in merged["scan_roots"] if r.strip("/\\")]
    merged["known_external_guids"] = _normalize_guids(merged["known_external_guids"], warnings, strict)

    return merged, warnings

# -----------------------------------------------------------------------------
# PRIVATE HELPERS: TYPE COERCION
# -----------------------------------------------------------------------------

def _as_str(value: Any, fallback: str, field: str, warnings: List[str], strict: bool) -> str:
    if value is None:
        return fallback
    if isinstance(value, str):
        v = value.strip()
        return v if v else fallback

    msg = f"Invalid field '{field}': expected str, received {type(value).__name__}."
    if strict:
        raise TypeError(msg)
    warnings.append(f"{msg} Using fallback.")
    return fallback


def _as_bool(value: Any, fallback: bool, field: str, warnings: List[str], strict: bool) -> bool:
    """Coerce numbers and human-friendly keywords into booleans when not strict."""
    if isinstance(value, bool):
        return value
    if value is None:
        return fallback

    if not strict:
        if isinstance(value, (int, float)) and value in (0, 1):
            warnings.append(f"Field '{field}' converted from number {value} to bool.")
            return bool(value)
        if isinstance(value, str):
            s = value.strip().lower()
            if s in ("true", "1", "yes", "y", "on"):
                warnings.append(f"Field '{field}' converted from '{value}' to True.")
                return True
            if s in ("false", "0", "no", "n", "off"):
                warnings.append(f"Field '{field}' converted from '{value}' to False.")
                return False

    msg = f"Invalid field '{field}': expected bool, received {type(value).__name__}."
    if strict:
        raise TypeError(msg)
    warnings.append(f"{msg} Using fallback.")
    return fallback


def _as_list_str(value: Any, fallback: List[str], field: str, warnings: List[str], strict: bool) -> List[str]:
    """Ensure input is a list of stripped strings. CSV strings are split when not strict."""
    if value is None:
        return list(fallback)

    if isinstance(value, str) and not strict:
        warnings.append(f"Field '{field}' converted from CSV string to list.")
        return [x.strip() for x in value.split(",") if x.strip()]

    if isinstance(value, list):
        out: List[str] = []
        for i, item in enumerate(value):
            if isinstance(item, str):
                s = item.strip()
                if s:
                    out.append(s)
            else:
                msg = f"Invalid item in '{field}[{i}]': expected str."
                if strict:
                    raise TypeError(msg)
                warnings.append(f"{msg} Item discarded.")
        return out

    msg = f"Invalid field '{field}': expected list[str], received {type(value).__name__}."
    if strict:
        raise TypeError(msg)
    warnings.append(f"{msg} Using fallback.")
    return list(fallback)

# -----------------------------------------------------------------------------
# PRIVATE HELPERS: DOMAIN NORMALIZATION
# -----------------------------------------------------------------------------

def _normalize_extensions(exts: List[str], warnings: List[str], strict: bool) -> List[str]:
    """Prefix extensions with a dot and drop duplicates, keeping order."""
    out: List[str] = []
    for ext in exts:
        e = ext.strip()
        if not e.startswith("."):
            if strict:
                raise ValueError(f"Invalid extension '{ext}': must start with '.'.")
            warnings.append(f"Extension '{ext}' normalized to '.{e}'.")
            e = "." + e
        if e not in out:
            out.append(e)
    return out


def _normalize_guids(guids: List[str], warnings: List[str], strict: bool) -> List[str]:
    out: List[str] = []
    for guid in guids:
        if not _GUID_RX.match(guid):
            msg = f"Invalid GUID '{guid}': expected {GUID_LENGTH} hex digits."
            if strict:
                raise ValueError(msg)
            warnings.append(f"{msg} Discarded.")
            continue
        out.append(guid.lower())
    return out
