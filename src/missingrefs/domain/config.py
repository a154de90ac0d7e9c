from __future__ import annotations

"""
Configuration Domain Management.

Provides the default session configuration of a scan and persists the
last session plus named profiles as JSON inside the user data directory.
Corrupt or legacy files fall back to defaults.
"""

import json
import logging
import os
from typing import Any, Dict

from missingrefs.domain.constants import (
    CURRENT_CONFIG_VERSION,
    DEFAULT_COMPOSITE_EXTENSIONS,
    DEFAULT_EXCLUDED_COMPOSITE_EXTENSIONS,
    DEFAULT_EXCLUDED_COMPOSITE_IMPORTERS,
    DEFAULT_INDEX_ROOTS,
    DEFAULT_SCAN_ROOTS,
    DEFAULT_SERIALIZED_EXTENSIONS,
)
from missingrefs.infra.fs import get_user_data_dir

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "config.json"

# -----------------------------------------------------------------------------
# Configuration Models (Dict-based)
# -----------------------------------------------------------------------------

def get_default_config() -> Dict[str, Any]:
    """
    Generate the default session configuration of a scan.

    Returns:
        Dict[str, Any]: Default configuration values.
    """
    return {
        # Project layout
        "project_path": os.getcwd(),
        "scan_roots": list(DEFAULT_SCAN_ROOTS),
        "index_roots": list(DEFAULT_INDEX_ROOTS),

        # Item classification
        "serialized_extensions": list(DEFAULT_SERIALIZED_EXTENSIONS),
        "composite_extensions": list(DEFAULT_COMPOSITE_EXTENSIONS),

        # Derived/imported composites that are never scanned
        "excluded_composite_importers": list(DEFAULT_EXCLUDED_COMPOSITE_IMPORTERS),
        "excluded_composite_extensions": list(DEFAULT_EXCLUDED_COMPOSITE_EXTENSIONS),

        # GUIDs resolved outside the project (e.g. packages not on disk)
        "known_external_guids": [],

        # Presentation
        "expand_results": True,

        # Diagnostics
        "save_log": False,
    }


def get_default_app_state() -> Dict[str, Any]:
    """Generate the full JSON structure stored in config.json."""
    return {
        "version": CURRENT_CONFIG_VERSION,
        "last_session": get_default_config(),
        "saved_profiles": {},
    }


def get_config_file() -> str:
    return os.path.join(get_user_data_dir(), CONFIG_FILE_NAME)

# -----------------------------------------------------------------------------
# Persistence Logic
# -----------------------------------------------------------------------------

def load_app_state() -> Dict[str, Any]:
    """
    Load application state from disk.

    A flat legacy file (a bare session dict) is migrated into the
    'last_session' slot.

    Returns:
        Dict[str, Any]: The loaded state or a default structure on failure.
    """
    default_state = get_default_app_state()
    config_file = get_config_file()

    if not os.path.exists(config_file):
        logger.debug("Config file not found. Returning defaults.")
        return default_state

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load config: {e}. Using defaults.")
        return default_state

    if not isinstance(data, dict):
        logger.warning("Corrupted config file. Resetting to defaults.")
        return default_state

    if "project_path" in data:
        logger.info("Migrating flat config schema...")
        default_state["last_session"].update(data)
        return default_state

    if isinstance(data.get("last_session"), dict):
        default_state["last_session"].update(data["last_session"])
    if isinstance(data.get("saved_profiles"), dict):
        default_state["saved_profiles"].update(data["saved_profiles"])

    return default_state


def save_app_state(state: Dict[str, Any]) -> None:
    """Persist application state to disk."""
    config_file = get_config_file()
    try:
        os.makedirs(os.path.dirname(config_file), exist_ok=True)
        state["version"] = CURRENT_CONFIG_VERSION
        with open(config_file, "w", encoding="utf-8") as f:
            json.dump(state, f, ensure_ascii=False, indent=4)
        logger.debug(f"Configuration saved to {config_file}")
    except OSError as e:
        logger.error(f"Failed to save configuration: {e}")

# -----------------------------------------------------------------------------
# Facade API
# -----------------------------------------------------------------------------

def load_config() -> Dict[str, Any]:
    """Retrieve the last session configuration merged over defaults."""
    state = load_app_state()
    config = get_default_config()
    config.update(state.get("last_session", {}))
    return config


def save_config(config: Dict[str, Any]) -> None:
    """Save the provided config as the 'last_session'."""
    state = load_app_state()
    state["last_session"] = config
    save_app_state(state)


def load_profile(name: str) -> Dict[str, Any]:
    """Return a saved profile merged over defaults, or the defaults if unknown."""
    state = load_app_state()
    config = get_default_config()
    profile = state.get("saved_profiles", {}).get(name)
    if isinstance(profile, dict):
        config.update(profile)
    else:
        logger.warning(f"Unknown profile '{name}'. Using defaults.")
    return config


def save_profile(name: str, config: Dict[str, Any]) -> None:
    """Store the provided config under a named profile, replacing any previous one."""
    state = load_app_state()
    state["saved_profiles"][name] = config
    save_app_state(state)
    logger.info(f"Profile '{name}' saved.")
