from __future__ import annotations

"""
CLI Argument Definition and Mapping.

Defines the command-line interface schema and translates the parsed
argparse namespace into configuration overrides for the scan session.
"""

import argparse
from typing import Any, Dict, List, Optional

# -----------------------------------------------------------------------------
# ARGUMENT DEFINITION
# -----------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    """
    Construct the argument parser for the MissingRefs CLI.

    Returns:
        argparse.ArgumentParser: Configured parser instance.
    """
    p = argparse.ArgumentParser(
        prog="missingrefs",
        description="Scan a Unity-style project for serialized references that no longer resolve.",
    )

    # --- Project Layout ---
    p.add_argument(
        "-p", "--project",
        dest="project_path",
        default=None,
        help="Project root directory (defaults to the last session or the current directory).",
    )
    p.add_argument(
        "--roots",
        dest="scan_roots",
        default=None,
        help="Comma-separated project folders to scan (e.g. 'Assets,Packages').",
    )

    # --- Resolution Policy ---
    p.add_argument(
        "--exclude-importer",
        dest="excluded_importers",
        default=None,
        help="Comma-separated importer names whose composites are skipped.",
    )
    p.add_argument(
        "--exclude-extension",
        dest="excluded_extensions",
        default=None,
        help="Comma-separated file extensions of imported composites that are skipped (e.g. '.fbx,.gltf').",
    )
    p.add_argument(
        "--known-guid",
        dest="known_guids",
        default=None,
        help="Comma-separated GUIDs that always resolve (assets outside the project).",
    )

    # --- Report Rendering ---
    p.add_argument(
        "--collapsed",
        action="store_true",
        help="Render folders collapsed (header line only).",
    )
    p.add_argument(
        "--json",
        dest="json_output",
        action="store_true",
        help="Emit the result tree as JSON.",
    )
    p.add_argument(
        "-o", "--output",
        dest="output_file",
        default=None,
        help="Write the report to this file instead of stdout.",
    )
    p.add_argument(
        "--strict",
        action="store_true",
        help="Exit with code 1 when any missing reference is found.",
    )

    # --- Configuration and Diagnostic Tools ---
    p.add_argument(
        "--use-defaults",
        action="store_true",
        help="Ignore the persisted session and start from the default configuration.",
    )
    p.add_argument(
        "--profile",
        default=None,
        help="Start from a saved profile instead of the last session.",
    )
    p.add_argument(
        "--save-config",
        action="store_true",
        help="Persist the effective configuration as the last session.",
    )
    p.add_argument(
        "--save-profile",
        dest="save_profile",
        default=None,
        metavar="NAME",
        help="Persist the effective configuration as a named profile.",
    )
    p.add_argument(
        "--dump-config",
        action="store_true",
        help="Print the effective configuration as JSON and exit.",
    )
    p.add_argument(
        "--debug",
        action="store_true",
        help="Elevate logging verbosity to DEBUG.",
    )
    p.add_argument(
        "--log-file",
        dest="log_file",
        default=None,
        help="Also write logs to this rotating file.",
    )

    return p

# -----------------------------------------------------------------------------
# ARGUMENT MAPPING
# -----------------------------------------------------------------------------

def args_to_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """
    Translate the argparse Namespace into a configuration dictionary.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Dict[str, Any]: Configuration overrides subset.
    """
    overrides: Dict[str, Any] = {}

    overrides["project_path"] = args.project_path

    if args.scan_roots:
        overrides["scan_roots"] = _split_csv(args.scan_roots)
    if args.excluded_importers:
        overrides["excluded_composite_importers"] = _split_csv(args.excluded_importers)
    if args.excluded_extensions:
        overrides["excluded_composite_extensions"] = _split_csv(args.excluded_extensions)
    if args.known_guids:
        overrides["known_external_guids"] = _split_csv(args.known_guids)

    if args.collapsed:
        overrides["expand_results"] = False
    if args.log_file:
        overrides["save_log"] = True

    return overrides

# -----------------------------------------------------------------------------
# HELPERS
# -----------------------------------------------------------------------------

def _split_csv(value: Optional[str]) -> Optional[List[str]]:
    """
    Convert a comma-separated string into a list of sanitized strings.
    """
    if value is None:
        return None
    parts = [x.strip() for x in value.split(",")]
    return [x for x in parts if x]
