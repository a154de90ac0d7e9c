from __future__ import annotations

"""
Command Line Interface (CLI) Application Controller.

Orchestrates the CLI lifecycle: initialization of logging, loading and
merging of configuration sources (defaults, persisted session and CLI
overrides), scan execution and report rendering.
"""

import json
import os
import sys
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from missingrefs.core.services.scanner import MissingReferenceScanner, build_scanner
from missingrefs.core.services.storage import UnityProjectStorage
from missingrefs.core.services.validator import validate_config
from missingrefs.domain.config import get_default_config, load_config, load_profile, save_config, save_profile
from missingrefs.domain.scan_models import ScanSummary
from missingrefs.infra.fs import is_project_dir, normalize_path
from missingrefs.infra.logging import LoggingConfig, configure_logging, get_default_log_path, get_logger
from missingrefs.interface.cli import args as cli_args

logger = get_logger(__name__)

# -----------------------------------------------------------------------------
# ENTRYPOINT ORCHESTRATOR
# -----------------------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> int:
    """
    Execute the main CLI application workflow.

    Args:
        argv: Optional list of command line arguments. Defaults to sys.argv.

    Returns:
        int: Process exit code (0 success, 1 failure or strict findings,
             2 invalid project path, 130 interrupted).
    """
    if sys.platform == "win32":
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8")
        if hasattr(sys.stderr, "reconfigure"):
            sys.stderr.reconfigure(encoding="utf-8")

    # 1. Argument parsing phase
    parser = cli_args.build_parser()
    args = parser.parse_args(argv)

    # 2. Logging bootstrap (console on stderr, optional rotating file)
    log_level = "DEBUG" if args.debug else "INFO"
    configure_logging(LoggingConfig(level=log_level, console=True, log_file=args.log_file))

    logger.debug("CLI execution initiated. Resolving configuration hierarchy...")

    # 3. Resolve base configuration (defaults, saved profile or persisted session)
    if args.use_defaults:
        base_conf = get_default_config()
    elif args.profile:
        base_conf = load_profile(args.profile)
    else:
        base_conf = load_config()

    # 4. Map and merge command-line overrides
    overrides = cli_args.args_to_overrides(args)
    raw_conf = _merge_config(base_conf, overrides)

    # 5. Schema validation and normalization
    clean_conf, warnings = validate_config(raw_conf, strict=False)
    for w in warnings:
        logger.warning(f"Configuration Constraint: {w}")

    if clean_conf["save_log"] and not args.log_file:
        configure_logging(
            LoggingConfig(level=log_level, console=True, log_file=get_default_log_path()),
            force=True,
        )

    if args.dump_config:
        print(json.dumps(clean_conf, ensure_ascii=False, indent=2))
        return 0

    # 6. Pre-flight project verification
    project_path = normalize_path(clean_conf.get("project_path"), os.getcwd())
    clean_conf["project_path"] = project_path
    if not is_project_dir(project_path):
        msg = f"Project path does not exist or is not a directory: {project_path}"
        logger.error(msg)
        print(f"ERROR: {msg}", file=sys.stderr)
        return 2

    if args.save_config:
        save_config(clean_conf)
    if args.save_profile:
        save_profile(args.save_profile, clean_conf)

    # 7. Scan phase
    logger.info(f"Targeting project directory: {project_path}")
    try:
        storage = UnityProjectStorage.from_config(clean_conf)
        scanner = build_scanner(storage, storage, clean_conf)
        summary = scanner.scan()
    except KeyboardInterrupt:
        msg = "Scan interrupted by user."
        logger.warning(msg)
        print(msg, file=sys.stderr)
        return 130
    except Exception as e:
        msg = f"Scan failed: {e}"
        logger.critical(msg, exc_info=True)
        print(f"ERROR: {msg}", file=sys.stderr)
        return 1

    # 8. Output rendering phase
    scanner.root.set_visible_recursively(bool(clean_conf["expand_results"]))
    if args.json_output:
        report = json.dumps(_to_json(scanner, summary), ensure_ascii=False, indent=2)
    else:
        report = "\n".join(scanner.render())

    if args.output_file:
        try:
            with open(args.output_file, "w", encoding="utf-8") as f:
                f.write(report + "\n")
        except OSError as e:
            msg = f"Cannot write report to '{args.output_file}': {e}"
            logger.error(msg)
            print(f"ERROR: {msg}", file=sys.stderr)
            return 1
        logger.info(f"Report written to {args.output_file}")
    else:
        print(report)

    if not args.json_output:
        _print_human_summary(summary)

    if args.strict and summary.findings > 0:
        return 1
    return 0

# -----------------------------------------------------------------------------
# CONFIGURATION MERGING
# -----------------------------------------------------------------------------

def _merge_config(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """
    Perform a shallow merge of override values into the base configuration.

    Only known keys are merged.

    Args:
        base: The primary configuration dictionary.
        overrides: New values to inject.

    Returns:
        Dict[str, Any]: The merged configuration state.
    """
    out = dict(base)
    keys_to_merge = [
        "project_path", "scan_roots",
        "excluded_composite_importers", "excluded_composite_extensions", "known_external_guids",
        "expand_results", "save_log",
    ]
    for k in keys_to_merge:
        if k in overrides and overrides[k] is not None:
            out[k] = overrides[k]
    return out

# -----------------------------------------------------------------------------
# VIEW RENDERING
# -----------------------------------------------------------------------------

def _to_json(scanner: MissingReferenceScanner, summary: ScanSummary) -> Dict[str, Any]:
    data = scanner.to_dict()
    data["summary"] = asdict(summary)
    return data


def _print_human_summary(summary: ScanSummary) -> None:
    """Print the one-line scan statistics after the report."""
    print(
        f"\nScanned {summary.assets_scanned} assets and {summary.composites_scanned} composites: "
        f"{summary.findings} with missing references ({summary.broken_properties} total). "
        f"Skipped {summary.load_failures} unloadable, {summary.composites_excluded} imported, "
        f"{summary.paths_external} external. [{summary.elapsed_sec:.2f}s]"
    )

# -----------------------------------------------------------------------------
# CLI ENTRYPOINT
# -----------------------------------------------------------------------------

if __name__ == "__main__":
    sys.exit(main())
