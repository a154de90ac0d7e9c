from __future__ import annotations

"""
Scan Session Domain Data Models.

Defines the lifecycle states of a scanning session and the summary
object returned to interface layers after a completed pass.
"""

from dataclasses import dataclass
from enum import Enum

# -----------------------------------------------------------------------------
# SESSION STATE
# -----------------------------------------------------------------------------

class ScanState(Enum):
    """Lifecycle of a scanning session. There is no terminal error state."""
    UNSCANNED = "UNSCANNED"
    SCANNING = "SCANNING"
    SCANNED = "SCANNED"

# -----------------------------------------------------------------------------
# RESULT SUMMARY
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class ScanSummary:
    """
    Statistics of one completed scan pass.

    Attributes:
        paths_total: Paths reported by the storage index.
        paths_external: Paths skipped for being rooted outside the project.
        load_failures: Paths that could not be loaded (zero findings each).
        composites_excluded: Derived/imported composites skipped by policy.
        assets_scanned: Plain items inspected by the walker.
        composites_scanned: Composite items inspected by the walker.
        findings: Result containers kept in the folder tree.
        broken_properties: Broken serialized slots across all findings.
        elapsed_sec: Wall-clock duration of the pass.
    """
    paths_total: int = 0
    paths_external: int = 0
    load_failures: int = 0
    composites_excluded: int = 0
    assets_scanned: int = 0
    composites_scanned: int = 0
    findings: int = 0
    broken_properties: int = 0
    elapsed_sec: float = 0.0
