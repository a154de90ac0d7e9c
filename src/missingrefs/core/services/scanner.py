from __future__ import annotations

"""
Missing-Reference Scan Orchestrator.

Drives one synchronous pass over every project-relative path reported by
the storage index: load, filter, walk, keep non-empty results and insert
them into the folder aggregate. Load failures contribute zero findings
and never stop the pass.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

from missingrefs.core.analysis.containers import AssetContainer, CompositeContainer
from missingrefs.core.analysis.folder_tree import Folder, ScanResult
from missingrefs.core.analysis.walker import SerializedFieldWalker
from missingrefs.core.services.storage import ReferenceResolver, StorageIndex
from missingrefs.domain.constants import (
    DEFAULT_EXCLUDED_COMPOSITE_EXTENSIONS,
    DEFAULT_EXCLUDED_COMPOSITE_IMPORTERS,
    INSTRUCTIONS,
    NO_MISSING_REFERENCES,
    PROJECT_FOLDER_NAME,
)
from missingrefs.domain.reference_models import ItemLoadError, StorageItem
from missingrefs.domain.scan_models import ScanState, ScanSummary
from missingrefs.utils.paths import is_project_relative

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# EXCLUSION POLICY
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class CompositeExclusionPolicy:
    """
    Decides which composites are derived from imported sources and must be skipped.

    A composite is excluded when its importer or its file extension is listed.
    """
    importers: FrozenSet[str] = frozenset(DEFAULT_EXCLUDED_COMPOSITE_IMPORTERS)
    extensions: FrozenSet[str] = frozenset(DEFAULT_EXCLUDED_COMPOSITE_EXTENSIONS)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "CompositeExclusionPolicy":
        importers = config.get("excluded_composite_importers", DEFAULT_EXCLUDED_COMPOSITE_IMPORTERS)
        extensions = config.get("excluded_composite_extensions", DEFAULT_EXCLUDED_COMPOSITE_EXTENSIONS)
        return cls(
            importers=frozenset(importers or []),
            extensions=frozenset(e.lower() for e in (extensions or [])),
        )

    def is_excluded(self, item: StorageItem) -> bool:
        if not item.is_composite:
            return False
        return item.importer in self.importers or item.extension in self.extensions

# -----------------------------------------------------------------------------
# ORCHESTRATOR
# -----------------------------------------------------------------------------

class MissingReferenceScanner:
    """
    Scanning session over one storage backend.

    Args:
        storage: Enumerates and loads stored items.
        walker: Finds broken slots on individual objects.
        policy: Composite exclusion policy (defaults apply when omitted).
    """

    def __init__(
            self,
            storage: StorageIndex,
            walker: SerializedFieldWalker,
            policy: Optional[CompositeExclusionPolicy] = None,
    ) -> None:
        self.storage = storage
        self.walker = walker
        self.policy = policy or CompositeExclusionPolicy()
        self.root = Folder()
        self.state = ScanState.UNSCANNED
        self.last_summary: Optional[ScanSummary] = None

    def clear(self) -> None:
        """Drop all results. The session state is left untouched."""
        self.root.clear()

    def scan(self) -> ScanSummary:
        """
        Rebuild the folder aggregate from the current storage contents.

        Returns:
            ScanSummary: Statistics of the completed pass.
        """
        self.state = ScanState.SCANNING
        self.clear()
        start = time.perf_counter()
        stats: Dict[str, int] = {
            "paths_total": 0,
            "paths_external": 0,
            "load_failures": 0,
            "composites_excluded": 0,
            "assets_scanned": 0,
            "composites_scanned": 0,
            "findings": 0,
            "broken_properties": 0,
        }

        paths = self.storage.list_all_item_paths()
        stats["paths_total"] = len(paths)
        logger.info(f"Scanning {len(paths)} stored paths for missing references...")

        for path in paths:
            if not is_project_relative(path):
                stats["paths_external"] += 1
                continue
            self._scan_path(path, stats)

        self.root.sort_recursively()
        self.state = ScanState.SCANNED

        summary = ScanSummary(elapsed_sec=time.perf_counter() - start, **stats)
        self.last_summary = summary
        logger.info(
            f"Scan finished: {summary.findings} items with {summary.broken_properties} "
            f"missing references ({summary.load_failures} load failures, "
            f"{summary.composites_excluded} excluded) in {summary.elapsed_sec:.2f}s."
        )
        return summary

    def render(self) -> List[str]:
        """Return the report lines for the current session state."""
        if self.state != ScanState.SCANNED:
            return [INSTRUCTIONS]
        if self.root.count == 0:
            return [NO_MISSING_REFERENCES]
        return self.root.draw(PROJECT_FOLDER_NAME)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "root": self.root.to_dict(PROJECT_FOLDER_NAME),
        }

    # ==========================================================================
    # INTERNALS
    # ==========================================================================

    def _scan_path(self, path: str, stats: Dict[str, int]) -> None:
        try:
            item = self.storage.load_item(path)
        except ItemLoadError as e:
            logger.debug(f"Skipping '{path}': {e.reason}")
            stats["load_failures"] += 1
            return

        if item is None:
            logger.debug(f"Skipping '{path}': nothing to load")
            stats["load_failures"] += 1
            return

        if item.is_composite:
            if self.policy.is_excluded(item):
                logger.debug(f"Skipping imported composite '{path}' ({item.importer or item.extension})")
                stats["composites_excluded"] += 1
                return
            stats["composites_scanned"] += 1
            self._keep(path, CompositeContainer(item, self.walker), stats)
        else:
            stats["assets_scanned"] += 1
            self._keep(path, AssetContainer(item, self.walker), stats)

    def _keep(self, path: str, result: ScanResult, stats: Dict[str, int]) -> None:
        if not result.has_findings:
            return
        self.root.insert(path, result)
        stats["findings"] += 1
        stats["broken_properties"] += result.count
        logger.debug(f"{path}: {result.count} missing references")


def build_scanner(storage: StorageIndex, resolver: ReferenceResolver, config: Dict[str, Any]) -> MissingReferenceScanner:
    """Assemble a scanner from a storage backend, a resolver and a validated configuration."""
    known: Iterable[str] = config.get("known_external_guids") or []
    walker = SerializedFieldWalker(resolver, known_external_guids=known)
    return MissingReferenceScanner(storage, walker, CompositeExclusionPolicy.from_config(config))
