"""Pack index module — typed identifier index and reference graph for content packs."""

from packdex.index.addon_index import AddonIndex
from packdex.index.graph import ReferenceGraph
from packdex.index.report import PackmapGenerator
from packdex.index.scanner import WorkspaceScanner
from packdex.index.schema import AddonStructure, IndexSnapshot, Kind, Record, ScanResult
from packdex.index.service import IndexService
from packdex.index.store import IndexStore

__all__ = [
    "AddonIndex",
    "AddonStructure",
    "IndexService",
    "IndexSnapshot",
    "IndexStore",
    "Kind",
    "PackmapGenerator",
    "Record",
    "ReferenceGraph",
    "ScanResult",
    "WorkspaceScanner",
]
