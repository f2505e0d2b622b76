"""AddonIndex — single owner of the pack index and its reference graph.

All mutations (full scan, single-file create/change, delete) go through
this object and are mutually exclusive.  Each successful mutation ends with
a graph rebuild and then publishes an ``IndexSnapshot`` to subscribers.
Queries read the last published snapshot, so they never observe a partial
index state.

Incremental policy: a file whose new content fails extraction contributes
nothing, but a previously indexed record for that path is kept until the
file is deleted or successfully re-extracted.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable, Iterable

from packdex.index.classifier import MANIFEST_FILENAME, classify
from packdex.index.errors import ClassificationUnknown, ContentUnreadable
from packdex.index.events import UpdateChannel
from packdex.index.graph import ReferenceGraph, compute_stats
from packdex.index.scanner import (
    DEFAULT_SKIP_DIRS,
    ProgressCallback,
    WorkspaceScanner,
    load_record,
)
from packdex.index.schema import (
    AddonStructure,
    IndexSnapshot,
    Kind,
    KindIndex,
    Record,
    ScanResult,
    StructureStats,
)
from packdex.index.store import IndexStore

logger = logging.getLogger(__name__)


class AddonIndex:
    """Index a set of workspace roots and answer reference queries.

    Parameters
    ----------
    skip_dirs:
        Directory names never descended into during scans.
    max_file_size_kb:
        JSON files larger than this are treated as unreadable (0 = no limit).
    """

    def __init__(
        self,
        skip_dirs: Iterable[str] = DEFAULT_SKIP_DIRS,
        max_file_size_kb: int = 0,
    ) -> None:
        self._store = IndexStore()
        self._graph = ReferenceGraph()
        self._scanner = WorkspaceScanner(
            self._store, self._graph,
            skip_dirs=skip_dirs, max_file_size_kb=max_file_size_kb,
        )
        self._max_bytes = max_file_size_kb * 1024
        self._updates: UpdateChannel[IndexSnapshot] = UpdateChannel()
        self._lock = threading.RLock()
        self._roots: tuple[str, ...] = ()
        self._snapshot = IndexSnapshot(structure=self._store.snapshot(), uses_of={}, used_by={})

    # ── Public: mutations ─────────────────────────────────────────────────────

    def scan(
        self,
        roots: Iterable[str | Path],
        progress_callback: ProgressCallback | None = None,
    ) -> ScanResult:
        """Replace the whole index with a fresh scan of *roots*."""
        with self._lock:
            self._roots = tuple(str(Path(r)) for r in roots)
            result = self._scanner.scan(self._roots, progress_callback)
            self._publish()
            return result

    def rescan(self) -> ScanResult:
        """Scan the roots of the last scan again."""
        return self.scan(self._roots)

    def apply_create_or_change(self, path: str | Path) -> Record | None:
        """Re-read one created or modified file and fold it into the index.

        Returns the new record, or None when the file contributes nothing.
        A pack manifest change rescans the workspace instead.
        """
        path = Path(path)
        with self._lock:
            if self._roots and path.name == MANIFEST_FILENAME:
                logger.info("Pack manifest changed, rescanning: %s", path)
                self.rescan()
                return self._store.record_for(str(path))

            try:
                _, record = load_record(path, self._pack_roots(), self._max_bytes)
            except ClassificationUnknown:
                logger.debug("Ignoring unclassified file: %s", path)
                return None
            except ContentUnreadable as exc:
                logger.warning("%s", exc)
                return None

            if record is None:
                logger.debug("No record extracted from %s, keeping previous entry", path)
                return None

            self._store.upsert(record)
            self._graph.rebuild(self._store.structure)
            self._publish()
            return record

    def apply_delete(self, path: str | Path, kind: Kind | None = None) -> bool:
        """Remove a deleted file from the index.

        *kind* defaults to the kind the path is currently indexed under, since
        a deleted file cannot be content-probed.  Returns False when there was
        nothing to remove.
        """
        path_str = str(Path(path))
        with self._lock:
            if self._roots and self._is_pack_manifest(path_str):
                logger.info("Pack manifest deleted, rescanning: %s", path_str)
                self.rescan()
                return True

            if kind is None:
                kind = self._store.kind_of(path_str)
            if kind is None or kind is Kind.UNKNOWN:
                logger.debug("Delete of unindexed file ignored: %s", path_str)
                return False

            self._store.remove(path_str, kind)
            self._graph.rebuild(self._store.structure)
            self._publish()
            return True

    # ── Public: queries ───────────────────────────────────────────────────────

    def get_structure(self) -> AddonStructure:
        """Last published structure; consumers must treat it as read-only."""
        return self._snapshot.structure

    def get_snapshot(self) -> IndexSnapshot:
        return self._snapshot

    def get_file_kind(self, path: str | Path) -> Kind:
        """Classify *path* relative to the known pack roots."""
        return classify(path, self._pack_roots())

    def get_record(self, path: str | Path) -> Record | None:
        """Return the indexed record for *path*, or None."""
        return self._snapshot.structure.find(str(Path(path)))

    def get_uses_of(self, path: str | Path) -> KindIndex:
        """kind → identifier → [records] that *path* references."""
        targets = self._snapshot.uses_of.get(str(Path(path)), {})
        return {
            kind: {ident: list(recs) for ident, recs in idents.items()}
            for kind, idents in targets.items()
        }

    def get_used_by(self, kind: Kind, identifier: str) -> list[Record]:
        """Records that reference *identifier* of *kind*."""
        return list(self._snapshot.used_by.get(kind, {}).get(identifier, ()))

    def stats(self) -> StructureStats:
        return compute_stats(self._snapshot.structure, self._snapshot.uses_of)

    def on_update(self, callback: Callable[[IndexSnapshot], None]) -> Callable[[], None]:
        """Call *callback* after every successful mutation; returns an unsubscribe function."""
        return self._updates.subscribe(callback)

    @property
    def roots(self) -> tuple[str, ...]:
        return self._roots

    # ── Internal helpers ──────────────────────────────────────────────────────

    def _pack_roots(self) -> list[str]:
        structure = self._snapshot.structure
        return structure.resource_packs + structure.behavior_packs

    def _is_pack_manifest(self, path: str) -> bool:
        candidate = Path(path)
        return candidate.name == MANIFEST_FILENAME and str(candidate.parent) in self._pack_roots()

    def _publish(self) -> None:
        self._snapshot = IndexSnapshot(
            structure=self._store.snapshot(),
            uses_of=self._graph.uses_of_map,
            used_by=self._graph.used_by_map,
        )
        self._updates.publish(self._snapshot)
