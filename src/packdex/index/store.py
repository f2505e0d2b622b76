"""In-memory multi-valued identifier index.

IndexStore holds ``kind → identifier → [records]`` plus the discovered pack
roots.  It handles only storage: all orchestration (reading, classifying,
graph rebuilds) lives in AddonIndex and WorkspaceScanner.

Invariant: a bucket never holds two records with the same path.
"""

from __future__ import annotations

from typing import Iterator

from packdex.index.schema import INDEXED_KINDS, AddonStructure, Kind, Record


class IndexStore:
    """Owner of the mutable ``AddonStructure``."""

    def __init__(self) -> None:
        self._structure = AddonStructure()
        self._kind_by_path: dict[str, Kind] = {}

    # ── Mutation ──────────────────────────────────────────────────────────────

    def reset(self) -> None:
        """Drop every record and pack root."""
        self._structure = AddonStructure()
        self._kind_by_path = {}

    def set_packs(self, resource_packs: list[str], behavior_packs: list[str]) -> None:
        self._structure.resource_packs = list(resource_packs)
        self._structure.behavior_packs = list(behavior_packs)

    def upsert(self, record: Record) -> None:
        """Insert *record*, first purging its path from every bucket of its kind.

        The identifier set of a file can change between versions, so purging
        only the buckets the new version uses would leave stale associations.
        """
        previous = self._kind_by_path.get(record.path)
        if previous is not None and previous is not record.kind:
            self.remove(record.path, previous)

        buckets = self._structure.index[record.kind]
        identifiers = dict.fromkeys(record.identifiers)

        # Replace in place where the identifier survives, so re-applying an
        # unchanged file leaves bucket and record order untouched.
        for identifier in list(buckets):
            bucket = buckets[identifier]
            for pos, existing in enumerate(bucket):
                if existing.path == record.path:
                    if identifier in identifiers:
                        bucket[pos] = record
                    else:
                        del bucket[pos]
                    break
            if not bucket:
                del buckets[identifier]

        for identifier in identifiers:
            bucket = buckets.setdefault(identifier, [])
            if all(r.path != record.path for r in bucket):
                bucket.append(record)
        self._kind_by_path[record.path] = record.kind

    def remove(self, path: str, kind: Kind) -> None:
        """Delete *path* from every bucket of *kind*, dropping emptied buckets."""
        self._purge(path, kind)
        if self._kind_by_path.get(path) is kind:
            del self._kind_by_path[path]

    # ── Queries ───────────────────────────────────────────────────────────────

    def get(self, kind: Kind, identifier: str) -> list[Record]:
        """Return the records defining *identifier* under *kind* (possibly empty)."""
        return self._structure.get(kind, identifier)

    def all_packs(self) -> tuple[list[str], list[str]]:
        """Return ``(resource_packs, behavior_packs)``."""
        return list(self._structure.resource_packs), list(self._structure.behavior_packs)

    def kind_of(self, path: str) -> Kind | None:
        """Kind under which *path* is currently indexed, if any."""
        return self._kind_by_path.get(path)

    def record_for(self, path: str) -> Record | None:
        """Return the indexed record for *path*, or None."""
        kind = self._kind_by_path.get(path)
        if kind is None:
            return None
        return self._structure.find(path, kind)

    def records(self, kind: Kind) -> Iterator[Record]:
        """Yield each distinct record of *kind* once, in insertion order."""
        return self._structure.records(kind)

    def snapshot(self) -> AddonStructure:
        """Return a copy of the structure that later mutations cannot affect."""
        return AddonStructure(
            resource_packs=list(self._structure.resource_packs),
            behavior_packs=list(self._structure.behavior_packs),
            index={
                kind: {ident: list(recs) for ident, recs in self._structure.index[kind].items()}
                for kind in INDEXED_KINDS
            },
        )

    @property
    def structure(self) -> AddonStructure:
        """Live structure (callers must not mutate it)."""
        return self._structure

    # ── Internal helpers ──────────────────────────────────────────────────────

    def _purge(self, path: str, kind: Kind) -> None:
        buckets = self._structure.index.get(kind)
        if not buckets:
            return
        for identifier in list(buckets):
            kept = [r for r in buckets[identifier] if r.path != path]
            if kept:
                buckets[identifier] = kept
            else:
                del buckets[identifier]
