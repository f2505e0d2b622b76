"""Reference graph derived from the identifier index.

Two maps are recomputed together on every rebuild and never patched:

  uses_of  — path → kind → identifier → [target records]
             (an identifier resolving to nothing keeps an empty list: a
             dangling reference)
  used_by  — kind → identifier → [source records]
             (exact transpose of the resolved edges in uses_of)

Which kinds point at which is declared once, in a closed table keyed by
``Kind``.  Kinds mapped to ``None`` are terminal.
"""

from __future__ import annotations

import logging
from typing import Callable

from packdex.index.schema import (
    INDEXED_KINDS,
    AddonStructure,
    AttachableRecord,
    ClientBlockRecord,
    ClientEntityRecord,
    Kind,
    KindIndex,
    ParticleRecord,
    Record,
    ServerBlockRecord,
    StructureStats,
)

logger = logging.getLogger(__name__)

CONTROLLER_ANIMATION_PREFIX = "controller.animation."

UsageExtractor = Callable[[AddonStructure, Record], KindIndex]


# ── Usage extractors ──────────────────────────────────────────────────────────

def _expect(record: Record, types: type | tuple[type, ...]) -> None:
    if not isinstance(record, types):
        raise TypeError(f"Unexpected {type(record).__name__} for {record.path}")


def _resolve(
    structure: AddonStructure,
    result: KindIndex,
    kind: Kind,
    identifiers: tuple[str, ...] | list[str],
) -> None:
    for identifier in identifiers:
        result.setdefault(kind, {})[identifier] = structure.get(kind, identifier)


def _server_block_uses(structure: AddonStructure, record: Record) -> KindIndex:
    _expect(record, ServerBlockRecord)
    result: KindIndex = {}
    _resolve(structure, result, Kind.CLIENT_BLOCK, [record.block])
    return result


def _client_block_uses(structure: AddonStructure, record: Record) -> KindIndex:
    _expect(record, ClientBlockRecord)
    result: KindIndex = {}
    _resolve(structure, result, Kind.SERVER_BLOCK, record.blocks)
    return result


def _visual_uses(structure: AddonStructure, record: Record) -> KindIndex:
    """Client entities and attachables: six reference lists against six buckets."""
    _expect(record, (ClientEntityRecord, AttachableRecord))
    result: KindIndex = {}
    animations = [a for a in record.animations if not a.startswith(CONTROLLER_ANIMATION_PREFIX)]
    controllers = [a for a in record.animations if a.startswith(CONTROLLER_ANIMATION_PREFIX)]
    _resolve(structure, result, Kind.ANIMATION, animations)
    _resolve(structure, result, Kind.ANIMATION_CONTROLLER, controllers)
    _resolve(structure, result, Kind.MODEL, record.geometries)
    _resolve(structure, result, Kind.TEXTURE, record.textures)
    _resolve(structure, result, Kind.PARTICLE, record.particles)
    _resolve(structure, result, Kind.SOUND, record.sounds)
    _resolve(structure, result, Kind.RENDER_CONTROLLER, record.render_controllers)
    return result


def _particle_uses(structure: AddonStructure, record: Record) -> KindIndex:
    _expect(record, ParticleRecord)
    result: KindIndex = {}
    if record.texture:
        _resolve(structure, result, Kind.TEXTURE, [record.texture])
    return result


_USAGE_EXTRACTORS: dict[Kind, UsageExtractor | None] = {
    Kind.PACK_MANIFEST: None,
    Kind.SERVER_BLOCK: _server_block_uses,
    Kind.CLIENT_BLOCK: _client_block_uses,
    Kind.SERVER_ENTITY: None,
    Kind.CLIENT_ENTITY: _visual_uses,
    Kind.ITEM: None,
    Kind.UI: None,
    Kind.ATTACHABLE: _visual_uses,
    Kind.ANIMATION: None,
    Kind.ANIMATION_CONTROLLER: None,
    Kind.MODEL: None,
    Kind.TEXTURE: None,
    Kind.PARTICLE: _particle_uses,
    Kind.SOUND: None,
    Kind.RENDER_CONTROLLER: None,
    Kind.FOG: None,
}

if set(_USAGE_EXTRACTORS) != set(INDEXED_KINDS):
    raise RuntimeError(f"Usage table incomplete: {set(INDEXED_KINDS) - set(_USAGE_EXTRACTORS)}")


def usage_extractor(kind: Kind) -> UsageExtractor | None:
    """Return the usage extractor for *kind*, or None for terminal kinds."""
    return _USAGE_EXTRACTORS.get(kind)


# ── Graph ─────────────────────────────────────────────────────────────────────

class ReferenceGraph:
    """Forward and backward identifier-level edges between indexed files."""

    def __init__(self) -> None:
        self._uses_of: dict[str, KindIndex] = {}
        self._used_by: KindIndex = {}

    def rebuild(self, structure: AddonStructure) -> None:
        """Discard both maps and recompute them from *structure*.

        Callers must apply every pending index mutation first.
        """
        uses_of: dict[str, KindIndex] = {}
        used_by: KindIndex = {}
        edges = 0

        for kind in INDEXED_KINDS:
            usage = _USAGE_EXTRACTORS[kind]
            if usage is None:
                continue
            for source in structure.records(kind):
                forward = uses_of.setdefault(source.path, {})
                for target_kind, targets in usage(structure, source).items():
                    merged = forward.setdefault(target_kind, {})
                    for identifier, records in targets.items():
                        merged[identifier] = records
                        edges += 1
                        if not records:
                            continue
                        sources = used_by.setdefault(target_kind, {}).setdefault(identifier, [])
                        if all(s.path != source.path for s in sources):
                            sources.append(source)

        self._uses_of = uses_of
        self._used_by = used_by
        logger.debug("Reference graph rebuilt: %d sources, %d edges", len(uses_of), edges)

    def clear(self) -> None:
        self._uses_of = {}
        self._used_by = {}

    # ── Queries ───────────────────────────────────────────────────────────────

    def uses_of(self, path: str) -> KindIndex:
        """What *path* points at: kind → identifier → [target records]."""
        return {
            kind: {ident: list(recs) for ident, recs in targets.items()}
            for kind, targets in self._uses_of.get(path, {}).items()
        }

    def used_by(self, kind: Kind, identifier: str) -> list[Record]:
        """Files that reference *identifier* of *kind* and resolve to a record."""
        return list(self._used_by.get(kind, {}).get(identifier, ()))

    def dangling(self) -> list[tuple[str, Kind, str]]:
        """Every ``(source_path, kind, identifier)`` that resolves to no record."""
        return [
            (path, kind, ident)
            for path, targets in self._uses_of.items()
            for kind, idents in targets.items()
            for ident, records in idents.items()
            if not records
        ]

    @property
    def uses_of_map(self) -> dict[str, KindIndex]:
        """Whole forward map (replaced, never mutated, on rebuild)."""
        return self._uses_of

    @property
    def used_by_map(self) -> KindIndex:
        """Whole backward map (replaced, never mutated, on rebuild)."""
        return self._used_by


def compute_stats(structure: AddonStructure, uses_of: dict[str, KindIndex]) -> StructureStats:
    """Aggregate record, identifier and dangling-reference counts."""
    records_by_kind: dict[str, int] = {}
    identifiers_by_kind: dict[str, int] = {}
    for kind in INDEXED_KINDS:
        count = sum(1 for _ in structure.records(kind))
        if count:
            records_by_kind[kind.value] = count
            identifiers_by_kind[kind.value] = len(structure.index.get(kind, {}))

    dangling = sum(
        1
        for targets in uses_of.values()
        for idents in targets.values()
        for records in idents.values()
        if not records
    )
    return StructureStats(
        total_records=sum(records_by_kind.values()),
        records_by_kind=records_by_kind,
        identifiers_by_kind=identifiers_by_kind,
        resource_packs=len(structure.resource_packs),
        behavior_packs=len(structure.behavior_packs),
        dangling_references=dangling,
    )
