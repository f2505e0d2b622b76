"""File kinds, immutable record variants and index containers for the pack index."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Iterator, Union


class Kind(str, Enum):
    """Discriminator for every file category the index understands."""

    PACK_MANIFEST = "manifest"
    SERVER_BLOCK = "server_block"
    CLIENT_BLOCK = "client_block"
    SERVER_ENTITY = "server_entity"
    CLIENT_ENTITY = "client_entity"
    ITEM = "item"
    UI = "ui"
    ATTACHABLE = "attachable"
    ANIMATION = "animation"
    ANIMATION_CONTROLLER = "animation_controller"
    MODEL = "model"
    TEXTURE = "texture"
    PARTICLE = "particle"
    SOUND = "sound"
    RENDER_CONTROLLER = "render_controller"
    FOG = "fog"
    UNKNOWN = "unknown"


# Kinds that own an index bucket (everything except UNKNOWN)
INDEXED_KINDS: tuple[Kind, ...] = tuple(k for k in Kind if k is not Kind.UNKNOWN)


# ── Record variants ───────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Record:
    """Fields shared by every indexed file."""

    path: str
    last_modified: float    # file mtime, Unix timestamp

    kind: ClassVar[Kind] = Kind.UNKNOWN

    @property
    def identifiers(self) -> tuple[str, ...]:
        """Identifiers this file defines."""
        return ()


@dataclass(frozen=True)
class PackManifestRecord(Record):
    uuid: str
    name: str = ""
    pack_type: str | None = None    # "resource", "behavior" or None

    kind: ClassVar[Kind] = Kind.PACK_MANIFEST

    @property
    def identifiers(self) -> tuple[str, ...]:
        return (self.uuid,)


@dataclass(frozen=True)
class ServerBlockRecord(Record):
    block: str

    kind: ClassVar[Kind] = Kind.SERVER_BLOCK

    @property
    def identifiers(self) -> tuple[str, ...]:
        return (self.block,)


@dataclass(frozen=True)
class ClientBlockRecord(Record):
    """One blocks manifest, usually declaring many blocks."""

    blocks: tuple[str, ...]

    kind: ClassVar[Kind] = Kind.CLIENT_BLOCK

    @property
    def identifiers(self) -> tuple[str, ...]:
        return self.blocks


@dataclass(frozen=True)
class ServerEntityRecord(Record):
    entity: str

    kind: ClassVar[Kind] = Kind.SERVER_ENTITY

    @property
    def identifiers(self) -> tuple[str, ...]:
        return (self.entity,)


@dataclass(frozen=True)
class ClientEntityRecord(Record):
    """Client entity definition and the resources it names."""

    entity: str
    animations: tuple[str, ...] = ()
    geometries: tuple[str, ...] = ()
    textures: tuple[str, ...] = ()
    particles: tuple[str, ...] = ()
    sounds: tuple[str, ...] = ()
    render_controllers: tuple[str, ...] = ()

    kind: ClassVar[Kind] = Kind.CLIENT_ENTITY

    @property
    def identifiers(self) -> tuple[str, ...]:
        return (self.entity,)


@dataclass(frozen=True)
class ItemRecord(Record):
    item: str

    kind: ClassVar[Kind] = Kind.ITEM

    @property
    def identifiers(self) -> tuple[str, ...]:
        return (self.item,)


@dataclass(frozen=True)
class UIRecord(Record):
    namespace: str

    kind: ClassVar[Kind] = Kind.UI

    @property
    def identifiers(self) -> tuple[str, ...]:
        return (self.namespace,)


@dataclass(frozen=True)
class AttachableRecord(Record):
    """Attachable definition; names resources the same way a client entity does."""

    attachable: str
    animations: tuple[str, ...] = ()
    geometries: tuple[str, ...] = ()
    textures: tuple[str, ...] = ()
    particles: tuple[str, ...] = ()
    sounds: tuple[str, ...] = ()
    render_controllers: tuple[str, ...] = ()

    kind: ClassVar[Kind] = Kind.ATTACHABLE

    @property
    def identifiers(self) -> tuple[str, ...]:
        return (self.attachable,)


@dataclass(frozen=True)
class AnimationRecord(Record):
    animations: tuple[str, ...]

    kind: ClassVar[Kind] = Kind.ANIMATION

    @property
    def identifiers(self) -> tuple[str, ...]:
        return self.animations


@dataclass(frozen=True)
class AnimationControllerRecord(Record):
    controllers: tuple[str, ...]

    kind: ClassVar[Kind] = Kind.ANIMATION_CONTROLLER

    @property
    def identifiers(self) -> tuple[str, ...]:
        return self.controllers


@dataclass(frozen=True)
class ModelRecord(Record):
    geometries: tuple[str, ...]

    kind: ClassVar[Kind] = Kind.MODEL

    @property
    def identifiers(self) -> tuple[str, ...]:
        return self.geometries


@dataclass(frozen=True)
class TextureRecord(Record):
    texture: str    # path below the textures directory, no extension

    kind: ClassVar[Kind] = Kind.TEXTURE

    @property
    def identifiers(self) -> tuple[str, ...]:
        return (self.texture,)


@dataclass(frozen=True)
class ParticleRecord(Record):
    particle: str
    texture: str | None = None

    kind: ClassVar[Kind] = Kind.PARTICLE

    @property
    def identifiers(self) -> tuple[str, ...]:
        return (self.particle,)


@dataclass(frozen=True)
class SoundRecord(Record):
    sounds: tuple[str, ...]

    kind: ClassVar[Kind] = Kind.SOUND

    @property
    def identifiers(self) -> tuple[str, ...]:
        return self.sounds


@dataclass(frozen=True)
class RenderControllerRecord(Record):
    controllers: tuple[str, ...]
    # Never populated by extraction; kept for forward compatibility.
    geometries: tuple[str, ...] = ()
    textures: tuple[str, ...] = ()
    materials: tuple[str, ...] = ()

    kind: ClassVar[Kind] = Kind.RENDER_CONTROLLER

    @property
    def identifiers(self) -> tuple[str, ...]:
        return self.controllers


@dataclass(frozen=True)
class FogRecord(Record):
    fog: str

    kind: ClassVar[Kind] = Kind.FOG

    @property
    def identifiers(self) -> tuple[str, ...]:
        return (self.fog,)


AddonRecord = Union[
    PackManifestRecord,
    ServerBlockRecord,
    ClientBlockRecord,
    ServerEntityRecord,
    ClientEntityRecord,
    ItemRecord,
    UIRecord,
    AttachableRecord,
    AnimationRecord,
    AnimationControllerRecord,
    ModelRecord,
    TextureRecord,
    ParticleRecord,
    SoundRecord,
    RenderControllerRecord,
    FogRecord,
]

# kind → identifier → records
KindIndex = dict[Kind, dict[str, list[Record]]]


# ── Containers ────────────────────────────────────────────────────────────────

@dataclass
class AddonStructure:
    """Discovered pack roots plus the multi-valued identifier index."""

    resource_packs: list[str] = field(default_factory=list)
    behavior_packs: list[str] = field(default_factory=list)
    index: KindIndex = field(default_factory=lambda: {k: {} for k in INDEXED_KINDS})

    def get(self, kind: Kind, identifier: str) -> list[Record]:
        """Return the records defining *identifier* under *kind* (possibly empty)."""
        return list(self.index.get(kind, {}).get(identifier, ()))

    def records(self, kind: Kind) -> Iterator[Record]:
        """Yield each distinct record of *kind* once, in insertion order."""
        seen: set[str] = set()
        for records in self.index.get(kind, {}).values():
            for record in records:
                if record.path not in seen:
                    seen.add(record.path)
                    yield record

    def find(self, path: str, kind: Kind | None = None) -> Record | None:
        """Return the record indexed for *path*, searching only *kind* when given."""
        for k in (kind,) if kind is not None else INDEXED_KINDS:
            for record in self.records(k):
                if record.path == path:
                    return record
        return None


@dataclass(frozen=True)
class IndexSnapshot:
    """Read-only view published after every mutation."""

    structure: AddonStructure
    uses_of: dict[str, KindIndex]
    used_by: KindIndex


@dataclass(frozen=True)
class StructureStats:
    """Aggregate counts over the index and reference graph."""

    total_records: int
    records_by_kind: dict[str, int]
    identifiers_by_kind: dict[str, int]
    resource_packs: int
    behavior_packs: int
    dangling_references: int


@dataclass(frozen=True)
class ScanResult:
    """Summary returned after a full workspace scan."""

    roots: tuple[str, ...]
    indexed: int
    skipped: int
    failed: int
    stats: StructureStats
