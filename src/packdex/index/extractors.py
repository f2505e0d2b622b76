"""Per-kind extraction of typed records from pack files.

Each extractor turns parsed JSON (or, for textures, just the path shape) into
one fully-typed record variant.  Extractors raise ``ExtractionSchemaMissing``
when a required identifier is absent; ``extract()`` converts that into
``None`` and a debug log line so callers only ever see a record or nothing.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path, PurePosixPath
from typing import Any, Callable

from packdex.index.errors import ContentUnreadable, ExtractionSchemaMissing
from packdex.index.schema import (
    INDEXED_KINDS,
    AnimationControllerRecord,
    AnimationRecord,
    AttachableRecord,
    ClientBlockRecord,
    ClientEntityRecord,
    FogRecord,
    ItemRecord,
    Kind,
    ModelRecord,
    PackManifestRecord,
    ParticleRecord,
    Record,
    RenderControllerRecord,
    ServerBlockRecord,
    ServerEntityRecord,
    SoundRecord,
    TextureRecord,
    UIRecord,
)

logger = logging.getLogger(__name__)

TEXTURES_ANCHOR = "textures"
_IMAGE_SUFFIXES = (".png", ".tga", ".jpg", ".jpeg")

PACK_TYPE_RESOURCE = "resource"
PACK_TYPE_BEHAVIOR = "behavior"

# manifest module "type" → pack type
_MODULE_PACK_TYPES: dict[str, str] = {
    "resources": PACK_TYPE_RESOURCE,
    "data": PACK_TYPE_BEHAVIOR,
}


# ── Reading ───────────────────────────────────────────────────────────────────

def read_json(path: str | Path) -> Any:
    """Read and parse a JSON file, raising ``ContentUnreadable`` on any failure."""
    try:
        with open(path, "r", encoding="utf-8-sig") as f:
            return json.load(f)
    except (OSError, UnicodeDecodeError, ValueError) as exc:
        raise ContentUnreadable(path=str(path), reason=str(exc)) from exc


def needs_content(kind: Kind) -> bool:
    """True for kinds whose records come from parsed file content."""
    return kind in INDEXED_KINDS and kind is not Kind.TEXTURE


def pack_type_of(manifest: Any) -> str | None:
    """Return the pack type declared by the first recognized manifest module."""
    if not isinstance(manifest, dict):
        return None
    modules = manifest.get("modules")
    if not isinstance(modules, list):
        return None
    for module in modules:
        if not isinstance(module, dict):
            continue
        module_type = module.get("type")
        if not isinstance(module_type, str):
            continue
        pack_type = _MODULE_PACK_TYPES.get(module_type)
        if pack_type is not None:
            return pack_type
    return None


def normalize_texture_reference(reference: str) -> str:
    """Map a texture reference such as ``textures/entity/cow/cow`` to its identifier."""
    ref = reference.replace("\\", "/").lstrip("./")
    if ref.startswith(TEXTURES_ANCHOR + "/"):
        ref = ref[len(TEXTURES_ANCHOR) + 1:]
    if ref.lower().endswith(_IMAGE_SUFFIXES):
        ref = ref[: ref.rfind(".")]
    return ref


# ── Field helpers ─────────────────────────────────────────────────────────────

def _require_dict(content: Any, kind: Kind, field: str) -> dict[str, Any]:
    if not isinstance(content, dict):
        raise ExtractionSchemaMissing(kind=kind, field=field)
    return content


def _description(content: Any, root_key: str, kind: Kind) -> tuple[str, dict[str, Any]]:
    """Return ``(identifier, description)`` for ``{root_key: {description: {identifier}}}``."""
    body = _require_dict(content, kind, root_key).get(root_key)
    description = body.get("description") if isinstance(body, dict) else None
    identifier = description.get("identifier") if isinstance(description, dict) else None
    if not isinstance(identifier, str) or not identifier:
        raise ExtractionSchemaMissing(kind=kind, field=f"{root_key}.description.identifier")
    return identifier, description


def _unique(values: list[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(v for v in values if v))


def _mapping_values(value: Any) -> tuple[str, ...]:
    """String values of a ``{short_name: identifier}`` mapping."""
    if not isinstance(value, dict):
        return ()
    return _unique([v for v in value.values() if isinstance(v, str)])


def _keys(value: Any, kind: Kind, field: str, exclude: frozenset[str] = frozenset()) -> tuple[str, ...]:
    if not isinstance(value, dict):
        raise ExtractionSchemaMissing(kind=kind, field=field)
    keys = _unique([k for k in value if k not in exclude])
    if not keys:
        raise ExtractionSchemaMissing(kind=kind, field=field)
    return keys


def _render_controller_refs(value: Any) -> tuple[str, ...]:
    """Render controller entries are plain strings or ``{id: condition}`` objects."""
    if not isinstance(value, list):
        return ()
    refs: list[str] = []
    for entry in value:
        if isinstance(entry, str):
            refs.append(entry)
        elif isinstance(entry, dict):
            refs.extend(k for k in entry if isinstance(k, str))
    return _unique(refs)


def _visual_references(description: dict[str, Any]) -> dict[str, tuple[str, ...]]:
    """The six reference lists shared by client entities and attachables."""
    textures = _mapping_values(description.get("textures"))
    return {
        "animations": _mapping_values(description.get("animations")),
        "geometries": _mapping_values(description.get("geometry")),
        "textures": _unique([normalize_texture_reference(t) for t in textures]),
        "particles": _mapping_values(description.get("particle_effects")),
        "sounds": _mapping_values(description.get("sound_effects")),
        "render_controllers": _render_controller_refs(description.get("render_controllers")),
    }


# ── Extractors ────────────────────────────────────────────────────────────────

Extractor = Callable[[str, Any, tuple[str, ...], float], Record]


def _extract_manifest(path: str, content: Any, parts: tuple[str, ...], mtime: float) -> Record:
    header = _require_dict(content, Kind.PACK_MANIFEST, "header").get("header")
    uuid = header.get("uuid") if isinstance(header, dict) else None
    if not isinstance(uuid, str) or not uuid:
        raise ExtractionSchemaMissing(kind=Kind.PACK_MANIFEST, field="header.uuid")
    name = header.get("name")
    return PackManifestRecord(
        path=path,
        last_modified=mtime,
        uuid=uuid,
        name=name if isinstance(name, str) else "",
        pack_type=pack_type_of(content),
    )


def _extract_server_block(path: str, content: Any, parts: tuple[str, ...], mtime: float) -> Record:
    block, _ = _description(content, "minecraft:block", Kind.SERVER_BLOCK)
    return ServerBlockRecord(path=path, last_modified=mtime, block=block)


def _extract_client_block(path: str, content: Any, parts: tuple[str, ...], mtime: float) -> Record:
    blocks = _keys(content, Kind.CLIENT_BLOCK, "<block entries>", exclude=frozenset({"format_version"}))
    return ClientBlockRecord(path=path, last_modified=mtime, blocks=blocks)


def _extract_server_entity(path: str, content: Any, parts: tuple[str, ...], mtime: float) -> Record:
    entity, _ = _description(content, "minecraft:entity", Kind.SERVER_ENTITY)
    return ServerEntityRecord(path=path, last_modified=mtime, entity=entity)


def _extract_client_entity(path: str, content: Any, parts: tuple[str, ...], mtime: float) -> Record:
    entity, description = _description(content, "minecraft:client_entity", Kind.CLIENT_ENTITY)
    return ClientEntityRecord(
        path=path, last_modified=mtime, entity=entity, **_visual_references(description)
    )


def _extract_item(path: str, content: Any, parts: tuple[str, ...], mtime: float) -> Record:
    item, _ = _description(content, "minecraft:item", Kind.ITEM)
    return ItemRecord(path=path, last_modified=mtime, item=item)


def _extract_ui(path: str, content: Any, parts: tuple[str, ...], mtime: float) -> Record:
    namespace = _require_dict(content, Kind.UI, "namespace").get("namespace")
    if not isinstance(namespace, str) or not namespace:
        raise ExtractionSchemaMissing(kind=Kind.UI, field="namespace")
    return UIRecord(path=path, last_modified=mtime, namespace=namespace)


def _extract_attachable(path: str, content: Any, parts: tuple[str, ...], mtime: float) -> Record:
    attachable, description = _description(content, "minecraft:attachable", Kind.ATTACHABLE)
    return AttachableRecord(
        path=path, last_modified=mtime, attachable=attachable, **_visual_references(description)
    )


def _extract_animation(path: str, content: Any, parts: tuple[str, ...], mtime: float) -> Record:
    body = _require_dict(content, Kind.ANIMATION, "animations")
    animations = _keys(body.get("animations"), Kind.ANIMATION, "animations")
    return AnimationRecord(path=path, last_modified=mtime, animations=animations)


def _extract_animation_controller(path: str, content: Any, parts: tuple[str, ...], mtime: float) -> Record:
    body = _require_dict(content, Kind.ANIMATION_CONTROLLER, "animation_controllers")
    controllers = _keys(
        body.get("animation_controllers"), Kind.ANIMATION_CONTROLLER, "animation_controllers"
    )
    return AnimationControllerRecord(path=path, last_modified=mtime, controllers=controllers)


def _extract_model(path: str, content: Any, parts: tuple[str, ...], mtime: float) -> Record:
    body = _require_dict(content, Kind.MODEL, "minecraft:geometry")
    geometries: list[str] = []
    entries = body.get("minecraft:geometry")
    if entries is not None and not isinstance(entries, list):
        raise ExtractionSchemaMissing(kind=Kind.MODEL, field="minecraft:geometry")
    for geometry in entries or ():
        description = geometry.get("description") if isinstance(geometry, dict) else None
        identifier = description.get("identifier") if isinstance(description, dict) else None
        if isinstance(identifier, str):
            geometries.append(identifier)
    # Legacy 1.8 format: top-level "geometry.name" or "geometry.name:geometry.parent" keys
    for key in body:
        if key.startswith("geometry."):
            geometries.append(key.split(":", 1)[0])
    if not geometries:
        raise ExtractionSchemaMissing(kind=Kind.MODEL, field="minecraft:geometry[].description.identifier")
    return ModelRecord(path=path, last_modified=mtime, geometries=_unique(geometries))


def _extract_texture(path: str, content: Any, parts: tuple[str, ...], mtime: float) -> Record:
    directories = parts[:-1]
    if TEXTURES_ANCHOR not in directories:
        raise ExtractionSchemaMissing(kind=Kind.TEXTURE, field=f"{TEXTURES_ANCHOR}/ directory")
    rest = parts[directories.index(TEXTURES_ANCHOR) + 1:]
    texture = PurePosixPath(*rest).with_suffix("").as_posix()
    return TextureRecord(path=path, last_modified=mtime, texture=texture)


def _extract_particle(path: str, content: Any, parts: tuple[str, ...], mtime: float) -> Record:
    body = _require_dict(content, Kind.PARTICLE, "particle_effect")
    texture: Any = None
    if "particle_effect" in body:
        particle, description = _description(body, "particle_effect", Kind.PARTICLE)
        render = description.get("basic_render_parameters")
        if isinstance(render, dict):
            texture = render.get("texture")
    else:
        particle = body.get("effect")
        if not isinstance(particle, str) or not particle:
            raise ExtractionSchemaMissing(kind=Kind.PARTICLE, field="particle_effect.description.identifier")
        texture = body.get("textures")
        if isinstance(texture, list):
            texture = next((t for t in texture if isinstance(t, str)), None)
    return ParticleRecord(
        path=path,
        last_modified=mtime,
        particle=particle,
        texture=normalize_texture_reference(texture) if isinstance(texture, str) and texture else None,
    )


def _extract_sound(path: str, content: Any, parts: tuple[str, ...], mtime: float) -> Record:
    body = _require_dict(content, Kind.SOUND, "sound_definitions")
    if isinstance(body.get("sound_definitions"), dict):
        sounds = _keys(body["sound_definitions"], Kind.SOUND, "sound_definitions")
        return SoundRecord(path=path, last_modified=mtime, sounds=sounds)

    raw = body.get("sounds")
    names: list[str] = []
    if isinstance(raw, str):
        names.append(raw)
    elif isinstance(raw, list):
        for sound in raw:
            if isinstance(sound, str):
                names.append(sound)
            elif isinstance(sound, dict) and isinstance(sound.get("name"), str):
                names.append(sound["name"])
    if not names:
        raise ExtractionSchemaMissing(kind=Kind.SOUND, field="sound_definitions")
    return SoundRecord(path=path, last_modified=mtime, sounds=_unique(names))


def _extract_render_controller(path: str, content: Any, parts: tuple[str, ...], mtime: float) -> Record:
    body = _require_dict(content, Kind.RENDER_CONTROLLER, "render_controllers")
    controllers = _keys(body.get("render_controllers"), Kind.RENDER_CONTROLLER, "render_controllers")
    return RenderControllerRecord(path=path, last_modified=mtime, controllers=controllers)


def _extract_fog(path: str, content: Any, parts: tuple[str, ...], mtime: float) -> Record:
    fog, _ = _description(content, "minecraft:fog_settings", Kind.FOG)
    return FogRecord(path=path, last_modified=mtime, fog=fog)


_EXTRACTORS: dict[Kind, Extractor] = {
    Kind.PACK_MANIFEST: _extract_manifest,
    Kind.SERVER_BLOCK: _extract_server_block,
    Kind.CLIENT_BLOCK: _extract_client_block,
    Kind.SERVER_ENTITY: _extract_server_entity,
    Kind.CLIENT_ENTITY: _extract_client_entity,
    Kind.ITEM: _extract_item,
    Kind.UI: _extract_ui,
    Kind.ATTACHABLE: _extract_attachable,
    Kind.ANIMATION: _extract_animation,
    Kind.ANIMATION_CONTROLLER: _extract_animation_controller,
    Kind.MODEL: _extract_model,
    Kind.TEXTURE: _extract_texture,
    Kind.PARTICLE: _extract_particle,
    Kind.SOUND: _extract_sound,
    Kind.RENDER_CONTROLLER: _extract_render_controller,
    Kind.FOG: _extract_fog,
}

if set(_EXTRACTORS) != set(INDEXED_KINDS):
    raise RuntimeError(f"Extractor table incomplete: {set(INDEXED_KINDS) - set(_EXTRACTORS)}")


# ── Public entry point ────────────────────────────────────────────────────────

def extract(
    kind: Kind,
    path: str | Path,
    content: Any = None,
    parts: tuple[str, ...] | None = None,
    last_modified: float | None = None,
) -> Record | None:
    """Build the record for *path* or return ``None`` if it defines nothing.

    *parts* are the path segments relative to the pack root (used by the
    texture extractor); they default to every segment of *path*.
    """
    extractor = _EXTRACTORS.get(kind)
    if extractor is None:
        return None

    path_str = str(path)
    if parts is None:
        parts = Path(path).parts
    if last_modified is None:
        last_modified = _mtime(path)

    try:
        return extractor(path_str, content, parts, last_modified)
    except ExtractionSchemaMissing as exc:
        logger.debug("Skipping %s: %s", path_str, exc)
        return None


def _mtime(path: str | Path) -> float:
    try:
        return Path(path).stat().st_mtime
    except OSError as exc:
        logger.debug("Cannot stat %s: %s", path, exc)
        return 0.0
