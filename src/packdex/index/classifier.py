"""Path-based file classification.

Rules are evaluated in a fixed priority order against the path *relative to
its pack root* (when one is known), so directory names above the pack never
influence the result.  Only files under an entity directory that no earlier
rule claimed are opened: their top-level discriminator key decides between
server and client entity.

classify() never raises.  Unreadable probe targets are logged and reported
as ``Kind.UNKNOWN``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from packdex.index.errors import ContentUnreadable
from packdex.index.extractors import read_json
from packdex.index.schema import Kind

logger = logging.getLogger(__name__)

JSON_EXTENSIONS = frozenset({".json"})
TEXTURE_EXTENSIONS = frozenset({".png", ".tga", ".jpg", ".jpeg"})
RECOGNIZED_EXTENSIONS = JSON_EXTENSIONS | TEXTURE_EXTENSIONS

MANIFEST_FILENAME = "manifest.json"
BLOCKS_MANIFEST_FILENAME = "blocks.json"

ENTITY_DIRECTORIES = frozenset({"entities", "entity"})

SERVER_ENTITY_KEY = "minecraft:entity"
CLIENT_ENTITY_KEY = "minecraft:client_entity"


@dataclass(frozen=True)
class _Rule:
    kind: Kind
    directory: str | None = None
    basename: str | None = None
    extensions: frozenset[str] = JSON_EXTENSIONS
    top_level: bool = False     # directory must sit directly under the pack root

    def matches(self, parts: tuple[str, ...], pack_relative: bool = True) -> bool:
        if not parts:
            return False
        name = parts[-1]
        if Path(name).suffix.lower() not in self.extensions:
            return False
        if self.basename is not None and name != self.basename:
            return False
        if self.directory is None:
            return True
        directories = parts[:-1]
        if not self.top_level:
            return self.directory in directories
        if pack_relative:
            return bool(directories) and directories[0] == self.directory
        # No pack root known: the outermost rule directory stands in for it.
        outermost = next((d for d in directories if d in _RULE_DIRECTORIES), None)
        return outermost == self.directory


# Priority order matters: first match wins.
_RULES: tuple[_Rule, ...] = (
    _Rule(Kind.PACK_MANIFEST, basename=MANIFEST_FILENAME),
    _Rule(Kind.SERVER_BLOCK, directory="blocks", top_level=True),
    _Rule(Kind.CLIENT_BLOCK, basename=BLOCKS_MANIFEST_FILENAME),
    _Rule(Kind.ITEM, directory="items"),
    _Rule(Kind.ANIMATION, directory="animations"),
    _Rule(Kind.ANIMATION_CONTROLLER, directory="animation_controllers"),
    _Rule(Kind.MODEL, directory="models"),
    _Rule(Kind.TEXTURE, directory="textures", extensions=TEXTURE_EXTENSIONS),
    _Rule(Kind.PARTICLE, directory="particles"),
    _Rule(Kind.SOUND, directory="sounds"),
    _Rule(Kind.RENDER_CONTROLLER, directory="render_controllers"),
    _Rule(Kind.UI, directory="ui"),
    _Rule(Kind.ATTACHABLE, directory="attachables"),
    _Rule(Kind.FOG, directory="fogs"),
)

_RULE_DIRECTORIES = frozenset(r.directory for r in _RULES if r.directory is not None)


def relative_parts(path: str | Path, roots: Iterable[str | Path] = ()) -> tuple[str, ...]:
    """Return the segments of *path* below the deepest root that contains it.

    Falls back to every segment of *path* when no root contains it.
    """
    return _pack_relative(path, roots)[0]


def _pack_relative(path: str | Path, roots: Iterable[str | Path]) -> tuple[tuple[str, ...], bool]:
    target = Path(path)
    best: tuple[str, ...] | None = None
    for root in roots:
        try:
            rel = target.relative_to(Path(root))
        except ValueError:
            continue
        if best is None or len(rel.parts) < len(best):
            best = rel.parts
    if best is None:
        return target.parts, False
    return best, True


def is_recognized(path: str | Path) -> bool:
    """True if the extension is one the index ever looks at."""
    return Path(path).suffix.lower() in RECOGNIZED_EXTENSIONS


def classify(path: str | Path, roots: Iterable[str | Path] = ()) -> Kind:
    """Return the kind of the file at *path*."""
    parts, pack_relative = _pack_relative(path, roots)

    for rule in _RULES:
        if rule.matches(parts, pack_relative):
            return rule.kind

    if (
        parts
        and Path(parts[-1]).suffix.lower() in JSON_EXTENSIONS
        and ENTITY_DIRECTORIES.intersection(parts[:-1])
    ):
        return _probe_entity(Path(path))

    logger.debug("Unknown file kind: %s", path)
    return Kind.UNKNOWN


def _probe_entity(path: Path) -> Kind:
    """Open an entity-directory file and pick server or client by its top-level key."""
    try:
        content = read_json(path)
    except ContentUnreadable as exc:
        logger.warning("%s", exc)
        return Kind.UNKNOWN

    if isinstance(content, dict):
        if SERVER_ENTITY_KEY in content:
            return Kind.SERVER_ENTITY
        if CLIENT_ENTITY_KEY in content:
            return Kind.CLIENT_ENTITY

    logger.debug("No entity definition in %s", path)
    return Kind.UNKNOWN
