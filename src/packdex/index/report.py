"""PackmapGenerator — render a PACKMAP.md overview from the pack index.

Reads the last published snapshot of an ``AddonIndex`` and produces a
Markdown document:

  • Stats header (records, packs, dangling reference count)
  • Pack list (resource, then behavior)
  • One section per kind listing identifiers and their defining files,
    flagging identifiers defined by more than one file
  • Dangling references (source file → kind / identifier)
"""

from __future__ import annotations

import logging
from pathlib import Path

from packdex.index.addon_index import AddonIndex
from packdex.index.schema import INDEXED_KINDS, Kind, Record

logger = logging.getLogger(__name__)

# ── Display configuration ─────────────────────────────────────────────────────

KIND_HEADINGS: dict[Kind, str] = {
    Kind.PACK_MANIFEST: "Pack Manifests",
    Kind.SERVER_BLOCK: "Server Blocks",
    Kind.CLIENT_BLOCK: "Client Blocks",
    Kind.SERVER_ENTITY: "Server Entities",
    Kind.CLIENT_ENTITY: "Client Entities",
    Kind.ITEM: "Items",
    Kind.UI: "UI",
    Kind.ATTACHABLE: "Attachables",
    Kind.ANIMATION: "Animations",
    Kind.ANIMATION_CONTROLLER: "Animation Controllers",
    Kind.MODEL: "Models",
    Kind.TEXTURE: "Textures",
    Kind.PARTICLE: "Particles",
    Kind.SOUND: "Sounds",
    Kind.RENDER_CONTROLLER: "Render Controllers",
    Kind.FOG: "Fogs",
}


class PackmapGenerator:
    """Generate a PACKMAP.md document from an ``AddonIndex``.

    Parameters
    ----------
    index:
        Index to render (read through its published snapshot).
    """

    def __init__(self, index: AddonIndex) -> None:
        self._index = index

    # ── Public API ────────────────────────────────────────────────────────────

    def generate(self) -> str:
        """Return the full PACKMAP.md content as a string."""
        structure = self._index.get_structure()
        stats = self._index.stats()
        parts: list[str] = []

        # ── Header ────────────────────────────────────────────────────────────
        parts.append("# Pack Map\n")
        parts.append(
            f"> {stats.total_records} records · "
            f"{stats.resource_packs} resource packs · "
            f"{stats.behavior_packs} behavior packs · "
            f"{stats.dangling_references} dangling references\n"
        )

        # ── Packs ─────────────────────────────────────────────────────────────
        if structure.resource_packs or structure.behavior_packs:
            parts.append("\n## Packs\n")
            for pack in structure.resource_packs:
                parts.append(f"- `{self._display(pack)}` (resource)")
            for pack in structure.behavior_packs:
                parts.append(f"- `{self._display(pack)}` (behavior)")
            parts.append("")

        # ── Sections by kind ──────────────────────────────────────────────────
        for kind in INDEXED_KINDS:
            buckets = structure.index.get(kind, {})
            if not buckets:
                continue
            parts.append(f"\n## {KIND_HEADINGS.get(kind, kind.value)}\n")
            for identifier in sorted(buckets):
                parts.append(self._render_identifier(identifier, buckets[identifier]))

        # ── Dangling references ───────────────────────────────────────────────
        dangling = self._dangling()
        if dangling:
            parts.append("\n## Dangling References\n")
            for path, kind, identifier in dangling:
                parts.append(f"- `{self._display(path)}` → {kind.value} `{identifier}`")
            parts.append("")

        return "\n".join(parts)

    def write(self, output_path: Path) -> None:
        """Write the pack map to *output_path*, creating parent dirs if needed."""
        output_path.parent.mkdir(parents=True, exist_ok=True)
        content = self.generate()
        output_path.write_text(content, encoding="utf-8")
        logger.info("Wrote pack map (%d chars) to %s", len(content), output_path)

    # ── Internal helpers ──────────────────────────────────────────────────────

    def _render_identifier(self, identifier: str, records: list[Record]) -> str:
        if len(records) == 1:
            return f"- `{identifier}` — `{self._display(records[0].path)}`"
        lines = [f"- `{identifier}` *(defined in {len(records)} files)*"]
        for record in records:
            lines.append(f"  - `{self._display(record.path)}`")
        return "\n".join(lines)

    def _dangling(self) -> list[tuple[str, Kind, str]]:
        uses_of = self._index.get_snapshot().uses_of
        return sorted(
            (
                (path, kind, ident)
                for path, targets in uses_of.items()
                for kind, idents in targets.items()
                for ident, records in idents.items()
                if not records
            ),
            key=lambda t: (t[0], t[1].value, t[2]),
        )

    def _display(self, path: str) -> str:
        """Show *path* relative to the first scan root that contains it."""
        for root in self._index.roots:
            try:
                return Path(path).relative_to(root).as_posix()
            except ValueError:
                continue
        return path
