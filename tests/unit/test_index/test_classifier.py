"""Tests for path-based file classification."""

from __future__ import annotations

from pathlib import Path

import pytest

from packdex.index.classifier import classify, is_recognized, relative_parts
from packdex.index.schema import Kind


# ── Path rules ────────────────────────────────────────────────────────────────


class TestClassifyByPath:
    @pytest.mark.parametrize(
        "relative, expected",
        [
            ("manifest.json", Kind.PACK_MANIFEST),
            ("blocks/ore.json", Kind.SERVER_BLOCK),
            ("blocks.json", Kind.CLIENT_BLOCK),
            ("items/wand.json", Kind.ITEM),
            ("animations/cow.animation.json", Kind.ANIMATION),
            ("animation_controllers/cow.ac.json", Kind.ANIMATION_CONTROLLER),
            ("models/entity/cow.geo.json", Kind.MODEL),
            ("textures/entity/cow/body.png", Kind.TEXTURE),
            ("textures/blocks/ore.tga", Kind.TEXTURE),
            ("particles/dust.json", Kind.PARTICLE),
            ("sounds/sound_definitions.json", Kind.SOUND),
            ("render_controllers/cow.rc.json", Kind.RENDER_CONTROLLER),
            ("ui/hud_screen.json", Kind.UI),
            ("attachables/wand.json", Kind.ATTACHABLE),
            ("fogs/mist.json", Kind.FOG),
        ],
    )
    def test_rule_table(self, tmp_path: Path, relative: str, expected: Kind) -> None:
        pack = tmp_path / "RP"
        assert classify(pack / relative, [pack]) is expected

    def test_manifest_wins_over_directory_rules(self, tmp_path: Path) -> None:
        pack = tmp_path / "BP"
        assert classify(pack / "blocks" / "manifest.json", [pack]) is Kind.PACK_MANIFEST

    def test_server_block_wins_over_blocks_manifest(self, tmp_path: Path) -> None:
        pack = tmp_path / "BP"
        assert classify(pack / "blocks" / "blocks.json", [pack]) is Kind.SERVER_BLOCK

    def test_block_geometry_under_models_is_a_model(self, tmp_path: Path) -> None:
        pack = tmp_path / "RP"
        assert classify(pack / "models" / "blocks" / "ore.geo.json", [pack]) is Kind.MODEL

    def test_nested_blocks_directory_is_not_a_server_block(self, tmp_path: Path) -> None:
        pack = tmp_path / "BP"
        assert classify(pack / "items" / "blocks" / "x.json", [pack]) is Kind.ITEM

    def test_block_geometry_without_roots(self, tmp_path: Path) -> None:
        assert classify(tmp_path / "RP" / "models" / "blocks" / "ore.geo.json") is Kind.MODEL
        assert classify(tmp_path / "BP" / "blocks" / "ore.json") is Kind.SERVER_BLOCK

    def test_json_under_textures_is_unknown(self, tmp_path: Path) -> None:
        pack = tmp_path / "RP"
        assert classify(pack / "textures" / "terrain_texture.json", [pack]) is Kind.UNKNOWN

    def test_image_outside_textures_is_unknown(self, tmp_path: Path) -> None:
        pack = tmp_path / "RP"
        assert classify(pack / "pack_icon.png", [pack]) is Kind.UNKNOWN

    def test_unrecognized_extension_is_unknown(self, tmp_path: Path) -> None:
        pack = tmp_path / "RP"
        assert classify(pack / "texts" / "en_US.lang", [pack]) is Kind.UNKNOWN

    def test_extension_is_case_insensitive(self, tmp_path: Path) -> None:
        pack = tmp_path / "RP"
        assert classify(pack / "textures" / "a.PNG", [pack]) is Kind.TEXTURE

    def test_directories_above_pack_root_are_ignored(self, tmp_path: Path) -> None:
        pack = tmp_path / "models" / "RP"
        assert classify(pack / "fogs" / "mist.json", [pack]) is Kind.FOG

    def test_without_roots_all_segments_count(self, tmp_path: Path) -> None:
        assert classify(tmp_path / "items" / "x.json") is Kind.ITEM


# ── Entity probing ────────────────────────────────────────────────────────────


class TestEntityProbe:
    def test_server_entity(self, bp: Path) -> None:
        assert classify(bp / "entities" / "cow.json", [bp]) is Kind.SERVER_ENTITY

    def test_client_entity(self, rp: Path) -> None:
        assert classify(rp / "entity" / "cow.entity.json", [rp]) is Kind.CLIENT_ENTITY

    def test_entity_without_discriminator_is_unknown(self, tmp_path: Path, write) -> None:
        path = write(tmp_path / "BP" / "entities" / "odd.json", {"format_version": "1.0"})
        assert classify(path, [tmp_path / "BP"]) is Kind.UNKNOWN

    def test_unreadable_entity_is_unknown(self, tmp_path: Path) -> None:
        path = tmp_path / "BP" / "entities" / "broken.json"
        path.parent.mkdir(parents=True)
        path.write_text("{ not json", encoding="utf-8")
        assert classify(path, [tmp_path / "BP"]) is Kind.UNKNOWN

    def test_missing_entity_file_is_unknown(self, tmp_path: Path) -> None:
        assert classify(tmp_path / "BP" / "entities" / "gone.json", [tmp_path / "BP"]) is Kind.UNKNOWN

    def test_model_under_entity_directory_is_not_probed(self, rp: Path) -> None:
        assert classify(rp / "models" / "entity" / "cow.geo.json", [rp]) is Kind.MODEL


# ── Helpers ───────────────────────────────────────────────────────────────────


class TestHelpers:
    def test_relative_parts_uses_deepest_root(self, tmp_path: Path) -> None:
        outer = tmp_path / "ws"
        inner = outer / "packs" / "RP"
        parts = relative_parts(inner / "models" / "a.json", [outer, inner])
        assert parts == ("models", "a.json")

    def test_relative_parts_falls_back_to_full_path(self, tmp_path: Path) -> None:
        path = tmp_path / "a.json"
        assert relative_parts(path, [tmp_path / "other"]) == path.parts

    def test_is_recognized(self) -> None:
        assert is_recognized("a/b.json")
        assert is_recognized("a/b.TGA")
        assert not is_recognized("a/b.lang")
        assert not is_recognized("a/b.mcfunction")
