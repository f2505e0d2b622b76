"""Shared test fixtures for packdex."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest


def write_json(path: Path, data: Any) -> Path:
    """Write *data* as JSON to *path*, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return path


def manifest(name: str, module_type: str) -> dict[str, Any]:
    return {
        "format_version": 2,
        "header": {"name": name, "uuid": f"{name.lower()}-uuid", "version": [1, 0, 0]},
        "modules": [{"type": module_type, "uuid": f"{name.lower()}-module", "version": [1, 0, 0]}],
    }


def client_entity(identifier: str, **description: Any) -> dict[str, Any]:
    return {
        "format_version": "1.10.0",
        "minecraft:client_entity": {"description": {"identifier": identifier, **description}},
    }


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """A workspace holding one resource pack (RP) and one behavior pack (BP).

    The cow client entity references an animation, an animation controller,
    a model, a texture, a particle, a sound and a render controller, all of
    which exist.  The dust particle's texture and the wand attachable's
    geometry do not exist (dangling).
    """
    bp = tmp_path / "BP"
    rp = tmp_path / "RP"

    write_json(bp / "manifest.json", manifest("BP", "data"))
    write_json(rp / "manifest.json", manifest("RP", "resources"))

    write_json(bp / "blocks" / "ore.json", {
        "format_version": "1.20.0",
        "minecraft:block": {"description": {"identifier": "demo:ore"}},
    })
    write_json(rp / "blocks.json", {
        "format_version": [1, 1, 0],
        "demo:ore": {"textures": "ore"},
    })
    write_json(bp / "entities" / "cow.json", {
        "format_version": "1.20.0",
        "minecraft:entity": {"description": {"identifier": "demo:cow"}},
    })
    write_json(bp / "items" / "wand.json", {
        "format_version": "1.20.0",
        "minecraft:item": {"description": {"identifier": "demo:wand"}},
    })

    write_json(rp / "entity" / "cow.entity.json", client_entity(
        "demo:cow",
        animations={"walk": "animation.cow.walk", "move": "controller.animation.cow.move"},
        geometry={"default": "geometry.cow"},
        textures={"default": "textures/entity/cow/body"},
        particle_effects={"dust": "demo:dust"},
        sound_effects={"moo": "mob.cow.say"},
        render_controllers=["controller.render.cow"],
    ))
    write_json(rp / "animations" / "cow.animation.json", {
        "format_version": "1.8.0",
        "animations": {"animation.cow.walk": {}, "animation.cow.idle": {}},
    })
    write_json(rp / "animation_controllers" / "cow.ac.json", {
        "format_version": "1.10.0",
        "animation_controllers": {"controller.animation.cow.move": {"states": {}}},
    })
    write_json(rp / "models" / "entity" / "cow.geo.json", {
        "format_version": "1.12.0",
        "minecraft:geometry": [{"description": {"identifier": "geometry.cow"}}],
    })
    texture = rp / "textures" / "entity" / "cow" / "body.png"
    texture.parent.mkdir(parents=True)
    texture.write_bytes(b"\x89PNG\r\n\x1a\n")
    write_json(rp / "particles" / "dust.json", {
        "format_version": "1.10.0",
        "particle_effect": {
            "description": {
                "identifier": "demo:dust",
                "basic_render_parameters": {"material": "particles_alpha", "texture": "textures/particle/dust"},
            },
        },
    })
    write_json(rp / "sounds" / "sound_definitions.json", {
        "format_version": "1.14.0",
        "sound_definitions": {"mob.cow.say": {"sounds": ["sounds/mob/cow/say1"]}},
    })
    write_json(rp / "render_controllers" / "cow.rc.json", {
        "format_version": "1.8.0",
        "render_controllers": {"controller.render.cow": {"geometry": "Geometry.default"}},
    })
    write_json(rp / "attachables" / "wand.json", {
        "format_version": "1.10.0",
        "minecraft:attachable": {
            "description": {"identifier": "demo:wand", "geometry": {"default": "geometry.wand"}},
        },
    })
    write_json(rp / "ui" / "hud_screen.json", {"namespace": "hud"})
    write_json(rp / "fogs" / "mist.json", {
        "format_version": "1.16.100",
        "minecraft:fog_settings": {"description": {"identifier": "demo:mist"}},
    })
    return tmp_path


@pytest.fixture
def write():
    """The ``write_json`` helper, for tests that build their own files."""
    return write_json


@pytest.fixture
def rp(workspace: Path) -> Path:
    return workspace / "RP"


@pytest.fixture
def bp(workspace: Path) -> Path:
    return workspace / "BP"
