from __future__ import annotations

import io
import json
import logging
import re
import zipfile
from pathlib import Path
from typing import Any

from model import (
    Block,
    BlockInput,
    Costume,
    DataRef,
    ListData,
    ProcedureArgument,
    Project,
    Script,
    Sound,
    Sprite,
    Stage,
    Target,
    Variable,
)
from opcodes import FIELD_TYPES, STACK_INPUTS, OpCode


LOG = logging.getLogger(__name__)

_PROCCODE_PARTS = re.compile(r"(?<!\\)(%[nsb])")

_ROTATION_STYLES = {
    "all around": "normal",
    "left-right": "leftRight",
    "don't rotate": "none",
}

_NUMBER_PRIMITIVES = {4, 5, 6, 7}
_ANGLE_PRIMITIVE = 8
_COLOR_PRIMITIVE = 9
_TEXT_PRIMITIVE = 10
_BROADCAST_PRIMITIVE = 11
_VARIABLE_PRIMITIVE = 12
_LIST_PRIMITIVE = 13

_DATA_FIELD_TYPES = {"variable", "list"}


class Sb3Error(ValueError):
    """Raised when an .sb3 archive or its project.json cannot be read."""


def load_sb3(source: str | Path | bytes) -> Project:
    """Read a Scratch 3 archive from a path or from raw bytes."""
    try:
        if isinstance(source, bytes):
            archive = zipfile.ZipFile(io.BytesIO(source))
        else:
            archive = zipfile.ZipFile(source)
    except zipfile.BadZipFile as exc:
        raise Sb3Error(f"Not a valid .sb3 archive: {exc}") from exc

    with archive:
        try:
            raw = archive.read("project.json")
        except KeyError as exc:
            raise Sb3Error("Archive does not contain project.json") from exc
        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise Sb3Error(f"Invalid project.json: {exc}") from exc
        assets = {name: archive.read(name) for name in archive.namelist() if name != "project.json"}
    return project_from_json(data, assets)


def project_from_json(data: dict, assets: dict[str, bytes] | None = None) -> Project:
    if not isinstance(data, dict) or not isinstance(data.get("targets"), list):
        raise Sb3Error("project.json has no target list")
    loader = _ProjectLoader(data, assets or {})
    return loader.load()


class _ProjectLoader:
    def __init__(self, data: dict, assets: dict[str, bytes]) -> None:
        self.data = data
        self.assets = assets
        self.monitors = {monitor.get("id"): monitor for monitor in data.get("monitors", [])}

    def load(self) -> Project:
        targets = self.data["targets"]
        stage_data = next((target for target in targets if target.get("isStage")), None)
        if stage_data is None:
            raise Sb3Error("project.json has no stage target")

        stage = Stage(name=stage_data.get("name", "Stage"))
        self._fill_target(stage, stage_data)

        sprites: list[Sprite] = []
        for sprite_data in targets:
            if sprite_data.get("isStage"):
                continue
            sprite = Sprite(
                name=sprite_data.get("name", "Sprite"),
                x=sprite_data.get("x", 0),
                y=sprite_data.get("y", 0),
                direction=sprite_data.get("direction", 90),
                size=sprite_data.get("size", 100),
                visible=sprite_data.get("visible", True),
                draggable=sprite_data.get("draggable", False),
                rotation_style=_ROTATION_STYLES.get(sprite_data.get("rotationStyle"), "normal"),
            )
            self._fill_target(sprite, sprite_data)
            sprites.append(sprite)

        return Project(
            stage=stage,
            sprites=sprites,
            tempo=stage_data.get("tempo", 60),
            video_on=stage_data.get("videoState") == "on",
            video_alpha=stage_data.get("videoTransparency", 50),
        )

    def _fill_target(self, target: Target, data: dict) -> None:
        target.costume_number = data.get("currentCostume", 0)
        target.volume = data.get("volume", 100)
        target.layer_order = data.get("layerOrder", 0)
        target.costumes = [self._costume(target.name, item) for item in data.get("costumes", [])]
        target.sounds = [self._sound(target.name, item) for item in data.get("sounds", [])]
        target.variables = [self._variable(var_id, item) for var_id, item in data.get("variables", {}).items()]
        target.lists = [self._list(list_id, item) for list_id, item in data.get("lists", {}).items()]
        target.scripts = _ScriptReader(target.name, data.get("blocks", {})).scripts()

    def _asset(self, target_name: str, kind: str, item: dict) -> bytes | None:
        filename = item.get("md5ext") or f"{item.get('assetId', '')}.{item.get('dataFormat', '')}"
        data = self.assets.get(filename)
        if data is None and self.assets:
            LOG.warning("%s: %s asset %s is missing from the archive", target_name, kind, filename)
        return data

    def _costume(self, target_name: str, item: dict) -> Costume:
        return Costume(
            name=item.get("name", ""),
            md5=item.get("assetId", ""),
            ext=item.get("dataFormat", "svg"),
            bitmap_resolution=item.get("bitmapResolution", 1),
            center_x=item.get("rotationCenterX", 0),
            center_y=item.get("rotationCenterY", 0),
            data=self._asset(target_name, "costume", item),
        )

    def _sound(self, target_name: str, item: dict) -> Sound:
        return Sound(
            name=item.get("name", ""),
            md5=item.get("assetId", ""),
            ext=item.get("dataFormat", "wav"),
            sample_count=item.get("sampleCount", 0),
            rate=item.get("rate", 0),
            data=self._asset(target_name, "sound", item),
        )

    def _variable(self, var_id: str, item: list) -> Variable:
        name, value = item[0], item[1]
        cloud = bool(item[2]) if len(item) > 2 else False
        monitor = self.monitors.get(var_id, {})
        return Variable(
            name=name,
            value=value,
            id=var_id,
            cloud=cloud,
            visible=monitor.get("visible", False),
            mode=monitor.get("mode", "default"),
            x=monitor.get("x", 0),
            y=monitor.get("y", 0),
            slider_min=monitor.get("sliderMin", 0),
            slider_max=monitor.get("sliderMax", 100),
            is_discrete=monitor.get("isDiscrete", True),
        )

    def _list(self, list_id: str, item: list) -> ListData:
        monitor = self.monitors.get(list_id, {})
        return ListData(
            name=item[0],
            value=list(item[1]),
            id=list_id,
            visible=monitor.get("visible", False),
            x=monitor.get("x", 0),
            y=monitor.get("y", 0),
            width=monitor.get("width") or None,
            height=monitor.get("height") or None,
        )


class _ScriptReader:
    """Rebuilds nested block trees from the flat `blocks` table of one target."""

    def __init__(self, target_name: str, blocks: dict[str, Any]) -> None:
        self.target_name = target_name
        self.blocks = blocks

    def scripts(self) -> list[Script]:
        scripts: list[Script] = []
        for block_id, raw in self.blocks.items():
            if not isinstance(raw, dict):
                LOG.debug("%s: skipping loose primitive %s", self.target_name, block_id)
                continue
            if not raw.get("topLevel") or raw.get("shadow"):
                continue
            scripts.append(Script(blocks=self._chain(block_id), x=raw.get("x", 0), y=raw.get("y", 0)))
        return scripts

    def _chain(self, block_id: str | None) -> list[Block]:
        chain: list[Block] = []
        while block_id is not None:
            raw = self.blocks.get(block_id)
            if not isinstance(raw, dict):
                LOG.debug("%s: dangling block reference %s", self.target_name, block_id)
                break
            chain.append(Block(opcode=raw["opcode"], inputs=self._inputs(raw), id=block_id))
            block_id = raw.get("next")
        return chain

    def _inputs(self, raw: dict) -> dict[str, BlockInput]:
        inputs: dict[str, BlockInput] = {}
        for name, entry in raw.get("inputs", {}).items():
            self._read_input(raw, name, entry[1] if len(entry) > 1 else None, inputs)
        inputs.update(self._fields(raw))
        if raw["opcode"] == OpCode.procedures_call:
            inputs = self._call_inputs(raw, inputs)
        return inputs

    def _read_input(self, parent: dict, name: str, value: Any, inputs: dict[str, BlockInput]) -> None:
        if isinstance(value, str):
            child = self.blocks.get(value)
            if isinstance(child, dict) and child.get("shadow") and child.get("next") is None:
                if child["opcode"] == OpCode.procedures_prototype:
                    inputs.update(_prototype_inputs(child.get("mutation", {})))
                else:
                    for child_name, child_entry in child.get("inputs", {}).items():
                        child_value = child_entry[1] if len(child_entry) > 1 else None
                        self._read_input(child, child_name, child_value, inputs)
                    inputs.update(self._fields(child))
                return
            chain = self._chain(value)
            if name in STACK_INPUTS or len(chain) > 1:
                inputs[name] = BlockInput("blocks", chain)
            else:
                inputs[name] = BlockInput("block", chain[0] if chain else None)
        elif value is None:
            inputs[name] = BlockInput("string", None)
        elif isinstance(value, list) and value:
            inputs[name] = _primitive(value)

    def _fields(self, raw: dict) -> dict[str, BlockInput]:
        types = FIELD_TYPES.get(raw["opcode"], {})
        fields: dict[str, BlockInput] = {}
        for name, values in raw.get("fields", {}).items():
            field_type = types.get(name, "string")
            if field_type in _DATA_FIELD_TYPES:
                ref_id = values[1] if len(values) > 1 else None
                fields[name] = BlockInput(field_type, DataRef(id=ref_id, name=values[0]))
            else:
                fields[name] = BlockInput(field_type, values[0])
        return fields

    def _call_inputs(self, raw: dict, inputs: dict[str, BlockInput]) -> dict[str, BlockInput]:
        mutation = raw.get("mutation", {})
        argument_ids = json.loads(mutation.get("argumentids", "[]"))
        values = [inputs.get(argument_id, BlockInput("string", None)) for argument_id in argument_ids]
        return {
            "PROCCODE": BlockInput("string", mutation.get("proccode", "")),
            "INPUTS": BlockInput("customBlockInputValues", values),
        }


def _primitive(value: list) -> BlockInput:
    kind = value[0]
    if kind in _NUMBER_PRIMITIVES:
        return BlockInput("number", value[1])
    if kind == _ANGLE_PRIMITIVE:
        return BlockInput("angle", value[1])
    if kind == _COLOR_PRIMITIVE:
        return BlockInput("color", _hex_to_rgb(value[1]))
    if kind == _BROADCAST_PRIMITIVE:
        return BlockInput("broadcast", value[1])
    if kind == _VARIABLE_PRIMITIVE:
        ref = DataRef(id=value[2] if len(value) > 2 else None, name=value[1])
        return BlockInput("block", Block(OpCode.data_variable, {"VARIABLE": BlockInput("variable", ref)}))
    if kind == _LIST_PRIMITIVE:
        ref = DataRef(id=value[2] if len(value) > 2 else None, name=value[1])
        return BlockInput("block", Block(OpCode.data_listcontents, {"LIST": BlockInput("list", ref)}))
    return BlockInput("string", value[1] if len(value) > 1 else None)


def _hex_to_rgb(text: str) -> tuple[int, int, int] | str:
    digits = str(text).lstrip("#")
    if len(digits) != 6:
        return str(text)
    try:
        return int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16)
    except ValueError:
        return str(text)


def _prototype_inputs(mutation: dict) -> dict[str, BlockInput]:
    proccode = mutation.get("proccode", "")
    names = list(json.loads(mutation.get("argumentnames", "[]")))
    defaults = list(json.loads(mutation.get("argumentdefaults", "[]")))
    arguments: list[ProcedureArgument] = []
    for part in _proccode_parts(proccode):
        if part in ("%s", "%n", "%b"):
            name = names.pop(0) if names else ""
            default = defaults.pop(0) if defaults else None
            if part == "%b":
                arguments.append(ProcedureArgument("boolean", name, default == "true"))
            else:
                arguments.append(ProcedureArgument("numberOrString", name, default))
        else:
            arguments.append(ProcedureArgument("label", part))
    return {
        "PROCCODE": BlockInput("string", proccode),
        "ARGUMENTS": BlockInput("customBlockArguments", arguments),
        "WARP": BlockInput("boolean", str(mutation.get("warp", "false")).lower() == "true"),
    }


def _proccode_parts(proccode: str) -> list[str]:
    """Split "move %s steps" into ["move", "%s", "steps"]."""
    parts = (piece.strip() for piece in _PROCCODE_PARTS.split(proccode))
    return [part for part in parts if part]
