from __future__ import annotations

import io
import json
import zipfile
from typing import Any

from model import Block, BlockInput, DataRef, ListData, ProcedureArgument, Project, Script, Sprite, Stage, Variable
from opcodes import OpCode


def num(value: Any) -> BlockInput:
    return BlockInput("number", value)


def text(value: Any) -> BlockInput:
    return BlockInput("string", value)


def menu(kind: str, value: Any) -> BlockInput:
    return BlockInput(kind, value)


def sub(block: Block) -> BlockInput:
    return BlockInput("block", block)


def stack(*blocks: Block) -> BlockInput:
    return BlockInput("blocks", list(blocks))


def var_ref(variable: Variable) -> BlockInput:
    return BlockInput("variable", DataRef(id=variable.id, name=variable.name))


def list_ref(list_data: ListData) -> BlockInput:
    return BlockInput("list", DataRef(id=list_data.id, name=list_data.name))


def block(opcode: str, **inputs: BlockInput) -> Block:
    return Block(opcode=opcode, inputs=dict(inputs))


def procedure(proccode: str, body: list[Block], warp: bool = False, params: tuple[str, ...] = ()) -> Script:
    """A procedure-definition script whose `%s` slots take `params` in order."""
    arguments: list[ProcedureArgument] = []
    names = list(params)
    for part in proccode.split():
        if part in ("%s", "%n"):
            arguments.append(ProcedureArgument("numberOrString", names.pop(0)))
        elif part == "%b":
            arguments.append(ProcedureArgument("boolean", names.pop(0)))
        else:
            arguments.append(ProcedureArgument("label", part))
    hat = block(
        OpCode.procedures_definition,
        PROCCODE=text(proccode),
        ARGUMENTS=BlockInput("customBlockArguments", arguments),
        WARP=BlockInput("boolean", warp),
    )
    return Script(blocks=[hat, *body])


def call(proccode: str, *values: BlockInput) -> Block:
    return block(
        OpCode.procedures_call,
        PROCCODE=text(proccode),
        INPUTS=BlockInput("customBlockInputValues", list(values)),
    )


def green_flag(*body: Block) -> Script:
    return Script(blocks=[block(OpCode.event_whenflagclicked), *body])


def make_project(*sprites: Sprite, stage: Stage | None = None) -> Project:
    return Project(stage=stage or Stage(), sprites=list(sprites))


def sample_project_json() -> dict:
    cat_blocks = {
        "flag": {
            "opcode": "event_whenflagclicked",
            "next": "move",
            "parent": None,
            "inputs": {},
            "fields": {},
            "shadow": False,
            "topLevel": True,
            "x": 0,
            "y": 0,
        },
        "move": {
            "opcode": "motion_movesteps",
            "next": "goto",
            "parent": "flag",
            "inputs": {"STEPS": [1, [4, "10"]]},
            "fields": {},
            "shadow": False,
            "topLevel": False,
        },
        "goto": {
            "opcode": "motion_goto",
            "next": "setvar",
            "parent": "move",
            "inputs": {"TO": [1, "gotomenu"]},
            "fields": {},
            "shadow": False,
            "topLevel": False,
        },
        "gotomenu": {
            "opcode": "motion_goto_menu",
            "next": None,
            "parent": "goto",
            "inputs": {},
            "fields": {"TO": ["_mouse_", None]},
            "shadow": True,
            "topLevel": False,
        },
        "setvar": {
            "opcode": "data_setvariableto",
            "next": "repeat",
            "parent": "goto",
            "inputs": {"VALUE": [3, [12, "score", "v1"], [10, "0"]]},
            "fields": {"VARIABLE": ["score", "v1"]},
            "shadow": False,
            "topLevel": False,
        },
        "repeat": {
            "opcode": "control_repeat",
            "next": None,
            "parent": "setvar",
            "inputs": {"TIMES": [1, [6, "3"]], "SUBSTACK": [2, "say"]},
            "fields": {},
            "shadow": False,
            "topLevel": False,
        },
        "say": {
            "opcode": "looks_say",
            "next": None,
            "parent": "repeat",
            "inputs": {"MESSAGE": [1, [10, "hi"]]},
            "fields": {},
            "shadow": False,
            "topLevel": False,
        },
        "def": {
            "opcode": "procedures_definition",
            "next": None,
            "parent": None,
            "inputs": {"custom_block": [1, "proto"]},
            "fields": {},
            "shadow": False,
            "topLevel": True,
            "x": 300,
            "y": 0,
        },
        "proto": {
            "opcode": "procedures_prototype",
            "next": None,
            "parent": "def",
            "inputs": {},
            "fields": {},
            "shadow": True,
            "topLevel": False,
            "mutation": {
                "tagName": "mutation",
                "children": [],
                "proccode": "jump %s",
                "argumentids": '["a1"]',
                "argumentnames": '["height"]',
                "argumentdefaults": '[""]',
                "warp": "true",
            },
        },
        "call": {
            "opcode": "procedures_call",
            "next": None,
            "parent": None,
            "inputs": {"a1": [1, [10, "5"]]},
            "fields": {},
            "shadow": False,
            "topLevel": True,
            "x": 0,
            "y": 300,
            "mutation": {
                "tagName": "mutation",
                "children": [],
                "proccode": "jump %s",
                "argumentids": '["a1"]',
                "warp": "false",
            },
        },
        "loose": [12, "score", "v1", 10, 10],
    }
    return {
        "targets": [
            {
                "isStage": True,
                "name": "Stage",
                "variables": {"v1": ["score", "0"]},
                "lists": {"l1": ["items", ["a", "1"]]},
                "broadcasts": {},
                "blocks": {},
                "comments": {},
                "currentCostume": 0,
                "costumes": [
                    {
                        "name": "backdrop1",
                        "assetId": "abc",
                        "md5ext": "abc.svg",
                        "dataFormat": "svg",
                        "rotationCenterX": 240,
                        "rotationCenterY": 180,
                    }
                ],
                "sounds": [],
                "volume": 100,
                "layerOrder": 0,
                "tempo": 60,
                "videoTransparency": 50,
                "videoState": "on",
            },
            {
                "isStage": False,
                "name": "Cat",
                "variables": {},
                "lists": {},
                "broadcasts": {},
                "blocks": cat_blocks,
                "comments": {},
                "currentCostume": 0,
                "costumes": [
                    {
                        "name": "cat-a",
                        "assetId": "def",
                        "md5ext": "def.svg",
                        "dataFormat": "svg",
                        "rotationCenterX": 48,
                        "rotationCenterY": 50,
                    }
                ],
                "sounds": [
                    {
                        "name": "Meow",
                        "assetId": "ghi",
                        "md5ext": "ghi.wav",
                        "dataFormat": "wav",
                        "rate": 44100,
                        "sampleCount": 100,
                    }
                ],
                "volume": 100,
                "layerOrder": 1,
                "visible": True,
                "x": 10,
                "y": -5,
                "size": 100,
                "direction": 90,
                "draggable": False,
                "rotationStyle": "left-right",
            },
        ],
        "monitors": [
            {
                "id": "v1",
                "mode": "slider",
                "opcode": "data_variable",
                "params": {"VARIABLE": "score"},
                "spriteName": None,
                "value": "0",
                "width": 0,
                "height": 0,
                "x": 5,
                "y": 5,
                "visible": True,
                "sliderMin": 0,
                "sliderMax": 10,
                "isDiscrete": True,
            }
        ],
        "extensions": [],
        "meta": {"semver": "3.0.0"},
    }


SAMPLE_ASSETS = {
    "abc.svg": b"<svg/>",
    "def.svg": b"<svg id='cat'/>",
    "ghi.wav": b"RIFF",
}


def make_sb3_bytes(project_json: dict | None = None, assets: dict[str, bytes] | None = None) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        if project_json is not None:
            zf.writestr("project.json", json.dumps(project_json))
        for name, data in (SAMPLE_ASSETS if assets is None else assets).items():
            zf.writestr(name, data)
    return buffer.getvalue()
