from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Any

from opcodes import OpCode, is_hat


_id_counter = itertools.count(1)


def new_id(prefix: str) -> str:
    return f"{prefix}_{next(_id_counter)}"


# Literal BlockInput types that carry a menu choice as a plain string.
MENU_INPUT_TYPES = frozenset(
    {
        "costume",
        "backdrop",
        "sound",
        "key",
        "graphicEffect",
        "soundEffect",
        "goToTarget",
        "pointTowardsTarget",
        "rotationStyle",
        "scrollAlignment",
        "frontBackMenu",
        "forwardBackwardMenu",
        "costumeNumberName",
        "greaterThanMenu",
        "stopMenu",
        "cloneTarget",
        "touchingTarget",
        "distanceToMenu",
        "dragModeMenu",
        "propertyOfMenu",
        "target",
        "currentMenu",
        "mathopMenu",
        "penColorParam",
        "musicDrum",
        "musicInstrument",
        "videoSensingAttribute",
        "videoSensingSubject",
        "videoSensingVideoState",
        "wedo2MotorId",
        "wedo2MotorDirection",
        "wedo2TiltDirection",
        "wedo2TiltDirectionAny",
    }
)


@dataclass(frozen=True)
class DataRef:
    """Reference from a block to a variable or list."""

    id: str | None
    name: str


@dataclass(frozen=True)
class ProcedureArgument:
    type: str  # "label", "numberOrString" or "boolean"
    name: str
    default: Any = None


@dataclass
class BlockInput:
    type: str
    value: Any

    @property
    def is_block(self) -> bool:
        return self.type == "block"

    @property
    def is_stack(self) -> bool:
        return self.type == "blocks"


@dataclass
class Block:
    opcode: str
    inputs: dict[str, BlockInput] = field(default_factory=dict)
    id: str = field(default_factory=lambda: new_id("block"))

    def __post_init__(self) -> None:
        if isinstance(self.opcode, OpCode):
            self.opcode = self.opcode.value

    @property
    def is_hat(self) -> bool:
        return is_hat(self.opcode)

    def literal(self, name: str, default: Any = None) -> Any:
        block_input = self.inputs.get(name)
        if block_input is None or block_input.type in ("block", "blocks"):
            return default
        return block_input.value

    def walk(self):
        """Yield this block and every block nested in its inputs, depth first."""
        yield self
        for block_input in self.inputs.values():
            if block_input.type == "block" and block_input.value is not None:
                yield from block_input.value.walk()
            elif block_input.type == "blocks":
                for child in block_input.value or []:
                    yield from child.walk()
            elif block_input.type == "customBlockInputValues":
                for item in block_input.value or []:
                    if item.type == "block" and item.value is not None:
                        yield from item.value.walk()


def _default_script_name(blocks: list[Block]) -> str:
    if not blocks:
        return "script"
    first = blocks[0]
    if first.opcode == OpCode.event_whenflagclicked:
        return "when_green_flag_clicked"
    if first.opcode == OpCode.event_whenbroadcastreceived:
        return f"when_i_receive_{first.literal('BROADCAST_OPTION', '')}"
    if first.opcode == OpCode.event_whenkeypressed:
        return f"when_key_{first.literal('KEY_OPTION', '')}_pressed"
    if first.opcode == OpCode.procedures_definition:
        arguments = first.literal("ARGUMENTS", [])
        return "_".join(argument.name for argument in arguments if argument.type == "label")
    return "_".join(first.opcode.split("_")[1:])


@dataclass
class Script:
    blocks: list[Block] = field(default_factory=list)
    name: str | None = None
    x: float = 0
    y: float = 0

    def __post_init__(self) -> None:
        if self.name is None:
            self.name = _default_script_name(self.blocks)

    @property
    def hat(self) -> Block | None:
        if self.blocks and self.blocks[0].is_hat:
            return self.blocks[0]
        return None

    @property
    def body(self) -> list[Block]:
        if self.hat is not None:
            return self.blocks[1:]
        return list(self.blocks)

    @property
    def is_procedure(self) -> bool:
        hat = self.hat
        return hat is not None and hat.opcode == OpCode.procedures_definition

    @property
    def proccode(self) -> str | None:
        if not self.is_procedure:
            return None
        return self.hat.literal("PROCCODE")

    @property
    def arguments(self) -> list[ProcedureArgument]:
        if not self.is_procedure:
            return []
        return list(self.hat.literal("ARGUMENTS", []))

    @property
    def is_warp(self) -> bool:
        return self.is_procedure and bool(self.hat.literal("WARP", False))

    def walk(self):
        for block in self.blocks:
            yield from block.walk()


@dataclass
class Variable:
    name: str
    value: Any = 0
    id: str = field(default_factory=lambda: new_id("var"))
    cloud: bool = False
    visible: bool = False
    mode: str = "default"  # "default", "large" or "slider"
    x: float = 0
    y: float = 0
    slider_min: float = 0
    slider_max: float = 100
    is_discrete: bool = True


@dataclass
class ListData:
    name: str
    value: list = field(default_factory=list)
    id: str = field(default_factory=lambda: new_id("list"))
    visible: bool = False
    x: float = 0
    y: float = 0
    width: float | None = None
    height: float | None = None


@dataclass
class Costume:
    name: str
    md5: str = ""
    ext: str = "svg"
    bitmap_resolution: int = 1
    center_x: float = 0
    center_y: float = 0
    data: bytes | None = None


@dataclass
class Sound:
    name: str
    md5: str = ""
    ext: str = "wav"
    sample_count: int = 0
    rate: int = 0
    data: bytes | None = None


@dataclass
class Target:
    name: str
    variables: list[Variable] = field(default_factory=list)
    lists: list[ListData] = field(default_factory=list)
    costumes: list[Costume] = field(default_factory=list)
    sounds: list[Sound] = field(default_factory=list)
    scripts: list[Script] = field(default_factory=list)
    costume_number: int = 0
    volume: float = 100
    layer_order: int = 0

    @property
    def is_stage(self) -> bool:
        return False

    def walk(self):
        for script in self.scripts:
            yield from script.walk()

    def find_procedure(self, proccode: str) -> int | None:
        for index, script in enumerate(self.scripts):
            if script.is_procedure and script.proccode == proccode:
                return index
        return None


@dataclass
class Stage(Target):
    name: str = "Stage"

    @property
    def is_stage(self) -> bool:
        return True


@dataclass
class Sprite(Target):
    x: float = 0
    y: float = 0
    direction: float = 90
    size: float = 100
    visible: bool = True
    draggable: bool = False
    rotation_style: str = "normal"  # "normal", "leftRight" or "none"

    @property
    def is_draggable(self) -> bool:
        return self.draggable


@dataclass
class Project:
    stage: Stage = field(default_factory=Stage)
    sprites: list[Sprite] = field(default_factory=list)
    tempo: float = 60
    video_on: bool = False
    video_alpha: float = 50

    @property
    def targets(self) -> list[Target]:
        return [self.stage, *self.sprites]
