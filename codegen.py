from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Callable

from model import Block, BlockInput, DataRef, Project, Script, Target
from naming import NameAllocator, NameTable, PARAMETER_NAMESPACE_SEED, TargetNames
from opcodes import OpCode
from shapes import NUMERIC_SHAPES, Shape, coerce, paren


LOG = logging.getLogger(__name__)

MAX_SAFE_INTEGER = 2**53 - 1

_DECIMAL = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_PREFIXED = re.compile(r"^0([xX][0-9a-fA-F]+|[oO][0-7]+|[bB][01]+)$")
_HEX_COLOR = re.compile(r"^#?([0-9a-fA-F]{2})([0-9a-fA-F]{2})([0-9a-fA-F]{2})$")


def parse_number(value: Any) -> float | None:
    """Parse a literal the way JavaScript's Number() would.

    Returns None for anything that would be NaN, and for empty text.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return None if math.isnan(value) else float(value)
    text = str(value).strip()
    if not text:
        return None
    if _DECIMAL.match(text):
        return float(text)
    if _PREFIXED.match(text):
        return float(int(text, 0))
    if text in ("Infinity", "+Infinity"):
        return math.inf
    if text == "-Infinity":
        return -math.inf
    return None


def is_unsafe_integer(number: float) -> bool:
    return math.isfinite(number) and number.is_integer() and abs(number) > MAX_SAFE_INTEGER


def number_literal(number: float) -> str:
    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "Infinity" if number > 0 else "-Infinity"
    if number.is_integer():
        return str(int(number))
    return repr(number)


def string_literal(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def js_string(value: Any) -> str:
    """String() of a literal value, as Scratch would display it."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return number_literal(float(value))
    return str(value)


def js_value(value: Any) -> str:
    """Serialize initial state as the tightest JavaScript literal."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(js_value(item) for item in value) + "]"
    if isinstance(value, dict):
        return "{ " + ", ".join(f"{key}: {js_value(item)}" for key, item in value.items()) + " }"
    number = parse_number(value)
    if number is None or not math.isfinite(number) or is_unsafe_integer(number):
        return string_literal(js_string(value))
    return number_literal(number)


def scratch_to_number(value: Any) -> float:
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    number = parse_number(value)
    return 0.0 if number is None else number


def scratch_to_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return not (value == 0 or math.isnan(value))
    text = str(value)
    return text not in ("", "0") and text.lower() != "false"


def _comment_text(text: str) -> str:
    return str(text).replace("*/", "* /")


def _terminate(statement: str) -> str:
    if statement.endswith(("}", ";")):
        return statement
    return f"{statement};"


@dataclass(frozen=True)
class Fragment:
    source: str
    shape: Shape


@dataclass(frozen=True)
class CompiledMethod:
    name: str
    params: tuple[str, ...]
    body: str
    generator: bool

    def render(self) -> str:
        star = "*" if self.generator else ""
        return f"{star}{self.name}({', '.join(self.params)}) {{\n{self.body}\n}}"


_FIXED_STATEMENTS: dict[str, str] = {
    OpCode.motion_ifonedgebounce: "this.ifOnEdgeBounce()",
    OpCode.looks_nextcostume: "this.costumeNumber++",
    OpCode.looks_nextbackdrop: "this.stage.costumeNumber++",
    OpCode.looks_cleargraphiceffects: "this.effects.clear()",
    OpCode.looks_show: "this.visible = true",
    OpCode.looks_hide: "this.visible = false",
    OpCode.sound_stopallsounds: "this.stopAllSounds()",
    OpCode.sound_cleareffects: "this.audioEffects.clear()",
    OpCode.control_delete_this_clone: "this.deleteThisClone()",
    OpCode.control_incr_counter: "this.stage.__counter++",
    OpCode.control_clear_counter: "this.stage.__counter = 0",
    OpCode.sensing_resettimer: "this.restartTimer()",
    OpCode.pen_clear: "this.clearPen()",
    OpCode.pen_stamp: "this.stamp()",
    OpCode.pen_penDown: "this.penDown = true",
    OpCode.pen_penUp: "this.penDown = false",
}

_FIXED_REPORTERS: dict[str, tuple[str, Shape]] = {
    OpCode.motion_xposition: ("this.x", Shape.NUMBER_NOT_NAN),
    OpCode.motion_yposition: ("this.y", Shape.NUMBER_NOT_NAN),
    OpCode.motion_direction: ("this.direction", Shape.NUMBER_NOT_NAN),
    OpCode.looks_size: ("Math.round(this.size)", Shape.NUMBER_NOT_NAN),
    OpCode.sound_volume: ("this.audioEffects.volume", Shape.NUMBER_NOT_NAN),
    OpCode.control_get_counter: ("this.stage.__counter", Shape.NUMBER_NOT_NAN),
    OpCode.sensing_answer: ("this.answer", Shape.STRING),
    OpCode.sensing_mousedown: ("this.mouse.down", Shape.BOOLEAN),
    OpCode.sensing_mousex: ("this.mouse.x", Shape.NUMBER_NOT_NAN),
    OpCode.sensing_mousey: ("this.mouse.y", Shape.NUMBER_NOT_NAN),
    OpCode.sensing_loudness: ("this.loudness", Shape.NUMBER_NOT_NAN),
    OpCode.sensing_loud: ("this.loudness > 10", Shape.BOOLEAN),
    OpCode.sensing_timer: ("this.timer", Shape.NUMBER_NOT_NAN),
    OpCode.sensing_dayssince2000: (
        "((new Date().getTime() - new Date(2000, 0, 1)) / 1000 / 60 + new Date().getTimezoneOffset()) / 60 / 24",
        Shape.NUMBER_NOT_NAN,
    ),
    OpCode.sensing_username: ('/* no username */ ""', Shape.STRING),
}

# Menu blocks only appear when a loader left a shadow un-inlined.
_MENU_OPCODES = frozenset(
    {
        OpCode.motion_goto_menu,
        OpCode.motion_glideto_menu,
        OpCode.motion_pointtowards_menu,
        OpCode.looks_costume,
        OpCode.looks_backdrops,
        OpCode.sound_sounds_menu,
        OpCode.event_broadcast_menu,
        OpCode.event_touchingobjectmenu,
        OpCode.control_create_clone_of_menu,
        OpCode.sensing_touchingobjectmenu,
        OpCode.sensing_distancetomenu,
        OpCode.sensing_keyoptions,
        OpCode.sensing_of_object_menu,
        OpCode.pen_menu_colorParam,
        OpCode.music_menu_DRUM,
        OpCode.music_menu_INSTRUMENT,
        OpCode.videoSensing_menu_ATTRIBUTE,
        OpCode.videoSensing_menu_SUBJECT,
        OpCode.videoSensing_menu_VIDEO_STATE,
        OpCode.wedo2_menu_MOTOR_ID,
        OpCode.wedo2_menu_MOTOR_DIRECTION,
        OpCode.wedo2_menu_TILT_DIRECTION,
        OpCode.wedo2_menu_TILT_DIRECTION_ANY,
    }
)

# Hats that become entries in a target's trigger table.
TRIGGER_OPCODES = frozenset(
    {
        OpCode.event_whenflagclicked,
        OpCode.event_whenkeypressed,
        OpCode.event_whenthisspriteclicked,
        OpCode.event_whenstageclicked,
        OpCode.event_whenbackdropswitchesto,
        OpCode.event_whengreaterthan,
        OpCode.event_whenbroadcastreceived,
        OpCode.control_start_as_clone,
        OpCode.procedures_definition,
    }
)

# Compiled to a marked placeholder on purpose.
UNSUPPORTED_OPCODES = frozenset(
    {
        OpCode.motion_scroll_right,
        OpCode.motion_scroll_up,
        OpCode.motion_align_scene,
        OpCode.motion_xscroll,
        OpCode.motion_yscroll,
        OpCode.looks_switchbackdroptoandwait,
        OpCode.looks_hideallsprites,
        OpCode.looks_changestretchby,
        OpCode.looks_setstretchto,
        OpCode.event_whentouchingobject,
        OpCode.sensing_userid,
        OpCode.procedures_prototype,
        OpCode.pen_setPenShadeToNumber,
        OpCode.pen_changePenShadeBy,
        OpCode.pen_setPenHueToNumber,
        OpCode.pen_changePenHueBy,
        OpCode.music_playDrumForBeats,
        OpCode.music_restForBeats,
        OpCode.music_playNoteForBeats,
        OpCode.music_setInstrument,
        OpCode.music_setTempo,
        OpCode.music_changeTempo,
        OpCode.music_getTempo,
        OpCode.music_midiPlayDrumForBeats,
        OpCode.music_midiSetInstrument,
        OpCode.videoSensing_whenMotionGreaterThan,
        OpCode.videoSensing_videoOn,
        OpCode.videoSensing_videoToggle,
        OpCode.videoSensing_setVideoTransparency,
        OpCode.wedo2_motorOnFor,
        OpCode.wedo2_motorOn,
        OpCode.wedo2_motorOff,
        OpCode.wedo2_startMotorPower,
        OpCode.wedo2_setMotorDirection,
        OpCode.wedo2_setLightHue,
        OpCode.wedo2_playNoteFor,
        OpCode.wedo2_whenDistance,
        OpCode.wedo2_whenTilted,
        OpCode.wedo2_getDistance,
        OpCode.wedo2_isTilted,
        OpCode.wedo2_getTiltAngle,
    }
)

_KNOWN_OPCODES = frozenset(opcode.value for opcode in OpCode)

_ROTATION_STYLES = {
    "left-right": "Sprite.RotationStyle.LEFT_RIGHT",
    "don't rotate": "Sprite.RotationStyle.DONT_ROTATE",
    "all around": "Sprite.RotationStyle.ALL_AROUND",
}

_CURRENT_DATE_PARTS = {
    "YEAR": "new Date().getFullYear()",
    "MONTH": "new Date().getMonth() + 1",
    "DATE": "new Date().getDate()",
    "DAYOFWEEK": "new Date().getDay() + 1",
    "HOUR": "new Date().getHours()",
    "MINUTE": "new Date().getMinutes()",
    "SECOND": "new Date().getSeconds()",
}

# sensing_of property -> (member chain, produced shape)
_PROPERTY_OF = {
    "x position": (".x", Shape.NUMBER_NOT_NAN),
    "y position": (".y", Shape.NUMBER_NOT_NAN),
    "direction": (".direction", Shape.NUMBER_NOT_NAN),
    "costume #": (".costumeNumber", Shape.NUMBER_NOT_NAN),
    "costume name": (".costume.name", Shape.STRING),
    "size": (".size", Shape.NUMBER_NOT_NAN),
    "volume": (".audioEffects.volume", Shape.NUMBER_NOT_NAN),
    "backdrop #": (".costumeNumber", Shape.NUMBER_NOT_NAN),
    "backdrop name": (".costume.name", Shape.STRING),
}

_PEN_COLOR_PARAMS = {"color": "h", "saturation": "s", "brightness": "v"}

# mathop -> (template, never NaN for any non-NaN operand)
_MATHOPS: dict[str, tuple[str, bool]] = {
    "abs": ("Math.abs({})", True),
    "floor": ("Math.floor({})", True),
    "ceiling": ("Math.ceil({})", True),
    "sqrt": ("Math.sqrt({})", False),
    "sin": ("Math.sin(this.degToRad({}))", False),
    "cos": ("Math.cos(this.degToRad({}))", False),
    "tan": ("Math.tan(this.degToRad({}))", False),
    "asin": ("this.radToDeg(Math.asin({}))", False),
    "acos": ("this.radToDeg(Math.acos({}))", False),
    "atan": ("this.radToDeg(Math.atan({}))", True),
    "ln": ("Math.log({})", False),
    "log": ("Math.log10({})", False),
    "e ^": ("Math.E ** {}", True),
    "10 ^": ("10 ** {}", True),
}

_MATHOP_EVALUATORS: dict[str, Callable[[float], float]] = {
    "sqrt": math.sqrt,
    "sin": lambda x: math.sin(math.radians(x)),
    "cos": lambda x: math.cos(math.radians(x)),
    "tan": lambda x: math.tan(math.radians(x)),
    "asin": lambda x: math.degrees(math.asin(x)),
    "acos": lambda x: math.degrees(math.acos(x)),
    "ln": math.log,
    "log": math.log10,
}


def handled_opcodes() -> frozenset[str]:
    """Opcodes with a real translation, for the coverage check in tests."""
    methods = {opcode for opcode in OpCode if hasattr(ScriptCompiler, f"_op_{opcode.value}")}
    return frozenset(_FIXED_STATEMENTS) | frozenset(_FIXED_REPORTERS) | _MENU_OPCODES | TRIGGER_OPCODES | methods


class ScriptCompiler:
    """Compiles the blocks of one script into JavaScript for one method.

    Every handler returns a Fragment carrying the produced shape; coercion
    to the shape the consumer wants happens once, in `compile_block`.
    """

    def __init__(
        self,
        project: Project,
        names: NameTable,
        target_index: int,
        script_index: int,
        warp: bool = False,
        on_warning: Callable[[str], None] | None = None,
    ) -> None:
        self.project = project
        self.names = names
        self.target_index = target_index
        self.script_index = script_index
        self.warp = warp
        self.on_warning = on_warning
        self.targets = project.targets
        self.target: Target = self.targets[target_index]
        self.script: Script = self.target.scripts[script_index]
        self.target_names: TargetNames = names[target_index]
        self.params = self.target_names.params[script_index]
        self._locals = NameAllocator(PARAMETER_NAMESPACE_SEED | set(self.params.values()))

    # -- public surface -------------------------------------------------

    @property
    def method_name(self) -> str:
        return self.target_names.script_name(self.script_index, warp=self.warp)

    def compile_body(self) -> str:
        return self.compile_stack(self.script.body)

    def compile_method(self) -> CompiledMethod:
        return CompiledMethod(
            name=self.method_name,
            params=tuple(self.params.values()),
            body=self.compile_body(),
            generator=not self.warp,
        )

    def compile_stack(self, blocks: list[Block]) -> str:
        statements: list[str] = []
        for block in blocks:
            source = self.compile_block(block, Shape.STACK)
            if source:
                statements.append(_terminate(source))
        return "\n".join(statements)

    def compile_block(self, block: Block, desired: Shape) -> str:
        fragment = self._compile(block, desired)
        return coerce(fragment.source, fragment.shape, desired)

    def compile_input(self, block: Block, name: str, desired: Shape) -> str:
        fragment = self._input_fragment(block.inputs.get(name), desired)
        return coerce(fragment.source, fragment.shape, desired)

    def compile_trigger(self) -> str | None:
        hat = self.script.hat
        if hat is None or hat.opcode == OpCode.procedures_definition:
            return None
        method = f"this.{self.method_name}"
        opcode = hat.opcode
        if opcode == OpCode.event_whenflagclicked:
            return f"new Trigger(Trigger.GREEN_FLAG, {method})"
        if opcode == OpCode.event_whenkeypressed:
            key = self.compile_input(hat, "KEY_OPTION", Shape.STRING)
            return f"new Trigger(Trigger.KEY_PRESSED, {{ key: {key} }}, {method})"
        if opcode in (OpCode.event_whenthisspriteclicked, OpCode.event_whenstageclicked):
            return f"new Trigger(Trigger.CLICKED, {method})"
        if opcode == OpCode.event_whenbroadcastreceived:
            message = string_literal(self._menu(hat, "BROADCAST_OPTION"))
            return f"new Trigger(Trigger.BROADCAST, {{ name: {message} }}, {method})"
        if opcode == OpCode.event_whenbackdropswitchesto:
            backdrop = string_literal(self._menu(hat, "BACKDROP"))
            return f"new Trigger(Trigger.BACKDROP_CHANGED, {{ backdrop: {backdrop} }}, {method})"
        if opcode == OpCode.event_whengreaterthan:
            menu = self._menu(hat, "WHENGREATERTHANMENU").upper() or "TIMER"
            value = self.compile_input(hat, "VALUE", Shape.NUMBER)
            if hat.inputs.get("VALUE") is not None and hat.inputs["VALUE"].is_block:
                value = f"() => {value}"
            return f"new Trigger(Trigger.{menu}_GREATER_THAN, {{ VALUE: {value} }}, {method})"
        if opcode == OpCode.control_start_as_clone:
            return f"new Trigger(Trigger.CLONE_START, {method})"
        self._warn(f"{self.target.name}: hat block '{opcode}' has no trigger")
        return None

    # -- dispatch -------------------------------------------------------

    def _compile(self, block: Block, desired: Shape) -> Fragment:
        opcode = block.opcode
        if opcode in _FIXED_STATEMENTS:
            return Fragment(_FIXED_STATEMENTS[opcode], Shape.STACK)
        if opcode in _FIXED_REPORTERS:
            source, shape = _FIXED_REPORTERS[opcode]
            return Fragment(source, shape)
        if opcode in _MENU_OPCODES:
            return self._literal(self._menu_block_value(block), desired)
        if opcode in _KNOWN_OPCODES and opcode not in UNSUPPORTED_OPCODES:
            handler = getattr(self, f"_op_{opcode}", None)
            if handler is not None:
                return handler(block, desired)
        return self._placeholder(block.opcode)

    def _input_fragment(self, block_input: BlockInput | None, desired: Shape) -> Fragment:
        if block_input is None:
            return self._literal(None, desired)
        if block_input.type == "block":
            if block_input.value is None:
                return self._literal(None, desired)
            return self._compile(block_input.value, desired)
        if block_input.type == "blocks":
            return Fragment(self.compile_stack(block_input.value or []), Shape.STACK)
        if block_input.type == "color":
            return Fragment(_color_source(block_input.value), Shape.ANY)
        if isinstance(block_input.value, DataRef):
            return self._literal(block_input.value.name, desired)
        return self._literal(block_input.value, desired)

    def _literal(self, value: Any, desired: Shape) -> Fragment:
        if desired == Shape.STRING:
            return Fragment(string_literal(js_string(value)), Shape.STRING)
        if desired == Shape.BOOLEAN:
            return Fragment("true" if scratch_to_boolean(value) else "false", Shape.BOOLEAN)
        number = parse_number(value)
        if number is not None and is_unsafe_integer(number):
            return Fragment(string_literal(js_string(value)), Shape.STRING)
        if desired == Shape.INDEX:
            return Fragment(number_literal(scratch_to_number(value) - 1), Shape.INDEX)
        if desired in NUMERIC_SHAPES:
            return Fragment(number_literal(scratch_to_number(value)), Shape.NUMBER_NOT_NAN)
        if isinstance(value, bool):
            return Fragment("true" if value else "false", Shape.BOOLEAN)
        if number is not None and math.isfinite(number):
            return Fragment(number_literal(number), Shape.NUMBER_NOT_NAN)
        return Fragment(string_literal(js_string(value)), Shape.STRING)

    def _placeholder(self, label: str) -> Fragment:
        self._warn(f"{self.target.name}: no translation for '{label}'")
        return Fragment(f"/* TODO: Implement {_comment_text(label)} */ null", Shape.ANY)

    def _missing(self, kind: str, name: Any) -> Fragment:
        self._warn(f"{self.target.name}: missing {kind} '{name}'")
        return Fragment(f"/* Missing {kind} {_comment_text(string_literal(js_string(name)))} */ 0", Shape.NUMBER_NOT_NAN)

    def _warn(self, message: str) -> None:
        LOG.debug(message)
        if self.on_warning is not None:
            self.on_warning(message)

    # -- input helpers --------------------------------------------------

    def _any(self, block: Block, name: str) -> str:
        return self.compile_input(block, name, Shape.ANY)

    def _num(self, block: Block, name: str) -> str:
        return self.compile_input(block, name, Shape.NUMBER_NOT_NAN)

    def _str(self, block: Block, name: str) -> str:
        return self.compile_input(block, name, Shape.STRING)

    def _bool(self, block: Block, name: str) -> str:
        return self.compile_input(block, name, Shape.BOOLEAN)

    def _substack(self, block: Block, name: str) -> str:
        return self.compile_input(block, name, Shape.STACK)

    def _menu(self, block: Block, name: str) -> str:
        block_input = block.inputs.get(name)
        if block_input is None:
            return ""
        if block_input.type == "block" and isinstance(block_input.value, Block):
            if block_input.value.opcode in _MENU_OPCODES:
                return js_string(self._menu_block_value(block_input.value))
            return ""
        if isinstance(block_input.value, DataRef):
            return block_input.value.name
        return js_string(block_input.value)

    def _menu_is_block(self, block: Block, name: str) -> bool:
        block_input = block.inputs.get(name)
        return (
            block_input is not None
            and block_input.type == "block"
            and isinstance(block_input.value, Block)
            and block_input.value.opcode not in _MENU_OPCODES
        )

    @staticmethod
    def _menu_block_value(block: Block) -> Any:
        for block_input in block.inputs.values():
            if block_input.type not in ("block", "blocks"):
                return block_input.value
        return None

    def _literal_number(self, block: Block, name: str) -> float | None:
        block_input = block.inputs.get(name)
        if block_input is None or block_input.type in ("block", "blocks", "color"):
            return None
        number = parse_number(block_input.value)
        if number is None or is_unsafe_integer(number):
            return None
        return number

    def _is_block_input(self, block: Block, name: str) -> bool:
        block_input = block.inputs.get(name)
        return block_input is not None and block_input.type == "block" and block_input.value is not None

    def _suspend(self, method: str, *args: str) -> str:
        joined = ", ".join(args)
        if self.warp:
            return f"this.warp(this.{method})({joined})"
        return f"yield* this.{method}({joined})"

    def _loop(self, head: str, body: str) -> str:
        lines = [f"{head} {{"]
        if body:
            lines.append(body)
        if not self.warp:
            lines.append("yield;")
        lines.append("}")
        return "\n".join(lines)

    def _scoped_stack(self, block: Block, name: str) -> str:
        outer = self._locals
        self._locals = outer.clone()
        try:
            return self._substack(block, name)
        finally:
            self._locals = outer

    def _change_by(self, lhs: str, block: Block, name: str, coerce_lhs: bool) -> str:
        delta = self._literal_number(block, name)
        if delta is not None and math.isfinite(delta):
            if delta == 1:
                return f"{lhs}++"
            if delta == -1:
                return f"{lhs}--"
            if delta < 0:
                return f"{lhs} -= {number_literal(-delta)}"
            return f"{lhs} += {number_literal(delta)}"
        value = self._num(block, name)
        if coerce_lhs:
            return f"{lhs} = this.toNumber({lhs}) + {paren(value)}"
        return f"{lhs} += {value}"

    # -- targets and data -----------------------------------------------

    def _sprite(self, author_name: str) -> str | None:
        class_name = self.names.sprite_class_name(author_name)
        if class_name is None:
            return None
        return f"this.sprites[{string_literal(class_name)}]"

    def _sprite_target_index(self, author_name: str) -> int | None:
        for index, target in enumerate(self.targets):
            if index > 0 and target.name == author_name:
                return index
        return None

    def _data_ref(self, block: Block, name: str) -> DataRef | None:
        block_input = block.inputs.get(name)
        if block_input is None or block_input.value is None:
            return None
        if isinstance(block_input.value, DataRef):
            return block_input.value
        return DataRef(id=None, name=js_string(block_input.value))

    def _resolve_data(self, ref: DataRef | None, kind: str) -> tuple[int, str] | None:
        if ref is None:
            return None
        scopes = [self.target_index] if self.target_index == 0 else [self.target_index, 0]
        for by_id in (True, False):
            for index in scopes:
                target = self.targets[index]
                items = target.variables if kind == "variable" else target.lists
                for item in items:
                    matched = item.id == ref.id if by_id else item.name == ref.name
                    if matched and item.id in self.names[index].data:
                        return index, self.names[index].data[item.id]
        return None

    def _data_source(self, block: Block, name: str, kind: str, container: str = "vars") -> str | None:
        resolved = self._resolve_data(self._data_ref(block, name), kind)
        if resolved is None:
            return None
        owner, prop = resolved
        if owner == self.target_index:
            return f"this.{container}.{prop}"
        return f"this.stage.{container}.{prop}"

    def _missing_data(self, block: Block, name: str, kind: str) -> Fragment:
        ref = self._data_ref(block, name)
        return self._missing(kind, ref.name if ref is not None else "")

    # -- motion ---------------------------------------------------------

    def _op_motion_movesteps(self, block: Block, desired: Shape) -> Fragment:
        return Fragment(f"this.move({self._num(block, 'STEPS')})", Shape.STACK)

    def _op_motion_turnright(self, block: Block, desired: Shape) -> Fragment:
        return Fragment(self._change_by("this.direction", block, "DEGREES", coerce_lhs=False), Shape.STACK)

    def _op_motion_turnleft(self, block: Block, desired: Shape) -> Fragment:
        return Fragment(f"this.direction -= {self._num(block, 'DEGREES')}", Shape.STACK)

    def _position_of(self, block: Block, name: str) -> tuple[str, str] | None:
        choice = self._menu(block, name)
        if choice == "_random_":
            return "this.random(-240, 240)", "this.random(-180, 180)"
        if choice == "_mouse_":
            return "this.mouse.x", "this.mouse.y"
        sprite = self._sprite(choice)
        if sprite is None:
            return None
        return f"{sprite}.x", f"{sprite}.y"

    def _op_motion_goto(self, block: Block, desired: Shape) -> Fragment:
        if self._menu_is_block(block, "TO"):
            return self._placeholder("motion_goto with a reporter target")
        position = self._position_of(block, "TO")
        if position is None:
            return self._missing("sprite", self._menu(block, "TO"))
        return Fragment(f"this.goto({position[0]}, {position[1]})", Shape.STACK)

    def _op_motion_gotoxy(self, block: Block, desired: Shape) -> Fragment:
        return Fragment(f"this.goto({self._num(block, 'X')}, {self._num(block, 'Y')})", Shape.STACK)

    def _op_motion_glideto(self, block: Block, desired: Shape) -> Fragment:
        if self._menu_is_block(block, "TO"):
            return self._placeholder("motion_glideto with a reporter target")
        position = self._position_of(block, "TO")
        if position is None:
            return self._missing("sprite", self._menu(block, "TO"))
        secs = self.compile_input(block, "SECS", Shape.NUMBER)
        return Fragment(self._suspend("glide", secs, position[0], position[1]), Shape.STACK)

    def _op_motion_glidesecstoxy(self, block: Block, desired: Shape) -> Fragment:
        secs = self.compile_input(block, "SECS", Shape.NUMBER)
        return Fragment(self._suspend("glide", secs, self._num(block, "X"), self._num(block, "Y")), Shape.STACK)

    def _op_motion_pointindirection(self, block: Block, desired: Shape) -> Fragment:
        return Fragment(f"this.direction = {self._num(block, 'DIRECTION')}", Shape.STACK)

    def _op_motion_pointtowards(self, block: Block, desired: Shape) -> Fragment:
        if self._menu_is_block(block, "TOWARDS"):
            return self._placeholder("motion_pointtowards with a reporter target")
        choice = self._menu(block, "TOWARDS")
        if choice == "_random_":
            return Fragment("this.direction = this.random(-180, 180)", Shape.STACK)
        if choice == "_mouse_":
            x, y = "this.mouse.x", "this.mouse.y"
        else:
            sprite = self._sprite(choice)
            if sprite is None:
                return self._missing("sprite", choice)
            x, y = f"{sprite}.x", f"{sprite}.y"
        return Fragment(f"this.direction = this.radToScratch(Math.atan2({y} - this.y, {x} - this.x))", Shape.STACK)

    def _op_motion_changexby(self, block: Block, desired: Shape) -> Fragment:
        return Fragment(self._change_by("this.x", block, "DX", coerce_lhs=False), Shape.STACK)

    def _op_motion_setx(self, block: Block, desired: Shape) -> Fragment:
        return Fragment(f"this.x = {self._num(block, 'X')}", Shape.STACK)

    def _op_motion_changeyby(self, block: Block, desired: Shape) -> Fragment:
        return Fragment(self._change_by("this.y", block, "DY", coerce_lhs=False), Shape.STACK)

    def _op_motion_sety(self, block: Block, desired: Shape) -> Fragment:
        return Fragment(f"this.y = {self._num(block, 'Y')}", Shape.STACK)

    def _op_motion_setrotationstyle(self, block: Block, desired: Shape) -> Fragment:
        style = _ROTATION_STYLES.get(self._menu(block, "STYLE"))
        if style is None:
            return self._placeholder(f"rotation style {self._menu(block, 'STYLE')!r}")
        return Fragment(f"this.rotationStyle = {style}", Shape.STACK)

    # -- looks ----------------------------------------------------------

    def _op_looks_sayforsecs(self, block: Block, desired: Shape) -> Fragment:
        secs = self.compile_input(block, "SECS", Shape.NUMBER)
        return Fragment(self._suspend("sayAndWait", self._any(block, "MESSAGE"), secs), Shape.STACK)

    def _op_looks_say(self, block: Block, desired: Shape) -> Fragment:
        return Fragment(f"this.say({self._any(block, 'MESSAGE')})", Shape.STACK)

    def _op_looks_thinkforsecs(self, block: Block, desired: Shape) -> Fragment:
        secs = self.compile_input(block, "SECS", Shape.NUMBER)
        return Fragment(self._suspend("thinkAndWait", self._any(block, "MESSAGE"), secs), Shape.STACK)

    def _op_looks_think(self, block: Block, desired: Shape) -> Fragment:
        return Fragment(f"this.think({self._any(block, 'MESSAGE')})", Shape.STACK)

    def _op_looks_switchcostumeto(self, block: Block, desired: Shape) -> Fragment:
        return Fragment(f"this.costume = {self._any(block, 'COSTUME')}", Shape.STACK)

    def _op_looks_switchbackdropto(self, block: Block, desired: Shape) -> Fragment:
        return Fragment(f"this.stage.costume = {self._any(block, 'BACKDROP')}", Shape.STACK)

    def _op_looks_changesizeby(self, block: Block, desired: Shape) -> Fragment:
        return Fragment(self._change_by("this.size", block, "CHANGE", coerce_lhs=False), Shape.STACK)

    def _op_looks_setsizeto(self, block: Block, desired: Shape) -> Fragment:
        return Fragment(f"this.size = {self._num(block, 'SIZE')}", Shape.STACK)

    def _op_looks_changeeffectby(self, block: Block, desired: Shape) -> Fragment:
        effect = self._menu(block, "EFFECT").lower()
        if not effect:
            return self._placeholder("looks_changeeffectby without an effect")
        return Fragment(self._change_by(f"this.effects.{effect}", block, "CHANGE", coerce_lhs=False), Shape.STACK)

    def _op_looks_seteffectto(self, block: Block, desired: Shape) -> Fragment:
        effect = self._menu(block, "EFFECT").lower()
        if not effect:
            return self._placeholder("looks_seteffectto without an effect")
        return Fragment(f"this.effects.{effect} = {self._num(block, 'VALUE')}", Shape.STACK)

    def _op_looks_gotofrontback(self, block: Block, desired: Shape) -> Fragment:
        if self._menu(block, "FRONT_BACK") == "back":
            return Fragment("this.moveBehind()", Shape.STACK)
        return Fragment("this.moveAhead()", Shape.STACK)

    def _op_looks_goforwardbackwardlayers(self, block: Block, desired: Shape) -> Fragment:
        layers = self._num(block, "NUM")
        if self._menu(block, "FORWARD_BACKWARD") == "backward":
            return Fragment(f"this.moveBehind({layers})", Shape.STACK)
        return Fragment(f"this.moveAhead({layers})", Shape.STACK)

    def _op_looks_costumenumbername(self, block: Block, desired: Shape) -> Fragment:
        if self._menu(block, "NUMBER_NAME") == "name":
            return Fragment("this.costume.name", Shape.STRING)
        return Fragment("this.costumeNumber", Shape.NUMBER_NOT_NAN)

    def _op_looks_backdropnumbername(self, block: Block, desired: Shape) -> Fragment:
        if self._menu(block, "NUMBER_NAME") == "name":
            return Fragment("this.stage.costume.name", Shape.STRING)
        return Fragment("this.stage.costumeNumber", Shape.NUMBER_NOT_NAN)

    # -- sound ----------------------------------------------------------

    def _op_sound_playuntildone(self, block: Block, desired: Shape) -> Fragment:
        return Fragment(self._suspend("playSoundUntilDone", self._any(block, "SOUND_MENU")), Shape.STACK)

    def _op_sound_play(self, block: Block, desired: Shape) -> Fragment:
        return Fragment(self._suspend("startSound", self._any(block, "SOUND_MENU")), Shape.STACK)

    def _op_sound_changeeffectby(self, block: Block, desired: Shape) -> Fragment:
        effect = self._menu(block, "EFFECT").lower()
        if not effect:
            return self._placeholder("sound_changeeffectby without an effect")
        return Fragment(self._change_by(f"this.audioEffects.{effect}", block, "VALUE", coerce_lhs=False), Shape.STACK)

    def _op_sound_seteffectto(self, block: Block, desired: Shape) -> Fragment:
        effect = self._menu(block, "EFFECT").lower()
        if not effect:
            return self._placeholder("sound_seteffectto without an effect")
        return Fragment(f"this.audioEffects.{effect} = {self._num(block, 'VALUE')}", Shape.STACK)

    def _op_sound_changevolumeby(self, block: Block, desired: Shape) -> Fragment:
        return Fragment(self._change_by("this.audioEffects.volume", block, "VOLUME", coerce_lhs=False), Shape.STACK)

    def _op_sound_setvolumeto(self, block: Block, desired: Shape) -> Fragment:
        return Fragment(f"this.audioEffects.volume = {self._num(block, 'VOLUME')}", Shape.STACK)

    # -- events ---------------------------------------------------------

    def _op_event_broadcast(self, block: Block, desired: Shape) -> Fragment:
        return Fragment(f"this.broadcast({self._str(block, 'BROADCAST_INPUT')})", Shape.STACK)

    def _op_event_broadcastandwait(self, block: Block, desired: Shape) -> Fragment:
        return Fragment(self._suspend("broadcastAndWait", self._str(block, "BROADCAST_INPUT")), Shape.STACK)

    # -- control --------------------------------------------------------

    def _op_control_wait(self, block: Block, desired: Shape) -> Fragment:
        duration = self.compile_input(block, "DURATION", Shape.NUMBER)
        return Fragment(self._suspend("wait", duration), Shape.STACK)

    def _op_control_repeat(self, block: Block, desired: Shape) -> Fragment:
        times = self.compile_input(block, "TIMES", Shape.NUMBER)
        count = self._literal_number(block, "TIMES")
        if count is not None and math.isfinite(count):
            times = number_literal(float(math.floor(count + 0.5)))
        outer = self._locals
        self._locals = outer.clone()
        try:
            counter = self._locals.allocate("i")
            start, limit = "0", times
            # Scratch reads the count once, rounded.
            if self._is_block_input(block, "TIMES"):
                limit = self._locals.allocate("times")
                start = f"0, {limit} = Math.round({times})"
            body = self._substack(block, "SUBSTACK")
        finally:
            self._locals = outer
        head = f"for (let {counter} = {start}; {counter} < {limit}; {counter}++)"
        return Fragment(self._loop(head, body), Shape.STACK)

    def _op_control_forever(self, block: Block, desired: Shape) -> Fragment:
        return Fragment(self._loop("while (true)", self._scoped_stack(block, "SUBSTACK")), Shape.STACK)

    def _op_control_if(self, block: Block, desired: Shape) -> Fragment:
        condition = self._bool(block, "CONDITION")
        body = self._scoped_stack(block, "SUBSTACK")
        lines = [f"if ({condition}) {{", body, "}"]
        return Fragment("\n".join(line for line in lines if line), Shape.STACK)

    def _op_control_if_else(self, block: Block, desired: Shape) -> Fragment:
        condition = self._bool(block, "CONDITION")
        body = self._scoped_stack(block, "SUBSTACK")
        otherwise = self._scoped_stack(block, "SUBSTACK2")
        lines = [f"if ({condition}) {{", body, "} else {", otherwise, "}"]
        return Fragment("\n".join(line for line in lines if line), Shape.STACK)

    def _op_control_wait_until(self, block: Block, desired: Shape) -> Fragment:
        condition = paren(self._bool(block, "CONDITION"))
        return Fragment(self._loop(f"while (!{condition})", ""), Shape.STACK)

    def _op_control_repeat_until(self, block: Block, desired: Shape) -> Fragment:
        condition = paren(self._bool(block, "CONDITION"))
        return Fragment(self._loop(f"while (!{condition})", self._scoped_stack(block, "SUBSTACK")), Shape.STACK)

    def _op_control_while(self, block: Block, desired: Shape) -> Fragment:
        condition = self._bool(block, "CONDITION")
        return Fragment(self._loop(f"while ({condition})", self._scoped_stack(block, "SUBSTACK")), Shape.STACK)

    def _op_control_for_each(self, block: Block, desired: Shape) -> Fragment:
        variable = self._data_source(block, "VARIABLE", "variable")
        if variable is None:
            return self._missing_data(block, "VARIABLE", "variable")
        limit = self._num(block, "VALUE")
        outer = self._locals
        self._locals = outer.clone()
        try:
            counter = self._locals.allocate("i")
            body = self._substack(block, "SUBSTACK")
        finally:
            self._locals = outer
        head = f"for (let {counter} = 1; {counter} <= {limit}; {counter}++)"
        assign = f"{variable} = {counter};"
        return Fragment(self._loop(head, f"{assign}\n{body}" if body else assign), Shape.STACK)

    def _op_control_stop(self, block: Block, desired: Shape) -> Fragment:
        option = self._menu(block, "STOP_OPTION")
        if option == "this script":
            return Fragment("return;", Shape.STACK)
        return self._placeholder(f"stop {option}")

    def _op_control_create_clone_of(self, block: Block, desired: Shape) -> Fragment:
        if self._menu_is_block(block, "CLONE_OPTION"):
            return self._placeholder("control_create_clone_of with a reporter target")
        choice = self._menu(block, "CLONE_OPTION")
        if choice == "_myself_":
            return Fragment("this.createClone()", Shape.STACK)
        sprite = self._sprite(choice)
        if sprite is None:
            return self._missing("sprite", choice)
        return Fragment(f"{sprite}.createClone()", Shape.STACK)

    def _op_control_all_at_once(self, block: Block, desired: Shape) -> Fragment:
        return Fragment(self._substack(block, "SUBSTACK"), Shape.STACK)

    # -- sensing --------------------------------------------------------

    def _op_sensing_touchingobject(self, block: Block, desired: Shape) -> Fragment:
        if self._menu_is_block(block, "TOUCHINGOBJECTMENU"):
            return self._placeholder("sensing_touchingobject with a reporter target")
        choice = self._menu(block, "TOUCHINGOBJECTMENU")
        if choice == "_mouse_":
            return Fragment('this.touching("mouse")', Shape.BOOLEAN)
        if choice == "_edge_":
            return Fragment('this.touching("edge")', Shape.BOOLEAN)
        sprite = self._sprite(choice)
        if sprite is None:
            return self._missing("sprite", choice)
        return Fragment(f"this.touching({sprite}.andClones())", Shape.BOOLEAN)

    def _color(self, block: Block, name: str) -> str:
        block_input = block.inputs.get(name)
        if block_input is not None and block_input.type == "color":
            return _color_source(block_input.value)
        return f"Color.num({self._any(block, name)})"

    def _op_sensing_touchingcolor(self, block: Block, desired: Shape) -> Fragment:
        return Fragment(f"this.touching({self._color(block, 'COLOR')})", Shape.BOOLEAN)

    def _op_sensing_coloristouchingcolor(self, block: Block, desired: Shape) -> Fragment:
        colors = f"{self._color(block, 'COLOR')}, {self._color(block, 'COLOR2')}"
        return Fragment(f"this.colorTouching({colors})", Shape.BOOLEAN)

    def _op_sensing_distanceto(self, block: Block, desired: Shape) -> Fragment:
        if self._menu_is_block(block, "DISTANCETOMENU"):
            return self._placeholder("sensing_distanceto with a reporter target")
        choice = self._menu(block, "DISTANCETOMENU")
        if choice == "_mouse_":
            x, y = "this.mouse.x", "this.mouse.y"
        else:
            sprite = self._sprite(choice)
            if sprite is None:
                return self._missing("sprite", choice)
            x, y = f"{sprite}.x", f"{sprite}.y"
        return Fragment(f"Math.hypot({x} - this.x, {y} - this.y)", Shape.NUMBER_NOT_NAN)

    def _op_sensing_askandwait(self, block: Block, desired: Shape) -> Fragment:
        return Fragment(self._suspend("askAndWait", self._any(block, "QUESTION")), Shape.STACK)

    def _op_sensing_keypressed(self, block: Block, desired: Shape) -> Fragment:
        return Fragment(f"this.keyPressed({self._str(block, 'KEY_OPTION')})", Shape.BOOLEAN)

    def _op_sensing_setdragmode(self, block: Block, desired: Shape) -> Fragment:
        draggable = "true" if self._menu(block, "DRAG_MODE") == "draggable" else "false"
        return Fragment(f"this.draggable = {draggable}", Shape.STACK)

    def _op_sensing_of(self, block: Block, desired: Shape) -> Fragment:
        if self._menu_is_block(block, "OBJECT"):
            return self._placeholder("sensing_of with a reporter target")
        choice = self._menu(block, "OBJECT")
        prop = self._menu(block, "PROPERTY")
        if choice == "_stage_":
            owner_index, owner = 0, "this.stage"
        else:
            owner_index = self._sprite_target_index(choice)
            if owner_index is None:
                return self._missing("sprite", choice)
            owner = f"this.sprites[{string_literal(self.names[owner_index].class_name)}]"
        if prop in _PROPERTY_OF:
            member, shape = _PROPERTY_OF[prop]
            return Fragment(f"{owner}{member}", shape)
        for variable in self.targets[owner_index].variables:
            if variable.name == prop:
                return Fragment(f"{owner}.vars.{self.names[owner_index].data[variable.id]}", Shape.ANY)
        return self._missing("variable", prop)

    def _op_sensing_current(self, block: Block, desired: Shape) -> Fragment:
        part = _CURRENT_DATE_PARTS.get(self._menu(block, "CURRENTMENU"), "new Date().getTime()")
        return Fragment(part, Shape.NUMBER_NOT_NAN)

    # -- operators ------------------------------------------------------

    def _index_absorbed(self, block: Block, desired: Shape, subtract: bool) -> Fragment | None:
        """Fold the `- 1` of an Index consumer into a literal operand."""
        if desired != Shape.INDEX:
            return None
        left = self._literal_number(block, "NUM1")
        right = self._literal_number(block, "NUM2")
        if left is not None and right is not None:
            value = left - right if subtract else left + right
            if math.isfinite(value):
                return Fragment(number_literal(value - 1), Shape.INDEX)
            return None
        sides = [("NUM1", right)] if subtract else [("NUM1", right), ("NUM2", left)]
        for block_side, literal in sides:
            if literal is None or not literal.is_integer() or not self._is_block_input(block, block_side):
                continue
            offset = (-literal if subtract else literal) - 1
            source = paren(self._num(block, block_side))
            if offset > 0:
                return Fragment(f"{source} + {number_literal(offset)}", Shape.INDEX)
            if offset < 0:
                return Fragment(f"{source} - {number_literal(-offset)}", Shape.INDEX)
            return Fragment(source, Shape.INDEX)
        return None

    def _binary(self, block: Block, operator: str, shape: Shape) -> Fragment:
        left = paren(self._num(block, "NUM1"))
        right = paren(self._num(block, "NUM2"))
        return Fragment(f"{left} {operator} {right}", shape)

    def _op_operator_add(self, block: Block, desired: Shape) -> Fragment:
        return self._index_absorbed(block, desired, subtract=False) or self._binary(block, "+", Shape.NUMBER_NOT_NAN)

    def _op_operator_subtract(self, block: Block, desired: Shape) -> Fragment:
        return self._index_absorbed(block, desired, subtract=True) or self._binary(block, "-", Shape.NUMBER_NOT_NAN)

    def _op_operator_multiply(self, block: Block, desired: Shape) -> Fragment:
        return self._binary(block, "*", Shape.NUMBER_NOT_NAN)

    def _op_operator_divide(self, block: Block, desired: Shape) -> Fragment:
        dividend = self._literal_number(block, "NUM1")
        divisor = self._literal_number(block, "NUM2")
        never_nan = _nonzero_finite(divisor) or _nonzero_finite(dividend)
        return self._binary(block, "/", Shape.NUMBER_NOT_NAN if never_nan else Shape.NUMBER)

    def _op_operator_mod(self, block: Block, desired: Shape) -> Fragment:
        dividend = self._literal_number(block, "NUM1")
        divisor = self._literal_number(block, "NUM2")
        never_nan = _nonzero_finite(divisor) and dividend is not None and math.isfinite(dividend)
        return self._binary(block, "%", Shape.NUMBER_NOT_NAN if never_nan else Shape.NUMBER)

    def _op_operator_random(self, block: Block, desired: Shape) -> Fragment:
        return Fragment(f"this.random({self._num(block, 'FROM')}, {self._num(block, 'TO')})", Shape.NUMBER_NOT_NAN)

    def _op_operator_gt(self, block: Block, desired: Shape) -> Fragment:
        operands = f"{self._any(block, 'OPERAND1')}, {self._any(block, 'OPERAND2')}"
        return Fragment(f"this.compare({operands}) > 0", Shape.BOOLEAN)

    def _op_operator_lt(self, block: Block, desired: Shape) -> Fragment:
        operands = f"{self._any(block, 'OPERAND1')}, {self._any(block, 'OPERAND2')}"
        return Fragment(f"this.compare({operands}) < 0", Shape.BOOLEAN)

    def _op_operator_equals(self, block: Block, desired: Shape) -> Fragment:
        first_is_block = self._is_block_input(block, "OPERAND1")
        second_is_block = self._is_block_input(block, "OPERAND2")
        if first_is_block and second_is_block:
            operands = f"{self._any(block, 'OPERAND1')}, {self._any(block, 'OPERAND2')}"
            return Fragment(f"this.compare({operands}) === 0", Shape.BOOLEAN)
        first = self._literal_number(block, "OPERAND1")
        second = self._literal_number(block, "OPERAND2")
        if first is not None:
            other = paren(self.compile_input(block, "OPERAND2", Shape.NUMBER))
            return Fragment(f"{number_literal(first)} === {other}", Shape.BOOLEAN)
        if second is not None:
            other = paren(self.compile_input(block, "OPERAND1", Shape.NUMBER))
            return Fragment(f"{other} === {number_literal(second)}", Shape.BOOLEAN)
        left = paren(self._str(block, "OPERAND1"))
        right = paren(self._str(block, "OPERAND2"))
        return Fragment(f"{left} === {right}", Shape.BOOLEAN)

    def _op_operator_and(self, block: Block, desired: Shape) -> Fragment:
        left = paren(self._bool(block, "OPERAND1"))
        right = paren(self._bool(block, "OPERAND2"))
        return Fragment(f"{left} && {right}", Shape.BOOLEAN)

    def _op_operator_or(self, block: Block, desired: Shape) -> Fragment:
        left = paren(self._bool(block, "OPERAND1"))
        right = paren(self._bool(block, "OPERAND2"))
        return Fragment(f"{left} || {right}", Shape.BOOLEAN)

    def _op_operator_not(self, block: Block, desired: Shape) -> Fragment:
        return Fragment(f"!{paren(self._bool(block, 'OPERAND'))}", Shape.BOOLEAN)

    def _op_operator_join(self, block: Block, desired: Shape) -> Fragment:
        left = paren(self._str(block, "STRING1"))
        right = paren(self._str(block, "STRING2"))
        return Fragment(f"{left} + {right}", Shape.STRING)

    def _op_operator_letter_of(self, block: Block, desired: Shape) -> Fragment:
        index = self.compile_input(block, "LETTER", Shape.INDEX)
        return Fragment(f"this.letterOf({self._any(block, 'STRING')}, {index})", Shape.STRING)

    def _op_operator_length(self, block: Block, desired: Shape) -> Fragment:
        return Fragment(f"{paren(self._str(block, 'STRING'))}.length", Shape.NUMBER_NOT_NAN)

    def _op_operator_contains(self, block: Block, desired: Shape) -> Fragment:
        haystack = self._str(block, "STRING1")
        needle = self._str(block, "STRING2")
        return Fragment(f"this.stringIncludes({haystack}, {needle})", Shape.BOOLEAN)

    def _op_operator_round(self, block: Block, desired: Shape) -> Fragment:
        return Fragment(f"Math.round({self._num(block, 'NUM')})", Shape.NUMBER_NOT_NAN)

    def _op_operator_mathop(self, block: Block, desired: Shape) -> Fragment:
        operator = self._menu(block, "OPERATOR")
        if operator not in _MATHOPS:
            return self._placeholder(f"mathop {operator}")
        template, never_nan = _MATHOPS[operator]
        operand = self._num(block, "NUM")
        if "**" in template:
            operand = paren(operand)
        if not never_nan:
            literal = self._literal_number(block, "NUM")
            never_nan = literal is not None and _evaluates_finite(operator, literal)
        return Fragment(template.format(operand), Shape.NUMBER_NOT_NAN if never_nan else Shape.NUMBER)

    # -- data -----------------------------------------------------------

    def _op_data_variable(self, block: Block, desired: Shape) -> Fragment:
        variable = self._data_source(block, "VARIABLE", "variable")
        if variable is None:
            return self._missing_data(block, "VARIABLE", "variable")
        return Fragment(variable, Shape.ANY)

    def _op_data_setvariableto(self, block: Block, desired: Shape) -> Fragment:
        variable = self._data_source(block, "VARIABLE", "variable")
        if variable is None:
            return self._missing_data(block, "VARIABLE", "variable")
        return Fragment(f"{variable} = {self._any(block, 'VALUE')}", Shape.STACK)

    def _op_data_changevariableby(self, block: Block, desired: Shape) -> Fragment:
        variable = self._data_source(block, "VARIABLE", "variable")
        if variable is None:
            return self._missing_data(block, "VARIABLE", "variable")
        return Fragment(self._change_by(variable, block, "VALUE", coerce_lhs=True), Shape.STACK)

    def _set_watcher_visible(self, block: Block, name: str, kind: str, visible: bool) -> Fragment:
        watcher = self._data_source(block, name, kind, container="watchers")
        if watcher is None:
            return self._missing_data(block, name, kind)
        return Fragment(f"{watcher}.visible = {'true' if visible else 'false'}", Shape.STACK)

    def _op_data_showvariable(self, block: Block, desired: Shape) -> Fragment:
        return self._set_watcher_visible(block, "VARIABLE", "variable", True)

    def _op_data_hidevariable(self, block: Block, desired: Shape) -> Fragment:
        return self._set_watcher_visible(block, "VARIABLE", "variable", False)

    def _op_data_showlist(self, block: Block, desired: Shape) -> Fragment:
        return self._set_watcher_visible(block, "LIST", "list", True)

    def _op_data_hidelist(self, block: Block, desired: Shape) -> Fragment:
        return self._set_watcher_visible(block, "LIST", "list", False)

    def _list(self, block: Block) -> str | None:
        return self._data_source(block, "LIST", "list")

    @staticmethod
    def _random_index(items: str) -> str:
        return f"this.random(0, {items}.length - 1)"

    def _op_data_listcontents(self, block: Block, desired: Shape) -> Fragment:
        items = self._list(block)
        if items is None:
            return self._missing_data(block, "LIST", "list")
        return Fragment(f'{items}.join(" ")', Shape.STRING)

    def _op_data_addtolist(self, block: Block, desired: Shape) -> Fragment:
        items = self._list(block)
        if items is None:
            return self._missing_data(block, "LIST", "list")
        return Fragment(f"{items}.push({self._any(block, 'ITEM')})", Shape.STACK)

    def _op_data_deleteoflist(self, block: Block, desired: Shape) -> Fragment:
        items = self._list(block)
        if items is None:
            return self._missing_data(block, "LIST", "list")
        position = None if self._is_block_input(block, "INDEX") else self._menu(block, "INDEX")
        if position == "all":
            return Fragment(f"{items} = []", Shape.STACK)
        if position == "last":
            return Fragment(f"{items}.splice({items}.length - 1, 1)", Shape.STACK)
        if position in ("random", "any"):
            return Fragment(f"{items}.splice({self._random_index(items)}, 1)", Shape.STACK)
        index = self.compile_input(block, "INDEX", Shape.INDEX)
        return Fragment(f"{items}.splice({index}, 1)", Shape.STACK)

    def _op_data_deletealloflist(self, block: Block, desired: Shape) -> Fragment:
        items = self._list(block)
        if items is None:
            return self._missing_data(block, "LIST", "list")
        return Fragment(f"{items} = []", Shape.STACK)

    def _op_data_insertatlist(self, block: Block, desired: Shape) -> Fragment:
        items = self._list(block)
        if items is None:
            return self._missing_data(block, "LIST", "list")
        item = self._any(block, "ITEM")
        position = None if self._is_block_input(block, "INDEX") else self._menu(block, "INDEX")
        if position == "last":
            return Fragment(f"{items}.push({item})", Shape.STACK)
        if position in ("random", "any"):
            return Fragment(f"{items}.splice(this.random(0, {items}.length), 0, {item})", Shape.STACK)
        index = self.compile_input(block, "INDEX", Shape.INDEX)
        return Fragment(f"{items}.splice({index}, 0, {item})", Shape.STACK)

    def _op_data_replaceitemoflist(self, block: Block, desired: Shape) -> Fragment:
        items = self._list(block)
        if items is None:
            return self._missing_data(block, "LIST", "list")
        item = self._any(block, "ITEM")
        position = None if self._is_block_input(block, "INDEX") else self._menu(block, "INDEX")
        if position == "last":
            return Fragment(f"{items}.splice({items}.length - 1, 1, {item})", Shape.STACK)
        if position in ("random", "any"):
            return Fragment(f"{items}.splice({self._random_index(items)}, 1, {item})", Shape.STACK)
        index = self.compile_input(block, "INDEX", Shape.INDEX)
        return Fragment(f"{items}.splice({index}, 1, {item})", Shape.STACK)

    def _op_data_itemoflist(self, block: Block, desired: Shape) -> Fragment:
        items = self._list(block)
        if items is None:
            return self._missing_data(block, "LIST", "list")
        position = None if self._is_block_input(block, "INDEX") else self._menu(block, "INDEX")
        if position == "last":
            return Fragment(f"this.itemOf({items}, {items}.length - 1)", Shape.ANY)
        if position in ("random", "any"):
            return Fragment(f"this.itemOf({items}, {self._random_index(items)})", Shape.ANY)
        index = self.compile_input(block, "INDEX", Shape.INDEX)
        return Fragment(f"this.itemOf({items}, {index})", Shape.ANY)

    def _op_data_itemnumoflist(self, block: Block, desired: Shape) -> Fragment:
        items = self._list(block)
        if items is None:
            return self._missing_data(block, "LIST", "list")
        lookup = f"this.indexInArray({items}, {self._any(block, 'ITEM')})"
        if desired == Shape.INDEX:
            return Fragment(lookup, Shape.INDEX)
        return Fragment(f"{lookup} + 1", Shape.NUMBER_NOT_NAN)

    def _op_data_lengthoflist(self, block: Block, desired: Shape) -> Fragment:
        items = self._list(block)
        if items is None:
            return self._missing_data(block, "LIST", "list")
        return Fragment(f"{items}.length", Shape.NUMBER_NOT_NAN)

    def _op_data_listcontainsitem(self, block: Block, desired: Shape) -> Fragment:
        items = self._list(block)
        if items is None:
            return self._missing_data(block, "LIST", "list")
        return Fragment(f"this.arrayIncludes({items}, {self._any(block, 'ITEM')})", Shape.BOOLEAN)

    # -- procedures -----------------------------------------------------

    def _op_procedures_call(self, block: Block, desired: Shape) -> Fragment:
        proccode = block.literal("PROCCODE")
        callee = self.target.find_procedure(proccode) if proccode is not None else None
        if callee is None:
            return self._missing("procedure", proccode or "")
        callee_script = self.target.scripts[callee]
        values = list(block.literal("INPUTS", []) or [])
        args: list[str] = []
        seen: set[str] = set()
        slots = [argument for argument in callee_script.arguments if argument.type != "label"]
        for position, argument in enumerate(slots):
            if argument.name in seen:
                continue
            seen.add(argument.name)
            value = values[position] if position < len(values) else None
            fragment = self._input_fragment(value, Shape.ANY)
            args.append(fragment.source)
        joined = ", ".join(args)
        if callee_script.is_warp:
            return Fragment(f"this.{self.target_names.script_name(callee)}({joined})", Shape.STACK)
        if self.warp:
            if callee in self.target_names.warp_variants:
                return Fragment(f"this.{self.target_names.warp_variants[callee]}({joined})", Shape.STACK)
            return Fragment(f"this.warp(this.{self.target_names.script_name(callee)})({joined})", Shape.STACK)
        return Fragment(f"yield* this.{self.target_names.script_name(callee)}({joined})", Shape.STACK)

    def _argument(self, block: Block, fallback: str, fallback_shape: Shape) -> Fragment:
        name = block.literal("VALUE")
        if name in self.params:
            return Fragment(self.params[name], Shape.ANY)
        self._warn(f"{self.target.name}: argument '{name}' used outside its procedure")
        return Fragment(fallback, fallback_shape)

    def _op_argument_reporter_string_number(self, block: Block, desired: Shape) -> Fragment:
        return self._argument(block, "0", Shape.NUMBER_NOT_NAN)

    def _op_argument_reporter_boolean(self, block: Block, desired: Shape) -> Fragment:
        return self._argument(block, "false", Shape.BOOLEAN)

    # -- pen ------------------------------------------------------------

    def _op_pen_setPenColorToColor(self, block: Block, desired: Shape) -> Fragment:
        return Fragment(f"this.penColor = {self._color(block, 'COLOR')}", Shape.STACK)

    def _op_pen_changePenColorParamBy(self, block: Block, desired: Shape) -> Fragment:
        param = self._menu(block, "colorParam")
        if param == "transparency":
            return Fragment(f"this.penColor.a -= {paren(self._num(block, 'VALUE'))} / 100", Shape.STACK)
        if param not in _PEN_COLOR_PARAMS:
            return self._placeholder(f"pen color param {param}")
        channel = f"this.penColor.{_PEN_COLOR_PARAMS[param]}"
        return Fragment(self._change_by(channel, block, "VALUE", coerce_lhs=False), Shape.STACK)

    def _op_pen_setPenColorParamTo(self, block: Block, desired: Shape) -> Fragment:
        param = self._menu(block, "colorParam")
        if param == "transparency":
            return Fragment(f"this.penColor.a = 1 - {paren(self._num(block, 'VALUE'))} / 100", Shape.STACK)
        if param not in _PEN_COLOR_PARAMS:
            return self._placeholder(f"pen color param {param}")
        return Fragment(f"this.penColor.{_PEN_COLOR_PARAMS[param]} = {self._num(block, 'VALUE')}", Shape.STACK)

    def _op_pen_changePenSizeBy(self, block: Block, desired: Shape) -> Fragment:
        return Fragment(self._change_by("this.penSize", block, "SIZE", coerce_lhs=False), Shape.STACK)

    def _op_pen_setPenSizeTo(self, block: Block, desired: Shape) -> Fragment:
        return Fragment(f"this.penSize = {self._num(block, 'SIZE')}", Shape.STACK)


def _nonzero_finite(number: float | None) -> bool:
    return number is not None and number != 0 and math.isfinite(number)


def _evaluates_finite(operator: str, operand: float) -> bool:
    evaluate = _MATHOP_EVALUATORS.get(operator)
    if evaluate is None:
        return False
    try:
        return math.isfinite(evaluate(operand))
    except (ValueError, OverflowError):
        return False


def _color_source(value: Any) -> str:
    rgb = _rgb(value)
    if rgb is None:
        return f"Color.num({js_value(value)})"
    return f"Color.rgb({rgb[0]}, {rgb[1]}, {rgb[2]})"


def _rgb(value: Any) -> tuple[int, int, int] | None:
    if isinstance(value, dict) and {"r", "g", "b"} <= set(value):
        return int(value["r"]), int(value["g"]), int(value["b"])
    if isinstance(value, (list, tuple)) and len(value) == 3:
        return int(value[0]), int(value[1]), int(value[2])
    if isinstance(value, str):
        match = _HEX_COLOR.match(value.strip())
        if match is not None:
            red, green, blue = (int(part, 16) for part in match.groups())
            return red, green, blue
    return None


def compile_target_scripts(
    project: Project,
    names: NameTable,
    target_index: int,
    on_warning: Callable[[str], None] | None = None,
) -> tuple[list[CompiledMethod], list[str]]:
    """Compile every script of one target into methods plus trigger sources."""
    target = project.targets[target_index]
    target_names = names[target_index]
    methods: list[CompiledMethod] = []
    triggers: list[str] = []
    for script_index, script in enumerate(target.scripts):
        compiler = ScriptCompiler(project, names, target_index, script_index, warp=script.is_warp, on_warning=on_warning)
        methods.append(compiler.compile_method())
        trigger = compiler.compile_trigger()
        if trigger is not None:
            triggers.append(trigger)
        if script_index in target_names.warp_variants:
            variant = ScriptCompiler(project, names, target_index, script_index, warp=True, on_warning=on_warning)
            methods.append(variant.compile_method())
    LOG.debug("compiled %d methods for target %s", len(methods), target.name)
    return methods, triggers
