from __future__ import annotations

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Mapping

from model import Project, Script, Target
from opcodes import OpCode


JS_RESERVED_WORDS = frozenset(
    {
        "await",
        "break",
        "case",
        "catch",
        "class",
        "const",
        "continue",
        "debugger",
        "default",
        "delete",
        "do",
        "else",
        "enum",
        "export",
        "extends",
        "false",
        "finally",
        "for",
        "function",
        "if",
        "implements",
        "import",
        "in",
        "instanceof",
        "interface",
        "let",
        "new",
        "null",
        "package",
        "private",
        "protected",
        "public",
        "return",
        "static",
        "super",
        "switch",
        "this",
        "throw",
        "true",
        "try",
        "typeof",
        "var",
        "void",
        "while",
        "with",
        "yield",
    }
)

# Bare identifiers the generated code relies on besides reserved words.
JS_SPECIAL_GLOBALS = frozenset({"arguments", "eval", "undefined", "NaN", "Infinity"})

# Class names visible in target and entry modules.
CLASS_NAMESPACE_SEED = (
    JS_RESERVED_WORDS
    | JS_SPECIAL_GLOBALS
    | frozenset(
        {
            "Project",
            "Sprite",
            "StageBase",
            "Trigger",
            "Watcher",
            "Costume",
            "Color",
            "Sound",
            "Array",
            "Boolean",
            "Date",
            "Error",
            "Function",
            "JSON",
            "Map",
            "Math",
            "Number",
            "Object",
            "Promise",
            "RegExp",
            "Set",
            "String",
            "Symbol",
            "console",
            "document",
            "globalThis",
            "window",
            "stage",
            "sprites",
            "project",
        }
    )
)

# Own properties of `this.vars` must not shadow Object.prototype.
VARIABLE_NAMESPACE_SEED = frozenset(
    {
        "__proto__",
        "__defineGetter__",
        "__defineSetter__",
        "__lookupGetter__",
        "__lookupSetter__",
        "constructor",
        "hasOwnProperty",
        "isPrototypeOf",
        "propertyIsEnumerable",
        "toLocaleString",
        "toString",
        "valueOf",
    }
)

_COMMON_MEMBERS = frozenset(
    {
        "constructor",
        "stage",
        "sprites",
        "vars",
        "watchers",
        "costumes",
        "sounds",
        "triggers",
        "costume",
        "costumeNumber",
        "effects",
        "audioEffects",
        "mouse",
        "timer",
        "answer",
        "askAndWait",
        "keyPressed",
        "loudness",
        "wait",
        "warp",
        "broadcast",
        "broadcastAndWait",
        "random",
        "restartTimer",
        "clearPen",
        "getSound",
        "startSound",
        "playSoundUntilDone",
        "stopAllSounds",
        "stopAllOfMySounds",
        "toNumber",
        "toBoolean",
        "toString",
        "compare",
        "letterOf",
        "stringIncludes",
        "arrayIncludes",
        "indexInArray",
        "itemOf",
        "radToDeg",
        "degToRad",
        "radToScratch",
        "scratchToRad",
        "scratchToDeg",
        "degToScratch",
        "normalizeDeg",
        "fireBackdropChanged",
    }
)

STAGE_MEMBERS = _COMMON_MEMBERS | frozenset({"width", "height", "fence", "__counter"})

SPRITE_MEMBERS = _COMMON_MEMBERS | frozenset(
    {
        "x",
        "y",
        "direction",
        "size",
        "visible",
        "draggable",
        "rotationStyle",
        "penDown",
        "penColor",
        "penSize",
        "parent",
        "clones",
        "andClones",
        "createClone",
        "deleteThisClone",
        "move",
        "goto",
        "glide",
        "say",
        "sayAndWait",
        "think",
        "thinkAndWait",
        "moveAhead",
        "moveBehind",
        "touching",
        "colorTouching",
        "ifOnEdgeBounce",
        "stamp",
        "nearestEdge",
        "bounds",
    }
)

PARAMETER_NAMESPACE_SEED = JS_RESERVED_WORDS | JS_SPECIAL_GLOBALS

_TRAILING_DIGITS = re.compile(r"^(.*?)(\d+)$")
_WORD_SEPARATOR = re.compile(r"[^a-zA-Z0-9]+")


class NameAllocator:
    """A namespace of taken identifiers.

    `allocate` hands out the first free variant of a candidate and reserves
    it. Variants are derived by incrementing a trailing number, or by
    appending "2" when there is none.
    """

    def __init__(self, reserved: Iterable[str] = ()) -> None:
        self._taken: set[str] = set(reserved)

    def __contains__(self, name: str) -> bool:
        return name in self._taken

    @property
    def reserved(self) -> frozenset[str]:
        return frozenset(self._taken)

    def allocate(self, candidate: str) -> str:
        name = candidate
        while name in self._taken:
            name = _next_variant(name)
        self._taken.add(name)
        return name

    def clone(self) -> NameAllocator:
        return NameAllocator(self._taken)


def _next_variant(name: str) -> str:
    match = _TRAILING_DIGITS.match(name)
    if match is None:
        return f"{name}2"
    head, digits = match.groups()
    return f"{head}{int(digits) + 1}"


def camel_case(name: str, upper: bool = False) -> str:
    parts = [part for part in _WORD_SEPARATOR.split(name.replace("'", "")) if part]
    words = [part[0].upper() + part[1:].lower() for part in parts]
    if words and not upper:
        words[0] = words[0].lower()
    result = "".join(words)
    if not result:
        return "_"
    if result[0].isdigit():
        return f"_{result}"
    return result


@dataclass(frozen=True)
class TargetNames:
    author_name: str
    class_name: str
    data: Mapping[str, str]
    scripts: tuple[str, ...]
    warp_variants: Mapping[int, str]
    params: tuple[Mapping[str, str], ...]

    def script_name(self, index: int, warp: bool = False) -> str:
        if warp and index in self.warp_variants:
            return self.warp_variants[index]
        return self.scripts[index]


@dataclass(frozen=True)
class NameTable:
    """Identifiers chosen for one project, keyed by position and id.

    The project itself keeps its author names; everything emitted reads
    identifiers from here.
    """

    targets: tuple[TargetNames, ...]

    def __getitem__(self, target_index: int) -> TargetNames:
        return self.targets[target_index]

    @property
    def stage(self) -> TargetNames:
        return self.targets[0]

    def sprite_class_name(self, author_name: str) -> str | None:
        """Class name of the first sprite authored as `author_name`."""
        for names in self.targets[1:]:
            if names.author_name == author_name:
                return names.class_name
        return None


def procedure_calls(target: Target, script: Script) -> list[int]:
    """Indices of the procedure scripts that `script` calls directly."""
    callees: list[int] = []
    for block in script.walk():
        if block.opcode != OpCode.procedures_call:
            continue
        callee = target.find_procedure(block.literal("PROCCODE"))
        if callee is not None and callee not in callees:
            callees.append(callee)
    return callees


def warp_reachable(target: Target) -> list[int]:
    """Non-warp procedures that some warp procedure reaches through calls."""
    pending = [index for index, script in enumerate(target.scripts) if script.is_warp]
    seen = set(pending)
    while pending:
        index = pending.pop()
        for callee in procedure_calls(target, target.scripts[index]):
            if callee not in seen:
                seen.add(callee)
                pending.append(callee)
    return sorted(index for index in seen if not target.scripts[index].is_warp)


def assign_names(project: Project) -> NameTable:
    class_names = NameAllocator(CLASS_NAMESPACE_SEED)
    targets: list[TargetNames] = []
    for target in project.targets:
        class_name = class_names.allocate(camel_case(target.name, upper=True))

        data_names = NameAllocator(VARIABLE_NAMESPACE_SEED)
        data: dict[str, str] = {}
        for list_data in target.lists:
            data[list_data.id] = data_names.allocate(camel_case(list_data.name))
        for variable in target.variables:
            data[variable.id] = data_names.allocate(camel_case(variable.name))

        script_names = NameAllocator(STAGE_MEMBERS if target.is_stage else SPRITE_MEMBERS)
        scripts = tuple(script_names.allocate(camel_case(script.name)) for script in target.scripts)
        warp_variants = {
            index: script_names.allocate(camel_case(f"{target.scripts[index].name} warp"))
            for index in warp_reachable(target)
        }

        params: list[Mapping[str, str]] = []
        for script in target.scripts:
            param_names = NameAllocator(PARAMETER_NAMESPACE_SEED)
            script_params: dict[str, str] = {}
            for argument in script.arguments:
                if argument.type == "label" or argument.name in script_params:
                    continue
                script_params[argument.name] = param_names.allocate(camel_case(argument.name))
            params.append(MappingProxyType(script_params))

        targets.append(
            TargetNames(
                author_name=target.name,
                class_name=class_name,
                data=MappingProxyType(data),
                scripts=scripts,
                warp_variants=MappingProxyType(warp_variants),
                params=tuple(params),
            )
        )
    return NameTable(targets=tuple(targets))
