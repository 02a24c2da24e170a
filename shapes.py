from __future__ import annotations

from enum import Enum


class Shape(Enum):
    ANY = "any"
    BOOLEAN = "boolean"
    NUMBER = "number"
    NUMBER_NOT_NAN = "number_not_nan"
    INDEX = "index"
    STRING = "string"
    STACK = "stack"


# produced shape -> shapes it also satisfies
REFINES: dict[Shape, frozenset[Shape]] = {
    Shape.NUMBER_NOT_NAN: frozenset({Shape.NUMBER}),
}

NUMERIC_SHAPES = frozenset({Shape.NUMBER, Shape.NUMBER_NOT_NAN})

COERCION_CALLS = ("this.toNumber", "this.toBoolean", "this.toString")

_OPERATOR_CHARS = frozenset(" +-*/%<>=!&|?:,")


def satisfies(produced: Shape, desired: Shape) -> bool:
    if produced == desired or desired == Shape.ANY:
        return True
    if Shape.STACK in (produced, desired):
        return True
    return desired in REFINES.get(produced, frozenset())


def is_atomic(source: str) -> bool:
    """True when `source` can be an operand without parentheses.

    Identifiers, member chains, calls and literals are atomic; anything with
    a top-level operator or a leading unary operator is not.
    """
    if not source or source[0] in "-+!":
        return False
    depth = 0
    quote = None
    escaped = False
    for char in source:
        if quote is not None:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == quote:
                quote = None
            continue
        if char in "\"'`":
            quote = char
        elif char in "([{":
            depth += 1
        elif char in ")]}":
            depth -= 1
        elif depth == 0 and char in _OPERATOR_CHARS:
            return False
    return True


def paren(source: str) -> str:
    if is_atomic(source):
        return source
    return f"({source})"


def coerce(source: str, produced: Shape, desired: Shape) -> str:
    if satisfies(produced, desired):
        return source
    if desired in NUMERIC_SHAPES:
        return f"this.toNumber({source})"
    if desired == Shape.BOOLEAN:
        return f"this.toBoolean({source})"
    if desired == Shape.STRING:
        return f"this.toString({source})"
    if desired == Shape.INDEX:
        if produced in NUMERIC_SHAPES:
            return f"{paren(source)} - 1"
        return f"this.toNumber({source}) - 1"
    return source
