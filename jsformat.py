from __future__ import annotations

import textwrap
from dataclasses import dataclass


@dataclass(frozen=True)
class FormattingOptions:
    indent_width: int = 2
    use_tabs: bool = False

    @property
    def unit(self) -> str:
        return "\t" if self.use_tabs else " " * self.indent_width


_OPENERS = "([{"
_CLOSERS = ")]}"


def format_source(text: str, filename: str, options: FormattingOptions | None = None) -> str:
    """Normalize generated source so every output file reads consistently."""
    options = options or FormattingOptions()
    if filename.endswith(".html"):
        return _format_html(text)
    if filename.endswith(".js"):
        return _format_js(text, options)
    return _finish(text.splitlines())


def _format_js(text: str, options: FormattingOptions) -> str:
    lines: list[str] = []
    # one entry per line that opened brackets: the count still unclosed
    open_lines: list[int] = []
    in_comment = False
    quote: str | None = None
    for raw in text.splitlines():
        stripped = raw.strip()
        if not stripped:
            lines.append("")
            continue
        if in_comment or quote == "`":
            lines.append(raw.rstrip())
            in_comment, quote, net = _scan(stripped, in_comment, quote)
            _apply(open_lines, net)
            continue
        leading = _leading_closers(stripped)
        for _ in range(leading):
            if open_lines:
                open_lines[-1] -= 1
                if open_lines[-1] == 0:
                    open_lines.pop()
        depth = len(open_lines)
        lines.append(options.unit * depth + stripped)
        in_comment, quote, net = _scan(stripped[leading:], in_comment, quote)
        _apply(open_lines, net)
    return _finish(lines, opener_aware=True)


def _leading_closers(line: str) -> int:
    count = 0
    for char in line:
        if char in _CLOSERS:
            count += 1
        elif char in " \t":
            continue
        else:
            break
    return count


def _apply(open_lines: list[int], net: tuple[int, int]) -> None:
    closed, opened = net
    for _ in range(closed):
        if not open_lines:
            break
        open_lines[-1] -= 1
        if open_lines[-1] == 0:
            open_lines.pop()
    if opened:
        open_lines.append(opened)


def _scan(line: str, in_comment: bool, quote: str | None) -> tuple[bool, str | None, tuple[int, int]]:
    """Walk one line, returning the carried state and its (closed, opened) brackets."""
    opened = 0
    closed = 0
    index = 0
    while index < len(line):
        char = line[index]
        pair = line[index : index + 2]
        if in_comment:
            if pair == "*/":
                in_comment = False
                index += 2
                continue
        elif quote is not None:
            if char == "\\":
                index += 2
                continue
            if char == quote:
                quote = None
        elif pair == "//":
            break
        elif pair == "/*":
            in_comment = True
            index += 2
            continue
        elif char in "\"'`":
            quote = char
        elif char in _OPENERS:
            opened += 1
        elif char in _CLOSERS:
            if opened:
                opened -= 1
            else:
                closed += 1
        index += 1
    if quote in ("'", '"'):
        quote = None
    return in_comment, quote, (closed, opened)


def _format_html(text: str) -> str:
    return _finish(textwrap.dedent(text).splitlines())


def _finish(lines: list[str], opener_aware: bool = False) -> str:
    result: list[str] = []
    for line in (line.rstrip() for line in lines):
        if not line:
            if not result or not result[-1]:
                continue
            if opener_aware and result[-1].endswith(tuple(_OPENERS)):
                continue
            result.append("")
            continue
        if opener_aware and result and not result[-1] and line.lstrip()[:1] in _CLOSERS:
            result.pop()
        result.append(line)
    while result and not result[-1]:
        result.pop()
    return "\n".join(result) + "\n"
