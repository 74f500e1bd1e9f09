# domlocator/selectors/parser.py
from __future__ import annotations

"""P-selector parser
--------------------
Single-pass scanner for the CSS superset understood by the in-page matcher:
deep combinators (``>>>`` descendant, ``>>>>`` child) and ``::-p-<name>(arg)``
pseudo-elements. Plain CSS is left alone so the native engine can match it;
anything else becomes a nested list AST whose JSON form is what the matcher
consumes.
"""

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union


class Combinator(str, Enum):
    DESCENDANT = ">>>"
    CHILD = ">>>>"


@dataclass(frozen=True)
class PseudoSelector:
    name: str
    value: str = ""

    def to_json(self) -> dict:
        return {"name": self.name, "value": self.value}


CompoundSelector = list[Union[str, PseudoSelector]]
ComplexSelector = list[Union[CompoundSelector, Combinator]]
SelectorList = list[ComplexSelector]


@dataclass(frozen=True)
class ParseResult:
    is_pure_css: bool
    ast: Optional[SelectorList] = None
    has_pseudo_classes: bool = False
    has_aria: bool = False
    # every parse keeps its structure; `ast` is only set when the matcher needs it
    selectors: SelectorList = field(default_factory=list)

    @property
    def json(self) -> Optional[str]:
        """Wire form of the AST for the in-page matcher (None for pure CSS)."""
        if self.ast is None:
            return None
        return dump_selector_list(self.ast)


_ESCAPE_RE = re.compile(r"\\([\s\S])")
_PSEUDO_PREFIX = "::-p-"


# ---------- span consumers ----------
# Each returns (consumed_text, index_after_span). Unterminated spans run to
# the end of the input.


def _consume_string(selector: str, start: int) -> tuple[str, int]:
    quote = selector[start]
    out = [quote]
    i = start + 1
    n = len(selector)
    while i < n:
        ch = selector[i]
        if ch == "\\" and i + 1 < n:
            out.append(selector[i:i + 2])
            i += 2
            continue
        if ch == quote:
            out.append(quote)
            return "".join(out), i + 1
        out.append(ch)
        i += 1
    out.append(quote)
    return "".join(out), i


def _consume_bracketed(selector: str, start: int, open_ch: str, close_ch: str) -> tuple[str, int]:
    depth = 0
    out: list[str] = []
    i = start
    n = len(selector)
    while i < n:
        ch = selector[i]
        if ch == "\\" and i + 1 < n:
            out.append(selector[i:i + 2])
            i += 2
            continue
        if ch in ("'", '"'):
            text, i = _consume_string(selector, i)
            out.append(text)
            continue
        out.append(ch)
        if ch == open_ch:
            depth += 1
        elif ch == close_ch:
            depth -= 1
            if depth == 0:
                return "".join(out), i + 1
        i += 1
    return "".join(out), i


def _consume_parenthesized(selector: str, start: int) -> tuple[str, int]:
    return _consume_bracketed(selector, start, "(", ")")


def _is_name_char(ch: str) -> bool:
    return ch.isalnum() or ch == "-"


def _match_pseudo_element(selector: str, start: int) -> Optional[tuple[str, str, int]]:
    """Match ``::-p-name`` / ``::-p-name(arg)`` at `start`; returns (name, raw_arg, end)."""
    if not selector.startswith(_PSEUDO_PREFIX, start):
        return None
    i = start + len(_PSEUDO_PREFIX)
    name_start = i
    while i < len(selector) and _is_name_char(selector[i]):
        i += 1
    if i == name_start:
        return None
    name = selector[name_start:i]

    value = ""
    if i < len(selector) and selector[i] == "(":
        text, i = _consume_parenthesized(selector, i)
        # strip the outer parentheses (an unterminated arg keeps its tail)
        value = text[1:-1] if text.endswith(")") else text[1:]
    return name, value, i


def unquote(text: str) -> str:
    """Strip matching outer quotes, then drop backslash escapes."""
    if len(text) <= 1:
        return text
    if text[0] in ("'", '"') and text[-1] == text[0]:
        text = text[1:-1]
    return _ESCAPE_RE.sub(r"\1", text)


def _flush(buffer: list[str], compound: CompoundSelector) -> None:
    if not buffer:
        return
    css = "".join(buffer).strip()
    if css:
        compound.append(css)
    buffer.clear()


def _skip_whitespace(selector: str, i: int) -> int:
    while i < len(selector) and selector[i].isspace():
        i += 1
    return i


# ---------- public API ----------


def parse(selector: str) -> ParseResult:
    """Parse `selector`; returns a pure-CSS result when no P-syntax is present."""
    if not selector:
        return ParseResult(is_pure_css=True)

    is_pure_css = True
    has_aria = False
    has_pseudo_classes = False

    compound: CompoundSelector = []
    complex_: ComplexSelector = [compound]
    selector_list: SelectorList = [complex_]
    buffer: list[str] = []

    i = 0
    n = len(selector)
    while i < n:
        ch = selector[i]

        if selector.startswith(">>>", i):
            is_pure_css = False
            _flush(buffer, compound)
            if selector.startswith(">>>>", i):
                complex_.append(Combinator.CHILD)
                i += 4
            else:
                complex_.append(Combinator.DESCENDANT)
                i += 3
            i = _skip_whitespace(selector, i)
            compound = []
            complex_.append(compound)
            continue

        if selector.startswith("::", i):
            match = _match_pseudo_element(selector, i)
            if match is not None:
                is_pure_css = False
                _flush(buffer, compound)
                name, raw_value, i = match
                if name == "aria":
                    has_aria = True
                compound.append(PseudoSelector(name, unquote(raw_value)))
                continue
            # not a P pseudo-element: the second colon reads as a pseudo-class
            buffer.append(":")
            i += 1
            continue

        if ch == ":":
            has_pseudo_classes = True
            buffer.append(ch)
            i += 1
            while i < n and _is_name_char(selector[i]):
                buffer.append(selector[i])
                i += 1
            if i < n and selector[i] == "(":
                text, i = _consume_parenthesized(selector, i)
                buffer.append(text)
            continue

        if ch == ",":
            _flush(buffer, compound)
            compound = []
            complex_ = [compound]
            selector_list.append(complex_)
            i = _skip_whitespace(selector, i + 1)
            continue

        if ch in ("'", '"'):
            text, i = _consume_string(selector, i)
            buffer.append(text)
            continue

        if ch == "[":
            text, i = _consume_bracketed(selector, i, "[", "]")
            buffer.append(text)
            continue

        if ch == "(":
            text, i = _consume_parenthesized(selector, i)
            buffer.append(text)
            continue

        buffer.append(ch)
        i += 1

    _flush(buffer, compound)

    if is_pure_css:
        return ParseResult(
            is_pure_css=True,
            has_pseudo_classes=has_pseudo_classes,
            has_aria=has_aria,
            selectors=selector_list,
        )
    return ParseResult(
        is_pure_css=False,
        ast=selector_list,
        has_pseudo_classes=has_pseudo_classes,
        has_aria=has_aria,
        selectors=selector_list,
    )


# ---------- wire format ----------


def _encode(obj):
    if isinstance(obj, PseudoSelector):
        return obj.to_json()
    if isinstance(obj, Combinator):
        return obj.value
    raise TypeError(f"Cannot serialize {type(obj).__name__} in a selector AST")


def dump_selector_list(ast: SelectorList) -> str:
    """Serialize an AST to the matcher's array-of-arrays JSON shape."""
    return json.dumps(ast, default=_encode, ensure_ascii=False, separators=(",", ":"))


def _load_compound(items: list) -> CompoundSelector:
    compound: CompoundSelector = []
    for part in items:
        if isinstance(part, str):
            compound.append(part)
        elif isinstance(part, dict):
            compound.append(PseudoSelector(str(part["name"]), str(part.get("value", ""))))
        else:
            raise ValueError(f"Invalid compound selector part: {part!r}")
    return compound


def load_selector_list(text: str) -> SelectorList:
    """Inverse of dump_selector_list."""
    raw = json.loads(text)
    if not isinstance(raw, list):
        raise ValueError("Selector list JSON must be an array")
    out: SelectorList = []
    for complex_raw in raw:
        complex_: ComplexSelector = []
        for item in complex_raw:
            if isinstance(item, list):
                complex_.append(_load_compound(item))
            elif isinstance(item, str):
                complex_.append(Combinator(item))
            else:
                raise ValueError(f"Invalid complex selector item: {item!r}")
        out.append(complex_)
    return out


__all__ = [
    "Combinator",
    "PseudoSelector",
    "ParseResult",
    "CompoundSelector",
    "ComplexSelector",
    "SelectorList",
    "parse",
    "unquote",
    "dump_selector_list",
    "load_selector_list",
]
