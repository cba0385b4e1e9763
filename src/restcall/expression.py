"""Evaluation seam between an expression and the REST functions.

Only single call expressions are understood, e.g.::

    REST_GET('http://host/get', {"timeout": 500}, params)

Arguments are single-quoted strings, JSON literals, or variable names looked
up in the mapping given to :func:`run`. Unknown variables evaluate to ``None``.
"""
from __future__ import annotations
import json
import re
from typing import Any, List, Mapping, Optional, Tuple

from .errors import RestFunctionError
from .functions import FUNCTIONS, Context

_NAME_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_.]*")
_JSON_WORDS = {"true": True, "false": False, "null": None}
_decoder = json.JSONDecoder()


class ParseError(Exception):
    """An expression could not be evaluated."""


class ExpressionSyntaxError(RestFunctionError):
    pass


class _Reader:
    def __init__(self, text: str, variables: Mapping[str, Any]) -> None:
        self.text = text
        self.pos = 0
        self.variables = variables

    def skip_ws(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def peek(self) -> str:
        self.skip_ws()
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def expect(self, ch: str) -> None:
        if self.peek() != ch:
            found = self.peek() or "end of input"
            raise ExpressionSyntaxError(f"Expected '{ch}' at position {self.pos}, found {found}")
        self.pos += 1

    def name(self) -> str:
        self.skip_ws()
        m = _NAME_RE.match(self.text, self.pos)
        if not m:
            raise ExpressionSyntaxError(f"Expected a name at position {self.pos}")
        self.pos = m.end()
        return m.group(0)

    def string(self) -> str:
        self.expect("'")
        out: List[str] = []
        while self.pos < len(self.text):
            c = self.text[self.pos]
            if c == "\\" and self.pos + 1 < len(self.text):
                out.append(self.text[self.pos + 1])
                self.pos += 2
                continue
            self.pos += 1
            if c == "'":
                return "".join(out)
            out.append(c)
        raise ExpressionSyntaxError("Unterminated string literal")

    def value(self) -> Any:
        c = self.peek()
        if c == "'":
            return self.string()
        m = _NAME_RE.match(self.text, self.pos)
        if m:
            self.pos = m.end()
            word = m.group(0)
            if word in _JSON_WORDS:
                return _JSON_WORDS[word]
            return self.variables.get(word)
        try:
            value, self.pos = _decoder.raw_decode(self.text, self.pos)
        except ValueError as e:
            raise ExpressionSyntaxError(f"Invalid literal at position {self.pos}: {e}") from e
        return value


def parse_call(expression: str, variables: Optional[Mapping[str, Any]] = None) -> Tuple[str, List[Any]]:
    """Return the function name and evaluated arguments of ``expression``."""
    reader = _Reader(expression, variables or {})
    name = reader.name()
    reader.expect("(")
    args: List[Any] = []
    if reader.peek() != ")":
        args.append(reader.value())
        while reader.peek() == ",":
            reader.pos += 1
            args.append(reader.value())
    reader.expect(")")
    if reader.peek():
        raise ExpressionSyntaxError(f"Unexpected input at position {reader.pos}")
    return name, args


def invoke(name: str, args: List[Any], context: Context, expression: str) -> Any:
    function = FUNCTIONS.get(name)
    try:
        if function is None:
            raise ExpressionSyntaxError(f"Unknown function {name}")
        return function.apply(args, context)
    except RestFunctionError as e:
        raise ParseError(f"Unable to parse: {expression} due to: {e}") from e


def run(expression: str, context: Context, variables: Optional[Mapping[str, Any]] = None) -> Any:
    """Evaluate a single REST function call expression."""
    try:
        try:
            name, args = parse_call(expression, variables)
        except ExpressionSyntaxError as e:
            raise ParseError(f"Unable to parse: {expression} due to: {e}") from e
        return invoke(name, args, context, expression)
    except ParseError as e:
        raise ParseError(f"Unable to parse {expression}: {e}") from e
