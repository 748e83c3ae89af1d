"""
Transform expressions used by converter field definitions.

Grammar::

    expr    := literal | ref | call
    ref     := '$' digits          column / argument reference ($0 = raw record)
             | '$' name            previously computed field, or context global
    call    := name '(' [expr (',' expr)*] ')'
    literal := 'single' | "double" | number | true | false | null

Expressions are compiled once when a converter is built, so an unknown
function or a syntax error fails at processor start rather than on the first
record.

Examples:
    >>> expr = compile_expression("point(toDouble($3), toDouble($4))")
    >>> expr.evaluate(["raw", "a", "ts", "10", "20"], EvaluationContext())
    Point(x=10.0, y=20.0)
"""

from __future__ import annotations

import hashlib
import inspect
import re
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from ingestbridge.convert.context import EvaluationContext
from ingestbridge.core.errors import ConfigurationError
from ingestbridge.schema.types import AttributeType, Point, parse_datetime


_TOKEN = re.compile(
    r"""\s*(?:
        (?P<num>-?\d+(?:\.\d+)?(?:[eE][-+]?\d+)?)
      | (?P<str>'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*")
      | (?P<ref>\$[A-Za-z0-9_.]+)
      | (?P<ident>[A-Za-z_][A-Za-z0-9_]*)
      | (?P<op>[(),])
    )""",
    re.VERBOSE,
)

_KEYWORDS = {"true": True, "false": False, "null": None}


# =============================================================================
# FUNCTIONS
# =============================================================================


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _to_int(value: Any) -> int | None:
    return AttributeType.LONG.coerce(value) if value not in (None, "") else None


def _to_double(value: Any) -> float | None:
    return AttributeType.DOUBLE.coerce(value) if value not in (None, "") else None


def _with_default(value: Any, default: Any) -> Any:
    return default if value in (None, "") else value


def _string_to_double(value: Any, default: Any) -> Any:
    try:
        return float(_text(value).strip())
    except ValueError:
        return default


def _date(fmt: str, value: Any) -> datetime:
    parsed = datetime.strptime(_text(value).strip(), fmt)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _millis_to_date(value: Any) -> datetime:
    return datetime.fromtimestamp(int(_text(value).strip()) / 1000.0, tz=timezone.utc)


def _secs_to_date(value: Any) -> datetime:
    return datetime.fromtimestamp(float(_text(value).strip()), tz=timezone.utc)


def _point(x: Any, y: Any) -> Point:
    return Point(float(x), float(y))


def _regex_replace(pattern: str, replacement: str, value: Any) -> str:
    return re.sub(pattern, replacement, _text(value))


FUNCTIONS: dict[str, Callable[..., Any]] = {
    "toString": lambda v: None if v is None else str(v),
    "toInt": _to_int,
    "toInteger": _to_int,
    "toLong": _to_int,
    "toDouble": _to_double,
    "toFloat": _to_double,
    "toBoolean": lambda v: AttributeType.BOOLEAN.coerce(v) if v not in (None, "") else None,
    "trim": lambda v: _text(v).strip(),
    "lowercase": lambda v: _text(v).lower(),
    "uppercase": lambda v: _text(v).upper(),
    "concat": lambda *vs: "".join(_text(v) for v in vs),
    "dateTime": lambda v: parse_datetime(_text(v)),
    "isoDateTime": lambda v: parse_datetime(_text(v)),
    "date": _date,
    "millisToDate": _millis_to_date,
    "secsToDate": _secs_to_date,
    "now": lambda: datetime.now(timezone.utc),
    "point": _point,
    "md5": lambda v: hashlib.md5(_text(v).encode("utf-8")).hexdigest(),
    "uuid": lambda: str(uuid.uuid4()),
    "withDefault": _with_default,
    "stringToDouble": _string_to_double,
    "regexReplace": _regex_replace,
}


def register_function(name: str, fn: Callable[..., Any]) -> None:
    """Make ``fn`` callable from transform expressions as ``name(...)``."""
    FUNCTIONS[name] = fn


# =============================================================================
# AST
# =============================================================================


class Expression:
    """Compiled transform expression."""

    def evaluate(self, args: list[Any], ctx: EvaluationContext) -> Any:
        raise NotImplementedError


@dataclass(frozen=True)
class Literal(Expression):
    value: Any

    def evaluate(self, args: list[Any], ctx: EvaluationContext) -> Any:
        return self.value


@dataclass(frozen=True)
class ColumnRef(Expression):
    index: int

    def evaluate(self, args: list[Any], ctx: EvaluationContext) -> Any:
        if self.index >= len(args):
            raise ValueError(
                f"Column ${self.index} requested but record has {len(args) - 1} columns"
            )
        return args[self.index]


@dataclass(frozen=True)
class FieldRef(Expression):
    name: str

    def evaluate(self, args: list[Any], ctx: EvaluationContext) -> Any:
        try:
            return ctx.lookup(self.name)
        except KeyError:
            raise ValueError(f"Unknown field or global: ${self.name}") from None


@dataclass(frozen=True)
class Call(Expression):
    name: str
    args: tuple[Expression, ...]

    def evaluate(self, args: list[Any], ctx: EvaluationContext) -> Any:
        values = [a.evaluate(args, ctx) for a in self.args]
        return FUNCTIONS[self.name](*values)


# =============================================================================
# PARSER
# =============================================================================


def _tokenize(text: str) -> list[tuple[str, str]]:
    tokens = []
    pos = 0
    text = text.rstrip()
    while pos < len(text):
        match = _TOKEN.match(text, pos)
        if not match or match.end() == pos:
            raise ConfigurationError(f"Invalid transform {text!r} at position {pos}")
        kind = match.lastgroup
        tokens.append((kind, match.group(kind)))
        pos = match.end()
    return tokens


class _Parser:
    def __init__(self, text: str):
        self.text = text
        self.tokens = _tokenize(text)
        self.pos = 0

    def _peek(self) -> tuple[str, str] | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _next(self) -> tuple[str, str]:
        token = self._peek()
        if token is None:
            raise ConfigurationError(f"Unexpected end of transform {self.text!r}")
        self.pos += 1
        return token

    def _expect(self, op: str) -> None:
        kind, value = self._next()
        if kind != "op" or value != op:
            raise ConfigurationError(f"Expected {op!r} in transform {self.text!r}, got {value!r}")

    def parse(self) -> Expression:
        expr = self._expr()
        if self._peek() is not None:
            raise ConfigurationError(
                f"Unexpected {self._peek()[1]!r} in transform {self.text!r}"
            )
        return expr

    def _expr(self) -> Expression:
        kind, value = self._next()
        if kind == "num":
            return Literal(float(value) if any(c in value for c in ".eE") else int(value))
        if kind == "str":
            return Literal(re.sub(r"\\(.)", r"\1", value[1:-1]))
        if kind == "ref":
            ref = value[1:]
            return ColumnRef(int(ref)) if ref.isdigit() else FieldRef(ref)
        if kind == "ident":
            if value in _KEYWORDS:
                return Literal(_KEYWORDS[value])
            return self._call(value)
        raise ConfigurationError(f"Unexpected {value!r} in transform {self.text!r}")

    def _call(self, name: str) -> Expression:
        if name not in FUNCTIONS:
            raise ConfigurationError(f"Unknown transform function: {name}")
        self._expect("(")
        args: list[Expression] = []
        token = self._peek()
        if token == ("op", ")"):
            self._next()
            return self._checked(name, ())
        while True:
            args.append(self._expr())
            kind, value = self._next()
            if (kind, value) == ("op", ")"):
                return self._checked(name, tuple(args))
            if (kind, value) != ("op", ","):
                raise ConfigurationError(
                    f"Expected ',' or ')' in transform {self.text!r}, got {value!r}"
                )

    def _checked(self, name: str, args: tuple[Expression, ...]) -> Call:
        try:
            signature = inspect.signature(FUNCTIONS[name])
        except (TypeError, ValueError):
            return Call(name, args)
        try:
            signature.bind(*args)
        except TypeError as e:
            raise ConfigurationError(
                f"Wrong number of arguments for {name}() in transform {self.text!r}: {e}"
            ) from e
        return Call(name, args)


def compile_expression(text: str) -> Expression:
    """
    Compile a transform expression.

    Raises:
        ConfigurationError: On syntax errors, unknown functions or a call
            with an argument count the function does not accept.
    """
    if not text or not text.strip():
        raise ConfigurationError("Transform expression must not be empty")
    return _Parser(text).parse()


__all__ = [
    "Expression",
    "FUNCTIONS",
    "compile_expression",
    "register_function",
]
