"""Best-effort arithmetic for free-text entry cells.

Vendors type chained numbers such as ``"12+5+40"`` into the entry grid, often
leaving a dangling operator while they are still typing. The evaluator accepts
digits, ``.`` and ``+ - * /`` only, drops everything else, and never raises:
anything it cannot make sense of is worth 0.
"""
from __future__ import annotations

import math
import re
from typing import List, Optional

_DISALLOWED = re.compile(r"[^0-9+\-*/.]")
_TRAILING_OPERATORS = re.compile(r"[+\-*/.]+$")
_NUMBER = re.compile(r"\d+\.?\d*|\.\d+")
_WHITESPACE = re.compile(r"\s+")
_REPEATED_PLUS = re.compile(r"\+{2,}")


class _MalformedExpression(Exception):
    """Internal signal that the sanitized text is not a valid expression."""


def sanitize_expression(text: object) -> str:
    """Return the evaluable core of ``text`` (may be empty)."""
    if not isinstance(text, str):
        return ""
    sanitized = _DISALLOWED.sub("", text)
    return _TRAILING_OPERATORS.sub("", sanitized)


def evaluate_expression(text: object) -> float:
    """Evaluate a free-text arithmetic entry, returning 0 for anything unusable.

    >>> evaluate_expression("5+3-")
    8.0
    >>> evaluate_expression("12+ 30")
    42.0
    """
    if not isinstance(text, str) or not text.strip():
        return 0.0
    sanitized = sanitize_expression(text)
    if not sanitized:
        return 0.0
    try:
        tokens = _tokenize(sanitized)
        value = _Parser(tokens).parse()
    except (_MalformedExpression, ZeroDivisionError, OverflowError, RecursionError):
        return 0.0
    return value if math.isfinite(value) else 0.0


def format_chained_entry(text: str) -> str:
    """Normalise typed entries: whitespace separates numbers that get added."""
    if not text:
        return ""
    return _REPEATED_PLUS.sub("+", _WHITESPACE.sub("+", text))


def _tokenize(expression: str) -> List[str]:
    tokens: List[str] = []
    pos = 0
    length = len(expression)
    while pos < length:
        char = expression[pos]
        if char in "+-*/":
            # "++" and "--" are increment/decrement tokens, never valid here.
            if char in "+-" and pos + 1 < length and expression[pos + 1] == char:
                raise _MalformedExpression(expression)
            tokens.append(char)
            pos += 1
            continue
        match = _NUMBER.match(expression, pos)
        if match is None:
            raise _MalformedExpression(expression)
        end = match.end()
        if end < length and expression[end] == ".":
            raise _MalformedExpression(expression)
        tokens.append(match.group())
        pos = end
    return tokens


class _Parser:
    """Recursive-descent parser over ``expr := term (('+'|'-') term)*``."""

    def __init__(self, tokens: List[str]) -> None:
        self._tokens = tokens
        self._index = 0

    def parse(self) -> float:
        value = self._expression()
        if self._peek() is not None:
            raise _MalformedExpression(self._peek())
        return value

    def _peek(self) -> Optional[str]:
        if self._index < len(self._tokens):
            return self._tokens[self._index]
        return None

    def _advance(self) -> str:
        token = self._peek()
        if token is None:
            raise _MalformedExpression("unexpected end of expression")
        self._index += 1
        return token

    def _expression(self) -> float:
        value = self._term()
        while self._peek() in ("+", "-"):
            if self._advance() == "+":
                value += self._term()
            else:
                value -= self._term()
        return value

    def _term(self) -> float:
        value = self._unary()
        while self._peek() in ("*", "/"):
            if self._advance() == "*":
                value *= self._unary()
            else:
                value /= self._unary()
        return value

    def _unary(self) -> float:
        token = self._peek()
        if token == "-":
            self._advance()
            return -self._unary()
        if token == "+":
            self._advance()
            return self._unary()
        if token is None or token in "*/":
            raise _MalformedExpression(token or "")
        return float(self._advance())
