from __future__ import annotations

"""
Safe arithmetic for the launcher's calculator row.

Recursive-descent parser over ``0-9 + - * / . ( ) % ^`` (no eval()).
Precedence, lowest to highest:

    addsub := muldiv (('+'|'-') muldiv)*
    muldiv := power (('*'|'/'|'%') power)*
    power  := unary ('^' power)?          # right-associative
    unary  := ('-'|'+')? atom
    atom   := '(' addsub ')' | number

Arithmetic follows IEEE-754 doubles, so ``1/0`` is infinity rather than an
error; non-finite results are rejected at the end.  Every failure is
reported to callers as ``None``.
"""

import math
import re
from dataclasses import dataclass
from typing import Optional

from loguru import logger

from .config import CALC_DECIMALS, EXPRESSION_OPERATORS
from .errors import InvalidExpression, InvalidNumber, NonFiniteResult

_ALLOWED_RX = re.compile(r"^[0-9+\-*/.()%^]+$")
_WHITESPACE_RX = re.compile(r"\s+")
# Longest leading decimal literal of a digits/dots run ("1.2.3" -> "1.2")
_NUMBER_PREFIX_RX = re.compile(r"[0-9]+(?:\.[0-9]*)?|\.[0-9]+")
_NUMBER_CHARS = frozenset("0123456789.")
# Beyond this a double has no fractional digits left to round
_EXACT_INT_LIMIT = 2.0 ** 52


@dataclass
class _Cursor:
    """Read position into one cleaned expression. Never shared across calls."""

    text: str
    pos: int = 0

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def advance(self) -> None:
        self.pos += 1


# ---------------------------------------------------------------------------
# IEEE helpers (Python raises where doubles return inf / nan)
# ---------------------------------------------------------------------------


def _divide(left: float, right: float) -> float:
    if right == 0.0:
        if left == 0.0 or math.isnan(left):
            return math.nan
        return math.copysign(math.inf, left) * math.copysign(1.0, right)
    return left / right


def _modulo(left: float, right: float) -> float:
    if right == 0.0 or math.isinf(left) or math.isnan(left) or math.isnan(right):
        return math.nan
    # fmod keeps the dividend's sign, like C and JavaScript
    return math.fmod(left, right)


def _power(base: float, exponent: float) -> float:
    if exponent == 0.0:
        return 1.0
    if math.isnan(base) or math.isnan(exponent):
        return math.nan
    if abs(base) == 1.0 and math.isinf(exponent):
        return math.nan
    try:
        return math.pow(base, exponent)
    except OverflowError:
        return math.inf
    except ValueError:
        # 0 ** negative -> inf; negative ** fractional -> nan
        if base == 0.0:
            return math.inf
        return math.nan


# ---------------------------------------------------------------------------
# Grammar
# ---------------------------------------------------------------------------


def _parse_expression(cur: _Cursor) -> float:
    return _parse_add_sub(cur)


def _parse_add_sub(cur: _Cursor) -> float:
    left = _parse_mul_div(cur)
    while cur.peek() in ("+", "-"):
        op = cur.peek()
        cur.advance()
        right = _parse_mul_div(cur)
        left = left + right if op == "+" else left - right
    return left


def _parse_mul_div(cur: _Cursor) -> float:
    left = _parse_power(cur)
    while cur.peek() in ("*", "/", "%"):
        op = cur.peek()
        cur.advance()
        right = _parse_power(cur)
        if op == "*":
            left = left * right
        elif op == "/":
            left = _divide(left, right)
        else:
            left = _modulo(left, right)
    return left


def _parse_power(cur: _Cursor) -> float:
    base = _parse_unary(cur)
    if cur.peek() == "^":
        cur.advance()
        exponent = _parse_power(cur)
        base = _power(base, exponent)
    return base


def _parse_unary(cur: _Cursor) -> float:
    if cur.peek() == "-":
        cur.advance()
        return -_parse_atom(cur)
    if cur.peek() == "+":
        cur.advance()
    return _parse_atom(cur)


def _parse_atom(cur: _Cursor) -> float:
    if cur.peek() == "(":
        cur.advance()
        value = _parse_expression(cur)
        # a missing ')' is tolerated
        if cur.peek() == ")":
            cur.advance()
        return value

    start = cur.pos
    while cur.peek() in _NUMBER_CHARS:
        cur.advance()
    token = cur.text[start:cur.pos]
    m = _NUMBER_PREFIX_RX.match(token)
    if not m:
        raise InvalidNumber(f"invalid number at position {start}: {token!r}")
    return float(m.group(0))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def _round_half_up(value: float, decimals: int = CALC_DECIMALS) -> float:
    scale = 10.0 ** decimals
    scaled = value * scale
    if not math.isfinite(scaled) or abs(scaled) >= _EXACT_INT_LIMIT:
        # already coarser than the rounding step
        return value
    return math.floor(scaled + 0.5) / scale


def format_number(value: float) -> str:
    """
    Canonical number string: shortest round-trip digits, positional for
    1e-7 <= |x| < 1e21 and exponent form outside, no trailing zeros.

        14.0 -> '14', 2.5 -> '2.5', 1e25 -> '1e+25', 1e-7 -> '1e-7'
    """
    if value == 0:
        return "0"
    sign = "-" if value < 0 else ""
    mantissa, _, exp = repr(abs(value)).partition("e")
    int_part, _, frac = mantissa.partition(".")
    combined = int_part + frac
    stripped = combined.lstrip("0")
    # value == 0.<digits> * 10**point
    point = len(int_part) + int(exp or 0) - (len(combined) - len(stripped))
    digits = stripped.rstrip("0")
    k = len(digits)

    if k <= point <= 21:
        return sign + digits + "0" * (point - k)
    if 0 < point <= 21:
        return sign + digits[:point] + "." + digits[point:]
    if -6 < point <= 0:
        return sign + "0." + "0" * -point + digits
    e = point - 1
    head = digits[0] + ("." + digits[1:] if k > 1 else "")
    return f"{sign}{head}e{'+' if e > 0 else '-'}{abs(e)}"


def parse_and_evaluate(expr: str) -> float:
    """
    Evaluate ``expr`` and return the raw finite float.

    Raises InvalidExpression (or a subclass) on disallowed characters,
    empty input, a bad number token or a non-finite result.
    """
    cleaned = _WHITESPACE_RX.sub("", expr or "")
    if not cleaned:
        raise InvalidExpression("empty expression")
    if not _ALLOWED_RX.match(cleaned):
        raise InvalidExpression(f"disallowed characters in {cleaned!r}")

    value = _parse_expression(_Cursor(cleaned))
    if not math.isfinite(value):
        raise NonFiniteResult(f"{cleaned!r} evaluated to {value}")
    return value


def evaluate(expr: str) -> Optional[str]:
    """
    Public contract: canonical number string, or None for anything that
    is not a valid finite expression.
    """
    try:
        value = parse_and_evaluate(expr)
    except InvalidExpression as e:
        logger.debug("Calculator rejected {!r}: {}", expr, e)
        return None
    except RecursionError:
        logger.debug("Calculator gave up on deeply nested input ({} chars)", len(expr))
        return None
    return format_number(_round_half_up(value))


def looks_like_expression(text: str) -> bool:
    """True when the text carries at least one operator or parenthesis."""
    return any(ch in EXPRESSION_OPERATORS for ch in text or "")


def calculator_result(text: str) -> Optional[str]:
    """
    Result to show for a query: only when it both evaluates and looks like
    arithmetic, so a bare '42' is left to the file search.
    """
    result = evaluate(text)
    if result is not None and looks_like_expression(text):
        return result
    return None
