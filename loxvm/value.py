"""Runtime values of the virtual machine and their printed form.

Values are plain Python objects: ``None`` is nil, ``bool`` is a boolean,
``float`` is a number and ``str`` is a string.
"""

from __future__ import annotations

import math
from decimal import Decimal
from typing import Union

Value = Union[None, bool, float, str]

__all__ = ["Value", "values_equal", "is_falsey", "format_value"]


def _kind(value: object) -> str:
    if value is None:
        return "nil"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    return "object"


def values_equal(a: object, b: object) -> bool:
    """Compare two values the way the VM's equality operator does.

    Values of different kinds are never equal, and strings never compare
    equal, not even to themselves.
    """
    kind = _kind(a)
    if kind != _kind(b):
        return False
    if kind == "nil":
        return True
    if kind in ("bool", "number"):
        return a == b
    return False


def is_falsey(value: object) -> bool:
    """Return True for nil and false; every other value is truthy."""
    return value is None or value is False


def _format_number(number: float) -> str:
    """Format a number with the shortest ``%g`` style representation."""
    number = float(number)
    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "+Inf" if number > 0 else "-Inf"
    sign = "-" if math.copysign(1.0, number) < 0 else ""
    if number == 0:
        return sign + "0"

    _, digit_tuple, exponent = Decimal(repr(abs(number))).as_tuple()
    point = len(digit_tuple) + exponent
    digits = "".join(str(d) for d in digit_tuple).rstrip("0")
    count = len(digits)

    exp = point - 1
    if exp < -4 or exp >= 6:
        mantissa = digits[0] + ("." + digits[1:] if count > 1 else "")
        exp_sign = "-" if exp < 0 else "+"
        return f"{sign}{mantissa}e{exp_sign}{abs(exp):02d}"
    if point <= 0:
        body = "0." + "0" * (-point) + digits
    elif point >= count:
        body = digits + "0" * (point - count)
    else:
        body = digits[:point] + "." + digits[point:]
    return sign + body


def format_value(value: object) -> str:
    """Return the text the VM prints for a value."""
    kind = _kind(value)
    if kind == "bool":
        return "true" if value else "false"
    if kind == "nil":
        return "nil"
    if kind == "number":
        return _format_number(value)  # type: ignore[arg-type]
    if kind == "string":
        return f'"{value}"'
    return str(value)