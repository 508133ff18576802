"""
Leaf value kinds understood by structflag.

Every bindable field falls into one of a fixed set of kinds. Each kind knows how to
parse command-line text into a Python value and how to render a value back into the
text shown as the flag's default: ``true``/``false`` for booleans, shortest ``%g``
floats and ``5m0s`` style durations.
"""

import datetime
import decimal
import enum
import math
import re
import sys
import typing
from typing import Any, Optional, Union

Uint = typing.NewType("Uint", int)
Int64 = typing.NewType("Int64", int)
Uint64 = typing.NewType("Uint64", int)


class FlagKind(enum.Enum):
    """The closed set of leaf kinds a flag can hold."""

    BOOL = "bool"
    FLOAT64 = "float64"
    INT = "int"
    UINT = "uint"
    INT64 = "int64"
    UINT64 = "uint64"
    DURATION = "duration"
    STRING = "string"


_KIND_BY_TYPE: tuple[tuple[Any, FlagKind], ...] = (
    (bool, FlagKind.BOOL),
    (float, FlagKind.FLOAT64),
    (int, FlagKind.INT),
    (Uint, FlagKind.UINT),
    (Int64, FlagKind.INT64),
    (Uint64, FlagKind.UINT64),
    (datetime.timedelta, FlagKind.DURATION),
    (str, FlagKind.STRING),
)

_INT_RANGES = {
    FlagKind.INT: (-sys.maxsize - 1, sys.maxsize),
    FlagKind.UINT: (0, 2 * sys.maxsize + 1),
    FlagKind.INT64: (-(2**63), 2**63 - 1),
    FlagKind.UINT64: (0, 2**64 - 1),
}

_METAVARS = {
    FlagKind.BOOL: "BOOL",
    FlagKind.FLOAT64: "FLOAT",
    FlagKind.INT: "INT",
    FlagKind.UINT: "UINT",
    FlagKind.INT64: "INT64",
    FlagKind.UINT64: "UINT64",
    FlagKind.DURATION: "DURATION",
    FlagKind.STRING: "STRING",
}

_ZERO_DEFAULTS = ("", "0", "0s", "false")

_TRUE_STRINGS = ("1", "t", "T", "TRUE", "true", "True")
_FALSE_STRINGS = ("0", "f", "F", "FALSE", "false", "False")

_NANOSECOND = 1
_MICROSECOND = 1000 * _NANOSECOND
_MILLISECOND = 1000 * _MICROSECOND
_SECOND = 1000 * _MILLISECOND
_MINUTE = 60 * _SECOND
_HOUR = 60 * _MINUTE

_DURATION_UNITS = {
    "ns": _NANOSECOND,
    "us": _MICROSECOND,
    "µs": _MICROSECOND,  # U+00B5 micro sign
    "μs": _MICROSECOND,  # U+03BC greek mu
    "ms": _MILLISECOND,
    "s": _SECOND,
    "m": _MINUTE,
    "h": _HOUR,
}

_DURATION_TERM = re.compile(r"(\d*)(?:\.(\d*))?([^\d.]*)")
_LEGACY_OCTAL = re.compile(r"[+-]?0[0-7_]+\Z")


def _get_optional_inner_type(type_hint: Any) -> Optional[Any]:
    """
    If type_hint is Optional[T] (i.e., Union[T, None]), return T.
    Otherwise, return None.
    """
    origin = getattr(type_hint, "__origin__", None)
    if origin is Union:
        args = type_hint.__args__
        non_none_args = [a for a in args if a is not type(None)]
        if len(non_none_args) == 1 and type(None) in args:
            return non_none_args[0]
    return None


def kind_of(type_hint: Any) -> Optional[FlagKind]:
    """Return the kind for a declared type, or None if it is not a leaf type."""
    inner_type = _get_optional_inner_type(type_hint)
    if inner_type is not None:
        type_hint = inner_type
    for declared, kind in _KIND_BY_TYPE:
        if type_hint is declared:
            return kind
    return None


def kind_of_value(value: Any) -> Optional[FlagKind]:
    """Return the kind matching the runtime type of ``value``, if any."""
    return kind_of(type(value))


def metavar(kind: FlagKind) -> str:
    return _METAVARS[kind]


def is_zero_default(text: str) -> bool:
    """True when ``text`` is the rendered zero value of its kind."""
    return text in _ZERO_DEFAULTS


def check_value(kind: FlagKind, value: Any) -> None:
    """
    Check that ``value`` is a valid Python value for ``kind``.

    ``None`` is accepted for every kind and stands for an unset optional field.

    Raises:
        TypeError: If the value has the wrong type.
        ValueError: If an integer value is outside the range of its kind.
    """
    if value is None:
        return

    if kind is FlagKind.BOOL:
        expected: Any = bool
        ok = isinstance(value, bool)
    elif kind is FlagKind.FLOAT64:
        expected = float
        ok = isinstance(value, (int, float)) and not isinstance(value, bool)
    elif kind in _INT_RANGES:
        expected = int
        ok = isinstance(value, int) and not isinstance(value, bool)
    elif kind is FlagKind.DURATION:
        expected = datetime.timedelta
        ok = isinstance(value, datetime.timedelta)
    else:
        expected = str
        ok = isinstance(value, str)

    if not ok:
        raise TypeError(
            f"{kind.value} flag expects {expected.__name__}, "
            f"got {type(value).__name__}: {value!r}"
        )

    if kind in _INT_RANGES:
        low, high = _INT_RANGES[kind]
        if not low <= value <= high:
            raise ValueError(
                f"{kind.value} value {value} out of range [{low}, {high}]"
            )


def parse_bool(text: str) -> bool:
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise ValueError("parse error")


def parse_integer(text: str, kind: FlagKind) -> int:
    """
    Parse an integer literal, detecting its base from the prefix.

    Base prefixes ``0x``, ``0o`` and ``0b`` are honored, a bare leading zero means
    octal, and underscores may separate digits. Unsigned kinds reject any sign.
    """
    low, high = _INT_RANGES[kind]
    if not text or text != text.strip():
        raise ValueError("parse error")
    if low == 0 and text[0] in "+-":
        raise ValueError("parse error")
    try:
        if _LEGACY_OCTAL.match(text):
            value = int(text, 8)
        else:
            value = int(text, 0)
    except ValueError:
        raise ValueError("parse error") from None
    if not low <= value <= high:
        raise ValueError("value out of range")
    return value


def parse_float(text: str) -> float:
    if not text or text != text.strip():
        raise ValueError("parse error")
    try:
        if "0x" in text.lower():
            value = float.fromhex(text)
        else:
            value = float(text)
    except ValueError:
        raise ValueError("parse error") from None
    if math.isinf(value) and "inf" not in text.lower():
        raise ValueError("value out of range")
    return value


def parse_duration(text: str) -> datetime.timedelta:
    """
    Parse a duration string such as ``300ms``, ``-1.5h`` or ``2h45m``.

    Valid units are ``ns``, ``us`` (or ``µs``), ``ms``, ``s``, ``m`` and ``h``. The
    result is truncated to the microsecond resolution of ``datetime.timedelta``.
    """
    original = text
    negative = False
    if text and text[0] in "+-":
        negative = text[0] == "-"
        text = text[1:]
    if text == "0":
        return datetime.timedelta(0)
    if not text:
        raise ValueError(f'invalid duration "{original}"')

    total = 0
    position = 0
    while position < len(text):
        match = _DURATION_TERM.match(text, position)
        whole, fraction, unit_name = match.groups()
        fraction = fraction or ""
        if not whole and not fraction:
            raise ValueError(f'invalid duration "{original}"')
        if not unit_name:
            raise ValueError(f'missing unit in duration "{original}"')
        unit = _DURATION_UNITS.get(unit_name)
        if unit is None:
            raise ValueError(f'unknown unit "{unit_name}" in duration "{original}"')
        total += int(whole or "0") * unit
        if fraction:
            total += int(fraction) * unit // 10 ** len(fraction)
        position = match.end()

    if total > 2**63 - (0 if negative else 1):
        raise ValueError(f'invalid duration "{original}"')

    microseconds = total // _MICROSECOND
    return datetime.timedelta(microseconds=-microseconds if negative else microseconds)


def parse(kind: FlagKind, text: str) -> Any:
    """Parse command-line text into a value of ``kind``."""
    if kind is FlagKind.BOOL:
        return parse_bool(text)
    if kind is FlagKind.FLOAT64:
        return parse_float(text)
    if kind in _INT_RANGES:
        return parse_integer(text, kind)
    if kind is FlagKind.DURATION:
        return parse_duration(text)
    return text


def to_nanoseconds(value: datetime.timedelta) -> int:
    return (
        (value.days * 86400 + value.seconds) * _SECOND
        + value.microseconds * _MICROSECOND
    )


def _format_fraction(value: int, unit: int) -> str:
    whole, remainder = divmod(value, unit)
    if not remainder:
        return str(whole)
    width = len(str(unit)) - 1
    return f"{whole}." + str(remainder).rjust(width, "0").rstrip("0")


def format_duration(value: datetime.timedelta) -> str:
    """Render a duration as hours, minutes and fractional seconds (``1h2m3.5s``)."""
    nanoseconds = to_nanoseconds(value)
    if nanoseconds == 0:
        return "0s"

    sign = "-" if nanoseconds < 0 else ""
    remaining = abs(nanoseconds)

    if remaining < _SECOND:
        if remaining < _MICROSECOND:
            return f"{sign}{remaining}ns"
        if remaining < _MILLISECOND:
            return sign + _format_fraction(remaining, _MICROSECOND) + "µs"
        return sign + _format_fraction(remaining, _MILLISECOND) + "ms"

    text = _format_fraction(remaining % _MINUTE, _SECOND) + "s"
    minutes = remaining // _MINUTE
    if minutes:
        text = f"{minutes % 60}m" + text
        hours = minutes // 60
        if hours:
            text = f"{hours}h" + text
    return sign + text


def format_float(value: float) -> str:
    """Render a float in the shortest ``%g`` form that round-trips."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value == 0:
        return "-0" if math.copysign(1.0, value) < 0 else "0"

    sign, digit_tuple, exponent = decimal.Decimal(repr(value)).as_tuple()
    digits = "".join(str(d) for d in digit_tuple)
    stripped = digits.rstrip("0")
    exponent += len(digits) - len(stripped)
    digits = stripped

    prefix = "-" if sign else ""
    point = len(digits) + exponent
    exp = point - 1

    if exp < -4 or exp >= 6:
        mantissa = digits[0]
        if len(digits) > 1:
            mantissa += "." + digits[1:]
        exp_sign = "-" if exp < 0 else "+"
        return f"{prefix}{mantissa}e{exp_sign}{abs(exp):02d}"

    if point <= 0:
        return f"{prefix}0." + "0" * -point + digits
    if point >= len(digits):
        return prefix + digits + "0" * (point - len(digits))
    return f"{prefix}{digits[:point]}.{digits[point:]}"


def format_value(kind: FlagKind, value: Any) -> str:
    """Render a value as default/current flag text."""
    if value is None:
        return ""
    if kind is FlagKind.BOOL:
        return "true" if value else "false"
    if kind is FlagKind.FLOAT64:
        return format_float(float(value))
    if kind in _INT_RANGES:
        return str(int(value))
    if kind is FlagKind.DURATION:
        return format_duration(value)
    return str(value)
