"""
Unit-size normalization for catalog items.

Sizes arrive as decimals ("0.5", 1.125), integers, or fraction strings
("1/2", "1 1/2", "9/8"), often with an inch mark attached. For display they
are reduced to the nearest 1/64 fraction; for storage fraction strings are
converted back to decimals.
"""

import math
import re

BASE_DENOMINATOR = 64

_QUOTE_MARKS = re.compile(r"[\"”]")
_MIXED = re.compile(r"^(\d+)\s+(\d+)\s*/\s*(\d+)$")
_SIMPLE = re.compile(r"^(-?\d+)\s*/\s*(\d+)$")
_INTEGER = re.compile(r"^-?\d+$")
_DECIMAL = re.compile(r"^-?\d+(\.\d+)?$")

# Measurement-unit codes stored on products → glyph printed after the size
UNIT_SYMBOLS = {
    "in": '"',
    "ft": "'",
    "m": "m",
    "cm": "cm",
    "mm": "mm",
    "kg": "kg",
    "g": "g",
    "ton": "t",
    "l": "l",
    "unit": "",
    "box": " caja",
    "pack": " paquete",
    "roll": " rollo",
    "other": "",
}


def _clean(value) -> str:
    return _QUOTE_MARKS.sub("", str(value)).strip()


def _mixed(negative: bool, whole: int, num: int, den: int) -> str:
    """Render whole + num/den, reducing and carrying into the whole part."""
    whole += num // den
    num %= den
    sign = "-" if negative and (whole or num) else ""
    if num == 0:
        return f"{sign}{whole}"
    g = math.gcd(num, den)
    num, den = num // g, den // g
    if whole:
        return f"{sign}{whole} {num}/{den}"
    return f"{sign}{num}/{den}"


def format_unit_size(value) -> str:
    """Display form of a unit size.

    >>> format_unit_size(1.5)
    '1 1/2'
    >>> format_unit_size("9/8")
    '1 1/8'
    >>> format_unit_size("2.0")
    '2'
    """
    if value is None:
        return ""
    raw = _clean(value)
    if not raw:
        return ""

    if _INTEGER.match(raw):
        return str(int(raw))

    m = _MIXED.match(raw)
    if m:
        whole, num, den = (int(g) for g in m.groups())
        if den == 0:
            return raw
        return _mixed(False, whole, num, den)

    m = _SIMPLE.match(raw)
    if m:
        num, den = int(m.group(1)), int(m.group(2))
        if den == 0:
            return raw
        return _mixed(num < 0, 0, abs(num), den)

    if _DECIMAL.match(raw):
        negative = raw.startswith("-")
        num = abs(float(raw))
        whole = math.floor(num)
        frac = num - whole
        if frac < 1e-8:
            return _mixed(negative, whole, 0, 1)
        n = math.floor(frac * BASE_DENOMINATOR + 0.5)
        return _mixed(negative, whole, n, BASE_DENOMINATOR)

    # Unknown format ("M8", "1/2 x 3") is shown as typed
    return raw


def fraction_to_decimal(value):
    """Storage form of a unit size: "1 1/2" -> 1.5, "3/4" -> 0.75.

    Malformed input (including a zero denominator) is returned unchanged.
    """
    if value is None:
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    raw = _clean(value)

    m = _MIXED.match(raw)
    if m:
        whole, num, den = (int(g) for g in m.groups())
        if not den:
            return raw
        return whole + num / den

    m = _SIMPLE.match(raw)
    if m:
        num, den = int(m.group(1)), int(m.group(2))
        if not den:
            return raw
        return num / den

    if _DECIMAL.match(raw):
        return float(raw)
    return value


def unit_symbol(measurement_unit) -> str:
    if not measurement_unit:
        return ""
    return UNIT_SYMBOLS.get(measurement_unit, measurement_unit)


def unit_label(unit_size, measurement_unit) -> str:
    """Size plus unit glyph for the 'Unidad' column, e.g. '1 1/2"' or '3 kg'."""
    size = format_unit_size(unit_size)
    symbol = unit_symbol(measurement_unit)
    if not size:
        return symbol.strip()
    if not symbol:
        return size
    if symbol.startswith(" ") or symbol in ('"', "'"):
        return f"{size}{symbol}"
    return f"{size} {symbol}"
