"""Display formatting shared by the PDF generator and the API layer."""

import math
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

_NON_NUMERIC = re.compile(r"[^0-9.\-]")
_WORD_START = re.compile(r"\b\w")


def round_half_up(value) -> int:
    """Nearest integer, .5 away from zero (Python's round() is banker's)."""
    try:
        return int(Decimal(str(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"cannot round {value!r}") from e


def format_clp(value) -> str:
    """Chilean peso display: whole units, '.' as thousands separator.

    Anything that does not parse as a finite number renders as "0".
    """
    if value is None:
        return "0"
    cleaned = _NON_NUMERIC.sub("", str(value))
    try:
        n = float(cleaned)
    except ValueError:
        return "0"
    if not math.isfinite(n):
        return "0"
    return f"{round_half_up(n):,}".replace(",", ".")


def money(value) -> str:
    return f"$ {format_clp(value)}"


def capitalize_words(text: str) -> str:
    """'juan pérez' -> 'Juan Pérez'; leaves the rest of each word untouched."""
    return _WORD_START.sub(lambda m: m.group(0).upper(), text or "")
