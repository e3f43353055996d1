"""Feet/inch parsing and the display formatters used by line templates."""
from __future__ import annotations

import math
import re
from typing import Iterable, Optional, Sequence

UNICODE_FRACTIONS = {
    "½": "1/2",
    "⅓": "1/3",
    "⅔": "2/3",
    "¼": "1/4",
    "¾": "3/4",
    "⅛": "1/8",
    "⅜": "3/8",
    "⅝": "5/8",
    "⅞": "7/8",
}

PLACEHOLDER = "##"

_UNICODE_FRACTION_RE = re.compile(
    r"(\d*)\s*([" + "".join(UNICODE_FRACTIONS) + r"])"
)
_INCHES_RE = re.compile(r"^(\d+(?:\.\d+)?)?(?:[\s-]*(\d+)/(\d+))?$")
_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")


def finite(value: Optional[float]) -> Optional[float]:
    """``value`` as a float, or ``None`` when it is missing, NaN or infinite."""
    if value is None:
        return None
    number = float(value)
    return number if math.isfinite(number) else None


def normalize_fractions(text: str) -> str:
    """Rewrite unicode vulgar fractions, e.g. ``4½"`` -> ``4-1/2"``."""

    def _replace(match: re.Match) -> str:
        whole, glyph = match.group(1), match.group(2)
        fraction = UNICODE_FRACTIONS[glyph]
        return f"{whole}-{fraction}" if whole else fraction

    return _UNICODE_FRACTION_RE.sub(_replace, text)


def parse_inches(value: str) -> Optional[float]:
    """Parse ``9``, ``9.625``, ``9-5/8`` or ``5/8`` into inches."""
    if value is None:
        return None
    cleaned = normalize_fractions(str(value)).strip().strip('"').strip()
    if not cleaned:
        return None
    match = _INCHES_RE.match(cleaned)
    if not match or not (match.group(1) or match.group(2)):
        return None
    whole = float(match.group(1)) if match.group(1) else 0.0
    if match.group(2):
        denominator = float(match.group(3))
        if denominator == 0:
            return finite(whole)
        whole += float(match.group(2)) / denominator
    return finite(whole)


def convert_to_feet(value: Optional[str]) -> Optional[float]:
    """Convert a dimension string to feet.

    ``4"`` is inches, ``2'-6"`` is feet and inches, a bare number is feet.
    Returns ``None`` when nothing numeric can be read.
    """
    if value is None:
        return None
    text = normalize_fractions(str(value)).strip()
    if not text:
        return None
    if "'" in text:
        feet_part, _, inch_part = text.partition("'")
        feet_match = _NUMBER_RE.search(feet_part)
        feet = float(feet_match.group(0)) if feet_match else 0.0
        inch_part = inch_part.strip().lstrip("-").strip()
        inches = parse_inches(inch_part) if inch_part else None
        if feet_match is None and inches is None:
            return None
        return finite(feet + (inches or 0.0) / 12.0)
    if '"' in text:
        inches = parse_inches(text)
        return None if inches is None else inches / 12.0
    match = _NUMBER_RE.search(text)
    if match is None:
        return None
    return finite(match.group(0))


def round_up_to_multiple(value: Optional[float], multiple: int = 5) -> Optional[float]:
    value = finite(value)
    if value is None:
        return None
    # round first so float noise like 25.000000001 does not jump a bucket
    scaled = round(value / multiple, 9)
    return float(math.ceil(scaled) * multiple)


def mean(values: Iterable[Optional[float]]) -> Optional[float]:
    present = [value for value in values if value is not None]
    if not present:
        return None
    return sum(present) / len(present)


def format_number(value: Optional[float], placeholder: str = PLACEHOLDER) -> str:
    if finite(value) is None:
        return placeholder
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}".rstrip("0").rstrip(".")


def format_feet_inches(feet: Optional[float], placeholder: str = PLACEHOLDER) -> str:
    """4.5 -> ``4'-6"``."""
    if finite(feet) is None:
        return placeholder
    whole = math.floor(feet)
    inches = int(round((feet - whole) * 12))
    if inches == 12:
        whole += 1
        inches = 0
    return f"{whole}'-{inches}\""


def format_inches(inches: Optional[float], placeholder: str = PLACEHOLDER) -> str:
    """Render inches with eighth fractions where exact: 9.625 -> ``9-5/8"``."""
    if finite(inches) is None:
        return placeholder
    whole = math.floor(inches)
    remainder = inches - whole
    if abs(remainder) < 1e-9:
        return f'{whole}"'
    eighths = remainder * 8
    if whole > 0 and abs(eighths - round(eighths)) < 1e-6:
        numerator, denominator = int(round(eighths)), 8
        while numerator % 2 == 0:
            numerator //= 2
            denominator //= 2
        return f'{whole}-{numerator}/{denominator}"'
    return f"{inches:.3f}".rstrip("0").rstrip(".") + '"'


def ordinal(number: int) -> str:
    if 10 <= number % 100 <= 13:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")
    return f"{number}{suffix}"


def format_floor(floor: Optional[str], placeholder: str = PLACEHOLDER) -> str:
    """Digits become ordinals (``2`` -> ``2nd FL``); names pass through."""
    if not floor:
        return f"{placeholder} FL"
    text = str(floor).strip()
    if text.isdigit():
        return f"{ordinal(int(text))} FL"
    return f"{text} FL"


def format_page_list(refs: Sequence[str], placeholder: str = PLACEHOLDER) -> str:
    """``[]`` -> placeholder, ``[a, b]`` -> ``a & b``, ``[a, b, c]`` -> ``a, b & c``."""
    items = [ref for ref in refs if ref]
    if not items:
        return placeholder
    if len(items) == 1:
        return items[0]
    return ", ".join(items[:-1]) + " & " + items[-1]


__all__ = [
    "PLACEHOLDER",
    "convert_to_feet",
    "finite",
    "format_feet_inches",
    "format_floor",
    "format_inches",
    "format_number",
    "format_page_list",
    "mean",
    "normalize_fractions",
    "ordinal",
    "parse_inches",
    "round_up_to_multiple",
]
