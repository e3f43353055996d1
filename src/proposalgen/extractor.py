"""Pattern rules that turn particulars text into :class:`ExtractedAttributes`.

Each field owns an ordered tuple of rules; the first rule returning a value
wins. Rules are plain functions of ``(text, context)`` so they can be tested
on their own and extended without touching the pipeline.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from .abbreviations import normalize_text
from .dimensions import convert_to_feet, finite, normalize_fractions, parse_inches
from .models import ExtractedAttributes

LOGGER = logging.getLogger(__name__)

# Pile wall weight factor, lbs per ft per (in * in).
STEEL_PIPE_FACTOR = 10.69
# Wall thickness assumed for a pile described by its diameter alone, inches.
DEFAULT_WALL_THICKNESS = 0.5

DIM = (
    r"\d+(?:\.\d+)?\s*'(?:\s*-?\s*\d+(?:\.\d+)?(?:[\s-]\d+/\d+)?\s*\")?"
    r"|\d+(?:\.\d+)?(?:[\s-]\d+/\d+)?\s*\""
    r"|\d+(?:\.\d+)?"
)
_DIM_FULL_RE = re.compile(rf"^\s*(?:{DIM})\s*$")
_DIAMETER_MARK = r"(?:Ø|ø|Ã˜|⌀)"
_INCH_VALUE = r"\d+(?:\.\d+)?(?:-\d+/\d+)?"

HEIGHT_TOKEN_RE = re.compile(rf"\b(?:Height|Ht|H)\s*=\s*({DIM})", re.IGNORECASE)
EMBEDMENT_TOKEN_RE = re.compile(rf"\bE\s*=\s*({DIM})")
EMBEDMENT_WORD_RE = re.compile(rf"({DIM})\s*(?:of\s+)?embedment", re.IGNORECASE)
EMBEDMENT_AFTER_RE = re.compile(rf"embedment\s*(?:=|of)?\s*({DIM})", re.IGNORECASE)
ROCK_SOCKET_TOKEN_RE = re.compile(rf"\bRS\s*=\s*({DIM})")
ROCK_SOCKET_SUFFIX_RE = re.compile(rf"({DIM})\s*(?:RS\b|rock\s+socket)", re.IGNORECASE)
WIDTH_TOKEN_RE = re.compile(rf"\b(?:Width|W)\s*=\s*({DIM})")
WIDTH_WORD_RE = re.compile(rf"({DIM})\s*wide\b", re.IGNORECASE)
LENGTH_TOKEN_RE = re.compile(rf"\b(?:Length|LF|L)\s*=\s*({DIM})")
BRACKET_RE = re.compile(r"\(([^()]*)\)")

DIAMETER_THICKNESS_RE = re.compile(
    rf"({_INCH_VALUE})\s*[\"']?\s*{_DIAMETER_MARK}\s*x\s*([0-9.]+)", re.IGNORECASE
)
DIAMETER_RE = re.compile(rf"({_INCH_VALUE})\s*[\"']?\s*{_DIAMETER_MARK}", re.IGNORECASE)
DIAMETER_WORD_RE = re.compile(rf"({_INCH_VALUE})\s*\"\s*(?:dia\b|diameter)", re.IGNORECASE)
THICKNESS_INCH_RE = re.compile(r"(\d+(?:\.\d+)?(?:-\d+/\d+)?)\s*\"\s*thick", re.IGNORECASE)
THICKNESS_FEET_RE = re.compile(r"(\d+(?:\.\d+)?)\s*'\s*thick", re.IGNORECASE)
SLAB_INCH_RE = re.compile(
    r"\b(?:slab on grade|ramp on grade|mat slab|slab)\b[^\"()\d]*(\d+(?:\.\d+)?(?:-\d+/\d+)?)\s*\"",
    re.IGNORECASE,
)
WIRE_MESH_RE = re.compile(
    r"(\d+(?:\.\d+)?\s*x\s*\d+(?:\.\d+)?(?:\s*[-–]\s*W?\d+(?:\.\d+)?\s*x\s*W?\d+(?:\.\d+)?)?)"
    r"\s*(?:welded wire mesh|W\.?W\.?M\.?)",
    re.IGNORECASE,
)
SHEET_CODE_RE = re.compile(r"\b[A-Z]{1,4}-?\d{1,4}(?:\.\d{1,2})?\b")
PAGE_REF_RE = re.compile(
    r"\b(?i:as per|per|see|ref\.?|sheet|dwg\.?)\s+"
    r"((?:[A-Z]{1,4}-?\d{1,4}(?:\.\d{1,2})?)(?:\s*(?:,|&|and)\s*[A-Z]{1,4}-?\d{1,4}(?:\.\d{1,2})?)*)",
)
FLOOR_RE = re.compile(
    r"@\s*(cellar|basement|ground|roof|mezzanine|sub-?cellar|\d+)(?:st|nd|rd|th)?\s*(?:FL|floor)\b",
    re.IGNORECASE,
)
FLOOR_ORDINAL_RE = re.compile(r"\b(\d+)(?:st|nd|rd|th)\s*(?:FL|floor)\b", re.IGNORECASE)
SHAPE_RE = re.compile(r"\b(HP|WT|MC|W)\s*(\d+(?:\.\d+)?)\s*x\s*(\d+(?:\.\d+)?)\b", re.IGNORECASE)


@dataclass(frozen=True)
class ExtractionContext:
    """Inputs a rule may consult besides the normalised text."""

    raw: str
    height_column: Optional[float] = None


Rule = Callable[[str, ExtractionContext], object]


def _dim(match: Optional[re.Match]) -> Optional[float]:
    if match is None:
        return None
    return convert_to_feet(match.group(1))


def _bracket_dims(text: str) -> Dict[str, float]:
    """First ``(a x b)`` or ``(a x b x c)`` group made only of dimensions."""
    for match in BRACKET_RE.finditer(text):
        parts = [part.strip() for part in re.split(r"\s*[xX×]\s*", match.group(1))]
        if len(parts) not in (2, 3):
            continue
        if not all(_DIM_FULL_RE.match(part) for part in parts):
            continue
        if not any(("'" in part or '"' in part) for part in parts):
            continue
        values = [convert_to_feet(part) for part in parts]
        if len(values) == 2:
            return {"width": values[0], "height": values[1]}
        return {"length": values[0], "width": values[1], "height": values[2]}
    return {}


def _repair_thickness(raw: str) -> Optional[float]:
    value = parse_inches(raw.rstrip("."))
    if value is None:
        return None
    # "0545" written without its decimal point means 0.545
    if "." not in raw and 100 <= value < 1000 and float(value).is_integer():
        return value / 1000.0
    return value


def height_from_token(text: str, ctx: ExtractionContext):
    return _dim(HEIGHT_TOKEN_RE.search(text))


def height_from_brackets(text: str, ctx: ExtractionContext):
    return _bracket_dims(text).get("height")


def height_from_column(text: str, ctx: ExtractionContext):
    return finite(ctx.height_column) or None


def embedment_from_token(text: str, ctx: ExtractionContext):
    return _dim(EMBEDMENT_TOKEN_RE.search(text))


def embedment_from_words(text: str, ctx: ExtractionContext):
    return _dim(EMBEDMENT_WORD_RE.search(text)) or _dim(EMBEDMENT_AFTER_RE.search(text))


def rock_socket_from_token(text: str, ctx: ExtractionContext):
    return _dim(ROCK_SOCKET_TOKEN_RE.search(text))


def rock_socket_from_suffix(text: str, ctx: ExtractionContext):
    return _dim(ROCK_SOCKET_SUFFIX_RE.search(text))


def width_from_brackets(text: str, ctx: ExtractionContext):
    return _bracket_dims(text).get("width")


def width_from_token(text: str, ctx: ExtractionContext):
    return _dim(WIDTH_TOKEN_RE.search(text)) or _dim(WIDTH_WORD_RE.search(text))


def length_from_token(text: str, ctx: ExtractionContext):
    return _dim(LENGTH_TOKEN_RE.search(text))


def length_from_brackets(text: str, ctx: ExtractionContext):
    return _bracket_dims(text).get("length")


def diameter_from_pipe(text: str, ctx: ExtractionContext):
    match = DIAMETER_THICKNESS_RE.search(text) or DIAMETER_RE.search(text)
    return parse_inches(match.group(1)) if match else None


def diameter_from_words(text: str, ctx: ExtractionContext):
    match = DIAMETER_WORD_RE.search(text)
    return parse_inches(match.group(1)) if match else None


def thickness_from_pipe(text: str, ctx: ExtractionContext):
    match = DIAMETER_THICKNESS_RE.search(text)
    return _repair_thickness(match.group(2)) if match else None


def thickness_from_inches(text: str, ctx: ExtractionContext):
    match = THICKNESS_INCH_RE.search(text)
    return parse_inches(match.group(1)) if match else None


def thickness_from_feet(text: str, ctx: ExtractionContext):
    match = THICKNESS_FEET_RE.search(text)
    return finite(float(match.group(1)) * 12.0) if match else None


def thickness_from_slab(text: str, ctx: ExtractionContext):
    match = SLAB_INCH_RE.search(text)
    return parse_inches(match.group(1)) if match else None


def wire_mesh_spec(text: str, ctx: ExtractionContext):
    match = WIRE_MESH_RE.search(text)
    if match is None:
        return None
    return re.sub(r"\s+", "", match.group(1)).replace("X", "x")


def shape_designation(text: str, ctx: ExtractionContext):
    match = SHAPE_RE.search(text)
    if match is None:
        return None
    return f"{match.group(1).upper()}{match.group(2)}x{match.group(3)}"


def floor_reference(text: str, ctx: ExtractionContext):
    match = FLOOR_RE.search(text) or FLOOR_ORDINAL_RE.search(text)
    return match.group(1).lower() if match else None


def page_refs_from_text(text: str, ctx: ExtractionContext):
    refs: List[str] = []
    for match in PAGE_REF_RE.finditer(ctx.raw):
        for code in SHEET_CODE_RE.findall(match.group(1)):
            if code not in refs:
                refs.append(code)
    return tuple(refs) or None


FIELD_RULES: Mapping[str, Tuple[Rule, ...]] = {
    "diameter": (diameter_from_pipe, diameter_from_words),
    "thickness": (thickness_from_pipe, thickness_from_inches, thickness_from_feet, thickness_from_slab),
    "height_feet": (height_from_token, height_from_brackets, height_from_column),
    "embedment_feet": (embedment_from_token, embedment_from_words),
    "rock_socket_feet": (rock_socket_from_token, rock_socket_from_suffix),
    "width_feet": (width_from_brackets, width_from_token),
    "length_feet": (length_from_token, length_from_brackets),
    "wire_mesh_spec": (wire_mesh_spec,),
    "shape": (shape_designation,),
    "floor": (floor_reference,),
    "page_refs": (page_refs_from_text,),
}


def _first_match(field: str, rules: Tuple[Rule, ...], text: str, ctx: ExtractionContext):
    for rule in rules:
        try:
            value = rule(text, ctx)
        except (ValueError, ArithmeticError) as exc:
            LOGGER.debug("extractor: %s rule %s failed on %r: %s", field, rule.__name__, ctx.raw, exc)
            continue
        if value is not None:
            return value
    return None


def weight_per_foot(shape: Optional[str], diameter: Optional[float], thickness: Optional[float]) -> Optional[float]:
    """Nominal lbs/ft for a rolled shape, else the pipe-wall formula."""
    if shape:
        nominal = shape.lower().rsplit("x", 1)[-1]
        try:
            return finite(nominal)
        except ValueError:
            return None
    if diameter and thickness and diameter > thickness:
        return (diameter - thickness) * thickness * STEEL_PIPE_FACTOR
    return None


def prepare_text(text: Optional[str]) -> str:
    """Unicode fractions and shorthand expanded, whitespace collapsed."""
    if not text:
        return ""
    collapsed = re.sub(r"\s+", " ", normalize_fractions(str(text))).strip()
    return normalize_text(collapsed)


def extract_attributes(text: Optional[str], height_column: Optional[float] = None) -> ExtractedAttributes:
    """Pull every known attribute out of ``text``; misses stay ``None``."""
    raw = normalize_fractions(str(text or ""))
    prepared = prepare_text(raw)
    ctx = ExtractionContext(raw=raw, height_column=height_column)
    values = {field: _first_match(field, rules, prepared, ctx) for field, rules in FIELD_RULES.items()}
    values["page_refs"] = values["page_refs"] or ()
    values["weight_per_ft"] = weight_per_foot(values["shape"], values["diameter"], values["thickness"])
    missing = [field for field, value in values.items() if value is None or value == ()]
    if missing and prepared:
        LOGGER.debug("extractor: %r missing %s", prepared, ", ".join(missing))
    return ExtractedAttributes(**values)


__all__ = [
    "FIELD_RULES",
    "DEFAULT_WALL_THICKNESS",
    "ExtractionContext",
    "extract_attributes",
    "prepare_text",
    "weight_per_foot",
]
