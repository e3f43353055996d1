"""Scope category registry.

One :class:`CategoryDescriptor` per scope category. Dispatch walks
:data:`REGISTRY` in order and takes the first descriptor that matches, so
more specific categories sit above broader ones and ``generic`` is last.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Optional, Tuple

from .worksheet import subsection_synonyms

ALL_UNITS = ("LF", "SF", "LBS", "CY", "QTY")

# Placeholders a template may use.
PLACEHOLDERS = frozenset(
    {
        "qty",
        "diameter",
        "thickness",
        "height",
        "embedment",
        "rock_socket",
        "depth",
        "width",
        "length",
        "wire_mesh",
        "floor",
        "shape",
        "pages",
        "subject",
        "body",
        "element",
    }
)


def _keys(*names: str) -> Tuple[str, ...]:
    keys = []
    for name in names:
        for key in subsection_synonyms(name):
            if key not in keys:
                keys.append(key)
    return tuple(keys)


@dataclass(frozen=True)
class CategoryDescriptor:
    """A scope category: match predicate, merge key, template and rate policy.

    ``key_fields=None`` marks a one-off category whose items never merge;
    an empty tuple merges every item of the subsection into one group.
    ``rounded_fields`` are averaged then rounded up to the next 5 ft.
    ``rate_key`` names the catalog row when the rate depends on scope rather
    than the wording of the line.
    ``height_allowance`` is added to the rendered height (feet).
    """

    name: str
    template: str
    sections: Tuple[str, ...] = ()
    subsections: Tuple[str, ...] = ()
    keywords: Tuple[str, ...] = ()
    excludes: Tuple[str, ...] = ()
    pattern: Optional[str] = None
    key_fields: Optional[Tuple[str, ...]] = ()
    key_required: Tuple[str, ...] = ()
    rounded_fields: Tuple[str, ...] = ()
    required: FrozenSet[str] = frozenset()
    units: Tuple[str, ...] = ALL_UNITS
    rate_key: Optional[str] = None
    weight_fallback: bool = False
    height_allowance: float = 0.0

    def matches(self, section: Optional[str], subsection_key: str, text: str) -> bool:
        if self.sections and section not in self.sections:
            return False
        lowered = text.lower()
        if any(word in lowered for word in self.excludes):
            return False
        if self.pattern and not re.search(self.pattern, lowered):
            return False
        if not self.subsections and not self.keywords:
            return True
        if subsection_key in self.subsections:
            return True
        return any(word in lowered for word in self.keywords)

    @property
    def merges(self) -> bool:
        return self.key_fields is not None


PILE_KEY = ("diameter", "thickness", "height_feet", "rock_socket_feet", "embedment_feet")
PILE_ROUNDING = ("height_feet", "embedment_feet", "rock_socket_feet")
PILE_UNITS = ("LF", "LBS", "QTY")

_PITS = r"(?:deep sewage ejector|duplex sewage ejector|elev\.?|elevator|detention tank|grease trap|house trap)"
PIT_WALL_PATTERN = _PITS + r"(?: pit)? wall"
PIT_SLAB_PATTERN = _PITS + r"(?: pit)?(?: lid)? slab"

REGISTRY: Tuple[CategoryDescriptor, ...] = (
    # Demolition
    CategoryDescriptor(
        name="demo_slab",
        sections=("Demolition",),
        subsections=_keys("Demo slab on grade", "Demo Ramp on grade"),
        keywords=("slab on grade", "ramp on grade"),
        template="Demo existing {thickness} thick {subject} as per {pages}",
        key_fields=("thickness",),
        key_required=("thickness",),
        required=frozenset({"thickness"}),
        units=("SF", "CY"),
    ),
    CategoryDescriptor(
        name="demolition",
        sections=("Demolition",),
        template="Demo existing {subject} as per {pages}",
        key_fields=(),
        units=("LF", "SF", "CY", "QTY"),
    ),
    # Excavation
    CategoryDescriptor(
        name="rock_excavation",
        sections=("Rock Excavation",),
        subsections=_keys("Excavation", "Rock excavation"),
        keywords=("rock excavation",),
        template="Rock excavation & off-site disposal as per {pages}",
        units=("CY",),
        rate_key="Rock excavation",
    ),
    CategoryDescriptor(
        name="line_drill",
        sections=("Rock Excavation",),
        subsections=_keys("Line drill"),
        keywords=("line drill",),
        template="Line drilling as per {pages}",
        units=("LF",),
        rate_key="Line drilling",
    ),
    CategoryDescriptor(
        name="backfill",
        subsections=_keys("Backfill"),
        keywords=("backfill",),
        sections=("Excavation",),
        template="F&I new backfill as per {pages}",
        units=("CY",),
        rate_key="Backfill",
    ),
    CategoryDescriptor(
        name="mud_slab",
        subsections=_keys("Mud slab"),
        keywords=("mud slab",),
        template="F&I new {thickness} thick mud slab as per {pages}",
        key_fields=("thickness",),
        required=frozenset({"thickness"}),
        units=("SF", "CY"),
    ),
    CategoryDescriptor(
        name="excavation",
        sections=("Excavation",),
        template="Excavation & off-site disposal of soil as per {pages}",
        units=("CY",),
        rate_key="Excavation",
    ),
    # SOE
    CategoryDescriptor(
        name="hp_soldier_pile",
        sections=("SOE",),
        subsections=_keys("Drilled soldier pile", "Soldier pile"),
        keywords=("soldier pile",),
        pattern=r"\bhp\s*\d",
        template="F&I new ({qty})no {shape} soldier piles (H={height}) as per {pages}",
        key_fields=("shape", "height_feet"),
        key_required=("shape",),
        rounded_fields=PILE_ROUNDING,
        required=frozenset({"shape", "height"}),
        units=PILE_UNITS,
        rate_key="HP soldier pile",
        weight_fallback=True,
    ),
    CategoryDescriptor(
        name="drilled_soldier_pile",
        sections=("SOE",),
        subsections=_keys("Drilled soldier pile", "Soldier pile"),
        keywords=("soldier pile",),
        excludes=("secant", "tangent", "supporting angle", "timber"),
        template=(
            "F&I new ({qty})no [{diameter} Øx{thickness} thick] drilled soldier piles "
            "(H={height}, {depth}) as per {pages}"
        ),
        key_fields=PILE_KEY,
        key_required=("diameter", "height_feet"),
        rounded_fields=PILE_ROUNDING,
        required=frozenset({"diameter", "thickness", "height", "depth"}),
        units=PILE_UNITS,
        rate_key="Drilled soldier pile",
        weight_fallback=True,
    ),
    CategoryDescriptor(
        name="primary_secant_pile",
        sections=("SOE",),
        subsections=_keys("Primary secant piles"),
        keywords=("primary secant",),
        template="F&I new ({qty})no {diameter} Ø primary secant piles (H={height}) as per {pages}",
        key_fields=("diameter", "height_feet"),
        key_required=("diameter",),
        rounded_fields=PILE_ROUNDING,
        required=frozenset({"diameter", "height"}),
        units=("LF", "CY", "QTY"),
        rate_key="Primary secant pile",
    ),
    CategoryDescriptor(
        name="secondary_secant_pile",
        sections=("SOE",),
        subsections=_keys("Secondary secant piles"),
        keywords=("secondary secant",),
        template="F&I new ({qty})no {diameter} Ø secondary secant piles (H={height}) as per {pages}",
        key_fields=("diameter", "height_feet"),
        key_required=("diameter",),
        rounded_fields=PILE_ROUNDING,
        required=frozenset({"diameter", "height"}),
        units=("LF", "CY", "QTY"),
        rate_key="Secondary secant pile",
    ),
    CategoryDescriptor(
        name="tangent_pile",
        sections=("SOE",),
        subsections=_keys("Tangent piles"),
        keywords=("tangent pile",),
        template="F&I new ({qty})no {diameter} Ø tangent piles (H={height}) as per {pages}",
        key_fields=("diameter", "height_feet"),
        key_required=("diameter",),
        rounded_fields=PILE_ROUNDING,
        required=frozenset({"diameter", "height"}),
        units=("LF", "CY", "QTY"),
        rate_key="Tangent pile",
    ),
    CategoryDescriptor(
        name="sheet_pile",
        sections=("SOE",),
        subsections=_keys("Sheet pile"),
        keywords=("sheet pile",),
        template="F&I new sheet piles (H={height}) as per {pages}",
        key_fields=("height_feet",),
        rounded_fields=PILE_ROUNDING,
        required=frozenset({"height"}),
        units=("SF", "LBS"),
        rate_key="Sheet pile",
    ),
    CategoryDescriptor(
        name="timber_lagging",
        sections=("SOE",),
        subsections=_keys("Timber lagging"),
        keywords=("lagging",),
        template="F&I new {thickness} thick timber lagging as per {pages}",
        key_fields=("thickness",),
        units=("SF",),
        rate_key="Timber lagging",
    ),
    CategoryDescriptor(
        name="timber_member",
        sections=("SOE",),
        subsections=_keys(
            "Timber sheeting",
            "Timber soldier piles",
            "Timber planks",
            "Timber waler",
            "Timber raker",
            "Timber brace",
            "Timber post",
            "Vertical timber sheets",
            "Horizontal timber sheets",
            "Timber stringer",
            "Backpacking",
        ),
        template="F&I new {body} as per {pages}",
        key_fields=("text",),
        units=("LF", "SF", "QTY"),
    ),
    CategoryDescriptor(
        name="steel_bracing",
        sections=("SOE",),
        subsections=_keys(
            "Waler",
            "Raker",
            "Upper Raker",
            "Lower Raker",
            "Stand off",
            "Kicker",
            "Channel",
            "Roll chock",
            "Stud beam",
            "Inner corner brace",
            "Knee brace",
            "Supporting angle",
        ),
        template="F&I new {shape} {subject} as per {pages}",
        key_fields=("shape",),
        key_required=("shape",),
        required=frozenset({"shape"}),
        units=("LF", "LBS", "QTY"),
    ),
    CategoryDescriptor(
        name="rock_anchor",
        sections=("SOE",),
        subsections=_keys("Rock anchors"),
        keywords=("rock anchor",),
        template="F&I new ({qty})no rock anchors (L={length}, {rock_socket} rock socket) as per {pages}",
        key_fields=("length_feet", "rock_socket_feet"),
        key_required=("length_feet",),
        rounded_fields=("length_feet", "rock_socket_feet", "embedment_feet"),
        required=frozenset({"length", "rock_socket"}),
        units=("QTY",),
        rate_key="Rock anchor",
    ),
    CategoryDescriptor(
        name="tie_back",
        sections=("SOE",),
        subsections=_keys("Tie back", "Anchor"),
        keywords=("tie back", "tieback", "tie-back"),
        template="F&I new ({qty})no tie back anchors (L={length}, {embedment} embedment) as per {pages}",
        key_fields=("length_feet", "embedment_feet"),
        key_required=("length_feet",),
        rounded_fields=("length_feet", "embedment_feet"),
        required=frozenset({"length", "embedment"}),
        units=("QTY",),
        rate_key="Tie back anchor",
    ),
    CategoryDescriptor(
        name="rock_bolt",
        sections=("SOE",),
        subsections=_keys("Rock bolts", "Rock pins", "Dowel bar"),
        keywords=("rock bolt", "rock pin", "dowel"),
        template="F&I new ({qty})no {subject} (L={length}) as per {pages}",
        key_fields=("length_feet",),
        rounded_fields=("length_feet",),
        required=frozenset({"length"}),
        units=("QTY",),
    ),
    CategoryDescriptor(
        name="shotcrete",
        subsections=_keys("Shotcrete"),
        keywords=("shotcrete",),
        template="F&I new {thickness} thick shotcrete as per {pages}",
        key_fields=("thickness",),
        required=frozenset({"thickness"}),
        units=("SF", "CY"),
    ),
    CategoryDescriptor(
        name="parging",
        subsections=_keys("Parging"),
        keywords=("parging",),
        template="F&I new {thickness} thick parging as per {pages}",
        key_fields=("thickness",),
        required=frozenset({"thickness"}),
        units=("SF",),
    ),
    CategoryDescriptor(
        name="guide_wall",
        subsections=_keys("Guide wall", "Guilde wall"),
        keywords=("guide wall", "guilde wall"),
        template="F&I new guide wall ({width} wide x {height} high) as per {pages}",
        key_fields=("width_feet",),
        required=frozenset({"width", "height"}),
        units=("LF", "CY"),
        rate_key="Guide wall",
    ),
    CategoryDescriptor(
        name="concrete_buttons",
        subsections=_keys("Concrete buttons", "Buttons"),
        keywords=("concrete button", "button"),
        template="F&I new ({qty})no concrete buttons ({width} x {height}) as per {pages}",
        key_fields=("width_feet", "height_feet"),
        required=frozenset({"width", "height"}),
        units=("CY", "QTY"),
        rate_key="Concrete buttons",
    ),
    CategoryDescriptor(
        name="underpinning",
        subsections=_keys("Underpinning"),
        keywords=("underpinning",),
        template="F&I new underpinning ({width} wide, H={height}) as per {pages}",
        key_fields=("width_feet",),
        required=frozenset({"width", "height"}),
        units=("LF", "CY"),
    ),
    # Foundation
    CategoryDescriptor(
        name="drilled_foundation_pile",
        sections=("Foundation",),
        subsections=_keys("Drilled foundation pile", "Piles"),
        keywords=("drilled foundation pile", "caisson", "cassion"),
        excludes=("helical", "driven", "cfa", "stelcor"),
        template=(
            "F&I new ({qty})no {diameter} Øx{thickness} thick drilled foundation piles "
            "(H={height}, {depth}) as per {pages}"
        ),
        key_fields=PILE_KEY,
        key_required=("diameter", "height_feet"),
        rounded_fields=PILE_ROUNDING,
        required=frozenset({"diameter", "thickness", "height", "depth"}),
        units=PILE_UNITS,
        rate_key="Drilled foundation pile",
        weight_fallback=True,
    ),
    CategoryDescriptor(
        name="helical_pile",
        sections=("Foundation",),
        subsections=_keys("Helical foundation pile"),
        keywords=("helical",),
        template="F&I new ({qty})no helical piles (H={height}) as per {pages}",
        key_fields=("height_feet",),
        rounded_fields=PILE_ROUNDING,
        required=frozenset({"height"}),
        units=("LF", "QTY"),
        rate_key="Helical pile",
    ),
    CategoryDescriptor(
        name="driven_pile",
        sections=("Foundation",),
        subsections=_keys("Driven foundation pile"),
        keywords=("driven pile", "driven foundation pile"),
        template="F&I new ({qty})no {shape} driven piles (H={height}) as per {pages}",
        key_fields=("shape", "height_feet"),
        rounded_fields=PILE_ROUNDING,
        required=frozenset({"shape", "height"}),
        units=PILE_UNITS,
        rate_key="Driven pile",
        weight_fallback=True,
    ),
    CategoryDescriptor(
        name="cfa_pile",
        sections=("Foundation",),
        subsections=_keys("CFA pile", "Stelcor drilled displacement pile"),
        keywords=("cfa pile", "stelcor"),
        template="F&I new ({qty})no {diameter} Ø {subject} (H={height}) as per {pages}",
        key_fields=("diameter", "height_feet"),
        rounded_fields=PILE_ROUNDING,
        required=frozenset({"diameter", "height"}),
        units=("LF", "QTY"),
    ),
    CategoryDescriptor(
        name="pile_cap",
        sections=("Foundation",),
        subsections=_keys("Pile caps"),
        keywords=("pile cap",),
        template="F&I new ({qty})no pile caps as per {pages}",
        units=("CY", "QTY"),
        rate_key="Pile caps",
    ),
    CategoryDescriptor(
        name="strip_footing",
        sections=("Foundation",),
        subsections=_keys("Strip Footings"),
        keywords=("strip footing",),
        template="F&I new strip footings ({width} wide x {height} deep) as per {pages}",
        key_fields=("width_feet",),
        required=frozenset({"width", "height"}),
        units=("LF", "CY"),
    ),
    CategoryDescriptor(
        name="isolated_footing",
        sections=("Foundation",),
        subsections=_keys("Isolated Footings"),
        keywords=("isolated footing",),
        template="F&I new ({qty})no isolated footings as per {pages}",
        units=("CY", "QTY"),
    ),
    CategoryDescriptor(
        name="foundation_beam",
        sections=("Foundation",),
        subsections=_keys("Grade beams", "Tie beam", "Strap beams"),
        keywords=("grade beam", "tie beam", "strap beam"),
        template="F&I new {subject} ({width} wide x {height} deep) as per {pages}",
        key_fields=("width_feet",),
        required=frozenset({"width", "height"}),
        units=("LF", "CY"),
    ),
    CategoryDescriptor(
        name="foundation_wall",
        sections=("Foundation",),
        subsections=_keys("Foundation Wall", "Retaining walls", "Linear Wall", "Barrier wall", "Stem wall"),
        keywords=("foundation wall", "retaining wall", "stem wall", "barrier wall"),
        template="F&I new {width} thick {subject} (H={height}) as per {pages}",
        key_fields=("width_feet",),
        required=frozenset({"width", "height"}),
        units=("SF", "CY"),
    ),
    CategoryDescriptor(
        name="pit",
        sections=("Foundation",),
        subsections=_keys(
            "Elevator Pit",
            "Service elevator pit",
            "Detention tank",
            "Duplex sewage ejector pit",
            "Deep sewage ejector pit",
            "Sump pump pit",
            "Grease trap",
            "House trap",
        ),
        template="F&I new {body} as per {pages}",
        key_fields=None,
        units=("SF", "CY", "QTY"),
    ),
    CategoryDescriptor(
        name="slab_on_grade",
        sections=("Foundation", "Superstructure"),
        subsections=_keys("SOG", "Slab on grade"),
        keywords=("slab on grade",),
        template="F&I new {thickness} thick slab on grade w/{wire_mesh} welded wire mesh @ {floor} as per {pages}",
        key_fields=("thickness", "wire_mesh_spec", "floor"),
        required=frozenset({"thickness", "wire_mesh", "floor"}),
        units=("SF", "CY"),
    ),
    CategoryDescriptor(
        name="mat_slab",
        sections=("Foundation",),
        subsections=_keys("Mat slab"),
        keywords=("mat slab",),
        template="F&I new {thickness} thick mat slab as per {pages}",
        key_fields=("thickness",),
        required=frozenset({"thickness"}),
        units=("SF", "CY"),
    ),
    # Waterproofing
    CategoryDescriptor(
        name="exterior_pit_waterproofing",
        sections=("Waterproofing",),
        subsections=_keys("Exterior side"),
        excludes=("slab",),
        pattern=PIT_WALL_PATTERN,
        template="F&I new waterproofing @ exterior side of {element} (H={height}) as per {pages}",
        key_fields=None,
        required=frozenset({"height"}),
        units=("SF",),
        rate_key="Exterior side waterproofing",
        height_allowance=2.0,
    ),
    CategoryDescriptor(
        name="exterior_wall_waterproofing",
        sections=("Waterproofing",),
        subsections=_keys("Exterior side"),
        pattern=r"\b(?:foundation|retaining|vehicle barrier|concrete liner|stem) wall\s*\(",
        template="F&I new waterproofing @ exterior side of {width} thick {element} (H={height}) as per {pages}",
        key_fields=("width_feet",),
        required=frozenset({"width", "height"}),
        units=("SF",),
        rate_key="Exterior side waterproofing",
        height_allowance=2.0,
    ),
    CategoryDescriptor(
        name="negative_slab_waterproofing",
        sections=("Waterproofing",),
        subsections=_keys("Negative side"),
        pattern=PIT_SLAB_PATTERN,
        template="F&I new negative side waterproofing @ {body} as per {pages}",
        key_fields=("text",),
        units=("SF",),
        rate_key="Negative side waterproofing",
    ),
    CategoryDescriptor(
        name="negative_wall_waterproofing",
        sections=("Waterproofing",),
        subsections=_keys("Negative side"),
        excludes=("slab",),
        pattern=PIT_WALL_PATTERN,
        template="F&I new negative side waterproofing @ {element} (H={height}) as per {pages}",
        key_fields=None,
        required=frozenset({"height"}),
        units=("SF",),
        rate_key="Negative side waterproofing",
    ),
    CategoryDescriptor(
        name="waterproofing",
        sections=("Waterproofing",),
        template="F&I new waterproofing @ {body} as per {pages}",
        key_fields=("text",),
        units=("LF", "SF"),
    ),
    # Superstructure
    CategoryDescriptor(
        name="cip_slab",
        sections=("Superstructure",),
        subsections=_keys(
            "CIP Slabs",
            "Balcony slab",
            "Terrace slab",
            "Patch slab",
            "LW concrete fill",
            "Slab on metal deck",
            "Topping slab",
            "Raised slab",
            "Built-up slab",
        ),
        template="F&I new {thickness} thick {subject} @ {floor} as per {pages}",
        key_fields=("thickness", "floor"),
        required=frozenset({"thickness", "floor"}),
        units=("SF", "CY"),
    ),
    CategoryDescriptor(
        name="concrete_wall",
        sections=("Superstructure",),
        subsections=_keys("Shear Walls", "Parapet walls"),
        template="F&I new {width} thick {subject} (H={height}) as per {pages}",
        key_fields=("width_feet",),
        required=frozenset({"width", "height"}),
        units=("SF", "CY"),
    ),
    CategoryDescriptor(
        name="concrete_column",
        sections=("Superstructure",),
        subsections=_keys("Columns", "Concrete post"),
        template="F&I new ({qty})no concrete {subject} @ {floor} as per {pages}",
        key_fields=("floor",),
        units=("CY", "QTY"),
    ),
    # B.P.P. alternate and civil / sitework
    CategoryDescriptor(
        name="asphalt",
        sections=("B.P.P. Alternate #2 scope", "Civil / Sitework"),
        subsections=_keys("Full depth asphalt pavement", "Asphalt"),
        keywords=("asphalt",),
        template="F&I new {body} as per {pages}",
        key_fields=("text",),
        units=("SF",),
    ),
    CategoryDescriptor(
        name="concrete_paving",
        sections=("B.P.P. Alternate #2 scope", "Civil / Sitework"),
        subsections=_keys("Concrete sidewalk", "Concrete driveway", "Concrete Pavement", "Conc road base"),
        keywords=("sidewalk", "driveway"),
        template="F&I new {thickness} thick {subject} as per {pages}",
        key_fields=("thickness",),
        required=frozenset({"thickness"}),
        units=("SF",),
    ),
    CategoryDescriptor(
        name="curb",
        sections=("B.P.P. Alternate #2 scope", "Civil / Sitework"),
        subsections=_keys("Concrete curb", "Concrete flush curb"),
        keywords=("curb",),
        template="F&I new {subject} as per {pages}",
        units=("LF",),
    ),
    CategoryDescriptor(
        name="gravel",
        subsections=_keys("Gravel"),
        keywords=("gravel",),
        template="F&I new {thickness} thick gravel as per {pages}",
        key_fields=("thickness",),
        required=frozenset({"thickness"}),
        units=("SF", "CY"),
    ),
    CategoryDescriptor(
        name="generic",
        template="{body} as per {pages}",
        key_fields=("text",),
    ),
)

_BY_NAME = {descriptor.name: descriptor for descriptor in REGISTRY}
GENERIC = _BY_NAME["generic"]


def get_category(name: str) -> CategoryDescriptor:
    return _BY_NAME[name]


def categorize(
    section: Optional[str],
    subsection_key: str,
    text: str,
    registry: Iterable[CategoryDescriptor] = REGISTRY,
) -> CategoryDescriptor:
    for descriptor in registry:
        if descriptor.matches(section, subsection_key, text):
            return descriptor
    return GENERIC


__all__ = [
    "ALL_UNITS",
    "CategoryDescriptor",
    "GENERIC",
    "PLACEHOLDERS",
    "REGISTRY",
    "categorize",
    "get_category",
]
