from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

# Output units in proposal column order.
UNITS: Tuple[str, ...] = ("LF", "SF", "LBS", "CY", "QTY", "LS")

# Aggregate worksheet column feeding each unit.
UNIT_COLUMNS: Dict[str, str] = {
    "LF": "ft",
    "SF": "sq_ft",
    "LBS": "lbs",
    "CY": "cy",
    "QTY": "qty_total",
}


@dataclass(frozen=True)
class Row:
    """One record of the calculation worksheet, read once and never mutated."""

    index: int
    sheet_row: int
    marker: Optional[str] = None
    particulars: Optional[str] = None
    takeoff: float = 0.0
    unit: str = ""
    qty: float = 0.0
    length: float = 0.0
    width: float = 0.0
    height: float = 0.0
    ft: float = 0.0
    sq_ft: float = 0.0
    lbs: float = 0.0
    cy: float = 0.0
    qty_total: float = 0.0

    @property
    def has_particulars(self) -> bool:
        return bool(self.particulars and self.particulars.strip())

    @property
    def has_aggregate(self) -> bool:
        return any(getattr(self, column) for column in UNIT_COLUMNS.values())

    @property
    def is_blank(self) -> bool:
        return not (self.marker or self.has_particulars or self.takeoff or self.has_aggregate)


@dataclass(frozen=True)
class ExtractedAttributes:
    """Structured values pulled from free text; every field is optional."""

    diameter: Optional[float] = None
    thickness: Optional[float] = None
    height_feet: Optional[float] = None
    embedment_feet: Optional[float] = None
    rock_socket_feet: Optional[float] = None
    width_feet: Optional[float] = None
    length_feet: Optional[float] = None
    wire_mesh_spec: Optional[str] = None
    shape: Optional[str] = None
    weight_per_ft: Optional[float] = None
    floor: Optional[str] = None
    page_refs: Tuple[str, ...] = ()

    def get(self, name: str):
        return getattr(self, name, None)


@dataclass(frozen=True)
class Item:
    row: Row
    text: str
    attributes: ExtractedAttributes

    @property
    def sheet_row(self) -> int:
        return self.row.sheet_row

    @property
    def takeoff(self) -> float:
        return self.row.takeoff


@dataclass
class Subsection:
    name: str
    key: str
    header_row: Optional[Row] = None
    items: List[Item] = field(default_factory=list)
    sum_row: Optional[Row] = None

    @property
    def first_item_row(self) -> Optional[int]:
        return self.items[0].sheet_row if self.items else None

    @property
    def last_item_row(self) -> Optional[int]:
        return self.items[-1].sheet_row if self.items else None


@dataclass
class Section:
    name: str
    header_row: Optional[Row] = None
    subsections: List[Subsection] = field(default_factory=list)


@dataclass(frozen=True)
class Group:
    """Items of one subsection sharing an identity key."""

    key: Tuple
    items: Tuple[Item, ...]
    quantity: float
    attributes: ExtractedAttributes
    totals: Dict[str, float]
    sum_row: Optional[Row] = None

    @property
    def sheet_rows(self) -> Tuple[int, ...]:
        if not self.items and self.sum_row is not None:
            return (self.sum_row.sheet_row,)
        return tuple(item.sheet_row for item in self.items)

    @property
    def text(self) -> str:
        return self.items[0].text if self.items else ""


@dataclass(frozen=True)
class RateCatalogEntry:
    description: str
    prices: Dict[str, float]

    def price_for(self, unit: str) -> Optional[float]:
        return self.prices.get(unit)


@dataclass(frozen=True)
class SynthesizedLine:
    description: str
    section: str
    subsection: str
    category: str
    values: Dict[str, float]
    sources: Dict[str, str]
    source_rows: Tuple[int, ...]
    rate_key: str
    rate: Optional[RateCatalogEntry] = None

    @property
    def priced(self) -> bool:
        return self.rate is not None and any(
            self.rate.price_for(unit) is not None for unit in UNITS
        )

    @property
    def price(self) -> float:
        if self.rate is None:
            return 0.0
        total = 0.0
        for unit in UNITS:
            unit_price = self.rate.price_for(unit)
            if unit_price is None:
                continue
            total += self.values.get(unit, 0.0) * unit_price
        return total


@dataclass
class SectionTotal:
    section: str
    row_refs: List[int] = field(default_factory=list)
    prices: List[float] = field(default_factory=list)
    subtotal_row: Optional[int] = None

    @property
    def total(self) -> float:
        return sum(self.prices)


@dataclass
class ProposalResult:
    sections: List[Section]
    lines: List[SynthesizedLine]
    section_totals: List[SectionTotal]
    unused_rows: List[Row]
    grand_total_row: Optional[int] = None
    workbook: object = field(default=None, compare=False, repr=False)

    @property
    def grand_total(self) -> float:
        return sum(total.total for total in self.section_totals)
