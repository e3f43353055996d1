from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd

from .abbreviations import normalize_text
from .models import Row

LOGGER = logging.getLogger(__name__)

DEFAULT_SHEET = "Calculations Sheet"

# Calculation worksheet columns A-M.
COLUMN_FIELDS: Tuple[str, ...] = (
    "marker",
    "particulars",
    "takeoff",
    "unit",
    "qty",
    "length",
    "width",
    "height",
    "ft",
    "sq_ft",
    "lbs",
    "cy",
    "qty_total",
)
NUMERIC_FIELDS = ("takeoff", "qty", "length", "width", "height", "ft", "sq_ft", "lbs", "cy", "qty_total")
TEXT_FIELDS = ("marker", "particulars", "unit")

HEADER_ALIASES: Dict[str, str] = {
    "estimate": "marker",
    "particulars": "particulars",
    "takeoff": "takeoff",
    "unit": "unit",
    "length": "length",
    "width": "width",
    "height": "height",
    "ft": "ft",
    "lf": "ft",
    "sq ft": "sq_ft",
    "sqft": "sq_ft",
    "sf": "sq_ft",
    "lbs": "lbs",
    "cy": "cy",
}

SECTION_NAMES: Tuple[str, ...] = (
    "Demolition",
    "Excavation",
    "Rock Excavation",
    "SOE",
    "Foundation",
    "Waterproofing",
    "Trenching",
    "Superstructure",
    "B.P.P. Alternate #2 scope",
    "Civil / Sitework",
)

SECTION_ALIASES: Dict[str, str] = {
    "demolition": "Demolition",
    "excavation": "Excavation",
    "rock excavation": "Rock Excavation",
    "soe": "SOE",
    "support of excavation": "SOE",
    "foundation": "Foundation",
    "foundations": "Foundation",
    "waterproofing": "Waterproofing",
    "trenching": "Trenching",
    "superstructure": "Superstructure",
    "b.p.p. alternate #2 scope": "B.P.P. Alternate #2 scope",
    "bpp alternate #2 scope": "B.P.P. Alternate #2 scope",
    "civil / sitework": "Civil / Sitework",
    "civil/sitework": "Civil / Sitework",
    "civil sitework": "Civil / Sitework",
    "sitework": "Civil / Sitework",
}

# Misspellings and short forms seen in worksheets. Both spellings stay
# recognised; neither is rewritten into the other.
SUBSECTION_SYNONYMS: Tuple[Tuple[str, ...], ...] = (
    ("guide wall", "guilde wall"),
    ("concrete buttons", "buttons"),
    ("slab on grade", "sog"),
    ("demo slab on grade", "demo sog"),
    ("demo strip footing", "demo sf"),
    ("strip footings", "strip footing"),
    ("retaining walls", "retaining wall"),
    ("foundation wall", "foundation walls"),
)

PAGE_TOKEN_RE = re.compile(r"[A-Z]{1,4}-?\d{1,4}(?:\.\d{1,2})?|\b\d{1,4}(?:\.\d{1,2})?\b")


def _clean_text(value) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str) and pd.isna(value):
        return None
    text = str(value).strip()
    return text or None


def normalize_name(text: Optional[str]) -> str:
    """Case-folded, abbreviation-expanded, colon-stripped name."""
    if not text:
        return ""
    collapsed = re.sub(r"\s+", " ", str(text)).strip().rstrip(":").strip()
    return normalize_text(collapsed).lower()


def section_for_marker(marker: Optional[str]) -> Optional[str]:
    if not marker:
        return None
    key = re.sub(r"\s+", " ", marker).strip().rstrip(":").strip().lower()
    return SECTION_ALIASES.get(key)


def subsection_synonyms(name: str) -> Tuple[str, ...]:
    """Every recognised spelling of ``name`` (itself included)."""
    key = normalize_name(name)
    for group in SUBSECTION_SYNONYMS:
        normalized = tuple(normalize_name(entry) for entry in group)
        if key in normalized:
            return tuple(dict.fromkeys((key,) + normalized))
    return (key,)


@dataclass(frozen=True)
class Worksheet:
    """Snapshot of the calculation sheet: raw cells plus parsed rows."""

    name: str
    cells: Tuple[Tuple[object, ...], ...]
    rows: Tuple[Row, ...]
    header_row: Optional[int] = None
    coerced_cells: int = 0
    columns: Dict[str, int] = field(default_factory=dict)


def _column_map(header: Sequence[object]) -> Dict[int, str]:
    mapping: Dict[int, str] = {}
    seen_qty = False
    for position, label in enumerate(header):
        text = _clean_text(label)
        if text is None:
            continue
        key = text.lower()
        if key == "qty":
            mapping[position] = "qty_total" if seen_qty else "qty"
            seen_qty = True
            continue
        if key in HEADER_ALIASES and HEADER_ALIASES[key] not in mapping.values():
            mapping[position] = HEADER_ALIASES[key]
    if "particulars" not in mapping.values():
        return {}
    return mapping


def _find_header(frame: pd.DataFrame) -> Optional[int]:
    for position in range(min(len(frame), 25)):
        values = [(_clean_text(value) or "").lower() for value in frame.iloc[position].tolist()]
        if "particulars" in values:
            return position
    return None


def rows_from_frame(frame: pd.DataFrame, name: str = DEFAULT_SHEET) -> Worksheet:
    """Build :class:`Row` records from a header-less frame of the sheet.

    Row ``i`` of the frame is spreadsheet row ``i + 1``. Non-numeric content
    in numeric columns is coerced to zero.
    """
    frame = frame.reset_index(drop=True)
    frame.columns = range(frame.shape[1])
    header_position = _find_header(frame)
    mapping: Dict[int, str] = {}
    if header_position is not None:
        mapping = _column_map(frame.iloc[header_position].tolist())
    if not mapping:
        mapping = {position: field_name for position, field_name in enumerate(COLUMN_FIELDS) if position < frame.shape[1]}
    start = header_position + 1 if header_position is not None else 0

    body = frame.iloc[start:]
    numbers: Dict[str, pd.Series] = {}
    coerced = 0
    for position, field_name in mapping.items():
        if field_name not in NUMERIC_FIELDS:
            continue
        series = body[position]
        numeric = pd.to_numeric(series, errors="coerce").astype(float)
        numeric = numeric.where(numeric.abs() != float("inf"))
        present = pd.Series([_clean_text(value) is not None for value in series], index=series.index)
        bad = numeric.isna() & present
        if bad.any():
            coerced += int(bad.sum())
            for index in bad[bad].index:
                LOGGER.debug("worksheet: row %d %s=%r coerced to 0", index + 1, field_name, series[index])
        numbers[field_name] = numeric.fillna(0.0)

    rows: List[Row] = []
    for ordinal, index in enumerate(body.index):
        values = {}
        for position, field_name in mapping.items():
            if field_name in numbers:
                values[field_name] = float(numbers[field_name][index])
            else:
                values[field_name] = _clean_text(body.at[index, position])
        if "unit" in values:
            values["unit"] = values["unit"] or ""
        rows.append(Row(index=ordinal, sheet_row=int(index) + 1, **values))

    cells = tuple(
        tuple(None if (isinstance(value, float) and pd.isna(value)) else value for value in record)
        for record in frame.itertuples(index=False, name=None)
    )
    if coerced:
        LOGGER.info("  %d non-numeric cells coerced to 0", coerced)
    return Worksheet(
        name=name,
        cells=cells,
        rows=tuple(rows),
        header_row=(header_position + 1) if header_position is not None else None,
        coerced_cells=coerced,
        columns={field_name: position for position, field_name in mapping.items()},
    )


def load_worksheet(source: Union[str, Path, pd.DataFrame], sheet: str = DEFAULT_SHEET) -> Worksheet:
    if isinstance(source, pd.DataFrame):
        return rows_from_frame(source, sheet)
    path = Path(source)
    if not path.exists():
        raise FileNotFoundError(path)
    suffix = path.suffix.lower()
    if suffix in {".xlsx", ".xlsm", ".xls"}:
        with pd.ExcelFile(path, engine="openpyxl") as workbook:
            sheet_name = sheet if sheet in workbook.sheet_names else workbook.sheet_names[0]
            if sheet_name != sheet:
                LOGGER.debug("worksheet: sheet %r not found, using %r", sheet, sheet_name)
            frame = pd.read_excel(workbook, sheet_name=sheet_name, header=None, dtype=object)
    elif suffix == ".csv":
        frame = pd.read_csv(path, header=None, dtype=object, keep_default_na=False, na_values=[""])
    else:
        raise ValueError(f"Unsupported worksheet format: {path.suffix}")
    LOGGER.info("  worksheet %s: %d rows", path.name, len(frame))
    return rows_from_frame(frame, sheet)


@dataclass
class DrawingReferences:
    """Page references keyed by normalised item description."""

    entries: Dict[str, Tuple[str, ...]] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Iterable[str]]) -> "DrawingReferences":
        entries: Dict[str, Tuple[str, ...]] = {}
        for description, refs in mapping.items():
            key = normalize_name(description)
            if not key:
                continue
            if isinstance(refs, str):
                refs = extract_page_refs(refs)
            entries[key] = _merge_refs(entries.get(key, ()), refs)
        return cls(entries)

    @classmethod
    def from_frame(cls, frame: pd.DataFrame) -> "DrawingReferences":
        columns = {str(column).strip().lower(): column for column in frame.columns}
        description_column = next(
            (columns[key] for key in columns if any(word in key for word in ("item", "description", "particulars"))),
            None,
        )
        page_column = next((columns[key] for key in columns if "page" in key or "sheet" in key), None)
        if description_column is None or page_column is None:
            LOGGER.debug("references: no description/page columns in %s", list(frame.columns))
            return cls()
        mapping: Dict[str, List[str]] = {}
        for description, page in zip(frame[description_column], frame[page_column]):
            text = _clean_text(description)
            page_text = _clean_text(page)
            if text is None or page_text is None:
                continue
            mapping.setdefault(text, []).extend(extract_page_refs(page_text))
        return cls.from_mapping(mapping)

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "DrawingReferences":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(path)
        suffix = path.suffix.lower()
        if suffix == ".csv":
            frame = pd.read_csv(path, dtype=object)
        elif suffix in {".xlsx", ".xlsm", ".xls"}:
            frame = pd.read_excel(path, dtype=object, engine="openpyxl")
        else:
            raise ValueError(f"Unsupported reference table format: {path.suffix}")
        return cls.from_frame(frame)

    def lookup(self, description: Optional[str]) -> Tuple[str, ...]:
        """Exact normalised match first, then containment either way."""
        key = normalize_name(description)
        if not key:
            return ()
        if key in self.entries:
            return self.entries[key]
        refs: Tuple[str, ...] = ()
        for entry_key, entry_refs in self.entries.items():
            if entry_key in key or key in entry_key:
                refs = _merge_refs(refs, entry_refs)
        return refs


def extract_page_refs(text: Optional[str]) -> Tuple[str, ...]:
    if not text:
        return ()
    return _merge_refs((), PAGE_TOKEN_RE.findall(str(text)))


def _merge_refs(existing: Iterable[str], extra: Iterable[str]) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(list(existing) + [ref for ref in extra if ref]))


__all__ = [
    "COLUMN_FIELDS",
    "DEFAULT_SHEET",
    "DrawingReferences",
    "SECTION_NAMES",
    "Worksheet",
    "extract_page_refs",
    "load_worksheet",
    "normalize_name",
    "rows_from_frame",
    "section_for_marker",
    "subsection_synonyms",
]
