"""Rate catalog loading and the ranked description -> rate lookup."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Tuple, Union

import pandas as pd

from .dimensions import finite
from .models import UNITS, RateCatalogEntry

LOGGER = logging.getLogger(__name__)

HEADER_KEY = "header"
DEFAULT_LABELS: Dict[str, str] = {unit: f"$/{unit}" for unit in UNITS}
DESCRIPTION_COLUMNS = ("description", "item", "scope", "particulars")


def normalize_key(text: Optional[str]) -> str:
    return re.sub(r"\s+", " ", str(text or "")).strip().lower()


@dataclass(frozen=True)
class OverrideRule:
    """Named tie-break between two catalog rows that wording cannot settle.

    When every trigger phrase is in the description and the ranked match
    landed on ``generic``, ``preferred`` is used instead.
    """

    name: str
    triggers: Tuple[str, ...]
    generic: str
    preferred: str


OVERRIDE_RULES: Tuple[OverrideRule, ...] = (
    # Full depth asphalt lines that spell out the surface course are priced
    # on the surface course row.
    OverrideRule(
        name="asphalt_surface_course",
        triggers=("full depth asphalt pavement", "surface course"),
        generic="full depth asphalt pavement",
        preferred="surface course",
    ),
)


@dataclass
class RateCatalog:
    entries: Dict[str, RateCatalogEntry] = field(default_factory=dict)
    labels: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_LABELS))

    def __len__(self) -> int:
        return len(self.entries)

    def get(self, key: str) -> Optional[RateCatalogEntry]:
        return self.entries.get(normalize_key(key))

    def label_for(self, unit: str) -> str:
        return self.labels.get(unit, DEFAULT_LABELS.get(unit, unit))

    @classmethod
    def from_mapping(
        cls,
        mapping: Mapping[str, Mapping[str, object]],
        labels: Optional[Mapping[str, str]] = None,
    ) -> "RateCatalog":
        catalog = cls()
        for description, prices in mapping.items():
            if normalize_key(description) == HEADER_KEY:
                catalog.labels.update({unit: str(label) for unit, label in prices.items() if label})
                continue
            catalog.add(description, prices)
        if labels:
            catalog.labels.update(labels)
        return catalog

    @classmethod
    def from_frame(cls, frame: pd.DataFrame) -> "RateCatalog":
        columns = {str(column).strip(): column for column in frame.columns}
        description_column = next(
            (columns[name] for name in columns if name.lower() in DESCRIPTION_COLUMNS),
            frame.columns[0],
        )
        unit_columns = {
            unit: columns[name]
            for name in columns
            for unit in UNITS
            if name.upper().replace("$/", "").strip() == unit
        }
        catalog = cls()
        for _, record in frame.iterrows():
            description = record[description_column]
            if description is None or (isinstance(description, float) and pd.isna(description)):
                continue
            prices = {unit: record[column] for unit, column in unit_columns.items()}
            if normalize_key(description) == HEADER_KEY:
                catalog.labels.update({unit: str(label) for unit, label in prices.items() if _present(label)})
                continue
            catalog.add(str(description), prices)
        LOGGER.info("  rate catalog: %d entries", len(catalog))
        return catalog

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "RateCatalog":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(path)
        suffix = path.suffix.lower()
        if suffix == ".csv":
            frame = pd.read_csv(path, dtype=object)
        elif suffix in {".xlsx", ".xlsm", ".xls"}:
            frame = pd.read_excel(path, dtype=object, engine="openpyxl")
        else:
            raise ValueError(f"Unsupported rate catalog format: {path.suffix}")
        return cls.from_frame(frame)

    def add(self, description: str, prices: Mapping[str, object]) -> None:
        parsed: Dict[str, float] = {}
        for unit, value in prices.items():
            number = pd.to_numeric(value, errors="coerce") if _present(value) else None
            if number is None or pd.isna(number) or finite(number) is None:
                continue
            parsed[str(unit).upper()] = float(number)
        key = normalize_key(description)
        if not key:
            return
        self.entries[key] = RateCatalogEntry(description=str(description).strip(), prices=parsed)


def _present(value) -> bool:
    if value is None:
        return False
    if isinstance(value, float) and pd.isna(value):
        return False
    return str(value).strip() != ""


@dataclass(frozen=True)
class Resolution:
    entry: Optional[RateCatalogEntry]
    rule: str


class RateResolver:
    """Match a line description against the catalog.

    Priority, first match wins:

    1. exact (normalised) key equality;
    2. longest catalog key that occurs in the description and ends on a word
       boundary, ties going to the earliest position, then any
       :data:`OVERRIDE_RULES` disambiguation of that winner;
    3. an override rule on its own when no key matched in step 2;
    4. the shortest catalog key containing the whole description.
    """

    def __init__(self, catalog: RateCatalog, overrides: Iterable[OverrideRule] = OVERRIDE_RULES):
        self.catalog = catalog
        self.overrides = tuple(overrides)

    def resolve(self, description: str, override_key: Optional[str] = None) -> Optional[RateCatalogEntry]:
        return self.explain(description, override_key).entry

    def explain(self, description: str, override_key: Optional[str] = None) -> Resolution:
        if override_key:
            exact = self.catalog.get(override_key)
            if exact is not None:
                return Resolution(exact, "override_key")
        resolution = self._rank(normalize_key(description))
        if resolution.entry is None and override_key:
            resolution = self._rank(normalize_key(override_key))
        if resolution.entry is None:
            LOGGER.debug("rates: no catalog entry for %r", description)
        return resolution

    def _rank(self, text: str) -> Resolution:
        if not text:
            return Resolution(None, "none")
        exact = self.catalog.entries.get(text)
        if exact is not None:
            return Resolution(exact, "exact")

        best: Optional[Tuple[int, int, str]] = None
        for key in self.catalog.entries:
            position = _boundary_position(text, key)
            if position is None:
                continue
            rank = (-len(key), position, key)
            if best is None or rank < best:
                best = rank
        if best is not None:
            winner = best[2]
            for rule in self.overrides:
                if winner == normalize_key(rule.generic) and self._triggered(rule, text):
                    return Resolution(self.catalog.entries[normalize_key(rule.preferred)], f"override:{rule.name}")
            return Resolution(self.catalog.entries[winner], "substring")

        for rule in self.overrides:
            if self._triggered(rule, text):
                return Resolution(self.catalog.entries[normalize_key(rule.preferred)], f"override:{rule.name}")

        containing = [key for key in self.catalog.entries if text in key]
        if containing:
            key = min(containing, key=len)
            return Resolution(self.catalog.entries[key], "contained")
        return Resolution(None, "none")

    def _triggered(self, rule: OverrideRule, text: str) -> bool:
        if normalize_key(rule.preferred) not in self.catalog.entries:
            return False
        return all(normalize_key(trigger) in text for trigger in rule.triggers)


def _boundary_position(text: str, key: str) -> Optional[int]:
    """Earliest index where ``key`` occurs in ``text`` ending on a word boundary."""
    start = text.find(key)
    while start != -1:
        end = start + len(key)
        if end == len(text) or not text[end].isalnum() or not key[-1].isalnum():
            return start
        start = text.find(key, start + 1)
    return None


__all__ = [
    "HEADER_KEY",
    "OVERRIDE_RULES",
    "OverrideRule",
    "RateCatalog",
    "RateResolver",
    "Resolution",
    "normalize_key",
]
