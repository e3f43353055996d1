from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from openpyxl import Workbook
from openpyxl.utils import get_column_letter

from .dimensions import finite
from .models import UNITS, SectionTotal, SynthesizedLine
from .worksheet import DEFAULT_SHEET, Worksheet

LOGGER = logging.getLogger(__name__)

PROPOSAL_SHEET = "Proposal Sheet"

_NUMBER_TEXT_RE = re.compile(r"^-?\d+(?:\.\d+)?$")

DESCRIPTION_COLUMN = 1
# B..G hold LF, SF, LBS, CY, QTY, LS; H the price; I..N the unit rates.
VALUE_COLUMNS: Dict[str, int] = {unit: 2 + offset for offset, unit in enumerate(UNITS)}
PRICE_COLUMN = 2 + len(UNITS)
RATE_COLUMNS: Dict[str, int] = {unit: PRICE_COLUMN + 1 + offset for offset, unit in enumerate(UNITS)}


def _letter(column: int) -> str:
    return get_column_letter(column)


def price_formula(row: int) -> str:
    first_value, last_value = _letter(VALUE_COLUMNS[UNITS[0]]), _letter(VALUE_COLUMNS[UNITS[-1]])
    first_rate, last_rate = _letter(RATE_COLUMNS[UNITS[0]]), _letter(RATE_COLUMNS[UNITS[-1]])
    return f"=SUMPRODUCT({first_value}{row}:{last_value}{row},{first_rate}{row}:{last_rate}{row})"


def sum_formula(rows: Sequence[int]) -> Union[str, int]:
    if not rows:
        return 0
    column = _letter(PRICE_COLUMN)
    return "=SUM(" + ",".join(f"{column}{row}" for row in rows) + ")"


class ProposalEmitter:
    """Write synthesized lines and totals into an openpyxl workbook.

    Line values that come straight from worksheet aggregates are written as
    formulas into the copied calculations sheet; the price column is a
    SUMPRODUCT of values and rates. Priced rows are collected per section
    and summed into subtotal rows, and the grand total sums the subtotals.
    """

    def __init__(self, labels: Optional[Dict[str, str]] = None, calc_sheet: str = DEFAULT_SHEET):
        self.workbook = Workbook()
        self.calc_sheet = calc_sheet
        self.labels = labels or {}
        self.sheet = None
        self.cursor = 1
        self.section_totals: List[SectionTotal] = []
        self.current: Optional[SectionTotal] = None
        self.grand_total_row: Optional[int] = None

    def start(self, worksheet: Optional[Worksheet] = None) -> None:
        calc = self.workbook.active
        calc.title = self.calc_sheet
        if worksheet is not None:
            for record in worksheet.cells:
                calc.append([_cell_value(value) for value in record])
        self.sheet = self.workbook.create_sheet(PROPOSAL_SHEET)
        self.sheet.cell(row=1, column=DESCRIPTION_COLUMN, value="Description")
        for unit in UNITS:
            self.sheet.cell(row=1, column=VALUE_COLUMNS[unit], value=unit)
            self.sheet.cell(row=1, column=RATE_COLUMNS[unit], value=self.labels.get(unit, f"$/{unit}"))
        self.sheet.cell(row=1, column=PRICE_COLUMN, value="Price")
        self.cursor = 2

    def open_section(self, name: str) -> SectionTotal:
        if self.current is not None:
            self.close_section()
        self.sheet.cell(row=self.cursor, column=DESCRIPTION_COLUMN, value=name)
        self.cursor += 1
        self.current = SectionTotal(section=name)
        return self.current

    def emit_line(self, line: SynthesizedLine) -> int:
        if self.current is None or self.current.section != line.section:
            self.open_section(line.section)
        row = self.cursor
        self.sheet.cell(row=row, column=DESCRIPTION_COLUMN, value=line.description)
        for unit, value in line.values.items():
            source = line.sources.get(unit)
            self.sheet.cell(row=row, column=VALUE_COLUMNS[unit], value=f"={source}" if source else value)
        if line.rate is not None:
            for unit in UNITS:
                unit_price = line.rate.price_for(unit)
                if unit_price is not None:
                    self.sheet.cell(row=row, column=RATE_COLUMNS[unit], value=unit_price)
        self.sheet.cell(row=row, column=PRICE_COLUMN, value=price_formula(row))
        if line.priced:
            self.current.row_refs.append(row)
            self.current.prices.append(line.price)
        self.cursor += 1
        return row

    def close_section(self) -> Optional[SectionTotal]:
        total = self.current
        if total is None:
            return None
        row = self.cursor
        self.sheet.cell(row=row, column=DESCRIPTION_COLUMN, value=f"{total.section} Total")
        self.sheet.cell(row=row, column=PRICE_COLUMN, value=sum_formula(total.row_refs))
        total.subtotal_row = row
        self.section_totals.append(total)
        LOGGER.debug("emitter: %s subtotal at row %d over %d priced rows", total.section, row, len(total.row_refs))
        self.current = None
        self.cursor += 2
        return total

    def finish(self) -> int:
        if self.current is not None:
            self.close_section()
        row = self.cursor
        self.sheet.cell(row=row, column=DESCRIPTION_COLUMN, value="Grand Total")
        self.sheet.cell(
            row=row,
            column=PRICE_COLUMN,
            value=sum_formula([total.subtotal_row for total in self.section_totals]),
        )
        self.grand_total_row = row
        return row

    def save(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.workbook.save(path)
        LOGGER.info("  wrote %s", path)
        return path


def _cell_value(value):
    if hasattr(value, "item"):
        value = value.item()
    if isinstance(value, float):
        # xlsx has no infinity or NaN
        return finite(value)
    # csv input keeps every cell as text
    if isinstance(value, str) and _NUMBER_TEXT_RE.match(value.strip()):
        number = finite(float(value))
        if number is None:
            return value
        return int(number) if number.is_integer() else number
    return value


__all__ = [
    "PRICE_COLUMN",
    "PROPOSAL_SHEET",
    "ProposalEmitter",
    "RATE_COLUMNS",
    "VALUE_COLUMNS",
    "price_formula",
    "sum_formula",
]
