from __future__ import annotations

from pathlib import Path
from typing import Union

import pandas as pd

from .models import UNITS, ProposalResult

AUDIT_COLUMNS = [
    "SECTION",
    "SUBSECTION",
    "CATEGORY",
    "DESCRIPTION",
    *UNITS,
    "RATE_KEY",
    "PRICED",
    "PRICE",
    "SOURCE_ROWS",
]


def lines_frame(result: ProposalResult) -> pd.DataFrame:
    records = []
    for line in result.lines:
        record = {
            "SECTION": line.section,
            "SUBSECTION": line.subsection,
            "CATEGORY": line.category,
            "DESCRIPTION": line.description,
            "RATE_KEY": line.rate_key,
            "PRICED": line.priced,
            "PRICE": line.price,
            "SOURCE_ROWS": ",".join(str(row) for row in line.source_rows),
        }
        for unit in UNITS:
            record[unit] = line.values.get(unit, 0.0)
        records.append(record)
    return pd.DataFrame.from_records(records, columns=AUDIT_COLUMNS)


def write_audit(result: ProposalResult, path: Union[str, Path]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    lines_frame(result).to_csv(path, index=False)
    return path


def make_summary_text(result: ProposalResult) -> str:
    frame = lines_frame(result)
    totals = pd.DataFrame(
        [{"SECTION": total.section, "PRICED_LINES": len(total.row_refs), "SUBTOTAL": total.total} for total in result.section_totals],
        columns=["SECTION", "PRICED_LINES", "SUBTOTAL"],
    )
    unpriced = int((~frame["PRICED"]).sum()) if not frame.empty else 0
    return (
        f"Proposal grand total: ${result.grand_total:,.0f} across {len(frame)} lines ({unpriced} unpriced).\n"
        f"Section subtotals:\n{totals.to_string(index=False)}\n"
        f"Unused worksheet rows: {len(result.unused_rows)}.\n"
    )


__all__ = ["AUDIT_COLUMNS", "lines_frame", "make_summary_text", "write_audit"]
