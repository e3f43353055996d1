from __future__ import annotations

from proposalgen.emitter import PROPOSAL_SHEET, ProposalEmitter, price_formula, sum_formula
from proposalgen.models import RateCatalogEntry, SynthesizedLine
from proposalgen.worksheet import rows_from_frame


def _line(description, section, values, sources=None, rate=None):
    return SynthesizedLine(
        description=description,
        section=section,
        subsection="",
        category="generic",
        values=values,
        sources=sources or {},
        source_rows=(),
        rate_key=description,
        rate=rate,
    )


def test_formula_helpers():
    assert price_formula(7) == "=SUMPRODUCT(B7:G7,I7:N7)"
    assert sum_formula([3, 4]) == "=SUM(H3,H4)"
    assert sum_formula([]) == 0


def test_sections_subtotals_and_grand_total():
    lagging = RateCatalogEntry("Timber lagging", {"SF": 20.0})
    curb = RateCatalogEntry("Curb", {"LF": 10.0})
    emitter = ProposalEmitter(labels={"LF": "Per LF"})
    emitter.start()
    emitter.emit_line(
        _line("Lagging", "SOE", {"SF": 500.0}, {"SF": "'Calculations Sheet'!J9"}, lagging)
    )
    emitter.emit_line(_line("Curb", "SOE", {"LF": 30.0}, rate=curb))
    emitter.emit_line(_line("Unpriced", "Foundation", {"CY": 4.0}))
    grand_row = emitter.finish()

    sheet = emitter.workbook[PROPOSAL_SHEET]
    assert sheet["I1"].value == "Per LF"
    assert sheet["J1"].value == "$/SF"
    assert sheet["A2"].value == "SOE"
    assert sheet["A3"].value == "Lagging"
    assert sheet["C3"].value == "='Calculations Sheet'!J9"
    assert sheet["J3"].value == 20.0
    assert sheet["H3"].value == "=SUMPRODUCT(B3:G3,I3:N3)"
    assert sheet["B4"].value == 30.0
    assert sheet["A5"].value == "SOE Total"
    assert sheet["H5"].value == "=SUM(H3,H4)"
    assert sheet["A7"].value == "Foundation"
    assert sheet["A9"].value == "Foundation Total"
    assert sheet["H9"].value == 0
    assert grand_row == 11
    assert sheet["A11"].value == "Grand Total"
    assert sheet["H11"].value == "=SUM(H5,H9)"

    soe, foundation = emitter.section_totals
    assert soe.row_refs == [3, 4]
    assert soe.total == 500.0 * 20.0 + 30.0 * 10.0
    assert foundation.row_refs == []
    assert foundation.total == 0


def test_calculation_sheet_is_copied_as_values(sheet_frame, tmp_path):
    frame = sheet_frame([{"marker": "SOE"}, {"particulars": "Item", "takeoff": "12", "ft": 3.5}])
    worksheet = rows_from_frame(frame)
    emitter = ProposalEmitter()
    emitter.start(worksheet)
    emitter.finish()

    calc = emitter.workbook["Calculations Sheet"]
    assert calc["B1"].value == "Particulars"
    assert calc["A2"].value == "SOE"
    assert calc["C3"].value == 12
    assert calc["I3"].value == 3.5
    path = emitter.save(tmp_path / "out" / "Proposal.xlsx")
    assert path.exists()
