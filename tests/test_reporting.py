from __future__ import annotations

from pathlib import Path

import pandas as pd

from proposalgen.pipeline import build_proposal
from proposalgen.rates import RateCatalog
from proposalgen.reporting import AUDIT_COLUMNS, lines_frame, make_summary_text, write_audit
from proposalgen.worksheet import rows_from_frame


def test_audit_frame_and_summary(tmp_path: Path, project_frame, catalog_mapping) -> None:
    result = build_proposal(rows_from_frame(project_frame), catalog=RateCatalog.from_mapping(catalog_mapping))

    frame = lines_frame(result)
    assert list(frame.columns) == AUDIT_COLUMNS
    assert len(frame) == 5
    assert frame.loc[frame["CATEGORY"] == "asphalt", "RATE_KEY"].item() == "Surface course"
    assert frame.loc[frame["CATEGORY"] == "drilled_soldier_pile", "SOURCE_ROWS"].item() == "4,5"

    path = write_audit(result, tmp_path / "audit" / "Proposal_Audit.csv")
    written = pd.read_csv(path)
    assert len(written) == 5
    assert written["PRICED"].tolist().count(False) == 1

    summary = make_summary_text(result)
    assert summary.startswith("Proposal grand total: $")
    assert "(1 unpriced)" in summary
    assert "Unused worksheet rows: 1." in summary


def test_summary_for_an_empty_result() -> None:
    result = build_proposal(rows_from_frame(pd.DataFrame([["Particulars"]], dtype=object)))

    assert lines_frame(result).empty
    assert "across 0 lines (0 unpriced)" in make_summary_text(result)
