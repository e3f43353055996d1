from __future__ import annotations

from typing import Dict, List, Optional

import pandas as pd
import pytest

from proposalgen.models import Row
from proposalgen.worksheet import COLUMN_FIELDS

HEADER = [
    "Estimate",
    "Particulars",
    "Takeoff",
    "Unit",
    "QTY",
    "Length",
    "Width",
    "Height",
    "FT",
    "SQ FT",
    "LBS",
    "CY",
    "QTY",
]


def _make_row(sheet_row: int, particulars: Optional[str] = None, marker: Optional[str] = None, **values) -> Row:
    return Row(index=sheet_row, sheet_row=sheet_row, marker=marker, particulars=particulars, **values)


def _sheet_frame(records: List[Dict[str, object]]) -> pd.DataFrame:
    rows = [HEADER]
    for record in records:
        rows.append([record.get(name) for name in COLUMN_FIELDS])
    return pd.DataFrame(rows, dtype=object)


@pytest.fixture
def make_row():
    return _make_row


@pytest.fixture
def sheet_frame():
    return _sheet_frame


PILE_A = 'Drilled soldier pile [9.625" Øx0.545" thick] (H=22\'-0", 15\'-0" embedment) as per SOE-101.00'
PILE_B = 'Drilled soldier pile [9.625" Øx0.545" thick] (H=24\'-0", 15\'-0" embedment) as per SOE-101.00'
SOG_TEXT = '(4" thick) SOG w/6x6 W.W.M. @ cellar FL'
ASPHALT_TEXT = 'Full depth asphalt pavement w/ 1.5" surface course & 3" base course as per C-101'


@pytest.fixture
def project_records() -> List[Dict[str, object]]:
    """Sheet rows 2..21 of a small project worksheet."""
    return [
        {"marker": "SOE"},
        {"particulars": "Drilled soldier pile:"},
        {"particulars": PILE_A, "takeoff": 2, "unit": "EA", "ft": 44, "qty_total": 2},
        {"particulars": PILE_B, "takeoff": 3, "unit": "EA", "ft": 72, "qty_total": 3},
        {"ft": 116, "qty_total": 5},
        {"particulars": "Timber lagging:"},
        {"particulars": 'Timber lagging 3" thick as per SOE-102.00', "takeoff": 500, "unit": "SF", "sq_ft": 500},
        {"sq_ft": 500},
        {"marker": "Foundation"},
        {"particulars": "SOG:"},
        {"particulars": SOG_TEXT, "takeoff": 1000, "unit": "SF", "sq_ft": 1000, "cy": 12.35},
        {"sq_ft": 1000, "cy": 12.35},
        {"particulars": "Drilled foundation pile:"},
        {"ft": 200, "qty_total": 4},
        {"marker": "B.P.P. Alternate #2 scope"},
        {"particulars": "Full depth asphalt pavement:"},
        {"particulars": ASPHALT_TEXT, "takeoff": 2000, "unit": "SF", "sq_ft": 2000},
        {"sq_ft": 2000},
        {"marker": "Notes"},
        {"particulars": "Stray remark", "takeoff": 1},
    ]


@pytest.fixture
def project_frame(project_records) -> pd.DataFrame:
    return _sheet_frame(project_records)


@pytest.fixture
def catalog_mapping() -> Dict[str, Dict[str, object]]:
    return {
        "header": {"LF": "Per LF", "SF": "Per SF"},
        "Drilled soldier pile": {"LBS": 1.5, "QTY": 100},
        "Timber lagging": {"SF": 20},
        "Slab on grade": {"SF": 8, "CY": 200},
        "Full depth asphalt pavement": {"SF": 6},
        "Surface course": {"SF": 3.5},
    }
