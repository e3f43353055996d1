from __future__ import annotations

import pytest

from proposalgen.categories import categorize, get_category
from proposalgen.extractor import extract_attributes, prepare_text
from proposalgen.merger import merge_items, sum_row_group
from proposalgen.models import Item, Section, Subsection
from proposalgen.synthesizer import TemplateSynthesizer, source_formula
from proposalgen.worksheet import DrawingReferences


def _item(make_row, sheet_row, text, **values):
    row = make_row(sheet_row, text, **values)
    return Item(row=row, text=prepare_text(text), attributes=extract_attributes(text))


def _lines(synthesizer, section_name, subsection):
    section = Section(name=section_name, subsections=[subsection])
    pairs = merge_items(subsection, lambda item: categorize(section_name, subsection.key, item.text))
    return [synthesizer.synthesize(section, subsection, descriptor, group) for descriptor, group in pairs]


def test_slab_on_grade_line(make_row):
    subsection = Subsection(
        name="SOG",
        key="slab on grade",
        items=[_item(make_row, 5, '(4" thick) SOG w/6x6 W.W.M. @ cellar FL', takeoff=1000, sq_ft=1000, cy=12.35)],
    )
    (line,) = _lines(TemplateSynthesizer(), "Foundation", subsection)

    assert line.category == "slab_on_grade"
    assert line.description == 'F&I new 4" thick slab on grade w/6x6 welded wire mesh @ cellar FL as per ##'
    assert line.values == {"SF": 1000.0, "CY": pytest.approx(12.35)}
    assert line.sources == {"SF": "'Calculations Sheet'!J5", "CY": "'Calculations Sheet'!L5"}
    assert line.source_rows == (5,)
    assert line.rate is None


def test_drilled_soldier_pile_line_uses_sum_row_and_weight(make_row):
    texts = [
        'Drilled soldier pile [9.625" Øx0.545" thick] (H=22\'-0", 15\'-0" embedment) as per SOE-101.00',
        'Drilled soldier pile [9.625" Øx0.545" thick] (H=24\'-0", 15\'-0" embedment) as per SOE-101.00',
    ]
    subsection = Subsection(
        name="Drilled soldier pile",
        key="drilled soldier pile",
        items=[
            _item(make_row, 4, texts[0], takeoff=2, ft=44, qty_total=2),
            _item(make_row, 5, texts[1], takeoff=3, ft=72, qty_total=3),
        ],
        sum_row=make_row(6, ft=116, qty_total=5),
    )
    (line,) = _lines(TemplateSynthesizer(), "SOE", subsection)

    assert line.description == (
        'F&I new (5)no [9-5/8" Øx0.545" thick] drilled soldier piles '
        "(H=25'-0\", 15'-0\" embedment) as per SOE-101.00"
    )
    assert line.rate_key == "Drilled soldier pile"
    assert line.sources["LF"] == "'Calculations Sheet'!I6"
    assert line.sources["QTY"] == "'Calculations Sheet'!M6"
    weight = (9.625 - 0.545) * 0.545 * 10.69 * 25 * 5
    assert line.values["LBS"] == pytest.approx(weight, abs=0.01)
    assert "LBS" not in line.sources


def test_rock_socket_replaces_embedment(make_row):
    subsection = Subsection(
        name="Drilled foundation pile",
        key="drilled foundation pile",
        items=[_item(make_row, 4, 'Drilled foundation pile 13-3/8" Øx0545" thick (H=32\'-6"+ 7\'-0" RS)', takeoff=6)],
    )
    (line,) = _lines(TemplateSynthesizer(), "Foundation", subsection)

    assert line.description == (
        'F&I new (6)no 13-3/8" Øx0.545" thick drilled foundation piles '
        "(H=35'-0\", 10'-0\" rock socket) as per ##"
    )


def test_sum_row_only_subsection_renders_with_placeholders(make_row):
    subsection = Subsection(
        name="Drilled foundation pile",
        key="drilled foundation pile",
        sum_row=make_row(15, ft=200, qty_total=4),
    )
    descriptor = categorize("Foundation", subsection.key, subsection.key)
    section = Section(name="Foundation", subsections=[subsection])
    line = TemplateSynthesizer(placeholder="TBD").synthesize(section, subsection, descriptor, sum_row_group(subsection))

    assert line.description == (
        "F&I new (4)no TBD ØxTBD thick drilled foundation piles (H=TBD, TBD embedment) as per TBD"
    )
    assert line.values == {"LF": 200.0, "QTY": 4.0}
    assert line.sources == {"LF": "'Calculations Sheet'!I15", "QTY": "'Calculations Sheet'!M15"}
    assert line.source_rows == (15,)


def test_drawing_references_fill_missing_pages(make_row):
    references = DrawingReferences.from_mapping({"Timber lagging": "SOE-101.00 & SOE-102.00"})
    subsection = Subsection(
        name="Timber lagging",
        key="timber lagging",
        items=[
            _item(make_row, 8, 'Timber lagging 3" thick', takeoff=300, sq_ft=300),
            _item(make_row, 9, 'Timber lagging 3" thick', takeoff=200, sq_ft=200),
        ],
    )
    (line,) = _lines(TemplateSynthesizer(references=references), "SOE", subsection)

    assert line.description == 'F&I new 3" thick timber lagging as per SOE-101.00 & SOE-102.00'
    assert line.sources == {"SF": "SUM('Calculations Sheet'!J8:J9)"}
    assert line.values == {"SF": 500.0}


def test_generic_line_keeps_item_text(make_row):
    subsection = Subsection(
        name="Misc",
        key="misc",
        items=[_item(make_row, 3, "Temporary fence as per A-101", takeoff=80, ft=80)],
    )
    (line,) = _lines(TemplateSynthesizer(), "Excavation", subsection)

    assert line.category == "excavation"

    descriptor = get_category("generic")
    group = merge_items(subsection, lambda item: descriptor)[0][1]
    section = Section(name="Superstructure", subsections=[subsection])
    generic = TemplateSynthesizer().synthesize(section, subsection, descriptor, group)
    assert generic.description == "Temporary fence as per A-101"
    assert generic.rate_key == "Temporary fence as per A-101"


def test_source_formula_shapes():
    assert source_formula("Calculations Sheet", "I", [5]) == "'Calculations Sheet'!I5"
    assert source_formula("Calculations Sheet", "I", [5, 3, 4]) == "SUM('Calculations Sheet'!I3:I5)"
    assert source_formula("Calculations Sheet", "I", [3, 5]) == (
        "SUM('Calculations Sheet'!I3,'Calculations Sheet'!I5)"
    )
    assert source_formula("Bob's", "A", [1]) == "'Bob''s'!A1"


def test_exterior_side_heights_carry_two_extra_feet(make_row):
    subsection = Subsection(
        name="Exterior side",
        key="exterior side",
        items=[
            _item(make_row, 30, 'FW (1\'-0"x10\'-0")', takeoff=120, ft=120, sq_ft=1440),
            _item(make_row, 31, 'Elev. pit wall (8"x6\'-0")', takeoff=40, ft=40, sq_ft=320),
            _item(make_row, 32, "Drainage mat", takeoff=500, sq_ft=500),
        ],
    )
    lines = _lines(TemplateSynthesizer(), "Waterproofing", subsection)

    assert [line.category for line in lines] == [
        "exterior_wall_waterproofing",
        "exterior_pit_waterproofing",
        "waterproofing",
    ]
    assert lines[0].description == (
        "F&I new waterproofing @ exterior side of 1'-0\" thick foundation wall (H=12'-0\") as per ##"
    )
    assert lines[0].values == {"SF": 1440.0}
    assert lines[1].description == "F&I new waterproofing @ exterior side of elev. pit wall (H=8'-0\") as per ##"
    assert lines[2].description == "F&I new waterproofing @ Drainage mat as per ##"
    assert lines[2].values == {"SF": 500.0}


def test_negative_side_walls_keep_the_bracket_height(make_row):
    subsection = Subsection(
        name="Negative side",
        key="negative side",
        items=[
            _item(make_row, 40, 'Detention tank wall (1\'-0"x9\'-6")', takeoff=60, sq_ft=570),
            _item(make_row, 41, 'House trap pit slab 12"', takeoff=30, sq_ft=30),
        ],
    )
    wall, slab = _lines(TemplateSynthesizer(), "Waterproofing", subsection)

    assert wall.category == "negative_wall_waterproofing"
    assert wall.description == "F&I new negative side waterproofing @ detention tank wall (H=9'-6\") as per ##"
    assert wall.rate_key == "Negative side waterproofing"
    assert slab.category == "negative_slab_waterproofing"
    assert slab.description == 'F&I new negative side waterproofing @ House trap pit slab 12" as per ##'


def test_pile_without_wall_thickness_assumes_half_inch(make_row):
    text = 'Drilled soldier pile 9.625" Ø (H=25\'-0", 15\'-0" embedment)'
    subsection = Subsection(
        name="Drilled soldier pile",
        key="drilled soldier pile",
        items=[_item(make_row, 8, text, takeoff=2, ft=50, qty_total=2)],
    )
    (line,) = _lines(TemplateSynthesizer(), "SOE", subsection)

    assert line.category == "drilled_soldier_pile"
    weight = (9.625 - 0.5) * 0.5 * 10.69 * 25 * 2
    assert line.values["LBS"] == pytest.approx(weight, abs=0.01)
