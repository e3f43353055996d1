import pandas as pd
import pytest

from proposalgen.extractor import extract_attributes, prepare_text, weight_per_foot
from proposalgen.models import ExtractedAttributes


def test_slab_on_grade_attributes_survive_shorthand():
    text = '(4" thick) SOG w/6x6 W.W.M. @ cellar FL'
    attrs = extract_attributes(text)

    assert "Slab on grade" in prepare_text(text)
    assert attrs.thickness == pytest.approx(4.0)
    assert attrs.wire_mesh_spec == "6x6"
    assert attrs.floor == "cellar"
    assert attrs.height_feet is None
    assert attrs.diameter is None
    assert attrs.page_refs == ()


def test_drilled_soldier_pile_attributes():
    text = 'Drilled soldier pile [9.625" Øx0.545" thick] (H=30\'-0", 15\'-0" embedment) as per SOE-101.00'
    attrs = extract_attributes(text)

    assert attrs.diameter == pytest.approx(9.625)
    assert attrs.thickness == pytest.approx(0.545)
    assert attrs.height_feet == pytest.approx(30.0)
    assert attrs.embedment_feet == pytest.approx(15.0)
    assert attrs.rock_socket_feet is None
    assert attrs.page_refs == ("SOE-101.00",)
    assert attrs.weight_per_ft == pytest.approx((9.625 - 0.545) * 0.545 * 10.69)


def test_rock_socket_and_missing_decimal_point_in_thickness():
    text = 'Drilled foundation pile 13-3/8" Øx0545" thick (H=32\'-6"+ 7\'-0" RS)'
    attrs = extract_attributes(text)

    assert attrs.diameter == pytest.approx(13.375)
    assert attrs.thickness == pytest.approx(0.545)
    assert attrs.height_feet == pytest.approx(32.5)
    assert attrs.rock_socket_feet == pytest.approx(7.0)


def test_bracket_dimensions():
    triple = extract_attributes("Pile cap (4'-0\"x6'-0\"x3'-0\")")
    assert (triple.length_feet, triple.width_feet, triple.height_feet) == (4.0, 6.0, 3.0)

    pair = extract_attributes("Strip footing (2'-0\"x1'-0\")")
    assert (pair.width_feet, pair.height_feet) == (2.0, 1.0)
    assert pair.length_feet is None


def test_height_token_beats_brackets_and_column():
    attrs = extract_attributes("Wall (1'-0\"x10'-0\") H=12'", height_column=9.0)
    assert attrs.height_feet == pytest.approx(12.0)
    assert attrs.width_feet == pytest.approx(1.0)


def test_height_column_is_last_resort():
    attrs = extract_attributes('Foundation wall 12" thick', height_column=9.5)
    assert attrs.thickness == pytest.approx(12.0)
    assert attrs.height_feet == pytest.approx(9.5)


def test_height_column_accepts_pandas_scalars():
    height = pd.Series([10.0]).iloc[0]
    attrs = extract_attributes('Foundation wall 12" wide', height_column=height)
    assert type(attrs.height_feet) is float
    assert attrs.height_feet == 10.0
    assert extract_attributes("Lagging", height_column=float("inf")).height_feet is None


def test_unicode_fraction_diameter():
    attrs = extract_attributes('Drilled pile 4½" Øx0.408" thick')
    assert attrs.diameter == pytest.approx(4.5)
    assert attrs.thickness == pytest.approx(0.408)


def test_rolled_shape_uses_nominal_weight():
    attrs = extract_attributes("HP12x74 soldier pile H=25'")
    assert attrs.shape == "HP12x74"
    assert attrs.weight_per_ft == pytest.approx(74.0)
    assert attrs.height_feet == pytest.approx(25.0)


def test_page_reference_lists():
    attrs = extract_attributes("Rebar as per S-101, S-102 & S-103")
    assert attrs.page_refs == ("S-101", "S-102", "S-103")


def test_unreadable_text_yields_empty_attributes():
    assert extract_attributes("") == ExtractedAttributes()
    assert extract_attributes(None) == ExtractedAttributes()
    assert extract_attributes("H=abc").height_feet is None


def test_extraction_is_pure():
    first = extract_attributes('(4" thick) SOG w/6x6 W.W.M. @ cellar FL')
    extract_attributes("HP12x74 soldier pile H=25'")
    again = extract_attributes('(4" thick) SOG w/6x6 W.W.M. @ cellar FL')
    assert first == again


def test_weight_per_foot_requires_wall_dimensions():
    assert weight_per_foot(None, None, 0.5) is None
    assert weight_per_foot(None, 0.5, 0.5) is None
    assert weight_per_foot("W8x31", None, None) == pytest.approx(31.0)
