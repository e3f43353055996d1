from __future__ import annotations

import pytest

from proposalgen.rates import RateCatalog, RateResolver


@pytest.fixture
def resolver():
    catalog = RateCatalog.from_mapping(
        {
            "Survey": {"LS": 1000},
            "Surveying and layout": {"LS": 2500},
            "Excavation": {"CY": 45},
            "Rock excavation": {"CY": 120},
            "Full depth asphalt pavement": {"SF": 6},
            "Surface course": {"SF": 3.5},
            "Drilled soldier pile": {"LBS": 1.8, "QTY": 150},
        }
    )
    return RateResolver(catalog)


def test_exact_match_ignores_case_and_spacing(resolver):
    entry = resolver.resolve("  EXCAVATION ")
    assert entry.description == "Excavation"
    assert resolver.explain("excavation").rule == "exact"


def test_longest_contained_key_wins(resolver):
    entry = resolver.resolve("Rock excavation & off-site disposal as per ##")
    assert entry.description == "Rock excavation"


def test_keys_must_end_on_a_word_boundary(resolver):
    assert resolver.resolve("Surveying and layout for piles").description == "Surveying and layout"
    assert resolver.resolve("Survey of site").description == "Survey"
    assert resolver.resolve("Surveying of site") is None


def test_surface_course_override(resolver):
    description = 'F&I new full depth asphalt pavement w/ 1.5" surface course & 3" base course as per C-101'
    resolution = resolver.explain(description)
    assert resolution.entry.description == "Surface course"
    assert resolution.rule == "override:asphalt_surface_course"

    plain = resolver.resolve("F&I new full depth asphalt pavement as per C-101")
    assert plain.description == "Full depth asphalt pavement"


def test_description_contained_in_a_key(resolver):
    assert resolver.resolve("drilled soldier").description == "Drilled soldier pile"


def test_scope_key_takes_priority(resolver):
    description = 'F&I new (5)no [9-5/8" Øx0.545" thick] drilled soldier piles (H=25\'-0", 15\'-0" embedment)'
    entry = resolver.resolve(description, "Drilled soldier pile")
    assert entry.prices == {"LBS": 1.8, "QTY": 150.0}
    assert resolver.explain(description, "Drilled soldier pile").rule == "override_key"


def test_unmatched_description(resolver):
    assert resolver.resolve("Waterproofing membrane") is None
    assert resolver.resolve("") is None


def test_resolution_is_deterministic(resolver):
    description = "Rock excavation & excavation of soil"
    assert {resolver.resolve(description).description for _ in range(5)} == {"Rock excavation"}


def test_catalog_header_row_sets_labels():
    catalog = RateCatalog.from_mapping({"header": {"LF": "Per LF"}, "Curb": {"LF": "22.50"}})

    assert len(catalog) == 1
    assert catalog.label_for("LF") == "Per LF"
    assert catalog.label_for("SF") == "$/SF"
    assert catalog.get("curb").prices == {"LF": 22.5}


def test_catalog_from_csv(tmp_path):
    path = tmp_path / "rates.csv"
    path.write_text(
        "Description,LF,SF,LBS,CY,QTY,LS\n"
        "header,Per LF,,,,,\n"
        "Excavation,,,,45,,\n"
        "Timber lagging,,n/a,,,,\n",
        encoding="utf-8",
    )
    catalog = RateCatalog.from_path(path)

    assert len(catalog) == 2
    assert catalog.get("excavation").prices == {"CY": 45.0}
    assert catalog.get("timber lagging").prices == {}
    assert catalog.labels["LF"] == "Per LF"


def test_catalog_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        RateCatalog.from_path(tmp_path / "missing.csv")


def test_equal_length_keys_go_to_the_earliest_position():
    resolver = RateResolver(RateCatalog.from_mapping({"Curb cut": {"LF": 30}, "Gas main": {"LF": 90}}))

    assert resolver.resolve("Gas main relocation at curb cut").description == "Gas main"
    assert resolver.resolve("Curb cut over gas main").description == "Curb cut"


def test_non_finite_rates_are_dropped():
    catalog = RateCatalog.from_mapping({"Curb": {"LF": "inf", "SF": 4}})
    assert catalog.get("curb").prices == {"SF": 4.0}
