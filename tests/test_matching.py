from __future__ import annotations

import pytest

from pyavail.exceptions import AvailParseError
from pyavail.matching import best_match, fuzzy_match, normalize, normalize_query
from pyavail.models.catalog import CatalogRecord


def test_normalize_lowercases_and_drops_whitespace() -> None:
    assert normalize("  HBLP 651\tRUC ") == "hblp651ruc"


def test_normalize_query_url_decodes_first() -> None:
    assert normalize_query("HBLP%20651RUC") == "hblp651ruc"


def test_normalize_query_rejects_undecodable_escapes() -> None:
    with pytest.raises(AvailParseError, match="Cannot decode model number"):
        normalize_query("%ff%fe")


@pytest.mark.parametrize(
    ("choice", "pattern"),
    [
        ("abc", ""),
        ("abc", "abd"),
        ("ab", "abc"),
        ("cba", "abc"),
    ],
)
def test_fuzzy_match_zero_when_not_a_subsequence(choice: str, pattern: str) -> None:
    assert fuzzy_match(choice, pattern) == 0


def test_fuzzy_match_prefers_contiguous_alignment() -> None:
    exact = fuzzy_match("hblp651ruc", "hblp651ruc")
    gapped = fuzzy_match("hxbxlp651ruc", "hblp651ruc")
    assert exact > gapped > 0


def test_fuzzy_match_prefers_leading_alignment() -> None:
    assert fuzzy_match("xyzabc", "xyz") > fuzzy_match("abcxyz", "xyz")


def test_fuzzy_match_is_never_negative() -> None:
    choice = "a" + "-" * 200 + "b"
    assert fuzzy_match(choice, "ab") >= 0


def test_best_match_picks_model_number_and_sets_scores() -> None:
    records = [
        CatalogRecord(model_number="G7000SCU", description="Dishwasher"),
        CatalogRecord(model_number="HBLP651RUC", description="Combi oven"),
        CatalogRecord(model_number="H7860BP", description="Wall oven"),
    ]

    winner = best_match(records, "HBLP%20651RUC")

    assert winner is records[1]
    assert winner.score > 0
    assert all(record.score >= 0 for record in records)
    assert records[0].score == 0


def test_best_match_keeps_first_on_tie() -> None:
    records = [
        CatalogRecord(model_number="KM7730FR", description=""),
        CatalogRecord(model_number="KM7730FR", description=""),
    ]
    assert best_match(records, "km7730fr") is records[0]


def test_best_match_never_selects_zero_score() -> None:
    records = [CatalogRecord(model_number="G7000SCU", description="Dishwasher")]
    assert best_match(records, "zzz") is None
    assert best_match([], "G7000SCU") is None
