"""Tests for dosage text parsing and normalization."""

import pytest

from supplement_scanner.domain.products import DosageUnit, ProductForm
from supplement_scanner.services.dosage import (
    format_serving_size,
    normalize_form,
    normalize_unit,
    parse_dosage,
    servings_or_default,
)


def test_parse_dosage_reads_amount_and_unit() -> None:
    dosage = parse_dosage("500mg", "capsule")

    assert dosage.amount == 500
    assert dosage.unit is DosageUnit.MG
    assert dosage.form is ProductForm.CAPSULE
    assert dosage.low_confidence is False


def test_parse_dosage_allows_whitespace_and_decimals() -> None:
    dosage = parse_dosage("  2.5 g per scoop", "powder")

    assert dosage.amount == 2.5
    assert dosage.unit is DosageUnit.G
    assert dosage.form is ProductForm.POWDER


def test_parse_dosage_matches_units_case_insensitively() -> None:
    assert parse_dosage("5000 iu", "softgel").unit is DosageUnit.IU
    assert parse_dosage("100 MCG", "tablet").unit is DosageUnit.MCG
    assert parse_dosage("15 mL", "liquid").unit is DosageUnit.ML


def test_parse_dosage_strips_thousands_separators() -> None:
    dosage = parse_dosage("5,000 IU", "softgel")

    assert dosage.amount == 5000
    assert dosage.unit is DosageUnit.IU


def test_parse_dosage_defaults_unknown_unit_to_mg() -> None:
    dosage = parse_dosage("10 capsules", "capsule")

    assert dosage.amount == 10
    assert dosage.unit is DosageUnit.MG
    assert dosage.low_confidence is True


@pytest.mark.parametrize("text", ["", None, "see label", "0 mg", "-5 mg"])
def test_parse_dosage_falls_back_without_raising(text: str | None) -> None:
    dosage = parse_dosage(text, "tablet")

    assert dosage.amount == 1
    assert dosage.unit is DosageUnit.MG
    assert dosage.form is ProductForm.TABLET
    assert dosage.low_confidence is True


def test_parse_dosage_coerces_unknown_form() -> None:
    dosage = parse_dosage("400 mg", "chewable")

    assert dosage.form is ProductForm.CAPSULE
    assert dosage.low_confidence is True


def test_parse_dosage_accepts_form_case_insensitively() -> None:
    assert parse_dosage("1 serving", " Gummy ").form is ProductForm.GUMMY


def test_normalize_unit_and_form() -> None:
    assert normalize_unit("IU") is DosageUnit.IU
    assert normalize_unit("servings") is DosageUnit.SERVING
    assert normalize_unit(None) is DosageUnit.MG
    assert normalize_unit("oz") is DosageUnit.MG
    assert normalize_form("softgel") is ProductForm.SOFTGEL
    assert normalize_form(None) is ProductForm.CAPSULE


def test_servings_or_default() -> None:
    assert servings_or_default(None) == 30
    assert servings_or_default(0) == 1
    assert servings_or_default(90.7) == 90
    assert servings_or_default(60) == 60


def test_format_serving_size() -> None:
    assert format_serving_size(parse_dosage("5000 IU", "softgel")) == (
        "5000 IU per softgel"
    )
    assert format_serving_size(parse_dosage("2.5 g", "powder")) == "2.5 g per powder"
