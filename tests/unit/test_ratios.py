import pytest

from investor_analytics.utils.ratios import as_number, derive_ratios, safe_div
from investor_analytics.utils.validation import allowed_ids, validate_currency


def test_derive_ratios_identities() -> None:
    ratios = derive_ratios(commitment=1000, paid_in=400, nav=300, distributions=200)

    assert ratios["total_value"] == 500
    assert ratios["unfunded"] == 600
    assert ratios["tvpi"] == pytest.approx(ratios["dpi"] + ratios["rvpi"])
    assert ratios["pic"] == pytest.approx(0.4)


def test_overcalled_commitment_has_no_negative_unfunded() -> None:
    assert derive_ratios(100, 120, 0, 0)["unfunded"] == 0


def test_zero_denominators_give_zero() -> None:
    ratios = derive_ratios(0, 0, 50, 10)

    assert ratios["tvpi"] == 0
    assert ratios["pic"] == 0
    assert safe_div(1, 0) == 0


def test_as_number_coerces_bad_values() -> None:
    assert as_number(None) == 0
    assert as_number("12.5") == 12.5
    assert as_number("abc", default=-1) == -1
    assert as_number(float("nan")) == 0


def test_validation_helpers() -> None:
    assert validate_currency(" gbp ") == "GBP"
    assert validate_currency(None) == "USD"
    with pytest.raises(ValueError):
        validate_currency("EURO")
    assert allowed_ids(["b", "x", "a", "b"], ["a", "b"]) == ["b", "a"]
