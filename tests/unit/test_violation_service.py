import pytest

from investor_analytics.models.policy import RiskPolicyConfig
from investor_analytics.models.portfolio import FundRecord, PortfolioEntity
from investor_analytics.services.normalization_service import NormalizationService
from investor_analytics.services.violation_service import HIGH_OVER_LIMIT, ViolationService, _severity_above

# Loose limits so only the check under test can fire.
LOOSE = dict(
    max_single_fund_exposure=100,
    max_geography_exposure=100,
    max_manager_exposure=100,
    max_vintage_exposure=100,
    max_unfunded_commitments=100,
    min_number_of_funds=0,
    min_acceptable_tvpi=0,
)


def _fund(fund_id: str, nav: float, **fields) -> PortfolioEntity:
    paid_in = fields.pop("paid_in", nav)
    return PortfolioEntity(
        id=fund_id,
        name=fields.pop("name", fund_id.upper()),
        entity_type="Fund",
        nav=nav,
        paid_in=paid_in,
        commitment=fields.pop("commitment", paid_in),
        total_value=fields.pop("total_value", nav),
        unfunded=fields.pop("unfunded", 0.0),
        **fields,
    )


def test_geography_concentration_is_high() -> None:
    entities = [_fund("a", 700, geography="US"), _fund("b", 300, geography="DE")]
    policy = RiskPolicyConfig(**{**LOOSE, "max_geography_exposure": 40})

    report = ViolationService().detect(entities, policy)

    assert len(report.violations) == 1
    violation = report.violations[0]
    assert violation.category == "Geography"
    assert violation.type == "concentration"
    assert violation.severity == "high"
    assert violation.current == pytest.approx(70.0)
    assert violation.message == "US exposure is 70.0% (limit: 40%)"
    assert report.summary == {"total": 1, "high": 1, "medium": 0, "low": 0}


def test_exposure_equal_to_limit_does_not_fire() -> None:
    entities = [_fund("a", 50, geography="US"), _fund("b", 50, geography="DE")]
    policy = RiskPolicyConfig(**{**LOOSE, "max_geography_exposure": 50})

    report = ViolationService().detect(entities, policy)

    assert report.violations == []


def test_exposure_just_over_limit_is_medium() -> None:
    entities = [_fund("a", 50, geography="US"), _fund("b", 50.005, geography="DE")]
    policy = RiskPolicyConfig(**{**LOOSE, "max_geography_exposure": 50})

    report = ViolationService().detect(entities, policy)

    assert [v.severity for v in report.violations] == ["medium"]


def test_single_fund_well_over_limit_is_high() -> None:
    entities = [_fund("a", 35), _fund("b", 65)]
    policy = RiskPolicyConfig(**{**LOOSE, "max_single_fund_exposure": 25})

    report = ViolationService().detect(entities, policy)

    by_current = {round(v.current): v for v in report.violations}
    assert set(by_current) == {35, 65}
    assert by_current[35].severity == "high"
    assert by_current[35].message == "A represents 35.0% of portfolio (limit: 25%)"


def test_fund_count_and_tvpi_ignore_direct_investments() -> None:
    entities = [
        _fund("a", 100, paid_in=100, total_value=110),
        PortfolioEntity(id="d1", name="Direct", entity_type="DirectInvestment", nav=900, paid_in=100, total_value=900),
    ]
    policy = RiskPolicyConfig(**{**LOOSE, "min_number_of_funds": 5, "min_acceptable_tvpi": 1.5})

    report = ViolationService().detect(entities, policy)
    by_category = {v.category: v for v in report.violations}

    assert by_category["Number of Funds"].severity == "high"
    assert by_category["Number of Funds"].current == 1
    assert by_category["TVPI"].current == pytest.approx(1.1)
    assert by_category["TVPI"].severity == "high"


def test_unfunded_commitments_check() -> None:
    entities = [_fund("a", 100, commitment=1000, paid_in=450, unfunded=550)]
    policy = RiskPolicyConfig(**{**LOOSE, "max_unfunded_commitments": 50})

    report = ViolationService().detect(entities, policy)

    assert [(v.category, v.severity) for v in report.violations] == [("Unfunded Commitments", "medium")]
    assert report.violations[0].current == pytest.approx(55.0)


def test_no_policy_returns_message() -> None:
    report = ViolationService().detect([_fund("a", 100)], None)

    assert report.violations == []
    assert report.message == "No policy set"
    assert report.summary["total"] == 0


def test_concentration_measured_against_fund_nav_only() -> None:
    funds = [_fund(f"f{i}", 100, manager=f"Manager {i}") for i in range(5)]
    direct = PortfolioEntity(id="d1", name="Direct", entity_type="DirectInvestment", nav=500, paid_in=500)
    policy = RiskPolicyConfig(**{**LOOSE, "max_manager_exposure": 25, "max_single_fund_exposure": 15})

    report = ViolationService().detect([*funds, direct], policy)

    assert {v.category for v in report.violations} == {"Single Fund"}
    assert all(v.current == pytest.approx(20.0) for v in report.violations)
    assert len(report.violations) == 5


def test_normalized_three_fund_portfolio_breaches_geography() -> None:
    records = [
        FundRecord(id="fa", name="Fund A", domicile="US", commitment=10_000_000, paid_in=6_000_000, nav=5_000_000),
        FundRecord(id="fb", name="Fund B", domicile="US", commitment=10_000_000, paid_in=8_000_000, nav=9_000_000),
        FundRecord(id="fc", name="Fund C", domicile="DE", commitment=5_000_000, paid_in=5_000_000, nav=6_000_000),
    ]
    entities = NormalizationService().normalize(records, reporting_currency="USD")
    policy = RiskPolicyConfig(**{**LOOSE, "max_geography_exposure": 50})

    report = ViolationService().detect(entities, policy)

    assert len(report.violations) == 1
    violation = report.violations[0]
    assert violation.category == "Geography"
    assert violation.current == pytest.approx(70.0)
    assert violation.severity == "high"
    assert violation.message == "US exposure is 70.0% (limit: 50%)"


def test_exposure_at_exactly_120_percent_of_limit_is_high() -> None:
    assert _severity_above(50 * HIGH_OVER_LIMIT, 50) == "high"
    assert _severity_above(59.99, 50) == "medium"

    entities = [_fund("a", 60, geography="US"), _fund("b", 40, geography="DE")]
    policy = RiskPolicyConfig(**{**LOOSE, "max_geography_exposure": 50})

    report = ViolationService().detect(entities, policy)

    assert [(v.category, v.severity) for v in report.violations] == [("Geography", "high")]
