from __future__ import annotations

import logging

from investor_analytics.models.policy import RiskPolicyConfig, Severity, Violation, ViolationReport
from investor_analytics.models.portfolio import PortfolioEntity
from investor_analytics.services.exposure_service import ExposureReport, ExposureService
from investor_analytics.utils.ratios import safe_div

logger = logging.getLogger(__name__)

HIGH_OVER_LIMIT = 1.2
HIGH_FUND_COUNT_SHORTFALL = 0.7
HIGH_TVPI_SHORTFALL = 0.8

# (exposure dimension, category, policy field, message template)
AGGREGATE_CHECKS: tuple[tuple[str, str, str, str], ...] = (
    ("geography", "Geography", "max_geography_exposure", "{key} exposure is {current:.1f}% (limit: {limit}%)"),
    ("manager", "Manager", "max_manager_exposure", "{key} exposure is {current:.1f}% (limit: {limit}%)"),
    ("vintage", "Vintage", "max_vintage_exposure", "Vintage {key} exposure is {current:.1f}% (limit: {limit}%)"),
)


def _severity_above(current: float, limit: float) -> Severity:
    return "high" if current >= limit * HIGH_OVER_LIMIT else "medium"


def _severity_below(current: float, limit: float, factor: float) -> Severity:
    return "high" if current < limit * factor else "medium"


class ViolationService:
    def __init__(self, exposure_service: ExposureService | None = None) -> None:
        self.exposure_service = exposure_service or ExposureService()

    def detect(
        self,
        entities: list[PortfolioEntity],
        policy: RiskPolicyConfig | None,
    ) -> ViolationReport:
        if policy is None:
            logger.warning("Violation check skipped, no policy configured")
            return ViolationReport(violations=[], message="No policy set")

        # Concentration limits are measured against fund NAV only.
        funds = [entity for entity in entities if entity.is_fund]
        exposures = self.exposure_service.analyze(funds, policy)

        violations: list[Violation] = []
        violations.extend(self._single_fund(funds, exposures, policy))
        for dimension, category, limit_field, template in AGGREGATE_CHECKS:
            violations.extend(
                self._aggregate(exposures, dimension, category, float(getattr(policy, limit_field)), template)
            )
        violations.extend(self._unfunded(funds, policy))
        violations.extend(self._fund_count(funds, policy))
        violations.extend(self._tvpi(funds, policy))

        logger.info("Policy violations evaluated", extra={"entities": len(entities), "violations": len(violations)})
        return ViolationReport(violations=violations)

    @staticmethod
    def _single_fund(
        funds: list[PortfolioEntity],
        exposures: ExposureReport,
        policy: RiskPolicyConfig,
    ) -> list[Violation]:
        limit = float(policy.max_single_fund_exposure)
        by_id = exposures.percentages("fund")
        out: list[Violation] = []
        for fund in funds:
            exposure = by_id.get(fund.id, 0.0)
            if exposure > limit:
                out.append(
                    Violation(
                        type="concentration",
                        category="Single Fund",
                        severity=_severity_above(exposure, limit),
                        current=exposure,
                        limit=limit,
                        message=f"{fund.name} represents {exposure:.1f}% of portfolio (limit: {limit:g}%)",
                    )
                )
        return out

    @staticmethod
    def _aggregate(
        exposures: ExposureReport,
        dimension: str,
        category: str,
        limit: float,
        template: str,
    ) -> list[Violation]:
        out: list[Violation] = []
        for key, exposure in exposures.percentages(dimension).items():
            if exposure > limit:
                out.append(
                    Violation(
                        type="concentration",
                        category=category,
                        severity=_severity_above(exposure, limit),
                        current=exposure,
                        limit=limit,
                        message=template.format(key=key, current=exposure, limit=f"{limit:g}"),
                    )
                )
        return out

    @staticmethod
    def _unfunded(funds: list[PortfolioEntity], policy: RiskPolicyConfig) -> list[Violation]:
        limit = float(policy.max_unfunded_commitments)
        total_commitment = sum(fund.commitment for fund in funds)
        unfunded = sum(fund.unfunded for fund in funds)
        current = safe_div(unfunded, total_commitment) * 100
        if current <= limit:
            return []
        return [
            Violation(
                type="liquidity",
                category="Unfunded Commitments",
                severity=_severity_above(current, limit),
                current=current,
                limit=limit,
                message=f"Unfunded commitments are {current:.1f}% (limit: {limit:g}%)",
            )
        ]

    @staticmethod
    def _fund_count(funds: list[PortfolioEntity], policy: RiskPolicyConfig) -> list[Violation]:
        limit = policy.min_number_of_funds
        count = len(funds)
        if count >= limit:
            return []
        return [
            Violation(
                type="diversification",
                category="Number of Funds",
                severity=_severity_below(count, limit, HIGH_FUND_COUNT_SHORTFALL),
                current=float(count),
                limit=float(limit),
                message=f"Portfolio has {count} funds (minimum: {limit})",
            )
        ]

    @staticmethod
    def _tvpi(funds: list[PortfolioEntity], policy: RiskPolicyConfig) -> list[Violation]:
        limit = float(policy.min_acceptable_tvpi)
        # Summed total value over summed paid-in equals the paid-in weighted TVPI.
        tvpi = safe_div(sum(f.total_value for f in funds), sum(f.paid_in for f in funds))
        if tvpi >= limit:
            return []
        return [
            Violation(
                type="performance",
                category="TVPI",
                severity=_severity_below(tvpi, limit, HIGH_TVPI_SHORTFALL),
                current=tvpi,
                limit=limit,
                message=f"Portfolio TVPI is {tvpi:.2f}x (minimum: {limit:.2f}x)",
            )
        ]
