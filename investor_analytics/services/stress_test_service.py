from __future__ import annotations

from dataclasses import asdict, dataclass

from investor_analytics.models.scenarios import STRESS_PRESETS, StressScenario
from investor_analytics.utils.ratios import safe_div


@dataclass
class StressResult:
    name: str
    nav_shock: float
    call_multiplier: float
    distribution_multiplier: float
    projected_nav: float
    projected_calls: float
    projected_distributions: float
    coverage_ratio: float
    liquidity_gap: float

    def to_dict(self) -> dict:
        return asdict(self)


class StressTestService:
    def __init__(self, presets: tuple[StressScenario, ...] = STRESS_PRESETS) -> None:
        self.presets = presets

    @staticmethod
    def simulate(
        scenario: StressScenario,
        total_portfolio: float,
        base_calls: float,
        base_distributions: float,
        available_liquidity: float,
    ) -> StressResult:
        # NAV shock moves marks and distributions, never the call schedule.
        projected_calls = max(base_calls * scenario.call_multiplier, 0.0)
        projected_distributions = max(
            base_distributions * (1 + scenario.nav_shock) * scenario.distribution_multiplier,
            0.0,
        )
        return StressResult(
            name=scenario.name,
            nav_shock=scenario.nav_shock,
            call_multiplier=scenario.call_multiplier,
            distribution_multiplier=scenario.distribution_multiplier,
            projected_nav=total_portfolio * (1 + scenario.nav_shock),
            projected_calls=projected_calls,
            projected_distributions=projected_distributions,
            coverage_ratio=safe_div(available_liquidity, projected_calls),
            liquidity_gap=max(projected_calls - (available_liquidity + projected_distributions), 0.0),
        )

    def run(
        self,
        total_portfolio: float,
        base_calls: float,
        base_distributions: float,
        available_liquidity: float,
        scenarios: list[StressScenario] | None = None,
    ) -> list[StressResult]:
        selected = list(scenarios) if scenarios else list(self.presets)
        return [
            self.simulate(
                scenario,
                total_portfolio=total_portfolio,
                base_calls=base_calls,
                base_distributions=base_distributions,
                available_liquidity=available_liquidity,
            )
            for scenario in selected
        ]
