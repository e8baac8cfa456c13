from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ScenarioConfig:
    key: str
    label: str
    call_pace_multiplier: float = 1.0
    distribution_haircut: float = 0.0
    reserve_buffer_pct: float = 0.0


@dataclass(frozen=True)
class StressScenario:
    name: str
    nav_shock: float
    call_multiplier: float = 1.0
    distribution_multiplier: float = 1.0


SCENARIO_PRESETS: dict[str, ScenarioConfig] = {
    "base": ScenarioConfig("base", "Base", 1.0, 0.0, 0.0),
    "downside": ScenarioConfig("downside", "Downside", 1.15, 0.3, 0.1),
    "severe": ScenarioConfig("severe", "Severe", 1.3, 0.5, 0.2),
}

STRESS_PRESETS: tuple[StressScenario, ...] = (
    StressScenario("Base Case", -0.10, 1.0, 1.0),
    StressScenario("Downside", -0.25, 1.25, 0.75),
    StressScenario("Severe Stress", -0.40, 1.5, 0.5),
)
