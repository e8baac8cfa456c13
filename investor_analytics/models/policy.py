from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


Severity = Literal["high", "medium", "low"]


class RiskPolicyConfig(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    max_single_fund_exposure: float = Field(default=25.0, gt=0)
    max_geography_exposure: float = Field(default=40.0, gt=0)
    max_manager_exposure: float = Field(default=20.0, gt=0)
    max_vintage_exposure: float = Field(default=30.0, gt=0)
    max_asset_class_exposure: float = Field(default=35.0, gt=0)
    max_sector_exposure: float = Field(default=35.0, gt=0)
    max_currency_exposure: float = Field(default=30.0, gt=0)
    max_unfunded_commitments: float = Field(default=50.0, gt=0)
    min_number_of_funds: int = Field(default=5, ge=0)
    min_acceptable_tvpi: float = Field(default=1.5, ge=0)
    min_liquidity_coverage: float = Field(default=1.5, ge=0)
    target_liquidity_buffer: float = Field(default=0.15, ge=0, le=1)

    def exposure_limit(self, dimension: str) -> float | None:
        return {
            "fund": self.max_single_fund_exposure,
            "geography": self.max_geography_exposure,
            "manager": self.max_manager_exposure,
            "vintage": self.max_vintage_exposure,
            "asset_class": self.max_asset_class_exposure,
            "sector": self.max_sector_exposure,
            "currency": self.max_currency_exposure,
        }.get(dimension)


@dataclass
class Violation:
    type: str
    category: str
    severity: Severity
    current: float
    limit: float
    message: str


@dataclass
class ViolationReport:
    violations: list[Violation] = field(default_factory=list)
    message: str | None = None

    @property
    def summary(self) -> dict[str, int]:
        counts = {"total": len(self.violations), "high": 0, "medium": 0, "low": 0}
        for violation in self.violations:
            counts[violation.severity] += 1
        return counts

    def to_dict(self) -> dict:
        return {
            "violations": [asdict(v) for v in self.violations],
            "summary": self.summary,
            "message": self.message,
        }
