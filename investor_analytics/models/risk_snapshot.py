from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field


class RiskSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int | None = None
    user_id: str
    captured_at: dt.datetime
    risk_scores: dict[str, float]
    total_portfolio: float
    unfunded_commitments: float
    liquidity_coverage: float
    exposures: dict[str, dict[str, float]] = Field(default_factory=dict)
    policy_breaches: list[dict] = Field(default_factory=list)
