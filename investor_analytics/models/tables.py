from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from investor_analytics.models.db import Base


class RiskPolicy(Base):
    __tablename__ = "risk_policy"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    max_single_fund_exposure: Mapped[float] = mapped_column(Float, nullable=False, default=25.0)
    max_geography_exposure: Mapped[float] = mapped_column(Float, nullable=False, default=40.0)
    max_manager_exposure: Mapped[float] = mapped_column(Float, nullable=False, default=20.0)
    max_vintage_exposure: Mapped[float] = mapped_column(Float, nullable=False, default=30.0)
    max_asset_class_exposure: Mapped[float] = mapped_column(Float, nullable=False, default=35.0)
    max_sector_exposure: Mapped[float] = mapped_column(Float, nullable=False, default=35.0)
    max_currency_exposure: Mapped[float] = mapped_column(Float, nullable=False, default=30.0)
    max_unfunded_commitments: Mapped[float] = mapped_column(Float, nullable=False, default=50.0)
    min_number_of_funds: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    min_acceptable_tvpi: Mapped[float] = mapped_column(Float, nullable=False, default=1.5)
    min_liquidity_coverage: Mapped[float] = mapped_column(Float, nullable=False, default=1.5)
    target_liquidity_buffer: Mapped[float] = mapped_column(Float, nullable=False, default=0.15)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class RiskSnapshotRecord(Base):
    __tablename__ = "risk_snapshot"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    captured_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    risk_scores: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    total_portfolio: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    unfunded_commitments: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    liquidity_coverage: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    exposures: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    policy_breaches: Mapped[list] = mapped_column(JSON, default=list, nullable=False)


class RiskScenario(Base):
    __tablename__ = "risk_scenario"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    nav_shock: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    call_multiplier: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    distribution_multiplier: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
