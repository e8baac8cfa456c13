from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from investor_analytics.models.policy import RiskPolicyConfig
from investor_analytics.models.risk_snapshot import RiskSnapshot
from investor_analytics.models.scenarios import StressScenario
from investor_analytics.models.tables import RiskPolicy, RiskScenario, RiskSnapshotRecord
from investor_analytics.utils.time import utc_now

logger = logging.getLogger(__name__)

POLICY_FIELDS = tuple(RiskPolicyConfig.model_fields)


class PolicyService:
    @staticmethod
    def to_config(policy: RiskPolicy) -> RiskPolicyConfig:
        return RiskPolicyConfig.model_validate(policy)

    def get_or_create_policy(self, db: Session, user_id: str) -> RiskPolicy:
        policy = db.execute(select(RiskPolicy).where(RiskPolicy.user_id == user_id)).scalar_one_or_none()
        if policy:
            return policy
        defaults = RiskPolicyConfig()
        now = utc_now().replace(tzinfo=None)
        policy = RiskPolicy(
            user_id=user_id,
            created_at=now,
            updated_at=now,
            **{name: getattr(defaults, name) for name in POLICY_FIELDS},
        )
        db.add(policy)
        db.commit()
        db.refresh(policy)
        logger.info("Default risk policy created", extra={"user_id": user_id})
        return policy

    def update_policy(self, db: Session, user_id: str, config: RiskPolicyConfig) -> RiskPolicy:
        policy = self.get_or_create_policy(db, user_id)
        for name in POLICY_FIELDS:
            setattr(policy, name, getattr(config, name))
        policy.updated_at = utc_now().replace(tzinfo=None)
        db.add(policy)
        db.commit()
        db.refresh(policy)
        return policy

    def save_snapshot(self, db: Session, snapshot: RiskSnapshot) -> RiskSnapshot:
        row = RiskSnapshotRecord(
            user_id=snapshot.user_id,
            captured_at=snapshot.captured_at,
            risk_scores=dict(snapshot.risk_scores),
            total_portfolio=snapshot.total_portfolio,
            unfunded_commitments=snapshot.unfunded_commitments,
            liquidity_coverage=snapshot.liquidity_coverage,
            exposures={k: dict(v) for k, v in snapshot.exposures.items()},
            policy_breaches=list(snapshot.policy_breaches),
        )
        db.add(row)
        db.commit()
        db.refresh(row)
        logger.info("Risk snapshot saved", extra={"user_id": snapshot.user_id, "snapshot_id": row.id})
        return RiskSnapshot.model_validate(row)

    def list_snapshots(self, db: Session, user_id: str, limit: int = 50) -> list[RiskSnapshot]:
        rows = db.execute(
            select(RiskSnapshotRecord)
            .where(RiskSnapshotRecord.user_id == user_id)
            .order_by(RiskSnapshotRecord.captured_at.desc(), RiskSnapshotRecord.id.desc())
            .limit(limit)
        ).scalars().all()
        return [RiskSnapshot.model_validate(row) for row in rows]

    @staticmethod
    def validate_scenario(name: str | None, call_multiplier: float, distribution_multiplier: float) -> None:
        if not name or not name.strip():
            raise ValueError("Scenario name is required")
        if call_multiplier <= 0:
            raise ValueError("call_multiplier must be greater than 0")
        if distribution_multiplier < 0:
            raise ValueError("distribution_multiplier must be 0 or greater")

    def create_scenario(
        self,
        db: Session,
        user_id: str,
        name: str,
        nav_shock: float,
        call_multiplier: float = 1.0,
        distribution_multiplier: float = 1.0,
    ) -> RiskScenario:
        self.validate_scenario(name, call_multiplier, distribution_multiplier)
        row = RiskScenario(
            user_id=user_id,
            name=name.strip(),
            nav_shock=nav_shock,
            call_multiplier=call_multiplier,
            distribution_multiplier=distribution_multiplier,
            created_at=utc_now().replace(tzinfo=None),
        )
        db.add(row)
        db.commit()
        db.refresh(row)
        return row

    def list_scenarios(self, db: Session, user_id: str) -> list[RiskScenario]:
        return db.execute(
            select(RiskScenario).where(RiskScenario.user_id == user_id).order_by(RiskScenario.id)
        ).scalars().all()

    @staticmethod
    def to_stress_scenario(row: RiskScenario) -> StressScenario:
        return StressScenario(
            name=row.name,
            nav_shock=row.nav_shock,
            call_multiplier=row.call_multiplier,
            distribution_multiplier=row.distribution_multiplier,
        )
