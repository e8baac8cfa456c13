from __future__ import annotations

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from investor_analytics.config import settings
from investor_analytics.models.db import get_db_session
from investor_analytics.models.policy import RiskPolicyConfig
from investor_analytics.models.portfolio import PortfolioEntity
from investor_analytics.models.risk_snapshot import RiskSnapshot
from investor_analytics.models.scenarios import ScenarioConfig
from investor_analytics.models.schemas import (
    ForecastRequest,
    PolicyResponse,
    PortfolioPayload,
    ReportRunRequest,
    RiskMetricsRequest,
    StressScenarioIn,
    StressScenarioOut,
    ViolationRequest,
)
from investor_analytics.models.tables import RiskPolicy
from investor_analytics.services.forecast_service import ForecastService
from investor_analytics.services.normalization_service import NormalizationService
from investor_analytics.services.policy_service import PolicyService
from investor_analytics.services.reporting_service import ReportFilters, ReportingService
from investor_analytics.services.risk_service import RiskReport, RiskService
from investor_analytics.services.violation_service import ViolationService
from investor_analytics.utils.validation import validate_currency

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["investor-analytics"])

normalization_service = NormalizationService()
policy_service = PolicyService()
risk_service = RiskService()
violation_service = ViolationService()
forecast_service = ForecastService()
reporting_service = ReportingService(fx=normalization_service.fx)


def _reporting_currency(payload: PortfolioPayload) -> str:
    try:
        return validate_currency(payload.reporting_currency, default=settings.default_reporting_currency)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _entities(payload: PortfolioPayload) -> list[PortfolioEntity]:
    return normalization_service.normalize(payload.funds, payload.direct_investments, _reporting_currency(payload))


def _policy_response(policy: RiskPolicy) -> PolicyResponse:
    config = PolicyService.to_config(policy)
    return PolicyResponse(user_id=policy.user_id, updated_at=policy.updated_at, **config.model_dump())


def _risk_report(payload: RiskMetricsRequest, db: Session) -> RiskReport:
    entities = _entities(payload)
    policy = PolicyService.to_config(policy_service.get_or_create_policy(db, payload.user_id))
    scenarios = None
    if payload.include_custom_scenarios:
        custom = [PolicyService.to_stress_scenario(row) for row in policy_service.list_scenarios(db, payload.user_id)]
        if custom:
            scenarios = list(risk_service.stress_service.presets) + custom
    return risk_service.compute_report(
        entities,
        capital_calls=payload.capital_calls,
        distributions=payload.distributions,
        policy=policy,
        available_cash=payload.available_cash,
        scenarios=scenarios,
        as_of=payload.as_of,
    )


@router.get("/health")
def health() -> dict:
    return {"status": "ok", "app_env": settings.app_env}


@router.post("/risk/metrics")
def risk_metrics(payload: RiskMetricsRequest, db: Session = Depends(get_db_session)):
    try:
        return _risk_report(payload, db).to_dict()
    except HTTPException:
        raise
    except Exception as exc:
        logger.exception("Risk metrics failed", extra={"user_id": payload.user_id, "error": str(exc)})
        raise HTTPException(status_code=500, detail="Risk metrics failed") from exc


@router.post("/risk/snapshot", response_model=RiskSnapshot)
def risk_snapshot(payload: RiskMetricsRequest, db: Session = Depends(get_db_session)):
    try:
        report = _risk_report(payload, db)
        return policy_service.save_snapshot(db, risk_service.build_snapshot(report, payload.user_id))
    except HTTPException:
        raise
    except Exception as exc:
        logger.exception("Risk snapshot failed", extra={"user_id": payload.user_id, "error": str(exc)})
        raise HTTPException(status_code=500, detail="Risk snapshot failed") from exc


@router.get("/risk/history", response_model=list[RiskSnapshot])
def risk_history(
    user_id: str = Query(..., min_length=1),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db_session),
):
    return policy_service.list_snapshots(db, user_id, limit=limit)


@router.get("/risk/scenarios")
def list_risk_scenarios(user_id: str = Query(..., min_length=1), db: Session = Depends(get_db_session)) -> dict:
    custom = [StressScenarioOut.model_validate(row) for row in policy_service.list_scenarios(db, user_id)]
    return {
        "presets": [asdict(s) for s in risk_service.stress_service.presets],
        "custom": [row.model_dump() for row in custom],
    }


@router.post("/risk/scenarios", response_model=StressScenarioOut, status_code=201)
def create_risk_scenario(payload: StressScenarioIn, db: Session = Depends(get_db_session)):
    try:
        row = policy_service.create_scenario(
            db,
            user_id=payload.user_id,
            name=payload.name,
            nav_shock=payload.nav_shock,
            call_multiplier=payload.call_multiplier,
            distribution_multiplier=payload.distribution_multiplier,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return StressScenarioOut.model_validate(row)


@router.get("/policies/{user_id}", response_model=PolicyResponse)
def get_policy(user_id: str, db: Session = Depends(get_db_session)):
    return _policy_response(policy_service.get_or_create_policy(db, user_id))


@router.put("/policies/{user_id}", response_model=PolicyResponse)
def put_policy(user_id: str, payload: RiskPolicyConfig, db: Session = Depends(get_db_session)):
    return _policy_response(policy_service.update_policy(db, user_id, payload))


@router.post("/policies/violations")
def policy_violations(payload: ViolationRequest, db: Session = Depends(get_db_session)) -> dict:
    entities = _entities(payload)
    policy = payload.policy
    if policy is None and payload.use_stored_policy:
        policy = PolicyService.to_config(policy_service.get_or_create_policy(db, payload.user_id))
    return violation_service.detect(entities, policy).to_dict()


@router.post("/forecasting")
def forecasting(payload: ForecastRequest) -> dict:
    scenario: str | ScenarioConfig = payload.scenario
    if payload.custom_scenario is not None:
        scenario = ScenarioConfig(key="custom", **payload.custom_scenario.model_dump())
    try:
        forecast = forecast_service.generate(
            payload.events,
            payload.funds,
            scenario=scenario,
            available_cash=payload.available_cash,
            as_of=payload.as_of,
        )
    except Exception as exc:
        logger.exception("Cash-flow forecast failed", extra={"scenario": payload.scenario, "error": str(exc)})
        raise HTTPException(status_code=500, detail="Cash-flow forecast failed") from exc
    if forecast is None:
        return {"forecast": None, "message": "No funds available to forecast"}
    return {"forecast": forecast.to_dict(), "message": None}


@router.post("/reports/run")
def run_report(payload: ReportRunRequest) -> dict:
    entities = _entities(payload)
    try:
        result = reporting_service.run(
            entities,
            metrics=payload.metrics,
            dimensions=payload.dimensions,
            filters=ReportFilters(**payload.filters.model_dump()),
            reporting_currency=_reporting_currency(payload),
            chart_type=payload.chart_type,
        )
    except Exception as exc:
        logger.exception("Report run failed", extra={"user_id": payload.user_id, "error": str(exc)})
        raise HTTPException(status_code=500, detail="Report run failed") from exc
    return result.to_dict()
