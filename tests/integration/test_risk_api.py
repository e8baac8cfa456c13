from __future__ import annotations


def _portfolio(user_id: str = "investor-1") -> dict:
    return {
        "user_id": user_id,
        "funds": [
            {"id": "f1", "name": "Harbor Buyout II", "domicile": "US", "manager": "Harbor", "vintage": 2019,
             "commitment": 1_000_000, "paid_in": 600_000, "nav": 700_000, "dpi": 0.3},
            {"id": "f2", "name": "Rhine Credit I", "domicile": "DE", "manager": "Rhine", "vintage": 2021,
             "base_currency": "EUR", "commitment": 500_000, "paid_in": 200_000, "nav": 250_000},
        ],
        "direct_investments": [
            {"id": "d1", "name": "Widget Co", "investment_type": "PRIVATE_EQUITY", "geography": "US",
             "investment_amount": 100_000, "current_value": 150_000},
        ],
        "capital_calls": [
            {"id": "c1", "fund_id": "f1", "amount": 40_000, "due_date": "2026-02-01", "payment_status": "pending"},
        ],
        "distributions": [],
        "as_of": "2026-01-15",
    }


def test_risk_metrics_returns_full_report(test_ctx) -> None:
    client = test_ctx["client"]

    response = client.post("/api/risk/metrics", json=_portfolio())

    assert response.status_code == 200
    body = response.json()
    assert body["metrics"]["fund_count"] == 2
    assert body["metrics"]["direct_investment_count"] == 1
    assert len(body["scenarios"]) == 3
    assert len(body["liquidity"]["schedule"]) == 8
    assert body["liquidity"]["pending_calls"] == 40_000
    assert 0 <= body["risk_scores"]["overall"] <= 100
    assert set(body["exposures"]["dimensions"]) >= {"fund", "geography", "manager", "vintage"}


def test_invalid_reporting_currency_is_rejected(test_ctx) -> None:
    client = test_ctx["client"]
    payload = {**_portfolio(), "reporting_currency": "DOLLARS"}

    response = client.post("/api/risk/metrics", json=payload)

    assert response.status_code == 400


def test_snapshot_is_persisted_and_listed(test_ctx) -> None:
    client = test_ctx["client"]

    first = client.post("/api/risk/snapshot", json=_portfolio())
    second = client.post("/api/risk/snapshot", json=_portfolio())
    other = client.post("/api/risk/snapshot", json=_portfolio("someone-else"))

    assert first.status_code == 200
    assert second.status_code == 200
    assert other.status_code == 200
    history = client.get("/api/risk/history", params={"user_id": "investor-1"})
    assert history.status_code == 200
    rows = history.json()
    assert [row["id"] for row in rows] == [second.json()["id"], first.json()["id"]]
    assert rows[0]["risk_scores"]["overall"] == first.json()["risk_scores"]["overall"]


def test_custom_scenarios_validated_and_included(test_ctx) -> None:
    client = test_ctx["client"]

    bad = client.post(
        "/api/risk/scenarios",
        json={"user_id": "investor-1", "name": "Broken", "nav_shock": -0.2, "call_multiplier": 0},
    )
    nameless = client.post("/api/risk/scenarios", json={"user_id": "investor-1", "name": " ", "nav_shock": -0.2})
    created = client.post(
        "/api/risk/scenarios",
        json={"user_id": "investor-1", "name": "Rate Shock", "nav_shock": -0.3, "call_multiplier": 1.4},
    )

    assert bad.status_code == 400
    assert nameless.status_code == 400
    assert created.status_code == 201
    listed = client.get("/api/risk/scenarios", params={"user_id": "investor-1"}).json()
    assert [s["name"] for s in listed["custom"]] == ["Rate Shock"]
    assert len(listed["presets"]) == 3

    report = client.post("/api/risk/metrics", json=_portfolio()).json()
    assert [s["name"] for s in report["scenarios"]][-1] == "Rate Shock"
