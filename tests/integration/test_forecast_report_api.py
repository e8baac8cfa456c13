from __future__ import annotations


def test_forecast_with_preset_scenario(test_ctx) -> None:
    client = test_ctx["client"]
    payload = {
        "funds": [{"id": "f1", "name": "Fund One", "commitment": 10_000_000, "paid_in": 5_000_000, "nav": 0}],
        "scenario": "base",
        "as_of": "2026-01-15",
    }

    response = client.post("/api/forecasting", json=payload)

    assert response.status_code == 200
    forecast = response.json()["forecast"]
    assert forecast["capital_call_projections"][0] == {"period": "Q1 2026", "amount": 750_000, "cumulative": 750_000}
    assert len(forecast["net_cash_flow"]) == 8
    assert forecast["scenario"]["key"] == "base"


def test_forecast_with_custom_scenario(test_ctx) -> None:
    client = test_ctx["client"]
    payload = {
        "funds": [{"id": "f1", "commitment": 1_000_000, "paid_in": 0, "nav": 0}],
        "custom_scenario": {"label": "Fast", "call_pace_multiplier": 2.0, "reserve_buffer_pct": 0.5},
        "as_of": "2026-01-15",
    }

    forecast = client.post("/api/forecasting", json=payload).json()["forecast"]

    assert forecast["scenario"]["key"] == "custom"
    assert forecast["capital_call_projections"][0]["amount"] == 300_000


def test_forecast_without_funds(test_ctx) -> None:
    client = test_ctx["client"]

    response = client.post("/api/forecasting", json={"funds": []})

    assert response.status_code == 200
    assert response.json()["forecast"] is None


def test_report_run_grouped(test_ctx) -> None:
    client = test_ctx["client"]
    payload = {
        "user_id": "investor-1",
        "funds": [
            {"id": "f1", "name": "Alpha", "vintage": 2019, "commitment": 100, "paid_in": 50, "nav": 60},
            {"id": "f2", "name": "Beta", "vintage": 2019, "commitment": 100, "paid_in": 50, "nav": 40},
            {"id": "f3", "name": "Gamma", "vintage": 2022, "commitment": 100, "paid_in": 10, "nav": 10},
        ],
        "metrics": ["nav", "tvpi", "not_a_metric"],
        "dimensions": ["vintage"],
        "chart_type": "line",
    }

    response = client.post("/api/reports/run", json=payload)

    assert response.status_code == 200
    body = response.json()
    assert body["metrics"] == ["nav", "tvpi"]
    assert [row["name"] for row in body["rows"]] == ["2019", "2022"]
    assert body["rows"][0]["nav"] == 100
    assert body["rows"][0]["tvpi"] == 1.0
    assert body["summary"]["fund_count"] == 3
    assert body["chart_config"]["chart_type"] == "line"
    assert body["benchmark"] == {"name": None, "series": []}
