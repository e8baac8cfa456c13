from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote_plus


SUPPORTED_APP_ENVS = {"SIT", "UAT"}

# Units of each currency per one USD.
DEFAULT_FX_RATES: dict[str, float] = {
    "USD": 1.0,
    "EUR": 0.92,
    "GBP": 0.79,
    "CHF": 0.88,
    "JPY": 149.5,
    "CAD": 1.36,
    "AUD": 1.52,
    "SGD": 1.34,
    "HKD": 7.82,
    "SEK": 10.6,
    "NOK": 10.7,
    "DKK": 6.87,
    "INR": 83.2,
    "CNY": 7.24,
}


def _current_app_env() -> str:
    default_env = "UAT" if os.getenv("RAILWAY_ENVIRONMENT", "").strip() else "SIT"
    raw = os.getenv("APP_ENV", default_env).strip().upper()
    if not raw:
        return default_env
    if raw not in SUPPORTED_APP_ENVS:
        raise ValueError(f"Invalid APP_ENV: {raw}. Supported values: {sorted(SUPPORTED_APP_ENVS)}")
    return raw


def _get_first_set(*env_names: str) -> str:
    for env_name in env_names:
        value = os.getenv(env_name, "").strip()
        if value:
            return value
    return ""


def _normalize_database_url(raw_url: str) -> str:
    if not raw_url:
        return raw_url
    if raw_url.startswith("postgres://"):
        return raw_url.replace("postgres://", "postgresql+psycopg2://", 1)
    if raw_url.startswith("postgresql://") and "+" not in raw_url.split("://", 1)[0]:
        return raw_url.replace("postgresql://", "postgresql+psycopg2://", 1)
    return raw_url


def _build_database_url() -> str:
    prefix = _current_app_env()
    explicit = _get_first_set(f"{prefix}_DATABASE_URL", "DATABASE_URL")
    if explicit:
        return _normalize_database_url(explicit)

    host = _get_first_set(f"{prefix}_PGHOST", "PGHOST")
    user = _get_first_set(f"{prefix}_PGUSER", "PGUSER")
    database = _get_first_set(f"{prefix}_PGDATABASE", "PGDATABASE")
    if host and user and database:
        port = _get_first_set(f"{prefix}_PGPORT", "PGPORT") or "5432"
        pwd = quote_plus(_get_first_set(f"{prefix}_PGPASSWORD", "PGPASSWORD"))
        return f"postgresql+psycopg2://{user}:{pwd}@{host}:{port}/{database}"

    # Local dev fallback when DATABASE_URL is not set.
    sqlite_file = Path(os.getenv("SQLITE_DB_PATH", "./investor_analytics.db")).as_posix()
    if sqlite_file.startswith("/"):
        return f"sqlite:///{sqlite_file}"
    return f"sqlite:///./{sqlite_file.lstrip('./')}"


@dataclass(frozen=True)
class Settings:
    app_env: str = _current_app_env()
    app_name: str = os.getenv("APP_NAME", "investor_analytics")
    app_debug: bool = os.getenv("APP_DEBUG", "false").lower() == "true"

    database_url: str = _build_database_url()
    db_schema: str = _get_first_set("DB_SCHEMA") or "investor_analytics"

    default_reporting_currency: str = os.getenv("DEFAULT_REPORTING_CURRENCY", "USD").strip().upper() or "USD"

    concentration_score_weight: float = float(os.getenv("CONCENTRATION_SCORE_WEIGHT", "0.6"))
    liquidity_score_weight: float = float(os.getenv("LIQUIDITY_SCORE_WEIGHT", "0.4"))
    pending_call_window_days: int = int(os.getenv("PENDING_CALL_WINDOW_DAYS", "90"))


settings = Settings()


def get_settings() -> Settings:
    return settings
