from __future__ import annotations

import logging
import time

from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from investor_analytics.api.routes import router
from investor_analytics.config import settings
from investor_analytics.models.db import init_db

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

app = FastAPI(
    title="investor_analytics",
    description="Portfolio exposure, liquidity risk, stress, forecasting and reporting analytics",
    version="0.1.0",
    debug=settings.app_debug,
)


@app.on_event("startup")
def startup_event() -> None:
    max_attempts = 8
    delay_seconds = 3
    last_error: Exception | None = None

    for attempt in range(1, max_attempts + 1):
        try:
            init_db()
            logging.info("Database initialization completed", extra={"attempt": attempt, "schema": settings.db_schema})
            return
        except SQLAlchemyError as exc:
            last_error = exc
            logging.exception(
                "Database initialization failed",
                extra={"attempt": attempt, "max_attempts": max_attempts},
            )
            if attempt < max_attempts:
                time.sleep(delay_seconds)
            continue

    raise RuntimeError("Database initialization failed after retries") from last_error


app.include_router(router)
