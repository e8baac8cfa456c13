from __future__ import annotations

import re

from sqlalchemy import event
from sqlalchemy import create_engine, text
from sqlalchemy.orm import declarative_base, sessionmaker

from investor_analytics.config import settings


Base = declarative_base()

connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}
engine = create_engine(settings.database_url, connect_args=connect_args, future=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def _safe_schema_name(schema: str) -> str:
    if not re.fullmatch(r"[A-Za-z_][A-Za-z0-9_]*", schema):
        raise ValueError(f"Invalid DB_SCHEMA: {schema}")
    return schema


if settings.database_url.startswith("postgresql"):
    _schema = _safe_schema_name(settings.db_schema)

    @event.listens_for(engine, "connect")
    def set_postgres_search_path(dbapi_connection, _connection_record) -> None:
        with dbapi_connection.cursor() as cursor:
            cursor.execute(f"SET search_path TO {_schema}")


def get_db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    from investor_analytics.models import tables  # noqa: F401

    if settings.database_url.startswith("postgresql"):
        schema = _safe_schema_name(settings.db_schema)
        with engine.begin() as conn:
            conn.execute(text(f"CREATE SCHEMA IF NOT EXISTS {schema}"))
            conn.execute(text(f"SET search_path TO {schema}"))

    Base.metadata.create_all(bind=engine)
