from __future__ import annotations

from typing import Any

from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine

from ..models import db as _db_models  # noqa: F401 - ensure models register with metadata


def create_engine_for_url(database_url: str, timeout: float = 5.0) -> Engine:
    connect_args: dict[str, Any] = {}
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": timeout}
        return create_engine(database_url, echo=False, connect_args=connect_args)
    return create_engine(
        database_url,
        echo=False,
        pool_timeout=timeout,
        pool_pre_ping=True,
    )


def init_db(engine: Engine) -> None:
    SQLModel.metadata.create_all(engine)
