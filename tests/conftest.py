from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from trackfix.adapters.sqlalchemy import create_all_tables
from trackfix.adapters.sqlalchemy.unit_of_work import SqlAlchemyScanUnitOfWork, shutdown, startup

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from sqlalchemy.engine import Engine


@pytest.fixture(autouse=True)
def clear_matching_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "TRACKFIX_DUPLICATE_THRESHOLD",
        "TRACKFIX_AUTO_RELOCATE_THRESHOLD",
        "TRACKFIX_DURATION_TOLERANCE_SECONDS",
        "TRACKFIX_SIZE_TOLERANCE_RATIO",
        "TRACKFIX_CLOUD_ROOTS",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    create_all_tables(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine, future=True)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyScanUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyScanUnitOfWork:
        return SqlAlchemyScanUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()
