from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine

from trackfix.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyScanUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)
from trackfix.domain.model import ScanKind
from trackfix.domain.ports.persistence import ScanRecord

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.engine import Engine


@pytest.fixture(autouse=True)
def reset_unit_of_work_state() -> Iterator[None]:
    shutdown()
    yield
    shutdown()


def test_unit_of_work_requires_startup() -> None:
    assert not is_started()
    with pytest.raises(StartupError):
        SqlAlchemyScanUnitOfWork()


def test_startup_requires_force_for_reconfiguration() -> None:
    engine_a = create_engine("sqlite+pysqlite:///:memory:", future=True)
    engine_b = create_engine("sqlite+pysqlite:///:memory:", future=True)

    startup(engine=engine_a, force=True)

    with pytest.raises(StartupError):
        startup(engine=engine_b)

    startup(engine=engine_b, force=True)
    assert configured_engine() is engine_b


def test_startup_reads_database_uri(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URI", "sqlite+pysqlite:///:memory:")

    startup()

    engine = configured_engine()
    assert engine is not None
    assert engine.url.get_backend_name() == "sqlite"


def test_commit_persists_and_exit_without_commit_discards(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    record = ScanRecord(library_path="/lib.json", kind=ScanKind.OWNERSHIP, payload=[])

    with SqlAlchemyScanUnitOfWork() as uow:
        uow.repositories.scans.save(record)
        uow.commit()

    with SqlAlchemyScanUnitOfWork() as uow:
        uow.repositories.scans.save(
            ScanRecord(library_path="/other.json", kind=ScanKind.OWNERSHIP, payload=[])
        )

    with SqlAlchemyScanUnitOfWork() as uow:
        assert uow.repositories.scans.library_paths() == ["/lib.json"]


def test_exception_rolls_back(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with pytest.raises(RuntimeError), SqlAlchemyScanUnitOfWork() as uow:
        uow.repositories.scans.save(
            ScanRecord(library_path="/lib.json", kind=ScanKind.DUPLICATES, payload={})
        )
        raise RuntimeError("boom")

    with SqlAlchemyScanUnitOfWork() as uow:
        assert uow.repositories.scans.count() == 0


def test_repositories_unavailable_outside_context(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    uow = SqlAlchemyScanUnitOfWork()

    with pytest.raises(StartupError):
        _ = uow.repositories
