"""SQLAlchemy adapter package for the trackfix scan store."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry, scan_result_table
from .repositories import SqlAlchemyScanResultRepository
from .unit_of_work import SqlAlchemyScanUnitOfWork, StartupError, shutdown, startup

__all__ = [
    "SqlAlchemyScanResultRepository",
    "SqlAlchemyScanUnitOfWork",
    "StartupError",
    "create_all_tables",
    "mapper_registry",
    "scan_result_table",
    "shutdown",
    "startup",
]
