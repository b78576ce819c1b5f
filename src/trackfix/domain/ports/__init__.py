"""Ports the reconciliation engine depends on."""

from __future__ import annotations

from trackfix.domain.ports.filesystem import FilesystemProber
from trackfix.domain.ports.persistence import ScanRecord, ScanResultRepository
from trackfix.domain.ports.unit_of_work import (
    RepositoryCollection,
    ScanRepositories,
    ScanUnitOfWork,
    UnitOfWork,
)

__all__ = [
    "FilesystemProber",
    "RepositoryCollection",
    "ScanRecord",
    "ScanRepositories",
    "ScanResultRepository",
    "ScanUnitOfWork",
    "UnitOfWork",
]
