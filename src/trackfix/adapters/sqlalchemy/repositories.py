"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, cast

from sqlalchemy import delete, func, select

from trackfix.adapters.sqlalchemy.mappings import scan_result_table
from trackfix.domain.ports.persistence import ScanRecord

if TYPE_CHECKING:
    from sqlalchemy import Row
    from sqlalchemy.orm import Session

    from trackfix.domain.model import ScanKind


def _now() -> datetime:
    return datetime.now(UTC)


class SqlAlchemyScanResultRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def save(self, record: ScanRecord) -> ScanRecord:
        table = scan_result_table
        now = record.updated_at or _now()
        existing = self.session.execute(
            select(table.c.id, table.c.created_at)
            .where(table.c.library_path == record.library_path)
            .where(table.c.kind == record.kind)
        ).one_or_none()
        if existing is None:
            created_at = record.created_at or now
            self.session.execute(
                table.insert().values(
                    library_path=record.library_path,
                    kind=record.kind,
                    payload=record.payload,
                    options=dict(record.options),
                    created_at=created_at,
                    updated_at=now,
                )
            )
        else:
            created_at = cast("datetime", existing.created_at)
            self.session.execute(
                table.update()
                .where(table.c.id == existing.id)
                .values(payload=record.payload, options=dict(record.options), updated_at=now)
            )
        return ScanRecord(
            library_path=record.library_path,
            kind=record.kind,
            payload=record.payload,
            options=dict(record.options),
            created_at=created_at,
            updated_at=now,
        )

    def get(self, library_path: str, kind: ScanKind) -> ScanRecord | None:
        table = scan_result_table
        row = self.session.execute(
            select(table)
            .where(table.c.library_path == library_path)
            .where(table.c.kind == kind)
        ).one_or_none()
        return None if row is None else self._to_record(row)

    def delete(self, library_path: str, kind: ScanKind | None = None) -> int:
        table = scan_result_table
        stmt = delete(table).where(table.c.library_path == library_path)
        if kind is not None:
            stmt = stmt.where(table.c.kind == kind)
        result = self.session.execute(stmt)
        return int(result.rowcount or 0)  # pyright: ignore[reportAttributeAccessIssue]

    def library_paths(self, kind: ScanKind | None = None) -> list[str]:
        table = scan_result_table
        latest = func.max(table.c.updated_at)
        stmt = select(table.c.library_path, latest).group_by(table.c.library_path)
        if kind is not None:
            stmt = stmt.where(table.c.kind == kind)
        stmt = stmt.order_by(latest.desc(), table.c.library_path)
        return [row[0] for row in self.session.execute(stmt).all()]

    def count(self, kind: ScanKind | None = None) -> int:
        table = scan_result_table
        stmt = select(func.count()).select_from(table)
        if kind is not None:
            stmt = stmt.where(table.c.kind == kind)
        return int(self.session.execute(stmt).scalar_one())

    @staticmethod
    def _to_record(row: Row[tuple[object, ...]]) -> ScanRecord:
        mapping = row._mapping  # noqa: SLF001
        options = mapping["options"]
        return ScanRecord(
            library_path=cast("str", mapping["library_path"]),
            kind=cast("ScanKind", mapping["kind"]),
            payload=mapping["payload"],
            options=cast("dict[str, object]", options) if isinstance(options, dict) else {},
            created_at=cast("datetime", mapping["created_at"]),
            updated_at=cast("datetime", mapping["updated_at"]),
        )


if TYPE_CHECKING:
    from trackfix.domain.ports.persistence import ScanResultRepository

    _session_stub = cast("Session", object())
    _repo_check: ScanResultRepository = SqlAlchemyScanResultRepository(_session_stub)
