"""Pydantic models describing the JSON library snapshot."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


def parse_iso_datetime(value: str) -> datetime:
    """Parse ISO-8601 (``Z`` allowed) into an aware UTC datetime; naive means UTC."""

    normalized = value.strip()
    if normalized.endswith("Z"):
        normalized = normalized[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError as exc:
        raise ValueError(f"Invalid ISO timestamp: {value}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _null_to_zero(value: object) -> object:
    return 0 if value is None else value


class SnapshotBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class TrackRecord(SnapshotBaseModel):
    id: str = Field(min_length=1)
    title: str = ""
    artist: str = ""
    album: str = ""
    duration_seconds: float | None = Field(default=None, ge=0, strict=True)
    bitrate_kbps: int | None = Field(default=None, ge=0, strict=True)
    file_size_bytes: int | None = Field(default=None, ge=0, strict=True)
    location: str = ""
    cloud_path: str | None = None
    owner_computer_id: str | None = None
    rating: int = Field(default=0, ge=0, strict=True)
    play_count: int = Field(default=0, ge=0, strict=True)
    date_added: datetime | None = None

    _normalize_statistics = field_validator("rating", "play_count", mode="before")(
        _null_to_zero
    )

    @field_validator("date_added", mode="before")
    @classmethod
    def _parse_date_added(cls, value: object) -> object:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        if isinstance(value, datetime):
            aware = value if value.tzinfo else value.replace(tzinfo=UTC)
            return aware.astimezone(UTC)
        if not isinstance(value, str):
            raise ValueError("date_added must be an ISO-8601 string")
        return parse_iso_datetime(value)


class PlaylistRecord(SnapshotBaseModel):
    playlist_id: str = Field(min_length=1)
    name: str = ""
    track_ids: list[str] = Field(default_factory=list)


class ComputerRecord(SnapshotBaseModel):
    computer_id: str = Field(min_length=1)
    name: str = ""
    library_roots: list[str] = Field(default_factory=list)
    is_active: bool = True


class LibrarySnapshot(SnapshotBaseModel):
    tracks: list[TrackRecord] = Field(default_factory=list["TrackRecord"])
    playlists: list[PlaylistRecord] = Field(default_factory=list["PlaylistRecord"])
    computers: list[ComputerRecord] = Field(default_factory=list["ComputerRecord"])
