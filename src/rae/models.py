"""Core data models for defects, road aggregates and deadlines."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from rae.utils.text import format_lat_lon, parse_lat_lon

UNKNOWN_ROAD = "Unknown road"
UNKNOWN_DISTRICT = "Unknown"


class Status(str, Enum):
    REPORTED = "Reported"
    ASSIGNED = "Assigned"
    IN_PROGRESS = "In Progress"
    PENDING_VERIFICATION = "Pending Verification"
    VERIFIED = "Verified"


class Severity(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    UNKNOWN = "Unknown"


class DefectKind(str, Enum):
    POTHOLE = "pothole"
    PATCH = "patch"


def _status_from_text(value: Any) -> Any:
    """Accept loose spellings such as 'pending_verification' or 'in-progress'."""
    if not isinstance(value, str):
        return value
    cleaned = value.replace("_", " ").replace("-", " ").strip().lower()
    for status in Status:
        if status.value.lower() == cleaned:
            return status
    if cleaned in {"pending", "completed", "fixed"}:
        return Status.PENDING_VERIFICATION
    if cleaned in {"open", "new"}:
        return Status.REPORTED
    return value


def _severity_from_text(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    cleaned = value.strip().capitalize()
    for severity in Severity:
        if severity.value == cleaned:
            return severity
    return Severity.UNKNOWN


def kind_from_id(item_id: str) -> DefectKind:
    """PH- ids are potholes and PA- ids are patches; anything else is a pothole."""
    if item_id.upper().startswith("PA-"):
        return DefectKind.PATCH
    return DefectKind.POTHOLE


class DefectItem(BaseModel):
    """A single reported pothole or patch.

    Frozen: lifecycle changes go through ``model_copy(update=...)`` so the
    location of an item can never be rewritten in place.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    kind: DefectKind = DefectKind.POTHOLE
    db_id: Optional[int] = None
    grid_id: Optional[str] = None
    location: str
    count: Optional[float] = None
    severity: Severity = Severity.UNKNOWN
    status: Status = Status.REPORTED
    contractor_id: Optional[str] = None
    assigned_at: Optional[str] = None
    due_date: Optional[str] = None
    road_name: Optional[str] = None
    district: Optional[str] = None
    reported_at: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: Any) -> Any:
        return _status_from_text(value)

    @field_validator("severity", mode="before")
    @classmethod
    def _normalize_severity(cls, value: Any) -> Any:
        if value is None:
            return Severity.UNKNOWN
        return _severity_from_text(value)

    @property
    def location_id(self) -> str:
        """Identifier the command endpoints expect: server id when known."""
        return str(self.db_id) if self.db_id is not None else self.id

    @property
    def coordinates(self) -> Optional[tuple[float, float]]:
        return parse_lat_lon(self.location)

    @property
    def is_unassigned(self) -> bool:
        if self.status == Status.REPORTED:
            return True
        return self.status == Status.ASSIGNED and not self.contractor_id


class LocationRecord(BaseModel):
    """One aggregated location row as returned by the Reporting API."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = Field(validation_alias=AliasChoices("id", "locationId", "location_id"))
    kind: Optional[DefectKind] = Field(default=None, validation_alias=AliasChoices("kind", "type"))
    db_id: Optional[int] = Field(default=None, validation_alias=AliasChoices("db_id", "dbId"))
    grid_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("grid_id", "gridId"))
    location: Optional[str] = None
    lat: Optional[float] = Field(default=None, validation_alias=AliasChoices("lat", "latitude"))
    lon: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("lon", "long", "lng", "longitude")
    )
    total_count: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("total_count", "totalCount", "count")
    )
    highest_severity: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("highest_severity", "highestSeverity", "severity")
    )
    status: Optional[str] = None
    contractor_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("contractor_id", "contractorId")
    )
    assigned_at: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("assigned_at", "assignedAt")
    )
    due_date: Optional[str] = Field(default=None, validation_alias=AliasChoices("due_date", "dueDate"))
    road_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("road_name", "roadName", "road")
    )
    district: Optional[str] = None
    reported_at: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("reported_at", "reportedAt", "reportedTime", "created_at"),
    )

    @field_validator("id", "grid_id", "contractor_id", mode="before")
    @classmethod
    def _coerce_str(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @field_validator("kind", mode="before")
    @classmethod
    def _normalize_kind(cls, value: Any) -> Any:
        if isinstance(value, str):
            cleaned = value.strip().lower()
            return cleaned or None
        return value

    @model_validator(mode="after")
    def _fill_location(self) -> "LocationRecord":
        if not self.location and self.lat is not None and self.lon is not None:
            self.location = format_lat_lon(self.lat, self.lon)
        return self

    def to_item(self) -> DefectItem:
        return DefectItem(
            id=self.id,
            kind=self.kind or kind_from_id(self.id),
            db_id=self.db_id,
            grid_id=self.grid_id,
            location=self.location or "",
            count=self.total_count,
            severity=self.highest_severity,
            status=self.status or Status.REPORTED,
            contractor_id=self.contractor_id,
            assigned_at=self.assigned_at,
            due_date=self.due_date,
            road_name=self.road_name or None,
            district=self.district or None,
            reported_at=self.reported_at,
        )


class AssignmentRecord(BaseModel):
    """Assignment command response; carries the server-computed due date."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    location_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("location_id", "locationId")
    )
    contractor_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("contractor_id", "contractorId")
    )
    assigned_at: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("assigned_at", "assignedAt")
    )
    due_date: Optional[str] = Field(default=None, validation_alias=AliasChoices("due_date", "dueDate"))

    @field_validator("location_id", "contractor_id", mode="before")
    @classmethod
    def _coerce_str(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)


class DeadlineRecord(BaseModel):
    """Set-once repair deadline for a road."""

    model_config = ConfigDict(frozen=True)

    assigned_at: datetime
    deadline_at: datetime
    severity: Severity
    # Every cache key the record was written under, so clearing removes them all.
    keys: tuple[str, ...] = ()


class RoadAggregate(BaseModel):
    """One row of the road-level read model."""

    road_name: str
    district: str = UNKNOWN_DISTRICT
    potholes: list[DefectItem] = Field(default_factory=list)
    patches: list[DefectItem] = Field(default_factory=list)
    num_potholes: int = 0
    num_patches: int = 0
    severity: Severity = Severity.UNKNOWN
    status: Status = Status.REPORTED
    action: Literal["verify", "assign", "view"] = "view"
    avg_reported_time: str = "--"
    deadline: str = "--"
    deadline_at: Optional[datetime] = None
    deadline_source: Optional[Literal["server", "cache"]] = None
    contractor_ids: list[str] = Field(default_factory=list)

    @property
    def members(self) -> list[DefectItem]:
        return [*self.potholes, *self.patches]


class VerifiedRepair(BaseModel):
    """A repair that left the visible set through verification."""

    id: str
    kind: DefectKind = DefectKind.POTHOLE
    location: str = ""
    severity: Severity = Severity.UNKNOWN
    contractor_id: Optional[str] = None
    road_name: Optional[str] = None
    district: Optional[str] = None
    fixed_at: Optional[str] = None

    @field_validator("severity", mode="before")
    @classmethod
    def _normalize_severity(cls, value: Any) -> Any:
        if value is None:
            return Severity.UNKNOWN
        return _severity_from_text(value)


class StatusSummary(BaseModel):
    """Counts shown on the dashboard summary cards."""

    reported: int = 0
    assigned: int = 0
    in_progress: int = 0
    pending: int = 0
    verified: int = 0
