"""Representative status and bulk action for a road."""

from __future__ import annotations

from typing import Literal, Sequence

from rae.models import DefectItem, Status


STATUS_PRIORITY = {
    Status.PENDING_VERIFICATION: 3,
    Status.ASSIGNED: 2,
    Status.IN_PROGRESS: 2,
    Status.REPORTED: 1,
    Status.VERIFIED: 0,
}

RoadAction = Literal["verify", "assign", "view"]


def status_priority(status: Status) -> int:
    return STATUS_PRIORITY.get(status, 0)


def road_status(items: Sequence[DefectItem]) -> Status:
    """Status of the highest-priority member; first occurrence wins ties."""
    if not items:
        return Status.REPORTED

    best = items[0].status
    for item in items[1:]:
        if status_priority(item.status) > status_priority(best):
            best = item.status
    return best


def road_action(items: Sequence[DefectItem]) -> RoadAction:
    """Bulk action offered for the whole road."""
    if any(item.status == Status.PENDING_VERIFICATION for item in items):
        return "verify"
    if any(item.is_unassigned for item in items):
        return "assign"
    return "view"
