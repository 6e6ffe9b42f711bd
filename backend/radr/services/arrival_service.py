"""Arrival detection — the per-member Pending → Arrived geofence transition.

The transition is write-once. The flip is a single conditional UPDATE that
only matches a still-pending row, and the arrival system message is inserted
in the same transaction only when that UPDATE actually changed a row. Two
racing checks therefore produce exactly one arrival message and one
notification fan-out.
"""
import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from radr.models.group import RadrGroupMember, utcnow
from radr.models.message import MessageType, RadrMessage
from radr.services import group_service, user_directory
from radr.services.events import DomainEvent, MemberArrived
from radr.services.geodesy import distance_km

logger = logging.getLogger(__name__)

# Boundary positions count as arrived; absorbs float noise in the haversine
BOUNDARY_TOLERANCE_KM = 1e-9


class ArrivalStatus(str, enum.Enum):
    already_arrived = "already_arrived"
    arrived = "arrived"
    not_within_radius = "not_within_radius"


@dataclass
class ArrivalResult:
    status: ArrivalStatus
    message: str
    distance_km: Optional[float] = None
    arrival_message: Optional[RadrMessage] = None


def _flip_to_arrived(db: Session, group_id: str, user_id: str, now: datetime) -> bool:
    """Mark the membership arrived; False if another caller already did."""
    table = RadrGroupMember.__table__
    result = db.execute(
        update(table)
        .where(
            table.c.group_id == group_id,
            table.c.user_id == user_id,
            table.c.has_arrived.is_(False),
        )
        .values(has_arrived=True, arrived_at=now)
    )
    return result.rowcount == 1


def check_arrival(
    db: Session,
    actor_user_id: str,
    group_id: str,
    lat: float,
    lng: float,
    events: Optional[list[DomainEvent]] = None,
) -> ArrivalResult:
    """Evaluate the caller's position against the group's geofence.

    Safe to call any number of times: once arrived, every later call is an
    ``already_arrived`` no-op regardless of reported position.
    """
    lat, lng = group_service.validate_coordinates(lat, lng)
    group = group_service.get_group(db, group_id)
    member = group_service.require_membership(db, group_id, actor_user_id)

    if member.has_arrived:
        return ArrivalResult(ArrivalStatus.already_arrived, "You have already arrived")

    distance = distance_km((lat, lng), (group.target_lat, group.target_lng))
    if distance > group.target_radius_km + BOUNDARY_TOLERANCE_KM:
        return ArrivalResult(
            ArrivalStatus.not_within_radius,
            f"You are {round(distance)} km away from {group.target_name}",
            distance_km=round(distance, 1),
        )

    now = utcnow()
    if not _flip_to_arrived(db, group_id, actor_user_id, now):
        db.rollback()
        logger.info("Arrival for user %s in group %s already recorded by a concurrent check", actor_user_id, group_id)
        return ArrivalResult(ArrivalStatus.already_arrived, "You have already arrived")

    user = user_directory.get_user(db, actor_user_id)
    name = user_directory.display_name(user)
    arrival = RadrMessage(
        group_id=group_id,
        user_id=actor_user_id,
        type=MessageType.arrival,
        content=f"{name} has entered {group.target_name}",
        extra={"country": user.country if user else None, "location": group.target_name},
        created_at=now,
    )
    db.add(arrival)
    db.commit()
    db.refresh(arrival)
    logger.info("User %s arrived at %s (group %s, %.3f km)", actor_user_id, group.target_name, group_id, distance)

    if events is not None:
        others = tuple(
            uid
            for (uid,) in db.query(RadrGroupMember.user_id)
            .filter(RadrGroupMember.group_id == group_id, RadrGroupMember.user_id != actor_user_id)
            .all()
        )
        if others:
            events.append(MemberArrived(group_id, group.target_name, name, others))

    return ArrivalResult(
        ArrivalStatus.arrived,
        f"Arrival recorded! Welcome to {group.target_name}",
        distance_km=round(distance, 1),
        arrival_message=arrival,
    )
