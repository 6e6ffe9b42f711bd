"""Group lifecycle service — creation, membership and key distribution.

Responsibilities:
- Creator-only authorization for add/remove/delete
- Creator protection: the creator's membership can never be removed
- Idempotent membership inserts (duplicate invites are absorbed)
- Soft expiry: expired groups are invisible to every read
- Key distribution: the stored group key is only handed out through
  ``list_groups``, and only to members
"""
import logging
import math
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from radr.config import settings
from radr.exceptions import Forbidden, NotFound, ValidationError
from radr.models.group import RadrGroup, RadrGroupMember, utcnow
from radr.models.message import MessageType, RadrMessage
from radr.models.user import User
from radr.services import user_directory
from radr.services.events import DomainEvent, MemberInvited

logger = logging.getLogger(__name__)


def validate_coordinates(lat: Any, lng: Any) -> tuple[float, float]:
    """Return ``(lat, lng)`` as floats or raise ``ValidationError``."""
    if isinstance(lat, bool) or isinstance(lng, bool) or not isinstance(lat, (int, float)) or not isinstance(lng, (int, float)):
        raise ValidationError("Invalid coordinates")
    lat, lng = float(lat), float(lng)
    if not (math.isfinite(lat) and math.isfinite(lng)) or not -90 <= lat <= 90 or not -180 <= lng <= 180:
        raise ValidationError("Invalid coordinates")
    return lat, lng


def get_group(db: Session, group_id: str, include_expired: bool = False) -> RadrGroup:
    """Fetch a group; expired groups count as missing unless asked for."""
    group = db.query(RadrGroup).filter(RadrGroup.group_id == group_id).first()
    if not group or (not include_expired and group.is_expired()):
        raise NotFound("Group not found")
    return group


def get_membership(db: Session, group_id: str, user_id: str) -> Optional[RadrGroupMember]:
    return (
        db.query(RadrGroupMember)
        .filter(RadrGroupMember.group_id == group_id, RadrGroupMember.user_id == user_id)
        .first()
    )


def require_membership(db: Session, group_id: str, user_id: str) -> RadrGroupMember:
    member = get_membership(db, group_id, user_id)
    if not member:
        raise Forbidden("Not a member of this group")
    return member


def _check_creator(group: RadrGroup, actor_user_id: str, action: str) -> None:
    if group.creator_id != actor_user_id:
        raise Forbidden(f"Only the group creator can {action}")


def _insert_member(db: Session, group_id: str, user_id: str) -> bool:
    """Insert a pending membership; returns False when the row already existed."""
    values = {"group_id": group_id, "user_id": user_id, "has_arrived": False, "joined_at": utcnow()}
    table = RadrGroupMember.__table__
    dialect = db.get_bind().dialect.name

    if dialect == "postgresql":
        stmt = pg_insert(table).values(**values).on_conflict_do_nothing(index_elements=["group_id", "user_id"])
    elif dialect == "sqlite":
        stmt = sqlite_insert(table).values(**values).on_conflict_do_nothing(index_elements=["group_id", "user_id"])
    else:
        if get_membership(db, group_id, user_id) is not None:
            return False
        db.add(RadrGroupMember(**values))
        db.flush()
        return True

    return db.execute(stmt).rowcount == 1


def create_group(
    db: Session,
    actor_user_id: str,
    target_name: Optional[str],
    target_lat: Any,
    target_lng: Any,
    encryption_key: Optional[str],
    target_radius_km: Optional[float] = None,
    expires_in_hours: Optional[float] = None,
    invite_usernames: Iterable[str] = (),
    events: Optional[list[DomainEvent]] = None,
) -> RadrGroup:
    """Create a group, its creator membership and any invitee memberships in one transaction."""
    if not target_name or not target_name.strip():
        raise ValidationError("Target location details required")
    target_lat, target_lng = validate_coordinates(target_lat, target_lng)
    if not encryption_key or not encryption_key.strip():
        raise ValidationError("Encryption key required")

    radius = settings.DEFAULT_RADIUS_KM if target_radius_km is None else float(target_radius_km)
    if not math.isfinite(radius) or radius <= 0:
        raise ValidationError("Target radius must be positive")
    # 0 and None both mean "use the default lifetime"
    hours = float(expires_in_hours) if expires_in_hours else settings.DEFAULT_EXPIRY_HOURS
    if not math.isfinite(hours) or hours <= 0:
        raise ValidationError("Expiry must be in the future")

    now = utcnow()
    group = RadrGroup(
        creator_id=actor_user_id,
        target_name=target_name.strip(),
        target_lat=target_lat,
        target_lng=target_lng,
        target_radius_km=radius,
        expires_at=now + timedelta(hours=hours),
        encryption_key=encryption_key,
        created_at=now,
    )
    db.add(group)
    db.flush()

    db.add(RadrGroupMember(group_id=group.group_id, user_id=actor_user_id, has_arrived=False, joined_at=now))
    db.flush()

    invited: list[str] = []
    for user_id in user_directory.resolve_usernames(db, invite_usernames).values():
        if user_id != actor_user_id and _insert_member(db, group.group_id, user_id):
            invited.append(user_id)

    db.commit()
    db.refresh(group)
    logger.info("Created radr group '%s' (%s) by user %s with %d invitees", group.target_name, group.group_id, actor_user_id, len(invited))

    if events is not None and invited:
        inviter = user_directory.display_name(user_directory.get_user(db, actor_user_id))
        events.extend(MemberInvited(group.group_id, group.target_name, inviter, uid) for uid in invited)
    return group


def list_groups(db: Session, actor_user_id: str, now: Optional[datetime] = None) -> list[dict[str, Any]]:
    """Non-expired groups the caller belongs to, newest first, with roster and key."""
    now = now or utcnow()
    rows = (
        db.query(RadrGroup, RadrGroupMember)
        .join(RadrGroupMember, RadrGroupMember.group_id == RadrGroup.group_id)
        .filter(RadrGroupMember.user_id == actor_user_id, RadrGroup.expires_at > now)
        .order_by(RadrGroup.created_at.desc())
        .all()
    )
    if not rows:
        return []

    group_ids = [group.group_id for group, _ in rows]
    roster_rows = (
        db.query(RadrGroupMember, User)
        .join(User, User.user_id == RadrGroupMember.user_id)
        .filter(RadrGroupMember.group_id.in_(group_ids))
        .order_by(RadrGroupMember.arrived_at.is_(None), RadrGroupMember.arrived_at, RadrGroupMember.joined_at)
        .all()
    )
    rosters: dict[str, list[dict[str, Any]]] = {gid: [] for gid in group_ids}
    for member, user in roster_rows:
        rosters[member.group_id].append({
            "user_id": user.user_id,
            "username": user.username,
            "name": user.name,
            "has_arrived": member.has_arrived,
            "arrived_at": member.arrived_at,
            "profile_icon": user.profile_icon,
            "profile_color": user.profile_color,
        })

    result = []
    for group, own in rows:
        members = rosters[group.group_id]
        result.append({
            "group_id": group.group_id,
            "creator_id": group.creator_id,
            "target_name": group.target_name,
            "target_lat": group.target_lat,
            "target_lng": group.target_lng,
            "target_radius_km": group.target_radius_km,
            "expires_at": group.expires_at,
            "created_at": group.created_at,
            "encryption_key": group.encryption_key,
            "has_arrived": own.has_arrived,
            "arrived_at": own.arrived_at,
            "member_count": len(members),
            "arrived_count": sum(1 for m in members if m["has_arrived"]),
            "is_creator": group.creator_id == actor_user_id,
            "members": members,
        })
    return result


def add_members(
    db: Session,
    actor_user_id: str,
    group_id: str,
    usernames: Iterable[str],
    events: Optional[list[DomainEvent]] = None,
) -> list[str]:
    """Creator-only idempotent invite; returns the user ids that were newly added."""
    group = get_group(db, group_id)
    _check_creator(group, actor_user_id, "add members")

    added = [
        user_id
        for user_id in user_directory.resolve_usernames(db, usernames).values()
        if _insert_member(db, group_id, user_id)
    ]
    db.commit()
    logger.info("Added %d member(s) to radr group %s", len(added), group_id)

    if events is not None and added:
        inviter = user_directory.display_name(user_directory.get_user(db, actor_user_id))
        events.extend(MemberInvited(group_id, group.target_name, inviter, uid) for uid in added)
    return added


def invite(
    db: Session,
    actor_user_id: str,
    group_id: str,
    username: str,
    events: Optional[list[DomainEvent]] = None,
) -> bool:
    """Single-username invite; unlike ``add_members`` an unknown name is an error."""
    group = get_group(db, group_id)
    _check_creator(group, actor_user_id, "add members")
    if not user_directory.resolve_usernames(db, [username]):
        raise NotFound("User not found")
    return bool(add_members(db, actor_user_id, group_id, [username], events=events))


def _append_leave_message(db: Session, group_id: str, user_id: str, content: str) -> RadrMessage:
    message = RadrMessage(group_id=group_id, user_id=user_id, type=MessageType.leave, content=content, extra={})
    db.add(message)
    return message


def remove_member(db: Session, actor_user_id: str, group_id: str, user_id: str) -> None:
    """Creator removes another member; a ``leave`` system message is appended."""
    group = get_group(db, group_id)
    _check_creator(group, actor_user_id, "remove members")
    if user_id == group.creator_id:
        raise Forbidden("Cannot remove the group creator")

    member = get_membership(db, group_id, user_id)
    if not member:
        raise NotFound("Membership not found")

    name = user_directory.display_name(user_directory.get_user(db, user_id))
    db.delete(member)
    _append_leave_message(db, group_id, user_id, f"{name} was removed from the group")
    db.commit()
    logger.info("Removed user %s from radr group %s", user_id, group_id)


def leave_group(db: Session, actor_user_id: str, group_id: str) -> None:
    """A non-creator member leaves; a ``leave`` system message is appended."""
    group = get_group(db, group_id)
    if group.creator_id == actor_user_id:
        raise Forbidden("Group creator cannot leave. Delete the group instead.")

    member = require_membership(db, group_id, actor_user_id)
    name = user_directory.display_name(user_directory.get_user(db, actor_user_id))
    db.delete(member)
    _append_leave_message(db, group_id, actor_user_id, f"{name} left the group")
    db.commit()
    logger.info("User %s left radr group %s", actor_user_id, group_id)


def delete_group(db: Session, actor_user_id: str, group_id: str) -> None:
    """Creator-only hard delete, cascading to members and messages. Works on expired groups."""
    group = get_group(db, group_id, include_expired=True)
    _check_creator(group, actor_user_id, "delete this group")
    db.delete(group)
    db.commit()
    logger.info("Deleted radr group %s", group_id)
