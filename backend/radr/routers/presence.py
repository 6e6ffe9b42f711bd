"""Presence routes — position heartbeat and the nearby-travelers scan."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from radr.auth import Principal, get_current_user
from radr.config import settings
from radr.database import get_db
from radr.dependencies import get_presence_store
from radr.exceptions import ValidationError
from radr.schemas.presence import NearbyOut, PresenceUpdate
from radr.services import user_directory
from radr.services.group_service import validate_coordinates
from radr.services.presence import PresenceStore

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/update")
def update_presence(
    payload: PresenceUpdate,
    principal: Principal = Depends(get_current_user),
    db: Session = Depends(get_db),
    store: PresenceStore = Depends(get_presence_store),
):
    lat, lng = validate_coordinates(payload.lat, payload.lng)
    user = user_directory.get_user(db, principal.user_id)
    store.update(
        principal.user_id,
        principal.username,
        lat,
        lng,
        profile_icon=user.profile_icon if user else None,
        profile_color=user.profile_color if user else None,
    )
    return {"message": "Location updated"}


@router.get("/nearby", response_model=NearbyOut)
def get_nearby(
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    principal: Principal = Depends(get_current_user),
    store: PresenceStore = Depends(get_presence_store),
):
    """Other users seen within ``NEARBY_RADIUS_KM`` during the last TTL window."""
    if lat is None or lng is None:
        raise ValidationError("Missing coordinates")
    lat, lng = validate_coordinates(lat, lng)
    return {"nearby": store.nearby(principal.user_id, lat, lng, settings.NEARBY_RADIUS_KM)}
