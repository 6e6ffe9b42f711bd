"""Ephemeral presence map behind the "nearby travelers" scan.

One ``PresenceStore`` is created per application (see ``radr.main``) and
injected into the routes; tests build their own with a fake clock.
"""
import logging
import threading
import time
from dataclasses import asdict, dataclass
from typing import Any, Callable, Optional

from radr.services.geodesy import distance_km

logger = logging.getLogger(__name__)


@dataclass
class PresenceRecord:
    user_id: str
    username: str
    lat: float
    lng: float
    last_seen: float
    profile_icon: Optional[str] = None
    profile_color: Optional[str] = None


class PresenceStore:
    """Lock-guarded map of user id → last reported position.

    Stale records are evicted inline on every write and before every read,
    so a nearby scan never reports anyone silent for longer than the TTL.
    """

    def __init__(self, ttl_seconds: float = 120, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._records: dict[str, PresenceRecord] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def _evict_stale(self, now: float) -> int:
        cutoff = now - self.ttl_seconds
        stale = [uid for uid, rec in self._records.items() if rec.last_seen < cutoff]
        for uid in stale:
            del self._records[uid]
        return len(stale)

    def update(
        self,
        user_id: str,
        username: str,
        lat: float,
        lng: float,
        profile_icon: Optional[str] = None,
        profile_color: Optional[str] = None,
    ) -> PresenceRecord:
        now = self._clock()
        record = PresenceRecord(user_id, username, lat, lng, now, profile_icon, profile_color)
        with self._lock:
            self._records[user_id] = record
            evicted = self._evict_stale(now)
        if evicted:
            logger.debug("Evicted %d stale presence record(s)", evicted)
        return record

    def nearby(self, user_id: str, lat: float, lng: float, radius_km: float) -> list[dict[str, Any]]:
        """Fresh records within ``radius_km`` of ``(lat, lng)``, excluding ``user_id``, nearest first."""
        with self._lock:
            self._evict_stale(self._clock())
            candidates = [rec for uid, rec in self._records.items() if uid != user_id]

        result = []
        for rec in candidates:
            distance = distance_km((lat, lng), (rec.lat, rec.lng))
            if distance <= radius_km:
                result.append({**asdict(rec), "distance": distance})
        result.sort(key=lambda r: r["distance"])
        return result

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
