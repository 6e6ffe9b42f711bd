"""HTTP client for the Radr API that keeps the keyring in step with the server.

Message bodies are encrypted before they leave the device and decrypted after
they arrive; the server only ever sees envelopes.
"""
import logging
import os
import uuid
from typing import Any, Iterable, Optional

import requests

from radr.client.e2e import GroupKeyring

logger = logging.getLogger(__name__)

BASE = os.getenv("RADR_API_BASE", "http://127.0.0.1:8000")


class ApiError(Exception):
    def __init__(self, status_code: int, detail: Any):
        super().__init__(f"{status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


def _auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"} if token else {}


class RadrClient:
    """One signed-in device.

    ``http`` is anything with a requests-style ``request`` method; it defaults
    to a ``requests.Session``. Tests pass a FastAPI ``TestClient`` with an
    empty ``base_url``.
    """

    def __init__(self, token: str, keyring: Optional[GroupKeyring] = None, base_url: Optional[str] = None, http=None):
        self.token = token
        self.keyring = keyring or GroupKeyring()
        self.base_url = (BASE if base_url is None else base_url).rstrip("/")
        self.http = http or requests.Session()

    def _request(self, method: str, path: str, json: Any = None, params: Optional[dict] = None) -> Any:
        resp = self.http.request(
            method,
            f"{self.base_url}{path}",
            json=json,
            params=params,
            headers=_auth_headers(self.token),
        )
        if resp.status_code >= 400:
            try:
                detail = resp.json().get("detail")
            except ValueError:
                detail = resp.text
            raise ApiError(resp.status_code, detail)
        if resp.status_code == 204 or not resp.content:
            return None
        return resp.json()

    # -- groups ---------------------------------------------------------------

    def create_group(
        self,
        target_name: str,
        lat: float,
        lng: float,
        radius_km: Optional[float] = None,
        expires_in_hours: Optional[float] = None,
        usernames: Iterable[str] = (),
    ) -> dict[str, Any]:
        """Generate the group key locally, then register the group with it."""
        provisional_id = f"pending-{uuid.uuid4()}"
        exported = self.keyring.generate_group_key(provisional_id)
        try:
            group = self._request("POST", "/api/radr/groups", json={
                "target_name": target_name,
                "target_lat": lat,
                "target_lng": lng,
                "target_radius_km": radius_km,
                "expires_in_hours": expires_in_hours,
                "encryption_key": exported,
                "usernames": list(usernames),
            })
            self.keyring.import_group_key(group["group_id"], exported)
        finally:
            self.keyring.remove_group_key(provisional_id)
        logger.info("Created group %s (%s)", group["target_name"], group["group_id"])
        return group

    def list_groups(self) -> list[dict[str, Any]]:
        """Fetch the caller's groups and import every key they carry."""
        groups = self._request("GET", "/api/radr/groups")
        for group in groups:
            if group.get("encryption_key"):
                try:
                    self.keyring.import_group_key(group["group_id"], group["encryption_key"])
                except ValueError:
                    logger.warning("Server sent an unusable key for group %s", group["group_id"])
        return groups

    def add_members(self, group_id: str, usernames: Iterable[str]) -> list[str]:
        return self._request("POST", f"/api/radr/groups/{group_id}/members", json={"usernames": list(usernames)})["added"]

    def invite(self, group_id: str, username: str) -> bool:
        return self._request("POST", f"/api/radr/groups/{group_id}/invite", json={"username": username})["added"]

    def remove_member(self, group_id: str, user_id: str) -> None:
        self._request("DELETE", f"/api/radr/groups/{group_id}/members/{user_id}")

    def leave_group(self, group_id: str) -> None:
        self._request("POST", f"/api/radr/groups/{group_id}/leave")
        self.keyring.remove_group_key(group_id)

    def delete_group(self, group_id: str) -> None:
        self._request("DELETE", f"/api/radr/groups/{group_id}")
        self.keyring.remove_group_key(group_id)

    # -- arrival --------------------------------------------------------------

    def check_arrival(self, group_id: str, lat: float, lng: float) -> dict[str, Any]:
        return self._request("POST", f"/api/radr/groups/{group_id}/check-arrival", json={"lat": lat, "lng": lng})

    def check_pending_arrivals(self, lat: float, lng: float, groups: Optional[list[dict[str, Any]]] = None) -> list[str]:
        """Check every group the caller has not yet arrived at; returns ids that just flipped."""
        groups = self.list_groups() if groups is None else groups
        arrived = []
        for group in groups:
            if group.get("has_arrived"):
                continue
            try:
                result = self.check_arrival(group["group_id"], lat, lng)
            except ApiError as exc:
                logger.warning("Arrival check for group %s failed: %s", group["group_id"], exc)
                continue
            if result["status"] == "arrived":
                arrived.append(group["group_id"])
        return arrived

    # -- messages -------------------------------------------------------------

    def send_message(self, group_id: str, plaintext: str) -> dict[str, Any]:
        envelope = self.keyring.encrypt_message(group_id, plaintext)
        return self._request("POST", f"/api/radr/groups/{group_id}/messages", json={"content": envelope})

    def fetch_messages(self, group_id: str) -> list[dict[str, Any]]:
        """Group history with ``text`` messages decrypted in place."""
        messages = self._request("GET", f"/api/radr/groups/{group_id}/messages")
        return self.keyring.decrypt_messages(group_id, messages)

    # -- presence -------------------------------------------------------------

    def update_presence(self, lat: float, lng: float) -> None:
        self._request("POST", "/api/radr/update", json={"lat": lat, "lng": lng})

    def nearby(self, lat: float, lng: float) -> list[dict[str, Any]]:
        return self._request("GET", "/api/radr/nearby", params={"lat": lat, "lng": lng})["nearby"]


class GroupChatView:
    """The message pane of one device.

    Polls can overlap with the user switching groups, so a fetch result is
    only applied when the group it was issued for is still the selected one.
    """

    def __init__(self, client: RadrClient):
        self.client = client
        self.selected_group_id: Optional[str] = None
        self.messages: list[dict[str, Any]] = []

    def select(self, group_id: Optional[str]) -> None:
        if group_id != self.selected_group_id:
            self.selected_group_id = group_id
            self.messages = []

    def apply(self, group_id: str, messages: list[dict[str, Any]]) -> bool:
        if group_id != self.selected_group_id:
            logger.debug("Dropping stale messages for group %s", group_id)
            return False
        self.messages = messages
        return True

    def refresh(self) -> bool:
        group_id = self.selected_group_id
        if group_id is None:
            return False
        return self.apply(group_id, self.client.fetch_messages(group_id))
