"""Push notifier collaborator.

Delivery (APNs, FCM, ...) is someone else's job. The core only needs a
``notify`` call that may fail; the dispatcher absorbs those failures.
"""
import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)


class Notifier:
    """Interface for push delivery."""

    def notify(self, user_id: str, title: str, body: str, data: Optional[dict[str, Any]] = None) -> None:
        raise NotImplementedError


class LogNotifier(Notifier):
    """Default notifier: records the push in the log instead of sending it."""

    def notify(self, user_id: str, title: str, body: str, data: Optional[dict[str, Any]] = None) -> None:
        logger.info("Push to user %s: %s | %s | %s", user_id, title, body, data or {})
