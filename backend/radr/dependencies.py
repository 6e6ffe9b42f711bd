"""FastAPI dependencies for application-scoped singletons.

``radr.main`` builds one ``PresenceStore`` and one ``EventDispatcher`` at
startup and parks them on ``app.state``; routes receive them through these
functions so tests can override either one.
"""
from fastapi import Request

from radr.services.events import EventDispatcher
from radr.services.presence import PresenceStore


def get_presence_store(request: Request) -> PresenceStore:
    return request.app.state.presence_store


def get_dispatcher(request: Request) -> EventDispatcher:
    return request.app.state.dispatcher
