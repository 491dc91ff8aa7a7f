"""
Client-side session mirror and API client for the presentation layer.
"""
from .api_client import PortalAPIError, PortalClient
from .mirror import (
    InMemoryMirrorStore,
    JsonFileMirrorStore,
    MirrorSnapshot,
    MirrorStore,
)
from .session_sync import ExamSessionSync, NoActiveSessionError

__all__ = [
    "PortalAPIError",
    "PortalClient",
    "InMemoryMirrorStore",
    "JsonFileMirrorStore",
    "MirrorSnapshot",
    "MirrorStore",
    "ExamSessionSync",
    "NoActiveSessionError",
]
