"""
Local mirror of the candidate's exam session.

The presentation layer keeps a copy of the session so a reload can resume
without waiting on the server. The mirror is a cache: the server copy is
authoritative and wins on reconciliation.
"""
import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional, TypedDict, Union

logger = logging.getLogger(__name__)

MIRROR_KEY = "exam_session"


class MirrorSnapshot(TypedDict):
    sessionId: str
    currentStep: int
    formData: Dict[str, Any]
    status: str


def snapshot_from_session(session: Dict[str, Any]) -> MirrorSnapshot:
    """Build a mirror snapshot from a session as returned by the API."""
    return MirrorSnapshot(
        sessionId=session["sessionId"],
        currentStep=session["currentStep"],
        formData=dict(session.get("formData") or {}),
        status=session["status"],
    )


class MirrorStore(ABC):
    """Storage for the single mirrored session."""

    @abstractmethod
    def load(self) -> Optional[MirrorSnapshot]:
        """Return the stored snapshot, or None if nothing usable is stored."""

    @abstractmethod
    def save(self, snapshot: MirrorSnapshot) -> None:
        """Replace the stored snapshot."""

    @abstractmethod
    def clear(self) -> None:
        """Remove the stored snapshot."""


class InMemoryMirrorStore(MirrorStore):
    def __init__(self) -> None:
        self._snapshot: Optional[MirrorSnapshot] = None

    def load(self) -> Optional[MirrorSnapshot]:
        if self._snapshot is None:
            return None
        return MirrorSnapshot(
            sessionId=self._snapshot["sessionId"],
            currentStep=self._snapshot["currentStep"],
            formData=dict(self._snapshot["formData"]),
            status=self._snapshot["status"],
        )

    def save(self, snapshot: MirrorSnapshot) -> None:
        self._snapshot = MirrorSnapshot(
            sessionId=snapshot["sessionId"],
            currentStep=snapshot["currentStep"],
            formData=dict(snapshot["formData"]),
            status=snapshot["status"],
        )

    def clear(self) -> None:
        self._snapshot = None


class JsonFileMirrorStore(MirrorStore):
    """
    Mirror persisted as a JSON file, keyed like browser local storage.

    The file holds ``{"exam_session": {...}}``. A missing, unreadable or
    malformed file loads as empty; corruption never blocks the candidate.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _read(self) -> Dict[str, Any]:
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable session mirror at {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as f:
            json.dump(data, f)
        os.replace(tmp_path, self.path)

    def load(self) -> Optional[MirrorSnapshot]:
        stored = self._read().get(MIRROR_KEY)
        if not isinstance(stored, dict):
            return None
        try:
            return MirrorSnapshot(
                sessionId=str(stored["sessionId"]),
                currentStep=int(stored["currentStep"]),
                formData=dict(stored.get("formData") or {}),
                status=str(stored["status"]),
            )
        except (KeyError, TypeError, ValueError):
            logger.warning(f"Ignoring malformed session mirror at {self.path}")
            return None

    def save(self, snapshot: MirrorSnapshot) -> None:
        data = self._read()
        data[MIRROR_KEY] = dict(snapshot)
        self._write(data)

    def clear(self) -> None:
        data = self._read()
        if MIRROR_KEY in data:
            del data[MIRROR_KEY]
            self._write(data)
