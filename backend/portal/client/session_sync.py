"""
Presentation-layer session sync: local mirror first, server second.

Progress is written to the mirror immediately and replicated to the server
in the background. Replication is debounced so rapid field edits collapse
into one request carrying the latest state. A failed replication is logged
and left alone: the mirror keeps the candidate's input and the next save
sends it again.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

from portal.client.api_client import PortalAPIError, PortalClient
from portal.client.mirror import MirrorSnapshot, MirrorStore, snapshot_from_session
from portal.core.config import settings

logger = logging.getLogger(__name__)

IN_PROGRESS = "in_progress"

# Server answers that mean the mirrored session can never be written again
_STALE_SESSION_CODES = frozenset({"NOT_FOUND", "SESSION_COMPLETED"})


class NoActiveSessionError(Exception):
    """The operation needs a mirrored in-progress session and there is none."""


class ExamSessionSync:
    """
    Keeps the local mirror and the server copy of one exam session in step.

    Args:
        client: API client for the session endpoints
        store: Where the mirror lives
        debounce_seconds: Quiet period before progress is replicated
    """

    def __init__(
        self,
        client: PortalClient,
        store: MirrorStore,
        debounce_seconds: float = settings.CLIENT_DEBOUNCE_SECONDS,
    ):
        self.client = client
        self.store = store
        self.debounce_seconds = debounce_seconds
        self._pending: Optional[asyncio.Task] = None
        self._flush_requested = asyncio.Event()

    def _require_mirror(self) -> MirrorSnapshot:
        snapshot = self.store.load()
        if snapshot is None or snapshot["status"] != IN_PROGRESS:
            raise NoActiveSessionError("No in-progress exam session is mirrored")
        return snapshot

    async def start(self, email: str, phone: str) -> Dict[str, Any]:
        """
        Start or resume the candidate's session and mirror it.

        Completed attempts are never mirrored; any stale mirror is cleared.

        Returns:
            The API response body

        Raises:
            PortalAPIError: If the server rejects the request
        """
        body = await self.client.start_session(email, phone)
        session = body.get("session")
        if body.get("alreadyCompleted") or not session:
            self.store.clear()
            return body

        self.store.save(snapshot_from_session(session))
        logger.info(
            f"Mirrored exam session {session['sessionId']} "
            f"({'new' if body.get('isNew') else 'resumed'})"
        )
        return body

    def resume_from_mirror(self) -> Optional[MirrorSnapshot]:
        """Return the mirrored session if it can be resumed, without a server call."""
        snapshot = self.store.load()
        if snapshot is None or snapshot["status"] != IN_PROGRESS:
            return None
        return snapshot

    async def save_progress(
        self, current_step: int, partial_form_data: Dict[str, Any]
    ) -> MirrorSnapshot:
        """
        Merge partial form data into the mirror and schedule replication.

        The mirror is updated before any network activity, so the returned
        snapshot already reflects the change.

        Raises:
            NoActiveSessionError: If no in-progress session is mirrored
        """
        snapshot = self._require_mirror()
        snapshot["formData"] = {**snapshot["formData"], **partial_form_data}
        snapshot["currentStep"] = current_step
        self.store.save(snapshot)

        self._schedule_replication()
        return snapshot

    def _schedule_replication(self) -> None:
        if self._pending is not None and not self._pending.done():
            # The replacement sends the newer state
            self._pending.cancel()
        self._pending = asyncio.create_task(self._replicate_later())

    async def _replicate_later(self) -> None:
        try:
            await asyncio.wait_for(
                self._flush_requested.wait(), timeout=self.debounce_seconds
            )
        except asyncio.TimeoutError:
            pass
        await self._replicate()

    async def _replicate(self) -> None:
        snapshot = self.store.load()
        if snapshot is None or snapshot["status"] != IN_PROGRESS:
            return
        try:
            await self.client.save_progress(
                snapshot["sessionId"], snapshot["currentStep"], snapshot["formData"]
            )
        except PortalAPIError as e:
            logger.warning(
                f"Failed to replicate progress for session {snapshot['sessionId']}: "
                f"{e.code} {e.message}"
            )
            return
        logger.debug(f"Replicated progress for session {snapshot['sessionId']}")

    async def flush(self) -> None:
        """Send any pending progress now and wait for it to finish."""
        task = self._pending
        if task is None or task.done():
            return
        self._flush_requested.set()
        try:
            await task
        finally:
            self._flush_requested.clear()

    def _cancel_pending(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    def _forget_if_stale(self, error: PortalAPIError) -> None:
        if error.code in _STALE_SESSION_CODES:
            self.store.clear()

    async def submit(
        self,
        mcq_score: Dict[str, Any],
        mcq_answers: Optional[List[Dict[str, Any]]] = None,
        form_data: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Submit the exam with the mirrored form data and clear the mirror.

        Raises:
            NoActiveSessionError: If no in-progress session is mirrored
            PortalAPIError: If the server rejects the submission; the mirror
                is kept unless the session is gone or already completed
        """
        snapshot = self._require_mirror()
        self._cancel_pending()
        final_form_data = {**snapshot["formData"], **(form_data or {})}

        try:
            body = await self.client.submit_exam(
                snapshot["sessionId"], mcq_score, mcq_answers, final_form_data
            )
        except PortalAPIError as e:
            self._forget_if_stale(e)
            raise

        self.store.clear()
        logger.info(
            f"Exam session {snapshot['sessionId']} submitted "
            f"(passing={body.get('isPassing')})"
        )
        return body

    async def fail_assessment(self, mcq_score: Dict[str, Any]) -> Dict[str, Any]:
        """
        Report a failed assessment and clear the mirror.

        Raises:
            NoActiveSessionError: If no in-progress session is mirrored
            PortalAPIError: If the server call fails
        """
        snapshot = self._require_mirror()
        self._cancel_pending()

        try:
            body = await self.client.fail_assessment(snapshot["sessionId"], mcq_score)
        except PortalAPIError as e:
            self._forget_if_stale(e)
            raise

        self.store.clear()
        logger.info(f"Exam session {snapshot['sessionId']} locked after failed assessment")
        return body

    async def refresh(self) -> Optional[MirrorSnapshot]:
        """
        Reconcile the mirror with the server copy; the server wins.

        Clears the mirror when the server reports the session completed or
        missing. When the server cannot be reached the mirror is returned as is.
        """
        snapshot = self.store.load()
        if snapshot is None:
            return None

        try:
            session = await self.client.get_session(snapshot["sessionId"])
        except PortalAPIError as e:
            if e.code == "NOT_FOUND":
                logger.info(f"Mirrored session {snapshot['sessionId']} no longer exists")
                self.store.clear()
                return None
            logger.warning(f"Could not refresh session {snapshot['sessionId']}: {e.code}")
            return snapshot

        if session["status"] != IN_PROGRESS:
            self.store.clear()
            return None

        server_snapshot = snapshot_from_session(session)
        self.store.save(server_snapshot)
        return server_snapshot
