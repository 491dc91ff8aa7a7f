"""
Tests for the async API client and the mirror-first session sync.
"""
import json

import httpx
import pytest
import pytest_asyncio

from portal.client import (
    ExamSessionSync,
    InMemoryMirrorStore,
    JsonFileMirrorStore,
    NoActiveSessionError,
    PortalAPIError,
    PortalClient,
)

BASE_URL = "http://portal.test/v1"


def _session_body(session_id="s-1", step=1, form_data=None, status="in_progress"):
    return {
        "sessionId": session_id,
        "email": "a@x.com",
        "phone": "9876543210",
        "currentStep": step,
        "formData": form_data or {},
        "mcqScore": None,
        "status": status,
        "completedAt": None,
        "submissionId": None,
        "createdAt": "2026-01-01T00:00:00Z",
        "updatedAt": "2026-01-01T00:00:00Z",
    }


class FakePortal:
    """Scripted server for httpx.MockTransport that records requests."""

    def __init__(self):
        self.requests = []
        self.progress_status = 200
        self.progress_raw_body = None
        self.session = _session_body()

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        self.requests.append((request.method, request.url.path, body))
        path = request.url.path

        if path.endswith("/session/start"):
            return httpx.Response(
                201, json={"session": self.session, "isNew": True, "status": "in_progress"}
            )
        if path.endswith("/progress"):
            if self.progress_raw_body is not None:
                return httpx.Response(200, content=self.progress_raw_body)
            if self.progress_status != 200:
                return httpx.Response(
                    self.progress_status,
                    json={"detail": {"code": "SERVER_ERROR", "message": "Failed"}},
                )
            return httpx.Response(
                200,
                json={
                    "sessionId": "s-1",
                    "currentStep": body["currentStep"],
                    "status": "in_progress",
                },
            )
        if path.endswith("/submit"):
            return httpx.Response(
                200,
                json={
                    "isPassing": True,
                    "status": "passed",
                    "submissionId": 1,
                    "message": "Congratulations! You have passed the exam.",
                },
            )
        if path.endswith("/fail-assessment"):
            return httpx.Response(
                200, json={"status": "failed", "message": "Assessment failed."}
            )
        if path.endswith("/session/s-1"):
            return httpx.Response(200, json={"session": self.session})
        return httpx.Response(
            404, json={"detail": {"code": "NOT_FOUND", "message": "Session not found"}}
        )

    def progress_requests(self):
        return [r for r in self.requests if r[1].endswith("/progress")]


@pytest.fixture
def fake_portal():
    return FakePortal()


@pytest_asyncio.fixture
async def portal_client(fake_portal):
    client = PortalClient(BASE_URL, transport=httpx.MockTransport(fake_portal.handler))
    yield client
    await client.aclose()


@pytest.fixture
def store():
    return InMemoryMirrorStore()


@pytest.fixture
def sync(portal_client, store):
    return ExamSessionSync(portal_client, store, debounce_seconds=0.01)


class TestPortalClient:
    @pytest.mark.asyncio
    async def test_error_body_is_unwrapped(self, portal_client):
        with pytest.raises(PortalAPIError) as exc_info:
            await portal_client.get_session("missing")

        assert exc_info.value.code == "NOT_FOUND"
        assert exc_info.value.message == "Session not found"
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_transport_failure_is_network_error(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with PortalClient(BASE_URL, transport=httpx.MockTransport(refuse)) as client:
            with pytest.raises(PortalAPIError) as exc_info:
                await client.start_session("a@x.com", "9876543210")

        assert exc_info.value.code == "NETWORK_ERROR"
        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_non_json_success_body_is_api_error(self, portal_client, fake_portal):
        fake_portal.progress_raw_body = b"<html>gateway</html>"

        with pytest.raises(PortalAPIError) as exc_info:
            await portal_client.save_progress("s-1", 2, {})

        assert exc_info.value.code == "SERVER_ERROR"
        assert exc_info.value.status_code == 200


class TestExamSessionSync:
    @pytest.mark.asyncio
    async def test_start_mirrors_live_session(self, sync, store):
        await sync.start("a@x.com", "9876543210")

        assert store.load()["sessionId"] == "s-1"
        assert sync.resume_from_mirror()["status"] == "in_progress"

    @pytest.mark.asyncio
    async def test_start_never_mirrors_completed_session(self, sync, store, fake_portal):
        store.save(
            {"sessionId": "old", "currentStep": 2, "formData": {}, "status": "in_progress"}
        )

        def completed(request):
            return httpx.Response(
                200,
                json={
                    "alreadyCompleted": True,
                    "status": "passed",
                    "message": "You have already passed and submitted the exam.",
                },
            )

        sync.client = PortalClient(BASE_URL, transport=httpx.MockTransport(completed))
        body = await sync.start("a@x.com", "9876543210")
        await sync.client.aclose()

        assert body["alreadyCompleted"] is True
        assert store.load() is None

    def test_resume_ignores_terminal_mirror(self, sync, store):
        store.save({"sessionId": "s-1", "currentStep": 4, "formData": {}, "status": "failed"})

        assert sync.resume_from_mirror() is None

    @pytest.mark.asyncio
    async def test_save_progress_updates_mirror_before_replication(
        self, sync, store, fake_portal
    ):
        await sync.start("a@x.com", "9876543210")

        snapshot = await sync.save_progress(2, {"fullName": "Asha Rao"})

        assert snapshot["currentStep"] == 2
        assert store.load()["formData"] == {"fullName": "Asha Rao"}
        assert fake_portal.progress_requests() == []

        await sync.flush()
        assert len(fake_portal.progress_requests()) == 1

    @pytest.mark.asyncio
    async def test_rapid_saves_are_debounced(self, portal_client, store, fake_portal):
        sync = ExamSessionSync(portal_client, store, debounce_seconds=5)
        await sync.start("a@x.com", "9876543210")

        await sync.save_progress(2, {"fullName": "A"})
        await sync.save_progress(2, {"fullName": "As"})
        await sync.save_progress(3, {"collegeName": "CEC"})
        await sync.flush()

        requests = fake_portal.progress_requests()
        assert len(requests) == 1
        assert requests[0][2] == {
            "currentStep": 3,
            "formData": {"fullName": "As", "collegeName": "CEC"},
        }

    @pytest.mark.asyncio
    async def test_replication_failure_keeps_mirror(self, sync, store, fake_portal, caplog):
        await sync.start("a@x.com", "9876543210")
        fake_portal.progress_status = 500

        await sync.save_progress(2, {"fullName": "Asha Rao"})
        await sync.flush()

        assert store.load()["formData"] == {"fullName": "Asha Rao"}
        assert "Failed to replicate progress" in caplog.text

    @pytest.mark.asyncio
    async def test_non_json_reply_is_logged_not_raised(
        self, sync, store, fake_portal, caplog
    ):
        await sync.start("a@x.com", "9876543210")
        fake_portal.progress_raw_body = b"<html>gateway</html>"

        await sync.save_progress(2, {"fullName": "Asha Rao"})
        await sync.flush()

        assert store.load()["formData"] == {"fullName": "Asha Rao"}
        assert "Failed to replicate progress" in caplog.text

    @pytest.mark.asyncio
    async def test_save_without_session(self, sync):
        with pytest.raises(NoActiveSessionError):
            await sync.save_progress(2, {"fullName": "Asha Rao"})

    @pytest.mark.asyncio
    async def test_submit_sends_mirrored_form_and_clears(self, sync, store, fake_portal):
        await sync.start("a@x.com", "9876543210")
        await sync.save_progress(3, {"fullName": "Asha Rao"})

        body = await sync.submit(
            {"totalQuestions": 10, "correctAnswers": 8, "percentage": 80.0},
            form_data={"projectTitle": "Navigator"},
        )

        assert body["isPassing"] is True
        assert store.load() is None
        method, path, payload = fake_portal.requests[-1]
        assert path.endswith("/session/s-1/submit")
        assert payload["formData"] == {"fullName": "Asha Rao", "projectTitle": "Navigator"}

    @pytest.mark.asyncio
    async def test_fail_assessment_clears_mirror(self, sync, store):
        await sync.start("a@x.com", "9876543210")

        await sync.fail_assessment(
            {"totalQuestions": 10, "correctAnswers": 2, "percentage": 20.0}
        )

        assert store.load() is None

    @pytest.mark.asyncio
    async def test_refresh_server_wins(self, sync, store, fake_portal):
        await sync.start("a@x.com", "9876543210")
        store.save(
            {"sessionId": "s-1", "currentStep": 1, "formData": {"x": 1}, "status": "in_progress"}
        )
        fake_portal.session = _session_body(step=3, form_data={"fullName": "Server"})

        refreshed = await sync.refresh()

        assert refreshed["currentStep"] == 3
        assert store.load()["formData"] == {"fullName": "Server"}

    @pytest.mark.asyncio
    async def test_refresh_clears_completed_session(self, sync, store, fake_portal):
        await sync.start("a@x.com", "9876543210")
        fake_portal.session = _session_body(status="passed")

        assert await sync.refresh() is None
        assert store.load() is None

    @pytest.mark.asyncio
    async def test_refresh_clears_missing_session(self, sync, store):
        store.save(
            {"sessionId": "gone", "currentStep": 2, "formData": {}, "status": "in_progress"}
        )

        assert await sync.refresh() is None
        assert store.load() is None


class TestAgainstApplication:
    @pytest.mark.asyncio
    async def test_resume_after_reload_then_fail(self, asgi_transport, tmp_path):
        store = JsonFileMirrorStore(tmp_path / "storage.json")

        async with PortalClient(BASE_URL, transport=asgi_transport) as client:
            sync = ExamSessionSync(client, store, debounce_seconds=0)
            await sync.start(" A@X.com", "+91 98765 43210")
            await sync.save_progress(2, {"fullName": "Asha Rao"})
            await sync.flush()

        # A fresh sync over the same storage resumes without the server
        async with PortalClient(BASE_URL, transport=asgi_transport) as client:
            sync = ExamSessionSync(client, store, debounce_seconds=0)
            mirrored = sync.resume_from_mirror()
            assert mirrored["currentStep"] == 2

            refreshed = await sync.refresh()
            assert refreshed["formData"]["fullName"] == "Asha Rao"

            body = await sync.fail_assessment(
                {"totalQuestions": 10, "correctAnswers": 1, "percentage": 10.0}
            )
            assert body["status"] == "failed"

            restarted = await sync.start("a@x.com", "9876543210")
            assert restarted["alreadyCompleted"] is True
            assert sync.resume_from_mirror() is None
