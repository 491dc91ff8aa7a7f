"""
Async HTTP client for the portal's session endpoints.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

NETWORK_ERROR = "NETWORK_ERROR"


class PortalAPIError(Exception):
    """An API call failed.

    Attributes:
        code: Error code from the response body (``NETWORK_ERROR`` when the
            server could not be reached)
        message: Human-readable message
        status_code: HTTP status, or None for transport failures
    """

    def __init__(self, code: str, message: str, status_code: Optional[int] = None):
        self.code = code
        self.message = message
        self.status_code = status_code
        super().__init__(f"{code}: {message}")


def _error_from_response(response: httpx.Response) -> PortalAPIError:
    try:
        detail = response.json().get("detail")
    except ValueError:
        detail = None

    if isinstance(detail, dict):
        return PortalAPIError(
            detail.get("code", "SERVER_ERROR"),
            detail.get("message", response.reason_phrase),
            response.status_code,
        )
    return PortalAPIError(
        "SERVER_ERROR", str(detail or response.reason_phrase), response.status_code
    )


class PortalClient:
    """
    Thin async wrapper over the ``/v1/session`` endpoints.

    Responses are returned as the decoded JSON bodies (camelCase keys).
    Every failure is raised as PortalAPIError.

    Usage:
        async with PortalClient("http://localhost:8000/v1") as client:
            started = await client.start_session("a@x.com", "9876543210")
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )
        logger.debug(f"PortalClient initialized with base_url: {self.base_url}")

    async def __aenter__(self) -> "PortalClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TransportError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise PortalAPIError(NETWORK_ERROR, str(e) or e.__class__.__name__) from e

        if response.is_error:
            raise _error_from_response(response)
        try:
            return response.json()
        except ValueError as e:
            logger.warning(f"{method} {path} returned a non-JSON body")
            raise PortalAPIError(
                "SERVER_ERROR", "Response body is not valid JSON", response.status_code
            ) from e

    async def start_session(self, email: str, phone: str) -> Dict[str, Any]:
        return await self._request(
            "POST", "/session/start", json={"email": email, "phone": phone}
        )

    async def check_attempt_status(self, email: str, phone: str) -> Dict[str, Any]:
        return await self._request(
            "GET", "/session/check", params={"email": email, "phone": phone}
        )

    async def get_session(self, session_id: str) -> Dict[str, Any]:
        body = await self._request("GET", f"/session/{session_id}")
        return body["session"]

    async def save_progress(
        self, session_id: str, current_step: int, form_data: Dict[str, Any]
    ) -> Dict[str, Any]:
        return await self._request(
            "PUT",
            f"/session/{session_id}/progress",
            json={"currentStep": current_step, "formData": form_data},
        )

    async def submit_exam(
        self,
        session_id: str,
        mcq_score: Dict[str, Any],
        mcq_answers: Optional[List[Dict[str, Any]]] = None,
        form_data: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "mcqScore": mcq_score,
            "mcqAnswers": mcq_answers or [],
        }
        if form_data is not None:
            payload["formData"] = form_data
        return await self._request("POST", f"/session/{session_id}/submit", json=payload)

    async def fail_assessment(
        self, session_id: str, mcq_score: Dict[str, Any]
    ) -> Dict[str, Any]:
        return await self._request(
            "POST",
            f"/session/{session_id}/fail-assessment",
            json={"mcqScore": mcq_score},
        )
