"""HttpStepService — REST transport for the remote step service.

Thin httpx wrapper implementing :class:`StepService` against the
survey API::

    POST {base}/sessions                                → {session_id}
    GET  {base}/sessions/{id}/step                      → step descriptor
    POST {base}/sessions/{id}/answer  {step_id, answer} → {is_complete, next_step_id}
    POST {base}/sessions/{id}/calculate-with-agents     → result

Every transport error, non-2xx status, or malformed body is raised as the
taxonomy error of the call kind, with the cause chained.  No call is
retried here; retries are the controller's decision.

Usage::

    async with HttpStepService("https://example.test/api") as service:
        session_id = await service.create_session()
"""

from __future__ import annotations

import logging
import os
from typing import Any

import httpx
from pydantic import ValidationError as ModelValidationError

from rehab_survey.errors import (
    AnswerSubmitError,
    ComputeError,
    SessionCreateError,
    StepLoadError,
    SurveyError,
)
from rehab_survey.interfaces import StepService
from rehab_survey.models.result import SubmitAck, SurveyResult
from rehab_survey.models.step import AnswerValue, StepDescriptor

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = os.getenv("SURVEY_API_BASE", "http://localhost:8000/api")
DEFAULT_TIMEOUT = float(os.getenv("SURVEY_API_TIMEOUT", "30"))


class HttpStepService(StepService):
    """Async HTTP client for the survey step service.

    Args:
        base_url: API root, e.g. ``https://host/api``
        timeout: per-request timeout in seconds
        transport: optional httpx transport (tests pass ``MockTransport``)
    """

    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> HttpStepService:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------
    # StepService
    # ------------------------------------------------------------------

    async def create_session(self) -> str:
        data = await self._request("POST", "/sessions", SessionCreateError, json={})
        session_id = data.get("session_id") if isinstance(data, dict) else None
        if not session_id:
            raise SessionCreateError("Response carries no session_id")
        return str(session_id)

    async def get_current_step(self, session_id: str) -> StepDescriptor:
        data = await self._request("GET", f"/sessions/{session_id}/step", StepLoadError)
        try:
            return StepDescriptor.model_validate(data)
        except ModelValidationError as exc:
            raise StepLoadError(f"Malformed step descriptor: {exc}") from exc

    async def submit_answer(
        self, session_id: str, step_id: str, answer: AnswerValue
    ) -> SubmitAck:
        data = await self._request(
            "POST",
            f"/sessions/{session_id}/answer",
            AnswerSubmitError,
            json={"step_id": step_id, "answer": answer},
        )
        try:
            return SubmitAck.model_validate(data)
        except ModelValidationError as exc:
            raise AnswerSubmitError(f"Malformed acknowledgement: {exc}") from exc

    async def compute_result(self, session_id: str) -> SurveyResult:
        data = await self._request(
            "POST", f"/sessions/{session_id}/calculate-with-agents", ComputeError,
        )
        try:
            return SurveyResult.model_validate(data)
        except ModelValidationError as exc:
            raise ComputeError(f"Malformed result: {exc}") from exc

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        error: type[SurveyError],
        *,
        json: Any = None,
    ) -> Any:
        """Send one request and return the decoded JSON body.

        Raises ``error`` for transport failures, non-2xx statuses and
        undecodable bodies.
        """
        if self._client is None:
            raise RuntimeError("HttpStepService used outside 'async with'")

        try:
            resp = await self._client.request(method, path, json=json)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as exc:
            logger.warning("%s %s returned %d", method, path, exc.response.status_code)
            raise error(f"{method} {path} returned {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise error(f"{method} {path} failed: {exc}") from exc
        except ValueError as exc:
            # Body was not JSON
            raise error(f"{method} {path} returned an undecodable body") from exc
