"""HttpStepService tests against an httpx.MockTransport.

The handler below plays the remote survey API: it records every request
and answers from a small routing table, so each test can check both the
request the client sends and how it maps the response.
"""

import json

import httpx
import pytest

from rehab_survey.client import HttpStepService
from rehab_survey.errors import (
    AnswerSubmitError,
    ComputeError,
    SessionCreateError,
    StepLoadError,
)

BASE = "https://survey.test/api"

STEP_PAYLOAD = {
    "step_id": "step_07_assets",
    "title": "보유 재산",
    "question": "보유 재산을 선택해주세요.",
    "input_type": "multi_choice",
    "options": [
        {"value": "crypto", "label": "가상자산"},
        {"value": "vehicle", "label": "자동차"},
    ],
    "progress": 7,
    "total_steps": 9,
}

FORM_PAYLOAD = {
    "step_id": "step_09_asset_detail",
    "title": "재산 상세",
    "input_type": "form",
    "options": None,
    "validation": {"fields": [
        {"id": "crypto_value", "label": "가상자산 평가액", "group": "금융", "condition": "crypto"},
    ]},
}

RESULT_PAYLOAD = {
    "repayment_rate": 36.0,
    "monthly_repayment_total": 500000,
    "total_repayment": 18000000,
    "total_debt": 70000000,
    "secured_debt": 20000000,
    "unsecured_debt": 50000000,
}


class FakeAPI:
    """Routing table keyed by (method, path) → (status, body)."""

    def __init__(self, routes):
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key not in self.routes:
            return httpx.Response(404, json={"detail": "not found"})
        status, body = self.routes[key]
        if isinstance(body, Exception):
            raise body
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)


def _service(api):
    return HttpStepService(BASE, timeout=5, transport=httpx.MockTransport(api))


class TestHappyPath:
    """Requests and response parsing for each endpoint."""

    @pytest.mark.asyncio
    async def test_create_session(self):
        api = FakeAPI({("POST", "/api/sessions"): (200, {"session_id": "abc"})})
        async with _service(api) as service:
            assert await service.create_session() == "abc"
        assert api.requests[0].url == f"{BASE}/sessions"

    @pytest.mark.asyncio
    async def test_get_current_step_maps_wire_shape(self):
        api = FakeAPI({("GET", "/api/sessions/abc/step"): (200, STEP_PAYLOAD)})
        async with _service(api) as service:
            step = await service.get_current_step("abc")
        assert step.kind == "multi_choice"
        assert [o.value for o in step.options] == ["crypto", "vehicle"]
        assert step.progress == 7

    @pytest.mark.asyncio
    async def test_form_fields_come_from_validation(self):
        api = FakeAPI({("GET", "/api/sessions/abc/step"): (200, FORM_PAYLOAD)})
        async with _service(api) as service:
            step = await service.get_current_step("abc")
        assert step.kind == "composite_form"
        assert step.options == []
        assert [f.id for f in step.fields] == ["crypto_value"]
        assert step.fields[0].condition == "crypto"

    @pytest.mark.asyncio
    async def test_submit_answer_body(self):
        api = FakeAPI({
            ("POST", "/api/sessions/abc/answer"): (200, {"is_complete": False, "next_step_id": "s8"}),
        })
        async with _service(api) as service:
            ack = await service.submit_answer("abc", "step_07_assets", ["crypto"])
        assert ack.next_step_id == "s8"
        assert ack.is_complete is False
        body = json.loads(api.requests[0].content)
        assert body == {"step_id": "step_07_assets", "answer": ["crypto"]}

    @pytest.mark.asyncio
    async def test_compute_result(self):
        api = FakeAPI({
            ("POST", "/api/sessions/abc/calculate-with-agents"): (200, RESULT_PAYLOAD),
        })
        async with _service(api) as service:
            result = await service.compute_result("abc")
        assert result.forgiveness_estimate == 32_000_000
        assert result.monthly_income == 0, "Optional amounts default to zero"

    @pytest.mark.asyncio
    async def test_compute_result_with_fractional_amounts(self):
        payload = {**RESULT_PAYLOAD, "monthly_repayment_total": 555555.5}
        api = FakeAPI({
            ("POST", "/api/sessions/abc/calculate-with-agents"): (200, payload),
        })
        async with _service(api) as service:
            result = await service.compute_result("abc")
        assert result.monthly_repayment_total == 555_556


class TestFailures:
    """Each call kind raises its own taxonomy error."""

    @pytest.mark.asyncio
    async def test_create_http_error(self):
        api = FakeAPI({("POST", "/api/sessions"): (500, {"detail": "boom"})})
        async with _service(api) as service:
            with pytest.raises(SessionCreateError):
                await service.create_session()

    @pytest.mark.asyncio
    async def test_create_without_session_id(self):
        api = FakeAPI({("POST", "/api/sessions"): (200, {"id": "abc"})})
        async with _service(api) as service:
            with pytest.raises(SessionCreateError, match="session_id"):
                await service.create_session()

    @pytest.mark.asyncio
    async def test_step_transport_error(self):
        api = FakeAPI({
            ("GET", "/api/sessions/abc/step"): (0, httpx.ConnectError("refused")),
        })
        async with _service(api) as service:
            with pytest.raises(StepLoadError) as exc_info:
                await service.get_current_step("abc")
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_step_unknown_input_type(self):
        payload = {**STEP_PAYLOAD, "input_type": "slider"}
        api = FakeAPI({("GET", "/api/sessions/abc/step"): (200, payload)})
        async with _service(api) as service:
            with pytest.raises(StepLoadError, match="Malformed"):
                await service.get_current_step("abc")

    @pytest.mark.asyncio
    async def test_submit_non_json_body(self):
        api = FakeAPI({("POST", "/api/sessions/abc/answer"): (200, "<html>oops</html>")})
        async with _service(api) as service:
            with pytest.raises(AnswerSubmitError):
                await service.submit_answer("abc", "s1", 1)

    @pytest.mark.asyncio
    async def test_compute_missing_fields(self):
        api = FakeAPI({
            ("POST", "/api/sessions/abc/calculate-with-agents"): (200, {"repayment_rate": 1.0}),
        })
        async with _service(api) as service:
            with pytest.raises(ComputeError):
                await service.compute_result("abc")

    @pytest.mark.asyncio
    async def test_used_outside_context(self):
        service = HttpStepService(BASE)
        with pytest.raises(RuntimeError):
            await service.create_session()
