"""ScriptedStepService and scenario loading tests."""

import pytest
import yaml
from pydantic import ValidationError as ModelValidationError

from rehab_survey.config import IMMEDIATE
from rehab_survey.constants import VISIBILITY_RULES
from rehab_survey.controller import SurveySessionController
from rehab_survey.errors import AnswerSubmitError, ComputeError, StepLoadError
from rehab_survey.models.session import ControllerState
from rehab_survey.replay import ScriptedStepService, load_scenario

from helpers.steps import numeric, single_choice


def _write(tmp_path, data):
    path = tmp_path / "scenario.yaml"
    path.write_text(yaml.safe_dump(data, allow_unicode=True), encoding="utf-8")
    return path


def _scenario_dict(**extra):
    return {
        "name": "tiny",
        "steps": [single_choice("s1", "A", "B"), numeric("s2")],
        "result": {
            "repayment_rate": 12.5,
            "monthly_repayment_total": 100000,
            "total_repayment": 3600000,
            "total_debt": 20000000,
            "unsecured_debt": 20000000,
        },
        **extra,
    }


class TestLoadScenario:
    """Scenario YAML parsing and structural checks."""

    def test_sample_scenario_loads(self, sample_scenario):
        kinds = {s.kind for s in sample_scenario.steps}
        assert {"single_choice", "multi_choice", "numeric", "boolean",
                "composite_form"} <= kinds, f"Sample should cover every kind, got {kinds}"
        assert sample_scenario.terminal.kind == "terminal"
        assert sample_scenario.result.forgiveness_estimate == 32_000_000

    def test_sample_conditions_are_known(self, sample_scenario):
        form = next(s for s in sample_scenario.steps if s.kind == "composite_form")
        unknown = [f.condition for f in form.fields
                   if f.condition and f.condition not in VISIBILITY_RULES]
        assert not unknown, f"Unknown condition tags in sample: {unknown}"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_scenario(tmp_path / "nope.yaml")

    def test_duplicate_step_ids_rejected(self, tmp_path):
        data = _scenario_dict()
        data["steps"].append(numeric("s1"))
        with pytest.raises(ModelValidationError, match="unique"):
            load_scenario(_write(tmp_path, data))

    def test_terminal_step_in_steps_rejected(self, tmp_path):
        data = _scenario_dict()
        data["steps"].append({"step_id": "end", "input_type": "info"})
        with pytest.raises(ModelValidationError):
            load_scenario(_write(tmp_path, data))


class TestScriptedService:
    """Per-session cursors over the scripted steps."""

    @pytest.mark.asyncio
    async def test_walkthrough(self, tmp_path):
        service = ScriptedStepService(load_scenario(_write(tmp_path, _scenario_dict())))
        sid = await service.create_session()

        assert (await service.get_current_step(sid)).step_id == "s1"
        ack = await service.submit_answer(sid, "s1", "A")
        assert ack.next_step_id == "s2"

        with pytest.raises(ComputeError, match="1 unanswered"):
            await service.compute_result(sid)

        ack = await service.submit_answer(sid, "s2", 500)
        assert ack.is_complete is True
        assert (await service.get_current_step(sid)).kind == "terminal"
        assert (await service.compute_result(sid)).repayment_rate == 12.5
        assert service.answers(sid) == {"s1": "A", "s2": 500}

    @pytest.mark.asyncio
    async def test_sessions_are_independent(self, tmp_path):
        service = ScriptedStepService(load_scenario(_write(tmp_path, _scenario_dict())))
        first = await service.create_session()
        second = await service.create_session()
        assert first != second

        await service.submit_answer(first, "s1", "B")
        assert (await service.get_current_step(second)).step_id == "s1"

    @pytest.mark.asyncio
    async def test_wrong_step_id_rejected(self, tmp_path):
        service = ScriptedStepService(load_scenario(_write(tmp_path, _scenario_dict())))
        sid = await service.create_session()
        with pytest.raises(AnswerSubmitError, match="Expected answer for s1"):
            await service.submit_answer(sid, "s2", 1)

    @pytest.mark.asyncio
    async def test_unknown_session(self, tmp_path):
        service = ScriptedStepService(load_scenario(_write(tmp_path, _scenario_dict())))
        with pytest.raises(StepLoadError, match="not found"):
            await service.get_current_step("ghost")

    @pytest.mark.asyncio
    async def test_terminal_reached_via_step_load(self, tmp_path):
        data = _scenario_dict(announce_completion=False)
        service = ScriptedStepService(load_scenario(_write(tmp_path, data)))
        ctrl = SurveySessionController(service, timing=IMMEDIATE)

        await ctrl.start()
        await ctrl.select_option("A")
        snap = await ctrl.submit("1,000")

        assert snap.state == ControllerState.FREE_CHAT
        assert snap.session.result.repayment_rate == 12.5


class TestSampleInterview:
    """The bundled scenario driven end-to-end through the controller."""

    @pytest.mark.asyncio
    async def test_full_interview(self, sample_scenario):
        service = ScriptedStepService(sample_scenario)
        ctrl = SurveySessionController(service, timing=IMMEDIATE)
        await ctrl.start()

        await ctrl.select_option("salary")
        await ctrl.submit("2,800,000")
        await ctrl.select_option("owned")
        await ctrl.select_option("2")
        await ctrl.submit("70000000")
        await ctrl.select_option("yes")
        await ctrl.select_option("crypto")
        await ctrl.select_option("vehicle")
        await ctrl.submit()
        snap = await ctrl.select_option("retirement_fund")

        assert snap.step.kind == "composite_form"
        ids = [row.field.id for row in snap.field_rows]
        assert ids == [
            "housing_value", "crypto_value", "vehicle_value",
            "retirement_amount", "other_assets",
        ], f"Unexpected visible fields: {ids}"
        headers = [row.group_header for row in snap.field_rows]
        assert headers == ["주거", "금융자산", "기타 재산", "퇴직금", "기타 재산"]

        ctrl.set_form_value("housing_value", "300,000,000")
        ctrl.set_form_value("crypto_value", "1500000")
        snap = await ctrl.submit()

        assert snap.state == ControllerState.FREE_CHAT
        assert service.answers(snap.session.session_id)["step_09_asset_detail"] == {
            "housing_value": 300_000_000,
            "crypto_value": 1_500_000,
        }
        assert snap.session.completed_steps == 8
