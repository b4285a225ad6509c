"""ScriptedStepService — replays a YAML scenario as a step service.

A scenario lists the interview steps in the step service's wire shape and
the result the scoring endpoint should return.  The service hands out
steps in order, one independent cursor per session, and returns the
scripted result once every step has been answered.  It powers the
terminal runner's offline mode, the gateway's demo mode, and the tests.

Scenario layout::

    name: sample
    announce_completion: true    # false → last answer points at the terminal step
    steps:
      - step_id: step_03_housing
        title: 주거 형태
        question: 현재 거주 형태를 선택해주세요.
        input_type: single_choice
        options:
          - {value: owned, label: 자가}
    result:
      repayment_rate: 36.0
      ...

Usage::

    service = ScriptedStepService.from_yaml(SAMPLE_SCENARIO)
    controller = SurveySessionController(service)
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, model_validator

from rehab_survey.errors import (
    AnswerSubmitError,
    ComputeError,
    StepLoadError,
    SurveyError,
)
from rehab_survey.interfaces import StepService
from rehab_survey.models.result import SubmitAck, SurveyResult
from rehab_survey.models.step import AnswerValue, StepDescriptor

logger = logging.getLogger(__name__)

SAMPLE_SCENARIO = Path(__file__).parent / "scenarios" / "sample.yaml"


def load_yaml(path: Path | str) -> Any:
    """Load a single YAML file and return the parsed contents."""
    if isinstance(path, str):
        path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing YAML file: {path}")
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def _default_terminal() -> StepDescriptor:
    return StepDescriptor(step_id="step_done", title="완료", kind="terminal")


class Scenario(BaseModel):
    """A scripted interview: ordered steps plus the final result."""

    name: str = "scenario"
    steps: list[StepDescriptor]
    result: SurveyResult
    terminal: StepDescriptor = Field(default_factory=_default_terminal)
    # When False the last answer returns next_step_id of the terminal
    # step instead of is_complete, so clients reach it via a step load.
    announce_completion: bool = True

    @model_validator(mode="after")
    def _chk(self):
        if not self.steps:
            raise ValueError("scenario must declare at least one step")
        ids = [s.step_id for s in self.steps]
        if len(ids) != len(set(ids)):
            raise ValueError("scenario step ids must be unique")
        if any(s.kind == "terminal" for s in self.steps):
            raise ValueError("terminal steps belong in 'terminal', not 'steps'")
        if self.terminal.kind != "terminal":
            raise ValueError("'terminal' must be a terminal step")
        return self


def load_scenario(path: Path | str) -> Scenario:
    """Parse a scenario YAML file into a typed ``Scenario``."""
    scenario = Scenario.model_validate(load_yaml(path))
    logger.info("Scenario %r loaded: %d steps", scenario.name, len(scenario.steps))
    return scenario


@dataclass
class _ScriptedSession:
    cursor: int = 0
    answers: dict[str, AnswerValue] = field(default_factory=dict)


class ScriptedStepService(StepService):
    """In-memory step service driven by a ``Scenario``.

    Sessions are independent: each has its own cursor and answer map.
    """

    def __init__(self, scenario: Scenario) -> None:
        self._scenario = scenario
        self._sessions: dict[str, _ScriptedSession] = {}

    @classmethod
    def from_yaml(cls, path: Path | str = SAMPLE_SCENARIO) -> ScriptedStepService:
        return cls(load_scenario(path))

    @property
    def scenario(self) -> Scenario:
        return self._scenario

    def answers(self, session_id: str) -> dict[str, AnswerValue]:
        """Answers received so far for a session (copy)."""
        return dict(self._get(session_id, KeyError).answers)

    # ------------------------------------------------------------------
    # StepService
    # ------------------------------------------------------------------

    async def create_session(self) -> str:
        session_id = uuid.uuid4().hex
        self._sessions[session_id] = _ScriptedSession()
        logger.debug("Scripted session %s created", session_id)
        return session_id

    async def get_current_step(self, session_id: str) -> StepDescriptor:
        state = self._get(session_id, StepLoadError)
        steps = self._scenario.steps
        if state.cursor >= len(steps):
            return self._scenario.terminal
        return steps[state.cursor]

    async def submit_answer(
        self, session_id: str, step_id: str, answer: AnswerValue
    ) -> SubmitAck:
        state = self._get(session_id, AnswerSubmitError)
        steps = self._scenario.steps
        if state.cursor >= len(steps):
            raise AnswerSubmitError(f"Session {session_id} has no open step")

        expected = steps[state.cursor].step_id
        if step_id != expected:
            raise AnswerSubmitError(f"Expected answer for {expected}, got {step_id}")

        state.answers[step_id] = answer
        state.cursor += 1

        if state.cursor < len(steps):
            return SubmitAck(next_step_id=steps[state.cursor].step_id)
        if self._scenario.announce_completion:
            return SubmitAck(is_complete=True)
        return SubmitAck(next_step_id=self._scenario.terminal.step_id)

    async def compute_result(self, session_id: str) -> SurveyResult:
        state = self._get(session_id, ComputeError)
        remaining = len(self._scenario.steps) - state.cursor
        if remaining > 0:
            raise ComputeError(f"Session {session_id} has {remaining} unanswered steps")
        return self._scenario.result

    def _get(
        self, session_id: str, error: type[SurveyError] | type[KeyError]
    ) -> _ScriptedSession:
        state = self._sessions.get(session_id)
        if state is None:
            raise error(f"Session not found: session_id={session_id}")
        return state
