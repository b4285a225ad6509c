"""Session and snapshot models — the contract between the controller and callers.

``Session`` is the single owned value holding everything one interview
accumulates (identity, transcript, answers, result).  ``SessionSnapshot``
is the read-only view returned by every controller operation so that
callers (terminal runner, gateway routes, tests) never hold a reference
into live controller state.
"""

from __future__ import annotations

import enum
from typing import Literal, Optional

from pydantic import BaseModel, Field

from rehab_survey.models.result import SurveyResult
from rehab_survey.models.step import AnswerValue, FieldDescriptor, StepDescriptor


class ControllerState(str, enum.Enum):
    """Lifecycle states of ``SurveySessionController``.

    Transitions:
        idle -> starting                   (start)
        starting -> idle                   (session creation failed)
        starting -> awaiting_step          (session created)
        awaiting_step -> awaiting_answer   (step loaded)
        awaiting_step -> completing        (terminal step loaded)
        awaiting_answer -> submitting      (answer accepted locally)
        submitting -> awaiting_answer      (submission failed)
        submitting -> awaiting_step        (next_step_id)
        submitting -> completing           (is_complete)
        completing -> free_chat            (result computed)
        any -> idle                        (reset)
    """

    IDLE = "idle"
    STARTING = "starting"
    AWAITING_STEP = "awaiting_step"
    AWAITING_ANSWER = "awaiting_answer"
    SUBMITTING = "submitting"
    COMPLETING = "completing"
    FREE_CHAT = "free_chat"


class SessionMode(str, enum.Enum):
    """Coarse mode of the session as seen by the UI."""

    INTERVIEW = "interview"
    COMPLETING = "completing"
    FREE_CHAT = "free_chat"


class TranscriptMessage(BaseModel):
    """One rich-text entry of the conversation."""

    id: str
    origin: Literal["assistant", "participant"]
    content: str


class Session(BaseModel):
    """Everything one interview accumulates.

    The transcript is append-only and the answer map refuses overwrites;
    both are only cleared by replacing the whole session on reset.
    """

    session_id: Optional[str] = None
    transcript: list[TranscriptMessage] = Field(default_factory=list)
    answers: dict[str, AnswerValue] = Field(default_factory=dict)
    completed_steps: int = 0
    mode: SessionMode = SessionMode.INTERVIEW
    result: Optional[SurveyResult] = None

    def append(self, origin: Literal["assistant", "participant"], content: str) -> TranscriptMessage:
        """Append a message; ids are sequential within the session."""
        message = TranscriptMessage(
            id=str(len(self.transcript) + 1), origin=origin, content=content,
        )
        self.transcript.append(message)
        return message

    def record_answer(self, step_id: str, value: AnswerValue) -> None:
        """Record the answer for a step.

        Raises:
            ValueError: if an answer is already recorded for ``step_id``.
        """
        if step_id in self.answers:
            raise ValueError(f"Answer already recorded for step {step_id}")
        self.answers[step_id] = value


class FieldRow(BaseModel):
    """A visible composite-form field with the group header that opens before it."""

    field: FieldDescriptor
    group_header: Optional[str] = None


class SessionSnapshot(BaseModel):
    """Read-only copy of controller state after a transition."""

    state: ControllerState
    session: Session
    step: Optional[StepDescriptor] = None
    selection: list[str] = Field(default_factory=list)
    form_values: dict[str, int] = Field(default_factory=dict)
    field_rows: list[FieldRow] = Field(default_factory=list)
    progress_caption: Optional[str] = None
    can_retry_result: bool = False
