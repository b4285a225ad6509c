"""Public model re-exports for rehab_survey.

Consumers should import from ``rehab_survey.models`` rather than
reaching into sub-modules directly.
"""

# --- Steps ---
from rehab_survey.models.step import (
    AnswerValue,
    FieldDescriptor,
    InputKind,
    StepDescriptor,
    StepOption,
)

# --- Results ---
from rehab_survey.models.result import SubmitAck, SurveyResult

# --- Session / snapshot ---
from rehab_survey.models.session import (
    ControllerState,
    FieldRow,
    Session,
    SessionMode,
    SessionSnapshot,
    TranscriptMessage,
)

__all__ = [
    # Steps
    "AnswerValue",
    "FieldDescriptor",
    "InputKind",
    "StepDescriptor",
    "StepOption",
    # Results
    "SubmitAck",
    "SurveyResult",
    # Session
    "ControllerState",
    "FieldRow",
    "Session",
    "SessionMode",
    "SessionSnapshot",
    "TranscriptMessage",
]
