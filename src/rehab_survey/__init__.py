"""rehab_survey — Client-side orchestration SDK for the debt-rehabilitation interview.

Public API:
    SurveySessionController — state machine driving one interview session
    StepService             — ABC for the remote step-definition/scoring service
    HttpStepService         — httpx implementation of StepService
    ScriptedStepService     — YAML scenario replay implementation of StepService
    SurveyTiming            — pacing and validation settings

Building blocks:
    StepAnswerValidator       — per-kind answer validation
    FieldVisibilityEvaluator  — composite-form field visibility
    ResultRouter              — result fetch, progress captions, summary
    FreeChatResponder         — keyword-based canned answers after the interview
    MessageRenderer           — Jinja2 transcript message templates

Errors:
    SurveyError and its subclasses SessionCreateError, StepLoadError,
    AnswerSubmitError, ComputeError, ValidationError; InvalidStateError
"""

from rehab_survey.client import HttpStepService
from rehab_survey.config import IMMEDIATE, SurveyTiming, load_timing
from rehab_survey.controller import SurveySessionController
from rehab_survey.errors import (
    AnswerSubmitError,
    ComputeError,
    InvalidStateError,
    SessionCreateError,
    StepLoadError,
    SurveyError,
    ValidationError,
)
from rehab_survey.interfaces import StepService
from rehab_survey.messages import MessageRenderer
from rehab_survey.models.result import SubmitAck, SurveyResult
from rehab_survey.models.session import (
    ControllerState,
    Session,
    SessionMode,
    SessionSnapshot,
    TranscriptMessage,
)
from rehab_survey.models.step import FieldDescriptor, StepDescriptor, StepOption
from rehab_survey.replay import SAMPLE_SCENARIO, ScriptedStepService, load_scenario
from rehab_survey.responder import FreeChatResponder
from rehab_survey.router import ResultRouter
from rehab_survey.validator import StepAnswerValidator
from rehab_survey.visibility import FieldVisibilityEvaluator

__all__ = [
    # Controller & services
    "SurveySessionController",
    "StepService",
    "HttpStepService",
    "ScriptedStepService",
    "SAMPLE_SCENARIO",
    "load_scenario",
    # Configuration
    "IMMEDIATE",
    "SurveyTiming",
    "load_timing",
    # Building blocks
    "StepAnswerValidator",
    "FieldVisibilityEvaluator",
    "ResultRouter",
    "FreeChatResponder",
    "MessageRenderer",
    # Models
    "ControllerState",
    "FieldDescriptor",
    "Session",
    "SessionMode",
    "SessionSnapshot",
    "StepDescriptor",
    "StepOption",
    "SubmitAck",
    "SurveyResult",
    "TranscriptMessage",
    # Errors
    "SurveyError",
    "SessionCreateError",
    "StepLoadError",
    "AnswerSubmitError",
    "ComputeError",
    "ValidationError",
    "InvalidStateError",
]
