"""Error taxonomy for the survey SDK.

Network-origin errors are raised by ``StepService`` implementations and
caught by the controller at the call site:

  - SessionCreateError: ``create_session`` failed
  - StepLoadError: ``get_current_step`` failed
  - AnswerSubmitError: ``submit_answer`` failed or returned a malformed ack
  - ComputeError: ``compute_result`` failed

``ValidationError`` is local: it is raised before any network call and is
reported inline, never appended to the transcript.

``InvalidStateError`` signals that an operation was called from a state
that does not allow it (e.g. ``submit`` before ``start``).
"""


class SurveyError(Exception):
    """Base class for every error raised by the survey SDK."""


class SessionCreateError(SurveyError):
    """The step service could not create a session."""


class StepLoadError(SurveyError):
    """The step service could not return the current step."""


class AnswerSubmitError(SurveyError):
    """The step service rejected or failed to accept an answer."""


class ComputeError(SurveyError):
    """The scoring endpoint failed to compute a result."""


class ValidationError(SurveyError, ValueError):
    """A candidate answer was rejected locally.

    ``reason`` is the user-facing text to show next to the input.
    """

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class InvalidStateError(ValueError):
    """A controller operation was called from a state that forbids it."""
