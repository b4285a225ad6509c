"""Abstract interface for the remote step-definition and scoring service.

The SDK ships two implementations: ``HttpStepService`` (REST over httpx)
and ``ScriptedStepService`` (YAML scenario replay for demos and tests).

Typical integration flow::

    async with HttpStepService() as service:
        controller = SurveySessionController(service)
        await controller.start()                 # create session + first step
        await controller.select_option("rent")   # single choice auto-submits
        await controller.submit("3,000,000")     # numeric step
        # ... terminal step or is_complete → result → free chat ...
        await controller.send_free_chat("비용이 얼마인가요?")

The service is not assumed to be idempotent.  Callers guarantee at most
one call of each kind in flight and decide themselves whether to retry.
"""

from abc import ABC, abstractmethod

from rehab_survey.models.result import SubmitAck, SurveyResult
from rehab_survey.models.step import AnswerValue, StepDescriptor


class StepService(ABC):
    """Contract the controller consumes to drive one interview."""

    @abstractmethod
    async def create_session(self) -> str:
        """Create a new interview session and return its opaque id.

        Raises:
            SessionCreateError: on any non-success outcome.
        """
        ...

    @abstractmethod
    async def get_current_step(self, session_id: str) -> StepDescriptor:
        """Return the step the session is currently on.

        Raises:
            StepLoadError: on any non-success outcome.
        """
        ...

    @abstractmethod
    async def submit_answer(
        self, session_id: str, step_id: str, answer: AnswerValue
    ) -> SubmitAck:
        """Post the answer for ``step_id``.

        Returns
        -------
        SubmitAck
            ``is_complete`` when the interview is over, otherwise the
            ``next_step_id`` to load.

        Raises:
            AnswerSubmitError: on any non-success outcome.
        """
        ...

    @abstractmethod
    async def compute_result(self, session_id: str) -> SurveyResult:
        """Compute the repayment estimate from the full answer set.

        Raises:
            ComputeError: on any non-success outcome.
        """
        ...
