"""SurveySessionController — drives one interview from start to free chat.

One controller owns exactly one ``Session``.  Every public operation is a
coroutine that checks the current state, applies one transition (plus
whatever follows from it without user input, e.g. loading the next step),
and returns a ``SessionSnapshot``.

State machine::

    idle ──start──► starting ──► awaiting_step ──► awaiting_answer
      ▲                │              ▲   │               │ submit
      │                └─(fail)───────┼───┼───► idle      ▼
      │                               │   │          submitting
      │                 next_step_id──┘   │ terminal      │ is_complete
      │                                   ▼               ▼
      └──────────reset (any)────── completing ◄───────────┘
                                          │ result
                                          ▼
                                      free_chat

Network calls are the only suspension points.  Each call kind (``create``,
``step``, ``submit``, ``compute``) has a single in-flight slot, and every
call carries a ticket stamped with the controller epoch.  ``reset()``
bumps the epoch, so a response that arrives for a discarded session is
logged and dropped before it touches state.

Error handling: service errors are caught here, logged, and reported as
exactly one assistant message.  ``ValidationError`` propagates to the
caller untouched and never reaches the transcript.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from rehab_survey.config import SurveyTiming, load_timing
from rehab_survey.constants import (
    DEFAULT_BOOLEAN_OPTIONS,
    ERROR_MESSAGES,
    FORM_SUBMITTED_TEXT,
    MULTI_CHOICE_SEPARATOR,
)
from rehab_survey.errors import (
    AnswerSubmitError,
    ComputeError,
    InvalidStateError,
    SessionCreateError,
    StepLoadError,
    ValidationError,
)
from rehab_survey.formatter import format_won, normalize_numeric
from rehab_survey.interfaces import StepService
from rehab_survey.messages import MessageRenderer
from rehab_survey.models.session import (
    ControllerState,
    FieldRow,
    Session,
    SessionMode,
    SessionSnapshot,
)
from rehab_survey.models.step import AnswerValue, FieldDescriptor, StepDescriptor
from rehab_survey.responder import FreeChatResponder
from rehab_survey.router import ResultRouter
from rehab_survey.validator import StepAnswerValidator, allowed_values, coerce_amount
from rehab_survey.visibility import FieldVisibilityEvaluator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Ticket:
    """Proof of an in-flight call: its kind and the epoch it was issued in."""

    kind: str
    epoch: int


class _InFlightGuard:
    """At most one outstanding call per kind."""

    def __init__(self) -> None:
        self._open: dict[str, int] = {}

    def begin(self, kind: str, epoch: int) -> _Ticket:
        if kind in self._open:
            raise InvalidStateError(f"A '{kind}' call is already in flight")
        self._open[kind] = epoch
        return _Ticket(kind, epoch)

    def end(self, ticket: _Ticket) -> None:
        # A ticket from before a reset must not release a newer call's slot
        if self._open.get(ticket.kind) == ticket.epoch:
            del self._open[ticket.kind]

    def busy(self, kind: str) -> bool:
        return kind in self._open

    def clear(self) -> None:
        self._open.clear()


class SurveySessionController:
    """Orchestrates one interview session against a ``StepService``.

    Args:
        service: the remote step-definition and scoring service
        timing: pacing and validation settings (defaults from env)
        renderer: transcript message renderer
        evaluator: composite-form visibility evaluator
        responder: free-chat responder
    """

    def __init__(
        self,
        service: StepService,
        *,
        timing: SurveyTiming | None = None,
        renderer: MessageRenderer | None = None,
        evaluator: FieldVisibilityEvaluator | None = None,
        responder: FreeChatResponder | None = None,
    ) -> None:
        self._service = service
        self._timing = timing or load_timing()
        self._renderer = renderer or MessageRenderer()
        self._evaluator = evaluator or FieldVisibilityEvaluator()
        self._validator = StepAnswerValidator(
            self._evaluator,
            enforce_required_fields=self._timing.enforce_required_fields,
        )
        self._router = ResultRouter(
            self._renderer, caption_interval=self._timing.caption_interval,
        )
        self._responder = responder or FreeChatResponder(self._renderer)
        self._inflight = _InFlightGuard()
        self._epoch = 0
        self._init_state()

    def _init_state(self) -> None:
        """Fresh, unstarted state: only the greeting in the transcript."""
        self._state = ControllerState.IDLE
        self._session = Session()
        self._session.append("assistant", self._renderer.greeting())
        self._step: StepDescriptor | None = None
        self._selection: list[str] = []
        self._form_values: dict[str, int] = {}
        self._caption: str | None = None
        self._compute_failed = False

    # ==================================================================
    # Read-only views
    # ==================================================================

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def session_id(self) -> str | None:
        return self._session.session_id

    def visible_fields(self) -> list[FieldDescriptor]:
        """Composite-form fields relevant to the current step, in order."""
        if self._step is None or self._step.kind != "composite_form":
            return []
        return self._evaluator.visible_fields(self._step, self._session.answers)

    def snapshot(self) -> SessionSnapshot:
        """Copy of the current state; callers never alias live state."""
        rows: list[FieldRow] = self._evaluator.layout(self.visible_fields())
        return SessionSnapshot(
            state=self._state,
            session=self._session.model_copy(deep=True),
            step=self._step,
            selection=list(self._selection),
            form_values=dict(self._form_values),
            field_rows=rows,
            progress_caption=self._caption,
            can_retry_result=(
                self._state == ControllerState.COMPLETING and self._compute_failed
            ),
        )

    # ==================================================================
    # Interview lifecycle
    # ==================================================================

    async def start(self) -> SessionSnapshot:
        """Create a session and load its first step.

        Only valid from ``idle``.  On failure the controller returns to
        ``idle`` without keeping a partial session.
        """
        self._require("start", ControllerState.IDLE)
        ticket = self._inflight.begin("create", self._epoch)
        self._state = ControllerState.STARTING

        try:
            session_id = await self._service.create_session()
        except SessionCreateError as exc:
            if self._is_current(ticket):
                logger.warning("Session creation failed: %s", exc)
                self._session.append("assistant", ERROR_MESSAGES["create"])
                self._state = ControllerState.IDLE
            return self.snapshot()
        finally:
            self._inflight.end(ticket)

        if not self._is_current(ticket):
            logger.debug("Discarding late session %s from a reset controller", session_id)
            return self.snapshot()

        self._session.session_id = session_id
        self._session.append("assistant", self._renderer.session_started())
        self._state = ControllerState.AWAITING_STEP
        logger.info("Session %s started", session_id)
        return await self.load_step()

    async def load_step(self) -> SessionSnapshot:
        """Fetch the current step.

        A terminal step goes straight to result computation.  On failure
        the controller stays in ``awaiting_step``; calling this again is
        the retry.
        """
        self._require("load_step", ControllerState.AWAITING_STEP)
        ticket = self._inflight.begin("step", self._epoch)

        try:
            step = await self._service.get_current_step(self._session.session_id)
        except StepLoadError as exc:
            if self._is_current(ticket):
                logger.warning(
                    "Step load failed for session %s: %s", self._session.session_id, exc,
                )
                self._session.append("assistant", ERROR_MESSAGES["step"])
            return self.snapshot()
        finally:
            self._inflight.end(ticket)

        if not self._is_current(ticket):
            logger.debug("Discarding late step %s from a reset controller", step.step_id)
            return self.snapshot()

        self._step = step
        self._selection = []
        self._form_values = {}

        if step.kind == "terminal":
            logger.info("Terminal step %s reached", step.step_id)
            return await self._complete()

        self._session.append("assistant", self._renderer.step_prompt(step))
        self._state = ControllerState.AWAITING_ANSWER
        return self.snapshot()

    async def submit(self, raw: Any = None) -> SessionSnapshot:
        """Validate, record and post the answer to the current step.

        Args:
            raw: the candidate answer.  ``None`` uses the pending selection
                (choice steps) or form values (composite forms).

        If an answer is already recorded for the step (a previous post
        failed), that answer is posted again and ``raw`` is ignored.

        Raises:
            ValidationError: the candidate answer was rejected; nothing
                changed and nothing was sent.
        """
        self._require("submit", ControllerState.AWAITING_ANSWER)
        step = self._step
        session = self._session

        resubmission = step.step_id in session.answers
        if resubmission:
            answer = session.answers[step.step_id]
            logger.info("Re-posting recorded answer for step %s", step.step_id)
        else:
            if raw is None:
                raw = self._pending_input(step)
            answer = self._validator.validate(step, raw, session.answers)

        ticket = self._inflight.begin("submit", self._epoch)
        if not resubmission:
            session.append("participant", self._renderer.participant(self._echo(step, answer)))
            session.record_answer(step.step_id, answer)
        self._state = ControllerState.SUBMITTING

        try:
            ack = await self._service.submit_answer(session.session_id, step.step_id, answer)
            if not ack.is_complete and not ack.next_step_id:
                raise AnswerSubmitError(
                    f"Acknowledgement for step {step.step_id} has neither "
                    f"is_complete nor next_step_id"
                )
        except AnswerSubmitError as exc:
            if self._is_current(ticket):
                logger.warning("Answer submission failed for step %s: %s", step.step_id, exc)
                session.append("assistant", ERROR_MESSAGES["submit"])
                self._state = ControllerState.AWAITING_ANSWER
            return self.snapshot()
        finally:
            self._inflight.end(ticket)

        if not self._is_current(ticket):
            logger.debug("Discarding late acknowledgement for step %s", step.step_id)
            return self.snapshot()

        if ack.is_complete:
            return await self._complete()

        session.completed_steps += 1
        self._state = ControllerState.AWAITING_STEP
        return await self.load_step()

    # ==================================================================
    # Input buffering
    # ==================================================================

    async def select_option(self, value: str) -> SessionSnapshot:
        """Select an option on a choice step.

        Single choice and boolean steps auto-submit after a short debounce.
        Multi choice toggles ``value`` in the pending selection and waits
        for an explicit ``submit()``.

        Raises:
            ValidationError: ``value`` is not an option of the step.
        """
        self._require("select_option", ControllerState.AWAITING_ANSWER)
        step = self._step
        if not step.is_choice:
            raise InvalidStateError(
                f"select_option is only valid during choice steps, "
                f"but step {step.step_id} is '{step.kind}'"
            )
        if value not in allowed_values(step):
            raise ValidationError(f"unknown option: {value}")

        if not step.auto_submits:
            if value in self._selection:
                self._selection = [v for v in self._selection if v != value]
            else:
                self._selection = [*self._selection, value]
            return self.snapshot()

        self._selection = [value]
        epoch = self._epoch
        await asyncio.sleep(self._timing.auto_submit_delay)

        # Another selection already submitted, or the session was reset
        if (
            epoch != self._epoch
            or self._step is not step
            or self._state != ControllerState.AWAITING_ANSWER
        ):
            logger.debug("Auto-submit of %r on step %s abandoned", value, step.step_id)
            return self.snapshot()
        return await self.submit()

    def set_form_value(self, field_id: str, raw: Any) -> SessionSnapshot:
        """Buffer one composite-form entry; a digit-free entry clears it.

        Raises:
            ValidationError: ``field_id`` is not declared on the step, or
                ``raw`` is a fractional amount.
        """
        self._require("set_form_value", ControllerState.AWAITING_ANSWER)
        step = self._step
        if step.kind != "composite_form":
            raise InvalidStateError(
                f"set_form_value is only valid during composite_form steps, "
                f"but step {step.step_id} is '{step.kind}'"
            )
        if field_id not in {f.id for f in step.fields}:
            raise ValidationError(f"unknown field: {field_id}")

        raw = coerce_amount(raw)
        if raw is None or not any(ch.isdigit() for ch in str(raw)):
            self._form_values.pop(field_id, None)
        else:
            self._form_values[field_id] = normalize_numeric(raw)
        return self.snapshot()

    # ==================================================================
    # Completion & free chat
    # ==================================================================

    async def retry_result(self) -> SessionSnapshot:
        """Re-issue the scoring call after a failed computation."""
        self._require("retry_result", ControllerState.COMPLETING)
        if not self._compute_failed:
            raise InvalidStateError(
                "retry_result is only valid during completing after a failed computation"
            )
        return await self._complete()

    async def send_free_chat(self, text: str) -> SessionSnapshot:
        """Answer a free-text question with a canned response.

        Raises:
            ValidationError: ``text`` is blank.
        """
        self._require("send_free_chat", ControllerState.FREE_CHAT)
        text = text.strip()
        if not text:
            raise ValidationError("message required.")

        self._session.append("participant", self._renderer.participant(text))
        epoch = self._epoch
        await asyncio.sleep(self._timing.reply_delay)
        if epoch != self._epoch:
            return self.snapshot()

        reply = self._responder.respond(text, self._session.result)
        self._session.append("assistant", reply)
        return self.snapshot()

    def reset(self) -> SessionSnapshot:
        """Discard everything and return to a fresh ``idle`` state.

        Any call still in flight belongs to the old epoch; its response
        is ignored when it arrives.
        """
        old_id = self._session.session_id
        self._epoch += 1
        self._inflight.clear()
        self._init_state()
        logger.info("Controller reset (discarded session %s)", old_id)
        return self.snapshot()

    # ==================================================================
    # Internal
    # ==================================================================

    async def _complete(self) -> SessionSnapshot:
        """Compute the result, append the summary, then switch to free chat."""
        ticket = self._inflight.begin("compute", self._epoch)
        self._state = ControllerState.COMPLETING
        self._session.mode = SessionMode.COMPLETING
        self._compute_failed = False
        session_id = self._session.session_id

        def on_caption(caption: str) -> None:
            if self._is_current(ticket):
                self._caption = caption

        try:
            result = await self._router.compute(self._service, session_id, on_caption)
        except ComputeError as exc:
            if self._is_current(ticket):
                logger.warning("Result computation failed for session %s: %s", session_id, exc)
                self._compute_failed = True
                self._session.append("assistant", ERROR_MESSAGES["compute"])
            return self.snapshot()
        finally:
            self._inflight.end(ticket)
            if self._is_current(ticket):
                self._caption = None

        if not self._is_current(ticket):
            logger.debug("Discarding late result for session %s", session_id)
            return self.snapshot()

        self._session.result = result
        self._session.append("assistant", self._router.summary_message(result))

        await asyncio.sleep(self._timing.invitation_delay)
        if not self._is_current(ticket):
            return self.snapshot()

        self._session.append("assistant", self._router.invitation_message())
        self._session.mode = SessionMode.FREE_CHAT
        self._state = ControllerState.FREE_CHAT
        self._step = None
        logger.info("Session %s switched to free chat", session_id)
        return self.snapshot()

    def _pending_input(self, step: StepDescriptor) -> Any:
        if step.kind == "multi_choice":
            return list(self._selection)
        if step.kind in ("single_choice", "boolean"):
            return self._selection[0] if self._selection else None
        if step.kind == "composite_form":
            return dict(self._form_values)
        return None

    @staticmethod
    def _echo(step: StepDescriptor, answer: AnswerValue) -> str:
        """Human-readable participant text for an accepted answer."""
        if step.kind == "numeric":
            return format_won(answer)
        if step.kind == "composite_form":
            return FORM_SUBMITTED_TEXT
        if step.kind == "multi_choice":
            return MULTI_CHOICE_SEPARATOR.join(step.option_label(v) for v in answer)
        if step.kind == "boolean" and not step.options:
            return dict(DEFAULT_BOOLEAN_OPTIONS).get(answer, answer)
        return step.option_label(answer)

    def _is_current(self, ticket: _Ticket) -> bool:
        return ticket.epoch == self._epoch

    def _require(self, operation: str, *states: ControllerState) -> None:
        if self._state not in states:
            allowed = ", ".join(s.value for s in states)
            raise InvalidStateError(
                f"{operation} is only valid during {allowed}, "
                f"but controller is in '{self._state.value}'"
            )
