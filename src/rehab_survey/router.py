"""ResultRouter — fetches the computed result and formats it for the transcript.

The router owns the only recurring background activity of a session: a
caption task that cycles ``PROGRESS_CAPTIONS`` while the scoring call is
pending.  The task is cancelled in a ``finally`` block as soon as the
call resolves, whether it succeeded or failed, so it never outlives the
``completing`` state that started it.

The controller decides what to do with the outcome (append the summary,
flip to free chat, or report the failure); the router never touches the
session.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Callable

from rehab_survey.constants import PROGRESS_CAPTIONS
from rehab_survey.interfaces import StepService
from rehab_survey.messages import MessageRenderer
from rehab_survey.models.result import SurveyResult

logger = logging.getLogger(__name__)

CaptionCallback = Callable[[str], None]


class ResultRouter:
    """Runs the scoring call and renders its outcome.

    Args:
        renderer: message renderer for the summary and invitation
        caption_interval: seconds between progress captions
        captions: override of the caption sequence
    """

    def __init__(
        self,
        renderer: MessageRenderer | None = None,
        *,
        caption_interval: float = 1.2,
        captions: list[str] | None = None,
    ) -> None:
        self._renderer = renderer or MessageRenderer()
        self._interval = caption_interval
        self._captions = list(PROGRESS_CAPTIONS if captions is None else captions)

    async def compute(
        self,
        service: StepService,
        session_id: str,
        on_caption: CaptionCallback | None = None,
    ) -> SurveyResult:
        """Call ``compute_result`` once, cycling captions while it is pending.

        Raises:
            ComputeError: propagated from the service.
        """
        ticker = None
        if on_caption is not None and self._captions:
            ticker = asyncio.create_task(self._cycle_captions(on_caption))
        try:
            result = await service.compute_result(session_id)
        finally:
            if ticker is not None:
                ticker.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await ticker
        logger.info(
            "Result computed for session %s: repayment_rate=%.1f",
            session_id, result.repayment_rate,
        )
        return result

    def summary_message(self, result: SurveyResult) -> str:
        """The structured summary card appended on success."""
        if result.forgiveness_estimate < 0:
            logger.warning(
                "Negative forgiveness estimate %d (unsecured=%d, total_repayment=%d)",
                result.forgiveness_estimate, result.unsecured_debt, result.total_repayment,
            )
        return self._renderer.result_summary(result)

    def invitation_message(self) -> str:
        """The free-chat invitation appended after the summary."""
        return self._renderer.invitation()

    async def _cycle_captions(self, on_caption: CaptionCallback) -> None:
        """Emit each caption in turn; stays on the last one until cancelled."""
        on_caption(self._captions[0])
        for caption in self._captions[1:]:
            await asyncio.sleep(self._interval)
            on_caption(caption)
