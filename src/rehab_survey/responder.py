"""FreeChatResponder — canned answers for post-interview questions.

A decision table, not free-form generation.  The lowercased query is
checked against ``constants.CHAT_KEYWORD_TABLE`` in order; the first row
with a keyword contained in the query selects the response template.

When nothing matches, the stored result (if any) biases the reply:

  rate <  20        → "low" band: rehabilitation very likely
  20 <= rate < 50   → "mid" band: reasonable rate
  rate >= 50        → "high" band: adjustable, consultation advised

Without a result the reply is a referral to a human consultation.

Identical ``(query, result)`` inputs always produce the identical text.
Appending to the transcript is the caller's job.
"""

from __future__ import annotations

from rehab_survey.constants import (
    CHAT_KEYWORD_TABLE,
    HIGH_RATE_THRESHOLD,
    LOW_RATE_THRESHOLD,
)
from rehab_survey.messages import MessageRenderer
from rehab_survey.models.result import SurveyResult


def rate_band(rate: float) -> str:
    """Classify a repayment rate into ``low`` / ``mid`` / ``high``."""
    if rate < LOW_RATE_THRESHOLD:
        return "low"
    if rate < HIGH_RATE_THRESHOLD:
        return "mid"
    return "high"


def match_topic(query: str) -> str | None:
    """Name of the first keyword row matching ``query``, or None."""
    text = query.lower()
    for name, keywords in CHAT_KEYWORD_TABLE:
        if any(k in text for k in keywords):
            return name
    return None


class FreeChatResponder:
    """Maps free-text queries to canned responses."""

    def __init__(self, renderer: MessageRenderer | None = None) -> None:
        self._renderer = renderer or MessageRenderer()

    def respond(self, query: str, result: SurveyResult | None = None) -> str:
        topic = match_topic(query)
        if topic is not None:
            return self._renderer.chat_response(topic)

        if result is not None:
            rate = result.repayment_rate
            return self._renderer.chat_response(
                "rate_guidance", rate=rate, band=rate_band(rate),
            )

        return self._renderer.chat_response("referral")
