"""Controller configuration — reads settings from environment variables.

All delays are in seconds.  The defaults reproduce the pacing of the chat
widget; tests and batch runs set them to zero.
"""

import os
from dataclasses import dataclass


def _env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class SurveyTiming:
    """Immutable controller pacing and validation settings."""

    # Pause between selecting a single-choice option and auto-submitting it
    auto_submit_delay: float = 0.3

    # Interval between progress captions while the result is computed
    caption_interval: float = 1.2

    # Pause between the result summary and the free-chat invitation
    invitation_delay: float = 0.8

    # Pause before a free-chat reply is appended
    reply_delay: float = 0.8

    # Reject composite forms whose visible required fields are empty
    enforce_required_fields: bool = False


# Zero-delay timing for tests and non-interactive runs.
IMMEDIATE = SurveyTiming(
    auto_submit_delay=0.0,
    caption_interval=0.0,
    invitation_delay=0.0,
    reply_delay=0.0,
)


def load_timing() -> SurveyTiming:
    """Build timing from ``SURVEY_*`` environment variables."""
    return SurveyTiming(
        auto_submit_delay=float(os.getenv("SURVEY_AUTO_SUBMIT_DELAY", "0.3")),
        caption_interval=float(os.getenv("SURVEY_CAPTION_INTERVAL", "1.2")),
        invitation_delay=float(os.getenv("SURVEY_INVITATION_DELAY", "0.8")),
        reply_delay=float(os.getenv("SURVEY_REPLY_DELAY", "0.8")),
        enforce_required_fields=_env_flag("ENFORCE_REQUIRED_FORM_FIELDS"),
    )
