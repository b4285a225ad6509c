"""Gateway configuration — reads settings from environment variables.

All settings have sensible defaults for local development.  In production
the values are typically overridden via env vars or a ``.env`` file.
"""

import os
from dataclasses import dataclass, field

from rehab_survey.client import DEFAULT_API_BASE, DEFAULT_TIMEOUT
from rehab_survey.config import SurveyTiming, load_timing


@dataclass(frozen=True)
class GatewaySettings:
    """Immutable gateway configuration read from environment at startup."""

    # Network
    host: str = "0.0.0.0"
    port: int = 8090

    # CORS: comma-separated origins, or "*" for wide-open dev mode
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    # Logging
    log_level: str = "INFO"

    # Scenario YAML to replay instead of calling the step service.
    # "sample" selects the bundled scenario; None → HTTP step service.
    scenario: str | None = None

    # Remote step service
    api_base: str = DEFAULT_API_BASE
    api_timeout: float = DEFAULT_TIMEOUT

    # Chats untouched for longer than this are discarded (0 = never)
    chat_ttl_seconds: int = 3600

    # Controller pacing
    timing: SurveyTiming = field(default_factory=SurveyTiming)


def load_settings() -> GatewaySettings:
    """Build settings from ``GATEWAY_*`` environment variables."""
    raw_origins = os.getenv("GATEWAY_CORS_ORIGINS", "*")
    origins = [o.strip() for o in raw_origins.split(",") if o.strip()]

    return GatewaySettings(
        host=os.getenv("GATEWAY_HOST", "0.0.0.0"),
        port=int(os.getenv("GATEWAY_PORT", "8090")),
        cors_origins=origins,
        log_level=os.getenv("GATEWAY_LOG_LEVEL", "INFO").upper(),
        scenario=os.getenv("GATEWAY_SCENARIO") or None,
        api_base=os.getenv("SURVEY_API_BASE", DEFAULT_API_BASE),
        api_timeout=float(os.getenv("SURVEY_API_TIMEOUT", str(DEFAULT_TIMEOUT))),
        chat_ttl_seconds=int(os.getenv("GATEWAY_CHAT_TTL_SECONDS", "3600")),
        timing=load_timing(),
    )
