"""Environment-driven configuration tests."""

from rehab_survey.client import DEFAULT_API_BASE
from rehab_survey.config import IMMEDIATE, SurveyTiming, load_timing

from rehab_gateway.config import load_settings

_ENV = (
    "SURVEY_AUTO_SUBMIT_DELAY", "SURVEY_CAPTION_INTERVAL", "SURVEY_INVITATION_DELAY",
    "SURVEY_REPLY_DELAY", "ENFORCE_REQUIRED_FORM_FIELDS",
    "GATEWAY_HOST", "GATEWAY_PORT", "GATEWAY_CORS_ORIGINS", "GATEWAY_LOG_LEVEL",
    "GATEWAY_SCENARIO", "SURVEY_API_BASE", "SURVEY_API_TIMEOUT", "GATEWAY_CHAT_TTL_SECONDS",
)


def _clear(monkeypatch):
    for name in _ENV:
        monkeypatch.delenv(name, raising=False)


class TestLoadTiming:

    def test_defaults(self, monkeypatch):
        _clear(monkeypatch)
        assert load_timing() == SurveyTiming()

    def test_overrides(self, monkeypatch):
        _clear(monkeypatch)
        monkeypatch.setenv("SURVEY_AUTO_SUBMIT_DELAY", "0")
        monkeypatch.setenv("SURVEY_REPLY_DELAY", "0.1")
        monkeypatch.setenv("ENFORCE_REQUIRED_FORM_FIELDS", "true")

        timing = load_timing()
        assert timing.auto_submit_delay == 0.0
        assert timing.reply_delay == 0.1
        assert timing.caption_interval == 1.2
        assert timing.enforce_required_fields is True

    def test_immediate_has_no_delays(self):
        assert IMMEDIATE.auto_submit_delay == IMMEDIATE.caption_interval == 0.0
        assert IMMEDIATE.enforce_required_fields is False


class TestLoadSettings:

    def test_defaults(self, monkeypatch):
        _clear(monkeypatch)
        settings = load_settings()
        assert settings.port == 8090
        assert settings.cors_origins == ["*"]
        assert settings.scenario is None
        assert settings.api_base == DEFAULT_API_BASE
        assert settings.chat_ttl_seconds == 3600

    def test_overrides(self, monkeypatch):
        _clear(monkeypatch)
        monkeypatch.setenv("GATEWAY_PORT", "9000")
        monkeypatch.setenv("GATEWAY_CORS_ORIGINS", "http://a.test, http://b.test,")
        monkeypatch.setenv("GATEWAY_LOG_LEVEL", "debug")
        monkeypatch.setenv("GATEWAY_SCENARIO", "sample")
        monkeypatch.setenv("GATEWAY_CHAT_TTL_SECONDS", "0")

        settings = load_settings()
        assert settings.port == 9000
        assert settings.cors_origins == ["http://a.test", "http://b.test"]
        assert settings.log_level == "DEBUG"
        assert settings.scenario == "sample"
        assert settings.chat_ttl_seconds == 0
