"""FastAPI dependency injection — provides the chat registry and per-chat controllers."""

from fastapi import Request

from rehab_survey.controller import SurveySessionController

from rehab_gateway.registry import ChatRegistry


def get_registry(request: Request) -> ChatRegistry:
    """Return the registry singleton from ``app.state``."""
    return request.app.state.registry


def get_controller(chat_id: str, request: Request) -> SurveySessionController:
    """Resolve ``chat_id`` from the path to its controller (404 if unknown)."""
    return get_registry(request).get(chat_id)
