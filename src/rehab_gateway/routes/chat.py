"""Chat endpoints — one interview controller per chat.

Every endpoint returns the controller's ``SessionSnapshot`` after the
operation, so the frontend can re-render from a single payload.  Service
failures do not raise here: the controller reports them as one assistant
message in the transcript and the snapshot shows the state to retry from.
"""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from rehab_survey.controller import SurveySessionController
from rehab_survey.models.session import SessionSnapshot

from rehab_gateway.dependencies import get_controller, get_registry
from rehab_gateway.registry import ChatRegistry

router = APIRouter(tags=["chats"])


# ------------------------------------------------------------------
# Request / response models
# ------------------------------------------------------------------

class ChatCreated(BaseModel):
    """Response for POST /chats."""
    chat_id: str
    snapshot: SessionSnapshot


class AnswerRequest(BaseModel):
    """Body for POST /chats/{chat_id}/answer.

    ``answer`` is omitted to submit the pending selection or form values.
    """
    answer: Any = None


class SelectRequest(BaseModel):
    """Body for POST /chats/{chat_id}/select."""
    value: str


class FormValueRequest(BaseModel):
    """Body for PUT /chats/{chat_id}/form/{field_id}; empty clears the entry."""
    value: str | int | float | None = None


class MessageRequest(BaseModel):
    """Body for POST /chats/{chat_id}/messages."""
    text: str


# ------------------------------------------------------------------
# Lifecycle
# ------------------------------------------------------------------

@router.post("/chats", status_code=201)
async def create_chat(
    registry: ChatRegistry = Depends(get_registry),
) -> ChatCreated:
    """Open a chat and start its interview (creates the remote session)."""
    chat_id, controller = registry.create()
    snapshot = await controller.start()
    return ChatCreated(chat_id=chat_id, snapshot=snapshot)


@router.get("/chats/{chat_id}")
async def get_chat(
    controller: SurveySessionController = Depends(get_controller),
) -> SessionSnapshot:
    """Return the current snapshot without changing anything."""
    return controller.snapshot()


@router.post("/chats/{chat_id}/start")
async def start_chat(
    controller: SurveySessionController = Depends(get_controller),
) -> SessionSnapshot:
    """Start (or restart after a failed creation / reset) the interview."""
    return await controller.start()


@router.post("/chats/{chat_id}/reset")
async def reset_chat(
    controller: SurveySessionController = Depends(get_controller),
) -> SessionSnapshot:
    """Discard the interview and return to a fresh idle state."""
    return controller.reset()


@router.delete("/chats/{chat_id}", status_code=204)
async def delete_chat(
    chat_id: str,
    registry: ChatRegistry = Depends(get_registry),
) -> None:
    """Close a chat.  Returns 204, or 404 if the chat does not exist."""
    registry.remove(chat_id)


# ------------------------------------------------------------------
# Interview
# ------------------------------------------------------------------

@router.post("/chats/{chat_id}/step")
async def load_step(
    controller: SurveySessionController = Depends(get_controller),
) -> SessionSnapshot:
    """Retry loading the current step after a failed load."""
    return await controller.load_step()


@router.post("/chats/{chat_id}/answer")
async def submit_answer(
    body: AnswerRequest,
    controller: SurveySessionController = Depends(get_controller),
) -> SessionSnapshot:
    """Validate and submit an answer.  422 with the reason if rejected."""
    return await controller.submit(body.answer)


@router.post("/chats/{chat_id}/select")
async def select_option(
    body: SelectRequest,
    controller: SurveySessionController = Depends(get_controller),
) -> SessionSnapshot:
    """Select an option; single choice and yes/no auto-submit."""
    return await controller.select_option(body.value)


@router.put("/chats/{chat_id}/form/{field_id}")
async def set_form_value(
    field_id: str,
    body: FormValueRequest,
    controller: SurveySessionController = Depends(get_controller),
) -> SessionSnapshot:
    """Buffer one composite-form entry."""
    return controller.set_form_value(field_id, body.value)


# ------------------------------------------------------------------
# Result & free chat
# ------------------------------------------------------------------

@router.post("/chats/{chat_id}/result")
async def retry_result(
    controller: SurveySessionController = Depends(get_controller),
) -> SessionSnapshot:
    """Retry the result computation after it failed."""
    return await controller.retry_result()


@router.post("/chats/{chat_id}/messages")
async def send_message(
    body: MessageRequest,
    controller: SurveySessionController = Depends(get_controller),
) -> SessionSnapshot:
    """Ask a free-text question once the result is shown."""
    return await controller.send_free_chat(body.text)
