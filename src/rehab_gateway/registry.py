"""ChatRegistry — in-memory map of chat id → controller.

Each chat owns exactly one ``SurveySessionController``.  Nothing is
persisted: a gateway restart drops every chat.  Chats that have not been
touched for ``ttl_seconds`` are pruned lazily on the next registry access.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from typing import Callable

from rehab_survey.controller import SurveySessionController

logger = logging.getLogger(__name__)


@dataclass
class _ChatEntry:
    controller: SurveySessionController
    touched: float


class ChatRegistry:
    """Creates, looks up, and expires chat controllers.

    Args:
        factory: builds a fresh controller for a new chat
        ttl_seconds: idle lifetime of a chat; 0 keeps chats forever
        clock: monotonic time source (tests inject a fake one)
    """

    def __init__(
        self,
        factory: Callable[[], SurveySessionController],
        ttl_seconds: int = 0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._factory = factory
        self._ttl = ttl_seconds
        self._clock = clock
        self._chats: dict[str, _ChatEntry] = {}

    def __len__(self) -> int:
        return len(self._chats)

    def create(self) -> tuple[str, SurveySessionController]:
        """Register a new chat and return its id and controller."""
        self.prune()
        chat_id = uuid.uuid4().hex
        controller = self._factory()
        self._chats[chat_id] = _ChatEntry(controller, self._clock())
        logger.info("Chat %s created (%d open)", chat_id, len(self._chats))
        return chat_id, controller

    def get(self, chat_id: str) -> SurveySessionController:
        """Return the chat's controller and refresh its idle timer.

        Raises:
            ValueError: if the chat does not exist or has expired.
        """
        self.prune()
        entry = self._chats.get(chat_id)
        if entry is None:
            raise ValueError(f"Chat not found: chat_id={chat_id}")
        entry.touched = self._clock()
        return entry.controller

    def remove(self, chat_id: str) -> None:
        """Discard a chat; its controller is reset so late responses are dropped."""
        entry = self._chats.pop(chat_id, None)
        if entry is None:
            raise ValueError(f"Chat not found: chat_id={chat_id}")
        entry.controller.reset()
        logger.info("Chat %s removed", chat_id)

    def prune(self) -> int:
        """Drop chats idle for longer than the TTL; return how many were dropped."""
        if self._ttl <= 0:
            return 0
        cutoff = self._clock() - self._ttl
        expired = [cid for cid, e in self._chats.items() if e.touched < cutoff]
        for chat_id in expired:
            self._chats.pop(chat_id).controller.reset()
        if expired:
            logger.info("Pruned %d idle chats", len(expired))
        return len(expired)
