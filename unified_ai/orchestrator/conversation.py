"""
Unified AI - Conversation Manager

In-memory multi-turn conversation history with a token-budgeted context
window for building the next chat request.
"""

import logging
import math
import uuid
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field, model_validator

from ..errors import ClientError, ErrorCode
from ..models import Message

logger = logging.getLogger(__name__)

CHARS_PER_TOKEN = 4
META_TOKEN_OVERHEAD = 10


def _now() -> datetime:
    return datetime.now(UTC)


def estimate_tokens(text: str | None) -> int:
    """Rough token count: one token per four characters, rounded up."""
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def estimate_message_tokens(message: Message) -> int:
    """Tokens for content (at least one), name and a flat charge for meta."""
    tokens = max(1, estimate_tokens(message.content))
    tokens += estimate_tokens(message.name)
    if message.meta:
        tokens += META_TOKEN_OVERHEAD
    return tokens


class Conversation(BaseModel):
    """An ordered message history."""

    id: str = Field(..., min_length=1, description="Conversation identifier")
    messages: list[Message] = Field(default_factory=list, description="Messages, oldest first")
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime | None = Field(default=None, description="Last append time (defaults to created_at)")
    metadata: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def default_updated_at(self) -> "Conversation":
        if self.updated_at is None:
            self.updated_at = self.created_at
        return self

    @property
    def message_count(self) -> int:
        return len(self.messages)

    @property
    def is_empty(self) -> bool:
        return not self.messages

    @property
    def first_message(self) -> Message | None:
        return self.messages[0] if self.messages else None

    @property
    def last_message(self) -> Message | None:
        return self.messages[-1] if self.messages else None

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe dictionary (timestamps as ISO-8601 strings)."""
        return self.model_dump(mode="json", exclude_none=True)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Conversation":
        return cls.model_validate(data)


class ConversationManager:
    """
    Stores conversations by id.

    Example:
        manager = ConversationManager()
        conversation = manager.create()
        manager.add_message(conversation.id, Message(role="user", content="Hi"))
        request = ChatRequest(messages=manager.get_context(conversation.id, max_tokens=2000))
    """

    def __init__(self) -> None:
        self._conversations: dict[str, Conversation] = {}

    def create(self, conversation_id: str | None = None, metadata: dict[str, Any] | None = None) -> Conversation:
        """
        Start a new, empty conversation.

        Raises:
            ClientError: DUPLICATE_CONVERSATION if the id is taken
        """
        conversation_id = conversation_id or self._generate_id()
        if conversation_id in self._conversations:
            raise ClientError(
                f"Conversation with id '{conversation_id}' already exists",
                ErrorCode.DUPLICATE_CONVERSATION,
            )
        conversation = Conversation(id=conversation_id, metadata=metadata or {})
        self._conversations[conversation_id] = conversation
        logger.debug(f"Created conversation {conversation_id}", extra={"conversation_id": conversation_id})
        return conversation

    def get(self, conversation_id: str) -> Conversation | None:
        return self._conversations.get(conversation_id)

    def add_message(self, conversation_id: str, message: Message) -> Conversation:
        """
        Append a message and bump updated_at.

        Raises:
            ClientError: CONVERSATION_NOT_FOUND for an unknown id
        """
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            raise ClientError(
                f"Conversation with id '{conversation_id}' not found",
                ErrorCode.CONVERSATION_NOT_FOUND,
            )
        conversation.messages.append(message)
        conversation.updated_at = _now()
        return conversation

    def get_context(self, conversation_id: str, max_tokens: int | None = None) -> list[Message]:
        """
        Messages to send as context, oldest first.

        With max_tokens, keeps the longest run of most recent messages whose
        estimated size fits; the walk stops at the first message that does
        not. Unknown ids give an empty list.
        """
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            return []
        if max_tokens is None:
            return list(conversation.messages)

        window: list[Message] = []
        used = 0
        for message in reversed(conversation.messages):
            cost = estimate_message_tokens(message)
            if used + cost > max_tokens:
                break
            window.append(message)
            used += cost
        window.reverse()
        return window

    def delete(self, conversation_id: str) -> bool:
        return self._conversations.pop(conversation_id, None) is not None

    def list_all(self) -> list[Conversation]:
        return list(self._conversations.values())

    def has(self, conversation_id: str) -> bool:
        return conversation_id in self._conversations

    def clear(self) -> None:
        self._conversations.clear()

    @property
    def count(self) -> int:
        return len(self._conversations)

    def __len__(self) -> int:
        return len(self._conversations)

    def __contains__(self, conversation_id: object) -> bool:
        return conversation_id in self._conversations

    @staticmethod
    def _generate_id() -> str:
        return f"conv_{uuid.uuid4().hex[:16]}"

    def __repr__(self) -> str:
        return f"ConversationManager(conversations={len(self._conversations)})"
