"""Request and response models for the chat API.

Field names are snake_case in Python and camelCase on the wire
(``conversationId``), matching the rest of the EHR API.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChatRequest(_CamelModel):
    """What the client sends to POST /api/v1/chat."""

    message: str = Field(min_length=1, max_length=5000)
    conversation_id: str | None = None  # Continue an existing conversation


class ChatResponse(_CamelModel):
    """What POST /api/v1/chat sends back.

    ``success`` is False for rate limiting and handled failures; the
    ``response`` text is then a user-safe explanation.
    """

    success: bool
    response: str
    conversation_id: str
    timestamp: str


class ClearConversationResponse(_CamelModel):
    success: bool
    message: str
