"""In-memory conversation store.

Maps a conversation ID to its recent messages so follow-up questions have
context. History is capped (oldest messages dropped first) and lives only
in process memory; a restart forgets every conversation.
"""

from __future__ import annotations

import secrets
import string
import time

from langchain_core.messages import BaseMessage

from ehr_assistant.config import CHAT_HISTORY_LIMIT

_BASE36 = string.digits + string.ascii_lowercase


def new_conversation_id() -> str:
    """Mint an ID like ``conv_1718000000000_k3j9x2a``."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(7))
    return f"conv_{int(time.time() * 1000)}_{suffix}"


class ConversationStore:
    """Conversation ID -> bounded, ordered message history."""

    def __init__(self, max_messages: int = CHAT_HISTORY_LIMIT) -> None:
        self.max_messages = max_messages
        self._conversations: dict[str, list[BaseMessage]] = {}

    def get(self, conversation_id: str) -> list[BaseMessage]:
        """Return a copy of the history (empty for unknown IDs)."""
        return list(self._conversations.get(conversation_id, []))

    def append_exchange(
        self,
        conversation_id: str,
        human: BaseMessage,
        assistant: BaseMessage,
    ) -> list[BaseMessage]:
        """Append one human/assistant pair and trim to the cap.

        Builds a new list and swaps it in, so a reader never sees a
        half-updated history.
        """
        history = [*self._conversations.get(conversation_id, []), human, assistant]
        trimmed = history[-self.max_messages :]
        self._conversations[conversation_id] = trimmed
        return list(trimmed)

    def clear(self, conversation_id: str) -> bool:
        """Forget a conversation. Returns False if it didn't exist."""
        return self._conversations.pop(conversation_id, None) is not None

    def __contains__(self, conversation_id: object) -> bool:
        return conversation_id in self._conversations

    def __len__(self) -> int:
        return len(self._conversations)
