"""Chat orchestration — one entry point per chat request.

For each message the service:
1. Applies the per-user rate limit
2. Resolves (or mints) the conversation ID and loads its history
3. Checks the user's AI Chat permission
4. Adds date/time/user context for the model (never shown to the user)
5. Runs the agent with the caller's token bound as the request credential
6. Stores the raw message and the answer, trimmed to the history cap
7. Turns any failure into a user-safe message
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime, timezone

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage

from ehr_assistant.agent import AgentResult, run_agent
from ehr_assistant.credentials import run_with_credential
from ehr_assistant.errors import ChatError, RateLimitExceeded, to_user_message
from ehr_assistant.permissions import (
    PermissionLookup,
    UserContext,
    check_chat_permission,
    lookup_module_access,
)
from ehr_assistant.rate_limit import RateLimiter
from ehr_assistant.schemas import ChatResponse
from ehr_assistant.sessions import ConversationStore, new_conversation_id

logger = logging.getLogger(__name__)

AgentRunner = Callable[[str, Sequence[BaseMessage]], Awaitable[AgentResult]]


def add_context(message: str, user: UserContext, now: datetime) -> str:
    """Prefix the message with who is asking and the current date/time."""
    date_str = f"{now:%A}, {now:%B} {now.day}, {now.year}"
    time_str = now.strftime("%I:%M %p")
    return (
        f'[Context: User "{user.email}" ({user.account_type}), '
        f"Current date: {date_str}, Time: {time_str}]\n\n"
        f"User message: {message}"
    )


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class ChatService:
    """Handles AI chat interactions for the HTTP layer."""

    def __init__(
        self,
        store: ConversationStore | None = None,
        rate_limiter: RateLimiter | None = None,
        permission_lookup: PermissionLookup = lookup_module_access,
        agent_runner: AgentRunner = run_agent,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.store = store or ConversationStore()
        self.rate_limiter = rate_limiter or RateLimiter()
        self.permission_lookup = permission_lookup
        self.agent_runner = agent_runner
        self._clock = clock

    async def chat(
        self,
        message: str,
        conversation_id: str | None,
        token: str,
        user: UserContext,
    ) -> ChatResponse:
        """Process one chat message and return the reply envelope."""
        conv_id = conversation_id or new_conversation_id()

        try:
            self.rate_limiter.check(user.user_id)
        except RateLimitExceeded as exc:
            self._log_failure(exc, user, conv_id, message, unexpected=False)
            return self._reply(False, to_user_message(exc), conv_id)

        history = self.store.get(conv_id)

        try:
            await check_chat_permission(user, self.permission_lookup)
            contextual_message = add_context(message, user, self._clock())
            result = await run_with_credential(
                token, self.agent_runner, contextual_message, history
            )
        except ChatError as exc:
            self._log_failure(exc, user, conv_id, message, unexpected=False)
            return self._reply(False, to_user_message(exc), conv_id)
        except Exception as exc:
            self._log_failure(exc, user, conv_id, message, unexpected=True)
            return self._reply(False, to_user_message(exc), conv_id)

        self.store.append_exchange(conv_id, HumanMessage(content=message), AIMessage(content=result.response))
        logger.info(
            "[ChatLog] user=%s conv=%s msg_len=%d response_len=%d tool_calls=%d",
            user.user_id,
            conv_id,
            len(message),
            len(result.response),
            result.tool_calls,
        )
        return self._reply(True, result.response, conv_id)

    def clear_conversation(self, conversation_id: str) -> bool:
        return self.store.clear(conversation_id)

    def get_history(self, conversation_id: str) -> list[BaseMessage]:
        return self.store.get(conversation_id)

    @staticmethod
    def _reply(success: bool, response: str, conversation_id: str) -> ChatResponse:
        return ChatResponse(
            success=success,
            response=response,
            conversation_id=conversation_id,
            timestamp=_timestamp(),
        )

    @staticmethod
    def _log_failure(
        exc: Exception,
        user: UserContext,
        conversation_id: str,
        message: str,
        unexpected: bool,
    ) -> None:
        log = logger.exception if unexpected else logger.warning
        log(
            "[ChatService] %s failed for user=%s conv=%s msg=%r: %s",
            type(exc).__name__,
            user.user_id,
            conversation_id,
            message[:100],
            exc,
        )


chat_service = ChatService()
