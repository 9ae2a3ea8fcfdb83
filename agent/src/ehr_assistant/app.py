"""FastAPI server — the HTTP entry point for the assistant.

Endpoints:

- GET    /health                           — Liveness check
- GET    /api/v1/chat/health               — Configuration probe (no auth)
- POST   /api/v1/chat                      — Send a message, get the answer
- DELETE /api/v1/chat/{conversationId}     — Forget a conversation

Run locally with:
    cd agent && uvicorn ehr_assistant.app:app --reload
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Annotated, Any

from fastapi import Depends, FastAPI

from ehr_assistant import db
from ehr_assistant.auth import AuthenticatedUser, get_current_user
from ehr_assistant.chat_service import ChatService, chat_service
from ehr_assistant.config import ANTHROPIC_API_KEY, EHR_API_BASE_URL, LOG_LEVEL
from ehr_assistant.ehr_client import close_client
from ehr_assistant.prompts import warm_system_prompt
from ehr_assistant.schemas import ChatRequest, ChatResponse, ClearConversationResponse

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    # Build the system prompt (and load the schema) before the first request.
    await warm_system_prompt()
    logger.info("EHR assistant ready (database tools %s)", "on" if db.is_configured() else "off")
    yield
    await close_client()
    await db.close_pool()


app = FastAPI(
    title="EHR AI Assistant",
    description="Ask natural language questions about clinic records",
    version="0.1.0",
    lifespan=lifespan,
)


def get_chat_service() -> ChatService:
    """Dependency hook so tests can swap in their own service."""
    return chat_service


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint. Returns 200 if the server is running."""
    return {"status": "ok"}


@app.get("/api/v1/chat/health")
async def chat_health() -> dict[str, Any]:
    """Report whether the model and data sources are configured."""
    services = {
        "anthropic": "configured" if ANTHROPIC_API_KEY else "missing",
        "ehrApi": "configured" if EHR_API_BASE_URL else "missing",
        "database": "configured" if db.is_configured() else "missing",
    }
    healthy = services["anthropic"] == "configured" and services["ehrApi"] == "configured"
    return {
        "status": "healthy" if healthy else "degraded",
        "services": services,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.post("/api/v1/chat", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    auth: Annotated[AuthenticatedUser, Depends(get_current_user)],
    service: Annotated[ChatService, Depends(get_chat_service)],
) -> ChatResponse:
    """Process a chat message through the AI agent.

    Include conversationId to continue a previous conversation. If omitted,
    a new conversation is started and its ID is returned in the response.
    """
    return await service.chat(
        request.message,
        request.conversation_id,
        token=auth.token,
        user=auth.user,
    )


@app.delete("/api/v1/chat/{conversation_id}", response_model=ClearConversationResponse)
async def clear_conversation(
    conversation_id: str,
    _auth: Annotated[AuthenticatedUser, Depends(get_current_user)],
    service: Annotated[ChatService, Depends(get_chat_service)],
) -> ClearConversationResponse:
    """Clear the stored history of a conversation."""
    cleared = service.clear_conversation(conversation_id)
    return ClearConversationResponse(
        success=cleared,
        message="Conversation cleared" if cleared else "Conversation not found",
    )
