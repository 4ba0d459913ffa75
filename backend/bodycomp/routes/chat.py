"""AI chat proxy endpoint."""

import logging
from typing import Literal

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from bodycomp.core.models import SessionClaims
from bodycomp.routes.deps import current_claims

logger = logging.getLogger("bodycomp.chat")

router = APIRouter(tags=["Chat"])


class ChatTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str = Field(..., min_length=1)


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=4000)
    history: list[ChatTurn] = Field(default_factory=list, max_length=50)


class ChatResponse(BaseModel):
    reply: str


@router.post("/chat", response_model=ChatResponse)
async def chat(
    request: Request,
    body: ChatRequest,
    claims: SessionClaims = Depends(current_claims),
):
    """Forward a message to the AI assistant and return its reply."""
    client = request.app.state.chat_client
    reply = await client.complete(body.message, [t.model_dump() for t in body.history])
    logger.info("Chat reply sent to user %d", claims.user_id)
    return ChatResponse(reply=reply)
