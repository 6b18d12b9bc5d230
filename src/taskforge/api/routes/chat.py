"""Free-form chat endpoint for short story summaries."""

from typing import Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from ...auth import SessionContext
from ...errors import ValidationError
from ...generation import CHAT_SYSTEM_PROMPT
from ..deps import get_config, get_model, get_session_context

router = APIRouter()


class ChatRequest(BaseModel):
    prompt: Optional[str] = None


@router.post("/chat")
async def chat(
    request: Request,
    body: ChatRequest,
    context: SessionContext = Depends(get_session_context),
):
    """Send a prompt to the chat model with the architect persona."""
    if not body.prompt or not body.prompt.strip():
        raise ValidationError("Prompt is required")

    config = get_config(request)
    text = await get_model(request).generate(
        body.prompt, system=CHAT_SYSTEM_PROMPT, model=config.chat_model
    )
    return {"text": text}
