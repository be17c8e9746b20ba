import logging

from fastapi import APIRouter, Depends

from app.dependencies import get_chat_gateway, get_current_user
from app.models.chat import ChatRequest, ChatResponse
from app.services.chat import ChatGateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/api/chat", tags=["chat"])


@router.post("", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    user_id: str = Depends(get_current_user),
    gateway: ChatGateway = Depends(get_chat_gateway),
):
    """Send the conversation to the replica and apply any task command.

    Errors are returned as ``{"error": ...}``; when every upstream path
    fails the body also carries ``tasks`` and ``apiDetails.attempts``.
    """
    logger.info("Chat request from user %s with %d message(s)", user_id, len(request.messages))
    result = await gateway.handle(user_id, request.messages, replica_id=request.replica_id)
    return ChatResponse(reply=result.reply, tasks=result.tasks)
