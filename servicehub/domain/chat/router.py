"""Chat router - FastAPI endpoints for support conversations"""

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin
from ...database import get_db
from ...models import User
from ...shared.schemas import MessageResponse
from .schemas import ConversationAction, ConversationDetail, ConversationSummary, MessageOut, SendMessageRequest
from .service import ChatService

router = APIRouter(prefix="/api/chat", tags=["Chat"])


def get_chat_service(db: Session = Depends(get_db)) -> ChatService:
    """Dependency injection for ChatService"""
    return ChatService(db)


# ============================================================================
# CUSTOMER / PROVIDER
# ============================================================================


@router.get("", response_model=ConversationDetail)
async def get_conversation(
    user: User = Depends(get_current_user), service: ChatService = Depends(get_chat_service)
):
    """Get or open the caller's conversation"""
    return service.get_or_create(user)


@router.post("", response_model=MessageOut, status_code=201)
@router.post("/send", response_model=MessageOut, status_code=201)
async def send_message(
    data: SendMessageRequest,
    user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    """Send a message and get the assistant's (or the handoff) reply"""
    reply, ok = await service.post_message(user, data.conversationId, data.text)
    out = MessageOut.from_message(reply)
    if not ok:
        return JSONResponse(status_code=500, content=jsonable_encoder(out))
    return out


@router.delete("/clear/{conversation_id}", response_model=MessageResponse)
async def clear_chat(
    conversation_id: int,
    user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    """Delete every message in a conversation"""
    return await service.clear(user, conversation_id)


# ============================================================================
# ADMIN
# ============================================================================


@router.get("/conversations", response_model=list[ConversationSummary])
@router.get("/admin/all", response_model=list[ConversationSummary])
async def list_conversations(
    _: User = Depends(require_admin), service: ChatService = Depends(get_chat_service)
):
    """All conversations with a living user, most recent first"""
    return service.list_conversations()


@router.get("/admin/{conversation_id}/messages", response_model=list[MessageOut])
async def conversation_messages(
    conversation_id: int,
    _: User = Depends(require_admin),
    service: ChatService = Depends(get_chat_service),
):
    """Full transcript of a conversation"""
    return [MessageOut.from_message(m) for m in service.admin_messages(conversation_id)]


@router.post("/admin/send", response_model=MessageOut, status_code=201)
async def admin_send(
    data: SendMessageRequest,
    admin: User = Depends(require_admin),
    service: ChatService = Depends(get_chat_service),
):
    """Reply to a customer as an admin"""
    return MessageOut.from_message(await service.admin_send(admin, data.conversationId, data.text))


@router.post("/admin/close", response_model=MessageResponse)
async def close_conversation(
    data: ConversationAction,
    _: User = Depends(require_admin),
    service: ChatService = Depends(get_chat_service),
):
    """Close a conversation"""
    return await service.close(data.conversationId)


@router.post("/admin/reopen", response_model=MessageResponse)
async def reopen_conversation(
    data: ConversationAction,
    _: User = Depends(require_admin),
    service: ChatService = Depends(get_chat_service),
):
    """Reopen a closed conversation"""
    return await service.reopen(data.conversationId)


@router.post("/admin/delete", response_model=MessageResponse)
async def delete_conversation(
    data: ConversationAction,
    _: User = Depends(require_admin),
    service: ChatService = Depends(get_chat_service),
):
    """Delete a conversation and its messages"""
    return await service.delete(data.conversationId)


__all__ = ["router"]
