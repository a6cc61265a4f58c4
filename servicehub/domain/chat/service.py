"""Chat service - customer support conversations with AI replies and admin handoff"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import ChatMessage, Conversation, User
from ...realtime import emit_to_admins, emit_to_user
from ...services import assistant as assistant_service
from .repository import ChatRepository
from .schemas import ConversationSummary, MessageOut

logger = logging.getLogger(__name__)

HANDOFF_PHRASES = ("talk to a human", "speak to an agent")
HANDOFF_REPLY = "Your message has been sent to the admin. They will respond shortly."
AI_UNAVAILABLE_REPLY = "Sorry, the AI service is temporarily unavailable. Please try again later."


def message_payload(message: ChatMessage) -> dict:
    return MessageOut.from_message(message).model_dump(mode="json")


def wants_human(text: str) -> bool:
    lowered = text.lower()
    return any(phrase in lowered for phrase in HANDOFF_PHRASES)


class ChatService:
    """Service layer for support chat"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ChatRepository()

    def get_or_404(self, conversation_id: int) -> Conversation:
        conversation = self.repo.get_by_id(self.db, conversation_id)
        if not conversation:
            raise HTTPException(status_code=404, detail="Conversation not found.")
        return conversation

    def get_or_create(self, user: User) -> dict:
        conversation = self.repo.get_for_user(self.db, user.id)
        if not conversation:
            conversation = self.repo.create(self.db, user.id)
            logger.info(f"💬 Conversation {conversation.id} opened for {user.email}")
        return {
            "conversationId": conversation.id,
            "status": conversation.status,
            "adminActive": conversation.admin_active,
            "messages": [MessageOut.from_message(m) for m in self.repo.messages(self.db, conversation.id)],
        }

    async def _reply(self, conversation: Conversation, text: str) -> ChatMessage:
        message = self.repo.add_message(self.db, conversation, "model", text)
        await emit_to_user(conversation.user_id, "newMessage", message_payload(message))
        return message

    async def post_message(self, user: User, conversation_id: int, text: str) -> tuple[ChatMessage, bool]:
        """
        Store the user's message and answer it.

        Returns:
            (reply, ok) where ok is False when the assistant failed
        """
        conversation = self.repo.get_by_id(self.db, conversation_id)
        if not conversation or conversation.user_id != user.id:
            raise HTTPException(status_code=403, detail="Invalid or unauthorized conversation.")

        history = self.repo.messages(self.db, conversation.id)
        user_message = self.repo.add_message(self.db, conversation, "user", text)
        await emit_to_user(conversation.user_id, "newMessage", message_payload(user_message))
        await emit_to_admins(
            "newUserMessage",
            {"conversationId": conversation.id, "message": message_payload(user_message)},
        )

        if conversation.admin_active or wants_human(text):
            conversation.admin_active = True
            conversation.status = "needs_attention"
            self.db.commit()
            logger.info(f"🙋 Conversation {conversation.id} handed off to admins")
            reply = await self._reply(conversation, HANDOFF_REPLY)
            await emit_to_admins(
                "chatNeedsAttention",
                {
                    "conversationId": conversation.id,
                    "status": conversation.status,
                    "adminActive": conversation.admin_active,
                    "userId": conversation.user_id,
                },
            )
            return reply, True

        try:
            answer = await assistant_service.assistant.reply(self.db, history, text)
        except assistant_service.AssistantUnavailableError as e:
            logger.error(f"❌ Assistant failed for conversation {conversation.id}: {e}")
            return await self._reply(conversation, AI_UNAVAILABLE_REPLY), False

        return await self._reply(conversation, answer), True

    # ------------------------------------------------------------------
    # Admin side
    # ------------------------------------------------------------------

    def list_conversations(self) -> list[ConversationSummary]:
        return [ConversationSummary.from_conversation(c) for c in self.repo.list_with_users(self.db)]

    def admin_messages(self, conversation_id: int) -> list[ChatMessage]:
        self.get_or_404(conversation_id)
        return self.repo.messages(self.db, conversation_id)

    async def admin_send(self, admin: User, conversation_id: int, text: str) -> ChatMessage:
        conversation = self.get_or_404(conversation_id)
        conversation.admin_active = True
        conversation.status = "open"
        message = self.repo.add_message(self.db, conversation, "model", f"Admin: {text}")
        logger.info(f"💬 {admin.email} replied in conversation {conversation.id}")

        payload = message_payload(message)
        await emit_to_user(conversation.user_id, "newMessage", payload)
        await emit_to_admins("adminMessageSent", {"conversationId": conversation.id, "message": payload})
        return message

    async def _notify_both(self, conversation: Conversation, event: str) -> None:
        payload = {"conversationId": conversation.id}
        await emit_to_user(conversation.user_id, event, payload)
        await emit_to_admins(event, payload)

    async def close(self, conversation_id: int) -> dict:
        conversation = self.get_or_404(conversation_id)
        conversation.status = "closed"
        conversation.admin_active = False
        self.db.commit()
        await self._notify_both(conversation, "conversationClosed")
        return {"message": "Conversation closed successfully."}

    async def reopen(self, conversation_id: int) -> dict:
        conversation = self.get_or_404(conversation_id)
        conversation.status = "open"
        # The admin who reopened it takes the thread
        conversation.admin_active = True
        self.db.commit()
        await self._notify_both(conversation, "conversationReopened")
        return {"message": "Conversation reopened successfully."}

    async def delete(self, conversation_id: int) -> dict:
        conversation = self.get_or_404(conversation_id)
        await self._notify_both(conversation, "conversationDeleted")
        self.repo.delete(self.db, conversation)
        logger.info(f"🗑️ Conversation {conversation_id} deleted")
        return {"message": "Conversation deleted successfully."}

    async def clear(self, user: User, conversation_id: int) -> dict:
        conversation = self.get_or_404(conversation_id)
        if conversation.user_id != user.id and user.role != "admin":
            raise HTTPException(status_code=403, detail="Not authorized to clear this conversation.")
        deleted = self.repo.clear_messages(self.db, conversation.id)
        logger.info(f"🧹 Cleared {deleted} messages from conversation {conversation.id}")
        await self._notify_both(conversation, "chatCleared")
        return {"message": "Chat history cleared successfully."}
