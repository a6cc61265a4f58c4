"""Chat domain schemas - support conversations"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...models import ChatMessage, Conversation
from ...shared.schemas import ApiModel


class SendMessageRequest(BaseModel):
    conversationId: int
    text: str = Field(max_length=4000)

    @field_validator("text")
    @classmethod
    def validate_text(cls, v):
        if not v or not v.strip():
            raise ValueError("Message text is required")
        return v.strip()


class ConversationAction(BaseModel):
    conversationId: int


class MessageOut(BaseModel):
    sender: str
    text: str
    createdAt: Optional[datetime] = None

    @classmethod
    def from_message(cls, message: ChatMessage) -> "MessageOut":
        return cls(sender=message.sender, text=message.text, createdAt=message.created_at)


class ConversationDetail(BaseModel):
    conversationId: int
    status: str
    adminActive: bool
    messages: list[MessageOut]


class ConversationUser(ApiModel):
    id: int = Field(alias="_id")
    name: str
    email: str


class ConversationSummary(ApiModel):
    id: int = Field(alias="_id")
    userId: ConversationUser
    status: str
    adminActive: bool
    lastMessage: Optional[MessageOut] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_conversation(cls, conversation: Conversation) -> "ConversationSummary":
        user = conversation.user
        last = conversation.messages[-1] if conversation.messages else None
        return cls(
            id=conversation.id,
            userId=ConversationUser(id=user.id, name=user.name, email=user.email),
            status=conversation.status,
            adminActive=conversation.admin_active,
            lastMessage=MessageOut.from_message(last) if last else None,
            createdAt=conversation.created_at,
            updatedAt=conversation.updated_at,
        )
