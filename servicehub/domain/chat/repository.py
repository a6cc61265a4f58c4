"""Chat repository - Database operations for conversations and messages"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session, joinedload, selectinload

from ...models import ChatMessage, Conversation, User


class ChatRepository:
    """Repository for conversation database operations"""

    @staticmethod
    def get_by_id(db: Session, conversation_id: int) -> Optional[Conversation]:
        return db.query(Conversation).filter(Conversation.id == conversation_id).first()

    @staticmethod
    def get_for_user(db: Session, user_id: int) -> Optional[Conversation]:
        return (
            db.query(Conversation)
            .filter(Conversation.user_id == user_id)
            .order_by(Conversation.id.asc())
            .first()
        )

    @staticmethod
    def create(db: Session, user_id: int) -> Conversation:
        conversation = Conversation(user_id=user_id, status="open", admin_active=False)
        db.add(conversation)
        db.commit()
        db.refresh(conversation)
        return conversation

    @staticmethod
    def list_with_users(db: Session) -> list[Conversation]:
        """Conversations whose user still exists, most recently active first"""
        return (
            db.query(Conversation)
            .join(User, Conversation.user_id == User.id)
            .options(joinedload(Conversation.user), selectinload(Conversation.messages))
            .order_by(Conversation.updated_at.desc(), Conversation.id.desc())
            .all()
        )

    @staticmethod
    def add_message(db: Session, conversation: Conversation, sender: str, text: str) -> ChatMessage:
        message = ChatMessage(conversation_id=conversation.id, sender=sender, text=text)
        db.add(message)
        conversation.updated_at = datetime.utcnow()
        db.commit()
        db.refresh(message)
        return message

    @staticmethod
    def messages(db: Session, conversation_id: int) -> list[ChatMessage]:
        return (
            db.query(ChatMessage)
            .filter(ChatMessage.conversation_id == conversation_id)
            .order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc())
            .all()
        )

    @staticmethod
    def clear_messages(db: Session, conversation_id: int) -> int:
        deleted = (
            db.query(ChatMessage)
            .filter(ChatMessage.conversation_id == conversation_id)
            .delete(synchronize_session=False)
        )
        db.commit()
        return deleted

    @staticmethod
    def delete(db: Session, conversation: Conversation) -> None:
        db.delete(conversation)
        db.commit()
