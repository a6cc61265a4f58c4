#!/usr/bin/env python3
"""
Delete chat conversations whose user no longer exists.

Usage: python cleanup_orphaned_conversations.py [--dry-run]
"""
import logging
import sys

from sqlalchemy.orm import Session

from servicehub.database import SessionLocal
from servicehub.models import Conversation, User

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


def find_orphaned_conversations(db: Session) -> list[Conversation]:
    existing_users = db.query(User.id)
    return (
        db.query(Conversation)
        .filter((Conversation.user_id.is_(None)) | (~Conversation.user_id.in_(existing_users)))
        .order_by(Conversation.id)
        .all()
    )


def cleanup_orphaned_conversations(db: Session, dry_run: bool = False) -> int:
    """Remove orphaned conversations with their messages; returns how many were found"""
    orphans = find_orphaned_conversations(db)
    if not orphans:
        logger.info("✅ No orphaned conversations found")
        return 0

    for conversation in orphans:
        logger.info(
            f"{'🔍 Would delete' if dry_run else '🗑️ Deleting'} conversation {conversation.id} "
            f"(user {conversation.user_id}, {len(conversation.messages)} messages)"
        )

    if dry_run:
        logger.info(f"Dry run: {len(orphans)} orphaned conversation(s) left in place")
        return len(orphans)

    for conversation in orphans:
        db.delete(conversation)
    db.commit()
    logger.info(f"✅ Deleted {len(orphans)} orphaned conversation(s)")
    return len(orphans)


if __name__ == "__main__":
    db = SessionLocal()
    try:
        cleanup_orphaned_conversations(db, dry_run="--dry-run" in sys.argv[1:])
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Cleanup failed: {e}")
        sys.exit(1)
    finally:
        db.close()
