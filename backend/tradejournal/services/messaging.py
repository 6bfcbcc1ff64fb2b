"""
Direct messaging between users.
"""
from datetime import datetime, timezone
from typing import List, Optional
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session
from tradejournal.models.message import Message
from tradejournal.models.user import User
import logging

logger = logging.getLogger(__name__)


class SelfMessageError(ValueError):
    """Sender and receiver are the same user."""


class RecipientNotFound(LookupError):
    pass


class MessageNotFound(LookupError):
    pass


class NotMessageSender(PermissionError):
    pass


def _between(user_id: int, other_id: int):
    return or_(
        and_(Message.sender_id == user_id, Message.receiver_id == other_id),
        and_(Message.sender_id == other_id, Message.receiver_id == user_id),
    )


def unread_count(db: Session, user_id: int) -> int:
    return db.query(Message).filter(
        Message.receiver_id == user_id,
        Message.is_read.is_(False),
        Message.deleted_at.is_(None),
    ).count()


def list_conversations(db: Session, user_id: int) -> List[dict]:
    """
    One entry per counterpart with the latest message and its unread count,
    most recent conversation first. Single pass over the user's messages.
    """
    messages = (
        db.query(Message)
        .filter(
            or_(Message.sender_id == user_id, Message.receiver_id == user_id),
            Message.deleted_at.is_(None),
        )
        .order_by(Message.created_at.desc(), Message.id.desc())
        .all()
    )

    conversations: dict[int, dict] = {}
    for message in messages:
        other_id = message.receiver_id if message.sender_id == user_id else message.sender_id
        entry = conversations.get(other_id)
        if entry is None:
            # Newest first, so the first message seen is the latest
            entry = {"other_user_id": other_id, "last_message": message, "unread_count": 0}
            conversations[other_id] = entry
        if message.receiver_id == user_id and not message.is_read:
            entry["unread_count"] += 1

    if conversations:
        users = db.query(User).filter(User.id.in_(list(conversations))).all()
        names = {u.id: u.display_name for u in users}
        for other_id, entry in conversations.items():
            entry["other_user_name"] = names.get(other_id)

    return list(conversations.values())


def conversation_messages(db: Session, user_id: int, other_id: int) -> List[Message]:
    """Messages with one counterpart, oldest first. Read-only."""
    return (
        db.query(Message)
        .filter(_between(user_id, other_id), Message.deleted_at.is_(None))
        .order_by(Message.created_at.asc(), Message.id.asc())
        .all()
    )


def mark_conversation_read(db: Session, user_id: int, other_id: int) -> int:
    """Mark messages received from `other_id` as read. Returns how many changed."""
    updated = db.query(Message).filter(
        Message.sender_id == other_id,
        Message.receiver_id == user_id,
        Message.is_read.is_(False),
        Message.deleted_at.is_(None),
    ).update({Message.is_read: True}, synchronize_session=False)
    db.commit()
    return updated


def send_message(
    db: Session,
    sender_id: int,
    receiver_id: int,
    content: str,
    message_type: str = "text",
    file_url: Optional[str] = None,
    file_name: Optional[str] = None,
) -> Message:
    if sender_id == receiver_id:
        raise SelfMessageError("Cannot send a message to yourself")
    if not content or not content.strip():
        raise ValueError("Message content is required")

    receiver = db.query(User).filter(User.id == receiver_id, User.is_active.is_(True)).first()
    if not receiver:
        raise RecipientNotFound("Receiver not found")

    message = Message(
        sender_id=sender_id,
        receiver_id=receiver_id,
        content=content,
        message_type=message_type or "text",
        file_url=file_url,
        file_name=file_name,
    )
    db.add(message)
    db.commit()
    db.refresh(message)
    logger.info(f"message_sent: id={message.id}, sender_id={sender_id}, receiver_id={receiver_id}")
    return message


def delete_message(db: Session, user_id: int, message_id: int) -> None:
    """Hard delete of a single message; only its sender may do this."""
    message = db.query(Message).filter(Message.id == message_id, Message.deleted_at.is_(None)).first()
    if not message or user_id not in (message.sender_id, message.receiver_id):
        raise MessageNotFound("Message not found")
    if message.sender_id != user_id:
        raise NotMessageSender("Only the sender can delete this message")
    db.delete(message)
    db.commit()


def delete_conversation(db: Session, user_id: int, other_id: int) -> int:
    """Soft-delete every message between the two users. Returns how many were hidden."""
    updated = db.query(Message).filter(
        _between(user_id, other_id),
        Message.deleted_at.is_(None),
    ).update({Message.deleted_at: datetime.now(timezone.utc)}, synchronize_session=False)
    db.commit()
    logger.info(f"conversation_deleted: user_id={user_id}, other_id={other_id}, messages={updated}")
    return updated
