"""
Direct messaging endpoints.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime
from tradejournal.core.database import get_db
from tradejournal.core.auth import get_current_user_dependency
from tradejournal.models.user import User
from tradejournal.services import messaging

router = APIRouter()


class SendMessageRequest(BaseModel):
    receiver_id: int
    content: Optional[str] = None
    message_type: str = Field(default="text", max_length=20)
    file_url: Optional[str] = Field(default=None, max_length=1000)
    file_name: Optional[str] = Field(default=None, max_length=255)


class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sender_id: int
    receiver_id: int
    content: str
    message_type: str
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    is_read: bool
    created_at: Optional[datetime] = None


class ConversationResponse(BaseModel):
    other_user_id: int
    other_user_name: Optional[str] = None
    last_message: MessageResponse
    unread_count: int


@router.get("/unread-count", response_model=dict)
async def get_unread_count(
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    return {"unread_count": messaging.unread_count(db, current_user.id)}


@router.get("/conversations", response_model=List[ConversationResponse])
async def list_conversations(
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    """Conversations, most recent first."""
    return messaging.list_conversations(db, current_user.id)


@router.get("/conversations/{other_id}", response_model=List[MessageResponse])
async def get_conversation(
    other_id: int,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    """Messages with one user, oldest first. Does not mark anything as read."""
    return messaging.conversation_messages(db, current_user.id, other_id)


@router.post("/conversations/{other_id}/read", response_model=dict)
async def mark_conversation_read(
    other_id: int,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    updated = messaging.mark_conversation_read(db, current_user.id, other_id)
    return {"success": True, "updated": updated}


@router.delete("/conversations/{other_id}", response_model=dict)
async def delete_conversation(
    other_id: int,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    """Hide the whole conversation (soft delete)."""
    deleted = messaging.delete_conversation(db, current_user.id, other_id)
    return {"success": True, "deleted": deleted}


@router.post("", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    request: SendMessageRequest,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    try:
        return messaging.send_message(
            db,
            sender_id=current_user.id,
            receiver_id=request.receiver_id,
            content=request.content or "",
            message_type=request.message_type,
            file_url=request.file_url,
            file_name=request.file_name,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except messaging.RecipientNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.delete("/{message_id}", response_model=dict)
async def delete_message(
    message_id: int,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    try:
        messaging.delete_message(db, current_user.id, message_id)
    except messaging.MessageNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except messaging.NotMessageSender as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    return {"success": True}
