"""
Admin endpoints.
"""
from fastapi import APIRouter, Depends, HTTPException, status
import logging
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field
from typing import Optional, List
from tradejournal.core.config import get_settings
from tradejournal.core.database import get_db
from tradejournal.core.auth import get_current_admin_user_dependency
from tradejournal.core.clients import get_email_client
from tradejournal.models.audit_log import AuditLog
from tradejournal.models.user import User
from tradejournal.services.announcements import announcement_recipients, send_announcement
from tradejournal.services.email import EmailClient

logger = logging.getLogger(__name__)

router = APIRouter()


class AnnouncementRequest(BaseModel):
    subject: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1)
    user_ids: Optional[List[int]] = None


@router.post("/announcements", response_model=dict)
async def send_project_announcement(
    request: AnnouncementRequest,
    current_user: User = Depends(get_current_admin_user_dependency),
    email_client: EmailClient = Depends(get_email_client),
    settings=Depends(get_settings),
    db: Session = Depends(get_db)
):
    """
    Email an announcement to the selected users, or to everyone who opted in
    to project updates.
    """
    recipients = announcement_recipients(db, request.user_ids)
    if not recipients:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No recipients found"
        )

    result = await send_announcement(
        email_client,
        recipients,
        request.subject,
        request.message,
        batch_size=settings.announcement_batch_size,
    )

    db.add(AuditLog(
        action="announcement_sent",
        entity_type="announcement",
        user_id=current_user.id,
        details={
            "subject": request.subject,
            "recipients": result.recipients,
            "sent": result.sent_count,
            "failed": result.failed_count,
        },
    ))
    db.commit()

    logger.info(
        f"announcement_done: admin_id={current_user.id}, recipients={result.recipients}, "
        f"sent={result.sent_count}, failed={result.failed_count}"
    )
    return result.to_dict()
