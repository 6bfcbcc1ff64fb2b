"""
Admin announcements, sent in fixed-size batches.
"""
import asyncio
from dataclasses import dataclass, field
from typing import List, Optional, Sequence
from sqlalchemy.orm import Session
from tradejournal.models.user import User
from tradejournal.models.user_settings import UserSettings
from tradejournal.services.email import EmailClient, render_announcement_email
import logging

logger = logging.getLogger(__name__)


@dataclass
class AnnouncementResult:
    recipients: int = 0
    sent_count: int = 0
    failed_count: int = 0
    batches: List[int] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "success": True,
            "recipients": self.recipients,
            "sentCount": self.sent_count,
            "failedCount": self.failed_count,
            "batches": self.batches,
            "errors": self.errors,
        }


def announcement_recipients(db: Session, user_ids: Optional[Sequence[int]] = None) -> List[User]:
    """Selected users, or everyone who opted in to project updates."""
    query = db.query(User).filter(User.is_active.is_(True))
    if user_ids:
        query = query.filter(User.id.in_(list(user_ids)))
    else:
        query = query.join(UserSettings, UserSettings.user_id == User.id).filter(
            UserSettings.email_project_updates.is_(True)
        )
    return query.order_by(User.id).all()


def chunk(items: Sequence, size: int) -> List[Sequence]:
    if size < 1:
        raise ValueError("Batch size must be at least 1")
    return [items[i:i + size] for i in range(0, len(items), size)]


async def send_announcement(
    email_client: EmailClient,
    recipients: Sequence[User],
    subject: str,
    message: str,
    batch_size: int = 50,
) -> AnnouncementResult:
    """
    Email every recipient. Sends within a batch run concurrently; the next
    batch starts only when the previous one has finished.
    """
    html_body, text_body = render_announcement_email(subject, message)
    result = AnnouncementResult(recipients=len(recipients))

    for batch_number, batch in enumerate(chunk(list(recipients), batch_size), 1):
        outcomes = await asyncio.gather(
            *(asyncio.to_thread(email_client.send, user.email, subject, html_body, text_body) for user in batch),
            return_exceptions=True,
        )
        for user, outcome in zip(batch, outcomes):
            if outcome is True:
                result.sent_count += 1
                continue
            result.failed_count += 1
            reason = str(outcome) if isinstance(outcome, BaseException) else "send failed"
            result.errors.append(f"User {user.id}: {reason}")
            logger.warning(f"announcement_send_failed: user_id={user.id}, reason={reason}")
        result.batches.append(len(batch))
        logger.info(f"announcement_batch_done: batch={batch_number}, size={len(batch)}, sent_total={result.sent_count}")

    return result
