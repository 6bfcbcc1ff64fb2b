"""
User notification preferences.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from pydantic import BaseModel, ConfigDict
from typing import Optional
from tradejournal.core.database import get_db
from tradejournal.core.auth import get_current_user_dependency
from tradejournal.models.user import User
from tradejournal.models.user_settings import UserSettings

router = APIRouter()


class NotificationSettings(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    weekly_reports: bool = False
    monthly_reports: bool = False
    quarterly_reports: bool = False
    yearly_reports: bool = False
    email_project_updates: bool = False


class UpdateNotificationSettings(BaseModel):
    weekly_reports: Optional[bool] = None
    monthly_reports: Optional[bool] = None
    quarterly_reports: Optional[bool] = None
    yearly_reports: Optional[bool] = None
    email_project_updates: Optional[bool] = None


def _settings_for(db: Session, user: User) -> UserSettings:
    """Users created before settings existed get a default row on first access."""
    user_settings = db.query(UserSettings).filter(UserSettings.user_id == user.id).first()
    if user_settings is None:
        user_settings = UserSettings(user_id=user.id)
        db.add(user_settings)
        db.commit()
        db.refresh(user_settings)
    return user_settings


@router.get("/notifications", response_model=NotificationSettings)
async def get_notification_settings(
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    return _settings_for(db, current_user)


@router.put("/notifications", response_model=NotificationSettings)
async def update_notification_settings(
    request: UpdateNotificationSettings,
    current_user: User = Depends(get_current_user_dependency),
    db: Session = Depends(get_db)
):
    user_settings = _settings_for(db, current_user)
    for field, value in request.model_dump(exclude_none=True).items():
        setattr(user_settings, field, value)
    db.commit()
    db.refresh(user_settings)
    return user_settings
