"""
Authentication utilities and dependencies.
"""
from fastapi import Depends, HTTPException, status, Cookie, Header
from sqlalchemy.orm import Session
from typing import Optional
from tradejournal.core.database import get_db
from tradejournal.core.config import SESSION_SECRET, SESSION_COOKIE_NAME, SESSION_MAX_AGE_SECONDS, get_settings
from tradejournal.models.user import User
import hashlib
import hmac
import json
import logging
from datetime import datetime, timedelta, timezone

logger = logging.getLogger(__name__)

# Verified-token cache, per process
_sessions: dict[str, dict] = {}
# Logged-out tokens, kept until they would have expired anyway
_revoked: dict[str, datetime] = {}

__all__ = [
    'create_session',
    'verify_session',
    'delete_session',
    'get_current_user_dependency',
    'get_current_admin_user_dependency',
    'require_cron_secret',
]


def _sign(payload: str) -> str:
    secret = SESSION_SECRET.encode() if SESSION_SECRET else b'default-secret-change-in-prod'
    return hmac.new(secret, payload.encode(), hashlib.sha256).hexdigest()


def _expires_at(session_data: dict) -> datetime:
    created_at = datetime.fromisoformat(session_data['created_at'])
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return created_at + timedelta(seconds=SESSION_MAX_AGE_SECONDS)


def _prune_expired(now: datetime) -> None:
    for token in [t for t, data in _sessions.items() if _expires_at(data) <= now]:
        del _sessions[token]
    for token in [t for t, expires_at in _revoked.items() if expires_at <= now]:
        del _revoked[token]


def create_session(user_id: int, email: str, role: str = 'user') -> str:
    """Create a signed session token."""
    _prune_expired(datetime.now(timezone.utc))
    session_data = {
        'user_id': user_id,
        'email': email,
        'role': role,
        'created_at': datetime.now(timezone.utc).isoformat(),
    }

    session_json = json.dumps(session_data, sort_keys=True)
    session_token = f"{session_json}.{_sign(session_json)}"
    _sessions[session_token] = session_data

    return session_token


def verify_session(session_token: str) -> Optional[dict]:
    """Verify a session token and return its payload, or None."""
    if not session_token or session_token in _revoked:
        return None

    session_data = _sessions.get(session_token)
    if session_data is None:
        parts = session_token.rsplit('.', 1)
        if len(parts) != 2:
            return None

        session_json, signature = parts
        if not hmac.compare_digest(signature, _sign(session_json)):
            return None

        try:
            session_data = json.loads(session_json)
            datetime.fromisoformat(session_data['created_at'])
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Malformed session payload rejected: {e}")
            return None

    if datetime.now(timezone.utc) >= _expires_at(session_data):
        _sessions.pop(session_token, None)
        return None

    _sessions[session_token] = session_data
    return session_data


def delete_session(session_token: str):
    """Revoke a session until its natural expiry."""
    session_data = verify_session(session_token)
    _sessions.pop(session_token, None)
    if session_data is not None:
        _revoked[session_token] = _expires_at(session_data)
    _prune_expired(datetime.now(timezone.utc))


def get_current_user_dependency(
    session_token: Optional[str] = Cookie(None, alias=SESSION_COOKIE_NAME),
    db: Session = Depends(get_db)
) -> User:
    """Dependency to get current authenticated user."""
    if not session_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )

    session_data = verify_session(session_token)
    if not session_data:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session"
        )

    user = db.query(User).filter(User.id == session_data['user_id']).first()
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive"
        )

    return user


def get_current_admin_user_dependency(
    current_user: User = Depends(get_current_user_dependency)
) -> User:
    """Dependency to get current admin user."""
    if not current_user.is_admin():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user


def require_cron_secret(
    authorization: Optional[str] = Header(None),
    settings=Depends(get_settings),
) -> None:
    """
    Dependency for scheduler-triggered endpoints.

    Expects `Authorization: Bearer <CRON_SECRET>`. Fails closed when no secret
    is configured.
    """
    expected = settings.cron_secret
    if not expected:
        logger.warning("Cron endpoint called but CRON_SECRET is not configured")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized"
        )

    provided = ""
    if authorization and authorization.startswith("Bearer "):
        provided = authorization[len("Bearer "):]

    if not hmac.compare_digest(provided.encode(), expected.encode()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized"
        )
