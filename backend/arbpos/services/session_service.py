# Overview: Service-layer operations for operator sessions.

"""
Admin Session Token Management

Replaces the fixed session marker with one token per login.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage
- Absolute timeout (ADMIN_SESSION_TTL_HOURS)
- Idle timeout (ADMIN_SESSION_IDLE_MINUTES)
- Revocable on logout and on credential change
"""

import hashlib
import secrets
from datetime import timedelta

from flask import current_app

from ..errors import UnauthorizedAdminAction
from ..extensions import db
from ..models import AdminSession
from arbpos.time_utils import utcnow


def generate_token() -> str:
    """64-character hex string (32 bytes of entropy), sent to the client only."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    SHA-256 hex digest used for storage.

    Tokens are already high-entropy, so a fast hash is sufficient.
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def _absolute_timeout() -> timedelta:
    return timedelta(hours=current_app.config.get("ADMIN_SESSION_TTL_HOURS", 12))


def _idle_timeout() -> timedelta:
    return timedelta(minutes=current_app.config.get("ADMIN_SESSION_IDLE_MINUTES", 120))


def create_session(username: str) -> tuple[AdminSession, str]:
    """
    Create a new operator session.

    Returns (session_record, plaintext_token); only the hash is stored.
    """
    plaintext_token = generate_token()
    now = utcnow()

    session = AdminSession(
        username=username,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + _absolute_timeout(),
        is_revoked=False,
    )
    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def _revoke(session: AdminSession, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason


def validate_session(token: str | None) -> AdminSession:
    """
    Return the live session for `token` or raise UnauthorizedAdminAction.

    Idle sessions are revoked on the spot. A valid call refreshes
    last_used_at.
    """
    if not token or not isinstance(token, str):
        raise UnauthorizedAdminAction()

    session = db.session.query(AdminSession).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()
    if session is None:
        raise UnauthorizedAdminAction()

    now = utcnow()
    if session.expires_at < now:
        raise UnauthorizedAdminAction("Admin session expired")

    if now - session.last_used_at > _idle_timeout():
        _revoke(session, "Idle timeout")
        db.session.commit()
        raise UnauthorizedAdminAction("Admin session expired")

    session.last_used_at = now
    db.session.flush()
    return session


def revoke_session(token: str, reason: str = "Admin logout") -> bool:
    """Revoke one session. Returns False when no live session matches."""
    session = db.session.query(AdminSession).filter_by(
        token_hash=hash_token(token or ""),
        is_revoked=False,
    ).first()
    if session is None:
        return False

    _revoke(session, reason)
    db.session.commit()
    return True


def revoke_all_sessions(reason: str, *, keep_session_id: int | None = None) -> int:
    """
    Revoke every live session except `keep_session_id`.

    Returns count of sessions revoked.
    """
    q = db.session.query(AdminSession).filter_by(is_revoked=False)
    if keep_session_id is not None:
        q = q.filter(AdminSession.id != keep_session_id)

    count = 0
    for session in q.all():
        _revoke(session, reason)
        count += 1

    db.session.commit()
    return count
