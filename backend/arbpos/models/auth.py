from __future__ import annotations

from ..extensions import db
from arbpos.time_utils import utcnow


class AdminCredential(db.Model):
    """
    The single operator login.

    Replacing credentials deletes the old row and inserts a new one;
    no history is kept.
    """
    __tablename__ = "admin_credentials"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)


class AdminSession(db.Model):
    """
    Operator session issued on every successful admin login.

    SECURITY NOTES:
    - Only the SHA-256 of the token is stored
    - Absolute timeout (ADMIN_SESSION_TTL_HOURS)
    - Idle timeout (ADMIN_SESSION_IDLE_MINUTES)
    - Revoked on logout and on credential change
    """
    __tablename__ = "admin_sessions"
    __table_args__ = (
        db.Index("ix_admin_sessions_active", "is_revoked", "expires_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), nullable=False)
    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    last_used_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    expires_at = db.Column(db.DateTime, nullable=False)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False)
    revoked_at = db.Column(db.DateTime, nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)
