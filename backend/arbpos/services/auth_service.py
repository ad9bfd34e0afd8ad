# Overview: Service-layer operations for operator authentication.

"""
Operator Authentication

There is exactly one operator credential. It is seeded from
DEFAULT_ADMIN_USERNAME / DEFAULT_ADMIN_PASSWORD the first time anyone tries
to log in, and replaced wholesale by change_credentials().

Passwords are stored as bcrypt hashes; sessions are handled by
session_service.
"""

import bcrypt
from flask import current_app

from ..errors import InvalidAdminCredentials, MissingFields
from ..extensions import db
from ..models import AdminCredential
from ..validation import clean_str
from arbpos.time_utils import to_utc_z, utcnow
from . import session_service


def _as_text(value) -> str:
    """JSON numbers become strings; no trimming, whitespace is significant in passwords."""
    return "" if value is None else str(value)


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt check; malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def get_credential() -> AdminCredential | None:
    return db.session.query(AdminCredential).order_by(AdminCredential.id.desc()).first()


def ensure_default_credential() -> AdminCredential:
    """Seed the default operator credential if none exists (idempotent)."""
    credential = get_credential()
    if credential is not None:
        return credential

    credential = AdminCredential(
        username=current_app.config.get("DEFAULT_ADMIN_USERNAME", "admin"),
        password_hash=hash_password(current_app.config.get("DEFAULT_ADMIN_PASSWORD", "admin123")),
        created_at=utcnow(),
    )
    db.session.add(credential)
    db.session.commit()
    current_app.logger.info("Seeded default operator credential")
    return credential


def login(username: str, password: str) -> dict:
    """
    Exact username match plus bcrypt password check.

    Returns {token, username, expiresAt}; raises InvalidAdminCredentials.
    """
    credential = ensure_default_credential()
    username, password = _as_text(username), _as_text(password)

    if not username or not password:
        raise InvalidAdminCredentials()
    if username != credential.username or not verify_password(password, credential.password_hash):
        current_app.logger.warning("Failed operator login for %r", username)
        raise InvalidAdminCredentials()

    session, token = session_service.create_session(credential.username)
    return {
        "token": token,
        "username": credential.username,
        "expiresAt": to_utc_z(session.expires_at),
    }


def change_credentials(new_username: str, new_password: str, *, current_session_id: int | None = None) -> dict:
    """
    Replace the operator credential (delete + insert, one commit) and
    revoke every other operator session.
    """
    new_username = clean_str(new_username)
    new_password = _as_text(new_password)
    if not new_username or not new_password:
        raise MissingFields("Missing fields: newUsername, newPassword")

    db.session.query(AdminCredential).delete()
    db.session.add(AdminCredential(
        username=new_username,
        password_hash=hash_password(new_password),
        created_at=utcnow(),
    ))
    db.session.flush()

    revoked = session_service.revoke_all_sessions("Credentials changed", keep_session_id=current_session_id)
    current_app.logger.info("Operator credentials replaced; %s other session(s) revoked", revoked)
    return {"message": "Updated"}
