# Overview: Service-layer operations for access tokens; minting, device binding, verification.

"""
Token/License Manager

TOKEN FORMAT: PREFIX-XXXX-XXXX, X drawn uniformly from A-Z0-9.

DEVICE BINDING:
- A fresh token has bound_device_id == "".
- The first successful authenticate_device() binds it to that device.
- Later logins must come from the same device (idempotent) or fail with
  DeviceMismatch.
- Only reset_device_lock() clears the binding.

verify() gates every ledger action and is stricter than login: an unbound
token never verifies, so a session must have logged in first.

KNOWN GAP: minted codes are not checked against existing ones. The code
space (36^8) is large for the expected volume; a collision violates the
unique index and the mint fails instead of overwriting a token.
"""

from __future__ import annotations

import secrets

from flask import current_app

from ..errors import (
    DeviceMismatch,
    InvalidDuration,
    InvalidToken,
    MissingFields,
    TokenExpired,
    TokenInactive,
    TokenNotFound,
)
from ..extensions import db
from ..models import AccessToken
from ..validation import clean_str
from arbpos.time_utils import DURATIONS, add_duration, to_utc_z, utcnow


TOKEN_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"


def generate_code(prefix: str | None = None) -> str:
    if prefix is None:
        prefix = current_app.config.get("TOKEN_PREFIX", "ARB")
    part = "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(8))
    return f"{prefix}-{part[:4]}-{part[4:]}"


def validate_duration(duration: str) -> str:
    duration = clean_str(duration)
    if duration not in DURATIONS:
        raise InvalidDuration(
            f"Unknown plan duration: {duration or '(empty)'}",
            details={"allowed": sorted(DURATIONS)},
        )
    return duration


def _get_by_code(code: str) -> AccessToken | None:
    code = clean_str(code)
    if not code:
        return None
    return db.session.query(AccessToken).filter_by(code=code).first()


def mint(store_name: str, duration: str) -> AccessToken:
    """
    Create an active, unbound token valid for `duration` from now.

    Flushes only; the surrounding action commits (order approval mints and
    flips the order in one unit of work).
    """
    store_name = clean_str(store_name)
    if not store_name:
        raise MissingFields("Missing fields: storeName")
    duration = validate_duration(duration)

    now = utcnow()
    token = AccessToken(
        code=generate_code(),
        store_name=store_name,
        duration=duration,
        expires_at=add_duration(now, duration),
        is_active=True,
        bound_device_id="",
        created_at=now,
    )
    db.session.add(token)
    db.session.flush()

    current_app.logger.info("Minted token %s for %s (%s)", token.code, store_name, duration)
    return token


def authenticate_device(code: str, device_id: str) -> dict:
    """
    Log a device in with a token, binding the token on first use.

    Raises InvalidToken, TokenInactive, TokenExpired or DeviceMismatch.
    """
    device_id = clean_str(device_id)
    token = _get_by_code(code)
    if token is None:
        raise InvalidToken()
    if not token.is_active:
        raise TokenInactive()
    if utcnow() > token.expires_at:
        raise TokenExpired()
    if not device_id:
        raise MissingFields("Missing fields: deviceId")

    if not token.is_bound:
        token.bound_device_id = device_id
        db.session.commit()
        current_app.logger.info("Token %s bound to device %s", token.code, device_id)
    elif token.bound_device_id != device_id:
        current_app.logger.warning("Token %s is bound elsewhere; rejected device %s", token.code, device_id)
        raise DeviceMismatch()

    return {
        "storeName": token.store_name,
        "token": token.code,
        "deviceId": device_id,
        "expiry": to_utc_z(token.expires_at),
    }


def verify(code: str, device_id: str) -> AccessToken:
    """
    Gate for ledger actions: token exists, is active and is bound to
    exactly this device.
    """
    token = _get_by_code(code)
    if token is None:
        raise InvalidToken()
    if not token.is_active:
        raise TokenInactive()
    if not token.is_bound or token.bound_device_id != clean_str(device_id):
        raise DeviceMismatch("Security Alert: Device Mismatch")
    return token


def reset_device_lock(code: str) -> AccessToken:
    """Clear the device binding so the next login can rebind."""
    token = _get_by_code(code)
    if token is None:
        raise TokenNotFound()

    previous = token.bound_device_id
    token.bound_device_id = ""
    db.session.commit()

    current_app.logger.info("Device lock reset for %s (was %r)", token.code, previous)
    return token


def set_token_active(code: str, is_active: bool) -> AccessToken:
    token = _get_by_code(code)
    if token is None:
        raise TokenNotFound()
    token.is_active = is_active
    db.session.commit()
    current_app.logger.info("Token %s %s", token.code, "activated" if is_active else "deactivated")
    return token


def list_tokens() -> list[AccessToken]:
    return (
        db.session.query(AccessToken)
        .order_by(AccessToken.created_at.desc(), AccessToken.id.desc())
        .all()
    )
