# Overview: Service-layer operations for operator settings (webhook URL, payment info).

from __future__ import annotations

from ..extensions import db
from ..models import Setting
from ..validation import clean_str


DEFAULT_PUBLIC_PAYMENT_INFO = "Contact Admin"


def get_settings_map() -> dict[str, str]:
    rows = db.session.query(Setting).all()
    return {row.key: row.value for row in rows if row.key}


def get_setting(key: str, default: str | None = None) -> str | None:
    row = db.session.query(Setting).filter_by(key=key).first()
    if row is None or row.value in (None, ""):
        return default
    return row.value


def set_setting(key: str, value: str | None) -> Setting:
    row = db.session.query(Setting).filter_by(key=key).first()
    if row is None:
        row = Setting(key=key)
        db.session.add(row)
    row.value = value
    return row


def get_public_settings() -> dict:
    """What the storefront may see before any login."""
    return {
        "paymentInfo": get_setting(Setting.KEY_PAYMENT_INFO, DEFAULT_PUBLIC_PAYMENT_INFO),
    }


def get_settings() -> dict:
    settings = get_settings_map()
    return {
        "webhookUrl": settings.get(Setting.KEY_WEBHOOK_URL) or "",
        "paymentInfo": settings.get(Setting.KEY_PAYMENT_INFO) or "",
    }


def save_settings(webhook_url: str | None, payment_info: str | None) -> dict:
    """Replace both recognized settings."""
    set_setting(Setting.KEY_WEBHOOK_URL, clean_str(webhook_url))
    set_setting(Setting.KEY_PAYMENT_INFO, clean_str(payment_info))
    db.session.commit()
    return {"message": "Saved"}
