from __future__ import annotations

from ..extensions import db
from arbpos.time_utils import utcnow


class Setting(db.Model):
    """
    Key-value operator settings.

    Recognized keys: WEBHOOK_URL, PAYMENT_INFO.
    """
    __tablename__ = "settings"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    KEY_WEBHOOK_URL = "WEBHOOK_URL"
    KEY_PAYMENT_INFO = "PAYMENT_INFO"

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(128), nullable=False, unique=True)
    value = db.Column(db.Text, nullable=True)

    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)
