from __future__ import annotations

from ..extensions import db
from arbpos.time_utils import to_utc_z, utcnow


class AccessToken(db.Model):
    """
    Time-limited licence that unlocks the store ledger on one device.

    DEVICE BINDING: bound_device_id is "" until the first successful login,
    then holds that device's opaque id. Only an operator reset clears it.
    """
    __tablename__ = "access_tokens"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), nullable=False, unique=True, index=True)
    store_name = db.Column(db.String(255), nullable=False)
    duration = db.Column(db.String(8), nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    bound_device_id = db.Column(db.String(255), nullable=False, default="")

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    @property
    def is_bound(self) -> bool:
        return bool(self.bound_device_id)

    def to_dict(self) -> dict:
        return {
            "token": self.code,
            "storeName": self.store_name,
            "duration": self.duration,
            "expiry": to_utc_z(self.expires_at),
            "isActive": self.is_active,
            "deviceId": self.bound_device_id,
            "createdAt": to_utc_z(self.created_at),
        }


class TokenOrder(db.Model):
    """
    Self-service purchase request for a token.

    LIFECYCLE: PENDING -> APPROVED (issued_token_code set) | REJECTED.
    Both outcomes are terminal.
    """
    __tablename__ = "token_orders"
    __table_args__ = (
        db.Index("ix_token_orders_contact", "contact"),
        {"sqlite_autoincrement": True},
    )

    STATUS_PENDING = "PENDING"
    STATUS_APPROVED = "APPROVED"
    STATUS_REJECTED = "REJECTED"

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(16), nullable=False, unique=True, index=True)
    store_name = db.Column(db.String(255), nullable=False)
    contact = db.Column(db.String(64), nullable=False)
    plan = db.Column(db.String(8), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=STATUS_PENDING, index=True)
    issued_token_code = db.Column(db.String(32), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    decided_at = db.Column(db.DateTime, nullable=True)

    def to_dict(self) -> dict:
        return {
            "orderId": self.order_number,
            "date": to_utc_z(self.created_at),
            "storeName": self.store_name,
            "contact": self.contact,
            "plan": self.plan,
            "status": self.status,
            "generatedToken": self.issued_token_code or "",
            "decidedAt": to_utc_z(self.decided_at),
        }

    def to_status_view(self) -> dict:
        """Public view returned by order status lookups."""
        return {
            "orderId": self.order_number,
            "storeName": self.store_name,
            "status": self.status,
            "token": self.issued_token_code or "",
        }
