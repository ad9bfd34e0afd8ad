from __future__ import annotations

from ..extensions import db
from ..validation import clean_str
from arbpos.time_utils import format_local, to_utc_z, utcnow


class Product(db.Model):
    """
    Catalog item with an on-hand stock counter.

    NOTE: stock is decremented by sales without an availability check,
    so it can go negative (oversell is recorded, not rejected).
    """
    __tablename__ = "products"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    price = db.Column(db.BigInteger, nullable=False, default=0)
    stock = db.Column(db.Integer, nullable=False, default=0)
    category = db.Column(db.String(128), nullable=False, default="")

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "stock": self.stock,
            "category": self.category,
        }


class SaleTransaction(db.Model):
    """
    Immutable sale record.

    line_items is a snapshot [{"n": name, "q": qty, "p": unit price}] taken
    at sale time; later catalog edits never change it.
    """
    __tablename__ = "sale_transactions"
    __table_args__ = (
        db.Index("ix_sale_transactions_created", "created_at"),
        {"sqlite_autoincrement": True},
    )

    PAYMENT_CASH = "CASH"
    PAYMENT_DEBT = "DEBT"
    PAYMENT_TYPES = (PAYMENT_CASH, PAYMENT_DEBT)

    id = db.Column(db.Integer, primary_key=True)
    transaction_number = db.Column(db.String(16), nullable=False, unique=True, index=True)
    payment_type = db.Column(db.String(8), nullable=False)
    total = db.Column(db.BigInteger, nullable=False)
    customer_label = db.Column(db.String(255), nullable=False, default="General")
    line_items = db.Column(db.JSON, nullable=False, default=list)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self, tz_name: str = "UTC") -> dict:
        return {
            "id": self.transaction_number,
            "date": format_local(self.created_at, tz_name),
            "type": self.payment_type,
            "total": self.total,
            "customer": self.customer_label,
            "items": list(self.line_items or []),
        }


class Customer(db.Model):
    """
    Debt account, created on the first debt sale for a name.

    Names match case-insensitively after trimming; debt_balance never
    drops below zero.
    """
    __tablename__ = "customers"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    # Lowercased, trimmed name for lookups
    name_key = db.Column(db.String(255), nullable=False, index=True)
    debt_balance = db.Column(db.BigInteger, nullable=False, default=0)
    phone = db.Column(db.String(32), nullable=False, default="")

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    @staticmethod
    def normalize_name(name: str) -> str:
        return clean_str(name).lower()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "debt": self.debt_balance,
            "phone": self.phone,
        }


class DebtLogEntry(db.Model):
    """
    Append-only audit trail of debt movements.

    KINDS:
    - DEBT_INCREASE: debt sale; reference is the transaction number
    - DEBT_PAYMENT: manual payment; reference is MANUAL_PAYMENT
    """
    __tablename__ = "debt_log_entries"
    __table_args__ = (
        db.Index("ix_debt_log_customer", "customer_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    KIND_INCREASE = "DEBT_INCREASE"
    KIND_PAYMENT = "DEBT_PAYMENT"
    MANUAL_PAYMENT_REF = "MANUAL_PAYMENT"

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False)
    # Name as written at the time of the entry
    customer_name = db.Column(db.String(255), nullable=False)
    kind = db.Column(db.String(16), nullable=False)
    amount = db.Column(db.BigInteger, nullable=False)
    reference = db.Column(db.String(32), nullable=False)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    customer = db.relationship("Customer", backref=db.backref("debt_log", lazy=True))

    def to_dict(self, tz_name: str = "UTC") -> dict:
        return {
            "date": format_local(self.created_at, tz_name),
            "customerId": self.customer_id,
            "name": self.customer_name,
            "type": self.kind,
            "amount": self.amount,
            "ref": self.reference,
            "createdAt": to_utc_z(self.created_at),
        }
