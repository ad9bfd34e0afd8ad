# Overview: Service-layer operations for customer debt accounts and the debt log.

"""
Customer debt accounts.

DEBT LOG INVARIANTS:
- Append-only: entries are never updated or deleted.
- Every balance change writes exactly one entry in the same unit of work.
- DEBT_INCREASE references the sale's transaction number,
  DEBT_PAYMENT references MANUAL_PAYMENT.

BALANCE CLAMPING: a payment larger than the balance brings it to zero; the
excess is absorbed, not rejected and not carried as credit.
"""

from __future__ import annotations

from typing import Any

from flask import current_app

from ..errors import CustomerNotFound, InvalidAmount, ValidationError
from ..extensions import db
from ..models import Customer, DebtLogEntry
from ..validation import coerce_amount, coerce_id
from arbpos.time_utils import utcnow


def append_debt_log(
    *,
    customer: Customer,
    kind: str,
    amount: int,
    reference: str,
) -> DebtLogEntry:
    """Append one debt log entry. No updates or deletes exist for this table."""
    entry = DebtLogEntry(
        customer_id=customer.id,
        customer_name=customer.name,
        kind=kind,
        amount=amount,
        reference=reference,
        created_at=utcnow(),
    )
    db.session.add(entry)
    db.session.flush()
    return entry


def find_customer_by_name(name: str) -> Customer | None:
    key = Customer.normalize_name(name)
    if not key:
        return None
    return (
        db.session.query(Customer)
        .filter_by(name_key=key)
        .order_by(Customer.id.asc())
        .first()
    )


def charge_debt_sale(customer_label: str, total: int, transaction_number: str) -> Customer:
    """
    Add a debt sale to the named customer's balance, creating the
    customer on first use. Caller commits.
    """
    customer = find_customer_by_name(customer_label)
    if customer is None:
        name = customer_label.strip()
        customer = Customer(
            name=name,
            name_key=Customer.normalize_name(name),
            debt_balance=total,
            phone="",
        )
        db.session.add(customer)
        db.session.flush()
    else:
        customer.debt_balance = (customer.debt_balance or 0) + total

    append_debt_log(
        customer=customer,
        kind=DebtLogEntry.KIND_INCREASE,
        amount=total,
        reference=transaction_number,
    )
    return customer


def _get_customer(customer_id: Any) -> Customer:
    if customer_id in (None, ""):
        raise CustomerNotFound()
    try:
        cid = coerce_id(customer_id, "customerId")
    except ValidationError:
        raise CustomerNotFound()
    customer = db.session.get(Customer, cid)
    if customer is None:
        raise CustomerNotFound()
    return customer


def record_debt_payment(customer_id: Any, amount: Any) -> dict:
    """
    Apply a manual payment: new balance = max(0, balance - amount).

    Raises CustomerNotFound or InvalidAmount.
    """
    customer = _get_customer(customer_id)
    paid = coerce_amount(amount, "amount", error_cls=InvalidAmount, allow_zero=False)

    old_balance = customer.debt_balance or 0
    customer.debt_balance = max(0, old_balance - paid)

    append_debt_log(
        customer=customer,
        kind=DebtLogEntry.KIND_PAYMENT,
        amount=paid,
        reference=DebtLogEntry.MANUAL_PAYMENT_REF,
    )
    db.session.commit()

    if paid > old_balance:
        current_app.logger.info(
            "Payment %s for customer %s exceeded balance %s; clamped to zero",
            paid, customer.id, old_balance,
        )
    return {"newBalance": customer.debt_balance}


def search_customers(query: str) -> list[Customer]:
    """Case-insensitive substring match on name."""
    needle = Customer.normalize_name(query)
    q = db.session.query(Customer)
    if needle:
        # Escape LIKE wildcards so user input matches literally
        escaped = needle.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        q = q.filter(Customer.name_key.like(f"%{escaped}%", escape="\\"))
    return q.order_by(Customer.name.asc(), Customer.id.asc()).all()


def customer_debt_log(customer_id: Any) -> list[DebtLogEntry]:
    customer = _get_customer(customer_id)
    return (
        db.session.query(DebtLogEntry)
        .filter_by(customer_id=customer.id)
        .order_by(DebtLogEntry.created_at.desc(), DebtLogEntry.id.desc())
        .all()
    )
