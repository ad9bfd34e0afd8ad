"""
Sales Service - single-step sale recording

WHY: A POS checkout is one logical operation spanning products,
transactions, customers and the debt log. Everything here runs inside one
RPC action (one lock hold, one commit) and validates the whole request
before the first write, so a rejected sale leaves no trace.

STOCK POLICY: quantities are decremented without checking availability.
Stock may go negative; overselling is recorded, not prevented.
"""

from __future__ import annotations

import uuid
from typing import Any

from flask import current_app

from ..errors import CustomerNameRequired, InvalidCart, InvalidPaymentType, ValidationError
from ..extensions import db
from ..models import Product, SaleTransaction
from ..validation import MAX_AMOUNT, MAX_QUANTITY, clean_str, coerce_amount, coerce_id, coerce_int
from arbpos.time_utils import format_local, utcnow
from .debt_service import charge_debt_sale


DEFAULT_CUSTOMER_LABEL = "General"
MAX_HISTORY = 100


def _new_transaction_number() -> str:
    while True:
        candidate = uuid.uuid4().hex[:8].upper()
        exists = db.session.query(SaleTransaction.id).filter_by(transaction_number=candidate).first()
        if not exists:
            return candidate


def _parse_cart(cart: Any) -> list[dict]:
    """Validate cart lines into [{product_id, name, qty, price}]."""
    if not isinstance(cart, list) or not cart:
        raise InvalidCart("Cannot record a sale with an empty cart")

    lines = []
    for i, item in enumerate(cart):
        if not isinstance(item, dict):
            raise InvalidCart(f"Cart line {i + 1} is malformed")
        qty = coerce_int(item.get("qty"), f"cart[{i}].qty", error_cls=InvalidCart)
        if qty <= 0:
            raise InvalidCart(f"cart[{i}].qty must be > 0")
        if qty > MAX_QUANTITY:
            raise InvalidCart(f"cart[{i}].qty cannot exceed {MAX_QUANTITY}")

        raw_price = item.get("price")
        price = None if raw_price in (None, "") else coerce_amount(raw_price, f"cart[{i}].price", error_cls=InvalidCart)

        try:
            product_id = coerce_id(item.get("id"), f"cart[{i}].id")
        except ValidationError:
            product_id = None

        lines.append({
            "product_id": product_id,
            "name": clean_str(item.get("name")),
            "qty": qty,
            "price": price,
        })
    return lines


def _parse_payment_type(payment_type: Any) -> str:
    value = clean_str(payment_type).upper()
    if value not in SaleTransaction.PAYMENT_TYPES:
        raise InvalidPaymentType()
    return value


def record_sale(
    cart: Any,
    payment_type: Any,
    customer_label: Any = None,
    client_total: Any = None,
) -> SaleTransaction:
    """
    Record a checkout.

    1. Decrement stock for every cart line that names a known product.
    2. Append the transaction with a line-item snapshot {n, q, p}.
    3. DEBT: charge the customer (matched by trimmed, case-insensitive
       name, created on first use) and append DEBT_INCREASE.

    Raises InvalidCart, InvalidPaymentType or CustomerNameRequired before
    anything is written.
    """
    lines = _parse_cart(cart)
    payment = _parse_payment_type(payment_type)
    label = clean_str(customer_label)
    if payment == SaleTransaction.PAYMENT_DEBT and not label:
        raise CustomerNameRequired()

    # Resolve every line before touching stock
    resolved = []
    snapshot = []
    total = 0
    for line in lines:
        product = db.session.get(Product, line["product_id"]) if line["product_id"] is not None else None

        if product is None:
            if line["price"] is None or not line["name"]:
                raise InvalidCart(f"Unknown product {line['product_id']!r} without name and price")
            current_app.logger.warning("Sale line for unknown product %r; stock not changed", line["product_id"])
            name, price = line["name"], line["price"]
        else:
            name, price = product.name, product.price

        resolved.append((product, line["qty"]))
        snapshot.append({"n": name, "q": line["qty"], "p": price})
        total += line["qty"] * price

    if total > MAX_AMOUNT:
        raise InvalidCart(f"Sale total cannot exceed {MAX_AMOUNT}")

    if client_total not in (None, ""):
        try:
            claimed = coerce_int(client_total, "total")
        except ValidationError:
            claimed = None
        if claimed != total:
            current_app.logger.warning("Client total %r differs from computed total %s", client_total, total)

    for product, qty in resolved:
        if product is not None:
            product.stock = (product.stock or 0) - qty

    sale = SaleTransaction(
        transaction_number=_new_transaction_number(),
        payment_type=payment,
        total=total,
        customer_label=label or DEFAULT_CUSTOMER_LABEL,
        line_items=snapshot,
        created_at=utcnow(),
    )
    db.session.add(sale)
    db.session.flush()

    if payment == SaleTransaction.PAYMENT_DEBT:
        charge_debt_sale(label, total, sale.transaction_number)

    db.session.commit()
    return sale


def sale_receipt(sale: SaleTransaction) -> dict:
    """Result returned to the POS after checkout."""
    return {
        "transactionId": sale.transaction_number,
        "date": format_local(sale.created_at, current_app.config.get("STORE_TIMEZONE", "UTC")),
        "total": sale.total,
    }


def history(limit: int | None = None) -> list[SaleTransaction]:
    """Most recent transactions first, never more than MAX_HISTORY."""
    if limit is None:
        limit = current_app.config.get("HISTORY_LIMIT", MAX_HISTORY)
    limit = max(1, min(int(limit), MAX_HISTORY))
    return (
        db.session.query(SaleTransaction)
        .order_by(SaleTransaction.created_at.desc(), SaleTransaction.id.desc())
        .limit(limit)
        .all()
    )
