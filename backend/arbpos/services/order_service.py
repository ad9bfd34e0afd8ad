# Overview: Service-layer operations for token orders; intake, lookup and operator decisions.

"""
Order Provisioning Workflow

STATE MACHINE:
    PENDING --APPROVE--> APPROVED  (token minted, code stored on the order)
    PENDING --REJECT---> REJECTED
Both outcomes are terminal; deciding an order twice raises
OrderAlreadyProcessed so an order can never mint a second token.
"""

from __future__ import annotations

import uuid

from flask import current_app

from ..errors import InvalidOrderAction, MissingFields, OrderAlreadyProcessed, OrderNotFound
from ..extensions import db
from ..models import TokenOrder
from ..validation import clean_str
from arbpos.time_utils import utcnow
from . import token_service
from .notification_service import notify_new_order


ACTION_APPROVE = "APPROVE"
ACTION_REJECT = "REJECT"


def _normalize_order_number(value) -> str:
    return clean_str(value).upper()


def _new_order_number() -> str:
    """Short id: first block of a UUID4, upper-cased, unique among orders."""
    while True:
        candidate = uuid.uuid4().hex[:8].upper()
        exists = db.session.query(TokenOrder.id).filter_by(order_number=candidate).first()
        if not exists:
            return candidate


def submit(store_name: str, contact: str, plan: str) -> TokenOrder:
    """
    Record a PENDING purchase request and notify the operator webhook.

    Webhook delivery happens after the request completes and cannot fail
    the submission.
    """
    fields = {
        "storeName": clean_str(store_name),
        "contact": clean_str(contact),
        "plan": clean_str(plan),
    }
    missing = [k for k, v in fields.items() if not v]
    if missing:
        raise MissingFields(f"Missing fields: {', '.join(missing)}", details={"fields": missing})

    order = TokenOrder(
        order_number=_new_order_number(),
        store_name=fields["storeName"],
        contact=fields["contact"],
        plan=token_service.validate_duration(fields["plan"]),
        status=TokenOrder.STATUS_PENDING,
        created_at=utcnow(),
    )
    db.session.add(order)
    db.session.commit()

    current_app.logger.info("Order %s received from %s", order.order_number, order.store_name)
    notify_new_order(order)
    return order


def lookup(query: str) -> TokenOrder:
    """
    Find an order by order id, else by contact handle.

    NOTE: contact handles are not unique. The oldest order for a handle
    wins, so a store that ordered twice sees its first order.
    """
    query = clean_str(query)
    if not query:
        raise OrderNotFound()

    order = db.session.query(TokenOrder).filter_by(order_number=_normalize_order_number(query)).first()
    if order is None:
        order = (
            db.session.query(TokenOrder)
            .filter_by(contact=query)
            .order_by(TokenOrder.created_at.asc(), TokenOrder.id.asc())
            .first()
        )
    if order is None:
        raise OrderNotFound()
    return order


def list_orders() -> list[TokenOrder]:
    """All orders, newest first."""
    return (
        db.session.query(TokenOrder)
        .order_by(TokenOrder.created_at.desc(), TokenOrder.id.desc())
        .all()
    )


def decide(order_number: str, action: str) -> TokenOrder:
    """
    Apply the operator's decision to a PENDING order.

    APPROVE mints a token for the order's store and plan in the same unit
    of work as the status change.
    """
    action = clean_str(action).upper()
    if action not in (ACTION_APPROVE, ACTION_REJECT):
        raise InvalidOrderAction()

    order = db.session.query(TokenOrder).filter_by(order_number=_normalize_order_number(order_number)).first()
    if order is None:
        raise OrderNotFound()

    if order.status != TokenOrder.STATUS_PENDING:
        raise OrderAlreadyProcessed(
            f"Order {order.order_number} is already {order.status}",
            details={"status": order.status},
        )

    if action == ACTION_APPROVE:
        token = token_service.mint(order.store_name, order.plan)
        order.issued_token_code = token.code
        order.status = TokenOrder.STATUS_APPROVED
    else:
        order.status = TokenOrder.STATUS_REJECTED

    order.decided_at = utcnow()
    db.session.commit()

    current_app.logger.info("Order %s %s", order.order_number, order.status)
    return order
