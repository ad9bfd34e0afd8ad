# Overview: Outbound webhook notifications; best-effort, never blocks the caller.

"""
Webhook delivery runs on a small background pool. The request that
triggered it returns without waiting for the remote endpoint; delivery
failures are logged and never reach the caller.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait

import httpx
from flask import Flask, current_app

from ..models import Setting, TokenOrder
from arbpos.time_utils import to_utc_z
from .concurrency import defer_until_released
from .settings_service import get_setting


EVENT_NEW_ORDER = "NEW_ORDER"

_executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="arbpos-webhook")
_pending: set[Future] = set()
_pending_guard = threading.Lock()


def build_new_order_event(order: TokenOrder) -> dict:
    return {
        "event": EVENT_NEW_ORDER,
        "orderId": order.order_number,
        "store": order.store_name,
        "contact": order.contact,
        "plan": order.plan,
        "time": to_utc_z(order.created_at),
    }


def deliver_webhook(url: str, event: dict, timeout: float) -> bool:
    """
    POST one event as JSON. Failures are logged and reported as False,
    never raised.
    """
    try:
        response = httpx.post(url, json=event, timeout=timeout)
        response.raise_for_status()
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        current_app.logger.warning("Webhook %s delivery to %s failed: %s", event.get("event"), url, e)
        return False
    return True


def _deliver_in_app(app: Flask, url: str, event: dict, timeout: float) -> bool:
    with app.app_context():
        return deliver_webhook(url, event, timeout)


def _forget(future: Future) -> None:
    with _pending_guard:
        _pending.discard(future)


def dispatch_webhook(url: str, event: dict, timeout: float) -> Future:
    """Hand one delivery to the background pool and return immediately."""
    app = current_app._get_current_object()
    future = _executor.submit(_deliver_in_app, app, url, event, timeout)
    with _pending_guard:
        _pending.add(future)
    future.add_done_callback(_forget)
    return future


def wait_for_deliveries(timeout: float | None = None) -> None:
    """Block until queued deliveries finish."""
    with _pending_guard:
        pending = list(_pending)
    if pending:
        wait(pending, timeout=timeout)


def notify_new_order(order: TokenOrder) -> None:
    """
    Queue the NEW_ORDER webhook once the request lock is released.
    No-op when no webhook URL is configured.
    """
    url = get_setting(Setting.KEY_WEBHOOK_URL)
    if not url:
        return

    event = build_new_order_event(order)
    timeout = float(current_app.config.get("WEBHOOK_TIMEOUT_SECONDS", 5))
    defer_until_released(dispatch_webhook, url, event, timeout)
