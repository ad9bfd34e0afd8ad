# Overview: Request serializer; one global lock around every RPC action.

"""
Request Serializer

The ledger spans several tables and every logical operation touches more
than one of them (a debt sale writes products, transactions, customers and
the debt log). All actions therefore run one at a time behind a single
process-wide lock, and each action is one SQLAlchemy unit of work:

- lock acquired with a bounded wait; on timeout the action fails with
  LockTimeout before any table is read
- success commits, any failure rolls back, both while the lock is held
- the lock is released on every exit path
- work registered with defer_until_released() (outbound webhooks) runs
  after the release, and its failures are only logged

NOTE: the lock serializes actions, it does not enforce business rules.
Two sequential sales can still oversell a product.
"""

from __future__ import annotations

import threading
from typing import Any, Callable

from flask import current_app, g

from ..errors import ArbError, LockTimeout, UnknownAction
from ..extensions import db
from ..validation import require_payload


_GLOBAL_LOCK = threading.Lock()

Handler = Callable[[dict], Any]


def defer_until_released(func: Callable, *args, **kwargs) -> None:
    """
    Queue work to run once the current action has released the lock.

    Outside of an action (CLI, direct service calls) the work runs
    immediately.
    """
    queue = getattr(g, "_arb_deferred", None)
    if queue is None:
        func(*args, **kwargs)
        return
    queue.append((func, args, kwargs))


class RequestSerializer:
    """Routes {action, payload} to exactly one handler under the global lock."""

    def __init__(
        self,
        handlers: dict[str, Handler],
        *,
        lock: threading.Lock | None = None,
        timeout: float | None = None,
    ):
        self.handlers = handlers
        self.lock = lock or _GLOBAL_LOCK
        self.timeout = timeout

    def _lock_timeout(self) -> float:
        if self.timeout is not None:
            return self.timeout
        return float(current_app.config.get("LOCK_TIMEOUT_SECONDS", 10))

    def handle(self, action: str, payload: Any) -> tuple[dict, int]:
        """
        Execute one action and return (envelope, http_status).

        Never raises: every failure is reported inside the envelope.
        """
        if not self.lock.acquire(timeout=self._lock_timeout()):
            current_app.logger.warning("Lock wait timed out for action %s", action)
            err = LockTimeout()
            return err.to_envelope(), err.http_status

        g._arb_deferred = []
        try:
            envelope, status = self._run_locked(action, payload)
        finally:
            deferred = g._arb_deferred
            g._arb_deferred = None
            self.lock.release()

        for func, args, kwargs in deferred:
            try:
                func(*args, **kwargs)
            except Exception:
                current_app.logger.exception("Deferred task failed after action %s", action)

        return envelope, status

    def _run_locked(self, action: str, payload: Any) -> tuple[dict, int]:
        try:
            handler = self.handlers.get(action)
            if handler is None:
                raise UnknownAction(f"Unknown action: {action}")

            data = handler(require_payload(payload))
            db.session.commit()
            return {"status": "success", "data": data}, 200

        except ArbError as e:
            db.session.rollback()
            g._arb_deferred.clear()
            return e.to_envelope(), e.http_status

        except Exception:
            db.session.rollback()
            g._arb_deferred.clear()
            current_app.logger.exception("Action %s failed", action)
            return {
                "status": "error",
                "code": "InternalError",
                "message": "Internal server error",
            }, 500
