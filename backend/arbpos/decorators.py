# Overview: Auth decorators for RPC action handlers.

from functools import wraps

from flask import g

from .services import session_service, token_service


def require_admin_session(f):
    """
    Require a live operator session in payload["adminSessionToken"].

    Sets g.admin_session for the handler. Raises UnauthorizedAdminAction.
    """
    @wraps(f)
    def decorated_function(payload, *args, **kwargs):
        g.admin_session = session_service.validate_session(payload.get("adminSessionToken"))
        return f(payload, *args, **kwargs)

    return decorated_function


def require_device_token(f):
    """
    Require payload["token"] to be active and bound to payload["deviceId"].

    Sets g.access_token for the handler. Raises InvalidToken,
    TokenInactive or DeviceMismatch.
    """
    @wraps(f)
    def decorated_function(payload, *args, **kwargs):
        g.access_token = token_service.verify(payload.get("token"), payload.get("deviceId"))
        return f(payload, *args, **kwargs)

    return decorated_function
