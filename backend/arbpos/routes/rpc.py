# Overview: Single RPC entry point; maps action names to service calls.

# backend/arbpos/routes/rpc.py
"""
RPC surface consumed by the POS, storefront and operator UIs.

Request:  POST {"action": "<name>", "payload": {...}}
Response: {"status": "success", "data": ...}
          {"status": "error", "code": "<stable id>", "message": "..."}

Auth contexts:
- public: no credentials
- admin:  payload.adminSessionToken from adminLogin
- device: payload.token + payload.deviceId, token bound to that device

Every action runs through RequestSerializer (global lock, one unit of work).
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_admin_session, require_device_token
from ..errors import ValidationError
from ..services import (
    auth_service,
    debt_service,
    order_service,
    products_service,
    sales_service,
    session_service,
    settings_service,
    token_service,
)
from ..services.concurrency import RequestSerializer


rpc_bp = Blueprint("rpc", __name__)

ACTIONS = {}


def rpc_action(name: str):
    """Register a handler under an action name (one handler per name)."""
    def decorator(f):
        if name in ACTIONS:
            raise RuntimeError(f"Duplicate RPC action: {name}")
        ACTIONS[name] = f
        return f
    return decorator


def _tz() -> str:
    return current_app.config.get("STORE_TIMEZONE", "UTC")


# --- AUTH ---

@rpc_action("login")
def login(payload):
    return token_service.authenticate_device(payload.get("token"), payload.get("deviceId"))


@rpc_action("adminLogin")
def admin_login(payload):
    return auth_service.login(payload.get("username"), payload.get("password"))


@rpc_action("adminLogout")
@require_admin_session
def admin_logout(payload):
    session_service.revoke_session(payload.get("adminSessionToken"))
    return {"message": "Logged out"}


@rpc_action("updateAdminCredentials")
@require_admin_session
def update_admin_credentials(payload):
    return auth_service.change_credentials(
        payload.get("newUsername"),
        payload.get("newPassword"),
        current_session_id=g.admin_session.id,
    )


# --- PUBLIC STORE FRONT ---

@rpc_action("createOrder")
def create_order(payload):
    # Legacy storefront sends the contact handle as "whatsapp"
    contact = payload.get("contact") or payload.get("whatsapp")
    order = order_service.submit(payload.get("storeName"), contact, payload.get("plan"))
    return {"orderId": order.order_number, "message": "Order placed successfully"}


@rpc_action("checkOrderStatus")
def check_order_status(payload):
    return order_service.lookup(payload.get("query")).to_status_view()


@rpc_action("getPublicSettings")
def get_public_settings(payload):
    return settings_service.get_public_settings()


# --- ADMIN CORE ---

@rpc_action("adminGenerateToken")
@require_admin_session
def admin_generate_token(payload):
    token = token_service.mint(payload.get("storeName"), payload.get("duration"))
    return {"token": token.code, "expiry": token.to_dict()["expiry"]}


@rpc_action("adminGetTokens")
@require_admin_session
def admin_get_tokens(payload):
    return [t.to_dict() for t in token_service.list_tokens()]


@rpc_action("adminResetDevice")
@require_admin_session
def admin_reset_device(payload):
    token_service.reset_device_lock(payload.get("targetToken"))
    return {"message": "Device lock reset successfully"}


# --- ADMIN ORDERS & SETTINGS ---

@rpc_action("adminGetOrders")
@require_admin_session
def admin_get_orders(payload):
    return [o.to_dict() for o in order_service.list_orders()]


@rpc_action("adminProcessOrder")
@require_admin_session
def admin_process_order(payload):
    order = order_service.decide(payload.get("orderId"), payload.get("action"))
    result = {"status": order.status}
    if order.issued_token_code:
        result["token"] = order.issued_token_code
    return result


@rpc_action("adminGetSettings")
@require_admin_session
def admin_get_settings(payload):
    return settings_service.get_settings()


@rpc_action("adminSaveSettings")
@require_admin_session
def admin_save_settings(payload):
    return settings_service.save_settings(payload.get("webhookUrl"), payload.get("paymentInfo"))


# --- POS OPS ---

@rpc_action("getStoreData")
@require_device_token
def get_store_data(payload):
    return {"products": [p.to_dict() for p in products_service.list_products()]}


@rpc_action("manageProduct")
@require_device_token
def manage_product(payload):
    return products_service.manage_product(payload.get("type"), payload.get("product"))


@rpc_action("processTransaction")
@require_device_token
def process_transaction(payload):
    sale = sales_service.record_sale(
        payload.get("cart"),
        payload.get("paymentType"),
        payload.get("customerName"),
        client_total=payload.get("total"),
    )
    return sales_service.sale_receipt(sale)


@rpc_action("getStoreHistory")
@require_device_token
def get_store_history(payload):
    return [t.to_dict(_tz()) for t in sales_service.history()]


@rpc_action("searchCustomer")
@require_device_token
def search_customer(payload):
    return [c.to_dict() for c in debt_service.search_customers(payload.get("query"))]


@rpc_action("processDebtPayment")
@require_device_token
def process_debt_payment(payload):
    return debt_service.record_debt_payment(payload.get("customerId"), payload.get("amount"))


@rpc_action("getDebtLog")
@require_device_token
def get_debt_log(payload):
    return [e.to_dict(_tz()) for e in debt_service.customer_debt_log(payload.get("customerId"))]


serializer = RequestSerializer(ACTIONS)


def dispatch():
    """Parse the body and hand it to the serializer."""
    body = request.get_json(force=True, silent=True)
    if not isinstance(body, dict):
        err = ValidationError("Request body must be a JSON object with an action")
        return jsonify(err.to_envelope()), err.http_status

    envelope, status = serializer.handle(body.get("action"), body.get("payload"))
    return jsonify(envelope), status


# Legacy clients post to /exec with a text/plain body
rpc_bp.add_url_rule("/api/rpc", "rpc", dispatch, methods=["POST"])
rpc_bp.add_url_rule("/exec", "exec", dispatch, methods=["POST"])
