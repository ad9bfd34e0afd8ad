# backend/arbpos/services/products_service.py
"""
Products Service

Single-store catalog. Updates are full-row replaces: every writable field
is taken from the incoming product, absent ones fall back to defaults.
"""
from __future__ import annotations

from typing import Any

from flask import current_app

from ..errors import InvalidProductAction, ProductNotFound, ValidationError
from ..extensions import db
from ..models import Product
from ..validation import MAX_QUANTITY, clean_str, coerce_amount, coerce_id, coerce_int

PRODUCT_WRITABLE_FIELDS = ("name", "price", "stock", "category")

ACTION_ADD = "ADD"
ACTION_UPDATE = "UPDATE"
ACTION_DELETE = "DELETE"


def validate_product_fields(product: Any) -> dict:
    """Clean a product payload into {name, price, stock, category}."""
    if not isinstance(product, dict):
        raise ValidationError("product must be an object")

    name = clean_str(product.get("name"))
    if not name:
        raise ValidationError("name cannot be blank")
    if len(name) > 255:
        raise ValidationError("name exceeds max length 255")

    price = product.get("price")
    raw_stock = product.get("stock")
    stock = 0 if raw_stock in (None, "") else coerce_int(raw_stock, "stock")
    if abs(stock) > MAX_QUANTITY:
        raise ValidationError(f"stock must be between -{MAX_QUANTITY} and {MAX_QUANTITY}")
    return {
        "name": name,
        "price": 0 if price in (None, "") else coerce_amount(price, "price"),
        # Negative stock is legal (oversold items)
        "stock": stock,
        "category": clean_str(product.get("category"))[:128],
    }


def _product_id(product: Any):
    raw = product.get("id") if isinstance(product, dict) else None
    if raw in (None, ""):
        raise ProductNotFound()
    try:
        return coerce_id(raw, "id")
    except ValidationError:
        raise ProductNotFound()


def _get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise ProductNotFound()
    return product


def list_products() -> list[Product]:
    return db.session.query(Product).order_by(Product.name.asc(), Product.id.asc()).all()


def create_product(fields: dict) -> Product:
    patch = validate_product_fields(fields)
    product = Product(**patch)
    db.session.add(product)
    db.session.commit()
    return product


def update_product(product_id: int, fields: dict) -> Product:
    product = _get_product(product_id)
    patch = validate_product_fields(fields)
    for k in PRODUCT_WRITABLE_FIELDS:
        setattr(product, k, patch[k])
    db.session.commit()
    return product


def delete_product(product_id: int) -> None:
    product = _get_product(product_id)
    db.session.delete(product)
    db.session.commit()
    current_app.logger.info("Product %s (%s) deleted", product_id, product.name)


def manage_product(action: str, product: Any) -> dict:
    """Catalog edit entry point used by the POS client (ADD/UPDATE/DELETE)."""
    action = clean_str(action).upper()

    if action == ACTION_ADD:
        created = create_product(product)
        return {"message": "Product Added", "id": created.id}

    if action == ACTION_UPDATE:
        update_product(_product_id(product), product)
        return {"message": "Product Updated"}

    if action == ACTION_DELETE:
        delete_product(_product_id(product))
        return {"message": "Product Deleted"}

    raise InvalidProductAction()
