# storefront_sync/routes/webhooks.py
import json

from flask import Blueprint, current_app, jsonify

from ..clients.firestore import get_db
from ..config import shopify_store
from ..models import ExternalProduct
from ..services.reconcile import apply_inventory_level_update, sync_product
from ..utils.logger import info, warn, error
from ..utils.security import verify_webhook_hmac

bp = Blueprint("webhooks", __name__)

INVENTORY_ITEM_PATH = "/api/shopify/webhooks/inventory-item-update"


def _secret():
    return current_app.config.get("SHOPIFY_WEBHOOK_SECRET")


def _default_storefront():
    return current_app.config.get("DEFAULT_STOREFRONT")


def _load_json(raw: bytes):
    return json.loads(raw.decode("utf-8")) if raw else {}


def _inventory_item_id(payload):
    if not isinstance(payload, dict):
        return None
    nested = payload.get("inventory_item")
    return payload.get("id") or (nested.get("id") if isinstance(nested, dict) else None)


@bp.post("/products-update")
def products_update():
    raw = verify_webhook_hmac(_secret())
    try:
        payload = _load_json(raw)
        product = ExternalProduct.model_validate(payload)
    except ValueError as e:
        warn(f"[products] rejecting unreadable product payload: {e}")
        return jsonify(ok=False, message="Invalid product payload"), 200

    info(f"[products] webhook received for Shopify product {product.id} ({product.title})")
    try:
        updated = sync_product(get_db(), product, payload, default_storefront=_default_storefront())
    except Exception as e:
        error(f"[products] failed to update processed product for Shopify ID {product.id}: {e}")
        return jsonify(ok=False, error="Failed to update processed product", message=str(e)), 500

    info(f"[products] PID {product.id} updated {len(updated)} processed product(s)")
    return jsonify(ok=True, productId=product.id, updatedProducts=updated), 200


@bp.get("/products-update")
def products_update_status():
    return jsonify(message="Shopify webhook endpoint is active"), 200


@bp.post("/inventory-item-update")
def inventory_item_update():
    raw = verify_webhook_hmac(_secret())
    try:
        payload = _load_json(raw)
    except ValueError:
        payload = None
    item_id = _inventory_item_id(payload)
    if not item_id:
        warn("[inventory] inventory item update payload missing inventory item id")
        return jsonify(ok=False, message="Missing inventory item id"), 200

    info(f"[inventory] webhook received: inventory_item_id={item_id}")
    try:
        levels, count = apply_inventory_level_update(
            get_db(), shopify_store(current_app.config), item_id,
            default_storefront=_default_storefront(),
        )
    except Exception as e:
        error(f"[inventory] processing inventory item {item_id} failed: {e}")
        return jsonify(error="Internal server error", message=str(e)), 500

    if levels is None:
        return jsonify(
            ok=True,
            inventory_item_id=item_id,
            message="Inventory item updated, but inventory levels could not be fetched.",
        ), 200
    if count == 0:
        return jsonify(
            ok=True,
            inventory_item_id=item_id,
            message="No variants mapped to this inventory item. Levels fetched for reference.",
            totalAvailable=levels["totalAvailable"],
        ), 200
    return jsonify(
        ok=True,
        inventory_item_id=item_id,
        updatedVariants=count,
        totalAvailable=levels["totalAvailable"],
    ), 200


@bp.get("/inventory-item-update")
def inventory_item_update_status():
    return jsonify(message="Shopify inventory item update webhook endpoint is active"), 200


@bp.route("/inventory-update", methods=["GET", "POST"])
def inventory_update_moved():
    return jsonify(
        ok=False,
        message=f"This endpoint has moved. Please update your Shopify webhook to {INVENTORY_ITEM_PATH}.",
    ), 410
