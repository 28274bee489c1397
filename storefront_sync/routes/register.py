# storefront_sync/routes/register.py
import requests
from flask import Blueprint, abort, current_app, jsonify

from ..clients.shopify import ShopifyApiError, list_webhooks, create_webhook, update_webhook
from ..config import shopify_store
from ..utils.logger import info, error

bp = Blueprint("register", __name__)

WEBHOOK_PREFIX = "/api/shopify/webhooks"

# Shopify topic -> handler path under WEBHOOK_PREFIX
WEBHOOK_TOPICS = {
    "products/update": "products-update",
    "inventory_items/update": "inventory-item-update",
}


def ensure_webhooks(store: dict, base_url: str) -> dict:
    """Point every handled topic at this service.

    Returns {topic: "unchanged" | "repointed" | "created"}. A rejected Shopify
    call raises ShopifyApiError and stops the run; topics handled before it
    keep their new state, so calling again is safe.
    """
    by_topic: dict[str, list] = {}
    for hook in list_webhooks(store):
        by_topic.setdefault(hook.get("topic"), []).append(hook)

    actions = {}
    for topic, path in WEBHOOK_TOPICS.items():
        address = f"{base_url.rstrip('/')}{WEBHOOK_PREFIX}/{path}"
        hooks = by_topic.get(topic, [])
        if any(h.get("address") == address for h in hooks):
            actions[topic] = "unchanged"
        elif hooks:
            update_webhook(store, hooks[0]["id"], address)
            actions[topic] = "repointed"
        else:
            create_webhook(store, topic, address)
            actions[topic] = "created"
        info(f"[register] {topic} {actions[topic]} ({address})")
    return actions


@bp.get("")
def register():
    store = shopify_store(current_app.config)
    base_url = current_app.config.get("BASE_URL")
    if not base_url:
        abort(500, description="BASE_URL is not configured")
    if not (store.get("domain") and store.get("token")):
        abort(500, description="SHOPIFY_STORE_URL or SHOPIFY_ACCESS_TOKEN is not configured")

    try:
        actions = ensure_webhooks(store, base_url)
    except (ShopifyApiError, requests.RequestException) as e:
        error(f"[register] webhook registration failed: {e}")
        abort(502, description=str(e))
    return jsonify(ok=True, webhooks=actions), 200
