import time
from typing import Optional

import requests
from pydantic import ValidationError
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from ..config import DEFAULT_API_VERSION
from ..models import InventoryLevel
from ..utils.logger import info, warn, error


class ShopifyApiError(Exception):
    def __init__(self, status_code: int, body: str):
        super().__init__(f"Shopify API error {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class TransientShopifyError(ShopifyApiError):
    pass


TRANSIENT_STATUSES = (409, 429, 500, 502, 503, 504)


def admin_base(domain: str, api_version: str = DEFAULT_API_VERSION) -> str:
    return f"https://{domain}/admin/api/{api_version}"


def rest_headers(token: str) -> dict:
    return {"Content-Type": "application/json", "X-Shopify-Access-Token": token}


def _store_base(store: dict) -> str:
    return admin_base(store["domain"], store.get("api_version") or DEFAULT_API_VERSION)


def _check(r: requests.Response) -> requests.Response:
    if r.status_code in TRANSIENT_STATUSES:
        raise TransientShopifyError(r.status_code, r.text)
    if not 200 <= r.status_code < 300:
        raise ShopifyApiError(r.status_code, r.text)
    return r


@retry(
    reraise=True,
    stop=stop_after_attempt(5),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=6),
    retry=retry_if_exception_type(TransientShopifyError),
)
def _get_with_retry(url: str, token: str, params: Optional[dict] = None) -> requests.Response:
    r = requests.get(url, headers=rest_headers(token), params=params, timeout=25)
    return _check(r)


# =========================================================
# Inventory levels
# =========================================================

def fetch_inventory_levels(store: dict, inventory_item_id) -> Optional[dict]:
    """Current levels for one inventory item across all locations.

    Returns {"totalAvailable": int, "levels": [...]} or None when credentials
    are missing, the call fails, or Shopify reports no levels.
    """
    if not (store.get("domain") and store.get("token")):
        warn("[inventory] SHOPIFY_STORE_URL or SHOPIFY_ACCESS_TOKEN not set, cannot refresh inventory levels")
        return None
    try:
        r = _get_with_retry(
            f"{_store_base(store)}/inventory_levels.json",
            store["token"],
            params={"inventory_item_ids": inventory_item_id},
        )
        levels = r.json().get("inventory_levels") or []
        total = sum(InventoryLevel.model_validate(lvl).available or 0 for lvl in levels)
    except (requests.RequestException, ShopifyApiError, ValidationError, ValueError) as e:
        error(f"[inventory] failed to fetch inventory levels for item {inventory_item_id}: {e}")
        return None
    if not levels:
        return None
    return {"totalAvailable": total, "levels": levels}


# =========================================================
# Products (cursor pagination via Link header)
# =========================================================

def list_products(store: dict, page_delay: float = 0.5, limit: int = 250) -> list[dict]:
    if not (store.get("domain") and store.get("token")):
        raise ShopifyApiError(0, "SHOPIFY_STORE_URL and SHOPIFY_ACCESS_TOKEN are required")
    url = f"{_store_base(store)}/products.json"
    params = {"limit": limit}
    products: list[dict] = []
    while url:
        r = _get_with_retry(url, store["token"], params=params)
        page = r.json().get("products") or []
        products.extend(page)
        info(f"[products] fetched {len(page)} products (total {len(products)})")
        # the next link already carries page_info and limit
        url = (r.links.get("next") or {}).get("url")
        params = None
        if url and page_delay:
            time.sleep(page_delay)
    return products


# =========================================================
# Webhook subscriptions
# =========================================================

def list_webhooks(store: dict) -> list[dict]:
    r = _get_with_retry(f"{_store_base(store)}/webhooks.json", store["token"])
    return r.json().get("webhooks", [])


def create_webhook(store: dict, topic: str, address: str) -> dict:
    r = requests.post(
        f"{_store_base(store)}/webhooks.json",
        headers=rest_headers(store["token"]),
        json={"webhook": {"topic": topic, "address": address, "format": "json"}},
        timeout=20,
    )
    return _check(r).json().get("webhook") or {}


def update_webhook(store: dict, webhook_id, address: str) -> dict:
    r = requests.put(
        f"{_store_base(store)}/webhooks/{webhook_id}.json",
        headers=rest_headers(store["token"]),
        json={"webhook": {"id": webhook_id, "address": address}},
        timeout=20,
    )
    return _check(r).json().get("webhook") or {}
