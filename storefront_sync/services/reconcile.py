# storefront_sync/services/reconcile.py
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Optional, Tuple

from google.api_core.exceptions import Aborted, DeadlineExceeded, ServiceUnavailable
from google.cloud.firestore import SERVER_TIMESTAMP
from google.cloud.firestore_v1.base_query import FieldFilter
from pydantic import ValidationError
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from ..clients.shopify import fetch_inventory_levels
from ..config import DEFAULT_STOREFRONT
from ..models import ExternalProduct, ExternalVariant
from ..utils.hash import payload_hash
from ..utils.logger import debug, info, warn, error
from .matcher import (
    load_variants,
    match_inventory_variants,
    match_product,
    match_products,
    match_variant,
    same_id,
)
from .storefronts import MIRROR_COLLECTION, list_storefronts

MAX_WORKERS = 8

# =========================================================
# Document writes
# =========================================================

@retry(
    reraise=True,
    stop=stop_after_attempt(4),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
    retry=retry_if_exception_type((Aborted, DeadlineExceeded, ServiceUnavailable)),
)
def _write(ref, data: dict):
    ref.update(data)


def _run_all(fn, items: list) -> list:
    """Apply fn to every item concurrently and wait for all of them."""
    if not items:
        return []
    with ThreadPoolExecutor(max_workers=min(MAX_WORKERS, len(items))) as pool:
        return list(pool.map(fn, items))


def _number(value) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)

# =========================================================
# Raw mirror (shopifyItems) and completion log
# =========================================================

def mirror_fields(product: ExternalProduct, raw: dict) -> dict:
    return {
        "title": product.title,
        "handle": product.handle or None,
        "status": product.status or None,
        "vendor": product.vendor or None,
        "productType": product.product_type or None,
        "tags": product.tag_list(),
        "imageUrls": product.image_urls(),
        "rawProduct": raw,
        "updatedAt": SERVER_TIMESTAMP,
    }


def _find_mirror(db, shopify_id):
    query = db.collection(MIRROR_COLLECTION).where(filter=FieldFilter("shopifyId", "==", shopify_id)).limit(1)
    found = list(query.stream())
    return found[0] if found else None


def update_mirror(db, product: ExternalProduct, raw: dict, digest: str) -> Tuple[object, set]:
    """Refresh an existing mirror document. Returns (ref, storefronts already
    reconciled for this exact payload); (None, set()) when not mirrored."""
    snap = _find_mirror(db, product.id)
    if snap is None:
        info(f"[mirror] Shopify item {product.id} not found in {MIRROR_COLLECTION}, skipping update")
        return None, set()

    state = (snap.to_dict() or {}).get("syncState") or {}
    completed = set(state.get("processedStorefronts") or []) if state.get("payloadHash") == digest else set()

    data = mirror_fields(product, raw)
    data["syncState"] = {"payloadHash": digest, "processedStorefronts": sorted(completed)}
    snap.reference.set(data, merge=True)
    info(f"[mirror] updated Shopify item {snap.id}")
    return snap.reference, completed


def record_completed(mirror_ref, digest: str, storefronts: Iterable[str]):
    mirror_ref.set(
        {"syncState": {"payloadHash": digest, "processedStorefronts": sorted(set(storefronts))}},
        merge=True,
    )


def upsert_mirror(db, raw: dict) -> str:
    """Create or refresh the mirror document for one Shopify product; returns its id."""
    product = ExternalProduct.model_validate(raw)
    snap = _find_mirror(db, product.id)
    ref = snap.reference if snap is not None else db.collection(MIRROR_COLLECTION).document(product.source_id)
    data = mirror_fields(product, raw)
    data["shopifyId"] = product.id
    ref.set(data, merge=True)
    return ref.id

# =========================================================
# Product webhook: catalog sweep
# =========================================================

def _update_variant(variants_coll, product: ExternalProduct, ext: ExternalVariant,
                    candidates: list[dict], base_price: float) -> bool:
    """Write stock, priceOverride and images onto the matched catalog variant.

    priceOverride is the Shopify variant price when it differs from the
    product's base price, and null when it equals it or does not parse.
    """
    target = match_variant(ext, candidates, product.option_kinds())
    if target is None:
        info(f"[products] could not match Shopify variant {ext.id} to an existing variant")
        return True

    price = ext.price_value()
    update = {
        "stock": ext.stock,
        "priceOverride": price if price is not None and price != base_price else None,
        "updatedAt": SERVER_TIMESTAMP,
    }
    images = product.variant_image_urls(ext)
    if images:
        update["images"] = images

    try:
        _write(variants_coll.document(target["id"]), update)
    except Exception as e:
        error(f"[products] variant {target['id']} update failed: {e}")
        return False
    debug(f"[products] updated variant {target['id']} (stock {ext.stock}, images {len(images)})")
    return True


def _update_product(snap, product: ExternalProduct) -> bool:
    """Write product-level fields then every matched variant. Returns False if any write failed."""
    stored = snap.to_dict() or {}
    base_price = product.base_price()
    if base_price is None:
        base_price = _number(stored.get("basePrice")) or 0
    images = product.image_urls() or stored.get("images") or []

    _write(snap.reference, {"basePrice": base_price, "images": images, "updatedAt": SERVER_TIMESTAMP})

    if not product.variants:
        return True
    variants_coll = snap.reference.collection("variants")
    candidates = load_variants(snap.reference)
    results = _run_all(
        lambda ext: _update_variant(variants_coll, product, ext, candidates, base_price),
        product.variants,
    )
    return all(results)


def _sweep_storefront(db, product: ExternalProduct, storefront: str) -> Tuple[list, bool]:
    """Returns (updated products, complete). A storefront holding no product
    for this source id is never complete, so it is looked up again next time."""
    updated, complete = [], True
    try:
        snaps = match_products(db, product.source_id, storefront)
    except Exception as e:
        error(f"[products] lookup in storefront {storefront} failed: {e}")
        return [], False

    for snap in snaps:
        try:
            complete = _update_product(snap, product) and complete
        except Exception as e:
            error(f"[products] updating {snap.id} in storefront {storefront} failed: {e}")
            complete = False
            continue
        info(f"[products] updated processed product {snap.id} in storefront {storefront}")
        updated.append({"productId": snap.id, "storefront": storefront})
    return updated, complete and bool(snaps)


def sweep_storefronts(db, product: ExternalProduct, storefronts: list[str]) -> Tuple[list, set]:
    """Reconcile every storefront concurrently. Returns (updated products, storefronts fully done)."""
    results = _run_all(lambda sf: (sf, _sweep_storefront(db, product, sf)), storefronts)
    updated, done = [], set()
    for sf, (sf_updated, complete) in results:
        updated.extend(sf_updated)
        if complete:
            done.add(sf)
    return updated, done


def apply_product_update(db, product: ExternalProduct, *, default_storefront: str = DEFAULT_STOREFRONT,
                         completed: Iterable[str] = ()) -> Tuple[list, set]:
    """Reconcile every storefront not in `completed`.

    Returns (updated products, storefronts where every matched product was
    fully written).
    """
    skip = set(completed)
    if skip:
        info(f"[products] PID {product.id} already reconciled in {sorted(skip)}, skipping those")
    storefronts = [sf for sf in list_storefronts(db, default_storefront) if sf not in skip]
    return sweep_storefronts(db, product, storefronts)


def sync_product(db, product: ExternalProduct, raw: dict, *, default_storefront: str = DEFAULT_STOREFRONT) -> list[dict]:
    """Product webhook: refresh the mirror, sweep storefronts, log which storefronts converged."""
    digest = payload_hash(raw)
    mirror_ref, completed = None, set()
    try:
        mirror_ref, completed = update_mirror(db, product, raw, digest)
    except Exception as e:
        error(f"[mirror] failed to update Shopify item {product.id}: {e}")

    updated, done = apply_product_update(db, product, default_storefront=default_storefront, completed=completed)

    if mirror_ref is not None:
        try:
            record_completed(mirror_ref, digest, completed | done)
        except Exception as e:
            warn(f"[mirror] could not record completion for {product.id}: {e}")
    return updated

# =========================================================
# Inventory item webhook
# =========================================================

def _find_catalog_product(db, source_id: str, scopes: list):
    for scope in scopes:
        try:
            snap = match_product(db, source_id, scope)
        except Exception as e:
            error(f"[inventory] lookup of {source_id} in {scope or 'products'} failed: {e}")
            continue
        if snap is not None:
            return snap
    return None


def find_variant_refs_for_inventory_item(db, inventory_item_id, *,
                                         default_storefront: str = DEFAULT_STOREFRONT) -> list:
    refs = {}
    scopes = None
    for mirror_snap in db.collection(MIRROR_COLLECTION).stream():
        raw = (mirror_snap.to_dict() or {}).get("rawProduct")
        if not raw:
            continue
        try:
            product = ExternalProduct.model_validate(raw)
        except ValidationError as e:
            debug(f"[inventory] skipping unreadable mirror {mirror_snap.id}: {e.error_count()} errors")
            continue

        for ext in product.variants:
            if not same_id(ext.inventory_item_id, inventory_item_id):
                continue
            if scopes is None:
                # root products collection first, then each storefront partition
                scopes = [None] + list_storefronts(db, default_storefront)
            snap = _find_catalog_product(db, product.source_id, scopes)
            if snap is None:
                continue
            try:
                candidates = load_variants(snap.reference)
            except Exception as e:
                error(f"[inventory] reading variants of {snap.reference.path} failed: {e}")
                continue
            for cand in match_inventory_variants(ext, candidates, product.option_kinds()):
                ref = snap.reference.collection("variants").document(cand["id"])
                refs[ref.path] = ref
    return list(refs.values())


def apply_inventory_level_update(db, store: dict, inventory_item_id, *,
                                 default_storefront: str = DEFAULT_STOREFRONT) -> Tuple[Optional[dict], int]:
    """Set stock on every variant mapped to this inventory item.

    Returns (levels, variants updated); levels is None when Shopify could not
    be asked, in which case nothing is written.
    """
    levels = fetch_inventory_levels(store, inventory_item_id)
    if not levels:
        return None, 0

    refs = find_variant_refs_for_inventory_item(db, inventory_item_id, default_storefront=default_storefront)
    if not refs:
        info(f"[inventory] no variants mapped to inventory item {inventory_item_id}")
        return levels, 0

    total = levels["totalAvailable"]

    def set_stock(ref) -> bool:
        try:
            _write(ref, {"stock": total, "updatedAt": SERVER_TIMESTAMP})
            return True
        except Exception as e:
            error(f"[inventory] variant {ref.id} update failed: {e}")
            return False

    count = sum(_run_all(set_stock, refs))
    info(f"[inventory] updated {count} variants for inventory item {inventory_item_id} with total available {total}")
    return levels, count
