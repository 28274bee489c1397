"""
Locate the catalog documents an inbound Shopify record refers to.

Variant candidates are plain dicts of the stored variant fields plus the
document id under "id", as produced by load_variants().
"""
from typing import Optional

from google.cloud.firestore_v1.base_query import FieldFilter

from ..models import ExternalVariant, norm_token
from .storefronts import products_collection


def same_id(a, b) -> bool:
    return a is not None and b is not None and str(a) == str(b)


def _by_inventory_item(ext: ExternalVariant, candidates: list[dict]) -> list[dict]:
    return [c for c in candidates if same_id(c.get("shopifyInventoryItemId"), ext.inventory_item_id)]


def _by_sku(ext: ExternalVariant, candidates: list[dict]) -> list[dict]:
    if not ext.sku:
        return []
    return [c for c in candidates if c.get("sku") == ext.sku]


def _by_size(ext: ExternalVariant, candidates: list[dict], option_kinds=None) -> list[dict]:
    token = ext.size_token(option_kinds)
    if not token:
        return []
    return [c for c in candidates if norm_token(c.get("size")) == token]


def _by_size_or_color(ext: ExternalVariant, candidates: list[dict], option_kinds=None) -> list[dict]:
    size = ext.size_token(option_kinds)
    color = ext.color_token(option_kinds)
    return [
        c for c in candidates
        if (size and norm_token(c.get("size")) == size)
        or (color and norm_token(c.get("color")) == color)
    ]


def match_variant(ext: ExternalVariant, candidates: list[dict], option_kinds=None) -> Optional[dict]:
    """First candidate matched by inventory item id, then SKU, then size token."""
    for found in (
        _by_inventory_item(ext, candidates),
        _by_sku(ext, candidates),
        _by_size(ext, candidates, option_kinds),
    ):
        if found:
            return found[0]
    return None


def match_inventory_variants(ext: ExternalVariant, candidates: list[dict], option_kinds=None) -> list[dict]:
    """All candidates of the first strategy tier that matches anything.

    The inventory path cannot tell size from color, so the last tier compares
    the option token against both attributes.
    """
    for found in (
        _by_inventory_item(ext, candidates),
        _by_sku(ext, candidates),
        _by_size_or_color(ext, candidates, option_kinds),
    ):
        if found:
            return found
    return []


def match_products(db, external_product_id, storefront: str | None) -> list:
    """Catalog product snapshots imported from this Shopify product."""
    query = products_collection(db, storefront).where(
        filter=FieldFilter("sourceShopifyId", "==", str(external_product_id))
    )
    return list(query.stream())


def match_product(db, external_product_id, storefront: str | None):
    found = match_products(db, external_product_id, storefront)
    return found[0] if found else None


def load_variants(product_ref) -> list[dict]:
    return [{**(snap.to_dict() or {}), "id": snap.id} for snap in product_ref.collection("variants").stream()]
