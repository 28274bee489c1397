from ..config import DEFAULT_STOREFRONT
from ..utils.logger import debug, error

MIRROR_COLLECTION = "shopifyItems"
GLOBAL_PRODUCTS_COLLECTION = "products"

# Root collections that hold shared records rather than a storefront catalog
NON_STOREFRONT_COLLECTIONS = frozenset({
    MIRROR_COLLECTION,
    "orders",
    "carts",
    "users",
    "userEvents",
})


def products_collection(db, storefront: str | None = None):
    """`<storefront>/products/items` for a storefront partition, root `products` otherwise."""
    if storefront:
        return db.collection(storefront).document("products").collection("items")
    return db.collection(GLOBAL_PRODUCTS_COLLECTION)


def _has_products(db, storefront: str) -> bool:
    return bool(list(products_collection(db, storefront).limit(1).stream()))


def list_storefronts(db, default: str = DEFAULT_STOREFRONT) -> list[str]:
    """Root collections that look like storefront partitions; never empty."""
    storefronts = []
    try:
        for coll in db.collections():
            sid = coll.id
            if sid in NON_STOREFRONT_COLLECTIONS:
                continue
            try:
                if sid == default or _has_products(db, sid):
                    storefronts.append(sid)
            except Exception as e:
                debug(f"[storefronts] skipping {sid}: {e}")
    except Exception as e:
        error(f"[storefronts] could not list root collections, using {default}: {e}")
        return [default]
    return storefronts or [default]
