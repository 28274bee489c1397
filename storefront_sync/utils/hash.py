import json, hashlib


def payload_hash(prod: dict) -> str:
    """Fingerprint of the fields reconciliation reads from a Shopify product."""
    fields = {
        "id": str(prod.get("id")),
        "variants": [
            {
                "id": v.get("id"),
                "sku": v.get("sku"),
                "price": v.get("price"),
                "qty": v.get("inventory_quantity"),
                "inv": v.get("inventory_item_id"),
                "opt1": v.get("option1"),
                "opt2": v.get("option2"),
                "opt3": v.get("option3"),
            } for v in (prod.get("variants") or [])
        ],
        "images": [
            {"src": img.get("src"), "variant_ids": img.get("variant_ids") or []}
            if isinstance(img, dict) else {"src": img, "variant_ids": []}
            for img in (prod.get("images") or [])
        ],
        "options": [o.get("name") for o in (prod.get("options") or []) if isinstance(o, dict)],
    }
    return hashlib.sha256(json.dumps(fields, sort_keys=True, default=str).encode()).hexdigest()
