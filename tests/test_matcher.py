from __future__ import annotations

from storefront_sync.models import ExternalVariant, OptionKind
from storefront_sync.services.matcher import (
    load_variants,
    match_inventory_variants,
    match_product,
    match_products,
    match_variant,
)


def _variant(**fields) -> ExternalVariant:
    return ExternalVariant.model_validate(fields)


CANDIDATES = [
    {"id": "a-small", "sku": "A", "size": "S", "color": "Black"},
    {"id": "b-large", "sku": "B", "size": "large", "color": "Red", "shopifyInventoryItemId": 777},
    {"id": "nosku-medium", "sku": None, "size": " Medium ", "color": "black"},
]


def test_inventory_item_id_wins_over_sku():
    ext = _variant(sku="A", inventory_item_id="777", option1="S")

    assert match_variant(ext, CANDIDATES)["id"] == "b-large"


def test_sku_match_takes_precedence_over_size():
    ext = _variant(sku="A", option1="Large")

    assert match_variant(ext, CANDIDATES)["id"] == "a-small"


def test_size_fallback_is_case_and_whitespace_insensitive():
    ext = _variant(sku=None, option1=" Large ")

    assert match_variant(ext, CANDIDATES)["id"] == "b-large"


def test_unknown_sku_falls_back_to_size():
    ext = _variant(sku="ZZZ", option1="medium")

    assert match_variant(ext, CANDIDATES)["id"] == "nosku-medium"


def test_empty_sku_never_matches_sku_less_candidates():
    ext = _variant(sku="", option1="XL")

    assert match_variant(ext, CANDIDATES) is None


def test_no_match_returns_none():
    assert match_variant(_variant(option1="XXL"), CANDIDATES) is None
    assert match_variant(_variant(), CANDIDATES) is None


def test_declared_size_slot_is_used_for_matching():
    kinds = (OptionKind.COLOR, OptionKind.SIZE, OptionKind.UNSPECIFIED)
    ext = _variant(option1="Red", option2="S")

    assert match_variant(ext, CANDIDATES, kinds)["id"] == "a-small"


def test_inventory_matching_returns_every_candidate_of_first_tier():
    ext = _variant(option1="Black")

    found = match_inventory_variants(ext, CANDIDATES)

    assert [c["id"] for c in found] == ["a-small", "nosku-medium"]


def test_inventory_matching_prefers_inventory_item_tier():
    ext = _variant(inventory_item_id=777, option1="Black")

    assert [c["id"] for c in match_inventory_variants(ext, CANDIDATES)] == ["b-large"]


def test_inventory_matching_without_any_match_is_empty():
    assert match_inventory_variants(_variant(sku="nope", option1="Teal"), CANDIDATES) == []


def test_match_product_is_scoped_to_storefront(db):
    db.put("LUNERA/products/items/lace-bralette", {"sourceShopifyId": "999", "name": "Lace Bralette"})
    db.put("NOIR/products/items/other", {"sourceShopifyId": "123"})

    assert match_product(db, 999, "LUNERA").id == "lace-bralette"
    assert match_product(db, 999, "NOIR") is None
    assert match_products(db, "123", "NOIR")[0].id == "other"


def test_match_product_without_storefront_uses_global_collection(db):
    db.put("products/lace-bralette", {"sourceShopifyId": "999"})

    assert match_product(db, 999, None).id == "lace-bralette"


def test_load_variants_includes_document_id(db):
    ref = db.put("LUNERA/products/items/p1", {"sourceShopifyId": "1"})
    db.put("LUNERA/products/items/p1/variants/X1", {"sku": "X1", "stock": 2})

    assert load_variants(ref) == [{"sku": "X1", "stock": 2, "id": "X1"}]
