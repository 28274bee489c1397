"""
Pydantic models for the Shopify payloads reconciliation reads.

Shopify omits keys freely, so every field except the product id is optional.
Defaulting rules:
  - missing lists (variants, images, options, variant_ids) become []
  - inventory_quantity missing or null counts as 0 stock
  - prices are kept as received and parsed by price_value(); anything that is
    not a finite number parses to None
  - images may arrive as bare URL strings and are lifted to {"src": url}
Extra keys are kept so the raw payload survives validation.
"""

import math
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

Id = Union[int, str]


def parse_price(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    return price if math.isfinite(price) else None


def norm_token(value) -> Optional[str]:
    if value is None:
        return None
    token = str(value).strip().lower()
    return token or None


class OptionKind(str, Enum):
    SIZE = "size"
    COLOR = "color"
    MATERIAL = "material"
    UNSPECIFIED = "unspecified"

    @classmethod
    def from_name(cls, name: Optional[str]) -> "OptionKind":
        return _OPTION_NAMES.get(norm_token(name) or "", cls.UNSPECIFIED)


_OPTION_NAMES = {
    "size": OptionKind.SIZE,
    "color": OptionKind.COLOR,
    "colour": OptionKind.COLOR,
    "material": OptionKind.MATERIAL,
    "fabric": OptionKind.MATERIAL,
}

NO_OPTION_KINDS = (OptionKind.UNSPECIFIED,) * 3


class ExternalImage(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[Id] = None
    src: Optional[str] = None
    variant_ids: List[Id] = Field(default_factory=list)

    @field_validator("variant_ids", mode="before")
    @classmethod
    def none_to_list(cls, v):
        return v or []


class ExternalOption(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    position: Optional[int] = None
    values: List[str] = Field(default_factory=list)


class ExternalVariant(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[Id] = None
    sku: Optional[str] = None
    option1: Optional[str] = None
    option2: Optional[str] = None
    option3: Optional[str] = None
    price: Optional[Union[str, float, int]] = None
    inventory_quantity: Optional[int] = None
    inventory_item_id: Optional[Id] = None
    image_id: Optional[Id] = None

    @property
    def stock(self) -> int:
        return self.inventory_quantity or 0

    def price_value(self) -> Optional[float]:
        return parse_price(self.price)

    def _slot_token(self, option_kinds, wanted: OptionKind) -> Optional[str]:
        """Value of the slot declared as `wanted`, else the first non-empty
        slot not declared as some other attribute."""
        values = (self.option1, self.option2, self.option3)
        kinds = tuple(option_kinds or NO_OPTION_KINDS)
        if wanted in kinds:
            return norm_token(values[kinds.index(wanted)])
        for kind, value in zip(kinds, values):
            if kind is OptionKind.UNSPECIFIED and norm_token(value):
                return norm_token(value)
        return None

    def size_token(self, option_kinds=None) -> Optional[str]:
        return self._slot_token(option_kinds, OptionKind.SIZE)

    def color_token(self, option_kinds=None) -> Optional[str]:
        return self._slot_token(option_kinds, OptionKind.COLOR)


class ExternalProduct(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Id
    title: Optional[str] = None
    handle: Optional[str] = None
    status: Optional[str] = None
    vendor: Optional[str] = None
    product_type: Optional[str] = None
    tags: Optional[Union[str, List[str]]] = None
    variants: List[ExternalVariant] = Field(default_factory=list)
    images: List[ExternalImage] = Field(default_factory=list)
    options: List[ExternalOption] = Field(default_factory=list)

    @field_validator("variants", "options", mode="before")
    @classmethod
    def none_to_list(cls, v):
        return v or []

    @field_validator("images", mode="before")
    @classmethod
    def lift_image_urls(cls, v):
        return [{"src": img} if isinstance(img, str) else img for img in (v or [])]

    @property
    def source_id(self) -> str:
        return str(self.id)

    def tag_list(self) -> List[str]:
        if not self.tags:
            return []
        if isinstance(self.tags, list):
            return [t.strip() for t in self.tags if t and t.strip()]
        return [t.strip() for t in self.tags.split(",") if t.strip()]

    def image_urls(self) -> List[str]:
        return [img.src for img in self.images if img.src]

    def base_price(self) -> Optional[float]:
        return self.variants[0].price_value() if self.variants else None

    def option_kinds(self) -> tuple:
        kinds = list(NO_OPTION_KINDS)
        for idx, opt in enumerate(self.options[:3]):
            pos = opt.position if opt.position in (1, 2, 3) else idx + 1
            kinds[pos - 1] = OptionKind.from_name(opt.name)
        return tuple(kinds)

    def variant_image_urls(self, variant: ExternalVariant) -> List[str]:
        """Images tagged with this variant first, then the product gallery, de-duplicated.
        Without tagged images this is just the product gallery."""
        product_urls = self.image_urls()
        if variant.id is None:
            return product_urls
        vid = str(variant.id)
        tagged = [
            img.src for img in self.images
            if img.src and vid in {str(i) for i in img.variant_ids}
        ]
        if not tagged:
            return product_urls
        return list(dict.fromkeys(tagged + product_urls))


class InventoryLevel(BaseModel):
    model_config = ConfigDict(extra="allow")

    inventory_item_id: Optional[Id] = None
    location_id: Optional[Id] = None
    available: Optional[int] = None
