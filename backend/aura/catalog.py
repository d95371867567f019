# Overview: Static box catalog; sizes, slot counts and prices.

"""
Box Catalog

Sizes form a closed set. Each size has exactly one config, fixed for the
lifetime of the process. Prices are list prices for display; the amount
actually billed is the Stripe price configured for the size
(BOX_PRICE_IDS), so nothing here is computed at checkout.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Mapping


class BoxSize(str, Enum):
    STARTER = "starter"
    VOYAGER = "voyager"
    BUNKER = "bunker"


@dataclass(frozen=True)
class BoxConfig:
    size: BoxSize
    slots: int
    price: Decimal
    description: str

    def to_dict(self) -> dict:
        return {
            "size": self.size.value,
            "slots": self.slots,
            "price": str(self.price),
            "description": self.description,
        }


BOX_CONFIGS: dict[BoxSize, BoxConfig] = {
    BoxSize.STARTER: BoxConfig(
        size=BoxSize.STARTER,
        slots=8,
        price=Decimal("59.99"),
        description="Perfect for individuals - 8 premium meals",
    ),
    BoxSize.VOYAGER: BoxConfig(
        size=BoxSize.VOYAGER,
        slots=12,
        price=Decimal("84.99"),
        description="Great for couples - 12 premium meals",
    ),
    BoxSize.BUNKER: BoxConfig(
        size=BoxSize.BUNKER,
        slots=24,
        price=Decimal("149.99"),
        description="Family pack - 24 premium meals",
    ),
}


def _check_catalog() -> None:
    if set(BOX_CONFIGS) != set(BoxSize):
        raise RuntimeError("Box catalog must define exactly one config per size")
    for size, config in BOX_CONFIGS.items():
        if config.size is not size:
            raise RuntimeError(f"Box config registered under {size.value} describes {config.size.value}")
        if config.slots <= 0 or config.price <= 0:
            raise RuntimeError(f"Box config {size.value} must have positive slots and price")


_check_catalog()


def lookup(size: str) -> BoxConfig | None:
    """Return the config for a size name, or None if the size is not offered."""
    try:
        return BOX_CONFIGS[BoxSize(size)]
    except ValueError:
        return None


def all_boxes() -> list[BoxConfig]:
    """Configs in tier order (smallest first)."""
    return [BOX_CONFIGS[size] for size in BoxSize]


def check_price_ids(price_ids: Mapping[str, str]) -> None:
    """
    Verify every size has a billing price configured.

    Raises ValueError naming the missing sizes. Called once at startup so a
    misconfigured deployment fails fast instead of at the first checkout.
    """
    missing = [size.value for size in BoxSize if not price_ids.get(size.value)]
    if missing:
        raise ValueError(f"Missing billing price id for box sizes: {', '.join(missing)}")


def price_id_for(size: BoxSize | str, price_ids: Mapping[str, str]) -> str:
    key = size.value if isinstance(size, BoxSize) else size
    return price_ids[key]
