"""Catalog price resolution.

A catalog product carries exactly one pricing mode:

  override  -> final price is the absolute override price
  discount  -> final price is base * (100 - pct) / 100
  none      -> final price is the product base price

The same functions back the API rows and the admin client badges.
"""
from __future__ import annotations
from typing import Optional, Tuple

MODE_OVERRIDE = 'override'
MODE_DISCOUNT = 'discount'
MODE_NONE = 'none'
ALL_MODES = (MODE_OVERRIDE, MODE_DISCOUNT, MODE_NONE)


def calculate_final_price(base_price: Optional[float], override_price: Optional[float],
                          discount_percentage: Optional[float], mode: str) -> Optional[float]:
    if mode == MODE_OVERRIDE:
        return override_price
    if base_price is None:
        return None
    if mode == MODE_DISCOUNT:
        pct = discount_percentage or 0
        return round(base_price * (100 - pct) / 100, 2)
    return base_price


def infer_mode(override_price: Optional[float], discount_percentage: Optional[float]) -> str:
    """Mode for rows written before the mode was persisted. Override wins."""
    if override_price is not None and override_price > 0:
        return MODE_OVERRIDE
    if discount_percentage is not None and discount_percentage > 0:
        return MODE_DISCOUNT
    return MODE_NONE


def pricing_badge(override_price: Optional[float], discount_percentage: Optional[float],
                  mode: Optional[str] = None) -> str:
    mode = mode if mode in ALL_MODES else infer_mode(override_price, discount_percentage)
    if mode == MODE_OVERRIDE:
        return 'Override'
    if mode == MODE_DISCOUNT and discount_percentage:
        return f'{discount_percentage:g}% Disc.'
    return 'Base'


def normalize_pricing(mode: Optional[str], override_price: Optional[float],
                      discount_percentage: Optional[float]) -> Tuple[str, Optional[float], float]:
    """Collapse a pricing request to one mode; the other value goes neutral.

    Without an explicit mode the populated value decides; populating both is
    ambiguous and rejected. Raises ValueError for out-of-range values or an
    unknown mode.
    """
    if mode is None:
        if (override_price or 0) > 0 and (discount_percentage or 0) > 0:
            raise ValueError('Set either overridePrice or discountPercentage, not both, or name a pricingMode')
        mode = infer_mode(override_price, discount_percentage)
    if mode not in ALL_MODES:
        raise ValueError(f'pricingMode must be one of {", ".join(ALL_MODES)}')
    if mode == MODE_OVERRIDE:
        if override_price is None or override_price < 0:
            raise ValueError('overridePrice must be a non-negative number in override mode')
        return mode, override_price, 0.0
    if mode == MODE_DISCOUNT:
        pct = discount_percentage or 0.0
        if pct < 0 or pct > 100:
            raise ValueError('discountPercentage must be between 0 and 100')
        return mode, None, pct
    return MODE_NONE, None, 0.0
