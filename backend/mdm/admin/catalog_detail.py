"""Catalog detail screen: catalog-product rows enriched with live product data.

Each row asks the product API for the current product with a 5 second
timeout. A failed or slow lookup falls back to the product fields cached
on the catalog-product row, so one bad product never blanks the table.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

import requests

from mdm.services.pricing import calculate_final_price, pricing_badge
from mdm.admin.client import ApiClient, ApiError
from mdm.admin.refresh import Debouncer
from mdm.admin.state import PageController

log = logging.getLogger(__name__)

ENRICHMENT_TIMEOUT = 5.0

PRICING_FILTERS = ('override', 'discount', 'base')


def _fallback_product(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'id': row.get('productId'),
        'sku': row.get('productSku'),
        'name': row.get('productName'),
        'basePrice': row.get('productBasePrice'),
        'status': None,
        'type': None,
    }


def enrich_row(client: ApiClient, row: Dict[str, Any], timeout: float = ENRICHMENT_TIMEOUT) -> Dict[str, Any]:
    try:
        live = client.get_product(row['productId'], timeout=timeout)
        product = {k: live.get(k) for k in ('id', 'sku', 'name', 'basePrice', 'status', 'type')}
        enriched = True
    except (ApiError, requests.RequestException) as exc:
        log.warning('Product lookup for %s failed, using cached fields: %s', row.get('productId'), exc)
        product = _fallback_product(row)
        enriched = False
    mode = row.get('pricingMode')
    return dict(
        row,
        product=product,
        enriched=enriched,
        finalPrice=calculate_final_price(product['basePrice'], row.get('overridePrice'),
                                         row.get('discountPercentage'), mode),
        pricingBadge=pricing_badge(row.get('overridePrice'), row.get('discountPercentage'), mode),
    )


def _pricing_kind(row: Dict[str, Any]) -> str:
    badge = row.get('pricingBadge') or pricing_badge(row.get('overridePrice'), row.get('discountPercentage'),
                                                     row.get('pricingMode'))
    if badge == 'Override':
        return 'override'
    if badge.endswith('Disc.'):
        return 'discount'
    return 'base'


def filter_rows(rows: List[Dict[str, Any]], search: str = '', status: str = 'all',
                pricing: str = 'all') -> List[Dict[str, Any]]:
    """Client-side filters over an already loaded page."""
    term = (search or '').strip().lower()
    out = []
    for row in rows:
        product = row.get('product') or _fallback_product(row)
        if term:
            haystack = ' '.join(str(v) for v in (product.get('sku'), product.get('name'),
                                                 row.get('customName'), row.get('localSkuCode')) if v)
            if term not in haystack.lower():
                continue
        if status == 'active' and not row.get('isActive'):
            continue
        if status == 'inactive' and row.get('isActive'):
            continue
        if pricing in PRICING_FILTERS and _pricing_kind(row) != pricing:
            continue
        out.append(row)
    return out


class CatalogDetailView:
    """Loads one catalog's product page through the page state machine."""

    def __init__(self, client: ApiClient, catalog_id: int, page_size: int = 20,
                 timeout: float = ENRICHMENT_TIMEOUT, debounce_delay: Optional[float] = None):
        self.client = client
        self.catalog_id = catalog_id
        self.page_size = page_size
        self.timeout = timeout
        self.controller = PageController(self._load_page)
        kwargs = {} if debounce_delay is None else {'delay': debounce_delay}
        # push notifications arrive in bursts
        self.debouncer = Debouncer(self.refresh, **kwargs)
        self.page = 1

    def _load_page(self, page: int):
        envelope = self.client.catalog_products(self.catalog_id, page=page, page_size=self.page_size)
        return dict(envelope, items=[enrich_row(self.client, row, self.timeout) for row in envelope['items']])

    def load(self, page: int = 1):
        self.page = page
        return self.controller.load(page)

    def refresh(self):
        return self.controller.load(self.page)

    def on_push_event(self, *_):
        self.debouncer.trigger()

    @property
    def state(self):
        return self.controller.state
