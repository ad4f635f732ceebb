from __future__ import annotations
import logging
from typing import Any, Dict

from mdm import get_db
from mdm.models.product_cache import ProductCacheEntry

log = logging.getLogger(__name__)


class ProductCacheService:
    """Keeps the read-optimized product_cache table in step with active products.

    Only active products are cached. Methods commit their own unit of work
    and return False instead of writing when the input is not cacheable.
    """

    def sync_active_product(self, product: Dict[str, Any]) -> bool:
        if not product:
            log.warning('Cannot sync empty product to cache')
            return False
        if product.get('status') != 'active':
            log.warning('Product %s (%s) is not active, skipping cache sync', product.get('id'), product.get('sku'))
            return False
        session = get_db()
        entry = session.get(ProductCacheEntry, product['id'])
        if entry is None:
            entry = ProductCacheEntry(product_id=product['id'])
            session.add(entry)
        entry.sku = product['sku']
        entry.status = product['status']
        entry.payload = dict(product)
        session.commit()
        log.info('Synced product %s (%s) to product cache', product['id'], product['sku'])
        return True

    def remove_product(self, product_id: str) -> bool:
        session = get_db()
        entry = session.get(ProductCacheEntry, product_id)
        if entry is None:
            # not cached; nothing to remove
            log.info('Product %s was not in product cache', product_id)
            return True
        session.delete(entry)
        session.commit()
        log.info('Removed product %s from product cache', product_id)
        return True

    def get(self, product_id: str):
        entry = get_db().get(ProductCacheEntry, product_id)
        return dict(entry.payload) if entry else None
