from __future__ import annotations
from datetime import datetime, timezone
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, Text, Integer, Float, Boolean, ForeignKey, DateTime, UniqueConstraint
from typing import Optional

from .authz import Base, utcnow
from . import geo, product  # noqa: F401  relationship targets


class Channel(Base):
    __tablename__ = 'channels'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class Catalog(Base):
    __tablename__ = 'catalogs'
    STATUS_DRAFT = 'draft'
    STATUS_ACTIVE = 'active'
    STATUS_INACTIVE = 'inactive'
    ALL_STATUSES = (STATUS_DRAFT, STATUS_ACTIVE, STATUS_INACTIVE)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    region_id: Mapped[Optional[int]] = mapped_column(ForeignKey('regions.id'), index=True)
    channel_id: Mapped[Optional[int]] = mapped_column(ForeignKey('channels.id'), index=True)
    currency_id: Mapped[Optional[int]] = mapped_column(ForeignKey('currencies.id'))
    effective_from: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    effective_to: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    priority: Mapped[int] = mapped_column(Integer, default=1)
    status: Mapped[str] = mapped_column(String(16), default=STATUS_ACTIVE, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False)
    created_by: Mapped[Optional[int]] = mapped_column(Integer)
    updated_by: Mapped[Optional[int]] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    region = relationship('Region')
    channel = relationship('Channel')
    currency = relationship('Currency')
    products = relationship('CatalogProduct', back_populates='catalog', cascade='all, delete-orphan')

    __table_args__ = (UniqueConstraint('code', 'region_id', 'channel_id', name='uq_catalog_code_scope'),)

    def is_currently_effective(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        start = _aware(self.effective_from)
        end = _aware(self.effective_to)
        if start and now < start:
            return False
        if end and now > end:
            return False
        return bool(self.is_active)

    def is_ready_for_activation(self) -> bool:
        return bool(self.code and self.name and self.region_id and self.channel_id and self.currency_id)


class CatalogProduct(Base):
    __tablename__ = 'catalog_products'
    PRICING_OVERRIDE = 'override'
    PRICING_DISCOUNT = 'discount'
    PRICING_NONE = 'none'
    ALL_PRICING_MODES = (PRICING_OVERRIDE, PRICING_DISCOUNT, PRICING_NONE)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    catalog_id: Mapped[int] = mapped_column(ForeignKey('catalogs.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id: Mapped[str] = mapped_column(ForeignKey('products.id', ondelete='CASCADE'), nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    pricing_mode: Mapped[str] = mapped_column(String(16), nullable=False, default=PRICING_NONE)
    override_price: Mapped[Optional[float]] = mapped_column(Float)
    discount_percentage: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False)
    min_quantity: Mapped[Optional[int]] = mapped_column(Integer)
    max_quantity: Mapped[Optional[int]] = mapped_column(Integer)
    fulfillment_method: Mapped[Optional[str]] = mapped_column(String(32))
    support_level: Mapped[Optional[str]] = mapped_column(String(32))
    custom_name: Mapped[Optional[str]] = mapped_column(String(255))
    local_sku_code: Mapped[Optional[str]] = mapped_column(String(64))
    # Snapshot of the product at link time; readers fall back to it when live data is unavailable
    product_sku: Mapped[Optional[str]] = mapped_column(String(64))
    product_name: Mapped[Optional[str]] = mapped_column(String(255))
    product_base_price: Mapped[Optional[float]] = mapped_column(Float)
    locale_workflow_status: Mapped[Optional[str]] = mapped_column(String(32))
    content_workflow_status: Mapped[Optional[str]] = mapped_column(String(32))
    localized_content_count: Mapped[int] = mapped_column(Integer, default=0)
    created_by: Mapped[Optional[int]] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    catalog = relationship('Catalog', back_populates='products')
    product = relationship('Product')

    __table_args__ = (UniqueConstraint('catalog_id', 'product_id', name='uq_catalog_product'),)


def _aware(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is not None and dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt
