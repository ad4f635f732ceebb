from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Float, Boolean, Integer, DateTime
from typing import Optional

from .authz import Base, utcnow


class Product(Base):
    __tablename__ = 'products'
    STATUS_DRAFT = 'draft'
    STATUS_ACTIVE = 'active'
    STATUS_DEPRECATED = 'deprecated'
    STATUS_ARCHIVED = 'archived'
    ALL_STATUSES = (STATUS_DRAFT, STATUS_ACTIVE, STATUS_DEPRECATED, STATUS_ARCHIVED)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    sku: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text)
    long_description: Mapped[Optional[str]] = mapped_column(Text)
    type: Mapped[Optional[str]] = mapped_column(String(64), index=True)
    product_class: Mapped[Optional[str]] = mapped_column(String(64))
    subtype: Mapped[Optional[str]] = mapped_column(String(64))
    base_price: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    cost_price: Mapped[Optional[float]] = mapped_column(Float)
    available: Mapped[bool] = mapped_column(Boolean, default=True)
    web_display: Mapped[bool] = mapped_column(Boolean, default=False)
    license_required: Mapped[bool] = mapped_column(Boolean, default=False)
    contract_item: Mapped[bool] = mapped_column(Boolean, default=False)
    seat_based_pricing: Mapped[bool] = mapped_column(Boolean, default=False)
    can_be_fulfilled: Mapped[bool] = mapped_column(Boolean, default=True)
    ava_tax_code: Mapped[Optional[str]] = mapped_column(String(32))
    slug: Mapped[Optional[str]] = mapped_column(String(255))
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=STATUS_DRAFT, index=True)
    created_by: Mapped[Optional[int]] = mapped_column(Integer)
    updated_by: Mapped[Optional[int]] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    @property
    def is_active(self) -> bool:
        return self.status == self.STATUS_ACTIVE
