from __future__ import annotations
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Integer, Boolean, JSON, DateTime
from typing import Optional, List

from .authz import Base, utcnow

SCHEMA_PRODUCT_MDM = 'ProductMDM'
SCHEMA_PRICING_MDM = 'PricingMDM'
SCHEMA_ECOMMERCE = 'Ecommerce'
ALL_SCHEMAS = (SCHEMA_PRODUCT_MDM, SCHEMA_PRICING_MDM, SCHEMA_ECOMMERCE)

MAINTENANCE_ROLE_LABELS = {
    'product_marketing': 'Product Marketing',
    'product_legal': 'Legal',
    'product_finance': 'Finance',
    'product_salesops': 'Sales Ops',
    'product_contracts': 'Contracts',
    'system': 'System',
}


class DataDictionary(Base):
    """Describes one field of the product/pricing/ecommerce schemas.

    Rows drive dynamic form validation on the admin screens; they are not
    business data and the API exposes them read-only.
    """
    __tablename__ = 'data_dictionary'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    column_name: Mapped[str] = mapped_column(String(128), unique=True, nullable=False, index=True)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    data_type: Mapped[str] = mapped_column(String(32), nullable=False, default='string')
    description: Mapped[Optional[str]] = mapped_column(Text)
    category: Mapped[Optional[str]] = mapped_column(String(64), index=True)
    required_for_active: Mapped[bool] = mapped_column(Boolean, default=False)
    max_length: Mapped[Optional[int]] = mapped_column(Integer)
    min_length: Mapped[Optional[int]] = mapped_column(Integer)
    validation_pattern: Mapped[Optional[str]] = mapped_column(String(512))
    allowed_values: Mapped[Optional[List[str]]] = mapped_column(JSON)
    maintenance_role: Mapped[str] = mapped_column(String(64), default='system', index=True)
    in_product_mdm: Mapped[bool] = mapped_column(Boolean, default=False)
    in_pricing_mdm: Mapped[bool] = mapped_column(Boolean, default=False)
    in_ecommerce: Mapped[bool] = mapped_column(Boolean, default=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    is_system_field: Mapped[bool] = mapped_column(Boolean, default=False)
    is_editable: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # schema label -> column flag
    SCHEMA_COLUMNS = {
        SCHEMA_PRODUCT_MDM: 'in_product_mdm',
        SCHEMA_PRICING_MDM: 'in_pricing_mdm',
        SCHEMA_ECOMMERCE: 'in_ecommerce',
    }

    def schemas(self) -> List[str]:
        return [label for label, attr in self.SCHEMA_COLUMNS.items() if getattr(self, attr)]

    def can_edit(self) -> bool:
        return bool(self.is_editable) and not self.is_system_field

    @property
    def maintenance_role_label(self) -> str:
        return MAINTENANCE_ROLE_LABELS.get(self.maintenance_role or 'system', self.maintenance_role)
