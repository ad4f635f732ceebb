from __future__ import annotations
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, Text, Integer, Boolean, ForeignKey, JSON, DateTime
from typing import Optional, Dict, Any

from .authz import Base, utcnow


class Region(Base):
    __tablename__ = 'regions'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(16), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    countries = relationship('Country', back_populates='region', cascade='all, delete-orphan', order_by='Country.name')


class Country(Base):
    __tablename__ = 'countries'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(8), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    native_name: Mapped[Optional[str]] = mapped_column(String(128))
    region_id: Mapped[int] = mapped_column(ForeignKey('regions.id', ondelete='CASCADE'), nullable=False, index=True)
    # Plain column: locales reference countries, a second FK would make the pair cyclic
    default_locale_id: Mapped[Optional[int]] = mapped_column(Integer)
    continent: Mapped[Optional[str]] = mapped_column(String(32))
    phone_prefix: Mapped[Optional[str]] = mapped_column(String(8))
    supports_shipping: Mapped[bool] = mapped_column(Boolean, default=True)
    supports_billing: Mapped[bool] = mapped_column(Boolean, default=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    region = relationship('Region', back_populates='countries')
    locales = relationship('Locale', back_populates='country', cascade='all, delete-orphan',
                           order_by='Locale.priority_in_country')
    compliance = relationship('CountryCompliance', uselist=False, back_populates='country', cascade='all, delete-orphan')


class CountryCompliance(Base):
    __tablename__ = 'country_compliance'
    RISK_LOW = 'Low'
    RISK_MEDIUM = 'Medium'
    RISK_HIGH = 'High'
    ALL_RISKS = (RISK_LOW, RISK_MEDIUM, RISK_HIGH)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    country_id: Mapped[int] = mapped_column(ForeignKey('countries.id', ondelete='CASCADE'), unique=True, nullable=False)
    has_trade_sanctions: Mapped[bool] = mapped_column(Boolean, default=False)
    has_export_restrictions: Mapped[bool] = mapped_column(Boolean, default=False)
    requires_export_license: Mapped[bool] = mapped_column(Boolean, default=False)
    compliance_risk_level: Mapped[str] = mapped_column(String(16), default=RISK_LOW)
    regulatory_notes: Mapped[Optional[str]] = mapped_column(Text)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    country = relationship('Country', back_populates='compliance')


class Locale(Base):
    __tablename__ = 'locales'
    PRIMARY_PRIORITY = 1
    DEFAULT_PRIORITY = 100

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    native_name: Mapped[Optional[str]] = mapped_column(String(128))
    language_code: Mapped[str] = mapped_column(String(8), nullable=False)
    country_code: Mapped[Optional[str]] = mapped_column(String(8))
    country_id: Mapped[int] = mapped_column(ForeignKey('countries.id', ondelete='CASCADE'), nullable=False, index=True)
    region_id: Mapped[Optional[int]] = mapped_column(ForeignKey('regions.id'))
    currency: Mapped[str] = mapped_column(String(3), default='USD')
    is_rtl: Mapped[bool] = mapped_column(Boolean, default=False)
    date_format: Mapped[str] = mapped_column(String(32), default='MM/dd/yyyy')
    number_format: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)
    priority_in_country: Mapped[int] = mapped_column(Integer, default=DEFAULT_PRIORITY)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    country = relationship('Country', back_populates='locales')

    @property
    def is_primary(self) -> bool:
        if self.country is not None and self.country.default_locale_id is not None:
            return self.country.default_locale_id == self.id
        return self.priority_in_country == self.PRIMARY_PRIORITY


class Currency(Base):
    __tablename__ = 'currencies'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(3), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    symbol: Mapped[Optional[str]] = mapped_column(String(8))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
