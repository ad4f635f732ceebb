from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, Text, JSON, DateTime, Index
from typing import Optional, Dict, Any

from .authz import Base, utcnow


class OutboxEvent(Base):
    """Product domain event waiting to be relayed to subscribers.

    Each row carries an idempotent event_id, the message subject
    (product.created, product.updated, ...) and the JSON envelope. The relay
    reads unpublished rows in id order and records publish metadata without
    touching the product write path.
    """
    __tablename__ = 'outbox'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[str] = mapped_column(String(36), unique=True, nullable=False, index=True, default=lambda: str(uuid.uuid4()))
    event_type: Mapped[str] = mapped_column(String(32), nullable=False)  # "created"
    subject: Mapped[str] = mapped_column(String(64), nullable=False)  # "product.created"
    aggregate_type: Mapped[str] = mapped_column(String(32), nullable=False, default='Product')
    aggregate_id: Mapped[str] = mapped_column(String(64), nullable=False)
    payload: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    publish_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_error: Mapped[Optional[str]] = mapped_column(Text)

    __table_args__ = (
        Index('ix_outbox_published_id', 'published_at', 'id'),
    )
