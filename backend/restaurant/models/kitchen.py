"""
Kitchen ticket model. Ticket lines live in a single JSON column.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, JSONColumn, VersionedMixin


class KitchenOrderModel(VersionedMixin, Base):
    __tablename__ = "kitchen_orders"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    order_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    table_id: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    priority: Mapped[str] = mapped_column(String(20), nullable=False)
    assigned_station: Mapped[str] = mapped_column(String(64), nullable=False, default="", index=True)
    # Seconds
    estimated_time: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    items: Mapped[list[dict[str, Any]]] = mapped_column(JSONColumn, nullable=False, default=list)

    __table_args__ = (
        # Kitchen display queue: status then arrival order
        Index("ix_kitchen_orders_status_created", "status", "created_at"),
    )
