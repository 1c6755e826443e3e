"""
Order model. Line items live in a single JSON column.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import Float, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, JSONColumn, VersionedMixin


class OrderModel(VersionedMixin, Base):
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    customer_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    table_id: Mapped[str] = mapped_column(String(64), nullable=False, default="", index=True)
    delivery_address: Mapped[str] = mapped_column(Text, nullable=False, default="")
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    total_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, index=True)
    tax_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    items: Mapped[list[dict[str, Any]]] = mapped_column(JSONColumn, nullable=False, default=list)

    __table_args__ = (
        # Active-order and sales queries filter on status + created_at
        Index("ix_orders_status_created", "status", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<OrderModel(id={self.id}, status='{self.status}', total={self.total_amount})>"
