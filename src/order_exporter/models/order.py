"""Order source tables read by the reference SQL data source.

A simplified, read-only view of the shop's orders: header columns on
``orders``, line items on ``order_items`` and free-form key/value metadata
(custom checkout fields, serialized terms blobs) on ``order_meta``.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from order_exporter.models.base import Base

# Raw status codes carry this prefix; the CSV sanitizer strips it
ORDER_STATUS_PREFIX = "wc-"


class Order(Base):
    """A shop order header."""

    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    status: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    order_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    total: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    currency: Mapped[str | None] = mapped_column(String(3), nullable=True)
    customer_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    billing_email: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    billing_first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    billing_last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    billing_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    billing_city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    billing_postcode: Mapped[str | None] = mapped_column(String(20), nullable=True)
    coupons_used: Mapped[str | None] = mapped_column(String(255), nullable=True)

    items: Mapped[list["OrderItem"]] = relationship(back_populates="order", lazy="raise")


class OrderItem(Base):
    """A product line within an order."""

    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    line_total: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    order: Mapped[Order] = relationship(back_populates="items", lazy="raise")

    __table_args__ = (Index("ix_order_items_order", "order_id"),)


class OrderMeta(Base):
    """Key/value metadata attached to an order."""

    __tablename__ = "order_meta"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    meta_key: Mapped[str] = mapped_column(String(255), nullable=False)
    meta_value: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (Index("ix_order_meta_order_key", "order_id", "meta_key"),)
