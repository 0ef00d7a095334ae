from __future__ import annotations
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, String, Float, ForeignKey, DateTime, func
from typing import Optional

from .authz import Base
from vendor_expense.constants.permissions import DiscountType


class Voucher(Base):
    __tablename__ = 'vouchers'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    vendor_id: Mapped[int] = mapped_column(ForeignKey('vendors.id'), nullable=False, index=True)
    date_of_purchase = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    sub_total: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    tax_percent: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    tax_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    discount_type: Mapped[str] = mapped_column(String(16), nullable=False, default=DiscountType.NONE.value)
    discount_value: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    final_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    payment_method: Mapped[str] = mapped_column(String(64), nullable=False)
    payment_status: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    payment_date = mapped_column(DateTime(timezone=True), nullable=True)
    paid_by_mode: Mapped[Optional[str]] = mapped_column(String(64))
    payment_comments: Mapped[Optional[str]] = mapped_column(String(500))
    created_by_name: Mapped[Optional[str]] = mapped_column(String(128))
    status_updated_by_name: Mapped[Optional[str]] = mapped_column(String(128))
    status_updated_at = mapped_column(DateTime(timezone=True), nullable=True)
    vendor = relationship('Vendor')
    items = relationship('VoucherItem', back_populates='voucher', cascade='all, delete-orphan', order_by='VoucherItem.position')
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class VoucherItem(Base):
    __tablename__ = 'voucher_items'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    voucher_id: Mapped[int] = mapped_column(ForeignKey('vouchers.id', ondelete='CASCADE'), nullable=False, index=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    material_id: Mapped[int] = mapped_column(ForeignKey('materials.id'), nullable=False, index=True)
    quantity: Mapped[float] = mapped_column(Float, nullable=False)
    price_per_unit: Mapped[float] = mapped_column(Float, nullable=False)
    comment: Mapped[Optional[str]] = mapped_column(String(255))
    voucher = relationship('Voucher', back_populates='items')
    material = relationship('Material')


__all__ = ["Voucher", "VoucherItem"]
