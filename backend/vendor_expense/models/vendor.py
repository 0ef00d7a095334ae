from __future__ import annotations
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, String, DateTime, ForeignKey, Table, Column, func
from .authz import Base

# Single source of truth for Vendor.materialsSupplied and Material.vendorIds
vendor_materials = Table(
    'vendor_materials',
    Base.metadata,
    Column('vendor_id', Integer, ForeignKey('vendors.id', ondelete='CASCADE'), primary_key=True),
    Column('material_id', Integer, ForeignKey('materials.id', ondelete='CASCADE'), primary_key=True),
)


class Vendor(Base):
    __tablename__ = 'vendors'
    STATUS_ACTIVE = 'Active'
    STATUS_INACTIVE = 'Inactive'
    ALL_STATUSES = (STATUS_ACTIVE, STATUS_INACTIVE)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False, index=True)
    address: Mapped[str] = mapped_column(String(255), nullable=True)
    contact_person: Mapped[str] = mapped_column(String(128), nullable=True)
    contact_number: Mapped[str] = mapped_column(String(64), nullable=True)
    email: Mapped[str] = mapped_column(String(150), nullable=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=STATUS_ACTIVE, index=True)
    created_by: Mapped[int] = mapped_column(Integer, nullable=True)
    materials = relationship('Material', secondary=vendor_materials, back_populates='vendors', order_by='Material.id')
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def material_ids(self):
        return [m.id for m in self.materials]


__all__ = ["Vendor", "vendor_materials"]
