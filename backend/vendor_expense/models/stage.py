from __future__ import annotations
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, Float, Boolean, DateTime, func
from typing import Dict

from .authz import Base


class Stage(Base):
    __tablename__ = 'stages'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    sequence_order: Mapped[int] = mapped_column(Integer, nullable=False, unique=True, index=True)
    interval_days: Mapped[int] = mapped_column(Integer, nullable=False)
    humidity: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    temperature: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    co2_level: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    notes: Mapped[str] = mapped_column(String(1000), nullable=True)
    # activities legal while a room sits in this stage
    watering: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    ruffling: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    thumping: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def activities(self) -> Dict[str, bool]:
        return {
            'watering': bool(self.watering),
            'ruffling': bool(self.ruffling),
            'thumping': bool(self.thumping),
        }

    @activities.setter
    def activities(self, value: Dict[str, bool]):
        self.watering = bool(value.get('watering'))
        self.ruffling = bool(value.get('ruffling'))
        self.thumping = bool(value.get('thumping'))


__all__ = ["Stage"]
