from __future__ import annotations
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, String, Float, ForeignKey, DateTime, JSON, func
from typing import Dict, Optional

from vendor_expense.constants.permissions import ACTIVITIES
from .authz import Base


def _cleared_status() -> Dict[str, bool]:
    return {a: False for a in ACTIVITIES}


class GrowingRoom(Base):
    __tablename__ = 'growing_rooms'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    max_bag_capacity: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    power_backup_source: Mapped[Optional[str]] = mapped_column(String(128))
    current_stage_id: Mapped[Optional[int]] = mapped_column(ForeignKey('stages.id', ondelete='SET NULL'), nullable=True)
    stage_started_at = mapped_column(DateTime(timezone=True), nullable=True)
    activity_day: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # replaced wholesale on every write so JSON change tracking sees it
    activity_status: Mapped[Dict[str, bool]] = mapped_column(JSON, nullable=False, default=_cleared_status)
    current_stage = relationship('Stage')
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


__all__ = ["GrowingRoom"]
