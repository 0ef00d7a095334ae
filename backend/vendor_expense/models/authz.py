from __future__ import annotations
from sqlalchemy.orm import declarative_base, relationship, Mapped, mapped_column, validates
from sqlalchemy import String, Integer, Boolean, ForeignKey, JSON, UniqueConstraint, DateTime, text
from typing import Dict, Any, List

from vendor_expense.constants.permissions import PrimaryRole

Base = declarative_base()


class Role(Base):
    __tablename__ = 'roles'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    description: Mapped[str] = mapped_column(String(255), nullable=True)
    # module key -> {create, edit, view, delete}
    permissions: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)
    user_roles = relationship('UserRole', back_populates='role', cascade='all, delete-orphan')
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=text('CURRENT_TIMESTAMP'), onupdate=text('CURRENT_TIMESTAMP'))


class User(Base):
    __tablename__ = 'users'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    email: Mapped[str] = mapped_column(String(128), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(32), nullable=False, default=PrimaryRole.VIEWER.value)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    user_roles = relationship('UserRole', back_populates='user', cascade='all, delete-orphan')
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=text('CURRENT_TIMESTAMP'), onupdate=text('CURRENT_TIMESTAMP'))

    @validates('email')
    def _lower_email(self, key, value):
        return value.strip().lower() if value else value

    @property
    def role_ids(self) -> List[int]:
        return sorted(ur.role_id for ur in self.user_roles)

    @property
    def is_admin(self) -> bool:
        return self.role == PrimaryRole.ADMIN.value

    def set_password(self, raw: str):
        from werkzeug.security import generate_password_hash
        self.password_hash = generate_password_hash(raw)

    def verify_password(self, raw: str) -> bool:
        from werkzeug.security import check_password_hash
        return check_password_hash(self.password_hash, raw)


class UserRole(Base):
    __tablename__ = 'user_roles'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    role_id: Mapped[int] = mapped_column(ForeignKey('roles.id', ondelete='CASCADE'), nullable=False)
    __table_args__ = (UniqueConstraint('user_id', 'role_id', name='uq_user_role'),)
    user = relationship('User', back_populates='user_roles')
    role = relationship('Role', back_populates='user_roles')
