"""Tenancy models: organizations, their stores and users."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, Enum as SAEnum, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledgerlink.db.base import Base, TimestampMixin


class UserRole(str, Enum):
    """User roles for RBAC."""

    APP_ADMIN = "app_admin"
    ORG_ADMIN = "org_admin"
    ORG_ACCOUNTANT = "org_accountant"
    STORE_MANAGER = "store_manager"
    STORE_EMPLOYEE = "store_employee"


class Organization(Base, TimestampMixin):
    """A tenant owning one or more stores."""

    __tablename__ = "organizations"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)

    stores: Mapped[list["Store"]] = relationship("Store", back_populates="organization")


class Store(Base, TimestampMixin):
    """A branch of an organization that holds inventory."""

    __tablename__ = "stores"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    org_id: Mapped[int] = mapped_column(ForeignKey("organizations.id"), nullable=False, index=True)
    # Store manager, notified about low stock
    manager_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    organization: Mapped["Organization"] = relationship("Organization", back_populates="stores")


class User(Base, TimestampMixin):
    """User account; authentication itself lives in the auth service."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    first_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    role: Mapped[UserRole] = mapped_column(
        SAEnum(UserRole),
        default=UserRole.STORE_EMPLOYEE,
        nullable=False,
    )
    org_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("organizations.id"), nullable=True, index=True
    )
    store_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("stores.id"), nullable=True, index=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

