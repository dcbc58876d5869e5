"""ORM entities for the Keepi schema."""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from keepi.core.identity import UserIdentityProvider
from keepi.core.permissions import UserPermission
from keepi.db.base import Base

NAME_MAX_LENGTH = 64
REMARK_MAX_LENGTH = 256


def _permission_column(name: str) -> Mapped[UserPermission]:
    return mapped_column(
        SQLEnum(
            UserPermission,
            name=name,
            values_callable=lambda enum_cls: [member.name.lower() for member in enum_cls],
        ),
        nullable=False,
        default=UserPermission.NONE,
    )


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("external_id", "identity_provider", name="uq_users_external_identity"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    external_id: Mapped[str] = mapped_column(String(128), nullable=False)
    identity_provider: Mapped[UserIdentityProvider] = mapped_column(
        SQLEnum(
            UserIdentityProvider,
            name="user_identity_provider",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email_address: Mapped[str] = mapped_column(String(320), nullable=False)
    entries_permission: Mapped[UserPermission] = _permission_column("entries_permission")
    exports_permission: Mapped[UserPermission] = _permission_column("exports_permission")
    projects_permission: Mapped[UserPermission] = _permission_column("projects_permission")
    users_permission: Mapped[UserPermission] = _permission_column("users_permission")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class Project(Base):
    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(NAME_MAX_LENGTH), unique=True, nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class ProjectUser(Base):
    __tablename__ = "project_users"
    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_project_users"),
        Index("ix_project_users_user_id", "user_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(Integer, ForeignKey("projects.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)


class InvoiceItem(Base):
    __tablename__ = "invoice_items"
    __table_args__ = (
        UniqueConstraint("project_id", "name", name="uq_invoice_items_project_name"),
        Index("ix_invoice_items_project_id", "project_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(Integer, ForeignKey("projects.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(NAME_MAX_LENGTH), nullable=False)


class UserInvoiceItemCustomization(Base):
    __tablename__ = "user_invoice_item_customizations"
    __table_args__ = (
        UniqueConstraint("user_id", "invoice_item_id", name="uq_user_invoice_item_customizations"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    invoice_item_id: Mapped[int] = mapped_column(Integer, ForeignKey("invoice_items.id"), nullable=False)
    ordinal: Mapped[int] = mapped_column(Integer, nullable=False)
    # 0xRRGGBB
    color: Mapped[int | None] = mapped_column(Integer, nullable=True)


class UserEntry(Base):
    __tablename__ = "user_entries"
    __table_args__ = (
        Index("ix_user_entries_user_date", "user_id", "date"),
        Index("ix_user_entries_invoice_item_id", "invoice_item_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    invoice_item_id: Mapped[int] = mapped_column(Integer, ForeignKey("invoice_items.id"), nullable=False)
    entry_date: Mapped[date] = mapped_column("date", Date, nullable=False)
    minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    remark: Mapped[str | None] = mapped_column(String(REMARK_MAX_LENGTH), nullable=True)


class UserEntryCategory(Base):
    __tablename__ = "user_entry_categories"
    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_user_entry_categories_user_name"),
        UniqueConstraint("user_id", "ordinal", name="uq_user_entry_categories_user_ordinal"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(NAME_MAX_LENGTH), nullable=False)
    ordinal: Mapped[int] = mapped_column(Integer, nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    active_from: Mapped[date | None] = mapped_column(Date, nullable=True)
    active_to: Mapped[date | None] = mapped_column(Date, nullable=True)
