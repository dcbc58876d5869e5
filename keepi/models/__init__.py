"""ORM model package."""

from keepi.models.entities import (
    InvoiceItem,
    Project,
    ProjectUser,
    User,
    UserEntry,
    UserEntryCategory,
    UserIdentityProvider,
    UserInvoiceItemCustomization,
)

__all__ = [
    "InvoiceItem",
    "Project",
    "ProjectUser",
    "User",
    "UserEntry",
    "UserEntryCategory",
    "UserIdentityProvider",
    "UserInvoiceItemCustomization",
]
