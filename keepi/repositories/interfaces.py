"""Storage-agnostic repository ports and the records they exchange with use cases."""

from __future__ import annotations

import enum
from collections.abc import AsyncIterator, Sequence
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from datetime import date
from typing import Protocol

from keepi.core.color import Color
from keepi.core.identity import UserIdentityProvider
from keepi.core.permissions import UserPermission
from keepi.core.result import MaybeErrorResult, ValueOrErrorResult

DEFAULT_CUSTOMIZATION_ORDINAL = 2**31 - 1


def is_entry_allowed_for_date(
    *, enabled: bool, active_from: date | None, active_to: date | None, value: date
) -> bool:
    """Whether an entry dated ``value`` may be logged against a gated unit."""

    if not enabled:
        return False
    if active_from is not None and active_from > value:
        return False
    if active_to is not None and active_to < value:
        return False
    return True


# ---------- Users ----------
@dataclass(frozen=True, slots=True)
class UserRecord:
    id: int
    external_id: str
    identity_provider: UserIdentityProvider
    name: str
    email_address: str
    entries_permission: UserPermission
    exports_permission: UserPermission
    projects_permission: UserPermission
    users_permission: UserPermission


@dataclass(frozen=True, slots=True)
class UserPermissions:
    entries: UserPermission
    exports: UserPermission
    projects: UserPermission
    users: UserPermission

    @classmethod
    def administrator(cls) -> UserPermissions:
        return cls(
            entries=UserPermission.READ_AND_MODIFY,
            exports=UserPermission.READ_AND_MODIFY,
            projects=UserPermission.READ_AND_MODIFY,
            users=UserPermission.READ_AND_MODIFY,
        )

    @classmethod
    def new_user(cls) -> UserPermissions:
        return cls(
            entries=UserPermission.READ_AND_MODIFY,
            exports=UserPermission.NONE,
            projects=UserPermission.NONE,
            users=UserPermission.NONE,
        )


class GetUserError(enum.IntEnum):
    UNKNOWN = 0
    NOT_FOUND = 1


class GetUserExistsError(enum.IntEnum):
    UNKNOWN = 0


class SaveNewUserError(enum.IntEnum):
    UNKNOWN = 0
    DUPLICATE_USER = 1


class UpdateUserIdentityError(enum.IntEnum):
    UNKNOWN = 0
    UNKNOWN_USER_ID = 1


class UserWithPermissionsExistsError(enum.IntEnum):
    UNKNOWN = 0


class GetUsersError(enum.IntEnum):
    UNKNOWN = 0


class UpdateUserPermissionsRepositoryError(enum.IntEnum):
    UNKNOWN = 0
    UNKNOWN_USER_ID = 1


class GetFirstAdminUserEmailAddressError(enum.IntEnum):
    UNKNOWN = 0
    NOT_CONFIGURED = 1


class UserRepository(Protocol):
    async def get_user(
        self, external_id: str, identity_provider: UserIdentityProvider
    ) -> ValueOrErrorResult[UserRecord, GetUserError]: ...

    async def get_user_exists(
        self, external_id: str, identity_provider: UserIdentityProvider, email_address: str
    ) -> ValueOrErrorResult[bool, GetUserExistsError]: ...

    async def save_new_user(
        self,
        *,
        external_id: str,
        identity_provider: UserIdentityProvider,
        name: str,
        email_address: str,
        permissions: UserPermissions,
    ) -> MaybeErrorResult[SaveNewUserError]: ...

    async def update_user_identity(
        self, user_id: int, email_address: str, name: str
    ) -> MaybeErrorResult[UpdateUserIdentityError]: ...

    async def user_with_permissions_exists(
        self, permissions: UserPermissions
    ) -> ValueOrErrorResult[bool, UserWithPermissionsExistsError]: ...

    async def get_users(self) -> ValueOrErrorResult[list[UserRecord], GetUsersError]: ...

    async def update_user_permissions(
        self, user_id: int, permissions: UserPermissions
    ) -> MaybeErrorResult[UpdateUserPermissionsRepositoryError]: ...


class FirstAdminUserEmailAddressSource(Protocol):
    async def get_first_admin_user_email_address(
        self,
    ) -> ValueOrErrorResult[str, GetFirstAdminUserEmailAddressError]: ...


# ---------- Projects ----------
@dataclass(frozen=True, slots=True)
class ProjectUserRecord:
    id: int
    name: str


@dataclass(frozen=True, slots=True)
class ProjectInvoiceItemRecord:
    id: int
    name: str


@dataclass(frozen=True, slots=True)
class ProjectRecord:
    id: int
    name: str
    enabled: bool
    users: list[ProjectUserRecord]
    invoice_items: list[ProjectInvoiceItemRecord]


@dataclass(frozen=True, slots=True)
class EntryCleanup:
    """Entries and customizations to delete; ``user_ids=None`` targets every user."""

    invoice_item_ids: frozenset[int]
    user_ids: frozenset[int] | None = None


@dataclass(frozen=True, slots=True)
class ProjectMembershipChanges:
    """Set difference between a stored project and its requested state."""

    project_id: int
    name: str
    enabled: bool
    added_user_ids: frozenset[int] = frozenset()
    removed_user_ids: frozenset[int] = frozenset()
    added_invoice_item_names: tuple[str, ...] = ()
    renamed_invoice_items: tuple[ProjectInvoiceItemRecord, ...] = ()
    removed_invoice_item_ids: frozenset[int] = frozenset()
    entry_cleanups: tuple[EntryCleanup, ...] = ()


class GetProjectsError(enum.IntEnum):
    UNKNOWN = 0


class GetProjectError(enum.IntEnum):
    UNKNOWN = 0
    UNKNOWN_PROJECT_ID = 1


class SaveNewProjectError(enum.IntEnum):
    UNKNOWN = 0
    DUPLICATE_PROJECT_NAME = 1
    UNKNOWN_USER_ID = 2


class UpdateProjectRepositoryError(enum.IntEnum):
    UNKNOWN = 0
    DUPLICATE_PROJECT_NAME = 1
    UNKNOWN_PROJECT_ID = 2
    UNKNOWN_USER_ID = 3
    UNKNOWN_INVOICE_ITEM_ID = 4


class DeleteProjectRepositoryError(enum.IntEnum):
    UNKNOWN = 0
    UNKNOWN_PROJECT_ID = 1


class ProjectRepository(Protocol):
    async def get_projects(self) -> ValueOrErrorResult[list[ProjectRecord], GetProjectsError]: ...

    async def get_project(self, project_id: int) -> ValueOrErrorResult[ProjectRecord, GetProjectError]: ...

    async def save_new_project(
        self,
        *,
        name: str,
        enabled: bool,
        user_ids: Sequence[int],
        invoice_item_names: Sequence[str],
    ) -> ValueOrErrorResult[int, SaveNewProjectError]: ...

    async def update_project(
        self, changes: ProjectMembershipChanges
    ) -> MaybeErrorResult[UpdateProjectRepositoryError]: ...

    async def delete_project(self, project_id: int) -> MaybeErrorResult[DeleteProjectRepositoryError]: ...


# ---------- User projects and customizations ----------
@dataclass(frozen=True, slots=True)
class InvoiceItemCustomization:
    ordinal: int = DEFAULT_CUSTOMIZATION_ORDINAL
    color: Color | None = None


@dataclass(frozen=True, slots=True)
class UserProjectInvoiceItem:
    id: int
    name: str
    customization: InvoiceItemCustomization = field(default_factory=InvoiceItemCustomization)


@dataclass(frozen=True, slots=True)
class UserProject:
    id: int
    name: str
    enabled: bool
    invoice_items: list[UserProjectInvoiceItem]


@dataclass(frozen=True, slots=True)
class InvoiceItemCustomizationInput:
    invoice_item_id: int
    ordinal: int
    color: Color | None


class GetUserProjectsError(enum.IntEnum):
    UNKNOWN = 0


class OverwriteUserInvoiceItemCustomizationsError(enum.IntEnum):
    UNKNOWN = 0
    UNKNOWN_INVOICE_ITEM_ID = 1


class UserProjectRepository(Protocol):
    async def get_user_projects(self, user_id: int) -> ValueOrErrorResult[list[UserProject], GetUserProjectsError]: ...

    async def overwrite_user_invoice_item_customizations(
        self, user_id: int, customizations: Sequence[InvoiceItemCustomizationInput]
    ) -> MaybeErrorResult[OverwriteUserInvoiceItemCustomizationsError]: ...


# ---------- Entries ----------
@dataclass(frozen=True, slots=True)
class UserEntryRecord:
    id: int
    user_id: int
    invoice_item_id: int
    entry_date: date
    minutes: int
    remark: str | None


@dataclass(frozen=True, slots=True)
class NewUserEntry:
    invoice_item_id: int
    entry_date: date
    minutes: int
    remark: str | None


class GetUserEntriesForDatesError(enum.IntEnum):
    UNKNOWN = 0


class DeleteUserEntriesForDateRangeError(enum.IntEnum):
    UNKNOWN = 0


class SaveUserEntriesError(enum.IntEnum):
    UNKNOWN = 0


class UserEntryRepository(Protocol):
    async def get_user_entries_for_dates(
        self, user_id: int, dates: Sequence[date]
    ) -> ValueOrErrorResult[list[UserEntryRecord], GetUserEntriesForDatesError]: ...

    def transaction(self) -> AbstractAsyncContextManager[None]:
        """Unit of work for the write methods below; an exception inside rolls everything back."""
        ...

    async def delete_user_entries_for_date_range(
        self, user_id: int, from_date: date, to_date_inclusive: date, project_ids: Sequence[int]
    ) -> MaybeErrorResult[DeleteUserEntriesForDateRangeError]: ...

    async def save_user_entries(
        self, user_id: int, entries: Sequence[NewUserEntry]
    ) -> MaybeErrorResult[SaveUserEntriesError]: ...


# ---------- Exports ----------
@dataclass(frozen=True, slots=True)
class ExportUserEntry:
    id: int
    user_id: int
    user_name: str
    entry_date: date
    project_id: int
    project_name: str
    invoice_item_id: int
    invoice_item_name: str
    minutes: int
    remark: str | None


class ExportUserEntryRepository(Protocol):
    def get_export_user_entries(self, start: date, stop: date) -> AsyncIterator[ExportUserEntry]:
        """Lazily yield entries dated ``start..stop`` inclusive, in store order."""
        ...


# ---------- User entry categories ----------
@dataclass(frozen=True, slots=True)
class UserEntryCategoryData:
    name: str
    ordinal: int
    enabled: bool
    active_from: date | None
    active_to: date | None


@dataclass(frozen=True, slots=True)
class UserEntryCategoryRecord:
    id: int
    name: str
    ordinal: int
    enabled: bool
    active_from: date | None
    active_to: date | None

    def is_entry_allowed_for_date(self, value: date) -> bool:
        return is_entry_allowed_for_date(
            enabled=self.enabled, active_from=self.active_from, active_to=self.active_to, value=value
        )


@dataclass(frozen=True, slots=True)
class UserEntryCategoryUpdate:
    """Item of a full category list replacement; ``id=None`` creates a new category."""

    id: int | None
    data: UserEntryCategoryData


class GetUserEntryCategoriesError(enum.IntEnum):
    UNKNOWN = 0


class SaveNewUserEntryCategoryError(enum.IntEnum):
    UNKNOWN = 0
    DUPLICATE_NAME = 1
    DUPLICATE_ORDINAL = 2


class UpdateUserEntryCategoryRepositoryError(enum.IntEnum):
    UNKNOWN = 0
    DUPLICATE_NAME = 1
    DUPLICATE_ORDINAL = 2
    USER_ENTRY_CATEGORY_DOES_NOT_EXIST = 3
    USER_ENTRY_CATEGORY_BELONGS_TO_OTHER_USER = 4


class DeleteUserEntryCategoryRepositoryError(enum.IntEnum):
    UNKNOWN = 0
    USER_ENTRY_CATEGORY_DOES_NOT_EXIST = 1
    USER_ENTRY_CATEGORY_BELONGS_TO_OTHER_USER = 2


class UpdateUserEntryCategoriesRepositoryError(enum.IntEnum):
    UNKNOWN = 0
    DUPLICATE_NAME = 1
    DUPLICATE_ORDINAL = 2
    USER_ENTRY_CATEGORY_DOES_NOT_EXIST = 3


class UserEntryCategoryRepository(Protocol):
    async def get_user_entry_categories(
        self, user_id: int
    ) -> ValueOrErrorResult[list[UserEntryCategoryRecord], GetUserEntryCategoriesError]: ...

    async def save_new_user_entry_category(
        self, user_id: int, data: UserEntryCategoryData
    ) -> ValueOrErrorResult[int, SaveNewUserEntryCategoryError]: ...

    async def update_user_entry_category(
        self, user_id: int, category_id: int, data: UserEntryCategoryData
    ) -> MaybeErrorResult[UpdateUserEntryCategoryRepositoryError]: ...

    async def delete_user_entry_category(
        self, user_id: int, category_id: int
    ) -> MaybeErrorResult[DeleteUserEntryCategoryRepositoryError]: ...

    async def update_user_entry_categories(
        self, user_id: int, categories: Sequence[UserEntryCategoryUpdate]
    ) -> MaybeErrorResult[UpdateUserEntryCategoriesRepositoryError]: ...
