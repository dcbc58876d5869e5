"""Use cases for project administration."""

from __future__ import annotations

import enum
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from keepi.core.auth import ResolveUser, authorization_failure, authorize, can_modify_projects, can_read_projects
from keepi.core.result import MaybeErrorResult, ValueOrErrorResult
from keepi.repositories.interfaces import (
    DeleteProjectRepositoryError,
    EntryCleanup,
    GetProjectError,
    ProjectInvoiceItemRecord,
    ProjectMembershipChanges,
    ProjectRecord,
    ProjectRepository,
    SaveNewProjectError,
    UpdateProjectRepositoryError,
)
from keepi.services.validation import has_duplicates, is_valid_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class InvoiceItemInput:
    """Requested invoice item of a project; ``id=None`` adds a new one."""

    id: int | None
    name: str


def compute_project_membership_changes(
    current: ProjectRecord,
    *,
    name: str,
    enabled: bool,
    user_ids: Sequence[int],
    invoice_items: Sequence[InvoiceItemInput],
) -> ProjectMembershipChanges:
    """Diff the stored project against the requested users and invoice items.

    Entries and customizations are cleaned up for every removed invoice item
    and, for users leaving the project, under the invoice items that remain.
    """

    old_user_ids = frozenset(user.id for user in current.users)
    new_user_ids = frozenset(user_ids)
    removed_user_ids = old_user_ids - new_user_ids

    old_items = {item.id: item.name for item in current.invoice_items}
    kept_items = {item.id: item.name for item in invoice_items if item.id is not None}
    removed_item_ids = frozenset(old_items) - frozenset(kept_items)
    renamed_items = tuple(
        ProjectInvoiceItemRecord(id=item_id, name=item_name)
        for item_id, item_name in kept_items.items()
        if old_items.get(item_id) != item_name
    )

    cleanups: list[EntryCleanup] = []
    if removed_item_ids:
        cleanups.append(EntryCleanup(invoice_item_ids=removed_item_ids))
    remaining_item_ids = frozenset(old_items) - removed_item_ids
    if removed_user_ids and remaining_item_ids:
        cleanups.append(EntryCleanup(invoice_item_ids=remaining_item_ids, user_ids=removed_user_ids))

    return ProjectMembershipChanges(
        project_id=current.id,
        name=name,
        enabled=enabled,
        added_user_ids=new_user_ids - old_user_ids,
        removed_user_ids=removed_user_ids,
        added_invoice_item_names=tuple(item.name for item in invoice_items if item.id is None),
        renamed_invoice_items=renamed_items,
        removed_invoice_item_ids=removed_item_ids,
        entry_cleanups=tuple(cleanups),
    )


class GetAllProjectsError(enum.IntEnum):
    UNKNOWN = 0
    UNAUTHENTICATED_USER = 1
    UNAUTHORIZED_USER = 2


class GetAllProjects:
    def __init__(self, *, resolve_user: ResolveUser, project_repository: ProjectRepository) -> None:
        self.resolve_user = resolve_user
        self.project_repository = project_repository

    async def execute(self) -> ValueOrErrorResult[list[ProjectRecord], GetAllProjectsError]:
        succeeded, _, error = (await authorize(self.resolve_user, can_read_projects)).try_success()
        if not succeeded:
            return ValueOrErrorResult.failure(authorization_failure(error, GetAllProjectsError))

        result = await self.project_repository.get_projects()
        if not result.succeeded:
            logger.error("Unexpected error %s whilst getting all projects", result.error.name)
            return ValueOrErrorResult.failure(GetAllProjectsError.UNKNOWN)
        return ValueOrErrorResult.success(result.value)


class CreateProjectError(enum.IntEnum):
    UNKNOWN = 0
    UNAUTHENTICATED_USER = 1
    UNAUTHORIZED_USER = 2
    INVALID_PROJECT_NAME = 3
    DUPLICATE_PROJECT_NAME = 4
    UNKNOWN_USER_ID = 5
    DUPLICATE_USER_IDS = 6
    INVALID_INVOICE_ITEM_NAME = 7
    DUPLICATE_INVOICE_ITEM_NAMES = 8


class CreateProject:
    def __init__(self, *, resolve_user: ResolveUser, project_repository: ProjectRepository) -> None:
        self.resolve_user = resolve_user
        self.project_repository = project_repository

    async def execute(
        self,
        *,
        name: str,
        enabled: bool,
        user_ids: Sequence[int],
        invoice_item_names: Sequence[str],
    ) -> ValueOrErrorResult[int, CreateProjectError]:
        succeeded, _, error = (await authorize(self.resolve_user, can_modify_projects)).try_success()
        if not succeeded:
            return ValueOrErrorResult.failure(authorization_failure(error, CreateProjectError))

        if not is_valid_name(name):
            return ValueOrErrorResult.failure(CreateProjectError.INVALID_PROJECT_NAME)
        if has_duplicates(user_ids):
            return ValueOrErrorResult.failure(CreateProjectError.DUPLICATE_USER_IDS)
        if not all(is_valid_name(item_name) for item_name in invoice_item_names):
            return ValueOrErrorResult.failure(CreateProjectError.INVALID_INVOICE_ITEM_NAME)
        if has_duplicates(invoice_item_names):
            return ValueOrErrorResult.failure(CreateProjectError.DUPLICATE_INVOICE_ITEM_NAMES)

        result = await self.project_repository.save_new_project(
            name=name,
            enabled=enabled,
            user_ids=user_ids,
            invoice_item_names=invoice_item_names,
        )
        if result.succeeded:
            return ValueOrErrorResult.success(result.value)

        match result.error:
            case SaveNewProjectError.DUPLICATE_PROJECT_NAME:
                return ValueOrErrorResult.failure(CreateProjectError.DUPLICATE_PROJECT_NAME)
            case SaveNewProjectError.UNKNOWN_USER_ID:
                return ValueOrErrorResult.failure(CreateProjectError.UNKNOWN_USER_ID)
            case _:
                logger.error("Unexpected error %s whilst creating project %r", result.error.name, name)
                return ValueOrErrorResult.failure(CreateProjectError.UNKNOWN)


class UpdateProjectError(enum.IntEnum):
    UNKNOWN = 0
    UNAUTHENTICATED_USER = 1
    UNAUTHORIZED_USER = 2
    UNKNOWN_PROJECT_ID = 3
    INVALID_PROJECT_NAME = 4
    DUPLICATE_PROJECT_NAME = 5
    UNKNOWN_USER_ID = 6
    DUPLICATE_USER_IDS = 7
    INVALID_INVOICE_ITEM_NAME = 8
    DUPLICATE_INVOICE_ITEM_IDS = 9
    DUPLICATE_INVOICE_ITEM_NAMES = 10
    UNKNOWN_INVOICE_ITEM_ID = 11


class UpdateProject:
    def __init__(self, *, resolve_user: ResolveUser, project_repository: ProjectRepository) -> None:
        self.resolve_user = resolve_user
        self.project_repository = project_repository

    async def execute(
        self,
        *,
        project_id: int,
        name: str,
        enabled: bool,
        user_ids: Sequence[int],
        invoice_items: Sequence[InvoiceItemInput],
    ) -> MaybeErrorResult[UpdateProjectError]:
        succeeded, _, error = (await authorize(self.resolve_user, can_modify_projects)).try_success()
        if not succeeded:
            return MaybeErrorResult.failure(authorization_failure(error, UpdateProjectError))

        if not is_valid_name(name):
            return MaybeErrorResult.failure(UpdateProjectError.INVALID_PROJECT_NAME)
        if has_duplicates(user_ids):
            return MaybeErrorResult.failure(UpdateProjectError.DUPLICATE_USER_IDS)
        if not all(is_valid_name(item.name) for item in invoice_items):
            return MaybeErrorResult.failure(UpdateProjectError.INVALID_INVOICE_ITEM_NAME)
        if has_duplicates(item.id for item in invoice_items if item.id is not None):
            return MaybeErrorResult.failure(UpdateProjectError.DUPLICATE_INVOICE_ITEM_IDS)
        if has_duplicates(item.name for item in invoice_items):
            return MaybeErrorResult.failure(UpdateProjectError.DUPLICATE_INVOICE_ITEM_NAMES)

        current_result = await self.project_repository.get_project(project_id)
        succeeded, current, get_error = current_result.try_success()
        if not succeeded:
            match get_error:
                case GetProjectError.UNKNOWN_PROJECT_ID:
                    return MaybeErrorResult.failure(UpdateProjectError.UNKNOWN_PROJECT_ID)
                case _:
                    logger.error("Unexpected error %s whilst getting project %s", get_error.name, project_id)
                    return MaybeErrorResult.failure(UpdateProjectError.UNKNOWN)

        current_item_ids = {item.id for item in current.invoice_items}
        if any(item.id is not None and item.id not in current_item_ids for item in invoice_items):
            return MaybeErrorResult.failure(UpdateProjectError.UNKNOWN_INVOICE_ITEM_ID)

        changes = compute_project_membership_changes(
            current,
            name=name,
            enabled=enabled,
            user_ids=user_ids,
            invoice_items=invoice_items,
        )
        result = await self.project_repository.update_project(changes)
        if result.succeeded:
            return MaybeErrorResult.success()

        match result.error:
            case UpdateProjectRepositoryError.DUPLICATE_PROJECT_NAME:
                return MaybeErrorResult.failure(UpdateProjectError.DUPLICATE_PROJECT_NAME)
            case UpdateProjectRepositoryError.UNKNOWN_PROJECT_ID:
                return MaybeErrorResult.failure(UpdateProjectError.UNKNOWN_PROJECT_ID)
            case UpdateProjectRepositoryError.UNKNOWN_USER_ID:
                return MaybeErrorResult.failure(UpdateProjectError.UNKNOWN_USER_ID)
            case UpdateProjectRepositoryError.UNKNOWN_INVOICE_ITEM_ID:
                return MaybeErrorResult.failure(UpdateProjectError.UNKNOWN_INVOICE_ITEM_ID)
            case _:
                logger.error("Unexpected error %s whilst updating project %s", result.error.name, project_id)
                return MaybeErrorResult.failure(UpdateProjectError.UNKNOWN)


class DeleteProjectError(enum.IntEnum):
    UNKNOWN = 0
    UNAUTHENTICATED_USER = 1
    UNAUTHORIZED_USER = 2
    UNKNOWN_PROJECT_ID = 3


class DeleteProject:
    def __init__(self, *, resolve_user: ResolveUser, project_repository: ProjectRepository) -> None:
        self.resolve_user = resolve_user
        self.project_repository = project_repository

    async def execute(self, *, project_id: int) -> MaybeErrorResult[DeleteProjectError]:
        succeeded, _, error = (await authorize(self.resolve_user, can_modify_projects)).try_success()
        if not succeeded:
            return MaybeErrorResult.failure(authorization_failure(error, DeleteProjectError))

        result = await self.project_repository.delete_project(project_id)
        if result.succeeded:
            return MaybeErrorResult.success()

        match result.error:
            case DeleteProjectRepositoryError.UNKNOWN_PROJECT_ID:
                return MaybeErrorResult.failure(DeleteProjectError.UNKNOWN_PROJECT_ID)
            case _:
                logger.error("Unexpected error %s whilst deleting project %s", result.error.name, project_id)
                return MaybeErrorResult.failure(DeleteProjectError.UNKNOWN)
