"""Use cases for the caller's own projects and invoice item display settings."""

from __future__ import annotations

import enum
import logging
from collections.abc import Sequence

from keepi.core.auth import ResolveUser, authorization_failure, authorize, can_modify_entries, can_read_entries
from keepi.core.result import MaybeErrorResult, ValueOrErrorResult
from keepi.repositories.interfaces import (
    InvoiceItemCustomizationInput,
    OverwriteUserInvoiceItemCustomizationsError,
    UserProject,
    UserProjectRepository,
)
from keepi.services.validation import has_duplicates

logger = logging.getLogger(__name__)


class GetUserProjectsError(enum.IntEnum):
    UNKNOWN = 0
    UNAUTHENTICATED_USER = 1
    UNAUTHORIZED_USER = 2


class GetUserProjects:
    def __init__(self, *, resolve_user: ResolveUser, user_project_repository: UserProjectRepository) -> None:
        self.resolve_user = resolve_user
        self.user_project_repository = user_project_repository

    async def execute(self) -> ValueOrErrorResult[list[UserProject], GetUserProjectsError]:
        succeeded, user, error = (await authorize(self.resolve_user, can_read_entries)).try_success()
        if not succeeded:
            return ValueOrErrorResult.failure(authorization_failure(error, GetUserProjectsError))

        result = await self.user_project_repository.get_user_projects(user.id)
        if not result.succeeded:
            logger.error("Unexpected error %s whilst getting projects of user %s", result.error.name, user.id)
            return ValueOrErrorResult.failure(GetUserProjectsError.UNKNOWN)
        return ValueOrErrorResult.success(result.value)


class UpdateUserInvoiceItemCustomizationsError(enum.IntEnum):
    UNKNOWN = 0
    UNAUTHENTICATED_USER = 1
    UNAUTHORIZED_USER = 2
    DUPLICATE_INVOICE_ITEM_ID = 3
    UNKNOWN_INVOICE_ITEM_ID = 4


class UpdateUserInvoiceItemCustomizations:
    def __init__(self, *, resolve_user: ResolveUser, user_project_repository: UserProjectRepository) -> None:
        self.resolve_user = resolve_user
        self.user_project_repository = user_project_repository

    async def execute(
        self, *, customizations: Sequence[InvoiceItemCustomizationInput]
    ) -> MaybeErrorResult[UpdateUserInvoiceItemCustomizationsError]:
        succeeded, user, error = (await authorize(self.resolve_user, can_modify_entries)).try_success()
        if not succeeded:
            return MaybeErrorResult.failure(authorization_failure(error, UpdateUserInvoiceItemCustomizationsError))

        if has_duplicates(customization.invoice_item_id for customization in customizations):
            return MaybeErrorResult.failure(UpdateUserInvoiceItemCustomizationsError.DUPLICATE_INVOICE_ITEM_ID)

        result = await self.user_project_repository.overwrite_user_invoice_item_customizations(
            user.id, customizations
        )
        if result.succeeded:
            return MaybeErrorResult.success()

        match result.error:
            case OverwriteUserInvoiceItemCustomizationsError.UNKNOWN_INVOICE_ITEM_ID:
                return MaybeErrorResult.failure(UpdateUserInvoiceItemCustomizationsError.UNKNOWN_INVOICE_ITEM_ID)
            case _:
                logger.error(
                    "Unexpected error %s whilst updating invoice item customizations of user %s",
                    result.error.name,
                    user.id,
                )
                return MaybeErrorResult.failure(UpdateUserInvoiceItemCustomizationsError.UNKNOWN)
