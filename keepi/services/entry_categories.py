"""Use cases for the caller's own entry categories."""

from __future__ import annotations

import enum
import logging
from collections.abc import Sequence

from keepi.core.auth import ResolveUser, authorization_failure, authorize, can_modify_entries, can_read_entries
from keepi.core.result import MaybeErrorResult, ValueOrErrorResult
from keepi.repositories.interfaces import (
    DeleteUserEntryCategoryRepositoryError,
    SaveNewUserEntryCategoryError,
    UpdateUserEntryCategoriesRepositoryError,
    UpdateUserEntryCategoryRepositoryError,
    UserEntryCategoryData,
    UserEntryCategoryRecord,
    UserEntryCategoryRepository,
    UserEntryCategoryUpdate,
)
from keepi.services.validation import has_duplicates, is_valid_active_date_range, is_valid_name

logger = logging.getLogger(__name__)


class GetUserEntryCategoriesError(enum.IntEnum):
    UNKNOWN = 0
    UNAUTHENTICATED_USER = 1
    UNAUTHORIZED_USER = 2


class GetUserEntryCategories:
    def __init__(self, *, resolve_user: ResolveUser, category_repository: UserEntryCategoryRepository) -> None:
        self.resolve_user = resolve_user
        self.category_repository = category_repository

    async def execute(self) -> ValueOrErrorResult[list[UserEntryCategoryRecord], GetUserEntryCategoriesError]:
        succeeded, user, error = (await authorize(self.resolve_user, can_read_entries)).try_success()
        if not succeeded:
            return ValueOrErrorResult.failure(authorization_failure(error, GetUserEntryCategoriesError))

        result = await self.category_repository.get_user_entry_categories(user.id)
        if not result.succeeded:
            logger.error(
                "Unexpected error %s whilst getting entry categories of user %s", result.error.name, user.id
            )
            return ValueOrErrorResult.failure(GetUserEntryCategoriesError.UNKNOWN)
        return ValueOrErrorResult.success(result.value)


class CreateUserEntryCategoryError(enum.IntEnum):
    UNKNOWN = 0
    UNAUTHENTICATED_USER = 1
    UNAUTHORIZED_USER = 2
    MALFORMED_NAME = 3
    DUPLICATE_NAME = 4
    DUPLICATE_ORDINAL = 5
    INVALID_ACTIVE_DATE_RANGE = 6


class CreateUserEntryCategory:
    def __init__(self, *, resolve_user: ResolveUser, category_repository: UserEntryCategoryRepository) -> None:
        self.resolve_user = resolve_user
        self.category_repository = category_repository

    async def execute(
        self, *, data: UserEntryCategoryData
    ) -> ValueOrErrorResult[int, CreateUserEntryCategoryError]:
        succeeded, user, error = (await authorize(self.resolve_user, can_modify_entries)).try_success()
        if not succeeded:
            return ValueOrErrorResult.failure(authorization_failure(error, CreateUserEntryCategoryError))

        if not is_valid_name(data.name):
            return ValueOrErrorResult.failure(CreateUserEntryCategoryError.MALFORMED_NAME)
        if not is_valid_active_date_range(data.active_from, data.active_to):
            return ValueOrErrorResult.failure(CreateUserEntryCategoryError.INVALID_ACTIVE_DATE_RANGE)

        result = await self.category_repository.save_new_user_entry_category(user.id, data)
        if result.succeeded:
            return ValueOrErrorResult.success(result.value)

        match result.error:
            case SaveNewUserEntryCategoryError.DUPLICATE_NAME:
                return ValueOrErrorResult.failure(CreateUserEntryCategoryError.DUPLICATE_NAME)
            case SaveNewUserEntryCategoryError.DUPLICATE_ORDINAL:
                return ValueOrErrorResult.failure(CreateUserEntryCategoryError.DUPLICATE_ORDINAL)
            case _:
                logger.error(
                    "Unexpected error %s whilst creating entry category for user %s", result.error.name, user.id
                )
                return ValueOrErrorResult.failure(CreateUserEntryCategoryError.UNKNOWN)


class UpdateUserEntryCategoryError(enum.IntEnum):
    UNKNOWN = 0
    UNAUTHENTICATED_USER = 1
    UNAUTHORIZED_USER = 2
    MALFORMED_NAME = 3
    DUPLICATE_NAME = 4
    DUPLICATE_ORDINAL = 5
    INVALID_ACTIVE_DATE_RANGE = 6
    UNKNOWN_USER_ENTRY_CATEGORY = 7


class UpdateUserEntryCategory:
    def __init__(self, *, resolve_user: ResolveUser, category_repository: UserEntryCategoryRepository) -> None:
        self.resolve_user = resolve_user
        self.category_repository = category_repository

    async def execute(
        self, *, category_id: int, data: UserEntryCategoryData
    ) -> MaybeErrorResult[UpdateUserEntryCategoryError]:
        succeeded, user, error = (await authorize(self.resolve_user, can_modify_entries)).try_success()
        if not succeeded:
            return MaybeErrorResult.failure(authorization_failure(error, UpdateUserEntryCategoryError))

        if not is_valid_name(data.name):
            return MaybeErrorResult.failure(UpdateUserEntryCategoryError.MALFORMED_NAME)
        if not is_valid_active_date_range(data.active_from, data.active_to):
            return MaybeErrorResult.failure(UpdateUserEntryCategoryError.INVALID_ACTIVE_DATE_RANGE)

        result = await self.category_repository.update_user_entry_category(user.id, category_id, data)
        if result.succeeded:
            return MaybeErrorResult.success()

        match result.error:
            case UpdateUserEntryCategoryRepositoryError.DUPLICATE_NAME:
                return MaybeErrorResult.failure(UpdateUserEntryCategoryError.DUPLICATE_NAME)
            case UpdateUserEntryCategoryRepositoryError.DUPLICATE_ORDINAL:
                return MaybeErrorResult.failure(UpdateUserEntryCategoryError.DUPLICATE_ORDINAL)
            case (
                UpdateUserEntryCategoryRepositoryError.USER_ENTRY_CATEGORY_DOES_NOT_EXIST
                | UpdateUserEntryCategoryRepositoryError.USER_ENTRY_CATEGORY_BELONGS_TO_OTHER_USER
            ):
                return MaybeErrorResult.failure(UpdateUserEntryCategoryError.UNKNOWN_USER_ENTRY_CATEGORY)
            case _:
                logger.error(
                    "Unexpected error %s whilst updating entry category %s of user %s",
                    result.error.name,
                    category_id,
                    user.id,
                )
                return MaybeErrorResult.failure(UpdateUserEntryCategoryError.UNKNOWN)


class UpdateUserEntryCategoriesError(enum.IntEnum):
    UNKNOWN = 0
    UNAUTHENTICATED_USER = 1
    UNAUTHORIZED_USER = 2
    MALFORMED_NAME = 3
    DUPLICATE_ID = 4
    DUPLICATE_NAME = 5
    DUPLICATE_ORDINAL = 6
    INVALID_ACTIVE_DATE_RANGE = 7
    UNKNOWN_USER_ENTRY_CATEGORY = 8


class UpdateUserEntryCategories:
    """Replace the caller's full category list; omitted categories are deleted."""

    def __init__(self, *, resolve_user: ResolveUser, category_repository: UserEntryCategoryRepository) -> None:
        self.resolve_user = resolve_user
        self.category_repository = category_repository

    async def execute(
        self, *, categories: Sequence[UserEntryCategoryUpdate]
    ) -> MaybeErrorResult[UpdateUserEntryCategoriesError]:
        succeeded, user, error = (await authorize(self.resolve_user, can_modify_entries)).try_success()
        if not succeeded:
            return MaybeErrorResult.failure(authorization_failure(error, UpdateUserEntryCategoriesError))

        for category in categories:
            if not is_valid_name(category.data.name):
                return MaybeErrorResult.failure(UpdateUserEntryCategoriesError.MALFORMED_NAME)
            if not is_valid_active_date_range(category.data.active_from, category.data.active_to):
                return MaybeErrorResult.failure(UpdateUserEntryCategoriesError.INVALID_ACTIVE_DATE_RANGE)
        if has_duplicates(category.id for category in categories if category.id is not None):
            return MaybeErrorResult.failure(UpdateUserEntryCategoriesError.DUPLICATE_ID)
        if has_duplicates(category.data.name for category in categories):
            return MaybeErrorResult.failure(UpdateUserEntryCategoriesError.DUPLICATE_NAME)
        if has_duplicates(category.data.ordinal for category in categories):
            return MaybeErrorResult.failure(UpdateUserEntryCategoriesError.DUPLICATE_ORDINAL)

        result = await self.category_repository.update_user_entry_categories(user.id, categories)
        if result.succeeded:
            return MaybeErrorResult.success()

        match result.error:
            case UpdateUserEntryCategoriesRepositoryError.DUPLICATE_NAME:
                return MaybeErrorResult.failure(UpdateUserEntryCategoriesError.DUPLICATE_NAME)
            case UpdateUserEntryCategoriesRepositoryError.DUPLICATE_ORDINAL:
                return MaybeErrorResult.failure(UpdateUserEntryCategoriesError.DUPLICATE_ORDINAL)
            case UpdateUserEntryCategoriesRepositoryError.USER_ENTRY_CATEGORY_DOES_NOT_EXIST:
                return MaybeErrorResult.failure(UpdateUserEntryCategoriesError.UNKNOWN_USER_ENTRY_CATEGORY)
            case _:
                logger.error(
                    "Unexpected error %s whilst updating entry categories of user %s", result.error.name, user.id
                )
                return MaybeErrorResult.failure(UpdateUserEntryCategoriesError.UNKNOWN)


class DeleteUserEntryCategoryError(enum.IntEnum):
    UNKNOWN = 0
    UNAUTHENTICATED_USER = 1
    UNAUTHORIZED_USER = 2
    UNKNOWN_USER_ENTRY_CATEGORY = 3


class DeleteUserEntryCategory:
    def __init__(self, *, resolve_user: ResolveUser, category_repository: UserEntryCategoryRepository) -> None:
        self.resolve_user = resolve_user
        self.category_repository = category_repository

    async def execute(self, *, category_id: int) -> MaybeErrorResult[DeleteUserEntryCategoryError]:
        succeeded, user, error = (await authorize(self.resolve_user, can_modify_entries)).try_success()
        if not succeeded:
            return MaybeErrorResult.failure(authorization_failure(error, DeleteUserEntryCategoryError))

        result = await self.category_repository.delete_user_entry_category(user.id, category_id)
        if result.succeeded:
            return MaybeErrorResult.success()

        match result.error:
            # Another user's category is reported exactly like a missing one.
            case (
                DeleteUserEntryCategoryRepositoryError.USER_ENTRY_CATEGORY_DOES_NOT_EXIST
                | DeleteUserEntryCategoryRepositoryError.USER_ENTRY_CATEGORY_BELONGS_TO_OTHER_USER
            ):
                return MaybeErrorResult.failure(DeleteUserEntryCategoryError.UNKNOWN_USER_ENTRY_CATEGORY)
            case _:
                logger.error(
                    "Unexpected error %s whilst deleting entry category %s of user %s",
                    result.error.name,
                    category_id,
                    user.id,
                )
                return MaybeErrorResult.failure(DeleteUserEntryCategoryError.UNKNOWN)
