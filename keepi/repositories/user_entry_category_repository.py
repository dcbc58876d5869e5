"""SQLAlchemy implementation of the user entry category port."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy import and_, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from keepi.core.result import MaybeErrorResult, ValueOrErrorResult
from keepi.models.entities import UserEntryCategory
from keepi.repositories.interfaces import (
    DeleteUserEntryCategoryRepositoryError,
    GetUserEntryCategoriesError,
    SaveNewUserEntryCategoryError,
    UpdateUserEntryCategoriesRepositoryError,
    UpdateUserEntryCategoryRepositoryError,
    UserEntryCategoryData,
    UserEntryCategoryRecord,
    UserEntryCategoryUpdate,
)
from keepi.repositories.placeholders import placeholder_names, placeholder_ordinals

logger = logging.getLogger(__name__)


def _to_record(category: UserEntryCategory) -> UserEntryCategoryRecord:
    return UserEntryCategoryRecord(
        id=category.id,
        name=category.name,
        ordinal=category.ordinal,
        enabled=category.enabled,
        active_from=category.active_from,
        active_to=category.active_to,
    )


def _apply(category: UserEntryCategory, data: UserEntryCategoryData) -> None:
    category.name = data.name
    category.ordinal = data.ordinal
    category.enabled = data.enabled
    category.active_from = data.active_from
    category.active_to = data.active_to


class SqlUserEntryCategoryRepository:
    """Per-user entry categories; other users' rows are never modified."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_user_entry_categories(
        self, user_id: int
    ) -> ValueOrErrorResult[list[UserEntryCategoryRecord], GetUserEntryCategoriesError]:
        try:
            categories = (
                await self.db.scalars(
                    select(UserEntryCategory)
                    .where(UserEntryCategory.user_id == user_id)
                    .order_by(UserEntryCategory.ordinal.asc())
                )
            ).all()
        except Exception:
            logger.exception("Failed to get entry categories of user %s", user_id)
            return ValueOrErrorResult.failure(GetUserEntryCategoriesError.UNKNOWN)
        return ValueOrErrorResult.success([_to_record(category) for category in categories])

    async def save_new_user_entry_category(
        self, user_id: int, data: UserEntryCategoryData
    ) -> ValueOrErrorResult[int, SaveNewUserEntryCategoryError]:
        try:
            if await self._name_taken(user_id, data.name):
                return ValueOrErrorResult.failure(SaveNewUserEntryCategoryError.DUPLICATE_NAME)
            if await self._ordinal_taken(user_id, data.ordinal):
                return ValueOrErrorResult.failure(SaveNewUserEntryCategoryError.DUPLICATE_ORDINAL)

            category = UserEntryCategory(user_id=user_id)
            _apply(category, data)
            self.db.add(category)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            if await self._name_taken(user_id, data.name):
                return ValueOrErrorResult.failure(SaveNewUserEntryCategoryError.DUPLICATE_NAME)
            if await self._ordinal_taken(user_id, data.ordinal):
                return ValueOrErrorResult.failure(SaveNewUserEntryCategoryError.DUPLICATE_ORDINAL)
            logger.exception("Constraint violation while saving entry category for user %s", user_id)
            return ValueOrErrorResult.failure(SaveNewUserEntryCategoryError.UNKNOWN)
        except Exception:
            await self.db.rollback()
            logger.exception("Failed to save entry category for user %s", user_id)
            return ValueOrErrorResult.failure(SaveNewUserEntryCategoryError.UNKNOWN)
        return ValueOrErrorResult.success(category.id)

    async def update_user_entry_category(
        self, user_id: int, category_id: int, data: UserEntryCategoryData
    ) -> MaybeErrorResult[UpdateUserEntryCategoryRepositoryError]:
        try:
            category = await self.db.get(UserEntryCategory, category_id)
            if category is None:
                return MaybeErrorResult.failure(
                    UpdateUserEntryCategoryRepositoryError.USER_ENTRY_CATEGORY_DOES_NOT_EXIST
                )
            if category.user_id != user_id:
                return MaybeErrorResult.failure(
                    UpdateUserEntryCategoryRepositoryError.USER_ENTRY_CATEGORY_BELONGS_TO_OTHER_USER
                )
            if await self._name_taken(user_id, data.name, exclude_id=category_id):
                return MaybeErrorResult.failure(UpdateUserEntryCategoryRepositoryError.DUPLICATE_NAME)
            if await self._ordinal_taken(user_id, data.ordinal, exclude_id=category_id):
                return MaybeErrorResult.failure(UpdateUserEntryCategoryRepositoryError.DUPLICATE_ORDINAL)

            _apply(category, data)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            if await self._name_taken(user_id, data.name, exclude_id=category_id):
                return MaybeErrorResult.failure(UpdateUserEntryCategoryRepositoryError.DUPLICATE_NAME)
            if await self._ordinal_taken(user_id, data.ordinal, exclude_id=category_id):
                return MaybeErrorResult.failure(UpdateUserEntryCategoryRepositoryError.DUPLICATE_ORDINAL)
            logger.exception("Constraint violation while updating entry category %s of user %s", category_id, user_id)
            return MaybeErrorResult.failure(UpdateUserEntryCategoryRepositoryError.UNKNOWN)
        except Exception:
            await self.db.rollback()
            logger.exception("Failed to update entry category %s of user %s", category_id, user_id)
            return MaybeErrorResult.failure(UpdateUserEntryCategoryRepositoryError.UNKNOWN)
        return MaybeErrorResult.success()

    async def delete_user_entry_category(
        self, user_id: int, category_id: int
    ) -> MaybeErrorResult[DeleteUserEntryCategoryRepositoryError]:
        try:
            category = await self.db.get(UserEntryCategory, category_id)
            if category is None:
                return MaybeErrorResult.failure(
                    DeleteUserEntryCategoryRepositoryError.USER_ENTRY_CATEGORY_DOES_NOT_EXIST
                )
            if category.user_id != user_id:
                return MaybeErrorResult.failure(
                    DeleteUserEntryCategoryRepositoryError.USER_ENTRY_CATEGORY_BELONGS_TO_OTHER_USER
                )
            await self.db.delete(category)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            logger.exception("Failed to delete entry category %s of user %s", category_id, user_id)
            return MaybeErrorResult.failure(DeleteUserEntryCategoryRepositoryError.UNKNOWN)
        return MaybeErrorResult.success()

    async def update_user_entry_categories(
        self, user_id: int, categories: Sequence[UserEntryCategoryUpdate]
    ) -> MaybeErrorResult[UpdateUserEntryCategoriesRepositoryError]:
        try:
            existing = {
                category.id: category
                for category in (
                    await self.db.scalars(select(UserEntryCategory).where(UserEntryCategory.user_id == user_id))
                ).all()
            }
            if any(update.id is not None and update.id not in existing for update in categories):
                return MaybeErrorResult.failure(
                    UpdateUserEntryCategoriesRepositoryError.USER_ENTRY_CATEGORY_DOES_NOT_EXIST
                )

            kept = {update.id: update.data for update in categories if update.id is not None}
            for category_id, category in existing.items():
                if category_id not in kept:
                    await self.db.delete(category)
            await self.db.flush()

            moving = [
                existing[category_id]
                for category_id, data in kept.items()
                if (existing[category_id].name, existing[category_id].ordinal) != (data.name, data.ordinal)
            ]
            if moving:
                # Park moving rows on values no current or requested row uses.
                names = placeholder_names(
                    [existing[category_id].name for category_id in kept] + [update.data.name for update in categories],
                    len(moving),
                )
                ordinals = placeholder_ordinals(
                    [existing[category_id].ordinal for category_id in kept]
                    + [update.data.ordinal for update in categories],
                    len(moving),
                )
                for category, name, ordinal in zip(moving, names, ordinals):
                    category.name = name
                    category.ordinal = ordinal
                await self.db.flush()

            for update in categories:
                if update.id is None:
                    category = UserEntryCategory(user_id=user_id)
                    _apply(category, update.data)
                    self.db.add(category)
                else:
                    _apply(existing[update.id], update.data)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            if len({update.data.name for update in categories}) < len(categories):
                return MaybeErrorResult.failure(UpdateUserEntryCategoriesRepositoryError.DUPLICATE_NAME)
            if len({update.data.ordinal for update in categories}) < len(categories):
                return MaybeErrorResult.failure(UpdateUserEntryCategoriesRepositoryError.DUPLICATE_ORDINAL)
            logger.exception("Constraint violation while replacing entry categories of user %s", user_id)
            return MaybeErrorResult.failure(UpdateUserEntryCategoriesRepositoryError.UNKNOWN)
        except Exception:
            await self.db.rollback()
            logger.exception("Failed to update entry categories of user %s", user_id)
            return MaybeErrorResult.failure(UpdateUserEntryCategoriesRepositoryError.UNKNOWN)
        return MaybeErrorResult.success()

    async def _name_taken(self, user_id: int, name: str, *, exclude_id: int | None = None) -> bool:
        query = select(func.count()).select_from(UserEntryCategory).where(
            and_(UserEntryCategory.user_id == user_id, UserEntryCategory.name == name)
        )
        if exclude_id is not None:
            query = query.where(UserEntryCategory.id != exclude_id)
        return bool(await self.db.scalar(query))

    async def _ordinal_taken(self, user_id: int, ordinal: int, *, exclude_id: int | None = None) -> bool:
        query = select(func.count()).select_from(UserEntryCategory).where(
            and_(UserEntryCategory.user_id == user_id, UserEntryCategory.ordinal == ordinal)
        )
        if exclude_id is not None:
            query = query.where(UserEntryCategory.id != exclude_id)
        return bool(await self.db.scalar(query))
