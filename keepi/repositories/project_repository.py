"""SQLAlchemy implementation of the project repository port."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence

from sqlalchemy import and_, delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from keepi.core.result import MaybeErrorResult, ValueOrErrorResult
from keepi.models.entities import InvoiceItem, Project, ProjectUser, User, UserEntry, UserInvoiceItemCustomization
from keepi.repositories.interfaces import (
    DeleteProjectRepositoryError,
    EntryCleanup,
    GetProjectError,
    GetProjectsError,
    ProjectInvoiceItemRecord,
    ProjectMembershipChanges,
    ProjectRecord,
    ProjectUserRecord,
    SaveNewProjectError,
    UpdateProjectRepositoryError,
)
from keepi.repositories.placeholders import placeholder_names

logger = logging.getLogger(__name__)


class SqlProjectRepository:
    """Persistence operations for projects, their users and invoice items."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # ---------- Reads ----------
    async def get_projects(self) -> ValueOrErrorResult[list[ProjectRecord], GetProjectsError]:
        try:
            projects = (await self.db.scalars(select(Project).order_by(Project.name.asc()))).all()
            records = await self._to_records(projects)
        except Exception:
            logger.exception("Failed to get projects")
            return ValueOrErrorResult.failure(GetProjectsError.UNKNOWN)
        return ValueOrErrorResult.success(records)

    async def get_project(self, project_id: int) -> ValueOrErrorResult[ProjectRecord, GetProjectError]:
        try:
            project = await self.db.get(Project, project_id)
            if project is None:
                return ValueOrErrorResult.failure(GetProjectError.UNKNOWN_PROJECT_ID)
            records = await self._to_records([project])
        except Exception:
            logger.exception("Failed to get project %s", project_id)
            return ValueOrErrorResult.failure(GetProjectError.UNKNOWN)
        return ValueOrErrorResult.success(records[0])

    async def _to_records(self, projects: Sequence[Project]) -> list[ProjectRecord]:
        project_ids = [project.id for project in projects]
        if not project_ids:
            return []

        users_by_project: dict[int, list[ProjectUserRecord]] = defaultdict(list)
        user_rows = await self.db.execute(
            select(ProjectUser.project_id, User.id, User.name)
            .join(User, User.id == ProjectUser.user_id)
            .where(ProjectUser.project_id.in_(project_ids))
            .order_by(User.name.asc(), User.id.asc())
        )
        for project_id, user_id, user_name in user_rows:
            users_by_project[project_id].append(ProjectUserRecord(id=user_id, name=user_name))

        items_by_project: dict[int, list[ProjectInvoiceItemRecord]] = defaultdict(list)
        items = await self.db.scalars(
            select(InvoiceItem).where(InvoiceItem.project_id.in_(project_ids)).order_by(InvoiceItem.id.asc())
        )
        for item in items:
            items_by_project[item.project_id].append(ProjectInvoiceItemRecord(id=item.id, name=item.name))

        return [
            ProjectRecord(
                id=project.id,
                name=project.name,
                enabled=project.enabled,
                users=users_by_project[project.id],
                invoice_items=items_by_project[project.id],
            )
            for project in projects
        ]

    # ---------- Writes ----------
    async def save_new_project(
        self,
        *,
        name: str,
        enabled: bool,
        user_ids: Sequence[int],
        invoice_item_names: Sequence[str],
    ) -> ValueOrErrorResult[int, SaveNewProjectError]:
        try:
            if await self._project_name_taken(name):
                return ValueOrErrorResult.failure(SaveNewProjectError.DUPLICATE_PROJECT_NAME)
            if not await self._users_exist(user_ids):
                return ValueOrErrorResult.failure(SaveNewProjectError.UNKNOWN_USER_ID)

            project = Project(name=name, enabled=enabled)
            self.db.add(project)
            await self.db.flush()
            self.db.add_all(ProjectUser(project_id=project.id, user_id=user_id) for user_id in user_ids)
            self.db.add_all(InvoiceItem(project_id=project.id, name=item_name) for item_name in invoice_item_names)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            if await self._project_name_taken(name):
                return ValueOrErrorResult.failure(SaveNewProjectError.DUPLICATE_PROJECT_NAME)
            logger.exception("Constraint violation while saving new project %r", name)
            return ValueOrErrorResult.failure(SaveNewProjectError.UNKNOWN)
        except Exception:
            await self.db.rollback()
            logger.exception("Failed to save new project %r", name)
            return ValueOrErrorResult.failure(SaveNewProjectError.UNKNOWN)
        return ValueOrErrorResult.success(project.id)

    async def update_project(
        self, changes: ProjectMembershipChanges
    ) -> MaybeErrorResult[UpdateProjectRepositoryError]:
        try:
            project = await self.db.get(Project, changes.project_id)
            if project is None:
                return MaybeErrorResult.failure(UpdateProjectRepositoryError.UNKNOWN_PROJECT_ID)
            if await self._project_name_taken(changes.name, exclude_project_id=project.id):
                return MaybeErrorResult.failure(UpdateProjectRepositoryError.DUPLICATE_PROJECT_NAME)
            if not await self._users_exist(changes.added_user_ids):
                return MaybeErrorResult.failure(UpdateProjectRepositoryError.UNKNOWN_USER_ID)

            touched_item_ids = {item.id for item in changes.renamed_invoice_items} | changes.removed_invoice_item_ids
            project_item_ids = set(
                (await self.db.scalars(select(InvoiceItem.id).where(InvoiceItem.project_id == project.id))).all()
            )
            if not touched_item_ids <= project_item_ids:
                return MaybeErrorResult.failure(UpdateProjectRepositoryError.UNKNOWN_INVOICE_ITEM_ID)

            for cleanup in changes.entry_cleanups:
                await self._apply_entry_cleanup(cleanup)

            if changes.removed_user_ids:
                await self.db.execute(
                    delete(ProjectUser).where(
                        and_(
                            ProjectUser.project_id == project.id,
                            ProjectUser.user_id.in_(list(changes.removed_user_ids)),
                        )
                    )
                )
            if changes.removed_invoice_item_ids:
                await self.db.execute(
                    delete(InvoiceItem).where(InvoiceItem.id.in_(list(changes.removed_invoice_item_ids)))
                )
            await self._rename_invoice_items(project.id, changes.renamed_invoice_items)

            self.db.add_all(ProjectUser(project_id=project.id, user_id=user_id) for user_id in changes.added_user_ids)
            self.db.add_all(
                InvoiceItem(project_id=project.id, name=item_name) for item_name in changes.added_invoice_item_names
            )
            project.name = changes.name
            project.enabled = changes.enabled
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            if await self._project_name_taken(changes.name, exclude_project_id=changes.project_id):
                return MaybeErrorResult.failure(UpdateProjectRepositoryError.DUPLICATE_PROJECT_NAME)
            logger.exception("Constraint violation while updating project %s", changes.project_id)
            return MaybeErrorResult.failure(UpdateProjectRepositoryError.UNKNOWN)
        except Exception:
            await self.db.rollback()
            logger.exception("Failed to update project %s", changes.project_id)
            return MaybeErrorResult.failure(UpdateProjectRepositoryError.UNKNOWN)
        return MaybeErrorResult.success()

    async def delete_project(self, project_id: int) -> MaybeErrorResult[DeleteProjectRepositoryError]:
        try:
            project = await self.db.get(Project, project_id)
            if project is None:
                return MaybeErrorResult.failure(DeleteProjectRepositoryError.UNKNOWN_PROJECT_ID)

            item_ids = frozenset(
                (await self.db.scalars(select(InvoiceItem.id).where(InvoiceItem.project_id == project_id))).all()
            )
            if item_ids:
                await self._apply_entry_cleanup(EntryCleanup(invoice_item_ids=item_ids))
            await self.db.execute(delete(InvoiceItem).where(InvoiceItem.project_id == project_id))
            await self.db.execute(delete(ProjectUser).where(ProjectUser.project_id == project_id))
            await self.db.delete(project)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            logger.exception("Failed to delete project %s", project_id)
            return MaybeErrorResult.failure(DeleteProjectRepositoryError.UNKNOWN)
        return MaybeErrorResult.success()

    # ---------- Helpers ----------
    async def _project_name_taken(self, name: str, *, exclude_project_id: int | None = None) -> bool:
        query = select(func.count()).select_from(Project).where(Project.name == name)
        if exclude_project_id is not None:
            query = query.where(Project.id != exclude_project_id)
        return bool(await self.db.scalar(query))

    async def _users_exist(self, user_ids: Iterable[int]) -> bool:
        wanted = set(user_ids)
        if not wanted:
            return True
        found = await self.db.scalar(select(func.count()).select_from(User).where(User.id.in_(list(wanted))))
        return found == len(wanted)

    async def _apply_entry_cleanup(self, cleanup: EntryCleanup) -> None:
        for model in (UserEntry, UserInvoiceItemCustomization):
            statement = delete(model).where(model.invoice_item_id.in_(list(cleanup.invoice_item_ids)))
            if cleanup.user_ids is not None:
                statement = statement.where(model.user_id.in_(list(cleanup.user_ids)))
            await self.db.execute(statement)

    async def _rename_invoice_items(self, project_id: int, renamed: Iterable[ProjectInvoiceItemRecord]) -> None:
        items = {item.id: item.name for item in renamed}
        if not items:
            return
        current_names = (
            await self.db.scalars(select(InvoiceItem.name).where(InvoiceItem.project_id == project_id))
        ).all()
        rows = (await self.db.scalars(select(InvoiceItem).where(InvoiceItem.id.in_(list(items))))).all()
        # Two passes so swapped names never collide on the unique constraint.
        for row, name in zip(rows, placeholder_names([*current_names, *items.values()], len(rows))):
            row.name = name
        await self.db.flush()
        for row in rows:
            row.name = items[row.id]
        await self.db.flush()
