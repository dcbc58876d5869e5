"""SQLAlchemy implementation of the user project and customization port."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Sequence

from sqlalchemy import and_, delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from keepi.core.color import Color
from keepi.core.result import MaybeErrorResult, ValueOrErrorResult
from keepi.models.entities import InvoiceItem, Project, ProjectUser, UserInvoiceItemCustomization
from keepi.repositories.interfaces import (
    GetUserProjectsError,
    InvoiceItemCustomization,
    InvoiceItemCustomizationInput,
    OverwriteUserInvoiceItemCustomizationsError,
    UserProject,
    UserProjectInvoiceItem,
)

logger = logging.getLogger(__name__)


class SqlUserProjectRepository:
    """Projects a user is assigned to, with that user's invoice item customizations."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_user_projects(self, user_id: int) -> ValueOrErrorResult[list[UserProject], GetUserProjectsError]:
        try:
            projects = (
                await self.db.scalars(
                    select(Project)
                    .join(ProjectUser, ProjectUser.project_id == Project.id)
                    .where(ProjectUser.user_id == user_id)
                    .order_by(Project.name.asc())
                )
            ).all()
            project_ids = [project.id for project in projects]

            items_by_project: dict[int, list[InvoiceItem]] = defaultdict(list)
            customizations: dict[int, UserInvoiceItemCustomization] = {}
            if project_ids:
                items = await self.db.scalars(
                    select(InvoiceItem)
                    .where(InvoiceItem.project_id.in_(project_ids))
                    .order_by(InvoiceItem.id.asc())
                )
                for item in items:
                    items_by_project[item.project_id].append(item)

                rows = await self.db.scalars(
                    select(UserInvoiceItemCustomization)
                    .join(InvoiceItem, InvoiceItem.id == UserInvoiceItemCustomization.invoice_item_id)
                    .where(
                        and_(
                            UserInvoiceItemCustomization.user_id == user_id,
                            InvoiceItem.project_id.in_(project_ids),
                        )
                    )
                )
                customizations = {row.invoice_item_id: row for row in rows}
        except Exception:
            logger.exception("Failed to get projects of user %s", user_id)
            return ValueOrErrorResult.failure(GetUserProjectsError.UNKNOWN)

        return ValueOrErrorResult.success(
            [
                UserProject(
                    id=project.id,
                    name=project.name,
                    enabled=project.enabled,
                    invoice_items=[
                        UserProjectInvoiceItem(
                            id=item.id,
                            name=item.name,
                            customization=_to_customization(customizations.get(item.id)),
                        )
                        for item in items_by_project[project.id]
                    ],
                )
                for project in projects
            ]
        )

    async def overwrite_user_invoice_item_customizations(
        self, user_id: int, customizations: Sequence[InvoiceItemCustomizationInput]
    ) -> MaybeErrorResult[OverwriteUserInvoiceItemCustomizationsError]:
        item_ids = [customization.invoice_item_id for customization in customizations]
        try:
            if item_ids:
                known = set((await self.db.scalars(select(InvoiceItem.id).where(InvoiceItem.id.in_(item_ids)))).all())
                if known != set(item_ids):
                    return MaybeErrorResult.failure(
                        OverwriteUserInvoiceItemCustomizationsError.UNKNOWN_INVOICE_ITEM_ID
                    )
                await self.db.execute(
                    delete(UserInvoiceItemCustomization).where(
                        and_(
                            UserInvoiceItemCustomization.user_id == user_id,
                            UserInvoiceItemCustomization.invoice_item_id.in_(item_ids),
                        )
                    )
                )
            self.db.add_all(
                UserInvoiceItemCustomization(
                    user_id=user_id,
                    invoice_item_id=customization.invoice_item_id,
                    ordinal=customization.ordinal,
                    color=customization.color.to_uint32() if customization.color is not None else None,
                )
                for customization in customizations
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            logger.exception("Failed to overwrite invoice item customizations of user %s", user_id)
            return MaybeErrorResult.failure(OverwriteUserInvoiceItemCustomizationsError.UNKNOWN)
        return MaybeErrorResult.success()


def _to_customization(row: UserInvoiceItemCustomization | None) -> InvoiceItemCustomization:
    if row is None:
        return InvoiceItemCustomization()
    return InvoiceItemCustomization(
        ordinal=row.ordinal,
        color=Color.from_uint32(row.color) if row.color is not None else None,
    )
