from __future__ import annotations

from collections.abc import Callable
from unittest.mock import AsyncMock

from keepi.core.auth import ResolvedUser
from keepi.core.permissions import UserPermission
from keepi.core.result import MaybeErrorResult, ValueOrErrorResult
from keepi.repositories.interfaces import (
    DeleteProjectRepositoryError,
    EntryCleanup,
    GetProjectError,
    ProjectInvoiceItemRecord,
    ProjectRecord,
    ProjectRepository,
    ProjectUserRecord,
    SaveNewProjectError,
)
from keepi.services.projects import (
    CreateProject,
    CreateProjectError,
    DeleteProject,
    DeleteProjectError,
    GetAllProjects,
    GetAllProjectsError,
    InvoiceItemInput,
    UpdateProject,
    UpdateProjectError,
    compute_project_membership_changes,
)


def _project() -> ProjectRecord:
    return ProjectRecord(
        id=1,
        name="Keepi",
        enabled=True,
        users=[ProjectUserRecord(id=10, name="Ada"), ProjectUserRecord(id=11, name="Grace")],
        invoice_items=[
            ProjectInvoiceItemRecord(id=100, name="Development"),
            ProjectInvoiceItemRecord(id=101, name="Support"),
            ProjectInvoiceItemRecord(id=102, name="Meetings"),
        ],
    )


def _project_repository() -> AsyncMock:
    repository = AsyncMock(spec=ProjectRepository)
    repository.get_projects.return_value = ValueOrErrorResult.success([_project()])
    repository.get_project.return_value = ValueOrErrorResult.success(_project())
    repository.save_new_project.return_value = ValueOrErrorResult.success(5)
    repository.update_project.return_value = MaybeErrorResult.success()
    repository.delete_project.return_value = MaybeErrorResult.success()
    return repository


def test_membership_changes_are_set_differences() -> None:
    changes = compute_project_membership_changes(
        _project(),
        name="Keepi 2",
        enabled=False,
        user_ids=[11, 12],
        invoice_items=[
            InvoiceItemInput(id=100, name="Development"),
            InvoiceItemInput(id=101, name="Customer support"),
            InvoiceItemInput(id=None, name="Travel"),
        ],
    )

    assert changes.name == "Keepi 2"
    assert changes.enabled is False
    assert changes.added_user_ids == frozenset({12})
    assert changes.removed_user_ids == frozenset({10})
    assert changes.added_invoice_item_names == ("Travel",)
    assert changes.renamed_invoice_items == (ProjectInvoiceItemRecord(id=101, name="Customer support"),)
    assert changes.removed_invoice_item_ids == frozenset({102})
    assert changes.entry_cleanups == (
        EntryCleanup(invoice_item_ids=frozenset({102})),
        EntryCleanup(invoice_item_ids=frozenset({100, 101}), user_ids=frozenset({10})),
    )


def test_unchanged_project_produces_no_cleanups() -> None:
    changes = compute_project_membership_changes(
        _project(),
        name="Keepi",
        enabled=True,
        user_ids=[10, 11],
        invoice_items=[
            InvoiceItemInput(id=100, name="Development"),
            InvoiceItemInput(id=101, name="Support"),
            InvoiceItemInput(id=102, name="Meetings"),
        ],
    )

    assert changes.added_user_ids == changes.removed_user_ids == frozenset()
    assert changes.renamed_invoice_items == ()
    assert changes.entry_cleanups == ()


async def test_read_only_user_cannot_delete_project(
    make_user: Callable[..., ResolvedUser], resolve_user_as: Callable[..., AsyncMock]
) -> None:
    repository = _project_repository()
    use_case = DeleteProject(
        resolve_user=resolve_user_as(make_user(42, projects=UserPermission.READ)), project_repository=repository
    )

    result = await use_case.execute(project_id=1)

    assert result.error is DeleteProjectError.UNAUTHORIZED_USER
    repository.delete_project.assert_not_awaited()


async def test_delete_unknown_project(
    make_user: Callable[..., ResolvedUser], resolve_user_as: Callable[..., AsyncMock]
) -> None:
    repository = _project_repository()
    repository.delete_project.return_value = MaybeErrorResult.failure(DeleteProjectRepositoryError.UNKNOWN_PROJECT_ID)

    result = await DeleteProject(resolve_user=resolve_user_as(make_user()), project_repository=repository).execute(
        project_id=404
    )

    assert result.error is DeleteProjectError.UNKNOWN_PROJECT_ID


async def test_create_project_validates_before_saving(
    make_user: Callable[..., ResolvedUser], resolve_user_as: Callable[..., AsyncMock]
) -> None:
    repository = _project_repository()
    use_case = CreateProject(resolve_user=resolve_user_as(make_user()), project_repository=repository)

    cases = [
        ({"name": " "}, CreateProjectError.INVALID_PROJECT_NAME),
        ({"name": "x" * 65}, CreateProjectError.INVALID_PROJECT_NAME),
        ({"user_ids": [1, 1]}, CreateProjectError.DUPLICATE_USER_IDS),
        ({"invoice_item_names": [""]}, CreateProjectError.INVALID_INVOICE_ITEM_NAME),
        ({"invoice_item_names": ["Dev", "Dev"]}, CreateProjectError.DUPLICATE_INVOICE_ITEM_NAMES),
    ]
    for overrides, expected in cases:
        arguments = {"name": "Keepi", "enabled": True, "user_ids": [1], "invoice_item_names": ["Dev"]}
        arguments.update(overrides)

        result = await use_case.execute(**arguments)

        assert result.error is expected
    repository.save_new_project.assert_not_awaited()


async def test_create_project_returns_new_id_and_maps_duplicates(
    make_user: Callable[..., ResolvedUser], resolve_user_as: Callable[..., AsyncMock]
) -> None:
    repository = _project_repository()
    use_case = CreateProject(resolve_user=resolve_user_as(make_user()), project_repository=repository)

    created = await use_case.execute(name="Keepi", enabled=True, user_ids=[1], invoice_item_names=["Dev"])
    repository.save_new_project.return_value = ValueOrErrorResult.failure(SaveNewProjectError.DUPLICATE_PROJECT_NAME)
    duplicate = await use_case.execute(name="Keepi", enabled=True, user_ids=[1], invoice_item_names=["Dev"])

    assert created.value == 5
    assert duplicate.error is CreateProjectError.DUPLICATE_PROJECT_NAME


async def test_update_project_passes_changes_to_repository(
    make_user: Callable[..., ResolvedUser], resolve_user_as: Callable[..., AsyncMock]
) -> None:
    repository = _project_repository()
    use_case = UpdateProject(resolve_user=resolve_user_as(make_user()), project_repository=repository)

    result = await use_case.execute(
        project_id=1,
        name="Keepi",
        enabled=True,
        user_ids=[10],
        invoice_items=[InvoiceItemInput(id=100, name="Development")],
    )

    assert result.succeeded
    changes = repository.update_project.await_args.args[0]
    assert changes.removed_user_ids == frozenset({11})
    assert changes.removed_invoice_item_ids == frozenset({101, 102})


async def test_update_project_rejects_foreign_invoice_items_and_unknown_projects(
    make_user: Callable[..., ResolvedUser], resolve_user_as: Callable[..., AsyncMock]
) -> None:
    repository = _project_repository()
    use_case = UpdateProject(resolve_user=resolve_user_as(make_user()), project_repository=repository)

    foreign = await use_case.execute(
        project_id=1, name="Keepi", enabled=True, user_ids=[], invoice_items=[InvoiceItemInput(id=999, name="X")]
    )
    duplicate_ids = await use_case.execute(
        project_id=1,
        name="Keepi",
        enabled=True,
        user_ids=[],
        invoice_items=[InvoiceItemInput(id=100, name="A"), InvoiceItemInput(id=100, name="B")],
    )
    repository.get_project.return_value = ValueOrErrorResult.failure(GetProjectError.UNKNOWN_PROJECT_ID)
    missing = await use_case.execute(project_id=404, name="Keepi", enabled=True, user_ids=[], invoice_items=[])

    assert foreign.error is UpdateProjectError.UNKNOWN_INVOICE_ITEM_ID
    assert duplicate_ids.error is UpdateProjectError.DUPLICATE_INVOICE_ITEM_IDS
    assert missing.error is UpdateProjectError.UNKNOWN_PROJECT_ID
    repository.update_project.assert_not_awaited()


async def test_get_all_projects_requires_projects_read(
    make_user: Callable[..., ResolvedUser], resolve_user_as: Callable[..., AsyncMock]
) -> None:
    repository = _project_repository()

    denied = await GetAllProjects(
        resolve_user=resolve_user_as(make_user(projects=UserPermission.NONE)), project_repository=repository
    ).execute()
    allowed = await GetAllProjects(
        resolve_user=resolve_user_as(make_user(projects=UserPermission.READ)), project_repository=repository
    ).execute()

    assert denied.error is GetAllProjectsError.UNAUTHORIZED_USER
    assert [project.name for project in allowed.value] == ["Keepi"]
