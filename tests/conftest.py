from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import keepi.models.entities  # noqa: F401
from keepi.core.auth import ResolvedUser, ResolveUser, ResolveUserError
from keepi.core.config import Settings, get_settings
from keepi.core.permissions import UserPermission
from keepi.core.result import ValueOrErrorResult
from keepi.db.base import Base
from keepi.db.dependencies import get_db_session_factory
from keepi.db.session import create_session_factory
from keepi.main import create_app

ADMIN_EMAIL = "admin@test.local"


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        identity_provider="github",
        first_admin_user_email_address=ADMIN_EMAIL,
        auth_allow_dev_principal=False,
    )


@pytest.fixture()
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)
    try:
        yield create_session_factory(engine)
    finally:
        async with engine.begin() as connection:
            await connection.run_sync(Base.metadata.drop_all)
        await engine.dispose()


@pytest.fixture()
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    session = session_factory()
    try:
        yield session
    finally:
        await session.close()


@pytest.fixture()
async def client(
    session_factory: async_sessionmaker[AsyncSession], settings: Settings
) -> AsyncGenerator[AsyncClient, None]:
    app = create_app()
    app.dependency_overrides[get_db_session_factory] = lambda: session_factory
    app.dependency_overrides[get_settings] = lambda: settings
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def make_user() -> Callable[..., ResolvedUser]:
    def factory(
        user_id: int = 42,
        *,
        entries: UserPermission = UserPermission.READ_AND_MODIFY,
        exports: UserPermission = UserPermission.READ_AND_MODIFY,
        projects: UserPermission = UserPermission.READ_AND_MODIFY,
        users: UserPermission = UserPermission.READ_AND_MODIFY,
    ) -> ResolvedUser:
        return ResolvedUser(
            id=user_id,
            name=f"User {user_id}",
            email_address=f"user{user_id}@test.local",
            entries_permission=entries,
            exports_permission=exports,
            projects_permission=projects,
            users_permission=users,
        )

    return factory


@pytest.fixture()
def resolve_user_as() -> Callable[..., AsyncMock]:
    """Gate double returning a fixed user, or a fixed error when ``user`` is omitted."""

    def factory(
        user: ResolvedUser | None = None, error: ResolveUserError = ResolveUserError.USER_NOT_AUTHENTICATED
    ) -> AsyncMock:
        resolve_user = AsyncMock(spec=ResolveUser)
        if user is None:
            resolve_user.execute.return_value = ValueOrErrorResult.failure(error)
        else:
            resolve_user.execute.return_value = ValueOrErrorResult.success(user)
        return resolve_user

    return factory
