"""Request scoped wiring of identity, repositories and the user resolution gate."""

from __future__ import annotations

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from keepi.core.auth import ResolveUser, SettingsFirstAdminUserEmailAddress
from keepi.core.config import Settings, get_settings
from keepi.core.identity import (
    HeaderIdentitySource,
    IdentitySource,
    LocalApplicationIdentitySource,
    UserIdentityProvider,
)
from keepi.db.dependencies import get_db_session
from keepi.repositories.user_repository import SqlUserRepository
from keepi.services.registration import GetOrRegisterNewUser, RegisterUser


def get_identity_source(
    x_auth_type: str | None = Header(default=None, alias="X-Auth-Type"),
    x_auth_subject: str | None = Header(default=None, alias="X-Auth-Subject"),
    x_auth_name: str | None = Header(default=None, alias="X-Auth-Name"),
    x_auth_email: str | None = Header(default=None, alias="X-Auth-Email"),
    settings: Settings = Depends(get_settings),
) -> IdentitySource:
    """Pick the identity source matching the deployment.

    Header strategy:
    - Hosted deployments: trusted headers set by the authenticating proxy.
    - Desktop deployments: the fixed local account, headers are ignored.
    """

    if settings.identity_provider == UserIdentityProvider.LOCAL_APPLICATION.value:
        return LocalApplicationIdentitySource(settings.local_user_name.strip() or None)
    return HeaderIdentitySource(
        settings=settings,
        authentication_type=x_auth_type,
        subject=x_auth_subject,
        name=x_auth_name,
        email_address=x_auth_email,
    )


def get_user_repository(db: AsyncSession = Depends(get_db_session)) -> SqlUserRepository:
    return SqlUserRepository(db)


def get_resolve_user(
    identity_source: IdentitySource = Depends(get_identity_source),
    user_repository: SqlUserRepository = Depends(get_user_repository),
    settings: Settings = Depends(get_settings),
) -> ResolveUser:
    """One gate per request; FastAPI caches it for every use case of the request."""

    register_user = RegisterUser(
        user_repository=user_repository,
        first_admin_email_address=SettingsFirstAdminUserEmailAddress(settings),
    )
    return ResolveUser(
        identity_source=identity_source,
        get_or_register_new_user=GetOrRegisterNewUser(user_repository=user_repository, register_user=register_user),
        identity_provider=UserIdentityProvider(settings.identity_provider),
    )
