"""Identity claims extracted from the calling context."""

from __future__ import annotations

import enum
import getpass
from dataclasses import dataclass
from typing import Protocol

from keepi.core.config import Settings

GITHUB_AUTHENTICATION_TYPE = "GitHub"
LOCAL_APPLICATION_AUTHENTICATION_TYPE = "LocalApplication"
LOCAL_USER_EMAIL_ADDRESS = "user@localhost"


class UserIdentityProvider(str, enum.Enum):
    GITHUB = "github"
    LOCAL_APPLICATION = "local_application"

    @property
    def authentication_type(self) -> str:
        if self is UserIdentityProvider.GITHUB:
            return GITHUB_AUTHENTICATION_TYPE
        return LOCAL_APPLICATION_AUTHENTICATION_TYPE


@dataclass(frozen=True, slots=True)
class IdentityClaims:
    """Raw, unvalidated claims; any field may be blank."""

    authentication_type: str | None
    external_id: str | None
    name: str | None
    email_address: str | None


class IdentitySource(Protocol):
    def get_claims(self) -> IdentityClaims | None:
        """Claims of the current caller, or ``None`` when unauthenticated."""
        ...


class HeaderIdentitySource:
    """Claims forwarded by the trusted authenticating reverse proxy.

    Header strategy:
    - ``X-Auth-Type`` carries the authentication method (``GitHub``).
    - ``X-Auth-Subject``, ``X-Auth-Name`` and ``X-Auth-Email`` carry the identity.
    - Without any of these headers the configured development principal is
      used when ``auth_allow_dev_principal`` is enabled.
    """

    def __init__(
        self,
        *,
        settings: Settings,
        authentication_type: str | None,
        subject: str | None,
        name: str | None,
        email_address: str | None,
    ) -> None:
        self.settings = settings
        self.authentication_type = authentication_type
        self.subject = subject
        self.name = name
        self.email_address = email_address

    def get_claims(self) -> IdentityClaims | None:
        if any((self.authentication_type, self.subject, self.name, self.email_address)):
            return IdentityClaims(
                authentication_type=self.authentication_type,
                external_id=self.subject,
                name=self.name,
                email_address=self.email_address,
            )

        if self.settings.auth_allow_dev_principal:
            return IdentityClaims(
                authentication_type=GITHUB_AUTHENTICATION_TYPE,
                external_id=self.settings.auth_dev_subject.strip(),
                name=self.settings.auth_dev_name.strip(),
                email_address=self.settings.auth_dev_email.strip(),
            )

        return None


class LocalApplicationIdentitySource:
    """Single fixed identity of a desktop installation."""

    def __init__(self, user_name: str | None = None) -> None:
        self.user_name = user_name

    def get_claims(self) -> IdentityClaims | None:
        user_name = self.user_name
        if not user_name:
            try:
                user_name = getpass.getuser()
            except (KeyError, OSError):
                return None
        if not user_name:
            return None
        return IdentityClaims(
            authentication_type=LOCAL_APPLICATION_AUTHENTICATION_TYPE,
            external_id=user_name,
            name=user_name,
            email_address=LOCAL_USER_EMAIL_ADDRESS,
        )
