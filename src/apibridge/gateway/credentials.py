"""Credential resolvers — one strategy per process.

- ``SessionCredentialResolver`` — asks an authenticated dashboard session for
  the api key of every call's application.
- ``StaticCredentialResolver`` — always returns one fixed pair.
- ``MultiCredentialResolver`` — picks a pair by applicationId and falls back
  to the first one, with a warning, when nothing matches.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

import httpx

from apibridge.errors import ConfigError, CredentialError, TransportError
from apibridge.gateway.models import Application, Credential

logger = logging.getLogger(__name__)


@runtime_checkable
class DashboardSession(Protocol):
    """An authenticated session that can hand out per-application api keys."""

    async def get_application_api_key(self, application_id: str) -> str: ...


@runtime_checkable
class ApplicationListing(Protocol):
    """A session that can also list the user's applications."""

    async def list_applications(self) -> list[Application]: ...


@runtime_checkable
class UserInfoSource(Protocol):
    """A session that can describe the signed-in user."""

    async def get_user(self) -> dict[str, Any]: ...


@runtime_checkable
class CredentialResolver(Protocol):
    """Resolves the credential used for one invocation."""

    @property
    def requires_application_id(self) -> bool:
        """Whether callers must pass ``applicationId`` themselves."""
        ...

    async def resolve(self, application_id: str | None) -> Credential: ...


class SessionCredentialResolver:
    """Looks up the api key through a :class:`DashboardSession` on every call.

    Satisfies the :class:`CredentialResolver` protocol.  The application list
    is cached; a miss refreshes it once under a lock and swaps the snapshot
    in a single assignment, so readers never see a half-built table.
    """

    def __init__(self, session: DashboardSession) -> None:
        self._session = session
        self._applications: dict[str, Application] = {}
        self._refresh_lock = asyncio.Lock()

    @property
    def requires_application_id(self) -> bool:
        return True

    async def resolve(self, application_id: str | None) -> Credential:
        if not application_id:
            raise CredentialError(application_id, "applicationId is required")
        try:
            api_key = await self._session.get_application_api_key(application_id)
        except httpx.TransportError as exc:
            raise TransportError("dashboard", str(exc)) from exc
        except Exception as exc:
            raise CredentialError(application_id, str(exc)) from exc
        return Credential(application_id=application_id, api_key=api_key)

    async def get_application(self, application_id: str) -> Application:
        """Return the cached application, refreshing the list on a miss."""
        application = self._applications.get(application_id)
        if application is not None:
            return application

        snapshot = self._applications
        async with self._refresh_lock:
            # Another caller may have refreshed while we waited.
            if self._applications is snapshot:
                await self._refresh()

        application = self._applications.get(application_id)
        if application is None:
            raise CredentialError(application_id, "unknown application")
        return application

    async def _refresh(self) -> None:
        if not isinstance(self._session, ApplicationListing):
            raise CredentialError(None, "session cannot list applications")
        try:
            applications = await self._session.list_applications()
        except httpx.TransportError as exc:
            raise TransportError("dashboard", str(exc)) from exc
        except Exception as exc:
            raise CredentialError(None, f"cannot list applications: {exc}") from exc
        self._applications = {app.id: app for app in applications}
        logger.debug("Cached %d applications", len(self._applications))


class StaticCredentialResolver:
    """Always returns the same credential, whatever applicationId is passed.

    Satisfies the :class:`CredentialResolver` protocol.
    """

    def __init__(self, credential: Credential) -> None:
        self._credential = credential

    @property
    def requires_application_id(self) -> bool:
        return False

    async def resolve(self, application_id: str | None) -> Credential:
        return self._credential


class MultiCredentialResolver:
    """Matches applicationId against a list of credentials.

    Satisfies the :class:`CredentialResolver` protocol.  When no credential
    matches, the first one is used and a warning is logged; this is never an
    error.
    """

    def __init__(self, credentials: Sequence[Credential]) -> None:
        if not credentials:
            msg = "MultiCredentialResolver needs at least one credential"
            raise ConfigError(msg)
        self._credentials = tuple(credentials)

    @property
    def requires_application_id(self) -> bool:
        return True

    @property
    def credentials(self) -> tuple[Credential, ...]:
        return self._credentials

    async def resolve(self, application_id: str | None) -> Credential:
        for credential in self._credentials:
            if credential.application_id == application_id:
                return credential

        fallback = self._credentials[0]
        logger.warning(
            "No credential for application %r, falling back to %r",
            application_id,
            fallback.application_id,
        )
        return fallback


def select_resolver(
    credentials: Sequence[Credential] = (),
    session: DashboardSession | None = None,
) -> CredentialResolver:
    """Pick the credential strategy for this process.

    A session wins over static credentials.  One credential selects the
    single static strategy, several select the multi strategy.

    Raises:
        ConfigError: If neither a session nor a credential is available.
    """
    if session is not None:
        return SessionCredentialResolver(session)
    if len(credentials) == 1:
        return StaticCredentialResolver(credentials[0])
    if credentials:
        return MultiCredentialResolver(credentials)
    msg = "No credentials configured and no dashboard session available"
    raise ConfigError(msg)
