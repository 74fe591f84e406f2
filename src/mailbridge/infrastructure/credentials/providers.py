"""ConnectionProvider implementations: disk cache and live client extraction."""

from __future__ import annotations

from typing import Optional

from loguru import logger

from mailbridge.application.ports.connection_provider import ConnectionProvider
from mailbridge.application.ports.live_client import LiveClient
from mailbridge.domain.entities.credential import Credential
from mailbridge.domain.errors import AuthError
from mailbridge.infrastructure.credentials.store import CredentialStore


class CachedCredentialProvider(ConnectionProvider):
    """Serves credentials from a CredentialStore only. Never touches the network."""

    def __init__(self, email: Optional[str] = None, store: Optional[CredentialStore] = None):
        self.email = email
        self.store = store if store is not None else CredentialStore()
        self.store.load()

    def _resolve_email(self, email: Optional[str]) -> Optional[str]:
        if email:
            return email
        if self.email:
            return self.email
        emails = self.store.list_emails()
        return emails[0] if emails else None

    async def get_token(self, email: Optional[str] = None) -> Credential:
        target = self._resolve_email(email)
        if target is None:
            raise AuthError("no cached credential: credential cache is empty")

        credential = self.store.get(target)
        if credential is None:
            raise AuthError(f"no cached credential for {target}")
        if not credential.is_valid():
            raise AuthError(f"no cached credential for {target}: token expired")
        return credential

    async def get_current_email(self) -> str:
        return (await self.get_token()).email

    async def disconnect(self) -> None:
        return None


class LiveExtractionProvider(ConnectionProvider):
    """Extracts fresh credentials from a running desktop client session.

    When a store is given, each extracted credential is written to it and
    saved so later invocations can resolve from cache.
    """

    def __init__(self, session: LiveClient, store: Optional[CredentialStore] = None):
        self.session = session
        self.store = store

    async def get_current_email(self) -> str:
        email = await self.session.current_account()
        if not email:
            raise AuthError("live client reports no active account")
        return email

    async def get_token(self, email: Optional[str] = None) -> Credential:
        target = email or await self.get_current_email()
        logger.debug(f"Extracting live credential for {target}")
        credential = await self.session.extract_credential(target)
        if credential is None:
            raise AuthError(f"live client returned no credential for {target}")

        if self.store is not None:
            self.store.put(credential.email, credential)
            self.store.save()
        return credential

    async def disconnect(self) -> None:
        await self.session.close()
