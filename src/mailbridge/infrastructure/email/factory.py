"""Factory for picking the backend variant that matches a credential."""

from __future__ import annotations

from typing import Optional

import httpx
from loguru import logger

from mailbridge.application.ports.email_backend import CalendarBackend, EmailBackend
from mailbridge.domain.entities.credential import Credential
from mailbridge.infrastructure.email.providers.gmail.backend import GmailBackend
from mailbridge.infrastructure.email.providers.gmail.calendar import GoogleCalendarBackend
from mailbridge.infrastructure.email.providers.graph.backend import GraphBackend
from mailbridge.infrastructure.email.providers.graph.calendar import GraphCalendarBackend
from mailbridge.infrastructure.settings import Settings


class BackendFactory:
    """Factory for creating mail and calendar backends."""

    @staticmethod
    def email(
        credential: Credential,
        client: Optional[httpx.AsyncClient] = None,
        settings: Optional[Settings] = None,
    ) -> EmailBackend:
        if credential.is_microsoft_account:
            backend: EmailBackend = GraphBackend(credential, client=client, settings=settings)
        else:
            backend = GmailBackend(credential, client=client, settings=settings)
        logger.debug(f"Using {backend.name} backend for {credential.email}")
        return backend

    @staticmethod
    def calendar(
        credential: Credential,
        client: Optional[httpx.AsyncClient] = None,
        settings: Optional[Settings] = None,
    ) -> CalendarBackend:
        if credential.is_microsoft_account:
            return GraphCalendarBackend(credential, client=client, settings=settings)
        return GoogleCalendarBackend(credential, client=client, settings=settings)
