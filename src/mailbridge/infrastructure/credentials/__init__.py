"""Credential cache and connection providers."""

from mailbridge.infrastructure.credentials.providers import CachedCredentialProvider, LiveExtractionProvider
from mailbridge.infrastructure.credentials.store import CredentialStore

__all__ = [
    "CredentialStore",
    "CachedCredentialProvider",
    "LiveExtractionProvider",
]
