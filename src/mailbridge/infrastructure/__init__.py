"""Infrastructure layer - REST clients, credential cache, and configuration."""

from mailbridge.infrastructure.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
