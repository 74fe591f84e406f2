from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Account:
    """A mailbox linked in the desktop client."""

    email: str
    is_current: bool = False


@dataclass(frozen=True)
class SwitchResult:
    success: bool
    email: str  # active account after the switch attempt
