from __future__ import annotations
from typing import Optional, Protocol

from mailbridge.domain.entities.credential import Credential


class LiveClient(Protocol):
    """Session with a running desktop mail client.

    The transport behind it is opaque; every call may be slow or fail.
    """

    async def extract_credential(self, email: str) -> Credential: ...
    async def list_linked_accounts(self) -> list[str]: ...
    async def current_account(self) -> Optional[str]: ...
    async def switch_active_account(self, email: str) -> bool: ...
    async def close(self) -> None: ...
