from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from mailbridge.domain.entities.credential import Backend, Credential


@dataclass(frozen=True)
class AccountInfo:
    email: str
    is_microsoft_account: bool
    backend: Backend

    @classmethod
    def from_credential(cls, credential: Credential) -> "AccountInfo":
        return cls(
            email=credential.email,
            is_microsoft_account=credential.is_microsoft_account,
            backend=credential.backend,
        )


class ConnectionProvider:
    """Source of credentials for one calling process."""

    async def get_token(self, email: Optional[str] = None) -> Credential:
        """Raises AuthError when no credential can be resolved."""
        raise NotImplementedError

    async def get_current_email(self) -> str:
        raise NotImplementedError

    async def get_account_info(self) -> AccountInfo:
        return AccountInfo.from_credential(await self.get_token())

    async def disconnect(self) -> None:
        raise NotImplementedError
