"""OAuth bearer credential for one mailbox."""

from __future__ import annotations

import time
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

Backend = Literal["google", "microsoft"]


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class Credential(BaseModel):
    """Immutable snapshot of a bearer token plus the metadata to use it.

    Serialized with camelCase keys. Older caches wrote ``expires``,
    ``isMicrosoft``, ``idToken`` and ``userId``; those are still accepted.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    access_token: str = Field(alias="accessToken")
    email: str
    expires_at_epoch_ms: int = Field(
        alias="expiresAtEpochMs",
        validation_alias=AliasChoices("expiresAtEpochMs", "expires", "expires_at_epoch_ms"),
    )
    is_microsoft_account: bool = Field(
        default=False,
        alias="isMicrosoftAccount",
        validation_alias=AliasChoices("isMicrosoftAccount", "isMicrosoft", "is_microsoft_account"),
    )
    backend_identity_token: str | None = Field(
        default=None,
        alias="backendIdentityToken",
        validation_alias=AliasChoices("backendIdentityToken", "idToken", "backend_identity_token"),
    )
    backend_user_id: str | None = Field(
        default=None,
        alias="backendUserId",
        validation_alias=AliasChoices("backendUserId", "userId", "backend_user_id"),
    )

    def is_valid(self, now: int | None = None) -> bool:
        """Valid iff the expiry lies strictly in the future."""
        return self.expires_at_epoch_ms > (now_ms() if now is None else now)

    def is_expired(self, now: int | None = None) -> bool:
        return not self.is_valid(now)

    @property
    def backend(self) -> Backend:
        return "microsoft" if self.is_microsoft_account else "google"

    def to_json_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
