"""Linked accounts of the live desktop client."""

from __future__ import annotations

import json
from typing import Optional

from loguru import logger

from mailbridge.application.ports.live_client import LiveClient
from mailbridge.domain.entities.account import Account, SwitchResult
from mailbridge.domain.errors import MailBridgeError
from mailbridge.infrastructure.live.polling import poll_until
from mailbridge.infrastructure.settings import Settings, get_settings


async def list_accounts(session: LiveClient) -> list[Account]:
    current = await session.current_account()
    return [Account(email=e, is_current=e == current) for e in await session.list_linked_accounts()]


def format_accounts_list(accounts: list[Account]) -> str:
    lines = []
    for index, account in enumerate(accounts, start=1):
        marker = "*" if account.is_current else " "
        suffix = " (current)" if account.is_current else ""
        lines.append(f"{marker} {index}. {account.email}{suffix}")
    return "\n".join(lines)


def format_accounts_json(accounts: list[Account]) -> str:
    return json.dumps(
        [{"email": a.email, "isCurrent": a.is_current} for a in accounts],
        separators=(",", ":"),
    )


async def switch_account(
    session: LiveClient,
    email: str,
    attempts: Optional[int] = None,
    interval: Optional[float] = None,
    backoff: Optional[float] = None,
    settings: Optional[Settings] = None,
) -> SwitchResult:
    """Ask the client to switch accounts and poll until it reports the target as active.

    ``interval`` is in seconds. On timeout the result reports whichever
    account the client ended up on.
    """
    settings = settings or get_settings()
    attempts = settings.account_switch_attempts if attempts is None else attempts
    interval = settings.account_switch_interval_ms / 1000 if interval is None else interval
    backoff = settings.account_switch_backoff if backoff is None else backoff

    if await session.current_account() == email:
        return SwitchResult(success=True, email=email)

    logger.info(f"Switching live client to {email}")
    await session.switch_active_account(email)

    async def switched() -> bool:
        try:
            return await session.current_account() == email
        except MailBridgeError as e:
            # The client is mid-navigation; keep polling
            logger.debug(f"Account check failed while switching: {e}")
            return False

    if await poll_until(switched, attempts, interval, backoff):
        return SwitchResult(success=True, email=email)

    final = await session.current_account() or ""
    logger.warning(f"Account switch to {email} timed out, client is on {final or 'no account'}")
    return SwitchResult(success=final == email, email=final)
