"""JSON-file-backed credential cache."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional

from loguru import logger
from pydantic import ValidationError

from mailbridge.domain.entities.credential import Credential, now_ms
from mailbridge.infrastructure.settings import Settings, get_settings


class CredentialStore:
    """Map of email -> Credential, insertion ordered.

    Entries are only ever overwritten, never evicted; expiry is checked at
    read time. Not safe for concurrent writers.
    """

    def __init__(self, path: Optional[Path] = None, settings: Optional[Settings] = None):
        self.path = Path(path) if path is not None else (settings or get_settings()).token_path
        self._credentials: dict[str, Credential] = {}
        self._loaded = False

    def load(self) -> None:
        """Populate from disk once. A missing or unparsable file leaves the store as is."""
        if self._loaded:
            return
        self._loaded = True

        if not self.path.exists():
            logger.debug(f"No credential cache at {self.path}")
            return

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable credential cache {self.path}: {e}")
            return

        if not isinstance(raw, dict):
            logger.warning(f"Ignoring credential cache {self.path}: expected a JSON object")
            return

        for email, entry in raw.items():
            if email in self._credentials or not isinstance(entry, dict):
                continue
            try:
                self._credentials[email] = Credential.model_validate({"email": email, **entry})
            except ValidationError as e:
                logger.warning(f"Skipping malformed cached credential for {email}: {e.error_count()} errors")

        logger.debug(f"Loaded {len(self._credentials)} cached credentials from {self.path}")

    def save(self) -> None:
        """Write the full map, creating the directory and restricting the file to the owner."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {email: cred.to_json_dict() for email, cred in self._credentials.items()}
        self.path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        os.chmod(self.path, 0o600)
        logger.info(f"Saved {len(payload)} credentials to {self.path}")

    def get(self, email: str) -> Optional[Credential]:
        return self._credentials.get(email)

    def put(self, email: str, credential: Credential) -> None:
        self._credentials[email] = credential

    def list_emails(self) -> list[str]:
        return list(self._credentials)

    def has_valid(self, email: str, now: Optional[int] = None) -> bool:
        credential = self._credentials.get(email)
        return credential is not None and credential.is_valid(now)

    def first_valid_email(self, now: Optional[int] = None) -> Optional[str]:
        now = now_ms() if now is None else now
        for email, credential in self._credentials.items():
            if credential.is_valid(now):
                return email
        return None

    def has_any_valid(self, now: Optional[int] = None) -> bool:
        return self.first_valid_email(now) is not None

    def __len__(self) -> int:
        return len(self._credentials)
