"""OAuth token access.

The token is read from ``~/.claude/.credentials.json``, which Claude Code
maintains (including refresh). usage-pulse never writes that file: clearing
the store only forgets what was read from it.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Protocol

logger = logging.getLogger("usage-pulse")


class CredentialStore(Protocol):
    def get(self) -> str | None: ...

    def clear(self) -> None: ...


class ClaudeCredentialsFile:
    """Credential store backed by Claude Code's credentials file."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._token: str | None = None
        self._mtime: float | None = None

    def get(self) -> str | None:
        """Return the access token, re-reading the file when it changed."""
        try:
            mtime = self.path.stat().st_mtime
        except OSError:
            logger.warning(f"Credentials file not found: {self.path}")
            self.clear()
            return None

        if self._token is not None and mtime == self._mtime:
            return self._token

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            token = data.get("claudeAiOauth", {}).get("accessToken")
        except (OSError, json.JSONDecodeError, AttributeError):
            logger.warning("Failed to parse credentials file")
            self.clear()
            return None

        if not token:
            logger.warning("No accessToken found in credentials file")
            self.clear()
            return None

        self._token = token
        self._mtime = mtime
        return token

    def clear(self) -> None:
        self._token = None
        self._mtime = None


class CredentialCache:
    """In-memory copy of the last token read from the store."""

    def __init__(self, store: CredentialStore) -> None:
        self._store = store
        self.token: str | None = None

    def load(self) -> str | None:
        self.token = self._store.get()
        return self.token

    def drop(self) -> None:
        """Forget the cached token and ask the store to forget it too."""
        self.token = None
        self._store.clear()
