"""Shared-password access gate (SHA-256 digests)."""

from __future__ import annotations

import hashlib
import hmac
import secrets
from typing import Any


def password_digest(password: str) -> str:
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


class AccessGateUseCase:
    """Checks a password (or its hex digest) against the configured one."""

    def __init__(self, password: str | None = None) -> None:
        self._digest = password_digest(password) if password else ""

    @property
    def requires_password(self) -> bool:
        return bool(self._digest)

    def verify(
        self, password: str | None = None, password_hash: str | None = None
    ) -> dict[str, Any]:
        if not self._digest:
            return {"success": True}

        if password_hash:
            candidate = password_hash.lower()
        elif password:
            candidate = password_digest(password)
        else:
            return {"success": False}

        if not hmac.compare_digest(candidate, self._digest):
            return {"success": False}
        return {
            "success": True,
            "token": secrets.token_hex(16),
            "passwordHash": self._digest,
        }
