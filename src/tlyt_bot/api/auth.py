"""Bearer cron-secret check for the trigger endpoints."""

from __future__ import annotations

import secrets


class CronAuthError(Exception):
    """Authentication error with HTTP-compatible metadata."""

    def __init__(self, detail: str, status_code: int = 401) -> None:
        self.detail = detail
        self.status_code = status_code
        super().__init__(detail)


def verify_cron_secret(authorization: str | None, secret: str | None) -> None:
    """Accept ``Authorization: Bearer <secret>``; no secret configured means open.

    Raises:
        CronAuthError: If a secret is configured and the header does not match.
    """
    if not secret:
        return
    if not authorization:
        raise CronAuthError("Missing Authorization header")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise CronAuthError("Authorization header must use the Bearer scheme")
    if not secrets.compare_digest(token.strip(), secret):
        raise CronAuthError("Invalid cron secret")
