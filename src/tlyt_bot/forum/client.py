"""Reddit OAuth2 client with an explicit, lazily refreshed session."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx
import structlog

from tlyt_bot.exceptions import ForumAuthError, ForumError

if TYPE_CHECKING:
    from collections.abc import Callable

    from tlyt_bot.config import ForumSettings

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

_TOKEN_URL = "https://www.reddit.com/api/v1/access_token"
_API_BASE = "https://oauth.reddit.com"


@dataclass(frozen=True, slots=True)
class ForumSession:
    """A bearer token and the epoch second after which it must be refreshed.

    ``expires_at`` already has the safety margin subtracted.
    """

    access_token: str
    expires_at: float

    def is_valid(self, now: float) -> bool:
        return bool(self.access_token) and now < self.expires_at


class RedditClient:
    """Submit posts and comments through the Reddit OAuth API.

    The client owns a single ``ForumSession``; ``session()`` returns it,
    fetching a new one via the password grant when it is missing or past
    its margin-adjusted expiry. API calls receive the session explicitly.
    """

    def __init__(
        self,
        settings: ForumSettings,
        client: httpx.Client | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = settings
        self._client = client or httpx.Client(timeout=float(settings.timeout))
        self._clock = clock
        self._session: ForumSession | None = None
        self.user_agent = settings.resolved_user_agent()

    def close(self) -> None:
        self._client.close()

    # -- auth ---------------------------------------------------------------

    def session(self) -> ForumSession:
        """Return a valid session, refreshing it when needed.

        Raises:
            ForumAuthError: If the token request fails.
        """
        now = self._clock()
        if self._session is not None and self._session.is_valid(now):
            return self._session
        self._session = self._fetch_session(now)
        return self._session

    def _fetch_session(self, now: float) -> ForumSession:
        settings = self._settings
        try:
            response = self._client.post(
                _TOKEN_URL,
                auth=(settings.client_id, settings.client_secret.get_secret_value()),
                headers={"User-Agent": self.user_agent},
                data={
                    "grant_type": "password",
                    "username": settings.username,
                    "password": settings.password.get_secret_value(),
                },
            )
        except httpx.HTTPError as exc:
            raise ForumAuthError(f"Failed to get access token: {exc}") from exc

        if response.is_error:
            raise ForumAuthError(f"Failed to get access token: {response.status_code}")

        payload = response.json()
        token = payload.get("access_token")
        if not isinstance(token, str) or not token:
            raise ForumAuthError("Token response did not include an access token")

        expires_in = float(payload.get("expires_in", 0) or 0)
        logger.info("forum_token_refreshed", expires_in=expires_in)
        return ForumSession(
            access_token=token,
            expires_at=now + expires_in - settings.token_margin_seconds,
        )

    # -- API ----------------------------------------------------------------

    def _request(
        self,
        session: ForumSession,
        method: str,
        endpoint: str,
        data: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        try:
            response = self._client.request(
                method,
                f"{_API_BASE}{endpoint}",
                headers={
                    "Authorization": f"Bearer {session.access_token}",
                    "User-Agent": self.user_agent,
                },
                data=data,
            )
        except httpx.HTTPError as exc:
            raise ForumError(f"Reddit API request failed: {exc}") from exc

        if response.is_error:
            raise ForumError(f"Reddit API request failed: {response.status_code}")

        payload = response.json()
        if not isinstance(payload, dict):
            raise ForumError("Reddit API returned a non-object response")

        errors = (payload.get("json") or {}).get("errors") or []
        if errors:
            raise ForumError(f"Reddit API reported errors: {errors}")
        return payload

    def submit_post(
        self,
        subreddit: str,
        title: str,
        text: str | None = None,
        url: str | None = None,
    ) -> dict[str, Any]:
        """Submit a self post (when ``text`` is given) or a link post."""
        data = {
            "sr": subreddit,
            "title": title,
            "kind": "self" if text else "link",
            "api_type": "json",
        }
        if text:
            data["text"] = text
        if url:
            data["url"] = url
        return self._request(self.session(), "POST", "/api/submit", data=data)

    def submit_comment(self, parent_id: str, text: str) -> dict[str, Any]:
        """Reply to the thing identified by ``parent_id`` (e.g. ``t3_abc``)."""
        data = {"parent": parent_id, "text": text, "api_type": "json"}
        return self._request(self.session(), "POST", "/api/comment", data=data)
