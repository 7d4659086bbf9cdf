"""Installation access token cache with transparent refresh.

The manager has two states: no token yet, or a cached token with its
expiry. `get_token()` hands out the cached token while it has more than
`refresh_safety_margin` left, and otherwise mints a new app JWT and
exchanges it for a fresh installation token.

A failed refresh never touches the cache: the previous token (if any)
stays in place and the typed error propagates to the caller, who decides
whether and when to retry.

Construct one manager per installation and reuse it for the life of the
process. Concurrent callers are serialized on an asyncio.Lock, and waiters
re-check the cache once they hold it, so a single in-flight refresh
satisfies everybody queued behind it, whether it succeeds or fails.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import httpx

from github_app_auth.github.auth import (
    DEFAULT_JWT_BACKDATE,
    DEFAULT_JWT_LIFETIME,
    check_jwt_window,
    mint,
    to_utc,
)
from github_app_auth.github.client import exchange_installation_token
from github_app_auth.github.errors import GitHubAppAuthError
from github_app_auth.github.schemas import AppConfig, InstallationToken

logger = logging.getLogger(__name__)

# Subtracted from expires_at so a token does not go stale just as a
# request carrying it is in flight.
DEFAULT_REFRESH_SAFETY_MARGIN = timedelta(minutes=1)

# Timeout for the access_tokens request
DEFAULT_HTTP_TIMEOUT = 30.0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InstallationTokenManager:
    """Hands out a currently-valid installation access token.

    The returned token is valid at the moment of handoff, not afterwards:
    call `get_token()` (or `header()`) per request rather than holding on
    to the value.
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        refresh_safety_margin: timedelta = DEFAULT_REFRESH_SAFETY_MARGIN,
        clock: Callable[[], datetime] = _utcnow,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        jwt_backdate: timedelta = DEFAULT_JWT_BACKDATE,
        jwt_lifetime: timedelta = DEFAULT_JWT_LIFETIME,
    ):
        if refresh_safety_margin < timedelta(0):
            raise ValueError("refresh_safety_margin must not be negative")
        check_jwt_window(jwt_backdate, jwt_lifetime)

        self._config = config
        # Parsed once; AppConfig has already proven the PEM is valid RSA.
        self._signing_key = config.signing_key()
        self.refresh_safety_margin = refresh_safety_margin
        self._clock = clock
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout
        self._jwt_backdate = jwt_backdate
        self._jwt_lifetime = jwt_lifetime

        self._lock = asyncio.Lock()
        self._token: Optional[InstallationToken] = None
        # Bumped when a refresh attempt finishes; lets lock waiters tell
        # whether the attempt they queued behind failed.
        self._finished_refreshes = 0
        self._last_error: Optional[GitHubAppAuthError] = None

    @property
    def config(self) -> AppConfig:
        return self._config

    @property
    def token(self) -> Optional[InstallationToken]:
        """The cached token, or None before the first successful refresh."""
        return self._token

    def _now(self, now: Optional[datetime]) -> datetime:
        return to_utc(self._clock() if now is None else now)

    def needs_refresh(self, now: Optional[datetime] = None) -> bool:
        now = self._now(now)
        cached = self._token
        return cached is None or not cached.is_valid(now, self.refresh_safety_margin)

    def invalidate(self) -> None:
        """Drop the cached token so the next call refreshes.

        Useful when a downstream request was rejected with 401 before
        the token's advertised expiry (e.g. the installation was
        suspended and reinstated).
        """
        self._token = None

    async def get_token(self, now: Optional[datetime] = None) -> InstallationToken:
        """Return a token valid for at least the safety margin past `now`.

        Makes no HTTP call on a cache hit and exactly one on a miss.
        Raises a GitHubAppAuthError subclass if the refresh fails. Callers
        queued behind a refresh that fails receive the same error instead
        of each retrying against GitHub.
        """
        now = self._now(now)

        if not self.needs_refresh(now):
            logger.debug(
                "Using cached installation token for installation %d",
                self._config.installation_id,
            )
            return self._token

        finished = self._finished_refreshes
        async with self._lock:
            # Another caller may have refreshed while we waited for the lock.
            if not self.needs_refresh(now):
                return self._token
            if self._finished_refreshes != finished and self._last_error is not None:
                raise self._last_error
            return await self._refresh(now)

    async def header(self, now: Optional[datetime] = None) -> dict[str, str]:
        """Return an Authorization header for the GitHub REST API."""
        token = await self.get_token(now)
        return token.authorization_header()

    async def _refresh(self, now: datetime) -> InstallationToken:
        installation_id = self._config.installation_id
        logger.info("Refreshing installation token for installation %d", installation_id)
        self._last_error = None

        try:
            app_jwt = mint(
                self._config.app_id,
                self._signing_key,
                now,
                backdate=self._jwt_backdate,
                lifetime=self._jwt_lifetime,
            )
            token = await exchange_installation_token(
                self._get_client(), self._config, app_jwt.token
            )
        except GitHubAppAuthError as exc:
            logger.warning(
                "Installation token refresh failed for installation %d: %s",
                installation_id,
                exc,
            )
            self._last_error = exc
            raise
        finally:
            self._finished_refreshes += 1

        if not token.is_valid(now, self.refresh_safety_margin):
            logger.warning(
                "New installation token expires at %s, inside the %s refresh margin",
                token.expires_at.isoformat(),
                self.refresh_safety_margin,
            )
        else:
            logger.info(
                "Installation token refreshed for installation %d, expires at %s",
                installation_id,
                token.expires_at.isoformat(),
            )
        self._token = token
        return token

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client if this manager created it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "InstallationTokenManager":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
