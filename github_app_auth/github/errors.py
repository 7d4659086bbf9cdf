"""Error taxonomy for GitHub App authentication.

Every failure in the credential lifecycle surfaces as a subclass of
`GitHubAppAuthError` so callers can catch the whole family in one place.
Nothing here is retried internally; retry and backoff belong to the caller.

Fatal (retrying with the same inputs cannot succeed):
- PrivateKeyError: the PEM is unparseable or encrypted, or not RSA.
- SigningError: PyJWT failed to produce an RS256 signature.
- DecodeError: GitHub answered 2xx but the body is not a usable token.

Caller's choice:
- TransportError: the request never got a response. Safe to retry.
- ApiError: GitHub answered non-2xx. 429/5xx are usually transient,
  401/404 usually mean a wrong app ID, installation ID, or key.
"""

from typing import Optional


class GitHubAppAuthError(Exception):
    """Base class for all errors raised by this package."""


class PrivateKeyError(GitHubAppAuthError):
    """Raised when the private key cannot be loaded for RS256 signing."""


class SigningError(GitHubAppAuthError):
    """Raised when the app JWT cannot be signed."""


class TransportError(GitHubAppAuthError):
    """Raised on a network-level failure during the token exchange."""


class ApiError(GitHubAppAuthError):
    """Raised when GitHub rejects the token exchange with a non-2xx status.

    Carries the status code and raw response body for upstream logging.
    """

    def __init__(self, status_code: int, body: str, message: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        super().__init__(
            message or f"GitHub returned HTTP {status_code} for installation token request"
        )

    @property
    def is_transient(self) -> bool:
        """True for rate limiting and server-side failures."""
        return self.status_code == 429 or self.status_code >= 500


class DecodeError(GitHubAppAuthError):
    """Raised when the token response body is malformed or missing fields."""
