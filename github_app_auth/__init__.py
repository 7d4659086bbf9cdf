"""Authenticate with the GitHub API as a GitHub App.

    config = AppConfig(app_id=1234, installation_id=5678, private_key=pem)
    async with InstallationTokenManager(config) as manager:
        headers = await manager.header()

The manager caches the installation access token and refreshes it shortly
before it expires, so call `header()` (or `get_token()`) per request.
"""

from github_app_auth.github.auth import load_private_key, mint
from github_app_auth.github.errors import (
    ApiError,
    DecodeError,
    GitHubAppAuthError,
    PrivateKeyError,
    SigningError,
    TransportError,
)
from github_app_auth.github.schemas import AppConfig, InstallationToken, SignedJwt
from github_app_auth.github.token_manager import InstallationTokenManager

__all__ = [
    "ApiError",
    "AppConfig",
    "DecodeError",
    "GitHubAppAuthError",
    "InstallationToken",
    "InstallationTokenManager",
    "PrivateKeyError",
    "SignedJwt",
    "SigningError",
    "TransportError",
    "load_private_key",
    "mint",
]
