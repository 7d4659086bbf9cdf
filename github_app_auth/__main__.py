"""Print a GitHub App installation token from the command line.

Reads the app identity from the environment (see core.config.Settings):

    GITHUB_APP_ID=1234 GITHUB_INSTALLATION_ID=5678 \\
    GITHUB_PRIVATE_KEY_PATH=app.pem python -m github_app_auth

Prints the Authorization header value by default, the bare token with
--token, the token and expiry as JSON with --json, or just a signed app
JWT with --jwt-only (no network call).
"""

import argparse
import asyncio
import json
import sys
from datetime import datetime, timezone
from typing import Optional

import structlog
from pydantic import ValidationError

from github_app_auth.core.config import Settings, get_settings
from github_app_auth.core.logging import configure_structlog
from github_app_auth.github.auth import mint
from github_app_auth.github.errors import GitHubAppAuthError
from github_app_auth.github.token_manager import InstallationTokenManager

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m github_app_auth",
        description="Fetch a GitHub App installation access token",
    )
    output = parser.add_mutually_exclusive_group()
    output.add_argument("--json", action="store_true", help="Print token and expires_at as JSON")
    output.add_argument("--token", action="store_true", help="Print only the bare token")
    output.add_argument(
        "--jwt-only", action="store_true", help="Print a signed app JWT instead of exchanging it"
    )
    return parser


async def _run(settings: Settings, args: argparse.Namespace) -> str:
    config = settings.to_app_config()

    if args.jwt_only:
        signed = mint(config.app_id, config.signing_key(), datetime.now(timezone.utc))
        return signed.token

    async with InstallationTokenManager(
        config,
        refresh_safety_margin=settings.refresh_safety_margin,
        timeout=settings.github_http_timeout_seconds,
    ) as manager:
        token = await manager.get_token()

    if args.json:
        return json.dumps({"token": token.token, "expires_at": token.expires_at.isoformat()})
    if args.token:
        return token.token
    return token.authorization_header()["Authorization"]


def _fail(event: str, exc: Exception) -> int:
    # Fetched per call: the logger factory binds the stream configured last.
    structlog.get_logger(__name__).error(event, error=str(exc), error_type=type(exc).__name__)
    print(f"Error: {exc}", file=sys.stderr)
    return 1


def main(argv: Optional[list[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    try:
        settings = get_settings()
    except ValidationError as exc:
        configure_structlog()
        return _fail("invalid_settings", exc)
    configure_structlog(debug=settings.debug)

    try:
        output = asyncio.run(_run(settings, args))
    except (GitHubAppAuthError, ValidationError) as exc:
        return _fail("token_request_failed", exc)

    print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
