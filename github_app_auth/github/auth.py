"""GitHub App JWT signing.

GitHub App auth flow:
1. Generate a JWT signed with the App's private key (this module)
2. Exchange the JWT for a short-lived installation access token
3. Use the installation token for API calls scoped to that installation

Reference:
https://docs.github.com/en/apps/creating-github-apps/authenticating-with-a-github-app/generating-a-json-web-token-jwt-for-a-github-app
"""

from datetime import datetime, timedelta, timezone
from typing import Union

import jwt
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from github_app_auth.github.errors import PrivateKeyError, SigningError
from github_app_auth.github.schemas import SignedJwt

JWT_ALGORITHM = "RS256"

# GitHub rejects app JWTs whose exp is more than 10 minutes after iat.
MAX_JWT_LIFETIME = timedelta(minutes=10)
DEFAULT_JWT_LIFETIME = MAX_JWT_LIFETIME
# Backdate iat to handle clock skew between us and GitHub.
DEFAULT_JWT_BACKDATE = timedelta(seconds=60)


def load_private_key(pem: Union[bytes, str]) -> RSAPrivateKey:
    """Parse a PEM-encoded RSA private key.

    Accepts both PKCS#1 ("BEGIN RSA PRIVATE KEY", what GitHub hands out)
    and PKCS#8. Encrypted keys are rejected since there is nowhere to
    supply a passphrase.
    """
    data = pem.encode() if isinstance(pem, str) else pem
    try:
        key = serialization.load_pem_private_key(data, password=None)
    except TypeError as exc:
        raise PrivateKeyError("Private key is encrypted; supply an unencrypted PEM") from exc
    except (ValueError, UnsupportedAlgorithm) as exc:
        raise PrivateKeyError(f"Could not parse private key: {exc}") from exc

    if not isinstance(key, RSAPrivateKey):
        raise PrivateKeyError(
            f"RS256 requires an RSA private key, got {type(key).__name__}"
        )
    return key


def to_utc(now: datetime) -> datetime:
    """Return `now` as an aware UTC datetime; naive values are taken as UTC."""
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def check_jwt_window(backdate: timedelta, lifetime: timedelta) -> None:
    """Raise ValueError unless the JWT would be valid at signing time."""
    if lifetime <= timedelta(0) or lifetime > MAX_JWT_LIFETIME:
        raise ValueError(
            f"JWT lifetime must be positive and at most {MAX_JWT_LIFETIME}, got {lifetime}"
        )
    if backdate < timedelta(0):
        raise ValueError(f"JWT backdate must not be negative, got {backdate}")
    if lifetime <= backdate:
        # exp = now - backdate + lifetime would already be in the past.
        raise ValueError(f"JWT lifetime {lifetime} must exceed the backdate {backdate}")


def _to_utc_seconds(now: datetime) -> datetime:
    return to_utc(now).replace(microsecond=0)


def mint(
    app_id: int,
    private_key: Union[RSAPrivateKey, bytes, str],
    now: datetime,
    *,
    backdate: timedelta = DEFAULT_JWT_BACKDATE,
    lifetime: timedelta = DEFAULT_JWT_LIFETIME,
) -> SignedJwt:
    """Create an RS256 JWT for authenticating as the GitHub App.

    iat is `now` minus `backdate`, exp is iat plus `lifetime`, so with the
    defaults the token is valid from one minute ago until nine minutes
    from now.

    Claim timestamps are whole seconds (JWT NumericDate), so two calls whose
    `now` values fall within the same second produce identical iat and exp;
    iat only increases strictly when the two `now` values fall in different
    seconds.

    `now` is explicit so the result depends only on the inputs.
    """
    check_jwt_window(backdate, lifetime)

    if not isinstance(private_key, RSAPrivateKey):
        private_key = load_private_key(private_key)

    issued_at = _to_utc_seconds(now) - backdate
    expires_at = issued_at + lifetime
    payload = {
        "iat": int(issued_at.timestamp()),
        "exp": int(expires_at.timestamp()),
        "iss": str(app_id),
    }

    try:
        token = jwt.encode(payload, private_key, algorithm=JWT_ALGORITHM)
    except (jwt.PyJWTError, ValueError, TypeError) as exc:
        raise SigningError(f"Failed to sign app JWT: {exc}") from exc

    return SignedJwt(token=token, issued_at=issued_at, expires_at=expires_at)
