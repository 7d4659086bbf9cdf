"""Value types for the GitHub App credential lifecycle.

AppConfig is validated once at construction: IDs must be positive and the
private key must parse as RSA, so a misconfigured app fails before any
network traffic.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Union

from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, PositiveInt, field_validator

GITHUB_API_BASE = "https://api.github.com"
DEFAULT_USER_AGENT = "github-app-auth"


class AppConfig(BaseModel):
    """Identity of one GitHub App installation.

    app_id: "App ID" on the app's settings page.
    installation_id: final path component of the installation's
        configuration URL, e.g. ".../settings/installations/1216616".
    private_key: PEM contents generated at the bottom of the app's
        settings page. Never logged or included in repr.
    """

    model_config = ConfigDict(frozen=True)

    app_id: PositiveInt
    installation_id: PositiveInt
    private_key: Union[bytes, str] = Field(repr=False)
    # GitHub rejects requests without a User-Agent and asks for the
    # app's name or the owner's username.
    user_agent: str = DEFAULT_USER_AGENT
    api_base_url: str = GITHUB_API_BASE

    @field_validator("private_key")
    @classmethod
    def validate_private_key(cls, v: Union[bytes, str]) -> Union[bytes, str]:
        # Imported here: auth imports this module for SignedJwt.
        from github_app_auth.github.auth import load_private_key

        load_private_key(v)
        return v

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    def signing_key(self) -> RSAPrivateKey:
        from github_app_auth.github.auth import load_private_key

        return load_private_key(self.private_key)

    @property
    def access_tokens_url(self) -> str:
        return f"{self.api_base_url}/app/installations/{self.installation_id}/access_tokens"


@dataclass(frozen=True)
class SignedJwt:
    """A freshly signed app JWT. Consumed by at most one token exchange."""

    token: str
    issued_at: datetime
    expires_at: datetime

    @property
    def lifetime(self) -> timedelta:
        return self.expires_at - self.issued_at


class InstallationToken(BaseModel):
    """Installation access token as returned by GitHub.

    Only `token` and `expires_at` are kept; the rest of the response
    (permissions, repository_selection, ...) is ignored.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    token: str = Field(min_length=1, repr=False)
    expires_at: AwareDatetime

    @field_validator("expires_at")
    @classmethod
    def normalise_to_utc(cls, v: datetime) -> datetime:
        return v.astimezone(timezone.utc)

    def remaining(self, now: datetime) -> timedelta:
        return self.expires_at - now

    def is_valid(self, now: datetime, margin: timedelta) -> bool:
        """True while more than `margin` of validity is left at `now`."""
        return self.remaining(now) > margin

    def authorization_header(self) -> dict[str, str]:
        return {"Authorization": f"token {self.token}"}
