from datetime import timedelta
from pathlib import Path
from typing import Optional

from pydantic import PositiveFloat, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from github_app_auth.github.errors import PrivateKeyError
from github_app_auth.github.schemas import DEFAULT_USER_AGENT, GITHUB_API_BASE, AppConfig


def _normalise_pem(value: str) -> str:
    """Restore newlines in a PEM passed through a single-line env var.

    CI secret stores and .env files often carry the key as one line with
    literal ``\\n`` sequences. PEM parsing needs the real line breaks.
    """
    if "\\n" in value and "\n" not in value:
        return value.replace("\\n", "\n")
    return value


class Settings(BaseSettings):
    """Settings loaded from environment variables (or a .env file).

    The private key can be given inline (GITHUB_PRIVATE_KEY, the PEM
    contents) or as a path (GITHUB_PRIVATE_KEY_PATH). Inline wins when
    both are set.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # GitHub App identity
    github_app_id: int = 0
    github_installation_id: int = 0
    github_private_key: str = ""
    github_private_key_path: Optional[Path] = None

    @field_validator("github_private_key", mode="before")
    @classmethod
    def normalise_private_key(cls, v: str) -> str:
        return _normalise_pem(v) if isinstance(v, str) else v

    # GitHub asks for the app name or owner username here.
    github_user_agent: str = DEFAULT_USER_AGENT

    # Override for GitHub Enterprise Server, e.g. https://ghe.example.com/api/v3
    github_api_base_url: str = GITHUB_API_BASE

    # Refresh this many seconds before the installation token expires.
    github_token_refresh_margin_seconds: float = 60.0
    github_http_timeout_seconds: PositiveFloat = 30.0

    # Console logs when true, JSON logs otherwise.
    debug: bool = False

    @field_validator("github_token_refresh_margin_seconds")
    @classmethod
    def margin_not_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("refresh margin must not be negative")
        return v

    @property
    def refresh_safety_margin(self) -> timedelta:
        return timedelta(seconds=self.github_token_refresh_margin_seconds)

    def read_private_key(self) -> str:
        if self.github_private_key:
            return self.github_private_key
        if self.github_private_key_path is not None:
            try:
                return self.github_private_key_path.read_text(encoding="utf-8")
            except OSError as exc:
                raise PrivateKeyError(
                    f"Could not read private key file {self.github_private_key_path}: {exc}"
                ) from exc
        raise PrivateKeyError(
            "GitHub App private key not configured. "
            "Set GITHUB_PRIVATE_KEY or GITHUB_PRIVATE_KEY_PATH."
        )

    def to_app_config(self) -> AppConfig:
        """Build the validated AppConfig for these settings.

        Raises pydantic.ValidationError for missing or non-positive IDs
        and PrivateKeyError for a missing or invalid key.
        """
        return AppConfig(
            app_id=self.github_app_id,
            installation_id=self.github_installation_id,
            private_key=self.read_private_key(),
            user_agent=self.github_user_agent,
            api_base_url=self.github_api_base_url,
        )


def get_settings() -> Settings:
    return Settings()
