"""Shared fixtures for the github_app_auth test suite.

RSA keys are generated once per session with cryptography. HTTP is stubbed
with httpx.MockTransport so no test touches the network.
"""

import json
from datetime import datetime, timezone

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from github_app_auth.github.schemas import AppConfig

TEST_APP_ID = 12345
TEST_INSTALLATION_ID = 67890
FIXED_NOW = datetime(2030, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def _generate_test_private_key() -> rsa.RSAPrivateKey:
    """Generate a valid RSA private key for testing."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


TEST_RSA_KEY = _generate_test_private_key()

# PKCS#1, the format GitHub hands out
TEST_PRIVATE_KEY = TEST_RSA_KEY.private_bytes(
    serialization.Encoding.PEM,
    serialization.PrivateFormat.TraditionalOpenSSL,
    serialization.NoEncryption(),
).decode()

TEST_PUBLIC_KEY = TEST_RSA_KEY.public_key().public_bytes(
    serialization.Encoding.PEM,
    serialization.PublicFormat.SubjectPublicKeyInfo,
).decode()


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig(
        app_id=TEST_APP_ID,
        installation_id=TEST_INSTALLATION_ID,
        private_key=TEST_PRIVATE_KEY,
        user_agent="github-app-auth-tests",
    )


class RecordingHandler:
    """MockTransport handler that replays queued responses and records requests.

    Each queued item is either an httpx.Response or an exception instance,
    which is raised instead of answering.
    """

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    @property
    def call_count(self) -> int:
        return len(self.requests)


def token_response(token: str, expires_at: str, status_code: int = 201) -> httpx.Response:
    return httpx.Response(
        status_code,
        content=json.dumps(
            {
                "token": token,
                "expires_at": expires_at,
                "permissions": {"contents": "read", "metadata": "read"},
                "repository_selection": "all",
            }
        ),
        headers={"Content-Type": "application/json"},
    )


def mock_client(handler: RecordingHandler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))
