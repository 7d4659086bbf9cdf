"""Tests for the `python -m github_app_auth` entry point."""

import json
from unittest.mock import AsyncMock, patch

import jwt
import pytest

from github_app_auth.__main__ import main
from github_app_auth.core.config import Settings
from github_app_auth.github.errors import ApiError
from github_app_auth.github.schemas import InstallationToken
from tests.conftest import TEST_PRIVATE_KEY, TEST_PUBLIC_KEY

TOKEN = InstallationToken(token="ghs_cli", expires_at="2030-01-01T00:00:00Z")


@pytest.fixture
def settings():
    return Settings(
        github_app_id=1234,
        github_installation_id=5678,
        github_private_key=TEST_PRIVATE_KEY,
    )


@pytest.fixture(autouse=True)
def _patch_settings(settings):
    with patch("github_app_auth.__main__.get_settings", return_value=settings):
        yield


class TestMain:
    def test_prints_authorization_header(self, capsys):
        with patch(
            "github_app_auth.__main__.InstallationTokenManager.get_token",
            new=AsyncMock(return_value=TOKEN),
        ):
            assert main([]) == 0

        assert capsys.readouterr().out.strip() == "token ghs_cli"

    def test_json_output(self, capsys):
        with patch(
            "github_app_auth.__main__.InstallationTokenManager.get_token",
            new=AsyncMock(return_value=TOKEN),
        ):
            assert main(["--json"]) == 0

        payload = json.loads(capsys.readouterr().out)
        assert payload == {"token": "ghs_cli", "expires_at": "2030-01-01T00:00:00+00:00"}

    def test_jwt_only_makes_no_request(self, capsys):
        with patch(
            "github_app_auth.__main__.InstallationTokenManager.get_token",
            new=AsyncMock(side_effect=AssertionError("no exchange expected")),
        ):
            assert main(["--jwt-only"]) == 0

        claims = jwt.decode(capsys.readouterr().out.strip(), TEST_PUBLIC_KEY, algorithms=["RS256"])
        assert claims["iss"] == "1234"

    def test_auth_error_exits_nonzero(self, capsys):
        with patch(
            "github_app_auth.__main__.InstallationTokenManager.get_token",
            new=AsyncMock(side_effect=ApiError(401, '{"message": "Bad credentials"}')),
        ):
            assert main(["--token"]) == 1

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "HTTP 401" in captured.err

    @pytest.mark.parametrize(
        "name,value",
        [("GITHUB_APP_ID", "abc"), ("GITHUB_TOKEN_REFRESH_MARGIN_SECONDS", "-1")],
    )
    def test_invalid_environment_exits_nonzero(self, monkeypatch, tmp_path, capsys, name, value):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv(name, value)

        with patch("github_app_auth.__main__.get_settings", side_effect=Settings):
            assert main([]) == 1

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "Error:" in captured.err
