"""Unit tests for the jsonapi-rcon CLI."""

import json
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from jsonapi_rcon.cli import main, parse_argument
from jsonapi_rcon.errors import CommandTimeoutError, RconConnectionError
from jsonapi_rcon.keys import derive_key


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


class TestParseArgument:
    """Test CLI argument parsing."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("42", 42),
            ("true", True),
            ('"quoted"', "quoted"),
            ('["a", 1]', ["a", 1]),
            ("Steve", "Steve"),
            ("", ""),
        ],
    )
    def test_parse(self, raw, expected):
        assert parse_argument(raw) == expected


class TestKeyCommand:
    def test_prints_derived_key(self, runner):
        result = runner.invoke(
            main, ["-u", "u", "-p", "p", "--salt", "s", "key", "getPlayers"]
        )

        assert result.exit_code == 0
        assert result.output.strip() == derive_key("u", "getPlayers", "p", "s")

    def test_reads_credentials_from_env(self, runner):
        result = runner.invoke(
            main,
            ["key", "chat"],
            env={
                "JSONAPI_RCON_USERNAME": "admin",
                "JSONAPI_RCON_PASSWORD": "secret",
                "JSONAPI_RCON_SALT": "pepper",
            },
        )

        assert result.exit_code == 0
        assert result.output.strip() == derive_key("admin", "chat", "secret", "pepper")


class TestCallCommand:
    def test_prints_result_as_json(self, runner):
        run_call = AsyncMock(return_value=["Alice", "Bob"])
        with patch("jsonapi_rcon.cli._run_call", run_call):
            result = runner.invoke(main, ["--host", "mc", "call", "getPlayers", "1", "Steve"])

        assert result.exit_code == 0
        assert json.loads(result.output) == ["Alice", "Bob"]

        config, method, arguments = run_call.call_args.args
        assert config.host == "mc"
        assert method == "getPlayers"
        assert arguments == [1, "Steve"]

    def test_timeout_option(self, runner):
        run_call = AsyncMock(return_value=None)
        with patch("jsonapi_rcon.cli._run_call", run_call):
            runner.invoke(main, ["--timeout", "3", "call", "x"])

        assert run_call.call_args.args[0].command_timeout == 3.0

    @pytest.mark.parametrize(
        "error",
        [RconConnectionError("Connection refused"), CommandTimeoutError("x", "t", 1.0)],
    )
    def test_errors_exit_nonzero(self, runner, error):
        with patch("jsonapi_rcon.cli._run_call", AsyncMock(side_effect=error)):
            result = runner.invoke(main, ["call", "x"])

        assert result.exit_code == 1
        assert "Error:" in result.output
