"""Tests for the command-line interface (in-memory backend)."""

import importlib.util
import json
import os

import pytest


CLI_PATH = os.path.join(os.path.dirname(__file__), "..", "scripts", "cli", "shortlink_cli.py")


@pytest.fixture(scope="module")
def cli():
    module_spec = importlib.util.spec_from_file_location("shortlink_cli", CLI_PATH)
    module = importlib.util.module_from_spec(module_spec)
    module_spec.loader.exec_module(module)
    return module


@pytest.mark.asyncio
class TestCLI:

    async def test_shorten(self, cli, capsys):
        code = await cli.main(["--backend", "memory", "shorten", "https://example.com/cli"])

        assert code == 0
        data = json.loads(capsys.readouterr().out)
        assert data["success"] is True
        assert data["status"] == "created"
        assert data["long_url"] == "https://example.com/cli"

    async def test_shorten_invalid(self, cli, capsys):
        code = await cli.main(["--backend", "memory", "shorten", "not-a-url"])

        assert code == 1
        assert "Invalid URL" in json.loads(capsys.readouterr().err)["error"]

    async def test_bad_expiry(self, cli, capsys):
        code = await cli.main([
            "--backend", "memory", "shorten", "https://example.com/x", "--expires-at", "tomorrow",
        ])

        assert code == 1
        assert "Invalid argument" in json.loads(capsys.readouterr().err)["error"]

    async def test_resolve_missing(self, cli, capsys):
        code = await cli.main(["--backend", "memory", "resolve", "abc1234"])

        assert code == 1
        assert "not found" in json.loads(capsys.readouterr().err)["error"]

    async def test_info_missing(self, cli, capsys):
        code = await cli.main(["--backend", "memory", "info", "abc1234"])

        assert code == 1

    async def test_stats_and_health(self, cli, capsys):
        assert await cli.main(["--backend", "memory", "stats"]) == 0
        assert json.loads(capsys.readouterr().out)["statistics"]["total_urls"] == 0

        assert await cli.main(["--backend", "memory", "health"]) == 0

    async def test_no_command(self, cli):
        assert await cli.main([]) == 1
