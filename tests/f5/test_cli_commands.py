"""Tests for CLI commands."""

import json
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from practice.cli.commands import app
from practice.llm.client import LLMTimeoutError

runner = CliRunner()


@pytest.fixture
def db_file(tmp_path):
    return str(tmp_path / "cli" / "practice.db")


@pytest.fixture
def patched_llm(mock_llm_client):
    """Route generation through the mock client."""
    with patch("practice.core.content_generator.LLMClient", return_value=mock_llm_client):
        yield mock_llm_client


class TestInitDb:
    def test_creates_database(self, db_file):
        result = runner.invoke(app, ["init-db", "--db", db_file])

        assert result.exit_code == 0
        assert "Database ready" in result.stdout


class TestSelectCommand:
    """Tests for practice select."""

    def test_select_generates(self, db_file, patched_llm):
        result = runner.invoke(
            app, ["select", "user-1", "listening", "listen_and_type", "--db", db_file]
        )

        assert result.exit_code == 0
        assert "Selected" in result.stdout
        assert "generated" in result.stdout
        patched_llm.simple_json.assert_called_once()

    def test_select_json(self, db_file, patched_llm):
        result = runner.invoke(
            app,
            ["select", "user-1", "listening", "listen_and_type", "--json", "--db", db_file],
        )

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["band_level"] == "A2"
        assert data["payload"]["type"] == "listen_and_type"

    def test_select_unknown_type(self, db_file):
        result = runner.invoke(
            app, ["select", "user-1", "listening", "juggling", "--db", db_file]
        )

        assert result.exit_code == 1
        assert "juggling" in result.stdout

    def test_select_nothing_available(self, db_file, patched_llm):
        patched_llm.simple_json.side_effect = LLMTimeoutError("slow")

        result = runner.invoke(
            app, ["select", "user-1", "listening", "listen_and_type", "--db", db_file]
        )

        assert result.exit_code == 1
        assert "No content available" in result.stdout


class TestReportCommand:
    """Tests for practice report."""

    def test_report_promotes(self, db_file):
        runner.invoke(app, ["report", "user-1", "listening", "listen_and_type", "90", "--db", db_file])
        result = runner.invoke(
            app, ["report", "user-1", "listening", "listen_and_type", "90", "--db", db_file]
        )

        assert result.exit_code == 0
        assert "2.5" in result.stdout

    def test_report_invalid_score(self, db_file):
        result = runner.invoke(
            app, ["report", "user-1", "listening", "listen_and_type", "120", "--db", db_file]
        )

        assert result.exit_code == 1
        assert "0..100" in result.stdout


class TestLevelsCommand:
    def test_levels_table(self, db_file):
        runner.invoke(app, ["report", "user-1", "reading", "read_and_select", "60", "--db", db_file])

        result = runner.invoke(app, ["levels", "user-1", "--db", db_file])

        assert result.exit_code == 0
        assert "read_and_select" in result.stdout
        assert "speaking" in result.stdout


class TestContentCommands:
    """Tests for inventory, pregenerate and retire."""

    def test_empty_inventory(self, db_file):
        result = runner.invoke(app, ["inventory", "--db", db_file])

        assert result.exit_code == 0
        assert "No cached content yet" in result.stdout

    def test_pregenerate_then_inventory(self, db_file, patched_llm):
        result = runner.invoke(
            app,
            ["pregenerate", "listening", "listen_and_type", "b1", "-n", "2", "--db", db_file],
        )

        assert result.exit_code == 0
        assert "Generated 2 item(s)" in result.stdout
        assert patched_llm.simple_json.call_count == 2

        inventory = runner.invoke(app, ["inventory", "--db", db_file])
        assert "Total active items: 2" in inventory.stdout

    def test_pregenerate_bad_band(self, db_file):
        result = runner.invoke(
            app, ["pregenerate", "listening", "listen_and_type", "D1", "--db", db_file]
        )

        assert result.exit_code == 1
        assert "Unknown band" in result.stdout

    def test_pregenerate_all_failed(self, db_file, patched_llm):
        patched_llm.simple_json.side_effect = LLMTimeoutError("slow")

        result = runner.invoke(
            app,
            ["pregenerate", "listening", "listen_and_type", "B1", "-n", "1", "--db", db_file],
        )

        assert result.exit_code == 1
        assert "UpstreamTimeoutError" in result.stdout

    def test_retire(self, db_file, patched_llm):
        selected = runner.invoke(
            app,
            ["select", "user-1", "listening", "listen_and_type", "--json", "--db", db_file],
        )
        item_id = json.loads(selected.stdout)["id"]

        result = runner.invoke(app, ["retire", item_id, "--db", db_file])

        assert result.exit_code == 0
        assert "Retired" in result.stdout

    def test_retire_unknown(self, db_file):
        result = runner.invoke(app, ["retire", "missing", "--db", db_file])

        assert result.exit_code == 1
        assert "not found" in result.stdout
