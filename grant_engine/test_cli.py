#!/usr/bin/env python3
"""
CLI tests
"""

from typer.testing import CliRunner

from grant_engine.cli import app

runner = CliRunner()


class TestQuote:
    """dge quote tests"""

    def test_eligible(self):
        result = runner.invoke(app, ["quote", "--reputation", "10", "--request", "1000"])
        assert result.exit_code == 0
        assert "$1,000" in result.output
        assert "600 tokens" in result.output
        assert "Eligible for submission" in result.output

    def test_ineligible(self):
        result = runner.invoke(app, ["quote", "-r", "5", "-a", "1000"])
        assert result.exit_code == 0
        assert "Not eligible" in result.output
        assert "below_reputation_floor" in result.output

    def test_invalid_price(self):
        result = runner.invoke(app, ["quote", "-r", "10", "-a", "1000", "--price", "0"])
        assert result.exit_code == 1
        assert "INVALID_PRICE" in result.output


class TestSimulate:
    """dge simulate tests"""

    def test_default_script_completes(self):
        result = runner.invoke(app, ["simulate"])
        assert result.exit_code == 0
        assert "Status: completed" in result.output
        assert "Founder reputation: 30" in result.output

    def test_slashing_path(self):
        result = runner.invoke(app, [
            "simulate", "-r", "50", "--script", "submit,pass,success,default,slash"
        ])
        assert result.exit_code == 0
        assert "Status: slashed" in result.output
        assert "Founder reputation: 40" in result.output

    def test_invalid_step_order(self):
        result = runner.invoke(app, ["simulate", "--script", "success"])
        assert result.exit_code == 1
        assert "Status: draft" in result.output

    def test_unknown_step(self):
        result = runner.invoke(app, ["simulate", "--script", "submit,teleport"])
        assert result.exit_code == 1
        assert "teleport" in result.output

    def test_invalid_price(self):
        result = runner.invoke(app, ["simulate", "--price", "0"])
        assert result.exit_code == 1


class TestConfigCommand:
    """dge config tests"""

    def test_shows_defaults(self):
        result = runner.invoke(app, ["config"])
        assert result.exit_code == 0
        assert "MAX_CAP" in result.output

    def test_bad_environment(self):
        result = runner.invoke(app, ["config"], env={"DGE_MAX_CAP": "lots"})
        assert result.exit_code == 1
        assert "Configuration error" in result.output

    def test_schedule(self):
        result = runner.invoke(app, ["schedule"])
        assert result.exit_code == 0
        assert "Proof of Concept" in result.output
