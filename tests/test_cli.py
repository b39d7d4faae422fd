"""Tests for the CLI.

Covers --help and --version, the patterns and config commands, vote
parsing, and end-to-end simulations via CliRunner.
"""

from __future__ import annotations

import pytest
import typer
from typer.testing import CliRunner

from concord.cli import app, parse_vote
from concord.schemas.decision import VoteChoice

# NO_COLOR=1 prevents Rich from injecting ANSI codes inside option names,
# which breaks substring matching in CI (headless, no TTY).
# COLUMNS=200 prevents wrapping that could split a flag across lines.
runner = CliRunner(env={"NO_COLOR": "1", "COLUMNS": "200"})


# ══════════════════════════════════════════════════════════════════
# Top level
# ══════════════════════════════════════════════════════════════════


class TestTopLevel:
    def test_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "patterns" in result.output
        assert "config" in result.output
        assert "simulate" in result.output

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "concord 0.1.0" in result.output

    def test_simulate_help(self):
        result = runner.invoke(app, ["simulate", "--help"])
        assert result.exit_code == 0
        assert "--vote" in result.output
        assert "--strategy" in result.output


# ══════════════════════════════════════════════════════════════════
# patterns / config
# ══════════════════════════════════════════════════════════════════


class TestPatternsCommand:
    def test_lists_shipped_patterns(self):
        result = runner.invoke(app, ["patterns"])
        assert result.exit_code == 0
        assert "Decision Patterns" in result.output
        assert "3 patterns registered" in result.output

    def test_custom_file(self, tmp_path):
        path = tmp_path / "patterns.toml"
        path.write_text(
            "[patterns.menu_change]\n"
            'required_agents = ["chef"]\n'
            "threshold = 0.5\n"
            "timeout_ms = 1000\n"
        )
        result = runner.invoke(app, ["patterns", "--patterns", str(path)])
        assert result.exit_code == 0
        assert "menu_change" in result.output
        assert "1 patterns registered" in result.output

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["patterns", "-p", str(tmp_path / "nope.toml")])
        assert result.exit_code == 1
        assert "Error loading patterns" in result.output


class TestConfigCommand:
    def test_shows_defaults(self):
        result = runner.invoke(app, ["config"])
        assert result.exit_code == 0
        assert "30,000ms" in result.output
        assert "unbounded" in result.output
        assert "0.10 to 1.00" in result.output
        assert "orderOptimization" in result.output

    def test_invalid_file(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text("[reliability]\nmin_score = 2.0\n")
        result = runner.invoke(app, ["config", "-c", str(path)])
        assert result.exit_code == 1
        assert "Error loading config" in result.output


# ══════════════════════════════════════════════════════════════════
# Vote parsing
# ══════════════════════════════════════════════════════════════════


class TestParseVote:
    def test_with_confidence(self):
        vote = parse_vote("orderOptimization:reject:0.4")
        assert vote.agent_id == "orderOptimization"
        assert vote.vote == VoteChoice.REJECT
        assert vote.confidence == 0.4

    def test_default_confidence(self):
        assert parse_vote("A:approve").confidence == 1.0

    def test_bad_shape(self):
        with pytest.raises(typer.BadParameter):
            parse_vote("A")

    def test_bad_choice(self):
        with pytest.raises(typer.BadParameter):
            parse_vote("A:maybe")

    def test_confidence_out_of_range(self):
        with pytest.raises(typer.BadParameter):
            parse_vote("A:approve:1.5")


# ══════════════════════════════════════════════════════════════════
# simulate
# ══════════════════════════════════════════════════════════════════


class TestSimulateCommand:
    def test_pattern_approves(self):
        result = runner.invoke(app, [
            "simulate", "order_modification",
            "-v", "orderOptimization:approve:0.9",
            "-v", "inventoryPrediction:approve:0.9",
        ])
        assert result.exit_code == 0
        assert "APPROVED" in result.output
        assert "Execution Plan" in result.output
        assert "Consensus Rate" in result.output

    def test_pattern_rejects(self):
        result = runner.invoke(app, [
            "simulate", "order_modification",
            "-v", "orderOptimization:approve:0.3",
            "-v", "inventoryPrediction:reject:0.9",
        ])
        assert result.exit_code == 0
        assert "REJECTED" in result.output
        assert "Execution Plan" not in result.output

    def test_forced_evaluation_is_insufficient(self):
        result = runner.invoke(app, [
            "simulate", "order_modification", "-v", "orderOptimization:approve",
        ])
        assert result.exit_code == 0
        assert "INSUFFICIENT_VOTES" in result.output

    def test_strategy_resolves(self):
        result = runner.invoke(app, [
            "simulate", "order_modification",
            "-v", "orderOptimization:approve",
            "-s", "majority_plus",
        ])
        assert result.exit_code == 0
        assert "APPROVED" in result.output
        assert "majority_plus" in result.output

    def test_custom_type_with_required(self):
        result = runner.invoke(app, [
            "simulate", "menu_change",
            "-r", "chef", "-t", "0.5",
            "-v", "chef:approve:0.8",
        ])
        assert result.exit_code == 0
        assert "APPROVED" in result.output
        assert "Execution Plan" in result.output

    def test_custom_type_without_required(self):
        result = runner.invoke(app, ["simulate", "menu_change"])
        assert result.exit_code == 1
        assert "No pattern for 'menu_change'" in result.output

    def test_unknown_strategy(self):
        result = runner.invoke(app, [
            "simulate", "order_modification",
            "-v", "orderOptimization:approve",
            "-s", "coin_flip",
        ])
        assert result.exit_code == 1
        assert "Unknown conflict resolution strategy: coin_flip" in result.output

    def test_bad_vote(self):
        result = runner.invoke(app, ["simulate", "order_modification", "-v", "oops"])
        assert result.exit_code != 0
