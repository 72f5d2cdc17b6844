"""Tests for the command-line interface."""

import json

import pandas as pd
import pytest
import yaml
from click.testing import CliRunner

from cli import cli
from hitsync.database.schema import reset_engine


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def fresh_engine():
    reset_engine()
    yield
    reset_engine()


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({
        "logging": {"level": "ERROR"},
        "database": {"url": f"sqlite:///{tmp_path / 'db' / 'hitsync.db'}"},
        "reconciliation": {"timezone": "UTC"},
    }))
    return str(path)


@pytest.fixture
def csv_files(tmp_path, blast_rows, hittrax_rows, fullswing_rows):
    paths = {}
    for name, rows in (("blast", blast_rows), ("hittrax", hittrax_rows), ("fullswing", fullswing_rows)):
        path = tmp_path / f"{name}.csv"
        pd.DataFrame(rows).to_csv(path, index=False)
        paths[name] = str(path)
    return paths


class TestReconcileCommand:

    def test_json_output(self, runner, config_file, csv_files):
        result = runner.invoke(cli, [
            "--config", config_file,
            "reconcile",
            "--blast", csv_files["blast"],
            "--hittrax", csv_files["hittrax"],
            "--fullswing", csv_files["fullswing"],
            "--json",
        ])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["session_count"] == 2
        assert data["paired_swings_count"] == 1
        assert data["sessions"][0]["session_date"] == "2024-05-01"
        assert data["sessions"][0]["is_paired"] is True
        assert data["sessions"][1]["session_type"] == "fullswing"

    def test_table_output_with_limit(self, runner, config_file, csv_files):
        result = runner.invoke(cli, [
            "--config", config_file,
            "reconcile",
            "--blast", csv_files["blast"],
            "--hittrax", csv_files["hittrax"],
            "--fullswing", csv_files["fullswing"],
            "--limit", "1",
        ])

        assert result.exit_code == 0, result.output
        assert "2 sessions, 1 paired swings" in result.output
        assert "2024-05-01" in result.output
        assert "1 older sessions not shown" in result.output

    def test_table_shows_percentages(self, runner, config_file, csv_files):
        result = runner.invoke(cli, [
            "--config", config_file,
            "reconcile",
            "--blast", csv_files["blast"],
            "--hittrax", csv_files["hittrax"],
            "--fullswing", csv_files["fullswing"],
        ])

        assert result.exit_code == 0, result.output
        # one of two contact swings at 95+ mph on 2024-05-01, the only one on 2024-04-30
        assert "hard hit: 50.0%" in result.output
        assert "hard hit: 100.0%" in result.output
        assert "whiff by pitch speed: 60-69: 0%" in result.output

    def test_window_override(self, runner, config_file, csv_files):
        result = runner.invoke(cli, [
            "--config", config_file,
            "reconcile",
            "--blast", csv_files["blast"],
            "--hittrax", csv_files["hittrax"],
            "--window", "1",
            "--json",
        ])

        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["paired_swings_count"] == 0

    def test_negative_window_rejected(self, runner, config_file, csv_files):
        result = runner.invoke(cli, [
            "--config", config_file,
            "reconcile",
            "--blast", csv_files["blast"],
            "--hittrax", csv_files["hittrax"],
            "--window", "-1",
        ])

        assert result.exit_code == 1
        assert "Invalid configuration" in result.output

    def test_missing_file(self, runner, config_file, tmp_path, csv_files):
        result = runner.invoke(cli, [
            "--config", config_file,
            "reconcile",
            "--blast", str(tmp_path / "missing.csv"),
            "--hittrax", csv_files["hittrax"],
        ])

        assert result.exit_code == 2


class TestDatabaseCommands:

    def test_import_then_sessions(self, runner, config_file, csv_files):
        result = runner.invoke(cli, ["--config", config_file, "db", "init"])
        assert result.exit_code == 0, result.output
        assert "Database initialized" in result.output

        for device in ("blast", "hittrax"):
            result = runner.invoke(cli, [
                "--config", config_file, "-v",
                "db", "import", "--athlete-id", "ath-1", "--device", device, csv_files[device],
            ])
            assert result.exit_code == 0, result.output

        result = runner.invoke(cli, ["--config", config_file, "sessions", "--athlete-id", "ath-1", "--json"])
        assert result.exit_code == 0, result.output
        assert "paired_swings_count" in result.output

        result = runner.invoke(cli, ["--config", config_file, "db", "stats"])
        assert result.exit_code == 0, result.output
        assert "Blast swings: 3" in result.output
        assert "HitTrax swings: 2" in result.output

    def test_import_reports_count(self, runner, config_file, csv_files):
        result = runner.invoke(cli, [
            "--config", config_file,
            "db", "import", "--athlete-id", "ath-1", "--device", "blast", csv_files["blast"],
        ])

        assert result.exit_code == 0, result.output
        assert "Imported 3 of 3 blast rows for athlete ath-1" in result.output

    def test_import_rejects_unknown_device(self, runner, config_file, csv_files):
        result = runner.invoke(cli, [
            "--config", config_file,
            "db", "import", "--athlete-id", "ath-1", "--device", "rapsodo", csv_files["blast"],
        ])

        assert result.exit_code == 2


class TestOtherCommands:

    def test_fetch_requires_service_url(self, runner, config_file):
        result = runner.invoke(cli, ["--config", config_file, "fetch", "--athlete-id", "ath-1"])

        assert result.exit_code == 1
        assert "No service URL configured" in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["version"])

        assert result.exit_code == 0
        assert "Version: 0.1.0" in result.output
