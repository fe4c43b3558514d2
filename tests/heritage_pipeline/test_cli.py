# SPDX-License-Identifier: MIT
"""Tests for the command line interface."""

import csv

import pytest
from click.testing import CliRunner

from heritage_pipeline.main import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def csv_path(tmp_path):
    path = tmp_path / "whc001.csv"
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["Name EN", "States Names", "Coordinates", "Main Image"])
        writer.writerow(["Petra", "Jordan", "30.3285, 35.4444", ""])
        writer.writerow(["Sigiriya", "Sri Lanka", "", "https://example.org/s.jpg"])
    return path


class TestCli:
    """Test commands against the configured (in-memory) database."""

    def test_import_then_status(self, runner, csv_path):
        result = runner.invoke(cli, ["import-csv", "--force", "--csv-path", str(csv_path)])
        assert result.exit_code == 0, result.output
        assert "Imported 2 sites" in result.output

        result = runner.invoke(cli, ["import-csv", "--csv-path", str(csv_path)])
        assert result.exit_code == 0
        assert "already imported" in result.output

        result = runner.invoke(cli, ["status"])
        assert result.exit_code == 0
        assert "Missing coordinates" in result.output

    def test_missing_csv_path_rejected(self, runner, tmp_path):
        result = runner.invoke(cli, ["import-csv", "--csv-path", str(tmp_path / "nope.csv")])
        assert result.exit_code != 0
