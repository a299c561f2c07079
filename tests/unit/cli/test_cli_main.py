"""Tests for the click command line interface."""

from __future__ import annotations

import json
import sys

import pytest
from click.testing import CliRunner

pytestmark = [pytest.mark.unit, pytest.mark.cli]

from drivestress.cli.main import cli, main, parse_positive_int
from drivestress.utils.console_utils import create_console


@pytest.fixture
def runner(monkeypatch):
    # Wide console so Rich does not wrap long temporary paths
    monkeypatch.setenv("COLUMNS", "200")
    return CliRunner()


@pytest.fixture
def small_payload(monkeypatch):
    """Keep CLI runs to a few KiB per file."""
    monkeypatch.setenv("DRIVESTRESS_FILE_SIZE_BYTES", "5000")


def _stress_args(tmp_path):
    return [
        "--chunk-kib",
        "1",
        "--target-dir",
        str(tmp_path),
        "--failure-delay",
        "0",
        "--max-iterations",
        "1",
    ]


class TestParsePositiveInt:
    """Lenient positional parsing."""

    def test_valid(self):
        assert parse_positive_int("25", "file size", 10, create_console()) == 25

    def test_missing(self):
        assert parse_positive_int(None, "file size", 10, create_console()) is None

    @pytest.mark.parametrize("raw", ["0", "-3", "abc", "1.5"])
    def test_invalid_warns_and_returns_default(self, raw, capsys):
        assert parse_positive_int(raw, "file size", 10, create_console()) == 10
        assert "Invalid file size provided, using default: 10" in capsys.readouterr().out


class TestStressCommands:
    """single and multi with tiny payloads."""

    @pytest.mark.timeout(60)
    def test_single(self, runner, tmp_path, small_payload):
        result = runner.invoke(cli, ["single", *_stress_args(tmp_path)], obj={})

        assert result.exit_code == 0, result.output
        assert "Starting hard drive stress test" in result.output
        assert "Stress test summary" in result.output
        assert "Verification successful" in result.output
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.timeout(60)
    def test_single_custom_filename(self, runner, tmp_path, small_payload):
        result = runner.invoke(
            cli,
            ["single", "1", "custom.dat", *_stress_args(tmp_path)],
            obj={},
        )

        assert result.exit_code == 0, result.output
        assert "custom.dat" in result.output

    @pytest.mark.timeout(60)
    def test_banner_shows_paths_with_markup_brackets(self, runner, tmp_path, small_payload):
        target = tmp_path / "disk[/x]"
        target.mkdir(parents=True)

        result = runner.invoke(
            cli,
            ["single", "1", "run[bold].dat", *_stress_args(target)],
            obj={},
        )

        assert result.exit_code == 0, result.output
        assert str(target / "run[bold].dat") in result.output
        assert list(target.iterdir()) == []

    @pytest.mark.timeout(60)
    def test_single_invalid_size_falls_back(self, runner, tmp_path, small_payload):
        result = runner.invoke(cli, ["single", "abc", *_stress_args(tmp_path)], obj={})

        assert result.exit_code == 0, result.output
        assert "Invalid file size provided, using default: 10" in result.output

    @pytest.mark.timeout(60)
    def test_multi(self, runner, tmp_path, small_payload):
        result = runner.invoke(cli, ["multi", "1", "3", *_stress_args(tmp_path)], obj={})

        assert result.exit_code == 0, result.output
        assert "Verification phase successful." in result.output
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.timeout(60)
    def test_multi_invalid_count_falls_back(self, runner, tmp_path, small_payload):
        result = runner.invoke(cli, ["multi", "1", "zero", *_stress_args(tmp_path)], obj={})

        assert result.exit_code == 0, result.output
        assert "Invalid number of files provided, using default: 2" in result.output

    @pytest.mark.timeout(60)
    def test_invalid_count_uses_default_over_config_file(self, runner, tmp_path, small_payload):
        config_path = tmp_path / "c.toml"
        config_path.write_text("[stress]\nnum_files = 3\n")
        target = tmp_path / "data"
        target.mkdir()

        result = runner.invoke(
            cli,
            ["--config", str(config_path), "multi", "1", "zero", *_stress_args(target)],
            obj={},
        )

        assert result.exit_code == 0, result.output
        assert "Invalid number of files provided, using default: 2" in result.output
        assert "Number of concurrent files: 2" in result.output

    def test_invalid_option_value_is_reported(self, runner, tmp_path):
        result = runner.invoke(
            cli,
            ["single", "--chunk-kib", "0", "--target-dir", str(tmp_path)],
            obj={},
        )

        assert result.exit_code != 0
        assert "Invalid configuration" in result.output


class TestShowConfig:
    """show-config output."""

    def test_json(self, runner):
        result = runner.invoke(cli, ["show-config", "--format", "json"], obj={})

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["stress"]["num_files"] == 2

    def test_global_options_apply(self, runner):
        result = runner.invoke(
            cli,
            ["--verbose", "--structured-logs", "show-config", "--format", "json"],
            obj={},
        )

        data = json.loads(result.output)
        assert data["observability"]["log_level"] == "DEBUG"
        assert data["observability"]["structured_logging"] is True

    def test_config_file(self, runner, tmp_path):
        path = tmp_path / "c.toml"
        path.write_text("[stress]\nnum_files = 6\n")

        result = runner.invoke(cli, ["--config", str(path), "show-config"], obj={})

        assert result.exit_code == 0, result.output
        assert "num_files = 6" in result.output

    def test_bad_config_file(self, runner, tmp_path):
        path = tmp_path / "c.toml"
        path.write_text("[stress\n")

        result = runner.invoke(cli, ["--config", str(path), "show-config"], obj={})

        assert result.exit_code == 1
        assert "Failed to load config file" in result.output


def test_main_entry_point(monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", ["drivestress", "show-config", "--format", "json"])

    with pytest.raises(SystemExit) as exc_info:
        main()

    assert exc_info.value.code == 0
    assert json.loads(capsys.readouterr().out)["stress"]["file_size_mb"] == 10
