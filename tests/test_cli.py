"""Tests for the proctrend command line."""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from proctrend.cli import build_parser, cli_overrides, main
from proctrend.config import DEFAULT_CONFIG, build_config, deep_merge
from proctrend.models import MetricKind, ProcessHandle


@pytest.fixture(autouse=True)
def no_user_config(tmp_path: Path):
    with patch("proctrend.config._DEFAULT_PATH", tmp_path / "missing.toml"):
        yield


class TestParser:
    def test_target_and_filters(self) -> None:
        args = build_parser().parse_args(["nginx", "worker", "master"])
        assert args.target == "nginx"
        assert args.filters == ["worker", "master"]

    def test_unset_options_are_none(self) -> None:
        args = build_parser().parse_args(["1234"])
        assert args.interval is None
        assert args.mem_zoom is None
        assert args.files_data_size is None
        assert cli_overrides(args) == {}

    def test_overrides_in_config_shape(self) -> None:
        args = build_parser().parse_args(
            ["1234", "--interval", "250", "--mem-zoom", "4", "--cpu-data-size", "64", "--net-kind", "tcp"]
        )
        overrides = cli_overrides(args)
        assert overrides == {
            "interval_ms": 250,
            "net_kind": "tcp",
            "zoom": {"mem": 4.0},
            "data_size": {"cpu": 64},
        }

    def test_overrides_beat_file_values(self) -> None:
        args = build_parser().parse_args(["1234", "--files-zoom", "2"])
        file_settings = deep_merge(DEFAULT_CONFIG, {"zoom": {"files": 8.0, "cpu": 3.0}})
        config = build_config(deep_merge(file_settings, cli_overrides(args)))
        assert config.zoom.factor(MetricKind.FILES) == 2.0
        assert config.zoom.factor(MetricKind.CPU) == 3.0

    def test_rejects_unknown_net_kind(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["1234", "--net-kind", "ipx"])


class TestMain:
    def test_unknown_process_exits_1(self, capsys) -> None:
        assert main(["xyz123-no-such-proc"]) == 1
        err = capsys.readouterr().err
        assert err.startswith("proctrend:")
        assert "xyz123-no-such-proc" in err

    def test_missing_config_exits_1(self, tmp_path: Path, capsys) -> None:
        assert main([str(os.getpid()), "--config", str(tmp_path / "nope.toml")]) == 1
        assert "config file not found" in capsys.readouterr().err

    def test_invalid_zoom_exits_1(self, capsys) -> None:
        assert main([str(os.getpid()), "--cpu-zoom", "0"]) == 1
        assert "zoom" in capsys.readouterr().err

    def test_nan_zoom_exits_1(self, capsys) -> None:
        assert main([str(os.getpid()), "--mem-zoom", "nan"]) == 1
        assert "finite" in capsys.readouterr().err

    def test_runs_app_for_resolved_process(self) -> None:
        handle = ProcessHandle(4242, "fake")
        with (
            patch("proctrend.cli.resolve", return_value=handle) as mock_resolve,
            patch("proctrend.cli.ProcTrendApp") as mock_app,
        ):
            mock_app.return_value.return_code = 0
            assert main(["fake", "extra", "--interval", "100"]) == 0

        mock_resolve.assert_called_once_with("fake", ["extra"])
        passed_handle, passed_config = mock_app.call_args.args
        assert passed_handle is handle
        assert passed_config.interval_ms == 100
        mock_app.return_value.run.assert_called_once()
        mock_app.return_value.monitor.stop.assert_called_once()

    def test_ui_failure_exits_1(self, capsys) -> None:
        with (
            patch("proctrend.cli.resolve", return_value=ProcessHandle(4242, "fake")),
            patch("proctrend.cli.ProcTrendApp") as mock_app,
        ):
            mock_app.return_value.run.side_effect = RuntimeError("no tty")
            assert main(["fake"]) == 1

        assert "no tty" in capsys.readouterr().err
        mock_app.return_value.monitor.stop.assert_called_once()

    def test_keyboard_interrupt_during_startup(self) -> None:
        with patch("proctrend.cli.resolve", side_effect=KeyboardInterrupt):
            assert main(["fake"]) == 130
