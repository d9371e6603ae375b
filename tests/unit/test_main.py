"""
Unit tests for the snapshot-offset command line entrypoint and tracing setup
"""

import json
import logging
from unittest.mock import patch

import pytest
import structlog

from snapshot_offset import main
from snapshot_offset.observability import tracing
from snapshot_offset.observability.logging import configure_logging
from tests.fakes import ScriptedConnection


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "snapshot-offset.yaml"
    path.write_text(
        "log_mining:\n"
        "  transaction_snapshot_boundary_mode: skip\n"
        "snapshot:\n"
        "  captured_tables: [INVENTORY.ORDERS]\n"
        "observability:\n"
        "  log_format: console\n"
    )
    return str(path)


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()


class TestMain:
    """Test the CLI exit codes and output"""

    def test_prints_offset_as_json(self, config_file, capsys):
        connection = ScriptedConnection(current_scns=[1000])

        with patch.object(main, "OracleConnection", return_value=connection):
            exit_code = main.main(["--config", config_file])

        assert exit_code == 0
        assert json.loads(capsys.readouterr().out) == {
            "scn": "1000",
            "snapshot_scn": "1000",
            "snapshot_pending_tx": "",
        }
        assert connection.closed

    def test_failure_exits_non_zero(self, config_file, capsys):
        connection = ScriptedConnection(current_scns=[None])

        with patch.object(main, "OracleConnection", return_value=connection):
            exit_code = main.main(["--config", config_file])

        assert exit_code == 1
        assert capsys.readouterr().out == ""

    def test_missing_config_file_exits_non_zero(self, tmp_path, capsys):
        with patch.object(main, "OracleConnection") as oracle_connection:
            exit_code = main.main(["--config", str(tmp_path / "missing.yaml")])

        assert exit_code == 1
        assert capsys.readouterr().out == ""
        oracle_connection.assert_not_called()

    def test_invalid_setting_exits_non_zero(self, tmp_path, capsys):
        path = tmp_path / "invalid.yaml"
        path.write_text("log_mining:\n  transaction_snapshot_boundary_mode: bogus\n")

        with patch.object(main, "OracleConnection") as oracle_connection:
            exit_code = main.main(["--config", str(path)])

        assert exit_code == 1
        assert capsys.readouterr().out == ""
        oracle_connection.assert_not_called()


class TestLogging:
    """Test structlog configuration"""

    def test_driver_loggers_kept_above_debug(self):
        configure_logging(log_level="DEBUG", log_format="console")

        assert logging.getLogger("oracledb").level == logging.INFO

    def test_invalid_level_rejected(self):
        with pytest.raises(AttributeError):
            configure_logging(log_level="VERBOSE")


class TestTracing:
    """Test span creation around resolutions"""

    def test_no_op_span_without_tracing(self, monkeypatch):
        monkeypatch.setattr(tracing, "tracer", None)

        span = tracing.trace_offset_resolution("all")

        assert not span.is_recording()
        with pytest.raises(RuntimeError, match="Tracing not initialized"):
            tracing.get_tracer()

    def test_span_recorded_once_initialized(self, monkeypatch):
        monkeypatch.setattr(tracing, "tracer", None)
        tracing.init_tracing(service_name="snapshot-offset-test")

        span = tracing.trace_offset_resolution("skip")

        assert tracing.get_tracer() is tracing.tracer
        assert span.is_recording()
        span.end()
