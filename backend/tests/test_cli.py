"""Tests for the `dash` command-line entry point and its exit codes."""

import logging

import pytest
import structlog

from dashpipe.cli import EXIT_CONFIG_ERROR, EXIT_OK, EXIT_STEP_FAILED, build_parser, main
from dashpipe.core.constants import DEFAULT_CONFIG_PATH


@pytest.fixture(autouse=True)
def _reset_logging():
    """main() configures logging against the captured stderr; undo it afterwards."""
    yield
    for handler in list(logging.root.handlers):
        logging.root.removeHandler(handler)
    structlog.reset_defaults()


def _write_config(tmp_path, body: str):
    path = tmp_path / "config.yml"
    path.write_text(body)
    return path


def test_default_config_path():
    assert build_parser().parse_args([]).config == DEFAULT_CONFIG_PATH


def test_successful_pipeline_exits_zero(tmp_path, capsys):
    (tmp_path / "a.txt").write_text("data")
    config = _write_config(
        tmp_path,
        f"steps:\n"
        f"  - read:\n      file:\n        location: {tmp_path / 'a.txt'}\n"
        f"  - write:\n      file:\n        location: {tmp_path / 'b.txt'}\n",
    )

    code = main(["--config", str(config), "--log-level", "WARNING"])

    assert code == EXIT_OK
    assert (tmp_path / "b.txt").read_text() == "data"
    assert "pipeline completed (2/2 steps" in capsys.readouterr().err


def test_failed_step_exits_non_zero_and_names_the_step(tmp_path, capsys):
    config = _write_config(
        tmp_path,
        f"steps:\n"
        f"  - name: load\n    read:\n      file:\n        location: {tmp_path / 'missing.txt'}\n"
        f"  - write:\n      file:\n        location: {tmp_path / 'b.txt'}\n",
    )

    code = main(["-c", str(config), "--log-level", "WARNING"])

    assert code == EXIT_STEP_FAILED
    err = capsys.readouterr().err
    assert "step 0 (load) failed with IoError" in err
    assert not (tmp_path / "b.txt").exists()


def test_invalid_config_exits_with_config_error(tmp_path, capsys):
    config = _write_config(tmp_path, "steps:\n  - read: {}\n")

    code = main(["-c", str(config), "--log-level", "WARNING"])

    assert code == EXIT_CONFIG_ERROR
    assert "configuration error" in capsys.readouterr().err


def test_missing_config_file_exits_with_config_error(tmp_path):
    code = main(["-c", str(tmp_path / "nope.yml"), "--log-level", "WARNING"])

    assert code == EXIT_CONFIG_ERROR


def test_version_flag(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["--version"])

    assert excinfo.value.code == 0
    assert "dash" in capsys.readouterr().out
