"""
Tests for the script launcher.

Scripts are small bash files written into tmp_path.
"""

import logging
import os

import pytest

from sentinel.actions import Category
from sentinel.config import ENV_ACTION_VAR, ENV_PATH_VAR
from sentinel.launcher import (EnvironmentSetupError, LaunchContext, Launcher,
                               StopRequested)


def write_script(tmp_path, body, name="action.sh"):
    script = tmp_path / name
    script.write_text("#!/bin/bash\n" + body + "\n")
    return str(script)


@pytest.fixture
def recorder(tmp_path):
    """A script that records its context and exits 0."""
    out = tmp_path / "out.txt"
    script = write_script(
        tmp_path, f'echo "${ENV_ACTION_VAR} ${ENV_PATH_VAR}" >> "{out}"'
    )
    return script, out


def test_context_environment_adds_variables():
    env = LaunchContext("create", "/tmp/watched/x").environment({"HOME": "/root"})
    assert env == {"HOME": "/root", ENV_ACTION_VAR: "create", ENV_PATH_VAR: "/tmp/watched/x"}


def test_context_environment_does_not_touch_process_env():
    before = os.environ.get(ENV_ACTION_VAR)
    LaunchContext("write", "/tmp/f").environment()
    assert os.environ.get(ENV_ACTION_VAR) == before


def test_context_environment_rejects_nul():
    with pytest.raises(EnvironmentSetupError):
        LaunchContext("create", "/tmp/bad\0path").environment({})


def test_launch_runs_script_with_context(recorder):
    script, out = recorder
    launcher = Launcher(shell="bash")
    finished = launcher.launch(Category.CREATE, script, "/tmp/watched/x")
    assert finished is True
    assert out.read_text() == "create /tmp/watched/x\n"


def test_launch_in_loop_mode_does_not_finish(recorder):
    script, out = recorder
    launcher = Launcher(shell="bash", loop=True)
    assert launcher.launch(Category.WRITE, script, "/tmp/f") is False
    assert out.read_text() == "write /tmp/f\n"


def test_launch_without_script_skips_execution(tmp_path):
    launcher = Launcher(shell=str(tmp_path / "no-such-shell"))
    assert launcher.launch(Category.DELETE, "", "/tmp/f") is True
    assert Launcher(loop=True).launch(Category.DELETE, "", "/tmp/f") is False


@pytest.mark.parametrize("code", [1, 2])
def test_stop_status_raises_stop_requested(tmp_path, code):
    script = write_script(tmp_path, f"exit {code}")
    launcher = Launcher(shell="bash", loop=True)
    with pytest.raises(StopRequested) as excinfo:
        launcher.launch(Category.CREATE, script, "/tmp/f")
    assert excinfo.value.status == code


def test_other_failures_are_ignored(tmp_path):
    script = write_script(tmp_path, "exit 3")
    launcher = Launcher(shell="bash")
    assert launcher.run_script(script, {}) == 3
    assert launcher.launch(Category.CREATE, script, "/tmp/f") is True


def test_custom_stop_statuses(tmp_path):
    script = write_script(tmp_path, "exit 3")
    launcher = Launcher(shell="bash", stop_statuses=[3])
    with pytest.raises(StopRequested):
        launcher.run_script(script, {})
    assert launcher.run_script(write_script(tmp_path, "exit 1", "one.sh"), {}) == 1


def test_start_failure_is_not_fatal(tmp_path, recorder):
    script, out = recorder
    launcher = Launcher(shell=str(tmp_path / "no-such-shell"))
    assert launcher.run_script(script, {}) is None
    assert launcher.launch(Category.CREATE, script, "/tmp/f") is True
    assert not out.exists()


def test_launch_with_bad_path_is_fatal(recorder):
    script, _ = recorder
    with pytest.raises(EnvironmentSetupError):
        Launcher(shell="bash").launch(Category.CREATE, script, "/tmp/bad\0path")


def test_start_failure_is_logged_at_debug(tmp_path, recorder, caplog):
    script, _ = recorder
    launcher = Launcher(shell=str(tmp_path / "no-such-shell"))
    with caplog.at_level(logging.DEBUG, logger="sentinel"):
        launcher.run_script(script, {})
    records = [r for r in caplog.records if r.name == "sentinel.launcher"]
    assert len(records) == 1
    assert records[0].levelno == logging.DEBUG
    assert "no-such-shell" in records[0].getMessage()


def test_nonzero_status_is_logged_at_debug(tmp_path, caplog):
    script = write_script(tmp_path, "exit 3")
    with caplog.at_level(logging.DEBUG, logger="sentinel"):
        Launcher(shell="bash").run_script(script, {})
    records = [r for r in caplog.records if r.name == "sentinel.launcher"]
    assert [r.levelno for r in records] == [logging.DEBUG]
    assert "exited with status 3" in records[0].getMessage()
