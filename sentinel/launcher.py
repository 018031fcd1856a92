"""
Script launcher for Sentinel.

Runs the script configured for a triggered category. The event context is
handed to the child through its own environment (SENTINEL_ACTION and
SENTINEL_PATH); the watcher's environment is left untouched. Scripts run
synchronously and without a timeout.
"""

import logging
import os
import subprocess
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional

from sentinel.actions import Category
from sentinel.config import (DEFAULT_SHELL, DEFAULT_STOP_STATUSES,
                             ENV_ACTION_VAR, ENV_PATH_VAR)

logger = logging.getLogger(__name__)


class EnvironmentSetupError(Exception):
    """Raised when the event context cannot be placed in the environment."""

    pass


class StopRequested(Exception):
    """Raised when a script exits with one of the stop statuses."""

    def __init__(self, script: str, status: int):
        super().__init__(f"Script '{script}' requested stop with exit code {status}")
        self.script = script
        self.status = status


@dataclass(frozen=True)
class LaunchContext:
    """What a script is told about the event that triggered it."""

    action: str
    path: str

    def environment(self, base: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        """
        Build the child environment: ``base`` plus the two context variables.

        Raises:
            EnvironmentSetupError: If a value cannot be stored in an
                environment variable.
        """
        env = dict(os.environ if base is None else base)
        for name, value in ((ENV_ACTION_VAR, self.action), (ENV_PATH_VAR, self.path)):
            if not isinstance(value, str) or "\0" in value:
                raise EnvironmentSetupError(
                    f"Couldn't set environment variable {name}: invalid value {value!r}"
                )
            env[name] = value
        return env


class Launcher:
    """
    Runs scripts for triggered categories.

    Attributes:
        shell: Interpreter the script is passed to.
        stop_statuses: Exit statuses that stop the whole watcher.
        loop: Whether the watcher keeps running after a dispatch.
    """

    def __init__(
        self,
        shell: str = DEFAULT_SHELL,
        stop_statuses: Iterable[int] = DEFAULT_STOP_STATUSES,
        loop: bool = False,
        base_env: Optional[Mapping[str, str]] = None,
    ):
        self.shell = shell
        self.stop_statuses = frozenset(stop_statuses)
        self.loop = loop
        self.base_env = base_env

    def launch(self, category: Category, script: str, path: str) -> bool:
        """
        Run ``script`` for one triggered category.

        An empty script skips execution.

        Returns:
            bool: True when the watcher should finish (loop mode is off).

        Raises:
            EnvironmentSetupError: The context could not be set (fatal).
            StopRequested: The script exited with a stop status.
        """
        if script:
            logger.debug(f"{category.action_name.upper()}: Running '{script}'")
            context = LaunchContext(action=category.action_name, path=path)
            self.run_script(script, context.environment(self.base_env))
        return not self.loop

    def run_script(self, script: str, env: Mapping[str, str]) -> Optional[int]:
        """
        Run one script to completion.

        Returns:
            int or None: The exit code, or None when the script could not be
            started.

        Raises:
            StopRequested: The exit code is one of the stop statuses.
        """
        try:
            result = subprocess.run([self.shell, script], env=dict(env))
        except OSError as e:
            logger.debug(f"Error: {e}")
            return None
        except ValueError as e:
            # subprocess rejects environment entries it cannot encode
            raise EnvironmentSetupError(f"Couldn't set environment variable: {e}")

        status = result.returncode
        if status in self.stop_statuses:
            logger.debug(f"Exit code: {status}")
            raise StopRequested(script, status)
        if status != 0:
            logger.debug(f"Error: script '{script}' exited with status {status}")
        return status
