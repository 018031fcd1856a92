"""
Startup configuration for Sentinel.

Sentinel reads no configuration files. Everything comes from command line
options, with a few defaults taken from environment variables. This module
turns those raw options into one immutable WatchConfig, applying the
implication and override rules between trigger flags and scripts.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Sequence, Tuple

from sentinel.actions import CATEGORY_ORDER, NONE, Category

ENV_ACTION_VAR = "SENTINEL_ACTION"
ENV_PATH_VAR = "SENTINEL_PATH"
ENV_SHELL_VAR = "SENTINEL_SHELL"
ENV_STOP_STATUSES_VAR = "SENTINEL_STOP_STATUSES"

DEFAULT_SHELL = "bash"

# Exit codes 1 and 2, i.e. the POSIX wait statuses 256 and 512.
DEFAULT_STOP_STATUSES = (1, 2)


@dataclass(frozen=True)
class WatchConfig:
    """
    Resolved, read-only settings for one Sentinel run.

    Attributes:
        paths: Paths to register with the watch source.
        enabled: Categories that trigger dispatch.
        actions: Script per category; "" means no script.
        loop: Keep watching after a dispatch.
        verbose: Log details while running.
        shell: Program used to run scripts.
        stop_statuses: Script exit statuses that stop the watcher.
    """

    paths: Tuple[str, ...] = ()
    enabled: Category = NONE
    actions: Mapping[Category, str] = field(
        default_factory=lambda: MappingProxyType({c: "" for c in CATEGORY_ORDER})
    )
    loop: bool = False
    verbose: bool = False
    shell: str = DEFAULT_SHELL
    stop_statuses: Tuple[int, ...] = DEFAULT_STOP_STATUSES

    def script_for(self, category: Category) -> str:
        return self.actions.get(category, "")


def resolve_config(
    paths: Iterable[str] = (),
    flags: Optional[Mapping[Category, bool]] = None,
    scripts: Optional[Mapping[Category, Optional[str]]] = None,
    script_all: Optional[str] = None,
    loop: bool = False,
    verbose: bool = False,
    shell: Optional[str] = None,
    stop_statuses: Optional[Sequence[int]] = None,
) -> WatchConfig:
    """
    Reconcile raw options into a WatchConfig.

    Rules:
      1. A non-empty per-category script enables its category, even when
         the trigger flag was not given.
      2. A non-empty script_all replaces the script of every category.
         It does not enable anything by itself.
      3. The enabled set is the union of explicit and implied flags.

    Args:
        paths: Paths to watch.
        flags: Explicit trigger flags per category.
        scripts: Script per category; None and "" both mean no script.
        script_all: Script for every category, overriding ``scripts``.
        loop: Keep watching after each dispatch.
        verbose: Verbose logging.
        shell: Interpreter for scripts (defaults to bash).
        stop_statuses: Exit statuses that stop the watcher.

    Returns:
        WatchConfig: The resolved configuration.
    """
    flags = flags or {}
    scripts = scripts or {}

    enabled = NONE
    actions = {}
    for category in CATEGORY_ORDER:
        script = scripts.get(category) or ""
        if flags.get(category) or script:
            enabled |= category
        actions[category] = script

    if script_all:
        for category in CATEGORY_ORDER:
            actions[category] = script_all

    if stop_statuses is None:
        stop_statuses = DEFAULT_STOP_STATUSES

    return WatchConfig(
        paths=tuple(paths),
        enabled=enabled,
        actions=MappingProxyType(actions),
        loop=loop,
        verbose=verbose,
        shell=shell or DEFAULT_SHELL,
        stop_statuses=tuple(int(s) for s in stop_statuses),
    )

