import logging
import os
import sys

import click
from rich.console import Console
from rich.table import Table

from sentinel import PROGRAM, __version__
from sentinel import logger as sentinel_logger
from sentinel.actions import CATEGORY_ORDER, Category
from sentinel.config import (ENV_SHELL_VAR, ENV_STOP_STATUSES_VAR,
                             WatchConfig, resolve_config)
from sentinel.watcher import RegistrationError, Watcher

WATCH_MESSAGES = {
    Category.CREATE: "Watching for creation.",
    Category.WRITE: "Watching for write.",
    Category.DELETE: "Watching for delete.",
    Category.RENAME: "Watching for rename.",
    Category.CHMOD: "Watching for permission changes.",
}


def warn(message):
    click.echo(message, err=True)


def show_plan(cfg: WatchConfig):
    """Print the resolved categories and scripts as a table on stderr."""
    table = Table(title=f"{PROGRAM} watch plan")
    table.add_column("Action", style="cyan")
    table.add_column("Enabled", style="magenta")
    table.add_column("Script")
    for category in CATEGORY_ORDER:
        enabled = "yes" if cfg.enabled & category else "no"
        table.add_row(category.action_name, enabled, cfg.script_for(category) or "-")
    Console(stderr=True).print(table)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--verbose", "-v", is_flag=True,
              help="Print more details during operation, otherwise remain quiet until an error occurs.")
@click.version_option(__version__, "--version", "-V", prog_name=PROGRAM,
                      message="%(prog)s %(version)s", help="Show program version and exit.")
@click.option("--create", "-c", is_flag=True, help="Watch for new files.")
@click.option("--write", "-w", is_flag=True, help="Watch for changed files.")
@click.option("--delete", "-d", is_flag=True, help="Watch for deletion.")
@click.option("--rename", "-r", is_flag=True, help="Watch for renamed files.")
@click.option("--chmod", "-m", is_flag=True, help="Watch for attribute changes (date or permissions).")
@click.option("--loop", "-L", is_flag=True, help="Don't quit after each triggered event.")
@click.option("--createaction", "-C", metavar="SCRIPT", default="",
              help="Script to run when a file is created. Implies -c.")
@click.option("--writeaction", "-W", metavar="SCRIPT", default="",
              help="Script to run when a file is edited. Implies -w.")
@click.option("--deleteaction", "-D", metavar="SCRIPT", default="",
              help="Script to run when a file is deleted. Implies -d.")
@click.option("--renameaction", "-R", metavar="SCRIPT", default="",
              help="Script to run when a file is renamed. Implies -r.")
@click.option("--chmodaction", "-M", metavar="SCRIPT", default="",
              help="Script to run when a file's date or permissions change. Implies -m.")
@click.option("--scriptaction", "-S", metavar="SCRIPT", default="",
              help="Script to run for all events. Requires any of the trigger flags. Overrides the other scripts.")
@click.option("--shell", metavar="PROGRAM", envvar=ENV_SHELL_VAR, default=None,
              help="Interpreter used to run scripts (default: bash).")
@click.option("--stop-status", "stop_statuses", type=int, multiple=True, envvar=ENV_STOP_STATUSES_VAR,
              help="Script exit status that stops the watcher. Repeatable (default: 1 and 2).")
@click.option("--log-file", type=click.Path(dir_okay=False), default=None,
              help="Also write log messages to this file.")
@click.argument("paths", nargs=-1, metavar="[PATH]...")
def main(verbose, create, write, delete, rename, chmod, loop,
         createaction, writeaction, deleteaction, renameaction, chmodaction, scriptaction,
         shell, stop_statuses, log_file, paths):
    """
    Watch PATHs and run a script when a file changes.

    The script receives the triggered action in SENTINEL_ACTION and the
    affected path in SENTINEL_PATH. Unless --loop is given, Sentinel exits
    after the first triggered event.
    """
    log = sentinel_logger.setup_logger(
        level=logging.DEBUG if verbose else logging.WARNING, log_file=log_file
    )

    if not paths:
        warn("No paths specified.")
    for path in paths:
        if not os.path.exists(path):
            warn(f"Path {path} does not exist.")

    cfg = resolve_config(
        paths=paths,
        flags={
            Category.CREATE: create,
            Category.WRITE: write,
            Category.DELETE: delete,
            Category.RENAME: rename,
            Category.CHMOD: chmod,
        },
        scripts={
            Category.CREATE: createaction,
            Category.WRITE: writeaction,
            Category.DELETE: deleteaction,
            Category.RENAME: renameaction,
            Category.CHMOD: chmodaction,
        },
        script_all=scriptaction,
        loop=loop,
        verbose=verbose,
        shell=shell,
        stop_statuses=stop_statuses or None,
    )

    for category in CATEGORY_ORDER:
        if cfg.enabled & category:
            log.debug(WATCH_MESSAGES[category])
    if verbose:
        show_plan(cfg)

    watcher = Watcher(cfg)
    try:
        watcher.start()
    except RegistrationError as e:
        log.error(str(e))
        sys.exit(1)

    try:
        status = watcher.wait()
    except KeyboardInterrupt:
        watcher.stop()
        status = 130
    sys.exit(status)


if __name__ == "__main__":
    main()
