import argparse
import asyncio
import logging
import sys
from collections.abc import Coroutine
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import Config, ConfigurationError
from .constants import APP_NAME, LOG_FILE
from .events import Done, NotInitialized, Outcome
from .marker import ensure_storage_dir
from .process import CommandError
from .selector import SyncEngine, check_tools

logger = logging.getLogger(APP_NAME)
console = Console()
err_console = Console(stderr=True)


def setup_logging(verbose: bool = False, log_file: Path = LOG_FILE) -> None:
    """Configures the logging subsystem.

    Args:
        verbose (bool): If True, command lines are logged to stderr as well.
        log_file (Path): Destination of the rotating log.
    """
    formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)s: %(message)s", "%Y-%m-%d %H:%M:%S"
    )
    logger.setLevel(logging.DEBUG)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file, maxBytes=5 * 1024 * 1024, backupCount=5
        )
    except OSError as e:
        logger.warning(f"Could not open log file {log_file}: {e}")
        return
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)


def render_outcome(outcome: Outcome, success: str) -> int:
    """Prints an outcome and returns the matching exit status."""
    if isinstance(outcome, Done):
        console.print(f"[bold green]✔ {success}[/bold green]")
        return 0
    if isinstance(outcome, NotInitialized):
        err_console.print(
            Panel(outcome.message, title="Not initialized", border_style="yellow")
        )
        return 1

    title = "Error" if outcome.phase is None else f"{outcome.phase.value} failed"
    err_console.print(
        Panel(outcome.diagnostic.strip() or str(outcome.cause), title=title, border_style="red")
    )
    return 1


def run_with_spinner(status: str, work: Coroutine[Any, Any, Outcome]) -> Outcome:
    """Runs one operation on a fresh event loop while a spinner is shown."""
    with console.status(f"[bold blue]{status}[/bold blue]", spinner="dots"):
        return asyncio.run(work)


def show_identity(engine: SyncEngine) -> int:
    """Prints the current user and all contributors."""
    try:
        user = engine.current_user()
        contributors = engine.contributors()
    except CommandError as e:
        err_console.print(f"[bold red]ERROR:[/bold red] {e}")
        return 1

    table = Table(title=f"Contributors ({engine.settings.kind})")
    table.add_column("Author", style="cyan")
    table.add_column("You", justify="center")
    for author in contributors:
        table.add_row(author, "●" if author == user else "")
    console.print(f"Current user: [bold]{user}[/bold]")
    console.print(table)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Keep a record directory under git or jj version control.",
    )
    parser.add_argument("--config", "-c", type=Path, help="Path to the config file")
    parser.add_argument(
        "--yes", "-y", action="store_true", help="Create the storage directory without asking"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log every command")

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("init", help="Initialize the storage repository")
    subparsers.add_parser("sync", help="Pull remote changes into the storage repository")

    commit_parser = subparsers.add_parser("commit", help="Commit changed record files")
    commit_parser.add_argument("files", nargs="+", help="Paths relative to the storage directory")
    commit_parser.add_argument("--message", "-m", required=True, help="Commit message")

    subparsers.add_parser("whoami", help="Show the current user and all contributors")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the storesync CLI.

    Without a subcommand it runs the startup flow: initialize the repository and,
    when remote sync is enabled, pull.
    """
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = Config.load(args.config).backend_settings()
        check_tools(settings.kind)
    except ConfigurationError as e:
        err_console.print(f"[bold red]FATAL:[/bold red] {e}")
        return 1

    if not ensure_storage_dir(settings.storage_path, assume_yes=args.yes):
        return 0

    engine = SyncEngine.from_settings(settings)

    if args.command == "init":
        outcome = run_with_spinner("Initializing repository...", engine.initialize())
        return render_outcome(outcome, "Repository initialized.")
    elif args.command == "sync":
        outcome = run_with_spinner("Fetching data from remote...", engine.synchronize())
        return render_outcome(outcome, "Sync complete.")
    elif args.command == "commit":
        outcome = run_with_spinner(
            "Committing...", engine.commit(args.message, *args.files)
        )
        return render_outcome(outcome, "Committed.")
    elif args.command == "whoami":
        return show_identity(engine)

    status = (
        "Fetching data from remote..."
        if settings.remote_enabled
        else "Preparing storage..."
    )
    outcome = run_with_spinner(status, engine.startup())
    return render_outcome(outcome, "Storage ready.")


if __name__ == "__main__":
    sys.exit(main())
