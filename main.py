"""HelpdeskBot command line: serve the chat UI or seed the knowledge base."""

from __future__ import annotations

import argparse
import subprocess
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from helpdesk.config import config
from helpdesk.repository import RepositoryUnavailableError, SQLiteKnowledgeRepository

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from logging import Logger

PROJECT_ROOT = Path(__file__).resolve().parent
DEFAULT_APP = PROJECT_ROOT / "app.py"
DEFAULT_COMMAND = "serve"
COMMANDS = ("serve", "seed")


def build_parser() -> argparse.ArgumentParser:
    """Create the parser with one subcommand per task."""  # noqa: DOC201
    parser = argparse.ArgumentParser(
        prog="helpdesk-bot",
        description="Run the HelpdeskBot support chat or prepare its knowledge base.",
    )
    subcommands = parser.add_subparsers(dest="command", metavar="COMMAND")

    serve = subcommands.add_parser(
        "serve", help="Start the Streamlit chat UI (default command)."
    )
    serve.add_argument(
        "--app",
        type=Path,
        default=DEFAULT_APP,
        help="Streamlit script to run, relative to the project root.",
    )
    serve.add_argument("--port", type=int, default=8501, help="Server port.")
    serve.add_argument("--address", default="localhost", help="Bind address.")
    serve.add_argument(
        "--show",
        dest="headless",
        action="store_false",
        help="Open a browser window instead of running headless.",
    )

    seed = subcommands.add_parser(
        "seed", help="Create the SQLite knowledge base and load the default data."
    )
    seed.add_argument(
        "--db-path",
        type=Path,
        default=None,
        help="Database file to seed. Defaults to KB_DB_PATH.",
    )
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse arguments, treating a missing subcommand as ``serve``."""  # noqa: DOC201
    arguments = list(sys.argv[1:] if argv is None else argv)
    if not arguments or arguments[0] not in {*COMMANDS, "-h", "--help"}:
        arguments.insert(0, DEFAULT_COMMAND)
    return build_parser().parse_args(arguments)


def streamlit_command(script_path: Path, args: argparse.Namespace) -> list[str]:
    """Assemble the ``streamlit run`` invocation for the chat UI."""  # noqa: DOC201
    server_options = {
        "server.port": str(args.port),
        "server.address": args.address,
        "server.headless": str(args.headless).lower(),
        "browser.gatherUsageStats": "false",
    }
    command = [sys.executable, "-m", "streamlit", "run", str(script_path)]
    for option, value in server_options.items():
        command.extend((f"--{option}", value))
    return command


def resolve_script(path: Path) -> Path:
    return (path if path.is_absolute() else PROJECT_ROOT / path).resolve()


def serve(args: argparse.Namespace, logger: Logger) -> int:
    """Launch Streamlit in a child process and wait for it to exit."""  # noqa: DOC201
    script_path = resolve_script(args.app)
    if not script_path.is_file():
        logger.error("Chat UI script not found: %s", script_path)
        return 1

    logger.info(
        "Serving HelpdeskBot on http://%s:%d with the %s knowledge base",
        args.address,
        args.port,
        config.KB_BACKEND,
    )
    try:
        completed = subprocess.run(
            streamlit_command(script_path, args), check=False, cwd=PROJECT_ROOT
        )
    except KeyboardInterrupt:
        logger.info("HelpdeskBot stopped")
        return 0
    except OSError:
        logger.exception("Could not start Streamlit")
        return 1

    if completed.returncode != 0:
        logger.error("Streamlit exited with status %d", completed.returncode)
    return completed.returncode


def seed(args: argparse.Namespace, logger: Logger) -> int:
    """Load the default categories, questions, steps and admin account."""  # noqa: DOC201
    db_path = args.db_path or config.KB_DB_PATH
    try:
        inserted = SQLiteKnowledgeRepository(db_path=db_path).seed_defaults()
    except RepositoryUnavailableError:
        logger.exception("Seeding %s failed", db_path)
        return 1

    if inserted:
        logger.info("Default knowledge base written to %s", db_path)
    else:
        logger.info("%s already holds questions, leaving it unchanged", db_path)
    return 0


HANDLERS: dict[str, Callable[[argparse.Namespace, Logger], int]] = {
    "serve": serve,
    "seed": seed,
}


def main(argv: Sequence[str] | None = None) -> int:
    """Validate configuration, then run the requested subcommand."""  # noqa: DOC201
    args = parse_args(argv)

    config.setup_logging()
    logger = config.get_logger(__name__)

    try:
        config.validate()
    except ValueError:
        logger.exception("Invalid configuration")
        return 1

    return HANDLERS[args.command](args, logger)


if __name__ == "__main__":
    sys.exit(main())
