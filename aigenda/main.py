"""Entry point for the aigenda command."""

import argparse
import asyncio
import sys

from rich.console import Console

from aigenda import __version__
from aigenda.cli import NotesApp
from aigenda.config import Settings
from aigenda.exceptions import AigendaError, ConfigurationError
from aigenda.services.storage import FsStorage
from aigenda.utils.logging import LogConfig, get_logger, setup_logging

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="aigenda", description="AI-ready daily notes CLI")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output to stderr")

    subparsers = parser.add_subparsers(dest="command", required=True)

    add_parser = subparsers.add_parser("add", help="Add a note to today's log")
    add_parser.add_argument("text", nargs="+", help="Note text")

    list_parser = subparsers.add_parser("list", help="List notes (today by default)")
    list_parser.add_argument("--all", action="store_true", help="List all days")
    list_parser.add_argument("--date", help="Specific date (YYYY-MM-DD)")

    ai_parser = subparsers.add_parser("ai", help="Run a natural-language command through the AI agent")
    ai_parser.add_argument("prompt", nargs="*", help="What you want done, in plain words")
    ai_parser.add_argument("-y", "--yes", action="store_true", help="Run tool calls without asking")

    chat_parser = subparsers.add_parser("chat", help="Start an interactive session with the AI agent")
    chat_parser.add_argument("-y", "--yes", action="store_true", help="Run tool calls without asking")

    tools_parser = subparsers.add_parser("tools", help="List the tools available to the agent")
    tools_parser.add_argument("--schemas", action="store_true", help="Show full tool documentation")

    memory_parser = subparsers.add_parser("memory", help="Inspect or reset the agent's conversation memory")
    memory_parser.add_argument("action", choices=["stats", "history", "clear"])

    return parser


async def _run_async(app: NotesApp, args: argparse.Namespace) -> int:
    if args.command == "ai":
        return await app.ai(args.prompt, auto_approve=args.yes)
    return await app.chat(auto_approve=args.yes)


def run(args: argparse.Namespace, app: NotesApp) -> int:
    """Dispatch parsed arguments to the matching command."""
    match args.command:
        case "add":
            return app.add_note(args.text)
        case "list":
            return app.list_notes(all_days=args.all, day=args.date)
        case "ai" | "chat":
            return asyncio.run(_run_async(app, args))
        case "tools":
            return app.tools(schemas=args.schemas)
        case "memory":
            return app.memory(args.action)
    raise ValueError(f"Unknown command: {args.command}")


def main(argv: list[str] | None = None) -> int:
    """Parse the command line, run the command and return the exit code."""
    args = build_parser().parse_args(argv)
    console = Console()
    err_console = Console(stderr=True)

    try:
        settings = Settings.from_env()
    except ConfigurationError as e:
        err_console.print(f"[red]❌ Configuration error: {e}[/red]")
        return 2

    setup_logging(LogConfig(level="DEBUG" if args.verbose else settings.log_level))
    logger.debug(f"Running '{args.command}' with data directory {settings.data_dir}")

    try:
        app = NotesApp(settings, FsStorage(settings.notes_dir), console=console)
        return run(args, app)
    except AigendaError as e:
        logger.error(f"{args.command} failed: {e}")
        err_console.print(f"[red]❌ Error: {e}[/red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
