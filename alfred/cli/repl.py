"""Async REPL with prompt-toolkit for Alfred.

    alfred [--model MODEL] [--cwd DIR] [--max-turns N] [--verbose]

Each line typed at the prompt is sent through a ChatSession. Ctrl-C during a
turn cancels it (the model call, a running command, or a pending
confirmation); Ctrl-C at the prompt does nothing, Ctrl-D exits.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from dotenv import load_dotenv
from prompt_toolkit import PromptSession
from rich.console import Console

from alfred.cli.confirm import ConfirmationPrompt
from alfred.cli.output import EventRenderer, print_error, print_info
from alfred.config import load_config
from alfred.config.schema import Config
from alfred.core.constants import get_log_dir
from alfred.core.errors import AlfredError, to_friendly_error
from alfred.session import ChatSession, build_session, configure_logging
from alfred.tools.builtin.task_write import format_task_list

logger = logging.getLogger(__name__)

HELP_TEXT = """\
Commands:
  /help   Show this help
  /clear  Clear the conversation
  /tasks  Show the task list
  /exit   Exit (also /quit or Ctrl-D)
Ctrl-C cancels the running turn."""


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="alfred",
        description="Agentic command-line assistant",
    )
    parser.add_argument("--model", help="Model identifier (overrides config)")
    parser.add_argument(
        "--cwd",
        type=Path,
        default=None,
        help="Working directory for tools and permissions (default: current directory)",
    )
    parser.add_argument(
        "--max-turns",
        type=int,
        default=None,
        help="Model round-trips allowed per message",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log debug output to the log file and info to stderr",
    )
    return parser.parse_args(argv)


def apply_cli_overrides(config: Config, args: argparse.Namespace) -> Config:
    """Return config with command line flags applied."""
    if args.model:
        config = config.model_copy(
            update={"provider": config.provider.model_copy(update={"model": args.model})}
        )
    if args.max_turns is not None:
        if args.max_turns < 1:
            raise AlfredError("--max-turns must be at least 1")
        config = config.model_copy(
            update={"session": config.session.model_copy(update={"max_turns": args.max_turns})}
        )
    return config


@contextmanager
def interrupt_cancels(chat: ChatSession, confirm: ConfirmationPrompt) -> Iterator[None]:
    """Route SIGINT to turn cancellation while a turn is running.

    On Windows the event loop has no signal handlers; Ctrl-C raises
    KeyboardInterrupt there and run_repl cancels the turn itself.
    """
    if sys.platform == "win32":
        yield
        return

    loop = asyncio.get_running_loop()

    def on_interrupt() -> None:
        confirm.cancel_active()
        chat.cancel()

    loop.add_signal_handler(signal.SIGINT, on_interrupt)
    try:
        yield
    finally:
        loop.remove_signal_handler(signal.SIGINT)


async def run_repl(args: argparse.Namespace) -> int:
    """Run the interactive loop. Returns the process exit code."""
    console = Console()
    cwd = (args.cwd or Path.cwd()).expanduser().resolve()

    try:
        config = apply_cli_overrides(load_config(cwd=cwd), args)
    except AlfredError as e:
        print_error(console, e.message)
        return 1

    log_dir = Path(config.logging.log_dir).expanduser() if config.logging.log_dir else get_log_dir()
    configure_logging(
        log_dir,
        level="DEBUG" if args.verbose else config.logging.level,
        console_level="INFO" if args.verbose else config.logging.console_level,
    )

    def on_retry(attempt: int, error: BaseException, delay: float) -> None:
        print_info(
            console,
            f"{to_friendly_error(error)} Retrying in {delay:.0f}s (attempt {attempt})...",
        )

    def on_persistent_rate_limit(error: BaseException) -> None:
        print_error(
            console, "Rate limiting persists. Wait a minute before sending another message."
        )

    renderer: EventRenderer | None = None

    def on_tool_output(chunk: str) -> None:
        if renderer is not None:
            renderer.tool_output(chunk)

    try:
        session = build_session(
            config,
            cwd,
            on_tool_output=on_tool_output,
            on_retry=on_retry,
            on_persistent_rate_limit=on_persistent_rate_limit,
        )
    except AlfredError as e:
        print_error(console, e.message)
        return 1

    renderer = EventRenderer(console, session.registry)
    prompt_session: PromptSession[str] = PromptSession()
    confirm = ConfirmationPrompt(console, session.broker, prompt_session)
    confirm.attach(session.bus)
    chat = ChatSession(session.engine, on_event=renderer.render)

    console.print(f"[bold]Alfred[/] [dim]({config.provider.model}, {cwd})[/]")
    console.print("[dim]Type /help for commands.[/]")

    try:
        while True:
            try:
                text = await prompt_session.prompt_async("> ")
            except KeyboardInterrupt:
                continue
            except EOFError:
                break

            command = text.strip()
            if command in ("/exit", "/quit"):
                break
            if command == "/help":
                console.print(HELP_TEXT, markup=False)
                continue
            if command == "/clear":
                chat.clear()
                session.policy.clear_session()
                print_info(console, "Conversation cleared.")
                continue
            if command == "/tasks":
                console.print(
                    format_task_list(session.services.get_task_store().tasks), markup=False
                )
                continue

            try:
                with interrupt_cancels(chat, confirm):
                    await chat.send(text)
            except KeyboardInterrupt:
                chat.cancel()

            transcript = chat.transcript
            if transcript and transcript[-1].interrupted:
                console.print("[bright_yellow]● Cancelled by User[/]")
            elif session.engine.last_run_exhausted:
                console.print(
                    f"[yellow]Stopped after {session.engine.max_turns} turns without a final answer.[/]"
                )
            console.print()
    finally:
        confirm.detach(session.bus)
        await session.aclose()

    print_info(console, "Goodbye!")
    return 0


def main(argv: list[str] | None = None) -> None:
    """Entry point for the alfred command."""
    # Load .env file if present
    load_dotenv()
    args = parse_args(argv)
    try:
        exit_code = asyncio.run(run_repl(args))
    except KeyboardInterrupt:
        # Ctrl-C during startup
        exit_code = 130
    raise SystemExit(exit_code)
