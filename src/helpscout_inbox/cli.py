"""helpscout-inbox CLI - look at the mailbox your end-to-end tests use."""

import json
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from . import __version__
from .client import HelpScoutError, get_client
from .config import HelpScoutConfig, apply_overrides, get_config, save_app_secret
from .inbox import get_email_sender
from .logging_setup import setup_logging
from .models import ExitCode
from .module import HelpScoutMailbox
from .reporting import InboxAssertionError

app = typer.Typer(
    name="helpscout-inbox",
    help="Inspect the Help Scout mailbox used by end-to-end tests.",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)

_state: dict[str, object] = {"config_path": None}


def output_json(data: dict | list) -> None:
    """Output data as JSON."""
    print(json.dumps(data, default=str, indent=2))


def exit_with_code(code: ExitCode, message: str | None = None) -> None:
    """Exit with a specific exit code and optional message."""
    if message:
        err_console.print(f"[red]Error:[/red] {message}")
    raise typer.Exit(code.value)


def load_mailbox(mailbox: str | None) -> HelpScoutMailbox:
    """Build a mailbox from config, exiting on configuration problems."""
    try:
        config: HelpScoutConfig = get_config(_state["config_path"])  # type: ignore[arg-type]
        config = apply_overrides(config, mailbox_id=mailbox)
        client = get_client(config)
    except ValueError as e:
        exit_with_code(ExitCode.INVALID_INPUT, str(e))
    return HelpScoutMailbox(config, source=client)


@app.callback()
def main(
    config: Annotated[
        Optional[Path], typer.Option("--config", "-c", help="Path to config.yaml")
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
) -> None:
    """Global options."""
    _state["config_path"] = config
    setup_logging(verbose)


@app.command()
def version() -> None:
    """Show version."""
    console.print(f"helpscout-inbox {__version__}")


@app.command()
def inbox(
    mailbox: Annotated[Optional[str], typer.Option("--mailbox", "-m", help="Mailbox id")] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """List open, unassigned conversations, newest first."""
    helpscout = load_mailbox(mailbox)
    try:
        conversations = helpscout.fetch_emails()
    except InboxAssertionError as e:
        exit_with_code(ExitCode.API_ERROR, str(e))
    finally:
        helpscout.close()

    if as_json:
        output_json([c.model_dump(mode="json", exclude={"threads"}) for c in conversations])
        return

    if not conversations:
        console.print("[dim]No unassigned conversations[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("ID")
    table.add_column("Created")
    table.add_column("From")
    table.add_column("Subject")
    for conv in conversations:
        table.add_row(
            str(conv.id),
            conv.created_at.strftime("%Y-%m-%d %H:%M"),
            get_email_sender(conv),
            conv.subject,
        )
    console.print(table)


@app.command()
def wait(
    sender: Annotated[str, typer.Argument(help="Sender address to wait for")],
    mailbox: Annotated[Optional[str], typer.Option("--mailbox", "-m", help="Mailbox id")] = None,
    timeout: Annotated[
        Optional[float], typer.Option("--timeout", "-t", help="Seconds to wait")
    ] = None,
) -> None:
    """Wait until an email from SENDER shows up in the mailbox."""
    helpscout = load_mailbox(mailbox)
    try:
        helpscout.wait_for_email_from_sender(None, sender, timeout)
    except InboxAssertionError as e:
        code = ExitCode.API_ERROR if isinstance(e.__cause__, HelpScoutError) else ExitCode.NOT_FOUND
        exit_with_code(code, str(e))
    finally:
        helpscout.close()
    console.print(f"[green]Email from {sender} arrived[/green]")


@app.command()
def delete(
    conversation_id: Annotated[int, typer.Argument(help="Conversation id")],
) -> None:
    """Delete a conversation."""
    helpscout = load_mailbox(None)
    try:
        helpscout.source.delete_conversation(conversation_id)
    except HelpScoutError as e:
        code = ExitCode.NOT_FOUND if e.status_code == 404 else ExitCode.API_ERROR
        exit_with_code(code, str(e))
    finally:
        helpscout.close()
    console.print(f"[green]Deleted conversation {conversation_id}[/green]")


@app.command("set-secret")
def set_secret(
    app_id: Annotated[str, typer.Argument(help="Help Scout app id")],
) -> None:
    """Store an app secret in the system keyring."""
    secret = typer.prompt("App secret", hide_input=True)
    save_app_secret(app_id, secret)
    console.print(f"[green]Secret stored for {app_id}[/green]")


if __name__ == "__main__":
    app()
