"""Main CLI application using Typer."""
import asyncio
import os

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.live import Live
from rich.table import Table

from ..conversation import ChatSession
from ..exceptions import TurnError
from .providers import (
    build_session,
    console_debug_callback,
    get_auth,
    get_store,
    require_llm,
)

# Load environment variables
load_dotenv()

# Create Typer app
app = typer.Typer(
    name="cardioqa",
    help="Cardiology Q&A assistant with streamed answers and related questions",
    no_args_is_help=True,
    add_completion=True,
)

# Console for rich output
console = Console()


def _attach_logging(session: ChatSession, log_level: str | None) -> None:
    if log_level is not None:
        session.set_debug_callback(console_debug_callback(console, log_level))


@app.command()
def ask(
    question: str = typer.Argument(..., help="Question to ask"),
    conversation_id: str | None = typer.Option(
        None,
        "--conversation-id",
        "-c",
        help="Continue a stored conversation"
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Print log entries at this level or above: debug, info, warning, error"
    ),
):
    """Ask one question and stream the answer to the terminal."""
    async def _ask():
        llm = require_llm(console)
        store = get_store()

        try:
            await store.connect()
            session = build_session(llm, store)
            _attach_logging(session, log_level)

            if conversation_id and not await session.restore(conversation_id):
                console.print(f"[yellow]Chat {conversation_id} not found; starting a new one[/yellow]")
            for unit in session.ui_state:
                console.print(unit)

            unit = await session.submit_turn(question)
            console.print(f"[bold cyan]You:[/bold cyan] {question}")
            with Live(unit, console=console, refresh_per_second=12):
                result = await unit.task

            if session.ai_state.last_persistence_error is not None:
                console.print("[yellow]Warning: the conversation could not be saved[/yellow]")
            if result.usage:
                console.print(f"[dim]Tokens: {result.usage.get('total_tokens', 0)}[/dim]")
            console.print(f"[dim]Conversation: {session.conversation_id}[/dim]")

        except TurnError as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(code=1)
        finally:
            await store.disconnect()
            await llm.close()

    asyncio.run(_ask())


@app.command()
def chat(
    conversation_id: str | None = typer.Option(
        None,
        "--conversation-id",
        "-c",
        help="Reopen a stored conversation"
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Show log panel with level: debug (all), info, warning, or error"
    ),
):
    """Launch the interactive TUI chat interface."""
    async def _chat():
        from ..ui import run_textual_tui

        llm = require_llm(console)
        store = get_store()

        try:
            await store.connect()
            session = build_session(llm, store)

            await run_textual_tui(
                session=session,
                model_name=llm.model,
                store_backend=store.backend_type,
                log_level=log_level,
                conversation_id=conversation_id,
            )
        finally:
            await store.disconnect()
            await llm.close()

    asyncio.run(_chat())


@app.command()
def show(
    chat_id: str = typer.Argument(..., help="Id of the stored conversation"),
):
    """Print a stored conversation the way the chat shows it."""
    async def _show():
        from ..conversation import project_render_state

        store = get_store()
        auth = get_auth()

        try:
            await store.connect()

            session = await auth.current_session()
            chat = await store.get(chat_id)
            if session is None or chat is None or chat.owner_id != session.user_id:
                console.print("[yellow]No conversation to show[/yellow]")
                return

            console.print(f"[bold]{chat.title}[/bold] [dim]{chat.path}[/dim]\n")
            for unit in project_render_state(chat.to_conversation()):
                console.print(unit)
        finally:
            await store.disconnect()

    asyncio.run(_show())


@app.command()
def history(
    limit: int = typer.Option(
        20,
        "--limit",
        "-n",
        help="Maximum number of conversations"
    ),
):
    """List stored conversations for the current user."""
    async def _history():
        store = get_store()
        auth = get_auth()

        try:
            await store.connect()

            session = await auth.current_session()
            if session is None:
                console.print("[yellow]Not signed in; set CARDIOQA_USER_ID to keep history[/yellow]")
                return

            chats = await store.list_chats(session.user_id, limit=limit)
            if not chats:
                console.print("[yellow]No conversations yet[/yellow]")
                return

            table = Table(show_header=True, header_style="bold cyan")
            table.add_column("Id", style="dim", width=9)
            table.add_column("Title")
            table.add_column("Messages", style="green", width=8)
            table.add_column("Created", style="yellow")

            for chat in chats:
                table.add_row(
                    chat.id,
                    chat.title,
                    str(len(chat.messages)),
                    chat.created_at.strftime("%Y-%m-%d %H:%M"),
                )

            console.print(table)
        finally:
            await store.disconnect()

    asyncio.run(_history())


@app.command()
def health():
    """Check API keys and the chat store."""
    async def _health():
        all_healthy = True

        store = get_store()
        try:
            await store.connect()
            console.print(f"[green]+[/green] Chat store ({store.backend_type}): OK")
        except Exception as e:
            console.print(f"[red]x[/red] Chat store: FAILED ({e})")
            all_healthy = False
        finally:
            await store.disconnect()

        for variable in ("OPENAI_API_KEY", "ANTHROPIC_API_KEY"):
            if os.getenv(variable):
                console.print(f"[green]+[/green] {variable}: SET")
            else:
                console.print(f"[yellow]![/yellow] {variable}: NOT SET")

        if os.getenv("CARDIOQA_USER_ID"):
            console.print("[green]+[/green] CARDIOQA_USER_ID: SET (conversations are saved)")
        else:
            console.print("[yellow]![/yellow] CARDIOQA_USER_ID: NOT SET (guest mode, nothing is saved)")

        if not all_healthy:
            raise typer.Exit(code=1)

    asyncio.run(_health())


if __name__ == "__main__":
    app()
