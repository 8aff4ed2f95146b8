"""Provider factory functions for CLI.

Centralizes creation of the LLM provider, chat store, auth provider and
chat session from environment variables. Hides configuration details from
command implementations.
"""

import os
from typing import Any

from rich.console import Console
from rich.text import Text

from ..auth import AuthProvider, EnvAuthProvider
from ..config import DEFAULT_DB_PATH, DEFAULT_MODEL, DEFAULT_PROVIDER, DEFAULT_STORE_BACKEND
from ..conversation import ChatSession, ResponseGenerator
from ..llm import LLMProvider, create_llm_provider
from ..storage import ChatStore, InMemoryChatStore, SQLiteChatStore
from ..ui.config import LogLevel

# Default console for output
_console = Console()


def get_llm(console: Console | None = None) -> LLMProvider | None:
    """Create LLM provider from environment variables.

    Args:
        console: Optional Rich console for output

    Returns:
        LLM provider instance, or None if not configured

    Environment variables:
        LLM_PROVIDER: Provider type (openai, anthropic; default: openai)
        LLM_MODEL: Model override for the selected provider
        OPENAI_API_KEY: OpenAI API key (for openai provider)
        OPENAI_ORG_ID: OpenAI organization (optional)
        OPENAI_PROJECT_ID: OpenAI project (optional)
        ANTHROPIC_API_KEY: Anthropic API key (for anthropic provider)
    """
    con = console or _console
    llm_provider = os.getenv("LLM_PROVIDER", DEFAULT_PROVIDER).lower()
    model = os.getenv("LLM_MODEL")

    if llm_provider == "openai":
        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            con.print("[yellow]Warning: OPENAI_API_KEY not set[/yellow]")
            return None
        return create_llm_provider(
            "openai",
            api_key=api_key,
            model=model or DEFAULT_MODEL,
            organization=os.getenv("OPENAI_ORG_ID"),
            project=os.getenv("OPENAI_PROJECT_ID"),
        )

    elif llm_provider in ("anthropic", "claude"):
        api_key = os.getenv("ANTHROPIC_API_KEY")
        if not api_key:
            con.print("[yellow]Warning: ANTHROPIC_API_KEY not set[/yellow]")
            return None
        config: dict[str, Any] = {"api_key": api_key}
        if model:
            config["model"] = model
        return create_llm_provider("anthropic", **config)

    else:
        con.print(f"[red]Error: Unknown LLM provider: {llm_provider}[/red]")
        return None


def require_llm(console: Console | None = None) -> LLMProvider:
    """Get LLM provider, raising error if not configured.

    Raises:
        SystemExit: If LLM provider is not configured
    """
    import typer

    con = console or _console
    llm = get_llm(con)
    if not llm:
        con.print("[red]Error: LLM provider not configured[/red]")
        raise typer.Exit(code=1)
    return llm


def get_store(backend: str | None = None) -> ChatStore:
    """Create chat store from environment variables.

    Environment variables:
        CARDIOQA_STORE: Store backend (sqlite, memory; default: sqlite)
        CARDIOQA_DB_PATH: SQLite database path (default: ./cardioqa_chats.db)

    Raises:
        ValueError: If the backend is not supported
    """
    backend = (backend or os.getenv("CARDIOQA_STORE", DEFAULT_STORE_BACKEND)).strip().lower()
    if backend == "sqlite":
        return SQLiteChatStore(path=os.getenv("CARDIOQA_DB_PATH", DEFAULT_DB_PATH))
    if backend == "memory":
        # Chats are lost on exit; useful for `ask` and tests
        return InMemoryChatStore()
    raise ValueError(
        f"Unsupported chat store backend: {backend}. Supported backends: memory, sqlite"
    )


def get_auth() -> AuthProvider:
    """Create the auth provider.

    Environment variables:
        CARDIOQA_USER_ID: Signed-in user id (unset means guest; nothing is saved)
    """
    return EnvAuthProvider()


def get_stream_timeout() -> float | None:
    """Read the per-event stream timeout.

    Environment variables:
        CARDIOQA_STREAM_TIMEOUT: Seconds to wait for each stream event (unset waits forever)
    """
    raw = os.getenv("CARDIOQA_STREAM_TIMEOUT", "").strip()
    return float(raw) if raw else None


def build_session(
    llm: LLMProvider,
    store: ChatStore,
    auth: AuthProvider | None = None,
    conversation_id: str | None = None,
) -> ChatSession:
    """Wire a chat session from its collaborators."""
    generator = ResponseGenerator(llm, stream_timeout=get_stream_timeout())
    return ChatSession(
        generator=generator,
        auth=auth or get_auth(),
        store=store,
        conversation_id=conversation_id,
    )


def console_debug_callback(console: Console, log_level: str) -> Any:
    """Build a debug callback that prints entries at or above ``log_level``."""
    threshold = LogLevel.from_string(log_level)

    def _callback(level: str, component: str, message: str) -> None:
        numeric = LogLevel.from_string(level)
        if numeric >= threshold:
            console.print(Text(f"{LogLevel.name(numeric):<7}[{component}] {message}", style="dim"))

    return _callback
