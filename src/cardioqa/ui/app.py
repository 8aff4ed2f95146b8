"""Main Textual TUI application.

Orchestrates the UI components around one ChatSession: the chat panel
mirrors the session's render state, and every submission (typed or a
clicked related question) goes through the optimistic controller.
"""

import asyncio
import contextlib

from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Footer, Header

from ..conversation import ChatSession, OptimisticSubmitController, RenderUnit
from ..exceptions import TurnError, TurnInProgressError
from .config import WELCOME_LINES, LogLevel
from .styles import APP_CSS
from .themes import CARDIO_DARK
from .widgets import ChatHistoryWidget, ChatInputBar, DebugPanel, RelatedQuestionButton


class CardioQAApp(App):
    """Textual TUI for the cardiology Q&A assistant."""

    CSS = APP_CSS
    TITLE = "CardioQA"

    BINDINGS = [
        Binding("ctrl+c", "quit", "Quit"),
        Binding("ctrl+d", "toggle_debug", "Log"),
        Binding("ctrl+r", "copy_last_response", "Copy Response"),
    ]

    def __init__(
        self,
        session: ChatSession,
        model_name: str = "unknown",
        store_backend: str = "memory",
        log_level: str | None = None,
        conversation_id: str | None = None,
    ) -> None:
        super().__init__()
        self._session = session
        self._controller = OptimisticSubmitController(session)
        self._model_name = model_name
        self._store_backend = store_backend
        self._log_level = log_level
        self._conversation_id = conversation_id
        self._unsubscribe_render_state = None

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        yield ChatHistoryWidget(id="chat-history")
        yield DebugPanel(id="debug-panel")
        yield ChatInputBar(id="chat-input-bar")
        yield Footer()

    async def on_mount(self) -> None:
        """Called when app is mounted."""
        self.register_theme(CARDIO_DARK)
        self.theme = "cardio-dark"

        log_panel = self.query_one("#debug-panel", DebugPanel)
        if self._log_level is not None:
            log_panel.log_level = LogLevel.from_string(self._log_level)
            log_panel.show()
            log_panel.log_entry("info", "TUI", f"Log panel enabled with level: {self._log_level.upper()}")

        self._session.set_debug_callback(log_panel.log_entry)
        self._controller.set_debug_callback(log_panel.log_entry)

        chat = self.query_one("#chat-history", ChatHistoryWidget)
        self._unsubscribe_render_state = self._session.ui_state.subscribe(self._on_render_state_changed)

        restored = False
        if self._conversation_id:
            restored = await self._session.restore(self._conversation_id)
            if not restored:
                self.notify(f"Chat {self._conversation_id} not found", severity="warning", timeout=3)
        if not restored:
            chat.show_welcome(WELCOME_LINES)

        self.sub_title = f"{self._model_name} | {self._store_backend} | {self._session.conversation_id}"
        self.query_one("#chat-input-bar", ChatInputBar).focus_input()

    def on_unmount(self) -> None:
        if self._unsubscribe_render_state is not None:
            self._unsubscribe_render_state()
            self._unsubscribe_render_state = None

    def _on_render_state_changed(self, unit: RenderUnit | None) -> None:
        chat = self.query_one("#chat-history", ChatHistoryWidget)
        if unit is None:
            chat.reset(list(self._session.ui_state))
        else:
            chat.add_unit(unit)

    def on_chat_input_bar_submitted(self, event: ChatInputBar.Submitted) -> None:
        """Handle user input submission."""
        if event.value:
            self._submit(event.value)

    def on_related_question_button_selected(self, event: RelatedQuestionButton.Selected) -> None:
        """Handle a click on a related question."""
        self._submit(event.question)

    @work(group="turns")
    async def _submit(self, text: str) -> None:
        """Run one turn as a background async worker."""
        log_panel = self.query_one("#debug-panel", DebugPanel)
        try:
            unit = await self._controller.submit(text)
            if unit.task is not None:
                result = await unit.task
                if self._session.ai_state.last_persistence_error is not None:
                    self.notify("Answer not saved", severity="warning", timeout=3)
                elif result.usage:
                    log_panel.log_entry("debug", "LLM", f"Usage: {result.usage}")
        except TurnInProgressError:
            self.notify("Please wait for the current answer", severity="warning", timeout=2)
        except TurnError as e:
            self.notify(f"Error: {str(e)[:60]}", severity="error", timeout=5)
        except asyncio.CancelledError:
            self.notify("Cancelled", severity="warning", timeout=2)
            raise

    def action_toggle_debug(self) -> None:
        """Toggle the log panel visibility."""
        log_panel = self.query_one("#debug-panel", DebugPanel)
        is_visible = log_panel.toggle()
        self.notify(f"Log panel {'shown' if is_visible else 'hidden'}", timeout=2)

    def action_copy_last_response(self) -> None:
        """Copy last assistant response to clipboard."""
        chat = self.query_one("#chat-history", ChatHistoryWidget)
        response = chat.get_last_response()
        if response:
            self.copy_to_clipboard(response)
            self.notify("Response copied")
        else:
            self.notify("No response to copy", severity="warning")


async def run_textual_tui(
    session: ChatSession,
    model_name: str = "unknown",
    store_backend: str = "memory",
    log_level: str | None = None,
    conversation_id: str | None = None,
) -> None:
    """Run the Textual TUI.

    Args:
        session: Chat session to drive
        model_name: Model name shown in the subtitle
        store_backend: Chat store backend shown in the subtitle
        log_level: Log level for panel (debug/info/warning/error), None to hide
        conversation_id: Stored conversation to reopen
    """
    app = CardioQAApp(
        session=session,
        model_name=model_name,
        store_backend=store_backend,
        log_level=log_level,
        conversation_id=conversation_id,
    )
    with contextlib.suppress(KeyboardInterrupt, asyncio.CancelledError):
        await app.run_async()
