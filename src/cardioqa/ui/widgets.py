"""Custom Textual widgets for the TUI.

Hides widget implementation details:
- Rendering of render units, including live ones that change while streaming
- Related-question buttons
- Input history management
- Log rendering and level filtering
"""

from collections.abc import Callable
from datetime import datetime
from typing import Any

from rich.markdown import Markdown as RichMarkdown
from rich.text import Text
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.message import Message
from textual.widget import Widget
from textual.widgets import Button, LoadingIndicator, RichLog, Static, TextArea

from ..conversation import (
    AnswerCard,
    AnswerSkeleton,
    BotMessage,
    RenderUnit,
    SpinnerMessage,
    StreamableUI,
    UserMessage,
)
from .config import (
    COMPONENT_COLORS,
    INPUT_HISTORY_MAX_SIZE,
    LOG_MAX_MESSAGE_LENGTH,
    LOG_TIMESTAMP_FORMAT,
    LogLevel,
)


class RelatedQuestionButton(Button):
    """A clickable related question."""

    class Selected(Message):
        """Posted when the user picks a related question."""

        def __init__(self, question: str) -> None:
            super().__init__()
            self.question = question

    def __init__(self, question: str, index: int) -> None:
        super().__init__(f"Related Question {index}: {question}", classes="related-question")
        self.question = question

    def on_button_pressed(self, event: Button.Pressed) -> None:
        event.stop()
        self.post_message(self.Selected(self.question))


class RenderUnitView(Vertical):
    """Displays one render unit and follows its live updates.

    Finalized units are built once. For live units the view subscribes to
    the display slot (placeholder -> final swap) and to streaming text.
    """

    def __init__(self, unit: RenderUnit, **kwargs: Any) -> None:
        super().__init__(classes="render-unit", **kwargs)
        self._unit = unit
        self._unsubscribers: list[Callable[[], None]] = []
        self._built_node: Any = None
        self._text_widget: Static | None = None
        self._text_unsubscribe: Callable[[], None] | None = None

    @property
    def unit(self) -> RenderUnit:
        return self._unit

    def compose(self):
        yield from self._build(self._unit.current)

    def on_mount(self) -> None:
        display = self._unit.display
        if isinstance(display, StreamableUI) and not display.is_done:
            self._unsubscribers.append(display.subscribe(self._on_display_changed))
        current = self._unit.current
        failed = isinstance(display, StreamableUI) and display.exception is not None
        if current is not self._built_node or failed:
            # The slot moved on between compose and mount
            self._on_display_changed(current)
        else:
            self._follow_text(current)

    def on_unmount(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        if self._text_unsubscribe is not None:
            self._text_unsubscribe()
            self._text_unsubscribe = None

    def _build(self, node: Any) -> list[Widget]:
        self._built_node = node
        self._text_widget = None
        self.set_class(isinstance(node, UserMessage), "user-message")
        self.set_class(not isinstance(node, UserMessage), "assistant-message")
        self.display = node is not None

        if isinstance(node, UserMessage):
            return [
                Static("> You", classes="message-header"),
                Static(Text(node.text), classes="message-content"),
            ]

        widgets: list[Widget] = [Static("< Assistant", classes="message-header")]
        if isinstance(node, BotMessage):
            self._text_widget = Static(RichMarkdown(node.text or " "), classes="message-content")
            widgets.append(self._text_widget)
        elif isinstance(node, AnswerCard):
            widgets.append(Static(RichMarkdown(node.answer), classes="message-content"))
            for index, related in enumerate(node.related_questions, 1):
                widgets.append(RelatedQuestionButton(related.question, index))
        elif isinstance(node, (AnswerSkeleton, SpinnerMessage)):
            widgets.append(LoadingIndicator())
        return widgets

    def _follow_text(self, node: Any) -> None:
        """Subscribe to streaming text if the node is a live assistant message."""
        if self._text_unsubscribe is not None:
            self._text_unsubscribe()
            self._text_unsubscribe = None
        if isinstance(node, BotMessage) and node.is_streaming:
            self._text_unsubscribe = node.content.subscribe(self._on_text_changed)

    def _on_text_changed(self, text: str) -> None:
        if self._text_widget is not None:
            self._text_widget.update(RichMarkdown(text or " "))

    def _on_display_changed(self, node: Any) -> None:
        display = self._unit.display
        if isinstance(display, StreamableUI) and display.exception is not None:
            self.mount(Static(f"Error: {display.exception}", classes="turn-error"))
            return
        self.remove_children()
        self.mount_all(self._build(node))
        self._follow_text(node)


class ChatHistoryWidget(VerticalScroll):
    """Scrollable list of render units."""

    BORDER_TITLE = "Chat"
    BORDER_SUBTITLE = "Conversation history"
    ALLOW_MAXIMIZE = True

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._unit_count = 0

    def show_welcome(self, lines: list[str]) -> None:
        self.mount(Static("\n".join(lines), classes="welcome"))

    def add_unit(self, unit: RenderUnit) -> None:
        """Append a render unit to the chat."""
        self._unit_count += 1
        self.mount(RenderUnitView(unit))
        self.border_subtitle = f"{self._unit_count} messages"
        self.scroll_end(animate=False)

    def reset(self, units: list[RenderUnit]) -> None:
        """Replace everything shown with the given units."""
        self.remove_children()
        self._unit_count = 0
        self.border_subtitle = "Conversation history"
        for unit in units:
            self.add_unit(unit)

    def get_last_response(self) -> str | None:
        """Get the text of the last assistant unit."""
        for view in reversed(list(self.query(RenderUnitView))):
            node = view.unit.current
            if isinstance(node, BotMessage):
                return node.text
            if isinstance(node, AnswerCard):
                return node.answer
        return None


class ChatInputBar(Horizontal):
    """Chat input bar with TextArea, Send button and input history."""

    class Submitted(Message):
        """Message sent when user submits input."""

        def __init__(self, value: str) -> None:
            super().__init__()
            self.value = value

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._history: list[str] = []
        self._history_index: int = -1

    def compose(self):
        text_area = TextArea(id="chat-input", show_line_numbers=False)
        text_area.cursor_blink = False
        yield text_area
        yield Button("Send", id="send-btn", variant="success").with_tooltip(
            "Submit message (Ctrl+J)"
        )

    def on_mount(self) -> None:
        text_area = self.query_one("#chat-input", TextArea)
        text_area.highlight_cursor_line = False
        text_area.focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "send-btn":
            self._submit()

    def on_key(self, event) -> None:
        """Handle keyboard shortcuts.

        Note: ctrl+enter cannot work in terminals, so ctrl+j submits.
        """
        if event.key == "ctrl+j":
            self._submit()
            event.prevent_default()
            event.stop()
        elif event.key == "up" and self._cursor_at_start():
            self._navigate_history(-1)
            event.prevent_default()
            event.stop()
        elif event.key == "down" and self._cursor_at_end():
            self._navigate_history(1)
            event.prevent_default()
            event.stop()

    def _cursor_at_start(self) -> bool:
        return self.query_one("#chat-input", TextArea).cursor_location == (0, 0)

    def _cursor_at_end(self) -> bool:
        text_area = self.query_one("#chat-input", TextArea)
        lines = text_area.text.split("\n")
        return text_area.cursor_location == (len(lines) - 1, len(lines[-1]))

    def _navigate_history(self, direction: int) -> None:
        if not self._history:
            return
        text_area = self.query_one("#chat-input", TextArea)
        if direction < 0:
            if self._history_index == -1:
                self._history_index = len(self._history) - 1
            elif self._history_index > 0:
                self._history_index -= 1
        elif self._history_index < len(self._history) - 1 and self._history_index != -1:
            self._history_index += 1
        else:
            self._history_index = -1
            text_area.text = ""
            return
        text_area.text = self._history[self._history_index]

    def _submit(self) -> None:
        text_area = self.query_one("#chat-input", TextArea)
        value = text_area.text.strip()
        if not value:
            return
        if not self._history or self._history[-1] != value:
            self._history.append(value)
            del self._history[:-INPUT_HISTORY_MAX_SIZE]
        self._history_index = -1
        text_area.text = ""
        self.post_message(self.Submitted(value))

    def focus_input(self) -> None:
        """Focus the text input."""
        self.query_one("#chat-input", TextArea).focus()


class DebugPanel(RichLog):
    """Log panel with level filtering.

    Receives the ``(level, component, message)`` debug callback of the
    session and its collaborators. Hidden by default; shown with
    ``--log-level`` or toggled with Ctrl+D.
    """

    BORDER_TITLE = "Log"
    BORDER_SUBTITLE = "Trace log"

    def __init__(self, *args, log_level: int = LogLevel.DEBUG, **kwargs) -> None:
        super().__init__(*args, markup=True, highlight=False, auto_scroll=True, wrap=True, **kwargs)
        self._log_level = log_level

    @property
    def log_level(self) -> int:
        return self._log_level

    @log_level.setter
    def log_level(self, level: int) -> None:
        self._log_level = level
        self._update_subtitle()

    def _update_subtitle(self) -> None:
        if self.display:
            self.border_subtitle = f"Level: {LogLevel.name(self._log_level)}"
        else:
            self.border_subtitle = "Hidden"

    def on_mount(self) -> None:
        self.display = False

    def log_entry(self, level: str, component: str, message: str) -> None:
        """Add an entry if it meets the current level threshold.

        Matches the debug callback signature, so it can be passed directly.
        """
        numeric = LogLevel.from_string(level)
        if numeric < self._log_level:
            return

        if len(message) > LOG_MAX_MESSAGE_LENGTH:
            message = message[:LOG_MAX_MESSAGE_LENGTH] + "..."

        level_colors = {
            LogLevel.DEBUG: "dim white",
            LogLevel.INFO: "cyan",
            LogLevel.WARNING: "yellow",
            LogLevel.ERROR: "red",
        }
        line = Text.assemble(
            (datetime.now().strftime(LOG_TIMESTAMP_FORMAT), "dim"),
            " ",
            (f"{LogLevel.name(numeric):<7}", level_colors.get(numeric, "white")),
            (f"[{component}]", COMPONENT_COLORS.get(component, "white")),
            " ",
            message,
        )
        self.write(line)

    def show(self) -> None:
        self.display = True
        self._update_subtitle()

    def hide(self) -> None:
        self.display = False
        self._update_subtitle()

    def toggle(self) -> bool:
        """Toggle visibility. Returns new state."""
        if self.display:
            self.hide()
            return False
        self.show()
        return True
