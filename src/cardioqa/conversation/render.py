"""Renderable units shown to the user (the "UI state").

Hides how a turn is displayed:
- Display nodes for user text, assistant text and structured answers
- Live handles that a single writer updates while a turn streams
- The ordered Render State list the interface reads from

Display nodes render through Rich (``__rich__``) so both the CLI and the
Textual app can show them without knowing their internals.
"""

import asyncio
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from rich.console import Group
from rich.markdown import Markdown
from rich.panel import Panel
from rich.spinner import Spinner
from rich.text import Text

from .models import RelatedQuestion

T = TypeVar("T")


class StreamableValue(Generic[T]):
    """A value with one writer and any number of readers.

    The writer calls ``update`` while the turn is open and seals the value
    with ``done`` or ``error``. Readers either poll ``value`` or subscribe
    to change notifications. Writes after sealing raise ``RuntimeError``.
    """

    def __init__(self, initial: T) -> None:
        self._value = initial
        self._done = False
        self._error: BaseException | None = None
        self._listeners: list[Callable[[T], None]] = []
        self._finished = asyncio.Event()

    @property
    def value(self) -> T:
        return self._value

    @property
    def is_done(self) -> bool:
        return self._done

    @property
    def exception(self) -> BaseException | None:
        return self._error

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Register a change listener. Returns a function that unsubscribes it."""
        self._listeners.append(callback)

        def _unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _unsubscribe

    def update(self, value: T) -> None:
        self._ensure_open()
        self._value = value
        self._notify()

    def done(self, value: T | None = None) -> None:
        """Seal the value, optionally replacing it one last time."""
        self._ensure_open()
        if value is not None:
            self._value = value
        self._done = True
        self._finished.set()
        self._notify()

    def error(self, exc: BaseException) -> None:
        """Seal the value with an error; the last value is kept for readers."""
        self._ensure_open()
        self._error = exc
        self._done = True
        self._finished.set()
        self._notify()

    async def wait(self) -> T:
        """Wait until the value is sealed and return it, re-raising any error."""
        await self._finished.wait()
        if self._error is not None:
            raise self._error
        return self._value

    def _ensure_open(self) -> None:
        if self._done:
            raise RuntimeError(f"{type(self).__name__} is already closed")

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._value)


class StreamableText(StreamableValue[str]):
    """Live text that only grows by appended deltas."""

    def __init__(self, initial: str = "") -> None:
        super().__init__(initial)

    def append(self, delta: str) -> None:
        self.update(self.value + delta)


class StreamableUI(StreamableValue[Any]):
    """Live display slot: a placeholder that is swapped for the final node."""

    def __rich__(self) -> Any:
        return _rich_or_empty(self.value)


@dataclass
class SpinnerMessage:
    """Shown while the model has not produced anything yet."""

    def __rich__(self) -> Any:
        return Spinner("dots", text=Text("Thinking...", style="dim"))


@dataclass
class UserMessage:
    text: str

    def __rich__(self) -> Any:
        return Panel(Text(self.text), title="You", title_align="left", border_style="cyan")


@dataclass
class BotMessage:
    """Assistant text, either final or still streaming."""

    content: str | StreamableText

    @property
    def text(self) -> str:
        if isinstance(self.content, StreamableText):
            return self.content.value
        return self.content

    @property
    def is_streaming(self) -> bool:
        return isinstance(self.content, StreamableText) and not self.content.is_done

    def __rich__(self) -> Any:
        return Panel(
            Markdown(self.text or " "),
            title="Assistant",
            title_align="left",
            border_style="magenta",
            subtitle="typing..." if self.is_streaming else None,
        )


@dataclass
class AnswerSkeleton:
    """Placeholder shown while a structured answer is prepared."""

    def __rich__(self) -> Any:
        return Panel(
            Spinner("dots", text=Text("Preparing answer...", style="dim")),
            border_style="magenta",
        )


@dataclass
class AnswerCard:
    """An answer together with its clickable related questions."""

    answer: str
    related_questions: list[RelatedQuestion] = field(default_factory=list)

    def __rich__(self) -> Any:
        lines: list[Any] = [Markdown(self.answer)]
        for index, related in enumerate(self.related_questions, 1):
            lines.append(Text.assemble(
                (f"Related Question {index}: ", "bold"),
                (related.question, "dim"),
            ))
        return Panel(Group(*lines), title="Assistant", title_align="left", border_style="magenta")


Display = SpinnerMessage | UserMessage | BotMessage | AnswerSkeleton | AnswerCard | StreamableUI | None


def resolve_display(display: Display) -> Any:
    """Return the node currently shown for a display, unwrapping live slots."""
    if isinstance(display, StreamableUI):
        return display.value
    return display


def _rich_or_empty(node: Any) -> Any:
    return Text("") if node is None else node


@dataclass
class RenderUnit:
    """One entry in the Render State.

    ``task`` is set for units produced by an in-flight turn and completes
    when the turn's message log update is final.
    """

    id: str
    display: Display
    task: "asyncio.Task[Any] | None" = field(default=None, compare=False, repr=False)

    @property
    def current(self) -> Any:
        return resolve_display(self.display)

    def __rich__(self) -> Any:
        return _rich_or_empty(self.current)


class RenderState:
    """Ordered list of render units, one per visible turn.

    Listeners receive the appended unit, or None when the whole list was
    replaced.
    """

    def __init__(self, units: list[RenderUnit] | None = None) -> None:
        self._units: list[RenderUnit] = list(units or [])
        self._listeners: list[Callable[[RenderUnit | None], None]] = []

    @property
    def units(self) -> tuple[RenderUnit, ...]:
        return tuple(self._units)

    def append(self, unit: RenderUnit) -> None:
        self._units.append(unit)
        for listener in list(self._listeners):
            listener(unit)

    def replace(self, units: list[RenderUnit]) -> None:
        self._units = list(units)
        for listener in list(self._listeners):
            listener(None)

    def subscribe(self, callback: Callable[[RenderUnit | None], None]) -> Callable[[], None]:
        self._listeners.append(callback)

        def _unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _unsubscribe

    def index_of(self, unit_id: str) -> int:
        for index, unit in enumerate(self._units):
            if unit.id == unit_id:
                return index
        raise KeyError(unit_id)

    def __iter__(self) -> Iterator[RenderUnit]:
        return iter(list(self._units))

    def __len__(self) -> int:
        return len(self._units)

    def __getitem__(self, index: int) -> RenderUnit:
        return self._units[index]
