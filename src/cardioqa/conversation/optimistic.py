"""Client-side optimistic submission.

Shows the user's own message immediately, then appends the assistant's
unit once the session hands it back. Two independent appends into one
ordered list: the provisional unit always lands first.
"""

from typing import Any

from ..exceptions import TurnInProgressError
from .models import new_id
from .render import RenderUnit, UserMessage
from .session import ChatSession


class OptimisticSubmitController:
    """Coordinates the render state around ``ChatSession.submit_turn``.

    Never touches the message log; only the session does that.
    """

    def __init__(self, session: ChatSession):
        self._session = session
        self._debug_callback: Any | None = None

    def set_debug_callback(self, callback: Any) -> None:
        """Set debug callback for logging.

        Args:
            callback: Callable(level: str, component: str, message: str)
        """
        self._debug_callback = callback

    def _debug(self, level: str, message: str) -> None:
        if self._debug_callback:
            self._debug_callback(level, "UI", message)

    async def submit(self, text: str) -> RenderUnit:
        """Submit typed text.

        Appends the provisional user unit, waits for the session to start
        the turn, then appends the returned (possibly still streaming) unit.

        Returns:
            The assistant render unit appended to the render state

        Raises:
            ValueError: If the text is blank
            TurnInProgressError: If the session already has a turn in flight
        """
        if not text or not text.strip():
            raise ValueError("Cannot submit an empty message")
        if self._session.is_busy:
            raise TurnInProgressError(
                f"Conversation {self._session.conversation_id} already has a turn in flight"
            )

        render_state = self._session.ui_state
        provisional = RenderUnit(id=new_id(), display=UserMessage(text=text))
        render_state.append(provisional)
        self._debug("debug", f"Provisional unit {provisional.id} appended")

        response = await self._session.submit_turn(text)
        render_state.append(response)
        self._debug("debug", f"Response unit {response.id} appended")
        return response

    async def select_related_question(self, question: str) -> RenderUnit:
        """Handle a click on a related question.

        Takes exactly the same path as typing the question.
        """
        return await self.submit(question)
