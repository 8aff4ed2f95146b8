"""Terminal UI module for cardioqa.

Provides a Textual-based TUI over a ChatSession.

Module structure (Parnas principle - each module hides a design decision):
- widgets.py: Custom widgets (render units, related questions, input, log)
- styles.py: CSS styling (layout decisions)
- themes.py: Color palettes and theme configuration
- config.py: Log levels and UI constants
- app.py: Application orchestration (user interaction flow)
"""

from .app import CardioQAApp, run_textual_tui
from .config import LogLevel
from .widgets import ChatHistoryWidget, ChatInputBar, DebugPanel, RelatedQuestionButton, RenderUnitView

__all__ = [
    "CardioQAApp",
    "ChatHistoryWidget",
    "ChatInputBar",
    "DebugPanel",
    "LogLevel",
    "RelatedQuestionButton",
    "RenderUnitView",
    "run_textual_tui",
]
