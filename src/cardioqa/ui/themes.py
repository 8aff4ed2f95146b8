"""Theme definitions for the TUI.

This module hides the design decisions about:
- Color palettes and visual appearance
- Theme variables (borders, scrollbars, etc.)

To add a new theme, define it here and register in the app.
"""

from textual.theme import Theme

# Dark theme with a warm red accent for the assistant
CARDIO_DARK = Theme(
    name="cardio-dark",
    primary="#e0707c",      # Rose - main accent
    secondary="#7aa2f7",    # Blue - user messages
    accent="#e0af68",       # Amber - related questions
    foreground="#d5d8e0",
    background="#14161c",
    success="#9ece6a",
    warning="#e0af68",
    error="#f7768e",
    surface="#1b1e26",
    panel="#181a21",
    dark=True,
    variables={
        "border": "#3b3f4c",
        "border-blurred": "#2a2d36",
        "scrollbar": "#2a2d36",
        "scrollbar-hover": "#3b3f4c",
        "scrollbar-active": "#e0707c",
        "footer-key-foreground": "#e0af68",
        "text-muted": "#6b7080",
    },
)
