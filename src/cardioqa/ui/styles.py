"""CSS styles for the TUI.

Hides layout and styling decisions from the application logic.
"""

APP_CSS = """
Screen {
    layout: vertical;
    background: $background;
}

#chat-history {
    height: 1fr;
    background: $panel;
    border: round $primary 60%;
    border-title-color: $primary;
    border-title-style: bold;
    border-subtitle-color: $text-muted;
    border-subtitle-align: right;
    padding: 0 1;
    scrollbar-gutter: stable;

    &:focus-within {
        border: round $primary;
    }
}

.welcome {
    color: $text-muted;
    margin: 1 0;
}

.render-unit {
    height: auto;
    margin: 0 0 1 0;
    padding: 0 1;
}

.user-message {
    border-left: thick $secondary;
}

.assistant-message {
    border-left: thick $primary;
}

.message-header {
    color: $text-muted;
    text-style: bold;
}

.message-content {
    height: auto;
}

.related-question {
    width: 100%;
    height: auto;
    margin: 1 0 0 0;
    background: $surface;
    color: $foreground;
    border: round $accent 50%;
    content-align: left middle;

    &:hover {
        border: round $accent;
    }
}

.turn-error {
    color: $error;
}

LoadingIndicator {
    height: 1;
    color: $primary;
}

#debug-panel {
    height: 12;
    border: round $border;
    border-title-color: $text-muted;
}

#chat-input-bar {
    height: auto;
    max-height: 8;
    padding: 0 1;
}

#chat-input {
    width: 1fr;
    height: auto;
    min-height: 3;
    max-height: 8;
}

#send-btn {
    width: 10;
    margin-left: 1;
}
"""
