"""Configuration constants.

Centralizes magic numbers and configuration values shared across modules.
Environment-dependent settings are read in ``cardioqa.cli.providers``.
"""

# Model defaults
DEFAULT_PROVIDER = "openai"
DEFAULT_MODEL = "gpt-4o-2024-05-13"
MAX_OUTPUT_TOKENS = 256

# Structured answer tool
TOOL_NAME = "answer-with-related-questions"
TOOL_DESCRIPTION = "Generate answer and related questions."
RELATED_QUESTION_COUNT = 2

# Delay before a tool turn is finalized, so the placeholder is observable
TOOL_RENDER_DELAY_SECONDS = 1.0

# Persistence
TITLE_MAX_LENGTH = 100
CHAT_PATH_PREFIX = "/chat/"
DEFAULT_STORE_BACKEND = "sqlite"
DEFAULT_DB_PATH = "./cardioqa_chats.db"

# Short ids for messages, render units and tool calls
ID_LENGTH = 7
