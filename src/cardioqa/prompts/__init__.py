"""System instruction for the assistant.

The instruction text lives in ``system.txt`` next to this module. A file
with the same name under ``./prompts/`` in the working directory takes
precedence, so the wording can be tuned without reinstalling.

Placeholders (``{related_question_count}``, ``{tool_name}``) are filled from
``cardioqa.config`` so the prompt and the tool schema never disagree.
"""

from functools import lru_cache
from pathlib import Path

from ..config import RELATED_QUESTION_COUNT, TOOL_NAME

_PACKAGE_DIR = Path(__file__).parent


def prompt_candidates(name: str) -> list[Path]:
    """Locations checked for a prompt, highest priority first."""
    filename = f"{name}.txt"
    return [Path.cwd() / "prompts" / filename, _PACKAGE_DIR / filename]


@lru_cache(maxsize=16)
def load_prompt(name: str) -> str:
    """Read a prompt template by name.

    Raises:
        FileNotFoundError: If no candidate location has the prompt
    """
    candidates = prompt_candidates(name)
    for path in candidates:
        if path.is_file():
            return path.read_text(encoding="utf-8")

    searched = "\n".join(f"  - {path}" for path in candidates)
    raise FileNotFoundError(f"Prompt '{name}' not found. Searched:\n{searched}")


def get_system_prompt() -> str:
    """System instruction with the tool name and question count filled in."""
    template = load_prompt("system")
    return template.format(
        related_question_count=RELATED_QUESTION_COUNT,
        tool_name=TOOL_NAME,
    ).strip()


def clear_cache() -> None:
    load_prompt.cache_clear()


__all__ = [
    "clear_cache",
    "get_system_prompt",
    "load_prompt",
    "prompt_candidates",
]
