"""Structural checks over a message log."""

from collections.abc import Sequence

from .models import Message


def find_tool_pairing_violations(messages: Sequence[Message]) -> list[str]:
    """Find tool-result call ids that are not properly paired.

    A tool-result is paired when exactly one tool-call with the same call id
    appears in an earlier message of the log.

    Args:
        messages: The message log, oldest first

    Returns:
        Offending call ids in log order (empty when the log is valid)
    """
    call_counts: dict[str, int] = {}
    violations: list[str] = []

    for message in messages:
        # Results are matched against calls from earlier messages only
        for result in message.tool_results:
            if call_counts.get(result.call_id, 0) != 1:
                violations.append(result.call_id)
        for call in message.tool_calls:
            call_counts[call.call_id] = call_counts.get(call.call_id, 0) + 1

    return violations


def has_valid_tool_pairing(messages: Sequence[Message]) -> bool:
    """Return True when every tool-result has exactly one preceding tool-call."""
    return not find_tool_pairing_violations(messages)
