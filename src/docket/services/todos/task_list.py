"""Detect edits that only tick or untick Markdown task-list checkboxes."""

import re

_TASK_ITEM_RE = re.compile(
    r"^(?P<marker>[ \t]*(?:[-+*]|\d+[.)])[ \t]+)\[[ xX]\]", re.MULTILINE
)


def normalize_tasks(text: str) -> str:
    """Reset every task-list checkbox to the unchecked state."""
    return _TASK_ITEM_RE.sub(lambda m: f"{m.group('marker')}[ ]", text)


def only_task_toggles(previous: str | None, current: str | None) -> bool:
    """True when ``current`` differs from ``previous`` solely in checkbox state.

    Any other difference, whitespace included, counts as a real edit.
    """
    if previous is None or current is None or previous == current:
        return False
    return normalize_tasks(previous) == normalize_tasks(current)
