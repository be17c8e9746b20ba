import re
from dataclasses import dataclass
from enum import Enum


class TaskAction(str, Enum):
    ADD = "add"
    COMPLETE = "complete"
    DELETE = "delete"


# Prefixes are matched against the stripped, lower-cased message.
PREFIXES: tuple[tuple[str, TaskAction], ...] = (
    ("add task ", TaskAction.ADD),
    ("remind me to ", TaskAction.ADD),
    ("complete task ", TaskAction.COMPLETE),
    ("finish task ", TaskAction.COMPLETE),
    ("done with task ", TaskAction.COMPLETE),
    ("delete task ", TaskAction.DELETE),
    ("remove task ", TaskAction.DELETE),
)

_NUMBER = re.compile(r"\d+")


@dataclass
class TaskIntent:
    action: TaskAction
    text: str = ""
    index: int | None = None   # 1-based position in the fetched task list


def parse_intent(content: str | None) -> TaskIntent | None:
    """Detect a task command at the start of a chat message.

    ``add`` intents keep the original casing of the task text. ``complete``
    and ``delete`` intents carry the first integer found after the prefix,
    which is a position in the user's task list rather than a task id.
    """
    if not content:
        return None

    stripped = content.strip()
    lowered = stripped.lower()

    for prefix, action in PREFIXES:
        if not lowered.startswith(prefix):
            continue
        remainder = stripped[len(prefix):].strip()

        if action is TaskAction.ADD:
            if not remainder:
                return None
            return TaskIntent(action=action, text=remainder)

        match = _NUMBER.search(remainder)
        if not match:
            return None
        return TaskIntent(action=action, index=int(match.group()))

    return None
