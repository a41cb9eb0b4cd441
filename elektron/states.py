"""Task states reported by the cluster manager."""

from __future__ import annotations

from enum import IntEnum


class TaskState(IntEnum):
    """Task states with their wire values."""

    TASK_STARTING = 0
    TASK_RUNNING = 1
    TASK_FINISHED = 2
    TASK_FAILED = 3
    TASK_KILLED = 4
    TASK_LOST = 5
    TASK_STAGING = 6
    TASK_ERROR = 7


_TERMINAL = frozenset(
    {
        TaskState.TASK_FINISHED,
        TaskState.TASK_FAILED,
        TaskState.TASK_KILLED,
        TaskState.TASK_LOST,
        TaskState.TASK_ERROR,
    }
)


def name_for(state: int) -> str:
    """The name of a task state, or 'UNKNOWN: <n>' for an unrecognised value."""
    try:
        return TaskState(state).name
    except ValueError:
        return f"UNKNOWN: {int(state)}"


def is_terminal(state: int) -> bool:
    """Whether the state means the task has stopped running."""
    return state in _TERMINAL