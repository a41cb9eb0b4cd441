"""Task definitions and ordering of the pending task queue."""

from __future__ import annotations

from collections.abc import Callable, MutableSequence
from dataclasses import dataclass, field
from typing import Any


@dataclass
class Task:
    """A task to schedule, with the number of instances still to launch."""

    name: str
    cpu: float = 0.0
    ram: float = 0.0
    watts: float = 0.0
    instances: int = 1
    host: str = ""
    cmd: str = ""
    image: str = ""
    class_to_watts: dict[str, float] = field(default_factory=dict)


def sort_n_tasks(
    tasks: MutableSequence[Task], n: int, key: Callable[[Task], Any]
) -> None:
    """Sort the first ``n`` tasks of the queue in place by ``key``.

    The tasks after the first ``n`` keep their positions. Equal keys keep
    their relative order.
    """
    if n < 0 or n > len(tasks):
        raise ValueError(f"cannot sort {n} tasks of a queue of {len(tasks)}")
    tasks[:n] = sorted(tasks[:n], key=key)