"""Strategies for sizing the scheduling window."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from elektron.resources import ResourceCount
from elektron.tasks import Task

logger = logging.getLogger(__name__)


class FillNextOfferCycle:
    """Size the window to as many queued instances as the unused resources hold.

    Tasks are taken in queue order; the first instance that does not fit
    ends the window.
    """

    def apply(
        self, tasks: Iterable[Task], availability: ResourceCount
    ) -> tuple[int, int]:
        """Return the window size in instances and the number of tasks it spans."""
        filled_cpu = 0.0
        filled_ram = 0.0
        window = 0
        traversed = 0
        for task in tasks:
            traversed += 1
            for instance in range(task.instances, 0, -1):
                logger.info(
                    "Checking if Instance #%d of Task[%s] can be scheduled "
                    "during the next offer cycle...",
                    instance,
                    task.name,
                )
                fits = (
                    filled_cpu + task.cpu <= availability.unused_cpu
                    and filled_ram + task.ram <= availability.unused_ram
                )
                if not fits:
                    if instance == task.instances:
                        traversed -= 1
                    return window, traversed
                filled_cpu += task.cpu
                filled_ram += task.ram
                window += 1
        return window, traversed


RESIZING_STRATEGIES = {"fillNextOfferCycle": FillNextOfferCycle()}