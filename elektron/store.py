"""The available scheduling policies and building a configured scheduler."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

from elektron.base import BaseScheduler
from elektron.first_fit import FirstFit
from elektron.offers import Offer
from elektron.packing import BinPackSortedWatts, MaxGreedyMins, MaxMin
from elektron.policy import (
    BIN_PACKING,
    FIRST_FIT,
    MAX_GREEDY_MINS,
    MAX_MIN,
    SWITCH_CRITERIA,
    PolicyRegistry,
)
from elektron.tasks import Task

logger = logging.getLogger(__name__)


class SchedulerConfigError(Exception):
    """The scheduler or its policies could not be configured as asked."""


def default_registry() -> PolicyRegistry:
    """A registry holding a fresh instance of every built-in scheduling policy."""
    return PolicyRegistry(
        {
            FIRST_FIT: FirstFit(),
            BIN_PACKING: BinPackSortedWatts(),
            MAX_GREEDY_MINS: MaxGreedyMins(),
            MAX_MIN: MaxMin(),
        }
    )


def init_sched_policy_characteristics(
    registry: PolicyRegistry, path: str | Path
) -> None:
    """Load each policy's ``taskDist`` and ``varCpuShare`` from a JSON file.

    The file maps policy names to objects with those keys. The policies
    are then linked in round-robin order for switching.
    """
    try:
        with open(path, encoding="utf-8") as handle:
            text = handle.read()
    except OSError as err:
        raise SchedulerConfigError(f"Error opening file: {err}") from err

    try:
        data = json.loads(text)
        if not isinstance(data, dict) or not all(
            isinstance(value, dict) for value in data.values()
        ):
            raise ValueError("expected an object of objects")
        registry.configure(data)
    except (ValueError, TypeError) as err:
        raise SchedulerConfigError(f"Error unmarshalling: {err}") from err


def sched_factory(
    tasks: Iterable[Task] | None,
    sched_policy: str = FIRST_FIT,
    watts_as_a_resource: bool = False,
    class_map_watts: bool = False,
    sched_pol_switch_enabled: bool = False,
    switch_criteria: str = "taskDist",
    first_sched_pol: str = "",
    fix_sched_window: bool = False,
    sched_window_size: int = 200,
    registry: PolicyRegistry | None = None,
    watts_to_consider: Callable[[Task, bool, Offer], float] | None = None,
    task_distribution: Callable[[int, list[Task]], float] | None = None,
    sort_key: Callable[[Task], Any] | None = None,
) -> BaseScheduler:
    """Build a scheduler with the given options, checking each of them.

    The switching options (criteria, first policy and fixed window) only
    apply when ``sched_pol_switch_enabled`` is set.
    """
    if registry is None:
        registry = default_registry()

    extra: dict[str, Any] = {}
    if watts_to_consider is not None:
        extra["watts_to_consider"] = watts_to_consider
    scheduler = BaseScheduler(
        task_distribution=task_distribution, sort_key=sort_key, **extra
    )

    if sched_policy not in registry:
        raise SchedulerConfigError("Incorrect scheduling policy.")
    scheduler.cur_sched_policy = registry[sched_policy]

    if sched_pol_switch_enabled:
        scheduler.sched_pol_switch_enabled = True
        if switch_criteria not in SWITCH_CRITERIA:
            raise SchedulerConfigError("Invalid scheduling policy switching criteria.")
        scheduler.sched_pol_switch_criteria = switch_criteria

        if not first_sched_pol:
            logger.info(
                "First scheduling policy to deploy not mentioned. "
                "This is now going to be determined at runtime."
            )
        elif first_sched_pol not in registry:
            raise SchedulerConfigError("Invalid name of scheduling policy.")
        else:
            scheduler.name_of_fst_sched_pol_to_deploy = first_sched_pol

        if fix_sched_window:
            if sched_window_size <= 0:
                raise SchedulerConfigError(
                    "Invalid value of scheduling window size. "
                    "Please provide a value > 0."
                )
            logger.info(
                "Fixing the size of the scheduling window to %d...", sched_window_size
            )
            scheduler.to_fix_sched_window = True
            scheduler.sched_window_size = sched_window_size

    if watts_as_a_resource:
        scheduler.watts_as_a_resource = True
        scheduler.class_map_watts = class_map_watts

    if tasks is None:
        raise SchedulerConfigError("Task[] is empty.")
    scheduler.tasks = list(tasks)
    return scheduler