"""Packing policies that fill each offer with as many tasks as it holds.

Bin-packing, max-min and max-greedymins all order the queue by watts and
keep running totals of what has been placed on the current offer.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from elektron.base import BaseScheduler, SchedulerDriver, TaskInfo
from elektron.offers import DEFAULT_FILTER, Offer, host_mismatch, offer_agg
from elektron.policy import SchedPolicy
from elektron.tasks import Task, sort_n_tasks


def _by_watts(task: Task) -> Any:
    return task.watts


@dataclass
class _Totals:
    """Resources already placed on the offer being filled."""

    cpu: float = 0.0
    ram: float = 0.0
    watts: float = 0.0


class _PackingPolicy(SchedPolicy):
    """Offer handling shared by the packing policies."""

    def _sort_queue(self, scheduler: BaseScheduler) -> None:
        key = scheduler.sort_key or _by_watts
        if scheduler.sched_pol_switch_enabled:
            sort_n_tasks(scheduler.tasks, scheduler.num_tasks_in_sched_window, key)
        else:
            scheduler.tasks.sort(key=key)

    def _fits(
        self, scheduler: BaseScheduler, offer: Offer, task: Task, totals: _Totals
    ) -> bool:
        cpus, mem, watts = offer_agg(offer)
        needed = scheduler.watts_to_consider(task, scheduler.class_map_watts, offer)
        return (
            cpus >= totals.cpu + task.cpu
            and mem >= totals.ram + task.ram
            and (not scheduler.watts_as_a_resource or watts >= totals.watts + needed)
        )

    def _check_fit(
        self,
        scheduler: BaseScheduler,
        index: int,
        task: Task,
        watts: float,
        offer: Offer,
        totals: _Totals,
    ) -> TaskInfo | None:
        """Place one instance of ``task`` on the offer if the rest of it has room."""
        if not self._fits(scheduler, offer, task, totals):
            return None
        totals.watts += watts
        totals.cpu += task.cpu
        totals.ram += task.ram
        scheduler.log_co_located_tasks(offer.slave_id)
        task_info = scheduler.new_task(offer, task)
        scheduler.log_sched_trace(task_info, offer)
        self._mark_scheduled(scheduler, index, task)
        return task_info

    def _pack_in_order(
        self, scheduler: BaseScheduler, offer: Offer, totals: _Totals
    ) -> list[TaskInfo]:
        """Walk the queue from the front, placing instances of each task while they fit."""
        launched: list[TaskInfo] = []
        index = 0
        # The queue shrinks as tasks run out of instances, so walk it by position.
        while index < len(scheduler.tasks):
            task = scheduler.tasks[index]
            watts = scheduler.watts_to_consider(task, scheduler.class_map_watts, offer)
            if not host_mismatch(offer.hostname, task.host):
                while task.instances > 0:
                    if self._window_full(scheduler):
                        break
                    task_info = self._check_fit(
                        scheduler, index, task, watts, offer, totals
                    )
                    if task_info is None:
                        break
                    launched.append(task_info)
            index += 1
        return launched

    def _fill(self, scheduler: BaseScheduler, offer: Offer) -> list[TaskInfo]:
        raise NotImplementedError

    def consume_offers(
        self, scheduler: BaseScheduler, driver: SchedulerDriver, offers: Sequence[Offer]
    ) -> None:
        """Fill each offer with queued tasks; decline the offers that take none."""
        self._sort_queue(scheduler)
        scheduler.log_offers_received(offers)
        for offer in offers:
            scheduler.environment.update(offer)
            if self._decline_when_shut_down(scheduler, driver, offer):
                continue
            launched = self._fill(scheduler, offer)
            if launched:
                scheduler.log_task_starting(None, offer)
                scheduler.launch_tasks([offer.id], launched, driver)
            else:
                scheduler.log_insufficient_resources_decline_offer(offer)
                driver.decline_offer(offer.id, DEFAULT_FILTER)


class BinPackSortedWatts(_PackingPolicy):
    """Pack each offer with tasks in non-decreasing order of watts."""

    def _fill(self, scheduler: BaseScheduler, offer: Offer) -> list[TaskInfo]:
        return self._pack_in_order(scheduler, offer, _Totals())

    def consume_offers(
        self, scheduler: BaseScheduler, driver: SchedulerDriver, offers: Sequence[Offer]
    ) -> None:
        """Pack each offer with the lightest tasks first."""
        super().consume_offers(scheduler, driver, offers)


class MaxMin(_PackingPolicy):
    """Alternate between the heaviest and the lightest task that fits the offer."""

    def _fill(self, scheduler: BaseScheduler, offer: Offer) -> list[TaskInfo]:
        launched: list[TaskInfo] = []
        totals = _Totals()
        take_min = False
        start = True
        index = 0
        step = 0
        while step < len(scheduler.tasks):
            if self._window_full(scheduler):
                break
            if start:
                index = 0 if take_min else len(scheduler.tasks) - step - 1
            task = scheduler.tasks[index]
            watts = scheduler.watts_to_consider(task, scheduler.class_map_watts, offer)
            if host_mismatch(offer.hostname, task.host):
                step += 1
                continue
            task_info = self._check_fit(scheduler, index, task, watts, offer, totals)
            if task_info is not None:
                launched.append(task_info)
                # Turn round and look again from the other end.
                take_min = not take_min
                start = True
                continue
            index += 1 if take_min else -1
            start = False
            step += 1
        return launched

    def consume_offers(
        self, scheduler: BaseScheduler, driver: SchedulerDriver, offers: Sequence[Offer]
    ) -> None:
        """Fill each offer alternately from the heavy and the light end of the queue."""
        super().consume_offers(scheduler, driver, offers)


class MaxGreedyMins(_PackingPolicy):
    """Place the heaviest task that fits, then fill the rest with the lightest."""

    def _fill(self, scheduler: BaseScheduler, offer: Offer) -> list[TaskInfo]:
        launched: list[TaskInfo] = []
        totals = _Totals()
        for index in range(len(scheduler.tasks) - 1, -1, -1):
            if self._window_full(scheduler):
                break
            task = scheduler.tasks[index]
            watts = scheduler.watts_to_consider(task, scheduler.class_map_watts, offer)
            if host_mismatch(offer.hostname, task.host):
                continue
            task_info = self._check_fit(scheduler, index, task, watts, offer, totals)
            if task_info is not None:
                launched.append(task_info)
                break
        launched.extend(self._pack_in_order(scheduler, offer, totals))
        return launched

    def consume_offers(
        self, scheduler: BaseScheduler, driver: SchedulerDriver, offers: Sequence[Offer]
    ) -> None:
        """Fill each offer with one heavy task followed by light ones."""
        super().consume_offers(scheduler, driver, offers)