"""The first-fit scheduling policy: one task per offer, the first that fits."""

from __future__ import annotations

from collections.abc import Sequence

from elektron.base import BaseScheduler, SchedulerDriver
from elektron.offers import DEFAULT_FILTER, Offer, host_mismatch, offer_agg
from elektron.policy import SchedPolicy
from elektron.tasks import Task


class FirstFit(SchedPolicy):
    """Launch on each offer the first queued task whose needs the offer covers."""

    def _take_offer(self, scheduler: BaseScheduler, offer: Offer, task: Task) -> bool:
        cpus, mem, watts = offer_agg(offer)
        try:
            needed = scheduler.watts_to_consider(task, scheduler.class_map_watts, offer)
        except (KeyError, ValueError) as err:
            scheduler.log_electron_error(err)
            needed = 0.0
        return (
            cpus >= task.cpu
            and mem >= task.ram
            and (not scheduler.watts_as_a_resource or watts >= needed)
        )

    def consume_offers(
        self, scheduler: BaseScheduler, driver: SchedulerDriver, offers: Sequence[Offer]
    ) -> None:
        """Launch at most one task on each offer and decline the offers left unused."""
        scheduler.log_offers_received(offers)
        for offer in offers:
            scheduler.environment.update(offer)
            if self._decline_when_shut_down(scheduler, driver, offer):
                continue

            offer_taken = False
            for index, task in enumerate(scheduler.tasks):
                if self._window_full(scheduler):
                    break
                if host_mismatch(offer.hostname, task.host):
                    continue
                if not self._take_offer(scheduler, offer, task):
                    continue

                scheduler.log_co_located_tasks(offer.slave_id)
                task_info = scheduler.new_task(offer, task)
                scheduler.log_task_starting(task, offer)
                scheduler.launch_tasks([offer.id], [task_info], driver)
                offer_taken = True
                scheduler.log_sched_trace(task_info, offer)
                self._mark_scheduled(scheduler, index, task)
                break

            if not offer_taken:
                scheduler.log_insufficient_resources_decline_offer(offer)
                driver.decline_offer(offer.id, DEFAULT_FILTER)