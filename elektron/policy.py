"""Scheduling policies, the registry that links them, and the rules for switching between them."""

from __future__ import annotations

import time
from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field

from elektron.base import BaseScheduler, SchedulerDriver, console
from elektron.offers import DEFAULT_FILTER, LONG_FILTER, Offer
from elektron.pairs import pair_list, sort_by_value
from elektron.tasks import Task

FIRST_FIT = "first-fit"
BIN_PACKING = "bin-packing"
MAX_GREEDY_MINS = "max-greedymins"
MAX_MIN = "max-min"


@dataclass(frozen=True)
class PolicyInfo:
    """What a policy is suited for and its neighbours in round-robin order."""

    task_dist: float
    var_cpu_share: float
    next_policy_name: str
    prev_policy_name: str


@dataclass(eq=False)
class SchedPolicy:
    """A scheduling policy: consumes resource offers and decides when to hand over.

    ``task_distribution`` is the ratio of low to high power consuming tasks
    that the policy suits best.
    """

    num_tasks_scheduled: int = 0
    task_distribution: float = 0.0
    variance_cpu_share_per_task: float = 0.0
    next_policy_name: str = ""
    prev_policy_name: str = ""
    registry: PolicyRegistry | None = field(default=None, repr=False)

    def consume_offers(
        self, scheduler: BaseScheduler, driver: SchedulerDriver, offers: Sequence[Offer]
    ) -> None:
        """Decline every offer; a policy that places nothing keeps no resources."""
        scheduler.log_offers_received(offers)
        for offer in offers:
            scheduler.environment.update(offer)
            if self._decline_when_shut_down(scheduler, driver, offer):
                continue
            scheduler.log_insufficient_resources_decline_offer(offer)
            driver.decline_offer(offer.id, DEFAULT_FILTER)

    def get_info(self) -> PolicyInfo:
        """The policy's characteristics and round-robin links."""
        return PolicyInfo(
            task_dist=self.task_distribution,
            var_cpu_share=self.variance_cpu_share_per_task,
            next_policy_name=self.next_policy_name,
            prev_policy_name=self.prev_policy_name,
        )

    def update_links(self, next_name: str, prev_name: str) -> None:
        """Set the names of the next and previous policy in round-robin order."""
        self.next_policy_name = next_name
        self.prev_policy_name = prev_name

    def switch_if_necessary(self, scheduler: BaseScheduler) -> None:
        """Switch the scheduler to another policy when switching is on and the window is done."""
        if not scheduler.sched_pol_switch_enabled:
            return

        new_window_size = 0
        if not scheduler.to_fix_sched_window:
            new_window_size, scheduler.num_tasks_in_sched_window = (
                scheduler.sched_window_res_strategy.apply(
                    scheduler.tasks, scheduler.tracker.clusterwide()
                )
            )

        window_open = (
            scheduler.sched_window_size > 0
            if scheduler.to_fix_sched_window
            else new_window_size > 0
        )
        if not window_open:
            self._log_continuing(scheduler)
            return

        if not scheduler.has_received_resource_offers:
            if not scheduler.to_fix_sched_window:
                scheduler.sched_window_size = new_window_size
            if scheduler.name_of_fst_sched_pol_to_deploy:
                switch_to = scheduler.name_of_fst_sched_pol_to_deploy
            else:
                switch_to = SWITCH_CRITERIA[scheduler.sched_pol_switch_criteria](scheduler)
        elif self.num_tasks_scheduled >= scheduler.sched_window_size:
            if not scheduler.to_fix_sched_window:
                scheduler.sched_window_size = new_window_size
            switch_to = SWITCH_CRITERIA[scheduler.sched_pol_switch_criteria](scheduler)
        else:
            self._log_continuing(scheduler)
            return

        next_policy = _registry_of(scheduler)[switch_to]
        scheduler.log_sched_policy_switch(switch_to, next_policy)
        scheduler.switch_sched_pol(next_policy)
        self.num_tasks_scheduled = 0

    # Helpers shared by the concrete policies.

    def _log_continuing(self, scheduler: BaseScheduler) -> None:
        console.info("Continuing with the current scheduling policy...")
        console.info(
            "TasksScheduled=%d SchedWindowSize=%d",
            self.num_tasks_scheduled,
            scheduler.sched_window_size,
        )

    def _window_full(self, scheduler: BaseScheduler) -> bool:
        """Whether switching is on and this policy has filled the scheduling window."""
        return (
            scheduler.sched_pol_switch_enabled
            and self.num_tasks_scheduled >= scheduler.sched_window_size
        )

    def _decline_when_shut_down(
        self, scheduler: BaseScheduler, driver: SchedulerDriver, offer: Offer
    ) -> bool:
        """Decline ``offer`` for long when nothing is left to schedule; return whether it was."""
        if not scheduler.shutdown.is_set():
            return False
        scheduler.log_no_pending_tasks_decline_offers(offer)
        driver.decline_offer(offer.id, LONG_FILTER)
        scheduler.log_number_of_running_tasks()
        return True

    def _mark_scheduled(self, scheduler: BaseScheduler, index: int, task: Task) -> None:
        """Count one launched instance; drop the task once all its instances are out."""
        task.instances -= 1
        self.num_tasks_scheduled += 1
        if task.instances <= 0:
            del scheduler.tasks[index]
            if not scheduler.tasks:
                scheduler.log_terminate_scheduler()
                scheduler.shutdown.set()


class PolicyRegistry:
    """The available policies by name, and those set up for switching."""

    def __init__(self, policies: Mapping[str, SchedPolicy]) -> None:
        self._policies: dict[str, SchedPolicy] = dict(policies)
        self._to_switch: list[tuple[str, SchedPolicy]] = []
        for policy in self._policies.values():
            policy.registry = self

    def __getitem__(self, name: str) -> SchedPolicy:
        return self._policies[name]

    def __contains__(self, name: object) -> bool:
        return name in self._policies

    def __iter__(self) -> Iterator[str]:
        return iter(self._policies)

    def __len__(self) -> int:
        return len(self._policies)

    @property
    def to_switch(self) -> list[tuple[str, SchedPolicy]]:
        """Policies with a non-zero task distribution, in non-decreasing order of it."""
        return list(self._to_switch)

    def configure(self, characteristics: Mapping[str, Mapping[str, float]]) -> None:
        """Set each policy's ``taskDist`` and ``varCpuShare`` and link them for switching.

        A policy missing from ``characteristics`` gets zeros and takes no
        part in switching.
        """
        for name, policy in self._policies.items():
            values = characteristics.get(name, {})
            policy.task_distribution = float(values.get("taskDist", 0.0))
            policy.variance_cpu_share_per_task = float(values.get("varCpuShare", 0.0))

        ordered = sort_by_value(
            pair_list(
                {name: policy.task_distribution for name, policy in self._policies.items()}
            )
        )
        self._to_switch = [
            (pair.key, self._policies[pair.key]) for pair in ordered if pair.value != 0
        ]

        count = len(self._to_switch)
        for position, (_, policy) in enumerate(self._to_switch):
            prev_name = self._to_switch[position - 1][0]
            next_name = self._to_switch[(position + 1) % count][0]
            policy.update_links(next_name, prev_name)


def _registry_of(scheduler: BaseScheduler) -> PolicyRegistry:
    registry = getattr(scheduler.cur_sched_policy, "registry", None)
    if registry is None:
        raise RuntimeError("the current scheduling policy belongs to no registry")
    return registry


def _switch_candidates(scheduler: BaseScheduler) -> list[tuple[str, SchedPolicy]]:
    candidates = _registry_of(scheduler).to_switch
    if not candidates:
        raise RuntimeError("no scheduling policies are configured for switching")
    return candidates


def _closest(candidates: list[tuple[str, SchedPolicy]], task_dist: float) -> str:
    dists = [policy.task_distribution for _, policy in candidates]
    if task_dist < dists[0]:
        return candidates[0][0]
    if task_dist > dists[-1]:
        return candidates[-1][0]
    low, high = 0, len(dists) - 1
    while low <= high:
        mid = (low + high) // 2
        if task_dist < dists[mid]:
            high = mid - 1
        elif task_dist > dists[mid]:
            low = mid + 1
        else:
            return candidates[mid][0]
    low_diff = dists[low] - task_dist
    high_diff = task_dist - dists[high]
    # Equidistant neighbours resolve to the lower one.
    return candidates[low][0] if high_diff > low_diff else candidates[high][0]


def switch_task_dist_based(scheduler: BaseScheduler) -> str:
    """Pick the policy whose task distribution is closest to that of the window.

    When the window's tasks fall into a single class the distribution is
    undefined and bin-packing is chosen.
    """
    if scheduler.task_distribution is None:
        raise RuntimeError("no task distribution function configured")
    start = time.perf_counter()
    try:
        task_dist: float | None = scheduler.task_distribution(
            scheduler.sched_window_size, scheduler.tasks
        )
    except ValueError:
        task_dist = None
    scheduler.log_clsfn_and_task_dist_overhead(time.perf_counter() - start)
    console.info("Switching... Task Distribution=%f", task_dist or 0.0)
    if task_dist is None:
        return BIN_PACKING
    return _closest(_switch_candidates(scheduler), task_dist)


def switch_round_robin(scheduler: BaseScheduler) -> str:
    """The next policy in round-robin order; the first one before any offer."""
    if not scheduler.has_received_resource_offers:
        return _switch_candidates(scheduler)[0][0]
    return scheduler.cur_sched_policy.get_info().next_policy_name


def switch_rev_round_robin(scheduler: BaseScheduler) -> str:
    """The previous policy in round-robin order; the last one before any offer."""
    if not scheduler.has_received_resource_offers:
        return _switch_candidates(scheduler)[-1][0]
    return scheduler.cur_sched_policy.get_info().prev_policy_name


SWITCH_CRITERIA: dict[str, Callable[[BaseScheduler], str]] = {
    "taskDist": switch_task_dist_based,
    "round-robin": switch_round_robin,
    "rev-round-robin": switch_rev_round_robin,
}