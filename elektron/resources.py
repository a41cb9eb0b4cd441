"""Tracking of total and unused resources on each host of the cluster."""

from __future__ import annotations

import threading
from collections.abc import Iterable
from dataclasses import dataclass

from elektron.offers import Offer, offer_agg

ON_TASK_TERMINAL_STATE = "ON_TASK_TERMINAL_STATE"
ON_TASK_ACTIVE_STATE = "ON_TASK_ACTIVE_STATE"


@dataclass
class ResourceCount:
    """Total and currently unused cpu, ram and watts."""

    total_cpu: float = 0.0
    total_ram: float = 0.0
    total_watts: float = 0.0
    unused_cpu: float = 0.0
    unused_ram: float = 0.0
    unused_watts: float = 0.0

    def incr_unused(self, cpu: float, ram: float, watts: float) -> None:
        """Give resources back to the unused pool."""
        self.unused_cpu += cpu
        self.unused_ram += ram
        self.unused_watts += watts

    def decr_unused(self, cpu: float, ram: float, watts: float) -> None:
        """Take resources out of the unused pool."""
        self.unused_cpu -= cpu
        self.unused_ram -= ram
        self.unused_watts -= watts


class ResourceUsageTracker:
    """Per-host resource availability, updated as tasks start and stop."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._per_host: dict[str, ResourceCount] = {}
        self._requirements: dict[str, tuple[float, float, float]] = {}

    def record_total_availability(self, offers: Iterable[Offer]) -> None:
        """Record the resources of each agent the first time it makes an offer."""
        with self._lock:
            for offer in offers:
                if offer.slave_id in self._per_host:
                    continue
                cpu, mem, watts = offer_agg(offer)
                self._per_host[offer.slave_id] = ResourceCount(
                    total_cpu=cpu,
                    total_ram=mem,
                    total_watts=watts,
                    unused_cpu=cpu,
                    unused_ram=mem,
                    unused_watts=watts,
                )

    def register_requirement(
        self, task_id: str, cpu: float, ram: float, watts: float
    ) -> None:
        """Remember what the task with ``task_id`` needs."""
        with self._lock:
            self._requirements[task_id] = (cpu, ram, watts)

    def update(self, scenario: str, task_id: str, slave_id: str) -> None:
        """Adjust the unused resources of ``slave_id`` for the given scenario.

        ValueError for an unknown scenario; KeyError when the task's
        requirement or the agent's availability has not been recorded.
        """
        if scenario == ON_TASK_TERMINAL_STATE:
            release = True
        elif scenario == ON_TASK_ACTIVE_STATE:
            release = False
        else:
            raise ValueError(
                "Incorrect scenario specified for resource availability update: "
                + scenario
            )
        with self._lock:
            try:
                cpu, ram, watts = self._requirements[task_id]
            except KeyError:
                raise KeyError(f"no resource requirement recorded for {task_id}") from None
            try:
                count = self._per_host[slave_id]
            except KeyError:
                raise KeyError(
                    f"Resource Availability not recorded for {slave_id}"
                ) from None
            if release:
                count.incr_unused(cpu, ram, watts)
            else:
                count.decr_unused(cpu, ram, watts)

    def clusterwide(self) -> ResourceCount:
        """The sum of total and unused resources over all hosts."""
        total = ResourceCount()
        with self._lock:
            for count in self._per_host.values():
                total.total_cpu += count.total_cpu
                total.total_ram += count.total_ram
                total.total_watts += count.total_watts
                total.unused_cpu += count.unused_cpu
                total.unused_ram += count.unused_ram
                total.unused_watts += count.unused_watts
        return total

    def per_host(self) -> dict[str, ResourceCount]:
        """The resource count of each agent, keyed by agent id."""
        with self._lock:
            return dict(self._per_host)