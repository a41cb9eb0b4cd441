"""The scheduler that reacts to cluster-manager callbacks and delegates offers to a policy."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from elektron.offers import DEFAULT_FILTER, Environment, Filters, Offer, Resource, offer_agg, power_class
from elektron.resources import ON_TASK_ACTIVE_STATE, ON_TASK_TERMINAL_STATE, ResourceUsageTracker
from elektron.states import TaskState, is_terminal, name_for
from elektron.tasks import Task
from elektron.window import RESIZING_STRATEGIES, FillNextOfferCycle

console = logging.getLogger("elektron.console")
sched_trace = logging.getLogger("elektron.sched_trace")
sps_log = logging.getLogger("elektron.sps")
sched_window_log = logging.getLogger("elektron.sched_window")
overhead_log = logging.getLogger("elektron.clsfn_taskdistr_overhead")


@dataclass
class TaskInfo:
    """A task ready to be launched on an agent in a docker container."""

    name: str
    task_id: str
    slave_id: str
    resources: list[Resource]
    command: str
    image: str
    container_type: str = "DOCKER"
    network: str = "BRIDGE"


@dataclass(frozen=True)
class TaskStatus:
    """A status update for one task."""

    task_id: str
    slave_id: str
    state: int


class SchedulerDriver(Protocol):
    """What the scheduler needs from the driver that talks to the master."""

    def launch_tasks(
        self, offer_ids: Sequence[str], tasks: Sequence[TaskInfo], filters: Filters
    ) -> Any: ...

    def decline_offer(self, offer_id: str, filters: Filters) -> Any: ...


class _Policy(Protocol):
    def switch_if_necessary(self, scheduler: BaseScheduler) -> None: ...

    def consume_offers(
        self, scheduler: BaseScheduler, driver: SchedulerDriver, offers: list[Offer]
    ) -> None: ...


def _default_watts_to_consider(task: Task, class_map_watts: bool, offer: Offer) -> float:
    """Watts of the task, per power class of the offering host when mapping is on."""
    if class_map_watts:
        cls = power_class(offer)
        try:
            return task.class_to_watts[cls]
        except KeyError:
            raise KeyError(
                f"no watts given for power class {cls!r} of task {task.name}"
            ) from None
    return task.watts


@dataclass(eq=False)
class BaseScheduler:
    """Holds the task queue and cluster state and hands offers to the current policy."""

    tasks: list[Task] = field(default_factory=list)
    cur_sched_policy: _Policy | None = None
    watts_as_a_resource: bool = False
    class_map_watts: bool = False
    shutdown: threading.Event = field(default_factory=threading.Event)
    done: threading.Event = field(default_factory=threading.Event)
    pcp_log: threading.Event = field(default_factory=threading.Event)
    record_pcp: threading.Event = field(default_factory=threading.Event)
    sched_pol_switch_enabled: bool = False
    sched_pol_switch_criteria: str = "taskDist"
    name_of_fst_sched_pol_to_deploy: str = ""
    to_fix_sched_window: bool = False
    sched_window_size: int = 0
    num_tasks_in_sched_window: int = 0
    watts_to_consider: Callable[[Task, bool, Offer], float] = _default_watts_to_consider
    task_distribution: Callable[[int, list[Task]], float] | None = None
    sort_key: Callable[[Task], Any] | None = None
    tracker: ResourceUsageTracker = field(default_factory=ResourceUsageTracker)
    environment: Environment = field(default_factory=Environment)
    sched_window_res_strategy: FillNextOfferCycle = field(
        default_factory=lambda: RESIZING_STRATEGIES["fillNextOfferCycle"]
    )
    record_delay: float = 1.0

    tasks_created: int = field(default=0, init=False)
    tasks_running: int = field(default=0, init=False)
    running: dict[str, set[str]] = field(default_factory=dict, init=False)
    host_name_to_slave_id: dict[str, str] = field(default_factory=dict, init=False)
    has_received_resource_offers: bool = field(default=False, init=False)
    _running_lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )

    def switch_sched_pol(self, policy: _Policy) -> None:
        """Make ``policy`` the one that consumes offers from now on."""
        self.cur_sched_policy = policy

    def new_task(self, offer: Offer, task: Task) -> TaskInfo:
        """Build the launch description of the next instance of ``task`` on ``offer``."""
        task_name = f"{task.name}-{task.instances}"
        self.tasks_created += 1

        if not self.record_pcp.is_set():
            self.record_pcp.set()
            # Give the recorder time to start before the first task runs.
            if self.record_delay > 0:
                time.sleep(self.record_delay)

        resources = [Resource("cpus", task.cpu), Resource("mem", task.ram)]
        watts = 0.0
        if self.watts_as_a_resource:
            try:
                watts = self.watts_to_consider(task, self.class_map_watts, offer)
            except (KeyError, ValueError) as err:
                self.log_electron_error(err)
            else:
                self.log_task_watts_consideration(task, offer.hostname, watts)
                resources.append(Resource("watts", watts))

        task_id = "electron-" + task_name
        self.tracker.register_requirement(task_id, task.cpu, task.ram, watts)
        return TaskInfo(
            name=task_name,
            task_id=task_id,
            slave_id=offer.slave_id,
            resources=resources,
            command=task.cmd,
            image=task.image,
        )

    def launch_tasks(
        self, offer_ids: Sequence[str], tasks: Sequence[TaskInfo], driver: SchedulerDriver
    ) -> None:
        """Launch ``tasks`` on the given offers and mark their resources as used."""
        driver.launch_tasks(list(offer_ids), list(tasks), DEFAULT_FILTER)
        for task in tasks:
            try:
                self.tracker.update(ON_TASK_ACTIVE_STATE, task.task_id, task.slave_id)
            except KeyError as err:
                console.debug("resource availability not updated: %s", err)

    def offer_rescinded(self, driver: SchedulerDriver, offer_id: str) -> None:
        console.error("OFFER RESCINDED OfferID=%s", offer_id)

    def slave_lost(self, driver: SchedulerDriver, slave_id: str) -> None:
        console.error("SLAVE LOST SlaveID=%s", slave_id)

    def executor_lost(
        self, driver: SchedulerDriver, executor_id: str, slave_id: str, status: int
    ) -> None:
        console.error("EXECUTOR LOST ExecutorID=%s SlaveID=%s", executor_id, slave_id)

    def error(self, driver: SchedulerDriver, message: str) -> None:
        console.error("MESOS CONSOLE %s", message)

    def framework_message(
        self, driver: SchedulerDriver, executor_id: str, slave_id: str, message: str
    ) -> None:
        console.info("Received Framework message from executor %s", executor_id)

    def registered(
        self, driver: SchedulerDriver, framework_id: str, master_info: object
    ) -> None:
        console.info(
            "FRAMEWORK REGISTERED! frameworkID=%s master=%s", framework_id, master_info
        )

    def reregistered(self, driver: SchedulerDriver, master_info: object) -> None:
        console.info("Framework re-registered master=%s", master_info)

    def disconnected(self, driver: SchedulerDriver) -> None:
        console.warning("Framework disconnected with master")

    def resource_offers(self, driver: SchedulerDriver, offers: Iterable[Offer]) -> None:
        """Record the offers, let the policy switch if needed, and have it consume them."""
        if self.cur_sched_policy is None:
            raise RuntimeError("no scheduling policy set")
        offers = list(offers)
        self.tracker.record_total_availability(offers)
        for offer in offers:
            self.host_name_to_slave_id.setdefault(offer.hostname, offer.slave_id)
        self.cur_sched_policy.switch_if_necessary(self)
        # The policy may have been switched just above.
        self.cur_sched_policy.consume_offers(self, driver, offers)
        self.has_received_resource_offers = True

    def status_update(self, driver: SchedulerDriver, status: TaskStatus) -> None:
        """Track running tasks and signal completion once everything has finished."""
        self.log_task_status_update(status)
        if status.state == TaskState.TASK_RUNNING:
            with self._running_lock:
                self.running.setdefault(status.slave_id, set()).add(status.task_id)
                self.tasks_running += 1
        elif is_terminal(status.state):
            try:
                self.tracker.update(ON_TASK_TERMINAL_STATE, status.task_id, status.slave_id)
            except KeyError as err:
                console.debug("resource availability not updated: %s", err)
            with self._running_lock:
                self.running.get(status.slave_id, set()).discard(status.task_id)
                self.tasks_running -= 1
            if self.tasks_running == 0 and self.shutdown.is_set():
                self.done.set()

    # Log messages shared by the scheduling policies.

    def log_task_starting(self, task: Task | None, offer: Offer) -> None:
        if task is None:
            console.info("TASKS STARTING... host=%s", offer.hostname)
        else:
            console.info(
                "TASK STARTING... task=%s Instance=%d host=%s",
                task.name,
                task.instances,
                offer.hostname,
            )

    def log_task_watts_consideration(self, task: Task, host: str, watts: float) -> None:
        console.info("Watts considered for task=%s host=%s Watts=%f", task.name, host, watts)

    def log_offers_received(self, offers: Sequence[Offer]) -> None:
        console.info("Resource offers received numOffers=%d", len(offers))

    def log_no_pending_tasks_decline_offers(self, offer: Offer) -> None:
        console.warning(
            "DECLINING OFFER for host %s. No tasks left to schedule", offer.hostname
        )

    def log_number_of_running_tasks(self) -> None:
        console.info("Number of tasks still running %d", self.tasks_running)

    def log_co_located_tasks(self, slave_id: str) -> None:
        with self._running_lock:
            names = "".join(f"{name}\n" for name in self.running.get(slave_id, ()))
        console.info("Colocated with Tasks=%s", names)

    def log_sched_trace(self, task_info: TaskInfo, offer: Offer) -> None:
        sched_trace.info("%s=%s", offer.hostname, task_info.task_id)

    def log_terminate_scheduler(self) -> None:
        console.info("Done scheduling all tasks!")

    def log_insufficient_resources_decline_offer(self, offer: Offer) -> None:
        cpus, mem, watts = offer_agg(offer)
        console.warning(
            "DECLINING OFFER... Offer has insufficient resources to launch a task "
            "Offer Resources=<CPU: %f, RAM: %f, Watts: %f>",
            cpus,
            mem,
            watts,
        )

    def log_electron_error(self, err: BaseException) -> None:
        console.error("ELEKTRON CONSOLE %s", err)

    def log_task_status_update(self, status: TaskStatus) -> None:
        level = (
            logging.ERROR
            if status.state
            in (
                TaskState.TASK_ERROR,
                TaskState.TASK_FAILED,
                TaskState.TASK_KILLED,
                TaskState.TASK_LOST,
            )
            else logging.INFO
        )
        console.log(
            level,
            "Task Status received task=%s state=%s",
            status.task_id,
            name_for(status.state),
        )

    def log_sched_policy_switch(self, name: str, next_policy: object) -> None:
        if not self.has_received_resource_offers or self.cur_sched_policy is not next_policy:
            sps_log.info("Name=%s", name)
        sched_window_log.info("Window size=%d Name=%s", self.sched_window_size, name)

    def log_clsfn_and_task_dist_overhead(self, seconds: float) -> None:
        overhead_log.info("Overhead in microseconds=%f", seconds * 1_000_000.0)