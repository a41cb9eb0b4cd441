# elektron

A library of pluggable scheduling policies for frameworks that receive
resource offers from a cluster manager. Each offer describes the CPU, memory
and, optionally, watts available on one host. A policy decides which pending
tasks to launch on which offers and declines the rest.

The package has no dependencies outside the standard library.

## Scheduling policies

All policies live in a `PolicyRegistry`; `elektron.store.default_registry()`
returns one holding a fresh instance of each:

- `first-fit` (`elektron.first_fit.FirstFit`): launches on each offer the
  first queued task whose needs the offer covers, at most one task per offer.
- `bin-packing` (`elektron.packing.BinPackSortedWatts`): orders the queue by
  watts and packs as many instances as fit into each offer, lightest first.
- `max-min` (`elektron.packing.MaxMin`): alternates between the heaviest and
  the lightest task that still fits the offer.
- `max-greedymins` (`elektron.packing.MaxGreedyMins`): places the heaviest
  task that fits, then fills the rest of the offer with the lightest ones.

The packing policies sort the queue by `Task.watts` unless a `sort_key` is
given. When policy switching is on, only the first
`num_tasks_in_sched_window` tasks are sorted.

An offer is declined with a one-second filter when nothing is placed on it,
and with a 1000-second filter once every task has been scheduled.

## Building a scheduler

```python
from elektron.store import sched_factory
from elektron.tasks import Task

tasks = [
    Task(name="minife", cpu=3.0, ram=4096.0, watts=50.0, instances=2,
         image="example/minife", cmd="run.sh"),
]

scheduler = sched_factory(tasks, sched_policy="bin-packing")
```

`sched_factory` checks its options and raises
`elektron.store.SchedulerConfigError` for an unknown policy name, an unknown
switching criterion, an unknown first policy, a fixed window size that is not
positive, or `tasks=None`. Its keyword arguments are `sched_policy`,
`watts_as_a_resource`, `class_map_watts`, `sched_pol_switch_enabled`,
`switch_criteria`, `first_sched_pol`, `fix_sched_window`,
`sched_window_size`, `registry`, `watts_to_consider`, `task_distribution`
and `sort_key`. The switching options only apply when
`sched_pol_switch_enabled` is set.

With `watts_as_a_resource`, an offer must also hold the task's watts. By
default a task's watts are `Task.watts`; with `class_map_watts` they are
looked up in `Task.class_to_watts` under the power class the offering host
advertises in its `class` attribute. Pass `watts_to_consider(task,
class_map_watts, offer)` to compute them differently.

## Driving the scheduler

The `BaseScheduler` (in `elektron.base`) reacts to the callbacks a driver
delivers: `resource_offers`, `status_update`, `offer_rescinded`,
`slave_lost`, `executor_lost`, `error`, `framework_message`, `registered`,
`reregistered` and `disconnected`. The driver you pass in must provide the
two methods of the `SchedulerDriver` protocol:

```python
from elektron.offers import Offer, Resource
from elektron.base import TaskStatus
from elektron.states import TaskState


class PrintingDriver:
    def launch_tasks(self, offer_ids, tasks, filters):
        for task in tasks:
            print("launch", task.task_id, "on", task.slave_id)

    def decline_offer(self, offer_id, filters):
        print("decline", offer_id, "for", filters.refuse_seconds, "s")


driver = PrintingDriver()
scheduler.record_delay = 0  # skip the pause before the first launch

offer = Offer(id="offer-1", hostname="node1", slave_id="agent-1",
              resources=[Resource("cpus", 8.0), Resource("mem", 16384.0)])
scheduler.resource_offers(driver, [offer])

scheduler.status_update(driver, TaskStatus("electron-minife-2", "agent-1",
                                           TaskState.TASK_RUNNING))
```

Launched tasks are `TaskInfo` objects named `<task>-<instances left>` with
ids `electron-<name>`, to be run in a docker container on a bridge network.
The scheduler's `shutdown` event is set once every instance has been
scheduled, and its `done` event once, after that, no task is running any
more. `record_pcp` is set just before the first task is created.

## Switching policies at run time

Load each policy's characteristics from a JSON file of this form:

```json
{
  "first-fit":      {"taskDist": 0.5, "varCpuShare": 0.2},
  "bin-packing":    {"taskDist": 2.0, "varCpuShare": 0.3},
  "max-min":        {"taskDist": 1.0, "varCpuShare": 0.1},
  "max-greedymins": {"taskDist": 1.5, "varCpuShare": 0.1}
}
```

```python
from elektron.store import default_registry, init_sched_policy_characteristics, sched_factory

registry = default_registry()
init_sched_policy_characteristics(registry, "schedPolConfig.json")

scheduler = sched_factory(tasks, registry=registry,
                          sched_pol_switch_enabled=True,
                          switch_criteria="round-robin")
```

Only policies with a non-zero `taskDist` take part in switching, linked in
ascending order of it. The criteria are:

- `taskDist`: picks the policy whose `taskDist` is closest to the
  distribution of the current window, as computed by the
  `task_distribution(window_size, tasks)` function you supply; if that
  function raises `ValueError`, `bin-packing` is chosen.
- `round-robin` and `rev-round-robin`: the next or previous policy in that
  order.

A policy is switched out once it has scheduled a whole window. The window is
sized by `elektron.window.FillNextOfferCycle` from the cluster's unused
resources, or fixed with `fix_sched_window` and `sched_window_size`.
`first_sched_pol` names the policy to deploy first.

## Utilities

- `elektron.offers`: `Offer`, `Resource`, `Attribute`, `Filters`,
  `offer_agg`, `power_class`, `host_mismatch`, `sort_offers_by_cpu`, and
  `Environment`, which tracks known hosts and their power classes.
- `elektron.resources`: `ResourceUsageTracker` and `ResourceCount`, per-host
  total and unused resources.
- `elektron.tasks`: `Task` and `sort_n_tasks`.
- `elektron.runavg`: a sliding-window running average over items with `id`
  and `value` (`RunningAverage`, and the shared-window `calc`, `remove`,
  `init`).
- `elektron.states`: `TaskState`, `name_for`, `is_terminal`.
- `elektron.pairs`: `Pair`, `pair_list`, `sort_by_value`.
- `elektron.validation`: `validate` calls validators in turn and raises
  `ValidationError` on the first that raises.

Log messages go through the standard `logging` module, under the loggers
`elektron.console`, `elektron.sched_trace`, `elektron.sps`,
`elektron.sched_window` and `elektron.clsfn_taskdistr_overhead`.

## What the package does not do

- It has no command-line program and no driver: connecting to a cluster
  manager, registering the framework and delivering callbacks is left to
  the code that uses it.
- It does not read task definitions from files; build `Task` objects
  yourself.
- It does not classify tasks to compute a task distribution; supply
  `task_distribution` for the `taskDist` criterion.
- It does not record power readings or cap power.

## Tests

```
pip install -e ".[test]"
pytest
```