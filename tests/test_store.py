import json

import pytest

from elektron.base import TaskStatus
from elektron.first_fit import FirstFit
from elektron.offers import LONG_FILTER, Offer, Resource
from elektron.packing import BinPackSortedWatts, MaxGreedyMins, MaxMin
from elektron.states import TaskState
from elektron.store import (
    SchedulerConfigError,
    default_registry,
    init_sched_policy_characteristics,
    sched_factory,
)
from elektron.tasks import Task


class RecordingDriver:
    def __init__(self):
        self.launched = []
        self.declined = []

    def launch_tasks(self, offer_ids, tasks, filters):
        self.launched.append((list(offer_ids), list(tasks), filters))

    def decline_offer(self, offer_id, filters):
        self.declined.append((offer_id, filters))


def _offer(offer_id="o1", host="host1", slave="s1", cpus=4.0, mem=1024.0):
    return Offer(
        offer_id,
        host,
        slave,
        [Resource("cpus", cpus), Resource("mem", mem)],
    )


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "spconfig.json"
    path.write_text(
        json.dumps(
            {
                "first-fit": {"taskDist": 0.5, "varCpuShare": 0.1},
                "bin-packing": {"taskDist": 0.2, "varCpuShare": 0.3},
                "max-min": {"taskDist": 0.8, "varCpuShare": 0.4},
                "max-greedymins": {"taskDist": 0},
            }
        )
    )
    return path


def test_default_registry_holds_all_policies():
    registry = default_registry()
    assert sorted(registry) == sorted(
        ["first-fit", "bin-packing", "max-greedymins", "max-min"]
    )
    assert isinstance(registry["first-fit"], FirstFit)
    assert isinstance(registry["bin-packing"], BinPackSortedWatts)
    assert isinstance(registry["max-min"], MaxMin)
    assert isinstance(registry["max-greedymins"], MaxGreedyMins)


def test_default_registry_is_fresh_each_time():
    first = default_registry()
    second = default_registry()
    assert first["first-fit"] is not second["first-fit"]


def test_init_characteristics_orders_and_links(config_file):
    registry = default_registry()
    init_sched_policy_characteristics(registry, config_file)
    names = [name for name, _ in registry.to_switch]
    assert names == ["bin-packing", "first-fit", "max-min"]
    info = registry["bin-packing"].get_info()
    assert info.task_dist == 0.2
    assert info.var_cpu_share == 0.3
    assert info.next_policy_name == "first-fit"
    assert info.prev_policy_name == "max-min"
    assert registry["max-min"].get_info().next_policy_name == "bin-packing"


def test_init_characteristics_missing_file(tmp_path):
    with pytest.raises(SchedulerConfigError, match="Error opening file"):
        init_sched_policy_characteristics(default_registry(), tmp_path / "absent.json")


@pytest.mark.parametrize("content", ["{not json", "[1, 2]", '{"first-fit": 3}'])
def test_init_characteristics_bad_content(tmp_path, content):
    path = tmp_path / "bad.json"
    path.write_text(content)
    with pytest.raises(SchedulerConfigError, match="Error unmarshalling"):
        init_sched_policy_characteristics(default_registry(), path)


def test_factory_defaults():
    registry = default_registry()
    tasks = [Task("a", cpu=1.0, ram=10.0)]
    scheduler = sched_factory(tasks, registry=registry)
    assert scheduler.cur_sched_policy is registry["first-fit"]
    assert scheduler.tasks == tasks
    assert scheduler.sched_pol_switch_enabled is False
    assert scheduler.watts_as_a_resource is False
    assert scheduler.sched_window_size == 0


def test_factory_rejects_unknown_policy():
    with pytest.raises(SchedulerConfigError, match="Incorrect scheduling policy."):
        sched_factory([], sched_policy="best-fit")


def test_factory_rejects_missing_tasks():
    with pytest.raises(SchedulerConfigError, match="empty"):
        sched_factory(None)


def test_factory_rejects_unknown_criteria():
    with pytest.raises(SchedulerConfigError, match="switching criteria"):
        sched_factory([], sched_pol_switch_enabled=True, switch_criteria="random")


def test_factory_ignores_criteria_when_switching_disabled():
    scheduler = sched_factory([], switch_criteria="random")
    assert scheduler.sched_pol_switch_criteria == "taskDist"


def test_factory_rejects_unknown_first_policy():
    with pytest.raises(SchedulerConfigError, match="Invalid name"):
        sched_factory([], sched_pol_switch_enabled=True, first_sched_pol="nope")


@pytest.mark.parametrize("size", [0, -3])
def test_factory_rejects_bad_fixed_window(size):
    with pytest.raises(SchedulerConfigError, match="window size"):
        sched_factory(
            [],
            sched_pol_switch_enabled=True,
            fix_sched_window=True,
            sched_window_size=size,
        )


def test_factory_fixed_window_and_first_policy():
    scheduler = sched_factory(
        [],
        sched_pol_switch_enabled=True,
        switch_criteria="round-robin",
        first_sched_pol="max-min",
        fix_sched_window=True,
        sched_window_size=5,
    )
    assert scheduler.sched_pol_switch_enabled is True
    assert scheduler.sched_pol_switch_criteria == "round-robin"
    assert scheduler.name_of_fst_sched_pol_to_deploy == "max-min"
    assert scheduler.to_fix_sched_window is True
    assert scheduler.sched_window_size == 5


def test_factory_unfixed_window_ignores_size():
    scheduler = sched_factory(
        [], sched_pol_switch_enabled=True, sched_window_size=-1
    )
    assert scheduler.to_fix_sched_window is False
    assert scheduler.sched_window_size == 0


def test_factory_watts_options_and_callables():
    def watts(task, class_map, offer):
        return 7.0

    def dist(size, tasks):
        return 1.0

    scheduler = sched_factory(
        [],
        watts_as_a_resource=True,
        class_map_watts=True,
        watts_to_consider=watts,
        task_distribution=dist,
    )
    assert scheduler.watts_as_a_resource is True
    assert scheduler.class_map_watts is True
    assert scheduler.watts_to_consider is watts
    assert scheduler.task_distribution is dist


def test_class_map_watts_needs_watts_as_a_resource():
    scheduler = sched_factory([], class_map_watts=True)
    assert scheduler.class_map_watts is False


def test_built_scheduler_launches_and_shuts_down():
    scheduler = sched_factory([Task("t", cpu=1.0, ram=100.0, instances=1)])
    scheduler.record_delay = 0
    driver = RecordingDriver()

    scheduler.resource_offers(driver, [_offer()])
    assert len(driver.launched) == 1
    offer_ids, infos, _ = driver.launched[0]
    assert offer_ids == ["o1"]
    assert [info.task_id for info in infos] == ["electron-t-1"]
    assert scheduler.tasks == []
    assert scheduler.shutdown.is_set()

    scheduler.resource_offers(driver, [_offer("o2")])
    assert driver.declined == [("o2", LONG_FILTER)]

    scheduler.status_update(driver, TaskStatus("electron-t-1", "s1", TaskState.TASK_RUNNING))
    assert not scheduler.done.is_set()
    scheduler.status_update(driver, TaskStatus("electron-t-1", "s1", TaskState.TASK_FINISHED))
    assert scheduler.done.is_set()


def test_switching_round_robin_picks_first_configured(config_file):
    registry = default_registry()
    init_sched_policy_characteristics(registry, config_file)
    scheduler = sched_factory(
        [Task("t", cpu=1.0, ram=100.0, instances=2)],
        sched_pol_switch_enabled=True,
        switch_criteria="round-robin",
        registry=registry,
    )
    scheduler.record_delay = 0
    scheduler.resource_offers(RecordingDriver(), [_offer()])
    assert scheduler.cur_sched_policy is registry["bin-packing"]


def test_switching_honours_first_policy(config_file):
    registry = default_registry()
    init_sched_policy_characteristics(registry, config_file)
    scheduler = sched_factory(
        [Task("t", cpu=1.0, ram=100.0, instances=2)],
        sched_pol_switch_enabled=True,
        switch_criteria="round-robin",
        first_sched_pol="max-min",
        registry=registry,
    )
    scheduler.record_delay = 0
    driver = RecordingDriver()
    scheduler.resource_offers(driver, [_offer()])
    assert scheduler.cur_sched_policy is registry["max-min"]
    launched = [info for _, infos, _ in driver.launched for info in infos]
    assert len(launched) == 2