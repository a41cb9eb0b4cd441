import pytest

from elektron.offers import Offer, Resource
from elektron.resources import (
    ON_TASK_ACTIVE_STATE,
    ON_TASK_TERMINAL_STATE,
    ResourceCount,
    ResourceUsageTracker,
)


def _offer(slave, cpus, mem, watts):
    return Offer(
        id=f"offer-{slave}",
        hostname=f"host-{slave}",
        slave_id=slave,
        resources=[
            Resource("cpus", cpus),
            Resource("mem", mem),
            Resource("watts", watts),
        ],
    )


@pytest.fixture
def tracker():
    t = ResourceUsageTracker()
    t.record_total_availability([_offer("s1", 8.0, 1024.0, 100.0), _offer("s2", 4.0, 512.0, 50.0)])
    t.register_requirement("task-1", 2.0, 256.0, 25.0)
    return t


def test_record_sets_total_and_unused(tracker):
    count = tracker.per_host()["s1"]
    assert count == ResourceCount(8.0, 1024.0, 100.0, 8.0, 1024.0, 100.0)


def test_second_offer_does_not_overwrite(tracker):
    tracker.record_total_availability([_offer("s1", 1.0, 1.0, 1.0)])
    assert tracker.per_host()["s1"].total_cpu == 8.0


def test_active_then_terminal_round_trip(tracker):
    before = tracker.per_host()["s1"].unused_cpu
    tracker.update(ON_TASK_ACTIVE_STATE, "task-1", "s1")
    assert tracker.per_host()["s1"].unused_cpu == before - 2.0
    assert tracker.per_host()["s1"].unused_ram == 1024.0 - 256.0
    tracker.update(ON_TASK_TERMINAL_STATE, "task-1", "s1")
    assert tracker.per_host()["s1"].unused_cpu == before
    assert tracker.per_host()["s1"].unused_watts == 100.0


def test_clusterwide_sums_hosts(tracker):
    total = tracker.clusterwide()
    hosts = tracker.per_host().values()
    assert total.total_cpu == sum(c.total_cpu for c in hosts)
    assert total.unused_ram == sum(c.unused_ram for c in hosts)
    assert total.total_watts == 150.0


def test_unknown_scenario_raises(tracker):
    with pytest.raises(ValueError):
        tracker.update("ON_SOMETHING", "task-1", "s1")


def test_unknown_task_raises(tracker):
    with pytest.raises(KeyError):
        tracker.update(ON_TASK_ACTIVE_STATE, "missing", "s1")


def test_unrecorded_slave_raises(tracker):
    with pytest.raises(KeyError):
        tracker.update(ON_TASK_ACTIVE_STATE, "task-1", "s9")


def test_resource_count_incr_decr_inverse():
    count = ResourceCount(unused_cpu=3.0, unused_ram=30.0, unused_watts=300.0)
    count.decr_unused(1.0, 10.0, 100.0)
    count.incr_unused(1.0, 10.0, 100.0)
    assert (count.unused_cpu, count.unused_ram, count.unused_watts) == (3.0, 30.0, 300.0)


def test_empty_tracker_clusterwide_is_zero():
    assert ResourceUsageTracker().clusterwide() == ResourceCount()