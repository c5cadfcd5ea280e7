import pytest

from engine.scheduler import RunScheduler


def test_run_for_drives_ticks_and_stops():
    calls = []
    scheduler = RunScheduler(lambda: calls.append(1) or True)
    assert scheduler.run_for(5) == 5
    assert len(calls) == 5
    assert scheduler.ticks == 5
    assert not scheduler.is_running()


def test_failed_step_stops_loop():
    calls = []

    def step():
        calls.append(1)
        return len(calls) < 3

    scheduler = RunScheduler(step)
    assert scheduler.run_for(10) == 3
    assert not scheduler.is_running()


def test_host_primitive_rearms_while_running():
    pending = []
    steps = []
    scheduler = RunScheduler(lambda: steps.append(1) or True, arm=pending.append)

    scheduler.start()
    scheduler.start()
    assert len(pending) == 1

    pending.pop()()
    assert len(steps) == 1
    assert len(pending) == 1

    scheduler.stop()
    pending.pop()()
    assert len(steps) == 1
    assert pending == []


def test_run_for_rejects_host_driven_scheduler():
    scheduler = RunScheduler(lambda: True, arm=lambda cb: None)
    with pytest.raises(RuntimeError):
        scheduler.run_for(1)


def test_tick_without_start_does_nothing():
    steps = []
    scheduler = RunScheduler(lambda: steps.append(1) or True)
    scheduler.tick()
    assert steps == []


def test_on_stop_fires_once_when_a_step_fails():
    stops = []
    pending = []
    scheduler = RunScheduler(lambda: False, arm=pending.append, on_stop=lambda: stops.append(1))
    scheduler.start()
    pending.pop()()
    assert not scheduler.is_running()
    assert pending == []
    scheduler.stop()
    assert stops == [1]
