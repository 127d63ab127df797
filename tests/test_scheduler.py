"""Tests for the tick scheduler."""

import pytest

from commuter_evacuation.core.scheduler import Scheduler


def test_clock_starts_before_tick_zero():
    scheduler = Scheduler()
    assert scheduler.current_tick == -1
    scheduler.step()
    assert scheduler.current_tick == 0


def test_events_fire_by_tick_then_order_then_registration():
    scheduler = Scheduler()
    fired = []
    scheduler.schedule_once(lambda: fired.append('late'), 2)
    scheduler.schedule_once(lambda: fired.append('second'), 1, order=5)
    scheduler.schedule_once(lambda: fired.append('first'), 1, order=0)
    scheduler.schedule_once(lambda: fired.append('first-b'), 1, order=0)
    scheduler.run(2)
    assert fired == ['first', 'first-b', 'second', 'late']


def test_repeating_event_keeps_relative_order():
    scheduler = Scheduler()
    fired = []
    scheduler.schedule_repeating(lambda: fired.append(('a', scheduler.current_tick)), start_tick=0)
    scheduler.schedule_repeating(lambda: fired.append(('b', scheduler.current_tick)), start_tick=0)
    scheduler.run(1)
    assert fired == [('a', 0), ('b', 0), ('a', 1), ('b', 1)]


def test_repeating_interval_and_stop():
    scheduler = Scheduler()
    ticks = []
    handle = scheduler.schedule_repeating(lambda: ticks.append(scheduler.current_tick), start_tick=1, every=3)
    scheduler.run(7)
    assert ticks == [1, 4, 7]
    handle.stop()
    scheduler.run(20)
    assert ticks == [1, 4, 7]
    assert scheduler.pending() == 0


def test_cannot_schedule_in_the_past():
    scheduler = Scheduler()
    scheduler.run(5)
    with pytest.raises(ValueError):
        scheduler.schedule_once(lambda: None, 5)
    with pytest.raises(ValueError):
        scheduler.schedule_repeating(lambda: None, every=0)


def test_repeating_start_moves_to_next_tick():
    scheduler = Scheduler()
    scheduler.run(5)
    ticks = []
    scheduler.schedule_repeating(lambda: ticks.append(scheduler.current_tick), start_tick=0)
    scheduler.step()
    assert ticks == [6]


def test_inconsistent_day_rejected():
    with pytest.raises(ValueError):
        Scheduler(ticks_per_day=100, minutes_per_tick=5)


def test_time_of_day():
    scheduler = Scheduler()
    assert scheduler.time_of_day(0) == (0, 0, 0)
    assert scheduler.time_of_day(100) == (0, 8, 20)
    assert scheduler.time_of_day(288 + 13) == (1, 1, 5)


def test_next_occurrence_same_day():
    scheduler = Scheduler()
    assert scheduler.get_next_occurrence(8, 0, from_tick=0) == 96


def test_next_occurrence_rolls_to_next_day():
    scheduler = Scheduler()
    assert scheduler.get_next_occurrence(8, 0, from_tick=100) == 288 + 96


def test_next_occurrence_at_current_time():
    scheduler = Scheduler()
    assert scheduler.get_next_occurrence(8, 20, from_tick=100) == 100


def test_next_occurrence_rounds_minutes_down():
    scheduler = Scheduler()
    assert scheduler.get_next_occurrence(0, 7, from_tick=0) == 1


def test_clear_drops_everything():
    scheduler = Scheduler()
    fired = []
    scheduler.schedule_repeating(lambda: fired.append(1))
    scheduler.clear()
    scheduler.run(3)
    assert fired == []
