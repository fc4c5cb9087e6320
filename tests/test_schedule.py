import pytest

from aquadose.exceptions import ValidationError
from aquadose.nutrients import DoseCategory
from aquadose.schedule import (
    DEFAULT_EI_SCHEDULE,
    SCHEDULE_STRATEGIES,
    EiSchedule,
    alternating_days,
    assemble_events,
    daily_target_days,
    distribute,
)
from aquadose.targets import DosingMethod


def test_distribute_examples():
    assert distribute(7) == [0, 1, 2, 3, 4, 5, 6]
    assert distribute(3) == [0, 2, 4]
    assert distribute(1) == [0]
    assert distribute(2) == [0, 3]


@pytest.mark.parametrize("n", range(1, 15))
def test_distribute_cardinality_and_order(n):
    days = distribute(n)
    assert len(days) == n
    assert all(0 <= d <= 6 for d in days)
    assert days == sorted(days)


@pytest.mark.parametrize("n", [0, -1, 2.5, True, "3"])
def test_distribute_rejects_invalid(n):
    with pytest.raises(ValidationError):
        distribute(n)


def test_default_ei_schedule():
    assert DEFAULT_EI_SCHEDULE.macro_days == (1, 3, 5)
    assert DEFAULT_EI_SCHEDULE.micro_days == (2, 4, 6)
    assert DEFAULT_EI_SCHEDULE.water_change_day == 0


def test_ei_schedule_validation():
    with pytest.raises(ValidationError):
        EiSchedule(macro_days=(1, 2), micro_days=(2, 4))
    with pytest.raises(ValidationError):
        EiSchedule(macro_days=(1, 3), micro_days=(2, 4), water_change_day=3)
    with pytest.raises(ValidationError):
        EiSchedule(macro_days=(1, 7), micro_days=(2,))
    with pytest.raises(ValidationError):
        EiSchedule(macro_days=(), micro_days=(2,))


def test_ei_schedule_sorts_days():
    schedule = EiSchedule(macro_days=(5, 1), micro_days=(4, 2), water_change_day=6)
    assert schedule.macro_days == (1, 5)
    assert schedule.micro_days == (2, 4)


def test_assemble_events_orders_macro_first():
    events = assemble_events([0, 3], [0, 1], 2.0, 0.5)
    assert [(e.day_of_week, e.category) for e in events] == [
        (0, DoseCategory.MACRO),
        (0, DoseCategory.MICRO),
        (1, DoseCategory.MICRO),
        (3, DoseCategory.MACRO),
    ]
    assert events[0].ml == 2.0
    assert events[1].ml == 0.5


def test_strategies_by_method():
    assert SCHEDULE_STRATEGIES[DosingMethod.PPS] is daily_target_days
    assert SCHEDULE_STRATEGIES[DosingMethod.EI] is alternating_days


def test_daily_target_days():
    days = daily_target_days()
    assert days.macro_days == days.micro_days == (0, 1, 2, 3, 4, 5, 6)
    assert days.water_change_day is None
    assert daily_target_days(3).macro_days == (0, 2, 4)
    with pytest.raises(ValidationError):
        daily_target_days(3, DEFAULT_EI_SCHEDULE)


def test_alternating_days():
    days = alternating_days()
    assert days.macro_days == (1, 3, 5)
    assert days.water_change_day == 0
    assert alternating_days(3).micro_days == (2, 4, 6)
    with pytest.raises(ValidationError):
        alternating_days(4)
