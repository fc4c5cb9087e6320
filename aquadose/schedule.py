"""Weekly dosing schedules.

Two placement strategies are supported:

* daily-target dosing spreads ``n`` doses evenly over the week with
  :func:`distribute`; macro and micro are dosed on the same days.
* alternating dosing uses fixed, interleaved macro and micro days plus a
  reserved water change day (:class:`EiSchedule`).

Day indices run from ``0`` (Sunday) to ``6`` (Saturday). Events are ordered
by day; on a shared day the macro dose comes before the micro dose.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from types import MappingProxyType

from .exceptions import ValidationError
from .nutrients import DoseCategory
from .targets import DosingMethod

__all__ = [
    "DAYS_PER_WEEK",
    "DoseEvent",
    "DosingDays",
    "EiSchedule",
    "DEFAULT_EI_SCHEDULE",
    "distribute",
    "assemble_events",
    "daily_target_days",
    "alternating_days",
    "SCHEDULE_STRATEGIES",
]

DAYS_PER_WEEK = 7


@dataclass(frozen=True, slots=True)
class DoseEvent:
    """A single dose on one day of the week."""

    day_of_week: int
    category: DoseCategory
    ml: float


@dataclass(frozen=True, slots=True)
class DosingDays:
    """Days on which each category is dosed."""

    macro_days: tuple[int, ...]
    micro_days: tuple[int, ...]
    water_change_day: int | None = None


def _check_doses_per_week(doses_per_week: int) -> int:
    if isinstance(doses_per_week, bool) or not isinstance(doses_per_week, int):
        raise ValidationError("doses_per_week must be an integer")
    if doses_per_week <= 0:
        raise ValidationError("doses_per_week must be positive")
    return doses_per_week


def _check_days(name: str, days: Iterable[int]) -> tuple[int, ...]:
    result = tuple(days)
    if not result:
        raise ValidationError(f"{name} must not be empty")
    for day in result:
        if isinstance(day, bool) or not isinstance(day, int) or not 0 <= day < DAYS_PER_WEEK:
            raise ValidationError(f"{name} entries must be integers between 0 and 6")
    if len(set(result)) != len(result):
        raise ValidationError(f"{name} must not repeat a day")
    return tuple(sorted(result))


@dataclass(frozen=True, slots=True)
class EiSchedule:
    """Fixed alternating macro/micro days with a water change day."""

    macro_days: tuple[int, ...] = (1, 3, 5)
    micro_days: tuple[int, ...] = (2, 4, 6)
    water_change_day: int = 0

    def __post_init__(self) -> None:
        macro = _check_days("macro_days", self.macro_days)
        micro = _check_days("micro_days", self.micro_days)
        wc = self.water_change_day
        if isinstance(wc, bool) or not isinstance(wc, int) or not 0 <= wc < DAYS_PER_WEEK:
            raise ValidationError("water_change_day must be an integer between 0 and 6")
        if set(macro) & set(micro):
            raise ValidationError("macro_days and micro_days must not overlap")
        if wc in macro or wc in micro:
            raise ValidationError("water_change_day must not be a dosing day")
        object.__setattr__(self, "macro_days", macro)
        object.__setattr__(self, "micro_days", micro)

    def days(self) -> DosingDays:
        return DosingDays(self.macro_days, self.micro_days, self.water_change_day)


DEFAULT_EI_SCHEDULE = EiSchedule()


def distribute(doses_per_week: int) -> list[int]:
    """Return the day index of each of ``doses_per_week`` evenly spread doses.

    ``day[i] = floor(i * 7 / doses_per_week)``. The result is non-decreasing
    and independent of the calendar. More than seven doses place several on
    the same day.
    """
    n = _check_doses_per_week(doses_per_week)
    return [i * DAYS_PER_WEEK // n for i in range(n)]


def assemble_events(
    macro_days: Sequence[int],
    micro_days: Sequence[int],
    macro_ml: float,
    micro_ml: float,
) -> tuple[DoseEvent, ...]:
    """Return macro and micro events merged in day order.

    The sort is stable over macro-first insertion so a macro dose precedes a
    micro dose on the same day, and repeated days keep their original order.
    """
    events = [DoseEvent(d, DoseCategory.MACRO, macro_ml) for d in macro_days]
    events.extend(DoseEvent(d, DoseCategory.MICRO, micro_ml) for d in micro_days)
    events.sort(key=lambda e: e.day_of_week)
    return tuple(events)


def daily_target_days(
    doses_per_week: int | None = None, schedule: EiSchedule | None = None
) -> DosingDays:
    """Return evenly spread days shared by the macro and micro doses."""
    if schedule is not None:
        raise ValidationError("daily-target dosing does not use a fixed schedule")
    days = tuple(distribute(DAYS_PER_WEEK if doses_per_week is None else doses_per_week))
    return DosingDays(days, days)


def alternating_days(
    doses_per_week: int | None = None, schedule: EiSchedule | None = None
) -> DosingDays:
    """Return the fixed macro/micro days of ``schedule``.

    ``doses_per_week``, when given, must match the number of macro days.
    """
    schedule = DEFAULT_EI_SCHEDULE if schedule is None else schedule
    if doses_per_week is not None:
        n = _check_doses_per_week(doses_per_week)
        if n != len(schedule.macro_days):
            raise ValidationError(
                f"doses_per_week {n} does not match {len(schedule.macro_days)} macro days"
            )
    return schedule.days()


ScheduleStrategy = Callable[[int | None, EiSchedule | None], DosingDays]

SCHEDULE_STRATEGIES: MappingProxyType[DosingMethod, ScheduleStrategy] = MappingProxyType(
    {
        DosingMethod.PPS: daily_target_days,
        DosingMethod.EI: alternating_days,
    }
)
