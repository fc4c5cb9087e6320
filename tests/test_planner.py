import pytest

from aquadose.exceptions import DomainError, MissingDataError, ValidationError
from aquadose.nutrients import DoseCategory, Nutrient
from aquadose.planner import build_plan, per_dose_targets
from aquadose.schedule import EiSchedule
from aquadose.solutions import ManualRateSpec, ReferenceDoseSpec
from aquadose.targets import DosingMethod, TargetBasis

MACRO = ReferenceDoseSpec(10, 2, {"NO3": 2.242293966, "PO4": 0.2, "K": 1.8})
MICRO = ReferenceDoseSpec(10, 1, {"Fe": 0.05, "Mn": 0.01})


def test_per_dose_targets():
    daily = {Nutrient.NO3: 1.0}
    assert per_dose_targets(TargetBasis.PER_DAY, daily, 7) == {Nutrient.NO3: 1.0}
    assert per_dose_targets(TargetBasis.PER_DAY, daily, 3)[Nutrient.NO3] == pytest.approx(7 / 3)
    assert per_dose_targets(TargetBasis.PER_DOSE, daily, 3) == {Nutrient.NO3: 1.0}


def test_pps_plan_daily():
    plan = build_plan(10, "pps", "standard", MACRO, MICRO)
    assert plan.method is DosingMethod.PPS
    assert plan.doses_per_week == 7
    assert plan.macro_ml_per_dose == pytest.approx(1 / 1.121146983)
    assert plan.implied_macro_ppm[Nutrient.NO3] == pytest.approx(1.0)
    assert plan.implied_micro_ppm[Nutrient.Fe] == pytest.approx(0.02)
    assert len(plan.events_for("macro")) == 7
    assert len(plan.events_for("micro")) == 7
    assert plan.water_change_day is None


def test_pps_plan_fewer_doses_keeps_weekly_total():
    daily = build_plan(10, "pps", "standard", MACRO, MICRO)
    spread = build_plan(10, "pps", "standard", MACRO, MICRO, doses_per_week=3)
    assert [e.day_of_week for e in spread.events_for("macro")] == [0, 2, 4]
    assert spread.macro_target_ppm[Nutrient.NO3] == pytest.approx(7 / 3)
    assert spread.weekly_ml("macro") == pytest.approx(daily.weekly_ml("macro"))
    assert spread.weekly_ml(DoseCategory.MICRO) == pytest.approx(daily.weekly_ml("micro"))


def test_pps_events_macro_before_micro():
    plan = build_plan(20, "pps", "standard", MACRO, MICRO, doses_per_week=2)
    assert [(e.day_of_week, e.category) for e in plan.events] == [
        (0, DoseCategory.MACRO),
        (0, DoseCategory.MICRO),
        (3, DoseCategory.MACRO),
        (3, DoseCategory.MICRO),
    ]


def test_ei_plan_default_schedule():
    plan = build_plan(26, "ei", "standard", MACRO, MICRO)
    assert plan.doses_per_week == 3
    assert plan.water_change_day == 0
    assert [e.day_of_week for e in plan.events] == [1, 2, 3, 4, 5, 6]
    assert [e.category for e in plan.events[:2]] == [DoseCategory.MACRO, DoseCategory.MICRO]
    assert plan.implied_macro_ppm[Nutrient.NO3] == pytest.approx(5)
    assert plan.implied_micro_ppm[Nutrient.Fe] == pytest.approx(0.1)
    # other nutrients follow the anchor-solved dose
    ratio = plan.implied_macro_ppm[Nutrient.K] / plan.implied_macro_ppm[Nutrient.NO3]
    assert ratio == pytest.approx(1.8 / 2.242293966)


def test_ei_custom_schedule():
    schedule = EiSchedule(macro_days=(0, 3), micro_days=(1, 4), water_change_day=6)
    plan = build_plan(26, DosingMethod.EI, "lean", MACRO, MICRO, schedule=schedule)
    assert plan.doses_per_week == 2
    assert plan.days.water_change_day == 6
    with pytest.raises(ValidationError):
        build_plan(26, "ei", "standard", MACRO, MICRO, doses_per_week=5)


def test_manual_rate_branch():
    plan = build_plan(30, "ei", "standard", ManualRateSpec(5), MICRO)
    assert plan.macro_ml_per_dose == pytest.approx(15)
    assert plan.implied_macro_ppm is None
    assert plan.implied_micro_ppm is not None

    plan = build_plan(30, "pps", "standard", MACRO, {"kind": "manual_ml_per_10g", "ml_per_10_gallons": 1})
    assert plan.micro_ml_per_dose == pytest.approx(3)
    assert plan.implied_micro_ppm is None


def test_plan_accepts_serialized_specs():
    plan = build_plan(10, "pps", "standard", MACRO.as_dict(), MICRO.as_dict())
    assert plan.macro_ml_per_dose == pytest.approx(1 / 1.121146983)


def test_plan_errors():
    with pytest.raises(ValidationError):
        build_plan(0, "ei", "standard", MACRO, MICRO)
    with pytest.raises(DomainError):
        build_plan(10, "daily", "standard", MACRO, MICRO)
    with pytest.raises(MissingDataError):
        build_plan(10, "ei", "heroic", MACRO, MICRO)
    # micro blend without iron data cannot be anchor-solved
    with pytest.raises(MissingDataError):
        build_plan(10, "ei", "standard", MACRO, ReferenceDoseSpec(10, 1, {"Mn": 0.1}))
    with pytest.raises(DomainError):
        build_plan(10, "ei", "standard", MACRO, object())


def test_plan_is_immutable():
    plan = build_plan(10, "pps", "standard", MACRO, MICRO)
    with pytest.raises(AttributeError):
        plan.macro_ml_per_dose = 1.0
    with pytest.raises(TypeError):
        plan.implied_macro_ppm[Nutrient.NO3] = 1.0


def test_plan_for_label_with_other_tank_size():
    macro = ReferenceDoseSpec(20, 5, {"NO3": 5.0, "K": 4.0})
    micro = ReferenceDoseSpec(20, 5, {"Fe": 0.1})
    plan = build_plan(20, "ei", "standard", macro, micro)
    assert plan.macro_ml_per_dose == pytest.approx(5)
    assert plan.micro_ml_per_dose == pytest.approx(5)
    assert plan.implied_macro_ppm[Nutrient.K] == pytest.approx(4.0)
