from __future__ import annotations

import datetime as dt
import math
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Literal, get_args

from fitcoach.config import parse_adjustments_csv, settings
from fitcoach.errors import (
    AgeOutOfRangeError,
    GoalAdjustmentNotAllowedError,
    GoalAdjustmentOutOfRangeError,
    GoalValidationError,
    InvalidActivityLevelError,
    InvalidBirthDateError,
    InvalidGenderError,
    InvalidGoalTypeError,
    InvalidHeightError,
    InvalidRoundToError,
    InvalidWeightError,
)


Gender = Literal["male", "female"]
ActivityLevel = Literal["sedentary", "light", "moderate", "high", "very_high"]
GoalType = Literal["deficit", "maintenance", "surplus"]


ACTIVITY_FACTORS: dict[str, float] = {
    "sedentary": 1.2,
    "light": 1.375,
    "moderate": 1.55,
    "high": 1.725,
    "very_high": 1.9,
}

# positive = surplus, negative = deficit
DEFAULT_GOAL_ADJUSTMENT: dict[str, float] = {
    "deficit": -0.15,
    "maintenance": 0.0,
    "surplus": 0.10,
}

DEFICIT_RANGE = (-0.30, 0.0)
SURPLUS_RANGE = (0.0, 0.30)

HEIGHT_RANGE_CM = (100.0, 250.0)
WEIGHT_RANGE_KG = (30.0, 250.0)
AGE_RANGE_YEARS = (13, 90)

ROUND_TO_STEPS = (1, 5, 10, 25, 50, 100)

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_ADJ_TOL = 1e-9


@dataclass(frozen=True)
class BodyProfile:
    gender: Gender
    birth_date: str | dt.date
    height_cm: float
    weight_kg: float
    activity_level: ActivityLevel


@dataclass(frozen=True)
class ProfileForGoal:
    gender: Gender
    birth_date: str | dt.date
    height_cm: float
    weight_kg: float
    activity_level: ActivityLevel
    goal_type: GoalType
    goal_adjustment: float | None = None


@dataclass(frozen=True)
class CalorieGoalOptions:
    round_to: int | None = None  # None -> settings.goal_round_to
    allowed_deficit_adjustments: tuple[float, ...] | None = None
    allowed_surplus_adjustments: tuple[float, ...] | None = None
    today: dt.date | None = None  # fixed "now" for age calculation


@dataclass(frozen=True)
class GoalBreakdown:
    base_tdee_rounded: int
    delta: int  # negative for deficit


@dataclass(frozen=True)
class CalorieGoalResult:
    age_years: int
    bmr: float
    tdee: float
    activity_factor: float
    goal_type: GoalType
    goal_adjustment: float
    daily_calorie_target: int
    breakdown: GoalBreakdown

    def to_record(self) -> dict[str, Any]:
        # what the host persists on the profile
        return {
            "daily_calorie_target": self.daily_calorie_target,
            "goal_adjustment": self.goal_adjustment,
        }


def round_half_away(x: float) -> int:
    r = math.floor(abs(x) + 0.5)
    return int(r) if x >= 0 else -int(r)


def round_to_nearest(value: float, step: int) -> int:
    return round_half_away(value / step) * step


def bmr_mifflin_st_jeor(gender: Gender, age: int, height_cm: float, weight_kg: float) -> float:
    # BMR = 10W + 6.25H - 5A + s
    s = 5 if gender == "male" else -161
    return 10 * weight_kg + 6.25 * height_cm - 5 * age + s


def tdee(bmr: float, activity: ActivityLevel) -> float:
    return bmr * ACTIVITY_FACTORS[activity]


def parse_birth_date(value: str | dt.date | None) -> dt.date:
    if value is None or value == "":
        raise InvalidBirthDateError("is required", value=value)
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if not isinstance(value, str) or not _ISO_DATE.match(value.strip()):
        raise InvalidBirthDateError("expected YYYY-MM-DD", value=value)
    try:
        # fromisoformat rejects day 31 of a 30-day month, Feb 29 of non-leap years, etc.
        return dt.date.fromisoformat(value.strip())
    except ValueError:
        raise InvalidBirthDateError("not a real calendar date", value=value) from None


def age_on(birth_date: dt.date, today: dt.date) -> int:
    age = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age


def _check_range(value: Any, lo: float, hi: float, err: type[GoalValidationError]) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise err("must be a number", value=value)
    v = float(value)
    if not math.isfinite(v):
        raise err("must be finite", value=value)
    if v <= 0:
        raise err("must be positive", value=value)
    if v < lo or v > hi:
        raise err(f"must be within [{lo:g}, {hi:g}]", value=value)
    return v


def _in_allowed(adj: float, allowed: Sequence[float]) -> bool:
    return any(math.isclose(adj, a, abs_tol=_ADJ_TOL) for a in allowed)


def resolve_goal_adjustment(goal: GoalType, adjustment: float | None, options: CalorieGoalOptions) -> float:
    if goal not in DEFAULT_GOAL_ADJUSTMENT:
        raise InvalidGoalTypeError(f"unknown goal type {goal!r}", value=goal)

    if adjustment is None:
        adj = DEFAULT_GOAL_ADJUSTMENT[goal]
    else:
        if isinstance(adjustment, bool) or not isinstance(adjustment, (int, float)) or not math.isfinite(adjustment):
            raise GoalAdjustmentOutOfRangeError("must be a finite number", value=adjustment)
        adj = float(adjustment)

    if goal == "maintenance":
        if not math.isclose(adj, 0.0, abs_tol=_ADJ_TOL):
            raise GoalAdjustmentOutOfRangeError("must be 0 for maintenance", value=adj)
        return 0.0

    lo, hi = DEFICIT_RANGE if goal == "deficit" else SURPLUS_RANGE
    if adj < lo - _ADJ_TOL or adj > hi + _ADJ_TOL:
        raise GoalAdjustmentOutOfRangeError(f"must be within [{lo:g}, {hi:g}] for {goal}", value=adj)

    allowed = options.allowed_deficit_adjustments if goal == "deficit" else options.allowed_surplus_adjustments
    if allowed is not None and not _in_allowed(adj, allowed):
        raise GoalAdjustmentNotAllowedError(f"{adj:g} is not one of {list(allowed)}", value=adj)
    return adj


def calculate_calorie_goal(profile: ProfileForGoal, options: CalorieGoalOptions | None = None) -> CalorieGoalResult:
    """
    Mifflin-St Jeor BMR -> TDEE by activity factor -> target adjusted for the goal.

    bmr/tdee/activity_factor are returned unrounded; only the target and the TDEE
    baseline in `breakdown` are rounded to `round_to`.
    """
    opts = options or CalorieGoalOptions()
    step = settings.goal_round_to if opts.round_to is None else opts.round_to
    if step not in ROUND_TO_STEPS:
        raise InvalidRoundToError(f"must be one of {list(ROUND_TO_STEPS)}", value=step)

    if not profile.gender:
        raise InvalidGenderError("is required", value=profile.gender)
    if profile.gender not in get_args(Gender):
        raise InvalidGenderError("must be 'male' or 'female'", value=profile.gender)

    birth = parse_birth_date(profile.birth_date)
    height = _check_range(profile.height_cm, *HEIGHT_RANGE_CM, InvalidHeightError)
    weight = _check_range(profile.weight_kg, *WEIGHT_RANGE_KG, InvalidWeightError)

    age = age_on(birth, opts.today or dt.date.today())
    if age < AGE_RANGE_YEARS[0] or age > AGE_RANGE_YEARS[1]:
        raise AgeOutOfRangeError(f"must be within [{AGE_RANGE_YEARS[0]}, {AGE_RANGE_YEARS[1]}]", value=age)

    if profile.activity_level not in ACTIVITY_FACTORS:
        raise InvalidActivityLevelError(f"unknown activity level {profile.activity_level!r}", value=profile.activity_level)

    adj = resolve_goal_adjustment(profile.goal_type, profile.goal_adjustment, opts)

    b = bmr_mifflin_st_jeor(gender=profile.gender, age=age, height_cm=height, weight_kg=weight)
    td = tdee(b, activity=profile.activity_level)
    target = round_to_nearest(td * (1.0 + adj), step)
    base = round_to_nearest(td, step)

    return CalorieGoalResult(
        age_years=age,
        bmr=b,
        tdee=td,
        activity_factor=ACTIVITY_FACTORS[profile.activity_level],
        goal_type=profile.goal_type,
        goal_adjustment=adj,
        daily_calorie_target=target,
        breakdown=GoalBreakdown(base_tdee_rounded=base, delta=target - base),
    )


def calculate_calorie_goal_from_profile(
    body: BodyProfile,
    goal: GoalType,
    options: CalorieGoalOptions | None = None,
) -> CalorieGoalResult:
    # Goal change from settings: always the default adjustment for the new goal,
    # never the previously stored target/adjustment.
    profile = ProfileForGoal(
        gender=body.gender,
        birth_date=body.birth_date,
        height_cm=body.height_cm,
        weight_kg=body.weight_kg,
        activity_level=body.activity_level,
        goal_type=goal,
        goal_adjustment=None,
    )
    return calculate_calorie_goal(profile, options)


def goal_type_from_stored(value: str | None) -> GoalType:
    v = (value or "").strip().lower()
    if v in ("maintain", "maintenance"):
        return "maintenance"
    if v in ("deficit", "surplus"):
        return v  # type: ignore[return-value]
    raise InvalidGoalTypeError(f"unknown goal {value!r}", value=value)


def coerce_number(x: Any) -> float | None:
    # stored numerics may come back as strings
    if x is None or isinstance(x, bool):
        return None
    if isinstance(x, (int, float)):
        return float(x)
    if isinstance(x, str):
        try:
            v = float(x)
        except ValueError:
            return None
        return v if math.isfinite(v) else None
    return None


def profile_from_record(record: Mapping[str, Any]) -> BodyProfile:
    """
    Body/activity fields from a stored profile row. Persisted target/adjustment are ignored.
    """
    gender = record.get("gender")
    if not gender:
        raise InvalidGenderError("is required", value=gender)
    height = coerce_number(record.get("height_cm"))
    if height is None:
        raise InvalidHeightError("is required", value=record.get("height_cm"))
    weight = coerce_number(record.get("weight_kg"))
    if weight is None:
        raise InvalidWeightError("is required", value=record.get("weight_kg"))
    activity = record.get("activity_level")
    if not activity:
        raise InvalidActivityLevelError("is required", value=activity)
    return BodyProfile(
        gender=gender,
        birth_date=record.get("birth_date"),
        height_cm=height,
        weight_kg=weight,
        activity_level=activity,
    )


def adjustment_options(is_entitled: bool, *, round_to: int | None = None, today: dt.date | None = None) -> CalorieGoalOptions:
    if is_entitled:
        return CalorieGoalOptions(round_to=round_to, today=today)
    return CalorieGoalOptions(
        round_to=round_to,
        allowed_deficit_adjustments=parse_adjustments_csv(settings.free_deficit_adjustments),
        allowed_surplus_adjustments=parse_adjustments_csv(settings.free_surplus_adjustments),
        today=today,
    )
