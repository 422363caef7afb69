from __future__ import annotations

import datetime as dt
import logging
import math
from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Literal

from fitcoach.config import settings
from fitcoach.errors import (
    CalorieTargetNotConfiguredError,
    CoachCollaboratorError,
    InvalidMetValueError,
    NoCandidatesError,
    WeightNotConfiguredError,
)
from fitcoach.nutrition import coerce_number, round_half_away


logger = logging.getLogger(__name__)


BandName = Literal["breakfast", "lunch", "snack", "dinner"]


@dataclass(frozen=True)
class MealBand:
    name: BandName
    start_hour: int  # inclusive
    end_hour: int  # exclusive; end < start wraps past midnight
    tags: tuple[str, ...]
    message: str

    def contains(self, hour: int) -> bool:
        if self.start_hour <= self.end_hour:
            return self.start_hour <= hour < self.end_hour
        return hour >= self.start_hour or hour < self.end_hour


# Half-open, non-overlapping, covers all 24 hours.
MEAL_BANDS: tuple[MealBand, ...] = (
    MealBand(
        name="breakfast",
        start_hour=5,
        end_hour=11,
        tags=("breakfast",),
        message="Good morning! You have {kcal} kcal left. How about a nutritious breakfast?",
    ),
    MealBand(
        name="lunch",
        start_hour=11,
        end_hour=15,
        tags=("lunch", "protein"),
        message="You're on track! You have {kcal} kcal left for lunch.",
    ),
    MealBand(
        name="snack",
        start_hour=15,
        end_hour=19,
        tags=("snack", "fruit"),
        message="Nice! You have {kcal} kcal left. How about a healthy snack?",
    ),
    MealBand(
        name="dinner",
        start_hour=19,
        end_hour=5,
        tags=("dinner",),
        message="You still have {kcal} kcal available for a light dinner.",
    ),
)

EXERCISE_MESSAGE = "You enjoyed {kcal} extra kcal today. How about balancing it with some exercise?"
EXERCISE_AFTER_ACTIVITY_MESSAGE = (
    "You went {kcal} kcal over today and already burned {burned} kcal with activity. "
    "A little more exercise will balance the remaining {left} kcal."
)

# kcal/min = MET * 3.5 * kg / 200
MET_O2_ML_PER_KG_MIN = 3.5
MET_KCAL_DIVISOR = 200

# [20:00, 05:00): low-intensity exercises only; all candidates when none qualifies
NIGHT_START_HOUR = 20
NIGHT_END_HOUR = 5
NIGHT_MET_RANGE = (2.0, 4.5)


def band_for_hour(hour: int) -> MealBand:
    for band in MEAL_BANDS:
        if band.contains(hour):
            return band
    raise ValueError(f"hour out of range: {hour}")


def food_tags_for(now: dt.datetime | dt.time) -> list[str]:
    return list(band_for_hour(now.hour).tags)


def matches_any_tag(food_tags: Iterable[str] | None, requested: Iterable[str]) -> bool:
    want = {t.strip().lower() for t in requested}
    return any(str(t).strip().lower() in want for t in (food_tags or ()))


def filter_foods_by_tags(foods: Iterable[Any], tags: Sequence[str], limit: int) -> list[Any]:
    """
    For collaborators that serve foods from memory: keep those with at least one of
    `tags` (case-insensitive exact match), in input order, up to `limit`.
    Foods may be mappings with a "tags" key or objects with a `tags` attribute.
    """
    out: list[Any] = []
    for f in foods:
        ft = f.get("tags") if isinstance(f, dict) else getattr(f, "tags", None)
        if matches_any_tag(ft, tags):
            out.append(f)
            if len(out) >= limit:
                break
    return out


def minutes_to_burn(excess_kcal: float, met_value: float, weight_kg: float) -> int:
    # rounded up: never under-recommend
    if isinstance(met_value, bool) or not isinstance(met_value, (int, float)) or not math.isfinite(met_value) or met_value <= 0:
        raise InvalidMetValueError("must be a positive finite number", value=met_value)
    minutes = (excess_kcal * MET_KCAL_DIVISOR) / (met_value * MET_O2_ML_PER_KG_MIN * weight_kg)
    return math.ceil(minutes)


@dataclass(frozen=True)
class Exercise:
    id: str
    name: str
    met_value: float
    icon_name: str | None = None
    category: str | None = None


@dataclass(frozen=True)
class ExerciseMinutes:
    exercise: Any
    minutes_needed: int


@dataclass(frozen=True)
class FoodRecommendation:
    message: str
    foods: tuple[Any, ...]
    remaining_calories: int
    band: BandName
    tags: tuple[str, ...]

    kind: Literal["food"] = "food"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind,
            "message": self.message,
            "foods": list(self.foods),
            "remaining_calories": self.remaining_calories,
            "band": self.band,
            "tags": list(self.tags),
        }


@dataclass(frozen=True)
class ExerciseRecommendation:
    message: str
    exercises: tuple[ExerciseMinutes, ...]
    excess_calories: int
    # set only when activity already burned part of the excess
    activity_calories_burned: int | None = None
    remaining_excess: int | None = None

    kind: Literal["exercise"] = "exercise"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind,
            "message": self.message,
            "exercises": [{"exercise": e.exercise, "minutes_needed": e.minutes_needed} for e in self.exercises],
            "excess_calories": self.excess_calories,
            "activity_calories_burned": self.activity_calories_burned,
            "remaining_excess": self.remaining_excess,
        }


Recommendation = FoodRecommendation | ExerciseRecommendation

SearchFoodsByTags = Callable[[list[str], int], Awaitable[Sequence[Any] | None]]
PickRandomExercises = Callable[[int], Awaitable[Sequence[Any] | None]]
CaloriesBurnedToday = Callable[[], Awaitable[float | None]]


def met_of(exercise: Any) -> float | None:
    # stores may hand MET back as a numeric string
    if isinstance(exercise, dict):
        raw = exercise.get("met_value")
    else:
        raw = getattr(exercise, "met_value", None)
    return coerce_number(raw)


def is_night(hour: int) -> bool:
    return hour >= NIGHT_START_HOUR or hour < NIGHT_END_HOUR


def night_friendly(exercises: Sequence[Any]) -> list[Any]:
    lo, hi = NIGHT_MET_RANGE
    low = []
    for ex in exercises:
        m = met_of(ex)
        if m is not None and lo <= m <= hi:
            low.append(ex)
    return low or list(exercises)


def _is_configured(weight_kg: float | None) -> bool:
    if weight_kg is None or isinstance(weight_kg, bool) or not isinstance(weight_kg, (int, float)):
        return False
    return math.isfinite(weight_kg) and weight_kg > 0


async def get_recommendation(
    *,
    weight_kg: float | None,
    calories_target: float,
    calories_consumed: float,
    is_entitled: bool,
    now: dt.datetime | dt.time,
    search_foods_by_tags: SearchFoodsByTags,
    pick_random_exercises: PickRandomExercises,
    calories_burned_today: CaloriesBurnedToday | None = None,
    food_limit: int | None = None,
    exercise_count: int | None = None,
) -> Recommendation | None:
    """
    One recommendation for the current balance, or None.

    - not entitled -> None (host shows an upsell)
    - target - consumed > 0 -> foods for the current meal band
    - target - consumed < 0 -> exercises with minutes needed to burn the excess,
      less whatever `calories_burned_today` reports; None when activity covers it all
    - exactly 0 -> None (goal met)

    Collaborator failures are raised as CoachCollaboratorError with the collaborator's
    message, an empty candidate list as NoCandidatesError; nothing partial is returned.
    """
    if not is_entitled:
        return None
    if not _is_configured(weight_kg):
        raise WeightNotConfiguredError()
    if calories_target is None or not math.isfinite(calories_target) or calories_target <= 0:
        raise CalorieTargetNotConfiguredError()

    remaining = calories_target - calories_consumed

    if remaining > 0:
        band = band_for_hour(now.hour)
        limit = settings.coach_food_limit if food_limit is None else food_limit
        tags = list(band.tags)
        try:
            foods = await search_foods_by_tags(tags, limit)
        except Exception as e:
            logger.warning("food lookup failed for tags=%s: %s", tags, e)
            raise CoachCollaboratorError("foods", str(e)) from e

        foods = list(foods or [])[:limit]
        if not foods:
            raise NoCandidatesError("foods", f"No foods available for {', '.join(tags)}")

        kcal = round_half_away(remaining)
        logger.debug("food recommendation band=%s remaining=%s foods=%d", band.name, kcal, len(foods))
        return FoodRecommendation(
            message=band.message.format(kcal=kcal),
            foods=tuple(foods),
            remaining_calories=kcal,
            band=band.name,
            tags=band.tags,
        )

    if remaining < 0:
        excess = abs(remaining)

        burned = 0.0
        if calories_burned_today is not None:
            try:
                reported = await calories_burned_today()
            except Exception as e:
                logger.warning("activity lookup failed: %s", e)
                raise CoachCollaboratorError("activity", str(e)) from e
            burned = coerce_number(reported) or 0.0
            if not math.isfinite(burned) or burned < 0:
                burned = 0.0

        left = max(excess - burned, 0.0)
        if burned > 0 and left <= 0:
            logger.info("excess of %.0f kcal already covered by %.0f kcal of activity", excess, burned)
            return None

        count = settings.coach_exercise_count if exercise_count is None else exercise_count
        try:
            picked = await pick_random_exercises(count)
        except Exception as e:
            logger.warning("exercise lookup failed: %s", e)
            raise CoachCollaboratorError("exercises", str(e)) from e

        picked = list(picked or [])
        if not picked:
            raise NoCandidatesError("exercises", "No exercises available")
        if is_night(now.hour):
            picked = night_friendly(picked)

        items = tuple(
            ExerciseMinutes(exercise=ex, minutes_needed=minutes_to_burn(left, met_of(ex), float(weight_kg)))
            for ex in picked
        )
        kcal = round_half_away(excess)
        logger.debug("exercise recommendation excess=%s burned=%.0f exercises=%d", kcal, burned, len(items))
        if burned > 0:
            return ExerciseRecommendation(
                message=EXERCISE_AFTER_ACTIVITY_MESSAGE.format(
                    kcal=kcal, burned=round_half_away(burned), left=round_half_away(left)
                ),
                exercises=items,
                excess_calories=kcal,
                activity_calories_burned=round_half_away(burned),
                remaining_excess=round_half_away(left),
            )
        return ExerciseRecommendation(
            message=EXERCISE_MESSAGE.format(kcal=kcal),
            exercises=items,
            excess_calories=kcal,
        )

    return None
