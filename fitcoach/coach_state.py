"""
Recommendation state for one diary screen.

The host feeds explicit events (consumption changed, target changed, clock tick, refresh...)
and reads back a CoachState. State is replaced wholesale on every completed recompute.
Recomputes are sequenced: when several are in flight, only the latest one is applied.
"""

from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from zoneinfo import ZoneInfo

from fitcoach.coach import (
    BandName,
    CaloriesBurnedToday,
    PickRandomExercises,
    Recommendation,
    SearchFoodsByTags,
    band_for_hour,
    get_recommendation,
)
from fitcoach.config import settings
from fitcoach.errors import CoachCollaboratorError, CoachPreconditionError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CoachInputs:
    weight_kg: float | None
    calories_target: float
    calories_consumed: float = 0.0
    is_entitled: bool = False


@dataclass(frozen=True)
class CoachState:
    recommendation: Recommendation | None = None
    loading: bool = False
    error: str | None = None
    band: BandName | None = None


@dataclass(frozen=True)
class ConsumptionChanged:
    calories_consumed: float


@dataclass(frozen=True)
class TargetChanged:
    calories_target: float


@dataclass(frozen=True)
class WeightChanged:
    weight_kg: float | None


@dataclass(frozen=True)
class EntitlementChanged:
    is_entitled: bool


@dataclass(frozen=True)
class ClockTick:
    now: dt.datetime


@dataclass(frozen=True)
class Refresh:
    pass


CoachEvent = ConsumptionChanged | TargetChanged | WeightChanged | EntitlementChanged | ClockTick | Refresh


def default_clock() -> dt.datetime:
    if settings.coach_timezone:
        return dt.datetime.now(ZoneInfo(settings.coach_timezone))
    return dt.datetime.now()


class CoachSession:
    def __init__(
        self,
        inputs: CoachInputs,
        *,
        search_foods_by_tags: SearchFoodsByTags,
        pick_random_exercises: PickRandomExercises,
        calories_burned_today: CaloriesBurnedToday | None = None,
        clock: Callable[[], dt.datetime] | None = None,
    ):
        self.inputs = inputs
        self.search_foods_by_tags = search_foods_by_tags
        self.pick_random_exercises = pick_random_exercises
        self.calories_burned_today = calories_burned_today
        self.clock = clock or default_clock
        self._state = CoachState()
        self._seq = 0

    @property
    def state(self) -> CoachState:
        return self._state

    def _apply(self, event: CoachEvent) -> None:
        if isinstance(event, ConsumptionChanged):
            self.inputs = replace(self.inputs, calories_consumed=event.calories_consumed)
        elif isinstance(event, TargetChanged):
            self.inputs = replace(self.inputs, calories_target=event.calories_target)
        elif isinstance(event, WeightChanged):
            self.inputs = replace(self.inputs, weight_kg=event.weight_kg)
        elif isinstance(event, EntitlementChanged):
            self.inputs = replace(self.inputs, is_entitled=event.is_entitled)

    async def dispatch(self, event: CoachEvent) -> CoachState:
        if isinstance(event, ClockTick):
            now = event.now
            # only a band crossing changes anything time-dependent
            if self._state.band is not None and band_for_hour(now.hour).name == self._state.band:
                return self._state
        else:
            self._apply(event)
            now = self.clock()
        return await self._recompute(now)

    async def _recompute(self, now: dt.datetime) -> CoachState:
        self._seq += 1
        seq = self._seq
        band = band_for_hour(now.hour).name
        self._state = replace(self._state, loading=True)

        inp = self.inputs
        try:
            rec = await get_recommendation(
                weight_kg=inp.weight_kg,
                calories_target=inp.calories_target,
                calories_consumed=inp.calories_consumed,
                is_entitled=inp.is_entitled,
                now=now,
                search_foods_by_tags=self.search_foods_by_tags,
                pick_random_exercises=self.pick_random_exercises,
                calories_burned_today=self.calories_burned_today,
            )
        except (CoachPreconditionError, CoachCollaboratorError) as e:
            if seq != self._seq:
                logger.debug("dropping stale coach error seq=%d latest=%d", seq, self._seq)
                return self._state
            self._state = CoachState(recommendation=None, loading=False, error=str(e), band=band)
            return self._state
        except Exception as e:
            if seq == self._seq:
                self._state = CoachState(recommendation=None, loading=False, error=str(e), band=band)
            raise

        if seq != self._seq:
            logger.debug("dropping stale coach result seq=%d latest=%d", seq, self._seq)
            return self._state

        self._state = CoachState(recommendation=rec, loading=False, error=None, band=band)
        return self._state
