from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore")

    # Step for the daily calorie target (1/5/10/25/50/100)
    goal_round_to: int = Field(default=10, validation_alias="GOAL_ROUND_TO")

    # Adjustments available without entitlement, CSV of signed fractions
    free_deficit_adjustments: str = Field(default="-0.10,-0.15", validation_alias="FREE_DEFICIT_ADJUSTMENTS")
    free_surplus_adjustments: str = Field(default="0.05,0.10,0.15", validation_alias="FREE_SURPLUS_ADJUSTMENTS")

    # How many candidates the coach asks its collaborators for
    coach_food_limit: int = Field(default=3, validation_alias="COACH_FOOD_LIMIT")
    coach_exercise_count: int = Field(default=2, validation_alias="COACH_EXERCISE_COUNT")

    # IANA zone used for time-of-day bands; local time when unset
    coach_timezone: str | None = Field(default=None, validation_alias="COACH_TIMEZONE")


def parse_adjustments_csv(raw: str) -> tuple[float, ...]:
    return tuple(float(x) for x in (p.strip() for p in raw.split(",")) if x)


settings = Settings()
