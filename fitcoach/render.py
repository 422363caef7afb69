from __future__ import annotations

from typing import Any

from tabulate import tabulate

from fitcoach.coach import ExerciseRecommendation, met_of
from fitcoach.macros import MacroTargets


def macros_line(t: MacroTargets | None) -> str:
    if t is None:
        return "Targets: —"
    return f"Targets: {t.calories} kcal | P {t.protein_g} g | F {t.fat_g} g | C {t.carbs_g} g"


def _name_of(exercise: Any) -> str:
    if isinstance(exercise, dict):
        return str(exercise.get("name", ""))
    return str(getattr(exercise, "name", ""))


def exercise_table(rec: ExerciseRecommendation) -> str:
    rows = [[_name_of(e.exercise), met_of(e.exercise), e.minutes_needed] for e in rec.exercises]
    return tabulate(
        rows,
        headers=["Exercise", "MET", "min"],
        tablefmt="github",
    )
