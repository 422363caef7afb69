from __future__ import annotations

import math
from dataclasses import dataclass

from fitcoach.errors import InvalidCaloriesError, InvalidWeightError
from fitcoach.nutrition import round_half_away


PROTEIN_G_PER_KG = 2.0
FAT_G_PER_KG = 0.8

KCAL_PER_G_PROTEIN = 4
KCAL_PER_G_FAT = 9
KCAL_PER_G_CARBS = 4

# safety net for extreme weights/targets, applied after the split
PROTEIN_CLAMP_G = (60, 260)
FAT_CLAMP_G = (35, 160)
CARBS_CLAMP_G = (0, 600)


@dataclass(frozen=True)
class MacroTargets:
    calories: int
    protein_g: int
    carbs_g: int
    fat_g: int


def _clamp(n: int, bounds: tuple[int, int]) -> int:
    lo, hi = bounds
    return max(lo, min(hi, n))


def compute_macro_targets(*, calories: float, weight_kg: float) -> MacroTargets:
    # protein: 2.0 g/kg, fat: 0.8 g/kg, carbs: whatever calories remain
    if isinstance(weight_kg, bool) or not isinstance(weight_kg, (int, float)) or not math.isfinite(weight_kg) or weight_kg <= 0:
        raise InvalidWeightError("must be a positive finite number", value=weight_kg)
    if isinstance(calories, bool) or not isinstance(calories, (int, float)) or not math.isfinite(calories) or calories < 0:
        raise InvalidCaloriesError("must be a non-negative finite number", value=calories)

    cal = round_half_away(calories)
    protein = round_half_away(weight_kg * PROTEIN_G_PER_KG)
    fat = round_half_away(weight_kg * FAT_G_PER_KG)

    kcal_pf = protein * KCAL_PER_G_PROTEIN + fat * KCAL_PER_G_FAT
    carbs_kcal = max(cal - kcal_pf, 0)
    carbs = round_half_away(carbs_kcal / KCAL_PER_G_CARBS)

    return MacroTargets(
        calories=cal,
        protein_g=_clamp(protein, PROTEIN_CLAMP_G),
        carbs_g=_clamp(carbs, CARBS_CLAMP_G),
        fat_g=_clamp(fat, FAT_CLAMP_G),
    )
