from __future__ import annotations

import pytest

from fitcoach.errors import (
    CandidateDataError,
    CoachCollaboratorError,
    FieldValidationError,
    GoalValidationError,
    InvalidCaloriesError,
    InvalidMetValueError,
    InvalidWeightError,
    MacroValidationError,
    NoCandidatesError,
)
from fitcoach.macros import compute_macro_targets


def test_non_goal_errors_are_not_goal_validation_errors() -> None:
    met = InvalidMetValueError("must be a positive finite number", value=0)
    assert isinstance(met, CandidateDataError)
    assert not isinstance(met, GoalValidationError)

    cal = InvalidCaloriesError("must be finite and non-negative", value=-1)
    assert isinstance(cal, MacroValidationError)
    assert not isinstance(cal, GoalValidationError)

    # every field error is still a ValueError naming its field
    for e in (met, cal, InvalidWeightError("must be positive")):
        assert isinstance(e, FieldValidationError) and isinstance(e, ValueError)
        assert str(e).startswith(f"{e.field}: ")


def test_macro_calories_error_not_caught_as_goal_error() -> None:
    with pytest.raises(MacroValidationError):
        try:
            compute_macro_targets(calories=float("nan"), weight_kg=80)
        except GoalValidationError:
            pytest.fail("calorie error surfaced as a goal validation error")


def test_no_candidates_is_a_collaborator_error() -> None:
    e = NoCandidatesError("exercises", "No exercises available")
    assert isinstance(e, CoachCollaboratorError)
    assert e.source == "exercises"
    assert str(e) == "No exercises available"
