"""
Error taxonomy.

- GoalValidationError: malformed or out-of-range profile/goal input. Always names the field.
- MacroValidationError: bad input to the macro split.
- CandidateDataError: a food/exercise handed over by a collaborator carries unusable data.
- CoachPreconditionError: the coach cannot run yet because something is not configured.
- CoachCollaboratorError: an injected lookup failed; carries its message as-is.
  NoCandidatesError: the lookup succeeded but returned nothing to recommend.
"""

from __future__ import annotations

from typing import Any


class FieldValidationError(ValueError):
    field: str = ""

    def __init__(self, message: str, *, value: Any = None):
        super().__init__(f"{self.field}: {message}" if self.field else message)
        self.value = value


class GoalValidationError(FieldValidationError):
    pass


class InvalidGenderError(GoalValidationError):
    field = "gender"


class InvalidBirthDateError(GoalValidationError):
    field = "birth_date"


class InvalidHeightError(GoalValidationError):
    field = "height_cm"


class InvalidWeightError(GoalValidationError):
    field = "weight_kg"


class AgeOutOfRangeError(GoalValidationError):
    field = "age_years"


class InvalidActivityLevelError(GoalValidationError):
    field = "activity_level"


class InvalidGoalTypeError(GoalValidationError):
    field = "goal_type"


class GoalAdjustmentOutOfRangeError(GoalValidationError):
    field = "goal_adjustment"


class GoalAdjustmentNotAllowedError(GoalValidationError):
    field = "goal_adjustment"


class InvalidRoundToError(GoalValidationError):
    field = "round_to"


class MacroValidationError(FieldValidationError):
    pass


class InvalidCaloriesError(MacroValidationError):
    field = "calories"


class CandidateDataError(FieldValidationError):
    pass


class InvalidMetValueError(CandidateDataError):
    field = "met_value"


class CoachPreconditionError(Exception):
    pass


class WeightNotConfiguredError(CoachPreconditionError):
    def __init__(self, message: str = "User weight is not configured"):
        super().__init__(message)


class CalorieTargetNotConfiguredError(CoachPreconditionError):
    def __init__(self, message: str = "Daily calorie target is not configured"):
        super().__init__(message)


class CoachCollaboratorError(RuntimeError):
    def __init__(self, source: str, message: str):
        super().__init__(message)
        self.source = source  # "foods" | "exercises" | "activity"
        self.message = message


class NoCandidatesError(CoachCollaboratorError):
    pass
