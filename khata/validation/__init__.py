"""State document validation package."""

from khata.models.validation import ValidationIssue, ValidationResult
from khata.validation.validator import StateValidator

__all__ = ["StateValidator", "ValidationIssue", "ValidationResult"]
