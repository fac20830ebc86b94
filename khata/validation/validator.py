"""
Three-Stage State Document Validation

DESIGN DECISION: A candidate state document (restored backup, decoded sync
code, persisted file) is validated in three stages:

STAGE 1 - SHAPE GATE:
- The document is a JSON object
- It carries a `profiles` list
- This is the minimum an import must satisfy

STAGE 2 - FIELD VALIDATION:
- Every present top-level key is validated on its own
- Nested errors are reported with their full path
- Missing keys are not errors; they take defaults

STAGE 3 - DOCUMENT INVARIANTS:
- Unique profile ids
- The active profile is repaired to an existing one
- These need the whole document

Imports reject on any error. Loading the persisted document instead uses
`recover()`, which keeps the keys that are valid and drops the rest. When
only the profiles break an invariant, only the profile keys are dropped.

IMPORTANT: Validation NEVER partially applies anything. It returns a fully
built AppState or issues, never both.
"""

import json
from typing import Any, Optional

from pydantic import TypeAdapter, ValidationError

from khata.models.state import AppState, default_state
from khata.models.validation import ValidationIssue, ValidationResult


def _build_field_adapters() -> dict[str, tuple[str, TypeAdapter]]:
    """Document key -> (attribute name, adapter) for every top-level field."""
    adapters = {}
    for name, info in AppState.model_fields.items():
        key = info.alias or name
        adapters[key] = (name, TypeAdapter(info.annotation))
    return adapters


_FIELD_ADAPTERS = _build_field_adapters()

# Dropped together when the profiles break a document invariant
_PROFILE_ATTRIBUTES = ("profiles", "active_profile_id")


def _issues_from_error(prefix: str, error: ValidationError) -> list[ValidationIssue]:
    """Flatten a pydantic error into dotted-path issues."""
    issues = []
    for err in error.errors():
        path = ".".join(str(part) for part in (prefix, *err["loc"]) if part != "")
        issues.append(ValidationIssue(
            field=path or prefix,
            issue_type=err["type"],
            message=err["msg"],
        ))
    return issues


class StateValidator:
    """
    Validates candidate state documents.

    Stateless; one instance can be shared by the store and the
    portability layer.
    """

    def _check_shape(self, data: Any) -> list[ValidationIssue]:
        """
        Stage 1: Shape gate.

        Returns issues; empty means the gate passed.
        """
        if not isinstance(data, dict):
            return [ValidationIssue(
                field="$",
                issue_type="invalid_type",
                message="Document must be a JSON object",
            )]

        if "profiles" not in data:
            return [ValidationIssue(
                field="profiles",
                issue_type="missing",
                message="Document has no profiles list",
            )]

        if not isinstance(data["profiles"], list):
            return [ValidationIssue(
                field="profiles",
                issue_type="invalid_type",
                message="profiles must be a list",
            )]

        return []

    def _validate_fields(
        self,
        data: dict,
    ) -> tuple[dict[str, Any], list[ValidationIssue]]:
        """
        Stage 2: Validate each present top-level key independently.

        Returns (valid_values_by_attribute, issues).
        """
        values: dict[str, Any] = {}
        issues: list[ValidationIssue] = []

        for key, (name, adapter) in _FIELD_ADAPTERS.items():
            if key in data:
                raw = data[key]
            elif name in data:
                raw = data[name]
            else:
                continue

            try:
                values[name] = adapter.validate_python(raw)
            except ValidationError as e:
                issues.extend(_issues_from_error(key, e))

        return values, issues

    def _build_state(
        self,
        values: dict[str, Any],
    ) -> tuple[Optional[AppState], list[ValidationIssue]]:
        """Stage 3: Assemble the document and check its invariants."""
        try:
            return AppState.model_validate(values), []
        except ValidationError as e:
            return None, [
                ValidationIssue(
                    field="$",
                    issue_type="invariant",
                    message=err["msg"],
                )
                for err in e.errors()
            ]

    def validate(self, data: Any) -> ValidationResult:
        """
        Run the full validation pipeline on a decoded document.

        Args:
            data: The decoded JSON value

        Returns:
            ValidationResult carrying the AppState when valid
        """
        issues = self._check_shape(data)
        if issues:
            return ValidationResult(is_valid=False, issues=issues)

        values, issues = self._validate_fields(data)
        if issues:
            return ValidationResult(is_valid=False, issues=issues)

        state, issues = self._build_state(values)
        if state is None:
            return ValidationResult(is_valid=False, issues=issues)

        return ValidationResult(is_valid=True, state=state)

    def validate_text(self, text: str) -> ValidationResult:
        """Parse JSON text, then validate it."""
        try:
            data = json.loads(text)
        except (json.JSONDecodeError, TypeError) as e:
            return ValidationResult(
                is_valid=False,
                issues=[ValidationIssue(
                    field="$",
                    issue_type="invalid_json",
                    message=f"Not valid JSON: {e}",
                )],
            )
        return self.validate(data)

    def recover(self, data: Any) -> tuple[AppState, list[ValidationIssue]]:
        """
        Best-effort rebuild of a persisted document.

        Valid top-level keys are kept, malformed ones take their defaults.
        No shape gate applies: an old document without profiles is fine.
        If the surviving keys still break a document invariant, only the
        profile keys are dropped; transactions, reminders, categories and
        settings are kept.

        Returns (state, issues_for_dropped_parts).
        """
        if not isinstance(data, dict):
            return default_state(), [ValidationIssue(
                field="$",
                issue_type="invalid_type",
                message="Document must be a JSON object",
            )]

        values, issues = self._validate_fields(data)
        state, invariant_issues = self._build_state(values)
        if state is not None:
            return state, issues

        issues = issues + [
            issue.model_copy(update={"field": "profiles"})
            for issue in invariant_issues
        ]
        for name in _PROFILE_ATTRIBUTES:
            values.pop(name, None)
        state, _ = self._build_state(values)
        if state is None:
            return default_state(), issues
        return state, issues
