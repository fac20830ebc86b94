"""
Validation Result Models

Imports (backup files, sync codes) are untrusted documents. The validator
reports every problem it finds as a ValidationIssue so the user can see
exactly which part of the document was rejected.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field

from khata.models.state import AppState


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Dotted path of the offending field (e.g. 'transactions.3.amount')"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_type', 'invalid_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump()


class ValidationResult(BaseModel):
    """
    Result of validating a candidate state document.

    Stage 1: Shape gate (document is an object with a profiles list)
    Stage 2: Field validation (every present top-level key)
    Stage 3: Document invariants (unique ids and emails)
    """

    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)
    state: Optional[AppState] = Field(
        default=None,
        description="The validated document, present only when is_valid"
    )

    @property
    def errors(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == "error"]

    def summary(self, limit: int = 5) -> str:
        """Short human-readable list of the first few problems."""
        if self.is_valid:
            return "Document is valid"
        lines = [f"{i.field}: {i.message}" for i in self.errors[:limit]]
        remaining = len(self.errors) - limit
        if remaining > 0:
            lines.append(f"... and {remaining} more")
        return "\n".join(lines)
