"""Pydantic schemas for evaluation, validation and preview results."""

from enum import Enum
from typing import Optional, List, Dict, Any

from pydantic import BaseModel

from formbuilder.schemas.question import Question


class EffectiveState(str, Enum):
    """Resolved state of a question after conditional logic evaluation."""
    VISIBLE_OPTIONAL = "visible_optional"
    VISIBLE_REQUIRED = "visible_required"
    HIDDEN = "hidden"

    @property
    def is_hidden(self) -> bool:
        return self is EffectiveState.HIDDEN

    @property
    def is_required(self) -> bool:
        return self is EffectiveState.VISIBLE_REQUIRED


class FieldError(BaseModel):
    """A single validation failure for one question."""
    question_id: str
    rule: str
    message: str


class ValidationResult(BaseModel):
    """Aggregated outcome of running a compiled validator."""
    valid: bool
    errors: List[FieldError] = []

    def errors_for(self, question_id: str) -> List[FieldError]:
        return [e for e in self.errors if e.question_id == question_id]


class SubmissionResult(ValidationResult):
    """Validation outcome plus the effective state it was computed with."""
    effective_state: Dict[str, EffectiveState] = {}


class ConditionalLogicReport(BaseModel):
    """Non-raising report on a set of conditional rules."""
    is_valid: bool
    errors: List[str] = []


class FormPreview(BaseModel):
    """Summary of a template as a respondent would see it."""
    template_id: Optional[int]
    name: str
    description: Optional[str]
    questions: List[Question]
    estimated_completion_time: int
    total_questions: int
    required_questions: int
    conditional_questions: int


class FieldChange(BaseModel):
    """One changed attribute of a question between two versions."""
    field: str
    old_value: Optional[Any] = None
    new_value: Optional[Any] = None
    description: str


class QuestionChange(BaseModel):
    question_id: str
    before: Question
    after: Question
    changes: List[FieldChange]


class BusinessRuleDiff(BaseModel):
    added: List[str] = []
    removed: List[str] = []
    changed: List[str] = []


class TemplateDiff(BaseModel):
    """Structural diff between two template versions."""
    from_version: int
    to_version: int
    added: List[Question] = []
    removed: List[Question] = []
    changed: List[QuestionChange] = []
    unchanged: List[str] = []
    business_rules: BusinessRuleDiff = BusinessRuleDiff()

    @property
    def has_changes(self) -> bool:
        rules = self.business_rules
        return bool(
            self.added or self.removed or self.changed
            or rules.added or rules.removed or rules.changed
        )
