"""Question-related Pydantic schemas."""

import uuid
from enum import Enum
from typing import Optional, List, Any

from pydantic import BaseModel, Field, model_validator


class QuestionType(str, Enum):
    """Supported question kinds."""
    TEXT_INPUT = "text_input"
    NUMERIC_INPUT = "numeric_input"
    DATE = "date"
    DATETIME = "datetime"
    SINGLE_SELECT = "single_select"
    MULTI_SELECT = "multi_select"
    YES_NO = "yes_no"
    FILE_UPLOAD = "file_upload"
    SECTION_HEADER = "section_header"


class ValidationRuleType(str, Enum):
    """Tags of the closed set of validation rule variants."""
    REQUIRED = "required"
    MIN = "min"
    MAX = "max"
    PATTERN = "pattern"
    CUSTOM = "custom"
    EMAIL = "email"
    PHONE = "phone"


class ConditionalOperator(str, Enum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"


class ConditionalAction(str, Enum):
    SHOW = "show"
    HIDE = "hide"
    REQUIRE = "require"
    OPTIONAL = "optional"


def _new_id() -> str:
    return str(uuid.uuid4())


class QuestionOption(BaseModel):
    """Option for select-type questions."""
    id: str = Field(default_factory=_new_id)
    label: str = Field(..., min_length=1)
    value: str = Field(..., min_length=1)
    order: int = 0


class ValidationRule(BaseModel):
    """Validation rule attached to a single question."""
    type: ValidationRuleType
    value: Optional[Any] = Field(None, description="Bound, pattern, or custom predicate name")
    message: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def validate_custom_reference(self) -> "ValidationRule":
        """Custom rules name a predicate; the callable itself is supplied at compile time."""
        if self.type == ValidationRuleType.CUSTOM and not (isinstance(self.value, str) and self.value):
            raise ValueError("custom rules must name a registered predicate")
        return self


class ConditionalRule(BaseModel):
    """Conditional rule attached to the question it affects (the target)."""
    id: str = Field(default_factory=_new_id)
    question_id: str = Field(..., description="Trigger question whose value is inspected")
    operator: ConditionalOperator
    value: Optional[Any] = None
    action: ConditionalAction


class Question(BaseModel):
    """Question definition inside a form template."""
    id: str = Field(default_factory=_new_id)
    type: QuestionType
    text: str = Field(..., min_length=1)
    required: bool = False
    help_text: Optional[str] = None
    default_value: Optional[Any] = None
    options: Optional[List[QuestionOption]] = None
    validation: List[ValidationRule] = []
    conditional_logic: List[ConditionalRule] = []
    pre_population_mapping: Optional[str] = Field(
        None, description="Key into external member/provider profile data"
    )
    order: int = 0


class QuestionUpdate(BaseModel):
    """Partial update for a question. The id cannot be changed."""
    type: Optional[QuestionType] = None
    text: Optional[str] = Field(None, min_length=1)
    required: Optional[bool] = None
    help_text: Optional[str] = None
    default_value: Optional[Any] = None
    options: Optional[List[QuestionOption]] = None
    validation: Optional[List[ValidationRule]] = None
    conditional_logic: Optional[List[ConditionalRule]] = None
    pre_population_mapping: Optional[str] = None


class ResponseData(BaseModel):
    """A single submitted answer."""
    question_id: str
    value: Optional[Any] = None
    metadata: Optional[dict] = None
