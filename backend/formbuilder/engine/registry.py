"""Question type registry.

Static catalog of supported question kinds and the value shape each implies.
Consulted by the validation compiler (base predicates, default rules) and by
the question manager (option handling).
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel

from formbuilder.config import get_settings
from formbuilder.engine.errors import UnsupportedQuestionTypeError
from formbuilder.schemas.question import QuestionType, QuestionOption, ValidationRule, ValidationRuleType


class ValueShape(str, Enum):
    """Base shape of a submitted answer value."""
    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    DATETIME = "datetime"
    CHOICE = "choice"
    CHOICE_LIST = "choice_list"
    BOOLEAN = "boolean"
    FILE = "file"
    NONE = "none"


# Shapes that min/max can bound: numbers by value, strings by length
BOUNDED_SHAPES = (ValueShape.NUMBER, ValueShape.STRING)

YES_TOKENS = {"yes", "true", "y", "1"}
NO_TOKENS = {"no", "false", "n", "0"}


class QuestionTypeDescriptor(BaseModel):
    """Registry entry for one question type."""
    type: QuestionType
    label: str
    description: str
    icon: str
    value_shape: ValueShape
    supports_options: bool = False
    requires_options: bool = False
    default_validation: List[ValidationRule] = []
    supported_validations: List[ValidationRuleType] = []
    supports_conditional_logic: bool = True
    estimated_seconds: int = 30
    default_options: List[QuestionOption] = []

    class Config:
        frozen = True


_STRING_RULES = [
    ValidationRuleType.REQUIRED,
    ValidationRuleType.MIN,
    ValidationRuleType.MAX,
    ValidationRuleType.PATTERN,
    ValidationRuleType.EMAIL,
    ValidationRuleType.PHONE,
    ValidationRuleType.CUSTOM,
]


def _build_registry() -> Dict[QuestionType, QuestionTypeDescriptor]:
    max_length = get_settings().default_text_max_length
    entries = [
        QuestionTypeDescriptor(
            type=QuestionType.TEXT_INPUT,
            label="Text Input",
            description="Single line text input field",
            icon="type",
            value_shape=ValueShape.STRING,
            default_validation=[
                ValidationRule(
                    type=ValidationRuleType.MAX,
                    value=max_length,
                    message=f"Text must be less than {max_length} characters",
                )
            ],
            supported_validations=_STRING_RULES,
        ),
        QuestionTypeDescriptor(
            type=QuestionType.NUMERIC_INPUT,
            label="Numeric Input",
            description="Number entry field",
            icon="hash",
            value_shape=ValueShape.NUMBER,
            supported_validations=[
                ValidationRuleType.REQUIRED,
                ValidationRuleType.MIN,
                ValidationRuleType.MAX,
                ValidationRuleType.CUSTOM,
            ],
        ),
        QuestionTypeDescriptor(
            type=QuestionType.DATE,
            label="Date",
            description="Calendar date (YYYY-MM-DD)",
            icon="calendar",
            value_shape=ValueShape.DATE,
            supported_validations=[ValidationRuleType.REQUIRED, ValidationRuleType.CUSTOM],
            estimated_seconds=20,
        ),
        QuestionTypeDescriptor(
            type=QuestionType.DATETIME,
            label="Date & Time",
            description="Calendar date with time of day",
            icon="clock",
            value_shape=ValueShape.DATETIME,
            supported_validations=[ValidationRuleType.REQUIRED, ValidationRuleType.CUSTOM],
            estimated_seconds=20,
        ),
        QuestionTypeDescriptor(
            type=QuestionType.SINGLE_SELECT,
            label="Single Select",
            description="Dropdown or radio button selection",
            icon="list",
            value_shape=ValueShape.CHOICE,
            supports_options=True,
            requires_options=True,
            supported_validations=[ValidationRuleType.REQUIRED, ValidationRuleType.CUSTOM],
            estimated_seconds=15,
        ),
        QuestionTypeDescriptor(
            type=QuestionType.MULTI_SELECT,
            label="Multi Select",
            description="Checkbox list allowing several selections",
            icon="list-checks",
            value_shape=ValueShape.CHOICE_LIST,
            supports_options=True,
            requires_options=True,
            supported_validations=[ValidationRuleType.REQUIRED, ValidationRuleType.CUSTOM],
            estimated_seconds=20,
        ),
        QuestionTypeDescriptor(
            type=QuestionType.YES_NO,
            label="Yes/No",
            description="Boolean toggle or checkbox",
            icon="check-square",
            value_shape=ValueShape.BOOLEAN,
            supports_options=True,
            supported_validations=[ValidationRuleType.REQUIRED, ValidationRuleType.CUSTOM],
            estimated_seconds=15,
            default_options=[
                QuestionOption(id="yes", label="Yes", value="yes", order=0),
                QuestionOption(id="no", label="No", value="no", order=1),
            ],
        ),
        QuestionTypeDescriptor(
            type=QuestionType.FILE_UPLOAD,
            label="File Upload",
            description="Attach a supporting document",
            icon="paperclip",
            value_shape=ValueShape.FILE,
            supported_validations=[ValidationRuleType.REQUIRED, ValidationRuleType.CUSTOM],
            estimated_seconds=60,
        ),
        QuestionTypeDescriptor(
            type=QuestionType.SECTION_HEADER,
            label="Section Header",
            description="Organize form sections with headers",
            icon="heading",
            value_shape=ValueShape.NONE,
            supports_conditional_logic=False,
            estimated_seconds=6,
        ),
    ]
    return {entry.type: entry for entry in entries}


_REGISTRY = _build_registry()


def describe(question_type: Any) -> QuestionTypeDescriptor:
    """Return the registry entry for a question type.

    Accepts a ``QuestionType`` or its string value.
    """
    try:
        key = QuestionType(question_type)
    except ValueError:
        raise UnsupportedQuestionTypeError(question_type) from None
    return _REGISTRY[key]


def get_question_type_library() -> List[QuestionTypeDescriptor]:
    """List every supported question type in declaration order."""
    return list(_REGISTRY.values())


def canonical_yes_no(value: Any) -> Optional[str]:
    """Canonicalize a yes/no answer to ``"yes"`` or ``"no"``.

    Returns None when the value is not a recognizable yes/no token.
    """
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, str):
        token = value.strip().lower()
        if token in YES_TOKENS:
            return "yes"
        if token in NO_TOKENS:
            return "no"
    return None


def option_values(options: Optional[List[QuestionOption]]) -> Tuple[str, ...]:
    return tuple(option.value for option in options or [])
