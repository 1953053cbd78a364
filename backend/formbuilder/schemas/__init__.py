"""Pydantic schemas for template definitions, questions and engine results."""

from formbuilder.schemas.question import (
    QuestionType,
    ValidationRuleType,
    ConditionalOperator,
    ConditionalAction,
    QuestionOption,
    ValidationRule,
    ConditionalRule,
    Question,
    QuestionUpdate,
    ResponseData,
)
from formbuilder.schemas.template import (
    BusinessRuleType,
    BusinessRule,
    TemplateDefinition,
    TemplateCreate,
    TemplateUpdate,
    TemplateResponse,
    FormCategoryCreate,
    FormTypeCreate,
)
from formbuilder.schemas.evaluation import (
    EffectiveState,
    FieldError,
    ValidationResult,
    SubmissionResult,
    ConditionalLogicReport,
    FormPreview,
    FieldChange,
    QuestionChange,
    BusinessRuleDiff,
    TemplateDiff,
)

__all__ = [
    # Question
    "QuestionType",
    "ValidationRuleType",
    "ConditionalOperator",
    "ConditionalAction",
    "QuestionOption",
    "ValidationRule",
    "ConditionalRule",
    "Question",
    "QuestionUpdate",
    "ResponseData",
    # Template
    "BusinessRuleType",
    "BusinessRule",
    "TemplateDefinition",
    "TemplateCreate",
    "TemplateUpdate",
    "TemplateResponse",
    "FormCategoryCreate",
    "FormTypeCreate",
    # Evaluation
    "EffectiveState",
    "FieldError",
    "ValidationResult",
    "SubmissionResult",
    "ConditionalLogicReport",
    "FormPreview",
    "FieldChange",
    "QuestionChange",
    "BusinessRuleDiff",
    "TemplateDiff",
]
