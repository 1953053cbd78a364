"""Form definition engine: pure functions over template definitions."""

from formbuilder.engine.registry import describe, get_question_type_library
from formbuilder.engine.compiler import compile_validator
from formbuilder.engine.evaluator import evaluate_conditional_logic, topological_order, visible_questions
from formbuilder.engine.questions import (
    add_question,
    update_question,
    delete_question,
    reorder_questions,
    validate_definition,
    validate_conditional_rules,
)
from formbuilder.engine.versions import compare_versions, next_version_number
from formbuilder.engine.preview import generate_form_preview

__all__ = [
    "describe",
    "get_question_type_library",
    "compile_validator",
    "evaluate_conditional_logic",
    "visible_questions",
    "topological_order",
    "add_question",
    "update_question",
    "delete_question",
    "reorder_questions",
    "validate_definition",
    "validate_conditional_rules",
    "compare_versions",
    "next_version_number",
    "generate_form_preview",
]
