"""Respondent-facing preview of a template."""

import math
from typing import Any, Mapping, Optional

from formbuilder.engine import registry
from formbuilder.engine.compiler import is_statically_required
from formbuilder.engine.evaluator import visible_questions
from formbuilder.schemas.evaluation import FormPreview
from formbuilder.schemas.template import TemplateDefinition

BASE_COMPLETION_SECONDS = 60


def estimate_completion_minutes(template: TemplateDefinition) -> int:
    """Rough completion time: per-type seconds from the registry plus one minute."""
    seconds = BASE_COMPLETION_SECONDS + sum(
        registry.describe(q.type).estimated_seconds for q in template.questions
    )
    return math.ceil(seconds / 60)


def generate_form_preview(
    template: TemplateDefinition,
    sample_responses: Optional[Mapping[str, Any]] = None,
) -> FormPreview:
    """
    Build a preview of a template.

    With ``sample_responses`` the question list is narrowed to the questions
    visible for those answers; counts always describe the full template.
    """
    questions = list(template.questions)
    if sample_responses is not None:
        questions = visible_questions(questions, sample_responses)

    return FormPreview(
        template_id=template.id,
        name=template.name,
        description=template.description,
        questions=questions,
        estimated_completion_time=estimate_completion_minutes(template),
        total_questions=len(template.questions),
        required_questions=sum(1 for q in template.questions if is_statically_required(q)),
        conditional_questions=sum(1 for q in template.questions if q.conditional_logic),
    )
