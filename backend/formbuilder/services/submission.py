"""Submission service: evaluate conditional logic, then validate answers."""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from sqlalchemy.orm import Session

from formbuilder.engine.compiler import Predicate, compile_validator
from formbuilder.engine.evaluator import evaluate_conditional_logic
from formbuilder.schemas.evaluation import SubmissionResult
from formbuilder.schemas.question import Question, ResponseData
from formbuilder.services.template import TemplateService

logger = logging.getLogger(__name__)

Responses = Union[Mapping[str, Any], Iterable[ResponseData]]


def _as_mapping(responses: Optional[Responses]) -> Dict[str, Any]:
    if responses is None:
        return {}
    if isinstance(responses, Mapping):
        return dict(responses)
    return {item.question_id: item.value for item in responses}


class SubmissionService:
    """Service for validating a respondent's answers against a template."""

    @staticmethod
    def validate_submission(
        questions: List[Question],
        responses: Optional[Responses],
        custom_rules: Optional[Mapping[str, Predicate]] = None
    ) -> SubmissionResult:
        """
        Validate responses the way the form is actually presented.

        Hidden questions are skipped and required-ness follows the effective
        state, so an answer is only demanded when the question is shown and
        required for these responses.
        """
        answers = _as_mapping(responses)
        effective_state = evaluate_conditional_logic(questions, answers)
        validator = compile_validator(questions, effective_state, custom_rules)
        result = validator.validate(answers)
        logger.debug(
            "validated submission questions=%d errors=%d",
            len(questions),
            len(result.errors),
        )
        return SubmissionResult(
            valid=result.valid,
            errors=result.errors,
            effective_state=effective_state,
        )

    @staticmethod
    def validate_template_submission(
        db: Session,
        template_id: int,
        responses: Optional[Responses],
        custom_rules: Optional[Mapping[str, Predicate]] = None
    ) -> SubmissionResult:
        definition = TemplateService.get_definition(db, template_id)
        return SubmissionService.validate_submission(definition.questions, responses, custom_rules)
