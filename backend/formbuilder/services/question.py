"""Question service: persisted question edits under the versioning policy."""

from typing import Optional, List, Dict, Any, Union

from sqlalchemy.orm import Session

from formbuilder.engine import questions as question_manager
from formbuilder.models.template import FormTemplate
from formbuilder.schemas.evaluation import ConditionalLogicReport
from formbuilder.schemas.question import ConditionalRule, Question, QuestionUpdate
from formbuilder.services.audit import (
    QUESTION_ADDED,
    QUESTION_DELETED,
    QUESTION_UPDATED,
    QUESTIONS_REORDERED,
)
from formbuilder.services.template import TemplateService


class QuestionService:
    """
    Service for question edits on stored templates.

    Each call returns the template row holding the result. For a draft that
    is the same row; for an active or superseded version it is a new version
    of the lineage, and the original row is left as it was.
    """

    @staticmethod
    def add_question(
        db: Session,
        template_id: int,
        question: Question,
        actor: Optional[str] = None
    ) -> FormTemplate:
        return TemplateService.apply_structural_edit(
            db,
            template_id,
            lambda definition: question_manager.add_question(definition, question),
            QUESTION_ADDED,
            {"question_id": question.id, "type": question.type.value},
            actor,
        )

    @staticmethod
    def update_question(
        db: Session,
        template_id: int,
        question_id: str,
        patch: Union[QuestionUpdate, Dict[str, Any]],
        actor: Optional[str] = None
    ) -> FormTemplate:
        patch = question_manager.parse_patch(patch)
        return TemplateService.apply_structural_edit(
            db,
            template_id,
            lambda definition: question_manager.update_question(definition, question_id, patch),
            QUESTION_UPDATED,
            {"question_id": question_id, "fields": sorted(patch.model_dump(exclude_unset=True))},
            actor,
        )

    @staticmethod
    def delete_question(
        db: Session,
        template_id: int,
        question_id: str,
        actor: Optional[str] = None
    ) -> FormTemplate:
        return TemplateService.apply_structural_edit(
            db,
            template_id,
            lambda definition: question_manager.delete_question(definition, question_id),
            QUESTION_DELETED,
            {"question_id": question_id},
            actor,
        )

    @staticmethod
    def reorder_questions(
        db: Session,
        template_id: int,
        ordered_ids: List[str],
        actor: Optional[str] = None
    ) -> FormTemplate:
        """Apply a new question order. Either every position changes or none does."""
        return TemplateService.apply_structural_edit(
            db,
            template_id,
            lambda definition: question_manager.reorder_questions(definition, ordered_ids),
            QUESTIONS_REORDERED,
            {"order": list(ordered_ids)},
            actor,
        )

    @staticmethod
    def validate_conditional_rules(
        db: Session,
        template_id: int,
        target_id: str,
        rules: List[ConditionalRule]
    ) -> ConditionalLogicReport:
        """Check candidate rules for a question against the stored template without saving."""
        definition = TemplateService.get_definition(db, template_id)
        return question_manager.validate_conditional_rules(definition.questions, target_id, rules)
