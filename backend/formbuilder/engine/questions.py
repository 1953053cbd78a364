"""Question manager.

Structural edits of a template's question list. Every function takes a
``TemplateDefinition`` and returns a new one; the input is never mutated.
Order indices are renumbered to a contiguous ``0..N-1`` after every edit.

Definition errors (unknown type, misplaced options, bad rules, dangling or
cyclic conditional references) block the edit entirely.
"""

import logging
from collections import Counter
from typing import Any, Dict, List, Union

from pydantic import ValidationError

from formbuilder.engine import registry
from formbuilder.engine.compiler import compile_question
from formbuilder.engine.errors import (
    CyclicDependencyError,
    DuplicateQuestionIdError,
    InvalidQuestionError,
    InvalidReorderSetError,
    QuestionNotFoundError,
    from_validation_error,
)
from formbuilder.engine.evaluator import topological_order
from formbuilder.schemas.evaluation import ConditionalLogicReport
from formbuilder.schemas.question import ConditionalRule, Question, QuestionUpdate
from formbuilder.schemas.template import TemplateDefinition

logger = logging.getLogger(__name__)


def _renumber(questions: List[Question]) -> List[Question]:
    return [q.model_copy(update={"order": index}) for index, q in enumerate(questions)]


def _with_questions(template: TemplateDefinition, questions: List[Question]) -> TemplateDefinition:
    return template.model_copy(update={"questions": _renumber(questions)})


def validate_question(question: Question) -> Question:
    """Check a single question against the registry. Returns it with default options applied."""
    descriptor = registry.describe(question.type)

    if question.options and not descriptor.supports_options:
        raise InvalidQuestionError(
            question.id, f"{descriptor.type.value} questions do not accept options"
        )
    if descriptor.requires_options and not question.options:
        raise InvalidQuestionError(question.id, "selection questions must have at least one option")
    if question.options:
        values = [option.value for option in question.options]
        duplicates = sorted(v for v, n in Counter(values).items() if n > 1)
        if duplicates:
            raise InvalidQuestionError(question.id, f"duplicate option values: {', '.join(duplicates)}")
    if question.conditional_logic and not descriptor.supports_conditional_logic:
        raise InvalidQuestionError(
            question.id, f"{descriptor.type.value} questions do not support conditional logic"
        )
    if question.required and descriptor.value_shape is registry.ValueShape.NONE:
        raise InvalidQuestionError(question.id, f"{descriptor.type.value} questions cannot be required")

    # Custom predicates are injected when the validator is compiled
    compile_question(question, strict_custom=False)

    if descriptor.default_options and not question.options:
        question = question.model_copy(update={"options": list(descriptor.default_options)})
    return question


def validate_definition(questions: List[Question]) -> List[Question]:
    """Validate a whole question list: each question, id uniqueness, references, cycles."""
    checked = [validate_question(q) for q in questions]
    topological_order(checked)
    return _renumber(checked)


def validate_conditional_rules(
    questions: List[Question],
    target_id: str,
    rules: List[ConditionalRule],
) -> ConditionalLogicReport:
    """Report problems with candidate rules for ``target_id`` without raising."""
    known = {q.id for q in questions}
    errors: List[str] = []
    if target_id not in known:
        errors.append(f"Target question {target_id} does not exist")
    for rule in rules:
        if rule.question_id not in known:
            errors.append(f"Referenced question {rule.question_id} does not exist")
        elif rule.question_id == target_id:
            errors.append("Circular dependency detected: question cannot reference itself")

    if not errors:
        candidate = [
            q.model_copy(update={"conditional_logic": list(rules)}) if q.id == target_id else q
            for q in questions
        ]
        try:
            topological_order(candidate)
        except CyclicDependencyError as exc:
            errors.append(exc.message)
    return ConditionalLogicReport(is_valid=not errors, errors=errors)


def _check_structure(questions: List[Question]) -> None:
    """Reject dangling references and cycles across the whole list."""
    topological_order(questions)


def parse_patch(patch: Union[QuestionUpdate, Dict[str, Any]]) -> QuestionUpdate:
    """Coerce a raw patch into a ``QuestionUpdate``, raising engine errors for bad input."""
    if isinstance(patch, QuestionUpdate):
        return patch
    try:
        return QuestionUpdate.model_validate(patch)
    except ValidationError as exc:
        raise from_validation_error(exc) from exc


def add_question(template: TemplateDefinition, question: Question) -> TemplateDefinition:
    """Append a question with the next contiguous order index."""
    if template.find_question(question.id) is not None:
        raise DuplicateQuestionIdError(question.id)
    question = validate_question(question)
    questions = list(template.questions) + [question]
    _check_structure(questions)
    logger.info("question added template=%s question=%s", template.id, question.id)
    return _with_questions(template, questions)


def update_question(
    template: TemplateDefinition,
    question_id: str,
    patch: Union[QuestionUpdate, Dict[str, Any]],
) -> TemplateDefinition:
    """Apply a partial update to one question and re-validate it."""
    current = template.find_question(question_id)
    if current is None:
        raise QuestionNotFoundError(question_id)

    changes = parse_patch(patch).model_dump(exclude_unset=True)

    # Revalidate through the model so nested rules and options are typed
    try:
        merged = Question.model_validate({**current.model_dump(), **changes, "id": question_id})
    except ValidationError as exc:
        raise from_validation_error(exc) from exc
    # A type change to a kind without options drops the previous option list
    if "type" in changes and "options" not in changes and not registry.describe(merged.type).supports_options:
        merged = merged.model_copy(update={"options": None})
    merged = validate_question(merged)

    questions = [merged if q.id == question_id else q for q in template.questions]
    _check_structure(questions)
    logger.info(
        "question updated template=%s question=%s fields=%s",
        template.id,
        question_id,
        sorted(changes),
    )
    return _with_questions(template, questions)


def delete_question(template: TemplateDefinition, question_id: str) -> TemplateDefinition:
    """Remove a question, renumber, and strip every rule that watched it."""
    if template.find_question(question_id) is None:
        raise QuestionNotFoundError(question_id)

    questions: List[Question] = []
    stripped = 0
    for q in template.questions:
        if q.id == question_id:
            continue
        kept = [rule for rule in q.conditional_logic if rule.question_id != question_id]
        if len(kept) != len(q.conditional_logic):
            stripped += len(q.conditional_logic) - len(kept)
            q = q.model_copy(update={"conditional_logic": kept})
        questions.append(q)

    logger.info(
        "question deleted template=%s question=%s dangling_rules_removed=%d",
        template.id,
        question_id,
        stripped,
    )
    return _with_questions(template, questions)


def reorder_questions(template: TemplateDefinition, ordered_ids: List[str]) -> TemplateDefinition:
    """Apply a new order. ``ordered_ids`` must be a permutation of the current ids."""
    current = template.question_ids()
    counts = Counter(ordered_ids)
    duplicates = sorted(qid for qid, n in counts.items() if n > 1)
    missing = [qid for qid in current if qid not in counts]
    known = set(current)
    unexpected = [qid for qid in counts if qid not in known]
    if duplicates or missing or unexpected:
        raise InvalidReorderSetError(missing, unexpected, duplicates)

    by_id = {q.id: q for q in template.questions}
    return _with_questions(template, [by_id[qid] for qid in ordered_ids])
