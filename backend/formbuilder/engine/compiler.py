"""Validation schema compiler.

Turns a template's loosely-typed rule declarations into one executable
validator. Each ``ValidationRule`` is dispatched on its ``type`` tag and
compiled to a predicate closure; incompatible or malformed rules fail at
compile time, never while validating a submission.
"""

import logging
import math
import re
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Mapping, Optional

from formbuilder.engine import registry
from formbuilder.engine.errors import IncompatibleRuleError, InvalidPatternError
from formbuilder.engine.registry import ValueShape, BOUNDED_SHAPES
from formbuilder.schemas.evaluation import EffectiveState, FieldError, ValidationResult
from formbuilder.schemas.question import Question, ValidationRule, ValidationRuleType

logger = logging.getLogger(__name__)

Predicate = Callable[[Any], bool]

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PHONE_PATTERN = re.compile(r"^\+?[0-9\s().-]{7,20}$")

DEFAULT_REQUIRED_MESSAGE = "This question is required"

SHAPE_MESSAGES = {
    ValueShape.STRING: "Expected a text answer",
    ValueShape.NUMBER: "Expected a number",
    ValueShape.DATE: "Expected a date (YYYY-MM-DD)",
    ValueShape.DATETIME: "Expected a date and time",
    ValueShape.CHOICE: "Select one of the available options",
    ValueShape.CHOICE_LIST: "Select only from the available options",
    ValueShape.BOOLEAN: "Answer yes or no",
    ValueShape.FILE: "Expected an uploaded file reference",
}


def is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, Decimal)):
        return True
    return isinstance(value, float) and math.isfinite(value)


def is_empty(value: Any) -> bool:
    """An answer counts as missing when it is None, blank, or an empty collection."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return False


def is_statically_required(question: Question) -> bool:
    """Required-ness declared on the question itself, before conditional logic."""
    if registry.describe(question.type).value_shape is ValueShape.NONE:
        return False
    return question.required or any(
        rule.type == ValidationRuleType.REQUIRED for rule in question.validation
    )


def _parses(parser: Callable[[str], Any], value: str) -> bool:
    try:
        parser(value)
    except ValueError:
        return False
    return True


def _shape_predicate(question: Question, shape: ValueShape) -> Predicate:
    allowed = registry.option_values(question.options)

    if shape is ValueShape.STRING:
        return lambda v: isinstance(v, str)
    if shape is ValueShape.NUMBER:
        return is_number
    if shape is ValueShape.DATE:
        return lambda v: isinstance(v, date) or (isinstance(v, str) and _parses(date.fromisoformat, v))
    if shape is ValueShape.DATETIME:
        return lambda v: isinstance(v, datetime) or (isinstance(v, str) and _parses(datetime.fromisoformat, v))
    if shape is ValueShape.CHOICE:
        return lambda v: isinstance(v, str) and (not allowed or v in allowed)
    if shape is ValueShape.CHOICE_LIST:
        return lambda v: isinstance(v, (list, tuple)) and all(
            isinstance(item, str) and (not allowed or item in allowed) for item in v
        )
    if shape is ValueShape.BOOLEAN:
        return lambda v: registry.canonical_yes_no(v) is not None or (isinstance(v, str) and v in allowed)
    if shape is ValueShape.FILE:
        return lambda v: (isinstance(v, str) and bool(v.strip())) or (
            isinstance(v, dict) and bool(v.get("file_name") or v.get("id"))
        )
    return lambda v: True


class CompiledRule:
    """A validation rule reduced to a predicate over a present, well-shaped value."""

    __slots__ = ("rule_type", "message", "predicate")

    def __init__(self, rule_type: str, message: str, predicate: Predicate):
        self.rule_type = rule_type
        self.message = message
        self.predicate = predicate


class CompiledQuestion:
    """Executable checks for a single question."""

    def __init__(
        self,
        question_id: str,
        shape: ValueShape,
        shape_check: Predicate,
        required: bool,
        required_message: str,
        rules: List[CompiledRule],
    ):
        self.question_id = question_id
        self.shape = shape
        self.shape_check = shape_check
        self.required = required
        self.required_message = required_message
        self.rules = rules

    def check(self, value: Any, required: bool) -> List[FieldError]:
        if self.shape is ValueShape.NONE:
            return []
        if is_empty(value):
            if required:
                return [FieldError(
                    question_id=self.question_id,
                    rule=ValidationRuleType.REQUIRED.value,
                    message=self.required_message,
                )]
            return []
        if not self.shape_check(value):
            return [FieldError(
                question_id=self.question_id,
                rule="type",
                message=SHAPE_MESSAGES.get(self.shape, "Invalid value"),
            )]
        return [
            FieldError(question_id=self.question_id, rule=rule.rule_type, message=rule.message)
            for rule in self.rules
            if not rule.predicate(value)
        ]


def _numeric_bound(question: Question, rule: ValidationRule) -> float:
    if not is_number(rule.value):
        raise IncompatibleRuleError(question.id, rule.type.value, "bound must be a number")
    return rule.value


def _measure(shape: ValueShape) -> Callable[[Any], Any]:
    if shape is ValueShape.STRING:
        return len
    return lambda v: v


def _resolve_custom(
    question: Question,
    rule: ValidationRule,
    custom_rules: Optional[Mapping[str, Predicate]],
    strict_custom: bool,
) -> Predicate:
    if isinstance(rule.value, str):
        if custom_rules is not None and rule.value in custom_rules:
            return custom_rules[rule.value]
        if not strict_custom:
            return lambda v: True
    raise IncompatibleRuleError(
        question.id, rule.type.value, f"custom predicate {rule.value!r} is not registered"
    )


def compile_rule(
    question: Question,
    rule: ValidationRule,
    shape: ValueShape,
    custom_rules: Optional[Mapping[str, Predicate]] = None,
    strict_custom: bool = True,
) -> Optional[CompiledRule]:
    """Compile one declared rule. Returns None for ``required``, which only flags the question."""
    descriptor = registry.describe(question.type)
    rule_type = rule.type
    if rule_type not in descriptor.supported_validations:
        raise IncompatibleRuleError(
            question.id, rule_type.value, f"not supported for {descriptor.type.value} questions"
        )

    if rule_type == ValidationRuleType.REQUIRED:
        return None

    if rule_type in (ValidationRuleType.MIN, ValidationRuleType.MAX):
        if shape not in BOUNDED_SHAPES:
            raise IncompatibleRuleError(
                question.id, rule_type.value, f"cannot bound a {shape.value} value"
            )
        bound = _numeric_bound(question, rule)
        measure = _measure(shape)
        if rule_type == ValidationRuleType.MIN:
            return CompiledRule(rule_type.value, rule.message, lambda v: measure(v) >= bound)
        return CompiledRule(rule_type.value, rule.message, lambda v: measure(v) <= bound)

    if rule_type in (ValidationRuleType.PATTERN, ValidationRuleType.EMAIL, ValidationRuleType.PHONE):
        if shape is not ValueShape.STRING:
            raise IncompatibleRuleError(
                question.id, rule_type.value, f"cannot match a {shape.value} value"
            )
        if rule_type == ValidationRuleType.EMAIL:
            compiled = EMAIL_PATTERN
        elif rule_type == ValidationRuleType.PHONE:
            compiled = PHONE_PATTERN
        else:
            if not isinstance(rule.value, str):
                raise InvalidPatternError(question.id, rule.value, "pattern must be a string")
            try:
                compiled = re.compile(rule.value)
            except re.error as exc:
                raise InvalidPatternError(question.id, rule.value, str(exc)) from exc
        return CompiledRule(rule_type.value, rule.message, lambda v: compiled.search(v) is not None)

    if rule_type == ValidationRuleType.CUSTOM:
        predicate = _resolve_custom(question, rule, custom_rules, strict_custom)
        return CompiledRule(rule_type.value, rule.message, lambda v: bool(predicate(v)))

    raise IncompatibleRuleError(question.id, str(rule_type), "unknown rule type")


def _effective_rules(question: Question, defaults: List[ValidationRule]) -> List[ValidationRule]:
    declared = {rule.type for rule in question.validation}
    return [rule for rule in defaults if rule.type not in declared] + list(question.validation)


def compile_question(
    question: Question,
    custom_rules: Optional[Mapping[str, Predicate]] = None,
    strict_custom: bool = True,
) -> CompiledQuestion:
    """Compile every rule of one question, raising on the first definition error."""
    descriptor = registry.describe(question.type)
    shape = descriptor.value_shape
    rules: List[CompiledRule] = []
    required_message = DEFAULT_REQUIRED_MESSAGE

    for rule in _effective_rules(question, descriptor.default_validation):
        if rule.type == ValidationRuleType.REQUIRED:
            required_message = rule.message
        compiled = compile_rule(question, rule, shape, custom_rules, strict_custom)
        if compiled is not None:
            rules.append(compiled)

    return CompiledQuestion(
        question_id=question.id,
        shape=shape,
        shape_check=_shape_predicate(question, shape),
        required=is_statically_required(question),
        required_message=required_message,
        rules=rules,
    )


class CompiledValidator:
    """Validator for a whole template's response map."""

    def __init__(
        self,
        questions: List[CompiledQuestion],
        effective_state: Optional[Mapping[str, EffectiveState]] = None,
    ):
        self.questions = questions
        self.effective_state: Dict[str, EffectiveState] = dict(effective_state or {})

    def _required(self, compiled: CompiledQuestion) -> Optional[bool]:
        """Effective required-ness, or None when the question is hidden."""
        state = self.effective_state.get(compiled.question_id)
        if state is None:
            return compiled.required
        if state.is_hidden:
            return None
        return state.is_required

    def validate(self, responses: Mapping[str, Any]) -> ValidationResult:
        errors: List[FieldError] = []
        for compiled in self.questions:
            required = self._required(compiled)
            if required is None:
                continue
            errors.extend(compiled.check(responses.get(compiled.question_id), required))
        return ValidationResult(valid=not errors, errors=errors)

    __call__ = validate


def compile_validator(
    questions: List[Question],
    effective_state: Optional[Mapping[str, EffectiveState]] = None,
    custom_rules: Optional[Mapping[str, Predicate]] = None,
) -> CompiledValidator:
    """Compile a template's questions into one validator.

    ``effective_state`` comes from the conditional logic evaluator; questions
    absent from it fall back to their static required flag.
    """
    compiled = [compile_question(q, custom_rules) for q in questions]
    logger.debug("compiled validator for %d questions", len(compiled))
    return CompiledValidator(compiled, effective_state)
