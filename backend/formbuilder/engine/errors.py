"""Error taxonomy for the form definition engine.

Every engine error carries a boundary ``code`` so the HTTP layer can shape a
``{success, error: {code, message, details}}`` envelope without inspecting
exception types.

* Definition-time errors block the mutating operation entirely.
* Evaluation-time errors abort the whole evaluation.
* Not-found errors are recoverable by the caller and carry no partial data.
"""

from typing import Any, Dict, Iterable, Optional

from pydantic import ValidationError


VALIDATION_ERROR = "VALIDATION_ERROR"
TEMPLATE_NOT_FOUND = "TEMPLATE_NOT_FOUND"
QUESTION_NOT_FOUND = "QUESTION_NOT_FOUND"
DUPLICATE_QUESTION_ID = "DUPLICATE_QUESTION_ID"
CYCLIC_DEPENDENCY = "CYCLIC_DEPENDENCY"
INVALID_REORDER_SET = "INVALID_REORDER_SET"
UNSUPPORTED_QUESTION_TYPE = "UNSUPPORTED_QUESTION_TYPE"
VERSION_CONFLICT = "VERSION_CONFLICT"
INTERNAL_ERROR = "INTERNAL_ERROR"


class EngineError(Exception):
    """Base class for all engine errors."""

    code = INTERNAL_ERROR

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        error = {"code": self.code, "message": self.message}
        if self.details:
            error["details"] = self.details
        return error


class DefinitionError(EngineError):
    """Bad template structure detected while defining or compiling."""

    code = VALIDATION_ERROR


class UnsupportedQuestionTypeError(DefinitionError):
    code = UNSUPPORTED_QUESTION_TYPE

    def __init__(self, question_type: Any):
        super().__init__(
            f"Unsupported question type: {question_type!r}",
            {"type": str(question_type)},
        )


class InvalidQuestionError(DefinitionError):
    """Question fields are inconsistent with its type."""

    def __init__(self, question_id: str, reason: str):
        super().__init__(
            f"Invalid question {question_id}: {reason}",
            {"question_id": question_id, "reason": reason},
        )


class IncompatibleRuleError(DefinitionError):
    """A validation rule cannot apply to the question's value shape."""

    def __init__(self, question_id: str, rule_type: str, reason: str):
        super().__init__(
            f"Rule '{rule_type}' on question {question_id}: {reason}",
            {"question_id": question_id, "rule": rule_type, "reason": reason},
        )


class InvalidPatternError(DefinitionError):
    def __init__(self, question_id: str, pattern: Any, reason: str):
        super().__init__(
            f"Invalid pattern {pattern!r} on question {question_id}: {reason}",
            {"question_id": question_id, "pattern": str(pattern), "reason": reason},
        )


class DanglingReferenceError(DefinitionError):
    """A conditional rule references a trigger question that does not exist."""

    def __init__(self, question_id: str, trigger_id: str):
        super().__init__(
            f"Question {question_id} has a conditional rule on unknown question {trigger_id}",
            {"question_id": question_id, "trigger_question_id": trigger_id},
        )


class DuplicateQuestionIdError(DefinitionError):
    code = DUPLICATE_QUESTION_ID

    def __init__(self, question_id: str):
        super().__init__(
            f"Question id already exists in template: {question_id}",
            {"question_id": question_id},
        )


class InvalidReorderSetError(DefinitionError):
    code = INVALID_REORDER_SET

    def __init__(self, missing: Iterable[str], unexpected: Iterable[str], duplicates: Iterable[str]):
        details = {
            "missing": list(missing),
            "unexpected": list(unexpected),
            "duplicates": list(duplicates),
        }
        super().__init__(
            "Reorder list must be a permutation of the template's question ids",
            details,
        )


class CyclicDependencyError(EngineError):
    code = CYCLIC_DEPENDENCY

    def __init__(self, question_ids: Iterable[str]):
        ids = list(question_ids)
        super().__init__(
            f"Conditional logic contains a dependency cycle between: {', '.join(ids)}",
            {"question_ids": ids},
        )
        self.question_ids = ids


class TemplateNotFoundError(EngineError):
    code = TEMPLATE_NOT_FOUND

    def __init__(self, message: str = "Form template not found", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class QuestionNotFoundError(EngineError):
    code = QUESTION_NOT_FOUND

    def __init__(self, question_id: str):
        super().__init__(
            "Question not found in template",
            {"question_id": question_id},
        )


class VersionConflictError(EngineError):
    """Two writers raced for the same version number or row revision."""

    code = VERSION_CONFLICT


def from_validation_error(exc: ValidationError) -> DefinitionError:
    """Translate a pydantic ``ValidationError`` raised on question input."""
    problems = exc.errors()
    for problem in problems:
        if problem["loc"] and problem["loc"][0] == "type" and problem["type"] == "enum":
            return UnsupportedQuestionTypeError(problem.get("input"))
    return DefinitionError(
        "Invalid question definition",
        {
            "errors": [
                {"loc": [str(part) for part in p["loc"]], "msg": p["msg"], "type": p["type"]}
                for p in problems
            ]
        },
    )
