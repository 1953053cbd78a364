"""Pure helpers for template version lineage: numbering, snapshots and diffs."""

from typing import Iterable, List, Optional

from formbuilder.schemas.evaluation import BusinessRuleDiff, FieldChange, QuestionChange, TemplateDiff
from formbuilder.schemas.question import Question
from formbuilder.schemas.template import BusinessRule, TemplateDefinition


def next_version_number(existing_versions: Iterable[int]) -> int:
    """Next version in a lineage: one past the current maximum."""
    return max(existing_versions, default=0) + 1


def snapshot(template: TemplateDefinition, version: int, notes: Optional[str] = None) -> TemplateDefinition:
    """Deep copy of a template's structure as a new, inactive version of the same lineage."""
    return template.model_copy(
        update={
            "id": None,
            "version": version,
            "version_notes": notes,
            "is_active": False,
            "questions": [q.model_copy(deep=True) for q in template.questions],
            "business_rules": [r.model_copy(deep=True) for r in template.business_rules],
        }
    )


def _describe_required(value: bool) -> str:
    return "required" if value else "optional"


def _question_changes(before: Question, after: Question) -> List[FieldChange]:
    changes: List[FieldChange] = []

    if before.text != after.text:
        changes.append(FieldChange(
            field="text", old_value=before.text, new_value=after.text,
            description="Question text changed",
        ))
    if before.required != after.required:
        changes.append(FieldChange(
            field="required", old_value=before.required, new_value=after.required,
            description=(
                f"Required status changed ({_describe_required(before.required)} -> "
                f"{_describe_required(after.required)})"
            ),
        ))
    if before.help_text != after.help_text:
        changes.append(FieldChange(
            field="help_text", old_value=before.help_text, new_value=after.help_text,
            description="Help text changed",
        ))
    if before.type != after.type:
        changes.append(FieldChange(
            field="type", old_value=before.type.value, new_value=after.type.value,
            description=f"Question type changed ({before.type.value} -> {after.type.value})",
        ))

    for field, description in (
        ("options", "Answer options changed"),
        ("validation", "Validation rules changed"),
        ("conditional_logic", "Conditional logic changed"),
    ):
        old = [item.model_dump(mode="json") for item in getattr(before, field) or []]
        new = [item.model_dump(mode="json") for item in getattr(after, field) or []]
        if old != new:
            changes.append(FieldChange(field=field, old_value=old, new_value=new, description=description))

    if before.default_value != after.default_value:
        changes.append(FieldChange(
            field="default_value", old_value=before.default_value, new_value=after.default_value,
            description="Default value changed",
        ))
    if before.pre_population_mapping != after.pre_population_mapping:
        changes.append(FieldChange(
            field="pre_population_mapping",
            old_value=before.pre_population_mapping,
            new_value=after.pre_population_mapping,
            description="Pre-population mapping changed",
        ))
    if before.order != after.order:
        changes.append(FieldChange(
            field="order", old_value=before.order, new_value=after.order,
            description=f"Moved from position {before.order + 1} to {after.order + 1}",
        ))
    return changes


def _business_rule_diff(before: List[BusinessRule], after: List[BusinessRule]) -> BusinessRuleDiff:
    old = {rule.id: rule.model_dump(mode="json") for rule in before}
    new = {rule.id: rule.model_dump(mode="json") for rule in after}
    return BusinessRuleDiff(
        added=[rid for rid in new if rid not in old],
        removed=[rid for rid in old if rid not in new],
        changed=[rid for rid in new if rid in old and old[rid] != new[rid]],
    )


def compare_versions(a: TemplateDefinition, b: TemplateDefinition) -> TemplateDiff:
    """Structural diff from ``a`` to ``b``, keyed by question id."""
    before = {q.id: q for q in a.questions}
    after = {q.id: q for q in b.questions}

    diff = TemplateDiff(from_version=a.version, to_version=b.version)
    diff.added = [q for q in b.questions if q.id not in before]
    diff.removed = [q for q in a.questions if q.id not in after]

    for question in a.questions:
        other = after.get(question.id)
        if other is None:
            continue
        changes = _question_changes(question, other)
        if changes:
            diff.changed.append(QuestionChange(
                question_id=question.id, before=question, after=other, changes=changes,
            ))
        else:
            diff.unchanged.append(question.id)

    diff.business_rules = _business_rule_diff(a.business_rules, b.business_rules)
    return diff
