"""Conditional logic evaluator.

Resolves the effective visibility and required-ness of every question of a
template given a (possibly partial) response map.

Rules form a directed graph: a rule attached to target ``T`` that watches
trigger ``W`` contributes the edge ``W -> T``. The graph is rebuilt on every
call, sorted topologically with Kahn's algorithm (ties broken by declared
question order so results are deterministic), and evaluated in that order so
every trigger's state is final before its targets are resolved. A cycle
aborts the evaluation with ``CyclicDependencyError``.

A hidden trigger's value is treated as absent, so hiding cascades down rule
chains. Evaluation is pure: no I/O, no shared state.
"""

import heapq
import logging
from typing import Any, Dict, List, Mapping, Optional, Set

from formbuilder.engine import registry
from formbuilder.engine.compiler import is_number, is_statically_required
from formbuilder.engine.errors import CyclicDependencyError, DanglingReferenceError, DuplicateQuestionIdError
from formbuilder.schemas.evaluation import EffectiveState
from formbuilder.schemas.question import (
    ConditionalAction,
    ConditionalOperator,
    ConditionalRule,
    Question,
    QuestionType,
)

logger = logging.getLogger(__name__)

_ABSENT = object()


def build_dependency_graph(questions: List[Question]) -> Dict[str, List[str]]:
    """Return an adjacency map trigger_id -> [target_id, ...] in declared order.

    Raises on duplicate question ids and on rules whose trigger is unknown.
    """
    graph: Dict[str, List[str]] = {}
    for question in questions:
        if question.id in graph:
            raise DuplicateQuestionIdError(question.id)
        graph[question.id] = []

    for question in questions:
        for rule in question.conditional_logic:
            if rule.question_id not in graph:
                raise DanglingReferenceError(question.id, rule.question_id)
            targets = graph[rule.question_id]
            if question.id not in targets:
                targets.append(question.id)
    return graph


def _cycle_members(graph: Dict[str, List[str]], remaining: Set[str]) -> Set[str]:
    """Narrow the nodes Kahn's algorithm could not order down to those on cycles.

    Nodes left over after Kahn's pass are either on a cycle or downstream of
    one; peeling nodes with no outgoing edge inside the remainder drops the
    downstream ones.
    """
    nodes = set(remaining)
    changed = True
    while changed:
        changed = False
        for node in list(nodes):
            if not any(target in nodes for target in graph[node]):
                nodes.discard(node)
                changed = True
    return nodes


def topological_order(questions: List[Question]) -> List[str]:
    """Order question ids so every trigger precedes its targets.

    Raises ``CyclicDependencyError`` naming the ids on the cycle(s).
    """
    graph = build_dependency_graph(questions)
    position = {q.id: index for index, q in enumerate(questions)}
    in_degree = {qid: 0 for qid in graph}
    for targets in graph.values():
        for target in targets:
            in_degree[target] += 1

    ready = [(position[qid], qid) for qid, degree in in_degree.items() if degree == 0]
    heapq.heapify(ready)
    order: List[str] = []
    while ready:
        _, qid = heapq.heappop(ready)
        order.append(qid)
        for target in graph[qid]:
            in_degree[target] -= 1
            if in_degree[target] == 0:
                heapq.heappush(ready, (position[target], target))

    if len(order) != len(graph):
        remaining = {qid for qid, degree in in_degree.items() if degree > 0}
        cycle = _cycle_members(graph, remaining)
        raise CyclicDependencyError(sorted(cycle, key=position.__getitem__))
    return order


def _normalize(value: Any, trigger: Question) -> Any:
    if trigger.type == QuestionType.YES_NO:
        canonical = registry.canonical_yes_no(value)
        if canonical is not None:
            return canonical
    return value


def _equals(left: Any, right: Any) -> bool:
    # bool is an int subclass; True must not equal 1
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    if is_number(left) and is_number(right):
        return left == right
    if type(left) is not type(right) and not (isinstance(left, str) and isinstance(right, str)):
        return False
    return left == right


def _contains(container: Any, needle: Any) -> bool:
    if isinstance(container, str):
        return isinstance(needle, str) and needle.lower() in container.lower()
    if isinstance(container, (list, tuple, set, frozenset)):
        return any(_equals(item, needle) for item in container)
    return False


def evaluate_condition(rule: ConditionalRule, value: Any, trigger: Question) -> bool:
    """Evaluate one rule against the trigger's current value. Never raises."""
    if value is _ABSENT or value is None:
        return False

    operator = rule.operator
    if operator in (ConditionalOperator.EQUALS, ConditionalOperator.NOT_EQUALS):
        matched = _equals(_normalize(value, trigger), _normalize(rule.value, trigger))
        return matched if operator == ConditionalOperator.EQUALS else not matched
    if operator == ConditionalOperator.CONTAINS:
        return _contains(value, rule.value)
    if operator in (ConditionalOperator.GREATER_THAN, ConditionalOperator.LESS_THAN):
        if not (is_number(value) and is_number(rule.value)):
            return False
        if operator == ConditionalOperator.GREATER_THAN:
            return value > rule.value
        return value < rule.value
    return False


def _resolve(
    question: Question,
    matched: List[ConditionalAction],
    has_show_rule: bool,
    all_show_matched: bool,
) -> EffectiveState:
    # Visibility axis: hide beats show; show rules gate visibility
    if ConditionalAction.HIDE in matched:
        return EffectiveState.HIDDEN
    if has_show_rule and not all_show_matched:
        return EffectiveState.HIDDEN

    # Required axis: require beats optional
    if ConditionalAction.REQUIRE in matched:
        required = True
    elif ConditionalAction.OPTIONAL in matched:
        required = False
    else:
        required = is_statically_required(question)

    if registry.describe(question.type).value_shape is registry.ValueShape.NONE:
        required = False
    return EffectiveState.VISIBLE_REQUIRED if required else EffectiveState.VISIBLE_OPTIONAL


def evaluate_conditional_logic(
    questions: List[Question],
    responses: Optional[Mapping[str, Any]] = None,
) -> Dict[str, EffectiveState]:
    """Compute the effective state of every question.

    Returns a mapping question_id -> EffectiveState in declared question order.
    """
    responses = responses or {}
    by_id = {q.id: q for q in questions}
    order = topological_order(questions)
    states: Dict[str, EffectiveState] = {}

    for qid in order:
        question = by_id[qid]
        matched: List[ConditionalAction] = []
        has_show_rule = False
        all_show_matched = True

        for rule in question.conditional_logic:
            trigger = by_id[rule.question_id]
            if states[trigger.id].is_hidden:
                value = _ABSENT
            else:
                value = responses.get(trigger.id, _ABSENT)
            hit = evaluate_condition(rule, value, trigger)
            if rule.action == ConditionalAction.SHOW:
                has_show_rule = True
                all_show_matched = all_show_matched and hit
            if hit:
                matched.append(rule.action)

        states[qid] = _resolve(question, matched, has_show_rule, all_show_matched)

    logger.debug(
        "evaluated conditional logic questions=%d hidden=%d",
        len(states),
        sum(1 for s in states.values() if s.is_hidden),
    )
    return {q.id: states[q.id] for q in questions}


def visible_questions(
    questions: List[Question],
    responses: Optional[Mapping[str, Any]] = None,
) -> List[Question]:
    """Questions that are not hidden for the given responses, in declared order."""
    states = evaluate_conditional_logic(questions, responses)
    return [q for q in questions if not states[q.id].is_hidden]
