import pytest

from formbuilder.engine.errors import (
    CYCLIC_DEPENDENCY,
    CyclicDependencyError,
    DanglingReferenceError,
    DuplicateQuestionIdError,
)
from formbuilder.engine.evaluator import (
    build_dependency_graph,
    evaluate_conditional_logic,
    topological_order,
    visible_questions,
)
from formbuilder.schemas.evaluation import EffectiveState
from formbuilder.schemas.question import ConditionalRule, Question

HIDDEN = EffectiveState.HIDDEN
OPTIONAL = EffectiveState.VISIBLE_OPTIONAL
REQUIRED = EffectiveState.VISIBLE_REQUIRED


def _q(qid, *rules, type="text_input", required=False):
    return Question(id=qid, type=type, text=qid, required=required, conditional_logic=list(rules))


def _rule(trigger, operator, value, action):
    return ConditionalRule(question_id=trigger, operator=operator, value=value, action=action)


class TestSmokerCascade:
    def test_nothing_answered(self, smoker_questions):
        states = evaluate_conditional_logic(smoker_questions, {})
        assert states == {
            "smoker": REQUIRED,
            "packs_per_day": HIDDEN,
            "quit_interest": HIDDEN,
        }

    def test_smoker_reveals_and_requires_packs(self, smoker_questions):
        states = evaluate_conditional_logic(smoker_questions, {"smoker": "yes"})
        assert states["packs_per_day"] == REQUIRED
        assert states["quit_interest"] == HIDDEN

    def test_chain_resolves_in_one_pass(self, smoker_questions):
        states = evaluate_conditional_logic(smoker_questions, {"smoker": "yes", "packs_per_day": 2})
        assert states["quit_interest"] == OPTIONAL

    def test_hidden_trigger_cascades(self, smoker_questions):
        # A stale answer for a hidden question must not reveal its dependents
        states = evaluate_conditional_logic(smoker_questions, {"smoker": "no", "packs_per_day": 2})
        assert states["packs_per_day"] == HIDDEN
        assert states["quit_interest"] == HIDDEN

    def test_boolean_answers_are_canonicalized(self, smoker_questions):
        states = evaluate_conditional_logic(smoker_questions, {"smoker": True})
        assert states["packs_per_day"] == REQUIRED

    def test_visible_questions(self, smoker_questions):
        visible = visible_questions(smoker_questions, {"smoker": "yes"})
        assert [q.id for q in visible] == ["smoker", "packs_per_day"]


def test_hide_beats_show():
    questions = [
        _q("a"),
        _q("b"),
        _q("target", _rule("a", "equals", "x", "show"), _rule("b", "equals", "y", "hide")),
    ]
    assert evaluate_conditional_logic(questions, {"a": "x", "b": "y"})["target"] == HIDDEN
    assert evaluate_conditional_logic(questions, {"a": "x", "b": "z"})["target"] == OPTIONAL


def test_every_show_rule_must_match():
    questions = [
        _q("a"),
        _q("b"),
        _q("target", _rule("a", "equals", "x", "show"), _rule("b", "equals", "y", "show")),
    ]
    assert evaluate_conditional_logic(questions, {"a": "x"})["target"] == HIDDEN
    assert evaluate_conditional_logic(questions, {"a": "x", "b": "y"})["target"] == OPTIONAL


def test_require_beats_optional():
    questions = [
        _q("a"),
        _q("target", _rule("a", "equals", "x", "require"), _rule("a", "contains", "x", "optional")),
    ]
    assert evaluate_conditional_logic(questions, {"a": "x"})["target"] == REQUIRED


def test_optional_relaxes_static_required():
    questions = [
        _q("a"),
        _q("target", _rule("a", "equals", "waived", "optional"), required=True),
    ]
    assert evaluate_conditional_logic(questions, {})["target"] == REQUIRED
    assert evaluate_conditional_logic(questions, {"a": "waived"})["target"] == OPTIONAL


def test_require_on_hidden_question_stays_hidden():
    questions = [
        _q("a"),
        _q("target", _rule("a", "equals", "x", "require"), _rule("a", "equals", "x", "hide")),
    ]
    assert evaluate_conditional_logic(questions, {"a": "x"})["target"] == HIDDEN


def test_absent_trigger_never_matches():
    questions = [_q("a"), _q("target", _rule("a", "not_equals", "x", "show"))]
    assert evaluate_conditional_logic(questions, {})["target"] == HIDDEN
    assert evaluate_conditional_logic(questions, {"a": None})["target"] == HIDDEN
    assert evaluate_conditional_logic(questions, {"a": "y"})["target"] == OPTIONAL


@pytest.mark.parametrize(
    "operator,rule_value,answer,expected",
    [
        ("equals", 2, 2.0, True),
        ("equals", True, 1, False),
        ("equals", "1", 1, False),
        ("contains", "pain", "Chest PAIN at night", True),
        ("contains", "red", ["red", "blue"], True),
        ("contains", "green", ["red", "blue"], False),
        ("greater_than", 5, 6, True),
        ("greater_than", 5, "6", False),
        ("less_than", 5, 4.5, True),
        ("less_than", 5, 5, False),
    ],
)
def test_operators(operator, rule_value, answer, expected):
    questions = [_q("a"), _q("target", _rule("a", operator, rule_value, "show"))]
    state = evaluate_conditional_logic(questions, {"a": answer})["target"]
    assert (state != HIDDEN) is expected


def test_section_header_is_never_required():
    questions = [_q("intro", type="section_header")]
    assert evaluate_conditional_logic(questions, {})["intro"] == OPTIONAL


class TestGraph:
    def test_graph_edges_point_from_trigger_to_target(self, smoker_questions):
        graph = build_dependency_graph(smoker_questions)
        assert graph == {
            "smoker": ["packs_per_day"],
            "packs_per_day": ["quit_interest"],
            "quit_interest": [],
        }

    def test_dangling_reference(self):
        questions = [_q("target", _rule("ghost", "equals", "x", "show"))]
        with pytest.raises(DanglingReferenceError):
            evaluate_conditional_logic(questions, {})

    def test_duplicate_ids(self):
        with pytest.raises(DuplicateQuestionIdError):
            build_dependency_graph([_q("a"), _q("a")])

    def test_cycle_is_detected_and_named(self):
        questions = [
            _q("a", _rule("b", "equals", "x", "show")),
            _q("b", _rule("a", "equals", "x", "show")),
            _q("c", _rule("a", "equals", "x", "show")),
        ]
        with pytest.raises(CyclicDependencyError) as excinfo:
            evaluate_conditional_logic(questions, {"a": "x", "b": "x"})
        assert excinfo.value.code == CYCLIC_DEPENDENCY
        assert excinfo.value.question_ids == ["a", "b"]

    def test_self_reference_is_a_cycle(self):
        questions = [_q("a", _rule("a", "equals", "x", "hide"))]
        with pytest.raises(CyclicDependencyError) as excinfo:
            topological_order(questions)
        assert excinfo.value.question_ids == ["a"]

    def test_order_is_declared_order_without_dependencies(self):
        questions = [_q("c"), _q("a"), _q("b")]
        assert topological_order(questions) == ["c", "a", "b"]

    def test_triggers_come_before_targets(self):
        questions = [_q("target", _rule("trigger", "equals", "x", "show")), _q("trigger")]
        assert topological_order(questions) == ["trigger", "target"]
        states = evaluate_conditional_logic(questions, {"trigger": "x"})
        assert list(states) == ["target", "trigger"]
        assert states["target"] == OPTIONAL


def test_evaluation_is_deterministic(smoker_questions):
    responses = {"smoker": "yes", "packs_per_day": 1}
    first = evaluate_conditional_logic(smoker_questions, responses)
    for _ in range(5):
        assert evaluate_conditional_logic(smoker_questions, dict(responses)) == first
