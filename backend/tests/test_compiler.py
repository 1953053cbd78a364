import pytest
from pydantic import ValidationError

from formbuilder.engine.compiler import compile_question, compile_validator, is_empty
from formbuilder.engine.errors import (
    VALIDATION_ERROR,
    IncompatibleRuleError,
    InvalidPatternError,
)
from formbuilder.schemas.evaluation import EffectiveState
from formbuilder.schemas.question import Question, QuestionOption, ValidationRule


def _rules(result):
    return [error.rule for error in result.errors]


def test_required_text_round_trip():
    question = Question(id="name", type="text_input", text="Name", required=True)
    validator = compile_validator([question])

    for missing in ({}, {"name": None}, {"name": ""}, {"name": "   "}):
        result = validator(missing)
        assert not result.valid
        assert _rules(result) == ["required"]
        assert result.errors[0].question_id == "name"
        assert result.errors_for("name") == result.errors
        assert result.errors_for("other") == []

    assert validator({"name": "Ann"}).valid


def test_required_rule_message_is_used():
    question = Question(
        id="name",
        type="text_input",
        text="Name",
        validation=[ValidationRule(type="required", message="Tell us your name")],
    )
    result = compile_validator([question]).validate({})
    assert result.errors[0].message == "Tell us your name"


def test_optional_question_may_be_left_empty():
    question = Question(id="note", type="text_input", text="Notes")
    assert compile_validator([question]).validate({}).valid


def test_text_default_length_limit():
    question = Question(id="note", type="text_input", text="Notes")
    result = compile_validator([question]).validate({"note": "x" * 256})
    assert _rules(result) == ["max"]
    assert result.errors[0].message == "Text must be less than 255 characters"


def test_declared_max_replaces_default():
    question = Question(
        id="code",
        type="text_input",
        text="Code",
        validation=[ValidationRule(type="max", value=3, message="Too long")],
    )
    validator = compile_validator([question])
    assert _rules(validator({"code": "abcd"})) == ["max"]
    assert validator({"code": "abc"}).valid


def test_numeric_bounds():
    question = Question(
        id="age",
        type="numeric_input",
        text="Age",
        validation=[
            ValidationRule(type="min", value=0, message="Too small"),
            ValidationRule(type="max", value=120, message="Too large"),
        ],
    )
    validator = compile_validator([question])
    assert validator({"age": 30}).valid
    assert validator({"age": 30.5}).valid
    assert _rules(validator({"age": -1})) == ["min"]
    assert _rules(validator({"age": 121})) == ["max"]


@pytest.mark.parametrize("value", ["30", True, float("nan")])
def test_numeric_rejects_non_numbers(value):
    question = Question(id="age", type="numeric_input", text="Age")
    result = compile_validator([question]).validate({"age": value})
    assert _rules(result) == ["type"]


def test_every_failing_rule_is_reported():
    question = Question(
        id="zip",
        type="text_input",
        text="Zip code",
        validation=[
            ValidationRule(type="min", value=5, message="At least 5 characters"),
            ValidationRule(type="pattern", value=r"^[0-9]+$", message="Digits only"),
        ],
    )
    result = compile_validator([question]).validate({"zip": "abc"})
    assert _rules(result) == ["min", "pattern"]


def test_email_and_phone_rules():
    email = Question(
        id="email",
        type="text_input",
        text="Email",
        validation=[ValidationRule(type="email", message="Invalid email")],
    )
    phone = Question(
        id="phone",
        type="text_input",
        text="Phone",
        validation=[ValidationRule(type="phone", message="Invalid phone")],
    )
    validator = compile_validator([email, phone])
    assert validator({"email": "pat@example.org", "phone": "+1 (555) 123-4567"}).valid
    assert _rules(validator({"email": "pat", "phone": "call me"})) == ["email", "phone"]


def test_pattern_on_number_is_rejected_at_compile_time():
    question = Question(
        id="age",
        type="numeric_input",
        text="Age",
        validation=[ValidationRule(type="pattern", value="^[0-9]+$", message="Digits")],
    )
    with pytest.raises(IncompatibleRuleError) as excinfo:
        compile_validator([question])
    assert excinfo.value.code == VALIDATION_ERROR
    assert excinfo.value.details["question_id"] == "age"


def test_bound_on_date_is_rejected():
    question = Question(
        id="dob",
        type="date",
        text="Date of birth",
        validation=[ValidationRule(type="min", value=1900, message="Too early")],
    )
    with pytest.raises(IncompatibleRuleError):
        compile_question(question)


def test_non_numeric_bound_is_rejected():
    question = Question(
        id="age",
        type="numeric_input",
        text="Age",
        validation=[ValidationRule(type="min", value="zero", message="Too small")],
    )
    with pytest.raises(IncompatibleRuleError):
        compile_question(question)


def test_malformed_pattern_is_rejected():
    question = Question(
        id="code",
        type="text_input",
        text="Code",
        validation=[ValidationRule(type="pattern", value="([a-z", message="Bad")],
    )
    with pytest.raises(InvalidPatternError):
        compile_question(question)


def test_custom_predicates_by_name():
    question = Question(
        id="count",
        type="numeric_input",
        text="Count",
        validation=[ValidationRule(type="custom", value="even", message="Must be even")],
    )
    validator = compile_validator([question], custom_rules={"even": lambda v: v % 2 == 0})
    assert validator({"count": 4}).valid
    result = validator({"count": 3})
    assert _rules(result) == ["custom"]
    assert result.errors[0].message == "Must be even"


def test_unregistered_custom_predicate_is_rejected():
    question = Question(
        id="count",
        type="numeric_input",
        text="Count",
        validation=[ValidationRule(type="custom", value="even", message="Must be even")],
    )
    with pytest.raises(IncompatibleRuleError):
        compile_validator([question])


def test_select_values_must_be_known_options():
    options = [QuestionOption(label="Red", value="red"), QuestionOption(label="Blue", value="blue")]
    single = Question(id="colour", type="single_select", text="Colour", options=options)
    multi = Question(id="colours", type="multi_select", text="Colours", options=options)
    validator = compile_validator([single, multi])

    assert validator({"colour": "red", "colours": ["red", "blue"]}).valid
    assert _rules(validator({"colour": "green"})) == ["type"]
    assert _rules(validator({"colours": ["red", "green"]})) == ["type"]


def test_date_values_must_parse():
    question = Question(id="dob", type="date", text="Date of birth")
    validator = compile_validator([question])
    assert validator({"dob": "1990-04-01"}).valid
    assert _rules(validator({"dob": "01/04/1990"})) == ["type"]


def test_hidden_questions_are_not_validated():
    question = Question(id="packs", type="numeric_input", text="Packs", required=True)
    validator = compile_validator([question], effective_state={"packs": EffectiveState.HIDDEN})
    assert validator({}).valid
    assert validator({"packs": "lots"}).valid


def test_effective_state_overrides_static_required():
    question = Question(id="packs", type="numeric_input", text="Packs")
    required = compile_validator([question], effective_state={"packs": EffectiveState.VISIBLE_REQUIRED})
    assert _rules(required({})) == ["required"]

    static = Question(id="packs", type="numeric_input", text="Packs", required=True)
    optional = compile_validator([static], effective_state={"packs": EffectiveState.VISIBLE_OPTIONAL})
    assert optional({}).valid


def test_section_headers_never_fail():
    question = Question(id="intro", type="section_header", text="About you")
    assert compile_validator([question]).validate({"intro": 42}).valid


@pytest.mark.parametrize("value,expected", [(None, True), ("", True), ("  ", True), ([], True), (0, False), ("a", False)])
def test_is_empty(value, expected):
    assert is_empty(value) is expected


def test_custom_rules_take_a_predicate_name_not_a_callable():
    with pytest.raises(ValidationError):
        ValidationRule(type="custom", value=lambda v: True, message="Always")
    with pytest.raises(ValidationError):
        ValidationRule(type="custom", message="Unnamed")
