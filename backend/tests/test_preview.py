from formbuilder.engine.preview import estimate_completion_minutes, generate_form_preview
from formbuilder.schemas.question import Question
from formbuilder.schemas.template import TemplateDefinition


def test_preview_counts(smoker_template):
    preview = generate_form_preview(smoker_template)

    assert preview.template_id == 1
    assert preview.name == "Health Risk"
    assert preview.total_questions == 3
    assert preview.required_questions == 1
    assert preview.conditional_questions == 2
    assert [q.id for q in preview.questions] == ["smoker", "packs_per_day", "quit_interest"]


def test_completion_estimate(smoker_template):
    # 60s base + yes/no 15s + numeric 30s + single select 15s
    assert estimate_completion_minutes(smoker_template) == 2
    assert estimate_completion_minutes(TemplateDefinition(name="Empty")) == 1


def test_completion_estimate_rounds_up():
    template = TemplateDefinition(
        name="Upload",
        questions=[Question(id="doc", type="file_upload", text="Upload"), Question(id="n", type="date", text="When")],
    )
    # 60 + 60 + 20 = 140 seconds
    assert estimate_completion_minutes(template) == 3


def test_sample_responses_narrow_the_question_list(smoker_template):
    preview = generate_form_preview(smoker_template, {"smoker": "yes"})
    assert [q.id for q in preview.questions] == ["smoker", "packs_per_day"]
    assert preview.total_questions == 3
