"""Shared fixtures: an isolated in-memory database and sample question sets."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from formbuilder.database import Base
from formbuilder.models.template import FormCategory, FormType
from formbuilder.schemas.question import ConditionalRule, Question, QuestionOption
from formbuilder.schemas.template import TemplateDefinition


@pytest.fixture
def db():
    """A fresh in-memory SQLite session per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def form_type(db):
    category = FormCategory(name="assessments", description="Assessment forms")
    db.add(category)
    db.flush()
    form_type = FormType(category_id=category.id, name="Health Risk (HDM)", business_rules=[])
    db.add(form_type)
    db.commit()
    db.refresh(form_type)
    return form_type


def build_smoker_questions():
    """smoker -> packs_per_day -> quit_interest, each shown by the previous answer."""
    return [
        Question(id="smoker", type="yes_no", text="Do you smoke?", required=True),
        Question(
            id="packs_per_day",
            type="numeric_input",
            text="Packs per day",
            conditional_logic=[
                ConditionalRule(question_id="smoker", operator="equals", value="yes", action="show"),
                ConditionalRule(question_id="smoker", operator="equals", value="yes", action="require"),
            ],
        ),
        Question(
            id="quit_interest",
            type="single_select",
            text="Interested in quitting?",
            options=[
                QuestionOption(label="Yes", value="yes"),
                QuestionOption(label="Not now", value="not_now"),
            ],
            conditional_logic=[
                ConditionalRule(question_id="packs_per_day", operator="greater_than", value=0, action="show"),
            ],
        ),
    ]


@pytest.fixture
def smoker_questions():
    return build_smoker_questions()


@pytest.fixture
def smoker_template(smoker_questions):
    return TemplateDefinition(id=1, name="Health Risk", questions=smoker_questions)
