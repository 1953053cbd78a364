"""Seed script to create initial data for development/demo."""

import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from formbuilder.database import SessionLocal, engine, Base
from formbuilder.logging_setup import configure_logging
from formbuilder.models.template import FormCategory, FormType, FormTemplate
from formbuilder.schemas.template import BusinessRule, TemplateCreate
from formbuilder.schemas.question import (
    ConditionalRule,
    Question,
    QuestionOption,
    ValidationRule,
)
from formbuilder.services.template import TemplateService
from formbuilder.services.version import VersionService

CATEGORIES = [
    {
        "name": "cases",
        "description": "Case management forms including referrals, appeals, and grievances",
        "types": [
            {
                "name": "BH Referrals",
                "description": "Behavioral health referral forms",
                "business_rules": [
                    {
                        "id": "due_date_rule",
                        "name": "Standard Due Date",
                        "description": "Forms due within 5 business days",
                        "rule_type": "due_date",
                        "actions": {"days_from_creation": 5, "exclude_weekends": True},
                    }
                ],
            },
            {
                "name": "Appeals",
                "description": "Member appeal forms",
                "business_rules": [
                    {
                        "id": "urgent_due_date",
                        "name": "Urgent Appeal Due Date",
                        "description": "Appeals due within 2 business days",
                        "rule_type": "due_date",
                        "actions": {"days_from_creation": 2, "exclude_weekends": True},
                    }
                ],
            },
            {"name": "Grievances", "description": "Member grievance forms", "business_rules": []},
        ],
    },
    {
        "name": "assessments",
        "description": "Assessment forms for health risk, satisfaction, and performance evaluation",
        "types": [
            {
                "name": "Health Risk (HDM)",
                "description": "Health risk assessment and health data management",
                "business_rules": [
                    {
                        "id": "annual_assessment",
                        "name": "Annual Assessment Schedule",
                        "description": "Annual assessments due within 30 days",
                        "rule_type": "due_date",
                        "actions": {"days_from_creation": 30},
                    }
                ],
            },
            {"name": "Member Satisfaction", "description": "Member satisfaction surveys and feedback", "business_rules": []},
            {"name": "Provider Performance", "description": "Provider performance evaluation forms", "business_rules": []},
        ],
    },
]


def health_risk_questions():
    """Questions for the sample health risk assessment."""
    return [
        Question(id="section_lifestyle", type="section_header", text="Lifestyle"),
        Question(id="smoker", type="yes_no", text="Do you currently smoke?", required=True),
        Question(
            id="packs_per_day",
            type="numeric_input",
            text="How many packs per day?",
            validation=[
                ValidationRule(type="min", value=0, message="Cannot be negative"),
                ValidationRule(type="max", value=10, message="Please enter 10 or fewer"),
            ],
            conditional_logic=[
                ConditionalRule(question_id="smoker", operator="equals", value="yes", action="show"),
                ConditionalRule(question_id="smoker", operator="equals", value="yes", action="require"),
            ],
        ),
        Question(
            id="quit_interest",
            type="single_select",
            text="Are you interested in a smoking cessation program?",
            options=[
                QuestionOption(label="Yes", value="yes", order=0),
                QuestionOption(label="Not now", value="not_now", order=1),
            ],
            conditional_logic=[
                ConditionalRule(question_id="packs_per_day", operator="greater_than", value=0, action="show"),
            ],
        ),
        Question(
            id="contact_email",
            type="text_input",
            text="Email address for follow-up",
            validation=[ValidationRule(type="email", message="Enter a valid email address")],
        ),
    ]


def seed_database():
    """Create initial seed data."""
    db = SessionLocal()

    try:
        print("Creating form categories and types...")
        types_by_name = {}
        for category_config in CATEGORIES:
            category = db.query(FormCategory).filter(FormCategory.name == category_config["name"]).first()
            if not category:
                category = FormCategory(
                    name=category_config["name"],
                    description=category_config["description"],
                )
                db.add(category)
                db.flush()
                print(f"  Created category: {category.name}")

            for type_config in category_config["types"]:
                form_type = db.query(FormType).filter(FormType.name == type_config["name"]).first()
                if not form_type:
                    rules = [BusinessRule(**rule) for rule in type_config["business_rules"]]
                    form_type = FormType(
                        category_id=category.id,
                        name=type_config["name"],
                        description=type_config["description"],
                        business_rules=[r.model_dump(mode="json") for r in rules],
                    )
                    db.add(form_type)
                    db.flush()
                    print(f"  Created form type: {form_type.name}")
                types_by_name[form_type.name] = form_type

        db.commit()

        print("\nCreating templates...")
        name = "Annual Health Risk Assessment"
        if not db.query(FormTemplate).filter(FormTemplate.name == name).first():
            hdm = types_by_name["Health Risk (HDM)"]
            template = TemplateService.create_template(
                db,
                TemplateCreate(
                    type_id=hdm.id,
                    name=name,
                    description="Yearly health risk screening for enrolled members",
                    questions=health_risk_questions(),
                    business_rules=[BusinessRule.model_validate(r) for r in hdm.business_rules],
                ),
                created_by="seed",
            )
            VersionService.activate_version(db, template.id, actor="seed")
            print(f"  Created template: {name} (version {template.version})")

        print("\nSeed data created successfully!")

    except Exception as e:
        print(f"Error: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    configure_logging()

    # Create tables
    print("Creating database tables...")
    Base.metadata.create_all(bind=engine)

    # Seed data
    seed_database()
