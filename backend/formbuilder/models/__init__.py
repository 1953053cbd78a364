"""SQLAlchemy models for the form definition engine."""

from formbuilder.models.template import FormCategory, FormType, FormTemplate
from formbuilder.models.audit import TemplateEvent

__all__ = [
    "FormCategory",
    "FormType",
    "FormTemplate",
    "TemplateEvent",
]
