"""Service layer for business logic."""

from formbuilder.services.audit import AuditService
from formbuilder.services.template import TemplateService
from formbuilder.services.version import VersionService
from formbuilder.services.question import QuestionService
from formbuilder.services.submission import SubmissionService

__all__ = [
    "AuditService",
    "TemplateService",
    "VersionService",
    "QuestionService",
    "SubmissionService",
]
