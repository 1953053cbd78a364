"""Audit service for template lifecycle events."""

import logging
from typing import Optional, List, Dict, Any

from sqlalchemy.orm import Session

from formbuilder.models.audit import TemplateEvent
from formbuilder.models.template import FormTemplate

logger = logging.getLogger(__name__)

TEMPLATE_CREATED = "template.created"
TEMPLATE_UPDATED = "template.updated"
TEMPLATE_COPIED = "template.copied"
LINEAGE_DEACTIVATED = "lineage.deactivated"
VERSION_CREATED = "version.created"
VERSION_ACTIVATED = "version.activated"
VERSION_DEACTIVATED = "version.deactivated"
QUESTION_ADDED = "question.added"
QUESTION_UPDATED = "question.updated"
QUESTION_DELETED = "question.deleted"
QUESTIONS_REORDERED = "questions.reordered"


class AuditService:
    """Service for the append-only template event log."""

    @staticmethod
    def record(
        db: Session,
        template: FormTemplate,
        event_type: str,
        details: Optional[Dict[str, Any]] = None,
        actor: Optional[str] = None
    ) -> TemplateEvent:
        """
        Add an event to the current transaction.

        The caller commits; an event is only persisted together with the
        change it describes. ``template`` must already have an id.
        """
        event = TemplateEvent(
            template_id=template.id,
            lineage_id=template.lineage_id,
            version=template.version,
            event_type=event_type,
            details=details or {},
            actor=actor,
        )
        db.add(event)
        logger.info(
            "%s template=%s lineage=%s version=%s",
            event_type,
            template.id,
            template.lineage_id,
            template.version,
        )
        return event

    @staticmethod
    def get_template_events(db: Session, template_id: int) -> List[TemplateEvent]:
        """Events recorded against one template version, oldest first."""
        return db.query(TemplateEvent).filter(
            TemplateEvent.template_id == template_id
        ).order_by(TemplateEvent.timestamp.asc(), TemplateEvent.id.asc()).all()

    @staticmethod
    def get_lineage_events(
        db: Session,
        lineage_id: str,
        event_type: Optional[str] = None
    ) -> List[TemplateEvent]:
        """Events across every version of a lineage, oldest first."""
        query = db.query(TemplateEvent).filter(TemplateEvent.lineage_id == lineage_id)
        if event_type:
            query = query.filter(TemplateEvent.event_type == event_type)
        return query.order_by(TemplateEvent.timestamp.asc(), TemplateEvent.id.asc()).all()
