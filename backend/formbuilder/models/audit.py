"""Append-only event log for template lifecycle changes."""

from datetime import datetime
from typing import Optional, Any, Dict

from sqlalchemy import String, Integer, DateTime, ForeignKey, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship

from formbuilder.database import Base


class TemplateEvent(Base):
    """
    TemplateEvent is an append-only record of a lifecycle change.

    The notification/workflow subsystem consumes these rows; they are never
    updated or deleted.
    """

    __tablename__ = "template_events"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    template_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("form_templates.id"),
        nullable=True,
        index=True
    )
    lineage_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    version: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # e.g. "template.created", "version.activated", "question.deleted"
    event_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    details: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    actor: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    template: Mapped[Optional["FormTemplate"]] = relationship("FormTemplate")

    def __repr__(self) -> str:
        return f"<TemplateEvent(id={self.id}, type='{self.event_type}', template_id={self.template_id})>"

    def to_dict(self) -> dict:
        """Convert to a plain dictionary for downstream consumers."""
        return {
            "id": self.id,
            "template_id": self.template_id,
            "lineage_id": self.lineage_id,
            "version": self.version,
            "event_type": self.event_type,
            "details": self.details,
            "actor": self.actor,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }
