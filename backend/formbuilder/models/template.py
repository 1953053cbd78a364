"""Models for form categories, form types and versioned form templates."""

from datetime import datetime
from typing import Optional, List, Dict, Any

from sqlalchemy import String, Text, DateTime, Boolean, Integer, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from formbuilder.database import Base


class FormCategory(Base):
    """Top-level grouping of form types (e.g. Cases, Assessments)."""

    __tablename__ = "form_categories"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    form_types: Mapped[List["FormType"]] = relationship("FormType", back_populates="category")

    def __repr__(self) -> str:
        return f"<FormCategory(id={self.id}, name='{self.name}')>"


class FormType(Base):
    """A kind of form within a category. Templates belong to a type."""

    __tablename__ = "form_types"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    category_id: Mapped[int] = mapped_column(
        ForeignKey("form_categories.id"),
        nullable=False,
        index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    business_rules: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    category: Mapped["FormCategory"] = relationship("FormCategory", back_populates="form_types")
    templates: Mapped[List["FormTemplate"]] = relationship("FormTemplate", back_populates="form_type")

    def __repr__(self) -> str:
        return f"<FormType(id={self.id}, name='{self.name}', category_id={self.category_id})>"


class FormTemplate(Base):
    """
    One version of a form template.

    Versions of the same template share a ``lineage_id``. A version that has
    been activated, or that is no longer the latest in its lineage, is never
    structurally modified again; edits fork a new row instead.

    ``revision`` is an optimistic concurrency token maintained by the mapper:
    a flush that updates a row whose revision moved underneath it fails.
    """

    __tablename__ = "form_templates"
    __table_args__ = (
        UniqueConstraint("lineage_id", "version", name="uq_form_templates_lineage_version"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    lineage_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False, default="default", index=True)
    type_id: Mapped[int] = mapped_column(
        ForeignKey("form_types.id"),
        nullable=False,
        index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    version_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Ordered question list and workflow rules, stored as JSON documents
    questions: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    business_rules: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)

    is_active: Mapped[bool] = mapped_column(Boolean, default=False)
    effective_date: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    expiration_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Lineage bookkeeping
    parent_version_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("form_templates.id"),
        nullable=True
    )
    activated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime,
        onupdate=datetime.utcnow,
        nullable=True
    )

    revision: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": revision}

    form_type: Mapped["FormType"] = relationship("FormType", back_populates="templates")
    parent_version: Mapped[Optional["FormTemplate"]] = relationship(
        "FormTemplate",
        remote_side=[id]
    )

    def __repr__(self) -> str:
        return (
            f"<FormTemplate(id={self.id}, name='{self.name}', "
            f"lineage='{self.lineage_id}', version={self.version})>"
        )

    @property
    def was_activated(self) -> bool:
        """True once the version has ever been live."""
        return self.is_active or self.activated_at is not None
