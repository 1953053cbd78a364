"""Version service: lineage history, activation, comparison and copying."""

import logging
import uuid
from typing import Optional, List
from datetime import datetime

from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from formbuilder.engine import versions
from formbuilder.engine.errors import DefinitionError, TemplateNotFoundError
from formbuilder.models.template import FormTemplate, FormType
from formbuilder.schemas.evaluation import TemplateDiff
from formbuilder.services.audit import (
    AuditService,
    TEMPLATE_COPIED,
    VERSION_ACTIVATED,
    VERSION_CREATED,
    VERSION_DEACTIVATED,
)
from formbuilder.services.template import TemplateService

logger = logging.getLogger(__name__)


class VersionService:
    """Service for the template version lifecycle."""

    @staticmethod
    def create_version(
        db: Session,
        template_id: int,
        notes: Optional[str] = None,
        actor: Optional[str] = None
    ) -> FormTemplate:
        """
        Create a new inactive version from a template's current structure.

        The new version number is one past the lineage's highest; a racing
        writer that claims the same number causes a retry.
        """
        def operation() -> FormTemplate:
            source = TemplateService.require_template(db, template_id)
            definition = versions.snapshot(
                TemplateService.to_definition(source), source.version, notes
            )
            db_version = TemplateService.insert_next_version(db, source, definition, notes, actor)
            AuditService.record(
                db, db_version, VERSION_CREATED, {"from_version": source.version}, actor
            )
            return db_version

        return TemplateService.commit_with_retry(db, operation, VERSION_CREATED)

    @staticmethod
    def get_lineage_history(db: Session, lineage_id: str) -> List[FormTemplate]:
        """All versions of one lineage, oldest first."""
        history = db.query(FormTemplate).filter(
            FormTemplate.lineage_id == lineage_id
        ).order_by(FormTemplate.version.asc()).all()
        if not history:
            raise TemplateNotFoundError(
                "No versions found for template lineage", {"lineage_id": lineage_id}
            )
        return history

    @staticmethod
    def get_version_history(
        db: Session,
        base_name: str,
        type_id: Optional[int] = None,
        tenant_id: Optional[str] = None
    ) -> List[FormTemplate]:
        """
        All versions of every lineage that has a version named ``base_name``.

        Ordered by version ascending. A lineage keeps its identity when a
        later version is renamed, so renamed versions are included.
        """
        query = db.query(FormTemplate.lineage_id).filter(FormTemplate.name == base_name)
        if type_id is not None:
            query = query.filter(FormTemplate.type_id == type_id)
        if tenant_id is not None:
            query = query.filter(FormTemplate.tenant_id == tenant_id)
        lineage_ids = {row[0] for row in query.distinct().all()}

        if not lineage_ids:
            raise TemplateNotFoundError(
                "No versions found for template", {"name": base_name}
            )
        return db.query(FormTemplate).filter(
            FormTemplate.lineage_id.in_(lineage_ids)
        ).order_by(FormTemplate.version.asc(), FormTemplate.id.asc()).all()

    @staticmethod
    def compare_versions(db: Session, template_id_a: int, template_id_b: int) -> TemplateDiff:
        """Structural diff from version ``a`` to version ``b``."""
        return versions.compare_versions(
            TemplateService.get_definition(db, template_id_a),
            TemplateService.get_definition(db, template_id_b),
        )

    @staticmethod
    def activate_version(db: Session, template_id: int, actor: Optional[str] = None) -> FormTemplate:
        """
        Make one version the live version of its lineage.

        Every other version of the lineage is deactivated in the same
        transaction, so at most one version is active at a time. Every
        sibling row is written, active or not, which moves its revision; a
        concurrent activation in the same lineage then fails its revision
        check and is retried.
        """
        def operation() -> FormTemplate:
            db_template = TemplateService.require_template(db, template_id)
            siblings = db.query(FormTemplate).filter(
                FormTemplate.lineage_id == db_template.lineage_id,
                FormTemplate.id != db_template.id
            ).all()
            deactivated = sorted(s.version for s in siblings if s.is_active)
            for sibling in siblings:
                sibling.is_active = False
                flag_modified(sibling, "is_active")

            db_template.is_active = True
            db_template.activated_at = datetime.utcnow()
            AuditService.record(
                db,
                db_template,
                VERSION_ACTIVATED,
                {"deactivated_versions": deactivated},
                actor,
            )
            return db_template

        return TemplateService.commit_with_retry(db, operation, VERSION_ACTIVATED)

    @staticmethod
    def deactivate_version(db: Session, template_id: int, actor: Optional[str] = None) -> FormTemplate:
        """Take a single version out of service. It stays immutable."""
        def operation() -> FormTemplate:
            db_template = TemplateService.require_template(db, template_id)
            db_template.is_active = False
            AuditService.record(db, db_template, VERSION_DEACTIVATED, None, actor)
            return db_template

        return TemplateService.commit_with_retry(db, operation, VERSION_DEACTIVATED)

    @staticmethod
    def copy_template(
        db: Session,
        template_id: int,
        new_name: Optional[str] = None,
        type_id: Optional[int] = None,
        actor: Optional[str] = None
    ) -> FormTemplate:
        """Start a new lineage at version 1 from a copy of an existing template."""
        source = TemplateService.require_template(db, template_id)
        target_type = type_id if type_id is not None else source.type_id
        if not db.query(FormType).filter(FormType.id == target_type).first():
            raise DefinitionError(
                f"Form type {target_type} does not exist", {"type_id": target_type}
            )

        db_copy = FormTemplate(
            lineage_id=str(uuid.uuid4()),
            tenant_id=source.tenant_id,
            type_id=target_type,
            name=new_name or f"{source.name} (Copy)",
            version=1,
            description=source.description,
            questions=list(source.questions or []),
            business_rules=list(source.business_rules or []),
            is_active=False,
            effective_date=datetime.utcnow(),
            expiration_date=source.expiration_date,
            created_by=actor,
        )
        try:
            db.add(db_copy)
            db.flush()
            AuditService.record(
                db,
                db_copy,
                TEMPLATE_COPIED,
                {"source_template_id": source.id, "source_version": source.version},
                actor,
            )
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(db_copy)
        return db_copy
