"""Template service: persistence of versioned form templates."""

import logging
import uuid
from typing import Optional, List, Any, Callable, Mapping, TypeVar
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from formbuilder.config import get_settings
from formbuilder.engine.errors import DefinitionError, TemplateNotFoundError, VersionConflictError
from formbuilder.engine.preview import generate_form_preview
from formbuilder.engine.questions import validate_definition
from formbuilder.models.template import FormCategory, FormType, FormTemplate
from formbuilder.schemas.evaluation import FormPreview
from formbuilder.schemas.template import (
    FormCategoryCreate,
    FormTypeCreate,
    TemplateCreate,
    TemplateDefinition,
    TemplateUpdate,
)
from formbuilder.services.audit import (
    AuditService,
    LINEAGE_DEACTIVATED,
    TEMPLATE_CREATED,
    TEMPLATE_UPDATED,
)

settings = get_settings()
logger = logging.getLogger(__name__)

T = TypeVar("T")

METADATA_FIELDS = ("name", "description", "effective_date", "expiration_date")


class TemplateService:
    """Service for template storage, lookup and lineage-safe writes."""

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    @staticmethod
    def get_template(db: Session, template_id: int) -> Optional[FormTemplate]:
        """Get a template version by ID."""
        return db.query(FormTemplate).filter(FormTemplate.id == template_id).first()

    @staticmethod
    def require_template(db: Session, template_id: int) -> FormTemplate:
        """Get a template version by ID or raise ``TemplateNotFoundError``."""
        db_template = TemplateService.get_template(db, template_id)
        if not db_template:
            raise TemplateNotFoundError(details={"template_id": template_id})
        return db_template

    @staticmethod
    def get_templates(
        db: Session,
        skip: int = 0,
        limit: int = 100,
        active_only: bool = True,
        type_id: Optional[int] = None,
        tenant_id: Optional[str] = None
    ) -> List[FormTemplate]:
        """List template versions."""
        query = db.query(FormTemplate)
        if active_only:
            query = query.filter(FormTemplate.is_active == True)
        if type_id is not None:
            query = query.filter(FormTemplate.type_id == type_id)
        if tenant_id is not None:
            query = query.filter(FormTemplate.tenant_id == tenant_id)
        return query.order_by(
            FormTemplate.name.asc(), FormTemplate.version.asc()
        ).offset(skip).limit(limit).all()

    @staticmethod
    def to_definition(db_template: FormTemplate) -> TemplateDefinition:
        """Snapshot a stored row as the engine's immutable definition."""
        return TemplateDefinition.model_validate(db_template)

    @staticmethod
    def get_definition(db: Session, template_id: int) -> TemplateDefinition:
        return TemplateService.to_definition(TemplateService.require_template(db, template_id))

    @staticmethod
    def latest_version(db: Session, lineage_id: str) -> int:
        """Highest version number stored for a lineage, 0 if none."""
        latest = db.query(func.max(FormTemplate.version)).filter(
            FormTemplate.lineage_id == lineage_id
        ).scalar()
        return latest or 0

    @staticmethod
    def is_mutable(db: Session, db_template: FormTemplate) -> bool:
        """
        A version may be edited in place only while it is a draft: never
        activated and still the latest version of its lineage.
        """
        if db_template.was_activated:
            return False
        return db_template.version == TemplateService.latest_version(db, db_template.lineage_id)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @staticmethod
    def commit_with_retry(db: Session, operation: Callable[[], T], label: str) -> T:
        """
        Run ``operation`` and commit, retrying on write conflicts.

        A conflict is a duplicate (lineage, version) insert or a stale row
        revision. The session is rolled back before each retry so the
        operation re-reads current state. Any other error rolls back and
        propagates.
        """
        attempts = max(1, settings.version_create_retries)
        for attempt in range(1, attempts + 1):
            try:
                result = operation()
                db.commit()
            except (IntegrityError, StaleDataError) as exc:
                db.rollback()
                logger.warning(
                    "%s conflicted (attempt %d/%d): %s",
                    label,
                    attempt,
                    attempts,
                    exc.__class__.__name__,
                )
                continue
            except Exception:
                db.rollback()
                raise
            if result is not None:
                db.refresh(result)
            return result

        raise VersionConflictError(
            f"Could not complete {label} after {attempts} attempts",
            {"operation": label, "attempts": attempts},
        )

    @staticmethod
    def insert_next_version(
        db: Session,
        source: FormTemplate,
        definition: TemplateDefinition,
        notes: Optional[str] = None,
        actor: Optional[str] = None
    ) -> FormTemplate:
        """
        Add a new inactive version of ``source``'s lineage holding ``definition``.

        The version number is computed from the store; the unique
        (lineage_id, version) constraint rejects a concurrent duplicate at
        flush time.
        """
        db_template = FormTemplate(
            lineage_id=source.lineage_id,
            tenant_id=source.tenant_id,
            type_id=source.type_id,
            name=definition.name,
            version=TemplateService.latest_version(db, source.lineage_id) + 1,
            description=definition.description,
            version_notes=notes,
            questions=[q.model_dump(mode="json") for q in definition.questions],
            business_rules=[r.model_dump(mode="json") for r in definition.business_rules],
            is_active=False,
            effective_date=definition.effective_date or datetime.utcnow(),
            expiration_date=definition.expiration_date,
            parent_version_id=source.id,
            created_by=actor,
        )
        db.add(db_template)
        db.flush()
        return db_template

    @staticmethod
    def place_structure(
        db: Session,
        db_template: FormTemplate,
        edited: TemplateDefinition,
        actor: Optional[str] = None
    ) -> FormTemplate:
        """
        Store an edited structure without committing.

        Drafts take the edit in place. Immutable versions are left untouched
        and the edit lands on a new version that records its parent.
        """
        if TemplateService.is_mutable(db, db_template):
            db_template.questions = [q.model_dump(mode="json") for q in edited.questions]
            db_template.business_rules = [r.model_dump(mode="json") for r in edited.business_rules]
            db.flush()
            return db_template

        target = TemplateService.insert_next_version(
            db,
            db_template,
            edited,
            notes=f"Edited from version {db_template.version}",
            actor=actor,
        )
        logger.info(
            "forked immutable template=%s version=%s into template=%s version=%s",
            db_template.id,
            db_template.version,
            target.id,
            target.version,
        )
        return target

    @staticmethod
    def apply_structural_edit(
        db: Session,
        template_id: int,
        edit: Callable[[TemplateDefinition], TemplateDefinition],
        event_type: str,
        details: Optional[Mapping[str, Any]] = None,
        actor: Optional[str] = None
    ) -> FormTemplate:
        """
        Apply a structural edit (questions or business rules) to a template.

        Returns the row that now holds the edited structure.
        """
        def operation() -> FormTemplate:
            db_template = TemplateService.require_template(db, template_id)
            edited = edit(TemplateService.to_definition(db_template))
            target = TemplateService.place_structure(db, db_template, edited, actor)
            AuditService.record(db, target, event_type, dict(details or {}), actor)
            return target

        return TemplateService.commit_with_retry(db, operation, event_type)

    @staticmethod
    def create_template(
        db: Session,
        template_data: TemplateCreate,
        tenant_id: str = "default",
        created_by: Optional[str] = None
    ) -> FormTemplate:
        """Create version 1 of a new template lineage."""
        if not db.query(FormType).filter(FormType.id == template_data.type_id).first():
            raise DefinitionError(
                f"Form type {template_data.type_id} does not exist",
                {"type_id": template_data.type_id},
            )
        questions = validate_definition(template_data.questions)
        activate = settings.activate_templates_on_create
        now = datetime.utcnow()

        db_template = FormTemplate(
            lineage_id=str(uuid.uuid4()),
            tenant_id=tenant_id,
            type_id=template_data.type_id,
            name=template_data.name,
            version=1,
            description=template_data.description,
            questions=[q.model_dump(mode="json") for q in questions],
            business_rules=[r.model_dump(mode="json") for r in template_data.business_rules],
            is_active=activate,
            activated_at=now if activate else None,
            effective_date=template_data.effective_date or now,
            expiration_date=template_data.expiration_date,
            created_by=created_by,
        )
        try:
            db.add(db_template)
            db.flush()
            AuditService.record(
                db, db_template, TEMPLATE_CREATED, {"questions": len(questions)}, created_by
            )
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(db_template)
        return db_template

    @staticmethod
    def update_template(
        db: Session,
        template_id: int,
        template_data: TemplateUpdate,
        actor: Optional[str] = None
    ) -> FormTemplate:
        """
        Update a template.

        Metadata (name, description, dates) is changed in place. A change of
        business rules is structural and follows the versioning policy. Both
        land in one transaction.
        """
        update_data = template_data.model_dump(exclude_unset=True)
        metadata = {key: update_data[key] for key in METADATA_FIELDS if key in update_data}
        rules = template_data.business_rules

        if not metadata and rules is None:
            return TemplateService.require_template(db, template_id)

        def operation() -> FormTemplate:
            db_template = TemplateService.require_template(db, template_id)
            for key, value in metadata.items():
                setattr(db_template, key, value)

            target = db_template
            fields = sorted(metadata)
            if rules is not None:
                edited = TemplateService.to_definition(db_template).model_copy(
                    update={"business_rules": list(rules)}
                )
                target = TemplateService.place_structure(db, db_template, edited, actor)
                fields.append("business_rules")

            AuditService.record(db, target, TEMPLATE_UPDATED, {"fields": fields}, actor)
            return target

        return TemplateService.commit_with_retry(db, operation, TEMPLATE_UPDATED)

    @staticmethod
    def deactivate_lineage(db: Session, template_id: int, actor: Optional[str] = None) -> int:
        """
        Deactivate every version of a template's lineage.

        This is the only way a template is retired; rows are never deleted.
        Returns the number of versions that were active.
        """
        counts = {"deactivated": 0}

        def operation() -> FormTemplate:
            db_template = TemplateService.require_template(db, template_id)
            versions = db.query(FormTemplate).filter(
                FormTemplate.lineage_id == db_template.lineage_id
            ).all()
            deactivated = 0
            for version in versions:
                if version.is_active:
                    version.is_active = False
                    deactivated += 1
            AuditService.record(db, db_template, LINEAGE_DEACTIVATED, {"deactivated": deactivated}, actor)
            counts["deactivated"] = deactivated
            return db_template

        TemplateService.commit_with_retry(db, operation, LINEAGE_DEACTIVATED)
        return counts["deactivated"]

    @staticmethod
    def preview(
        db: Session,
        template_id: int,
        sample_responses: Optional[Mapping[str, Any]] = None
    ) -> FormPreview:
        """Preview a stored template as a respondent would see it."""
        return generate_form_preview(TemplateService.get_definition(db, template_id), sample_responses)

    # ------------------------------------------------------------------
    # Categories and types
    # ------------------------------------------------------------------

    @staticmethod
    def create_category(db: Session, category_data: FormCategoryCreate) -> FormCategory:
        db_category = FormCategory(
            name=category_data.name,
            description=category_data.description,
        )
        db.add(db_category)
        db.commit()
        db.refresh(db_category)
        return db_category

    @staticmethod
    def get_categories(db: Session, active_only: bool = True) -> List[FormCategory]:
        query = db.query(FormCategory)
        if active_only:
            query = query.filter(FormCategory.is_active == True)
        return query.order_by(FormCategory.name.asc()).all()

    @staticmethod
    def create_form_type(db: Session, type_data: FormTypeCreate) -> FormType:
        """Create a form type under an existing category."""
        if not db.query(FormCategory).filter(FormCategory.id == type_data.category_id).first():
            raise DefinitionError(
                f"Form category {type_data.category_id} does not exist",
                {"category_id": type_data.category_id},
            )
        db_type = FormType(
            category_id=type_data.category_id,
            name=type_data.name,
            description=type_data.description,
            business_rules=[r.model_dump(mode="json") for r in type_data.business_rules],
        )
        db.add(db_type)
        db.commit()
        db.refresh(db_type)
        return db_type

    @staticmethod
    def get_form_types(
        db: Session,
        category_id: Optional[int] = None,
        active_only: bool = True
    ) -> List[FormType]:
        query = db.query(FormType)
        if category_id is not None:
            query = query.filter(FormType.category_id == category_id)
        if active_only:
            query = query.filter(FormType.is_active == True)
        return query.order_by(FormType.name.asc()).all()
