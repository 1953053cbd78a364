"""Template-related Pydantic schemas."""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any

from pydantic import BaseModel, Field

from formbuilder.schemas.question import Question


class BusinessRuleType(str, Enum):
    DUE_DATE = "due_date"
    ASSIGNMENT = "assignment"
    VALIDATION = "validation"
    ESCALATION = "escalation"


class BusinessRule(BaseModel):
    """Workflow-trigger rule carried by a template. Opaque to the engine."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    description: str = ""
    rule_type: BusinessRuleType
    conditions: Dict[str, Any] = {}
    actions: Dict[str, Any] = {}
    is_active: bool = True


class TemplateDefinition(BaseModel):
    """
    Immutable snapshot of a form template handed to the engine.

    Engine operations never mutate a definition; they return a new one.
    """
    id: Optional[int] = None
    lineage_id: Optional[str] = None
    tenant_id: Optional[str] = None
    type_id: Optional[int] = None
    name: str
    version: int = Field(1, ge=1)
    description: Optional[str] = None
    version_notes: Optional[str] = None
    questions: List[Question] = []
    business_rules: List[BusinessRule] = []
    is_active: bool = False
    effective_date: Optional[datetime] = None
    expiration_date: Optional[datetime] = None

    class Config:
        from_attributes = True

    def question_ids(self) -> List[str]:
        return [q.id for q in self.questions]

    def find_question(self, question_id: str) -> Optional[Question]:
        for question in self.questions:
            if question.id == question_id:
                return question
        return None


class TemplateCreate(BaseModel):
    """Schema for creating a new template (version 1 of a new lineage)."""
    type_id: int
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    questions: List[Question] = []
    business_rules: List[BusinessRule] = []
    effective_date: Optional[datetime] = None
    expiration_date: Optional[datetime] = None


class TemplateUpdate(BaseModel):
    """Schema for updating template metadata or structure."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    effective_date: Optional[datetime] = None
    expiration_date: Optional[datetime] = None
    business_rules: Optional[List[BusinessRule]] = None


class TemplateResponse(BaseModel):
    """Schema for template responses."""
    id: int
    lineage_id: str
    tenant_id: str
    type_id: int
    name: str
    version: int
    description: Optional[str]
    version_notes: Optional[str]
    questions: List[Question]
    business_rules: List[BusinessRule]
    is_active: bool
    effective_date: datetime
    expiration_date: Optional[datetime]
    parent_version_id: Optional[int]
    activated_at: Optional[datetime]
    created_by: Optional[str]
    created_at: datetime
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class FormCategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None


class FormTypeCreate(BaseModel):
    category_id: int
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    business_rules: List[BusinessRule] = []
