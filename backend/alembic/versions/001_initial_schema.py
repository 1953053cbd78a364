"""Initial database schema

Revision ID: 001
Revises:
Create Date: 2024-01-01

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Form categories table
    op.create_table(
        'form_categories',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True, default=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )
    op.create_index('ix_form_categories_id', 'form_categories', ['id'])

    # Form types table
    op.create_table(
        'form_types',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('category_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('business_rules', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=True, default=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['category_id'], ['form_categories.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_form_types_id', 'form_types', ['id'])
    op.create_index('ix_form_types_category_id', 'form_types', ['category_id'])

    # Form templates table (one row per version)
    op.create_table(
        'form_templates',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('lineage_id', sa.String(36), nullable=False),
        sa.Column('tenant_id', sa.String(64), nullable=False),
        sa.Column('type_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('version_notes', sa.Text(), nullable=True),
        sa.Column('questions', sa.JSON(), nullable=False),
        sa.Column('business_rules', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=True, default=False),
        sa.Column('effective_date', sa.DateTime(), nullable=True),
        sa.Column('expiration_date', sa.DateTime(), nullable=True),
        sa.Column('parent_version_id', sa.Integer(), nullable=True),
        sa.Column('activated_at', sa.DateTime(), nullable=True),
        sa.Column('created_by', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.Column('revision', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['type_id'], ['form_types.id']),
        sa.ForeignKeyConstraint(['parent_version_id'], ['form_templates.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('lineage_id', 'version', name='uq_form_templates_lineage_version')
    )
    op.create_index('ix_form_templates_id', 'form_templates', ['id'])
    op.create_index('ix_form_templates_lineage_id', 'form_templates', ['lineage_id'])
    op.create_index('ix_form_templates_tenant_id', 'form_templates', ['tenant_id'])
    op.create_index('ix_form_templates_type_id', 'form_templates', ['type_id'])
    op.create_index('ix_form_templates_name', 'form_templates', ['name'])

    # Template events table (append-only)
    op.create_table(
        'template_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('template_id', sa.Integer(), nullable=True),
        sa.Column('lineage_id', sa.String(36), nullable=False),
        sa.Column('version', sa.Integer(), nullable=True),
        sa.Column('event_type', sa.String(50), nullable=False),
        sa.Column('details', sa.JSON(), nullable=False),
        sa.Column('actor', sa.String(255), nullable=True),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['template_id'], ['form_templates.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_template_events_id', 'template_events', ['id'])
    op.create_index('ix_template_events_template_id', 'template_events', ['template_id'])
    op.create_index('ix_template_events_lineage_id', 'template_events', ['lineage_id'])
    op.create_index('ix_template_events_event_type', 'template_events', ['event_type'])


def downgrade() -> None:
    op.drop_table('template_events')
    op.drop_table('form_templates')
    op.drop_table('form_types')
    op.drop_table('form_categories')
