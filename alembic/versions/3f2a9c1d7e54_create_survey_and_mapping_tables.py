"""create survey and mapping tables

Revision ID: 3f2a9c1d7e54
Revises:
Create Date: 2026-10-19 10:12:41.204518

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f2a9c1d7e54'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'survey',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('source', sa.String(length=100), nullable=True),
        sa.Column('provider_type', sa.String(length=50), nullable=True),
        sa.Column('data_category', sa.String(length=50), nullable=True),
        sa.Column('year', sa.String(length=10), nullable=True),
        sa.Column('file_format', sa.String(length=20), nullable=True),
        sa.Column('row_count', sa.Integer(), nullable=True),
        sa.Column('columns', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_survey_id'), 'survey', ['id'], unique=False)
    op.create_index(op.f('ix_survey_source'), 'survey', ['source'], unique=False)
    op.create_index(op.f('ix_survey_year'), 'survey', ['year'], unique=False)

    op.create_table(
        'survey_row',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('survey_id', sa.Integer(), nullable=False),
        sa.Column('row_index', sa.Integer(), nullable=False),
        sa.Column('data', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['survey_id'], ['survey.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_survey_row_id'), 'survey_row', ['id'], unique=False)
    op.create_index(op.f('ix_survey_row_survey_id'), 'survey_row', ['survey_id'], unique=False)

    op.create_table(
        'mapping',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('kind', sa.String(length=32), nullable=False),
        sa.Column('standardized_name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('kind', 'standardized_name', name='uq_mapping_kind_name')
    )
    op.create_index(op.f('ix_mapping_id'), 'mapping', ['id'], unique=False)
    op.create_index(op.f('ix_mapping_kind'), 'mapping', ['kind'], unique=False)

    op.create_table(
        'mapping_source',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('mapping_id', sa.Integer(), nullable=False),
        sa.Column('kind', sa.String(length=32), nullable=False),
        sa.Column('survey_source', sa.String(length=100), nullable=True),
        sa.Column('raw_value', sa.String(length=255), nullable=False),
        sa.Column('source_key', sa.String(length=100), nullable=False),
        sa.Column('raw_key', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['mapping_id'], ['mapping.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('kind', 'source_key', 'raw_key', name='uq_mapping_source_key')
    )
    op.create_index(op.f('ix_mapping_source_id'), 'mapping_source', ['id'], unique=False)
    op.create_index(op.f('ix_mapping_source_mapping_id'), 'mapping_source', ['mapping_id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_mapping_source_mapping_id'), table_name='mapping_source')
    op.drop_index(op.f('ix_mapping_source_id'), table_name='mapping_source')
    op.drop_table('mapping_source')
    op.drop_index(op.f('ix_mapping_kind'), table_name='mapping')
    op.drop_index(op.f('ix_mapping_id'), table_name='mapping')
    op.drop_table('mapping')
    op.drop_index(op.f('ix_survey_row_survey_id'), table_name='survey_row')
    op.drop_index(op.f('ix_survey_row_id'), table_name='survey_row')
    op.drop_table('survey_row')
    op.drop_index(op.f('ix_survey_year'), table_name='survey')
    op.drop_index(op.f('ix_survey_source'), table_name='survey')
    op.drop_index(op.f('ix_survey_id'), table_name='survey')
    op.drop_table('survey')
