"""create designations and members tables

Revision ID: b7c1d2e3f4a5
Revises:
Create Date: 2026-10-19 09:12:44.318202

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = 'b7c1d2e3f4a5'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('designations',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('name', sa.String(length=128), nullable=False),
    sa.Column('priority', sa.Integer(), nullable=False),
    sa.Column('description', sa.Text(), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('name')
    )
    op.create_index('ix_designations_priority', 'designations', ['priority'], unique=False)

    op.create_table('members',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('name', sa.String(length=128), nullable=False),
    sa.Column('emp_id', sa.String(length=64), nullable=True),
    sa.Column('designation_id', sa.Integer(), nullable=True),
    sa.Column('status', sa.String(length=16), nullable=False),
    sa.Column('managers', postgresql.ARRAY(sa.Integer()), server_default=sa.text("'{}'"), nullable=False),
    sa.Column('ancestors', postgresql.ARRAY(sa.Integer()), server_default=sa.text("'{}'"), nullable=False),
    sa.Column('depth', sa.Integer(), nullable=True),
    sa.Column('is_deleted', sa.Boolean(), nullable=False),
    sa.Column('version', sa.Integer(), nullable=False),
    sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    sa.ForeignKeyConstraint(['designation_id'], ['designations.id'], ondelete='SET NULL'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('emp_id')
    )
    op.create_index('ix_members_depth', 'members', ['depth'], unique=False)
    op.create_index('ix_members_is_deleted', 'members', ['is_deleted'], unique=False)
    op.create_index('ix_members_managers', 'members', ['managers'], unique=False, postgresql_using='gin')
    op.create_index('ix_members_ancestors', 'members', ['ancestors'], unique=False, postgresql_using='gin')


def downgrade():
    op.drop_index('ix_members_ancestors', table_name='members', postgresql_using='gin')
    op.drop_index('ix_members_managers', table_name='members', postgresql_using='gin')
    op.drop_index('ix_members_is_deleted', table_name='members')
    op.drop_index('ix_members_depth', table_name='members')
    op.drop_table('members')
    op.drop_index('ix_designations_priority', table_name='designations')
    op.drop_table('designations')
