"""Initial roadmap schema: collaborator mirrors, template catalog, project roadmap.

Revision ID: 001
Revises:
Create Date: 2026-01-20

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


stage_status = postgresql.ENUM('locked', 'active', 'completed', name='stagestatus', create_type=False)


def upgrade() -> None:
    # Shared by phase status and project stages
    stage_status.create(op.get_bind(), checkfirst=True)

    # Collaborator-owned tables read by the roster lookup
    op.create_table(
        'projects',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.DateTime, nullable=False, server_default=sa.text('NOW()')),
    )
    op.create_index('ix_projects_organization_id', 'projects', ['organization_id'])

    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('full_name', sa.String(255)),
        sa.Column('job_title', sa.String(100)),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.DateTime, nullable=False, server_default=sa.text('NOW()')),
    )
    op.create_index('ix_users_organization_id', 'users', ['organization_id'])
    op.create_index('ix_users_email', 'users', ['email'])
    op.create_index('ix_users_job_title', 'users', ['job_title'])
    op.create_index('ix_users_is_active', 'users', ['is_active'])

    op.create_table(
        'project_members',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('project_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role', sa.String(50), nullable=False, server_default='member'),
        sa.Column('joined_at', sa.DateTime, nullable=False, server_default=sa.text('NOW()')),
        sa.UniqueConstraint('project_id', 'user_id', name='unique_project_user'),
    )
    op.create_index('ix_project_members_project_id', 'project_members', ['project_id'])
    op.create_index('ix_project_members_user_id', 'project_members', ['user_id'])

    # Template catalog
    op.create_table(
        'roadmap_phases',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('order_index', sa.Integer, nullable=False, unique=True),
        sa.Column('color', sa.String(20), nullable=False, server_default='#64748b'),
        sa.Column('icon', sa.String(20)),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.text('NOW()')),
    )

    op.create_table(
        'roadmap_templates',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text),
        sa.Column('service_type', sa.String(100)),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.DateTime, nullable=False, server_default=sa.text('NOW()')),
    )
    op.create_index('ix_roadmap_templates_organization_id', 'roadmap_templates', ['organization_id'])
    op.create_index('ix_roadmap_templates_is_active', 'roadmap_templates', ['is_active'])

    op.create_table(
        'roadmap_template_stages',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('template_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('roadmap_templates.id', ondelete='CASCADE'), nullable=False),
        sa.Column('phase_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('roadmap_phases.id', ondelete='SET NULL'), nullable=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text),
        sa.Column('color', sa.String(20)),
        sa.Column('order_index', sa.Integer, nullable=False, server_default='0'),
        sa.Column('duration_days', sa.Integer, nullable=True, server_default='7'),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.text('NOW()')),
        sa.CheckConstraint('duration_days IS NULL OR duration_days > 0', name='positive_stage_template_duration'),
    )
    op.create_index('ix_roadmap_template_stages_template_id', 'roadmap_template_stages', ['template_id'])
    op.create_index('ix_roadmap_template_stages_phase_id', 'roadmap_template_stages', ['phase_id'])

    op.create_table(
        'roadmap_template_tasks',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('stage_template_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('roadmap_template_stages.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text),
        sa.Column('tags', sa.JSON, nullable=False, server_default='[]'),
        sa.Column('order_index', sa.Integer, nullable=False, server_default='0'),
        sa.Column('estimated_hours', sa.Numeric(6, 2)),
        sa.Column('duration_days', sa.Integer, nullable=True, server_default='3'),
        sa.Column('required_capability', sa.String(100), nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.text('NOW()')),
        sa.CheckConstraint('duration_days IS NULL OR duration_days > 0', name='positive_blueprint_duration'),
    )
    op.create_index('ix_roadmap_template_tasks_stage_template_id', 'roadmap_template_tasks', ['stage_template_id'])

    # Project roadmap instance
    op.create_table(
        'project_phase_status',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('project_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('phase_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('roadmap_phases.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', stage_status, nullable=False, server_default='locked'),
        sa.Column('order_index', sa.Integer, nullable=False, server_default='0'),
        sa.Column('started_at', sa.DateTime, nullable=True),
        sa.Column('completed_at', sa.DateTime, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.DateTime, nullable=False, server_default=sa.text('NOW()')),
        sa.UniqueConstraint('project_id', 'phase_id', name='unique_project_phase'),
    )
    op.create_index('ix_project_phase_status_project_id', 'project_phase_status', ['project_id'])
    op.create_index('ix_project_phase_status_phase_id', 'project_phase_status', ['phase_id'])
    op.create_index('ix_project_phase_status_status', 'project_phase_status', ['status'])
    op.create_index('ix_project_phase_status_order', 'project_phase_status', ['project_id', 'order_index'])
    # At most one active phase per project
    op.create_index(
        'uq_project_phase_status_one_active',
        'project_phase_status',
        ['project_id'],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
    )

    op.create_table(
        'project_roadmap_templates',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('project_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('template_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('roadmap_templates.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.text('NOW()')),
        sa.UniqueConstraint('project_id', 'template_id', name='unique_project_template'),
    )
    op.create_index('ix_project_roadmap_templates_project_id', 'project_roadmap_templates', ['project_id'])
    op.create_index('ix_project_roadmap_templates_template_id', 'project_roadmap_templates', ['template_id'])

    op.create_table(
        'project_roadmap_stages',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('project_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('phase_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('roadmap_phases.id', ondelete='CASCADE'), nullable=False),
        sa.Column('template_stage_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('roadmap_template_stages.id', ondelete='SET NULL'), nullable=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text),
        sa.Column('color', sa.String(20)),
        sa.Column('status', stage_status, nullable=False, server_default='locked'),
        sa.Column('order_index', sa.Integer, nullable=False, server_default='0'),
        sa.Column('duration_days', sa.Integer, nullable=False, server_default='7'),
        sa.Column('started_at', sa.DateTime, nullable=True),
        sa.Column('completed_at', sa.DateTime, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.DateTime, nullable=False, server_default=sa.text('NOW()')),
        sa.UniqueConstraint('project_id', 'phase_id', 'order_index', name='unique_project_phase_stage_order'),
        sa.UniqueConstraint('project_id', 'template_stage_id', name='unique_project_template_stage'),
    )
    op.create_index('ix_project_roadmap_stages_organization_id', 'project_roadmap_stages', ['organization_id'])
    op.create_index('ix_project_roadmap_stages_project_id', 'project_roadmap_stages', ['project_id'])
    op.create_index('ix_project_roadmap_stages_phase_id', 'project_roadmap_stages', ['phase_id'])
    op.create_index('ix_project_roadmap_stages_template_stage_id', 'project_roadmap_stages', ['template_stage_id'])
    op.create_index('ix_project_roadmap_stages_status', 'project_roadmap_stages', ['project_id', 'status'])
    # At most one active stage per project phase
    op.create_index(
        'uq_project_roadmap_stages_one_active',
        'project_roadmap_stages',
        ['project_id', 'phase_id'],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
    )

    op.create_table(
        'tasks',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('project_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('projects.id', ondelete='CASCADE'), nullable=True),
        sa.Column('stage_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('project_roadmap_stages.id', ondelete='SET NULL'), nullable=True),
        sa.Column('blueprint_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('roadmap_template_tasks.id', ondelete='SET NULL'), nullable=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text),
        sa.Column('tags', sa.JSON, nullable=False, server_default='[]'),
        sa.Column('status', sa.String(50), nullable=False, server_default='To Do'),
        sa.Column('priority', sa.String(20), nullable=False, server_default='Medium'),
        sa.Column('duration_days', sa.Integer, nullable=True, server_default='3'),
        sa.Column('estimated_hours', sa.Numeric(6, 2)),
        sa.Column('required_capability', sa.String(100), nullable=True),
        sa.Column('order_index', sa.Integer, nullable=False, server_default='0'),
        sa.Column('assignee_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('auto_assigned', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('deadline', sa.DateTime, nullable=True),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.DateTime, nullable=False, server_default=sa.text('NOW()')),
        sa.Column('completed_at', sa.DateTime, nullable=True),
    )
    op.create_index('ix_tasks_organization_id', 'tasks', ['organization_id'])
    op.create_index('ix_tasks_project_id', 'tasks', ['project_id'])
    op.create_index('ix_tasks_stage_id', 'tasks', ['stage_id'])
    op.create_index('ix_tasks_status', 'tasks', ['status'])
    op.create_index('ix_tasks_assignee_id', 'tasks', ['assignee_id'])
    op.create_index('ix_tasks_deadline', 'tasks', ['deadline'])
    op.create_index('ix_tasks_created_at', 'tasks', ['created_at'])
    op.create_index('ix_tasks_stage_status', 'tasks', ['stage_id', 'status'])


def downgrade() -> None:
    op.drop_table('tasks')
    op.drop_table('project_roadmap_stages')
    op.drop_table('project_roadmap_templates')
    op.drop_table('project_phase_status')
    op.drop_table('roadmap_template_tasks')
    op.drop_table('roadmap_template_stages')
    op.drop_table('roadmap_templates')
    op.drop_table('roadmap_phases')
    op.drop_table('project_members')
    op.drop_table('users')
    op.drop_table('projects')

    op.execute('DROP TYPE IF EXISTS stagestatus')
