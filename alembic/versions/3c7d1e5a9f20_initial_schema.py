"""initial_schema

Creates the task lifecycle and milestone tables with their storage guards:
the completion CHECK on ``task``, the self-edge CHECK and pair UNIQUE on
``task_dependency``, the single-active partial index on
``milestone_version`` and the ``(project_id, order_index)`` UNIQUE on
``project_milestone``.

Revision ID: 3c7d1e5a9f20
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3c7d1e5a9f20'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'user_account',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('username', sa.String(100), nullable=False, unique=True),
        sa.Column('password_hash', sa.String(200), nullable=False),
        sa.Column('real_name', sa.String(200), nullable=True),
        sa.Column('role', sa.String(30), nullable=False, server_default='USER'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('last_login_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        'project',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(300), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        'audit_log',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('username', sa.String(100), nullable=True),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('target_module', sa.String(30), nullable=False),
        sa.Column('target_id', sa.String(50), nullable=True),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        'task',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('project_id', sa.Integer(), sa.ForeignKey('project.id'), nullable=False),
        sa.Column('function_id', sa.Integer(), nullable=True),
        sa.Column('name', sa.String(300), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('phase', sa.String(100), nullable=True),
        sa.Column('assigned_to', sa.Integer(), sa.ForeignKey('user_account.id'), nullable=True),
        sa.Column('priority', sa.String(10), nullable=False, server_default='MEDIUM'),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING'),
        sa.Column('progress', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('duration', sa.Integer(), nullable=True),
        sa.Column('type', sa.String(20), nullable=False, server_default='TASK'),
        sa.Column('status_reason', sa.Text(), nullable=True),
        sa.Column('paused_at', sa.DateTime(), nullable=True),
        sa.Column('actual_start_time', sa.DateTime(), nullable=True),
        sa.Column('actual_end_time', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "(status = 'COMPLETED' AND progress = 100) OR "
            "(status <> 'COMPLETED' AND progress < 100)",
            name='ck_task_completion_consistency',
        ),
        sa.CheckConstraint(
            'progress >= 0 AND progress <= 100', name='ck_task_progress_range'
        ),
    )
    op.create_index('ix_task_project_id', 'task', ['project_id'])

    op.create_table(
        'task_dependency',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            'task_id', sa.Integer(),
            sa.ForeignKey('task.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column(
            'predecessor_id', sa.Integer(),
            sa.ForeignKey('task.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('type', sa.String(10), nullable=False, server_default='FS'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('task_id <> predecessor_id', name='ck_task_dependency_not_self'),
        sa.UniqueConstraint('task_id', 'predecessor_id', name='uq_task_dependency_pair'),
    )
    op.create_index('ix_task_dependency_task_id', 'task_dependency', ['task_id'])
    op.create_index('ix_task_dependency_predecessor_id', 'task_dependency', ['predecessor_id'])

    op.create_table(
        'milestone_template',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('phase', sa.String(100), nullable=False),
        sa.Column('name', sa.String(300), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_required', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('order_index', sa.Integer(), nullable=False, unique=True),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('direction', sa.String(100), nullable=True),
        sa.Column('importance', sa.Integer(), nullable=False, server_default='3'),
        sa.Column('input_docs', sa.Text(), nullable=True),
        sa.Column('output_docs', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        'milestone_version',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('version_name', sa.String(200), nullable=False),
        sa.Column('version_number', sa.Integer(), nullable=False, unique=True),
        sa.Column('content', sa.Text(), nullable=False, server_default='[]'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('user_account.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    # At most one active version
    op.create_index(
        'uq_milestone_version_single_active',
        'milestone_version',
        ['is_active'],
        unique=True,
        sqlite_where=sa.text('is_active = 1'),
        postgresql_where=sa.text('is_active'),
    )

    op.create_table(
        'project_milestone',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            'project_id', sa.Integer(),
            sa.ForeignKey('project.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('template_id', sa.Integer(), sa.ForeignKey('milestone_template.id'), nullable=True),
        sa.Column('version_id', sa.Integer(), sa.ForeignKey('milestone_version.id'), nullable=True),
        sa.Column('phase', sa.String(100), nullable=True),
        sa.Column('name', sa.String(300), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_required', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('input_docs', sa.Text(), nullable=True),
        sa.Column('output_docs', sa.Text(), nullable=True),
        sa.Column('order_index', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING'),
        sa.Column('actual_start_date', sa.Date(), nullable=True),
        sa.Column('actual_end_date', sa.Date(), nullable=True),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.Column('output_files', sa.Text(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('project_id', 'order_index', name='uq_project_milestone_order'),
    )
    op.create_index('ix_project_milestone_project_id', 'project_milestone', ['project_id'])


def downgrade() -> None:
    op.drop_index('ix_project_milestone_project_id', table_name='project_milestone')
    op.drop_table('project_milestone')
    op.drop_index('uq_milestone_version_single_active', table_name='milestone_version')
    op.drop_table('milestone_version')
    op.drop_table('milestone_template')
    op.drop_index('ix_task_dependency_predecessor_id', table_name='task_dependency')
    op.drop_index('ix_task_dependency_task_id', table_name='task_dependency')
    op.drop_table('task_dependency')
    op.drop_index('ix_task_project_id', table_name='task')
    op.drop_table('task')
    op.drop_table('audit_log')
    op.drop_table('project')
    op.drop_table('user_account')
