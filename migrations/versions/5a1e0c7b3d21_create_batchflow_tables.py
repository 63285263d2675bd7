"""create batchflow tables

Revision ID: 5a1e0c7b3d21
Revises:
Create Date: 2026-10-19 09:12:44.208113

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5a1e0c7b3d21'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # users table
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=150), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=32), nullable=False),
        sa.Column('email', sa.String(length=320), nullable=True),
        sa.Column('avatar_url', sa.String(length=512), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username')
    )

    # products table
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )

    # work_orders table
    op.create_table(
        'work_orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('work_order_number', sa.String(length=32), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('batch_size', sa.Integer(), nullable=False),
        sa.Column('assigned_operator_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('start_date', sa.DateTime(), nullable=False),
        sa.Column('end_date', sa.DateTime(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['assigned_operator_id'], ['users.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('work_order_number')
    )
    op.create_index('idx_work_orders_status', 'work_orders', ['status'], unique=False)
    op.create_index('idx_work_orders_updated_at', 'work_orders', ['updated_at'], unique=False)

    # batch_records table
    op.create_table(
        'batch_records',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('work_order_id', sa.Integer(), nullable=False),
        sa.Column('operator_id', sa.Integer(), nullable=False),
        sa.Column('batch_number', sa.String(length=64), nullable=False),
        sa.Column('completion_percentage', sa.Integer(), nullable=False),
        sa.Column('is_complete', sa.Boolean(), nullable=False),
        sa.Column('submitted_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['operator_id'], ['users.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['work_order_id'], ['work_orders.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('batch_number'),
        sa.UniqueConstraint('work_order_id')
    )
    op.create_index('idx_batch_records_is_complete', 'batch_records', ['is_complete'], unique=False)

    # manufacturing_steps table
    op.create_table(
        'manufacturing_steps',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('batch_record_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('sort_order', sa.Integer(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('completed_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['batch_record_id'], ['batch_records.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['completed_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_manufacturing_steps_batch_record', 'manufacturing_steps', ['batch_record_id'], unique=False)

    # quality_control_tests table
    op.create_table(
        'quality_control_tests',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('batch_record_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('acceptable_range', sa.String(length=255), nullable=True),
        sa.Column('result', sa.String(length=255), nullable=True),
        sa.Column('is_passed', sa.Boolean(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('completed_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['batch_record_id'], ['batch_records.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['completed_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_quality_control_tests_batch_record', 'quality_control_tests', ['batch_record_id'], unique=False)

    # quality_reviews table
    op.create_table(
        'quality_reviews',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('batch_record_id', sa.Integer(), nullable=False),
        sa.Column('reviewer_id', sa.Integer(), nullable=False),
        sa.Column('decision', sa.String(length=16), nullable=False),
        sa.Column('comments', sa.Text(), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['batch_record_id'], ['batch_records.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['reviewer_id'], ['users.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('batch_record_id')
    )

    # activity_logs table
    op.create_table(
        'activity_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('activity_type', sa.String(length=64), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('entity_type', sa.String(length=64), nullable=True),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_activity_logs_created_at', 'activity_logs', ['created_at'], unique=False)
    op.create_index('idx_activity_logs_entity', 'activity_logs', ['entity_type', 'entity_id'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_activity_logs_entity', table_name='activity_logs')
    op.drop_index('idx_activity_logs_created_at', table_name='activity_logs')
    op.drop_table('activity_logs')
    op.drop_table('quality_reviews')
    op.drop_index('idx_quality_control_tests_batch_record', table_name='quality_control_tests')
    op.drop_table('quality_control_tests')
    op.drop_index('idx_manufacturing_steps_batch_record', table_name='manufacturing_steps')
    op.drop_table('manufacturing_steps')
    op.drop_index('idx_batch_records_is_complete', table_name='batch_records')
    op.drop_table('batch_records')
    op.drop_index('idx_work_orders_updated_at', table_name='work_orders')
    op.drop_index('idx_work_orders_status', table_name='work_orders')
    op.drop_table('work_orders')
    op.drop_table('products')
    op.drop_table('users')
