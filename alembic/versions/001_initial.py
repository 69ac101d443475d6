"""Initial migration

Revision ID: 001
Revises:
Create Date: 2024-01-01 00:00:00.000000

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
    # Create users table
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('email', sa.String(255), unique=True, nullable=False),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(255)),
        sa.Column('phone', sa.String(20)),
        sa.Column('role', sa.String(20), default='staff'),
        sa.Column('is_active', sa.Boolean(), default=True),
        sa.Column('refresh_token', sa.String(500)),
        sa.Column('last_login', sa.DateTime()),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
    )

    # Create tables table
    op.create_table(
        'tables',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('table_number', sa.Integer(), unique=True, nullable=False),
        sa.Column('table_name', sa.String(50)),
        sa.Column('capacity', sa.Integer(), nullable=False),
        sa.Column('location', sa.String(100)),
        sa.Column('status', sa.String(20), nullable=False, server_default='Available'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.CheckConstraint('capacity > 0', name='ck_tables_capacity_positive'),
    )

    # Create customers table
    op.create_table(
        'customers',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('full_name', sa.String(100), nullable=False),
        sa.Column('phone', sa.String(20), unique=True),
        sa.Column('email', sa.String(100)),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
    )

    # Create reservations table; the order FK is added once orders exists
    op.create_table(
        'reservations',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('reservation_number', sa.String(20), unique=True, nullable=False),
        sa.Column('customer_id', sa.Integer(), sa.ForeignKey('customers.id')),
        sa.Column('customer_name', sa.String(100), nullable=False),
        sa.Column('customer_phone', sa.String(20)),
        sa.Column('customer_email', sa.String(100)),
        sa.Column('number_of_guests', sa.Integer(), nullable=False),
        sa.Column('reservation_time', sa.DateTime(), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('preferred_area', sa.String(50)),
        sa.Column('status', sa.String(20), nullable=False, server_default='Pending'),
        sa.Column('notes', sa.Text()),
        sa.Column('cancel_reason', sa.String(500)),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id')),
        sa.Column('confirmed_by', sa.Integer(), sa.ForeignKey('users.id')),
        sa.Column('cancelled_by', sa.Integer(), sa.ForeignKey('users.id')),
        sa.Column('arrived_by', sa.Integer(), sa.ForeignKey('users.id')),
        sa.Column('confirmed_at', sa.DateTime()),
        sa.Column('cancelled_at', sa.DateTime()),
        sa.Column('arrived_at', sa.DateTime()),
        sa.Column('order_id', sa.Integer()),
        sa.Column('reminder_sent', sa.DateTime()),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
    )

    # Create reservation_tables table
    op.create_table(
        'reservation_tables',
        sa.Column('reservation_id', sa.Integer(), sa.ForeignKey('reservations.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('table_id', sa.Integer(), sa.ForeignKey('tables.id'), primary_key=True),
        sa.Column('sort_order', sa.Integer(), default=0),
    )

    # Create orders table
    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('order_number', sa.String(30), unique=True, nullable=False),
        sa.Column('reservation_id', sa.Integer(), sa.ForeignKey('reservations.id')),
        sa.Column('customer_id', sa.Integer(), sa.ForeignKey('customers.id')),
        sa.Column('number_of_guests', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('status', sa.String(50), default='Pending'),
        sa.Column('notes', sa.Text()),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id')),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
    )

    # Create order_tables table
    op.create_table(
        'order_tables',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('table_id', sa.Integer(), sa.ForeignKey('tables.id'), nullable=False),
    )

    op.create_foreign_key(
        'fk_reservations_order_id', 'reservations', 'orders', ['order_id'], ['id']
    )

    # Create audit_logs table
    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('actor_id', sa.Integer()),
        sa.Column('actor_type', sa.String(50)),
        sa.Column('action', sa.String(100), nullable=False),
        sa.Column('resource_type', sa.String(50)),
        sa.Column('resource_id', sa.Integer()),
        sa.Column('data_json', sa.JSON()),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
    )

    # Create indexes
    op.create_index('ix_reservations_time_status', 'reservations', ['reservation_time', 'status'])
    op.create_index('ix_reservations_customer_phone', 'reservations', ['customer_phone'])
    op.create_index('ix_reservation_tables_table_id', 'reservation_tables', ['table_id'])
    op.create_index('ix_audit_logs_resource', 'audit_logs', ['resource_type', 'resource_id'])


def downgrade() -> None:
    op.drop_constraint('fk_reservations_order_id', 'reservations', type_='foreignkey')
    op.drop_table('audit_logs')
    op.drop_table('order_tables')
    op.drop_table('orders')
    op.drop_table('reservation_tables')
    op.drop_table('reservations')
    op.drop_table('customers')
    op.drop_table('tables')
    op.drop_table('users')
