"""initial schema: authz, audit, ledger, grow rooms

Revision ID: 0001_initial_schema
Revises: 
Create Date: 2026-10-19
"""
from __future__ import annotations
from alembic import op
import sqlalchemy as sa

revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None

def _updated_at():
    return sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'))

def upgrade():
    op.create_table('roles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=64), nullable=False, unique=True),
        sa.Column('description', sa.String(length=255)),
        sa.Column('permissions', sa.JSON(), nullable=True),
        _updated_at(),
    )

    op.create_table('users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('email', sa.String(length=128), nullable=False, unique=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=32), nullable=False, server_default='viewer'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('1')),
        _updated_at(),
    )
    op.create_index('ix_users_email', 'users', ['email'])

    op.create_table('user_roles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role_id', sa.Integer(), sa.ForeignKey('roles.id', ondelete='CASCADE'), nullable=False)
    )
    # unique constraint handled via batch for sqlite
    with op.batch_alter_table('user_roles') as batch_op:
        batch_op.create_unique_constraint('uq_user_role', ['user_id', 'role_id'])

    op.create_table('audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('actor_user_id', sa.Integer(), nullable=False),
        sa.Column('actor_name', sa.String(length=128)),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('entity', sa.String(length=64)),
        sa.Column('entity_id', sa.String(length=64)),
        sa.Column('meta', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'))
    )
    op.create_index('ix_audit_logs_actor_user_id', 'audit_logs', ['actor_user_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])

    op.create_table('vendors',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('address', sa.String(length=255)),
        sa.Column('contact_person', sa.String(length=128)),
        sa.Column('contact_number', sa.String(length=64)),
        sa.Column('email', sa.String(length=150)),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='Active'),
        sa.Column('created_by', sa.Integer()),
        _updated_at(),
    )
    op.create_index('ix_vendors_name', 'vendors', ['name'])
    op.create_index('ix_vendors_status', 'vendors', ['status'])

    op.create_table('materials',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('category', sa.String(length=100)),
        sa.Column('unit', sa.String(length=32)),
        sa.Column('description', sa.String(length=500)),
        _updated_at(),
    )
    op.create_index('ix_materials_name', 'materials', ['name'])

    op.create_table('vendor_materials',
        sa.Column('vendor_id', sa.Integer(), sa.ForeignKey('vendors.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('material_id', sa.Integer(), sa.ForeignKey('materials.id', ondelete='CASCADE'), primary_key=True),
    )

    op.create_table('vouchers',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('vendor_id', sa.Integer(), sa.ForeignKey('vendors.id'), nullable=False),
        sa.Column('date_of_purchase', sa.DateTime(timezone=True), nullable=False),
        sa.Column('sub_total', sa.Float(), nullable=False, server_default='0'),
        sa.Column('tax_percent', sa.Float(), nullable=False, server_default='0'),
        sa.Column('tax_amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('discount_type', sa.String(length=16), nullable=False, server_default='none'),
        sa.Column('discount_value', sa.Float(), nullable=False, server_default='0'),
        sa.Column('final_amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('payment_method', sa.String(length=64), nullable=False),
        sa.Column('payment_status', sa.String(length=32), nullable=False),
        sa.Column('payment_date', sa.DateTime(timezone=True)),
        sa.Column('paid_by_mode', sa.String(length=64)),
        sa.Column('payment_comments', sa.String(length=500)),
        sa.Column('created_by_name', sa.String(length=128)),
        sa.Column('status_updated_by_name', sa.String(length=128)),
        sa.Column('status_updated_at', sa.DateTime(timezone=True)),
        _updated_at(),
    )
    op.create_index('ix_vouchers_vendor_id', 'vouchers', ['vendor_id'])
    op.create_index('ix_vouchers_date_of_purchase', 'vouchers', ['date_of_purchase'])
    op.create_index('ix_vouchers_payment_status', 'vouchers', ['payment_status'])

    op.create_table('voucher_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('voucher_id', sa.Integer(), sa.ForeignKey('vouchers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('material_id', sa.Integer(), sa.ForeignKey('materials.id'), nullable=False),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('price_per_unit', sa.Float(), nullable=False),
        sa.Column('comment', sa.String(length=255)),
    )
    op.create_index('ix_voucher_items_voucher_id', 'voucher_items', ['voucher_id'])
    op.create_index('ix_voucher_items_material_id', 'voucher_items', ['material_id'])

    op.create_table('stages',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=128), nullable=False, unique=True),
        sa.Column('sequence_order', sa.Integer(), nullable=False, unique=True),
        sa.Column('interval_days', sa.Integer(), nullable=False),
        sa.Column('humidity', sa.Float(), nullable=False, server_default='0'),
        sa.Column('temperature', sa.Float(), nullable=False, server_default='0'),
        sa.Column('co2_level', sa.Float(), nullable=False, server_default='0'),
        sa.Column('notes', sa.String(length=1000)),
        sa.Column('watering', sa.Boolean(), nullable=False, server_default=sa.text('0')),
        sa.Column('ruffling', sa.Boolean(), nullable=False, server_default=sa.text('0')),
        sa.Column('thumping', sa.Boolean(), nullable=False, server_default=sa.text('0')),
        _updated_at(),
    )
    op.create_index('ix_stages_sequence_order', 'stages', ['sequence_order'])

    op.create_table('growing_rooms',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=128), nullable=False, unique=True),
        sa.Column('max_bag_capacity', sa.Float(), nullable=False, server_default='0'),
        sa.Column('power_backup_source', sa.String(length=128)),
        sa.Column('current_stage_id', sa.Integer(), sa.ForeignKey('stages.id', ondelete='SET NULL'), nullable=True),
        sa.Column('stage_started_at', sa.DateTime(timezone=True)),
        sa.Column('activity_day', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('activity_status', sa.JSON(), nullable=False),
        _updated_at(),
    )


def downgrade():
    for tbl in ['growing_rooms', 'stages', 'voucher_items', 'vouchers', 'vendor_materials', 'materials',
                'vendors', 'audit_logs', 'user_roles', 'users', 'roles']:
        op.drop_table(tbl)
