"""initial

Revision ID: 0001_initial
Revises: 
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# уникальный ID миграции
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    # создаём таблицу tenants
    op.create_table(
        'tenants',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('name', sa.String(), server_default=''),
        sa.Column('status', sa.Enum('active', 'suspended', name='tenant_status_enum'), server_default='active'),
        sa.Column('power_status', sa.Enum('running', 'offline', 'restarting', name='power_status_enum'), server_default='offline'),
        sa.Column('expires_at', sa.Date(), nullable=True),
        sa.Column('ai_api_key', sa.Text(), nullable=True),
        sa.Column('phone_id', sa.String(), nullable=True),
        sa.Column('wh_token', sa.Text(), nullable=True),
        sa.Column('business_id', sa.String(), nullable=True),
        sa.Column('client_id', sa.String(), nullable=True),
        sa.Column('client_secret', sa.Text(), nullable=True),
        sa.Column('max_seats', sa.Integer(), server_default='0'),
        sa.Column('open_time', sa.String(), nullable=True),
        sa.Column('close_time', sa.String(), nullable=True),
        sa.Column('open_days', sa.JSON(), nullable=True),
        sa.Column('ai_language', sa.Enum('es', 'en', 'both', name='ai_language_enum'), server_default='es'),
    )
    op.create_index('ix_tenants_id', 'tenants', ['id'])
    op.create_index('ix_tenants_phone_id', 'tenants', ['phone_id'])
    # создаём таблицу reservations
    op.create_table(
        'reservations',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('tenant_id', sa.String(), sa.ForeignKey('tenants.id'), index=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('customer_name', sa.String(), server_default=''),
        sa.Column('customer_phone', sa.String(), index=True),
        sa.Column('date', sa.String(10), nullable=True),
        sa.Column('time', sa.String(5), nullable=True),
        sa.Column('party_size', sa.Integer(), nullable=True),
        sa.Column('status', sa.Enum('pending', 'confirmed', 'cancelled', name='reservation_status_enum'), server_default='pending'),
        sa.Column('source', sa.Enum('WhatsApp', 'Web', 'Phone', name='reservation_source_enum'), server_default='WhatsApp'),
        sa.Column('raw_commentary', sa.Text()),
        sa.Column('structured_commentary', sa.JSON(), nullable=True),
        sa.Column('staff_notes', sa.Text()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    )
    # создаём таблицу conversations
    op.create_table(
        'conversations',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('tenant_id', sa.String(), sa.ForeignKey('tenants.id')),
        sa.Column('customer_phone', sa.String(), nullable=False),
        sa.Column('turns', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index('ix_conversations_tenant_phone', 'conversations', ['tenant_id', 'customer_phone'])

def downgrade():
    # откатываем в обратном порядке
    op.drop_index('ix_conversations_tenant_phone', table_name='conversations')
    op.drop_table('conversations')
    op.drop_table('reservations')
    op.drop_index('ix_tenants_phone_id', table_name='tenants')
    op.drop_index('ix_tenants_id', table_name='tenants')
    op.drop_table('tenants')
