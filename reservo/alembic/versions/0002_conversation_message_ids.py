"""conversation message ids

Revision ID: 0002_conversation_message_ids
Revises: 0001_initial
Create Date: 2026-10-20 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = '0002_conversation_message_ids'
down_revision = '0001_initial'
branch_labels = None
depends_on = None

def upgrade():
    # id входящих сообщений WhatsApp, чтобы не отвечать дважды на повторную доставку
    op.add_column('conversations', sa.Column('message_ids', sa.JSON(), nullable=True))

def downgrade():
    op.drop_column('conversations', 'message_ids')
