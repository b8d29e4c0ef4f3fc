"""Password reset tokens, file attachments and GDPR export audit log

Revision ID: 002
Revises: 001
Create Date: 2025-10-15
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '002'
down_revision = '001'
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Password reset tokens (only the SHA-256 of the raw token is stored)
    op.create_table('password_reset_tokens',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('agent_id', sa.String(36), nullable=False),
        sa.Column('token_hash', sa.String(64), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('used', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('used_at', sa.DateTime()),
        sa.Column('ip_address', sa.String(45)),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['agent_id'], ['agents.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('token_hash')
    )
    op.create_index('ix_password_reset_tokens_agent', 'password_reset_tokens', ['agent_id'])
    op.create_index('ix_password_reset_tokens_expires', 'password_reset_tokens', ['expires_at'])

    # File attachments, owned by exactly one property or client
    op.create_table('file_attachments',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('agent_id', sa.String(36), nullable=False),
        sa.Column('property_id', sa.String(36)),
        sa.Column('client_id', sa.String(36)),
        sa.Column('file_name', sa.String(255), nullable=False),
        sa.Column('original_file_name', sa.String(255), nullable=False),
        sa.Column('file_data', sa.Text(), nullable=False),
        sa.Column('file_size', sa.BigInteger(), nullable=False),
        sa.Column('mime_type', sa.String(100), nullable=False),
        sa.Column('file_type', sa.String(30), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('upload_date', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['agent_id'], ['agents.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['property_id'], ['properties.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            '(property_id IS NOT NULL AND client_id IS NULL) OR '
            '(property_id IS NULL AND client_id IS NOT NULL)',
            name='ck_file_attachments_single_owner'
        ),
        sa.CheckConstraint('file_size > 0', name='ck_file_attachments_size')
    )
    op.create_index('ix_file_attachments_agent', 'file_attachments', ['agent_id'])
    op.create_index('ix_file_attachments_property', 'file_attachments', ['property_id'])
    op.create_index('ix_file_attachments_client', 'file_attachments', ['client_id'])

    # GDPR export audit log
    op.create_table('gdpr_export_audit_logs',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('agent_id', sa.String(36), nullable=False),
        sa.Column('export_type', sa.String(20), nullable=False),
        sa.Column('export_format', sa.String(10), nullable=False),
        sa.Column('export_timestamp', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('ip_address', sa.String(45)),
        sa.Column('user_agent', sa.String(500)),
        sa.Column('records_exported', sa.Integer()),
        sa.Column('export_size_bytes', sa.BigInteger()),
        sa.Column('success', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('error_message', sa.Text()),
        sa.Column('processing_time_ms', sa.BigInteger()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['agent_id'], ['agents.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_gdpr_audit_agent', 'gdpr_export_audit_logs', ['agent_id'])
    op.create_index('ix_gdpr_audit_timestamp', 'gdpr_export_audit_logs', ['export_timestamp'])


def downgrade() -> None:
    op.drop_table('gdpr_export_audit_logs')
    op.drop_table('file_attachments')
    op.drop_table('password_reset_tokens')
