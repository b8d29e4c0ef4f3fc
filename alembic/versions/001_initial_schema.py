"""Initial database schema

Revision ID: 001
Revises:
Create Date: 2025-09-01

Creates the core CRM tables: agents, clients, search criteria, properties,
property images and call notes.
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Agents table
    op.create_table('agents',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('phone', sa.String(50)),
        sa.Column('language_preference', sa.String(2), nullable=False, server_default='DE'),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email')
    )
    op.create_index('ix_agents_email', 'agents', ['email'])

    # Clients table
    op.create_table('clients',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('agent_id', sa.String(36), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('email', sa.String(255)),
        sa.Column('phone', sa.String(50)),
        sa.Column('address_street', sa.String(255)),
        sa.Column('address_city', sa.String(100)),
        sa.Column('address_postal_code', sa.String(5)),
        sa.Column('address_country', sa.String(100), server_default='Germany'),
        sa.Column('gdpr_consent_given', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('gdpr_consent_date', sa.DateTime()),
        sa.Column('ai_summary', sa.Text()),
        sa.Column('ai_summary_updated_at', sa.DateTime()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['agent_id'], ['agents.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_clients_agent', 'clients', ['agent_id'])
    op.create_index('ix_clients_email', 'clients', ['email'])
    op.create_index('ix_clients_created_at', 'clients', ['created_at'])

    # Search criteria (at most one row per client)
    op.create_table('property_search_criteria',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('client_id', sa.String(36), nullable=False),
        sa.Column('min_square_meters', sa.Integer()),
        sa.Column('max_square_meters', sa.Integer()),
        sa.Column('min_rooms', sa.Integer()),
        sa.Column('max_rooms', sa.Integer()),
        sa.Column('min_budget', sa.Numeric(12, 2)),
        sa.Column('max_budget', sa.Numeric(12, 2)),
        sa.Column('preferred_locations', sa.Text()),
        sa.Column('property_types', sa.Text()),
        sa.Column('additional_requirements', sa.Text()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('client_id'),
        sa.CheckConstraint('min_square_meters IS NULL OR max_square_meters IS NULL OR min_square_meters <= max_square_meters',
                           name='ck_criteria_square_meters'),
        sa.CheckConstraint('min_rooms IS NULL OR max_rooms IS NULL OR min_rooms <= max_rooms',
                           name='ck_criteria_rooms'),
        sa.CheckConstraint('min_budget IS NULL OR max_budget IS NULL OR min_budget <= max_budget',
                           name='ck_criteria_budget')
    )

    # Properties table
    op.create_table('properties',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('agent_id', sa.String(36), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('property_type', sa.String(30), nullable=False),
        sa.Column('listing_type', sa.String(10), nullable=False),
        sa.Column('status', sa.String(30), nullable=False, server_default='AVAILABLE'),
        sa.Column('address_street', sa.String(255)),
        sa.Column('address_house_number', sa.String(20)),
        sa.Column('address_city', sa.String(100)),
        sa.Column('address_postal_code', sa.String(5)),
        sa.Column('address_state', sa.String(100)),
        sa.Column('address_country', sa.String(100), server_default='Germany'),
        sa.Column('address_district', sa.String(100)),
        sa.Column('living_area_sqm', sa.Numeric(10, 2)),
        sa.Column('total_area_sqm', sa.Numeric(10, 2)),
        sa.Column('plot_area_sqm', sa.Numeric(10, 2)),
        sa.Column('rooms', sa.Numeric(4, 1)),
        sa.Column('bedrooms', sa.Integer()),
        sa.Column('bathrooms', sa.Integer()),
        sa.Column('floors', sa.Integer()),
        sa.Column('floor_number', sa.Integer()),
        sa.Column('construction_year', sa.Integer()),
        sa.Column('last_renovation_year', sa.Integer()),
        sa.Column('price', sa.Numeric(12, 2)),
        sa.Column('price_per_sqm', sa.Numeric(10, 2)),
        sa.Column('additional_costs', sa.Numeric(10, 2)),
        sa.Column('heating_costs', sa.Numeric(10, 2)),
        sa.Column('commission', sa.String(100)),
        sa.Column('has_elevator', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('has_balcony', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('has_terrace', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('has_garden', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('has_garage', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('has_parking', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('has_basement', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('has_attic', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_barrier_free', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('pets_allowed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('furnished', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('energy_efficiency_class', sa.String(5)),
        sa.Column('energy_consumption_kwh', sa.Numeric(8, 2)),
        sa.Column('heating_type', sa.String(30)),
        sa.Column('available_from', sa.Date()),
        sa.Column('contact_phone', sa.String(50)),
        sa.Column('contact_email', sa.String(255)),
        sa.Column('virtual_tour_url', sa.String(500)),
        sa.Column('notes', sa.Text()),
        sa.Column('data_processing_consent', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('consent_date', sa.DateTime()),
        sa.Column('expose_file_name', sa.String(255)),
        sa.Column('expose_file_data', sa.Text()),
        sa.Column('expose_file_size', sa.BigInteger()),
        sa.Column('expose_uploaded_at', sa.DateTime()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['agent_id'], ['agents.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_properties_agent', 'properties', ['agent_id'])
    op.create_index('ix_properties_status', 'properties', ['status'])
    op.create_index('ix_properties_type', 'properties', ['property_type'])
    op.create_index('ix_properties_city', 'properties', ['address_city'])
    op.create_index('ix_properties_price', 'properties', ['price'])
    op.create_index('ix_properties_created_at', 'properties', ['created_at'])

    # Property images
    op.create_table('property_images',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('property_id', sa.String(36), nullable=False),
        sa.Column('filename', sa.String(255), nullable=False),
        sa.Column('original_filename', sa.String(255)),
        sa.Column('content_type', sa.String(100)),
        sa.Column('file_size', sa.BigInteger()),
        sa.Column('width', sa.Integer()),
        sa.Column('height', sa.Integer()),
        sa.Column('title', sa.String(255)),
        sa.Column('description', sa.Text()),
        sa.Column('alt_text', sa.String(255)),
        sa.Column('is_primary', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('image_type', sa.String(30), nullable=False, server_default='GENERAL'),
        sa.Column('image_data', sa.Text()),
        sa.Column('thumbnail_data', sa.Text()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['property_id'], ['properties.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_property_images_property', 'property_images', ['property_id'])
    # At most one primary image per property
    op.create_index('uq_property_images_primary', 'property_images', ['property_id'], unique=True,
                    postgresql_where=sa.text('is_primary'))

    # Call notes
    op.create_table('call_notes',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('agent_id', sa.String(36), nullable=False),
        sa.Column('client_id', sa.String(36), nullable=False),
        sa.Column('property_id', sa.String(36)),
        sa.Column('call_date', sa.DateTime(), nullable=False),
        sa.Column('duration_minutes', sa.Integer()),
        sa.Column('call_type', sa.String(20), nullable=False),
        sa.Column('subject', sa.String(200), nullable=False),
        sa.Column('notes', sa.Text(), nullable=False),
        sa.Column('follow_up_required', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('follow_up_date', sa.Date()),
        sa.Column('properties_discussed', sa.Text()),
        sa.Column('outcome', sa.String(20)),
        *_timestamps(),
        sa.ForeignKeyConstraint(['agent_id'], ['agents.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['property_id'], ['properties.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_call_notes_agent', 'call_notes', ['agent_id'])
    op.create_index('ix_call_notes_client', 'call_notes', ['client_id'])
    op.create_index('ix_call_notes_call_date', 'call_notes', ['call_date'])
    op.create_index('ix_call_notes_follow_up', 'call_notes', ['follow_up_required', 'follow_up_date'])


def downgrade() -> None:
    op.drop_table('call_notes')
    op.drop_index('uq_property_images_primary', table_name='property_images')
    op.drop_table('property_images')
    op.drop_table('properties')
    op.drop_table('property_search_criteria')
    op.drop_table('clients')
    op.drop_table('agents')
