"""
SQLAlchemy models for the MarklerApp CRM.
Defines agents, clients, properties, call notes, attachments, password reset
tokens and the GDPR export audit log.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from sqlalchemy import (
    Column, String, Text, Integer, BigInteger, Numeric, Boolean, DateTime, Date,
    ForeignKey, Index, UniqueConstraint, CheckConstraint, text
)
from sqlalchemy.orm import relationship
from database.connection import Base

from constants import DEFAULT_ADDRESS_COUNTRY


def generate_uuid():
    """Generate a new UUID."""
    return str(uuid.uuid4())


def _iso(value):
    return value.isoformat() if value else None


def _num(value):
    if value is None:
        return None
    if isinstance(value, Decimal):
        return float(value)
    return value


def split_list(value):
    """Split a comma-joined column into a clean list."""
    if not value:
        return []
    return [item.strip() for item in value.split(',') if item.strip()]


def join_list(values):
    if not values:
        return None
    if isinstance(values, str):
        values = split_list(values)
    cleaned = [str(v).strip() for v in values if str(v).strip()]
    return ', '.join(cleaned) if cleaned else None


class TimestampMixin:
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


# =============================================================================
# AGENTS
# =============================================================================

class Agent(TimestampMixin, Base):
    """A real-estate agent; owns every other record in the system."""
    __tablename__ = 'agents'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    email = Column(String(255), unique=True, nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    phone = Column(String(50))
    language_preference = Column(String(2), nullable=False, default='DE')
    password_hash = Column(String(255), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    clients = relationship("Client", back_populates="agent", cascade="all, delete-orphan")
    properties = relationship("Property", back_populates="agent", cascade="all, delete-orphan")

    __table_args__ = (
        Index('ix_agents_email', 'email'),
    )

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'full_name': self.full_name,
            'phone': self.phone,
            'language_preference': self.language_preference,
            'is_active': self.is_active,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }


# =============================================================================
# CLIENTS & SEARCH CRITERIA
# =============================================================================

class Client(TimestampMixin, Base):
    """Client records, each owned by exactly one agent."""
    __tablename__ = 'clients'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    agent_id = Column(String(36), ForeignKey('agents.id', ondelete='CASCADE'), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255))
    phone = Column(String(50))
    address_street = Column(String(255))
    address_city = Column(String(100))
    address_postal_code = Column(String(5))
    address_country = Column(String(100), default=DEFAULT_ADDRESS_COUNTRY)
    gdpr_consent_given = Column(Boolean, nullable=False, default=False)
    gdpr_consent_date = Column(DateTime)
    ai_summary = Column(Text)
    ai_summary_updated_at = Column(DateTime)

    agent = relationship("Agent", back_populates="clients")
    search_criteria = relationship("PropertySearchCriteria", back_populates="client",
                                   uselist=False, cascade="all, delete-orphan")
    call_notes = relationship("CallNote", back_populates="client", cascade="all, delete-orphan")
    attachments = relationship("FileAttachment", back_populates="client", cascade="all, delete-orphan")

    __table_args__ = (
        Index('ix_clients_agent', 'agent_id'),
        Index('ix_clients_email', 'email'),
        Index('ix_clients_created_at', 'created_at'),
    )

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def formatted_address(self):
        city_line = ' '.join(p for p in [self.address_postal_code, self.address_city] if p)
        parts = [p for p in [self.address_street, city_line, self.address_country] if p]
        return ', '.join(parts) if parts else None

    def to_dict(self, include_criteria=True):
        data = {
            'id': self.id,
            'agent_id': self.agent_id,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'full_name': self.full_name,
            'email': self.email,
            'phone': self.phone,
            'address_street': self.address_street,
            'address_city': self.address_city,
            'address_postal_code': self.address_postal_code,
            'address_country': self.address_country,
            'formatted_address': self.formatted_address,
            'gdpr_consent_given': bool(self.gdpr_consent_given),
            'gdpr_consent_date': _iso(self.gdpr_consent_date),
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }
        if include_criteria:
            data['search_criteria'] = self.search_criteria.to_dict() if self.search_criteria else None
        return data


class PropertySearchCriteria(TimestampMixin, Base):
    """What a client is looking for; 1:1 with Client."""
    __tablename__ = 'property_search_criteria'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    client_id = Column(String(36), ForeignKey('clients.id', ondelete='CASCADE'), nullable=False, unique=True)
    min_square_meters = Column(Integer)
    max_square_meters = Column(Integer)
    min_rooms = Column(Integer)
    max_rooms = Column(Integer)
    min_budget = Column(Numeric(12, 2))
    max_budget = Column(Numeric(12, 2))
    preferred_locations = Column(Text)  # comma-joined
    property_types = Column(Text)       # comma-joined
    additional_requirements = Column(Text)

    client = relationship("Client", back_populates="search_criteria")

    __table_args__ = (
        CheckConstraint('min_square_meters IS NULL OR max_square_meters IS NULL OR min_square_meters <= max_square_meters',
                        name='ck_criteria_square_meters'),
        CheckConstraint('min_rooms IS NULL OR max_rooms IS NULL OR min_rooms <= max_rooms',
                        name='ck_criteria_rooms'),
        CheckConstraint('min_budget IS NULL OR max_budget IS NULL OR min_budget <= max_budget',
                        name='ck_criteria_budget'),
    )

    @property
    def preferred_locations_list(self):
        return split_list(self.preferred_locations)

    @property
    def property_types_list(self):
        return [t.upper() for t in split_list(self.property_types)]

    def to_dict(self):
        return {
            'id': self.id,
            'client_id': self.client_id,
            'min_square_meters': self.min_square_meters,
            'max_square_meters': self.max_square_meters,
            'min_rooms': self.min_rooms,
            'max_rooms': self.max_rooms,
            'min_budget': _num(self.min_budget),
            'max_budget': _num(self.max_budget),
            'preferred_locations': self.preferred_locations_list,
            'property_types': self.property_types_list,
            'additional_requirements': self.additional_requirements,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }


# =============================================================================
# PROPERTIES & IMAGES
# =============================================================================

class Property(TimestampMixin, Base):
    """Property listings with specs, features, energy data and an optional expose PDF."""
    __tablename__ = 'properties'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    agent_id = Column(String(36), ForeignKey('agents.id', ondelete='CASCADE'), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    property_type = Column(String(30), nullable=False)
    listing_type = Column(String(10), nullable=False)
    status = Column(String(30), nullable=False, default='AVAILABLE')

    # Address
    address_street = Column(String(255))
    address_house_number = Column(String(20))
    address_city = Column(String(100))
    address_postal_code = Column(String(5))
    address_state = Column(String(100))
    address_country = Column(String(100), default=DEFAULT_ADDRESS_COUNTRY)
    address_district = Column(String(100))

    # Specifications
    living_area_sqm = Column(Numeric(10, 2))
    total_area_sqm = Column(Numeric(10, 2))
    plot_area_sqm = Column(Numeric(10, 2))
    rooms = Column(Numeric(4, 1))
    bedrooms = Column(Integer)
    bathrooms = Column(Integer)
    floors = Column(Integer)
    floor_number = Column(Integer)
    construction_year = Column(Integer)
    last_renovation_year = Column(Integer)

    # Financials
    price = Column(Numeric(12, 2))
    price_per_sqm = Column(Numeric(10, 2))
    additional_costs = Column(Numeric(10, 2))
    heating_costs = Column(Numeric(10, 2))
    commission = Column(String(100))

    # Features
    has_elevator = Column(Boolean, nullable=False, default=False)
    has_balcony = Column(Boolean, nullable=False, default=False)
    has_terrace = Column(Boolean, nullable=False, default=False)
    has_garden = Column(Boolean, nullable=False, default=False)
    has_garage = Column(Boolean, nullable=False, default=False)
    has_parking = Column(Boolean, nullable=False, default=False)
    has_basement = Column(Boolean, nullable=False, default=False)
    has_attic = Column(Boolean, nullable=False, default=False)
    is_barrier_free = Column(Boolean, nullable=False, default=False)
    pets_allowed = Column(Boolean, nullable=False, default=False)
    furnished = Column(Boolean, nullable=False, default=False)

    # Energy
    energy_efficiency_class = Column(String(5))
    energy_consumption_kwh = Column(Numeric(8, 2))
    heating_type = Column(String(30))

    available_from = Column(Date)
    contact_phone = Column(String(50))
    contact_email = Column(String(255))
    virtual_tour_url = Column(String(500))
    notes = Column(Text)

    data_processing_consent = Column(Boolean, nullable=False, default=False)
    consent_date = Column(DateTime)

    # Expose (brochure PDF), stored as Base64
    expose_file_name = Column(String(255))
    expose_file_data = Column(Text)
    expose_file_size = Column(BigInteger)
    expose_uploaded_at = Column(DateTime)

    agent = relationship("Agent", back_populates="properties")
    images = relationship("PropertyImage", back_populates="property",
                          cascade="all, delete-orphan", order_by="PropertyImage.sort_order")
    attachments = relationship("FileAttachment", back_populates="property", cascade="all, delete-orphan")

    __table_args__ = (
        Index('ix_properties_agent', 'agent_id'),
        Index('ix_properties_status', 'status'),
        Index('ix_properties_type', 'property_type'),
        Index('ix_properties_city', 'address_city'),
        Index('ix_properties_price', 'price'),
        Index('ix_properties_created_at', 'created_at'),
    )

    @property
    def has_expose(self):
        return bool(self.expose_file_name)

    @property
    def formatted_address(self):
        street = ' '.join(p for p in [self.address_street, self.address_house_number] if p)
        city_line = ' '.join(p for p in [self.address_postal_code, self.address_city] if p)
        parts = [p for p in [street, city_line] if p]
        return ', '.join(parts) if parts else None

    def to_dict(self, include_images=False):
        data = {
            'id': self.id,
            'agent_id': self.agent_id,
            'title': self.title,
            'description': self.description,
            'property_type': self.property_type,
            'listing_type': self.listing_type,
            'status': self.status,
            'address_street': self.address_street,
            'address_house_number': self.address_house_number,
            'address_city': self.address_city,
            'address_postal_code': self.address_postal_code,
            'address_state': self.address_state,
            'address_country': self.address_country,
            'address_district': self.address_district,
            'formatted_address': self.formatted_address,
            'living_area_sqm': _num(self.living_area_sqm),
            'total_area_sqm': _num(self.total_area_sqm),
            'plot_area_sqm': _num(self.plot_area_sqm),
            'rooms': _num(self.rooms),
            'bedrooms': self.bedrooms,
            'bathrooms': self.bathrooms,
            'floors': self.floors,
            'floor_number': self.floor_number,
            'construction_year': self.construction_year,
            'last_renovation_year': self.last_renovation_year,
            'price': _num(self.price),
            'price_per_sqm': _num(self.price_per_sqm),
            'additional_costs': _num(self.additional_costs),
            'heating_costs': _num(self.heating_costs),
            'commission': self.commission,
            'has_elevator': self.has_elevator,
            'has_balcony': self.has_balcony,
            'has_terrace': self.has_terrace,
            'has_garden': self.has_garden,
            'has_garage': self.has_garage,
            'has_parking': self.has_parking,
            'has_basement': self.has_basement,
            'has_attic': self.has_attic,
            'is_barrier_free': self.is_barrier_free,
            'pets_allowed': self.pets_allowed,
            'furnished': self.furnished,
            'energy_efficiency_class': self.energy_efficiency_class,
            'energy_consumption_kwh': _num(self.energy_consumption_kwh),
            'heating_type': self.heating_type,
            'available_from': _iso(self.available_from),
            'contact_phone': self.contact_phone,
            'contact_email': self.contact_email,
            'virtual_tour_url': self.virtual_tour_url,
            'notes': self.notes,
            'data_processing_consent': self.data_processing_consent,
            'consent_date': _iso(self.consent_date),
            'has_expose': self.has_expose,
            'expose_file_name': self.expose_file_name,
            'expose_file_size': self.expose_file_size,
            'expose_uploaded_at': _iso(self.expose_uploaded_at),
            'image_count': len(self.images),
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }
        if include_images:
            data['images'] = [img.to_dict() for img in self.images]
        return data


class PropertyImage(TimestampMixin, Base):
    """Base64 image with a generated thumbnail. One primary image per property."""
    __tablename__ = 'property_images'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    property_id = Column(String(36), ForeignKey('properties.id', ondelete='CASCADE'), nullable=False)
    filename = Column(String(255), nullable=False)
    original_filename = Column(String(255))
    content_type = Column(String(100))
    file_size = Column(BigInteger)
    width = Column(Integer)
    height = Column(Integer)
    title = Column(String(255))
    description = Column(Text)
    alt_text = Column(String(255))
    is_primary = Column(Boolean, nullable=False, default=False)
    sort_order = Column(Integer, nullable=False, default=0)
    image_type = Column(String(30), nullable=False, default='GENERAL')
    image_data = Column(Text)
    thumbnail_data = Column(Text)

    property = relationship("Property", back_populates="images")

    __table_args__ = (
        Index('ix_property_images_property', 'property_id'),
        Index('uq_property_images_primary', 'property_id', unique=True,
              postgresql_where=text('is_primary'),
              sqlite_where=text('is_primary = 1')),
    )

    def to_dict(self, include_data=False):
        data = {
            'id': self.id,
            'property_id': self.property_id,
            'filename': self.filename,
            'original_filename': self.original_filename,
            'content_type': self.content_type,
            'file_size': self.file_size,
            'width': self.width,
            'height': self.height,
            'title': self.title,
            'description': self.description,
            'alt_text': self.alt_text,
            'is_primary': self.is_primary,
            'sort_order': self.sort_order,
            'image_type': self.image_type,
            'thumbnail_data': self.thumbnail_data,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }
        if include_data:
            data['image_data'] = self.image_data
        return data


# =============================================================================
# CALL NOTES
# =============================================================================

class CallNote(TimestampMixin, Base):
    """A logged interaction with a client, optionally about a property."""
    __tablename__ = 'call_notes'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    agent_id = Column(String(36), ForeignKey('agents.id', ondelete='CASCADE'), nullable=False)
    client_id = Column(String(36), ForeignKey('clients.id', ondelete='CASCADE'), nullable=False)
    property_id = Column(String(36), ForeignKey('properties.id', ondelete='SET NULL'))
    call_date = Column(DateTime, nullable=False)
    duration_minutes = Column(Integer)
    call_type = Column(String(20), nullable=False)
    subject = Column(String(200), nullable=False)
    notes = Column(Text, nullable=False)
    follow_up_required = Column(Boolean, nullable=False, default=False)
    follow_up_date = Column(Date)
    properties_discussed = Column(Text)
    outcome = Column(String(20))

    agent = relationship("Agent")
    client = relationship("Client", back_populates="call_notes")
    property = relationship("Property", passive_deletes=True)

    __table_args__ = (
        Index('ix_call_notes_agent', 'agent_id'),
        Index('ix_call_notes_client', 'client_id'),
        Index('ix_call_notes_call_date', 'call_date'),
        Index('ix_call_notes_follow_up', 'follow_up_required', 'follow_up_date'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'agent_id': self.agent_id,
            'agent_name': self.agent.full_name if self.agent else None,
            'client_id': self.client_id,
            'client_name': self.client.full_name if self.client else None,
            'property_id': self.property_id,
            'property_title': self.property.title if self.property else None,
            'call_date': _iso(self.call_date),
            'duration_minutes': self.duration_minutes,
            'call_type': self.call_type,
            'subject': self.subject,
            'notes': self.notes,
            'follow_up_required': self.follow_up_required,
            'follow_up_date': _iso(self.follow_up_date),
            'properties_discussed': self.properties_discussed,
            'outcome': self.outcome,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }

    def to_summary(self, preview_length=100):
        notes = self.notes or ''
        preview = notes if len(notes) <= preview_length else notes[:preview_length] + '...'
        return {
            'id': self.id,
            'client_id': self.client_id,
            'client_name': self.client.full_name if self.client else None,
            'call_date': _iso(self.call_date),
            'call_type': self.call_type,
            'subject': self.subject,
            'notes_summary': preview,
            'follow_up_required': self.follow_up_required,
            'follow_up_date': _iso(self.follow_up_date),
            'outcome': self.outcome,
            'created_at': _iso(self.created_at)
        }


# =============================================================================
# FILE ATTACHMENTS
# =============================================================================

class FileAttachment(TimestampMixin, Base):
    """A document attached to exactly one property or one client."""
    __tablename__ = 'file_attachments'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    agent_id = Column(String(36), ForeignKey('agents.id', ondelete='CASCADE'), nullable=False)
    property_id = Column(String(36), ForeignKey('properties.id', ondelete='CASCADE'))
    client_id = Column(String(36), ForeignKey('clients.id', ondelete='CASCADE'))
    file_name = Column(String(255), nullable=False)
    original_file_name = Column(String(255), nullable=False)
    file_data = Column(Text, nullable=False)
    file_size = Column(BigInteger, nullable=False)
    mime_type = Column(String(100), nullable=False)
    file_type = Column(String(30), nullable=False)
    description = Column(Text)
    upload_date = Column(DateTime, nullable=False, default=datetime.utcnow)

    # Defined before the `property` relationship, which shadows the builtin
    @property
    def file_extension(self):
        name = self.original_file_name or self.file_name or ''
        return name.rsplit('.', 1)[1].lower() if '.' in name else ''

    property = relationship("Property", back_populates="attachments")
    client = relationship("Client", back_populates="attachments")

    __table_args__ = (
        CheckConstraint(
            '(property_id IS NOT NULL AND client_id IS NULL) OR '
            '(property_id IS NULL AND client_id IS NOT NULL)',
            name='ck_file_attachments_single_owner'
        ),
        CheckConstraint('file_size > 0', name='ck_file_attachments_size'),
        Index('ix_file_attachments_agent', 'agent_id'),
        Index('ix_file_attachments_property', 'property_id'),
        Index('ix_file_attachments_client', 'client_id'),
    )

    def to_dict(self, include_data=False):
        from services.file_storage import format_file_size

        mime = self.mime_type or ''
        data = {
            'id': self.id,
            'agent_id': self.agent_id,
            'property_id': self.property_id,
            'client_id': self.client_id,
            'file_name': self.file_name,
            'original_file_name': self.original_file_name,
            'file_size': self.file_size,
            'formatted_file_size': format_file_size(self.file_size),
            'mime_type': self.mime_type,
            'file_type': self.file_type,
            'description': self.description,
            'upload_date': _iso(self.upload_date),
            'file_extension': self.file_extension,
            'is_pdf': mime == 'application/pdf',
            'is_image': mime.startswith('image/'),
            'is_document': mime in ('application/msword',
                                    'application/vnd.openxmlformats-officedocument.wordprocessingml.document'),
            'download_url': f"/api/v1/attachments/{self.id}/download",
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }
        if include_data:
            data['file_data'] = self.file_data
            data['data_url'] = f"data:{mime};base64,{self.file_data}"
        return data


# =============================================================================
# PASSWORD RESET
# =============================================================================

class PasswordResetToken(Base):
    """Only the SHA-256 hash of the emailed token is stored."""
    __tablename__ = 'password_reset_tokens'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    agent_id = Column(String(36), ForeignKey('agents.id', ondelete='CASCADE'), nullable=False)
    token_hash = Column(String(64), unique=True, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    used = Column(Boolean, nullable=False, default=False)
    used_at = Column(DateTime)
    ip_address = Column(String(45))
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    agent = relationship("Agent")

    __table_args__ = (
        Index('ix_password_reset_tokens_agent', 'agent_id'),
        Index('ix_password_reset_tokens_expires', 'expires_at'),
    )

    def is_expired(self, now=None):
        return (now or datetime.utcnow()) > self.expires_at


# =============================================================================
# GDPR AUDIT
# =============================================================================

class GdprExportAuditLog(Base):
    """Append-only record of every GDPR export attempt."""
    __tablename__ = 'gdpr_export_audit_logs'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    agent_id = Column(String(36), ForeignKey('agents.id', ondelete='CASCADE'), nullable=False)
    export_type = Column(String(20), nullable=False)
    export_format = Column(String(10), nullable=False)
    export_timestamp = Column(DateTime, nullable=False, default=datetime.utcnow)
    ip_address = Column(String(45))
    user_agent = Column(String(500))
    records_exported = Column(Integer)
    export_size_bytes = Column(BigInteger)
    success = Column(Boolean, nullable=False, default=True)
    error_message = Column(Text)
    processing_time_ms = Column(BigInteger)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index('ix_gdpr_audit_agent', 'agent_id'),
        Index('ix_gdpr_audit_timestamp', 'export_timestamp'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'agent_id': self.agent_id,
            'export_type': self.export_type,
            'export_format': self.export_format,
            'export_timestamp': _iso(self.export_timestamp),
            'ip_address': self.ip_address,
            'user_agent': self.user_agent,
            'records_exported': self.records_exported,
            'export_size_bytes': self.export_size_bytes,
            'success': self.success,
            'error_message': self.error_message,
            'processing_time_ms': self.processing_time_ms
        }
