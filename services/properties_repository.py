"""
Properties Repository - Database access layer for property listings and
their expose (PDF brochure).
"""

import logging
from datetime import datetime, timedelta, date
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from constants import PROPERTY_FEATURE_FLAGS, DEFAULT_ADDRESS_COUNTRY
from database.models import Property
from exceptions import NotFoundError
from services.file_storage import read_upload, validate_expose, encode_base64
from services.ownership import get_owned
from services.pagination import apply_sort, paginate, parse_sort
from validators import (
    validate_property_data, parse_decimal, parse_int, parse_bool, parse_date, sanitize_string,
)

logger = logging.getLogger(__name__)


class PropertiesRepository:
    """Repository for property CRUD, search, statistics and expose storage."""

    SORT_FIELDS = ('created_at', 'updated_at', 'price', 'living_area_sqm', 'rooms',
                   'title', 'address_city', 'status')

    STRING_FIELDS = (
        'title', 'description',
        'address_street', 'address_house_number', 'address_city', 'address_postal_code',
        'address_state', 'address_country', 'address_district',
        'commission', 'contact_phone', 'contact_email', 'virtual_tour_url', 'notes',
    )
    ENUM_FIELDS = ('property_type', 'listing_type', 'status', 'heating_type', 'energy_efficiency_class')
    DECIMAL_FIELDS = (
        'living_area_sqm', 'total_area_sqm', 'plot_area_sqm', 'rooms',
        'price', 'additional_costs', 'heating_costs', 'energy_consumption_kwh',
    )
    INT_FIELDS = ('bedrooms', 'bathrooms', 'floors', 'floor_number',
                  'construction_year', 'last_renovation_year')
    BOOL_FIELDS = PROPERTY_FEATURE_FLAGS + ('data_processing_consent',)

    def __init__(self, session: Session, agent_id: str):
        self.session = session
        self.agent_id = agent_id

    def _base_query(self):
        return self.session.query(Property).filter(Property.agent_id == self.agent_id)

    def _get(self, property_id: str) -> Property:
        return get_owned(self.session, Property, property_id, self.agent_id, 'Property')

    def _apply(self, prop: Property, data: Dict, partial: bool = False):
        """Copy payload fields onto the model; a full update resets omitted fields."""
        def wanted(field):
            return field in data or not partial

        for field in self.STRING_FIELDS:
            if wanted(field):
                value = data.get(field)
                setattr(prop, field, sanitize_string(value, 5000) if value not in (None, '') else None)
        for field in self.ENUM_FIELDS:
            if wanted(field):
                value = data.get(field)
                setattr(prop, field, value.upper() if value else None)
        for field in self.DECIMAL_FIELDS:
            if wanted(field):
                setattr(prop, field, parse_decimal(data.get(field), field))
        for field in self.INT_FIELDS:
            if wanted(field):
                setattr(prop, field, parse_int(data.get(field), field))
        for field in self.BOOL_FIELDS:
            if field == 'data_processing_consent':
                continue
            if wanted(field):
                setattr(prop, field, parse_bool(data.get(field, False)))
        if wanted('available_from'):
            prop.available_from = parse_date(data.get('available_from'), 'available_from')

        if wanted('data_processing_consent'):
            consent = parse_bool(data.get('data_processing_consent', False))
            if consent and not prop.data_processing_consent:
                prop.consent_date = datetime.utcnow()
            elif not consent:
                prop.consent_date = None
            prop.data_processing_consent = consent

        if not prop.status:
            prop.status = 'AVAILABLE'
        if not prop.address_country:
            prop.address_country = DEFAULT_ADDRESS_COUNTRY
        prop.price_per_sqm = self._price_per_sqm(prop.price, prop.living_area_sqm)

    @staticmethod
    def _price_per_sqm(price, area) -> Optional[Decimal]:
        if price is None or not area:
            return None
        return (Decimal(price) / Decimal(area)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)

    # =========================================================================
    # CRUD
    # =========================================================================

    def create_property(self, data: Dict) -> Dict:
        validate_property_data(data)
        prop = Property(agent_id=self.agent_id)
        self._apply(prop, data)
        self.session.add(prop)
        self.session.flush()
        logger.info(f"Created property: {prop.id}")
        return prop.to_dict(include_images=True)

    def get_property(self, property_id: str) -> Dict:
        return self._get(property_id).to_dict(include_images=True)

    def update_property(self, property_id: str, data: Dict) -> Dict:
        """Full replacement of the editable fields."""
        prop = self._get(property_id)
        validate_property_data(data)
        self._apply(prop, data)
        prop.updated_at = datetime.utcnow()
        self.session.flush()
        logger.info(f"Updated property: {property_id}")
        return prop.to_dict(include_images=True)

    def patch_property(self, property_id: str, data: Dict) -> Dict:
        """Partial update; only the keys present in `data` change."""
        prop = self._get(property_id)
        validate_property_data(data, partial=True)
        self._apply(prop, data, partial=True)
        prop.updated_at = datetime.utcnow()
        self.session.flush()
        logger.info(f"Patched property: {property_id} ({', '.join(sorted(data.keys()))})")
        return prop.to_dict(include_images=True)

    def delete_property(self, property_id: str) -> bool:
        prop = self._get(property_id)
        self.session.delete(prop)
        self.session.flush()
        logger.info(f"Deleted property: {property_id}")
        return True

    # =========================================================================
    # LISTING & SEARCH
    # =========================================================================

    def list_properties(self, page: int = 1, size: int = 20, sort: str = None) -> Dict:
        field, direction = parse_sort(sort, self.SORT_FIELDS)
        return paginate(apply_sort(self._base_query(), Property, field, direction), page, size)

    def search_properties(self, filters: Dict, page: int = 1, size: int = 20, sort: str = None) -> Dict:
        """
        Structured search.

        Args:
            filters: any of status, property_type, listing_type, city,
                min_price, max_price, min_area, max_area, min_rooms, max_rooms
        """
        field, direction = parse_sort(sort, self.SORT_FIELDS)
        query = self._base_query()

        for key, column in (('status', Property.status),
                            ('property_type', Property.property_type),
                            ('listing_type', Property.listing_type)):
            if filters.get(key):
                query = query.filter(column == str(filters[key]).upper())

        if filters.get('city'):
            query = query.filter(func.lower(Property.address_city).like(f"%{filters['city'].lower()}%"))

        ranges = (
            ('min_price', 'max_price', Property.price),
            ('min_area', 'max_area', Property.living_area_sqm),
            ('min_rooms', 'max_rooms', Property.rooms),
        )
        for low_key, high_key, column in ranges:
            low = parse_decimal(filters.get(low_key), low_key)
            high = parse_decimal(filters.get(high_key), high_key)
            if low is not None:
                query = query.filter(column >= low)
            if high is not None:
                query = query.filter(column <= high)

        return paginate(apply_sort(query, Property, field, direction), page, size)

    def filter_properties(self, q: str, page: int = 1, size: int = 20, sort: str = None) -> Dict:
        """Free-text match on title, description, city and postal code."""
        field, direction = parse_sort(sort, self.SORT_FIELDS)
        query = self._base_query()
        term = (q or '').strip().lower()
        if term:
            pattern = f"%{term}%"
            query = query.filter(or_(
                func.lower(Property.title).like(pattern),
                func.lower(Property.description).like(pattern),
                func.lower(Property.address_city).like(pattern),
                Property.address_postal_code.like(pattern)
            ))
        return paginate(apply_sort(query, Property, field, direction), page, size)

    def get_property_stats(self) -> Dict:
        by_status = dict(
            self._base_query().with_entities(Property.status, func.count(Property.id))
            .group_by(Property.status).all()
        )
        by_type = dict(
            self._base_query().with_entities(Property.property_type, func.count(Property.id))
            .group_by(Property.property_type).all()
        )
        average_price = self._base_query().with_entities(func.avg(Property.price)).scalar()
        return {
            'total_properties': sum(by_status.values()),
            'by_status': by_status,
            'by_type': by_type,
            'average_price': round(float(average_price), 2) if average_price is not None else None,
            'available_properties': by_status.get('AVAILABLE', 0)
        }

    def get_recent_properties(self, days: int = 30) -> List[Dict]:
        since = datetime.utcnow() - timedelta(days=days)
        props = self._base_query().filter(Property.created_at >= since).order_by(
            Property.created_at.desc()
        ).all()
        return [p.to_dict() for p in props]

    def get_available_properties(self, available_from: Optional[date] = None) -> List[Dict]:
        """AVAILABLE properties that can be moved into by the given date."""
        cutoff = available_from or date.today()
        props = self._base_query().filter(
            Property.status == 'AVAILABLE',
            or_(Property.available_from.is_(None), Property.available_from <= cutoff)
        ).order_by(Property.created_at.desc()).all()
        return [p.to_dict() for p in props]

    # =========================================================================
    # EXPOSE
    # =========================================================================

    def upload_expose(self, property_id: str, file_storage) -> Dict:
        """Store a PDF brochure (max 50MB), replacing any previous one."""
        prop = self._get(property_id)
        data, filename, content_type = read_upload(file_storage)
        validate_expose(data, content_type)

        prop.expose_file_name = sanitize_string(filename, 255)
        prop.expose_file_data = encode_base64(data)
        prop.expose_file_size = len(data)
        prop.expose_uploaded_at = datetime.utcnow()
        self.session.flush()

        logger.info(f"Uploaded expose for property {property_id} ({len(data)} bytes)")
        return prop.to_dict()

    def download_expose(self, property_id: str) -> Dict:
        prop = self._get(property_id)
        if not prop.has_expose:
            raise NotFoundError('Expose for property', property_id)
        return {
            'file_name': prop.expose_file_name,
            'file_size': prop.expose_file_size,
            'file_data': prop.expose_file_data,
            'content_type': 'application/pdf',
            'uploaded_at': prop.expose_uploaded_at.isoformat() if prop.expose_uploaded_at else None
        }

    def delete_expose(self, property_id: str) -> bool:
        prop = self._get(property_id)
        if not prop.has_expose:
            raise NotFoundError('Expose for property', property_id)
        prop.expose_file_name = None
        prop.expose_file_data = None
        prop.expose_file_size = None
        prop.expose_uploaded_at = None
        self.session.flush()
        logger.info(f"Deleted expose for property {property_id}")
        return True

    def has_expose(self, property_id: str) -> bool:
        return self._get(property_id).has_expose
