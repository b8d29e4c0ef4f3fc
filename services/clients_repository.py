"""
Clients Repository - Database access layer for clients and their search criteria.
Every query is scoped to the owning agent.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from constants import DEFAULT_ADDRESS_COUNTRY, DUPLICATE_CLIENT_EMAIL_MESSAGE
from database.models import Client, PropertySearchCriteria, join_list
from exceptions import DuplicateError
from services.ownership import get_owned
from services.pagination import apply_sort, paginate, parse_sort
from validators import validate_client_data, parse_decimal, parse_int, parse_bool, sanitize_string

logger = logging.getLogger(__name__)


class ClientsRepository:
    """Repository for client CRUD, search and per-client GDPR views."""

    SORT_FIELDS = ('created_at', 'updated_at', 'first_name', 'last_name', 'email', 'address_city')
    TEXT_FIELDS = ('first_name', 'last_name', 'phone', 'address_street', 'address_city',
                   'address_postal_code', 'address_country')

    def __init__(self, session: Session, agent_id: str):
        self.session = session
        self.agent_id = agent_id

    def _base_query(self):
        return self.session.query(Client).filter(Client.agent_id == self.agent_id)

    def _get(self, client_id: str) -> Client:
        return get_owned(self.session, Client, client_id, self.agent_id, 'Client')

    def _check_duplicate_email(self, email: Optional[str], exclude_id: str = None):
        if not email:
            return
        query = self._base_query().filter(func.lower(Client.email) == email.lower())
        if exclude_id:
            query = query.filter(Client.id != exclude_id)
        if query.first():
            raise DuplicateError(DUPLICATE_CLIENT_EMAIL_MESSAGE)

    def _apply_fields(self, client: Client, data: Dict):
        for field in self.TEXT_FIELDS:
            value = data.get(field)
            setattr(client, field, sanitize_string(value) if value else None)
        if not client.address_country:
            client.address_country = DEFAULT_ADDRESS_COUNTRY

        email = data.get('email')
        client.email = email.strip().lower() if email else None

        consent = parse_bool(data.get('gdpr_consent_given', False))
        if consent and not client.gdpr_consent_given:
            client.gdpr_consent_date = datetime.utcnow()
        elif not consent:
            client.gdpr_consent_date = None
        client.gdpr_consent_given = consent

    def _apply_criteria(self, client: Client, criteria_data: Optional[Dict]):
        if not criteria_data:
            client.search_criteria = None
            return

        criteria = client.search_criteria or PropertySearchCriteria()
        criteria.min_square_meters = parse_int(criteria_data.get('min_square_meters'), 'min_square_meters')
        criteria.max_square_meters = parse_int(criteria_data.get('max_square_meters'), 'max_square_meters')
        criteria.min_rooms = parse_int(criteria_data.get('min_rooms'), 'min_rooms')
        criteria.max_rooms = parse_int(criteria_data.get('max_rooms'), 'max_rooms')
        criteria.min_budget = parse_decimal(criteria_data.get('min_budget'), 'min_budget')
        criteria.max_budget = parse_decimal(criteria_data.get('max_budget'), 'max_budget')
        criteria.preferred_locations = join_list(criteria_data.get('preferred_locations'))
        types = criteria_data.get('property_types')
        criteria.property_types = join_list([str(t).upper() for t in types]) if isinstance(types, list) else join_list(types)
        criteria.additional_requirements = criteria_data.get('additional_requirements')
        client.search_criteria = criteria

    # =========================================================================
    # QUERIES
    # =========================================================================

    def list_clients(self, page: int = 1, size: int = 20, sort: str = None) -> Dict:
        field, direction = parse_sort(sort, self.SORT_FIELDS)
        query = apply_sort(self._base_query(), Client, field, direction)
        return paginate(query, page, size)

    def search_clients(self, q: str, page: int = 1, size: int = 20, sort: str = None) -> Dict:
        """Case-insensitive match on first name, last name and email."""
        field, direction = parse_sort(sort, self.SORT_FIELDS)
        query = self._base_query()
        term = (q or '').strip().lower()
        if term:
            pattern = f"%{term}%"
            query = query.filter(or_(
                func.lower(Client.first_name).like(pattern),
                func.lower(Client.last_name).like(pattern),
                func.lower(Client.email).like(pattern)
            ))
        return paginate(apply_sort(query, Client, field, direction), page, size)

    def get_client(self, client_id: str) -> Dict:
        return self._get(client_id).to_dict()

    def get_recent_clients(self, days: int = 30) -> List[Dict]:
        since = datetime.utcnow() - timedelta(days=days)
        clients = self._base_query().filter(Client.created_at >= since).order_by(
            Client.created_at.desc()
        ).all()
        return [c.to_dict() for c in clients]

    def get_client_stats(self) -> Dict:
        since = datetime.utcnow() - timedelta(days=30)
        base = self._base_query()
        return {
            'total_clients': base.count(),
            'clients_with_consent': base.filter(Client.gdpr_consent_given.is_(True)).count(),
            'clients_with_search_criteria': base.join(Client.search_criteria).count(),
            'new_clients_last_30_days': base.filter(Client.created_at >= since).count()
        }

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def create_client(self, data: Dict) -> Dict:
        """Create a new client with optional search criteria."""
        validate_client_data(data)
        self._check_duplicate_email(data.get('email'))

        client = Client(agent_id=self.agent_id)
        self._apply_fields(client, data)
        self._apply_criteria(client, data.get('search_criteria'))
        self.session.add(client)
        self.session.flush()

        logger.info(f"Created client: {client.id}")
        return client.to_dict()

    def update_client(self, client_id: str, data: Dict) -> Dict:
        """Full update; omitted optional fields are cleared."""
        client = self._get(client_id)
        validate_client_data(data)
        self._check_duplicate_email(data.get('email'), exclude_id=client.id)

        self._apply_fields(client, data)
        if 'search_criteria' in data:
            self._apply_criteria(client, data.get('search_criteria'))
        client.updated_at = datetime.utcnow()
        self.session.flush()

        logger.info(f"Updated client: {client_id}")
        return client.to_dict()

    def delete_client(self, client_id: str) -> bool:
        """Delete a client together with criteria, call notes and attachments."""
        client = self._get(client_id)
        self.session.delete(client)
        self.session.flush()
        logger.info(f"Deleted client: {client_id}")
        return True

    def export_client(self, client_id: str) -> Dict:
        """Single-client GDPR view."""
        client = self._get(client_id)
        data = client.to_dict(include_criteria=True)
        data['call_note_count'] = len(client.call_notes)
        data['attachment_count'] = len(client.attachments)
        data['exported_at'] = datetime.utcnow().isoformat()
        logger.info(f"Exported client data: {client_id}")
        return data
