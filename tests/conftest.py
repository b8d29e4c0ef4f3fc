"""
Pytest configuration and shared fixtures
"""
import io
import sys
from datetime import datetime, timedelta

import pytest
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

TEST_PASSWORD = 'Secret123'


# ============================================================================
# APPLICATION & DATABASE
# ============================================================================

@pytest.fixture
def app():
    """Flask app on a fresh in-memory SQLite database"""
    from app_init import create_app
    from database.connection import drop_db

    application = create_app('testing')
    yield application
    drop_db()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db_session(app):
    """
    Session on the test database. Tests commit what they create: every
    session shares the single in-memory connection.
    """
    from database.connection import get_session_factory

    session = get_session_factory()()
    yield session
    session.close()


def make_agent(session, email, first_name='Max', last_name='Mustermann', language='DE'):
    from auth import hash_password
    from database.models import Agent

    agent = Agent(
        email=email,
        first_name=first_name,
        last_name=last_name,
        language_preference=language,
        password_hash=hash_password(TEST_PASSWORD),
        is_active=True
    )
    session.add(agent)
    session.commit()
    return agent


@pytest.fixture
def agent(db_session):
    return make_agent(db_session, 'max.mustermann@realestate.de')


@pytest.fixture
def other_agent(db_session):
    return make_agent(db_session, 'erika.musterfrau@realestate.de', 'Erika', 'Musterfrau', 'EN')


def _headers(app, agent):
    from auth import create_access_token

    with app.app_context():
        token = create_access_token(agent.id, agent.email)
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def auth_headers(app, agent):
    return _headers(app, agent)


@pytest.fixture
def other_auth_headers(app, other_agent):
    return _headers(app, other_agent)


# ============================================================================
# SAMPLE RECORDS
# ============================================================================

@pytest.fixture
def sample_client_data():
    return {
        'first_name': 'Peter',
        'last_name': 'Müller',
        'email': 'peter.mueller@example.de',
        'phone': '+49 89 1234567',
        'address_city': 'München',
        'address_postal_code': '80331',
        'gdpr_consent_given': True,
        'search_criteria': {
            'min_square_meters': 80,
            'max_square_meters': 120,
            'min_rooms': 3,
            'max_rooms': 4,
            'min_budget': 400000,
            'max_budget': 500000,
            'preferred_locations': ['München'],
            'property_types': ['APARTMENT']
        }
    }


@pytest.fixture
def sample_property_data():
    return {
        'title': 'Helle 3-Zimmer-Wohnung in Schwabing',
        'description': 'Renovierte Altbauwohnung mit Balkon',
        'property_type': 'APARTMENT',
        'listing_type': 'SALE',
        'status': 'AVAILABLE',
        'address_street': 'Leopoldstraße',
        'address_house_number': '42',
        'address_city': 'München',
        'address_postal_code': '80802',
        'living_area_sqm': 95,
        'rooms': 3,
        'price': 450000,
        'has_balcony': True
    }


@pytest.fixture
def owned_client(db_session, agent, sample_client_data):
    """A client (with search criteria) belonging to `agent`"""
    from services.clients_repository import ClientsRepository

    data = ClientsRepository(db_session, agent.id).create_client(sample_client_data)
    db_session.commit()
    return data


@pytest.fixture
def owned_property(db_session, agent, sample_property_data):
    """A property belonging to `agent`"""
    from services.properties_repository import PropertiesRepository

    data = PropertiesRepository(db_session, agent.id).create_property(sample_property_data)
    db_session.commit()
    return data


@pytest.fixture
def call_note_data(owned_client):
    return {
        'client_id': owned_client['id'],
        'call_date': (datetime.utcnow() - timedelta(days=1)).isoformat(),
        'duration_minutes': 15,
        'call_type': 'PHONE_OUTBOUND',
        'subject': 'Erstgespräch',
        'notes': 'Kunde sucht eine 3-Zimmer-Wohnung in München.',
        'outcome': 'INTERESTED'
    }


def make_image_bytes(fmt='PNG', size=(640, 480), color=(200, 30, 30)):
    from PIL import Image

    buffer = io.BytesIO()
    Image.new('RGB', size, color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def png_bytes():
    return make_image_bytes()


@pytest.fixture
def pdf_bytes():
    return b'%PDF-1.4\n1 0 obj << /Type /Catalog >> endobj\ntrailer << >>\n%%EOF\n'
