"""
Demo data seeding for the MarklerApp CRM.
Creates an admin agent, a demo agent with one client (Peter Müller), a
Munich apartment and a series of call notes showing growing purchase interest.
Runs only when SEED_DEMO_DATA is enabled and the demo agent does not exist yet.
"""

import logging
from datetime import datetime, timedelta, date
from decimal import Decimal
from werkzeug.security import generate_password_hash
from database.connection import get_db_session
from database.models import Agent, Client, PropertySearchCriteria, Property, CallNote

logger = logging.getLogger(__name__)

ADMIN_EMAIL = "admin@marklerapp.com"
ADMIN_PASSWORD = "AdminPass123!"
DEMO_AGENT_EMAIL = "max.mustermann@realestate.de"
DEMO_AGENT_PASSWORD = "Test1234!"

PROPERTY_ADDRESS = 'Leopoldstraße 123, München-Schwabing'

# (days ago, follow-up offset in days, duration, call type, outcome, about property, subject, notes)
DEMO_CALL_NOTES = [
    (14, -12, 25, 'PHONE_INBOUND', 'INTERESTED', False,
     'Erstkontakt - Wohnungssuche München',
     'Herr Müller meldet sich auf unsere Anzeige. Er sucht eine Wohnung in München für seine '
     'Familie (Frau und 2 Kinder). Budget: 350.000 - 550.000 Euro. Wichtig sind ihm: 3-4 Zimmer, '
     'Balkon, gute Verkehrsanbindung und Nähe zu Schulen. Er bevorzugt die Stadtteile Schwabing '
     'oder Giesing.'),
    (12, -9, 35, 'PHONE_OUTBOUND', 'SCHEDULED_VIEWING', True,
     'Vorstellung 4-Zimmer Wohnung Schwabing',
     'Ich habe Herrn Müller die 4-Zimmer Wohnung in der Leopoldstraße vorgestellt. Lage, Größe '
     'und Preis passen. Der Südbalkon gefällt ihm besonders gut. Besichtigung mit seiner Frau '
     'für übernächsten Samstag, 10:00 Uhr vereinbart.'),
    (9, -6, 90, 'MEETING', 'INTERESTED', True,
     'Besichtigung 4-Zimmer Wohnung',
     'Besichtigung mit Herrn Müller und seiner Frau durchgeführt. Beide sehr angetan vom hellen '
     'Schnitt, dem renovierten Bad und der Küche. Sie möchten die Finanzierung mit ihrer Bank '
     'besprechen. Telefonat in 3 Tagen vereinbart.'),
    (6, -4, 30, 'PHONE_INBOUND', 'OFFER_MADE', True,
     'Finanzierungszusage erhalten',
     'Die Bank hat die Finanzierung über 485.000 Euro genehmigt. Familie Müller bietet den vollen '
     'Kaufpreis. Ich lege das Angebot dem Verkäufer vor und melde mich innerhalb von 48 Stunden.'),
    (4, 2, 20, 'PHONE_OUTBOUND', 'DEAL_CLOSED', True,
     'Kaufangebot angenommen',
     'Verkäufer hat das Angebot von 485.000 Euro akzeptiert. Notartermin wird koordiniert '
     '(voraussichtlich in 3-4 Wochen), alle Unterlagen werden vorbereitet.'),
]


def _hash(password):
    return generate_password_hash(password, method='pbkdf2:sha256')


def seed_admin_agent(session):
    """Create the admin agent if none exists."""
    admin = session.query(Agent).filter_by(email=ADMIN_EMAIL).first()
    if admin:
        logger.info(f"Admin agent already exists: {admin.email}")
        return admin

    admin = Agent(
        email=ADMIN_EMAIL,
        first_name="Admin",
        last_name="User",
        phone="+49 89 00000000",
        language_preference='EN',
        password_hash=_hash(ADMIN_PASSWORD),
        is_active=True
    )
    session.add(admin)
    session.flush()
    logger.info(f"Created admin agent: {admin.email}")
    return admin


def seed_demo_agent(session):
    agent = session.query(Agent).filter_by(email=DEMO_AGENT_EMAIL).first()
    if agent:
        logger.info(f"Demo agent already exists: {agent.email}")
        return agent, False

    agent = Agent(
        email=DEMO_AGENT_EMAIL,
        first_name="Max",
        last_name="Mustermann",
        phone="+49 89 12345678",
        language_preference='DE',
        password_hash=_hash(DEMO_AGENT_PASSWORD),
        is_active=True
    )
    session.add(agent)
    session.flush()
    logger.info(f"Created demo agent: {agent.email}")
    return agent, True


def seed_demo_portfolio(session, agent):
    """Client Peter Müller with criteria, one property and five call notes."""
    now = datetime.utcnow()
    today = now.date()

    client = Client(
        agent_id=agent.id,
        first_name='Peter',
        last_name='Müller',
        email='peter.mueller@email.de',
        phone='+49 89 98765432',
        address_street='Musterstraße 42',
        address_city='München',
        address_postal_code='80331',
        address_country='Germany',
        gdpr_consent_given=True,
        gdpr_consent_date=now
    )
    client.search_criteria = PropertySearchCriteria(
        min_budget=Decimal('350000'),
        max_budget=Decimal('550000'),
        min_square_meters=90,
        max_square_meters=150,
        min_rooms=3,
        max_rooms=5,
        preferred_locations='München, München-Schwabing, München-Giesing',
        property_types='APARTMENT, HOUSE',
        additional_requirements='Balkon, moderne Ausstattung, gute Verkehrsanbindung, Nähe zu Schulen'
    )
    session.add(client)

    prop = Property(
        agent_id=agent.id,
        title='Moderne 4-Zimmer Wohnung in München-Schwabing',
        description=(
            'Helle und geräumige 4-Zimmer Wohnung in begehrter Lage von München-Schwabing. '
            'Die Wohnung wurde 2018 vollständig renoviert und verfügt über einen großzügigen '
            'Südbalkon. Schulen und Kindergärten in unmittelbarer Nähe, U-Bahn in 5 Minuten zu Fuß.'
        ),
        property_type='APARTMENT',
        listing_type='SALE',
        status='AVAILABLE',
        price=Decimal('485000.00'),
        living_area_sqm=Decimal('115.50'),
        price_per_sqm=(Decimal('485000.00') / Decimal('115.50')).quantize(Decimal('0.01')),
        rooms=Decimal('4'),
        bedrooms=3,
        bathrooms=1,
        floor_number=3,
        floors=5,
        construction_year=1975,
        available_from=date(2025, 2, 1),
        address_street='Leopoldstraße',
        address_house_number='123',
        address_city='München',
        address_postal_code='80802',
        address_country='Germany',
        heating_type='GAS',
        energy_efficiency_class='B',
        has_balcony=True,
        has_garden=False,
        has_elevator=True,
        has_basement=True,
        data_processing_consent=True,
        consent_date=now
    )
    session.add(prop)
    session.flush()

    for days_ago, follow_up_offset, duration, call_type, outcome, about_property, subject, notes in DEMO_CALL_NOTES:
        call_date = now - timedelta(days=days_ago)
        session.add(CallNote(
            agent_id=agent.id,
            client_id=client.id,
            property_id=prop.id if about_property else None,
            call_date=call_date,
            duration_minutes=duration,
            call_type=call_type,
            subject=subject,
            notes=notes,
            follow_up_required=True,
            follow_up_date=today + timedelta(days=follow_up_offset),
            properties_discussed=PROPERTY_ADDRESS if about_property else None,
            outcome=outcome,
            created_at=call_date,
            updated_at=call_date
        ))
    session.flush()
    logger.info(f"Seeded demo client {client.id} and property {prop.id} with {len(DEMO_CALL_NOTES)} call notes")
    return client, prop


def seed_database():
    """
    Seed the database with demo data if empty.
    Call this at application startup.
    """
    try:
        with get_db_session() as session:
            seed_admin_agent(session)
            agent, created = seed_demo_agent(session)
            if created:
                seed_demo_portfolio(session, agent)
        logger.info("Database seeding completed successfully")
        return True
    except Exception as e:
        logger.error(f"Database seeding failed: {e}")
        raise


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    seed_database()
