"""
Tests for demo data seeding
"""
import pytest

from database.models import Agent, CallNote, Client, Property
from database.seed import ADMIN_EMAIL, DEMO_AGENT_EMAIL, DEMO_CALL_NOTES, seed_database


@pytest.mark.integration
class TestSeedDatabase:
    """Tests for seed_database"""

    def test_seeds_demo_portfolio(self, db_session):
        assert seed_database() is True

        demo = db_session.query(Agent).filter_by(email=DEMO_AGENT_EMAIL).one()
        assert db_session.query(Agent).filter_by(email=ADMIN_EMAIL).count() == 1
        assert db_session.query(Client).filter_by(agent_id=demo.id).count() == 1
        assert db_session.query(Property).filter_by(agent_id=demo.id).count() == 1
        assert db_session.query(CallNote).filter_by(agent_id=demo.id).count() == len(DEMO_CALL_NOTES)

    def test_second_run_adds_nothing(self, db_session):
        seed_database()
        seed_database()

        assert db_session.query(Agent).count() == 2
        assert db_session.query(Client).count() == 1
        assert db_session.query(CallNote).count() == len(DEMO_CALL_NOTES)

    def test_demo_agent_can_log_in(self, client):
        from database.seed import DEMO_AGENT_PASSWORD

        seed_database()
        response = client.post('/api/v1/auth/login', json={
            'email': DEMO_AGENT_EMAIL, 'password': DEMO_AGENT_PASSWORD
        })
        assert response.status_code == 200
