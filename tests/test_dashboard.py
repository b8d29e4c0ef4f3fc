"""
Tests for dashboard analytics
"""
import pytest
from datetime import datetime, timedelta

from database.models import CallNote
from services.dashboard_service import ALL_CAUGHT_UP, DashboardService


def add_note(session, agent_id, client_id, call_date, **overrides):
    values = {
        'agent_id': agent_id,
        'client_id': client_id,
        'call_date': call_date,
        'call_type': 'PHONE_OUTBOUND',
        'subject': 'Telefonat',
        'notes': 'Gesprächsnotiz',
    }
    values.update(overrides)
    note = CallNote(**values)
    session.add(note)
    session.commit()
    return note


@pytest.fixture
def second_client(db_session, agent, sample_client_data):
    from services.clients_repository import ClientsRepository

    sample_client_data.update(first_name='Anna', last_name='Schmidt', email='anna.schmidt@example.de')
    data = ClientsRepository(db_session, agent.id).create_client(sample_client_data)
    db_session.commit()
    return data


@pytest.mark.unit
class TestDashboardService:
    """Tests for DashboardService"""

    def test_empty_portfolio(self, db_session, agent):
        analytics = DashboardService(db_session, agent.id).generate_analytics()

        assert analytics['conversion_funnel']['total_clients'] == 0
        assert analytics['conversion_funnel']['overall_conversion_rate'] == 0.0
        assert analytics['pipeline_health']['average_days_since_last_contact'] == 0
        assert analytics['property_portfolio']['total_portfolio_value'] == 0.0
        assert analytics['clients_needing_attention'] == []
        assert analytics['suggested_actions'] == [ALL_CAUGHT_UP]

    def test_conversion_funnel_uses_latest_outcome(self, db_session, agent, owned_client, second_client):
        now = datetime.utcnow()
        add_note(db_session, agent.id, owned_client['id'], now - timedelta(days=2), outcome='INTERESTED')
        add_note(db_session, agent.id, second_client['id'], now - timedelta(days=5), outcome='INTERESTED')
        add_note(db_session, agent.id, second_client['id'], now - timedelta(days=1), outcome='SCHEDULED_VIEWING')

        funnel = DashboardService(db_session, agent.id).generate_analytics()['conversion_funnel']

        assert funnel['total_clients'] == 2
        assert funnel['interested_clients'] == 1
        assert funnel['scheduled_viewings'] == 1
        assert funnel['interested_rate'] == 50.0
        assert funnel['viewing_rate'] == 100.0
        assert funnel['offer_rate'] == 0.0
        assert funnel['closing_rate'] == 0.0

    def test_pipeline_follow_up_windows(self, db_session, agent, owned_client):
        now = datetime.utcnow()
        today = now.date()
        for offset in (-2, 3, 10):
            add_note(db_session, agent.id, owned_client['id'], now - timedelta(days=20),
                     follow_up_required=True, follow_up_date=today + timedelta(days=offset))

        pipeline = DashboardService(db_session, agent.id).generate_analytics(now)['pipeline_health']

        assert pipeline['overdue_follow_ups'] == 1
        assert pipeline['follow_ups_due_this_week'] == 1
        assert pipeline['follow_ups_due_next_week'] == 1

    def test_clients_without_recent_contact(self, db_session, agent, owned_client, second_client):
        """Test that a client with no calls and one last called 40 days ago both count"""
        now = datetime.utcnow()
        add_note(db_session, agent.id, owned_client['id'], now - timedelta(days=40))

        pipeline = DashboardService(db_session, agent.id).generate_analytics(now)['pipeline_health']

        assert pipeline['clients_without_recent_contact'] == 2
        assert pipeline['average_days_since_last_contact'] == 40

    def test_property_portfolio(self, db_session, agent, owned_property):
        portfolio = DashboardService(db_session, agent.id).generate_analytics()['property_portfolio']

        assert portfolio['total_properties'] == 1
        assert portfolio['properties_by_status'] == {'AVAILABLE': 1}
        assert portfolio['properties_by_type'] == {'APARTMENT': 1}
        assert portfolio['properties_with_images'] == 0
        assert portfolio['total_portfolio_value'] == 450000.0

    def test_activity_trends_compare_months(self, db_session, agent, owned_client):
        now = datetime.utcnow()
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        add_note(db_session, agent.id, owned_client['id'], month_start, outcome='DEAL_CLOSED')
        add_note(db_session, agent.id, owned_client['id'], month_start - timedelta(days=1))
        add_note(db_session, agent.id, owned_client['id'], month_start - timedelta(days=2))

        trends = DashboardService(db_session, agent.id).generate_analytics(now)['activity_trends']

        assert trends['call_notes_this_month'] == 1
        assert trends['call_notes_last_month'] == 2
        assert trends['call_notes_growth_percent'] == -50
        assert trends['deals_closed_this_month'] == 1
        assert trends['new_clients_this_month'] == 1

    def test_clients_needing_attention(self, db_session, agent, owned_client, second_client):
        now = datetime.utcnow()
        add_note(db_session, agent.id, owned_client['id'], now - timedelta(days=10), outcome='INTERESTED')
        add_note(db_session, agent.id, second_client['id'], now - timedelta(days=5),
                 follow_up_required=True, follow_up_date=now.date() - timedelta(days=2))

        insights = DashboardService(db_session, agent.id).generate_analytics(now)['clients_needing_attention']

        assert [i['urgency'] for i in insights] == ['HIGH', 'MEDIUM']
        assert insights[0]['client_id'] == second_client['id']
        assert insights[0]['reason'] == 'Follow-up overdue by 2 days'
        assert insights[1]['client_name'] == 'Peter Müller'
        assert insights[1]['reason'] == 'Interested client - no contact in 10 days'

    def test_suggested_actions(self, db_session, agent, owned_property):
        actions = DashboardService(db_session, agent.id).generate_analytics()['suggested_actions']

        assert actions == ['Add images to 1 properties', 'Upload exposés for 1 properties']

    def test_suggested_actions_capped(self):
        pipeline = {'overdue_follow_ups': 1, 'follow_ups_due_this_week': 2, 'clients_without_recent_contact': 9}
        portfolio = {'total_properties': 4, 'properties_with_images': 0, 'properties_with_expose': 0}

        actions = DashboardService.suggested_actions(pipeline, portfolio)

        assert len(actions) == 5
        assert actions[0] == 'Contact 1 clients with overdue follow-ups'


@pytest.mark.integration
class TestDashboardEndpoint:
    """Tests for /api/v1/dashboard/analytics"""

    def test_analytics(self, client, auth_headers, owned_client, owned_property):
        response = client.get('/api/v1/dashboard/analytics', headers=auth_headers)
        data = response.get_json()

        assert response.status_code == 200
        assert data['success'] is True
        assert data['analytics']['conversion_funnel']['total_clients'] == 1
        assert data['analytics']['property_portfolio']['total_properties'] == 1

    def test_scoped_to_agent(self, client, other_auth_headers, owned_client):
        data = client.get('/api/v1/dashboard/analytics', headers=other_auth_headers).get_json()
        assert data['analytics']['conversion_funnel']['total_clients'] == 0

    def test_requires_token(self, client):
        assert client.get('/api/v1/dashboard/analytics').status_code == 401
