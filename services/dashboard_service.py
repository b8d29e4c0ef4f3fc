"""
Dashboard Service - pipeline analytics and follow-up insights for one agent.

Everything is computed in Python from the agent's clients, properties and call
notes; portfolios are small enough that a handful of queries per request is fine.
"""

import logging
from collections import Counter
from datetime import datetime, date, timedelta
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from constants import (
    DAYS_WITHOUT_CONTACT_THRESHOLD, HOT_LEAD_DAYS_THRESHOLD,
    MAX_URGENT_CLIENT_INSIGHTS, MAX_SUGGESTED_ACTIONS,
)
from database.models import Agent, CallNote, Client, Property
from exceptions import NotFoundError

logger = logging.getLogger(__name__)

URGENCY_ORDER = {'HIGH': 0, 'MEDIUM': 1, 'LOW': 2}
ALL_CAUGHT_UP = "All caught up! Great work!"


def _rate(part: int, whole: int) -> float:
    return round(part * 100.0 / whole, 1) if whole else 0.0


def _month_start(moment: datetime) -> datetime:
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def _previous_month_start(month_start: datetime) -> datetime:
    return _month_start(month_start - timedelta(days=1))


class DashboardService:

    def __init__(self, session: Session, agent_id: str):
        self.session = session
        self.agent_id = agent_id

    def _load(self):
        agent = self.session.query(Agent).filter(Agent.id == self.agent_id).first()
        if not agent:
            raise NotFoundError('Agent', self.agent_id)
        self.clients = self.session.query(Client).filter(Client.agent_id == self.agent_id).all()
        self.properties = self.session.query(Property).filter(Property.agent_id == self.agent_id).all()
        # Newest first, so the first note seen per client is its latest
        self.notes = self.session.query(CallNote).filter(
            CallNote.agent_id == self.agent_id
        ).order_by(CallNote.call_date.desc(), CallNote.id).all()

        self.latest_note_by_client: Dict[str, CallNote] = {}
        self.latest_outcome_by_client: Dict[str, str] = {}
        for note in self.notes:
            self.latest_note_by_client.setdefault(note.client_id, note)
            if note.outcome:
                self.latest_outcome_by_client.setdefault(note.client_id, note.outcome)

    def generate_analytics(self, now: Optional[datetime] = None) -> Dict:
        now = now or datetime.utcnow()
        logger.info(f"Generating dashboard analytics for agent: {self.agent_id}")
        self._load()

        pipeline = self.pipeline_health(now)
        portfolio = self.property_portfolio(now)
        return {
            'conversion_funnel': self.conversion_funnel(),
            'pipeline_health': pipeline,
            'property_portfolio': portfolio,
            'activity_trends': self.activity_trends(now),
            'clients_needing_attention': self.clients_needing_attention(now),
            'suggested_actions': self.suggested_actions(pipeline, portfolio)
        }

    # =========================================================================
    # SECTIONS
    # =========================================================================

    def conversion_funnel(self) -> Dict:
        outcomes = Counter(self.latest_outcome_by_client.values())
        total = len(self.clients)
        interested = outcomes['INTERESTED']
        viewings = outcomes['SCHEDULED_VIEWING']
        offers = outcomes['OFFER_MADE']
        deals = outcomes['DEAL_CLOSED']
        return {
            'total_clients': total,
            'interested_clients': interested,
            'scheduled_viewings': viewings,
            'offers_made': offers,
            'deals_closed': deals,
            'interested_rate': _rate(interested, total),
            'viewing_rate': _rate(viewings, interested),
            'offer_rate': _rate(offers, viewings),
            'closing_rate': _rate(deals, offers),
            'overall_conversion_rate': _rate(deals, total)
        }

    def pipeline_health(self, now: datetime) -> Dict:
        today = now.date()
        next_week = today + timedelta(weeks=1)
        week_after = today + timedelta(weeks=2)

        follow_ups = [n for n in self.notes if n.follow_up_required and n.follow_up_date]
        no_contact_cutoff = now - timedelta(days=DAYS_WITHOUT_CONTACT_THRESHOLD)

        without_recent_contact = 0
        days_since = []
        for client in self.clients:
            latest = self.latest_note_by_client.get(client.id)
            if latest is None or latest.call_date < no_contact_cutoff:
                without_recent_contact += 1
            if latest is not None:
                days_since.append((now - latest.call_date).days)

        return {
            'clients_by_outcome': dict(Counter(self.latest_outcome_by_client.values())),
            'overdue_follow_ups': sum(1 for n in follow_ups if n.follow_up_date < today),
            'follow_ups_due_this_week': sum(1 for n in follow_ups if today <= n.follow_up_date < next_week),
            'follow_ups_due_next_week': sum(1 for n in follow_ups if next_week <= n.follow_up_date < week_after),
            'clients_without_recent_contact': without_recent_contact,
            'average_days_since_last_contact': sum(days_since) // len(days_since) if days_since else 0
        }

    def property_portfolio(self, now: datetime) -> Dict:
        available = [p for p in self.properties if p.status == 'AVAILABLE']
        days_on_market = [(now - p.created_at).days for p in available if p.created_at]
        total_value = sum((p.price for p in self.properties if p.price is not None), Decimal('0'))
        return {
            'total_properties': len(self.properties),
            'properties_by_status': dict(Counter(p.status for p in self.properties)),
            'properties_by_type': dict(Counter(p.property_type for p in self.properties)),
            'average_days_on_market': sum(days_on_market) // len(days_on_market) if days_on_market else 0,
            'properties_with_images': sum(1 for p in self.properties if p.images),
            'properties_with_expose': sum(1 for p in self.properties if p.has_expose),
            'total_portfolio_value': float(total_value)
        }

    def activity_trends(self, now: datetime) -> Dict:
        this_month = _month_start(now)
        last_month = _previous_month_start(this_month)

        def in_this_month(moment):
            return moment is not None and this_month <= moment <= now

        def in_last_month(moment):
            return moment is not None and last_month <= moment < this_month

        notes_this = [n for n in self.notes if in_this_month(n.call_date)]
        notes_last = [n for n in self.notes if in_last_month(n.call_date)]
        growth = int((len(notes_this) - len(notes_last)) * 100.0 / len(notes_last)) if notes_last else 0

        return {
            'call_notes_this_month': len(notes_this),
            'call_notes_last_month': len(notes_last),
            'call_notes_growth_percent': growth,
            'new_clients_this_month': sum(1 for c in self.clients if in_this_month(c.created_at)),
            'new_clients_last_month': sum(1 for c in self.clients if in_last_month(c.created_at)),
            'deals_closed_this_month': sum(1 for n in notes_this if n.outcome == 'DEAL_CLOSED'),
            'deals_closed_last_month': sum(1 for n in notes_last if n.outcome == 'DEAL_CLOSED'),
            'new_properties_this_month': sum(1 for p in self.properties if in_this_month(p.created_at)),
            'new_properties_last_month': sum(1 for p in self.properties if in_last_month(p.created_at))
        }

    def clients_needing_attention(self, now: datetime) -> List[Dict]:
        today = now.date()
        insights = []

        overdue = [n for n in self.notes
                   if n.follow_up_required and n.follow_up_date and n.follow_up_date < today]
        overdue_clients = set()
        for note in overdue:
            overdue_clients.add(note.client_id)
            insights.append({
                'client_id': note.client_id,
                'client_name': note.client.full_name if note.client else None,
                'urgency': 'HIGH',
                'reason': f"Follow-up overdue by {(today - note.follow_up_date).days} days",
                'last_contact_date': note.call_date.isoformat(),
                'days_since_contact': (now - note.call_date).days,
                'recommended_action': "Contact client immediately to reschedule follow-up"
            })

        hot_lead_cutoff = now - timedelta(days=HOT_LEAD_DAYS_THRESHOLD)
        for client in self.clients:
            latest = self.latest_note_by_client.get(client.id)
            if (latest is None or latest.outcome != 'INTERESTED'
                    or latest.call_date >= hot_lead_cutoff or client.id in overdue_clients):
                continue
            days = (now - latest.call_date).days
            insights.append({
                'client_id': client.id,
                'client_name': client.full_name,
                'urgency': 'MEDIUM',
                'reason': f"Interested client - no contact in {days} days",
                'last_contact_date': latest.call_date.isoformat(),
                'days_since_contact': days,
                'recommended_action': "Send property matches or schedule viewing"
            })

        insights.sort(key=lambda i: (URGENCY_ORDER[i['urgency']], -i['days_since_contact'], i['client_id']))
        return insights[:MAX_URGENT_CLIENT_INSIGHTS]

    @staticmethod
    def suggested_actions(pipeline: Dict, portfolio: Dict) -> List[str]:
        actions = []
        if pipeline['overdue_follow_ups'] > 0:
            actions.append(f"Contact {pipeline['overdue_follow_ups']} clients with overdue follow-ups")
        if pipeline['follow_ups_due_this_week'] > 0:
            actions.append(f"Schedule {pipeline['follow_ups_due_this_week']} follow-ups for this week")
        if pipeline['clients_without_recent_contact'] > 3:
            actions.append(f"Re-engage {pipeline['clients_without_recent_contact']} clients without recent contact")

        without_images = portfolio['total_properties'] - portfolio['properties_with_images']
        if without_images > 0:
            actions.append(f"Add images to {without_images} properties")
        without_expose = portfolio['total_properties'] - portfolio['properties_with_expose']
        if without_expose > 0:
            actions.append(f"Upload exposés for {without_expose} properties")

        return actions[:MAX_SUGGESTED_ACTIONS] if actions else [ALL_CAUGHT_UP]
