"""
Call Notes Repository - logged client interactions and follow-up reminders.
"""

import logging
from datetime import datetime, date
from typing import Dict, List

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from database.models import CallNote, Client, Property
from services.ownership import get_owned
from services.pagination import apply_sort, paginate, parse_sort
from validators import (
    validate_call_note_data, parse_bool, parse_date, parse_datetime, parse_int, sanitize_string,
)

logger = logging.getLogger(__name__)


class CallNotesRepository:
    """Repository for call notes; referenced clients and properties must belong to the caller."""

    SORT_FIELDS = ('call_date', 'created_at', 'updated_at', 'subject', 'call_type',
                   'outcome', 'follow_up_date')

    def __init__(self, session: Session, agent_id: str):
        self.session = session
        self.agent_id = agent_id

    def _base_query(self):
        return self.session.query(CallNote).filter(CallNote.agent_id == self.agent_id)

    def _get(self, call_note_id: str) -> CallNote:
        return get_owned(self.session, CallNote, call_note_id, self.agent_id, 'Call note')

    def _apply(self, note: CallNote, data: Dict):
        client = get_owned(self.session, Client, data['client_id'], self.agent_id, 'Client')
        note.client_id = client.id

        property_id = data.get('property_id')
        if property_id:
            prop = get_owned(self.session, Property, property_id, self.agent_id, 'Property')
            note.property_id = prop.id
        else:
            note.property_id = None

        note.call_date = parse_datetime(data['call_date'], 'call_date')
        note.duration_minutes = parse_int(data.get('duration_minutes'), 'duration_minutes')
        note.call_type = data['call_type'].upper()
        note.subject = sanitize_string(data['subject'], 200)
        note.notes = sanitize_string(data['notes'], 5000)
        note.properties_discussed = data.get('properties_discussed') or None
        note.outcome = data['outcome'].upper() if data.get('outcome') else None

        note.follow_up_required = parse_bool(data.get('follow_up_required', False))
        # A follow-up date without a required follow-up is meaningless
        note.follow_up_date = (parse_date(data.get('follow_up_date'), 'follow_up_date')
                               if note.follow_up_required else None)

    def _clear_summary(self, client_id: str):
        """Drop the stored AI summary so the next request regenerates it."""
        client = self.session.get(Client, client_id)
        if client is not None and client.ai_summary is not None:
            client.ai_summary = None
            client.ai_summary_updated_at = None
            logger.debug(f"Cleared stored AI summary for client {client_id}")

    # =========================================================================
    # CRUD
    # =========================================================================

    def create_call_note(self, data: Dict) -> Dict:
        validate_call_note_data(data)
        note = CallNote(agent_id=self.agent_id)
        self._apply(note, data)
        self.session.add(note)
        self._clear_summary(note.client_id)
        self.session.flush()
        logger.info(f"Created call note: {note.id} for client {note.client_id}")
        return note.to_dict()

    def get_call_note(self, call_note_id: str) -> Dict:
        return self._get(call_note_id).to_dict()

    def update_call_note(self, call_note_id: str, data: Dict) -> Dict:
        note = self._get(call_note_id)
        data = dict(data)
        data.setdefault('client_id', note.client_id)
        validate_call_note_data(data)
        previous_client_id = note.client_id
        self._apply(note, data)
        self._clear_summary(previous_client_id)
        if note.client_id != previous_client_id:
            self._clear_summary(note.client_id)
        note.updated_at = datetime.utcnow()
        self.session.flush()
        logger.info(f"Updated call note: {call_note_id}")
        return note.to_dict()

    def delete_call_note(self, call_note_id: str) -> bool:
        note = self._get(call_note_id)
        self._clear_summary(note.client_id)
        self.session.delete(note)
        self.session.flush()
        logger.info(f"Deleted call note: {call_note_id}")
        return True

    # =========================================================================
    # LISTING & SEARCH
    # =========================================================================

    def list_call_notes(self, page: int = 1, size: int = 20, sort: str = None) -> Dict:
        field, direction = parse_sort(sort or 'call_date,desc', self.SORT_FIELDS)
        return paginate(apply_sort(self._base_query(), CallNote, field, direction), page, size)

    def list_call_notes_for_client(self, client_id: str, page: int = 1, size: int = 20,
                                   sort: str = None) -> Dict:
        get_owned(self.session, Client, client_id, self.agent_id, 'Client')
        field, direction = parse_sort(sort or 'call_date,desc', self.SORT_FIELDS)
        query = self._base_query().filter(CallNote.client_id == client_id)
        return paginate(apply_sort(query, CallNote, field, direction), page, size)

    def search_call_notes(self, filters: Dict, page: int = 1, size: int = 20, sort: str = None) -> Dict:
        """
        Filter call notes.

        Args:
            filters: any of client_id, call_type, outcome, date_from, date_to,
                follow_up_required, search_term (subject and notes)
        """
        field, direction = parse_sort(sort or 'call_date,desc', self.SORT_FIELDS)
        query = self._base_query()

        if filters.get('client_id'):
            query = query.filter(CallNote.client_id == filters['client_id'])
        if filters.get('call_type'):
            query = query.filter(CallNote.call_type == str(filters['call_type']).upper())
        if filters.get('outcome'):
            query = query.filter(CallNote.outcome == str(filters['outcome']).upper())

        date_from = parse_datetime(filters.get('date_from'), 'date_from')
        date_to = parse_datetime(filters.get('date_to'), 'date_to')
        if date_from:
            query = query.filter(CallNote.call_date >= date_from)
        if date_to:
            query = query.filter(CallNote.call_date <= date_to)

        if filters.get('follow_up_required') not in (None, ''):
            query = query.filter(CallNote.follow_up_required.is_(parse_bool(filters['follow_up_required'])))

        term = (filters.get('search_term') or '').strip().lower()
        if term:
            pattern = f"%{term}%"
            query = query.filter(or_(
                func.lower(CallNote.subject).like(pattern),
                func.lower(CallNote.notes).like(pattern)
            ))

        return paginate(apply_sort(query, CallNote, field, direction), page, size)

    # =========================================================================
    # FOLLOW-UPS & SUMMARIES
    # =========================================================================

    def _follow_up_query(self):
        return self._base_query().filter(
            CallNote.follow_up_required.is_(True),
            CallNote.follow_up_date.isnot(None)
        )

    @staticmethod
    def _reminder(note: CallNote, today: date) -> Dict:
        data = note.to_summary()
        days_until_due = (note.follow_up_date - today).days
        data['is_overdue'] = days_until_due < 0
        data['days_until_due'] = days_until_due
        return data

    def get_follow_up_reminders(self) -> List[Dict]:
        today = date.today()
        notes = self._follow_up_query().order_by(CallNote.follow_up_date.asc(), CallNote.id).all()
        return [self._reminder(n, today) for n in notes]

    def get_overdue_follow_ups(self) -> List[Dict]:
        today = date.today()
        notes = self._follow_up_query().filter(
            CallNote.follow_up_date < today
        ).order_by(CallNote.follow_up_date.asc(), CallNote.id).all()
        return [self._reminder(n, today) for n in notes]

    def get_client_summary(self, client_id: str) -> Dict:
        client = get_owned(self.session, Client, client_id, self.agent_id, 'Client')
        notes = self._base_query().filter(CallNote.client_id == client_id).order_by(
            CallNote.call_date.desc()
        ).all()
        latest = notes[0] if notes else None
        return {
            'client_id': client.id,
            'client_name': client.full_name,
            'total_call_notes': len(notes),
            'last_call_date': latest.call_date.isoformat() if latest else None,
            'pending_follow_ups': sum(1 for n in notes if n.follow_up_required and n.follow_up_date),
            'most_recent_subject': latest.subject if latest else None,
            'last_outcome': latest.outcome if latest else None
        }
