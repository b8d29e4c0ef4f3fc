"""
Call Notes Routes Blueprint

Logged client interactions, follow-up reminders and AI summaries.
Mounted at /api/v1/call-notes.
"""

from flask import Blueprint, request, jsonify
import logging

from auth import jwt_required, get_current_agent_id
from app.utils.helpers import get_json_body, page_args
from database import get_db_session
from services.call_notes_repository import CallNotesRepository
from services.call_summary_service import CallSummaryService
from validators import parse_bool

logger = logging.getLogger(__name__)

call_notes_bp = Blueprint('call_notes_bp', __name__)


def _repo(db) -> CallNotesRepository:
    return CallNotesRepository(db, get_current_agent_id())


# ============================================================================
# COLLECTION
# ============================================================================

@call_notes_bp.route('', methods=['POST'])
@jwt_required
def create_call_note():
    data = get_json_body()
    with get_db_session() as db:
        note = _repo(db).create_call_note(data)
    return jsonify({'success': True, 'call_note': note}), 201


@call_notes_bp.route('', methods=['GET'])
@jwt_required
def list_call_notes():
    page, size, sort = page_args()
    with get_db_session() as db:
        result = _repo(db).list_call_notes(page, size, sort)
    return jsonify({'success': True, **result})


@call_notes_bp.route('/search', methods=['POST'])
@jwt_required
def search_call_notes():
    filters = get_json_body()
    page, size, sort = page_args()
    with get_db_session() as db:
        result = _repo(db).search_call_notes(filters, page, size, sort)
    return jsonify({'success': True, **result})


@call_notes_bp.route('/follow-ups', methods=['GET'])
@jwt_required
def follow_up_reminders():
    with get_db_session() as db:
        reminders = _repo(db).get_follow_up_reminders()
    return jsonify({'success': True, 'follow_ups': reminders, 'count': len(reminders)})


@call_notes_bp.route('/follow-ups/overdue', methods=['GET'])
@jwt_required
def overdue_follow_ups():
    with get_db_session() as db:
        overdue = _repo(db).get_overdue_follow_ups()
    return jsonify({'success': True, 'follow_ups': overdue, 'count': len(overdue)})


# ============================================================================
# SINGLE NOTE
# ============================================================================

@call_notes_bp.route('/<call_note_id>', methods=['GET'])
@jwt_required
def get_call_note(call_note_id):
    with get_db_session() as db:
        note = _repo(db).get_call_note(call_note_id)
    return jsonify({'success': True, 'call_note': note})


@call_notes_bp.route('/<call_note_id>', methods=['PUT'])
@jwt_required
def update_call_note(call_note_id):
    data = get_json_body()
    with get_db_session() as db:
        note = _repo(db).update_call_note(call_note_id, data)
    return jsonify({'success': True, 'call_note': note})


@call_notes_bp.route('/<call_note_id>', methods=['DELETE'])
@jwt_required
def delete_call_note(call_note_id):
    with get_db_session() as db:
        _repo(db).delete_call_note(call_note_id)
    return jsonify({'success': True, 'message': 'Call note deleted'})


# ============================================================================
# PER CLIENT
# ============================================================================

@call_notes_bp.route('/client/<client_id>', methods=['GET'])
@jwt_required
def call_notes_for_client(client_id):
    page, size, sort = page_args()
    with get_db_session() as db:
        result = _repo(db).list_call_notes_for_client(client_id, page, size, sort)
    return jsonify({'success': True, **result})


@call_notes_bp.route('/client/<client_id>/summary', methods=['GET'])
@jwt_required
def client_summary(client_id):
    with get_db_session() as db:
        summary = _repo(db).get_client_summary(client_id)
    return jsonify({'success': True, 'summary': summary})


@call_notes_bp.route('/client/<client_id>/ai-summary', methods=['GET'])
@jwt_required
def client_ai_summary(client_id):
    refresh = parse_bool(request.args.get('refresh', False))
    with get_db_session() as db:
        result = CallSummaryService(db, get_current_agent_id()).get_summary(client_id, refresh=refresh)
    return jsonify({'success': True, **result})
