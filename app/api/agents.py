"""
Agent Profile Routes Blueprint

The authenticated agent's own profile. Mounted at /api/v1/agents.
"""

from flask import Blueprint, jsonify
import logging

from auth import jwt_required, get_current_agent_id
from app.utils.helpers import get_json_body
from database import get_db_session
from exceptions import ValidationError
from services.agents_repository import AgentsRepository

logger = logging.getLogger(__name__)

agents_bp = Blueprint('agents_bp', __name__)


@agents_bp.route('/me', methods=['GET'])
@jwt_required
def get_profile():
    with get_db_session() as db:
        agent = AgentsRepository(db, get_current_agent_id()).get_profile()
    return jsonify({'success': True, 'agent': agent})


@agents_bp.route('/me', methods=['PUT'])
@jwt_required
def update_profile():
    data = get_json_body()
    with get_db_session() as db:
        agent = AgentsRepository(db, get_current_agent_id()).update_profile(data)
    return jsonify({'success': True, 'agent': agent})


@agents_bp.route('/me/password', methods=['PUT'])
@jwt_required
def change_password():
    data = get_json_body()
    if not data.get('current_password'):
        raise ValidationError("Current password is required", field='current_password')

    with get_db_session() as db:
        AgentsRepository(db, get_current_agent_id()).change_password(
            data['current_password'], data.get('new_password')
        )
    return jsonify({'success': True, 'message': 'Password changed successfully'})


@agents_bp.route('/me/language', methods=['PUT'])
@jwt_required
def update_language():
    data = get_json_body()
    with get_db_session() as db:
        agent = AgentsRepository(db, get_current_agent_id()).update_language(data.get('language_preference'))
    return jsonify({'success': True, 'agent': agent})


@agents_bp.route('/me/deactivate', methods=['PUT'])
@jwt_required
def deactivate():
    with get_db_session() as db:
        AgentsRepository(db, get_current_agent_id()).deactivate()
    return jsonify({'success': True, 'message': 'Account deactivated'})


@agents_bp.route('/me/stats', methods=['GET'])
@jwt_required
def get_stats():
    with get_db_session() as db:
        stats = AgentsRepository(db, get_current_agent_id()).get_stats()
    return jsonify({'success': True, 'stats': stats})
