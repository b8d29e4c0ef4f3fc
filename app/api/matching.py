"""
Property Matching Routes Blueprint

Scores properties against client search criteria and vice versa.
Mounted at /api/v1/properties/match.
"""

from flask import Blueprint, request, jsonify
import logging

from auth import jwt_required, get_current_agent_id
from database import get_db_session
from exceptions import ValidationError
from services.matching_service import MatchingService, MatchRequest, MatchCriteria

logger = logging.getLogger(__name__)

matching_bp = Blueprint('matching_bp', __name__)


def _options() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@matching_bp.route('/client/<client_id>', methods=['POST'])
@jwt_required
def match_for_client(client_id):
    match_request = MatchRequest.from_dict(_options())
    with get_db_session() as db:
        result = MatchingService(db, get_current_agent_id()).match_properties_for_client(client_id, match_request)
    return jsonify({'success': True, **result})


@matching_bp.route('/client/<client_id>', methods=['GET'])
@jwt_required
def quick_match_for_client(client_id):
    """Same as the POST variant with options taken from the query string"""
    match_request = MatchRequest.from_dict(request.args.to_dict())
    with get_db_session() as db:
        result = MatchingService(db, get_current_agent_id()).match_properties_for_client(client_id, match_request)
    return jsonify({'success': True, **result})


@matching_bp.route('/property/<property_id>', methods=['POST'])
@jwt_required
def match_for_property(property_id):
    match_request = MatchRequest.from_dict(_options())
    with get_db_session() as db:
        result = MatchingService(db, get_current_agent_id()).match_clients_for_property(property_id, match_request)
    return jsonify({'success': True, **result})


@matching_bp.route('/custom', methods=['POST'])
@jwt_required
def match_custom():
    """Body: {"criteria": {...}, ...match options}"""
    data = _options()
    if not isinstance(data.get('criteria'), dict):
        raise ValidationError("criteria object is required", field='criteria')

    criteria = MatchCriteria.from_dict(data['criteria'])
    match_request = MatchRequest.from_dict(data)
    with get_db_session() as db:
        result = MatchingService(db, get_current_agent_id()).match_properties_for_criteria(criteria, match_request)
    return jsonify({'success': True, **result})
