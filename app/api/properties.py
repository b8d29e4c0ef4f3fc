"""
Property Routes Blueprint

Property listings, search and statistics. Mounted at /api/v1/properties.
Images and the expose PDF live in images.py and expose.py.
"""

from flask import Blueprint, request, jsonify
import logging

from auth import jwt_required, get_current_agent_id
from app.utils.helpers import get_json_body, page_args
from constants import PROPERTY_STATUSES, PROPERTY_TYPES
from database import get_db_session
from exceptions import ValidationError
from services.properties_repository import PropertiesRepository
from validators import parse_date, parse_int, validate_enum

logger = logging.getLogger(__name__)

properties_bp = Blueprint('properties_bp', __name__)

SEARCH_FILTER_KEYS = (
    'status', 'property_type', 'listing_type', 'city',
    'min_price', 'max_price', 'min_area', 'max_area', 'min_rooms', 'max_rooms',
)


def _repo(db) -> PropertiesRepository:
    return PropertiesRepository(db, get_current_agent_id())


def _search(filters):
    page, size, sort = page_args()
    with get_db_session() as db:
        result = _repo(db).search_properties(filters, page, size, sort)
    return jsonify({'success': True, **result})


# ============================================================================
# COLLECTION
# ============================================================================

@properties_bp.route('', methods=['GET'])
@jwt_required
def list_properties():
    page, size, sort = page_args()
    with get_db_session() as db:
        result = _repo(db).list_properties(page, size, sort)
    return jsonify({'success': True, **result})


@properties_bp.route('', methods=['POST'])
@jwt_required
def create_property():
    data = get_json_body()
    with get_db_session() as db:
        prop = _repo(db).create_property(data)
    return jsonify({'success': True, 'property': prop}), 201


@properties_bp.route('/search', methods=['GET'])
@jwt_required
def search_properties():
    filters = {key: request.args.get(key) for key in SEARCH_FILTER_KEYS if request.args.get(key)}
    return _search(filters)


@properties_bp.route('/filter', methods=['GET'])
@jwt_required
def filter_properties():
    page, size, sort = page_args()
    with get_db_session() as db:
        result = _repo(db).filter_properties(request.args.get('q', ''), page, size, sort)
    return jsonify({'success': True, **result})


@properties_bp.route('/status/<status>', methods=['GET'])
@jwt_required
def properties_by_status(status):
    is_valid, error = validate_enum(status, PROPERTY_STATUSES, 'Status')
    if not is_valid:
        raise ValidationError(error, field='status')
    return _search({'status': status})


@properties_bp.route('/type/<property_type>', methods=['GET'])
@jwt_required
def properties_by_type(property_type):
    is_valid, error = validate_enum(property_type, PROPERTY_TYPES, 'Property type')
    if not is_valid:
        raise ValidationError(error, field='property_type')
    return _search({'property_type': property_type})


@properties_bp.route('/city/<city>', methods=['GET'])
@jwt_required
def properties_by_city(city):
    return _search({'city': city})


@properties_bp.route('/stats', methods=['GET'])
@jwt_required
def property_stats():
    with get_db_session() as db:
        stats = _repo(db).get_property_stats()
    return jsonify({'success': True, 'stats': stats})


@properties_bp.route('/recent', methods=['GET'])
@jwt_required
def recent_properties():
    days = parse_int(request.args.get('days'), 'days') or 30
    with get_db_session() as db:
        properties = _repo(db).get_recent_properties(days)
    return jsonify({'success': True, 'properties': properties, 'days': days})


@properties_bp.route('/available', methods=['GET'])
@jwt_required
def available_properties():
    available_from = parse_date(request.args.get('available_from'), 'available_from')
    with get_db_session() as db:
        properties = _repo(db).get_available_properties(available_from)
    return jsonify({'success': True, 'properties': properties})


# ============================================================================
# SINGLE PROPERTY
# ============================================================================

@properties_bp.route('/<property_id>', methods=['GET'])
@jwt_required
def get_property(property_id):
    with get_db_session() as db:
        prop = _repo(db).get_property(property_id)
    return jsonify({'success': True, 'property': prop})


@properties_bp.route('/<property_id>', methods=['PUT'])
@jwt_required
def update_property(property_id):
    data = get_json_body()
    with get_db_session() as db:
        prop = _repo(db).update_property(property_id, data)
    return jsonify({'success': True, 'property': prop})


@properties_bp.route('/<property_id>', methods=['PATCH'])
@jwt_required
def patch_property(property_id):
    data = get_json_body()
    with get_db_session() as db:
        prop = _repo(db).patch_property(property_id, data)
    return jsonify({'success': True, 'property': prop})


@properties_bp.route('/<property_id>', methods=['DELETE'])
@jwt_required
def delete_property(property_id):
    with get_db_session() as db:
        _repo(db).delete_property(property_id)
    return jsonify({'success': True, 'message': 'Property deleted'})
