"""
Client Routes Blueprint

Client management with pagination and search. Mounted at /api/v1/clients.
"""

from flask import Blueprint, request, jsonify
import logging

from auth import jwt_required, get_current_agent_id
from app.utils.helpers import get_json_body, page_args
from database import get_db_session
from services.clients_repository import ClientsRepository
from validators import parse_int

logger = logging.getLogger(__name__)

clients_bp = Blueprint('clients_bp', __name__)


def _repo(db) -> ClientsRepository:
    return ClientsRepository(db, get_current_agent_id())


# ============================================================================
# COLLECTION
# ============================================================================

@clients_bp.route('', methods=['GET'])
@jwt_required
def list_clients():
    page, size, sort = page_args()
    with get_db_session() as db:
        result = _repo(db).list_clients(page, size, sort)
    return jsonify({'success': True, **result})


@clients_bp.route('', methods=['POST'])
@jwt_required
def create_client():
    data = get_json_body()
    with get_db_session() as db:
        client = _repo(db).create_client(data)
    return jsonify({'success': True, 'client': client}), 201


@clients_bp.route('/search', methods=['GET'])
@jwt_required
def search_clients():
    page, size, sort = page_args()
    with get_db_session() as db:
        result = _repo(db).search_clients(request.args.get('q', ''), page, size, sort)
    return jsonify({'success': True, **result})


@clients_bp.route('/recent', methods=['GET'])
@jwt_required
def recent_clients():
    days = parse_int(request.args.get('days'), 'days') or 30
    with get_db_session() as db:
        clients = _repo(db).get_recent_clients(days)
    return jsonify({'success': True, 'clients': clients, 'days': days})


@clients_bp.route('/stats', methods=['GET'])
@jwt_required
def client_stats():
    with get_db_session() as db:
        stats = _repo(db).get_client_stats()
    return jsonify({'success': True, 'stats': stats})


# ============================================================================
# SINGLE CLIENT
# ============================================================================

@clients_bp.route('/<client_id>', methods=['GET'])
@jwt_required
def get_client(client_id):
    with get_db_session() as db:
        client = _repo(db).get_client(client_id)
    return jsonify({'success': True, 'client': client})


@clients_bp.route('/<client_id>', methods=['PUT'])
@jwt_required
def update_client(client_id):
    data = get_json_body()
    with get_db_session() as db:
        client = _repo(db).update_client(client_id, data)
    return jsonify({'success': True, 'client': client})


@clients_bp.route('/<client_id>', methods=['DELETE'])
@jwt_required
def delete_client(client_id):
    with get_db_session() as db:
        _repo(db).delete_client(client_id)
    return jsonify({'success': True, 'message': 'Client deleted'})


@clients_bp.route('/<client_id>/export', methods=['GET'])
@jwt_required
def export_client(client_id):
    with get_db_session() as db:
        data = _repo(db).export_client(client_id)
    return jsonify({'success': True, 'client': data})
