"""
Property Expose Routes Blueprint

Upload and download of the PDF brochure for a property.
Mounted at /api/v1/properties; every route is under /<property_id>/expose.
"""

from flask import Blueprint, jsonify
import logging

from auth import jwt_required, get_current_agent_id
from app.utils.helpers import get_upload, base64_file_response
from database import get_db_session
from services.properties_repository import PropertiesRepository

logger = logging.getLogger(__name__)

expose_bp = Blueprint('expose_bp', __name__)


@expose_bp.route('/<property_id>/expose', methods=['POST'])
@jwt_required
def upload_expose(property_id):
    upload = get_upload('file')
    with get_db_session() as db:
        prop = PropertiesRepository(db, get_current_agent_id()).upload_expose(property_id, upload)
    return jsonify({
        'success': True,
        'message': 'Expose uploaded',
        'expose_file_name': prop['expose_file_name'],
        'expose_file_size': prop['expose_file_size'],
        'expose_uploaded_at': prop['expose_uploaded_at']
    }), 201


@expose_bp.route('/<property_id>/expose/download', methods=['GET'])
@jwt_required
def download_expose(property_id):
    with get_db_session() as db:
        expose = PropertiesRepository(db, get_current_agent_id()).download_expose(property_id)
    return base64_file_response(expose['file_data'], expose['file_name'], expose['content_type'])


@expose_bp.route('/<property_id>/expose', methods=['DELETE'])
@jwt_required
def delete_expose(property_id):
    with get_db_session() as db:
        PropertiesRepository(db, get_current_agent_id()).delete_expose(property_id)
    return jsonify({'success': True, 'message': 'Expose deleted'})


@expose_bp.route('/<property_id>/expose/exists', methods=['GET'])
@jwt_required
def expose_exists(property_id):
    with get_db_session() as db:
        exists = PropertiesRepository(db, get_current_agent_id()).has_expose(property_id)
    return jsonify({'success': True, 'property_id': property_id, 'has_expose': exists})
