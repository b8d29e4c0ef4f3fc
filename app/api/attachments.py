"""
File Attachment Routes Blueprint

Documents attached to a property or a client. Mounted at /api/v1/attachments.
"""

from flask import Blueprint, request, jsonify
import logging

from auth import jwt_required, get_current_agent_id
from app.utils.helpers import get_json_body, get_upload, base64_file_response
from database import get_db_session
from services.attachments_repository import AttachmentsRepository

logger = logging.getLogger(__name__)

attachments_bp = Blueprint('attachments_bp', __name__)


def _repo(db) -> AttachmentsRepository:
    return AttachmentsRepository(db, get_current_agent_id())


def _upload_options() -> dict:
    return {
        'file_type': request.form.get('file_type'),
        'description': request.form.get('description'),
        'custom_file_name': request.form.get('file_name')
    }


@attachments_bp.route('/properties/<property_id>', methods=['POST'])
@jwt_required
def upload_property_attachment(property_id):
    upload = get_upload('file')
    with get_db_session() as db:
        attachment = _repo(db).upload_property_attachment(property_id, upload, **_upload_options())
    return jsonify({'success': True, 'attachment': attachment}), 201


@attachments_bp.route('/properties/<property_id>', methods=['GET'])
@jwt_required
def list_property_attachments(property_id):
    with get_db_session() as db:
        attachments = _repo(db).list_property_attachments(property_id)
    return jsonify({'success': True, 'attachments': attachments})


@attachments_bp.route('/clients/<client_id>', methods=['POST'])
@jwt_required
def upload_client_attachment(client_id):
    upload = get_upload('file')
    with get_db_session() as db:
        attachment = _repo(db).upload_client_attachment(client_id, upload, **_upload_options())
    return jsonify({'success': True, 'attachment': attachment}), 201


@attachments_bp.route('/clients/<client_id>', methods=['GET'])
@jwt_required
def list_client_attachments(client_id):
    with get_db_session() as db:
        attachments = _repo(db).list_client_attachments(client_id)
    return jsonify({'success': True, 'attachments': attachments})


@attachments_bp.route('/<attachment_id>/download', methods=['GET'])
@jwt_required
def download_attachment(attachment_id):
    with get_db_session() as db:
        attachment = _repo(db).download_attachment(attachment_id)
    return base64_file_response(attachment['file_data'], attachment['file_name'], attachment['mime_type'])


@attachments_bp.route('/<attachment_id>/metadata', methods=['PUT'])
@jwt_required
def update_attachment_metadata(attachment_id):
    data = get_json_body()
    with get_db_session() as db:
        attachment = _repo(db).update_attachment_metadata(attachment_id, data)
    return jsonify({'success': True, 'attachment': attachment})


@attachments_bp.route('/<attachment_id>', methods=['DELETE'])
@jwt_required
def delete_attachment(attachment_id):
    with get_db_session() as db:
        _repo(db).delete_attachment(attachment_id)
    return jsonify({'success': True, 'message': 'Attachment deleted'})
