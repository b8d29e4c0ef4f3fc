"""
GDPR Export Routes Blueprint

Right-of-access downloads for the authenticated agent. Every export except the
summary is recorded in the audit log. Mounted at /api/v1/gdpr.
"""

import json
import logging

from flask import Blueprint, Response, jsonify

from auth import jwt_required, get_current_agent_id
from app.utils.helpers import client_ip, user_agent
from database import get_db_session
from services.gdpr_service import GdprService, export_filename

logger = logging.getLogger(__name__)

gdpr_bp = Blueprint('gdpr_bp', __name__)


def _service(db) -> GdprService:
    return GdprService(db, get_current_agent_id(), ip_address=client_ip(), user_agent=user_agent())


def _attachment(body, mimetype: str, filename: str) -> Response:
    response = Response(body, mimetype=mimetype)
    response.headers['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response


def _json_download(payload, prefix: str) -> Response:
    body = json.dumps(payload, default=str, ensure_ascii=False, indent=2)
    return _attachment(body, 'application/json', export_filename(prefix, 'json'))


@gdpr_bp.route('/export', methods=['GET'])
@jwt_required
def export_all():
    with get_db_session() as db:
        payload = _service(db).export_all()
    return _json_download(payload, 'gdpr_export')


@gdpr_bp.route('/export/clients', methods=['GET'])
@jwt_required
def export_clients():
    with get_db_session() as db:
        payload = _service(db).export_clients()
    return _json_download(payload, 'gdpr_clients')


@gdpr_bp.route('/export/properties', methods=['GET'])
@jwt_required
def export_properties():
    with get_db_session() as db:
        payload = _service(db).export_properties()
    return _json_download(payload, 'gdpr_properties')


@gdpr_bp.route('/export/call-notes', methods=['GET'])
@jwt_required
def export_call_notes():
    with get_db_session() as db:
        payload = _service(db).export_call_notes()
    return _json_download(payload, 'gdpr_call_notes')


@gdpr_bp.route('/export/pdf', methods=['GET'])
@jwt_required
def export_pdf():
    with get_db_session() as db:
        pdf_bytes = _service(db).export_pdf()
    return _attachment(pdf_bytes, 'application/pdf', export_filename('gdpr_export', 'pdf'))


@gdpr_bp.route('/export/summary', methods=['GET'])
@jwt_required
def export_summary():
    with get_db_session() as db:
        summary = _service(db).export_summary()
    return jsonify({'success': True, 'summary': summary})
