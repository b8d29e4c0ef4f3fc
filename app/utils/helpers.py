"""
Request helper functions shared by the API blueprints.
"""

import base64
import io
from typing import Any, Dict

from flask import request, send_file

from exceptions import ValidationError
from services.pagination import parse_page_args


def get_json_body() -> Dict[str, Any]:
    """
    Parse the JSON request body.

    Raises:
        ValidationError: if the body is missing or not a JSON object
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def get_upload(field: str = 'file'):
    """
    Return the uploaded file from a multipart form.

    Raises:
        ValidationError: if no file was sent under `field`
    """
    upload = request.files.get(field)
    if upload is None or not upload.filename:
        raise ValidationError("No file uploaded", field=field)
    return upload


def page_args():
    """(page, size, sort) from the query string"""
    page, size = parse_page_args(request.args)
    return page, size, request.args.get('sort')


def client_ip() -> str:
    """Caller IP, honouring the first X-Forwarded-For hop behind a proxy"""
    forwarded = request.headers.get('X-Forwarded-For', '')
    if forwarded:
        return forwarded.split(',')[0].strip()[:45]
    return (request.remote_addr or '')[:45]


def user_agent() -> str:
    return request.user_agent.string[:500] if request.user_agent else ''


def base64_file_response(data_b64: str, filename: str, mimetype: str):
    """Send a Base64-stored blob back as a file download."""
    return send_file(
        io.BytesIO(base64.b64decode(data_b64)),
        mimetype=mimetype,
        as_attachment=True,
        download_name=filename
    )
