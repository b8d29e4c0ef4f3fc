"""
Utilities Package

Request helpers shared by the API blueprints.
"""

from app.utils.helpers import (
    get_json_body,
    get_upload,
    page_args,
    client_ip,
    user_agent,
    base64_file_response,
)

__all__ = [
    'get_json_body',
    'get_upload',
    'page_args',
    'client_ip',
    'user_agent',
    'base64_file_response',
]
