"""
Authentication Routes Blueprint

Login, registration, token refresh and password reset for agents.
Mounted at /api/v1/auth.
"""

from flask import Blueprint, request, jsonify, g
import logging

from auth import jwt_required, get_current_agent_id
from app.utils.helpers import get_json_body, client_ip
from database import get_db_session
from exceptions import ValidationError
from services.auth_service import AuthService
from services.password_reset_service import PasswordResetService

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth_bp', __name__)


# ============================================================================
# LOGIN / REGISTRATION
# ============================================================================

@auth_bp.route('/login', methods=['POST'])
def login():
    data = get_json_body()
    if not data.get('email') or not data.get('password'):
        raise ValidationError("Email and password are required",
                              errors={k: f"{k} is required" for k in ('email', 'password') if not data.get(k)})

    with get_db_session() as db:
        result = AuthService(db).login(data['email'], data['password'])
    return jsonify({'success': True, **result})


@auth_bp.route('/register', methods=['POST'])
def register():
    data = get_json_body()
    with get_db_session() as db:
        result = AuthService(db).register(data)
    return jsonify({'success': True, **result}), 201


@auth_bp.route('/refresh', methods=['POST'])
@jwt_required
def refresh():
    with get_db_session() as db:
        result = AuthService(db).refresh_token(get_current_agent_id())
    return jsonify({'success': True, **result})


@auth_bp.route('/check-email', methods=['GET'])
def check_email():
    email = (request.args.get('email') or '').strip()
    if not email:
        raise ValidationError("email query parameter is required", field='email')
    with get_db_session() as db:
        available = AuthService(db).is_email_available(email)
    return jsonify({'success': True, 'email': email, 'available': available})


@auth_bp.route('/validate', methods=['GET'])
@jwt_required
def validate_token():
    """Echo the token's subject for the frontend's session check"""
    return jsonify({
        'success': True,
        'valid': True,
        'email': g.agent_email,
        'agent_id': g.agent_id,
        'authorities': g.token_claims.get('authorities', [])
    })


@auth_bp.route('/logout', methods=['POST'])
def logout():
    """Tokens are stateless; the client simply discards its token"""
    return jsonify({'success': True, 'message': 'Logged out successfully'})


# ============================================================================
# PASSWORD RESET
# ============================================================================

@auth_bp.route('/forgot-password', methods=['POST'])
def forgot_password():
    data = get_json_body()
    if not data.get('email'):
        raise ValidationError("Email is required", field='email')

    with get_db_session() as db:
        result = PasswordResetService(db).request_password_reset(data['email'], client_ip())
    return jsonify({'success': True, **result})


@auth_bp.route('/validate-reset-token', methods=['GET'])
def validate_reset_token():
    token = request.args.get('token', '')
    with get_db_session() as db:
        result = PasswordResetService(db).validate_reset_token(token)
    return jsonify({'success': True, **result})


@auth_bp.route('/reset-password', methods=['POST'])
def reset_password():
    data = get_json_body()
    if not data.get('token'):
        raise ValidationError("Reset token is required", field='token')

    with get_db_session() as db:
        result = PasswordResetService(db).reset_password(data['token'], data.get('new_password'))
    return jsonify({'success': True, **result})
