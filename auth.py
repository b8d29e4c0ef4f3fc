"""
Agent Authentication Module
Password hashing, JWT issue/verification, and the jwt_required route guard.

Tokens are stateless HS256 JWTs carrying the agent email as subject plus
the agent id and authorities.
"""
from datetime import datetime, timedelta
from functools import wraps
from typing import Dict, Optional

from flask import current_app, g, request
from jose import ExpiredSignatureError, JWTError, jwt
from werkzeug.security import generate_password_hash, check_password_hash
import logging

from constants import ROLE_AGENT
from exceptions import TokenError

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    """Hash a password with pbkdf2"""
    return generate_password_hash(password, method='pbkdf2:sha256')


def verify_password(password_hash: str, password: str) -> bool:
    if not password_hash or password is None:
        return False
    return check_password_hash(password_hash, password)


# ============================================================================
# JWT
# ============================================================================

def _jwt_settings():
    config = current_app.config
    return config['JWT_SECRET'], config.get('JWT_ALGORITHM', 'HS256')


def create_access_token(agent_id: str, email: str, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed JWT for an agent

    Args:
        agent_id: Agent primary key
        email: Agent email, used as the subject
        expires_delta: Lifetime override (defaults to JWT_EXPIRATION_SECONDS)

    Returns:
        Encoded JWT
    """
    secret, algorithm = _jwt_settings()
    if expires_delta is None:
        expires_delta = timedelta(seconds=current_app.config['JWT_EXPIRATION_SECONDS'])

    now = datetime.utcnow()
    to_encode = {
        'sub': email,
        'agent_id': agent_id,
        'authorities': [ROLE_AGENT],
        'iat': now,
        'exp': now + expires_delta,
    }
    return jwt.encode(to_encode, secret, algorithm=algorithm)


def decode_access_token(token: str) -> Dict:
    """
    Verify signature and expiry and return the claims

    Raises:
        TokenError: If the token is malformed, badly signed or expired
    """
    if not token:
        raise TokenError("Missing authentication token")

    secret, algorithm = _jwt_settings()
    try:
        payload = jwt.decode(token, secret, algorithms=[algorithm])
    except ExpiredSignatureError:
        raise TokenError("Token has expired")
    except JWTError as e:
        raise TokenError(f"Invalid token: {e}")

    if not payload.get('agent_id') or not payload.get('sub'):
        raise TokenError("Invalid token payload")
    return payload


def get_bearer_token() -> Optional[str]:
    header = request.headers.get('Authorization', '')
    if header.startswith('Bearer '):
        return header[len('Bearer '):].strip() or None
    return None


# ============================================================================
# ROUTE PROTECTION
# ============================================================================

def jwt_required(f):
    """
    Decorator to require a valid bearer token for a route.
    Stores the caller in g.agent_id / g.agent_email.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        from database import get_db_session
        from database.models import Agent

        payload = decode_access_token(get_bearer_token())

        with get_db_session() as db:
            agent = db.query(Agent).filter(Agent.id == payload['agent_id']).first()
            if not agent or not agent.is_active:
                logger.warning(f"Rejected token for missing or inactive agent {payload['agent_id']}")
                raise TokenError("Agent not found or deactivated")
            g.agent_id = agent.id
            g.agent_email = agent.email

        g.token_claims = payload
        return f(*args, **kwargs)
    return decorated_function


def get_current_agent_id() -> str:
    agent_id = getattr(g, 'agent_id', None)
    if not agent_id:
        raise TokenError("Authentication required")
    return agent_id
