"""
Auth Service - login, registration and token refresh for agents.
"""

import logging
from typing import Dict

from flask import current_app
from sqlalchemy import func
from sqlalchemy.orm import Session

from auth import create_access_token, hash_password, verify_password
from constants import DUPLICATE_AGENT_EMAIL_MESSAGE, INVALID_CREDENTIALS_MESSAGE
from database.models import Agent
from exceptions import AuthenticationError, DuplicateError
from validators import validate_registration_data, sanitize_string

logger = logging.getLogger(__name__)


class AuthService:

    def __init__(self, session: Session):
        self.session = session

    def _find_by_email(self, email: str):
        if not email:
            return None
        return self.session.query(Agent).filter(
            func.lower(Agent.email) == email.strip().lower()
        ).first()

    @staticmethod
    def _token_response(agent: Agent) -> Dict:
        return {
            'access_token': create_access_token(agent.id, agent.email),
            'token_type': 'Bearer',
            'expires_in': current_app.config['JWT_EXPIRATION_SECONDS'],
            'agent': agent.to_dict()
        }

    def login(self, email: str, password: str) -> Dict:
        agent = self._find_by_email(email)
        if not agent or not verify_password(agent.password_hash, password or ''):
            logger.warning("Failed login attempt")
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)
        if not agent.is_active:
            logger.warning(f"Login attempt for deactivated agent: {agent.id}")
            raise AuthenticationError("Account is deactivated")

        logger.info(f"Agent logged in: {agent.id}")
        return self._token_response(agent)

    def register(self, data: Dict) -> Dict:
        validate_registration_data(data)
        email = data['email'].strip().lower()
        if self._find_by_email(email):
            raise DuplicateError(DUPLICATE_AGENT_EMAIL_MESSAGE)

        agent = Agent(
            email=email,
            first_name=sanitize_string(data['first_name'], 100),
            last_name=sanitize_string(data['last_name'], 100),
            phone=data.get('phone') or None,
            language_preference=(data.get('language_preference') or 'DE').upper(),
            password_hash=hash_password(data['password']),
            is_active=True
        )
        self.session.add(agent)
        self.session.flush()

        logger.info(f"Registered agent: {agent.id}")
        return self._token_response(agent)

    def refresh_token(self, agent_id: str) -> Dict:
        agent = self.session.query(Agent).filter(Agent.id == agent_id).first()
        if not agent or not agent.is_active:
            raise AuthenticationError("Agent not found or deactivated")
        logger.debug(f"Refreshed token for agent: {agent.id}")
        return self._token_response(agent)

    def is_email_available(self, email: str) -> bool:
        return self._find_by_email(email) is None
