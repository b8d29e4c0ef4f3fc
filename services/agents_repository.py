"""
Agents Repository - profile management for the authenticated agent.
"""

import logging
from typing import Dict

from sqlalchemy import func
from sqlalchemy.orm import Session

from auth import hash_password, verify_password
from constants import LANGUAGE_PREFERENCES
from database.models import Agent, Client, Property, CallNote
from exceptions import AuthenticationError, NotFoundError, ValidationError
from validators import (
    validate_password_strength, validate_phone, validate_string_length, validate_enum,
    sanitize_string,
)

logger = logging.getLogger(__name__)


class AgentsRepository:
    """Repository for the current agent's own record."""

    PROFILE_FIELDS = ('first_name', 'last_name', 'phone', 'language_preference')

    def __init__(self, session: Session, agent_id: str):
        self.session = session
        self.agent_id = agent_id

    def _get_agent(self) -> Agent:
        agent = self.session.query(Agent).filter(Agent.id == self.agent_id).first()
        if not agent:
            raise NotFoundError('Agent', self.agent_id)
        return agent

    def get_profile(self) -> Dict:
        return self._get_agent().to_dict()

    def update_profile(self, data: Dict) -> Dict:
        """Update names, phone and language."""
        agent = self._get_agent()
        errors = {}

        for field in ('first_name', 'last_name'):
            if field in data:
                is_valid, error = validate_string_length(data[field] or '', 1, 100)
                if not is_valid:
                    errors[field] = error
        if data.get('phone'):
            is_valid, error = validate_phone(data['phone'])
            if not is_valid:
                errors['phone'] = error
        if 'language_preference' in data:
            is_valid, error = validate_enum(data['language_preference'], LANGUAGE_PREFERENCES, 'Language')
            if not is_valid:
                errors['language_preference'] = error
        if errors:
            raise ValidationError("Validation failed", errors=errors)

        for field in self.PROFILE_FIELDS:
            if field in data:
                value = data[field]
                if field == 'language_preference':
                    value = value.upper()
                elif isinstance(value, str):
                    value = sanitize_string(value) or None
                setattr(agent, field, value)

        self.session.flush()
        logger.info(f"Updated agent profile: {agent.id}")
        return agent.to_dict()

    def change_password(self, current_password: str, new_password: str) -> bool:
        agent = self._get_agent()
        if not verify_password(agent.password_hash, current_password or ''):
            raise AuthenticationError("Current password is incorrect")

        is_valid, error = validate_password_strength(new_password)
        if not is_valid:
            raise ValidationError(error, field='new_password')

        agent.password_hash = hash_password(new_password)
        self.session.flush()
        logger.info(f"Password changed for agent: {agent.id}")
        return True

    def update_language(self, language: str) -> Dict:
        is_valid, error = validate_enum(language, LANGUAGE_PREFERENCES, 'Language')
        if not is_valid:
            raise ValidationError(error, field='language_preference')

        agent = self._get_agent()
        agent.language_preference = language.upper()
        self.session.flush()
        logger.info(f"Language set to {agent.language_preference} for agent: {agent.id}")
        return agent.to_dict()

    def deactivate(self) -> bool:
        agent = self._get_agent()
        agent.is_active = False
        self.session.flush()
        logger.info(f"Deactivated agent: {agent.id}")
        return True

    def get_stats(self) -> Dict:
        def count(model):
            return self.session.query(func.count(model.id)).filter(
                model.agent_id == self.agent_id
            ).scalar() or 0

        return {
            'total_clients': count(Client),
            'total_properties': count(Property),
            'total_call_notes': count(CallNote)
        }
