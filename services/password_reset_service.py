"""
Password Reset Service - single-use, time-limited reset tokens.

Only the SHA-256 digest of a token is stored; the raw value exists solely in
the emailed link. Requests for unknown emails are indistinguishable from real
ones to the caller.
"""

import hashlib
import logging
import secrets
import smtplib
from datetime import datetime, timedelta
from typing import Dict, Mapping, Optional

from flask import current_app
from sqlalchemy import func
from sqlalchemy.orm import Session

from auth import hash_password
from constants import PASSWORD_RESET_GENERIC_MESSAGE
from database.models import Agent, PasswordResetToken
from exceptions import ExpiredTokenError, InvalidTokenError, RateLimitExceeded, ValidationError
from services.email_service import EmailService
from validators import validate_password_strength

logger = logging.getLogger(__name__)

CLEANUP_RETENTION_HOURS = 24


def hash_token(raw_token: str) -> str:
    return hashlib.sha256(raw_token.encode('utf-8')).hexdigest()


def mask_email(email: str) -> str:
    """max.mustermann@realestate.de -> ma***@realestate.de"""
    if not email or '@' not in email:
        return '***'
    local, domain = email.split('@', 1)
    if len(local) <= 2:
        return f"***@{domain}"
    return f"{local[:2]}***@{domain}"


class PasswordResetService:

    def __init__(self, session: Session, config: Optional[Mapping] = None,
                 email_service: Optional[EmailService] = None):
        self.session = session
        self.config = config if config is not None else current_app.config
        self.email_service = email_service or EmailService(self.config)
        self.expiry_minutes = int(self.config.get('PASSWORD_RESET_EXPIRY_MINUTES', 15))
        self.max_per_hour = int(self.config.get('PASSWORD_RESET_MAX_PER_HOUR', 3))

    # =========================================================================
    # REQUEST
    # =========================================================================

    def request_password_reset(self, email: str, ip_address: str = None) -> Dict:
        """
        Issue a reset token and email the link.

        Returns the same message whether or not the email belongs to an agent.

        Raises:
            RateLimitExceeded: if the agent already requested too many resets
                within the last hour
        """
        response = {'message': PASSWORD_RESET_GENERIC_MESSAGE}
        email = (email or '').strip().lower()

        agent = None
        if email:
            agent = self.session.query(Agent).filter(func.lower(Agent.email) == email).first()
        if not agent or not agent.is_active:
            logger.info("Password reset requested for unknown or inactive account")
            return response

        now = datetime.utcnow()
        recent = self.session.query(func.count(PasswordResetToken.id)).filter(
            PasswordResetToken.agent_id == agent.id,
            PasswordResetToken.created_at >= now - timedelta(hours=1)
        ).scalar()
        if recent >= self.max_per_hour:
            logger.warning(f"Password reset rate limit hit for agent {agent.id}")
            raise RateLimitExceeded("Too many password reset requests. Please try again later.")

        raw_token = secrets.token_hex(32)
        token = PasswordResetToken(
            agent_id=agent.id,
            token_hash=hash_token(raw_token),
            expires_at=now + timedelta(minutes=self.expiry_minutes),
            ip_address=ip_address,
            created_at=now
        )
        self.session.add(token)
        self.session.flush()
        logger.info(f"Created password reset token {token.id} for agent {agent.id}")

        try:
            self.email_service.send_password_reset_email(
                agent.email, raw_token, agent.language_preference, agent.first_name
            )
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send password reset email to agent {agent.id}: {e}")

        return response

    # =========================================================================
    # VALIDATE / RESET
    # =========================================================================

    def _find_unused(self, raw_token: str) -> PasswordResetToken:
        if not raw_token:
            raise InvalidTokenError("Invalid or already used reset token")
        token = self.session.query(PasswordResetToken).filter(
            PasswordResetToken.token_hash == hash_token(raw_token),
            PasswordResetToken.used.is_(False)
        ).first()
        if not token:
            raise InvalidTokenError("Invalid or already used reset token")
        if token.is_expired():
            raise ExpiredTokenError("Reset token has expired")
        return token

    def validate_reset_token(self, raw_token: str) -> Dict:
        token = self._find_unused(raw_token)
        agent = self.session.query(Agent).filter(Agent.id == token.agent_id).first()
        return {
            'valid': True,
            'masked_email': mask_email(agent.email if agent else '')
        }

    def reset_password(self, raw_token: str, new_password: str) -> Dict:
        is_valid, error = validate_password_strength(new_password)
        if not is_valid:
            raise ValidationError(error, field='new_password')

        token = self._find_unused(raw_token)
        agent = self.session.query(Agent).filter(Agent.id == token.agent_id).first()
        if not agent:
            raise InvalidTokenError("Invalid or already used reset token")

        now = datetime.utcnow()
        agent.password_hash = hash_password(new_password)
        agent.updated_at = now
        token.used = True
        token.used_at = now

        # Any other outstanding link for this agent is void from now on
        self.session.query(PasswordResetToken).filter(
            PasswordResetToken.agent_id == agent.id,
            PasswordResetToken.id != token.id,
            PasswordResetToken.used.is_(False)
        ).update({'used': True, 'used_at': now}, synchronize_session=False)
        self.session.flush()

        logger.info(f"Password reset completed for agent {agent.id}")
        return {'message': 'Password has been reset successfully'}

    # =========================================================================
    # MAINTENANCE
    # =========================================================================

    def cleanup_expired_tokens(self) -> int:
        cutoff = datetime.utcnow() - timedelta(hours=CLEANUP_RETENTION_HOURS)
        deleted = self.session.query(PasswordResetToken).filter(
            PasswordResetToken.expires_at < cutoff
        ).delete(synchronize_session=False)
        if deleted:
            logger.info(f"Deleted {deleted} expired password reset tokens")
        return deleted
