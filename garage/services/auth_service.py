"""
Authentication service for user management.

Handles local account creation and password checks. Session handling lives
in the auth blueprint and middleware.
"""
import logging
import re

from sqlalchemy.orm import Session

from garage.exceptions import ValidationError
from garage.models import AppUser, UserRole

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')
MIN_PASSWORD_LENGTH = 6


def create_user(session: Session, email: str, password: str, full_name: str = None,
                role: str = UserRole.USER.value, group_id: int = None) -> AppUser:
    """
    Create a local user.

    Raises:
        ValidationError: invalid email, short password, unknown role or
            email already registered.
    """
    email = (email or '').strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise ValidationError('Email invalide. Utilisez le format : user@example.com')
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f'Le mot de passe doit contenir au moins {MIN_PASSWORD_LENGTH} caractères')
    if role not in {r.value for r in UserRole}:
        raise ValidationError('Rôle invalide (ADMIN ou USER)')

    if session.query(AppUser).filter_by(email=email).first():
        raise ValidationError('Un utilisateur avec cet email existe déjà')

    user = AppUser(email=email, full_name=full_name, role=role, group_id=group_id, active=True)
    user.set_password(password)
    session.add(user)
    session.commit()
    logger.info(f"Created user {email} (role={role})")
    return user


def authenticate(session: Session, email: str, password: str):
    """Return the active user matching the credentials, or None."""
    email = (email or '').strip().lower()
    user = session.query(AppUser).filter_by(email=email, active=True).first()
    if not user or not user.check_password(password or ''):
        logger.warning(f"Failed login for {email}")
        return None
    return user
