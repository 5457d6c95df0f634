"""
User administration (admin only).

Account creation rules (email format, password length, roles) live in
auth_service; this module adds the admin checks around them.
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from garage.exceptions import BusinessLogicError, Forbidden, NotFoundError, ValidationError
from garage.models import AppUser, Group, Invoice, UserRole
from garage.services import auth_service
from garage.services.auth_service import MIN_PASSWORD_LENGTH

logger = logging.getLogger(__name__)


def _require_admin(acting_user) -> None:
    if acting_user is None or not acting_user.is_admin:
        raise Forbidden('Non autorisé')


def _get_user_or_404(session: Session, user_id: int) -> AppUser:
    user = session.query(AppUser).filter(AppUser.id == user_id).first()
    if not user:
        raise NotFoundError(f'Utilisateur {user_id} introuvable')
    return user


def list_users(session: Session, acting_user) -> List[AppUser]:
    """All accounts, newest first."""
    _require_admin(acting_user)
    return session.query(AppUser).order_by(AppUser.created_at.desc(), AppUser.id.desc()).all()


def create_user(session: Session, acting_user, email: str, password: str, full_name: Optional[str] = None,
                role: str = UserRole.USER.value, group_id: Optional[int] = None) -> AppUser:
    _require_admin(acting_user)
    role = str(role or UserRole.USER.value).strip().upper()
    if group_id is not None:
        if isinstance(group_id, bool) or not str(group_id).isdigit():
            raise ValidationError('Groupe invalide')
        group_id = int(group_id)
        if not session.query(Group.id).filter(Group.id == group_id).first():
            raise NotFoundError(f'Groupe {group_id} introuvable')
    user = auth_service.create_user(
        session, email, password, full_name=(full_name or '').strip() or None, role=role, group_id=group_id
    )
    logger.info(f"[USER] {acting_user.email} created {user.email} (role={user.role})")
    return user


def delete_user(session: Session, acting_user, user_id: int) -> None:
    """
    Delete an account.

    Raises:
        BusinessLogicError: deleting one's own account, or an account that
            created invoices (invoices keep their author).
    """
    _require_admin(acting_user)
    if acting_user.id == user_id:
        raise BusinessLogicError('Vous ne pouvez pas supprimer votre propre compte')

    user = _get_user_or_404(session, user_id)
    if session.query(Invoice.id).filter(Invoice.created_by_id == user.id).first():
        raise BusinessLogicError('Impossible de supprimer cet utilisateur car il a créé des factures')

    email = user.email
    try:
        session.delete(user)
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info(f"[USER] {acting_user.email} deleted {email} (id={user_id})")


def update_user_password(session: Session, acting_user, user_id: int, new_password: str) -> AppUser:
    _require_admin(acting_user)
    if not new_password or len(new_password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f'Le mot de passe doit contenir au moins {MIN_PASSWORD_LENGTH} caractères')

    user = _get_user_or_404(session, user_id)
    user.set_password(new_password)
    session.commit()
    logger.info(f"[USER] Password reset for {user.email} by {acting_user.email}")
    return user
