"""Group administration (admin only)."""
import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from garage.exceptions import Forbidden, NotFoundError, ValidationError
from garage.models import Group, AppUser, Invoice
from garage.signals import notify_visibility_change

logger = logging.getLogger(__name__)


def _require_admin(acting_user) -> None:
    if acting_user is None or not acting_user.is_admin:
        raise Forbidden('Non autorisé - seul un administrateur peut gérer les groupes')


def _get_group_or_404(session: Session, group_id: int) -> Group:
    group = session.query(Group).filter(Group.id == group_id).first()
    if not group:
        raise NotFoundError(f'Groupe {group_id} introuvable')
    return group


def _clean_name(name) -> str:
    name = name.strip() if isinstance(name, str) else ""
    if not name:
        raise ValidationError('Le nom du groupe est requis')
    if len(name) > 120:
        raise ValidationError('Nom du groupe trop long (120 caractères max.)')
    return name


def list_groups(session: Session, acting_user) -> List[Group]:
    _require_admin(acting_user)
    return session.query(Group).order_by(Group.name.asc()).all()


def create_group(session: Session, acting_user, name: str, description: Optional[str] = None) -> Group:
    _require_admin(acting_user)
    group = Group(name=_clean_name(name), description=(description or '').strip() or None)
    try:
        session.add(group)
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ValidationError(f'Un groupe nommé "{group.name}" existe déjà')
    logger.info(f"[GROUP] Created group {group.name} (id={group.id})")
    return group


def update_group(session: Session, acting_user, group_id: int, name: Optional[str] = None,
                 description: Optional[str] = None) -> Group:
    _require_admin(acting_user)
    group = _get_group_or_404(session, group_id)
    if name is not None:
        group.name = _clean_name(name)
    if description is not None:
        group.description = description.strip() or None
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ValidationError(f'Un groupe nommé "{name}" existe déjà')
    return group


def delete_group(session: Session, acting_user, group_id: int) -> None:
    """Delete a group; its members and the invoices stamped with it are detached first."""
    _require_admin(acting_user)
    group = _get_group_or_404(session, group_id)
    try:
        session.query(AppUser).filter(AppUser.group_id == group.id).update(
            {AppUser.group_id: None}, synchronize_session=False)
        session.query(Invoice).filter(Invoice.group_id == group.id).update(
            {Invoice.group_id: None}, synchronize_session=False)
        session.delete(group)
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info(f"[GROUP] Deleted group {group_id}")
    notify_visibility_change('group-delete')


def assign_user_to_group(session: Session, acting_user, user_id: int, group_id: Optional[int]) -> AppUser:
    """Move a user to a group (membership is exclusive); None removes them from their group."""
    _require_admin(acting_user)
    user = session.query(AppUser).filter(AppUser.id == user_id).first()
    if not user:
        raise NotFoundError(f'Utilisateur {user_id} introuvable')
    if group_id is not None:
        _get_group_or_404(session, group_id)
    user.group_id = group_id
    session.commit()
    logger.info(f"[GROUP] User {user_id} -> group {group_id}")
    notify_visibility_change('group-assign')
    return user
