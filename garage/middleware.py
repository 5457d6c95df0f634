"""Middleware for authentication context."""
from functools import wraps
from flask import session, g, jsonify, current_app
from garage.database import get_session
from garage.models import AppUser


def load_current_user():
    """
    Load current user into g (Flask's per-request global).

    Called before each request. Sets g.user (AppUser or None) from the
    user_id stored in the session.
    """
    g.user = None

    user_id = session.get('user_id')
    if not user_id:
        return

    try:
        db_session = get_session()
        user = db_session.query(AppUser).filter_by(id=user_id, active=True).first()
    except Exception as e:
        current_app.logger.error(f"Error in load_current_user: {e}")
        return

    if user:
        g.user = user
    else:
        # Deactivated or deleted account: drop the stale session
        session.pop('user_id', None)


def require_login(f):
    """
    Decorator: Require user to be logged in.

    JSON endpoints answer 401 instead of redirecting.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('user') is None:
            return jsonify({'status': 'error', 'message': 'Authentification requise'}), 401
        return f(*args, **kwargs)
    return decorated_function


def require_admin(f):
    """
    Decorator: Require the ADMIN role.

    Must be used AFTER require_login.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not g.user.is_admin:
            return jsonify({'status': 'error', 'message': 'Non autorisé'}), 403
        return f(*args, **kwargs)
    return decorated_function
