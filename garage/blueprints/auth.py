"""
Authentication blueprint.
Session-cookie login for the JSON API: stores user_id in the Flask session.
"""
import logging

from flask import Blueprint, request, session, g, jsonify
from flask_wtf.csrf import generate_csrf

from garage.database import get_session
from garage.middleware import require_login
from garage.services.auth_service import authenticate

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/auth')


def serialize_user(user):
    return {
        'id': user.id,
        'email': user.email,
        'full_name': user.full_name,
        'role': user.role,
        'group_id': user.group_id,
    }


@auth_bp.route('/login', methods=['POST'])
def login():
    """Log in with email + password (JSON or form body)."""
    data = request.get_json(silent=True) or request.form
    email = data.get('email', '')
    password = data.get('password', '')

    user = authenticate(get_session(), email, password)
    if not user:
        return jsonify({'status': 'error', 'message': 'Email ou mot de passe incorrect'}), 401

    session.clear()
    session['user_id'] = user.id
    session.permanent = True
    logger.info(f"User {user.id} logged in")
    return jsonify({'status': 'ok', 'user': serialize_user(user)})


@auth_bp.route('/logout', methods=['POST'])
def logout():
    session.clear()
    return jsonify({'status': 'ok'})


@auth_bp.route('/me')
@require_login
def me():
    return jsonify(serialize_user(g.user))


@auth_bp.route('/csrf-token')
def csrf_token():
    """Token to send back in the X-CSRFToken header on mutating requests."""
    return jsonify({'csrf_token': generate_csrf()})
