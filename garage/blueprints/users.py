"""Users blueprint - admin management of staff accounts."""
from flask import Blueprint, request, g, jsonify

from garage.database import get_session
from garage.middleware import require_login, require_admin
from garage.services import user_service

users_bp = Blueprint('users', __name__, url_prefix='/api/users')


def serialize_user(user):
    return {
        'id': user.id,
        'email': user.email,
        'full_name': user.full_name,
        'role': user.role,
        'active': user.active,
        'group_id': user.group_id,
        'group_name': user.group.name if user.group else None,
        'created_at': user.created_at.isoformat() if user.created_at else None,
    }


@users_bp.route('/', methods=['GET'])
@require_login
@require_admin
def list_users():
    users = user_service.list_users(get_session(), g.user)
    return jsonify([serialize_user(user) for user in users])


@users_bp.route('/', methods=['POST'])
@require_login
@require_admin
def create_user():
    """Body: {"email", "password", "full_name", "role": "ADMIN" | "USER", "group_id"}."""
    data = request.get_json(silent=True) or {}
    user = user_service.create_user(
        get_session(), g.user,
        data.get('email'), data.get('password'),
        full_name=data.get('full_name', data.get('name')),
        role=data.get('role') or 'USER',
        group_id=data.get('group_id')
    )
    return jsonify(serialize_user(user)), 201


@users_bp.route('/<int:user_id>', methods=['DELETE'])
@require_login
@require_admin
def delete_user(user_id):
    user_service.delete_user(get_session(), g.user, user_id)
    return jsonify({'status': 'ok'})


@users_bp.route('/<int:user_id>/password', methods=['PUT'])
@require_login
@require_admin
def update_password(user_id):
    data = request.get_json(silent=True) or {}
    user_service.update_user_password(get_session(), g.user, user_id, data.get('password'))
    return jsonify({'status': 'ok'})
