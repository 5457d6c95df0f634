"""Groups blueprint - admin management of collaborative groups."""
from flask import Blueprint, request, g, jsonify

from garage.database import get_session
from garage.middleware import require_login, require_admin
from garage.services import group_service

groups_bp = Blueprint('groups', __name__, url_prefix='/api/groups')


def serialize_group(group):
    return {
        'id': group.id,
        'name': group.name,
        'description': group.description,
        'member_ids': [member.id for member in group.members],
    }


@groups_bp.route('/', methods=['GET'])
@require_login
@require_admin
def list_groups():
    groups = group_service.list_groups(get_session(), g.user)
    return jsonify([serialize_group(group) for group in groups])


@groups_bp.route('/', methods=['POST'])
@require_login
@require_admin
def create_group():
    data = request.get_json(silent=True) or {}
    group = group_service.create_group(get_session(), g.user, data.get('name'), data.get('description'))
    return jsonify(serialize_group(group)), 201


@groups_bp.route('/<int:group_id>', methods=['PUT'])
@require_login
@require_admin
def update_group(group_id):
    data = request.get_json(silent=True) or {}
    group = group_service.update_group(
        get_session(), g.user, group_id, name=data.get('name'), description=data.get('description')
    )
    return jsonify(serialize_group(group))


@groups_bp.route('/<int:group_id>', methods=['DELETE'])
@require_login
@require_admin
def delete_group(group_id):
    group_service.delete_group(get_session(), g.user, group_id)
    return jsonify({'status': 'ok'})


@groups_bp.route('/members/<int:user_id>', methods=['PUT'])
@require_login
@require_admin
def assign_member(user_id):
    """Body: {"group_id": <id> | null}."""
    data = request.get_json(silent=True) or {}
    user = group_service.assign_user_to_group(get_session(), g.user, user_id, data.get('group_id'))
    return jsonify({'id': user.id, 'group_id': user.group_id})
