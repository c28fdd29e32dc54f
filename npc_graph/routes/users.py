from flask import Blueprint, current_app, jsonify

from npc_graph import db
from npc_graph.errors import ValidationError, get_or_404, handle_errors
from npc_graph.helpers import get_json_body, optional_text
from npc_graph.models import User, ROLES
from npc_graph.permissions import admin_required, get_current_user

users_bp = Blueprint('users', __name__, url_prefix='/api/users')


def _campaign_summary(campaign):
    return {'id': campaign.id, 'name': campaign.name, 'slug': campaign.slug}


@users_bp.route('', methods=['GET'])
@admin_required
@handle_errors('Failed to fetch users')
def list_users():
    users = User.query.order_by(User.created_at.desc(), User.id.desc()).all()
    result = []
    for user in users:
        data = user.to_dict()
        data['_count'] = {
            'editableCampaigns': len(user.editor_assignments),
            'createdCampaigns': len(user.created_campaigns),
        }
        result.append(data)
    return jsonify(result)


@users_bp.route('/<int:user_id>', methods=['GET'])
@admin_required
@handle_errors('Failed to fetch user')
def get_user(user_id):
    user = get_or_404(User, user_id, 'User not found')
    data = user.to_dict()
    data['editableCampaigns'] = [
        {'assignmentId': a.id, 'campaign': _campaign_summary(a.campaign)}
        for a in user.editor_assignments
    ]
    data['createdCampaigns'] = [_campaign_summary(c) for c in user.created_campaigns]
    return jsonify(data)


@users_bp.route('/<int:user_id>', methods=['PATCH'])
@admin_required
@handle_errors('Failed to update user')
def update_user(user_id):
    """Change a user's role. Admin is a flat role: any admin may promote or demote anyone."""
    current = get_current_user()
    data = get_json_body()
    role = data.get('role')
    if role and role not in ROLES:
        raise ValidationError('Invalid role. Must be viewer, editor, or admin')

    user = get_or_404(User, user_id, 'User not found')

    # There must always be at least one admin left
    if role and role != 'admin' and user.id == current.id:
        if User.query.filter_by(role='admin').count() <= 1:
            raise ValidationError('Cannot demote yourself - you are the only admin')

    if role and role != user.role:
        current_app.logger.info(f'User {user.id} role changed {user.role} -> {role} '
                                f'by admin {current.id}')
        user.role = role
    if 'name' in data:
        user.name = optional_text(data['name'], 'name')
    db.session.commit()
    return jsonify(user.to_dict())


@users_bp.route('/<int:user_id>', methods=['DELETE'])
@admin_required
@handle_errors('Failed to delete user')
def delete_user(user_id):
    current = get_current_user()
    if user_id == current.id:
        raise ValidationError('Cannot delete your own account')
    user = get_or_404(User, user_id, 'User not found')

    # Their campaigns survive with no creator; editor assignments go with them
    db.session.delete(user)
    db.session.commit()
    current_app.logger.info(f'User {user_id} deleted by admin {current.id}')
    return jsonify({'success': True})
