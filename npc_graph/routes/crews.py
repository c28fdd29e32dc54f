from flask import Blueprint, jsonify

from npc_graph import db
from npc_graph.errors import ValidationError, get_or_404, handle_errors
from npc_graph.helpers import (TEXT, apply_fields, get_json_body, int_arg, require_name,
                               resolve_campaign_id)
from npc_graph.models import Crew, CrewMember
from npc_graph.permissions import get_current_user, require_entity_edit_access

# Crews and their members share one blueprint: /api/crews/... and /api/crew-members/...
crews_bp = Blueprint('crews', __name__, url_prefix='/api')

CREW_FIELDS = {
    'description': ('description', TEXT),
    'imageUrl': ('image_url', TEXT),
}

MEMBER_FIELDS = {
    'title': ('title', TEXT),
    'description': ('description', TEXT),
    'imageUrl': ('image_url', TEXT),
}


def _new_member(data):
    member = CrewMember(name=require_name(data, 'Member name is required'))
    apply_fields(member, data, MEMBER_FIELDS)
    return member


# ── Crews ─────────────────────────────────────────────────────────────────────

@crews_bp.route('/crews', methods=['GET'])
@handle_errors('Failed to fetch crews')
def list_crews():
    query = Crew.query
    campaign_id = int_arg('campaignId')
    if campaign_id is not None:
        query = query.filter_by(campaign_id=campaign_id)
    crews = query.order_by(Crew.name).all()
    return jsonify([c.to_dict(include_relationships=True) for c in crews])


@crews_bp.route('/crews', methods=['POST'])
@handle_errors('Failed to create crew')
def create_crew():
    user = get_current_user()
    data = get_json_body()
    name = require_name(data)
    campaign_id = resolve_campaign_id(data.get('campaignId'))
    require_entity_edit_access(user, campaign_id)

    members = data.get('members') or []
    if not isinstance(members, list) or not all(isinstance(m, dict) for m in members):
        raise ValidationError('members must be a list of objects')

    crew = Crew(name=name, campaign_id=campaign_id)
    apply_fields(crew, data, CREW_FIELDS)
    crew.members.extend(_new_member(m) for m in members)
    db.session.add(crew)
    db.session.commit()
    return jsonify(crew.to_dict()), 201


@crews_bp.route('/crews/<int:crew_id>', methods=['GET'])
@handle_errors('Failed to fetch crew')
def get_crew(crew_id):
    crew = get_or_404(Crew, crew_id, 'Crew not found')
    return jsonify(crew.to_dict(include_relationships=True))


@crews_bp.route('/crews/<int:crew_id>', methods=['PUT'])
@handle_errors('Failed to update crew')
def update_crew(crew_id):
    user = get_current_user()
    crew = get_or_404(Crew, crew_id, 'Crew not found')
    require_entity_edit_access(user, crew.campaign_id)
    data = get_json_body()

    if 'name' in data:
        crew.name = require_name(data)
    apply_fields(crew, data, CREW_FIELDS)
    db.session.commit()
    return jsonify(crew.to_dict())


@crews_bp.route('/crews/<int:crew_id>', methods=['DELETE'])
@handle_errors('Failed to delete crew')
def delete_crew(crew_id):
    user = get_current_user()
    crew = get_or_404(Crew, crew_id, 'Crew not found')
    require_entity_edit_access(user, crew.campaign_id)
    db.session.delete(crew)
    db.session.commit()
    return jsonify({'success': True})


@crews_bp.route('/crews/<int:crew_id>/members', methods=['POST'])
@handle_errors('Failed to add crew member')
def add_crew_member(crew_id):
    user = get_current_user()
    crew = get_or_404(Crew, crew_id, 'Crew not found')
    require_entity_edit_access(user, crew.campaign_id)

    member = _new_member(get_json_body())
    crew.members.append(member)
    db.session.commit()
    return jsonify(member.to_dict()), 201


# ── Crew members ──────────────────────────────────────────────────────────────

@crews_bp.route('/crew-members/<int:member_id>', methods=['GET'])
@handle_errors('Failed to fetch crew member')
def get_crew_member(member_id):
    member = get_or_404(CrewMember, member_id, 'Crew member not found')
    data = member.to_dict(include_relationships=True)
    data['crew'] = member.crew.to_dict(include_members=False)
    return jsonify(data)


@crews_bp.route('/crew-members/<int:member_id>', methods=['PUT'])
@handle_errors('Failed to update crew member')
def update_crew_member(member_id):
    user = get_current_user()
    member = get_or_404(CrewMember, member_id, 'Crew member not found')
    require_entity_edit_access(user, member.crew.campaign_id)
    data = get_json_body()

    if 'name' in data:
        member.name = require_name(data)
    apply_fields(member, data, MEMBER_FIELDS)
    db.session.commit()
    return jsonify(member.to_dict())


@crews_bp.route('/crew-members/<int:member_id>', methods=['DELETE'])
@handle_errors('Failed to delete crew member')
def delete_crew_member(member_id):
    user = get_current_user()
    member = get_or_404(CrewMember, member_id, 'Crew member not found')
    require_entity_edit_access(user, member.crew.campaign_id)
    db.session.delete(member)
    db.session.commit()
    return jsonify({'success': True})
