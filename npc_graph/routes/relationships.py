from flask import Blueprint, jsonify
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from npc_graph import db
from npc_graph.errors import Conflict, ValidationError, get_or_404, handle_errors
from npc_graph.helpers import (get_json_body, int_arg, optional_text, parse_id, parse_strength,
                               require_type)
from npc_graph.models import Character, Relationship
from npc_graph.permissions import get_current_user, require_entity_edit_access

relationships_bp = Blueprint('relationships', __name__, url_prefix='/api/relationships')

DUPLICATE_ERROR = 'A relationship of this type already exists between these characters'


def _require_edit_access(user, *characters):
    # Every campaign touched by the relationship must be editable
    for campaign_id in {c.campaign_id for c in characters}:
        require_entity_edit_access(user, campaign_id)


@relationships_bp.route('', methods=['GET'])
@handle_errors('Failed to fetch relationships')
def list_relationships():
    """All Character → Character relationships.

    ?npcId=       only relationships touching that character (either side)
    ?campaignId=  only relationships whose source character is in the campaign
    """
    query = Relationship.query
    npc_id = int_arg('npcId')
    if npc_id is not None:
        query = query.filter(or_(Relationship.from_npc_id == npc_id,
                                 Relationship.to_npc_id == npc_id))
    campaign_id = int_arg('campaignId')
    if campaign_id is not None:
        query = query.join(Character, Relationship.from_npc_id == Character.id) \
                     .filter(Character.campaign_id == campaign_id)
    relationships = query.order_by(Relationship.id).all()
    return jsonify([r.to_dict(include_endpoints=True) for r in relationships])


@relationships_bp.route('', methods=['POST'])
@handle_errors('Failed to create relationship')
def create_relationship():
    user = get_current_user()
    data = get_json_body()

    if data.get('fromNpcId') in (None, '') or data.get('toNpcId') in (None, '') \
            or not data.get('type'):
        raise ValidationError('fromNpcId, toNpcId, and type are required')
    from_id = parse_id(data['fromNpcId'], 'fromNpcId')
    to_id = parse_id(data['toNpcId'], 'toNpcId')
    strength = parse_strength(data.get('strength'))
    rel_type = require_type(data)
    description = optional_text(data.get('description'), 'description')

    from_npc = get_or_404(Character, from_id, 'Character not found')
    to_npc = get_or_404(Character, to_id, 'Character not found')
    _require_edit_access(user, from_npc, to_npc)

    # Same pair with a different type is allowed; the exact triple is not
    if Relationship.query.filter_by(from_npc_id=from_id, to_npc_id=to_id, type=rel_type).first():
        raise Conflict(DUPLICATE_ERROR)

    rel = Relationship(from_npc_id=from_id, to_npc_id=to_id, type=rel_type,
                       description=description, strength=strength)
    db.session.add(rel)
    try:
        db.session.commit()
    except IntegrityError:
        # A concurrent request inserted the same triple first
        db.session.rollback()
        raise Conflict(DUPLICATE_ERROR)
    return jsonify(rel.to_dict(include_endpoints=True)), 201


@relationships_bp.route('/<int:relationship_id>', methods=['PUT'])
@handle_errors('Failed to update relationship')
def update_relationship(relationship_id):
    user = get_current_user()
    rel = get_or_404(Relationship, relationship_id, 'Relationship not found')
    _require_edit_access(user, rel.from_npc, rel.to_npc)
    data = get_json_body()

    # Retyping only; fromNpcId/toNpcId in the body are ignored
    if 'type' in data:
        require_type(data)
        if data['type'] != rel.type and Relationship.query.filter_by(
                from_npc_id=rel.from_npc_id, to_npc_id=rel.to_npc_id, type=data['type']).first():
            raise Conflict(DUPLICATE_ERROR)
        rel.type = data['type']
    if 'description' in data:
        rel.description = optional_text(data['description'], 'description')
    if 'strength' in data:
        rel.strength = parse_strength(data['strength'])

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict(DUPLICATE_ERROR)
    return jsonify(rel.to_dict(include_endpoints=True))


@relationships_bp.route('/<int:relationship_id>', methods=['DELETE'])
@handle_errors('Failed to delete relationship')
def delete_relationship(relationship_id):
    user = get_current_user()
    rel = get_or_404(Relationship, relationship_id, 'Relationship not found')
    _require_edit_access(user, rel.from_npc, rel.to_npc)
    db.session.delete(rel)
    db.session.commit()
    return jsonify({'success': True})
