"""Crew → Character and CrewMember → Character relationships.

Both resources behave the same way apart from the owning side, so the views
are shared and driven by RELATIONSHIP_CONFIG. Update and delete address the
row with ?id=.
"""

from flask import Blueprint, jsonify, request
from sqlalchemy.exc import IntegrityError

from npc_graph import db
from npc_graph.errors import Conflict, NotFound, ValidationError, get_or_404, handle_errors
from npc_graph.helpers import (get_json_body, int_arg, optional_text, parse_id, parse_strength,
                               require_type)
from npc_graph.models import (Character, Crew, CrewMember, CrewMemberRelationship,
                              CrewRelationship)
from npc_graph.permissions import get_current_user, require_entity_edit_access

crew_relationships_bp = Blueprint('crew_relationships', __name__, url_prefix='/api')

RELATIONSHIP_CONFIG = {
    'crew-relationships': {
        'model': CrewRelationship,
        'owner_model': Crew,
        'owner_key': 'crewId',
        'owner_attr': 'crew_id',
        'owner_missing': 'Crew not found',
        'label': 'Crew relationship',
        'campaign_of': lambda crew: crew.campaign_id,
        'duplicate_error': None,
    },
    'crew-member-relationships': {
        'model': CrewMemberRelationship,
        'owner_model': CrewMember,
        'owner_key': 'crewMemberId',
        'owner_attr': 'crew_member_id',
        'owner_missing': 'Crew member not found',
        'label': 'Crew member relationship',
        'campaign_of': lambda member: member.crew.campaign_id,
        # One connection per (crew member, character) pair
        'duplicate_error': 'A connection already exists between this crew member and character',
    },
}

KIND = '<any("crew-relationships", "crew-member-relationships"):kind>'


def _row_from_query(cfg):
    """The relationship addressed by ?id=, plus its owner."""
    if not request.args.get('id', '').strip():
        raise ValidationError('ID is required')
    rel = get_or_404(cfg['model'], parse_id(request.args['id'], 'id'), f'{cfg["label"]} not found')
    owner = db.session.get(cfg['owner_model'], getattr(rel, cfg['owner_attr']))
    return rel, owner


@crew_relationships_bp.route(f'/{KIND}', methods=['GET'])
@handle_errors('Failed to fetch relationships')
def list_relationships(kind):
    cfg = RELATIONSHIP_CONFIG[kind]
    model = cfg['model']
    query = model.query
    owner_id = int_arg(cfg['owner_key'])
    if owner_id is not None:
        query = query.filter(getattr(model, cfg['owner_attr']) == owner_id)
    to_npc_id = int_arg('toNpcId')
    if to_npc_id is not None:
        query = query.filter(model.to_npc_id == to_npc_id)
    return jsonify([r.to_dict(include_endpoints=True) for r in query.order_by(model.id).all()])


@crew_relationships_bp.route(f'/{KIND}', methods=['POST'])
@handle_errors('Failed to create relationship')
def create_relationship(kind):
    cfg = RELATIONSHIP_CONFIG[kind]
    user = get_current_user()
    data = get_json_body()

    owner_key = cfg['owner_key']
    if data.get(owner_key) in (None, '') or data.get('toNpcId') in (None, '') \
            or not data.get('type'):
        raise ValidationError(f'{owner_key}, toNpcId, and type are required')
    owner_id = parse_id(data[owner_key], owner_key)
    to_npc_id = parse_id(data['toNpcId'], 'toNpcId')
    strength = parse_strength(data.get('strength'))
    rel_type = require_type(data)
    description = optional_text(data.get('description'), 'description')

    owner = db.session.get(cfg['owner_model'], owner_id)
    if owner is None:
        raise NotFound(cfg['owner_missing'])
    get_or_404(Character, to_npc_id, 'Character not found')
    require_entity_edit_access(user, cfg['campaign_of'](owner))

    model = cfg['model']
    if cfg['duplicate_error'] and model.query.filter(
            getattr(model, cfg['owner_attr']) == owner_id,
            model.to_npc_id == to_npc_id).first():
        raise Conflict(cfg['duplicate_error'])

    rel = model(to_npc_id=to_npc_id, type=rel_type, description=description, strength=strength)
    setattr(rel, cfg['owner_attr'], owner_id)
    db.session.add(rel)
    try:
        db.session.commit()
    except IntegrityError:
        # Lost a race with an identical insert
        db.session.rollback()
        raise Conflict(cfg['duplicate_error'] or 'Relationship already exists')
    return jsonify(rel.to_dict(include_endpoints=True)), 201


@crew_relationships_bp.route(f'/{KIND}', methods=['PUT'])
@handle_errors('Failed to update relationship')
def update_relationship(kind):
    cfg = RELATIONSHIP_CONFIG[kind]
    user = get_current_user()
    rel, owner = _row_from_query(cfg)
    require_entity_edit_access(user, cfg['campaign_of'](owner))
    data = get_json_body()

    # Endpoints are fixed; only the kind of connection can change
    if 'type' in data:
        require_type(data)
        rel.type = data['type']
    if 'description' in data:
        rel.description = optional_text(data['description'], 'description')
    if 'strength' in data:
        rel.strength = parse_strength(data['strength'])
    db.session.commit()
    return jsonify(rel.to_dict(include_endpoints=True))


@crew_relationships_bp.route(f'/{KIND}', methods=['DELETE'])
@handle_errors('Failed to delete relationship')
def delete_relationship(kind):
    cfg = RELATIONSHIP_CONFIG[kind]
    user = get_current_user()
    rel, owner = _row_from_query(cfg)
    require_entity_edit_access(user, cfg['campaign_of'](owner))
    db.session.delete(rel)
    db.session.commit()
    return jsonify({'success': True})
