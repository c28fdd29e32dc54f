from flask import Blueprint, jsonify, request
from sqlalchemy import and_, or_

from npc_graph import db
from npc_graph.errors import NotFound, ValidationError, get_or_404, handle_errors
from npc_graph.helpers import (get_json_body, int_arg, optional_text, parse_id, parse_strength,
                               require_type)
from npc_graph.models import ENTITY_MODELS, ENTITY_TYPES, UniversalRelationship, get_entity
from npc_graph.permissions import get_current_user, require_entity_edit_access

universal_relationships_bp = Blueprint('universal_relationships', __name__,
                                       url_prefix='/api/universal-relationships')

REQUIRED_FIELDS = ('fromEntityId', 'fromEntityType', 'toEntityId', 'toEntityType', 'type')


def _entity_type(value, field):
    if not isinstance(value, str) or value not in ENTITY_MODELS:
        raise ValidationError(f'{field} must be one of: {", ".join(ENTITY_TYPES)}')
    return value


def _endpoint(entity_type, entity_id):
    entity = get_entity(entity_type, entity_id)
    if entity is None:
        raise NotFound(f'{entity_type.capitalize()} not found')
    return entity


def _require_edit_access(user, rel):
    """Edit access to the campaign of each endpoint that still exists."""
    campaign_ids = set()
    for entity_type, entity_id in ((rel.from_entity_type, rel.from_entity_id),
                                   (rel.to_entity_type, rel.to_entity_id)):
        entity = get_entity(entity_type, entity_id)
        campaign_ids.add(entity.campaign_id if entity is not None else None)
    for campaign_id in campaign_ids:
        require_entity_edit_access(user, campaign_id)


@universal_relationships_bp.route('', methods=['GET'])
@handle_errors('Failed to fetch relationships')
def list_relationships():
    """Newest first. ?entityId= matches either side; ?entityType= pins the matched side's type.

    Character and organisation ids come from separate tables and can collide,
    so clients that know the type should always pass entityType as well.
    """
    UR = UniversalRelationship
    query = UR.query
    entity_id = int_arg('entityId')
    if entity_id is not None:
        entity_type = request.args.get('entityType', '').strip() or None
        if entity_type is None:
            query = query.filter(or_(UR.from_entity_id == entity_id, UR.to_entity_id == entity_id))
        else:
            _entity_type(entity_type, 'entityType')
            query = query.filter(or_(
                and_(UR.from_entity_type == entity_type, UR.from_entity_id == entity_id),
                and_(UR.to_entity_type == entity_type, UR.to_entity_id == entity_id),
            ))
    relationships = query.order_by(UR.created_at.desc(), UR.id.desc()).all()
    return jsonify([r.to_dict() for r in relationships])


@universal_relationships_bp.route('', methods=['POST'])
@handle_errors('Failed to create relationship')
def create_relationship():
    user = get_current_user()
    data = get_json_body()

    if any(data.get(field) in (None, '') for field in REQUIRED_FIELDS):
        raise ValidationError(
            'fromEntityId, fromEntityType, toEntityId, toEntityType, and type are required')
    from_type = _entity_type(data['fromEntityType'], 'fromEntityType')
    to_type = _entity_type(data['toEntityType'], 'toEntityType')
    from_id = parse_id(data['fromEntityId'], 'fromEntityId')
    to_id = parse_id(data['toEntityId'], 'toEntityId')
    strength = parse_strength(data.get('strength'))

    from_entity = _endpoint(from_type, from_id)
    to_entity = _endpoint(to_type, to_id)
    for campaign_id in {from_entity.campaign_id, to_entity.campaign_id}:
        require_entity_edit_access(user, campaign_id)

    # No duplicate check here, unlike /api/relationships: repeated rows are accepted
    rel = UniversalRelationship(
        from_entity_id=from_id,
        from_entity_type=from_type,
        to_entity_id=to_id,
        to_entity_type=to_type,
        type=require_type(data),
        description=optional_text(data.get('description'), 'description'),
        strength=strength,
    )
    db.session.add(rel)
    db.session.commit()
    return jsonify(rel.to_dict()), 201


@universal_relationships_bp.route('/<int:relationship_id>', methods=['GET'])
@handle_errors('Failed to fetch relationship')
def get_relationship(relationship_id):
    rel = get_or_404(UniversalRelationship, relationship_id, 'Relationship not found')
    return jsonify(rel.to_dict())


@universal_relationships_bp.route('/<int:relationship_id>', methods=['PUT'])
@handle_errors('Failed to update relationship')
def update_relationship(relationship_id):
    user = get_current_user()
    rel = get_or_404(UniversalRelationship, relationship_id, 'Relationship not found')
    _require_edit_access(user, rel)
    data = get_json_body()

    # Only type/description/strength; endpoint fields in the body are ignored
    if 'type' in data:
        require_type(data)
        rel.type = data['type']
    if 'description' in data:
        rel.description = optional_text(data['description'], 'description')
    if 'strength' in data:
        rel.strength = parse_strength(data['strength'])
    db.session.commit()
    return jsonify(rel.to_dict())


@universal_relationships_bp.route('/<int:relationship_id>', methods=['DELETE'])
@handle_errors('Failed to delete relationship')
def delete_relationship(relationship_id):
    user = get_current_user()
    rel = get_or_404(UniversalRelationship, relationship_id, 'Relationship not found')
    _require_edit_access(user, rel)
    db.session.delete(rel)
    db.session.commit()
    return jsonify({'success': True})
