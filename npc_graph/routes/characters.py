from flask import Blueprint, current_app, jsonify

from npc_graph import db
from npc_graph.errors import NotFound, ValidationError, get_or_404, handle_errors
from npc_graph.helpers import (NUMBER, TEXT, apply_fields, get_json_body, int_arg, join_tags,
                               parse_id, require_name, resolve_campaign_id)
from npc_graph.models import (Character, Organisation, CHARACTER_STATUSES,
                              delete_universal_relationships)
from npc_graph.permissions import get_current_user, require_entity_edit_access

characters_bp = Blueprint('characters', __name__, url_prefix='/api/characters')

# JSON key → (model attribute, kind) for the plain fields a client may set
CHARACTER_FIELDS = {
    'title': ('title', TEXT),
    'description': ('description', TEXT),
    'imageUrl': ('image_url', TEXT),
    'faction': ('faction', TEXT),
    'location': ('location', TEXT),
    'status': ('status', TEXT),
    'tags': ('tags', TEXT),
    'posX': ('pos_x', NUMBER),
    'posY': ('pos_y', NUMBER),
}


def _clean_character_data(data):
    """Validate and normalise the optional character fields in place."""
    if 'status' in data:
        if data['status'] in (None, ''):
            data['status'] = 'alive'
        elif data['status'] not in CHARACTER_STATUSES:
            raise ValidationError(f'Invalid status. Must be one of: {", ".join(CHARACTER_STATUSES)}')
    if 'tags' in data:
        data['tags'] = join_tags(data['tags'])
    return data


def _get_organisations(user, ids):
    """Organisations to link to a character. Membership changes the organisation too,
    so its campaign must be editable as well."""
    organisations = []
    for org_id in ids:
        org = db.session.get(Organisation, parse_id(org_id, 'organisationId'))
        if org is None:
            raise NotFound('Organisation not found')
        require_entity_edit_access(user, org.campaign_id)
        organisations.append(org)
    return organisations


@characters_bp.route('', methods=['GET'])
@handle_errors('Failed to fetch characters')
def list_characters():
    query = Character.query
    campaign_id = int_arg('campaignId')
    if campaign_id is not None:
        query = query.filter_by(campaign_id=campaign_id)
    characters = query.order_by(Character.name).all()
    return jsonify([c.to_dict() for c in characters])


@characters_bp.route('', methods=['POST'])
@handle_errors('Failed to create character')
def create_character():
    user = get_current_user()
    data = _clean_character_data(get_json_body())
    name = require_name(data)
    campaign_id = resolve_campaign_id(data.get('campaignId'))
    require_entity_edit_access(user, campaign_id)

    character = Character(name=name, campaign_id=campaign_id, status='alive')
    apply_fields(character, data, CHARACTER_FIELDS)
    db.session.add(character)
    db.session.commit()
    return jsonify(character.to_dict()), 201


@characters_bp.route('/<int:character_id>', methods=['GET'])
@handle_errors('Failed to fetch character')
def get_character(character_id):
    character = get_or_404(Character, character_id, 'Character not found')
    return jsonify(character.to_dict())


@characters_bp.route('/<int:character_id>', methods=['PUT'])
@handle_errors('Failed to update character')
def update_character(character_id):
    user = get_current_user()
    character = get_or_404(Character, character_id, 'Character not found')
    require_entity_edit_access(user, character.campaign_id)
    data = _clean_character_data(get_json_body())

    if 'name' in data:
        character.name = require_name(data)
    if 'campaignId' in data:
        # Moving a character needs edit access on the destination too
        new_campaign_id = resolve_campaign_id(data['campaignId'])
        if new_campaign_id != character.campaign_id:
            require_entity_edit_access(user, new_campaign_id)
            character.campaign_id = new_campaign_id
    apply_fields(character, data, CHARACTER_FIELDS)

    # organisationId replaces all memberships with that one organisation (or none);
    # the organisations it leaves must be editable too
    if 'organisationId' in data:
        org_id = data['organisationId']
        new_orgs = _get_organisations(user, [org_id]) if org_id not in (None, '') else []
        for org in character.organisations:
            if org not in new_orgs:
                require_entity_edit_access(user, org.campaign_id)
        character.organisations = new_orgs

    db.session.commit()
    return jsonify(character.to_dict())


@characters_bp.route('/<int:character_id>', methods=['DELETE'])
@handle_errors('Failed to delete character')
def delete_character(character_id):
    user = get_current_user()
    character = get_or_404(Character, character_id, 'Character not found')
    require_entity_edit_access(user, character.campaign_id)

    # Typed relationships cascade through the ORM; universal ones are removed here
    removed = delete_universal_relationships('character', [character.id])
    db.session.delete(character)
    db.session.commit()
    current_app.logger.info(f'Character {character_id} deleted '
                            f'({removed} universal relationship(s) removed)')
    return jsonify({'success': True})


# ── Memberships ───────────────────────────────────────────────────────────────

@characters_bp.route('/<int:character_id>/memberships', methods=['GET'])
@handle_errors('Failed to fetch memberships')
def list_memberships(character_id):
    character = get_or_404(Character, character_id, 'Character not found')
    return jsonify([o.to_dict(include_members=False) for o in character.organisations])


@characters_bp.route('/<int:character_id>/memberships', methods=['POST'])
@handle_errors('Failed to add membership')
def add_memberships(character_id):
    user = get_current_user()
    character = get_or_404(Character, character_id, 'Character not found')
    require_entity_edit_access(user, character.campaign_id)
    data = get_json_body()

    ids = data.get('organisationIds')
    if not ids:
        ids = [data['organisationId']] if data.get('organisationId') not in (None, '') else []
    if not isinstance(ids, list) or not ids:
        raise ValidationError('organisationId or organisationIds is required')

    # Connecting an existing membership again is a no-op
    for org in _get_organisations(user, ids):
        if org not in character.organisations:
            character.organisations.append(org)
    db.session.commit()
    return jsonify(character.to_dict())


@characters_bp.route('/<int:character_id>/memberships/<int:org_id>', methods=['DELETE'])
@handle_errors('Failed to remove membership')
def remove_membership(character_id, org_id):
    user = get_current_user()
    character = get_or_404(Character, character_id, 'Character not found')
    require_entity_edit_access(user, character.campaign_id)

    org = db.session.get(Organisation, org_id)
    if org is not None and org in character.organisations:
        require_entity_edit_access(user, org.campaign_id)
        character.organisations.remove(org)
        db.session.commit()
    return jsonify(character.to_dict())
