from flask import Blueprint, current_app, jsonify

from npc_graph import db
from npc_graph.colors import available_colors_for_campaign, is_valid_hex_color
from npc_graph.errors import NotFound, ValidationError, get_or_404, handle_errors
from npc_graph.helpers import (NUMBER, TEXT, apply_fields, get_json_body, int_arg, join_tags,
                               parse_id, require_name, resolve_campaign_id)
from npc_graph.models import (Character, Organisation, CHARACTER_STATUSES,
                              delete_universal_relationships)
from npc_graph.permissions import get_current_user, require_entity_edit_access

organisations_bp = Blueprint('organisations', __name__, url_prefix='/api/organisations')

ORGANISATION_FIELDS = {
    'description': ('description', TEXT),
    'imageUrl': ('image_url', TEXT),
    'pinColor': ('pin_color', TEXT),
    'posX': ('pos_x', NUMBER),
    'posY': ('pos_y', NUMBER),
}

# Fields accepted on each entry of a nested `members` list
MEMBER_FIELDS = {
    'title': ('title', TEXT),
    'description': ('description', TEXT),
    'imageUrl': ('image_url', TEXT),
    'faction': ('faction', TEXT),
    'location': ('location', TEXT),
    'tags': ('tags', TEXT),
}


def _check_pin_color(data):
    color = data.get('pinColor')
    if color not in (None, '') and not is_valid_hex_color(color):
        raise ValidationError('pinColor must be a hex colour like #fbbf24 or #fff')
    if color == '':
        data['pinColor'] = None


def _nested_members(members, campaign_id):
    """New Character rows for a nested `members` list, created in the organisation's campaign."""
    if not isinstance(members, list):
        raise ValidationError('members must be a list')
    characters = []
    for member in members:
        if not isinstance(member, dict):
            raise ValidationError('Each member must be an object')
        if member.get('status') not in (None, '', *CHARACTER_STATUSES):
            raise ValidationError(f'Invalid status. Must be one of: {", ".join(CHARACTER_STATUSES)}')
        if 'tags' in member:
            member['tags'] = join_tags(member['tags'])
        character = Character(name=require_name(member, 'Member name is required'),
                              status=member.get('status') or 'alive', campaign_id=campaign_id)
        apply_fields(character, member, MEMBER_FIELDS)
        characters.append(character)
    return characters


@organisations_bp.route('', methods=['GET'])
@handle_errors('Failed to fetch organisations')
def list_organisations():
    query = Organisation.query
    campaign_id = int_arg('campaignId')
    if campaign_id is not None:
        query = query.filter_by(campaign_id=campaign_id)
    return jsonify([o.to_dict() for o in query.order_by(Organisation.name).all()])


@organisations_bp.route('/available-colors', methods=['GET'])
@handle_errors('Failed to fetch available colours')
def available_colors():
    """Palette colours not yet taken in the campaign.

    ?organisationId= keeps that organisation's own colour in the list, so an
    edit form can still show the current selection.
    """
    return jsonify(available_colors_for_campaign(int_arg('campaignId'),
                                                 int_arg('organisationId')))


@organisations_bp.route('', methods=['POST'])
@handle_errors('Failed to create organisation')
def create_organisation():
    user = get_current_user()
    data = get_json_body()
    name = require_name(data)
    _check_pin_color(data)
    campaign_id = resolve_campaign_id(data.get('campaignId'))
    require_entity_edit_access(user, campaign_id)

    organisation = Organisation(name=name, campaign_id=campaign_id)
    apply_fields(organisation, data, ORGANISATION_FIELDS)

    if data.get('members'):
        organisation.members.extend(_nested_members(data['members'], campaign_id))
    member_ids = data.get('memberIds') or []
    if not isinstance(member_ids, list):
        raise ValidationError('memberIds must be a list')
    for member_id in member_ids:
        character = db.session.get(Character, parse_id(member_id, 'memberIds'))
        if character is None:
            raise NotFound('Character not found')
        # Connecting a member changes the character too
        require_entity_edit_access(user, character.campaign_id)
        if character not in organisation.members:
            organisation.members.append(character)

    db.session.add(organisation)
    db.session.commit()
    return jsonify(organisation.to_dict()), 201


@organisations_bp.route('/<int:organisation_id>', methods=['GET'])
@handle_errors('Failed to fetch organisation')
def get_organisation(organisation_id):
    organisation = get_or_404(Organisation, organisation_id, 'Organisation not found')
    return jsonify(organisation.to_dict())


@organisations_bp.route('/<int:organisation_id>', methods=['PUT'])
@handle_errors('Failed to update organisation')
def update_organisation(organisation_id):
    user = get_current_user()
    organisation = get_or_404(Organisation, organisation_id, 'Organisation not found')
    require_entity_edit_access(user, organisation.campaign_id)
    data = get_json_body()
    _check_pin_color(data)

    if 'name' in data:
        organisation.name = require_name(data)
    if 'campaignId' in data:
        new_campaign_id = resolve_campaign_id(data['campaignId'])
        if new_campaign_id != organisation.campaign_id:
            require_entity_edit_access(user, new_campaign_id)
            organisation.campaign_id = new_campaign_id
    apply_fields(organisation, data, ORGANISATION_FIELDS)

    db.session.commit()
    return jsonify(organisation.to_dict())


@organisations_bp.route('/<int:organisation_id>', methods=['DELETE'])
@handle_errors('Failed to delete organisation')
def delete_organisation(organisation_id):
    user = get_current_user()
    organisation = get_or_404(Organisation, organisation_id, 'Organisation not found')
    require_entity_edit_access(user, organisation.campaign_id)

    # Members stay; only the membership rows and the org's universal relationships go
    removed = delete_universal_relationships('organisation', [organisation.id])
    db.session.delete(organisation)
    db.session.commit()
    current_app.logger.info(f'Organisation {organisation_id} deleted '
                            f'({removed} universal relationship(s) removed)')
    return jsonify({'success': True})
