from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import and_, or_

from npc_graph import db
from npc_graph.colors import DEFAULT_PIN_COLOR
from npc_graph.errors import NotFound, PermissionDenied, ValidationError, get_or_404, handle_errors
from npc_graph.graph import build_campaign_graph
from npc_graph.helpers import TEXT, apply_fields, get_json_body, is_number, parse_id, require_name
from npc_graph.models import (Campaign, CampaignEditor, Organisation, Relationship,
                              UniversalRelationship, User, ENTITY_MODELS, ENTITY_TYPES,
                              delete_universal_relationships)
from npc_graph.permissions import (admin_required, can_edit, can_edit_campaign,
                                   get_current_user, require_auth,
                                   require_campaign_edit_access)
from npc_graph.slugs import save_with_unique_slug, slug_base

campaigns_bp = Blueprint('campaigns', __name__, url_prefix='/api/campaigns')

CAMPAIGN_FIELDS = {
    'description': ('description', TEXT),
    'imageUrl': ('image_url', TEXT),
}


def _get_campaign_or_404(id_or_slug):
    campaign = Campaign.resolve(id_or_slug)
    if campaign is None:
        raise NotFound('Campaign not found')
    return campaign


def _universal_relationships_among(ids_by_type):
    """Universal relationships with at least one endpoint among the given entities."""
    UR = UniversalRelationship
    clauses = []
    for entity_type, ids in ids_by_type.items():
        if ids:
            clauses.append(and_(UR.from_entity_type == entity_type, UR.from_entity_id.in_(ids)))
            clauses.append(and_(UR.to_entity_type == entity_type, UR.to_entity_id.in_(ids)))
    if not clauses:
        return []
    return UR.query.filter(or_(*clauses)).order_by(UR.created_at.desc()).all()


def _user_summary(user):
    return {'id': user.id, 'email': user.email, 'name': user.name, 'role': user.role}


# ── Campaign CRUD ─────────────────────────────────────────────────────────────

@campaigns_bp.route('', methods=['GET'])
@handle_errors('Failed to fetch campaigns')
def list_campaigns():
    user = get_current_user()
    campaigns = Campaign.query.order_by(Campaign.updated_at.desc(), Campaign.id.desc()).all()
    result = []
    for campaign in campaigns:
        data = campaign.to_dict(include_counts=True)
        data['canEdit'] = can_edit(user, campaign)
        result.append(data)
    return jsonify(result)


@campaigns_bp.route('', methods=['POST'])
@handle_errors('Failed to create campaign')
def create_campaign():
    user = get_current_user()
    data = get_json_body()
    name = require_name(data, 'Campaign name is required')

    campaign = Campaign(name=name, creator_id=user.id if user else None)
    apply_fields(campaign, data, CAMPAIGN_FIELDS)

    # Optional first organisation, committed together with the campaign
    org_name = data.get('organisationName')
    if isinstance(org_name, str) and org_name.strip():
        campaign.organisations.append(Organisation(
            name=org_name.strip(),
            description=f'An organisation in {name}',
            pin_color=DEFAULT_PIN_COLOR,
        ))

    save_with_unique_slug(campaign, slug_base(name))
    current_app.logger.info(f'Campaign {campaign.id} created with slug "{campaign.slug}"')

    result = campaign.to_dict(include_counts=True)
    result['organisations'] = [o.to_dict(include_members=False) for o in campaign.organisations]
    result['canEdit'] = can_edit(user, campaign)
    return jsonify(result), 201


@campaigns_bp.route('/<id_or_slug>', methods=['GET'])
@handle_errors('Failed to fetch campaign')
def get_campaign(id_or_slug):
    user = get_current_user()
    campaign = _get_campaign_or_404(id_or_slug)

    character_ids = [c.id for c in campaign.characters]
    organisation_ids = [o.id for o in campaign.organisations]

    relationships = []
    if character_ids:
        relationships = Relationship.query.filter(or_(
            Relationship.from_npc_id.in_(character_ids),
            Relationship.to_npc_id.in_(character_ids),
        )).order_by(Relationship.id).all()

    data = campaign.to_dict(include_counts=True)
    data['characters'] = [c.to_dict() for c in campaign.characters]
    data['organisations'] = [o.to_dict() for o in campaign.organisations]
    data['crews'] = [crew.to_dict(include_relationships=True) for crew in campaign.crews]
    data['relationships'] = [r.to_dict() for r in relationships]
    data['universalRelationships'] = [r.to_dict() for r in _universal_relationships_among({
        'character': character_ids,
        'organisation': organisation_ids,
    })]
    data['canEdit'] = can_edit(user, campaign)
    return jsonify(data)


@campaigns_bp.route('/<id_or_slug>', methods=['PUT'])
@handle_errors('Failed to update campaign')
def update_campaign(id_or_slug):
    user = get_current_user()
    campaign = _get_campaign_or_404(id_or_slug)
    require_campaign_edit_access(user, campaign.id)
    data = get_json_body()

    # An empty name is ignored rather than rejected; the slug never follows the name
    name = data.get('name')
    if isinstance(name, str) and name.strip():
        campaign.name = name.strip()
    if 'isActive' in data and not isinstance(data['isActive'], bool):
        raise ValidationError('isActive must be true or false')
    apply_fields(campaign, data, CAMPAIGN_FIELDS)
    if 'isActive' in data:
        campaign.is_active = data['isActive']

    db.session.commit()
    result = campaign.to_dict(include_counts=True)
    result['canEdit'] = can_edit(user, campaign)
    return jsonify(result)


@campaigns_bp.route('/<id_or_slug>', methods=['DELETE'])
@handle_errors('Failed to delete campaign')
def delete_campaign(id_or_slug):
    user = get_current_user()
    campaign = _get_campaign_or_404(id_or_slug)
    require_campaign_edit_access(user, campaign.id)

    # Universal relationships have no foreign keys to cascade through
    delete_universal_relationships('character', [c.id for c in campaign.characters])
    delete_universal_relationships('organisation', [o.id for o in campaign.organisations])

    campaign_id, slug = campaign.id, campaign.slug
    db.session.delete(campaign)
    db.session.commit()
    current_app.logger.info(f'Campaign {campaign_id} ({slug}) deleted by user {user.id}')
    return jsonify({'success': True})


@campaigns_bp.route('/<id_or_slug>/can-edit', methods=['GET'])
@handle_errors('Failed to check permission')
def check_can_edit(id_or_slug):
    return jsonify({'canEdit': can_edit_campaign(get_current_user(), id_or_slug)})


# ── Editor assignments (admin only) ───────────────────────────────────────────

@campaigns_bp.route('/<id_or_slug>/editors', methods=['GET'])
@admin_required
@handle_errors('Failed to fetch campaign editors')
def list_editors(id_or_slug):
    campaign = _get_campaign_or_404(id_or_slug)
    creator = db.session.get(User, campaign.creator_id) if campaign.creator_id else None
    assignments = CampaignEditor.query.filter_by(campaign_id=campaign.id) \
                                      .order_by(CampaignEditor.created_at).all()
    return jsonify({
        'campaign': {'id': campaign.id, 'name': campaign.name},
        'creator': _user_summary(creator) if creator else None,
        'editors': [
            {'assignmentId': a.id, **_user_summary(a.user),
             'assignedAt': a.created_at.isoformat() if a.created_at else None}
            for a in assignments
        ],
    })


@campaigns_bp.route('/<id_or_slug>/editors', methods=['POST'])
@admin_required
@handle_errors('Failed to assign editor')
def add_editor(id_or_slug):
    data = get_json_body()
    if data.get('userId') in (None, ''):
        raise ValidationError('userId is required')
    user_id = parse_id(data['userId'], 'userId')

    campaign = _get_campaign_or_404(id_or_slug)
    user = get_or_404(User, user_id, 'User not found')
    if user.role == 'viewer':
        raise ValidationError('Cannot assign campaign access to viewers. Promote to editor first.')
    if CampaignEditor.query.filter_by(campaign_id=campaign.id, user_id=user.id).first():
        raise ValidationError('User is already assigned to this campaign')

    assignment = CampaignEditor(campaign_id=campaign.id, user_id=user.id)
    db.session.add(assignment)
    db.session.commit()
    current_app.logger.info(f'User {user.id} assigned as editor of campaign {campaign.id}')
    return jsonify({
        'assignmentId': assignment.id,
        **_user_summary(user),
        'assignedAt': assignment.created_at.isoformat() if assignment.created_at else None,
    }), 201


@campaigns_bp.route('/<id_or_slug>/editors', methods=['DELETE'])
@admin_required
@handle_errors('Failed to remove editor')
def remove_editor(id_or_slug):
    if not request.args.get('userId', '').strip():
        raise ValidationError('userId query parameter is required')
    user_id = parse_id(request.args['userId'], 'userId')

    campaign = _get_campaign_or_404(id_or_slug)
    assignment = CampaignEditor.query.filter_by(campaign_id=campaign.id, user_id=user_id).first()
    if assignment is None:
        raise NotFound('Editor assignment not found')
    db.session.delete(assignment)
    db.session.commit()
    return jsonify({'success': True})


# ── Graph view ────────────────────────────────────────────────────────────────

def _parse_node_id(node_id, entity_type):
    """Accept a bare id (3, "3") or a graph node key ("character-3")."""
    if isinstance(node_id, bool):
        return None
    if isinstance(node_id, int):
        return node_id
    if isinstance(node_id, str):
        prefix = f'{entity_type}-'
        raw = node_id[len(prefix):] if entity_type and node_id.startswith(prefix) else node_id
        if raw.isdigit():
            return int(raw)
    return None


def _validate_position(entry):
    """Return (errors, (entity_type, id, x, y)) for one positions[] entry."""
    if not isinstance(entry, dict):
        return ['must be an object'], None
    errors = []
    entity_type = entry.get('entityType')
    if entity_type not in ENTITY_TYPES:
        errors.append('entityType must be "character" or "organisation"')
        entity_type = None
    node_id = _parse_node_id(entry.get('nodeId'), entity_type)
    if node_id is None:
        errors.append('nodeId is required and must be an id or node key')
    if not is_number(entry.get('posX')):
        errors.append('posX is required and must be a number')
    if not is_number(entry.get('posY')):
        errors.append('posY is required and must be a number')
    if errors:
        return errors, None
    return [], (entity_type, node_id, float(entry['posX']), float(entry['posY']))


@campaigns_bp.route('/<id_or_slug>/positions', methods=['PATCH'])
@handle_errors('Failed to update node positions')
def update_positions(id_or_slug):
    """Persist dragged node positions. Viewers may move nodes locally but not save them."""
    user = get_current_user()
    require_auth(user, 'Authentication required to save positions')
    if user.role == 'viewer':
        raise PermissionDenied('Viewers cannot persist node positions')
    campaign = _get_campaign_or_404(id_or_slug)
    require_campaign_edit_access(user, campaign.id)

    positions = get_json_body().get('positions')
    if not isinstance(positions, list):
        raise ValidationError('positions array is required')

    # Report every bad entry at once instead of stopping at the first
    all_errors, updates = [], []
    for i, entry in enumerate(positions):
        errors, update = _validate_position(entry)
        if errors:
            all_errors.append(f'Position {i}: {", ".join(errors)}')
        else:
            updates.append(update)
    if all_errors:
        raise ValidationError('Invalid position data', details=all_errors)

    counts = {'characters': 0, 'organisations': 0}
    for entity_type, node_id, pos_x, pos_y in updates:
        model = ENTITY_MODELS[entity_type]
        # Scoped to the campaign so ids from elsewhere are silently ignored
        model.query.filter_by(id=node_id, campaign_id=campaign.id) \
                   .update({'pos_x': pos_x, 'pos_y': pos_y}, synchronize_session=False)
        counts[f'{entity_type}s'] += 1
    db.session.commit()

    return jsonify({'success': True, 'updated': counts})


@campaigns_bp.route('/<id_or_slug>/graph', methods=['GET'])
@handle_errors('Failed to fetch graph data')
def campaign_graph(id_or_slug):
    campaign = _get_campaign_or_404(id_or_slug)
    view_mode = request.args.get('viewMode', 'all').strip() or 'all'
    selected = [s.strip() for s in request.args.get('selectedEntityIds', '').split(',')
                if s.strip()]
    return jsonify(build_campaign_graph(campaign, view_mode, selected or None))
