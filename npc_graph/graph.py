"""Node/link data for the campaign relationship web.

Nodes are the campaign's characters and organisations, keyed as
"character-<id>" and "organisation-<id>" because integer ids are only
unique per table. Links come from universal relationships whose two
endpoints are both nodes.
"""

from sqlalchemy import and_, or_

from npc_graph.colors import DEFAULT_PIN_COLOR
from npc_graph.errors import ValidationError
from npc_graph.models import Character, Organisation, UniversalRelationship

VIEW_MODES = ('all', 'characters', 'organisations')

RELATIONSHIP_TYPES = ['friendly', 'hostile', 'neutral']

# Index 0..4 = strength 1..5
FRIENDLY_COLORS = ['#cfe6b8', '#9fcd7a', '#5fbf6a', '#2f9e5f', '#1f6f3f']
HOSTILE_COLORS = ['#f4d35e', '#f6a04d', '#e76f51', '#d62828', '#7f1d1d']
NEUTRAL_COLOR = '#6b7280'

# Descriptive label per (from type, to type) pair, relationship type and strength 1..5
RELATIONSHIP_LABELS = {
    ('character', 'character'): {
        'friendly': ['Acquaintance', 'Colleague', 'Friend', 'Close Friend', 'Soulmate'],
        'hostile': ['Annoyed by', 'Dislikes', 'Enemy', 'Bitter Rival', 'Sworn Enemy'],
        'neutral': ['Heard of', 'Aware of', 'Knows of', 'Familiar with', 'Well Acquainted'],
    },
    ('organisation', 'organisation'): {
        'friendly': ['Trading Partners', 'Allies', 'Close Allies', 'Strategic Partners',
                     'United Alliance'],
        'hostile': ['Competitors', 'Rivals', 'Adversaries', 'Bitter Enemies', 'At War'],
        'neutral': ['Aware of', 'Coexist', 'Neutral', 'Distant Relations', 'Arms Length'],
    },
    ('character', 'organisation'): {
        'friendly': ['Sympathizer', 'Supporter', 'Ally', 'Devoted', 'Champion'],
        'hostile': ['Distrusts', 'Opposes', 'Enemy', 'Hunts', 'Sworn to Destroy'],
        'neutral': ['Heard of', 'Aware of', 'Knows of', 'Familiar with', 'Well Informed'],
    },
    ('organisation', 'character'): {
        'friendly': ['Tolerates', 'Welcomes', 'Ally', 'Favored', 'Protects'],
        'hostile': ['Suspicious of', 'Opposes', 'Target', 'Hunts', 'Seeks to Destroy'],
        'neutral': ['Unaware of', 'Aware of', 'Knows of', 'Monitors', 'Watches Closely'],
    },
}


def _strength_index(strength):
    try:
        strength = int(strength)
    except (TypeError, ValueError):
        strength = 1
    return max(0, min(4, strength - 1))


def relationship_color(rel_type, strength):
    """Link colour: a five-step palette for friendly/hostile, grey for everything else."""
    index = _strength_index(strength)
    if rel_type == 'friendly':
        return FRIENDLY_COLORS[index]
    if rel_type == 'hostile':
        return HOSTILE_COLORS[index]
    return NEUTRAL_COLOR


def relationship_label(rel_type, strength, from_type, to_type):
    """e.g. ('hostile', 5, 'character', 'character') -> 'Sworn Enemy'.

    Falls back to the bare type for unknown types or entity pairs.
    """
    labels = RELATIONSHIP_LABELS.get((from_type, to_type), {}).get(rel_type)
    if not labels:
        return rel_type
    return labels[_strength_index(strength)]


def node_key(entity_type, entity_id):
    return f'{entity_type}-{entity_id}'


def _character_node(character):
    first_org = character.organisations[0] if character.organisations else None
    return {
        'id': node_key('character', character.id),
        'entityId': character.id,
        'entityType': 'character',
        'name': character.name,
        'title': character.title,
        'description': character.description,
        'imageUrl': character.image_url,
        'faction': character.faction,
        'location': character.location,
        'status': character.status,
        'tags': character.get_tags_list(),
        'pinColor': first_org.pin_color if first_org and first_org.pin_color else None,
        'x': character.pos_x,
        'y': character.pos_y,
    }


def _organisation_node(organisation):
    return {
        'id': node_key('organisation', organisation.id),
        'entityId': organisation.id,
        'entityType': 'organisation',
        'name': organisation.name,
        'description': organisation.description,
        'imageUrl': organisation.image_url,
        'pinColor': organisation.pin_color or DEFAULT_PIN_COLOR,
        'memberCount': len(organisation.members),
        'x': organisation.pos_x,
        'y': organisation.pos_y,
    }


def _link(rel):
    return {
        'id': rel.id,
        'source': node_key(rel.from_entity_type, rel.from_entity_id),
        'sourceType': rel.from_entity_type,
        'target': node_key(rel.to_entity_type, rel.to_entity_id),
        'targetType': rel.to_entity_type,
        'type': rel.type,
        'description': rel.description,
        'strength': rel.strength,
        'color': relationship_color(rel.type, rel.strength),
        'label': relationship_label(rel.type, rel.strength,
                                    rel.from_entity_type, rel.to_entity_type),
    }


def build_campaign_graph(campaign, view_mode='all', selected=None):
    """Build {'nodes': [...], 'links': [...]} for one campaign.

    view_mode   'all', 'characters' or 'organisations'; in the single-type
                modes only same-type links are kept.
    selected    optional node keys; keeps those nodes, their direct
                neighbours and the links among them.
    """
    if view_mode not in VIEW_MODES:
        raise ValidationError(f'viewMode must be one of: {", ".join(VIEW_MODES)}')

    characters, organisations = [], []
    if view_mode in ('all', 'characters'):
        characters = Character.query.filter_by(campaign_id=campaign.id) \
                                    .order_by(Character.name).all()
    if view_mode in ('all', 'organisations'):
        organisations = Organisation.query.filter_by(campaign_id=campaign.id) \
                                          .order_by(Organisation.name).all()

    nodes = [_character_node(c) for c in characters] + \
            [_organisation_node(o) for o in organisations]
    node_ids = {n['id'] for n in nodes}

    links = []
    ids_by_type = {
        'character': [c.id for c in characters],
        'organisation': [o.id for o in organisations],
    }
    from_clauses = [
        and_(UniversalRelationship.from_entity_type == entity_type,
             UniversalRelationship.from_entity_id.in_(ids))
        for entity_type, ids in ids_by_type.items() if ids
    ]
    if from_clauses:
        rels = UniversalRelationship.query.filter(or_(*from_clauses)) \
                                          .order_by(UniversalRelationship.id).all()
        for rel in rels:
            link = _link(rel)
            # The target must be a node too (same campaign, visible in this view mode)
            if link['target'] in node_ids:
                links.append(link)

    if selected:
        selected = set(selected)
        keep = set(selected)
        for link in links:
            if link['source'] in selected:
                keep.add(link['target'])
            if link['target'] in selected:
                keep.add(link['source'])
        nodes = [n for n in nodes if n['id'] in keep]
        remaining = {n['id'] for n in nodes}
        links = [l for l in links if l['source'] in remaining and l['target'] in remaining]

    return {'nodes': nodes, 'links': links}
