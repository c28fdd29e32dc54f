"""Request parsing shared by the API blueprints."""

import math

from flask import request

from npc_graph.errors import NotFound, ValidationError
from npc_graph.models import Campaign, DEFAULT_STRENGTH, dump_crop


def get_json_body():
    """The request body as a dict; anything else (missing, invalid, a list) reads as {}."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def require_name(data, message='Name is required', key='name'):
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(message)
    return value.strip()


def parse_id(value, field):
    """Coerce a JSON/query value to an integer id or raise ValidationError."""
    if isinstance(value, bool):
        raise ValidationError(f'{field} must be an integer')
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be an integer')


def int_arg(name):
    """Optional integer query parameter (None when absent or blank)."""
    value = request.args.get(name, '').strip()
    if not value:
        return None
    return parse_id(value, name)


def parse_strength(value):
    if value is None:
        return DEFAULT_STRENGTH
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValidationError('strength must be an integer between 1 and 5')
    try:
        strength = int(value)
    except ValueError:
        raise ValidationError('strength must be an integer between 1 and 5')
    if not 1 <= strength <= 5:
        raise ValidationError('strength must be an integer between 1 and 5')
    return strength


def resolve_campaign_id(value):
    """Campaign id for a create/filter value given as id or slug; None for global entities."""
    if value is None or value == '':
        return None
    campaign = Campaign.resolve(value)
    if campaign is None:
        raise NotFound('Campaign not found')
    return campaign.id


def is_number(value):
    """True for a finite JSON number (booleans are not numbers here)."""
    return (isinstance(value, (int, float)) and not isinstance(value, bool)
            and not math.isnan(value) and not math.isinf(value))


def optional_text(value, field):
    """A text column value: a string or None."""
    if value is not None and not isinstance(value, str):
        raise ValidationError(f'{field} must be a string')
    return value


def require_type(data, key='type'):
    """The relationship `type`: a non-empty string."""
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f'{key} must be a non-empty string')
    return value


# Field kinds for apply_fields()
TEXT = 'text'
NUMBER = 'number'


def _check_field(key, value, kind):
    if value is None:
        return
    if kind == NUMBER and not is_number(value):
        raise ValidationError(f'{key} must be a number')
    if kind == TEXT and not isinstance(value, str):
        raise ValidationError(f'{key} must be a string')


def apply_fields(obj, data, fields):
    """Partial update: copy each JSON key that is present onto its model attribute.

    `fields` maps JSON key -> (attribute, TEXT or NUMBER). Every present key is
    checked before anything is written. Present keys are applied even when
    falsy, so clients can clear a field by sending null or "".
    """
    present = [(key, attr, kind) for key, (attr, kind) in fields.items() if key in data]
    for key, attr, kind in present:
        _check_field(key, data[key], kind)
    for key, attr, kind in present:
        setattr(obj, attr, data[key])
    if 'imageCrop' in data and hasattr(obj, 'image_crop'):
        obj.image_crop = dump_crop(data['imageCrop'])


def join_tags(value):
    """Tags may be sent as a list; they are stored comma-separated."""
    if isinstance(value, list):
        return ','.join(str(t).strip() for t in value if str(t).strip())
    return value
