import re

# Pin palette offered for organisations. Uniqueness within a campaign is
# advisory: get_available_colors() hides taken colours, nothing rejects them.
PIN_COLORS = [
    {'value': '#fbbf24', 'label': 'Gold'},
    {'value': '#ef4444', 'label': 'Red'},
    {'value': '#3b82f6', 'label': 'Blue'},
    {'value': '#22c55e', 'label': 'Green'},
    {'value': '#a855f7', 'label': 'Purple'},
    {'value': '#f97316', 'label': 'Orange'},
    {'value': '#ec4899', 'label': 'Pink'},
    {'value': '#06b6d4', 'label': 'Cyan'},
    {'value': '#14b8a6', 'label': 'Teal'},
    {'value': '#f43f5e', 'label': 'Rose'},
    {'value': '#8b5cf6', 'label': 'Violet'},
    {'value': '#84cc16', 'label': 'Lime'},
]

DEFAULT_PIN_COLOR = '#fbbf24'

_HEX_COLOR = re.compile(r'#([0-9A-Fa-f]{6}|[0-9A-Fa-f]{3})')


def is_valid_hex_color(value):
    """'#fff' and '#FFFFFF' are valid; 'fff', '#ggg', '#12345' and '' are not."""
    if not isinstance(value, str):
        return False
    return bool(_HEX_COLOR.fullmatch(value))


def get_available_colors(organisations, current_organisation_id=None):
    """Palette entries not used by any organisation other than the one being edited.

    `organisations` is any iterable of objects with `id` and `pin_color`.
    Colours are compared case-insensitively.
    """
    used = {
        org.pin_color.lower()
        for org in organisations
        if org.pin_color and org.id != current_organisation_id
    }
    return [color for color in PIN_COLORS if color['value'].lower() not in used]


def available_colors_for_campaign(campaign_id, current_organisation_id=None):
    """get_available_colors() over the organisations of one campaign (None = global ones)."""
    from npc_graph.models import Organisation
    organisations = Organisation.query.filter_by(campaign_id=campaign_id).all()
    return get_available_colors(organisations, current_organisation_id)
