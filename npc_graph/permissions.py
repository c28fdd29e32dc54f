"""Role and campaign-ownership checks.

The current user is resolved once, at the route boundary, with
get_current_user() and then passed explicitly into every check below.
Anonymous callers (user=None) rank as viewers.
"""

from functools import wraps

from flask_login import current_user

from npc_graph.errors import AuthenticationRequired, PermissionDenied
from npc_graph.models import Campaign, ROLES


ROLE_RANK = {role: rank for rank, role in enumerate(ROLES)}   # viewer=0, editor=1, admin=2


def get_current_user():
    """Return the logged-in User for this request, or None."""
    if not current_user.is_authenticated:
        return None
    return current_user._get_current_object()


def role_rank(role):
    # Unknown or missing roles rank as viewer
    return ROLE_RANK.get(role, 0)


def has_role(user, required):
    role = user.role if user is not None else 'viewer'
    return role_rank(role) >= role_rank(required)


def can_edit(user, campaign):
    """Record-level check for an already-loaded Campaign."""
    if user is None or campaign is None:
        return False
    if user.role == 'admin':
        return True
    if user.role != 'editor':
        return False
    return campaign.creator_id == user.id or campaign.is_editor(user.id)


def can_edit_campaign(user, campaign_id_or_slug):
    """True if `user` may modify the campaign (looked up by id, then slug).

    Admins may edit anything, viewers nothing, and editors the campaigns they
    created or were assigned to. A missing campaign means no permission.
    """
    if user is None:
        return False
    if user.role == 'admin':
        return True
    if user.role != 'editor':
        return False
    return can_edit(user, Campaign.resolve(campaign_id_or_slug))


def require_auth(user, message='Authentication required'):
    if user is None:
        raise AuthenticationRequired(message)
    return user


def require_role(user, role, message=None):
    require_auth(user)
    if not has_role(user, role):
        raise PermissionDenied(message or f'{role.capitalize()} role required')
    return user


def require_campaign_edit_access(user, campaign_id_or_slug,
                                 message='You do not have permission to edit this campaign'):
    require_auth(user)
    if not can_edit_campaign(user, campaign_id_or_slug):
        raise PermissionDenied(message)
    return user


def require_entity_edit_access(user, campaign_id):
    """Edit access for an entity owned by `campaign_id`.

    Global entities (no campaign) can be changed by any editor or admin.
    """
    if campaign_id is None:
        return require_role(user, 'editor')
    return require_campaign_edit_access(user, campaign_id)


def admin_required(f):
    """Decorator that rejects everyone but admins (anonymous callers included) with 403."""
    @wraps(f)
    def decorated(*args, **kwargs):
        user = get_current_user()
        if user is None or not user.is_admin:
            raise PermissionDenied('Admin access required')
        return f(*args, **kwargs)
    return decorated
