"""URL slugs for campaigns.

A slug is derived from the campaign name once, at creation, and is never
changed implicitly afterwards. Collisions get a numeric suffix:
"the-realm", "the-realm-1", "the-realm-2", ...
"""

import re

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from npc_graph import db
from npc_graph.errors import Conflict
from npc_graph.models import Campaign

SLUG_MAX_LENGTH = 50

# Name that slugifies to nothing ("!!!", "???") falls back to this
FALLBACK_SLUG = 'campaign'

# How many times a create is retried when a concurrent insert takes the slug first
MAX_SLUG_ATTEMPTS = 5

_SPECIAL_CHARS = re.compile(r'[^\w\s-]', re.ASCII)
_WHITESPACE = re.compile(r'\s+')
_HYPHENS = re.compile(r'-+')


def generate_slug(name, max_length=SLUG_MAX_LENGTH):
    """Turn a display name into a slug: 'Lord Neverember!' -> 'lord-neverember'.

    Pure and idempotent: generate_slug(generate_slug(x)) == generate_slug(x).
    """
    slug = (name or '').lower().strip()
    slug = _SPECIAL_CHARS.sub('', slug)
    slug = _WHITESPACE.sub('-', slug)
    slug = _HYPHENS.sub('-', slug)
    return slug[:max_length]


def slug_base(name):
    return generate_slug(name) or FALLBACK_SLUG


def _escape_like(value):
    return value.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')


def ensure_unique_slug(base, exclude_id=None):
    """Return `base`, or the first of base-1, base-2, ... not used by another campaign.

    All colliding candidates are fetched in a single query. This only narrows
    the race with a concurrent insert; the UNIQUE index on campaigns.slug is
    what actually closes it (see save_with_unique_slug).
    """
    query = db.session.query(Campaign.slug).filter(or_(
        Campaign.slug == base,
        Campaign.slug.like(f'{_escape_like(base)}-%', escape='\\'),
    ))
    if exclude_id is not None:
        query = query.filter(Campaign.id != exclude_id)
    taken = {row.slug for row in query}

    if base not in taken:
        return base
    counter = 1
    while f'{base}-{counter}' in taken:
        counter += 1
    return f'{base}-{counter}'


def _is_slug_violation(error):
    return 'slug' in str(error.orig).lower()


def save_with_unique_slug(campaign, base):
    """Give `campaign` a unique slug derived from `base` and commit it.

    If another request commits the same slug between our check and our
    insert, the unique index rejects the row; we roll back and pick again.
    Everything attached to the campaign (e.g. an organisation created with
    it) is committed in the same transaction.
    """
    for attempt in range(1, MAX_SLUG_ATTEMPTS + 1):
        campaign.slug = ensure_unique_slug(base, exclude_id=campaign.id)
        db.session.add(campaign)
        try:
            db.session.commit()
            return campaign
        except IntegrityError as e:
            db.session.rollback()
            if not _is_slug_violation(e):
                raise
            current_app.logger.warning(
                f'Slug "{campaign.slug}" taken concurrently (attempt {attempt}), retrying')
    raise Conflict('Could not generate a unique slug for this campaign, please retry')


def backfill_slugs():
    """Fill in slugs for legacy campaigns that have none. Returns the updated campaigns."""
    missing = Campaign.query.filter(or_(Campaign.slug.is_(None), Campaign.slug == '')) \
                            .order_by(Campaign.id).all()
    for campaign in missing:
        campaign.slug = ensure_unique_slug(slug_base(campaign.name), exclude_id=campaign.id)
        # Make the new slug visible to the next ensure_unique_slug() query
        db.session.flush()
    db.session.commit()
    return missing
