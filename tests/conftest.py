"""
Pytest fixtures for the NPC Graph API tests.

Each test gets a fresh app on an in-memory SQLite database. Fixtures return
ids rather than ORM objects: every request runs in its own app context, so
objects from a fixture's session would be detached by the time a test used
them. Open `with app.app_context():` in the test to inspect the database.
"""

import pytest

from config import TestingConfig
from npc_graph import create_app, db
from npc_graph.models import (Campaign, CampaignEditor, Character, Organisation,
                              UniversalRelationship, User)


@pytest.fixture
def app():
    """App on a fresh in-memory database."""
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def _create_user(app, email, role, name=None):
    with app.app_context():
        user = User(email=email, name=name or email.split('@')[0], role=role)
        user.set_password('correct-horse')
        db.session.add(user)
        db.session.commit()
        return user.id


@pytest.fixture
def admin_id(app):
    return _create_user(app, 'admin@example.com', 'admin', 'Admin')


@pytest.fixture
def editor_id(app):
    return _create_user(app, 'editor@example.com', 'editor', 'Editor')


@pytest.fixture
def other_editor_id(app):
    return _create_user(app, 'other@example.com', 'editor', 'Other Editor')


@pytest.fixture
def viewer_id(app):
    return _create_user(app, 'viewer@example.com', 'viewer', 'Viewer')


@pytest.fixture
def login(client):
    """Log the test client in as a user id (None logs out)."""
    def _login(user_id):
        with client.session_transaction() as sess:
            sess.clear()
            if user_id is not None:
                sess['_user_id'] = str(user_id)
                sess['_fresh'] = True
    return _login


@pytest.fixture
def make_campaign(app):
    """Factory: insert a campaign directly and return its id."""
    def _make(name='Test Campaign', slug=None, creator_id=None, editor_ids=()):
        with app.app_context():
            campaign = Campaign(name=name, slug=slug or name.lower().replace(' ', '-'),
                                creator_id=creator_id)
            db.session.add(campaign)
            db.session.flush()
            for user_id in editor_ids:
                db.session.add(CampaignEditor(campaign_id=campaign.id, user_id=user_id))
            db.session.commit()
            return campaign.id
    return _make


@pytest.fixture
def make_character(app):
    def _make(name='Test Character', campaign_id=None, **fields):
        with app.app_context():
            character = Character(name=name, campaign_id=campaign_id, status='alive', **fields)
            db.session.add(character)
            db.session.commit()
            return character.id
    return _make


@pytest.fixture
def make_organisation(app):
    def _make(name='Test Organisation', campaign_id=None, **fields):
        with app.app_context():
            organisation = Organisation(name=name, campaign_id=campaign_id, **fields)
            db.session.add(organisation)
            db.session.commit()
            return organisation.id
    return _make


@pytest.fixture
def make_universal(app):
    def _make(from_type, from_id, to_type, to_id, rel_type='friendly', strength=3):
        with app.app_context():
            rel = UniversalRelationship(from_entity_type=from_type, from_entity_id=from_id,
                                        to_entity_type=to_type, to_entity_id=to_id,
                                        type=rel_type, strength=strength)
            db.session.add(rel)
            db.session.commit()
            return rel.id
    return _make


@pytest.fixture
def owned_campaign(make_campaign, editor_id):
    """Campaign created by the `editor` user."""
    return make_campaign('Owned Campaign', creator_id=editor_id)
