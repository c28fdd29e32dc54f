"""Tests for /api/campaigns."""

from npc_graph import db
from npc_graph.models import (Campaign, CampaignEditor, Character, Organisation,
                              UniversalRelationship)


class TestListCampaigns:
    """GET /api/campaigns."""

    def test_counts_and_can_edit(self, client, login, owned_campaign, editor_id,
                                 make_character, make_campaign):
        make_character('Aria', owned_campaign)
        make_campaign('Someone Else')
        login(editor_id)
        data = client.get('/api/campaigns').get_json()
        by_name = {c['name']: c for c in data}
        assert by_name['Owned Campaign']['_count'] == {'characters': 1, 'organisations': 0}
        assert by_name['Owned Campaign']['canEdit'] is True
        assert by_name['Someone Else']['canEdit'] is False

    def test_never_exposes_editor_list(self, client, make_campaign, editor_id):
        make_campaign('Shared', editor_ids=[editor_id])
        data = client.get('/api/campaigns').get_json()
        assert 'editors' not in data[0]

    def test_most_recently_updated_first(self, client, login, admin_id, make_campaign):
        first = make_campaign('First')
        make_campaign('Second')
        assert [c['name'] for c in client.get('/api/campaigns').get_json()] == ['Second', 'First']

        login(admin_id)
        client.put(f'/api/campaigns/{first}', json={'description': 'touched'})
        assert [c['name'] for c in client.get('/api/campaigns').get_json()] == ['First', 'Second']


class TestCreateCampaign:
    """POST /api/campaigns."""

    def test_create_sets_slug_and_creator(self, app, client, login, editor_id):
        login(editor_id)
        resp = client.post('/api/campaigns', json={'name': 'Lord Neverember!'})
        assert resp.status_code == 201
        data = resp.get_json()
        assert data['slug'] == 'lord-neverember'
        assert data['creatorId'] == editor_id
        assert data['canEdit'] is True

    def test_same_name_gets_distinct_slugs(self, client):
        first = client.post('/api/campaigns', json={'name': 'The Realm'}).get_json()
        second = client.post('/api/campaigns', json={'name': 'The Realm'}).get_json()
        assert first['slug'] == 'the-realm'
        assert second['slug'] == 'the-realm-1'

    def test_name_required(self, client):
        for body in [{}, {'name': '   '}, {'name': 42}]:
            resp = client.post('/api/campaigns', json=body)
            assert resp.status_code == 400
            assert resp.get_json() == {'error': 'Campaign name is required'}

    def test_symbol_only_name_gets_fallback_slug(self, client):
        assert client.post('/api/campaigns', json={'name': '???'}).get_json()['slug'] == 'campaign'

    def test_with_first_organisation(self, app, client):
        resp = client.post('/api/campaigns', json={'name': 'Waterdeep',
                                                   'organisationName': 'Lords Alliance'})
        data = resp.get_json()
        assert [o['name'] for o in data['organisations']] == ['Lords Alliance']
        assert data['organisations'][0]['pinColor'] == '#fbbf24'
        with app.app_context():
            org = Organisation.query.one()
            assert org.campaign_id == data['id']
            assert org.description == 'An organisation in Waterdeep'

    def test_anonymous_create_has_no_creator(self, client):
        data = client.post('/api/campaigns', json={'name': 'Open Table'}).get_json()
        assert data['creatorId'] is None
        assert data['canEdit'] is False


class TestGetCampaign:
    """GET /api/campaigns/<id or slug>."""

    def test_by_id_and_by_slug(self, client, owned_campaign):
        by_id = client.get(f'/api/campaigns/{owned_campaign}').get_json()
        by_slug = client.get('/api/campaigns/owned-campaign').get_json()
        assert by_id['id'] == by_slug['id'] == owned_campaign

    def test_missing(self, client):
        for key in ['9999', 'no-such-slug']:
            resp = client.get(f'/api/campaigns/{key}')
            assert resp.status_code == 404
            assert resp.get_json() == {'error': 'Campaign not found'}

    def test_includes_entities_and_relationships(self, client, owned_campaign, make_character,
                                                 make_organisation, make_universal):
        aria = make_character('Aria', owned_campaign)
        guild = make_organisation('Guild', owned_campaign)
        make_universal('character', aria, 'organisation', guild)
        data = client.get(f'/api/campaigns/{owned_campaign}').get_json()
        assert [c['name'] for c in data['characters']] == ['Aria']
        assert [o['name'] for o in data['organisations']] == ['Guild']
        assert len(data['universalRelationships']) == 1
        assert data['crews'] == []
        assert data['relationships'] == []
        assert data['canEdit'] is False


class TestUpdateCampaign:
    """PUT /api/campaigns/<id or slug>."""

    def test_partial_update_keeps_slug(self, client, login, editor_id, owned_campaign):
        login(editor_id)
        resp = client.put(f'/api/campaigns/{owned_campaign}',
                          json={'name': 'Renamed', 'isActive': False})
        assert resp.status_code == 200
        data = resp.get_json()
        assert data['name'] == 'Renamed'
        assert data['isActive'] is False
        assert data['slug'] == 'owned-campaign'

    def test_is_active_must_be_boolean(self, client, login, editor_id, owned_campaign):
        login(editor_id)
        resp = client.put(f'/api/campaigns/{owned_campaign}', json={'isActive': 'false'})
        assert resp.status_code == 400
        assert resp.get_json() == {'error': 'isActive must be true or false'}
        assert client.get(f'/api/campaigns/{owned_campaign}').get_json()['isActive'] is True

    def test_non_string_description(self, client, login, editor_id, owned_campaign):
        login(editor_id)
        resp = client.put(f'/api/campaigns/{owned_campaign}', json={'description': {'a': 1}})
        assert resp.status_code == 400
        assert resp.get_json() == {'error': 'description must be a string'}

    def test_empty_name_is_ignored(self, client, login, editor_id, owned_campaign):
        login(editor_id)
        data = client.put(f'/api/campaigns/{owned_campaign}',
                          json={'name': '', 'description': ''}).get_json()
        assert data['name'] == 'Owned Campaign'
        assert data['description'] == ''

    def test_image_crop_round_trip(self, client, login, editor_id, owned_campaign):
        login(editor_id)
        crop = {'x': 10, 'y': 20, 'width': 100, 'height': 50}
        data = client.put(f'/api/campaigns/{owned_campaign}', json={'imageCrop': crop}).get_json()
        assert data['imageCrop'] == crop

    def test_update_by_slug(self, client, login, editor_id, owned_campaign):
        login(editor_id)
        resp = client.put('/api/campaigns/owned-campaign', json={'description': 'By slug'})
        assert resp.get_json()['description'] == 'By slug'

    def test_anonymous_rejected(self, client, owned_campaign):
        resp = client.put(f'/api/campaigns/{owned_campaign}', json={'name': 'X'})
        assert resp.status_code == 401

    def test_unassigned_editor_rejected(self, client, login, other_editor_id, owned_campaign):
        login(other_editor_id)
        resp = client.put(f'/api/campaigns/{owned_campaign}', json={'name': 'X'})
        assert resp.status_code == 403
        assert resp.get_json() == {'error': 'You do not have permission to edit this campaign'}


class TestDeleteCampaign:
    """DELETE /api/campaigns/<id or slug>."""

    def test_cascades_to_owned_entities(self, app, client, login, editor_id, owned_campaign,
                                        make_character, make_organisation, make_universal,
                                        make_campaign):
        aria = make_character('Aria', owned_campaign)
        guild = make_organisation('Guild', owned_campaign)
        outsider = make_character('Outsider', make_campaign('Elsewhere'))
        make_universal('character', aria, 'organisation', guild)
        make_universal('character', outsider, 'character', aria)
        kept = make_universal('character', outsider, 'character', outsider)

        login(editor_id)
        resp = client.delete(f'/api/campaigns/{owned_campaign}')
        assert resp.status_code == 200
        assert resp.get_json() == {'success': True}
        with app.app_context():
            assert db.session.get(Campaign, owned_campaign) is None
            assert db.session.get(Character, aria) is None
            assert db.session.get(Organisation, guild) is None
            assert db.session.get(Character, outsider) is not None
            assert [r.id for r in UniversalRelationship.query.all()] == [kept]

    def test_viewer_cannot_delete(self, client, login, viewer_id, owned_campaign):
        login(viewer_id)
        assert client.delete(f'/api/campaigns/{owned_campaign}').status_code == 403


class TestCanEditEndpoint:
    """GET /api/campaigns/<id or slug>/can-edit."""

    def test_reports_permission(self, client, login, editor_id, other_editor_id, owned_campaign):
        assert client.get(f'/api/campaigns/{owned_campaign}/can-edit').get_json() == \
            {'canEdit': False}
        login(editor_id)
        assert client.get('/api/campaigns/owned-campaign/can-edit').get_json() == \
            {'canEdit': True}
        login(other_editor_id)
        assert client.get(f'/api/campaigns/{owned_campaign}/can-edit').get_json() == \
            {'canEdit': False}


class TestEditors:
    """/api/campaigns/<id or slug>/editors (admin only)."""

    def test_requires_admin(self, client, login, editor_id, owned_campaign):
        resp = client.get(f'/api/campaigns/{owned_campaign}/editors')
        assert resp.status_code == 403
        assert resp.get_json() == {'error': 'Admin access required'}
        login(editor_id)
        assert client.get(f'/api/campaigns/{owned_campaign}/editors').status_code == 403

    def test_assign_list_and_remove(self, app, client, login, admin_id, editor_id,
                                    other_editor_id, owned_campaign):
        login(admin_id)
        resp = client.post(f'/api/campaigns/{owned_campaign}/editors',
                           json={'userId': other_editor_id})
        assert resp.status_code == 201
        assert resp.get_json()['id'] == other_editor_id

        data = client.get(f'/api/campaigns/{owned_campaign}/editors').get_json()
        assert data['creator']['id'] == editor_id
        assert [e['id'] for e in data['editors']] == [other_editor_id]

        login(other_editor_id)
        assert client.get(f'/api/campaigns/{owned_campaign}/can-edit').get_json()['canEdit']

        login(admin_id)
        resp = client.delete(f'/api/campaigns/{owned_campaign}/editors?userId={other_editor_id}')
        assert resp.status_code == 200
        with app.app_context():
            assert CampaignEditor.query.count() == 0

    def test_duplicate_assignment(self, client, login, admin_id, other_editor_id, owned_campaign):
        login(admin_id)
        client.post(f'/api/campaigns/{owned_campaign}/editors', json={'userId': other_editor_id})
        resp = client.post(f'/api/campaigns/{owned_campaign}/editors',
                           json={'userId': other_editor_id})
        assert resp.status_code == 400
        assert resp.get_json() == {'error': 'User is already assigned to this campaign'}

    def test_viewer_cannot_be_assigned(self, client, login, admin_id, viewer_id, owned_campaign):
        login(admin_id)
        resp = client.post(f'/api/campaigns/{owned_campaign}/editors', json={'userId': viewer_id})
        assert resp.status_code == 400
        assert 'Promote to editor first' in resp.get_json()['error']

    def test_missing_user_id(self, client, login, admin_id, owned_campaign):
        login(admin_id)
        assert client.post(f'/api/campaigns/{owned_campaign}/editors', json={}).status_code == 400
        assert client.delete(f'/api/campaigns/{owned_campaign}/editors').status_code == 400

    def test_remove_unknown_assignment(self, client, login, admin_id, editor_id, owned_campaign):
        login(admin_id)
        resp = client.delete(f'/api/campaigns/{owned_campaign}/editors?userId={editor_id}')
        assert resp.status_code == 404


class TestPositions:
    """PATCH /api/campaigns/<id or slug>/positions."""

    def test_saves_positions(self, app, client, login, editor_id, owned_campaign,
                             make_character, make_organisation):
        aria = make_character('Aria', owned_campaign)
        guild = make_organisation('Guild', owned_campaign)
        login(editor_id)
        resp = client.patch(f'/api/campaigns/{owned_campaign}/positions', json={'positions': [
            {'nodeId': aria, 'entityType': 'character', 'posX': 10.5, 'posY': -3},
            {'nodeId': f'organisation-{guild}', 'entityType': 'organisation',
             'posX': 0, 'posY': 200},
        ]})
        assert resp.status_code == 200
        assert resp.get_json() == {'success': True,
                                   'updated': {'characters': 1, 'organisations': 1}}
        with app.app_context():
            character = db.session.get(Character, aria)
            assert (character.pos_x, character.pos_y) == (10.5, -3.0)
            assert db.session.get(Organisation, guild).pos_y == 200.0

    def test_ignores_entities_from_other_campaigns(self, app, client, login, editor_id,
                                                   owned_campaign, make_campaign,
                                                   make_character):
        outsider = make_character('Outsider', make_campaign('Elsewhere'))
        login(editor_id)
        resp = client.patch(f'/api/campaigns/{owned_campaign}/positions', json={'positions': [
            {'nodeId': str(outsider), 'entityType': 'character', 'posX': 1, 'posY': 1},
        ]})
        assert resp.status_code == 200
        with app.app_context():
            assert db.session.get(Character, outsider).pos_x is None

    def test_reports_every_invalid_entry(self, client, login, editor_id, owned_campaign):
        login(editor_id)
        resp = client.patch(f'/api/campaigns/{owned_campaign}/positions', json={'positions': [
            {'nodeId': 1, 'entityType': 'crew', 'posX': 1, 'posY': 1},
            {'nodeId': 1, 'entityType': 'character', 'posX': 'left', 'posY': 1},
            'not an object',
        ]})
        assert resp.status_code == 400
        data = resp.get_json()
        assert data['error'] == 'Invalid position data'
        assert len(data['details']) == 3
        assert data['details'][0].startswith('Position 0:')

    def test_positions_must_be_a_list(self, client, login, editor_id, owned_campaign):
        login(editor_id)
        resp = client.patch(f'/api/campaigns/{owned_campaign}/positions', json={})
        assert resp.status_code == 400

    def test_access_checks(self, client, login, viewer_id, other_editor_id, owned_campaign):
        body = {'positions': []}
        resp = client.patch(f'/api/campaigns/{owned_campaign}/positions', json=body)
        assert resp.status_code == 401
        assert resp.get_json() == {'error': 'Authentication required to save positions'}

        login(viewer_id)
        resp = client.patch(f'/api/campaigns/{owned_campaign}/positions', json=body)
        assert resp.status_code == 403
        assert resp.get_json() == {'error': 'Viewers cannot persist node positions'}

        login(other_editor_id)
        resp = client.patch(f'/api/campaigns/{owned_campaign}/positions', json=body)
        assert resp.status_code == 403

    def test_missing_campaign_is_404(self, client, login, editor_id):
        login(editor_id)
        resp = client.patch('/api/campaigns/no-such-campaign/positions', json={'positions': []})
        assert resp.status_code == 404
        assert resp.get_json() == {'error': 'Campaign not found'}
