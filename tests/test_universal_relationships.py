"""Tests for /api/universal-relationships."""

from npc_graph.models import UniversalRelationship


class TestCreateUniversalRelationship:
    """POST /api/universal-relationships."""

    def test_character_to_organisation(self, client, login, editor_id, owned_campaign,
                                       make_character, make_organisation):
        aria = make_character('Aria', owned_campaign)
        guild = make_organisation('Guild', owned_campaign)
        login(editor_id)
        resp = client.post('/api/universal-relationships', json={
            'fromEntityId': aria, 'fromEntityType': 'character',
            'toEntityId': guild, 'toEntityType': 'organisation',
            'type': 'friendly', 'strength': 2, 'description': 'Informant',
        })
        assert resp.status_code == 201
        data = resp.get_json()
        assert data['fromEntityType'] == 'character'
        assert data['toEntityId'] == guild
        assert data['strength'] == 2

    def test_required_fields(self, client, login, editor_id):
        login(editor_id)
        resp = client.post('/api/universal-relationships',
                           json={'fromEntityId': 1, 'fromEntityType': 'character'})
        assert resp.status_code == 400
        assert resp.get_json() == {'error': 'fromEntityId, fromEntityType, toEntityId, '
                                            'toEntityType, and type are required'}

    def test_invalid_entity_type(self, client, login, editor_id):
        login(editor_id)
        resp = client.post('/api/universal-relationships', json={
            'fromEntityId': 1, 'fromEntityType': 'crew',
            'toEntityId': 1, 'toEntityType': 'character', 'type': 'friendly'})
        assert resp.status_code == 400

    def test_non_string_values(self, client, login, editor_id, owned_campaign, make_character):
        aria = make_character('Aria', owned_campaign)
        login(editor_id)
        body = {'fromEntityId': aria, 'fromEntityType': 'character',
                'toEntityId': aria, 'toEntityType': 'character', 'type': 'friendly'}
        resp = client.post('/api/universal-relationships',
                           json=dict(body, fromEntityType={'kind': 'character'}))
        assert resp.status_code == 400
        resp = client.post('/api/universal-relationships', json=dict(body, type=['friendly']))
        assert resp.status_code == 400
        assert resp.get_json() == {'error': 'type must be a non-empty string'}
        resp = client.post('/api/universal-relationships', json=dict(body, description=1))
        assert resp.get_json() == {'error': 'description must be a string'}

    def test_missing_endpoint(self, client, login, editor_id, owned_campaign, make_character):
        aria = make_character('Aria', owned_campaign)
        login(editor_id)
        resp = client.post('/api/universal-relationships', json={
            'fromEntityId': aria, 'fromEntityType': 'character',
            'toEntityId': 999, 'toEntityType': 'organisation', 'type': 'friendly'})
        assert resp.status_code == 404
        assert resp.get_json() == {'error': 'Organisation not found'}

    def test_duplicates_are_accepted(self, app, client, login, editor_id, owned_campaign,
                                     make_character):
        aria = make_character('Aria', owned_campaign)
        thane = make_character('Thane', owned_campaign)
        login(editor_id)
        body = {'fromEntityId': aria, 'fromEntityType': 'character',
                'toEntityId': thane, 'toEntityType': 'character', 'type': 'hostile'}
        assert client.post('/api/universal-relationships', json=body).status_code == 201
        assert client.post('/api/universal-relationships', json=body).status_code == 201
        with app.app_context():
            assert UniversalRelationship.query.count() == 2

    def test_viewer_rejected(self, client, login, viewer_id, owned_campaign, make_character):
        aria = make_character('Aria', owned_campaign)
        login(viewer_id)
        resp = client.post('/api/universal-relationships', json={
            'fromEntityId': aria, 'fromEntityType': 'character',
            'toEntityId': aria, 'toEntityType': 'character', 'type': 'neutral'})
        assert resp.status_code == 403


class TestListUniversalRelationships:
    """GET /api/universal-relationships."""

    def test_entity_filter_matches_either_side(self, client, owned_campaign, make_character,
                                               make_organisation, make_universal):
        aria = make_character('Aria', owned_campaign)
        thane = make_character('Thane', owned_campaign)
        kira = make_character('Kira', owned_campaign)
        first = make_universal('character', aria, 'character', thane)
        second = make_universal('character', kira, 'character', aria)
        make_universal('character', thane, 'character', kira)

        data = client.get(f'/api/universal-relationships?entityId={aria}').get_json()
        # Newest first
        assert [r['id'] for r in data] == [second, first]

    def test_entity_type_disambiguates_colliding_ids(self, client, owned_campaign,
                                                     make_character, make_organisation,
                                                     make_universal):
        aria = make_character('Aria', owned_campaign)
        guild = make_organisation('Guild', owned_campaign)
        # Both tables start their ids at 1
        assert aria == guild
        make_universal('character', aria, 'organisation', guild)
        make_universal('organisation', guild, 'organisation', guild)

        assert len(client.get(f'/api/universal-relationships?entityId={aria}').get_json()) == 2
        data = client.get(f'/api/universal-relationships'
                          f'?entityId={aria}&entityType=character').get_json()
        assert len(data) == 1
        assert data[0]['fromEntityType'] == 'character'


class TestModifyUniversalRelationship:
    """GET/PUT/DELETE /api/universal-relationships/<id>."""

    def test_update_ignores_endpoints(self, client, login, editor_id, owned_campaign,
                                      make_character, make_universal):
        aria = make_character('Aria', owned_campaign)
        thane = make_character('Thane', owned_campaign)
        rel = make_universal('character', aria, 'character', thane, 'friendly', 2)
        login(editor_id)
        data = client.put(f'/api/universal-relationships/{rel}',
                          json={'type': 'hostile', 'strength': 5, 'toEntityId': aria}).get_json()
        assert data['type'] == 'hostile'
        assert data['strength'] == 5
        assert data['toEntityId'] == thane

        resp = client.put(f'/api/universal-relationships/{rel}', json={'description': {'a': 1}})
        assert resp.status_code == 400

    def test_get_and_delete(self, app, client, login, editor_id, owned_campaign,
                            make_character, make_universal):
        aria = make_character('Aria', owned_campaign)
        rel = make_universal('character', aria, 'character', aria)
        assert client.get(f'/api/universal-relationships/{rel}').get_json()['id'] == rel
        login(editor_id)
        assert client.delete(f'/api/universal-relationships/{rel}').status_code == 200
        assert client.get(f'/api/universal-relationships/{rel}').status_code == 404

    def test_other_editor_cannot_modify(self, client, login, other_editor_id, owned_campaign,
                                        make_character, make_universal):
        aria = make_character('Aria', owned_campaign)
        rel = make_universal('character', aria, 'character', aria)
        login(other_editor_id)
        assert client.put(f'/api/universal-relationships/{rel}',
                          json={'type': 'neutral'}).status_code == 403
