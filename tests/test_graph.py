"""Tests for the campaign relationship graph."""

from npc_graph.graph import (FRIENDLY_COLORS, HOSTILE_COLORS, NEUTRAL_COLOR, node_key,
                             relationship_color, relationship_label)


class TestRelationshipStyling:
    """Link colours and labels by type and strength."""

    def test_colors(self):
        assert relationship_color('friendly', 1) == FRIENDLY_COLORS[0]
        assert relationship_color('friendly', 5) == FRIENDLY_COLORS[4]
        assert relationship_color('hostile', 3) == HOSTILE_COLORS[2]
        assert relationship_color('neutral', 5) == NEUTRAL_COLOR
        assert relationship_color('romantic', 2) == NEUTRAL_COLOR

    def test_strength_is_clamped(self):
        assert relationship_color('hostile', 0) == HOSTILE_COLORS[0]
        assert relationship_color('hostile', 9) == HOSTILE_COLORS[4]
        assert relationship_color('hostile', None) == HOSTILE_COLORS[0]

    def test_labels(self):
        assert relationship_label('hostile', 5, 'character', 'character') == 'Sworn Enemy'
        assert relationship_label('friendly', 1, 'organisation', 'organisation') == \
            'Trading Partners'
        assert relationship_label('friendly', 5, 'character', 'organisation') == 'Champion'
        assert relationship_label('neutral', 4, 'organisation', 'character') == 'Monitors'

    def test_unknown_label_falls_back_to_type(self):
        assert relationship_label('romantic', 3, 'character', 'character') == 'romantic'

    def test_node_key(self):
        assert node_key('character', 7) == 'character-7'


class TestCampaignGraph:
    """GET /api/campaigns/<id or slug>/graph."""

    def _populate(self, owned_campaign, make_character, make_organisation, make_universal):
        aria = make_character('Aria', owned_campaign)
        thane = make_character('Thane', owned_campaign)
        kira = make_character('Kira', owned_campaign)
        guild = make_organisation('Guild', owned_campaign, pin_color='#a855f7')
        make_universal('character', aria, 'character', thane, 'friendly', 5)
        make_universal('organisation', guild, 'character', kira, 'hostile', 4)
        return aria, thane, kira, guild

    def test_all_nodes_and_links(self, client, owned_campaign, make_character,
                                 make_organisation, make_universal):
        aria, thane, kira, guild = self._populate(owned_campaign, make_character,
                                                  make_organisation, make_universal)
        data = client.get('/api/campaigns/owned-campaign/graph').get_json()
        assert {n['id'] for n in data['nodes']} == {
            f'character-{aria}', f'character-{thane}', f'character-{kira}',
            f'organisation-{guild}'}
        links = {(l['source'], l['target']): l for l in data['links']}
        friendship = links[(f'character-{aria}', f'character-{thane}')]
        assert friendship['label'] == 'Soulmate'
        assert friendship['color'] == FRIENDLY_COLORS[4]
        assert links[(f'organisation-{guild}', f'character-{kira}')]['label'] == 'Hunts'

    def test_characters_mode_drops_cross_type_links(self, client, owned_campaign,
                                                    make_character, make_organisation,
                                                    make_universal):
        self._populate(owned_campaign, make_character, make_organisation, make_universal)
        data = client.get(f'/api/campaigns/{owned_campaign}/graph?viewMode=characters').get_json()
        assert {n['entityType'] for n in data['nodes']} == {'character'}
        assert len(data['links']) == 1

    def test_organisations_mode(self, client, owned_campaign, make_character,
                                make_organisation, make_universal):
        self._populate(owned_campaign, make_character, make_organisation, make_universal)
        data = client.get(f'/api/campaigns/{owned_campaign}/graph'
                          f'?viewMode=organisations').get_json()
        assert [n['name'] for n in data['nodes']] == ['Guild']
        assert data['links'] == []

    def test_selection_keeps_neighbours(self, client, owned_campaign, make_character,
                                        make_organisation, make_universal):
        aria, thane, kira, guild = self._populate(owned_campaign, make_character,
                                                  make_organisation, make_universal)
        data = client.get(f'/api/campaigns/{owned_campaign}/graph'
                          f'?selectedEntityIds=character-{aria}').get_json()
        assert {n['id'] for n in data['nodes']} == {f'character-{aria}', f'character-{thane}'}
        assert len(data['links']) == 1

    def test_links_to_other_campaigns_are_dropped(self, client, owned_campaign, make_campaign,
                                                  make_character, make_universal):
        aria = make_character('Aria', owned_campaign)
        outsider = make_character('Outsider', make_campaign('Elsewhere'))
        make_universal('character', aria, 'character', outsider)
        data = client.get(f'/api/campaigns/{owned_campaign}/graph').get_json()
        assert data['links'] == []

    def test_character_inherits_first_organisation_colour(self, app, client, owned_campaign,
                                                          make_character, make_organisation):
        from npc_graph import db
        from npc_graph.models import Character, Organisation

        aria = make_character('Aria', owned_campaign)
        guild = make_organisation('Guild', owned_campaign, pin_color='#ef4444')
        with app.app_context():
            db.session.get(Character, aria).organisations.append(
                db.session.get(Organisation, guild))
            db.session.commit()

        data = client.get(f'/api/campaigns/{owned_campaign}/graph').get_json()
        nodes = {n['id']: n for n in data['nodes']}
        assert nodes[f'character-{aria}']['pinColor'] == '#ef4444'
        assert nodes[f'organisation-{guild}']['memberCount'] == 1

    def test_invalid_view_mode(self, client, owned_campaign):
        resp = client.get(f'/api/campaigns/{owned_campaign}/graph?viewMode=crews')
        assert resp.status_code == 400
