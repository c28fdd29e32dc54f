"""
Demo campaign data.

Load it with:
    flask seed-demo

Safe to re-run: skips the campaign if one with the demo slug already exists.
"""

from npc_graph import db
from npc_graph.models import (Campaign, Character, Crew, CrewMember, CrewMemberRelationship,
                              CrewRelationship, Organisation, Relationship,
                              UniversalRelationship)

DEMO_CAMPAIGN = {
    'name': 'The Realm of Eldoria',
    'slug': 'the-realm-of-eldoria',
    'description': 'A fantasy world of magic, intrigue, and adventure',
}

DEMO_ORGANISATIONS = [
    {'name': 'The Heroes of Eldoria', 'pin_color': '#fbbf24',
     'description': 'The adventuring party exploring the realm'},
    {'name': 'Mages Guild', 'pin_color': '#a855f7',
     'description': 'An ancient order of powerful wizards'},
    {'name': 'Shadow Network', 'pin_color': '#ef4444',
     'description': 'A secretive organization of spies and assassins'},
]

# 'organisation' refers to DEMO_ORGANISATIONS by name
DEMO_CHARACTERS = [
    {'name': 'Eldric Stormwind', 'title': 'The Archmage',
     'description': 'A powerful wizard who leads the Mages Guild',
     'faction': 'Mages Guild', 'location': 'Tower of Stars',
     'tags': 'magic,leader,quest-giver', 'organisation': 'Mages Guild'},
    {'name': 'Kira Shadowblade', 'title': 'Assassin',
     'description': 'A mysterious assassin with unknown allegiances',
     'faction': 'Shadow Network', 'location': 'Unknown',
     'tags': 'stealth,dangerous,informant', 'organisation': 'Shadow Network'},
    {'name': 'Tormund Ironforge', 'title': 'The Blacksmith',
     'description': 'Master craftsman known for legendary weapons',
     'faction': 'Craftsmen Guild', 'location': 'Ironforge District',
     'tags': 'merchant,crafter,friendly'},
    {'name': 'Lady Seraphina', 'title': 'Noble of House Valdris',
     'description': 'An influential noble with political ambitions',
     'faction': 'House Valdris', 'location': 'Castle Valdris',
     'tags': 'noble,politics,wealthy'},
    {'name': 'Grimjaw', 'title': 'The Orc Warlord',
     'description': 'Former enemy, now an uneasy ally',
     'faction': 'Bloodfang Clan', 'location': 'Northern Wastes',
     'tags': 'warrior,leader,former-enemy'},
    {'name': 'Brother Marcus', 'title': 'High Priest',
     'description': 'Leader of the Temple of Light',
     'faction': 'Temple of Light', 'location': 'Grand Cathedral',
     'tags': 'healer,religious,quest-giver'},
    {'name': 'Aria Goldleaf', 'title': 'Elven Ranger',
     'description': 'A skilled tracker and protector of the forest',
     'faction': 'Woodland Guardians', 'location': 'Whispering Woods',
     'tags': 'nature,archer,scout', 'organisation': 'The Heroes of Eldoria'},
    {'name': 'Thane Rockbreaker', 'title': 'Dwarven Warrior',
     'description': 'A mighty warrior from the mountain kingdoms',
     'faction': 'Mountain Clans', 'location': 'Stonehall Keep',
     'tags': 'warrior,loyal,brave', 'organisation': 'The Heroes of Eldoria'},
]

# (from type, from name, to type, to name, type, strength, description)
DEMO_WEB = [
    ('character', 'Eldric Stormwind', 'character', 'Kira Shadowblade', 'hostile', 3,
     'Long-standing rivalry over magical artifacts'),
    ('character', 'Eldric Stormwind', 'character', 'Brother Marcus', 'friendly', 4,
     'Allies in the fight against dark magic'),
    ('character', 'Tormund Ironforge', 'character', 'Lady Seraphina', 'neutral', 3,
     'Crafts weapons for House Valdris'),
    ('character', 'Grimjaw', 'character', 'Aria Goldleaf', 'hostile', 2,
     'Former battlefield enemies, now uneasy allies'),
    ('organisation', 'Mages Guild', 'organisation', 'Shadow Network', 'hostile', 5,
     'The Guild hunts Shadow Network operatives'),
    ('organisation', 'The Heroes of Eldoria', 'character', 'Eldric Stormwind', 'friendly', 4,
     'The heroes work closely with the Archmage'),
]

DEMO_CREW = {
    'name': 'The Party',
    'description': 'The adventuring party for The Realm of Eldoria',
    'members': [
        {'name': 'Rowan Ashdown', 'title': 'Fighter'},
        {'name': 'Maeris Vael', 'title': 'Wizard'},
        {'name': 'Piran Quill', 'title': 'Rogue'},
    ],
}


def seed_demo_campaign(creator=None):
    """Create the demo campaign. Returns (campaign, created)."""
    existing = Campaign.query.filter_by(slug=DEMO_CAMPAIGN['slug']).first()
    if existing:
        return existing, False

    campaign = Campaign(creator_id=creator.id if creator else None, **DEMO_CAMPAIGN)
    db.session.add(campaign)

    orgs = {}
    for data in DEMO_ORGANISATIONS:
        orgs[data['name']] = Organisation(campaign=campaign, **data)

    chars = {}
    for data in DEMO_CHARACTERS:
        data = dict(data)
        org_name = data.pop('organisation', None)
        character = Character(campaign=campaign, status='alive', **data)
        if org_name:
            character.organisations.append(orgs[org_name])
        chars[data['name']] = character

    crew = Crew(campaign=campaign, name=DEMO_CREW['name'], description=DEMO_CREW['description'])
    crew.members.extend(CrewMember(**m) for m in DEMO_CREW['members'])

    # Ids are needed for the universal relationships below
    db.session.flush()

    entities = {'character': chars, 'organisation': orgs}
    for from_type, from_name, to_type, to_name, rel_type, strength, description in DEMO_WEB:
        db.session.add(UniversalRelationship(
            from_entity_type=from_type, from_entity_id=entities[from_type][from_name].id,
            to_entity_type=to_type, to_entity_id=entities[to_type][to_name].id,
            type=rel_type, strength=strength, description=description,
        ))

    db.session.add(Relationship(from_npc=chars['Aria Goldleaf'], to_npc=chars['Thane Rockbreaker'],
                                type='friendly', strength=5,
                                description='Travelling companions since the border wars'))
    db.session.add(CrewRelationship(crew=crew, to_npc=chars['Eldric Stormwind'],
                                    type='friendly', strength=3,
                                    description='The Archmage hired the party'))
    db.session.add(CrewMemberRelationship(crew_member=crew.members[1],
                                          to_npc=chars['Eldric Stormwind'],
                                          type='friendly', strength=4,
                                          description='Former apprentice'))

    db.session.commit()
    return campaign, True
