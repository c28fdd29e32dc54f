import json
from datetime import datetime

from flask_login import UserMixin
from sqlalchemy import and_, or_
from werkzeug.security import generate_password_hash, check_password_hash

from npc_graph import db

# Role hierarchy, lowest first. Anonymous callers count as viewers.
ROLES = ['viewer', 'editor', 'admin']

CHARACTER_STATUSES = ['alive', 'dead', 'unknown']

DEFAULT_STRENGTH = 5


def _iso(value):
    return value.isoformat() if value else None


def dump_crop(value):
    """Serialise an imageCrop object for storage. Falsy values clear the column."""
    return json.dumps(value) if value else None


def load_crop(text):
    """Parse a stored imageCrop back into an object (None if empty or unreadable)."""
    if not text:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return None


# Association table: Character ↔ Organisation membership (many-to-many)
character_organisations = db.Table('character_organisations',
    db.Column('character_id', db.Integer,
              db.ForeignKey('characters.id', ondelete='CASCADE'), primary_key=True),
    db.Column('organisation_id', db.Integer,
              db.ForeignKey('organisations.id', ondelete='CASCADE'), primary_key=True)
)


class User(UserMixin, db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(256), unique=True, nullable=False)
    name = db.Column(db.String(200))
    password_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(db.String(20), nullable=False, default='editor')   # viewer / editor / admin
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    created_campaigns = db.relationship('Campaign', backref='creator', lazy=True,
                                        foreign_keys='Campaign.creator_id')
    editor_assignments = db.relationship('CampaignEditor', backref='user',
                                         cascade='all, delete-orphan')

    @property
    def is_admin(self):
        return self.role == 'admin'

    def set_password(self, password):
        self.password_hash = generate_password_hash(password, method='pbkdf2:sha256')

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'name': self.name,
            'role': self.role,
            'createdAt': _iso(self.created_at),
        }

    def __repr__(self):
        return f'<User {self.email} ({self.role})>'


class Campaign(db.Model):
    __tablename__ = 'campaigns'

    id = db.Column(db.Integer, primary_key=True)
    # Generated from the name at creation and never changed implicitly.
    # Nullable only for legacy rows awaiting `flask backfill-slugs`.
    slug = db.Column(db.String(60), unique=True, index=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    image_url = db.Column(db.String(500))
    image_crop = db.Column(db.Text)             # JSON-encoded crop rectangle
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    creator_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Deleting a campaign deletes everything it owns
    characters = db.relationship('Character', backref='campaign',
                                 cascade='save-update, merge, delete',
                                 order_by='Character.name')
    organisations = db.relationship('Organisation', backref='campaign',
                                    cascade='save-update, merge, delete',
                                    order_by='Organisation.name')
    crews = db.relationship('Crew', backref='campaign',
                            cascade='save-update, merge, delete',
                            order_by='Crew.name')
    editors = db.relationship('CampaignEditor', backref='campaign',
                              cascade='all, delete-orphan')

    @staticmethod
    def resolve(id_or_slug):
        """Find a campaign by numeric id first, then by slug. Returns None on a miss."""
        if id_or_slug is None or id_or_slug == '':
            return None
        campaign = None
        if str(id_or_slug).isdigit():
            campaign = db.session.get(Campaign, int(id_or_slug))
        if campaign is None:
            campaign = Campaign.query.filter_by(slug=str(id_or_slug)).first()
        return campaign

    def is_editor(self, user_id):
        return any(e.user_id == user_id for e in self.editors)

    def to_dict(self, include_counts=False):
        # The editor assignment list is deliberately never serialised here
        data = {
            'id': self.id,
            'slug': self.slug,
            'name': self.name,
            'description': self.description,
            'imageUrl': self.image_url,
            'imageCrop': load_crop(self.image_crop),
            'isActive': self.is_active,
            'creatorId': self.creator_id,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }
        if include_counts:
            data['_count'] = {
                'characters': len(self.characters),
                'organisations': len(self.organisations),
            }
        return data

    def __repr__(self):
        return f'<Campaign {self.slug}>'


class CampaignEditor(db.Model):
    """An editor assigned by an admin to a campaign they did not create."""
    __tablename__ = 'campaign_editors'

    id = db.Column(db.Integer, primary_key=True)
    campaign_id = db.Column(db.Integer, db.ForeignKey('campaigns.id', ondelete='CASCADE'),
                            nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'),
                        nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (db.UniqueConstraint('campaign_id', 'user_id', name='uq_campaign_editor'),)

    def __repr__(self):
        return f'<CampaignEditor campaign={self.campaign_id} user={self.user_id}>'


class Character(db.Model):
    """A named character (formerly "NPC"). campaign_id=NULL means a global character."""
    __tablename__ = 'characters'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    title = db.Column(db.String(200))
    description = db.Column(db.Text)
    image_url = db.Column(db.String(500))
    image_crop = db.Column(db.Text)
    faction = db.Column(db.String(200))          # free text, separate from organisation membership
    location = db.Column(db.String(200))
    status = db.Column(db.String(20), nullable=False, default='alive')  # alive / dead / unknown
    tags = db.Column(db.Text)                    # comma-separated: "magic,leader,quest-giver"
    pos_x = db.Column(db.Float)
    pos_y = db.Column(db.Float)
    campaign_id = db.Column(db.Integer, db.ForeignKey('campaigns.id', ondelete='CASCADE'),
                            nullable=True, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    organisations = db.relationship('Organisation', secondary=character_organisations,
                                    backref=db.backref('members', order_by='Character.name'),
                                    order_by='Organisation.name')
    # Typed relationships go with the character when it is deleted
    relationships_from = db.relationship('Relationship', backref='from_npc',
                                         foreign_keys='Relationship.from_npc_id',
                                         cascade='all, delete-orphan')
    relationships_to = db.relationship('Relationship', backref='to_npc',
                                       foreign_keys='Relationship.to_npc_id',
                                       cascade='all, delete-orphan')
    crew_relationships = db.relationship('CrewRelationship', backref='to_npc',
                                         cascade='all, delete-orphan')
    crew_member_relationships = db.relationship('CrewMemberRelationship', backref='to_npc',
                                                cascade='all, delete-orphan')

    def get_tags_list(self):
        """Return tags as a Python list, or empty list if none."""
        if not self.tags:
            return []
        return [t.strip() for t in self.tags.split(',') if t.strip()]

    def to_dict(self, include_organisations=True):
        data = {
            'id': self.id,
            'name': self.name,
            'title': self.title,
            'description': self.description,
            'imageUrl': self.image_url,
            'imageCrop': load_crop(self.image_crop),
            'faction': self.faction,
            'location': self.location,
            'status': self.status,
            'tags': self.tags,
            'posX': self.pos_x,
            'posY': self.pos_y,
            'campaignId': self.campaign_id,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }
        if include_organisations:
            data['organisations'] = [o.to_dict(include_members=False) for o in self.organisations]
        return data

    def __repr__(self):
        return f'<Character {self.name}>'


class Organisation(db.Model):
    __tablename__ = 'organisations'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    image_url = db.Column(db.String(500))
    image_crop = db.Column(db.Text)
    pin_color = db.Column(db.String(20))         # hex colour; uniqueness is offered, not enforced
    pos_x = db.Column(db.Float)
    pos_y = db.Column(db.Float)
    campaign_id = db.Column(db.Integer, db.ForeignKey('campaigns.id', ondelete='CASCADE'),
                            nullable=True, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # 'members' backref is defined on Character.organisations

    def to_dict(self, include_members=True):
        data = {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'imageUrl': self.image_url,
            'imageCrop': load_crop(self.image_crop),
            'pinColor': self.pin_color,
            'posX': self.pos_x,
            'posY': self.pos_y,
            'campaignId': self.campaign_id,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }
        if include_members:
            data['members'] = [m.to_dict(include_organisations=False) for m in self.members]
            data['_count'] = {'members': len(self.members)}
        return data

    def __repr__(self):
        return f'<Organisation {self.name}>'


class Crew(db.Model):
    """The party (or any group): owns CrewMembers and can relate to Characters."""
    __tablename__ = 'crews'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    image_url = db.Column(db.String(500))
    campaign_id = db.Column(db.Integer, db.ForeignKey('campaigns.id', ondelete='CASCADE'),
                            nullable=True, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    members = db.relationship('CrewMember', backref='crew', cascade='all, delete-orphan',
                              order_by='CrewMember.id')
    relationships = db.relationship('CrewRelationship', backref='crew',
                                    cascade='all, delete-orphan')

    def to_dict(self, include_members=True, include_relationships=False):
        data = {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'imageUrl': self.image_url,
            'campaignId': self.campaign_id,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }
        if include_members:
            data['members'] = [m.to_dict(include_relationships=include_relationships)
                               for m in self.members]
        if include_relationships:
            data['relationships'] = [r.to_dict(include_endpoints=True) for r in self.relationships]
        return data

    def __repr__(self):
        return f'<Crew {self.name}>'


class CrewMember(db.Model):
    __tablename__ = 'crew_members'

    id = db.Column(db.Integer, primary_key=True)
    crew_id = db.Column(db.Integer, db.ForeignKey('crews.id', ondelete='CASCADE'), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    title = db.Column(db.String(200))
    description = db.Column(db.Text)
    image_url = db.Column(db.String(500))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    relationships = db.relationship('CrewMemberRelationship', backref='crew_member',
                                    cascade='all, delete-orphan')

    def to_dict(self, include_relationships=False):
        data = {
            'id': self.id,
            'crewId': self.crew_id,
            'name': self.name,
            'title': self.title,
            'description': self.description,
            'imageUrl': self.image_url,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }
        if include_relationships:
            data['relationships'] = [r.to_dict(include_endpoints=True) for r in self.relationships]
        return data

    def __repr__(self):
        return f'<CrewMember {self.name}>'


class Relationship(db.Model):
    """Directional Character → Character relationship."""
    __tablename__ = 'relationships'

    id = db.Column(db.Integer, primary_key=True)
    from_npc_id = db.Column(db.Integer, db.ForeignKey('characters.id', ondelete='CASCADE'),
                            nullable=False, index=True)
    to_npc_id = db.Column(db.Integer, db.ForeignKey('characters.id', ondelete='CASCADE'),
                          nullable=False, index=True)
    type = db.Column(db.String(50), nullable=False)      # friendly / hostile / neutral / ...
    description = db.Column(db.Text)
    strength = db.Column(db.Integer, nullable=False, default=DEFAULT_STRENGTH)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # The routes check this first; the constraint catches concurrent inserts
    __table_args__ = (db.UniqueConstraint('from_npc_id', 'to_npc_id', 'type',
                                          name='uq_relationship_from_to_type'),)

    def to_dict(self, include_endpoints=False):
        data = {
            'id': self.id,
            'fromNpcId': self.from_npc_id,
            'toNpcId': self.to_npc_id,
            'type': self.type,
            'description': self.description,
            'strength': self.strength,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }
        if include_endpoints:
            data['fromNpc'] = self.from_npc.to_dict(include_organisations=False)
            data['toNpc'] = self.to_npc.to_dict(include_organisations=False)
        return data

    def __repr__(self):
        return f'<Relationship {self.from_npc_id} -{self.type}-> {self.to_npc_id}>'


class CrewRelationship(db.Model):
    """Crew → Character relationship."""
    __tablename__ = 'crew_relationships'

    id = db.Column(db.Integer, primary_key=True)
    crew_id = db.Column(db.Integer, db.ForeignKey('crews.id', ondelete='CASCADE'), nullable=False)
    to_npc_id = db.Column(db.Integer, db.ForeignKey('characters.id', ondelete='CASCADE'),
                          nullable=False)
    type = db.Column(db.String(50), nullable=False)
    description = db.Column(db.Text)
    strength = db.Column(db.Integer, nullable=False, default=DEFAULT_STRENGTH)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self, include_endpoints=False):
        data = {
            'id': self.id,
            'crewId': self.crew_id,
            'toNpcId': self.to_npc_id,
            'type': self.type,
            'description': self.description,
            'strength': self.strength,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }
        if include_endpoints:
            data['crew'] = self.crew.to_dict(include_members=False)
            data['toNpc'] = self.to_npc.to_dict(include_organisations=False)
        return data


class CrewMemberRelationship(db.Model):
    """CrewMember → Character relationship. One per (member, character) pair."""
    __tablename__ = 'crew_member_relationships'

    id = db.Column(db.Integer, primary_key=True)
    crew_member_id = db.Column(db.Integer, db.ForeignKey('crew_members.id', ondelete='CASCADE'),
                               nullable=False)
    to_npc_id = db.Column(db.Integer, db.ForeignKey('characters.id', ondelete='CASCADE'),
                          nullable=False)
    type = db.Column(db.String(50), nullable=False)
    description = db.Column(db.Text)
    strength = db.Column(db.Integer, nullable=False, default=DEFAULT_STRENGTH)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (db.UniqueConstraint('crew_member_id', 'to_npc_id',
                                          name='uq_crew_member_relationship_pair'),)

    def to_dict(self, include_endpoints=False):
        data = {
            'id': self.id,
            'crewMemberId': self.crew_member_id,
            'toNpcId': self.to_npc_id,
            'type': self.type,
            'description': self.description,
            'strength': self.strength,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }
        if include_endpoints:
            data['crewMember'] = self.crew_member.to_dict()
            data['crewId'] = self.crew_member.crew_id
            data['toNpc'] = self.to_npc.to_dict(include_organisations=False)
        return data


class UniversalRelationship(db.Model):
    """A relationship between any two entities, addressed by (type, id) pairs.

    There is no foreign key on either side: the entity type tag selects the
    table through ENTITY_MODELS, and delete_universal_relationships() keeps the
    rows consistent when an endpoint is removed.
    """
    __tablename__ = 'universal_relationships'

    id = db.Column(db.Integer, primary_key=True)
    from_entity_id = db.Column(db.Integer, nullable=False)
    from_entity_type = db.Column(db.String(20), nullable=False)
    to_entity_id = db.Column(db.Integer, nullable=False)
    to_entity_type = db.Column(db.String(20), nullable=False)
    type = db.Column(db.String(50), nullable=False)
    description = db.Column(db.Text)
    strength = db.Column(db.Integer, nullable=False, default=DEFAULT_STRENGTH)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.Index('ix_universal_relationships_from', 'from_entity_type', 'from_entity_id'),
        db.Index('ix_universal_relationships_to', 'to_entity_type', 'to_entity_id'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'fromEntityId': self.from_entity_id,
            'fromEntityType': self.from_entity_type,
            'toEntityId': self.to_entity_id,
            'toEntityType': self.to_entity_type,
            'type': self.type,
            'description': self.description,
            'strength': self.strength,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }

    def __repr__(self):
        return (f'<UniversalRelationship {self.from_entity_type}:{self.from_entity_id} '
                f'-{self.type}-> {self.to_entity_type}:{self.to_entity_id}>')


# Entity type tag → backing model, for UniversalRelationship endpoints
ENTITY_MODELS = {
    'character': Character,
    'organisation': Organisation,
}

ENTITY_TYPES = list(ENTITY_MODELS)


def get_entity(entity_type, entity_id):
    """Return the Character/Organisation addressed by a (type, id) pair, or None."""
    model = ENTITY_MODELS.get(entity_type)
    if model is None:
        return None
    return db.session.get(model, entity_id)


def delete_universal_relationships(entity_type, entity_ids):
    """Delete every universal relationship touching any of the given entities."""
    entity_ids = list(entity_ids)
    if not entity_ids:
        return 0
    UR = UniversalRelationship
    return UR.query.filter(or_(
        and_(UR.from_entity_type == entity_type, UR.from_entity_id.in_(entity_ids)),
        and_(UR.to_entity_type == entity_type, UR.to_entity_id.in_(entity_ids)),
    )).delete(synchronize_session=False)
