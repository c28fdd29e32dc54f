"""Initial schema: users, campaigns, characters, organisations, crews, relationships

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2026-03-02 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '1a2b3c4d5e6f'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    ]


def upgrade():
    op.create_table('users',
        sa.Column('id',            sa.Integer(),     nullable=False),
        sa.Column('email',         sa.String(256),   nullable=False),
        sa.Column('name',          sa.String(200),   nullable=True),
        sa.Column('password_hash', sa.String(256),   nullable=False),
        sa.Column('role',          sa.String(20),    nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )

    # slug arrives in the next revision
    op.create_table('campaigns',
        sa.Column('id',          sa.Integer(),    nullable=False),
        sa.Column('name',        sa.String(200),  nullable=False),
        sa.Column('description', sa.Text(),       nullable=True),
        sa.Column('image_url',   sa.String(500),  nullable=True),
        sa.Column('image_crop',  sa.Text(),       nullable=True),
        sa.Column('is_active',   sa.Boolean(),    nullable=False, server_default=sa.true()),
        sa.Column('creator_id',  sa.Integer(),    nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['creator_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table('campaign_editors',
        sa.Column('id',          sa.Integer(),  nullable=False),
        sa.Column('campaign_id', sa.Integer(),  nullable=False),
        sa.Column('user_id',     sa.Integer(),  nullable=False),
        sa.Column('created_at',  sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['campaign_id'], ['campaigns.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('campaign_id', 'user_id', name='uq_campaign_editor'),
    )

    op.create_table('characters',
        sa.Column('id',          sa.Integer(),    nullable=False),
        sa.Column('name',        sa.String(200),  nullable=False),
        sa.Column('title',       sa.String(200),  nullable=True),
        sa.Column('description', sa.Text(),       nullable=True),
        sa.Column('image_url',   sa.String(500),  nullable=True),
        sa.Column('image_crop',  sa.Text(),       nullable=True),
        sa.Column('faction',     sa.String(200),  nullable=True),
        sa.Column('location',    sa.String(200),  nullable=True),
        sa.Column('status',      sa.String(20),   nullable=False, server_default='alive'),
        sa.Column('tags',        sa.Text(),       nullable=True),
        sa.Column('pos_x',       sa.Float(),      nullable=True),
        sa.Column('pos_y',       sa.Float(),      nullable=True),
        sa.Column('campaign_id', sa.Integer(),    nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['campaign_id'], ['campaigns.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_characters_campaign_id', 'characters', ['campaign_id'])

    op.create_table('organisations',
        sa.Column('id',          sa.Integer(),    nullable=False),
        sa.Column('name',        sa.String(200),  nullable=False),
        sa.Column('description', sa.Text(),       nullable=True),
        sa.Column('image_url',   sa.String(500),  nullable=True),
        sa.Column('image_crop',  sa.Text(),       nullable=True),
        sa.Column('pin_color',   sa.String(20),   nullable=True),
        sa.Column('pos_x',       sa.Float(),      nullable=True),
        sa.Column('pos_y',       sa.Float(),      nullable=True),
        sa.Column('campaign_id', sa.Integer(),    nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['campaign_id'], ['campaigns.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_organisations_campaign_id', 'organisations', ['campaign_id'])

    op.create_table('character_organisations',
        sa.Column('character_id',    sa.Integer(), nullable=False),
        sa.Column('organisation_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['character_id'], ['characters.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['organisation_id'], ['organisations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('character_id', 'organisation_id'),
    )

    op.create_table('crews',
        sa.Column('id',          sa.Integer(),    nullable=False),
        sa.Column('name',        sa.String(200),  nullable=False),
        sa.Column('description', sa.Text(),       nullable=True),
        sa.Column('image_url',   sa.String(500),  nullable=True),
        sa.Column('campaign_id', sa.Integer(),    nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['campaign_id'], ['campaigns.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_crews_campaign_id', 'crews', ['campaign_id'])

    op.create_table('crew_members',
        sa.Column('id',          sa.Integer(),    nullable=False),
        sa.Column('crew_id',     sa.Integer(),    nullable=False),
        sa.Column('name',        sa.String(200),  nullable=False),
        sa.Column('title',       sa.String(200),  nullable=True),
        sa.Column('description', sa.Text(),       nullable=True),
        sa.Column('image_url',   sa.String(500),  nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['crew_id'], ['crews.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table('relationships',
        sa.Column('id',          sa.Integer(),   nullable=False),
        sa.Column('from_npc_id', sa.Integer(),   nullable=False),
        sa.Column('to_npc_id',   sa.Integer(),   nullable=False),
        sa.Column('type',        sa.String(50),  nullable=False),
        sa.Column('description', sa.Text(),      nullable=True),
        sa.Column('strength',    sa.Integer(),   nullable=False, server_default='5'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['from_npc_id'], ['characters.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['to_npc_id'], ['characters.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('from_npc_id', 'to_npc_id', 'type',
                            name='uq_relationship_from_to_type'),
    )
    op.create_index('ix_relationships_from_npc_id', 'relationships', ['from_npc_id'])
    op.create_index('ix_relationships_to_npc_id', 'relationships', ['to_npc_id'])

    op.create_table('crew_relationships',
        sa.Column('id',          sa.Integer(),   nullable=False),
        sa.Column('crew_id',     sa.Integer(),   nullable=False),
        sa.Column('to_npc_id',   sa.Integer(),   nullable=False),
        sa.Column('type',        sa.String(50),  nullable=False),
        sa.Column('description', sa.Text(),      nullable=True),
        sa.Column('strength',    sa.Integer(),   nullable=False, server_default='5'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['crew_id'], ['crews.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['to_npc_id'], ['characters.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table('crew_member_relationships',
        sa.Column('id',             sa.Integer(),   nullable=False),
        sa.Column('crew_member_id', sa.Integer(),   nullable=False),
        sa.Column('to_npc_id',      sa.Integer(),   nullable=False),
        sa.Column('type',           sa.String(50),  nullable=False),
        sa.Column('description',    sa.Text(),      nullable=True),
        sa.Column('strength',       sa.Integer(),   nullable=False, server_default='5'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['crew_member_id'], ['crew_members.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['to_npc_id'], ['characters.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('crew_member_id', 'to_npc_id',
                            name='uq_crew_member_relationship_pair'),
    )

    # No foreign keys: the *_entity_type column says which table the id points into
    op.create_table('universal_relationships',
        sa.Column('id',               sa.Integer(),   nullable=False),
        sa.Column('from_entity_id',   sa.Integer(),   nullable=False),
        sa.Column('from_entity_type', sa.String(20),  nullable=False),
        sa.Column('to_entity_id',     sa.Integer(),   nullable=False),
        sa.Column('to_entity_type',   sa.String(20),  nullable=False),
        sa.Column('type',             sa.String(50),  nullable=False),
        sa.Column('description',      sa.Text(),      nullable=True),
        sa.Column('strength',         sa.Integer(),   nullable=False, server_default='5'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_universal_relationships_from', 'universal_relationships',
                    ['from_entity_type', 'from_entity_id'])
    op.create_index('ix_universal_relationships_to', 'universal_relationships',
                    ['to_entity_type', 'to_entity_id'])


def downgrade():
    op.drop_index('ix_universal_relationships_to', table_name='universal_relationships')
    op.drop_index('ix_universal_relationships_from', table_name='universal_relationships')
    op.drop_table('universal_relationships')
    op.drop_table('crew_member_relationships')
    op.drop_table('crew_relationships')
    op.drop_index('ix_relationships_to_npc_id', table_name='relationships')
    op.drop_index('ix_relationships_from_npc_id', table_name='relationships')
    op.drop_table('relationships')
    op.drop_table('crew_members')
    op.drop_index('ix_crews_campaign_id', table_name='crews')
    op.drop_table('crews')
    op.drop_table('character_organisations')
    op.drop_index('ix_organisations_campaign_id', table_name='organisations')
    op.drop_table('organisations')
    op.drop_index('ix_characters_campaign_id', table_name='characters')
    op.drop_table('characters')
    op.drop_table('campaign_editors')
    op.drop_table('campaigns')
    op.drop_table('users')
