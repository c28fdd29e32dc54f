"""Add campaigns.slug with a unique index

Existing rows get NULL; run `flask backfill-slugs` after upgrading.

Revision ID: 2b3c4d5e6f7a
Revises: 1a2b3c4d5e6f
Create Date: 2026-03-09 14:30:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '2b3c4d5e6f7a'
down_revision = '1a2b3c4d5e6f'
branch_labels = None
depends_on = None


def upgrade():
    with op.batch_alter_table('campaigns') as batch_op:
        batch_op.add_column(sa.Column('slug', sa.String(60), nullable=True))
        # The unique index is what stops two concurrent creates sharing a slug
        batch_op.create_index('ix_campaigns_slug', ['slug'], unique=True)


def downgrade():
    with op.batch_alter_table('campaigns') as batch_op:
        batch_op.drop_index('ix_campaigns_slug')
        batch_op.drop_column('slug')
