"""add backdrop, trailer and age rating to productions

Revision ID: b2c3d4e5f6a7
Revises: a1b2c3d4e5f6
Create Date: 2026-02-03 09:00:00.000000

Hey future me - these columns are filled by the production match job (backdrop, trailer)
and the age rating sync (DJCTQ rating from TMDB's BR certification: L, 10, 12, 14, 16, 18).
age_rating NULL means "unrated", the site hides those unless the admin allows it.
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "b2c3d4e5f6a7"
down_revision: Union[str, None] = "a1b2c3d4e5f6"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    with op.batch_alter_table("productions", schema=None) as batch_op:
        batch_op.add_column(sa.Column("backdrop_url", sa.String(512), nullable=True))
        batch_op.add_column(sa.Column("trailer_url", sa.String(512), nullable=True))
        batch_op.add_column(sa.Column("age_rating", sa.String(4), nullable=True))
        batch_op.create_index("ix_productions_age_rating", ["age_rating"])


def downgrade() -> None:
    with op.batch_alter_table("productions", schema=None) as batch_op:
        batch_op.drop_index("ix_productions_age_rating")
        batch_op.drop_column("age_rating")
        batch_op.drop_column("trailer_url")
        batch_op.drop_column("backdrop_url")
