"""add_community_profile_url

Revision ID: 002
Revises: 001
Create Date: 2026-10-18
"""

from typing import Sequence, Union

from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Communities on another wiki link member profiles there, e.g.
    # https://de.wikipedia.org/wiki/Benutzer:{name}
    op.execute("ALTER TABLE community_config ADD COLUMN profile_url_template TEXT;")
    op.execute("""
        ALTER TABLE community_config
        ADD CONSTRAINT community_config_profile_url_has_name
        CHECK (profile_url_template IS NULL OR profile_url_template LIKE '%{name}%');
    """)


def downgrade() -> None:
    op.execute("ALTER TABLE community_config DROP CONSTRAINT IF EXISTS community_config_profile_url_has_name;")
    op.execute("ALTER TABLE community_config DROP COLUMN IF EXISTS profile_url_template;")
