"""initial_schema

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""

from typing import Sequence, Union

from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Pending link requests. Tokens are single-use; expiry is computed from
    # created_at by the application, so no row ever needs a timer.
    op.execute("""
        CREATE TABLE auth_requests (
            token TEXT PRIMARY KEY,
            chat_user_id BIGINT NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            state TEXT NOT NULL DEFAULT 'pending'
                CHECK (state IN ('pending', 'completed', 'expired', 'cancelled')),
            wiki_account_id BIGINT,
            terminal_at TIMESTAMPTZ
        );
    """)

    # At most one pending request per chat user, across both processes
    op.execute("""
        CREATE UNIQUE INDEX idx_auth_requests_one_pending
        ON auth_requests(chat_user_id)
        WHERE state = 'pending';
    """)
    op.execute("CREATE INDEX idx_auth_requests_terminal ON auth_requests(terminal_at);")

    # One global link per chat user. Rows are inserted once and never updated.
    op.execute("""
        CREATE TABLE linked_accounts (
            chat_user_id BIGINT PRIMARY KEY,
            wiki_account_id BIGINT NOT NULL,
            linked_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)
    op.execute("CREATE INDEX idx_linked_accounts_wiki ON linked_accounts(wiki_account_id);")

    # Per-community settings, maintained outside the bot
    op.execute("""
        CREATE TABLE community_config (
            community_id BIGINT PRIMARY KEY,
            welcome_channel BIGINT,
            role_id BIGINT,
            locale TEXT NOT NULL DEFAULT 'en'
        );
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS community_config CASCADE;")
    op.execute("DROP TABLE IF EXISTS linked_accounts CASCADE;")
    op.execute("DROP TABLE IF EXISTS auth_requests CASCADE;")
