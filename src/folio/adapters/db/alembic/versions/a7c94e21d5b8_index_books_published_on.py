"""index books.published_on

Revision ID: a7c94e21d5b8
Revises: 3f1c2a9b7d10
Create Date: 2026-09-28 16:40:07.118502

"""

# pylint: disable=invalid-name

from collections.abc import Sequence

from alembic import op

# pylint: disable=no-member

# revision identifiers, used by Alembic.
revision: str = "a7c94e21d5b8"
down_revision: str | Sequence[str] | None = "3f1c2a9b7d10"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Upgrade schema."""

    op.create_index(
        op.f("ix_books_published_on"), "books", ["published_on"], unique=False
    )


def downgrade() -> None:
    """Downgrade schema."""

    op.drop_index(op.f("ix_books_published_on"), table_name="books")
