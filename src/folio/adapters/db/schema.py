"""Book catalogue schema.

Tables are defined with SQLAlchemy Core on a shared `MetaData` whose naming
convention gives constraints and indexes deterministic names, so Alembic
autogenerate does not emit spurious drops/adds.

| Table          | Purpose                                  |
|----------------|------------------------------------------|
| ``authors``    | one row per distinct author name         |
| ``books``      | catalogue entries                        |
| ``book_authors`` | ordered many-to-many link              |

The schema itself is created by migrations; these objects are used for
queries, inserts and autogenerate comparisons.
"""

from __future__ import annotations

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    SmallInteger,
    String,
    Table,
    Text,
    false,
)

__all__ = ["metadata", "authors", "books", "book_authors"]

metadata = MetaData(
    naming_convention={
        "ix": "ix_%(table_name)s_%(column_0_N_label)s",
        "uq": "uq_%(table_name)s_%(column_0_N_name)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_N_name)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)

authors = Table(
    "authors",
    metadata,
    Column("author_id", Integer, primary_key=True),
    Column("name", String(100), nullable=False, unique=True),
)

books = Table(
    "books",
    metadata,
    Column("book_id", Integer, primary_key=True),
    Column("title", String(256), nullable=False),
    Column("description", Text, nullable=True),
    Column("published_on", Date, nullable=True, index=True),
    Column("publisher", String(64), nullable=True),
    Column("price", Numeric(9, 2), nullable=False),
    Column("image_url", String(512), nullable=True),
    Column("soft_deleted", Boolean, nullable=False, server_default=false()),
    CheckConstraint("price >= 0", name="price_not_negative"),
)

book_authors = Table(
    "book_authors",
    metadata,
    Column(
        "book_id",
        Integer,
        ForeignKey("books.book_id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "author_id",
        Integer,
        ForeignKey("authors.author_id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("order", SmallInteger, nullable=False),
)
