"""Insert default catalogue data after migration.

The seeder takes the seed lock (see :mod:`folio.adapters.db.locks`) and looks
for books before writing anything, so running it against an already-seeded
store is a no-op and instances starting together seed once. Seed files live
under ``seedData/`` in the data source directory; each is a JSON list of
books::

    [{"title": "...", "price": 39.99, "authors": ["..."],
      "description": "...", "publishedOn": "2004-08-30",
      "publisher": "...", "imageUrl": "..."}]
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from importlib.resources import files
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, insert, select

from folio.adapters.db.locks import SEED_LOCK_KEY, SEED_LOCK_RESOURCE, acquire_xact_lock
from folio.adapters.db.schema import authors, book_authors, books
from folio.errors import SeedError

if TYPE_CHECKING:
    from importlib.resources.abc import Traversable

    from sqlalchemy.engine import Connection

    from folio.interfaces.store_session import AbstractStoreSession

logger = logging.getLogger(__name__)

SEED_SUBDIRECTORY = "seedData"
SEED_SUFFIX = ".json"
BUNDLED_DATA_PACKAGE = "folio.seed_data"


@dataclass(frozen=True, slots=True)
class SeedBook:
    """One book as described by a seed file."""

    title: str
    price: Decimal
    authors: tuple[str, ...] = ()
    description: str | None = None
    published_on: date | None = None
    publisher: str | None = None
    image_url: str | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> SeedBook:
        published = data.get("publishedOn")
        return cls(
            title=data["title"],
            price=Decimal(str(data["price"])),
            authors=tuple(data.get("authors") or ()),
            description=data.get("description"),
            published_on=date.fromisoformat(published) if published else None,
            publisher=data.get("publisher"),
            image_url=data.get("imageUrl"),
        )


def bundled_data_source() -> Traversable:
    """The default data source shipped with the package."""
    return files(BUNDLED_DATA_PACKAGE)


def load_seed_books(data_source_path: Path | Traversable) -> list[SeedBook]:
    """Read every ``seedData/*.json`` file, in file-name order.

    Raises:
        SeedError: If there are no seed files or a file is malformed.
    """
    directory = data_source_path / SEED_SUBDIRECTORY
    try:
        seed_files = sorted(
            (f for f in directory.iterdir() if f.name.endswith(SEED_SUFFIX)),
            key=lambda f: f.name,
        )
    except OSError as e:
        raise SeedError(f"Cannot read seed data directory {directory}: {e}") from e
    if not seed_files:
        raise SeedError(f"No seed files found in {directory}")

    seed_books: list[SeedBook] = []
    for seed_file in seed_files:
        try:
            entries = json.loads(seed_file.read_text(encoding="utf-8"))
            if not isinstance(entries, list):
                raise TypeError("expected a JSON list of books")
            seed_books.extend(SeedBook.from_json(entry) for entry in entries)
        except (
            OSError,
            ValueError,
            KeyError,
            TypeError,
            InvalidOperation,
        ) as e:
            raise SeedError(f"Malformed seed file {seed_file}: {e!r}") from e
    return seed_books


def count_books(connection: Connection) -> int:
    return connection.execute(select(func.count()).select_from(books)).scalar_one()


def _author_id(connection: Connection, name: str, cache: dict[str, int]) -> int:
    if name not in cache:
        existing = connection.execute(
            select(authors.c.author_id).where(authors.c.name == name)
        ).scalar_one_or_none()
        if existing is None:
            existing = connection.execute(
                insert(authors).values(name=name)
            ).inserted_primary_key[0]
        cache[name] = existing
    return cache[name]


def insert_books(connection: Connection, seed_books: list[SeedBook]) -> None:
    """Insert books, their authors (deduplicated by name) and author links."""
    cache: dict[str, int] = {}
    for book in seed_books:
        book_id = connection.execute(
            insert(books).values(
                title=book.title,
                description=book.description,
                published_on=book.published_on,
                publisher=book.publisher,
                price=book.price,
                image_url=book.image_url,
            )
        ).inserted_primary_key[0]
        for order, name in enumerate(dict.fromkeys(book.authors)):
            connection.execute(
                insert(book_authors).values(
                    book_id=book_id,
                    author_id=_author_id(connection, name, cache),
                    order=order,
                )
            )


def seed(session: AbstractStoreSession, data_source_path: Path | Traversable) -> int:
    """Insert the default data if the store has none.

    Args:
        session: The startup store session (already migrated).
        data_source_path: Directory containing ``seedData/*.json``.

    Returns:
        The number of books inserted; ``0`` if the store was already seeded.

    Raises:
        SeedError: If the seed data cannot be read or inserted.
    """
    try:
        acquire_xact_lock(session.connection, SEED_LOCK_KEY, SEED_LOCK_RESOURCE)
        existing = count_books(session.connection)
    except Exception as e:  # pylint: disable=broad-except
        raise SeedError(f"Cannot inspect store for seed data: {e}") from e
    if existing:
        logger.info("Store already holds %d books; skipping seed", existing)
        return 0

    seed_books = load_seed_books(data_source_path)
    try:
        insert_books(session.connection, seed_books)
        session.commit()
    except Exception as e:  # pylint: disable=broad-except
        session.rollback()
        raise SeedError(f"Seeding failed: {e}") from e
    logger.info("Seeded %d books from %s", len(seed_books), data_source_path)
    return len(seed_books)
