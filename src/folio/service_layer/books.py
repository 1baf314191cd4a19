"""Book listing queries."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import false, func, select

from folio.adapters.db.schema import authors, book_authors, books

if TYPE_CHECKING:
    from folio.interfaces.store_session import AbstractStoreSession


@dataclass(frozen=True, slots=True)
class BookListItem:
    """A row of the book list page."""

    book_id: int
    title: str
    authors: tuple[str, ...]
    price: Decimal
    published_on: date | None


class BookListService:
    """Read-only queries over the catalogue, bound to one store session."""

    def __init__(self, session: AbstractStoreSession):
        self.session = session

    def count(self) -> int:
        stmt = (
            select(func.count())
            .select_from(books)
            .where(books.c.soft_deleted == false())
        )
        return self.session.connection.execute(stmt).scalar_one()

    def list_books(self) -> list[BookListItem]:
        """Return visible books ordered by id, authors in credited order."""
        stmt = (
            select(
                books.c.book_id,
                books.c.title,
                books.c.price,
                books.c.published_on,
                authors.c.name,
            )
            .select_from(books)
            .outerjoin(book_authors, book_authors.c.book_id == books.c.book_id)
            .outerjoin(authors, authors.c.author_id == book_authors.c.author_id)
            .where(books.c.soft_deleted == false())
            .order_by(books.c.book_id, book_authors.c.order)
        )
        rows: dict[int, dict] = {}
        for row in self.session.connection.execute(stmt):
            item = rows.setdefault(
                row.book_id,
                {
                    "book_id": row.book_id,
                    "title": row.title,
                    "price": row.price,
                    "published_on": row.published_on,
                    "authors": [],
                },
            )
            if row.name is not None:
                item["authors"].append(row.name)
        return [
            BookListItem(**{**item, "authors": tuple(item["authors"])})
            for item in rows.values()
        ]
