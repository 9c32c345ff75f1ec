"""
Database abstraction for treats: the TreatDatabase interface, an in-memory
implementation for development and tests, and a SQLAlchemy implementation.

The Firestore implementation lives in ``treatshelf.firestore_db``.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
import uuid
from dataclasses import dataclass
from typing import Dict, Optional, Protocol

from dacite import Config, from_dict
from sqlalchemy import Column, String, Text, create_engine, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from treatshelf.errors import (
    BackendError,
    DatabaseConnectionError,
    InvalidArgumentError,
    NotFoundError,
)

logger = logging.getLogger(__name__)

# Record field name -> document key, for Firestore documents and JSON payloads.
DOCUMENT_KEYS = {
    "id": "id",
    "title": "title",
    "author": "author",
    "published_date": "publishedDate",
    "image_url": "imageURL",
    "description": "description",
}


@dataclass
class Treat:
    """Metadata about a single treat."""

    id: str = ""
    title: str = ""
    author: str = ""
    published_date: str = ""
    image_url: str = ""
    description: str = ""

    def to_document(self) -> dict:
        return {
            key: getattr(self, field_name)
            for field_name, key in DOCUMENT_KEYS.items()
        }

    @classmethod
    def from_document(cls, document: dict) -> "Treat":
        data = {
            field_name: document[key]
            for field_name, key in DOCUMENT_KEYS.items()
            if document.get(key) is not None
        }
        return from_dict(data_class=cls, data=data, config=Config(check_types=False))

    def sort_key(self) -> tuple[str, str]:
        return (self.title, self.id)


class TreatDatabase(Protocol):
    """
    Interface for treat persistence.

    Every operation accepts the caller's deadline as ``timeout`` (seconds).
    Backends that talk to a remote service pass it on to the network call.
    """

    def list_treats(self, *, timeout: Optional[float] = None) -> list[Treat]:
        """Return every treat, ordered by title and then by id."""
        ...

    def get_treat(self, treat_id: str, *, timeout: Optional[float] = None) -> Treat:
        ...

    def add_treat(self, treat: Treat, *, timeout: Optional[float] = None) -> str:
        """Save a treat under a freshly assigned id and return that id."""
        ...

    def update_treat(self, treat: Treat, *, timeout: Optional[float] = None) -> None:
        ...

    def delete_treat(self, treat_id: str, *, timeout: Optional[float] = None) -> None:
        ...

    def close(self) -> None:
        ...


class InMemoryTreatDatabase:
    """
    Simple in-memory database for development and tests.

    A single lock serializes every operation. Ids come from a counter that is
    never rewound, so an id is not reused after its treat is deleted.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._next_id = 1
        self.treats: Dict[str, Treat] = {}

    def close(self) -> None:
        with self._lock:
            self.treats = {}

    def reset(self) -> None:
        """Clear all stored data and restart ids at 1 (useful in tests)."""
        with self._lock:
            self.treats = {}
            self._next_id = 1

    def get_treat(self, treat_id: str, *, timeout: Optional[float] = None) -> Treat:
        with self._lock:
            treat = self.treats.get(treat_id)
            if treat is None:
                raise NotFoundError(
                    f'memorydb: get_treat: treat not found with ID "{treat_id}"',
                    op="get_treat",
                    treat_id=treat_id,
                )
            return dataclasses.replace(treat)

    def add_treat(self, treat: Treat, *, timeout: Optional[float] = None) -> str:
        with self._lock:
            treat.id = str(self._next_id)
            self.treats[treat.id] = dataclasses.replace(treat)
            self._next_id += 1
            return treat.id

    def delete_treat(self, treat_id: str, *, timeout: Optional[float] = None) -> None:
        if not treat_id:
            raise InvalidArgumentError(
                "memorydb: delete_treat: treat with unassigned ID",
                op="delete_treat",
            )
        with self._lock:
            if treat_id not in self.treats:
                raise NotFoundError(
                    f'memorydb: delete_treat: treat "{treat_id}" does not exist',
                    op="delete_treat",
                    treat_id=treat_id,
                )
            del self.treats[treat_id]

    def update_treat(self, treat: Treat, *, timeout: Optional[float] = None) -> None:
        if not treat.id:
            raise InvalidArgumentError(
                "memorydb: update_treat: treat with unassigned ID",
                op="update_treat",
            )
        with self._lock:
            if treat.id not in self.treats:
                raise NotFoundError(
                    f'memorydb: update_treat: treat "{treat.id}" does not exist',
                    op="update_treat",
                    treat_id=treat.id,
                )
            self.treats[treat.id] = dataclasses.replace(treat)

    def list_treats(self, *, timeout: Optional[float] = None) -> list[Treat]:
        with self._lock:
            treats = [dataclasses.replace(t) for t in self.treats.values()]
            treats.sort(key=Treat.sort_key)
            return treats


class SqlTreatDatabase:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres
    or SQLite for tests).

    ``timeout`` is accepted for interface compatibility; the engine's own pool
    and driver timeouts govern how long a call may block.
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlTreatDatabase")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise DatabaseConnectionError(
                f"sqldb: could not connect: {exc}", op="connect"
            ) from exc
        logger.info("sqldb: connected to %s", self.engine.url.render_as_string())
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )

    def close(self) -> None:
        self.engine.dispose()

    @staticmethod
    def _to_treat(row: "TreatRow") -> Treat:
        return Treat(
            id=row.id,
            title=row.title,
            author=row.author,
            published_date=row.published_date,
            image_url=row.image_url,
            description=row.description,
        )

    def get_treat(self, treat_id: str, *, timeout: Optional[float] = None) -> Treat:
        try:
            with self.Session() as session:
                row = session.get(TreatRow, treat_id)
                if row is None:
                    raise NotFoundError(
                        f'sqldb: get_treat: treat not found with ID "{treat_id}"',
                        op="get_treat",
                        treat_id=treat_id,
                    )
                return self._to_treat(row)
        except SQLAlchemyError as exc:
            raise BackendError(
                f'sqldb: get_treat "{treat_id}": {exc}',
                op="get_treat",
                treat_id=treat_id,
            ) from exc

    def add_treat(self, treat: Treat, *, timeout: Optional[float] = None) -> str:
        treat_id = uuid.uuid4().hex
        try:
            with self.Session() as session:
                session.add(
                    TreatRow(
                        id=treat_id,
                        title=treat.title,
                        author=treat.author,
                        published_date=treat.published_date,
                        image_url=treat.image_url,
                        description=treat.description,
                    )
                )
                session.commit()
        except SQLAlchemyError as exc:
            raise BackendError(f"sqldb: add_treat: {exc}", op="add_treat") from exc
        treat.id = treat_id
        return treat_id

    def update_treat(self, treat: Treat, *, timeout: Optional[float] = None) -> None:
        if not treat.id:
            raise InvalidArgumentError(
                "sqldb: update_treat: treat with unassigned ID", op="update_treat"
            )
        try:
            with self.Session() as session:
                row = session.get(TreatRow, treat.id)
                if row is None:
                    raise NotFoundError(
                        f'sqldb: update_treat: treat "{treat.id}" does not exist',
                        op="update_treat",
                        treat_id=treat.id,
                    )
                row.title = treat.title
                row.author = treat.author
                row.published_date = treat.published_date
                row.image_url = treat.image_url
                row.description = treat.description
                session.commit()
        except SQLAlchemyError as exc:
            raise BackendError(
                f'sqldb: update_treat "{treat.id}": {exc}',
                op="update_treat",
                treat_id=treat.id,
            ) from exc

    def delete_treat(self, treat_id: str, *, timeout: Optional[float] = None) -> None:
        if not treat_id:
            raise InvalidArgumentError(
                "sqldb: delete_treat: treat with unassigned ID", op="delete_treat"
            )
        try:
            with self.Session() as session:
                row = session.get(TreatRow, treat_id)
                if row is None:
                    raise NotFoundError(
                        f'sqldb: delete_treat: treat "{treat_id}" does not exist',
                        op="delete_treat",
                        treat_id=treat_id,
                    )
                session.delete(row)
                session.commit()
        except SQLAlchemyError as exc:
            raise BackendError(
                f'sqldb: delete_treat "{treat_id}": {exc}',
                op="delete_treat",
                treat_id=treat_id,
            ) from exc

    def list_treats(self, *, timeout: Optional[float] = None) -> list[Treat]:
        try:
            with self.Session() as session:
                stmt = select(TreatRow).order_by(
                    *list_order(self.engine.dialect.name)
                )
                return [self._to_treat(row) for row in session.scalars(stmt)]
        except SQLAlchemyError as exc:
            raise BackendError(
                f"sqldb: could not list treats: {exc}", op="list_treats"
            ) from exc


Base = declarative_base()


class TreatRow(Base):
    __tablename__ = "treats"

    id = Column(String, primary_key=True)
    title = Column(String, nullable=False, default="", index=True)
    author = Column(String, nullable=False, default="")
    published_date = Column(String, nullable=False, default="")
    image_url = Column(String, nullable=False, default="")
    description = Column(Text, nullable=False, default="")


def list_order(dialect_name: str) -> tuple:
    """
    ORDER BY clauses for listing: title, then id, compared as raw code points.

    Postgres sorts with the database locale unless told otherwise, so the
    binary "C" collation is requested there. SQLite already compares BINARY.
    """
    if dialect_name == "postgresql":
        return (
            TreatRow.title.collate("C").asc(),
            TreatRow.id.collate("C").asc(),
        )
    return (TreatRow.title.asc(), TreatRow.id.asc())
