"""Read access to the card table and its per-type attribute tables."""

import logging
from contextlib import contextmanager
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import StorageError
from .models import Card

logger = logging.getLogger(__name__)


@contextmanager
def storage_errors(action: str):
    """Log a failed database call and re-raise it as ``StorageError``."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception("%s failed", action)
        raise StorageError(str(exc)) from exc


def chunked(ids: List[int], size: int) -> Iterable[List[int]]:
    for start in range(0, len(ids), size):
        yield ids[start:start + size]


class CardStore:
    """Thin query layer over a SQLAlchemy session.

    ``chunk_size`` bounds every ``id IN (...)`` lookup; longer id lists are
    split into windows of that size with one query per window.
    """

    def __init__(self, db: Session, chunk_size: int):
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self.db = db
        self.chunk_size = chunk_size

    def fetch_by_ids(self, model, ids: Iterable[int]) -> Dict[int, object]:
        unique_ids = sorted(set(ids))
        rows: Dict[int, object] = {}
        for window in chunked(unique_ids, self.chunk_size):
            stmt = select(model).where(model.id.in_(window))
            for row in self.db.execute(stmt).scalars():
                rows[row.id] = row
        logger.debug(
            "Fetched %d/%d %s rows in %d batches",
            len(rows), len(unique_ids), model.__tablename__,
            -(-len(unique_ids) // self.chunk_size),
        )
        return rows

    def scan_base(self, *criteria) -> List[Card]:
        stmt = select(Card).where(*criteria).order_by(Card.id)
        return list(self.db.execute(stmt).scalars())

    def scan_joined(self, model, *criteria) -> List[Card]:
        """Cards inner-joined to ``model``; criteria may reference either table."""
        stmt = (
            select(Card)
            .join(model, model.id == Card.id)
            .where(*criteria)
            .order_by(Card.id)
        )
        return list(self.db.execute(stmt).scalars())

    def get_by_physical_id(self, id_physical: str) -> Optional[Card]:
        stmt = select(Card).where(Card.id_physical == id_physical)
        return self.db.execute(stmt).scalars().first()

    def page(self, limit: int, offset: int) -> List[Card]:
        stmt = select(Card).order_by(Card.id).limit(limit).offset(offset)
        return list(self.db.execute(stmt).scalars())
