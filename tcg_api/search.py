import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from .config import settings
from .filters import SearchFilters, normalize_filters
from .merger import enrich
from .planner import QueryPlanner
from .store import CardStore, storage_errors

logger = logging.getLogger(__name__)


def make_store(db: Session, chunk_size: Optional[int] = None) -> CardStore:
    return CardStore(db, chunk_size or settings.query_chunk_size)


def run_search(store: CardStore, filters: SearchFilters) -> List[Dict[str, Any]]:
    with storage_errors("Card search"):
        cards = QueryPlanner(store).run(filters)
        return enrich(store, cards)


def search_cards(
    db: Session,
    id_physical: Optional[str] = None,
    name: Optional[str] = None,
    types: Optional[str] = None,
    realms: Optional[str] = None,
    levels: Optional[str] = None,
) -> List[Dict[str, Any]]:
    # Validation runs to completion before the first query is issued.
    filters = normalize_filters(
        id_physical=id_physical, name=name, types=types, realms=realms, levels=levels
    )
    results = run_search(make_store(db), filters)
    logger.info("Search %s returned %d cards", filters, len(results))
    return results


def list_cards(db: Session, limit: int, offset: int) -> List[Dict[str, Any]]:
    store = make_store(db)
    with storage_errors("Card listing"):
        return enrich(store, store.page(limit, offset))


def get_card(db: Session, id_physical: str) -> Optional[Dict[str, Any]]:
    results = run_search(make_store(db), SearchFilters(id_physical=id_physical))
    return results[0] if results else None
