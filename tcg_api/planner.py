"""Turns canonical filters into base/joined queries and unions their rows.

Precedence:

1. ``id_physical`` is an identity lookup; every other filter is ignored.
2. Requested types are split into attribute-bearing types (beasts, queens,
   tokens) and plain types (spells, resources).
3. Each attribute-bearing type gets its own joined query. Realm, level and
   name are ANDed inside that query.
4. Plain types share one base-table query, restricted by name only. Realm
   and level never exclude them.
5. With no types but a realm, level or name, every attribute table is
   scanned with the same ANDed predicates. Spells and resources are not
   returned in this mode.
6. With no filters at all, every card is returned.
7. Branch results are ORed together and deduplicated by card id.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .constants import TYPES_PLAIN, TYPES_WITH_ATTRS
from .filters import SearchFilters
from .models import ATTR_MODELS, SUBTYPE_MODELS, Card
from .store import CardStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueryBranch:
    label: str
    criteria: Tuple
    # Subtype table to inner-join, or None for a base-table scan.
    model: Optional[type] = None


def _attribute_criteria(model, filters: SearchFilters) -> list:
    criteria = []
    if filters.realms:
        criteria.append(model.realm.in_(sorted(r.value for r in filters.realms)))
    if filters.levels:
        criteria.append(model.lvl.in_(sorted(filters.levels)))
    return criteria


def _name_criteria(filters: SearchFilters) -> list:
    if not filters.name:
        return []
    return [Card.name.icontains(filters.name, autoescape=True)]


def plan_branches(filters: SearchFilters) -> List[QueryBranch]:
    """Return the queries needed for ``filters`` (identity lookups excluded)."""
    if filters.is_empty:
        return [QueryBranch("all", ())]

    name = _name_criteria(filters)
    branches = []

    if not filters.types:
        # Without types, every filter targets attribute-bearing cards only.
        for model in ATTR_MODELS:
            branches.append(QueryBranch(
                f"any:{model.__tablename__}",
                tuple(_attribute_criteria(model, filters) + name),
                model,
            ))
        return branches

    for card_type in sorted(filters.types & TYPES_WITH_ATTRS, key=lambda t: t.value):
        model = SUBTYPE_MODELS[card_type]
        criteria = [Card.card_type == card_type.value]
        criteria += _attribute_criteria(model, filters) + name
        branches.append(QueryBranch(card_type.value, tuple(criteria), model))

    plain = sorted(t.value for t in filters.types & TYPES_PLAIN)
    if plain:
        branches.append(QueryBranch(
            "plain:" + ",".join(plain),
            tuple([Card.card_type.in_(plain)] + name),
        ))
    return branches


class QueryPlanner:
    def __init__(self, store: CardStore):
        self.store = store

    def run(self, filters: SearchFilters) -> List[Card]:
        if filters.id_physical:
            card = self.store.get_by_physical_id(filters.id_physical)
            return [card] if card is not None else []

        found: Dict[int, Card] = {}
        for branch in plan_branches(filters):
            if branch.model is None:
                rows = self.store.scan_base(*branch.criteria)
            else:
                rows = self.store.scan_joined(branch.model, *branch.criteria)
            logger.debug("Branch %s matched %d cards", branch.label, len(rows))
            for card in rows:
                found.setdefault(card.id, card)
        return [found[card_id] for card_id in sorted(found)]
