"""Attaches per-type attributes to base card rows and shapes the output.

Each card resolves to exactly one attribute variant, chosen by its card
type. The variant decides which extra fields appear in the output record.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from .constants import BEAST_TYPES, SPELL_TYPES, CardType, coerce_card_type
from .models import SUBTYPE_MODELS, Card
from .store import CardStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BeastAttributes:
    atk: int
    def_: int
    lvl: int
    realm: Optional[str]
    has_special_skill: bool

    def fields(self) -> Dict[str, Any]:
        return {
            "atk": self.atk,
            "def": self.def_,
            "lvl": self.lvl,
            "realm": self.realm,
            "hasSpecialSkill": self.has_special_skill,
        }


@dataclass(frozen=True)
class QueenAttributes:
    atk: int
    lvl: int
    realm: Optional[str]

    def fields(self) -> Dict[str, Any]:
        return {"atk": self.atk, "lvl": self.lvl, "realm": self.realm}


@dataclass(frozen=True)
class TokenAttributes:
    atk: int
    def_: int
    lvl: int
    realm: Optional[str]

    def fields(self) -> Dict[str, Any]:
        return {"atk": self.atk, "def": self.def_, "lvl": self.lvl, "realm": self.realm}


@dataclass(frozen=True)
class SpellAttributes:
    subtype: str

    def fields(self) -> Dict[str, Any]:
        return {"subtype": self.subtype}


@dataclass(frozen=True)
class ResourceAttributes:
    def fields(self) -> Dict[str, Any]:
        return {}


@dataclass(frozen=True)
class NoAttributes:
    """The card has no subtype row (or an unknown card type)."""

    def fields(self) -> Dict[str, Any]:
        return {}


CardAttributes = Union[
    BeastAttributes, QueenAttributes, TokenAttributes,
    SpellAttributes, ResourceAttributes, NoAttributes,
]

NO_ATTRIBUTES = NoAttributes()


def to_attributes(card_type: Optional[CardType], row) -> CardAttributes:
    if card_type is None or row is None:
        return NO_ATTRIBUTES
    if card_type in BEAST_TYPES:
        return BeastAttributes(
            atk=row.atk, def_=row.def_, lvl=row.lvl, realm=row.realm,
            has_special_skill=bool(row.has_special_skill),
        )
    if card_type is CardType.QUEEN:
        return QueenAttributes(atk=row.atk, lvl=row.lvl, realm=row.realm)
    if card_type is CardType.TOKEN:
        return TokenAttributes(atk=row.atk, def_=row.def_, lvl=row.lvl, realm=row.realm)
    if card_type in SPELL_TYPES:
        return SpellAttributes(subtype=row.subtype)
    if card_type is CardType.RESOURCE:
        return ResourceAttributes()
    raise ValueError(f"Unhandled card type: {card_type!r}")


def card_record(card: Card, attributes: CardAttributes) -> Dict[str, Any]:
    record = {
        "idPhysical": card.id_physical,
        "idGlobal": card.id_global,
        "name": card.name,
        "description": card.description,
        "cardType": card.card_type,
    }
    record.update(attributes.fields())
    return record


def enrich(store: CardStore, cards: List[Card]) -> List[Dict[str, Any]]:
    """Batch-load subtype rows for ``cards`` and return flat output records.

    ``cards`` must already be deduplicated; output order follows input order.
    """
    ids_by_model: Dict[type, List[int]] = {}
    types: Dict[int, Optional[CardType]] = {}
    for card in cards:
        card_type = coerce_card_type(card.card_type)
        types[card.id] = card_type
        if card_type is None:
            logger.warning("Card %s has unknown type %r", card.id_global, card.card_type)
            continue
        ids_by_model.setdefault(SUBTYPE_MODELS[card_type], []).append(card.id)

    rows_by_model = {
        model: store.fetch_by_ids(model, ids) for model, ids in ids_by_model.items()
    }

    records = []
    for card in cards:
        card_type = types[card.id]
        row = None
        if card_type is not None:
            row = rows_by_model[SUBTYPE_MODELS[card_type]].get(card.id)
        records.append(card_record(card, to_attributes(card_type, row)))
    return records
