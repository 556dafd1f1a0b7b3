from enum import Enum
from typing import Any, Dict, Optional


class CardType(str, Enum):
    BEAST_NORMAL = "BEAST_NORMAL"
    BEAST_SKILL = "BEAST_SKILL"
    SPELL_NORMAL = "SPELL_NORMAL"
    SPELL_FIELD = "SPELL_FIELD"
    RESOURCE = "RESOURCE"
    QUEEN = "QUEEN"
    TOKEN = "TOKEN"


class Realm(str, Enum):
    NATURA = "NATURA"
    NICROM = "NICROM"
    PYRO = "PYRO"
    AQUA = "AQUA"


BEAST_TYPES = frozenset({CardType.BEAST_NORMAL, CardType.BEAST_SKILL})
SPELL_TYPES = frozenset({CardType.SPELL_NORMAL, CardType.SPELL_FIELD})

# Types whose subtype table carries realm and lvl columns.
TYPES_WITH_ATTRS = BEAST_TYPES | {CardType.QUEEN, CardType.TOKEN}
# Types resolved from the base table alone.
TYPES_PLAIN = SPELL_TYPES | {CardType.RESOURCE}

# Names used by the original (Spanish) card catalog.
TYPE_ALIASES: Dict[str, CardType] = {
    "BESTIA_NORMAL": CardType.BEAST_NORMAL,
    "BESTIA_HABILIDAD": CardType.BEAST_SKILL,
    "CONJURO_NORMAL": CardType.SPELL_NORMAL,
    "CONJURO_CAMPO": CardType.SPELL_FIELD,
    "RECURSO": CardType.RESOURCE,
    "REINA": CardType.QUEEN,
}

LEVEL_MIN = 1
LEVEL_MAX = 10

ROMAN_LEVELS: Dict[str, int] = {
    "I": 1, "II": 2, "III": 3, "IV": 4, "V": 5,
    "VI": 6, "VII": 7, "VIII": 8, "IX": 9, "X": 10,
}

ID_GLOBAL_PREFIXES: Dict[CardType, str] = {
    CardType.BEAST_NORMAL: "bn",
    CardType.BEAST_SKILL: "bh",
    CardType.SPELL_NORMAL: "c",
    CardType.SPELL_FIELD: "cj",
    CardType.RESOURCE: "r",
    CardType.QUEEN: "q",
    CardType.TOKEN: "t",
}

SPELL_SUBTYPES: Dict[CardType, str] = {
    CardType.SPELL_NORMAL: "NORMAL",
    CardType.SPELL_FIELD: "FIELD",
}


def load_constants() -> Dict[str, Any]:
    return {
        "cardType": [t.value for t in CardType],
        "realm": [r.value for r in Realm],
        "typeAliases": {alias: t.value for alias, t in TYPE_ALIASES.items()},
        "level": {"min": LEVEL_MIN, "max": LEVEL_MAX},
    }


def coerce_card_type(value: str) -> Optional[CardType]:
    try:
        return CardType(value)
    except ValueError:
        return None
