"""Parsing of raw search parameters into canonical filter sets.

Every query-string value arrives as free text. ``normalize_filters`` turns
them into typed, deduplicated sets and rejects unknown card types and realms
before anything touches the database.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional

from .constants import LEVEL_MAX, LEVEL_MIN, TYPE_ALIASES, CardType, Realm
from .errors import FilterValidationError

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class SearchFilters:
    id_physical: Optional[str] = None
    name: Optional[str] = None
    types: FrozenSet[CardType] = field(default_factory=frozenset)
    realms: FrozenSet[Realm] = field(default_factory=frozenset)
    levels: FrozenSet[int] = field(default_factory=frozenset)

    @property
    def is_empty(self) -> bool:
        return not (
            self.id_physical or self.name or self.types or self.realms or self.levels
        )


def split_tokens(raw: Optional[str]) -> List[str]:
    """Split a comma-separated value, trimming blanks and repeats (order kept)."""
    if not raw:
        return []
    seen = []
    for token in raw.split(","):
        token = token.strip()
        if token and token not in seen:
            seen.append(token)
    return seen


def parse_card_type(token: str) -> CardType:
    canonical = _WHITESPACE.sub("_", token.strip().upper())
    if canonical in TYPE_ALIASES:
        return TYPE_ALIASES[canonical]
    try:
        return CardType(canonical)
    except ValueError:
        raise FilterValidationError(f"Invalid card type: {token}", token=token) from None


def parse_realm(token: str) -> Realm:
    try:
        return Realm(token.strip().upper())
    except ValueError:
        raise FilterValidationError(f"Invalid realm: {token}", token=token) from None


def parse_levels(tokens: List[str]) -> FrozenSet[int]:
    levels = set()
    for token in tokens:
        try:
            level = int(token)
        except ValueError:
            logger.debug("Ignoring non-numeric level token %r", token)
            continue
        if not LEVEL_MIN <= level <= LEVEL_MAX:
            raise FilterValidationError(
                f"Invalid level: {token} (expected {LEVEL_MIN}-{LEVEL_MAX})",
                token=token,
            )
        levels.add(level)
    return frozenset(levels)


def normalize_filters(
    id_physical: Optional[str] = None,
    name: Optional[str] = None,
    types: Optional[str] = None,
    realms: Optional[str] = None,
    levels: Optional[str] = None,
) -> SearchFilters:
    """Build a ``SearchFilters`` from raw query-string values.

    Raises:
        FilterValidationError: on the first unknown type or realm token, or a
            numeric level outside the legal range.
    """
    return SearchFilters(
        id_physical=(id_physical or "").strip() or None,
        name=(name or "").strip() or None,
        types=frozenset(parse_card_type(t) for t in split_tokens(types)),
        realms=frozenset(parse_realm(r) for r in split_tokens(realms)),
        levels=parse_levels(split_tokens(levels)),
    )
