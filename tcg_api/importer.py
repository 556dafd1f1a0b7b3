import csv
import logging
from pathlib import Path
from typing import Dict, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .constants import (
    BEAST_TYPES,
    ID_GLOBAL_PREFIXES,
    ROMAN_LEVELS,
    SPELL_SUBTYPES,
    SPELL_TYPES,
    CardType,
    coerce_card_type,
)
from .errors import ImportDataError
from .models import SUBTYPE_MODELS, Beast, Card, Queen, Resource, Spell, Token
from .schemas import (
    BeastIn,
    CardIn,
    CatalogDocument,
    ImportReport,
    QueenIn,
    ResourceIn,
    SpellIn,
    TokenIn,
)
from .store import storage_errors

logger = logging.getLogger(__name__)

FLUSH_EVERY = 1000


class IdAllocator:
    """Card ids and idGlobal values for a single import run."""

    def __init__(self, db: Session, reserved_ids=(), reserved_globals=()):
        current_max = db.scalar(select(func.max(Card.id))) or 0
        self.next_id = max([current_max, *reserved_ids]) + 1
        self.taken_globals = set(db.scalars(select(Card.id_global)))
        self.taken_globals.update(reserved_globals)
        self.sequence = 1

    def card_id(self) -> int:
        value = self.next_id
        self.next_id += 1
        return value

    def id_global(self, card_type: CardType) -> str:
        prefix = ID_GLOBAL_PREFIXES[card_type]
        while True:
            candidate = f"{prefix}{self.sequence:03d}"
            self.sequence += 1
            if candidate not in self.taken_globals:
                self.taken_globals.add(candidate)
                return candidate


def _count(report: ImportReport, table: str) -> None:
    report.tables[table] = report.tables.get(table, 0) + 1


def _upsert_cards(doc: CatalogDocument, db: Session, report: ImportReport) -> Dict[int, Card]:
    """Insert or update the base cards; returns them keyed by document id."""
    stored = list(db.scalars(select(Card)))
    by_global = {c.id_global: c for c in stored}
    by_id = {c.id: c for c in stored}
    allocator = IdAllocator(
        db,
        reserved_ids=[c.id for c in doc.cards if c.id is not None],
        reserved_globals=[c.id_global for c in doc.cards if c.id_global],
    )

    cards_by_doc_id: Dict[int, Card] = {}
    items = sorted(doc.cards, key=lambda c: (c.id is None, c.id or 0))
    for n, item in enumerate(items, 1):
        card_type = CardType(item.card_type)
        card = by_global.get(item.id_global) if item.id_global else None
        if card is None and item.id is not None:
            card = by_id.get(item.id)

        if card is None:
            card_id = item.id if item.id is not None else allocator.card_id()
            card = Card(id=card_id, id_global=item.id_global or allocator.id_global(card_type))
            db.add(card)
            by_id[card.id] = card
            by_global[card.id_global] = card
            report.inserted += 1
        else:
            old_type = coerce_card_type(card.card_type)
            if old_type is not None and SUBTYPE_MODELS[old_type] is not SUBTYPE_MODELS[card_type]:
                stale = db.get(SUBTYPE_MODELS[old_type], card.id)
                if stale is not None:
                    db.delete(stale)
            if item.id_global:
                card.id_global = item.id_global
            report.updated += 1

        card.id_physical = item.id_physical
        card.name = item.name
        card.description = item.description
        card.card_type = card_type.value
        if item.id is not None:
            cards_by_doc_id[item.id] = card

        if n % FLUSH_EVERY == 0:
            db.flush()

    db.flush()
    return cards_by_doc_id


def _upsert_subtypes(doc, db, report, cards_by_doc_id) -> None:
    sections = (
        (Beast, doc.beasts),
        (Queen, doc.queens),
        (Token, doc.tokens),
        (Spell, doc.spells),
        (Resource, doc.resources),
    )
    for model, items in sections:
        for item in items:
            card = cards_by_doc_id.get(item.id) or db.get(Card, item.id)
            if card is None:
                logger.warning("Skipping %s row %s: no such card", model.__tablename__, item.id)
                report.skipped += 1
                continue
            if SUBTYPE_MODELS.get(coerce_card_type(card.card_type)) is not model:
                logger.warning(
                    "Skipping %s row %s: card %s is %s",
                    model.__tablename__, item.id, card.id_global, card.card_type,
                )
                report.skipped += 1
                continue
            row = db.get(model, card.id)
            if row is None:
                row = model(id=card.id)
                db.add(row)
            for key, value in item.model_dump(exclude={"id"}).items():
                setattr(row, key, value)
            _count(report, model.__tablename__)


def import_catalog(doc: CatalogDocument, db: Session) -> ImportReport:
    """Upsert a catalog document; cards are matched by idGlobal, then by id.

    The whole document is written in one transaction: on any failure nothing
    from it is kept.
    """
    report = ImportReport()
    try:
        with storage_errors("Catalog import"):
            cards_by_doc_id = _upsert_cards(doc, db, report)
            report.tables["cards"] = len(doc.cards)
            _upsert_subtypes(doc, db, report, cards_by_doc_id)
            db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info(
        "Imported catalog: %d inserted, %d updated, %d skipped, tables=%s",
        report.inserted, report.updated, report.skipped, report.tables,
    )
    return report


# --- per-type CSV folders ---

_FILENAME_TYPES = (
    (("habilidad", "skill"), CardType.BEAST_SKILL),
    (("normal",), CardType.BEAST_NORMAL),
    (("recurso", "resource"), CardType.RESOURCE),
    (("reina", "queen"), CardType.QUEEN),
    (("token",), CardType.TOKEN),
)


def detect_card_type(filename: str) -> CardType:
    lowered = filename.lower()
    # Order matters: "conjuro_normal.csv" and "bestia_normal.csv" both say normal.
    if "conjuro" in lowered or "spell" in lowered:
        if "campo" in lowered or "field" in lowered:
            return CardType.SPELL_FIELD
        return CardType.SPELL_NORMAL
    for keywords, card_type in _FILENAME_TYPES:
        if any(k in lowered for k in keywords):
            return card_type
    raise ImportDataError(f"Cannot detect card type from file name: {filename}")


def parse_stat(value: Optional[str], key: str) -> int:
    """``"ATK=1200"`` -> 1200; anything else -> 0."""
    v = (value or "").strip()
    if not v.upper().startswith(f"{key}="):
        return 0
    try:
        return int(v.split("=", 1)[1].strip())
    except ValueError:
        return 0


def parse_roman_level(value: Optional[str]) -> int:
    clean = (value or "").upper().strip()
    for prefix in ("LVL.", "LVL"):
        if clean.startswith(prefix):
            clean = clean[len(prefix):].strip()
            break
    return ROMAN_LEVELS.get(clean, 0)


def parse_csv_row(card_type: CardType, row: Dict[str, str]) -> Optional[Tuple[dict, dict]]:
    """Return ``(card_fields, subtype_fields)`` or None for an incomplete row."""
    id_physical = (row.get("ID") or "").strip()
    name = (row.get("NOMBRE") or "").strip()
    description = (row.get("DESCRIPCION") or "").strip()
    if not id_physical or not name or not description:
        return None

    card = {
        "id_physical": id_physical,
        "name": name,
        "description": description,
        "card_type": card_type.value,
    }
    if card_type in SPELL_TYPES:
        return card, {"subtype": SPELL_SUBTYPES[card_type]}
    if card_type is CardType.RESOURCE:
        return card, {}

    attrs = {
        "atk": parse_stat(row.get("ATK"), "ATK"),
        "lvl": parse_roman_level(row.get("LVL")),
        "realm": (row.get("REINO") or "").strip().upper() or None,
    }
    if card_type is not CardType.QUEEN:
        attrs["def_"] = parse_stat(row.get("DEF"), "DEF")
    if card_type in BEAST_TYPES:
        attrs["has_special_skill"] = card_type is CardType.BEAST_SKILL
    return card, attrs


_SUBTYPE_SECTIONS = {
    Beast: ("beasts", BeastIn),
    Queen: ("queens", QueenIn),
    Token: ("tokens", TokenIn),
    Spell: ("spells", SpellIn),
    Resource: ("resources", ResourceIn),
}


def import_csv_dir(path: str, db: Session) -> ImportReport:
    """Insert the new cards of every ``*.csv`` file under ``path``.

    Rows whose physical id or (case-insensitive) name is already stored are
    left alone.
    """
    folder = Path(path)
    if not folder.is_dir():
        raise ImportDataError(f"Not a directory: {path}")

    with storage_errors("Catalog CSV scan"):
        allocator = IdAllocator(db)
        known_physical = set(db.scalars(select(Card.id_physical)))
        known_names = {n.lower() for n in db.scalars(select(Card.name))}

    doc = CatalogDocument()
    skipped = 0
    for csv_file in sorted(folder.glob("*.csv")):
        card_type = detect_card_type(csv_file.name)
        new_in_file = 0
        with open(csv_file, "r", encoding="utf-8-sig", newline="") as f:
            for row in csv.DictReader(f):
                parsed = parse_csv_row(card_type, row)
                if parsed is None:
                    skipped += 1
                    continue
                card_fields, attrs = parsed
                if (card_fields["id_physical"] in known_physical
                        or card_fields["name"].lower() in known_names):
                    skipped += 1
                    continue
                known_physical.add(card_fields["id_physical"])
                known_names.add(card_fields["name"].lower())

                section, schema = _SUBTYPE_SECTIONS[SUBTYPE_MODELS[card_type]]
                card_id = allocator.card_id()
                try:
                    card = CardIn(id=card_id, id_global=allocator.id_global(card_type), **card_fields)
                    subtype = schema(id=card_id, **attrs)
                except ValueError as exc:
                    logger.warning("Skipping %s row %s: %s", csv_file.name, card_fields["id_physical"], exc)
                    skipped += 1
                    continue
                doc.cards.append(card)
                getattr(doc, section).append(subtype)
                new_in_file += 1
        logger.info("Parsed %s: %d new cards", csv_file.name, new_in_file)

    report = import_catalog(doc, db)
    report.skipped += skipped
    return report


def import_json_file(path: str, db: Session) -> ImportReport:
    try:
        with open(path, "r", encoding="utf-8") as f:
            doc = CatalogDocument.model_validate_json(f.read())
    except (OSError, ValueError) as exc:
        raise ImportDataError(f"Cannot read catalog {path}: {exc}") from exc
    return import_catalog(doc, db)


def import_dataset(path: str, db: Session) -> ImportReport:
    if Path(path).is_dir():
        return import_csv_dir(path, db)
    return import_json_file(path, db)
