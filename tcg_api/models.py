from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Text

from .constants import CardType
from .db import Base


class Card(Base):
    __tablename__ = "cards"

    id = Column(Integer, primary_key=True, autoincrement=False)
    id_global = Column(String(32), unique=True, nullable=False, index=True)
    id_physical = Column(String(64), unique=True, nullable=True, index=True)
    name = Column(String(256), nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    card_type = Column(String(32), nullable=False, index=True)


# Subtype tables share the card's primary key and die with it.

class Beast(Base):
    __tablename__ = "beasts"

    id = Column(Integer, ForeignKey("cards.id", ondelete="CASCADE"), primary_key=True)
    atk = Column(Integer, nullable=False, default=0)
    def_ = Column("def", Integer, nullable=False, default=0)
    lvl = Column(Integer, nullable=False, default=0, index=True)
    realm = Column(String(16), nullable=True, index=True)
    has_special_skill = Column(Boolean, nullable=False, default=False)


class Queen(Base):
    __tablename__ = "queens"

    id = Column(Integer, ForeignKey("cards.id", ondelete="CASCADE"), primary_key=True)
    atk = Column(Integer, nullable=False, default=0)
    lvl = Column(Integer, nullable=False, default=0, index=True)
    realm = Column(String(16), nullable=True, index=True)


class Token(Base):
    __tablename__ = "tokens"

    id = Column(Integer, ForeignKey("cards.id", ondelete="CASCADE"), primary_key=True)
    atk = Column(Integer, nullable=False, default=0)
    def_ = Column("def", Integer, nullable=False, default=0)
    lvl = Column(Integer, nullable=False, default=0, index=True)
    realm = Column(String(16), nullable=True, index=True)


class Spell(Base):
    __tablename__ = "spells"

    id = Column(Integer, ForeignKey("cards.id", ondelete="CASCADE"), primary_key=True)
    subtype = Column(String(32), nullable=False, default="")


class Resource(Base):
    __tablename__ = "resources"

    id = Column(Integer, ForeignKey("cards.id", ondelete="CASCADE"), primary_key=True)


SUBTYPE_MODELS = {
    CardType.BEAST_NORMAL: Beast,
    CardType.BEAST_SKILL: Beast,
    CardType.QUEEN: Queen,
    CardType.TOKEN: Token,
    CardType.SPELL_NORMAL: Spell,
    CardType.SPELL_FIELD: Spell,
    CardType.RESOURCE: Resource,
}

# Subtype tables with realm/lvl columns, in scan order.
ATTR_MODELS = (Beast, Queen, Token)
