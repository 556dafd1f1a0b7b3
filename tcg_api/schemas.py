from typing import Annotated, Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, field_validator

from .constants import ROMAN_LEVELS, Realm
from .errors import FilterValidationError
from .filters import parse_card_type


def _alias(*names: str) -> AliasChoices:
    return AliasChoices(*names)


def _realm_or_none(value: Any) -> Optional[str]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return Realm(str(value).strip().upper()).value


def _level(value: Any) -> Any:
    # Catalog sources write levels either as integers or as roman numerals.
    if isinstance(value, str):
        clean = value.upper().replace("LVL.", "").replace("LVL", "").strip()
        if clean in ROMAN_LEVELS:
            return ROMAN_LEVELS[clean]
    return value


OptionalRealm = Annotated[Optional[str], BeforeValidator(_realm_or_none)]
Level = Annotated[int, BeforeValidator(_level)]


class CardIn(BaseModel):
    id: Optional[int] = None
    id_global: Optional[str] = Field(None, validation_alias=_alias("idGlobal", "id_global"))
    id_physical: Optional[str] = Field(
        None, validation_alias=_alias("idPhysical", "idFisico", "id_physical")
    )
    name: str = Field(validation_alias=_alias("name", "nombre"))
    description: str = Field("", validation_alias=_alias("description", "descripcion"))
    card_type: str = Field(validation_alias=_alias("cardType", "tipoCarta", "card_type"))

    @field_validator("card_type")
    @classmethod
    def canonical_type(cls, value: str) -> str:
        try:
            return parse_card_type(value).value
        except FilterValidationError as exc:
            raise ValueError(str(exc)) from None


class BeastIn(BaseModel):
    id: int
    atk: int = 0
    def_: int = Field(0, validation_alias=_alias("def", "def_"))
    lvl: Level = 0
    realm: OptionalRealm = Field(None, validation_alias=_alias("realm", "reino"))
    has_special_skill: bool = Field(
        False,
        validation_alias=_alias("hasSpecialSkill", "tieneHabilidadEsp", "has_special_skill"),
    )


class QueenIn(BaseModel):
    id: int
    atk: int = 0
    lvl: Level = 0
    realm: OptionalRealm = Field(None, validation_alias=_alias("realm", "reino"))


class TokenIn(BaseModel):
    id: int
    atk: int = 0
    def_: int = Field(0, validation_alias=_alias("def", "def_"))
    lvl: Level = 0
    realm: OptionalRealm = Field(None, validation_alias=_alias("realm", "reino"))


class SpellIn(BaseModel):
    id: int
    subtype: str = Field("", validation_alias=_alias("subtype", "tipo"))


class ResourceIn(BaseModel):
    id: int


class CatalogDocument(BaseModel):
    cards: List[CardIn] = Field(default_factory=list, validation_alias=_alias("cards", "cartas"))
    beasts: List[BeastIn] = Field(default_factory=list, validation_alias=_alias("beasts", "bestias"))
    queens: List[QueenIn] = Field(default_factory=list, validation_alias=_alias("queens", "reinas"))
    tokens: List[TokenIn] = Field(default_factory=list)
    spells: List[SpellIn] = Field(default_factory=list, validation_alias=_alias("spells", "conjuros"))
    resources: List[ResourceIn] = Field(
        default_factory=list, validation_alias=_alias("resources", "recursos")
    )


class ImportReport(BaseModel):
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    tables: Dict[str, int] = Field(default_factory=dict)

    model_config = ConfigDict(from_attributes=True)


class ErrorOut(BaseModel):
    error: str
