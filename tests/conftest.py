"""Shared pytest fixtures."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from tcg_api.config import settings
from tcg_api.db import Base, get_db
from tcg_api.main import app
from tcg_api.models import Beast, Card, Queen, Resource, Spell, Token

USER_TOKEN = "user-secret"
ADMIN_TOKEN = "admin-secret"


def add_card(db, id, id_global, name, card_type, subtype=None, id_physical=None, description=""):
    db.add(Card(
        id=id,
        id_global=id_global,
        id_physical=id_physical or f"P-{id:03d}",
        name=name,
        description=description or f"{name} card",
        card_type=card_type,
    ))
    if subtype is not None:
        db.add(subtype)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def catalog(db):
    """A small catalog covering every card type."""
    add_card(db, 1, "bn001", "Drake", "BEAST_NORMAL",
             Beast(id=1, atk=1200, def_=800, lvl=4, realm="PYRO", has_special_skill=False))
    add_card(db, 2, "bn002", "Sea Serpent", "BEAST_NORMAL",
             Beast(id=2, atk=1500, def_=1100, lvl=5, realm="AQUA", has_special_skill=False))
    add_card(db, 3, "bh003", "Fire Drake Lord", "BEAST_SKILL",
             Beast(id=3, atk=2100, def_=1400, lvl=5, realm="PYRO", has_special_skill=True))
    add_card(db, 4, "bn004", "Ember Pup", "BEAST_NORMAL",
             Beast(id=4, atk=500, def_=300, lvl=2, realm="PYRO", has_special_skill=False))
    add_card(db, 5, "bn005", "Magma Drake", "BEAST_NORMAL",
             Beast(id=5, atk=1800, def_=900, lvl=5, realm="PYRO", has_special_skill=False))
    add_card(db, 6, "q006", "Queen of Thorns", "QUEEN",
             Queen(id=6, atk=2500, lvl=7, realm="NATURA"))
    add_card(db, 7, "t007", "Sprout", "TOKEN",
             Token(id=7, atk=100, def_=100, lvl=1, realm="NATURA"))
    add_card(db, 8, "c008", "Fireball", "SPELL_NORMAL", Spell(id=8, subtype="NORMAL"))
    add_card(db, 9, "cj009", "Burning Plains", "SPELL_FIELD", Spell(id=9, subtype="FIELD"))
    add_card(db, 10, "r010", "Mana Crystal", "RESOURCE", Resource(id=10))
    add_card(db, 11, "bn011", "Wild Drake", "BEAST_NORMAL",
             Beast(id=11, atk=900, def_=900, lvl=3, realm=None, has_special_skill=False))
    db.commit()
    return db


@pytest.fixture
def tokens(monkeypatch):
    monkeypatch.setattr(settings, "user_token", USER_TOKEN)
    monkeypatch.setattr(settings, "admin_token", ADMIN_TOKEN)


@pytest.fixture
def anon_client(session_factory, tokens):
    """A client without credentials, bound to the test database."""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def client(anon_client, catalog):
    """A client authenticated as a game client over the seeded catalog."""
    anon_client.headers["Authorization"] = f"Bearer {USER_TOKEN}"
    return anon_client


@pytest.fixture
def admin_client(anon_client):
    anon_client.headers["Authorization"] = f"Bearer {ADMIN_TOKEN}"
    return anon_client
