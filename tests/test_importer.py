"""Tests for catalog import and upsert."""

import json
from unittest.mock import patch

import pytest
from pydantic import ValidationError
from sqlalchemy.exc import OperationalError

from tcg_api.config import settings
from tcg_api.constants import CardType
from tcg_api.errors import ImportDataError, StorageError
from tcg_api.importer import (
    IdAllocator,
    detect_card_type,
    import_catalog,
    import_csv_dir,
    import_json_file,
    parse_roman_level,
    parse_stat,
)
from tcg_api.models import Beast, Card, Queen, Resource, Spell
from tcg_api.schemas import CatalogDocument
from tcg_api.tasks import resolve_dataset_path

from conftest import USER_TOKEN, add_card

SPANISH_DOC = {
    "cartas": [
        {"id": 1, "idGlobal": "bn001", "idFisico": "X-1", "nombre": "Drake",
         "descripcion": "Fire beast", "tipoCarta": "BESTIA_NORMAL"},
        {"id": 2, "idFisico": "X-2", "nombre": "Bolt",
         "descripcion": "Zap", "tipoCarta": "CONJURO_NORMAL"},
    ],
    "bestias": [
        {"id": 1, "atk": 1200, "def": 800, "lvl": "IV", "reino": "pyro", "tieneHabilidadEsp": 0},
    ],
    "conjuros": [{"id": 2, "tipo": "NORMAL"}],
}


def write_csv(path, header, *rows):
    path.write_text("\n".join([header, *rows]) + "\n", encoding="utf-8")


class TestImportCatalog:
    def test_insert_with_catalog_aliases(self, db):
        report = import_catalog(CatalogDocument.model_validate(SPANISH_DOC), db)

        assert report.inserted == 2
        assert report.updated == 0
        assert report.tables == {"cards": 2, "beasts": 1, "spells": 1}
        beast = db.get(Beast, 1)
        assert (beast.lvl, beast.realm, beast.def_) == (4, "PYRO", 800)
        # no idGlobal in the document: one is generated from the type prefix
        assert db.get(Card, 2).id_global == "c001"

    def test_reimport_updates_in_place(self, db):
        import_catalog(CatalogDocument.model_validate(SPANISH_DOC), db)
        changed = json.loads(json.dumps(SPANISH_DOC))
        changed["cartas"][0]["nombre"] = "Elder Drake"
        changed["bestias"][0]["atk"] = 1300

        report = import_catalog(CatalogDocument.model_validate(changed), db)

        assert (report.inserted, report.updated) == (0, 2)
        assert db.query(Card).count() == 2
        assert db.get(Card, 1).name == "Elder Drake"
        assert db.get(Beast, 1).atk == 1300
        assert db.get(Card, 2).id_global == "c001"

    def test_type_change_replaces_subtype_row(self, db):
        import_catalog(CatalogDocument.model_validate(SPANISH_DOC), db)
        doc = CatalogDocument.model_validate({
            "cards": [{"id": 1, "idGlobal": "bn001", "name": "Drake", "cardType": "SPELL_FIELD"}],
            "spells": [{"id": 1, "subtype": "FIELD"}],
        })
        import_catalog(doc, db)
        assert db.get(Beast, 1) is None
        assert db.get(Spell, 1).subtype == "FIELD"

    def test_mismatched_and_orphan_rows_are_skipped(self, db):
        doc = CatalogDocument.model_validate({
            "cards": [{"id": 1, "idGlobal": "q001", "name": "Queen", "cardType": "QUEEN"}],
            "beasts": [{"id": 1, "atk": 1}, {"id": 99, "atk": 1}],
            "queens": [{"id": 1, "atk": 3000, "lvl": 8, "realm": "NICROM"}],
        })
        report = import_catalog(doc, db)
        assert report.skipped == 2
        assert db.query(Beast).count() == 0
        assert db.get(Queen, 1).realm == "NICROM"

    def test_missing_ids_are_allocated(self, db):
        add_card(db, 5, "r001", "Old Crystal", "RESOURCE", Resource(id=5))
        db.commit()
        doc = CatalogDocument.model_validate({
            "cards": [{"name": "New Crystal", "cardType": "resource"}],
        })
        import_catalog(doc, db)
        card = db.query(Card).filter_by(name="New Crystal").one()
        assert card.id == 6
        assert card.id_global == "r002"

    def test_failure_after_a_flushed_batch_keeps_nothing(self, db):
        add_card(db, 1, "bn001", "Drake", "BEAST_NORMAL", Beast(id=1, atk=1, lvl=1))
        db.commit()
        cards, beasts = [], []
        for card_id in range(2, 1503):
            # the last two rows share a physical id
            physical = "DUP" if card_id >= 1501 else f"X-{card_id}"
            cards.append({"id": card_id, "idFisico": physical, "nombre": f"Beast {card_id}",
                          "tipoCarta": "BEAST_NORMAL"})
            beasts.append({"id": card_id, "atk": 100, "lvl": 3, "reino": "AQUA"})
        doc = CatalogDocument.model_validate({"cartas": cards, "bestias": beasts})

        with pytest.raises(StorageError):
            import_catalog(doc, db)

        assert db.query(Card).count() == 1
        assert db.query(Beast).count() == 1

    def test_failure_while_writing_subtypes_keeps_no_cards(self, db):
        boom = OperationalError("INSERT", {}, Exception("disk full"))
        with patch("tcg_api.importer._upsert_subtypes", side_effect=boom):
            with pytest.raises(StorageError, match="disk full"):
                import_catalog(CatalogDocument.model_validate(SPANISH_DOC), db)
        assert db.query(Card).count() == 0
        assert db.query(Beast).count() == 0

    def test_invalid_document(self):
        with pytest.raises(ValidationError):
            CatalogDocument.model_validate({"cards": [{"name": "x", "cardType": "DRAGON"}]})
        with pytest.raises(ValidationError):
            CatalogDocument.model_validate({"beasts": [{"id": 1, "realm": "FUEGO"}]})


def test_id_allocator_skips_taken_globals(db):
    add_card(db, 3, "t001", "Sprout", "TOKEN")
    db.commit()
    allocator = IdAllocator(db, reserved_ids=[7], reserved_globals=["t002"])
    assert allocator.card_id() == 8
    assert allocator.id_global(CardType.TOKEN) == "t003"
    assert allocator.id_global(CardType.BEAST_SKILL) == "bh004"


class TestCsvHelpers:
    @pytest.mark.parametrize("filename,expected", [
        ("BESTIAS_HABILIDAD.csv", CardType.BEAST_SKILL),
        ("bestias_normales.csv", CardType.BEAST_NORMAL),
        ("conjuros_normales.csv", CardType.SPELL_NORMAL),
        ("conjuros_campo.csv", CardType.SPELL_FIELD),
        ("recursos.csv", CardType.RESOURCE),
        ("reinas.csv", CardType.QUEEN),
        ("tokens.csv", CardType.TOKEN),
    ])
    def test_detect_card_type(self, filename, expected):
        assert detect_card_type(filename) is expected

    def test_detect_card_type_unknown(self):
        with pytest.raises(ImportDataError):
            detect_card_type("misc.csv")

    def test_parse_stat(self):
        assert parse_stat("ATK=1200", "ATK") == 1200
        assert parse_stat(" atk= 50 ", "ATK") == 50
        assert parse_stat("1200", "ATK") == 0
        assert parse_stat("ATK=abc", "ATK") == 0
        assert parse_stat(None, "DEF") == 0

    def test_parse_roman_level(self):
        assert parse_roman_level("LVL. IV") == 4
        assert parse_roman_level("x") == 10
        assert parse_roman_level("XI") == 0
        assert parse_roman_level(None) == 0


def test_import_csv_dir(db, tmp_path):
    add_card(db, 10, "r010", "Mana Crystal", "RESOURCE", Resource(id=10), id_physical="P-010")
    db.commit()
    header = "ID,NOMBRE,DESCRIPCION,ATK,DEF,LVL,REINO"
    write_csv(tmp_path / "bestias_normales.csv", header,
              "BN-1,Drake,Fire beast,ATK=1200,DEF=800,LVL. IV,pyro",
              "BN-2,,No name,ATK=1,DEF=1,I,AQUA")
    write_csv(tmp_path / "conjuros_campo.csv", "ID,NOMBRE,DESCRIPCION",
              "CC-1,Burning Plains,Field spell")
    write_csv(tmp_path / "recursos.csv", "ID,NOMBRE,DESCRIPCION",
              "P-010,Another Crystal,Same print",
              "R-2,MANA crystal,Same name")
    write_csv(tmp_path / "reinas.csv", header,
              "Q-1,Queen of Thorns,Queen,ATK=2500,DEF=0,VII,natura")

    report = import_csv_dir(str(tmp_path), db)

    assert report.inserted == 3
    assert report.skipped == 3
    assert report.tables == {"cards": 3, "beasts": 1, "queens": 1, "spells": 1}
    drake = db.query(Card).filter_by(id_physical="BN-1").one()
    assert (drake.id, drake.id_global) == (11, "bn001")
    beast = db.get(Beast, drake.id)
    assert (beast.atk, beast.def_, beast.lvl, beast.realm) == (1200, 800, 4, "PYRO")
    assert beast.has_special_skill is False
    plains = db.query(Card).filter_by(id_physical="CC-1").one()
    assert db.get(Spell, plains.id).subtype == "FIELD"
    queen = db.query(Card).filter_by(id_physical="Q-1").one()
    assert (db.get(Queen, queen.id).lvl, db.get(Queen, queen.id).realm) == (7, "NATURA")


def test_import_csv_dir_requires_directory(db, tmp_path):
    with pytest.raises(ImportDataError):
        import_csv_dir(str(tmp_path / "missing"), db)


def test_import_json_file(db, tmp_path):
    path = tmp_path / "cartas.json"
    path.write_text(json.dumps(SPANISH_DOC), encoding="utf-8")
    assert import_json_file(str(path), db).inserted == 2

    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ImportDataError):
        import_json_file(str(path), db)


class TestAdminRoutes:
    def test_import_then_search(self, admin_client):
        response = admin_client.post("/api/admin/import", json=SPANISH_DOC)
        assert response.status_code == 200
        assert response.json()["inserted"] == 2

        found = admin_client.get(
            "/api/cards/search",
            params={"reino": "PYRO"},
            headers={"Authorization": f"Bearer {USER_TOKEN}"},
        ).json()
        assert [c["idGlobal"] for c in found] == ["bn001"]
        assert found[0]["lvl"] == 4

    def test_admin_token_is_not_a_client_token(self, admin_client):
        assert admin_client.get("/api/cards").status_code == 401

    def test_invalid_document_is_rejected(self, admin_client):
        response = admin_client.post(
            "/api/admin/import", json={"cards": [{"name": "x", "cardType": "DRAGON"}]}
        )
        assert response.status_code == 422

    def test_dataset_import_runs_inline(self, admin_client, session_factory, tmp_path, monkeypatch):
        monkeypatch.setattr(settings, "dataset_path", str(tmp_path))
        (tmp_path / "cartas.json").write_text(json.dumps(SPANISH_DOC), encoding="utf-8")
        with patch("tcg_api.tasks.SessionLocal", session_factory):
            response = admin_client.post("/api/admin/import-dataset", params={"path": "cartas.json"})
        assert response.status_code == 200
        assert response.json()["tables"]["beasts"] == 1

    def test_dataset_import_is_queued(self, admin_client, monkeypatch, tmp_path):
        monkeypatch.setattr(settings, "redis_disabled", False)
        monkeypatch.setattr(settings, "dataset_path", str(tmp_path))
        with patch("tcg_api.tasks.import_dataset_task") as task:
            response = admin_client.post("/api/admin/import-dataset")
        assert response.json() == {"queued": True}
        task.delay.assert_called_once_with(str(tmp_path.resolve()))

    def test_dataset_import_missing_file(self, admin_client, session_factory, tmp_path, monkeypatch):
        monkeypatch.setattr(settings, "dataset_path", str(tmp_path))
        with patch("tcg_api.tasks.SessionLocal", session_factory):
            response = admin_client.post("/api/admin/import-dataset", params={"path": "none.json"})
        assert response.status_code == 400
        assert "Cannot read catalog" in response.json()["error"]

    @pytest.mark.parametrize("path", ["../outside.json", "/etc/passwd"])
    def test_dataset_import_stays_inside_dataset_folder(self, admin_client, tmp_path, monkeypatch, path):
        base = tmp_path / "dataset"
        base.mkdir()
        monkeypatch.setattr(settings, "dataset_path", str(base))
        with patch("tcg_api.tasks.run_import") as run:
            response = admin_client.post("/api/admin/import-dataset", params={"path": path})
        assert response.status_code == 400
        assert "must be inside" in response.json()["error"]
        run.assert_not_called()


class TestResolveDatasetPath:
    def test_defaults_to_dataset_folder(self, tmp_path, monkeypatch):
        monkeypatch.setattr(settings, "dataset_path", str(tmp_path))
        assert resolve_dataset_path() == str(tmp_path.resolve())

    def test_relative_file_inside_folder(self, tmp_path, monkeypatch):
        monkeypatch.setattr(settings, "dataset_path", str(tmp_path))
        assert resolve_dataset_path("sub/cartas.json") == str((tmp_path / "sub" / "cartas.json").resolve())

    def test_absolute_path_inside_folder_is_accepted(self, tmp_path, monkeypatch):
        monkeypatch.setattr(settings, "dataset_path", str(tmp_path))
        inside = str(tmp_path.resolve() / "cartas.json")
        assert resolve_dataset_path(inside) == inside

    def test_escape_is_rejected(self, tmp_path, monkeypatch):
        monkeypatch.setattr(settings, "dataset_path", str(tmp_path / "dataset"))
        with pytest.raises(ImportDataError):
            resolve_dataset_path("../secrets.json")
