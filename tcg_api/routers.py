from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from . import search
from .auth import require_admin, require_client
from .db import get_db
from .importer import import_catalog
from .schemas import CatalogDocument, ErrorOut, ImportReport
from .tasks import schedule_import

router = APIRouter()

ERRORS = {
    400: {"model": ErrorOut},
    401: {"model": ErrorOut},
    500: {"model": ErrorOut},
}


@router.get(
    "/cards/search",
    response_model=List[Dict[str, Any]],
    responses=ERRORS,
    dependencies=[Depends(require_client)],
)
def search_cards(
    id_physical: Optional[str] = Query(None, alias="idFisico"),
    name: Optional[str] = Query(None, alias="nombre", description="Name substring"),
    types: Optional[str] = Query(None, alias="tipo", description="Comma-separated card types"),
    realms: Optional[str] = Query(None, alias="reino", description="Comma-separated realms"),
    levels: Optional[str] = Query(None, alias="nivel", description="Level or comma-separated levels"),
    db: Session = Depends(get_db),
):
    return search.search_cards(
        db, id_physical=id_physical, name=name, types=types, realms=realms, levels=levels
    )


@router.get(
    "/cards",
    response_model=List[Dict[str, Any]],
    responses=ERRORS,
    dependencies=[Depends(require_client)],
)
def list_cards(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    return search.list_cards(db, limit=limit, offset=offset)


@router.get(
    "/cards/{id_physical}",
    response_model=Dict[str, Any],
    responses=ERRORS,
    dependencies=[Depends(require_client)],
)
def get_card(id_physical: str, db: Session = Depends(get_db)):
    card = search.get_card(db, id_physical)
    if card is None:
        raise HTTPException(status_code=404, detail="Not found")
    return card


@router.post(
    "/admin/import",
    response_model=ImportReport,
    responses=ERRORS,
    dependencies=[Depends(require_admin)],
)
def import_cards(body: CatalogDocument, db: Session = Depends(get_db)):
    return import_catalog(body, db)


@router.post("/admin/import-dataset", responses=ERRORS, dependencies=[Depends(require_admin)])
def import_dataset(path: Optional[str] = None):
    report = schedule_import(path)
    if report is None:
        return {"queued": True}
    return report
