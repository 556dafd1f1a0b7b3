import logging
from pathlib import Path
from typing import Any, Dict, Optional

from celery import Celery

from .config import settings
from .db import SessionLocal
from .errors import ImportDataError
from .importer import import_dataset

logger = logging.getLogger(__name__)

celery_app = Celery("tcgcards", broker=settings.redis_url, backend=settings.redis_url)


def resolve_dataset_path(path: Optional[str] = None) -> str:
    """Resolve ``path`` against the dataset folder; it must stay inside it."""
    base = Path(settings.dataset_path).resolve()
    candidate = (base / path).resolve() if path else base
    if not candidate.is_relative_to(base):
        raise ImportDataError(f"Dataset path must be inside {settings.dataset_path}: {path}")
    return str(candidate)


def run_import(path: Optional[str] = None) -> Dict[str, Any]:
    path = resolve_dataset_path(path)
    db = SessionLocal()
    try:
        report = import_dataset(path, db)
    finally:
        db.close()
    logger.info("Dataset %s imported: %s", path, report.model_dump())
    return report.model_dump()


@celery_app.task(name="tcgcards.import_dataset")
def import_dataset_task(path: Optional[str] = None) -> Dict[str, Any]:
    return run_import(path)


def schedule_import(path: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """Queue the import on the broker, or run it inline when Redis is disabled.

    ``path`` is relative to ``settings.dataset_path``. Returns the report for
    inline runs and None once queued.
    """
    path = resolve_dataset_path(path)
    if settings.redis_disabled:
        return run_import(path)
    import_dataset_task.delay(path)
    return None
