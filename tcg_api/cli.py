import argparse
import json

from .config import settings
from .db import Base, SessionLocal, engine
from .importer import import_csv_dir, import_json_file
from .logging_config import setup_logging
from .tasks import schedule_import


def main():
    parser = argparse.ArgumentParser(prog="tcg-api")
    parser.add_argument("cmd", choices=["initdb", "import"])
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--json", dest="json_path", help="catalog document")
    source.add_argument("--csv-dir", dest="csv_dir", help="folder of per-type CSV files")
    parser.add_argument(
        "--background", action="store_true",
        help="queue the import on the Celery broker; --json/--csv-dir are then relative to DATASET_PATH",
    )
    args = parser.parse_args()
    setup_logging(settings.log_level, settings.log_json)

    if args.cmd == "initdb":
        Base.metadata.create_all(bind=engine)
        print("DB initialized")
    elif args.cmd == "import":
        if args.background:
            report = schedule_import(args.json_path or args.csv_dir)
            if report is None:
                print("Import task enqueued")
            else:
                print(json.dumps(report, indent=2))
            return
        if not (args.json_path or args.csv_dir):
            raise SystemExit("--json or --csv-dir required")
        db = SessionLocal()
        try:
            if args.json_path:
                report = import_json_file(args.json_path, db)
            else:
                report = import_csv_dir(args.csv_dir, db)
        finally:
            db.close()
        print(json.dumps(report.model_dump(), indent=2))


if __name__ == "__main__":
    main()
