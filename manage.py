#!/usr/bin/env python3
"""
Administrative commands for the events table.

Usage:
    python manage.py migrate [REVISION]
    python manage.py check
    python manage.py schema
    python manage.py import [PATH] [--batch-size N] [--enqueue] --yes
    python manage.py export [PATH]

`import` deletes every existing event before loading the backup, so it
refuses to run without --yes. `export` does not carry page_count; merge and
split page counts come back as 0 after an export/import cycle.
"""
import argparse
import logging
import sys

from dotenv import load_dotenv

# Load .env before reading any environment variables
load_dotenv()

from config import BACKUP_PATH, IMPORT_BATCH_SIZE, LOG_LEVEL

logger = logging.getLogger("manage")


def cmd_migrate(args) -> int:
    from admin import upgrade_schema
    upgrade_schema(args.revision)
    logger.info("Schema is up to date")
    return 0


def cmd_check(args) -> int:
    from admin import table_exists, count_events, sample_events
    exists = table_exists()
    print(f"Events table exists: {exists}")
    if not exists:
        return 0
    print(f"Total events in database: {count_events()}")
    print("\nSample events:")
    for event in sample_events(limit=5):
        print(f"- {event.type} at {event.created_at} from {event.page or 'unknown'}")
    return 0


def cmd_schema(args) -> int:
    from admin import table_exists, describe_columns
    if not table_exists():
        print("Events table does not exist; run `manage.py migrate`")
        return 1
    print("Events table columns:")
    for col in describe_columns():
        nullable = "NULL" if col["nullable"] else "NOT NULL"
        default = f" DEFAULT {col['default']}" if col["default"] else ""
        print(f"- {col['name']}: {col['type']} {nullable}{default}")
    return 0


def cmd_import(args) -> int:
    if not args.yes:
        print("Refusing to import: this deletes all existing events. Re-run with --yes.")
        return 1
    if args.enqueue:
        from jobs import enqueue_import_job
        job_id = enqueue_import_job(args.path, args.batch_size)
        print(f"Import job enqueued: {job_id}")
        return 0
    from admin import import_backup
    result = import_backup(args.path, batch_size=args.batch_size)
    print(f"Deleted {result['deleted']} events, imported {result['inserted']} from {result['path']}")
    return 0


def cmd_export(args) -> int:
    from admin import export_backup
    result = export_backup(args.path)
    print(f"Exported {result['written']} events to {result['path']}")
    if result["page_counts_dropped"]:
        print(
            f"Warning: the backup format has no page_count column; "
            f"{result['page_counts_dropped']} events lose their page count on re-import"
        )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage the analytics events table")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("migrate", help="apply schema migrations")
    p.add_argument("revision", nargs="?", default="head")
    p.set_defaults(func=cmd_migrate)

    p = sub.add_parser("check", help="show table status and sample rows")
    p.set_defaults(func=cmd_check)

    p = sub.add_parser("schema", help="list the events table columns")
    p.set_defaults(func=cmd_schema)

    p = sub.add_parser("import", help="replace all events with a copy-format backup")
    p.add_argument("path", nargs="?", default=BACKUP_PATH)
    p.add_argument("--batch-size", type=int, default=IMPORT_BATCH_SIZE)
    p.add_argument("--enqueue", action="store_true", help="run on the rq admin queue")
    p.add_argument("--yes", action="store_true", help="confirm deleting existing events")
    p.set_defaults(func=cmd_import)

    p = sub.add_parser("export", help="write all events as a copy-format backup")
    p.add_argument("path", nargs="?", default=BACKUP_PATH)
    p.set_defaults(func=cmd_export)

    return parser


def main(argv=None) -> int:
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        stream=sys.stdout
    )
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except Exception as e:
        logger.exception(f"{args.command} failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
