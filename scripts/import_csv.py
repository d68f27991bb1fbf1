"""CLI entry point for importing a contacts CSV.

Usage:
    python -m scripts.import_csv --db-url sqlite:///data.db --file contacts.csv [--replace] [--background]

With --background the file is stored as an import job first and the run
reports back to that job; --webhook-url (or CSVIMPORT_WEBHOOK_URL) receives
the outcome once it finishes.
"""

import argparse
import logging
import os
import sys
from pathlib import Path

from csvimportable import CSVImporter, create_service
from csvimportable.contacts import ContactRowProcessor, contact_hooks, ensure_contacts_schema
from csvimportable.jobs import ImportJobStore
from csvimportable.notify import LoggingNotifier, WebhookNotifier

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def main() -> None:
    parser = argparse.ArgumentParser(description="Import a contacts CSV, all rows or none")
    parser.add_argument(
        "--db-url", required=True, help="Database URL (sqlite:/// or postgresql://)"
    )
    parser.add_argument("--file", required=True, help="Path to CSV file")
    parser.add_argument("--replace", action="store_true", help="Delete existing contacts first")
    parser.add_argument(
        "--background", action="store_true", help="Run through an import job and notify on completion"
    )
    parser.add_argument(
        "--webhook-url",
        default=os.environ.get("CSVIMPORT_WEBHOOK_URL"),
        help="URL notified when a background import finishes",
    )
    args = parser.parse_args()

    file_text = Path(args.file).read_text(encoding="utf-8")

    service = create_service(args.db_url)
    service.connect()
    try:
        ensure_contacts_schema(service)
        processor = ContactRowProcessor(service)
        hooks = contact_hooks(processor)

        if args.background:
            jobs = ImportJobStore(service)
            jobs.ensure_schema()
            job = jobs.create(file_text, should_replace=args.replace, in_background=True)
            notifier = WebhookNotifier(args.webhook_url) if args.webhook_url else LoggingNotifier()
            importer = CSVImporter(
                processor,
                job_id=job.id,
                job_store=jobs,
                hooks=hooks,
                on_complete=notifier,
            )
        else:
            importer = CSVImporter(
                processor,
                file_text=file_text,
                should_replace=args.replace,
                hooks=hooks,
                out=sys.stdout,
            )
            if importer.big_file():
                logger.info("Large file; consider --background for imports like this one.")

        importer.run(service)
        if importer.succeeded():
            logger.info("Done. %d rows imported.", importer.number_imported())
        else:
            logger.error("Import failed; nothing was written.")
            sys.exit(1)
    finally:
        service.close()


if __name__ == "__main__":
    main()
