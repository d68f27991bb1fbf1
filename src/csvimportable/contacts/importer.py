"""Row processor that loads contact CSV exports into the contacts table."""

import logging

from csvimportable.coercion import ColumnSpec, coerce_row
from csvimportable.contacts.schema import (
    CONTACTS_COLUMNS,
    CONTACTS_CONFLICT_COLUMNS,
    CONTACTS_TABLE,
    CONTACTS_TABLE_DDL,
)
from csvimportable.importer import ImportHooks, RowProcessor
from csvimportable.parsers import DateParser, IntegerParser, StringParser, ZipParser
from csvimportable.service import DatabaseService
from csvimportable.types import Row

logger = logging.getLogger(__name__)

CONTACT_COLUMNS = {
    "email": ColumnSpec("Email", StringParser(required=True)),
    "first_name": ColumnSpec("First Name", StringParser(required=True)),
    "last_name": ColumnSpec("Last Name", StringParser()),
    "zip_code": ColumnSpec("Zip", ZipParser()),
    "age": ColumnSpec("Age", IntegerParser()),
    "joined_on": ColumnSpec("Joined", DateParser("%m/%d/%Y")),
}


def ensure_contacts_schema(service: DatabaseService) -> None:
    """Create the contacts table if it doesn't exist."""
    service.execute_ddl(CONTACTS_TABLE_DDL)


class ContactRowProcessor(RowProcessor):
    """Coerce one contact row and upsert it by email.

    A row with any invalid column writes nothing and reports one message
    per invalid column.
    """

    required_args = ("service",)

    def __init__(self, service: DatabaseService | None = None):
        self.service = service

    def process(self, row: Row, headers: list[str]) -> list[str]:
        fields, errors = coerce_row(row, CONTACT_COLUMNS)
        if errors:
            return errors
        if fields["age"] is not None and fields["age"] < 0:
            return ["Invalid value for column: Age. Value should not be negative."]
        record = tuple(fields[column] for column in CONTACTS_COLUMNS)
        self.service.upsert(CONTACTS_TABLE, CONTACTS_COLUMNS, [record], CONTACTS_CONFLICT_COLUMNS)
        return []

    def destroy_existing(self) -> None:
        self.service.execute(f"DELETE FROM {CONTACTS_TABLE}")
        logger.info("Cleared existing contacts")


def contact_hooks(processor: ContactRowProcessor) -> ImportHooks:
    return ImportHooks(destroy_existing=processor.destroy_existing)
