"""Contacts import: a worked RowProcessor built from ColumnSpecs."""

from csvimportable.contacts.importer import (
    CONTACT_COLUMNS,
    ContactRowProcessor,
    contact_hooks,
    ensure_contacts_schema,
)

__all__ = ["CONTACT_COLUMNS", "ContactRowProcessor", "contact_hooks", "ensure_contacts_schema"]
