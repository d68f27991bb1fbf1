"""Contacts table schema."""

CONTACTS_TABLE_DDL = """
CREATE TABLE IF NOT EXISTS contacts (
    email         VARCHAR(255) NOT NULL,
    first_name    VARCHAR(255) NOT NULL,
    last_name     VARCHAR(255) NOT NULL,
    zip_code      VARCHAR(255) NOT NULL,
    age           INTEGER,
    joined_on     DATE,
    PRIMARY KEY (email)
);
CREATE INDEX IF NOT EXISTS idx_contacts_zip ON contacts(zip_code);
"""

CONTACTS_TABLE = "contacts"
CONTACTS_COLUMNS = ["email", "first_name", "last_name", "zip_code", "age", "joined_on"]
CONTACTS_CONFLICT_COLUMNS = ["email"]
