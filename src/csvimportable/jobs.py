"""Import job persistence and schema.

An import job carries a CSV file to a background worker: the worker builds a
CSVImporter from the job id, runs it, and writes the outcome back here.
"""

import json
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any

from csvimportable.importer import BatchResult, Outcome
from csvimportable.service import DatabaseService

logger = logging.getLogger(__name__)

IMPORT_JOBS_DDL = """
CREATE TABLE IF NOT EXISTS import_jobs (
    id              VARCHAR(32) PRIMARY KEY,
    file_text       TEXT        NOT NULL,
    should_replace  BOOLEAN     NOT NULL DEFAULT FALSE,
    in_background   BOOLEAN     NOT NULL DEFAULT FALSE,
    status          VARCHAR(16),
    results         TEXT,
    imported_count  INTEGER     NOT NULL DEFAULT 0,
    finished        BOOLEAN     NOT NULL DEFAULT FALSE
);
"""

JOBS_TABLE = "import_jobs"
JOB_COLUMNS = [
    "id",
    "file_text",
    "should_replace",
    "in_background",
    "status",
    "results",
    "imported_count",
    "finished",
]
JOB_CONFLICT_COLUMNS = ["id"]


@dataclass
class ImportJob:
    id: str
    file_text: str
    should_replace: bool = False
    in_background: bool = False
    status: str | None = None
    results: dict[str, Any] | None = None
    imported_count: int = 0
    finished: bool = False
    store: "ImportJobStore | None" = field(default=None, repr=False, compare=False)

    def read_file(self) -> str:
        return self.file_text

    def processing_in_background(self) -> bool:
        return self.in_background

    @property
    def succeeded(self) -> bool:
        return self.status == Outcome.SUCCESS.value

    def save(self, status: Outcome, batch_result: BatchResult, count: int) -> None:
        """Record the outcome of the import run."""
        self.status = Outcome(status).value
        self.results = batch_result.to_dict()
        self.imported_count = count
        self._store().update(self)

    def mark_finished(self) -> None:
        self.finished = True
        self._store().update(self)

    def as_row(self) -> tuple:
        results = json.dumps(self.results) if self.results is not None else None
        return (
            self.id,
            self.file_text,
            self.should_replace,
            self.in_background,
            self.status,
            results,
            self.imported_count,
            self.finished,
        )

    def _store(self) -> "ImportJobStore":
        if self.store is None:
            raise RuntimeError(f"Import job {self.id} is not attached to a store")
        return self.store


class ImportJobStore:
    """Reads and writes ImportJobs. Every call runs in its own transaction."""

    def __init__(self, service: DatabaseService):
        self._service = service

    def ensure_schema(self) -> None:
        """Create the import_jobs table if it doesn't exist."""
        self._service.execute_ddl(IMPORT_JOBS_DDL)

    def create(
        self,
        file_text: str,
        should_replace: bool = False,
        in_background: bool = False,
    ) -> ImportJob:
        job = ImportJob(
            id=uuid.uuid4().hex,
            file_text=file_text,
            should_replace=should_replace,
            in_background=in_background,
            store=self,
        )
        self.update(job)
        logger.info("Created import job %s (background=%s)", job.id, in_background)
        return job

    def find(self, job_id: str) -> ImportJob:
        sql = (
            f"SELECT {', '.join(JOB_COLUMNS)} FROM {JOBS_TABLE} "
            f"WHERE id = {self._service.placeholder}"
        )
        with self._service.transaction():
            rows = self._service.execute(sql, (job_id,))
        if not rows:
            raise LookupError(f"Import job {job_id} not found")
        row = rows[0]
        return ImportJob(
            id=row["id"],
            file_text=row["file_text"],
            should_replace=bool(row["should_replace"]),
            in_background=bool(row["in_background"]),
            status=row["status"],
            results=json.loads(row["results"]) if row["results"] else None,
            imported_count=row["imported_count"],
            finished=bool(row["finished"]),
            store=self,
        )

    def update(self, job: ImportJob) -> None:
        """Upsert the job's current state.

        Idempotent: ON CONFLICT (id) DO UPDATE.
        """
        with self._service.transaction():
            self._service.upsert(JOBS_TABLE, JOB_COLUMNS, [job.as_row()], JOB_CONFLICT_COLUMNS)
        logger.debug("Stored import job %s (status=%s)", job.id, job.status)
