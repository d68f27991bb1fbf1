"""Transactional CSV import: every row of a file commits, or none of them do.

A CSVImporter reads CSV text (directly or from an import job), hands each
row to a RowProcessor, and records one RowResult per row. The whole run
happens inside a single store transaction, which is rolled back as soon as
any row reports an error, so a failed import leaves the store untouched.
"""

import csv
import io
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, TextIO

from csvimportable.errors import ConfigurationError, EmptyInputError
from csvimportable.service import DatabaseService
from csvimportable.types import Row

logger = logging.getLogger(__name__)

BIG_FILE_THRESHOLD = 10


class Outcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "error"


class ImportState(str, Enum):
    INITIALIZED = "initialized"
    RUNNING = "running"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    FAILED = "failed"


@dataclass(frozen=True)
class RowResult:
    """Outcome of one data row. Row 1 is the header, so data starts at 2."""

    row_number: int
    status: Outcome
    errors: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "row": self.row_number,
            "status": self.status.value,
            "errors": list(self.errors),
        }

    def __str__(self) -> str:
        if not self.errors:
            return f"Row {self.row_number}: {self.status.value}"
        return f"Row {self.row_number}: {self.status.value} ({'; '.join(self.errors)})"


@dataclass(frozen=True)
class BatchResult:
    """Outcome of one run.

    ``error`` is set only when the run aborted before or while processing
    rows; in that case ``results`` carries no per-row detail.
    """

    status: Outcome
    results: tuple[RowResult, ...] = ()
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "status": self.status.value,
            "results": [result.to_dict() for result in self.results],
        }
        if self.error is not None:
            data["error"] = self.error
        return data


def _noop() -> None:
    return None


@dataclass
class ImportHooks:
    """Optional callbacks around the row loop. All run inside the transaction."""

    destroy_existing: Callable[[], None] = _noop
    before_rows: Callable[[], None] = _noop
    after_rows: Callable[[], None] = _noop


class RowProcessor:
    """Turns one CSV row into persisted records.

    ``process`` returns nothing (or an empty iterable) when the row was
    handled, an error message or an iterable of them for business-rule
    failures, or raises; any raised exception becomes that row's error
    message. Each call runs inside a savepoint, so a failed row leaves the
    transaction usable for the rows after it.

    Subclasses list the attributes they cannot work without in
    ``required_args``; the importer checks them before anything runs.
    """

    required_args: tuple[str, ...] = ()

    def process(self, row: Row, headers: list[str]) -> Iterable[str] | str | None:
        raise NotImplementedError(f"process() is required by {type(self).__name__}")


class _Rollback(Exception):
    """Raised inside the run's transaction to discard a batch with row errors."""

    def __init__(self, result: BatchResult):
        super().__init__("rolling back import with row errors")
        self.result = result


def _message(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


def parse_csv_text(text: str) -> tuple[list[Row], list[str]]:
    """Split CSV text into rows keyed by header, plus the header list.

    Blank headers are dropped and a repeated header keeps its first column.
    Blank lines are skipped. Raises EmptyInputError when no data rows remain
    and csv.Error on malformed quoting.
    """
    reader = csv.reader(io.StringIO(text.lstrip("\ufeff")), strict=True)
    columns: list[tuple[int, str]] = []
    for idx, name in enumerate(next(reader, [])):
        if name.strip() and name not in (c for _, c in columns):
            columns.append((idx, name))

    rows: list[Row] = []
    for record in reader:
        if not record:
            continue
        rows.append({name: record[idx] for idx, name in columns if idx < len(record)})
    if not rows:
        raise EmptyInputError()
    return rows, [name for _, name in columns]


class CSVImporter:
    """Import one CSV file through a RowProcessor, all rows or none.

    The file comes either from ``file_text`` or from the import job found
    under ``job_id`` in ``job_store``. When that job is flagged to run in
    the background, the importer writes the final BatchResult back to it,
    marks it finished and calls ``on_complete(job, result)``.

    Progress messages go to ``out`` (a StringIO unless given) and, in
    background mode, to this module's logger as well.
    """

    def __init__(
        self,
        processor: RowProcessor | None = None,
        *,
        file_text: str | None = None,
        job_id: str | None = None,
        job_store: Any = None,
        should_replace: bool | None = None,
        hooks: ImportHooks | None = None,
        out: TextIO | None = None,
        on_complete: Callable[[Any, BatchResult], None] | None = None,
    ):
        self.processor = processor
        self.job = None
        if job_id is not None:
            if job_store is None:
                raise ConfigurationError(
                    f"job_store is required for {type(self).__name__} when job_id is given"
                )
            self.job = job_store.find(job_id)
            file_text = self.job.read_file()
            if should_replace is None:
                should_replace = self.job.should_replace
        self.file_text = file_text
        self.should_replace = bool(should_replace)
        self.hooks = hooks or ImportHooks()
        self.out = out if out is not None else io.StringIO()
        self.on_complete = on_complete
        self.state = ImportState.INITIALIZED
        self.results: BatchResult | None = None
        self._require_args()

    def _require_args(self) -> None:
        for name in ("file_text", "processor"):
            if getattr(self, name) is None:
                raise ConfigurationError(f"{name} is required for {type(self).__name__}")
        for name in self.processor.required_args:
            if getattr(self.processor, name, None) is None:
                raise ConfigurationError(
                    f"{name} is required for {type(self.processor).__name__}"
                )

    def run(self, store: DatabaseService) -> BatchResult:
        """Import every row inside one ``store.transaction()`` and report the outcome."""
        self.state = ImportState.RUNNING
        try:
            with store.transaction():
                result = self._import_rows(store)
                if result.status is Outcome.FAILURE:
                    raise _Rollback(result)
            self.state = ImportState.COMMITTED
        except _Rollback as rollback:
            result = rollback.result
            self.state = ImportState.ROLLED_BACK
        except Exception as e:
            logger.exception("Import with %s aborted", self._processor_name)
            result = BatchResult(Outcome.FAILURE, error=_message(e))
            self.state = ImportState.FAILED

        self.results = result
        logger.info(
            "Import with %s finished: %s, %d rows",
            self._processor_name,
            self.state.value,
            len(result.results),
        )
        self._print_results(result)
        if self.processing_in_background():
            self._finish_background_job()
        return result

    def big_file(self) -> bool:
        """True when the file has more data rows than BIG_FILE_THRESHOLD."""
        try:
            rows, _ = parse_csv_text(self.file_text)
        except EmptyInputError:
            return False
        return len(rows) > BIG_FILE_THRESHOLD

    def succeeded(self) -> bool:
        return self._finished_results().status is Outcome.SUCCESS

    def number_imported(self) -> int:
        return len(self._finished_results().results)

    def processing_in_background(self) -> bool:
        return self.job is not None and self.job.processing_in_background()

    @property
    def _processor_name(self) -> str:
        return type(self.processor).__name__

    def _finished_results(self) -> BatchResult:
        if self.results is None:
            raise RuntimeError("run() has not been called on this importer")
        return self.results

    def _import_rows(self, store: DatabaseService) -> BatchResult:
        if self.should_replace:
            self.hooks.destroy_existing()
        self._print(f"Importing with {self._processor_name}...\n\n")
        self.hooks.before_rows()

        rows, headers = parse_csv_text(self.file_text)
        results = tuple(
            self._process_row(store, row_number, row, headers)
            for row_number, row in enumerate(rows, start=2)
        )

        self.hooks.after_rows()
        self._print("Finished importing.")
        if any(result.status is Outcome.FAILURE for result in results):
            return BatchResult(Outcome.FAILURE, results)
        return BatchResult(Outcome.SUCCESS, results)

    def _process_row(
        self, store: DatabaseService, row_number: int, row: Row, headers: list[str]
    ) -> RowResult:
        errors: list[str] = []
        try:
            with store.savepoint():
                business_errors = self.processor.process(row, headers)
        except NotImplementedError:
            raise
        except Exception as e:
            logger.debug("Row %d raised %r", row_number, e)
            errors.append(_message(e))
        else:
            if isinstance(business_errors, str):
                business_errors = [business_errors]
            errors.extend(str(error) for error in business_errors or ())
        status = Outcome.FAILURE if errors else Outcome.SUCCESS
        return RowResult(row_number, status, tuple(errors))

    def _print_results(self, result: BatchResult) -> None:
        if result.status is Outcome.SUCCESS:
            self._print("Import completed successfully!")
            return
        self._print("\nImport failed, all changes have been rolled back.\n\n")
        if result.error is not None:
            self._print(f"  {result.error}\n\n")
        else:
            for row_result in result.results:
                self._print(f" {row_result}\n")

    def _finish_background_job(self) -> None:
        self._print("Updating import job and notifying...")
        self.job.save(self.results.status, self.results, self.number_imported())
        self.job.mark_finished()
        if self.on_complete is not None:
            self.on_complete(self.job, self.results)
        self._print("Done.")

    def _print(self, message: str) -> None:
        self.out.write(message)
        if self.processing_in_background():
            logger.info("%s", message.strip())
