"""Completion callbacks for background imports."""

import logging
import time
from abc import ABC, abstractmethod

import requests

from csvimportable.importer import BatchResult, Outcome
from csvimportable.jobs import ImportJob

logger = logging.getLogger(__name__)


class CompletionNotifier(ABC):
    """Called once a background import has written its result to the job."""

    @abstractmethod
    def __call__(self, job: ImportJob, result: BatchResult) -> None:
        """Tell someone that ``job`` finished with ``result``."""


class WebhookNotifier(CompletionNotifier):
    """POSTs the outcome as JSON to a URL, with exponential backoff retry."""

    def __init__(self, url: str, max_retries: int = 3, base_delay: float = 1.0):
        self._url = url
        self._max_retries = max_retries
        self._base_delay = base_delay

    def payload(self, job: ImportJob, result: BatchResult) -> dict:
        return {
            "job_id": job.id,
            "status": result.status.value,
            "imported": job.imported_count,
            "result": result.to_dict(),
        }

    def __call__(self, job: ImportJob, result: BatchResult) -> None:
        payload = self.payload(job, result)
        for attempt in range(self._max_retries):
            try:
                resp = requests.post(self._url, json=payload, timeout=10)
                resp.raise_for_status()
                logger.info("Notified %s about import job %s", self._url, job.id)
                return
            except requests.RequestException as e:
                if attempt < self._max_retries - 1:
                    delay = self._base_delay * (2**attempt)
                    logger.warning(
                        "Attempt %d failed: %s. Retrying in %.1fs...",
                        attempt + 1,
                        e,
                        delay,
                    )
                    time.sleep(delay)
                else:
                    raise


class LoggingNotifier(CompletionNotifier):
    """Logs the outcome instead of sending it anywhere."""

    def __call__(self, job: ImportJob, result: BatchResult) -> None:
        if result.status is Outcome.SUCCESS:
            logger.info("Import job %s succeeded: %d rows imported", job.id, job.imported_count)
        else:
            logger.warning(
                "Import job %s failed: %s",
                job.id,
                result.error or f"{len(result.results)} rows rolled back",
            )
