"""
In-memory job registry.

The registry is the only state shared between the batch engine and status
queries. Each job is written twice: once when registered and once when
finalized.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from threading import Lock
from typing import Dict, Optional

from .errors import JobExistsError, JobNotFoundError

logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True)
class Job:
    handle: str
    status: JobStatus = JobStatus.PROCESSING
    output_location: Optional[str] = None


class JobRegistry:
    def __init__(self) -> None:
        self._jobs: Dict[str, Job] = {}
        self._lock = Lock()

    def register(self, handle: str) -> Job:
        with self._lock:
            if handle in self._jobs:
                raise JobExistsError(handle)
            job = Job(handle=handle)
            self._jobs[handle] = job
        return job

    def get(self, handle: str) -> Job:
        with self._lock:
            job = self._jobs.get(handle)
        if job is None:
            raise JobNotFoundError(handle)
        return job

    def finalize(self, handle: str, status: JobStatus, output_location: Optional[str] = None) -> Job:
        """Overwrite the entry with its terminal state; the engine calls this once per job."""
        job = Job(handle=handle, status=status, output_location=output_location)
        with self._lock:
            if handle not in self._jobs:
                raise JobNotFoundError(handle)
            self._jobs[handle] = job
        logger.info("Job %s finalized status=%s output=%s", handle, status.value, output_location)
        return job

    def __contains__(self, handle: object) -> bool:
        with self._lock:
            return handle in self._jobs

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)
