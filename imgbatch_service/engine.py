"""
Batch engine.

A job moves through Admitted -> Streaming -> Aggregating -> Completed or
Errored:

 - Admitted: `submit` registers the job (status=processing) and returns the
   handle before any work happens.
 - Streaming: the input table is read line by line; every valid row spawns a
   row task immediately, invalid rows are logged and skipped.
 - Aggregating: once the stream ends, all row tasks are awaited and their
   results sorted back into input order.
 - Completed / Errored: the output table is written and the job finalized,
   or the job is marked as error when no row produced a result.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Set, Union
import uuid

from . import config
from .errors import JobEmptyError, RowParseError
from .pipeline import ImagePipeline
from .registry import Job, JobRegistry, JobStatus
from .rows import InputRow, RowResult, parse_row, process_row
from .table import iter_table_rows, output_table_path, write_output_table

logger = logging.getLogger(__name__)

TableSource = Union[str, Path, Iterable[str]]


@contextlib.contextmanager
def _open_source(source: TableSource) -> Iterator[Iterable[str]]:
    if isinstance(source, (str, Path)):
        # utf-8-sig drops the BOM spreadsheet exports tend to add.
        with open(source, newline="", encoding="utf-8-sig") as fh:
            yield fh
    else:
        yield source


class BatchEngine:
    def __init__(
        self,
        registry: JobRegistry,
        settings: Optional[config.Settings] = None,
        pipeline: Optional[ImagePipeline] = None,
    ) -> None:
        self.registry = registry
        self.settings = settings or config.get_settings()
        self.pipeline = pipeline or ImagePipeline(self.settings)
        self._tasks: Set[asyncio.Task] = set()

    def submit(self, source: TableSource, original_filename: str) -> str:
        """
        Admit a job and schedule it on the running event loop.

        Returns the job handle immediately; poll the registry for the outcome.
        """
        handle = str(uuid.uuid4())
        self.registry.register(handle)
        task = asyncio.get_running_loop().create_task(self.run(handle, source, original_filename))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info("Job %s admitted for %s", handle, original_filename)
        return handle

    async def process(self, source: TableSource, original_filename: str) -> Job:
        """Admit and run a job inline, returning its terminal state."""
        handle = str(uuid.uuid4())
        self.registry.register(handle)
        return await self.run(handle, source, original_filename)

    async def join(self) -> None:
        """Wait for every submitted job still in flight."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def run(self, handle: str, source: TableSource, original_filename: str) -> Job:
        try:
            results = await self._stream_rows(handle, source)
            if not results:
                raise JobEmptyError(handle)
            target = output_table_path(self.settings.processed_dir, original_filename)
            output = await asyncio.to_thread(write_output_table, results, target)
        except JobEmptyError:
            logger.error("Job %s produced no valid rows", handle)
            return self.registry.finalize(handle, JobStatus.ERROR)
        except Exception:  # noqa: BLE001
            logger.exception("Job %s failed", handle)
            return self.registry.finalize(handle, JobStatus.ERROR)

        logger.info("Job %s completed with %d rows", handle, len(results))
        return self.registry.finalize(handle, JobStatus.COMPLETED, str(output))

    async def _stream_rows(self, handle: str, source: TableSource) -> List[RowResult]:
        results: List[RowResult] = []

        async def collect(row: InputRow) -> None:
            results.append(await process_row(row, self.pipeline))

        async with asyncio.TaskGroup() as tg:
            with _open_source(source) as lines:
                for position, raw in enumerate(iter_table_rows(lines)):
                    try:
                        row = parse_row(raw, position, self.settings)
                    except RowParseError as exc:
                        logger.error("Job %s skipping %s", handle, exc)
                        continue
                    tg.create_task(collect(row))
                    # Let the new row start before reading the next line.
                    await asyncio.sleep(0)

        results.sort(key=lambda result: result.position)
        return results
