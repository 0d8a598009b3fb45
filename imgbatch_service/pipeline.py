"""
Per-image processing pipeline.

`ImagePipeline.process` is the single stage every image reference goes
through: fetch -> transform -> output location. Failures never escape the
stage; they are logged and replaced by `ERROR_SENTINEL` so the owning row can
still complete.
"""

from __future__ import annotations

import asyncio
from concurrent.futures import ThreadPoolExecutor
import contextlib
import logging
import os
from pathlib import Path
import time
from typing import Optional
from urllib.parse import urlsplit
import uuid

from . import config
from .errors import FetchError, TransformError
from .fetcher import fetch_image_bytes, is_url
from .transform import transform_image

logger = logging.getLogger(__name__)

ERROR_SENTINEL = "Error processing image"
DEFAULT_EXTENSION = ".jpg"


def output_extension(reference: str) -> str:
    """Extension of the referenced file, ignoring any URL query or fragment."""
    path = urlsplit(reference).path if is_url(reference) else reference
    ext = os.path.splitext(path)[1]
    return ext or DEFAULT_EXTENSION


class ImagePipeline:
    """
    Runs fetch + transform for individual images.

    Downloads and file reads run on the loop's default executor; the CPU-bound
    transform runs on a dedicated thread pool. When `max_concurrent_images` is
    set, a semaphore caps how many stages run at once across all jobs.
    """

    def __init__(
        self,
        settings: Optional[config.Settings] = None,
        executor: Optional[ThreadPoolExecutor] = None,
    ) -> None:
        self.settings = settings or config.get_settings()
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=self.settings.transform_workers,
            thread_name_prefix="transform",
        )
        limit = self.settings.max_concurrent_images
        self._gate = asyncio.Semaphore(limit) if limit > 0 else None

    def output_path_for(self, reference: str, index: int) -> Path:
        stamp = int(time.time() * 1000)
        token = uuid.uuid4().hex[:8]
        name = f"compressed-{stamp}-{token}-{index}{output_extension(reference)}"
        return self.settings.images_dir / name

    async def process(self, reference: str, index: int) -> str:
        """Return the output location for `reference`, or the sentinel on failure."""
        gate = self._gate if self._gate is not None else contextlib.nullcontext()
        async with gate:
            return await self._run_stage(reference, index)

    async def _run_stage(self, reference: str, index: int) -> str:
        loop = asyncio.get_running_loop()
        output_path = self.output_path_for(reference, index)
        timeout = (self.settings.connect_timeout_seconds, self.settings.request_timeout_seconds)
        try:
            image_bytes = await loop.run_in_executor(None, fetch_image_bytes, reference, timeout)
            await loop.run_in_executor(
                self._executor,
                transform_image,
                image_bytes,
                output_path,
                self.settings.target_width,
                self.settings.jpeg_quality,
            )
        except (FetchError, TransformError) as exc:
            logger.error("Error processing %s: %s", reference, exc)
            return ERROR_SENTINEL
        except Exception:  # noqa: BLE001
            logger.exception("Unexpected failure processing %s", reference)
            return ERROR_SENTINEL
        return str(output_path)

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=True)
