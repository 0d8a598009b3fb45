"""
Image acquisition.

References are either http(s) URLs, downloaded with a single blocking
request, or paths on the local filesystem. There are no retries: one failed
attempt is final for that image.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Tuple

import requests

from .errors import FetchError

logger = logging.getLogger(__name__)

_URL_RE = re.compile(r"^https?://", re.IGNORECASE)


def is_url(reference: str) -> bool:
    return bool(_URL_RE.match(reference))


def _download_image(url: str, timeout: Tuple[float, float]) -> bytes:
    try:
        resp = requests.get(url, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as exc:
        raise FetchError(url, f"Could not download image: {exc}") from exc
    if not resp.content:
        raise FetchError(url, "Empty response body")
    return resp.content


def _read_local_image(path_str: str) -> bytes:
    path = Path(path_str)
    try:
        exists = path.is_file()
    except (OSError, ValueError) as exc:
        # Over-long or malformed paths raise instead of returning False.
        raise FetchError(path_str, "File not found") from exc
    if not exists:
        raise FetchError(path_str, "File not found")
    try:
        return path.read_bytes()
    except OSError as exc:
        raise FetchError(path_str, f"Could not read file: {exc}") from exc


def fetch_image_bytes(reference: str, timeout: Tuple[float, float] = (5.0, 30.0)) -> bytes:
    """
    Resolve an image reference into raw bytes.

    `timeout` is the (connect, read) pair handed to requests for URLs.

    Raises:
        FetchError: when the source is unreachable, missing or empty.
    """
    if is_url(reference):
        logger.debug("Downloading %s", reference)
        return _download_image(reference, timeout)
    logger.debug("Reading local file %s", reference)
    return _read_local_image(reference)
