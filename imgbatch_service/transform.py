"""
Resize + recompress transform.

Every image is scaled so its width matches the configured target, keeping
the aspect ratio, and re-encoded as JPEG at the configured quality.
"""

from __future__ import annotations

from io import BytesIO
import logging
from pathlib import Path
from typing import Tuple

from PIL import Image

from .errors import TransformError

logger = logging.getLogger(__name__)


def compute_target_size(width: int, height: int, target_width: int) -> Tuple[int, int]:
    """Fix the width to `target_width` and scale the height to match."""
    if width <= 0 or height <= 0:
        raise TransformError(f"Invalid image dimensions {width}x{height}")
    new_h = max(1, round(height * target_width / width))
    return target_width, new_h


def _decode(image_bytes: bytes) -> Image.Image:
    try:
        image = Image.open(BytesIO(image_bytes))
        image.load()
    except Exception as exc:  # noqa: BLE001
        raise TransformError("Invalid image data") from exc
    return image


def transform_image(
    image_bytes: bytes,
    output_path: Path,
    target_width: int = 500,
    quality: int = 60,
) -> Path:
    """
    Decode `image_bytes`, resize and write a JPEG to `output_path`.

    Smaller images are enlarged to the target width as well, so every output
    of a batch shares the same width.

    Raises:
        TransformError: when the bytes are not an image or the write fails.
    """
    image = _decode(image_bytes)
    size = compute_target_size(image.width, image.height, target_width)

    try:
        # JPEG has no alpha or palette modes.
        if image.mode != "RGB":
            image = image.convert("RGB")
        if size != image.size:
            image = image.resize(size, Image.Resampling.LANCZOS)
    except Exception as exc:  # noqa: BLE001
        raise TransformError(f"Could not resize image: {exc}") from exc

    try:
        image.save(output_path, format="JPEG", quality=quality, optimize=True)
    except OSError as exc:
        raise TransformError(f"Could not write {output_path}: {exc}", str(output_path)) from exc

    logger.debug("Wrote %s (%dx%d)", output_path, size[0], size[1])
    return output_path
