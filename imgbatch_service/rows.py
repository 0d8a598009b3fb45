"""
Row parsing and per-row fan-out.

A row names one product and a comma-separated list of image references. All
references of a row are processed concurrently; each outcome is placed at the
reference's original index, so completion order never affects the result.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
from typing import Dict, List, Mapping, Optional, Protocol, Tuple

from . import config
from .errors import RowParseError
from .table import OVERFLOW_KEY

logger = logging.getLogger(__name__)


class ImageStage(Protocol):
    async def process(self, reference: str, index: int) -> str: ...


@dataclass(frozen=True)
class InputRow:
    position: int  # zero-based data line index
    sequence: str
    product_name: str
    image_refs: Tuple[str, ...]


@dataclass(frozen=True)
class RowResult:
    position: int
    sequence: str
    product_name: str
    image_refs: Tuple[str, ...]
    output_locations: Tuple[str, ...]

    def as_record(self) -> Dict[str, str]:
        return {
            "S.No.": self.sequence,
            "Product Name": self.product_name,
            "Input Image Urls": ",".join(self.image_refs),
            "Output Image Urls": ",".join(self.output_locations),
        }


def split_image_refs(value: str) -> List[str]:
    """
    Drop quote characters, split on commas and discard blank entries.

    A trailing or doubled comma therefore adds no slot, where a plain split
    would keep an empty reference that then fails as "File not found".
    """
    cleaned = value.replace('"', "")
    return [part.strip() for part in cleaned.split(",") if part.strip()]


def _cell(raw: Mapping[str, object], column: str) -> str:
    value = raw.get(column)
    return value.strip() if isinstance(value, str) else ""


def parse_row(
    raw: Mapping[str, object],
    position: int,
    settings: Optional[config.Settings] = None,
) -> InputRow:
    """
    Build an `InputRow` from one table line.

    Raises:
        RowParseError: when the image column is missing or empty.
    """
    settings = settings or config.get_settings()
    column = settings.images_column
    value = raw.get(column)
    if not isinstance(value, str) or not value.strip():
        raise RowParseError(position, f"Missing column: {column}")

    refs = split_image_refs(value)
    # Unquoted lists split into extra fields; they only belong to the image
    # column when it is the last one in the header.
    overflow = raw.get(OVERFLOW_KEY)
    header = [name for name in raw if name != OVERFLOW_KEY]
    if overflow and header and header[-1] == column:
        for extra in overflow:
            refs.extend(split_image_refs(extra))
    if not refs:
        raise RowParseError(position, f"No image references in column: {column}")

    return InputRow(
        position=position,
        sequence=_cell(raw, settings.sequence_column),
        product_name=_cell(raw, settings.product_column),
        image_refs=tuple(refs),
    )


async def process_row(row: InputRow, stage: ImageStage) -> RowResult:
    """Run every image of `row` concurrently and collapse them into a RowResult."""
    logger.debug("Row %s (%s): %d images", row.sequence, row.product_name, len(row.image_refs))
    outputs = await asyncio.gather(
        *(stage.process(ref, index) for index, ref in enumerate(row.image_refs))
    )
    return RowResult(
        position=row.position,
        sequence=row.sequence,
        product_name=row.product_name,
        image_refs=row.image_refs,
        output_locations=tuple(outputs),
    )
