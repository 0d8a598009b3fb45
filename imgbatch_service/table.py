"""
Delimited-text input and output tables.

Input headers are trimmed before column lookup. The output table is written
with the csv encoder and every field quoted, so variable-length reference
lists stay inside one column even when a reference contains a comma or quote.
"""

from __future__ import annotations

import csv
import io
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Sequence, TYPE_CHECKING

if TYPE_CHECKING:
    from .rows import RowResult

# Unquoted references that spill past the last header column land here.
OVERFLOW_KEY = "__overflow__"


def iter_table_rows(lines: Iterable[str]) -> Iterator[Dict[str, object]]:
    """Yield one dict per data line; header-only input yields nothing."""
    reader = csv.DictReader(lines, restkey=OVERFLOW_KEY)
    if reader.fieldnames is None:
        return
    reader.fieldnames = [name.strip() for name in reader.fieldnames]
    for raw in reader:
        yield raw


def render_output_table(results: Sequence["RowResult"]) -> str:
    records = [result.as_record() for result in results]
    header = list(records[0].keys())
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(header)
    for record in records:
        writer.writerow([record[name] for name in header])
    return buffer.getvalue()


def write_output_table(results: Sequence["RowResult"], path: Path) -> Path:
    """Render `results` (already in row order) and write them to `path`."""
    if not results:
        raise ValueError("cannot write an output table without rows")
    path.write_text(render_output_table(results), encoding="utf-8")
    return path


def output_table_path(processed_dir: Path, original_filename: str) -> Path:
    return processed_dir / f"processed-{Path(original_filename).name}"


def read_output_table(path: Path) -> List[Dict[str, str]]:
    """Parse a table written by `write_output_table`."""
    with path.open(newline="", encoding="utf-8") as fh:
        return list(csv.DictReader(fh))
