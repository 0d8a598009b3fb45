"""
Quick local helper: runs one product table through the batch engine and
prints the job outcome. This bypasses the HTTP upload and status layers.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

# Ensure project root is importable when running from scripts/
import sys

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from imgbatch_service import config
from imgbatch_service.engine import BatchEngine
from imgbatch_service.registry import JobRegistry, JobStatus


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Compress every image referenced by a product table")
    parser.add_argument("--input", required=True, help="Path to the input CSV")
    parser.add_argument("--name", default=None, help="Name used for the output table (defaults to the input name)")
    return parser.parse_args()


async def _run(input_path: Path, name: str) -> int:
    settings = config.get_settings()
    config.ensure_directories(settings)
    engine = BatchEngine(JobRegistry(), settings)
    try:
        job = await engine.process(input_path, name)
    finally:
        engine.pipeline.close()

    print(f"Job {job.handle}: {job.status.value}")
    if job.status is JobStatus.COMPLETED:
        print(f"Wrote output table to {job.output_location}")
        return 0
    return 1


def main() -> None:
    args = parse_args()
    input_path = Path(args.input)
    if not input_path.exists():
        raise FileNotFoundError(f"Input file not found: {input_path}")

    settings = config.get_settings()
    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
    sys.exit(asyncio.run(_run(input_path, args.name or input_path.name)))


if __name__ == "__main__":
    main()
