#!/usr/bin/env python3
"""
Legacy reservation backfill.

Persists the normalized creator, visibility scope and group name on every
stored reservation. Safe to re-run.

Usage:
    python scripts/backfill_reservations.py --dry-run
    python scripts/backfill_reservations.py --fallback-to-first-group
"""

import argparse
import asyncio
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Sequence

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import structlog

from core.logging import setup_logging
from domain.services.reconciliation_service import BackfillReport, ReconciliationService

logger = structlog.get_logger()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Backfill legacy reservation fields")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would change without writing",
    )
    parser.add_argument(
        "--fallback-to-first-group",
        action="store_true",
        help="Move ungrouped legacy reservations into the creator's first group",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Reservations written per transaction",
    )
    return parser


async def run(
    service: ReconciliationService, dry_run: bool, fallback_to_first_group: bool
) -> BackfillReport:
    report = await service.backfill_legacy_reservations(
        dry_run=dry_run,
        fallback_to_first_group=fallback_to_first_group,
    )
    logger.info("backfill_report", **asdict(report))
    return report


async def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()

    from api.v1.dependencies import get_uow_factory

    service = ReconciliationService(get_uow_factory(), batch_size=args.batch_size)
    await run(service, args.dry_run, args.fallback_to_first_group)
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
