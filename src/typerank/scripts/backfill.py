"""Run one leaderboard backfill pass against the configured ledger gateway."""
from __future__ import annotations

import argparse
import asyncio
import sys

from sqlalchemy.exc import SQLAlchemyError

from typerank.core.errors import TypeRankError
from typerank.core.ledger_config import load_ledger_config
from typerank.core.logging import configure_logging
from typerank.core.settings import settings
from typerank.db.session import SessionLocal
from typerank.services.ingestion import BackfillReport, LeaderboardIngestor
from typerank.services.ledger import LedgerClient


async def run_backfill(
    config_path: str,
    *,
    chunk_size: int | None = None,
    lookback: int | None = None,
) -> BackfillReport:
    config = load_ledger_config(config_path)
    client = LedgerClient(config, enabled=True)
    try:
        ingestor = LeaderboardIngestor(
            client,
            SessionLocal,
            source=config.source,
            chunk_size=chunk_size,
            lookback=lookback,
        )
        return await ingestor.backfill()
    finally:
        await client.close()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Backfill the leaderboard from the ledger")
    parser.add_argument(
        "--config",
        default=settings.ledger_config_path,
        help="Ledger configuration JSON (defaults to LEDGER_CONFIG_PATH)",
    )
    parser.add_argument("--chunk-size", type=int, default=None, help="Blocks per query window")
    parser.add_argument(
        "--lookback",
        type=int,
        default=None,
        help="Blocks to scan on cold start when no cursor exists",
    )
    args = parser.parse_args(argv)

    configure_logging(settings.log_level)
    if not args.config:
        print("[backfill] ERROR: no ledger configuration given", file=sys.stderr)
        sys.exit(2)

    try:
        report = asyncio.run(
            run_backfill(args.config, chunk_size=args.chunk_size, lookback=args.lookback)
        )
    except (TypeRankError, SQLAlchemyError) as exc:
        print(f"[backfill] ERROR: {exc}", file=sys.stderr)
        sys.exit(1)

    print(
        f"[backfill] blocks {report.from_block}..{report.to_block} in {report.chunks} chunk(s): "
        f"stored={report.stored} duplicates={report.duplicates} dropped={report.dropped}"
    )


if __name__ == "__main__":
    main()
