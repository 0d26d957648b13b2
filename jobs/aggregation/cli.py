"""CLI entry point del job de agregación."""

from __future__ import annotations

import argparse
import logging
from typing import List

from apscheduler.schedulers.blocking import BlockingScheduler

from common.db import get_engine
from common.schema import ensure_schema

from .config import TIERS, AggregationTier
from .runner import run_tier

logger = logging.getLogger(__name__)


def _selected_tiers(name: str) -> List[AggregationTier]:
    if name == "all":
        return list(TIERS.values())
    return [TIERS[name]]


def build_scheduler(engine, tiers: List[AggregationTier]) -> BlockingScheduler:
    """Un job cron por tier, como máximo una corrida a la vez por tier."""
    scheduler = BlockingScheduler(timezone="UTC")
    for tier in tiers:
        scheduler.add_job(
            run_tier,
            "cron",
            args=[engine, tier],
            id=f"aggregate-{tier.name}",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=60,
            **tier.cron,
        )
    return scheduler


def main(argv=None) -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )

    p = argparse.ArgumentParser(description="HeatSync aggregation job (median buckets)")
    p.add_argument("--tier", choices=[*TIERS.keys(), "all"], default="all")
    p.add_argument("--once", action="store_true", help="run the selected tiers once and exit")
    args = p.parse_args(argv)

    engine = get_engine()
    ensure_schema(engine)
    tiers = _selected_tiers(args.tier)

    if args.once:
        for tier in tiers:
            run_tier(engine, tier)
        return

    scheduler = build_scheduler(engine, tiers)
    logger.info("Aggregation scheduler started tiers=%s", [t.name for t in tiers])
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Aggregation scheduler stopped")


if __name__ == "__main__":
    main()
