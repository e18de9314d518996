# =============================================
# File: catalog_scoring/cli/recompute_scores.py
# Purpose: Scheduled-job entrypoint to recompute hook or trending scores.
# Usage:
#   python -m catalog_scoring.cli.recompute_scores hook --type smartphone
#   python -m catalog_scoring.cli.recompute_scores hook            # all product types
#   python -m catalog_scoring.cli.recompute_scores trending --days 14
# Exit codes: 0 success or skipped (lock held elsewhere), 1 failure, 2 bad arguments.
# =============================================
from __future__ import annotations
import argparse
import json
import os
import sys

from dotenv import load_dotenv
from loguru import logger

import catalog_scoring.utils.logging  # noqa: F401  (file sink)
from catalog_scoring.db.repo import make_engine, wait_for_connection
from catalog_scoring.services.candidates import SUPPORTED_HOOK_TYPES
from catalog_scoring.services.hook_score import recompute_hook_scores, recompute_hook_scores_by_type
from catalog_scoring.services.trending_score import recompute_trending_scores
from catalog_scoring.utils.envcfg import to_positive_int


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Recompute persisted product scores.")
    ap.add_argument("--db-url", default=None, help="Database URL (default: DB_URL env, else local SQLite)")
    ap.add_argument("--days", type=int, default=None, help="Window length in days (default: *_SCORE_DAYS env, else 7)")
    sub = ap.add_subparsers(dest="family", required=True)

    hook = sub.add_parser("hook", help="Hook score (buyer intent + trend velocity + freshness)")
    hook.add_argument("--type", dest="product_type", choices=SUPPORTED_HOOK_TYPES, default=None,
                      help="Only this product type (default: all types)")

    sub.add_parser("trending", help="Trending score (views + compares + view velocity)")
    return ap


def _run(args: argparse.Namespace) -> dict:
    engine = make_engine(args.db_url)
    try:
        wait_for_connection(
            engine,
            retries=to_positive_int(os.getenv("DB_CONN_RETRIES"), 5),
            delay_ms=to_positive_int(os.getenv("DB_CONN_RETRY_DELAY_MS"), 5000),
        )
        if args.family == "trending":
            return recompute_trending_scores(engine, days=args.days).to_dict()
        if args.product_type:
            return recompute_hook_scores_by_type(engine, args.product_type, days=args.days).to_dict()
        return recompute_hook_scores(engine, {"days": args.days}).to_dict()
    finally:
        engine.dispose()


def main(argv=None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    try:
        result = _run(args)
    except Exception as e:
        logger.exception(f"[recompute] {args.family} failed: {e}")
        print(f"[ERROR] Recompute {args.family} scores failed: {e}", file=sys.stderr)
        return 1
    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
