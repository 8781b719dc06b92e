"""Match a trade log file and write the summary CSV."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from app.core.logging import setup_logging
from trade_matcher import (
    BuyWindow,
    MatchDirection,
    MatchingStrategy,
    MatchOptions,
    NoMatchesFoundError,
    TradeMatcherError,
    match_rows,
)
from trade_matcher.config import get_matcher_settings
from trade_matcher.export import fifo_matches_to_frame, summaries_to_csv
from trade_matcher.ingest import read_trade_rows

logger = logging.getLogger("match_file")


async def _run(args: argparse.Namespace) -> int:
    settings = get_matcher_settings()
    options = MatchOptions.from_settings(
        settings,
        buy_window=args.buy_window,
        track_skipped=True if args.track_skipped else None,
        per_match_output=True if args.per_match else None,
        direction=args.direction,
    )
    rows = read_trade_rows(args.input)
    try:
        result = await match_rows(rows, args.strategy, options)
    except NoMatchesFoundError as exc:
        print(f"{args.input}: {exc}")
        return 1

    output = args.output or args.input.with_name(f"{args.input.stem}_{result.strategy.value}.csv")
    output.write_text(summaries_to_csv(result, precision=settings.export_precision), encoding="utf-8")
    if args.track_skipped and result.skipped_count:
        skipped_path = output.with_name(f"{output.stem}_skipped.csv")
        skipped_path.write_text(summaries_to_csv(result.skipped, precision=settings.export_precision), encoding="utf-8")
    if args.matches_output:
        fifo_matches_to_frame(result, precision=settings.export_precision).to_csv(args.matches_output, index=False)
    print(f"Wrote {result.summary_count} summary rows ({result.skipped_count} skipped) to {output}")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Match buys and sells in an exported trade log")
    parser.add_argument("input", type=Path, help="CSV or XLSX trade log")
    parser.add_argument("--strategy", type=MatchingStrategy, choices=list(MatchingStrategy), default=None)
    parser.add_argument("--buy-window", type=BuyWindow, choices=list(BuyWindow), default=None)
    parser.add_argument("--direction", type=MatchDirection, choices=list(MatchDirection), default=None)
    parser.add_argument("--track-skipped", action="store_true")
    parser.add_argument("--per-match", action="store_true", help="One output row per FIFO match")
    parser.add_argument("--output", type=Path, default=None, help="Summary CSV path")
    parser.add_argument("--matches-output", type=Path, default=None, help="Optional CSV of individual FIFO matches")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    setup_logging(logging.DEBUG if args.verbose else logging.INFO)
    try:
        sys.exit(asyncio.run(_run(args)))
    except TradeMatcherError as exc:
        logger.error("%s", exc)
        sys.exit(2)


if __name__ == "__main__":
    main()
