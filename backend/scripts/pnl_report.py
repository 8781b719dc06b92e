"""Reconcile a buy-side and a sell-side trade log into a P&L report."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from app.core.logging import setup_logging
from trade_matcher import MatchDirection, MatchingStrategy, MatchOptions, TradeMatcherError, analyze_pnl, match_rows
from trade_matcher.config import get_matcher_settings
from trade_matcher.export import pnl_to_frame
from trade_matcher.ingest import read_trade_rows

logger = logging.getLogger("pnl_report")


async def _run(buy_path: Path, sell_path: Path, output: Path | None) -> None:
    settings = get_matcher_settings()
    buy_result = await match_rows(
        read_trade_rows(buy_path),
        MatchingStrategy.DAILY_PROPORTIONAL,
        MatchOptions.from_settings(settings),
    )
    sell_result = await match_rows(
        read_trade_rows(sell_path),
        MatchingStrategy.DAILY_PROPORTIONAL,
        MatchOptions.from_settings(settings, direction=MatchDirection.STABLECOIN_BUY_INR_SELL),
    )
    summary = analyze_pnl(buy_result, sell_result)
    if output is not None:
        pnl_to_frame(summary, precision=settings.export_precision).to_csv(output, index=False)
        print(f"Wrote {len(summary.matches)} P&L rows to {output}")

    print(f"Total P&L: {summary.total_profit_loss:.2f} INR")
    print(f"Total investment: {summary.total_investment:.2f} INR")
    print(f"Overall return: {summary.overall_return:.2f}%")
    print(f"Win rate: {summary.win_rate:.1f}% ({summary.winning_trades} won, {summary.losing_trades} lost)")
    for asset, item in sorted(summary.asset_breakdown.items()):
        print(f"  {asset}: {item.total_pnl:.2f} INR over {item.trades} trades ({item.return_percentage:.2f}%)")


def main() -> None:
    parser = argparse.ArgumentParser(description="Build a P&L report from buy and sell trade logs")
    parser.add_argument("buy_file", type=Path)
    parser.add_argument("sell_file", type=Path)
    parser.add_argument("--output", type=Path, default=None, help="Optional CSV of individual P&L matches")
    args = parser.parse_args()

    setup_logging()
    try:
        asyncio.run(_run(args.buy_file, args.sell_file, args.output))
    except TradeMatcherError as exc:
        logger.error("%s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
