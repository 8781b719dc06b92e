"""Profit and loss reconciliation endpoint."""

from __future__ import annotations

import logging

from fastapi import APIRouter, File, HTTPException, Query, UploadFile, status

from app.schemas import PnLResponse
from app.services.matching import http_error, match_upload, read_upload, to_pnl_response
from trade_matcher import BuyWindow, MatchDirection, MatchingStrategy, MatchOptions, TradeMatcherError, analyze_pnl
from trade_matcher.config import get_matcher_settings

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("", response_model=PnLResponse)
async def pnl_report(
    buy_file: UploadFile = File(..., description="Trade log with INR buys and USDT sells"),
    sell_file: UploadFile = File(..., description="Trade log with stablecoin buys and INR sells"),
    buy_strategy: MatchingStrategy = Query(default=MatchingStrategy.DAILY_PROPORTIONAL),
    buy_window: BuyWindow | None = Query(default=None),
) -> PnLResponse:
    """Match both files, then reconcile the sell side against the buy side FIFO."""

    settings = get_matcher_settings()
    buy_options = MatchOptions.from_settings(settings, buy_window=buy_window)
    sell_options = MatchOptions.from_settings(
        settings,
        buy_window=buy_window,
        direction=MatchDirection.STABLECOIN_BUY_INR_SELL,
    )
    buy_content = await read_upload(buy_file)
    sell_content = await read_upload(sell_file)
    try:
        buy_result = await match_upload(buy_content, buy_file.filename, buy_strategy, buy_options)
        sell_result = await match_upload(
            sell_content, sell_file.filename, MatchingStrategy.DAILY_PROPORTIONAL, sell_options
        )
    except TradeMatcherError as exc:
        raise http_error(exc) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    summary = analyze_pnl(buy_result, sell_result)
    logger.info("P&L report: %s matches across %s assets", len(summary.matches), len(summary.asset_breakdown))
    return to_pnl_response(summary)


__all__ = ["router"]
