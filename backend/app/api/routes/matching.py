"""Trade log matching endpoints."""

from __future__ import annotations

import logging
from typing import Literal

from fastapi import APIRouter, File, HTTPException, Query, UploadFile, status
from fastapi.responses import Response

from app.schemas import MatchResponse
from app.services.matching import http_error, match_upload, read_upload, to_match_response
from trade_matcher import BuyWindow, MatchDirection, MatchingStrategy, MatchOptions, MatchResult, TradeMatcherError
from trade_matcher.config import get_matcher_settings
from trade_matcher.export import fifo_matches_to_frame, summaries_to_csv

router = APIRouter()
logger = logging.getLogger(__name__)


async def _run(
    file: UploadFile,
    strategy: MatchingStrategy | None,
    buy_window: BuyWindow | None,
    track_skipped: bool | None,
    per_match_output: bool | None,
    direction: MatchDirection,
) -> MatchResult:
    matcher_settings = get_matcher_settings()
    try:
        options = MatchOptions.from_settings(
            matcher_settings,
            buy_window=buy_window,
            track_skipped=track_skipped,
            per_match_output=per_match_output,
            direction=direction,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    content = await read_upload(file)
    try:
        return await match_upload(content, file.filename, strategy or matcher_settings.default_strategy, options)
    except TradeMatcherError as exc:
        raise http_error(exc) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.post("", response_model=MatchResponse)
async def match_trade_log(
    file: UploadFile = File(..., description="Exported trade log (CSV or XLSX)"),
    strategy: MatchingStrategy | None = Query(default=None),
    buy_window: BuyWindow | None = Query(default=None),
    track_skipped: bool | None = Query(default=None),
    per_match_output: bool | None = Query(default=None),
    direction: MatchDirection = Query(default=MatchDirection.INR_BUY_USDT_SELL),
) -> MatchResponse:
    """Match an uploaded trade log and return summaries and skipped items by date."""

    result = await _run(file, strategy, buy_window, track_skipped, per_match_output, direction)
    return to_match_response(result)


@router.post("/export")
async def export_trade_log(
    file: UploadFile = File(...),
    strategy: MatchingStrategy | None = Query(default=None),
    buy_window: BuyWindow | None = Query(default=None),
    track_skipped: bool | None = Query(default=None),
    per_match_output: bool | None = Query(default=None),
    direction: MatchDirection = Query(default=MatchDirection.INR_BUY_USDT_SELL),
    section: Literal["summaries", "skipped", "matches"] = Query(default="summaries"),
) -> Response:
    """Match an uploaded trade log and return one section of the result as CSV."""

    result = await _run(file, strategy, buy_window, track_skipped, per_match_output, direction)
    precision = get_matcher_settings().export_precision
    if section == "matches":
        body = fifo_matches_to_frame(result, precision=precision).to_csv(index=False)
    elif section == "skipped":
        body = summaries_to_csv(result.skipped, precision=precision)
    else:
        body = summaries_to_csv(result, precision=precision)
    filename = f"{result.strategy.value}_{section}.csv"
    logger.info("Exporting %s as %s", section, filename)
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


__all__ = ["router"]
