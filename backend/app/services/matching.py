"""Glue between uploaded trade logs, the matching engine and API schemas."""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, List, Tuple

from fastapi import HTTPException, UploadFile, status

from app.config import get_settings
from app.schemas import (
    AssetPnLSchema,
    AssetSummarySchema,
    DateGroupSchema,
    MatchResponse,
    PnLMatchSchema,
    PnLResponse,
    SellMatchSchema,
)
from trade_matcher import (
    HeaderNotFoundError,
    MatchingEngineError,
    MatchingStrategy,
    MatchOptions,
    MatchResult,
    NoMatchesFoundError,
    PnLSummary,
    TradeMatcherError,
    match_rows,
)
from trade_matcher.ingest import read_trade_rows
from trade_matcher.models import AssetSummary, SellMatch

logger = logging.getLogger(__name__)


async def read_upload(file: UploadFile) -> bytes:
    """Read an uploaded file, enforcing the configured size limit."""

    limit = get_settings().max_upload_bytes
    content = await file.read(limit + 1)
    if len(content) > limit:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Upload exceeds the {limit} byte limit",
        )
    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Uploaded file is empty")
    return content


async def match_upload(
    content: bytes,
    filename: str | None,
    strategy: MatchingStrategy,
    options: MatchOptions,
) -> MatchResult:
    """Parse an uploaded trade log and run one matching pass over it."""

    try:
        rows = await asyncio.to_thread(read_trade_rows, content, filename=filename)
    except TradeMatcherError:
        raise
    except Exception as exc:
        logger.warning("Could not read upload %s: %s", filename, exc)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Could not read the uploaded file as CSV or Excel",
        ) from exc
    logger.info("Upload %s: %s data rows, strategy=%s", filename or "<unnamed>", len(rows), strategy.value)
    return await match_rows(rows, strategy, options)


def http_error(exc: TradeMatcherError) -> HTTPException:
    """Map engine errors onto HTTP responses."""

    if isinstance(exc, (NoMatchesFoundError, HeaderNotFoundError)):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    if isinstance(exc, MatchingEngineError):
        return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def _match_schema(match: SellMatch) -> SellMatchSchema:
    return SellMatchSchema(
        lot_id=match.lot_id,
        sell_row=match.sell.row_index,
        matched_quantity=match.matched_quantity,
        sell_price=match.sell_price,
        cost_basis=match.cost_basis,
        profit_loss=match.profit_loss,
        sell_timestamp=match.sell_timestamp,
        buy_timestamp=match.buy_timestamp,
    )


def _summary_schema(row: AssetSummary) -> AssetSummarySchema:
    return AssetSummarySchema(
        display_date=row.display_date,
        asset=row.asset,
        inr_price=row.inr_price,
        usdt_price=row.usdt_price,
        coin_sold_qty=row.coin_sold_qty,
        purchase_cost_ratio=row.purchase_cost_ratio,
        usdt_quantity=row.usdt_quantity,
        purchase_cost_inr=row.purchase_cost_inr,
        tds=row.tds,
        total_relevant_inr_value=row.total_relevant_inr_value,
        total_relevant_inr_quantity=row.total_relevant_inr_quantity,
        date=row.date,
        buy_quantity=row.buy_quantity,
        sell_quantity=row.sell_quantity,
        profit_loss=row.profit_loss if row.fifo_matches else None,
        note=row.note,
        fifo_matches=[_match_schema(match) for match in row.fifo_matches],
    )


def _groups(items: Iterable[Tuple[str, List[AssetSummary]]]) -> list[DateGroupSchema]:
    return [
        DateGroupSchema(date_key=key, rows=[_summary_schema(row) for row in rows])
        for key, rows in items
    ]


def to_match_response(result: MatchResult) -> MatchResponse:
    return MatchResponse(
        strategy=result.strategy,
        summary_count=result.summary_count,
        skipped_count=result.skipped_count,
        summaries=_groups(result.iter_summaries()),
        skipped=_groups(result.iter_skipped()),
    )


def to_pnl_response(summary: PnLSummary) -> PnLResponse:
    return PnLResponse(
        matches=[
            PnLMatchSchema(
                asset=match.asset,
                date=match.date,
                matched_quantity=match.matched_quantity,
                buy_price=match.buy_price,
                sell_price=match.sell_price,
                profit_loss=match.profit_loss,
                profit_loss_percentage=match.profit_loss_percentage,
            )
            for match in summary.matches
        ],
        total_profit_loss=summary.total_profit_loss,
        total_investment=summary.total_investment,
        overall_return=summary.overall_return,
        winning_trades=summary.winning_trades,
        losing_trades=summary.losing_trades,
        win_rate=summary.win_rate,
        asset_breakdown={
            asset: AssetPnLSchema(
                total_pnl=item.total_pnl,
                total_investment=item.total_investment,
                return_percentage=item.return_percentage,
                trades=item.trades,
            )
            for asset, item in summary.asset_breakdown.items()
        },
    )


__all__ = ["read_upload", "match_upload", "http_error", "to_match_response", "to_pnl_response"]
