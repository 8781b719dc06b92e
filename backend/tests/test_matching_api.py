"""Upload endpoints for matching, CSV export and P&L."""

from __future__ import annotations

from decimal import Decimal

from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from app.api.routes import api_router

HEADER = "Pair,Currency,Date,Side,Price,Quantity,Total,TDS\n"
BUY_LOG = HEADER + "BTCINR,INR,45000,BUY,100,2,,\nBTCUSDT,USDT,45000,SELL,1.25,2,,0.5\n"
SELL_LOG = HEADER + "BTCUSDT,USDT,45001,BUY,1.3,1,,\nBTCINR,INR,45001,SELL,130,1,,\n"
FIFO_LOG = HEADER + "XINR,INR,45000,BUY,100,10,,\nXUSDT,USDT,45001,SELL,1,10,,\n"


def _app() -> FastAPI:
    app = FastAPI()
    app.include_router(api_router)
    return app


def _upload(content: str, name: str = "trades.csv", field: str = "file"):
    return {field: (name, content.encode(), "text/csv")}


async def _post(path: str, files, params=None):
    transport = ASGITransport(app=_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.post(path, files=files, params=params or {})


async def test_match_endpoint_returns_groups_by_date():
    response = await _post("/match", _upload(BUY_LOG), {"strategy": "daily_proportional"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["strategy"] == "daily_proportional"
    assert payload["summary_count"] == 1
    (group,) = payload["summaries"]
    assert group["date_key"] == "15th March, 2023"
    (row,) = group["rows"]
    assert row["asset"] == "BTC"
    assert Decimal(row["purchase_cost_ratio"]) == Decimal("80")
    assert Decimal(row["tds"]) == Decimal("0.5")
    assert row["date"] == "2023-03-15"


async def test_match_endpoint_fifo_details():
    response = await _post("/match", _upload(FIFO_LOG), {"strategy": "fifo"})

    assert response.status_code == 200
    (row,) = response.json()["summaries"][0]["rows"]
    (match,) = row["fifo_matches"]
    assert match["lot_id"] == 1
    assert match["sell_row"] == 2
    assert Decimal(match["profit_loss"]) == Decimal("-990")
    assert Decimal(row["profit_loss"]) == Decimal("-990")


async def test_only_buys_is_unprocessable():
    response = await _post("/match", _upload(HEADER + "BTCINR,INR,45000,BUY,100,2,,\n"))

    assert response.status_code == 422
    assert response.json()["detail"] == "No matching INR buys and USDT sells found in the processed data."


async def test_missing_header_is_unprocessable():
    response = await _post("/match", _upload("just,some,numbers\n1,2,3\n"))

    assert response.status_code == 422
    assert "header row" in response.json()["detail"]


async def test_empty_upload_is_rejected():
    response = await _post("/match", _upload(""))

    assert response.status_code == 400


async def test_reverse_direction_with_fifo_is_a_bad_request():
    response = await _post(
        "/match",
        _upload(SELL_LOG),
        {"strategy": "fifo", "direction": "stablecoin_buy_inr_sell"},
    )

    assert response.status_code == 400
    assert "not supported" in response.json()["detail"]


async def test_export_returns_csv_with_total_row():
    response = await _post("/match/export", _upload(BUY_LOG), {"strategy": "aggregate"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert 'filename="aggregate_summaries.csv"' in response.headers["content-disposition"]
    lines = response.text.splitlines()
    assert lines[0].startswith("Date,Asset,Avg INR Price")
    assert lines[1].startswith("All Dates,BTC,100.0000000000")
    assert lines[2].startswith("All Dates,Total,")


async def test_pnl_endpoint_reconciles_both_files():
    files = {**_upload(BUY_LOG, "buys.csv", "buy_file"), **_upload(SELL_LOG, "sells.csv", "sell_file")}

    response = await _post("/pnl", files)

    assert response.status_code == 200
    payload = response.json()
    (match,) = payload["matches"]
    assert match["asset"] == "BTC"
    assert Decimal(match["buy_price"]) == Decimal("100")
    assert Decimal(match["sell_price"]) == Decimal("130")
    assert Decimal(payload["total_profit_loss"]) == Decimal("30")
    assert payload["winning_trades"] == 1
    assert payload["asset_breakdown"]["BTC"]["trades"] == 1


async def test_health_reports_matcher_defaults():
    from app.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/health")

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ok"
    assert payload["default_strategy"] == "daily_proportional"
    assert payload["buy_window"] == "cumulative"
