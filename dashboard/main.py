"""FastAPI JSON API over the journal store."""
import logging
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from analytics.performance import summarize
from coach.analyst import TradeCoach, quick_summary
from feeds.market_data import MarketDataClient
from shared.errors import (
    ConstraintViolationError,
    ProviderError,
    StoreError,
    StoreNotInitializedError,
)
from shared.schemas import Alert, Trade, TradeType, WatchlistItem
from storage.db import Database
from storage.filters import BySymbol, ByTag, ByType, EntryDateRange, Page

logger = logging.getLogger(__name__)


def create_app(
    db: Database,
    market: Optional[MarketDataClient] = None,
    coach: Optional[TradeCoach] = None,
) -> FastAPI:
    """Build the API around collaborators owned by the caller."""
    app = FastAPI(title="Trade Journal Dashboard")
    app.state.db = db
    app.state.market = market
    app.state.coach = coach

    @app.exception_handler(StoreNotInitializedError)
    async def _not_initialized(request: Request, exc: StoreNotInitializedError):
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    @app.exception_handler(ConstraintViolationError)
    async def _constraint(request: Request, exc: ConstraintViolationError):
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(StoreError)
    async def _store_error(request: Request, exc: StoreError):
        if isinstance(exc.cause, ValidationError):
            return JSONResponse(status_code=422, content={"detail": str(exc)})
        logger.error(f"Store error: {exc}", extra={"path": request.url.path})
        return JSONResponse(status_code=500, content={"detail": str(exc)})

    @app.exception_handler(ProviderError)
    async def _provider_error(request: Request, exc: ProviderError):
        return JSONResponse(status_code=502, content={"detail": str(exc)})

    def _db(request: Request) -> Database:
        return request.app.state.db

    def _market(request: Request) -> MarketDataClient:
        market = request.app.state.market
        if market is None:
            raise HTTPException(status_code=503, detail="Market data not configured")
        return market

    def _coach(request: Request) -> TradeCoach:
        coach = request.app.state.coach
        if coach is None:
            raise HTTPException(status_code=503, detail="Coach not configured")
        return coach

    @app.get("/api/status")
    async def api_status(request: Request):
        db = _db(request)
        trades = await db.get_trades()
        info = await db.get_database_info()
        return {
            "status": "running",
            "summary": summarize(trades),
            "ai_summary": quick_summary(trades),
            "database": info,
        }

    # Trades

    @app.get("/api/trades")
    async def api_trades(
        request: Request,
        symbol: Optional[str] = None,
        type: Optional[TradeType] = None,
        tag: Optional[str] = None,
        start: Optional[str] = None,
        end: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ):
        filters: list = []
        if symbol:
            filters.append(BySymbol(symbol))
        if type:
            filters.append(ByType(type))
        if tag:
            filters.append(ByTag(tag))
        if start or end:
            filters.append(EntryDateRange(start, end))
        if limit is not None or offset:
            try:
                filters.append(Page(limit, offset))
            except ValueError as e:
                raise HTTPException(status_code=422, detail=str(e))
        trades = await _db(request).get_trades(*filters)
        return {"trades": trades}

    @app.get("/api/trades/{trade_id}")
    async def api_trade(request: Request, trade_id: str):
        trade = await _db(request).get_trade(trade_id)
        if trade is None:
            raise HTTPException(status_code=404, detail="Trade not found")
        return trade

    @app.post("/api/trades", status_code=201)
    async def api_create_trade(request: Request, trade: Trade):
        return await _db(request).create_trade(trade)

    @app.put("/api/trades/{trade_id}")
    async def api_update_trade(request: Request, trade_id: str, trade: Trade):
        db = _db(request)
        if await db.get_trade(trade_id) is None:
            raise HTTPException(status_code=404, detail="Trade not found")
        return await db.update_trade(trade.model_copy(update={"id": trade_id}))

    @app.delete("/api/trades/{trade_id}", status_code=204)
    async def api_delete_trade(request: Request, trade_id: str):
        await _db(request).delete_trade(trade_id)

    # Watchlist

    @app.get("/api/watchlist")
    async def api_watchlist(request: Request):
        return {"watchlist": await _db(request).get_watchlist()}

    @app.post("/api/watchlist", status_code=201)
    async def api_add_watchlist(request: Request, item: WatchlistItem):
        return await _db(request).add_to_watchlist(item)

    @app.delete("/api/watchlist/{symbol}", status_code=204)
    async def api_remove_watchlist(request: Request, symbol: str):
        await _db(request).remove_from_watchlist(symbol)

    # Alerts

    @app.get("/api/alerts")
    async def api_alerts(request: Request, active_only: bool = False):
        return {"alerts": await _db(request).get_alerts(active_only=active_only)}

    @app.post("/api/alerts", status_code=201)
    async def api_create_alert(request: Request, alert: Alert):
        return await _db(request).create_alert(alert)

    @app.put("/api/alerts/{alert_id}")
    async def api_update_alert(request: Request, alert_id: str, alert: Alert):
        db = _db(request)
        if await db.get_alert(alert_id) is None:
            raise HTTPException(status_code=404, detail="Alert not found")
        return await db.update_alert(alert.model_copy(update={"id": alert_id}))

    @app.delete("/api/alerts/{alert_id}", status_code=204)
    async def api_delete_alert(request: Request, alert_id: str):
        await _db(request).delete_alert(alert_id)

    # Metrics, export, import

    @app.get("/api/metrics")
    async def api_metrics(request: Request, start: Optional[str] = None, end: Optional[str] = None):
        return {"metrics": await _db(request).get_performance_metrics(start, end)}

    @app.get("/api/export")
    async def api_export(request: Request):
        snapshot = await _db(request).export_data()
        return snapshot.to_wire()

    @app.post("/api/import", status_code=204)
    async def api_import(request: Request, snapshot: dict[str, Any]):
        await _db(request).import_data(snapshot)

    # Market data and coaching

    @app.get("/api/market/price/{symbol}")
    async def api_price(request: Request, symbol: str, provider: Optional[str] = None):
        return await _market(request).get_real_time_price(symbol, provider)

    @app.get("/api/market/news")
    async def api_news(request: Request, symbols: Optional[str] = None, limit: int = 20):
        wanted = [s.strip() for s in symbols.split(",") if s.strip()] if symbols else None
        return {"news": await _market(request).get_news(wanted, limit=limit)}

    @app.post("/api/coach/trades/{trade_id}")
    async def api_coach_trade(request: Request, trade_id: str, provider: Optional[str] = None):
        trade = await _db(request).get_trade(trade_id)
        if trade is None:
            raise HTTPException(status_code=404, detail="Trade not found")
        return await _coach(request).analyze_trade(trade, provider)

    @app.post("/api/coach/portfolio")
    async def api_coach_portfolio(request: Request, provider: Optional[str] = None):
        trades = await _db(request).get_trades(Page(limit=100))
        return await _coach(request).analyze_portfolio(trades, provider)

    return app
