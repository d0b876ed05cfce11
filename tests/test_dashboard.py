"""Tests for the dashboard API."""
import httpx
import pytest
import pytest_asyncio

from coach.analyst import TradeCoach
from dashboard.main import create_app
from feeds.market_data import MarketDataClient
from helpers import make_metric, make_trade
from shared.llm_client import CompletionClient
from storage.db import Database


def _trade_body(**kw):
    return make_trade(**kw).to_wire()


@pytest_asyncio.fixture
async def api(db):
    market = MarketDataClient(
        api_keys={"polygon": "pk"},
        transport=httpx.MockTransport(lambda r: httpx.Response(200, json={
            "results": [{"c": 210.0, "o": 200.0, "h": 212.0, "l": 199.0, "v": 100, "t": 1704067200000}],
        })),
    )
    coach = TradeCoach({"openai": CompletionClient(provider="openai", api_key="")})
    app = create_app(db, market=market, coach=coach)
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.mark.asyncio
async def test_status_empty(api):
    resp = await api.get("/api/status")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "running"
    assert data["summary"]["total_trades"] == 0
    assert data["ai_summary"].startswith("No trades yet")
    assert data["database"]["tradeCount"] == 0


@pytest.mark.asyncio
async def test_trade_crud(api):
    resp = await api.post("/api/trades", json=_trade_body())
    assert resp.status_code == 201
    created = resp.json()
    trade_id = created["id"]
    assert created["entryPrice"] == 150.0

    resp = await api.get(f"/api/trades/{trade_id}")
    assert resp.status_code == 200
    assert resp.json()["symbol"] == "AAPL"

    update = dict(created, exitPrice=160.0, exitDate="2024-01-05", profit=100.0)
    resp = await api.put(f"/api/trades/{trade_id}", json=update)
    assert resp.status_code == 200
    assert (await api.get(f"/api/trades/{trade_id}")).json()["profit"] == 100.0

    resp = await api.delete(f"/api/trades/{trade_id}")
    assert resp.status_code == 204
    assert (await api.get(f"/api/trades/{trade_id}")).status_code == 404


@pytest.mark.asyncio
async def test_trade_list_filters(api):
    await api.post("/api/trades", json=_trade_body(symbol="AAPL", type="buy", entry_date="2024-01-01"))
    await api.post("/api/trades", json=_trade_body(symbol="AAPL", type="sell", entry_date="2024-01-02", tags=["fade"]))
    await api.post("/api/trades", json=_trade_body(symbol="TSLA", type="buy", entry_date="2024-01-03"))

    all_trades = (await api.get("/api/trades")).json()["trades"]
    assert [t["entryDate"] for t in all_trades] == ["2024-01-03", "2024-01-02", "2024-01-01"]

    sells = (await api.get("/api/trades", params={"type": "sell"})).json()["trades"]
    assert len(sells) == 1

    aapl = (await api.get("/api/trades", params={"symbol": "AAPL", "start": "2024-01-02"})).json()["trades"]
    assert [t["type"] for t in aapl] == ["sell"]

    tagged = (await api.get("/api/trades", params={"tag": "fade"})).json()["trades"]
    assert tagged[0]["tags"] == ["fade"]

    page = (await api.get("/api/trades", params={"limit": 1, "offset": 1})).json()["trades"]
    assert page[0]["entryDate"] == "2024-01-02"


@pytest.mark.asyncio
async def test_negative_limit_rejected(api):
    resp = await api.get("/api/trades", params={"limit": -1})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_update_missing_trade_404(api):
    resp = await api.put("/api/trades/nope", json=_trade_body())
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_invalid_trade_body_422(api):
    resp = await api.post("/api/trades", json={"symbol": "AAPL"})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_duplicate_trade_id_409(api):
    body = _trade_body(id="fixed-id")
    assert (await api.post("/api/trades", json=body)).status_code == 201
    resp = await api.post("/api/trades", json=body)
    assert resp.status_code == 409
    assert "create trade" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_uninitialized_store_503(tmp_path):
    app = create_app(Database(str(tmp_path / "journal.db")))
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        resp = await client.get("/api/trades")
    assert resp.status_code == 503
    assert "not initialized" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_watchlist(api):
    resp = await api.post("/api/watchlist", json={"symbol": "TSLA", "name": "Tesla"})
    assert resp.status_code == 201
    await api.post("/api/watchlist", json={"symbol": "TSLA", "currentPrice": 250.0})
    items = (await api.get("/api/watchlist")).json()["watchlist"]
    assert len(items) == 1
    assert items[0]["currentPrice"] == 250.0
    assert items[0]["name"] == "Tesla"

    assert (await api.delete("/api/watchlist/TSLA")).status_code == 204
    assert (await api.get("/api/watchlist")).json()["watchlist"] == []


@pytest.mark.asyncio
async def test_alerts(api):
    resp = await api.post("/api/alerts", json={
        "symbol": "AAPL", "type": "price", "condition": "above", "value": 200, "message": "breakout",
    })
    assert resp.status_code == 201
    alert = resp.json()
    assert alert["isActive"] is True

    resp = await api.put(f"/api/alerts/{alert['id']}", json=dict(alert, isActive=False))
    assert resp.status_code == 200
    assert (await api.get("/api/alerts", params={"active_only": "true"})).json()["alerts"] == []
    assert len((await api.get("/api/alerts")).json()["alerts"]) == 1

    assert (await api.delete(f"/api/alerts/{alert['id']}")).status_code == 204


@pytest.mark.asyncio
async def test_export_import(api, db):
    await api.post("/api/trades", json=_trade_body())
    snapshot = (await api.get("/api/export")).json()
    assert snapshot["version"] == "1.0"
    assert len(snapshot["trades"]) == 1
    assert "performanceMetrics" in snapshot

    await api.post("/api/trades", json=_trade_body(symbol="TSLA"))
    resp = await api.post("/api/import", json=snapshot)
    assert resp.status_code == 204
    assert [t.symbol for t in await db.get_trades()] == ["AAPL"]


@pytest.mark.asyncio
async def test_invalid_import_422(api):
    await api.post("/api/trades", json=_trade_body())
    resp = await api.post("/api/import", json={"version": "1.0", "trades": [{"symbol": "X"}]})
    assert resp.status_code == 422
    assert len((await api.get("/api/trades")).json()["trades"]) == 1


@pytest.mark.asyncio
async def test_metrics_endpoint(api, db):
    await db.save_performance_metrics(make_metric(date="2024-01-01"))
    await db.save_performance_metrics(make_metric(date="2024-01-02"))
    metrics = (await api.get("/api/metrics", params={"start": "2024-01-02"})).json()["metrics"]
    assert [m["date"] for m in metrics] == ["2024-01-02"]


@pytest.mark.asyncio
async def test_market_price(api):
    resp = await api.get("/api/market/price/AAPL")
    assert resp.status_code == 200
    assert resp.json()["price"] == 210.0
    assert resp.json()["provider"] == "polygon"


@pytest.mark.asyncio
async def test_market_provider_error_502(api):
    resp = await api.get("/api/market/price/AAPL", params={"provider": "news"})
    assert resp.status_code == 502


@pytest.mark.asyncio
async def test_market_not_configured(db):
    app = create_app(db)
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        resp = await client.get("/api/market/price/AAPL")
    assert resp.status_code == 503


@pytest.mark.asyncio
async def test_coach_trade_simulated(api):
    created = (await api.post("/api/trades", json=_trade_body(exit_date="2024-01-02", profit=-50.0))).json()
    resp = await api.post(f"/api/coach/trades/{created['id']}")
    assert resp.status_code == 200
    data = resp.json()
    assert data["tradeId"] == created["id"]
    assert data["riskScore"] == 7
    assert data["provider"] == "openai"

    assert (await api.post("/api/coach/trades/missing")).status_code == 404


@pytest.mark.asyncio
async def test_coach_portfolio_simulated(api):
    await api.post("/api/trades", json=_trade_body(exit_date="2024-01-02", profit=50.0))
    resp = await api.post("/api/coach/portfolio")
    assert resp.status_code == 200
    assert resp.json()["overallScore"] == 100


@pytest.mark.asyncio
async def test_update_missing_alert_404(api):
    resp = await api.put("/api/alerts/nope", json={
        "symbol": "AAPL", "type": "price", "condition": "above", "value": 200, "message": "breakout",
    })
    assert resp.status_code == 404
    assert (await api.get("/api/alerts")).json()["alerts"] == []
