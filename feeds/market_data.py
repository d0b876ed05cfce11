"""Market data from third-party HTTP providers.

Responses are cached per request key for a short fixed window, and each
provider is rate-gated to a minimum interval between requests.
"""
import asyncio
import logging
import re
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

import httpx

from shared.errors import ProviderError
from shared.schemas import (
    EconomicEvent,
    HistoricalBar,
    HistoricalData,
    MarketBias,
    MarketSentiment,
    NewsItem,
    NewsSentiment,
    PriceData,
)

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL = 30.0


@dataclass
class Provider:
    """A market data endpoint and its request budget."""
    name: str
    base_url: str
    requests_per_minute: int
    api_key: str = ""
    last_request: float = 0.0

    @property
    def min_interval(self) -> float:
        return 60.0 / self.requests_per_minute


PROVIDERS = {
    "alphaVantage": ("Alpha Vantage", "https://www.alphavantage.co/query", 500),
    "polygon": ("Polygon", "https://api.polygon.io", 1000),
    "coingecko": ("CoinGecko", "https://api.coingecko.com/api/v3", 100),
    "yfinance": ("Yahoo Finance", "https://yfapi.net/v6", 2000),
    "news": ("News API", "https://newsapi.org/v2", 100),
    "finnhub": ("Finnhub", "https://finnhub.io/api/v1", 60),
}

POSITIVE_WORDS = ["bullish", "surge", "rally", "gain", "profit", "positive", "up", "higher"]
NEGATIVE_WORDS = ["bearish", "drop", "fall", "loss", "decline", "negative", "down", "lower"]
TICKER_PATTERN = re.compile(r"\b[A-Z]{1,5}\b")

ALPHA_VANTAGE_FUNCTIONS = {
    "1D": "TIME_SERIES_DAILY",
    "1W": "TIME_SERIES_WEEKLY",
    "1M": "TIME_SERIES_MONTHLY",
}
COINGECKO_DAYS = {"1D": 1, "1W": 7, "1M": 30}


def select_provider(symbol: str) -> str:
    """Pick a price provider from the shape of the symbol."""
    if any(ccy in symbol for ccy in ("USD", "EUR", "GBP")):
        return "alphaVantage"
    if any(coin in symbol for coin in ("BTC", "ETH", "USDT")):
        return "coingecko"
    if "." in symbol or len(symbol) <= 5:
        return "polygon"
    return "yfinance"


def headline_sentiment(text: str) -> NewsSentiment:
    """Count bullish vs bearish words in a headline."""
    lower = text.lower()
    positive = sum(1 for w in POSITIVE_WORDS if w in lower)
    negative = sum(1 for w in NEGATIVE_WORDS if w in lower)
    if positive > negative:
        return NewsSentiment.POSITIVE
    if negative > positive:
        return NewsSentiment.NEGATIVE
    return NewsSentiment.NEUTRAL


def extract_tickers(text: str) -> list[str]:
    return TICKER_PATTERN.findall(text or "")


def classify_bias(score: float) -> MarketBias:
    if score > 0.1:
        return MarketBias.BULLISH
    if score < -0.1:
        return MarketBias.BEARISH
    return MarketBias.NEUTRAL


def _iso_from_epoch(seconds: float) -> str:
    return datetime.fromtimestamp(seconds, tz=timezone.utc).isoformat()


class MarketDataClient:
    """Quotes, history, news and calendar data from public market APIs."""

    def __init__(
        self,
        api_keys: Optional[dict[str, str]] = None,
        cache_ttl: float = DEFAULT_CACHE_TTL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        api_keys = api_keys or {}
        self.providers = {
            key: Provider(name, url, rate, api_key=api_keys.get(key, ""))
            for key, (name, url, rate) in PROVIDERS.items()
        }
        self.cache_ttl = cache_ttl
        self._transport = transport
        self._clock = clock
        self._cache: dict[str, tuple[float, Any]] = {}

    def _get_cached(self, key: str) -> Any:
        entry = self._cache.get(key)
        if entry and self._clock() - entry[0] < self.cache_ttl:
            return entry[1]
        return None

    def _set_cached(self, key: str, data: Any):
        self._cache[key] = (self._clock(), data)

    def clear_cache(self):
        self._cache.clear()

    def _provider(self, key: str) -> Provider:
        provider = self.providers.get(key)
        if provider is None:
            raise ProviderError(key, "unsupported provider")
        return provider

    async def _rate_limit(self, key: str):
        """Sleep until the provider's minimum request interval has passed."""
        provider = self._provider(key)
        elapsed = self._clock() - provider.last_request
        if provider.last_request and elapsed < provider.min_interval:
            await asyncio.sleep(provider.min_interval - elapsed)
        provider.last_request = self._clock()

    async def _get_json(self, key: str, url: str, params: dict) -> Any:
        await self._rate_limit(key)
        try:
            async with httpx.AsyncClient(timeout=10.0, transport=self._transport) as client:
                resp = await client.get(url, params=params)
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPError as e:
            logger.error(f"{key} request failed: {e}", extra={"url": url})
            raise ProviderError(key, f"request failed: {e}") from e
        except ValueError as e:
            raise ProviderError(key, f"invalid JSON: {e}") from e

    # Prices

    async def get_real_time_price(self, symbol: str, provider: Optional[str] = None) -> PriceData:
        cache_key = f"price_{symbol}_{provider or 'default'}"
        cached = self._get_cached(cache_key)
        if cached is not None:
            return cached

        selected = provider or select_provider(symbol)
        fetchers = {
            "alphaVantage": self._alpha_vantage_price,
            "polygon": self._polygon_price,
            "coingecko": self._coingecko_price,
            "yfinance": self._yahoo_price,
        }
        fetch = fetchers.get(selected)
        if fetch is None:
            raise ProviderError(selected, "does not serve real-time prices")

        try:
            price = await fetch(symbol)
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.error(f"Malformed price response for {symbol}: {e}", extra={"provider": selected})
            raise ProviderError(selected, f"malformed price response for {symbol}") from e

        self._set_cached(cache_key, price)
        return price

    async def _alpha_vantage_price(self, symbol: str) -> PriceData:
        p = self._provider("alphaVantage")
        data = await self._get_json(
            "alphaVantage", p.base_url,
            {"function": "GLOBAL_QUOTE", "symbol": symbol, "apikey": p.api_key},
        )
        quote = data["Global Quote"]
        return PriceData(
            symbol=quote["01. symbol"],
            price=float(quote["05. price"]),
            change=float(quote["09. change"]),
            change_percent=float(quote["10. change percent"].replace("%", "")),
            volume=float(quote["06. volume"]),
            high=float(quote["03. high"]),
            low=float(quote["04. low"]),
            open=float(quote["02. open"]),
            previous_close=float(quote["08. previous close"]),
            timestamp=quote["07. latest trading day"],
            provider="alphaVantage",
        )

    async def _polygon_price(self, symbol: str) -> PriceData:
        p = self._provider("polygon")
        data = await self._get_json(
            "polygon", f"{p.base_url}/v2/aggs/ticker/{symbol}/prev", {"apikey": p.api_key}
        )
        r = data["results"][0]
        return PriceData(
            symbol=symbol,
            price=r["c"],
            change=r["c"] - r["o"],
            change_percent=((r["c"] - r["o"]) / r["o"]) * 100 if r["o"] else 0.0,
            volume=r["v"],
            high=r["h"],
            low=r["l"],
            open=r["o"],
            previous_close=r["o"],
            timestamp=_iso_from_epoch(r["t"] / 1000),
            provider="polygon",
        )

    async def _coingecko_price(self, symbol: str) -> PriceData:
        p = self._provider("coingecko")
        coin = symbol.lower()
        data = await self._get_json(
            "coingecko", f"{p.base_url}/simple/price",
            {
                "ids": coin,
                "vs_currencies": "usd",
                "include_24hr_change": "true",
                "include_24hr_vol": "true",
                "include_last_updated_at": "true",
            },
        )
        d = data[coin]
        # simple/price has no OHLC
        return PriceData(
            symbol=symbol.upper(),
            price=d["usd"],
            change=d.get("usd_24h_change", 0.0),
            change_percent=d.get("usd_24h_change", 0.0),
            volume=d.get("usd_24h_vol", 0.0),
            high=d["usd"],
            low=d["usd"],
            open=d["usd"],
            previous_close=d["usd"],
            timestamp=_iso_from_epoch(d["last_updated_at"]) if d.get("last_updated_at") else "",
            provider="coingecko",
        )

    async def _yahoo_price(self, symbol: str) -> PriceData:
        p = self._provider("yfinance")
        data = await self._get_json(
            "yfinance", f"{p.base_url}/finance/quote", {"symbols": symbol, "apikey": p.api_key}
        )
        q = data["quoteResponse"]["result"][0]
        return PriceData(
            symbol=q["symbol"],
            price=q["regularMarketPrice"],
            change=q["regularMarketChange"],
            change_percent=q["regularMarketChangePercent"],
            volume=q["regularMarketVolume"],
            high=q["regularMarketDayHigh"],
            low=q["regularMarketDayLow"],
            open=q["regularMarketOpen"],
            previous_close=q["regularMarketPreviousClose"],
            timestamp=_iso_from_epoch(q["regularMarketTime"]),
            provider="yfinance",
        )

    # History

    async def get_historical_data(
        self, symbol: str, timeframe: str, provider: Optional[str] = None
    ) -> HistoricalData:
        cache_key = f"historical_{symbol}_{timeframe}_{provider or 'default'}"
        cached = self._get_cached(cache_key)
        if cached is not None:
            return cached

        selected = provider or select_provider(symbol)
        fetchers = {
            "alphaVantage": self._alpha_vantage_history,
            "polygon": self._polygon_history,
            "coingecko": self._coingecko_history,
        }
        fetch = fetchers.get(selected)
        if fetch is None:
            raise ProviderError(selected, "does not serve historical data")

        try:
            bars = await fetch(symbol, timeframe)
        except (KeyError, IndexError, TypeError, ValueError, StopIteration) as e:
            logger.error(f"Malformed history response for {symbol}: {e}", extra={"provider": selected})
            raise ProviderError(selected, f"malformed history response for {symbol}") from e

        history = HistoricalData(symbol=symbol, timeframe=timeframe, data=bars)
        self._set_cached(cache_key, history)
        return history

    async def _alpha_vantage_history(self, symbol: str, timeframe: str) -> list[HistoricalBar]:
        p = self._provider("alphaVantage")
        data = await self._get_json(
            "alphaVantage", p.base_url,
            {
                "function": ALPHA_VANTAGE_FUNCTIONS.get(timeframe, "TIME_SERIES_DAILY"),
                "symbol": symbol,
                "apikey": p.api_key,
            },
        )
        series_key = next(k for k in data if "Time Series" in k)
        bars = [
            HistoricalBar(
                date=date,
                open=float(v["1. open"]),
                high=float(v["2. high"]),
                low=float(v["3. low"]),
                close=float(v["4. close"]),
                volume=float(v["5. volume"]),
            )
            for date, v in data[series_key].items()
        ]
        return bars[:100]

    async def _polygon_history(self, symbol: str, timeframe: str) -> list[HistoricalBar]:
        p = self._provider("polygon")
        today = datetime.now(timezone.utc).date()
        data = await self._get_json(
            "polygon", f"{p.base_url}/v2/aggs/ticker/{symbol}/range/1/day/"
            f"{(today - timedelta(days=30)).isoformat()}/{today.isoformat()}",
            {"apikey": p.api_key},
        )
        return [
            HistoricalBar(
                date=_iso_from_epoch(r["t"] / 1000)[:10],
                open=r["o"], high=r["h"], low=r["l"], close=r["c"], volume=r["v"],
            )
            for r in data["results"]
        ]

    async def _coingecko_history(self, symbol: str, timeframe: str) -> list[HistoricalBar]:
        p = self._provider("coingecko")
        data = await self._get_json(
            "coingecko", f"{p.base_url}/coins/{symbol.lower()}/ohlc",
            {"vs_currency": "usd", "days": COINGECKO_DAYS.get(timeframe, 30)},
        )
        # ohlc rows are [ms, open, high, low, close], no volume
        return [
            HistoricalBar(
                date=_iso_from_epoch(row[0] / 1000)[:10],
                open=row[1], high=row[2], low=row[3], close=row[4],
            )
            for row in data
        ]

    # News and events

    async def get_news(
        self,
        symbols: Optional[list[str]] = None,
        category: Optional[str] = None,
        limit: int = 20,
    ) -> list[NewsItem]:
        cache_key = f"news_{','.join(symbols) if symbols else 'all'}_{category or 'all'}_{limit}"
        cached = self._get_cached(cache_key)
        if cached is not None:
            return cached

        p = self._provider("news")
        params = {
            "apiKey": p.api_key,
            "pageSize": limit,
            "language": "en",
            "sortBy": "publishedAt",
            "q": " OR ".join(symbols) if symbols else (category or "markets"),
        }
        data = await self._get_json("news", f"{p.base_url}/everything", params)

        try:
            items = []
            for i, article in enumerate(data["articles"]):
                title = article.get("title") or ""
                description = article.get("description") or ""
                text = f"{title} {description}"
                items.append(NewsItem(
                    id=f"news_{i}",
                    title=title,
                    summary=description,
                    content=article.get("content") or "",
                    source=(article.get("source") or {}).get("name", ""),
                    url=article.get("url") or "",
                    published_at=article.get("publishedAt") or "",
                    sentiment=headline_sentiment(text),
                    symbols=extract_tickers(text),
                    category=category or "general",
                ))
        except (KeyError, TypeError) as e:
            raise ProviderError("news", f"malformed news response: {e}") from e

        self._set_cached(cache_key, items)
        return items

    async def get_economic_calendar(self, days: int = 7) -> list[EconomicEvent]:
        cache_key = f"economic_calendar_{days}"
        cached = self._get_cached(cache_key)
        if cached is not None:
            return cached

        p = self._provider("finnhub")
        today = datetime.now(timezone.utc).date()
        data = await self._get_json(
            "finnhub", f"{p.base_url}/calendar/economic",
            {
                "token": p.api_key,
                "from": today.isoformat(),
                "to": (today + timedelta(days=days)).isoformat(),
            },
        )
        try:
            events = [
                EconomicEvent(
                    id=str(e.get("id") or f"{e.get('event', '')}_{e.get('time', '')}"),
                    title=e.get("event", ""),
                    country=e.get("country") or "",
                    currency=e.get("unit") or e.get("currency") or "",
                    impact=e.get("impact") or "low",
                    date=(e.get("time") or "")[:10],
                    time=(e.get("time") or "")[11:],
                    forecast=str(e.get("estimate") if e.get("estimate") is not None else ""),
                    previous=str(e.get("prev") if e.get("prev") is not None else ""),
                    actual=str(e["actual"]) if e.get("actual") is not None else None,
                )
                for e in data["economicCalendar"]
            ]
        except (KeyError, TypeError) as e:
            raise ProviderError("finnhub", f"malformed calendar response: {e}") from e

        self._set_cached(cache_key, events)
        return events

    async def get_market_sentiment(self, symbol: str) -> MarketSentiment:
        cache_key = f"sentiment_{symbol}"
        cached = self._get_cached(cache_key)
        if cached is not None:
            return cached

        p = self._provider("finnhub")
        data = await self._get_json(
            "finnhub", f"{p.base_url}/news-sentiment", {"token": p.api_key, "symbol": symbol}
        )
        try:
            split = data.get("sentiment") or {}
            score = float(split.get("bullishPercent", 0)) - float(split.get("bearishPercent", 0))
            sentiment = MarketSentiment(
                symbol=symbol,
                sentiment=classify_bias(score),
                score=score,
                confidence=float((data.get("buzz") or {}).get("buzz", 0)),
            )
        except (AttributeError, TypeError, ValueError) as e:
            raise ProviderError("finnhub", f"malformed sentiment response: {e}") from e

        self._set_cached(cache_key, sentiment)
        return sentiment
