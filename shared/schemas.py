"""Pydantic models for every record the journal stores or exchanges.

Python attributes are snake_case; the wire format (snapshot files, API
responses) is camelCase. Both spellings are accepted on input.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class JournalModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=False,
    )

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"


class RiskTolerance(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ExperienceLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class TradeType(str, Enum):
    BUY = "buy"
    SELL = "sell"


class Mood(str, Enum):
    GOOD = "good"
    NEUTRAL = "neutral"
    BAD = "bad"


class AlertType(str, Enum):
    PRICE = "price"
    NEWS = "news"
    TECHNICAL = "technical"


class AlertCondition(str, Enum):
    ABOVE = "above"
    BELOW = "below"
    EQUALS = "equals"


class UserPreferences(JournalModel):
    theme: Theme = Theme.DARK
    notifications: bool = True
    default_currency: str = "USD"


class User(JournalModel):
    """Trader identity and profile."""
    id: Optional[str] = None
    email: str
    name: str
    password: Optional[str] = None
    trading_style: str = ""
    risk_tolerance: RiskTolerance = RiskTolerance.MEDIUM
    experience_level: ExperienceLevel = ExperienceLevel.BEGINNER
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    created_at: str = Field(default_factory=utc_now_iso)
    updated_at: str = Field(default_factory=utc_now_iso)


class Trade(JournalModel):
    """A single buy/sell position, open until its exit fields are set."""
    id: Optional[str] = None
    user_id: Optional[str] = None
    symbol: str
    type: TradeType
    entry_price: float
    exit_price: Optional[float] = None
    quantity: float
    entry_date: str
    exit_date: Optional[str] = None
    profit: Optional[float] = None
    notes: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    confidence: Optional[int] = None
    mood: Optional[Mood] = None
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    screenshot: Optional[str] = None
    strategy: Optional[str] = None
    market: Optional[str] = None
    session: Optional[str] = None
    created_at: str = Field(default_factory=utc_now_iso)
    updated_at: str = Field(default_factory=utc_now_iso)

    @property
    def is_open(self) -> bool:
        return self.exit_date is None

    @property
    def is_closed(self) -> bool:
        return self.exit_date is not None and self.profit is not None


class WatchlistItem(JournalModel):
    """A tracked symbol with its last known quote."""
    id: Optional[str] = None
    user_id: Optional[str] = None
    symbol: str
    name: Optional[str] = None
    current_price: Optional[float] = None
    change: Optional[float] = None
    change_percent: Optional[float] = None
    added_at: str = Field(default_factory=utc_now_iso)


class Alert(JournalModel):
    """User-defined condition on a symbol."""
    id: Optional[str] = None
    user_id: Optional[str] = None
    symbol: str
    type: AlertType
    condition: AlertCondition
    value: Union[float, str]
    message: str
    is_active: bool = True
    created_at: str = Field(default_factory=utc_now_iso)


class PerformanceMetric(JournalModel):
    """Periodic rollup of trade statistics, one per date."""
    id: Optional[str] = None
    user_id: Optional[str] = None
    date: str
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    total_profit: float = 0.0
    total_loss: float = 0.0
    win_rate: float = 0.0
    profit_factor: float = 0.0
    average_win: float = 0.0
    average_loss: float = 0.0
    max_drawdown: float = 0.0
    sharpe_ratio: float = 0.0
    created_at: str = Field(default_factory=utc_now_iso)


class Snapshot(JournalModel):
    """Full-database bundle produced by export and consumed by import."""
    version: str
    export_date: str = Field(default_factory=utc_now_iso)
    users: list[User] = Field(default_factory=list)
    trades: list[Trade] = Field(default_factory=list)
    watchlist: list[WatchlistItem] = Field(default_factory=list)
    alerts: list[Alert] = Field(default_factory=list)
    performance_metrics: list[PerformanceMetric] = Field(default_factory=list)


class DatabaseInfo(JournalModel):
    path: str
    initialized: bool
    user_count: int = 0
    trade_count: int = 0
    watchlist_count: int = 0
    alert_count: int = 0
    performance_metric_count: int = 0
    last_updated: str = Field(default_factory=utc_now_iso)


# Market data payloads

class PriceData(JournalModel):
    symbol: str
    price: float
    change: float = 0.0
    change_percent: float = 0.0
    volume: float = 0.0
    high: float = 0.0
    low: float = 0.0
    open: float = 0.0
    previous_close: float = 0.0
    timestamp: str = ""
    provider: str = ""


class HistoricalBar(JournalModel):
    date: str
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0


class HistoricalData(JournalModel):
    symbol: str
    timeframe: str
    data: list[HistoricalBar] = Field(default_factory=list)


class NewsSentiment(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class NewsItem(JournalModel):
    id: str
    title: str
    summary: str = ""
    content: str = ""
    source: str = ""
    url: str = ""
    published_at: str = ""
    sentiment: NewsSentiment = NewsSentiment.NEUTRAL
    symbols: list[str] = Field(default_factory=list)
    category: str = "general"


class EconomicEvent(JournalModel):
    id: str
    title: str
    country: str = ""
    currency: str = ""
    impact: str = "low"
    date: str = ""
    time: str = ""
    forecast: str = ""
    previous: str = ""
    actual: Optional[str] = None


class MarketBias(str, Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class MarketSentiment(JournalModel):
    symbol: str
    sentiment: MarketBias
    score: float = 0.0
    confidence: float = 0.0
    sources: list[str] = Field(default_factory=list)
    timestamp: str = Field(default_factory=utc_now_iso)


# AI coaching payloads

class CompletionResult(JournalModel):
    """Normalized response from any completion provider."""
    content: str
    provider: str
    model: str = ""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    latency_ms: float = 0.0
    simulated: bool = False


class TradeAnalysis(JournalModel):
    trade_id: Optional[str] = None
    analysis: str
    recommendations: list[str] = Field(default_factory=list)
    risk_score: int = 5
    confidence: int = 50
    patterns: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)
    provider: str = ""


class PortfolioAnalysis(JournalModel):
    overall_score: int = 50
    risk_assessment: str = "Moderate risk"
    recommendations: list[str] = Field(default_factory=list)
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    opportunities: list[str] = Field(default_factory=list)
    threats: list[str] = Field(default_factory=list)
    analysis: str = ""
    provider: str = ""
