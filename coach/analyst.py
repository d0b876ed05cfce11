"""Trading coach: prompt a completion provider and parse its commentary."""
import logging
import re
from typing import Optional

from analytics.performance import closed_trades
from coach.prompts import (
    MARKET_INSIGHTS_PROMPT,
    PORTFOLIO_ANALYSIS_PROMPT,
    SIMULATED_INSIGHTS_REPLY,
    SIMULATED_PORTFOLIO_REPLY,
    SIMULATED_STRATEGY_REPLY,
    SIMULATED_TRADE_REPLY,
    STRATEGY_PROMPT,
    TRADE_ANALYSIS_PROMPT,
)
from shared.errors import ProviderError
from shared.llm_client import CompletionClient
from shared.schemas import CompletionResult, PortfolioAnalysis, Trade, TradeAnalysis

logger = logging.getLogger(__name__)

RECOMMENDATION_PATTERN = re.compile(r"recommendations?[:\s]+([^.]+)", re.IGNORECASE)
PATTERN_PATTERN = re.compile(r"patterns?[:\s]+([^.]+)", re.IGNORECASE)
IMPROVEMENT_PATTERN = re.compile(r"improvements?[:\s]+([^.]+)", re.IGNORECASE)
STRENGTH_PATTERN = re.compile(r"strengths?[:\s]+([^.]+)", re.IGNORECASE)
WEAKNESS_PATTERN = re.compile(r"weakness(?:es)?[:\s]+([^.]+)", re.IGNORECASE)
OPPORTUNITY_PATTERN = re.compile(r"opportunit(?:y|ies)[:\s]+([^.]+)", re.IGNORECASE)
THREAT_PATTERN = re.compile(r"threats?[:\s]+([^.]+)", re.IGNORECASE)
RISK_SCORE_PATTERN = re.compile(r"risk score[:\s]+(\d+)", re.IGNORECASE)
CONFIDENCE_PATTERN = re.compile(r"confidence[:\s]+(\d+)", re.IGNORECASE)
OVERALL_SCORE_PATTERN = re.compile(r"overall score[:\s]+(\d+)", re.IGNORECASE)
RISK_ASSESSMENT_PATTERN = re.compile(r"risk assessment[:\s]+([^.]+)", re.IGNORECASE)


def _phrases(pattern: re.Pattern, content: str) -> list[str]:
    return [m.strip() for m in pattern.findall(content) if m.strip()]


def _int(pattern: re.Pattern, content: str, default: int) -> int:
    match = pattern.search(content)
    return int(match.group(1)) if match else default


def _or_na(value) -> str:
    if value is None or value == "":
        return "N/A"
    return str(getattr(value, "value", value))


def parse_trade_analysis(content: str, trade_id: Optional[str] = None) -> TradeAnalysis:
    return TradeAnalysis(
        trade_id=trade_id,
        analysis=content,
        recommendations=_phrases(RECOMMENDATION_PATTERN, content),
        risk_score=_int(RISK_SCORE_PATTERN, content, 5),
        confidence=_int(CONFIDENCE_PATTERN, content, 50),
        patterns=_phrases(PATTERN_PATTERN, content),
        improvements=_phrases(IMPROVEMENT_PATTERN, content),
    )


def parse_portfolio_analysis(content: str) -> PortfolioAnalysis:
    match = RISK_ASSESSMENT_PATTERN.search(content)
    return PortfolioAnalysis(
        overall_score=_int(OVERALL_SCORE_PATTERN, content, 50),
        risk_assessment=match.group(1).strip() if match else "Moderate risk",
        recommendations=_phrases(RECOMMENDATION_PATTERN, content),
        strengths=_phrases(STRENGTH_PATTERN, content),
        weaknesses=_phrases(WEAKNESS_PATTERN, content),
        opportunities=_phrases(OPPORTUNITY_PATTERN, content),
        threats=_phrases(THREAT_PATTERN, content),
        analysis=content,
    )


def portfolio_stats(trades: list[Trade]) -> dict:
    total = len(trades)
    wins = sum(1 for t in trades if t.profit and t.profit > 0)
    losses = sum(1 for t in trades if t.profit and t.profit < 0)
    total_profit = sum(t.profit or 0 for t in trades)
    return {
        "total_trades": total,
        "winning_trades": wins,
        "losing_trades": losses,
        "win_rate": (wins / total * 100) if total else 0.0,
        "total_profit": total_profit,
    }


def quick_summary(trades: list[Trade]) -> str:
    """One-line dashboard summary, no provider call."""
    if not trades:
        return "No trades yet. Start trading to see AI analysis!"
    profit = sum(t.profit or 0 for t in trades)
    trend = "positive" if profit >= 0 else "negative"
    return (
        f"AI Summary: Your portfolio shows a {trend} trend. {len(trades)} trades analyzed. "
        "Keep focusing on risk management and consistency!"
    )


class TradeCoach:
    """AI coaching over journal data.

    Routes each request to one of several interchangeable completion
    providers. A provider without credentials yields simulated commentary
    instead of an HTTP call.
    """

    def __init__(self, clients: dict[str, CompletionClient], default_provider: str = "openai"):
        if default_provider not in clients:
            raise ValueError(f"Provider {default_provider} not found")
        self.clients = clients
        self.default_provider = default_provider

    def _client(self, provider: Optional[str]) -> CompletionClient:
        name = provider or self.default_provider
        client = self.clients.get(name)
        if client is None:
            raise ProviderError(name, "provider not found")
        return client

    async def _complete(
        self,
        provider: Optional[str],
        prompt: str,
        simulated: str,
        temperature: float,
        max_tokens: int,
    ) -> CompletionResult:
        client = self._client(provider)
        if not client.has_credentials:
            logger.info("No credentials, returning simulated coaching", extra={"provider": client.provider})
            return CompletionResult(content=simulated, provider=client.provider, model="simulated", simulated=True)

        try:
            result = await client.chat_async(prompt, temperature=temperature, max_tokens=max_tokens)
        except ProviderError as e:
            logger.error(f"Coach request failed: {e}", extra={"provider": client.provider})
            raise
        logger.info(
            "Coach response",
            extra={"provider": result.provider, "model": result.model, "latency_ms": round(result.latency_ms)},
        )
        return result

    async def analyze_trade(self, trade: Trade, provider: Optional[str] = None) -> TradeAnalysis:
        prompt = TRADE_ANALYSIS_PROMPT.format(
            symbol=trade.symbol,
            type=_or_na(trade.type),
            entry_price=trade.entry_price,
            exit_price=trade.exit_price if trade.exit_price is not None else "Open",
            quantity=trade.quantity,
            entry_date=trade.entry_date,
            exit_date=_or_na(trade.exit_date),
            profit=_or_na(trade.profit),
            notes=trade.notes or "None",
            confidence=_or_na(trade.confidence),
            mood=_or_na(trade.mood),
            strategy=_or_na(trade.strategy),
        )
        losing = trade.profit is not None and trade.profit < 0
        simulated = SIMULATED_TRADE_REPLY.format(
            symbol=trade.symbol,
            type=_or_na(trade.type),
            risk_score=7 if losing else 4,
            confidence=trade.confidence * 10 if trade.confidence and trade.confidence <= 10 else 60,
            pattern="loss taken without a recorded stop-loss" if losing and trade.stop_loss is None
            else "entry aligned with the stated strategy",
        )
        result = await self._complete(provider, prompt, simulated, temperature=0.7, max_tokens=1000)
        analysis = parse_trade_analysis(result.content, trade.id)
        analysis.provider = result.provider
        return analysis

    async def analyze_portfolio(self, trades: list[Trade], provider: Optional[str] = None) -> PortfolioAnalysis:
        stats = portfolio_stats(trades)
        recent = "\n".join(
            f"- {t.symbol}: {_or_na(t.type)} @ ${t.entry_price}, P&L: "
            f"{'$' + str(t.profit) if t.profit is not None else 'Open'}"
            for t in trades[:10]
        )
        prompt = PORTFOLIO_ANALYSIS_PROMPT.format(recent_trades=recent or "- none", **stats)

        closed = closed_trades(trades)
        score = round(stats["win_rate"]) if closed else 50
        simulated = SIMULATED_PORTFOLIO_REPLY.format(
            total_trades=stats["total_trades"],
            score=score,
            risk="High risk" if stats["total_profit"] < 0 else "Moderate risk",
        )
        result = await self._complete(provider, prompt, simulated, temperature=0.8, max_tokens=1500)
        analysis = parse_portfolio_analysis(result.content)
        analysis.provider = result.provider
        return analysis

    async def generate_strategy(self, symbol: str, timeframe: str, provider: Optional[str] = None) -> str:
        prompt = STRATEGY_PROMPT.format(symbol=symbol, timeframe=timeframe)
        simulated = SIMULATED_STRATEGY_REPLY.format(symbol=symbol, timeframe=timeframe)
        result = await self._complete(provider, prompt, simulated, temperature=0.9, max_tokens=2000)
        return result.content

    async def get_market_insights(self, symbols: list[str], provider: Optional[str] = None) -> str:
        joined = ", ".join(symbols)
        prompt = MARKET_INSIGHTS_PROMPT.format(symbols=joined)
        simulated = SIMULATED_INSIGHTS_REPLY.format(symbols=joined or "your watchlist")
        result = await self._complete(provider, prompt, simulated, temperature=0.7, max_tokens=1200)
        return result.content
