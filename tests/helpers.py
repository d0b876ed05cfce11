"""Test helpers shared across test files."""
from shared.schemas import Alert, CompletionResult, PerformanceMetric, Trade, User


def make_trade(**kwargs) -> Trade:
    defaults = dict(
        symbol="AAPL", type="buy", entry_price=150.0, quantity=10,
        entry_date="2024-01-01",
        created_at="2024-01-01T09:30:00+00:00",
        updated_at="2024-01-01T09:30:00+00:00",
    )
    defaults.update(kwargs)
    return Trade(**defaults)


def make_user(**kwargs) -> User:
    defaults = dict(
        email="trader@example.com", name="trader", trading_style="swing",
        risk_tolerance="medium", experience_level="intermediate",
    )
    defaults.update(kwargs)
    return User(**defaults)


def make_alert(**kwargs) -> Alert:
    defaults = dict(
        symbol="AAPL", type="price", condition="above", value=200.0,
        message="AAPL above 200",
    )
    defaults.update(kwargs)
    return Alert(**defaults)


def make_metric(**kwargs) -> PerformanceMetric:
    defaults = dict(date="2024-01-05", total_trades=2, winning_trades=1, losing_trades=1)
    defaults.update(kwargs)
    return PerformanceMetric(**defaults)


def ccr(content="", provider="openai", model="test-model"):
    """Build a completion result the way CompletionClient.chat() returns one.

    Short name (canned completion result) for compact test code.
    """
    return CompletionResult(content=content, provider=provider, model=model)
