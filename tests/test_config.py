"""Tests for shared.config."""
from shared.config import Config


def test_config_defaults():
    cfg = Config()
    assert cfg.DB_PATH == "data/journal.db"
    assert cfg.DASHBOARD_PORT == 8080
    assert cfg.MARKET_CACHE_TTL == 30.0
    assert cfg.AI_PROVIDER == "openai"
    assert cfg.AI_MAX_TOKENS == 2000


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("DB_PATH", "/tmp/other.db")
    monkeypatch.setenv("DASHBOARD_PORT", "9000")
    monkeypatch.setenv("MARKET_CACHE_TTL", "5")
    monkeypatch.setenv("AI_PROVIDER", "groq")
    monkeypatch.setenv("GROQ_API_KEY", "gk")
    cfg = Config.from_env()
    assert cfg.DB_PATH == "/tmp/other.db"
    assert cfg.DASHBOARD_PORT == 9000
    assert cfg.MARKET_CACHE_TTL == 5.0
    assert cfg.AI_PROVIDER == "groq"
    assert cfg.ai_api_key_for("groq") == "gk"


def test_market_api_keys():
    cfg = Config(POLYGON_API_KEY="pk", FINNHUB_API_KEY="fk")
    keys = cfg.market_api_keys
    assert keys["polygon"] == "pk"
    assert keys["finnhub"] == "fk"
    assert keys["alphaVantage"] == ""


def test_ai_model_for():
    cfg = Config(OLLAMA_MODEL="mistral")
    assert cfg.ai_model_for("ollama") == "mistral"
    assert cfg.ai_model_for("gemini") == "gemini-pro"
    assert cfg.ai_api_key_for("ollama") == ""
