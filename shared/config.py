"""Configuration management for the trade journal."""
import os
from pydantic import BaseModel


class Config(BaseModel):
    """Application configuration loaded from environment variables."""
    DB_PATH: str = "data/journal.db"
    LOG_LEVEL: str = "INFO"
    DASHBOARD_HOST: str = "127.0.0.1"
    DASHBOARD_PORT: int = 8080
    MARKET_CACHE_TTL: float = 30.0
    WATCHLIST_REFRESH_SECONDS: int = 60
    METRICS_ROLLUP_SECONDS: int = 3600
    ALPHA_VANTAGE_API_KEY: str = ""
    POLYGON_API_KEY: str = ""
    COINGECKO_API_KEY: str = ""
    YFINANCE_API_KEY: str = ""
    NEWS_API_KEY: str = ""
    FINNHUB_API_KEY: str = ""
    AI_PROVIDER: str = "openai"
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4"
    GROQ_API_KEY: str = ""
    GROQ_MODEL: str = "llama3-8b-8192"
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-pro"
    OLLAMA_HOST: str = "http://localhost:11434"
    OLLAMA_MODEL: str = "llama3"
    AI_MAX_TOKENS: int = 2000
    AI_TEMPERATURE: float = 0.7

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        return cls(
            DB_PATH=os.getenv("DB_PATH", "data/journal.db"),
            LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
            DASHBOARD_HOST=os.getenv("DASHBOARD_HOST", "127.0.0.1"),
            DASHBOARD_PORT=int(os.getenv("DASHBOARD_PORT", "8080")),
            MARKET_CACHE_TTL=float(os.getenv("MARKET_CACHE_TTL", "30")),
            WATCHLIST_REFRESH_SECONDS=int(os.getenv("WATCHLIST_REFRESH_SECONDS", "60")),
            METRICS_ROLLUP_SECONDS=int(os.getenv("METRICS_ROLLUP_SECONDS", "3600")),
            ALPHA_VANTAGE_API_KEY=os.getenv("ALPHA_VANTAGE_API_KEY", ""),
            POLYGON_API_KEY=os.getenv("POLYGON_API_KEY", ""),
            COINGECKO_API_KEY=os.getenv("COINGECKO_API_KEY", ""),
            YFINANCE_API_KEY=os.getenv("YFINANCE_API_KEY", ""),
            NEWS_API_KEY=os.getenv("NEWS_API_KEY", ""),
            FINNHUB_API_KEY=os.getenv("FINNHUB_API_KEY", ""),
            AI_PROVIDER=os.getenv("AI_PROVIDER", "openai"),
            OPENAI_API_KEY=os.getenv("OPENAI_API_KEY", ""),
            OPENAI_MODEL=os.getenv("OPENAI_MODEL", "gpt-4"),
            GROQ_API_KEY=os.getenv("GROQ_API_KEY", ""),
            GROQ_MODEL=os.getenv("GROQ_MODEL", "llama3-8b-8192"),
            GEMINI_API_KEY=os.getenv("GEMINI_API_KEY", ""),
            GEMINI_MODEL=os.getenv("GEMINI_MODEL", "gemini-pro"),
            OLLAMA_HOST=os.getenv("OLLAMA_HOST", "http://localhost:11434"),
            OLLAMA_MODEL=os.getenv("OLLAMA_MODEL", "llama3"),
            AI_MAX_TOKENS=int(os.getenv("AI_MAX_TOKENS", "2000")),
            AI_TEMPERATURE=float(os.getenv("AI_TEMPERATURE", "0.7")),
        )

    @property
    def market_api_keys(self) -> dict[str, str]:
        return {
            "alphaVantage": self.ALPHA_VANTAGE_API_KEY,
            "polygon": self.POLYGON_API_KEY,
            "coingecko": self.COINGECKO_API_KEY,
            "yfinance": self.YFINANCE_API_KEY,
            "news": self.NEWS_API_KEY,
            "finnhub": self.FINNHUB_API_KEY,
        }

    def ai_api_key_for(self, provider: str) -> str:
        return {
            "openai": self.OPENAI_API_KEY,
            "groq": self.GROQ_API_KEY,
            "gemini": self.GEMINI_API_KEY,
        }.get(provider, "")

    def ai_model_for(self, provider: str) -> str:
        return {
            "openai": self.OPENAI_MODEL,
            "groq": self.GROQ_MODEL,
            "gemini": self.GEMINI_MODEL,
            "ollama": self.OLLAMA_MODEL,
        }.get(provider, self.OPENAI_MODEL)
