"""SQLite table definitions."""

SCHEMA_VERSION = "1.0"

CREATE_USERS_TABLE = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    email TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL,
    password TEXT,
    trading_style TEXT,
    risk_tolerance TEXT,
    experience_level TEXT,
    preferences TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""

CREATE_TRADES_TABLE = """
CREATE TABLE IF NOT EXISTS trades (
    id TEXT PRIMARY KEY,
    user_id TEXT,
    symbol TEXT NOT NULL,
    type TEXT NOT NULL,
    entry_price REAL NOT NULL,
    exit_price REAL,
    quantity REAL NOT NULL,
    entry_date TEXT NOT NULL,
    exit_date TEXT,
    profit REAL,
    notes TEXT,
    tags TEXT,
    confidence INTEGER,
    mood TEXT,
    stop_loss REAL,
    take_profit REAL,
    screenshot TEXT,
    strategy TEXT,
    market TEXT,
    session TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""

CREATE_WATCHLIST_TABLE = """
CREATE TABLE IF NOT EXISTS watchlist (
    id TEXT PRIMARY KEY,
    user_id TEXT,
    symbol TEXT NOT NULL UNIQUE,
    name TEXT,
    current_price REAL,
    change REAL,
    change_percent REAL,
    added_at TEXT NOT NULL
);
"""

CREATE_ALERTS_TABLE = """
CREATE TABLE IF NOT EXISTS alerts (
    id TEXT PRIMARY KEY,
    user_id TEXT,
    symbol TEXT NOT NULL,
    type TEXT NOT NULL,
    condition TEXT NOT NULL,
    value TEXT NOT NULL,
    message TEXT NOT NULL,
    is_active INTEGER NOT NULL,
    created_at TEXT NOT NULL
);
"""

CREATE_PERFORMANCE_METRICS_TABLE = """
CREATE TABLE IF NOT EXISTS performance_metrics (
    id TEXT PRIMARY KEY,
    user_id TEXT,
    date TEXT NOT NULL UNIQUE,
    total_trades INTEGER DEFAULT 0,
    winning_trades INTEGER DEFAULT 0,
    losing_trades INTEGER DEFAULT 0,
    total_profit REAL DEFAULT 0,
    total_loss REAL DEFAULT 0,
    win_rate REAL DEFAULT 0,
    profit_factor REAL DEFAULT 0,
    average_win REAL DEFAULT 0,
    average_loss REAL DEFAULT 0,
    max_drawdown REAL DEFAULT 0,
    sharpe_ratio REAL DEFAULT 0,
    created_at TEXT NOT NULL
);
"""

CREATE_TABLES = [
    CREATE_USERS_TABLE,
    CREATE_TRADES_TABLE,
    CREATE_WATCHLIST_TABLE,
    CREATE_ALERTS_TABLE,
    CREATE_PERFORMANCE_METRICS_TABLE,
]

CREATE_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_trades_symbol ON trades(symbol)",
    "CREATE INDEX IF NOT EXISTS idx_trades_date ON trades(entry_date)",
    "CREATE INDEX IF NOT EXISTS idx_trades_type ON trades(type)",
    "CREATE INDEX IF NOT EXISTS idx_watchlist_symbol ON watchlist(symbol)",
    "CREATE INDEX IF NOT EXISTS idx_alerts_active ON alerts(is_active)",
]

# Child tables in delete order; users go last.
TABLES = ["trades", "watchlist", "alerts", "performance_metrics", "users"]

TRADE_COLUMNS = [
    "id", "user_id", "symbol", "type", "entry_price", "exit_price", "quantity",
    "entry_date", "exit_date", "profit", "notes", "tags", "confidence", "mood",
    "stop_loss", "take_profit", "screenshot", "strategy", "market", "session",
    "created_at", "updated_at",
]
