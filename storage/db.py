"""SQLite database via aiosqlite."""
import aiosqlite
import asyncio
import json
import logging
import os
import sqlite3
import uuid
from contextlib import asynccontextmanager, nullcontext
from typing import Any, Optional

from pydantic import ValidationError

from shared.errors import ConstraintViolationError, StoreError, StoreNotInitializedError
from shared.schemas import (
    Alert,
    DatabaseInfo,
    PerformanceMetric,
    Snapshot,
    Trade,
    User,
    UserPreferences,
    WatchlistItem,
    utc_now_iso,
)
from storage.filters import TradeFilter, build_trade_query
from storage.models import (
    CREATE_INDEXES,
    CREATE_TABLES,
    SCHEMA_VERSION,
    TABLES,
    TRADE_COLUMNS,
)

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


def _enum_value(value) -> Optional[str]:
    if value is None:
        return None
    return getattr(value, "value", value)


def _encode_alert_value(value: float | str) -> str:
    return json.dumps(value)


def _decode_alert_value(text: str) -> float | str:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError):
        # rows written before values were JSON-encoded hold bare text
        return text


class Database:
    """Async SQLite store for the trade journal.

    Owns the only connection to the database file. Construct one per
    process, call ``init()`` before use and ``close()`` on shutdown.
    """

    def __init__(self, db_path: str = "data/journal.db"):
        self.db_path = db_path
        self._db: Optional[aiosqlite.Connection] = None
        self._initialized = False
        self._init_lock = asyncio.Lock()
        # one connection: writers must not interleave commits or rollbacks
        self._write_lock = asyncio.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def init(self):
        """Open the connection and create tables. Safe to call repeatedly."""
        if self._initialized:
            logger.debug("Database already initialized, skipping")
            return

        async with self._init_lock:
            if self._initialized:
                return
            try:
                directory = os.path.dirname(self.db_path)
                if directory:
                    os.makedirs(directory, exist_ok=True)
                self._db = await aiosqlite.connect(self.db_path)
                self._db.row_factory = aiosqlite.Row
                await self._create_schema()
            except (OSError, sqlite3.Error) as e:
                logger.error(
                    f"Database initialization failed: {e}",
                    extra={"path": self.db_path},
                )
                if self._db is not None:
                    await self._db.close()
                    self._db = None
                raise StoreError("initialize database", e) from e

            self._initialized = True
            logger.info("Database initialized", extra={"path": self.db_path})

    async def _create_schema(self):
        for statement in CREATE_TABLES:
            await self._db.execute(statement)
        for statement in CREATE_INDEXES:
            await self._db.execute(statement)
        await self._db.commit()

    async def close(self):
        if self._db:
            await self._db.close()
            logger.info("Database connection closed", extra={"path": self.db_path})
        self._db = None
        self._initialized = False

    def _conn(self, operation: str) -> aiosqlite.Connection:
        if not self._initialized or self._db is None:
            raise StoreNotInitializedError(operation)
        return self._db

    @asynccontextmanager
    async def _guard(self, operation: str, write: bool = False):
        """Translate engine errors into store errors.

        Writes hold the write lock for the whole block and roll back on failure.
        """
        async with self._write_lock if write else nullcontext():
            try:
                yield
            except StoreError:
                raise
            except sqlite3.IntegrityError as e:
                logger.error(f"Constraint violation in {operation}: {e}")
                if write and self._db is not None:
                    await self._db.rollback()
                raise ConstraintViolationError(operation, e) from e
            except sqlite3.Error as e:
                logger.error(f"Database error in {operation}: {e}")
                if write and self._db is not None:
                    await self._db.rollback()
                raise StoreError(operation, e) from e

    async def _fetch_all(self, query: str, params: tuple | list = ()) -> list[dict[str, Any]]:
        cursor = await self._db.execute(query, params)
        rows = await cursor.fetchall()
        await cursor.close()
        return [dict(row) for row in rows]

    async def _fetch_one(self, query: str, params: tuple | list = ()) -> Optional[dict[str, Any]]:
        cursor = await self._db.execute(query, params)
        row = await cursor.fetchone()
        await cursor.close()
        return dict(row) if row is not None else None

    # Users

    @staticmethod
    def _row_to_user(row: dict) -> User:
        prefs = row.get("preferences")
        row["preferences"] = (
            UserPreferences.model_validate_json(prefs) if prefs else UserPreferences()
        )
        return User.model_validate(row)

    async def _insert_user(self, user: User) -> User:
        user = user.model_copy(update={"id": user.id or _new_id()})
        await self._db.execute(
            """INSERT INTO users
               (id, email, name, password, trading_style, risk_tolerance,
                experience_level, preferences, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                user.id, user.email, user.name, user.password,
                user.trading_style, _enum_value(user.risk_tolerance),
                _enum_value(user.experience_level),
                user.preferences.model_dump_json(),
                user.created_at, user.updated_at,
            ),
        )
        return user

    async def create_user(self, user: User) -> User:
        self._conn("create user")
        async with self._guard("create user", write=True):
            stored = await self._insert_user(user)
            await self._db.commit()
        logger.info("User created", extra={"user_id": stored.id, "user_name": stored.name})
        return stored

    async def get_user(self, user_id: str) -> Optional[User]:
        self._conn("get user")
        async with self._guard("get user"):
            row = await self._fetch_one("SELECT * FROM users WHERE id = ?", (user_id,))
        return self._row_to_user(row) if row else None

    async def get_user_by_name(self, name: str) -> Optional[User]:
        self._conn("get user by name")
        async with self._guard("get user by name"):
            row = await self._fetch_one("SELECT * FROM users WHERE name = ?", (name,))
        return self._row_to_user(row) if row else None

    async def get_user_by_email(self, email: str) -> Optional[User]:
        self._conn("get user by email")
        async with self._guard("get user by email"):
            row = await self._fetch_one("SELECT * FROM users WHERE email = ?", (email,))
        return self._row_to_user(row) if row else None

    async def get_users(self) -> list[User]:
        self._conn("get users")
        async with self._guard("get users"):
            rows = await self._fetch_all("SELECT * FROM users ORDER BY created_at")
        return [self._row_to_user(r) for r in rows]

    async def update_user(self, user: User) -> User:
        self._conn("update user")
        if not user.id:
            raise ValueError("update_user requires a user id")
        async with self._guard("update user", write=True):
            await self._db.execute(
                """UPDATE users SET
                   email=?, name=?, password=?, trading_style=?, risk_tolerance=?,
                   experience_level=?, preferences=?, updated_at=?
                   WHERE id=?""",
                (
                    user.email, user.name, user.password, user.trading_style,
                    _enum_value(user.risk_tolerance),
                    _enum_value(user.experience_level),
                    user.preferences.model_dump_json(),
                    user.updated_at, user.id,
                ),
            )
            await self._db.commit()
        logger.info("User updated", extra={"user_id": user.id})
        return user

    async def delete_user(self, user_id: str):
        """Delete a user and every trade, watchlist item, alert and metric they own."""
        self._conn("delete user")
        async with self._guard("delete user", write=True):
            for table in TABLES[:-1]:
                await self._db.execute(f"DELETE FROM {table} WHERE user_id = ?", (user_id,))
            await self._db.execute("DELETE FROM users WHERE id = ?", (user_id,))
            await self._db.commit()
        logger.info("User and associated data deleted", extra={"user_id": user_id})

    # Trades

    @staticmethod
    def _row_to_trade(row: dict) -> Trade:
        tags = row.get("tags")
        row["tags"] = json.loads(tags) if tags else []
        return Trade.model_validate(row)

    @staticmethod
    def _trade_values(trade: Trade) -> dict[str, Any]:
        return {
            "id": trade.id,
            "user_id": trade.user_id,
            "symbol": trade.symbol,
            "type": _enum_value(trade.type),
            "entry_price": trade.entry_price,
            "exit_price": trade.exit_price,
            "quantity": trade.quantity,
            "entry_date": trade.entry_date,
            "exit_date": trade.exit_date,
            "profit": trade.profit,
            "notes": trade.notes,
            "tags": json.dumps(trade.tags),
            "confidence": trade.confidence,
            "mood": _enum_value(trade.mood),
            "stop_loss": trade.stop_loss,
            "take_profit": trade.take_profit,
            "screenshot": trade.screenshot,
            "strategy": trade.strategy,
            "market": trade.market,
            "session": trade.session,
            "created_at": trade.created_at,
            "updated_at": trade.updated_at,
        }

    async def _insert_trade(self, trade: Trade) -> Trade:
        trade = trade.model_copy(update={"id": trade.id or _new_id()})
        values = self._trade_values(trade)
        placeholders = ", ".join("?" for _ in TRADE_COLUMNS)
        await self._db.execute(
            f"INSERT INTO trades ({', '.join(TRADE_COLUMNS)}) VALUES ({placeholders})",
            [values[c] for c in TRADE_COLUMNS],
        )
        return trade

    async def create_trade(self, trade: Trade) -> Trade:
        self._conn("create trade")
        async with self._guard("create trade", write=True):
            stored = await self._insert_trade(trade)
            await self._db.commit()
        logger.info(
            "Trade created",
            extra={"trade_id": stored.id, "symbol": stored.symbol, "side": _enum_value(stored.type)},
        )
        return stored

    async def get_trade(self, trade_id: str) -> Optional[Trade]:
        self._conn("get trade")
        async with self._guard("get trade"):
            row = await self._fetch_one("SELECT * FROM trades WHERE id = ?", (trade_id,))
        return self._row_to_trade(row) if row else None

    async def get_trades(self, *filters: TradeFilter) -> list[Trade]:
        """List trades, newest entry first, narrowed by any filters given."""
        self._conn("get trades")
        query, params = build_trade_query(filters)
        async with self._guard("get trades"):
            rows = await self._fetch_all(query, params)
        return [self._row_to_trade(r) for r in rows]

    async def update_trade(self, trade: Trade) -> Trade:
        """Overwrite every mutable column of an existing trade (last write wins)."""
        self._conn("update trade")
        if not trade.id:
            raise ValueError("update_trade requires a trade id")
        values = self._trade_values(trade)
        mutable = [c for c in TRADE_COLUMNS if c not in ("id", "created_at")]
        async with self._guard("update trade", write=True):
            await self._db.execute(
                f"UPDATE trades SET {', '.join(f'{c}=?' for c in mutable)} WHERE id=?",
                [values[c] for c in mutable] + [trade.id],
            )
            await self._db.commit()
        logger.info("Trade updated", extra={"trade_id": trade.id})
        return trade

    async def delete_trade(self, trade_id: str):
        self._conn("delete trade")
        async with self._guard("delete trade", write=True):
            await self._db.execute("DELETE FROM trades WHERE id = ?", (trade_id,))
            await self._db.commit()
        logger.info("Trade deleted", extra={"trade_id": trade_id})

    # Watchlist

    async def _upsert_watchlist_item(self, item: WatchlistItem):
        await self._db.execute(
            """INSERT INTO watchlist
               (id, user_id, symbol, name, current_price, change, change_percent, added_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(symbol) DO UPDATE SET
                 user_id=COALESCE(excluded.user_id, watchlist.user_id),
                 name=COALESCE(excluded.name, watchlist.name),
                 current_price=excluded.current_price,
                 change=excluded.change,
                 change_percent=excluded.change_percent""",
            (
                item.id or _new_id(), item.user_id, item.symbol, item.name,
                item.current_price, item.change, item.change_percent, item.added_at,
            ),
        )

    async def add_to_watchlist(self, item: WatchlistItem) -> WatchlistItem:
        """Insert a symbol, or refresh its quote if it is already tracked."""
        self._conn("add to watchlist")
        async with self._guard("add to watchlist", write=True):
            await self._upsert_watchlist_item(item)
            await self._db.commit()
            row = await self._fetch_one("SELECT * FROM watchlist WHERE symbol = ?", (item.symbol,))
            if row is None:
                raise StoreError("add to watchlist", f"no row for {item.symbol} after write")
        logger.info("Watchlist item saved", extra={"symbol": item.symbol})
        return WatchlistItem.model_validate(row)

    async def update_watchlist_quote(
        self,
        symbol: str,
        current_price: Optional[float],
        change: Optional[float],
        change_percent: Optional[float],
    ) -> bool:
        """Refresh quote fields of a tracked symbol. Never inserts.

        Returns False when the symbol is no longer on the watchlist.
        """
        self._conn("update watchlist quote")
        async with self._guard("update watchlist quote", write=True):
            cursor = await self._db.execute(
                """UPDATE watchlist SET current_price=?, change=?, change_percent=?
                   WHERE symbol=?""",
                (current_price, change, change_percent, symbol),
            )
            updated = cursor.rowcount > 0
            await cursor.close()
            await self._db.commit()
        logger.debug("Watchlist quote refreshed", extra={"symbol": symbol, "updated": updated})
        return updated

    async def get_watchlist(self) -> list[WatchlistItem]:
        self._conn("get watchlist")
        async with self._guard("get watchlist"):
            rows = await self._fetch_all("SELECT * FROM watchlist ORDER BY added_at DESC")
        return [WatchlistItem.model_validate(r) for r in rows]

    async def remove_from_watchlist(self, symbol: str):
        self._conn("remove from watchlist")
        async with self._guard("remove from watchlist", write=True):
            await self._db.execute("DELETE FROM watchlist WHERE symbol = ?", (symbol,))
            await self._db.commit()
        logger.info("Watchlist item removed", extra={"symbol": symbol})

    # Alerts

    @staticmethod
    def _row_to_alert(row: dict) -> Alert:
        row["value"] = _decode_alert_value(row["value"])
        row["is_active"] = bool(row["is_active"])
        return Alert.model_validate(row)

    async def _insert_alert(self, alert: Alert) -> Alert:
        alert = alert.model_copy(update={"id": alert.id or _new_id()})
        await self._db.execute(
            """INSERT INTO alerts
               (id, user_id, symbol, type, condition, value, message, is_active, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                alert.id, alert.user_id, alert.symbol, _enum_value(alert.type),
                _enum_value(alert.condition), _encode_alert_value(alert.value),
                alert.message, 1 if alert.is_active else 0, alert.created_at,
            ),
        )
        return alert

    async def create_alert(self, alert: Alert) -> Alert:
        self._conn("create alert")
        async with self._guard("create alert", write=True):
            stored = await self._insert_alert(alert)
            await self._db.commit()
        logger.info(
            "Alert created",
            extra={"alert_id": stored.id, "symbol": stored.symbol, "alert_type": _enum_value(stored.type)},
        )
        return stored

    async def get_alert(self, alert_id: str) -> Optional[Alert]:
        self._conn("get alert")
        async with self._guard("get alert"):
            row = await self._fetch_one("SELECT * FROM alerts WHERE id = ?", (alert_id,))
        return self._row_to_alert(row) if row else None

    async def get_alerts(self, active_only: bool = False) -> list[Alert]:
        self._conn("get alerts")
        query = "SELECT * FROM alerts"
        if active_only:
            query += " WHERE is_active = 1"
        query += " ORDER BY created_at DESC"
        async with self._guard("get alerts"):
            rows = await self._fetch_all(query)
        return [self._row_to_alert(r) for r in rows]

    async def update_alert(self, alert: Alert) -> Alert:
        self._conn("update alert")
        if not alert.id:
            raise ValueError("update_alert requires an alert id")
        async with self._guard("update alert", write=True):
            await self._db.execute(
                """UPDATE alerts SET
                   user_id=?, symbol=?, type=?, condition=?, value=?, message=?, is_active=?
                   WHERE id=?""",
                (
                    alert.user_id, alert.symbol, _enum_value(alert.type),
                    _enum_value(alert.condition), _encode_alert_value(alert.value),
                    alert.message, 1 if alert.is_active else 0, alert.id,
                ),
            )
            await self._db.commit()
        logger.info("Alert updated", extra={"alert_id": alert.id, "active": alert.is_active})
        return alert

    async def delete_alert(self, alert_id: str):
        self._conn("delete alert")
        async with self._guard("delete alert", write=True):
            await self._db.execute("DELETE FROM alerts WHERE id = ?", (alert_id,))
            await self._db.commit()
        logger.info("Alert deleted", extra={"alert_id": alert_id})

    # Performance metrics

    async def _upsert_metric(self, metric: PerformanceMetric):
        await self._db.execute(
            """INSERT INTO performance_metrics
               (id, user_id, date, total_trades, winning_trades, losing_trades,
                total_profit, total_loss, win_rate, profit_factor, average_win,
                average_loss, max_drawdown, sharpe_ratio, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(date) DO UPDATE SET
                 user_id=excluded.user_id,
                 total_trades=excluded.total_trades,
                 winning_trades=excluded.winning_trades,
                 losing_trades=excluded.losing_trades,
                 total_profit=excluded.total_profit,
                 total_loss=excluded.total_loss,
                 win_rate=excluded.win_rate,
                 profit_factor=excluded.profit_factor,
                 average_win=excluded.average_win,
                 average_loss=excluded.average_loss,
                 max_drawdown=excluded.max_drawdown,
                 sharpe_ratio=excluded.sharpe_ratio""",
            (
                metric.id or _new_id(), metric.user_id, metric.date,
                metric.total_trades, metric.winning_trades, metric.losing_trades,
                metric.total_profit, metric.total_loss, metric.win_rate,
                metric.profit_factor, metric.average_win, metric.average_loss,
                metric.max_drawdown, metric.sharpe_ratio, metric.created_at,
            ),
        )

    async def save_performance_metrics(self, metric: PerformanceMetric) -> PerformanceMetric:
        """Store a rollup, replacing any existing one for the same date."""
        self._conn("save performance metrics")
        async with self._guard("save performance metrics", write=True):
            await self._upsert_metric(metric)
            await self._db.commit()
            row = await self._fetch_one(
                "SELECT * FROM performance_metrics WHERE date = ?", (metric.date,)
            )
            if row is None:
                raise StoreError("save performance metrics", f"no row for {metric.date} after write")
        logger.info("Performance metrics saved", extra={"date": metric.date})
        return PerformanceMetric.model_validate(row)

    async def get_performance_metrics(
        self, start_date: Optional[str] = None, end_date: Optional[str] = None
    ) -> list[PerformanceMetric]:
        self._conn("get performance metrics")
        query = "SELECT * FROM performance_metrics WHERE 1=1"
        params: list = []
        if start_date:
            query += " AND date >= ?"
            params.append(start_date)
        if end_date:
            query += " AND date <= ?"
            params.append(end_date)
        query += " ORDER BY date DESC"
        async with self._guard("get performance metrics"):
            rows = await self._fetch_all(query, params)
        return [PerformanceMetric.model_validate(r) for r in rows]

    # Export / import

    async def export_data(self) -> Snapshot:
        """Read every table into a single snapshot."""
        self._conn("export data")
        snapshot = Snapshot(
            version=SCHEMA_VERSION,
            export_date=utc_now_iso(),
            users=await self.get_users(),
            trades=await self.get_trades(),
            watchlist=await self.get_watchlist(),
            alerts=await self.get_alerts(),
            performance_metrics=await self.get_performance_metrics(),
        )
        logger.info(
            "Data export completed",
            extra={
                "users": len(snapshot.users),
                "trades": len(snapshot.trades),
                "watchlist": len(snapshot.watchlist),
                "alerts": len(snapshot.alerts),
                "performance_metrics": len(snapshot.performance_metrics),
            },
        )
        return snapshot

    async def import_data(self, snapshot: Snapshot | dict):
        """Replace all data with the snapshot contents.

        Runs as one transaction under the write lock, so no other write can
        commit part of it; on any failure the store is rolled back to its
        state before the call.
        """
        db = self._conn("import data")
        if not isinstance(snapshot, Snapshot):
            try:
                snapshot = Snapshot.model_validate(snapshot)
            except ValidationError as e:
                logger.error(f"Invalid snapshot: {e}")
                raise StoreError("import data", e) from e

        async with self._write_lock:
            try:
                for table in TABLES:
                    await db.execute(f"DELETE FROM {table}")
                for user in snapshot.users:
                    await self._insert_user(user)
                for trade in snapshot.trades:
                    await self._insert_trade(trade)
                for item in snapshot.watchlist:
                    await self._upsert_watchlist_item(item)
                for alert in snapshot.alerts:
                    await self._insert_alert(alert)
                for metric in snapshot.performance_metrics:
                    await self._upsert_metric(metric)
                await db.commit()
            except Exception as e:
                await db.rollback()
                logger.error(f"Data import failed, rolled back: {e}")
                if isinstance(e, sqlite3.IntegrityError):
                    raise ConstraintViolationError("import data", e) from e
                raise StoreError("import data", e) from e

        logger.info(
            "Data import completed",
            extra={"version": snapshot.version, "trades": len(snapshot.trades)},
        )

    async def get_database_info(self) -> DatabaseInfo:
        self._conn("get database info")
        counts = {}
        async with self._guard("get database info"):
            for table in TABLES:
                row = await self._fetch_one(f"SELECT COUNT(*) AS n FROM {table}")
                counts[table] = row["n"]
        return DatabaseInfo(
            path=self.db_path,
            initialized=self._initialized,
            user_count=counts["users"],
            trade_count=counts["trades"],
            watchlist_count=counts["watchlist"],
            alert_count=counts["alerts"],
            performance_metric_count=counts["performance_metrics"],
        )
