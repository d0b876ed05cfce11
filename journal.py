"""Main entry point: wires the journal together."""
import argparse
import asyncio
import logging
import signal
import sys

from dotenv import load_dotenv
from pydantic import ValidationError

load_dotenv()

from analytics.performance import daily_rollups
from coach.analyst import TradeCoach
from dashboard.main import create_app
from feeds.market_data import MarketDataClient
from shared.config import Config
from shared.errors import JournalError, ProviderError
from shared.llm_client import build_clients
from shared.logging import setup_logging
from storage.db import Database
from storage.snapshot import read_snapshot, write_snapshot

logger = logging.getLogger("trade-journal")


class JournalApp:
    """Owns the store and every collaborator built on it."""

    def __init__(self, config: Config):
        self.config = config
        self._shutdown = asyncio.Event()

        self.db = Database(config.DB_PATH)
        self.market = MarketDataClient(
            api_keys=config.market_api_keys,
            cache_ttl=config.MARKET_CACHE_TTL,
        )
        clients = build_clients(
            api_keys={p: config.ai_api_key_for(p) for p in ("openai", "groq", "gemini")},
            models={p: config.ai_model_for(p) for p in ("openai", "groq", "gemini", "ollama")},
            ollama_host=config.OLLAMA_HOST,
            max_tokens=config.AI_MAX_TOKENS,
            temperature=config.AI_TEMPERATURE,
        )
        self.coach = TradeCoach(clients, default_provider=config.AI_PROVIDER)
        self.api = create_app(self.db, market=self.market, coach=self.coach)

    async def refresh_watchlist(self) -> int:
        """Pull a fresh quote for every watched symbol. Returns how many updated."""
        updated = 0
        for item in await self.db.get_watchlist():
            try:
                quote = await self.market.get_real_time_price(item.symbol)
            except ProviderError as e:
                logger.warning(f"Quote refresh failed: {e}", extra={"symbol": item.symbol})
                continue
            # the symbol may have been removed while the quote was in flight
            if await self.db.update_watchlist_quote(
                item.symbol, quote.price, quote.change, quote.change_percent
            ):
                updated += 1
        return updated

    async def rollup_metrics(self) -> int:
        """Recompute per-day performance metrics from closed trades."""
        metrics = daily_rollups(await self.db.get_trades())
        for metric in metrics:
            await self.db.save_performance_metrics(metric)
        return len(metrics)

    async def start(self):
        """Initialize and run all components."""
        logger.info(
            "Starting trade journal",
            extra={"db_path": self.config.DB_PATH, "ai_provider": self.config.AI_PROVIDER},
        )
        await self.db.init()

        tasks = [
            asyncio.create_task(self._run_dashboard(), name="dashboard"),
            asyncio.create_task(
                self._every(self.config.WATCHLIST_REFRESH_SECONDS, self.refresh_watchlist),
                name="watchlist",
            ),
            asyncio.create_task(
                self._every(self.config.METRICS_ROLLUP_SECONDS, self.rollup_metrics),
                name="metrics",
            ),
        ]
        logger.info("All components started")

        await self._shutdown.wait()

        logger.info("Shutting down...")
        for t in tasks:
            t.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await self.db.close()
        logger.info("Shutdown complete")

    async def _every(self, seconds: int, job):
        while not self._shutdown.is_set():
            try:
                count = await job()
                logger.info("Periodic job done", extra={"job": job.__name__, "count": count})
            except JournalError as e:
                logger.error(f"{job.__name__} failed: {e}")
            await asyncio.sleep(seconds)

    async def _run_dashboard(self):
        """Run the FastAPI dashboard."""
        import uvicorn
        config = uvicorn.Config(
            self.api,
            host=self.config.DASHBOARD_HOST,
            port=self.config.DASHBOARD_PORT,
            log_level="warning",
        )
        server = uvicorn.Server(config)
        logger.info("Dashboard starting", extra={"port": self.config.DASHBOARD_PORT})
        await server.serve()

    def shutdown(self):
        self._shutdown.set()


async def export_to_file(config: Config, path: str):
    db = Database(config.DB_PATH)
    await db.init()
    try:
        write_snapshot(await db.export_data(), path)
    finally:
        await db.close()


async def import_from_file(config: Config, path: str):
    snapshot = read_snapshot(path)
    db = Database(config.DB_PATH)
    await db.init()
    try:
        await db.import_data(snapshot)
    finally:
        await db.close()


async def print_info(config: Config):
    db = Database(config.DB_PATH)
    await db.init()
    try:
        info = await db.get_database_info()
        print(info.model_dump_json(by_alias=True, indent=2))
    finally:
        await db.close()


def serve(config: Config):
    app = JournalApp(config)

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    def handle_signal(sig, frame):
        logger.info(f"Received signal {sig}")
        app.shutdown()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    try:
        loop.run_until_complete(app.start())
    except KeyboardInterrupt:
        app.shutdown()
        loop.run_until_complete(asyncio.sleep(1))
    finally:
        loop.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="trade-journal", description="Personal trading journal")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("serve", help="run the dashboard API and background refresh")
    export = sub.add_parser("export", help="write every table to a JSON snapshot")
    export.add_argument("path")
    imp = sub.add_parser("import", help="replace all data with a JSON snapshot")
    imp.add_argument("path")
    sub.add_parser("info", help="show table row counts")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    config = Config.from_env()
    setup_logging(config.LOG_LEVEL)

    try:
        if args.command == "serve":
            serve(config)
        elif args.command == "export":
            asyncio.run(export_to_file(config, args.path))
        elif args.command == "import":
            asyncio.run(import_from_file(config, args.path))
        elif args.command == "info":
            asyncio.run(print_info(config))
    except (JournalError, OSError, ValidationError) as e:
        logger.error(str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
