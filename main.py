"""Stonks signal engine entrypoint -- wires config, feeds and the engine together.

Usage:
    python main.py signal AAPL MSFT
    python main.py risk AAPL
    python main.py sentiment AAPL
    python main.py portfolio AAPL=25 MSFT=10 --risk-tolerance medium
    python main.py --config /path/to/config.yaml signal AAPL
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Awaitable, Callable

from core.cache import CachedBarFeed, TTLCache
from core.config import AppConfig, load_config
from core.errors import SignalEngineError
from core.models.portfolio import Holding
from core.registry import PluginRegistry
from engine.pipeline import SignalService
from risk.portfolio import RISK_TOLERANCES, compute_portfolio

logger = logging.getLogger("stonks")


def setup_logging(level: str) -> None:
    """Configure logging for the application."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # Quiet down noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Stonks trading signal engine")
    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to config.yaml (default: ~/.stonks/config.yaml)",
    )
    parser.add_argument(
        "--env",
        type=str,
        default=None,
        help="Path to .env file (default: ~/.stonks/.env)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    signal = commands.add_parser("signal", help="Buy/hold/sell signal per symbol")
    signal.add_argument("symbols", nargs="+")

    risk = commands.add_parser("risk", help="Volatility, beta, Sharpe and drawdown per symbol")
    risk.add_argument("symbols", nargs="+")

    sentiment = commands.add_parser("sentiment", help="Headline sentiment per symbol")
    sentiment.add_argument("symbols", nargs="+")

    portfolio = commands.add_parser("portfolio", help="Portfolio risk and rebalancing")
    portfolio.add_argument(
        "holdings",
        nargs="+",
        help="SYMBOL=ALLOCATION pairs, e.g. AAPL=25 MSFT=10",
    )
    portfolio.add_argument(
        "--risk-tolerance",
        choices=RISK_TOLERANCES,
        default="medium",
    )

    return parser.parse_args(argv)


def parse_holding(text: str) -> Holding:
    """Parse 'AAPL=25' (or bare 'AAPL', allocation 0) into a Holding."""
    symbol, _, allocation = text.partition("=")
    return Holding(symbol=symbol, allocation=float(allocation) if allocation else 0.0)


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------

def load_plugins(config: AppConfig, registry: PluginRegistry) -> None:
    """Instantiate and register the feeds enabled in config."""
    plugin_logger = logging.getLogger("stonks.plugins")
    providers = config.market_data.providers

    # 1. Market data providers
    yahoo_config = providers.get("yahoo_finance")
    if yahoo_config is None or yahoo_config.enabled:
        from plugins.market_data.yahoo_finance import YahooFinanceProvider
        registry.register("market_data", YahooFinanceProvider())

    finnhub_config = providers.get("finnhub")
    if finnhub_config is not None and finnhub_config.enabled:
        if finnhub_config.api_key:
            from plugins.market_data.finnhub import FinnhubProvider
            registry.register("market_data", FinnhubProvider(api_key=finnhub_config.api_key))
        else:
            plugin_logger.warning("Finnhub enabled but no api_key configured; skipping")

    # 2. Sentiment providers
    if config.sentiment.provider == "headlines":
        from plugins.sentiment.headlines import HeadlineSentimentProvider
        registry.register(
            "sentiment",
            HeadlineSentimentProvider(max_headlines=config.sentiment.max_headlines),
        )
    elif config.sentiment.provider:
        plugin_logger.warning(
            "Unknown sentiment provider '%s'; sentiment stays neutral",
            config.sentiment.provider,
        )


def build_service(config: AppConfig, registry: PluginRegistry) -> SignalService:
    """Resolve the configured feeds and build the SignalService over them."""
    bar_feed = registry.bar_feed(config.market_data.provider)
    if config.cache.enabled:
        bar_feed = CachedBarFeed(bar_feed, TTLCache(default_ttl=config.cache.ttl_seconds))

    return SignalService(
        bar_feed,
        sentiment_feed=registry.sentiment_feed(config.sentiment.provider),
        config=config.engine,
    )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

async def _per_symbol(
    symbols: list[str],
    operation: Callable[[str], Awaitable[Any]],
    key: str,
) -> tuple[list[dict], bool]:
    """Run `operation` for every symbol; failures become inline error objects."""

    async def one(symbol: str) -> dict:
        try:
            value = await operation(symbol)
        except (SignalEngineError, ValueError) as exc:
            logger.warning("%s failed for %s: %s", key, symbol, exc)
            return {"symbol": symbol.upper(), "error": str(exc)}
        payload = value.model_dump(mode="json")
        if key == "signal":
            return payload
        return {"symbol": symbol.upper(), key: payload}

    results = await asyncio.gather(*(one(s) for s in symbols))
    failed = any("error" in r for r in results)
    return list(results), failed


async def run(args: argparse.Namespace, config: AppConfig) -> int:
    """Execute one CLI command. Returns the process exit status."""
    registry = PluginRegistry()
    try:
        load_plugins(config, registry)
        service = build_service(config, registry)

        if args.command == "signal":
            output, failed = await _per_symbol(args.symbols, service.generate_signal, "signal")
        elif args.command == "risk":
            output, failed = await _per_symbol(args.symbols, service.assess_risk, "risk")
        elif args.command == "sentiment":
            output, failed = await _per_symbol(args.symbols, service.get_sentiment, "sentiment")
        else:
            holdings = [parse_holding(h) for h in args.holdings]
            analysis = await compute_portfolio(service, holdings, args.risk_tolerance)
            output = analysis.model_dump(mode="json")
            failed = bool(analysis.failed)

        print(json.dumps(output, indent=2))
        return 1 if failed else 0
    finally:
        await registry.close_all()


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    try:
        config = load_config(config_path=args.config, env_path=args.env)
    except Exception as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        sys.exit(2)

    setup_logging("DEBUG" if args.verbose else config.logging.level)

    try:
        status = asyncio.run(run(args, config))
    except (KeyError, ValueError) as exc:
        logger.error("%s", exc)
        status = 1
    sys.exit(status)


if __name__ == "__main__":
    main()
