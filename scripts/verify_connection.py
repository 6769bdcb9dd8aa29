import asyncio
import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import aiohttp

from tradeboard.config import settings
from tradeboard.exchange.errors import ExchangeError
from tradeboard.exchange.service import create_service
from tradeboard.state.store import MockStore
from tradeboard.utils.logging_config import configure_logging, logger

configure_logging()


def check_config() -> bool:
    logger.info("--- Checking configuration ---")
    if not settings.BINANCE_API_KEY or not settings.BINANCE_API_SECRET:
        logger.warning("⚠️ BINANCE_API_KEY / BINANCE_API_SECRET missing, the dashboard will serve demo data")
        return False
    network = "testnet" if settings.BINANCE_TESTNET else "mainnet"
    logger.info("✅ Binance credentials configured", network=network,
                base_url=settings.BINANCE_FUTURES_BASE_URL or "default")
    return True


async def check_exchange(session: aiohttp.ClientSession):
    logger.info("--- Checking Binance Futures ---")
    store = MockStore()
    # Stored demo settings default to testnet; follow the environment here
    store.update_settings({"isTestnet": bool(settings.BINANCE_TESTNET)})
    service = create_service(settings, store, session)
    if service is None:
        logger.error("❌ Could not resolve credentials")
        return

    result = await service.test_connection()
    if not result["success"]:
        logger.error("❌ Connection failed", error=result.get("error"), latency_ms=result["latencyMs"])
        return
    logger.info("✅ Connected", latency_ms=result["latencyMs"])

    try:
        account = await service.get_account_state()
    except ExchangeError as e:
        logger.error(f"❌ Account fetch failed: {e}")
        return
    logger.info(
        "✅ Account readable",
        total_balance=account.total_balance,
        available_balance=account.available_balance,
        open_positions=len(account.positions),
    )


async def main():
    logger.info("🚀 STARTING CONNECTION CHECK")
    if check_config():
        timeout = aiohttp.ClientTimeout(total=settings.UPSTREAM_TIMEOUT_SECONDS)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            await check_exchange(session)
    logger.info("🏁 CONNECTION CHECK COMPLETE")

if __name__ == "__main__":
    if sys.platform == 'win32':
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    asyncio.run(main())
