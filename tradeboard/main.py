import asyncio

from aiohttp import web

from tradeboard.config import settings
from tradeboard.server.app import create_app
from tradeboard.utils.logging_config import configure_logging, logger


async def main():
    # 1. Config & Logging
    configure_logging()
    logger.info("Starting trading dashboard", env=settings.ENV, host=settings.HOST, port=settings.PORT)

    # 2. HTTP server
    app = create_app(config=settings)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, settings.HOST, settings.PORT)

    try:
        await site.start()
        logger.info("Dashboard listening", url=f"http://{settings.HOST}:{settings.PORT}")
        await asyncio.Event().wait()
    finally:
        logger.info("Stopping...")
        await runner.cleanup()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
