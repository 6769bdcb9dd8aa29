"""
HTTP surface of the dashboard.

Each handler asks for a per-request ``FuturesService``. When credentials resolve
and Binance answers, that data is returned; otherwise the handler falls back to
the in-memory demo store. The fallback decision is made here, per endpoint.
"""
from pathlib import Path
from typing import Any, Optional

import aiohttp
import structlog
from aiohttp import web
from pydantic import ValidationError

from tradeboard.config import Settings, settings as default_settings
from tradeboard.exchange.errors import ExchangeError
from tradeboard.exchange.service import FuturesService, create_service
from tradeboard.server.secrets import sanitize_incoming_settings, sanitize_settings_response
from tradeboard.state.store import MockStore
from tradeboard.stats import build_breakdown
from tradeboard.symbols import pair_to_symbol
from tradeboard.utils.logging_config import logger

STORE = web.AppKey("store", MockStore)
CONFIG = web.AppKey("config", Settings)
HTTP_SESSION = web.AppKey("http_session", aiohttp.ClientSession)

RECENT_LOGS = 8
REPORT_TYPES = ("weekly", "monthly")

routes = web.RouteTableDef()


def _json(data: Any, status: int = 200) -> web.Response:
    if isinstance(data, list):
        data = [item.to_json() if hasattr(item, "to_json") else item for item in data]
    elif hasattr(data, "to_json"):
        data = data.to_json()
    return web.json_response(data, status=status)


def _error(code: str, message: str, status: int) -> web.Response:
    return web.json_response({"error": code, "message": message}, status=status)


def _service(request: web.Request) -> Optional[FuturesService]:
    app = request.app
    return create_service(app[CONFIG], app[STORE], app[HTTP_SESSION])


@web.middleware
async def error_middleware(request: web.Request, handler):
    structlog.contextvars.bind_contextvars(method=request.method, path=request.path)
    try:
        response = await handler(request)
        logger.debug("Request served", status=response.status)
        return response
    except web.HTTPException:
        raise
    except Exception:
        logger.exception("Unhandled error while serving request")
        return _error("internal_error", "Unexpected server error", 500)
    finally:
        structlog.contextvars.unbind_contextvars("method", "path")


# --- Settings & control ---
@routes.get("/api/settings")
async def get_settings(request: web.Request) -> web.Response:
    data = request.app[STORE].get_settings().to_json()
    return _json(sanitize_settings_response(data, request.app[CONFIG]))


@routes.put("/api/settings")
async def put_settings(request: web.Request) -> web.Response:
    try:
        body = await request.json()
    except ValueError:
        return _error("invalid_payload", "Request body must be a JSON object", 400)
    if not isinstance(body, dict):
        return _error("invalid_payload", "Request body must be a JSON object", 400)

    changes = sanitize_incoming_settings(body, request.app[CONFIG])
    try:
        updated = request.app[STORE].update_settings(changes)
    except ValidationError as e:
        logger.info("Rejected settings update", errors=e.error_count())
        return _error("invalid_payload", "One or more settings have an invalid value", 400)
    return _json(sanitize_settings_response(updated.to_json(), request.app[CONFIG]))


@routes.post("/api/test-connection")
async def test_connection(request: web.Request) -> web.Response:
    store = request.app[STORE]
    service = _service(request)
    if service is None:
        return _json({
            "success": False,
            "error": "no_credentials",
            "message": "Add your Binance API keys on the settings page.",
        }, status=400)

    result = await service.test_connection()
    if not result["success"]:
        store.record_log("error", "Binance connection test failed", result.get("error"))
        return _json({
            "success": False,
            "error": "connection_failed",
            "message": result.get("error") or "Could not reach Binance",
        }, status=502)

    store.record_log("success", "Binance connection verified", f"Latency {result['latencyMs']}ms")
    return _json({"success": True, "latencyMs": result["latencyMs"]})


@routes.get("/api/auto-trading/status")
async def auto_trading_status(request: web.Request) -> web.Response:
    return _json(request.app[STORE].get_auto_trading_status())


@routes.post("/api/auto-trading/start")
async def auto_trading_start(request: web.Request) -> web.Response:
    request.app[STORE].start_auto_trading()
    return _json({"success": True})


@routes.post("/api/auto-trading/stop")
async def auto_trading_stop(request: web.Request) -> web.Response:
    request.app[STORE].stop_auto_trading()
    return _json({"success": True})


@routes.post("/api/bot/toggle")
async def toggle_bot(request: web.Request) -> web.Response:
    is_active = request.app[STORE].toggle_bot_active()
    return _json({"success": True, "isActive": is_active})


# --- Statistics ---
@routes.get("/api/stats/summary")
async def summary_stats(request: web.Request) -> web.Response:
    service = _service(request)
    if service:
        try:
            return _json(await service.get_summary_stats())
        except ExchangeError as e:
            logger.warning("Binance summary stats failed, serving demo data", error=str(e))
    return _json(request.app[STORE].get_summary_stats())


@routes.get("/api/stats")
async def detailed_stats(request: web.Request) -> web.Response:
    service = _service(request)
    if service:
        try:
            return _json(await service.get_detailed_stats())
        except ExchangeError as e:
            logger.warning("Binance detailed stats failed, serving demo data", error=str(e))
    return _json(request.app[STORE].get_detailed_stats())


@routes.get("/api/stats/breakdown")
async def stats_breakdown(request: web.Request) -> web.Response:
    service = _service(request)
    if service:
        try:
            return _json(build_breakdown(await service.get_trades_history()))
        except ExchangeError as e:
            logger.warning("Binance history for breakdown failed, serving demo data", error=str(e))
    return _json(build_breakdown(request.app[STORE].get_trades_history()))


# --- Activity feed ---
@routes.get("/api/logs")
async def get_logs(request: web.Request) -> web.Response:
    return _json(request.app[STORE].get_logs())


@routes.get("/api/logs/recent")
async def get_recent_logs(request: web.Request) -> web.Response:
    return _json(request.app[STORE].get_logs(RECENT_LOGS))


# --- Trades ---
@routes.get("/api/trades/active")
async def active_trades(request: web.Request) -> web.Response:
    service = _service(request)
    if service:
        try:
            return _json(await service.get_active_trades())
        except ExchangeError as e:
            logger.warning("Binance active trades failed, serving demo data", error=str(e))
    return _json(request.app[STORE].get_active_trades())


@routes.get("/api/trades/history")
async def trades_history(request: web.Request) -> web.Response:
    limit = None
    if "limit" in request.query:
        try:
            limit = int(request.query["limit"])
        except ValueError:
            limit = 0
        if limit <= 0:
            return _error("invalid_limit", "limit must be a positive integer", 400)

    service = _service(request)
    if service:
        try:
            if limit is None:
                return _json(await service.get_trades_history())
            return _json(await service.get_trades_history(limit))
        except ExchangeError as e:
            logger.warning("Binance trade history failed, serving demo data", error=str(e))

    history = request.app[STORE].get_trades_history()
    return _json(history[:limit] if limit else history)


@routes.post("/api/trades/close-all")
async def close_all_trades(request: web.Request) -> web.Response:
    store = request.app[STORE]
    service = _service(request)
    if service:
        try:
            results = await service.close_all_positions()
        except ExchangeError as e:
            store.record_log("error", "Failed to close positions", str(e))
            return _error("failed_to_close_position", str(e), 502)
        payload = [result.to_json() for result in results]
        if any(not result.success for result in results):
            return _json({"success": False, "results": payload}, status=502)
        return _json({"success": True, "results": payload})

    trades = store.close_all_trades()
    return _json({"success": True, "trades": [trade.to_json() for trade in trades]})


@routes.post("/api/trades/{trade_id}/close")
async def close_trade(request: web.Request) -> web.Response:
    trade_id = request.match_info["trade_id"]
    store = request.app[STORE]
    service = _service(request)
    if service:
        try:
            result = await service.close_position_by_trade_id(trade_id)
        except ExchangeError as e:
            store.record_log("error", f"Failed to close position {trade_id}", str(e))
            return _error("failed_to_close_position", str(e), 502)
        if result.error == "POSITION_NOT_FOUND":
            return _error("position_not_found", "No open position matches this trade", 404)
        if not result.success:
            return _error("failed_to_close_position", result.error or "Could not close the position", 502)
        return _json({"success": True, "order": result.order})

    trade = store.close_trade(trade_id)
    if trade is None:
        return _error("trade_not_found", "Trade not found", 404)
    return _json({"success": True, "trade": trade.to_json()})


# --- Account & market ---
@routes.get("/api/account")
async def account(request: web.Request) -> web.Response:
    store = request.app[STORE]
    service = _service(request)
    if service:
        try:
            return _json(await service.get_account_state())
        except ExchangeError as e:
            logger.warning("Binance account failed, serving demo data", error=str(e))
            fallback = store.get_account_state().model_copy(update={
                "connected": False,
                "error": "connection_failed",
                "message": str(e),
            })
            return _json(fallback)

    fallback = store.get_account_state().model_copy(update={
        "connected": False,
        "error": "no_credentials",
        "message": "Binance keys are not configured. Showing demo data.",
    })
    return _json(fallback)


@routes.get("/api/market/{symbol}")
async def market(request: web.Request) -> web.Response:
    symbol = request.match_info["symbol"]
    normalized = pair_to_symbol(symbol)
    service = _service(request)
    if service and normalized:
        try:
            return _json(await service.get_market_snapshot(normalized))
        except ExchangeError as e:
            logger.warning("Binance market data failed, serving demo data", symbol=normalized, error=str(e))

    snapshot = request.app[STORE].get_market_snapshot(normalized or symbol)
    if snapshot is None:
        return _error("unsupported_symbol", "Symbol not supported", 404)
    return _json(snapshot)


@routes.get("/api/analyze/{symbol}")
async def analyze(request: web.Request) -> web.Response:
    analysis = request.app[STORE].get_technical_analysis(request.match_info["symbol"])
    if analysis is None:
        return _error("analysis_not_found", "No analysis data for this symbol", 404)
    return _json(analysis)


@routes.get("/api/ai-predictions/all/{timeframe}")
async def ai_predictions(request: web.Request) -> web.Response:
    return _json(request.app[STORE].get_ai_predictions(request.match_info["timeframe"]))


# --- Notifications & reports ---
@routes.post("/api/telegram/test")
async def telegram_test(request: web.Request) -> web.Response:
    request.app[STORE].record_log("info", "Telegram test message requested")
    return _json({"success": True, "message": "Test message sent to Telegram"})


@routes.post("/api/reports/{report_type}")
async def send_report(request: web.Request) -> web.Response:
    report_type = request.match_info["report_type"]
    if report_type not in REPORT_TYPES:
        return _error("unsupported_report", "Unsupported report type", 400)
    request.app[STORE].record_log("info", f"{report_type.capitalize()} report requested")
    return _json({
        "success": True,
        "type": report_type,
        "message": "The report will be emailed within a few minutes",
    })


# --- Static single-page UI ---
def _add_static_routes(app: web.Application, static_dir: Optional[str]):
    root = Path(static_dir) if static_dir else None
    has_ui = root is not None and root.is_dir()

    if has_ui and (root / "assets").is_dir():
        app.router.add_static("/assets", root / "assets")

    async def spa(request: web.Request) -> web.StreamResponse:
        if request.path.startswith("/api/"):
            return _error("not_found", "Unknown API endpoint", 404)
        if has_ui:
            if request.path == "/favicon.ico" and (root / "favicon.png").is_file():
                return web.FileResponse(root / "favicon.png")
            index = root / "index.html"
            if index.is_file():
                return web.FileResponse(index)
        return web.Response(text="Static UI not found", status=404)

    app.router.add_get("/{tail:.*}", spa)


async def _http_session(app: web.Application):
    timeout = aiohttp.ClientTimeout(total=app[CONFIG].UPSTREAM_TIMEOUT_SECONDS)
    app[HTTP_SESSION] = aiohttp.ClientSession(
        headers={"User-Agent": "Tradeboard/1.0"},
        timeout=timeout,
    )
    yield
    await app[HTTP_SESSION].close()


def create_app(store: Optional[MockStore] = None, config: Optional[Settings] = None) -> web.Application:
    config = config or default_settings
    app = web.Application(middlewares=[error_middleware])
    app[CONFIG] = config
    app[STORE] = store or MockStore(max_logs=config.MAX_ACTIVITY_LOGS)
    app.cleanup_ctx.append(_http_session)
    app.add_routes(routes)
    _add_static_routes(app, config.STATIC_DIR)
    return app
