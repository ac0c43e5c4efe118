from fastapi import FastAPI, Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException
from pydantic import BaseModel, ConfigDict
from typing import Optional

import asyncio
import json as _json
import uuid as _uuid
from datetime import datetime as _dt, timezone as _tz

import httpx

from config import COINGECKO_API_KEY, PROXY_BASE_URL, RATE_LIMIT
from agent.signal_generator import ScanError
from core.dashboard import Dashboard
from data.cache import TTLCache
from data.coingecko_provider import CoinGeckoProvider
from data.fallback import UpstreamError, fetch_first
from data.llm_provider import ChatCompletionRelay
from data.metal_provider import MetalPriceProvider
from data.news_provider import NewsProvider, market_context
from data.price_aggregator import PriceAggregator
from data.reference_prices import static_crypto_rows, static_stock_row, static_stock_rows
from data.settings_store import SettingsStore
from data.vn_stock_provider import VNStockProvider

app = FastAPI(title="FinAI Dashboard API")

limiter = Limiter(key_func=get_remote_address)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    body = None
    try:
        body = (await request.body()).decode("utf-8", errors="replace")[:2000]
    except Exception:
        body = "<unreadable>"
    print(f"[VALIDATION_ERROR] path={request.url.path} method={request.method}")
    print(f"[VALIDATION_ERROR] errors={exc.errors()}")
    print(f"[VALIDATION_ERROR] body={body}")
    return JSONResponse(
        status_code=422,
        content={
            "detail": exc.errors(),
            "message": "Request validation failed, check field names and types.",
            "request_id": str(_uuid.uuid4()),
            "as_of": _dt.now(_tz.utc).isoformat(),
        },
    )


@app.exception_handler(_json.JSONDecodeError)
async def json_decode_exception_handler(request: Request, exc: _json.JSONDecodeError):
    body = None
    try:
        body = (await request.body()).decode("utf-8", errors="replace")[:2000]
    except Exception:
        body = "<unreadable>"
    print(f"[JSON_DECODE_ERROR] path={request.url.path} method={request.method}")
    print(f"[JSON_DECODE_ERROR] error={exc}")
    print(f"[JSON_DECODE_ERROR] raw_body={body}")
    return JSONResponse(
        status_code=400,
        content={
            "detail": f"Malformed JSON: {str(exc)}",
            "message": "Could not parse request body as JSON.",
            "request_id": str(_uuid.uuid4()),
            "as_of": _dt.now(_tz.utc).isoformat(),
        },
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = "Method not allowed" if exc.status_code == 405 else exc.detail
    return JSONResponse(status_code=exc.status_code, content={"error": message})


class PreflightCORSMiddleware(CORSMiddleware):
    """CORS with `*` as the origin; an accepted preflight is a bare 200."""

    def preflight_response(self, request_headers):
        response = super().preflight_response(request_headers)
        if response.status_code == 200:
            response.body = b""
            response.headers["content-length"] = "0"
        return response


app.add_middleware(
    PreflightCORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

vn_stocks = VNStockProvider()
coingecko = CoinGeckoProvider(api_key=COINGECKO_API_KEY)
metals = MetalPriceProvider(coingecko)
news = NewsProvider()
chat_relay = ChatCompletionRelay()

_dashboard: Dashboard | None = None


# Peer address of in-process proxy calls; never a real socket address.
IN_PROCESS_CLIENT = ("finai-internal", 0)


def _proxy_client() -> httpx.AsyncClient:
    """Client the aggregator and chat client use to reach the proxy routes."""
    if PROXY_BASE_URL:
        return httpx.AsyncClient(base_url=PROXY_BASE_URL)
    transport = httpx.ASGITransport(app=app, client=IN_PROCESS_CLIENT)
    return httpx.AsyncClient(transport=transport, base_url="http://finai.local")


def _in_process(request: Request) -> bool:
    """True for proxy calls this process makes through IN_PROCESS_CLIENT."""
    return request.client is not None and request.client.host == IN_PROCESS_CLIENT[0]


def get_dashboard() -> Dashboard:
    global _dashboard
    if _dashboard is None:
        client = _proxy_client()
        aggregator = PriceAggregator(TTLCache(), client=client, base_url=PROXY_BASE_URL or "http://finai.local")
        _dashboard = Dashboard(aggregator, SettingsStore(), chat_http=client)
        print("[INIT] Dashboard initialized")
    return _dashboard


def _now() -> str:
    return _dt.now(_tz.utc).isoformat()


def _relay(e: UpstreamError) -> Response:
    """Upstream error reply passed through with its status and body unchanged."""
    return Response(content=e.body, status_code=e.status_code, media_type=e.content_type)


def _preflight() -> Response:
    return Response(status_code=200)


# ============================================================
# Health
# ============================================================

@app.get("/")
async def root():
    """Health check: confirms the backend is running."""
    return {"status": "running", "message": "FinAI Dashboard API is live"}


@app.get("/ping")
async def ping():
    return {"status": "ok"}


@app.get("/health")
async def health():
    return {
        "status": "ok",
        "dashboard_loaded": _dashboard is not None,
        "api_key_configured": bool(_dashboard and _dashboard.api_key),
    }


# ============================================================
# Proxy routes
# ============================================================

@app.api_route("/api/ai", methods=["POST", "OPTIONS"])
@limiter.limit(RATE_LIMIT, exempt_when=_in_process)
async def ai_proxy(request: Request):
    if request.method == "OPTIONS":
        return _preflight()

    auth = request.headers.get("authorization", "")
    token = auth[7:].strip() if auth.lower().startswith("bearer ") else ""
    if not token:
        raise HTTPException(status_code=401, detail="API key required")

    body = await request.json()
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object")

    try:
        return await chat_relay.relay(token, body)
    except UpstreamError as e:
        return _relay(e)
    except Exception as e:
        print(f"[AI PROXY] Error: {e}")
        return JSONResponse(status_code=500, content={"error": str(e)})


async def _crypto_assets() -> tuple[str, list[dict]]:
    source, assets = await fetch_first("crypto", [("CoinGecko", coingecko.get_crypto_assets)])
    if not assets:
        print("[CRYPTO API] all providers failed, using reference prices")
        return "Fallback", static_crypto_rows()
    return source, assets


async def _metal_assets() -> tuple[str, list[dict]]:
    rows = await metals.get_metals()
    return "+".join(sorted({r["source"] for r in rows})), rows


@app.api_route("/api/crypto", methods=["GET", "OPTIONS"])
@limiter.limit(RATE_LIMIT, exempt_when=_in_process)
async def crypto_proxy(request: Request, type: Optional[str] = None):
    if request.method == "OPTIONS":
        return _preflight()

    kind = (type or "crypto").lower()
    if kind == "crypto":
        source, assets = await _crypto_assets()
    elif kind in ("metals", "gold"):
        source, assets = await _metal_assets()
    elif kind == "all":
        (crypto_source, crypto), (metal_source, metal_rows) = await asyncio.gather(
            _crypto_assets(), _metal_assets()
        )
        source, assets = f"{crypto_source}+{metal_source}", [*crypto, *metal_rows]
    else:
        raise HTTPException(status_code=400, detail="Invalid type. Use: crypto, metals, gold, or all")

    print(f"[CRYPTO API] type={kind} count={len(assets)} source={source}")
    return JSONResponse(
        content={"assets": assets, "count": len(assets), "source": source, "timestamp": _now()},
        headers={"Cache-Control": "s-maxage=60, stale-while-revalidate"},
    )


STOCK_SOURCES = ("cafef", "all", "quote", "batch", "tcbs", "ssi", "wichart")


def _symbol_list(symbols: Optional[str]) -> list[str]:
    return [s.strip().upper() for s in (symbols or "").split(",") if s.strip()]


def _stock_list(stocks: list[dict], source: str) -> dict:
    return {"stocks": stocks, "count": len(stocks), "source": source, "timestamp": _now()}


async def _single_provider(source: str, symbols: list[str]) -> dict:
    if source == "ssi":
        board = await vn_stocks.get_ssi_board()
        if symbols:
            board = [t for t in board if t["symbol"] in symbols]
        return _stock_list(board, "SSI")

    if not symbols:
        raise HTTPException(status_code=400, detail="Symbol required")
    if source == "tcbs":
        if len(symbols) == 1:
            tick = await vn_stocks.get_tcbs_quote(symbols[0])
            return _stock_list([tick] if tick else [], "TCBS")
        return _stock_list(await vn_stocks.get_tcbs_batch(symbols), "TCBS")

    tick = await vn_stocks.get_wichart_quote(symbols[0])
    return _stock_list([tick] if tick else [], "WiChart")


@app.api_route("/api/stocks", methods=["GET", "OPTIONS"])
@limiter.limit(RATE_LIMIT, exempt_when=_in_process)
async def stocks_proxy(request: Request, source: Optional[str] = None, symbols: Optional[str] = None):
    if request.method == "OPTIONS":
        return _preflight()

    source = (source or "cafef").lower()
    if source not in STOCK_SOURCES:
        raise HTTPException(status_code=400, detail=f"Invalid source. Use: {', '.join(STOCK_SOURCES)}")
    wanted = _symbol_list(symbols)
    print(f"[STOCK PROXY] source={source} symbols={wanted[:5]}")

    if source in ("cafef", "all"):
        provider, board = await vn_stocks.get_board()
        if not board:
            return _stock_list(static_stock_rows(), "Fallback")
        return _stock_list(board, provider)

    if source == "quote":
        if not wanted:
            raise HTTPException(status_code=400, detail="Symbol required")
        symbol = wanted[0]
        provider, tick = await vn_stocks.get_quote(symbol)
        if tick:
            return {**tick, "timestamp": _now()}
        row = static_stock_row(symbol)
        if row:
            return {**row, "timestamp": _now()}
        raise HTTPException(status_code=404, detail=f"No data for {symbol}")

    if source == "batch":
        if not wanted:
            raise HTTPException(status_code=400, detail="Symbols required")
        provider, ticks = await vn_stocks.get_batch(wanted)
        if not ticks:
            rows = [static_stock_row(s) for s in wanted]
            return _stock_list([r for r in rows if r], "Fallback")
        return _stock_list(ticks, provider)

    try:
        return await _single_provider(source, wanted)
    except UpstreamError as e:
        print(f"[STOCK PROXY] {e}")
        return _relay(e)
    except httpx.HTTPError as e:
        print(f"[STOCK PROXY] Error: {e}")
        return JSONResponse(status_code=500, content={"error": str(e) or e.__class__.__name__})
    except ValueError as e:
        print(f"[STOCK PROXY] Bad upstream payload: {e}")
        return JSONResponse(status_code=500, content={"error": str(e)})


@app.api_route("/api/news", methods=["GET", "OPTIONS"])
@limiter.limit(RATE_LIMIT, exempt_when=_in_process)
async def news_proxy(
    request: Request,
    query: Optional[str] = None,
    symbol: Optional[str] = None,
    type: Optional[str] = None,
):
    if request.method == "OPTIONS":
        return _preflight()

    q = (query or symbol or "").strip()
    if not q:
        raise HTTPException(status_code=400, detail="Query or symbol required")

    try:
        articles = await news.get_articles(q, type)
    except Exception as e:
        print(f"[NEWS API] Error: {e}")
        articles = market_context(q, type)

    return {"query": q, "articles": articles, "count": len(articles), "timestamp": _now()}


# ============================================================
# Dashboard routes
# ============================================================

class ApiKeyRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")
    api_key: str


def _apply_timeframe(dashboard: Dashboard, timeframe: Optional[str]):
    if timeframe:
        try:
            dashboard.set_timeframe(timeframe)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))


@app.get("/api/market")
@limiter.limit(RATE_LIMIT)
async def market(request: Request, refresh: bool = False):
    dashboard = get_dashboard()
    if refresh or not dashboard.assets:
        await dashboard.load_data()
    return {
        "assets": [a.wire() for a in dashboard.assets],
        "count": len(dashboard.assets),
        "total_stocks_available": dashboard.total_stocks_available,
        "timeframe": dashboard.timeframe,
        "as_of": _now(),
    }


@app.get("/api/search")
@limiter.limit(RATE_LIMIT)
async def search(request: Request, q: str = "", filter: str = "all"):
    if filter not in ("all", "stock", "metal", "crypto"):
        raise HTTPException(status_code=400, detail="Invalid filter. Use: all, stock, metal, or crypto")
    if not q.strip():
        return {"results": [], "count": 0}
    results = await get_dashboard().aggregator.search(q, filter)
    return {"results": [a.wire() for a in results], "count": len(results)}


@app.post("/api/analyze/{symbol}")
@limiter.limit(RATE_LIMIT)
async def analyze(request: Request, symbol: str, type: Optional[str] = None, timeframe: Optional[str] = None):
    dashboard = get_dashboard()
    _apply_timeframe(dashboard, timeframe)

    if type:
        signal = await dashboard.select_from_search(symbol, type)
    else:
        signal = await dashboard.select_asset(symbol)
        if signal is None:
            signal = await dashboard.select_from_search(symbol, "stock")
    if signal is None:
        raise HTTPException(status_code=404, detail=f"{symbol.upper()} not found")
    return signal.wire()


@app.post("/api/scan")
@limiter.limit("5/minute")
async def scan(request: Request, timeframe: Optional[str] = None):
    dashboard = get_dashboard()
    if not dashboard.api_key:
        raise HTTPException(status_code=401, detail="API key required")
    _apply_timeframe(dashboard, timeframe)
    if not dashboard.assets:
        await dashboard.load_data()

    try:
        signals = await dashboard.start_scan()
    except ScanError as e:
        print(f"[DASHBOARD] scan failed: {e}")
        raise HTTPException(status_code=502, detail=f"AI scan failed: {e}")
    return {"signals": [s.wire() for s in signals], "count": len(signals)}


@app.get("/api/signals")
@limiter.limit(RATE_LIMIT)
async def signals(request: Request):
    dashboard = get_dashboard()
    return {"signals": [s.wire() for s in dashboard.signals], "count": len(dashboard.signals)}


@app.put("/api/settings/api-key")
@limiter.limit("10/minute")
async def set_api_key(request: Request, body: ApiKeyRequest):
    try:
        get_dashboard().set_api_key(body.api_key)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"status": "API key saved"}


@app.post("/api/cache/clear")
@limiter.limit("5/minute")
async def clear_cache(request: Request):
    get_dashboard().aggregator.clear_cache()
    return {"status": "Cache cleared"}
