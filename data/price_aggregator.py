"""
Price Aggregator.

Reads the proxy routes (/api/stocks, /api/crypto, /api/news) over HTTP, reshapes their rows into
Asset records and keeps them in an injected TTLCache. Only live results are cached, so a degraded
answer is retried on the next call instead of being served for a full TTL.
"""
import asyncio
from datetime import datetime, timezone

import httpx

from config import BATCH_TIMEOUT, BOARD_TIMEOUT, METALS_TIMEOUT, PROXY_BASE_URL, QUOTE_TIMEOUT
from data.cache import BATCH_TTL, CRYPTO_TTL, METALS_TTL, NEWS_TTL, QUOTE_TTL, STOCK_LIST_TTL, TTLCache
from data.fallback import parse_num, to_thousands
from data.models import Article, Asset
from data.reference_prices import (
    WATCHLIST_SYMBOLS,
    static_crypto_rows,
    static_metal_rows,
    static_stock_row,
    static_stock_rows,
    stock_name,
)

SEARCH_LIMIT = 30
BATCH_SYMBOL_LIMIT = 20
SEQUENTIAL_REQUEST_DELAY = 0.15


def to_asset(row: dict, asset_type: str) -> Asset | None:
    """Proxy row -> Asset. Rows without a symbol or a positive price are dropped."""
    if not isinstance(row, dict):
        return None
    symbol = str(row.get("symbol") or "").strip()
    price = parse_num(row.get("price"))
    if not symbol or price is None or price <= 0:
        return None

    if asset_type == "stock":
        price = to_thousands(price)
        change = parse_num(row.get("changePercent"))
        price_change = parse_num(row.get("change"))
        name = row.get("name") or stock_name(symbol)
    else:
        change = parse_num(row.get("change"))
        price_change = None
        name = row.get("name") or symbol

    return Asset(
        symbol=symbol,
        name=name,
        type=asset_type,
        price=price,
        change=change,
        is_realtime=bool(row.get("isRealtime", False)),
        source=row.get("source") or "",
        icon=row.get("icon") or ("📈" if asset_type == "stock" else ""),
        exchange=row.get("exchange"),
        volume=parse_num(row.get("volume")),
        high=parse_num(row.get("high")),
        low=parse_num(row.get("low")),
        open=parse_num(row.get("open")),
        ref_price=parse_num(row.get("refPrice")),
        price_change=price_change,
        time=row.get("time"),
    )


def _to_assets(rows, asset_type: str) -> list[Asset]:
    assets = [to_asset(r, asset_type) for r in rows or []]
    return [a for a in assets if a]


def _any_live(assets: list[Asset]) -> bool:
    return any(a.is_realtime for a in assets)


class PriceAggregator:
    def __init__(
        self,
        cache: TTLCache,
        client: httpx.AsyncClient | None = None,
        base_url: str = PROXY_BASE_URL,
        request_delay: float = SEQUENTIAL_REQUEST_DELAY,
    ):
        self.cache = cache
        self.base_url = base_url
        self.request_delay = request_delay
        self._client = client
        self.all_stocks: list[Asset] = []
        self.metals: list[Asset] = []
        self.crypto: list[Asset] = []

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(base_url=self.base_url)
        return self._client

    async def _get(self, path: str, params: dict, timeout: float):
        client = await self._get_client()
        resp = await client.get(path, params=params, timeout=timeout)
        if resp.status_code != 200:
            raise RuntimeError(f"{path} returned HTTP {resp.status_code}")
        return resp.json()

    # ── price lists ─────────────────────────────────────────────────────

    async def get_stock_list(self) -> list[Asset]:
        cached = self.cache.get("all_vn_symbols")
        if cached is not None:
            self.all_stocks = cached
            return cached

        try:
            data = await self._get("/api/stocks", {"source": "cafef"}, BOARD_TIMEOUT * 2)
            stocks = _to_assets(data.get("stocks"), "stock")
        except Exception as e:
            print(f"[PRICES] stock list failed: {e}")
            stocks = []

        if _any_live(stocks):
            self.cache.set("all_vn_symbols", stocks, ttl=STOCK_LIST_TTL)
            print(f"[PRICES] loaded {len(stocks)} live stocks")
        elif not stocks:
            print("[PRICES] stock list unavailable, using reference table")
            stocks = _to_assets(static_stock_rows(), "stock")

        self.all_stocks = stocks
        return stocks

    async def get_metal_prices(self) -> list[Asset]:
        cached = self.cache.get("metal_prices")
        if cached is not None:
            self.metals = cached
            return cached

        try:
            data = await self._get("/api/crypto", {"type": "metals"}, METALS_TIMEOUT * 3)
            metals = _to_assets(data.get("assets"), "metal")
        except Exception as e:
            print(f"[PRICES] metals failed: {e}")
            metals = []

        if _any_live(metals):
            self.cache.set("metal_prices", metals, ttl=METALS_TTL)
        elif len(metals) < 2:
            print("[PRICES] metals unavailable, using reference prices")
            metals = _to_assets(static_metal_rows(), "metal")

        self.metals = metals
        return metals

    async def get_crypto_prices(self) -> list[Asset]:
        cached = self.cache.get("crypto_prices")
        if cached is not None:
            self.crypto = cached
            return cached

        try:
            data = await self._get("/api/crypto", {"type": "crypto"}, BOARD_TIMEOUT)
            coins = _to_assets(data.get("assets"), "crypto")
        except Exception as e:
            print(f"[PRICES] crypto failed: {e}")
            coins = []

        if _any_live(coins):
            self.cache.set("crypto_prices", coins, ttl=CRYPTO_TTL)
        elif not coins:
            coins = _to_assets(static_crypto_rows(), "crypto")

        self.crypto = coins
        return coins

    # ── single symbols ──────────────────────────────────────────────────

    def _last_known(self, symbol: str) -> Asset | None:
        for asset in self.all_stocks:
            if asset.symbol == symbol:
                return asset.model_copy(update={"is_realtime": False})
        row = static_stock_row(symbol)
        return to_asset(row, "stock") if row else None

    async def get_quote(self, symbol: str) -> Asset | None:
        symbol = symbol.strip().upper()
        if not symbol:
            return None
        key = f"quote_{symbol}"
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        asset = None
        try:
            data = await self._get("/api/stocks", {"source": "quote", "symbols": symbol}, QUOTE_TIMEOUT * 3)
            asset = to_asset(data, "stock")
        except Exception as e:
            print(f"[PRICES] quote {symbol} failed: {e}")

        if asset and asset.is_realtime:
            self.cache.set(key, asset, ttl=QUOTE_TTL)
            return asset
        return asset or self._last_known(symbol)

    async def get_batch(self, symbols: list[str]) -> list[Asset]:
        symbols = [s.strip().upper() for s in symbols if s and s.strip()][:BATCH_SYMBOL_LIMIT]
        if not symbols:
            return []
        key = "batch_" + ",".join(sorted(symbols))
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        stocks = []
        try:
            data = await self._get("/api/stocks", {"source": "batch", "symbols": ",".join(symbols)}, BATCH_TIMEOUT)
            stocks = _to_assets(data.get("stocks"), "stock")
        except Exception as e:
            print(f"[PRICES] batch failed: {e}")

        if not stocks:
            stocks = await self._sequential_quotes(symbols)

        if _any_live(stocks):
            self.cache.set(key, stocks, ttl=BATCH_TTL)
        return stocks

    async def _sequential_quotes(self, symbols: list[str]) -> list[Asset]:
        results = []
        for i, symbol in enumerate(symbols):
            asset = await self.get_quote(symbol)
            if asset:
                results.append(asset)
            if i < len(symbols) - 1:
                await asyncio.sleep(self.request_delay)
        return results

    # ── news ────────────────────────────────────────────────────────────

    async def get_news(self, query: str, asset_type: str | None = None) -> list[Article]:
        key = f"news_{asset_type or 'any'}_{query.lower()}"
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        params = {"query": query}
        if asset_type:
            params["type"] = asset_type
        try:
            data = await self._get("/api/news", params, BOARD_TIMEOUT)
        except Exception as e:
            print(f"[NEWS API] {query}: {e}")
            return []

        articles = [Article.model_validate(a) for a in data.get("articles", []) if a.get("title")]
        if articles:
            self.cache.set(key, articles, ttl=NEWS_TTL)
        return articles

    # ── combined views ──────────────────────────────────────────────────

    async def get_all_prices(self) -> dict:
        metals, stocks = await asyncio.gather(
            self.get_metal_prices(),
            self.get_stock_list(),
            return_exceptions=True,
        )
        if isinstance(metals, Exception):
            print(f"[PRICES] metals join failed: {metals}")
            metals = _to_assets(static_metal_rows(), "metal")
        if isinstance(stocks, Exception):
            print(f"[PRICES] stock list join failed: {stocks}")
            stocks = []

        watchlist = await self.get_batch(WATCHLIST_SYMBOLS)
        return {
            "metals": metals,
            "vn_stocks": watchlist,
            "total_stocks_available": len(stocks),
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }

    async def search(self, query: str, filter: str = "all") -> list[Asset]:
        needle = query.strip().lower()
        pools = []
        if filter in ("all", "stock"):
            pools.append(await self.get_stock_list())
        if filter in ("all", "metal"):
            pools.append(await self.get_metal_prices())
        if filter in ("all", "crypto"):
            pools.append(await self.get_crypto_prices())

        results = []
        for pool in pools:
            for asset in pool:
                if needle in asset.symbol.lower() or needle in asset.name.lower():
                    results.append(asset)
                    if len(results) >= SEARCH_LIMIT:
                        return results
        return results

    def top_movers(self, count: int = 5, direction: str = "up") -> list[Asset]:
        """Stock list ranked by change, highest first for "up" and lowest first for "down"."""
        return sorted(self.all_stocks, key=lambda a: a.change, reverse=direction == "up")[:count]

    def get_stock_name(self, symbol: str) -> str:
        symbol = symbol.upper()
        for asset in self.all_stocks:
            if asset.symbol == symbol and asset.name and asset.name != symbol:
                return asset.name
        return stock_name(symbol)

    def clear_cache(self):
        self.cache.clear()
        print("[PRICES] cache cleared")
