"""
Vietnamese equity tick feeds: CafeF (bulk board + single quote), SSI iBoard (bulk board),
TCBS daily bars (single quote / sequential batch) and WiChart (single quote).

Every provider reply is reshaped into one tick dict:
  symbol, name, price, refPrice, high, low, open, change, changePercent, volume, time,
  isRealtime, source
Prices are in thousands of VND.
"""
import asyncio
import httpx

from config import (
    BATCH_TIMEOUT,
    BOARD_TIMEOUT,
    CAFEF_BOARD_URL,
    CAFEF_QUOTE_URL,
    QUOTE_TIMEOUT,
    SSI_BOARD_URL,
    TCBS_BARS_URL,
    WICHART_QUOTE_URL,
)
from data.fallback import UpstreamError, fetch_first, parse_num, pick
from data.reference_prices import stock_name

HEADERS = {
    "Accept": "application/json",
    "User-Agent": "FinAI/1.0",
}

BATCH_SYMBOL_LIMIT = 20
TCBS_REQUEST_DELAY = 0.1


def normalize_tick(raw: dict, source: str, symbol: str | None = None) -> dict | None:
    if not isinstance(raw, dict):
        return None
    sym = pick(raw, "symbol", "Symbol", "stockSymbol", "ticker", "code", "ss") or symbol
    raw_price = parse_num(pick(raw, "price", "close", "lastPrice", "matchedPrice", "closePrice", "mp"))
    if not sym or raw_price is None or raw_price <= 0:
        return None

    scale = 1000.0 if raw_price >= 1000 else 1.0

    def scaled(*keys):
        val = parse_num(pick(raw, *keys))
        return val / scale if val is not None else None

    price = raw_price / scale
    ref_price = scaled("refPrice", "prevClose", "reference", "basicPrice", "priorClosePrice")
    change = scaled("change", "priceChange", "pc")
    change_pct = parse_num(pick(raw, "changePercent", "priceChangePercent", "pcp", "perChange"))

    if change_pct is None and ref_price:
        change_pct = (price - ref_price) / ref_price * 100
    if change is None and ref_price:
        change = price - ref_price

    sym = str(sym).strip().upper()
    return {
        "symbol": sym,
        "name": pick(raw, "name", "stockName", "organName") or stock_name(sym),
        "price": round(price, 4),
        "refPrice": ref_price,
        "high": scaled("high", "highest", "highPrice"),
        "low": scaled("low", "lowest", "lowPrice"),
        "open": scaled("open", "openPrice"),
        "change": round(change, 4) if change is not None else 0.0,
        "changePercent": round(change_pct, 4) if change_pct is not None else 0.0,
        "volume": parse_num(pick(raw, "volume", "totalVolume", "totalMatchedVol", "tmv", "nmTotalTradedQty")),
        "time": pick(raw, "time", "tradingDate", "lastUpdated"),
        "isRealtime": True,
        "source": source,
    }


def _rows(data) -> list:
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        rows = pick(data, "data", "stocks", "items")
        if isinstance(rows, list):
            return rows
    return []


class VNStockProvider:
    def __init__(self):
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(headers=HEADERS, follow_redirects=True)
        return self._client

    async def _get_json(self, provider: str, url: str, params: dict = None, timeout: float = QUOTE_TIMEOUT):
        client = await self._get_client()
        resp = await client.get(url, params=params, timeout=timeout)
        if resp.status_code != 200:
            raise UpstreamError(
                provider,
                resp.status_code,
                resp.content,
                resp.headers.get("content-type", "application/json"),
            )
        return resp.json()

    # ── single providers ────────────────────────────────────────────────

    async def get_cafef_board(self) -> list[dict]:
        data = await self._get_json("CafeF", CAFEF_BOARD_URL, {"center": "1"}, BOARD_TIMEOUT)
        ticks = [normalize_tick(r, "CafeF") for r in _rows(data)]
        return [t for t in ticks if t]

    async def get_ssi_board(self) -> list[dict]:
        data = await self._get_json("SSI", SSI_BOARD_URL, {"market": ""}, BOARD_TIMEOUT)
        ticks = [normalize_tick(r, "SSI") for r in _rows(data)]
        return [t for t in ticks if t]

    async def get_cafef_quote(self, symbol: str) -> dict | None:
        symbol = symbol.upper()
        data = await self._get_json("CafeF", CAFEF_QUOTE_URL, {"symbol": symbol}, QUOTE_TIMEOUT)
        rows = _rows(data)
        if rows:
            match = next((r for r in rows if str(pick(r, "symbol", "Symbol", "code") or "").upper() == symbol), None)
            raw = match or (rows[0] if len(rows) == 1 else None)
        else:
            raw = data if isinstance(data, dict) else None
        return normalize_tick(raw, "CafeF", symbol) if raw else None

    async def get_tcbs_quote(self, symbol: str) -> dict | None:
        symbol = symbol.upper()
        data = await self._get_json(
            "TCBS",
            TCBS_BARS_URL,
            {"ticker": symbol, "type": "stock", "resolution": "D", "countBack": 2},
            QUOTE_TIMEOUT,
        )
        bars = _rows(data)
        if not bars:
            return None
        latest = bars[-1]
        if len(bars) > 1:
            latest = {**latest, "prevClose": bars[-2].get("close")}
        return normalize_tick(latest, "TCBS", symbol)

    async def get_wichart_quote(self, symbol: str) -> dict | None:
        symbol = symbol.upper()
        data = await self._get_json("WiChart", WICHART_QUOTE_URL, {"code": symbol}, QUOTE_TIMEOUT)
        raw = data.get("data", data) if isinstance(data, dict) else None
        if isinstance(raw, list):
            raw = raw[0] if raw else None
        return normalize_tick(raw, "WiChart", symbol) if raw else None

    async def get_cafef_batch(self, symbols: list[str]) -> list[dict]:
        wanted = {s.upper() for s in symbols}
        board = await self.get_cafef_board()
        return [t for t in board if t["symbol"] in wanted]

    async def get_tcbs_batch(self, symbols: list[str]) -> list[dict]:
        """No batch endpoint on TCBS: one request per symbol with a short pause in between."""
        results = []
        for i, sym in enumerate(symbols):
            try:
                tick = await self.get_tcbs_quote(sym)
                if tick:
                    results.append(tick)
            except Exception as e:
                print(f"[STOCK PROXY] TCBS {sym} failed: {e}")
            if i < len(symbols) - 1:
                await asyncio.sleep(TCBS_REQUEST_DELAY)
        return results

    # ── layered chains ──────────────────────────────────────────────────

    async def get_board(self):
        return await fetch_first("stock board", [
            ("CafeF", self.get_cafef_board),
            ("SSI", self.get_ssi_board),
        ])

    async def get_quote(self, symbol: str):
        return await fetch_first(f"quote {symbol}", [
            ("CafeF", lambda: self.get_cafef_quote(symbol)),
            ("TCBS", lambda: self.get_tcbs_quote(symbol)),
            ("WiChart", lambda: self.get_wichart_quote(symbol)),
        ])

    async def get_batch(self, symbols: list[str]):
        symbols = [s.strip().upper() for s in symbols if s.strip()][:BATCH_SYMBOL_LIMIT]
        return await fetch_first("batch", [
            ("CafeF", lambda: self.get_cafef_batch(symbols)),
            ("TCBS", lambda: self.get_tcbs_batch(symbols)),
        ], timeout=BATCH_TIMEOUT)
