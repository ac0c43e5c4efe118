"""
Gold and silver quotes.

Per metal, tried in order:
  1. spot price (XAU/XAG) from the metals feed
  2. tokenized stand-in from CoinGecko (less precise, tagged with its token in `source`)
  3. hardcoded reference price (isRealtime=False, source="Fallback")
A caller always gets both metals back.
"""
import asyncio
import httpx

from config import METALS_SPOT_URL, METALS_TIMEOUT
from data.coingecko_provider import CoinGeckoProvider
from data.fallback import UpstreamError, fetch_first, parse_num, pick
from data.reference_prices import FALLBACK_METALS

METALS = {
    "gold": {"id": "xau", "symbol": "XAU/USD", "name": "Spot Gold", "icon": "🥇", "spot_code": "XAU"},
    "silver": {"id": "xag", "symbol": "XAG/USD", "name": "Spot Silver", "icon": "🥈", "spot_code": "XAG"},
}


class MetalPriceProvider:
    def __init__(self, coingecko: CoinGeckoProvider):
        self.coingecko = coingecko
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(headers={"Accept": "application/json"})
        return self._client

    async def get_spot(self, metal: str) -> dict | None:
        code = METALS[metal]["spot_code"]
        client = await self._get_client()
        resp = await client.get(f"{METALS_SPOT_URL}/{code}", timeout=METALS_TIMEOUT)
        if resp.status_code != 200:
            raise UpstreamError("MetalsSpot", resp.status_code, resp.content)
        data = resp.json()
        price = parse_num(pick(data, "price", "ask", "value"))
        if not price or price <= 0:
            return None
        return {
            "price": price,
            "change": parse_num(pick(data, "chp", "changePercent", "change_percentage")) or 0.0,
            "source": "GoldAPI/Spot",
        }

    async def get_metal(self, metal: str) -> dict:
        meta = METALS[metal]
        provider, quote = await fetch_first(f"metal {metal}", [
            ("spot", lambda: self.get_spot(metal)),
            ("tokenized", lambda: self.coingecko.get_tokenized_metal(metal, timeout=METALS_TIMEOUT)),
        ])
        if quote:
            return {
                "id": meta["id"],
                "symbol": meta["symbol"],
                "name": meta["name"],
                "icon": meta["icon"],
                "type": "metal",
                "price": quote["price"],
                "change": quote["change"],
                "source": quote["source"],
                "isRealtime": True,
            }
        print(f"[CRYPTO API] {metal}: all providers failed, using reference price")
        return next(dict(m) for m in FALLBACK_METALS if m["id"] == meta["id"])

    async def get_metals(self) -> list[dict]:
        return list(await asyncio.gather(*(self.get_metal(m) for m in METALS)))
