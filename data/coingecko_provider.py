"""
CoinGecko simple-price client.

Two jobs:
- live crypto quotes for a fixed coin list
- tokenized gold/silver (PAX Gold, Tether Gold, Kinesis Silver), the stand-in when no
  spot metals quote is available
"""
import httpx

from config import COINGECKO_BASE_URL, COINGECKO_TIMEOUT
from data.fallback import UpstreamError

COINS = {
    "bitcoin": {"symbol": "BTC", "name": "Bitcoin", "icon": "₿"},
    "ethereum": {"symbol": "ETH", "name": "Ethereum", "icon": "Ξ"},
    "tether": {"symbol": "USDT", "name": "Tether", "icon": "₮"},
    "binancecoin": {"symbol": "BNB", "name": "Binance Coin", "icon": "🔶"},
    "ripple": {"symbol": "XRP", "name": "Ripple", "icon": "✕"},
    "solana": {"symbol": "SOL", "name": "Solana", "icon": "◎"},
    "dogecoin": {"symbol": "DOGE", "name": "Dogecoin", "icon": "🐕"},
    "cardano": {"symbol": "ADA", "name": "Cardano", "icon": "₳"},
    "polkadot": {"symbol": "DOT", "name": "Polkadot", "icon": "●"},
    "shiba-inu": {"symbol": "SHIB", "name": "Shiba Inu", "icon": "🐕"},
    "avalanche-2": {"symbol": "AVAX", "name": "Avalanche", "icon": "🔺"},
    "chainlink": {"symbol": "LINK", "name": "Chainlink", "icon": "⬡"},
    "litecoin": {"symbol": "LTC", "name": "Litecoin", "icon": "Ł"},
    "uniswap": {"symbol": "UNI", "name": "Uniswap", "icon": "🦄"},
    "cosmos": {"symbol": "ATOM", "name": "Cosmos", "icon": "⚛"},
    "stellar": {"symbol": "XLM", "name": "Stellar", "icon": "★"},
    "monero": {"symbol": "XMR", "name": "Monero", "icon": "ɱ"},
    "tron": {"symbol": "TRX", "name": "TRON", "icon": "⟁"},
    "near": {"symbol": "NEAR", "name": "NEAR Protocol", "icon": "Ⓝ"},
    "aptos": {"symbol": "APT", "name": "Aptos", "icon": "◈"},
}

# metal -> (coingecko id, provenance label)
TOKENIZED_METALS = {
    "gold": ("pax-gold", "CoinGecko/PAXGold"),
    "gold_alt": ("tether-gold", "CoinGecko/XAUT"),
    "silver": ("kinesis-silver", "CoinGecko/KAG"),
}


class CoinGeckoProvider:
    BASE_URL = COINGECKO_BASE_URL

    def __init__(self, api_key: str = ""):
        self.api_key = api_key
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers={"Accept": "application/json", "User-Agent": "FinAI/1.0"},
            )
        return self._client

    async def _get(self, endpoint: str, params: dict = None, timeout: float = COINGECKO_TIMEOUT) -> dict:
        if params is None:
            params = {}
        if self.api_key:
            params["x_cg_demo_api_key"] = self.api_key

        client = await self._get_client()
        resp = await client.get(f"{self.BASE_URL}/{endpoint}", params=params, timeout=timeout)
        if resp.status_code == 429:
            print("[CRYPTO API] CoinGecko rate limit hit")
        if resp.status_code != 200:
            raise UpstreamError("CoinGecko", resp.status_code, resp.content)
        return resp.json()

    async def simple_price(self, ids: list[str], timeout: float = COINGECKO_TIMEOUT) -> dict:
        return await self._get("simple/price", {
            "ids": ",".join(ids),
            "vs_currencies": "usd",
            "include_24hr_change": "true",
            "include_24hr_vol": "true",
            "include_market_cap": "true",
        }, timeout=timeout)

    async def get_crypto_assets(self) -> list[dict]:
        data = await self.simple_price(list(COINS))
        assets = []
        for coin_id, info in data.items():
            meta = COINS.get(coin_id, {"symbol": coin_id.upper(), "name": coin_id, "icon": "🪙"})
            price = info.get("usd")
            if not price:
                continue
            assets.append({
                "id": coin_id,
                "symbol": meta["symbol"],
                "name": meta["name"],
                "icon": meta["icon"],
                "type": "crypto",
                "price": price,
                "change": info.get("usd_24h_change") or 0,
                "volume": info.get("usd_24h_vol") or 0,
                "marketCap": info.get("usd_market_cap") or 0,
                "source": "CoinGecko",
                "isRealtime": True,
            })
        return assets

    async def get_tokenized_metal(self, metal: str, timeout: float = COINGECKO_TIMEOUT) -> dict | None:
        """Price of the token tracking one metal, as {price, change, source}."""
        for key in (metal, f"{metal}_alt"):
            if key not in TOKENIZED_METALS:
                continue
            coin_id, label = TOKENIZED_METALS[key]
            data = await self.simple_price([coin_id], timeout=timeout)
            info = data.get(coin_id) or {}
            if info.get("usd"):
                return {
                    "price": info["usd"],
                    "change": info.get("usd_24h_change") or 0,
                    "source": label,
                }
        return None
