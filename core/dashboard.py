"""
Dashboard state: the displayed asset list, the signal list, the selected horizon and the API key.
Wires user actions to the price aggregator and the signal generator.
"""
import httpx

from agent.chat_client import ChatClient
from agent.prompts import TIMEFRAME_LABELS
from agent.signal_generator import ScanError, SignalGenerator
from data.models import Asset, Signal
from data.price_aggregator import PriceAggregator
from data.settings_store import SettingsStore

SCAN_DISPLAYED = 10
SCAN_MOVERS = 5


class Dashboard:
    def __init__(
        self,
        aggregator: PriceAggregator,
        settings: SettingsStore,
        chat_http: httpx.AsyncClient | None = None,
    ):
        self.aggregator = aggregator
        self.settings = settings
        self._chat_http = chat_http
        self.assets: list[Asset] = []
        self.signals: list[Signal] = []
        self.timeframe = "short"
        self.selected: Asset | None = None
        self.total_stocks_available = 0
        self.is_scanning = False
        self.api_key = settings.get_api_key()
        self.generator = self._build_generator()

    def _build_generator(self) -> SignalGenerator:
        chat = None
        if self.api_key:
            chat = ChatClient(self.api_key, base_url=self.aggregator.base_url, client=self._chat_http)
        return SignalGenerator(chat, news=self.aggregator, name_lookup=self.aggregator.get_stock_name)

    def set_api_key(self, api_key: str):
        api_key = (api_key or "").strip()
        if not api_key:
            raise ValueError("API key required")
        self.settings.set_api_key(api_key)
        self.api_key = api_key
        self.generator = self._build_generator()

    def set_timeframe(self, timeframe: str):
        if timeframe not in TIMEFRAME_LABELS:
            raise ValueError(f"Invalid timeframe. Use: {', '.join(TIMEFRAME_LABELS)}")
        self.timeframe = timeframe

    async def load_data(self) -> list[Asset]:
        prices = await self.aggregator.get_all_prices()
        crypto = await self.aggregator.get_crypto_prices()
        self.assets = [*crypto, *prices["metals"], *prices["vn_stocks"]]
        self.total_stocks_available = prices["total_stocks_available"]
        print(f"[DASHBOARD] loaded {len(self.assets)} assets ({self.total_stocks_available} stocks available)")
        return self.assets

    def find_asset(self, symbol: str) -> Asset | None:
        symbol = symbol.upper()
        return next((a for a in self.assets if a.symbol == symbol), None)

    async def analyze_asset(self, asset: Asset) -> Signal:
        signal = await self.generator.analyze(asset, self.timeframe)
        self.signals = [s for s in self.signals if s.symbol != signal.symbol]
        self.signals.insert(0, signal)
        return signal

    async def select_asset(self, symbol: str) -> Signal | None:
        asset = self.find_asset(symbol)
        if asset is None:
            return None
        self.selected = asset
        return await self.analyze_asset(asset)

    async def select_from_search(self, symbol: str, asset_type: str = "stock") -> Signal | None:
        """Stocks get a fresh quote; crypto and metals come from what is already loaded."""
        if asset_type == "stock":
            asset = await self.aggregator.get_quote(symbol)
        else:
            asset = self.find_asset(symbol)
            if asset is None:
                matches = await self.aggregator.search(symbol, asset_type)
                asset = next((a for a in matches if a.symbol == symbol.upper()), None)

        if asset is None:
            print(f"[DASHBOARD] {symbol} not found")
            return None

        if self.find_asset(asset.symbol) is None:
            self.assets.insert(0, asset)
        self.selected = asset
        return await self.analyze_asset(asset)

    def scan_candidates(self) -> list[Asset]:
        candidates = list(self.assets[:SCAN_DISPLAYED])
        seen = {a.symbol for a in candidates}
        for asset in [
            *self.aggregator.top_movers(SCAN_MOVERS, "up"),
            *self.aggregator.top_movers(SCAN_MOVERS, "down"),
        ]:
            if asset.symbol not in seen:
                candidates.append(asset)
                seen.add(asset.symbol)
        return candidates

    async def start_scan(self) -> list[Signal]:
        if self.is_scanning:
            raise ScanError("A scan is already running")
        self.is_scanning = True
        try:
            self.signals = await self.generator.scan_market(self.scan_candidates(), self.timeframe)
        finally:
            self.is_scanning = False
        return self.signals
