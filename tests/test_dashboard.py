import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from unittest.mock import AsyncMock, MagicMock
from fastapi.testclient import TestClient

import main
from agent.chat_client import ChatClient, ChatCompletionError
from agent.signal_generator import ScanError, SignalGenerator
from core.dashboard import Dashboard
from data.models import Asset
from data.settings_store import SettingsStore


def stock(symbol, price, change):
    return Asset(symbol=symbol, name=symbol, type="stock", price=price, change=change, icon="📈", is_realtime=True)


BTC = Asset(symbol="BTC", name="Bitcoin", type="crypto", price=105000.0, change=1.1, icon="₿")
GOLD = Asset(symbol="XAU/USD", name="Spot Gold", type="metal", price=4890.0, change=0.3, icon="🥇")
VNM = stock("VNM", 68.5, -0.7)
HPG = stock("HPG", 26.5, 6.1)
NVL = stock("NVL", 10.8, -4.5)
FPT = stock("FPT", 148.2, 1.5)

SCAN_REPLY = """Top picks:
[
  {"symbol": "HPG", "entry": 26.5, "stopLoss": 25.0, "targets": [28, 29.5, 31], "confidence": 4,
   "reason": "Steel demand recovery, breakout on volume"},
  {"symbol": "DGC", "entry": 102.0, "targets": [107, 112, 118], "confidence": 3}
]"""


class FakeAggregator:
    base_url = "http://finai.test"

    def __init__(self, quotes=None):
        self.quotes = quotes or {}
        self.all_stocks = [VNM, HPG, NVL, FPT]
        self.cleared = False

    async def get_all_prices(self):
        return {"metals": [GOLD], "vn_stocks": [VNM, HPG], "total_stocks_available": 4, "updated_at": "t"}

    async def get_crypto_prices(self):
        return [BTC]

    async def get_quote(self, symbol):
        return self.quotes.get(symbol.upper())

    async def search(self, query, filter="all"):
        pool = {"crypto": [BTC], "metal": [GOLD]}.get(filter, [])
        return [a for a in pool if query.lower() in a.symbol.lower()]

    async def get_news(self, query, asset_type=None):
        return []

    def top_movers(self, count=5, direction="up"):
        return sorted(self.all_stocks, key=lambda a: a.change, reverse=direction == "up")[:count]

    def get_stock_name(self, symbol):
        return {"DGC": "Duc Giang Chemicals"}.get(symbol, symbol)

    def clear_cache(self):
        self.cleared = True


def chat_replying(text=None, error=None):
    chat = MagicMock()
    chat.complete = AsyncMock(return_value=text, side_effect=error)
    return chat


@pytest.fixture
def settings(tmp_path):
    return SettingsStore(tmp_path / "settings.json")


@pytest.fixture
def dashboard(settings):
    return Dashboard(FakeAggregator({"VIC": stock("VIC", 41.3, 0.5)}), settings)


@pytest.mark.asyncio
async def test_load_data_orders_crypto_metals_stocks(dashboard):
    assets = await dashboard.load_data()
    assert [a.symbol for a in assets] == ["BTC", "XAU/USD", "VNM", "HPG"]
    assert dashboard.total_stocks_available == 4


def test_starts_without_key(dashboard):
    assert dashboard.api_key == ""
    assert dashboard.generator.chat is None
    assert dashboard.timeframe == "short"


def test_set_api_key_persists_and_enables_model(dashboard, settings):
    dashboard.set_api_key("  sk-live ")
    assert settings.get_api_key() == "sk-live"
    assert isinstance(dashboard.generator.chat, ChatClient)
    assert dashboard.generator.chat.api_key == "sk-live"


def test_saved_key_is_picked_up(settings):
    settings.set_api_key("sk-saved")
    dashboard = Dashboard(FakeAggregator(), settings)
    assert dashboard.api_key == "sk-saved"
    assert dashboard.generator.chat is not None


def test_set_api_key_rejects_blank(dashboard):
    with pytest.raises(ValueError):
        dashboard.set_api_key("   ")


def test_set_timeframe(dashboard):
    dashboard.set_timeframe("long")
    assert dashboard.timeframe == "long"
    with pytest.raises(ValueError):
        dashboard.set_timeframe("decade")


@pytest.mark.asyncio
async def test_reanalysis_replaces_previous_signal(dashboard):
    await dashboard.load_data()
    await dashboard.select_asset("HPG")
    first = await dashboard.select_asset("VNM")
    dashboard.set_timeframe("medium")
    again = await dashboard.select_asset("VNM")

    assert [s.symbol for s in dashboard.signals] == ["VNM", "HPG"]
    assert dashboard.signals[0] is again
    assert again.horizon == "1-4 weeks"
    assert first.horizon == "1-7 days"
    assert dashboard.selected.symbol == "VNM"


@pytest.mark.asyncio
async def test_select_unknown_asset(dashboard):
    await dashboard.load_data()
    assert await dashboard.select_asset("ZZZ") is None
    assert dashboard.signals == []


@pytest.mark.asyncio
async def test_select_from_search_adds_stock(dashboard):
    await dashboard.load_data()
    signal = await dashboard.select_from_search("vic", "stock")
    assert signal.symbol == "VIC"
    assert signal.origin == "fallback"
    assert dashboard.assets[0].symbol == "VIC"


@pytest.mark.asyncio
async def test_select_from_search_uses_loaded_crypto(dashboard):
    await dashboard.load_data()
    count = len(dashboard.assets)
    signal = await dashboard.select_from_search("BTC", "crypto")
    assert signal.symbol == "BTC"
    assert len(dashboard.assets) == count


@pytest.mark.asyncio
async def test_select_from_search_not_found(dashboard):
    assert await dashboard.select_from_search("ZZZ", "stock") is None


@pytest.mark.asyncio
async def test_scan_candidates_dedup(dashboard):
    await dashboard.load_data()
    candidates = dashboard.scan_candidates()
    symbols = [a.symbol for a in candidates]
    assert symbols[:4] == ["BTC", "XAU/USD", "VNM", "HPG"]
    assert len(symbols) == len(set(symbols))
    assert set(symbols) == {"BTC", "XAU/USD", "VNM", "HPG", "FPT", "NVL"}


@pytest.mark.asyncio
async def test_start_scan_replaces_signals(dashboard):
    await dashboard.load_data()
    await dashboard.select_asset("VNM")
    dashboard.generator = SignalGenerator(chat_replying(SCAN_REPLY), name_lookup=dashboard.aggregator.get_stock_name)

    signals = await dashboard.start_scan()
    assert [s.symbol for s in signals] == ["HPG", "DGC"]
    assert dashboard.signals == signals
    assert all(s.origin == "scan" and s.action == "BUY" for s in signals)
    assert signals[0].reasoning.summary.startswith("Steel demand")
    assert signals[1].name == "Duc Giang Chemicals"
    assert dashboard.is_scanning is False


@pytest.mark.asyncio
async def test_scan_failure_keeps_signals_and_resets_flag(dashboard):
    await dashboard.load_data()
    await dashboard.select_asset("VNM")
    dashboard.generator = SignalGenerator(chat_replying(error=ChatCompletionError("API Error 500: boom")))

    with pytest.raises(ScanError):
        await dashboard.start_scan()
    assert [s.symbol for s in dashboard.signals] == ["VNM"]
    assert dashboard.is_scanning is False


@pytest.mark.asyncio
async def test_concurrent_scan_rejected(dashboard):
    dashboard.is_scanning = True
    with pytest.raises(ScanError):
        await dashboard.start_scan()


# ── dashboard routes ────────────────────────────────────────────────────

@pytest.fixture
def client(dashboard, monkeypatch):
    main.limiter.reset()
    monkeypatch.setattr(main, "_dashboard", dashboard)
    yield TestClient(main.app)
    main.limiter.reset()


def test_market_route_loads_once(client, dashboard):
    data = client.get("/api/market").json()
    assert data["count"] == 4
    assert data["total_stocks_available"] == 4
    assert data["assets"][0]["symbol"] == "BTC"
    assert "isRealtime" in data["assets"][2]


def test_search_route(client):
    assert client.get("/api/search", params={"q": "btc", "filter": "crypto"}).json()["count"] == 1
    assert client.get("/api/search", params={"q": "", "filter": "crypto"}).json() == {"results": [], "count": 0}
    assert client.get("/api/search", params={"q": "x", "filter": "bonds"}).status_code == 400


def test_analyze_route_without_key_uses_rules(client):
    client.get("/api/market")
    resp = client.post("/api/analyze/HPG")
    data = resp.json()
    assert resp.status_code == 200
    assert data["origin"] == "fallback"
    assert data["action"] == "HOLD"
    assert len(data["targets"]) == 3
    assert "stopLoss" in data


def test_analyze_route_unknown_symbol(client):
    resp = client.post("/api/analyze/ZZZ")
    assert resp.status_code == 404
    assert resp.json() == {"error": "ZZZ not found"}


def test_analyze_route_bad_timeframe(client):
    assert client.post("/api/analyze/VNM", params={"timeframe": "decade"}).status_code == 400


def test_signals_route(client):
    client.get("/api/market")
    client.post("/api/analyze/VNM")
    client.post("/api/analyze/VNM")
    data = client.get("/api/signals").json()
    assert data["count"] == 1
    assert data["signals"][0]["symbol"] == "VNM"


def test_scan_route_requires_key(client):
    resp = client.post("/api/scan")
    assert resp.status_code == 401
    assert resp.json() == {"error": "API key required"}


def test_scan_route_reports_model_failure(client, dashboard):
    dashboard.set_api_key("sk-live")
    dashboard.generator = SignalGenerator(chat_replying("I cannot help with that."))
    resp = client.post("/api/scan")
    assert resp.status_code == 502
    assert resp.json() == {"error": "AI scan failed: Invalid AI response"}


def test_scan_route_success(client, dashboard):
    dashboard.set_api_key("sk-live")
    dashboard.generator = SignalGenerator(chat_replying(SCAN_REPLY))
    data = client.post("/api/scan", params={"timeframe": "medium"}).json()
    assert data["count"] == 2
    assert data["signals"][0]["horizon"] == "1-4 weeks"


def test_api_key_route(client, settings):
    assert client.put("/api/settings/api-key", json={"api_key": "  "}).status_code == 400
    resp = client.put("/api/settings/api-key", json={"api_key": "sk-abc"})
    assert resp.status_code == 200
    assert settings.get_api_key() == "sk-abc"


def test_api_key_route_validates_body(client):
    resp = client.put("/api/settings/api-key", json={"key": "sk-abc"})
    assert resp.status_code == 422
    assert "request_id" in resp.json()


def test_cache_clear_route(client, dashboard):
    assert client.post("/api/cache/clear").json() == {"status": "Cache cleared"}
    assert dashboard.aggregator.cleared is True
