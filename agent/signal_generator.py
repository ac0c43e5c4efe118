"""
Signal Generator.

analyze(): prompt -> chat proxy -> tolerant JSON parse -> coerced Signal. Any failure along the
way (no key, timeout, HTTP error, unparsable reply) degrades to the rule-based signal, so
analyze() never raises.

scan_market(): one chat call over a candidate list, expecting a JSON array of buy setups. There
is no rule-based stand-in for a scan; failures raise ScanError.
"""
import math
from typing import Callable

from agent.chat_client import ChatClient, ChatCompletionError
from agent.json_extract import extract_json_array, extract_json_object
from agent.prompts import SCAN_SYSTEM_PROMPT, SYSTEM_PROMPT, TIMEFRAME_LABELS, build_analysis_prompt, build_scan_prompt
from core.rule_signal import fallback_signal
from data.fallback import parse_num
from data.models import Asset, Reasoning, Signal
from data.reference_prices import stock_name

ACTIONS = ("BUY", "SELL", "HOLD")
HEADLINE_LIMIT = 5
DEFAULT_CONFIDENCE = 3


class ScanError(Exception):
    pass


def _positive(val) -> float | None:
    num = parse_num(val)
    return num if num is not None and math.isfinite(num) and num > 0 else None


def coerce_action(val, default: str = "HOLD") -> str:
    action = str(val or "").strip().upper()
    return action if action in ACTIONS else default


def coerce_confidence(val) -> int:
    num = parse_num(val)
    if num is None or not math.isfinite(num):
        return DEFAULT_CONFIDENCE
    return max(1, min(5, int(round(num))))


def coerce_stop_loss(val, entry: float, price: float, action: str) -> float:
    stop = _positive(val) or price * 0.95
    if action == "SELL":
        return stop if stop > entry else round(entry * 1.05, 4)
    return stop if stop < entry else round(entry * 0.95, 4)


def coerce_targets(val, price: float) -> list[float]:
    if isinstance(val, list):
        nums = [_positive(v) for v in val]
        nums = [n for n in nums if n is not None]
        if len(nums) >= 3:
            return nums[:3]
    return [round(price * 1.05, 4), round(price * 1.10, 4), round(price * 1.15, 4)]


def coerce_reasoning(val) -> Reasoning:
    if isinstance(val, dict):
        return Reasoning(**{k: str(val.get(k) or "") for k in ("technical", "news", "summary")})
    if isinstance(val, str):
        return Reasoning(summary=val)
    return Reasoning()


def build_signal(parsed: dict, asset: Asset, timeframe: str, default_action: str = "HOLD", origin: str = "ai") -> Signal:
    """Model reply -> Signal, applying the field defaults and the stop-loss side check."""
    price = asset.price
    action = coerce_action(parsed.get("action"), default_action)
    entry = _positive(parsed.get("entry")) or price
    reasoning = parsed.get("reasoning")
    if reasoning is None and parsed.get("reason"):
        reasoning = parsed["reason"]

    return Signal(
        symbol=asset.symbol,
        name=asset.name,
        type=asset.type,
        icon=asset.icon,
        action=action,
        entry=entry,
        stop_loss=coerce_stop_loss(parsed.get("stopLoss"), entry, price, action),
        targets=coerce_targets(parsed.get("targets"), price),
        risk_reward=str(parsed.get("riskReward") or "1:2"),
        confidence=coerce_confidence(parsed.get("confidence")),
        reasoning=coerce_reasoning(reasoning),
        timeframe_label=timeframe,
        horizon=TIMEFRAME_LABELS[timeframe],
        origin=origin,
    )


class SignalGenerator:
    def __init__(
        self,
        chat: ChatClient | None = None,
        news=None,
        name_lookup: Callable[[str], str] = stock_name,
    ):
        self.chat = chat
        self.news = news
        self.name_lookup = name_lookup

    async def _headlines(self, asset: Asset) -> list[str]:
        if self.news is None:
            return []
        try:
            articles = await self.news.get_news(asset.symbol, asset.type)
        except Exception as e:
            print(f"[SIGNAL] news for {asset.symbol} unavailable: {e}")
            return []
        return [a.title for a in articles[:HEADLINE_LIMIT]]

    async def analyze(self, asset: Asset, timeframe: str = "short") -> Signal:
        if self.chat is None:
            print(f"[SIGNAL] {asset.symbol}: no API key, rule-based signal")
            return fallback_signal(asset, timeframe)

        print(f"[SIGNAL] analyzing {asset.symbol} ({timeframe})")
        headlines = await self._headlines(asset)
        prompt = build_analysis_prompt(asset, timeframe, headlines)

        try:
            reply = await self.chat.complete(SYSTEM_PROMPT, prompt)
        except ChatCompletionError as e:
            print(f"[SIGNAL] {asset.symbol}: {e}, using rule-based signal")
            return fallback_signal(asset, timeframe)

        parsed = extract_json_object(reply)
        if parsed is None:
            print(f"[SIGNAL] {asset.symbol}: no JSON object in reply, using rule-based signal")
            return fallback_signal(asset, timeframe)

        try:
            signal = build_signal(parsed, asset, timeframe)
        except ValueError as e:
            print(f"[SIGNAL] {asset.symbol}: reply did not validate ({e}), using rule-based signal")
            return fallback_signal(asset, timeframe)
        print(f"[SIGNAL] {asset.symbol}: {signal.action} confidence={signal.confidence}")
        return signal

    def _resolve(self, symbol: str, rec: dict, candidates: list[Asset]) -> Asset | None:
        for asset in candidates:
            if asset.symbol == symbol:
                return asset
        price = _positive(rec.get("entry"))
        if price is None:
            return None
        return Asset(symbol=symbol, name=self.name_lookup(symbol), type="stock", price=price, icon="📈")

    async def scan_market(self, candidates: list[Asset], timeframe: str = "short") -> list[Signal]:
        if self.chat is None:
            raise ScanError("API key required")

        print(f"[SIGNAL] scanning {len(candidates)} candidates ({timeframe})")
        try:
            reply = await self.chat.complete(SCAN_SYSTEM_PROMPT, build_scan_prompt(candidates, timeframe))
        except ChatCompletionError as e:
            raise ScanError(str(e)) from e

        recommendations = extract_json_array(reply)
        if recommendations is None:
            raise ScanError("Invalid AI response")

        signals = []
        for rec in recommendations:
            if not isinstance(rec, dict) or not rec.get("symbol"):
                continue
            symbol = str(rec["symbol"]).strip().upper()
            asset = self._resolve(symbol, rec, candidates)
            if asset is None:
                print(f"[SIGNAL] scan: skipping {symbol}, unknown asset without a price")
                continue
            try:
                signals.append(build_signal(rec, asset, timeframe, default_action="BUY", origin="scan"))
            except ValueError as e:
                print(f"[SIGNAL] scan: skipping {symbol}: {e}")

        if not signals:
            raise ScanError("AI scan returned no usable recommendations")
        print(f"[SIGNAL] scan found {len(signals)} opportunities")
        return signals
