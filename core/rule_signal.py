"""
Rule-based signal, used when the model is unreachable or its reply cannot be parsed.

Pure function of (price, change, type): the same asset always yields the same action,
confidence, stop loss and targets. Levels are price * (1 -/+ k * multiplier), multiplier 3%
for stocks and 5% otherwise, k = 1.5 for the stop and 1 / 2 / 3 for the targets.
For SELL the stop sits above price and targets step down.
"""
from data.models import Asset, Reasoning, Signal
from agent.prompts import TIMEFRAME_LABELS

STOCK_MULTIPLIER = 0.03
DEFAULT_MULTIPLIER = 0.05
STOP_K = 1.5
TARGET_KS = (1, 2, 3)


def classify_change(change: float) -> tuple[str, int, str]:
    """(action, confidence, rationale) for a percent change."""
    if change < -5:
        return "BUY", 3, f"Down {abs(change):.1f}%: oversold, potential accumulation."
    if change < -2:
        return "BUY", 2, f"Pulled back {abs(change):.1f}%: mild pullback, possible entry."
    if change > 8:
        return "SELL", 3, f"Up {change:.1f}%: overbought, consider taking profit."
    if change > 3:
        return "HOLD", 3, f"Up {change:.1f}%: uptrend intact, trail stop."
    if change > 0:
        return "HOLD", 2, f"Up {change:.1f}%: sideways, await breakout."
    return "HOLD", 2, f"{change:+.1f}%: neutral, await signal."


def trade_levels(price: float, asset_type: str, action: str) -> tuple[float, list[float]]:
    multiplier = STOCK_MULTIPLIER if asset_type == "stock" else DEFAULT_MULTIPLIER
    direction = -1 if action == "SELL" else 1
    stop = round(price * (1 - direction * STOP_K * multiplier), 4)
    targets = [round(price * (1 + direction * k * multiplier), 4) for k in TARGET_KS]
    return stop, targets


_SUMMARIES = {
    "BUY": "Offline read: buy signal.",
    "SELL": "Offline read: consider taking profit.",
    "HOLD": "Offline read: keep watching.",
}


def fallback_signal(asset: Asset, timeframe: str = "short") -> Signal:
    change = asset.change or 0.0
    action, confidence, technical = classify_change(change)
    stop, targets = trade_levels(asset.price, asset.type, action)

    return Signal(
        symbol=asset.symbol,
        name=asset.name,
        type=asset.type,
        icon=asset.icon,
        action=action,
        entry=asset.price,
        stop_loss=stop,
        targets=targets,
        risk_reward="1:2",
        confidence=confidence,
        reasoning=Reasoning(
            technical=technical,
            news="⚠️ An API key is needed for the full AI analysis.",
            summary=_SUMMARIES[action],
        ),
        timeframe_label=timeframe,
        horizon=TIMEFRAME_LABELS[timeframe],
        origin="fallback",
    )
