import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.rule_signal import classify_change, fallback_signal, trade_levels
from data.models import Asset


def make_asset(change, asset_type="stock", price=100.0, symbol="VNM"):
    return Asset(symbol=symbol, name="Vinamilk", type=asset_type, price=price, change=change, icon="📈")


@pytest.mark.parametrize("change,action,confidence", [
    (-7.0, "BUY", 3),
    (-5.01, "BUY", 3),
    (-5.0, "BUY", 2),
    (-3.0, "BUY", 2),
    (-2.0, "HOLD", 2),
    (-1.0, "HOLD", 2),
    (0.0, "HOLD", 2),
    (2.0, "HOLD", 2),
    (3.0, "HOLD", 2),
    (3.5, "HOLD", 3),
    (8.0, "HOLD", 3),
    (8.5, "SELL", 3),
])
def test_rule_table(change, action, confidence):
    got_action, got_confidence, rationale = classify_change(change)
    assert (got_action, got_confidence) == (action, confidence)
    assert rationale


def test_buy_levels_for_stock():
    stop, targets = trade_levels(100.0, "stock", "BUY")
    assert stop == pytest.approx(95.5)
    assert targets == pytest.approx([103.0, 106.0, 109.0])


def test_hold_levels_for_metal_use_wider_multiplier():
    stop, targets = trade_levels(100.0, "metal", "HOLD")
    assert stop == pytest.approx(92.5)
    assert targets == pytest.approx([105.0, 110.0, 115.0])


def test_sell_levels_are_mirrored():
    stop, targets = trade_levels(100.0, "crypto", "SELL")
    assert stop == pytest.approx(107.5)
    assert targets == pytest.approx([95.0, 90.0, 85.0])


def test_fallback_signal_shape():
    signal = fallback_signal(make_asset(-6.0), "medium")
    assert signal.action == "BUY"
    assert signal.confidence == 3
    assert signal.entry == 100.0
    assert signal.stop_loss < signal.entry
    assert signal.targets == sorted(signal.targets)
    assert len(signal.targets) == 3
    assert signal.origin == "fallback"
    assert signal.timeframe_label == "medium"
    assert signal.horizon == "1-4 weeks"
    assert signal.reasoning.technical


def test_fallback_is_deterministic():
    asset = make_asset(4.2, "metal", price=4900.0, symbol="XAU/USD")
    a = fallback_signal(asset)
    b = fallback_signal(asset)
    assert (a.action, a.confidence, a.stop_loss, a.targets) == (b.action, b.confidence, b.stop_loss, b.targets)


def test_fallback_sell_stop_above_entry():
    signal = fallback_signal(make_asset(12.0, "crypto", price=3300.0, symbol="ETH"))
    assert signal.action == "SELL"
    assert signal.stop_loss > signal.entry
    assert all(t < signal.entry for t in signal.targets)
