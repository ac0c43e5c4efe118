import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from agent.json_extract import extract_json_array, extract_json_object


def test_whole_reply_is_json():
    assert extract_json_object('{"action": "BUY", "confidence": 4}') == {"action": "BUY", "confidence": 4}


def test_code_block():
    reply = 'Here is my analysis:\n```json\n{"action": "SELL"}\n```\nGood luck.'
    assert extract_json_object(reply) == {"action": "SELL"}


def test_object_embedded_in_prose():
    reply = 'Sure! {"action": "HOLD", "targets": [1, 2, 3]} Let me know.'
    assert extract_json_object(reply) == {"action": "HOLD", "targets": [1, 2, 3]}


def test_braces_inside_strings_do_not_break_depth():
    reply = 'Result: {"reasoning": {"summary": "range {70-75} holds \\"firm\\""}, "action": "BUY"} end'
    parsed = extract_json_object(reply)
    assert parsed["action"] == "BUY"
    assert parsed["reasoning"]["summary"] == 'range {70-75} holds "firm"'


def test_first_balanced_object_wins():
    reply = '{"a": 1} and then {"b": 2}'
    assert extract_json_object(reply) == {"a": 1}


def test_skips_non_json_brace_span():
    reply = 'Use the {support} level. {"action": "BUY"}'
    assert extract_json_object(reply) == {"action": "BUY"}


def test_unclosed_brace_before_object():
    reply = 'Support zone {48-50k. Result: {"action": "BUY", "entry": 50}'
    assert extract_json_object(reply) == {"action": "BUY", "entry": 50}


def test_odd_quote_before_object():
    reply = 'He said {"yes} then: {"action": "SELL"}'
    assert extract_json_object(reply) == {"action": "SELL"}


def test_no_json_returns_none():
    assert extract_json_object("I cannot analyze this asset right now.") is None
    assert extract_json_object("") is None
    assert extract_json_object(None) is None


def test_unbalanced_returns_none():
    assert extract_json_object('{"action": "BUY", "entry": 50') is None


def test_object_extractor_ignores_arrays():
    assert extract_json_object("[1, 2, 3]") is None


def test_array_from_prose():
    reply = 'Top picks:\n[{"symbol": "HPG", "action": "BUY"}, {"symbol": "VNM"}]\nDone.'
    assert extract_json_array(reply) == [{"symbol": "HPG", "action": "BUY"}, {"symbol": "VNM"}]


def test_array_in_code_block():
    reply = '```json\n[{"symbol": "FPT"}]\n```'
    assert extract_json_array(reply) == [{"symbol": "FPT"}]


def test_array_missing_returns_none():
    assert extract_json_array('{"symbol": "FPT"}') is None
