"""
Tolerant JSON extraction from free-text model replies.

Tries, in order:
1. the whole reply is the JSON value
2. a ```json``` code block
3. the first balanced {...} / [...] found by depth counting (string-aware)
Returns None instead of raising when nothing parses.
"""
import json
import re

_CODE_BLOCK = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL)


def _balanced_span(text: str, opener: str, closer: str, start: int = 0) -> str | None:
    first = text.find(opener, start)
    if first == -1:
        return None
    depth = 0
    in_string = False
    escape_next = False
    for i in range(first, len(text)):
        c = text[i]
        if escape_next:
            escape_next = False
            continue
        if c == "\\" and in_string:
            escape_next = True
            continue
        if c == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if c == opener:
            depth += 1
        elif c == closer:
            depth -= 1
            if depth == 0:
                return text[first:i + 1]
    return None


def _extract(text: str, opener: str, closer: str, expected: type):
    if not text or not isinstance(text, str):
        return None
    text = text.strip()

    if text.startswith(opener):
        try:
            value = json.loads(text)
            if isinstance(value, expected):
                return value
        except json.JSONDecodeError:
            pass

    block = _CODE_BLOCK.search(text)
    if block:
        try:
            value = json.loads(block.group(1).strip())
            if isinstance(value, expected):
                return value
        except json.JSONDecodeError:
            pass

    # A stray or unclosed brace in prose can open a span that is not JSON; try every opener.
    pos = text.find(opener)
    while pos != -1:
        span = _balanced_span(text, opener, closer, pos)
        if span is not None:
            try:
                value = json.loads(span)
                if isinstance(value, expected):
                    return value
            except json.JSONDecodeError:
                pass
        pos = text.find(opener, pos + 1)
    return None


def extract_json_object(text: str) -> dict | None:
    return _extract(text, "{", "}", dict)


def extract_json_array(text: str) -> list | None:
    return _extract(text, "[", "]", list)
