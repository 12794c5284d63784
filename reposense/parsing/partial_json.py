"""Best-effort decoding of JSON documents that are still being streamed."""

from __future__ import annotations

import json
from typing import Any, List, Sequence, Tuple

_MAX_CUT_ATTEMPTS = 8


def load_partial_json(text: str) -> Any | None:
    """Decode ``text``, closing any unterminated strings and containers.

    Returns ``None`` when no prefix of the document can be completed into valid JSON.
    Candidates are tried from the longest to the shortest: the whole text with open
    strings and containers closed, then the text cut back at recent commas.
    """
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    stack: List[str] = []
    cuts: List[Tuple[int, Tuple[str, ...]]] = []
    in_string = False
    escape = False
    for index, char in enumerate(text):
        if in_string:
            if escape:
                escape = False
            elif char == "\\":
                escape = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            stack.append("}")
        elif char == "[":
            stack.append("]")
        elif char in "}]":
            if not stack or stack[-1] != char:
                return None
            stack.pop()
        elif char == ",":
            cuts.append((index, tuple(stack)))

    head = text
    if in_string:
        if escape:
            head = head[:-1]
        head += '"'

    candidates = [_close(head, stack)]
    for index, snapshot in reversed(cuts[-_MAX_CUT_ATTEMPTS:]):
        candidates.append(_close(text[:index], snapshot))

    for candidate in candidates:
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue
    return None


def _close(head: str, stack: Sequence[str]) -> str:
    head = head.rstrip()
    while head.endswith((",", ":")):
        head = head[:-1].rstrip()
    return head + "".join(reversed(stack))


__all__ = ["load_partial_json"]
