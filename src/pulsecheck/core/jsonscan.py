"""Locate a JSON object inside noisy command output.

Check executors often print banners, npm chatter or log lines around
their machine-readable payload. extract_json_object() finds the first
balanced ``{...}`` block, honouring quoted strings and escapes, and
parses only that block.
"""

import json
from typing import Any


def find_object_span(text: str) -> tuple[int, int] | None:
    """Find the first balanced brace block in text.

    Args:
        text: Arbitrary output

    Returns:
        (start, end) slice bounds of the block, or None if there is
        no '{' or the braces never balance
    """
    start = text.find("{")
    if start < 0:
        return None

    depth = 0
    in_string = False
    escaped = False

    for i in range(start, len(text)):
        char = text[i]

        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return start, i + 1

    return None


def extract_json_object(text: str | None) -> dict[str, Any] | None:
    """Parse the first JSON object embedded in text.

    Args:
        text: Combined stdout/stderr of a check

    Returns:
        The parsed object, or None when the input is empty, holds no
        balanced block, or the block is not valid JSON
    """
    if not text:
        return None
    normalized = text.strip()
    if not normalized:
        return None

    span = find_object_span(normalized)
    if span is None:
        return None

    try:
        parsed = json.loads(normalized[span[0]:span[1]])
    except json.JSONDecodeError:
        return None

    return parsed if isinstance(parsed, dict) else None
