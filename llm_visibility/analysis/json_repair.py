"""Tolerant parsing of judge output.

Judge models are asked for bare JSON but regularly wrap it in prose or code
fences, leave trailing commas, or drop the comma between array objects.
Parsing is tiered:
  1. strict parse of the first balanced {...} span
  2. parse after textual repairs
  3. (classifier only) regex recovery of "name"/"type" pairs
"""

from __future__ import annotations

import json
import logging
import re

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"```(?:json)?\s*(\{.*\})\s*```", re.DOTALL)
_TRAILING_COMMA = re.compile(r",\s*([\]}])")
_MISSING_COMMA = re.compile(r"(})\s*({)")
_CONTROL_CHARS = re.compile(r"[\x00-\x1F\x7F]")

_NAME_FIELD = re.compile(r'"name"\s*:\s*"([^"]+)"')
_TYPE_FIELD = re.compile(r'"type"\s*:\s*"(ourbrand|competitor|other)"')


def extract_balanced_object(text: str) -> str | None:
    """Return the first balanced {...} span, or None.

    Braces inside string literals are ignored. Output cut off before the
    object closes falls back to the span ending at the last "}".
    """
    if not text:
        return None
    fenced = _CODE_FENCE.search(text)
    if fenced:
        text = fenced.group(1)
    start = text.find("{")
    if start == -1:
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
        elif char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]

    end = text.rfind("}")
    if end <= start:
        return None
    return text[start : end + 1]


def repair_json(raw: str) -> str:
    """Apply the textual repairs: trailing commas, missing commas, control characters."""
    repaired = _TRAILING_COMMA.sub(r"\1", raw)
    repaired = _MISSING_COMMA.sub(r"\1,\2", repaired)
    return _CONTROL_CHARS.sub("", repaired)


def parse_json_object(text: str) -> dict:
    """Parse a JSON object out of free-form judge output.

    Raises:
        ValueError: no object span found, or it stays invalid after repair.
    """
    candidate = extract_balanced_object(text)
    if candidate is None:
        raise ValueError("no JSON object found in judge output")

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as first_error:
        logger.debug("Strict JSON parse failed (%s), attempting repair", first_error)
        try:
            data = json.loads(repair_json(candidate))
        except json.JSONDecodeError as e:
            raise ValueError(f"judge output is not valid JSON after repair: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return data


def extract_name_type_pairs(text: str) -> list[tuple[str, str]]:
    """Last-resort recovery: pair "name" and "type" fields by position.

    Only pairs up to the shorter of the two lists; extra names or types are
    discarded.
    """
    names = _NAME_FIELD.findall(text or "")
    types = _TYPE_FIELD.findall(text or "")
    if len(names) != len(types):
        logger.debug("Unbalanced name/type recovery: %d names, %d types", len(names), len(types))
    return list(zip(names, types))
