"""JSON extraction and repair for whole-document LLM responses.

Streamed issue records are handled by :mod:`code_companion.streaming.decoder`;
this module is for responses that are expected to contain one JSON document,
possibly wrapped in commentary or code fences.
"""

from __future__ import annotations

import json
from typing import Any

from json_repair import repair_json


def parse_json_response(text: str) -> Any:
    """Extract and repair JSON content from LLM response text.

    This function:
    1. Locates JSON delimiters (outermost ``{``/``}`` or ``[``/``]``)
    2. Extracts the JSON fragment
    3. Repairs common JSON formatting issues
    4. Parses and returns the result

    Raises:
        ValueError: If JSON delimiters are not found or text is invalid
        json.JSONDecodeError: If the repaired text still cannot be parsed

    Example:
        >>> text = 'Here is the result: {"summary": "ok"} Thanks!'
        >>> parse_json_response(text)["summary"]
        'ok'
    """
    if not isinstance(text, str):
        raise ValueError(f"Expected string input, got {type(text)}")

    start_obj = text.find("{")
    start_arr = text.find("[")

    if start_obj == -1 and start_arr == -1:
        raise ValueError("Response text does not contain JSON object or array delimiters.")

    # Whichever top-level delimiter appears first wins
    if start_obj == -1 or (start_arr != -1 and start_arr < start_obj):
        start, end_char = start_arr, "]"
    else:
        start, end_char = start_obj, "}"

    end = text.rfind(end_char)
    if end == -1 or end <= start:
        raise ValueError("Response text does not contain matching JSON delimiters.")

    repaired = repair_json(text[start : end + 1])
    return json.loads(repaired)
