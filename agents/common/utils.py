"""Shared utility functions for agents."""

import json
import logging
import re
from typing import Any, Dict

from core.errors import ModelOutputError

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"^\s*```[a-zA-Z0-9_-]*\s*\n?(.*?)\n?\s*```\s*$", re.DOTALL)


def strip_code_fences(response: str) -> str:
    """Remove a surrounding markdown code fence, if any."""
    match = _FENCE.match(response)
    return match.group(1).strip() if match else response.strip()


def parse_json_response(response: str) -> Dict[str, Any]:
    """Strictly parse a JSON object from a model response.

    Args:
        response: Model response text, optionally wrapped in a markdown fence

    Returns:
        Parsed JSON object

    Raises:
        ModelOutputError: the response is empty, not JSON, or not an object
    """
    if not response or not response.strip():
        raise ModelOutputError("Model returned an empty response")

    try:
        parsed = json.loads(strip_code_fences(response))
    except json.JSONDecodeError as e:
        raise ModelOutputError(
            f"Model response is not valid JSON: {e.msg}",
            details={"position": e.pos},
        ) from e

    if not isinstance(parsed, dict):
        raise ModelOutputError(
            f"Model response must be a JSON object, got {type(parsed).__name__}"
        )
    return parsed

