import json
import re
from typing import Any, Dict, List, Union

from tenancy_watch.utils.logging import get_logger

LOGGER = get_logger(__name__)

_OBJECT_PATTERN = re.compile(r"(\{[^{}]*(?:\{[^{}]*(?:\{[^{}]*\}[^{}]*)*\}[^{}]*)*\})", re.DOTALL)


def parse_json_safely(text: str) -> Union[Dict[str, Any], List[Any], None]:
    """Parse JSON from model output, tolerating common formatting issues.

    Handles:
    - Markdown code blocks (```json ... ```)
    - Leading/trailing prose around a single object
    - Trailing data after the first complete object

    Args:
        text: The text containing JSON

    Returns:
        Parsed JSON object or None if parsing fails
    """
    if not text:
        return None

    cleaned_text = text.strip()
    if cleaned_text.startswith("```json"):
        cleaned_text = cleaned_text[7:]
    elif cleaned_text.startswith("```"):
        cleaned_text = cleaned_text[3:]
    if cleaned_text.endswith("```"):
        cleaned_text = cleaned_text[:-3]
    cleaned_text = cleaned_text.strip()

    try:
        return json.loads(cleaned_text)
    except json.JSONDecodeError as e:
        LOGGER.warning(f"Initial JSON parse failed: {e}, attempting repairs...")

        if e.pos > 0:
            try:
                return json.loads(cleaned_text[:e.pos].strip())
            except json.JSONDecodeError:
                pass

        match = _OBJECT_PATTERN.search(cleaned_text)
        if match:
            try:
                return json.loads(match.group(1))
            except json.JSONDecodeError:
                pass

        LOGGER.error(f"Failed to parse JSON: {e}")
        return None
