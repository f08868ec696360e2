"""
Decoding of JSON payloads embedded in generative model output.
"""

import json
import re
from typing import Any

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


def strip_code_fences(raw_text: str) -> str:
    """Remove markdown ``` / ```json fences the model may wrap around JSON."""
    return _FENCE_RE.sub("", raw_text or "").strip()


def parse_json_payload(raw_text: str) -> Any:
    """
    Parse model output as JSON after stripping code fences.

    Raises:
        ValueError: if the text is not valid JSON (json.JSONDecodeError)
    """
    return json.loads(strip_code_fences(raw_text))
