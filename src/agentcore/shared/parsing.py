"""Helpers for reading JSON out of model responses."""

import re

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*(.*?)\s*```$", re.DOTALL)


def extract_json(text: str) -> str:
    """Strip surrounding whitespace and an optional ``` / ```json code fence.

    Models often wrap JSON in a Markdown block despite being told not to.
    """
    cleaned = text.strip()
    match = _FENCE_RE.match(cleaned)
    if match:
        cleaned = match.group(1).strip()
    return cleaned
