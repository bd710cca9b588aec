from __future__ import annotations

import json
import re
from typing import Any

_FENCED_BLOCK = re.compile(r"```[\w+-]*[ \t]*\n?(?P<code>.*?)```", re.DOTALL)


def strip_code_fences(response: str) -> str:
    """
    Return the body of the first fenced code block in ``response``,
    or the whole response stripped when there is none.
    """
    if not response:
        return ""
    match = _FENCED_BLOCK.search(response)
    if match:
        return match.group("code").strip()
    return response.strip()


def parse_json_response(response: str) -> Any:
    """json.loads after fence stripping; raises json.JSONDecodeError."""
    return json.loads(strip_code_fences(response))
