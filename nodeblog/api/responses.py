"""
JSON rendering for API responses.

FastAPI's default encoder decodes bytes as UTF-8, which corrupts
keys and ids. Everything here goes through json_default instead.
"""

import base64
import json
from typing import Any

from fastapi.responses import JSONResponse


def json_default(obj):
    """JSON serializer for objects not serializable by default json code."""
    if isinstance(obj, (bytes, bytearray)):
        return base64.b64encode(bytes(obj)).decode("ascii")
    raise TypeError(f"Type {type(obj)} not serializable")


class NodeJSONResponse(JSONResponse):
    """JSONResponse that renders bytes as standard base64."""

    def render(self, content: Any) -> bytes:
        return json.dumps(
            content,
            default=json_default,
            ensure_ascii=False,
            allow_nan=False,
            separators=(",", ":"),
        ).encode("utf-8")
