"""
The response envelope.

Every response body has the same shape:

    {"success": 1, "data": <payload>}          # 2xx
    {"success": 0, "data": "<error message>"}  # everything else
"""

from __future__ import annotations

from typing import Any

from fastapi.responses import JSONResponse


def envelope(success: bool, data: Any) -> dict[str, Any]:
    return {"success": 1 if success else 0, "data": data}


def ok(data: Any = None, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=envelope(True, data))


def fail(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=envelope(False, message))
