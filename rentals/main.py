"""
Rentals API - main entry point.

Runs the ASGI app under uvicorn:

    rentals-api            # installed console script
    python -m rentals.main
"""

from __future__ import annotations

import uvicorn

from rentals.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "rentals.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug and not settings.is_production,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
