"""
Node manager - main entry point.

Runs the API with uvicorn:

    nodemanager
    python -m nodemanager.main
"""

from __future__ import annotations

import uvicorn

from nodemanager.config import get_settings


def main():
    """Main entry point."""
    settings = get_settings()
    uvicorn.run(
        "nodemanager.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug and not settings.is_production,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
